"""Authentication and authorization core module."""

from authz.core.auth.context import AuthContext
from authz.core.auth.jwt import create_access_token, decode_token
from authz.core.auth.permissions import PermissionKey, SystemRole
from authz.core.auth.resolver import PermissionResolver

__all__ = [
    "AuthContext",
    "PermissionKey",
    "PermissionResolver",
    "SystemRole",
    "create_access_token",
    "decode_token",
]
