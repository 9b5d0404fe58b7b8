"""Logging configuration for security and application events."""

import logging
import sys
from typing import Any

from authz.core.config import get_settings

settings = get_settings()

# Create logger for security events
security_logger = logging.getLogger("authz.security")
security_logger.setLevel(settings.LOG_LEVEL)

# Create logger for application events
app_logger = logging.getLogger("authz")
app_logger.setLevel(settings.LOG_LEVEL)

console_handler = logging.StreamHandler(sys.stdout)
console_handler.setLevel(settings.LOG_LEVEL)

formatter = logging.Formatter(
    "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
console_handler.setFormatter(formatter)

# "authz.security" propagates to "authz", so only the parent gets the handler
if not app_logger.handlers:
    app_logger.addHandler(console_handler)


def log_permission_change(
    actor_id: str,
    target_user_id: str,
    company_id: str | None,
    permission_key: str,
    is_granted: bool,
    expires_at: Any | None = None,
) -> None:
    """
    Log a data permission override change.

    Args:
        actor_id: User who made the change.
        target_user_id: User whose override changed.
        company_id: Company scope of the override.
        permission_key: Capability key.
        is_granted: New decision.
        expires_at: Optional expiry of the override.
    """
    verb = "granted" if is_granted else "revoked"
    security_logger.info(
        f"Permission {verb} - actor={actor_id}, user={target_user_id}, "
        f"company={company_id}, permission={permission_key}"
        + (f", expires_at={expires_at}" if expires_at else "")
    )


def log_module_change(
    action: str,
    actor_id: str,
    company_id: str | None,
    module_key: str,
    target_user_id: str | None = None,
    affected_user_count: int | None = None,
) -> None:
    """
    Log a company or user module provisioning change.

    Args:
        action: Audit action name (e.g., 'company_module_disabled').
        actor_id: User who made the change.
        company_id: Company affected.
        module_key: Module key.
        target_user_id: User affected, for user-level grants.
        affected_user_count: Number of cascaded user rows, for disables.
    """
    message = f"Module change {action} - actor={actor_id}, company={company_id}, module={module_key}"
    if target_user_id:
        message += f", user={target_user_id}"
    if affected_user_count is not None:
        message += f", affected_users={affected_user_count}"
    security_logger.info(message)


def log_role_change(action: str, actor_id: str, company_id: str | None, subject_id: str) -> None:
    """Log a custom role, template or role assignment change."""
    security_logger.info(
        f"Role change {action} - actor={actor_id}, company={company_id}, subject={subject_id}"
    )


def log_access_denied(
    user_id: str,
    reason: str,
    required: str | None = None,
) -> None:
    """
    Log an authorization denial at the enforcement layer.

    Args:
        user_id: Caller user id.
        reason: Short machine reason (e.g., 'missing_permission').
        required: Required permission or role, if any.
    """
    security_logger.warning(
        f"Access denied - user_id={user_id}, reason={reason}"
        + (f", required={required}" if required else "")
    )


def get_client_info(request: Any) -> tuple[str | None, str | None]:
    """
    Extract IP address and user agent from FastAPI request.

    Args:
        request: FastAPI Request object.

    Returns:
        Tuple of (ip_address, user_agent).
    """
    ip_address = None
    if hasattr(request, "client") and request.client:
        ip_address = request.client.host

    # Behind a proxy the first hop is the client
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        ip_address = forwarded_for.split(",")[0].strip()

    user_agent = request.headers.get("User-Agent")

    return ip_address, user_agent
