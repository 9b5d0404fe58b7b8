"""Exception taxonomy and helpers for API error responses."""

from typing import Any

from fastapi import HTTPException, status


class APIException(HTTPException):
    """Base exception for API errors rendered in the standard envelope.

    Example:
        raise APIException(
            code="MODULE_NOT_FOUND",
            message="Module not found",
            status_code=status.HTTP_404_NOT_FOUND
        )
    """

    default_status: int = status.HTTP_400_BAD_REQUEST
    default_code: str = "BAD_REQUEST"

    def __init__(
        self,
        code: str | None = None,
        message: str = "",
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize API exception.

        Args:
            code: Error code (e.g., 'MODULE_NOT_FOUND'). Defaults to the class code.
            message: Human-readable error message.
            status_code: HTTP status code. Defaults to the class status.
            details: Optional additional error details.
        """
        code = code or self.default_code
        status_code = status_code or self.default_status
        super().__init__(
            status_code=status_code,
            detail={"error": {"code": code, "message": message, "details": details}},
        )
        self.code = code
        self.message = message
        self.details = details


class ValidationError(APIException):
    """Malformed or semantically invalid input (400)."""

    default_status = status.HTTP_400_BAD_REQUEST
    default_code = "VALIDATION_ERROR"


class AuthenticationError(APIException):
    """Missing or invalid credential (401)."""

    default_status = status.HTTP_401_UNAUTHORIZED
    default_code = "AUTH_UNAUTHORIZED"


class AuthorizationError(APIException):
    """Role, company or permission mismatch (403)."""

    default_status = status.HTTP_403_FORBIDDEN
    default_code = "AUTH_INSUFFICIENT_PERMISSIONS"


class NotFoundError(APIException):
    """Entity missing, or owned by another company (404)."""

    default_status = status.HTTP_404_NOT_FOUND
    default_code = "NOT_FOUND"


class ConflictError(APIException):
    """Duplicate unique key or invalid state transition (409)."""

    default_status = status.HTTP_409_CONFLICT
    default_code = "CONFLICT"


class ModuleNotEnabledError(ConflictError):
    """Disable requested for a company module that is not enabled."""

    default_code = "MODULE_NOT_ENABLED"


class PreconditionFailedError(APIException):
    """Operation requires state that does not currently hold (412)."""

    default_status = status.HTTP_412_PRECONDITION_FAILED
    default_code = "PRECONDITION_FAILED"


class InternalError(APIException):
    """Unexpected persistence failure (500)."""

    default_status = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_code = "INTERNAL_ERROR"

