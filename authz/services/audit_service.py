"""Audit service: writes ledger entries and queries them."""

from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from authz.core.auth.access import ensure_super_admin
from authz.core.auth.context import AuthContext
from authz.core.exceptions import InternalError
from authz.models.audit_log import AuditLog
from authz.repositories.interfaces import Repositories
from authz.schemas.audit import AuditLogResponse


def _json_value(value: Any) -> Any:
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_json_value(v) for v in value]
    if isinstance(value, dict):
        return {str(k): _json_value(v) for k, v in value.items()}
    return value


def snapshot(obj: Any, *fields: str) -> dict[str, Any] | None:
    """JSON-safe dict of selected attributes, or None when ``obj`` is None."""
    if obj is None:
        return None
    return {name: _json_value(getattr(obj, name)) for name in fields}


class AuditService:
    """Service for recording and querying audit entries."""

    def __init__(self, repos: Repositories):
        """Initialize service with repositories."""
        self.repos = repos

    def record(
        self,
        actor: AuthContext,
        action: str,
        subject_type: str,
        subject_id: UUID | None,
        company_id: UUID | None,
        before: dict[str, Any] | None = None,
        after: dict[str, Any] | None = None,
        details: dict[str, Any] | None = None,
    ) -> AuditLog:
        """
        Append one audit entry inside the caller's open transaction.

        The entry commits or rolls back together with the state change it
        describes.

        Args:
            actor: Caller performing the change.
            action: Action name (e.g., 'company_module_disabled').
            subject_type: user | company | module | role | template.
            subject_id: Affected subject.
            company_id: Company scope, None for global catalog changes.
            before: State before the change.
            after: State after the change.
            details: Extra context (counts, reasons, affected ids).

        Returns:
            The persisted entry.

        Raises:
            InternalError: If called outside a transaction.
        """
        if not self.repos.transactions.in_transaction:
            raise InternalError(
                code="AUDIT_OUTSIDE_TRANSACTION",
                message="Audit entries must be written inside a transaction",
            )
        entry = AuditLog(
            id=uuid4(),
            actor_id=actor.user_id,
            company_id=company_id,
            subject_type=subject_type,
            subject_id=subject_id,
            action=action,
            before_state=_json_value(before) if before is not None else None,
            after_state=_json_value(after) if after is not None else None,
            details=_json_value(details) if details is not None else None,
            ip_address=actor.ip_address,
            user_agent=actor.user_agent,
            created_at=datetime.now(UTC),
        )
        return self.repos.audit.add(entry)

    def get_audit_logs(
        self,
        actor: AuthContext,
        actor_id: UUID | None = None,
        subject_id: UUID | None = None,
        company_id: UUID | None = None,
        action: str | None = None,
        skip: int = 0,
        limit: int = 50,
    ) -> tuple[list[AuditLogResponse], int]:
        """
        Get audit logs with filters and pagination. Super-admin only.

        Returns:
            Tuple of (list of AuditLogResponse, total count).
        """
        ensure_super_admin(actor)
        logs, total = self.repos.audit.get_audit_logs(
            actor_id=actor_id,
            subject_id=subject_id,
            company_id=company_id,
            action=action,
            skip=skip,
            limit=limit,
        )
        return [AuditLogResponse.model_validate(log) for log in logs], total
