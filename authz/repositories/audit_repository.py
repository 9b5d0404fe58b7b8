"""Audit log repository for data access operations."""

from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.orm import Session

from authz.models.audit_log import AuditLog
from authz.repositories.interfaces import IAuditRepository


class AuditRepository(IAuditRepository):
    """Repository for audit log data access. Insert and read only."""

    def __init__(self, db: Session):
        """Initialize repository with database session."""
        self.db = db

    def add(self, entry: AuditLog) -> AuditLog:
        self.db.add(entry)
        self.db.flush()
        return entry

    def get_audit_logs(
        self,
        actor_id: UUID | None = None,
        subject_id: UUID | None = None,
        company_id: UUID | None = None,
        action: str | None = None,
        skip: int = 0,
        limit: int = 50,
    ) -> tuple[list[AuditLog], int]:
        """
        Get audit logs with filters and pagination.

        Args:
            actor_id: Filter by acting user (optional).
            subject_id: Filter by affected subject (optional). Also matches
                entries whose cascade details list the user as affected.
            company_id: Filter by company (optional).
            action: Filter by action type (optional).
            skip: Number of records to skip.
            limit: Maximum number of records to return.

        Returns:
            Tuple of (list of audit logs, total count).
        """
        query = self.db.query(AuditLog)

        if actor_id:
            query = query.filter(AuditLog.actor_id == actor_id)
        if subject_id:
            query = query.filter(
                or_(
                    AuditLog.subject_id == subject_id,
                    AuditLog.details["affected_user_ids"].contains([str(subject_id)]),
                )
            )
        if company_id:
            query = query.filter(AuditLog.company_id == company_id)
        if action:
            query = query.filter(AuditLog.action == action)

        total = query.count()
        logs = query.order_by(AuditLog.created_at.desc()).offset(skip).limit(limit).all()
        return logs, total
