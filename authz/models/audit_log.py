"""AuditLog model: append-only ledger of administrative changes."""

from datetime import UTC, datetime
from uuid import uuid4

from sqlalchemy import Column, ForeignKey, Index, String
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP
from sqlalchemy.dialects.postgresql import UUID as PG_UUID

from authz.core.db.session import Base


class AuditLog(Base):
    """Immutable audit entry. Rows are inserted, never updated or deleted."""

    __tablename__ = "audit_logs"

    id = Column(PG_UUID(as_uuid=True), primary_key=True, default=uuid4)
    actor_id = Column(
        PG_UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
        comment="User who performed the action",
    )
    company_id = Column(
        PG_UUID(as_uuid=True),
        nullable=True,
        index=True,
        comment="Company affected (null for global catalog changes)",
    )
    subject_type = Column(
        String(20),
        nullable=False,
        comment="user | company | module | role | template",
    )
    subject_id = Column(PG_UUID(as_uuid=True), nullable=True, index=True)
    action = Column(String(100), nullable=False, index=True)
    before_state = Column(JSONB, nullable=True)
    after_state = Column(JSONB, nullable=True)
    details = Column(JSONB, nullable=True)
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(String(500), nullable=True)
    created_at = Column(
        TIMESTAMP(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
        index=True,
    )

    __table_args__ = (
        Index("idx_audit_logs_company_created", "company_id", "created_at"),
        Index("idx_audit_logs_action_created", "action", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<AuditLog(id={self.id}, actor_id={self.actor_id}, action={self.action}, "
            f"subject_type={self.subject_type}, created_at={self.created_at})>"
        )
