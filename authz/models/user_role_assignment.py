"""UserRoleAssignment model: the single active role of a user in a company."""

from datetime import UTC, datetime
from uuid import uuid4

from sqlalchemy import Boolean, CheckConstraint, Column, ForeignKey, Index, String, text
from sqlalchemy.dialects.postgresql import TIMESTAMP
from sqlalchemy.dialects.postgresql import UUID as PG_UUID

from authz.core.db.session import Base


class UserRoleAssignment(Base):
    """Role assignment for a (user, company) pair.

    Exactly one of ``custom_role_id`` and ``system_role`` is set. At most one
    row per (user, company) is active; a new assignment supersedes the old.
    """

    __tablename__ = "user_role_assignments"

    id = Column(PG_UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(
        PG_UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    company_id = Column(
        PG_UUID(as_uuid=True),
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
    )
    custom_role_id = Column(
        PG_UUID(as_uuid=True),
        ForeignKey("custom_roles.id", ondelete="CASCADE"),
        nullable=True,
    )
    system_role = Column(String(20), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    assigned_by = Column(
        PG_UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    assigned_at = Column(
        TIMESTAMP(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
    expires_at = Column(TIMESTAMP(timezone=True), nullable=True)
    superseded_at = Column(TIMESTAMP(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint(
            "(custom_role_id IS NULL) <> (system_role IS NULL)",
            name="ck_user_role_assignments_one_role",
        ),
        Index(
            "uq_user_role_assignments_active",
            "user_id",
            "company_id",
            unique=True,
            postgresql_where=text("is_active"),
        ),
    )

    def is_current(self, now: datetime | None = None) -> bool:
        """Active and not past ``expires_at``."""
        if not self.is_active:
            return False
        if self.expires_at is None:
            return True
        return self.expires_at > (now or datetime.now(UTC))

    def __repr__(self) -> str:
        return (
            f"<UserRoleAssignment(user_id={self.user_id}, company_id={self.company_id}, "
            f"custom_role_id={self.custom_role_id}, system_role={self.system_role}, "
            f"is_active={self.is_active})>"
        )
