"""UserDataPermission model for per-user capability overrides."""

from datetime import UTC, datetime
from uuid import uuid4

from sqlalchemy import Boolean, Column, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import TIMESTAMP
from sqlalchemy.dialects.postgresql import UUID as PG_UUID

from authz.core.db.session import Base


class UserDataPermission(Base):
    """Explicit grant or revocation of one capability key for a user."""

    __tablename__ = "user_data_permissions"

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
    permission_key = Column(String(100), nullable=False)
    is_granted = Column(Boolean, nullable=False)
    granted_by = Column(
        PG_UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    granted_at = Column(
        TIMESTAMP(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
    expires_at = Column(TIMESTAMP(timezone=True), nullable=True)
    reason = Column(Text, nullable=True)
    created_at = Column(
        TIMESTAMP(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
    updated_at = Column(
        TIMESTAMP(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint(
            "user_id",
            "company_id",
            "permission_key",
            name="uq_user_data_permissions_user_company_key",
        ),
    )

    def is_expired(self, now: datetime | None = None) -> bool:
        """
        Check if the override has expired.

        Expired overrides behave as if they did not exist.

        Returns:
            True if ``expires_at`` is set and not in the future.
        """
        if self.expires_at is None:
            return False
        return self.expires_at <= (now or datetime.now(UTC))

    def __repr__(self) -> str:
        return (
            f"<UserDataPermission(user_id={self.user_id}, permission_key={self.permission_key}, "
            f"is_granted={self.is_granted}, expires_at={self.expires_at})>"
        )
