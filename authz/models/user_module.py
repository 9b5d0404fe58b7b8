"""UserModule model: per-user access to a company-enabled module."""

from datetime import UTC, datetime
from uuid import uuid4

from sqlalchemy import Boolean, Column, ForeignKey, Index, UniqueConstraint
from sqlalchemy.dialects.postgresql import TIMESTAMP
from sqlalchemy.dialects.postgresql import UUID as PG_UUID

from authz.core.db.session import Base


class UserModule(Base):
    """User-level module grant.

    ``is_enabled`` may only be true while the (company_id, module_id)
    company module is enabled.
    """

    __tablename__ = "user_modules"

    id = Column(PG_UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(
        PG_UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    module_id = Column(
        PG_UUID(as_uuid=True),
        ForeignKey("modules.id", ondelete="CASCADE"),
        nullable=False,
    )
    company_id = Column(
        PG_UUID(as_uuid=True),
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
    )
    is_enabled = Column(Boolean, default=False, nullable=False)
    granted_by = Column(
        PG_UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    granted_at = Column(TIMESTAMP(timezone=True), nullable=True)
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
            "user_id", "module_id", "company_id", name="uq_user_modules_user_module_company"
        ),
        Index("idx_user_modules_company_module", "company_id", "module_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<UserModule(user_id={self.user_id}, module_id={self.module_id}, "
            f"company_id={self.company_id}, is_enabled={self.is_enabled})>"
        )
