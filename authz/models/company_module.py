"""CompanyModule model: which modules a company is licensed to use."""

from datetime import UTC, datetime
from uuid import uuid4

from sqlalchemy import Boolean, Column, ForeignKey, Integer, Numeric, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP
from sqlalchemy.dialects.postgresql import UUID as PG_UUID

from authz.core.db.session import Base


class CompanyModule(Base):
    """Company-level provisioning record, the ceiling for user module grants."""

    __tablename__ = "company_modules"

    id = Column(PG_UUID(as_uuid=True), primary_key=True, default=uuid4)
    company_id = Column(
        PG_UUID(as_uuid=True),
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    module_id = Column(
        PG_UUID(as_uuid=True),
        ForeignKey("modules.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    is_enabled = Column(Boolean, default=False, nullable=False)
    enabled_by = Column(
        PG_UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    enabled_at = Column(TIMESTAMP(timezone=True), nullable=True)
    monthly_price = Column(Numeric(10, 2), nullable=True)
    per_user_price = Column(Numeric(10, 2), nullable=True)
    users_licensed = Column(Integer, default=0, nullable=False)
    configuration = Column(JSONB, nullable=True)
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
        UniqueConstraint("company_id", "module_id", name="uq_company_modules_company_module"),
    )

    def __repr__(self) -> str:
        return (
            f"<CompanyModule(company_id={self.company_id}, module_id={self.module_id}, "
            f"is_enabled={self.is_enabled})>"
        )
