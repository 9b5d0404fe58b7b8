"""Module model: catalog of licensable feature units."""

from datetime import UTC, datetime
from uuid import uuid4

from sqlalchemy import Boolean, Column, ForeignKey, Numeric, String, Text
from sqlalchemy.dialects.postgresql import TIMESTAMP
from sqlalchemy.dialects.postgresql import UUID as PG_UUID

from authz.core.db.session import Base


class Module(Base):
    """Licensable module.

    ``key``, ``name`` and ``module_type`` are fixed once a company module
    references the row; classification and default pricing may change and
    every change is audited.
    """

    __tablename__ = "modules"

    id = Column(PG_UUID(as_uuid=True), primary_key=True, default=uuid4)
    key = Column(String(100), nullable=False, unique=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    module_type = Column(String(20), nullable=False, default="add-on")  # core | super | add-on
    category = Column(String(50), nullable=True)
    module_classification = Column(String(20), nullable=False, default="addon")  # core | addon
    is_core_required = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    default_monthly_price = Column(Numeric(10, 2), nullable=True)
    default_per_user_price = Column(Numeric(10, 2), nullable=True)
    classification_changed_by = Column(
        PG_UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    classification_changed_at = Column(TIMESTAMP(timezone=True), nullable=True)
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

    def __repr__(self) -> str:
        return f"<Module(id={self.id}, key={self.key}, module_type={self.module_type})>"
