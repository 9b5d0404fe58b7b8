"""CustomRole and CustomRolePermission models for tenant-defined roles."""

from datetime import UTC, datetime
from uuid import uuid4

from sqlalchemy import Boolean, Column, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import TIMESTAMP
from sqlalchemy.dialects.postgresql import UUID as PG_UUID

from authz.core.db.session import Base


class CustomRole(Base):
    """Company-scoped named role that fully replaces the system-role baseline."""

    __tablename__ = "custom_roles"

    id = Column(PG_UUID(as_uuid=True), primary_key=True, default=uuid4)
    company_id = Column(
        PG_UUID(as_uuid=True),
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    based_on_role = Column(String(20), nullable=True)  # system role used as a starting point
    is_active = Column(Boolean, default=True, nullable=False)
    created_by = Column(
        PG_UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
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
        UniqueConstraint("company_id", "name", name="uq_custom_roles_company_name"),
    )

    def __repr__(self) -> str:
        return f"<CustomRole(id={self.id}, company_id={self.company_id}, name={self.name})>"


class CustomRolePermission(Base):
    """One capability decision owned by a custom role."""

    __tablename__ = "custom_role_permissions"

    id = Column(PG_UUID(as_uuid=True), primary_key=True, default=uuid4)
    role_id = Column(
        PG_UUID(as_uuid=True),
        ForeignKey("custom_roles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    permission_key = Column(String(100), nullable=False)
    is_granted = Column(Boolean, default=True, nullable=False)

    __table_args__ = (
        UniqueConstraint("role_id", "permission_key", name="uq_custom_role_permissions_role_key"),
    )

    def __repr__(self) -> str:
        return (
            f"<CustomRolePermission(role_id={self.role_id}, "
            f"permission_key={self.permission_key}, is_granted={self.is_granted})>"
        )
