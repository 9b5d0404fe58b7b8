"""RoleTemplate model: global starting points for custom roles."""

from datetime import UTC, datetime
from uuid import uuid4

from sqlalchemy import Boolean, Column, ForeignKey, String, Text
from sqlalchemy.dialects.postgresql import ARRAY, TIMESTAMP
from sqlalchemy.dialects.postgresql import UUID as PG_UUID

from authz.core.db.session import Base


class RoleTemplate(Base):
    """Reusable permission set used only when creating a custom role."""

    __tablename__ = "role_templates"

    id = Column(PG_UUID(as_uuid=True), primary_key=True, default=uuid4)
    template_name = Column(String(100), nullable=False, unique=True)
    display_name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    target_role = Column(String(20), nullable=True)
    base_permissions = Column(ARRAY(String(100)), nullable=False, default=list)
    required_modules = Column(ARRAY(String(100)), nullable=False, default=list)
    target_use_cases = Column(ARRAY(String(255)), nullable=False, default=list)
    is_system_template = Column(Boolean, default=False, nullable=False)
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

    def __repr__(self) -> str:
        return f"<RoleTemplate(id={self.id}, template_name={self.template_name})>"
