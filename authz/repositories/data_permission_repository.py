"""Repository for per-user data permission overrides."""

from uuid import UUID

from sqlalchemy.orm import Session

from authz.models.user_data_permission import UserDataPermission
from authz.repositories.interfaces import IDataPermissionRepository


class DataPermissionRepository(IDataPermissionRepository):
    """Repository for user data permission overrides."""

    def __init__(self, db: Session):
        """Initialize repository with database session."""
        self.db = db

    def get(
        self, user_id: UUID, company_id: UUID, permission_key: str
    ) -> UserDataPermission | None:
        return (
            self.db.query(UserDataPermission)
            .filter(
                UserDataPermission.user_id == user_id,
                UserDataPermission.company_id == company_id,
                UserDataPermission.permission_key == permission_key,
            )
            .with_for_update()
            .first()
        )

    def list_for_user(self, user_id: UUID, company_id: UUID) -> list[UserDataPermission]:
        return (
            self.db.query(UserDataPermission)
            .filter(
                UserDataPermission.user_id == user_id,
                UserDataPermission.company_id == company_id,
            )
            .order_by(UserDataPermission.permission_key)
            .all()
        )

    def add(self, permission: UserDataPermission) -> UserDataPermission:
        self.db.add(permission)
        self.db.flush()
        return permission
