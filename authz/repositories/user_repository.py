"""Company and user repositories."""

from uuid import UUID

from sqlalchemy.orm import Session

from authz.models.company import Company
from authz.models.user import User
from authz.repositories.interfaces import ICompanyRepository, IUserRepository


class CompanyRepository(ICompanyRepository):
    """Repository for company data access."""

    def __init__(self, db: Session):
        """Initialize repository with database session."""
        self.db = db

    def get_by_id(self, company_id: UUID) -> Company | None:
        return self.db.query(Company).filter(Company.id == company_id).first()

    def add(self, company: Company) -> Company:
        self.db.add(company)
        self.db.flush()
        return company


class UserRepository(IUserRepository):
    """Repository for user data access."""

    def __init__(self, db: Session):
        """Initialize repository with database session."""
        self.db = db

    def get_by_id(self, user_id: UUID) -> User | None:
        return self.db.query(User).filter(User.id == user_id).first()

    def add(self, user: User) -> User:
        self.db.add(user)
        self.db.flush()
        return user
