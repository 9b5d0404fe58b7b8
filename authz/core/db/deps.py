from typing import Generator

from sqlalchemy.orm import Session

from authz.core.db.session import SessionLocal


def get_db() -> Generator[Session, None, None]:
    """
    Dependency function that provides a database session.

    Uncommitted work is rolled back when the request ends.

    Yields:
        Session: SQLAlchemy database session
    """
    db: Session = SessionLocal()
    try:
        yield db
    finally:
        db.rollback()
        db.close()
