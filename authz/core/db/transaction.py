"""Transaction boundary shared by services and repositories."""

from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from authz.core.exceptions import InternalError
from authz.core.logging import app_logger


class TransactionManager(ABC):
    """Unit of work for one request.

    ``atomic()`` blocks nest; only the outermost block commits, and an
    exception escaping any block rolls back all work since the outermost
    block began.
    """

    def __init__(self) -> None:
        self._depth = 0

    @contextmanager
    def atomic(self) -> Iterator[None]:
        outermost = self._depth == 0
        if outermost:
            self._begin()
        self._depth += 1
        try:
            yield
            if outermost:
                self._commit()
        except BaseException:
            if outermost:
                self._rollback()
            raise
        finally:
            self._depth -= 1

    @property
    def in_transaction(self) -> bool:
        return self._depth > 0

    def _begin(self) -> None:
        """Hook run when the outermost block opens."""

    @abstractmethod
    def _commit(self) -> None: ...

    @abstractmethod
    def _rollback(self) -> None: ...


class SqlAlchemyTransactionManager(TransactionManager):
    """TransactionManager backed by a SQLAlchemy session."""

    def __init__(self, db: Session) -> None:
        super().__init__()
        self.db = db

    def _commit(self) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            app_logger.error(f"Transaction commit failed: {e}")
            self.db.rollback()
            raise InternalError(
                code="PERSISTENCE_ERROR", message="Failed to persist changes"
            ) from e

    def _rollback(self) -> None:
        self.db.rollback()
