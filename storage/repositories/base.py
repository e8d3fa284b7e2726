"""
Base Repository Class.

============================================================
PURPOSE
============================================================
Common plumbing for repositories:
- Session injection
- SQLAlchemy error translation into repository exceptions
- Add / query / commit / rollback helpers

============================================================
USAGE
============================================================
class TradeRepository(BaseRepository[Trade]):
    def __init__(self, session: Session):
        super().__init__(session, Trade, "TradeRepository")

============================================================
"""

import logging
from typing import Any, Generic, List, NoReturn, Type, TypeVar

from sqlalchemy import text
from sqlalchemy.exc import (
    DBAPIError,
    IntegrityError,
    InterfaceError,
    OperationalError,
    SQLAlchemyError,
)
from sqlalchemy.orm import Session

from storage.models.base import Base
from storage.repositories.exceptions import (
    DuplicateRecordError,
    IntegrityViolationError,
    QueryError,
    RepositoryConnectionError,
    TransactionError,
)


T = TypeVar("T", bound=Base)


def constraint_name(error: IntegrityError) -> str:
    """Best-effort name of the violated constraint."""
    diag = getattr(error.orig, "diag", None)
    name = getattr(diag, "constraint_name", None)
    return name or "unknown"


def is_unique_violation(error: IntegrityError) -> bool:
    message = str(error.orig).lower()
    return "unique" in message or "duplicate" in message


def is_connection_error(error: SQLAlchemyError) -> bool:
    if isinstance(error, (OperationalError, InterfaceError)):
        return True
    return isinstance(error, DBAPIError) and error.connection_invalidated


class BaseRepository(Generic[T]):
    """
    Base class for all repositories.

    The session is owned by the caller; repositories flush,
    commit and roll back only through the helpers below.
    """

    def __init__(self, session: Session, model_class: Type[T], repository_name: str) -> None:
        self._session = session
        self._model_class = model_class
        self._repository_name = repository_name
        self._logger = logging.getLogger(f"repository.{repository_name}")

    @property
    def session(self) -> Session:
        return self._session

    @property
    def model_class(self) -> Type[T]:
        return self._model_class

    # =========================================================
    # PROTECTED HELPER METHODS
    # =========================================================

    def _handle_db_error(self, error: SQLAlchemyError, operation: str) -> NoReturn:
        """
        Translate a SQLAlchemy error into a repository exception.

        Raises:
            RepositoryException: Always
        """
        if is_connection_error(error):
            self._logger.error(f"Database unreachable in {operation}: {error}")
            raise RepositoryConnectionError(
                repository_name=self._repository_name,
                operation=operation,
                original_error=str(error.orig if isinstance(error, DBAPIError) else error)
            ) from error

        if isinstance(error, IntegrityError):
            if is_unique_violation(error):
                self._logger.info(f"Unique constraint hit in {operation}: {error.orig}")
                raise DuplicateRecordError(
                    repository_name=self._repository_name,
                    operation=operation,
                    constraint_name=constraint_name(error)
                ) from error
            self._logger.error(f"Integrity error in {operation}: {error.orig}")
            raise IntegrityViolationError(
                repository_name=self._repository_name,
                operation=operation,
                original_error=str(error.orig)
            ) from error

        self._logger.error(f"Database error in {operation}: {error}", exc_info=True)
        raise QueryError(
            repository_name=self._repository_name,
            operation=operation,
            original_error=str(error)
        ) from error

    def _add(self, entity: T) -> T:
        """Add an entity and flush so constraint errors surface here."""
        try:
            self._session.add(entity)
            self._session.flush()
        except SQLAlchemyError as e:
            self._rollback()
            self._handle_db_error(e, "add")
        self._logger.debug(f"Added entity: {entity}")
        return entity

    def _execute_query(self, stmt: Any) -> List[T]:
        try:
            return list(self._session.execute(stmt).scalars().all())
        except SQLAlchemyError as e:
            self._rollback()
            self._handle_db_error(e, "query")

    def _ping(self) -> None:
        """
        Run SELECT 1 on the session's connection.

        Raises:
            RepositoryConnectionError: database unreachable
        """
        try:
            self._session.execute(text("SELECT 1")).scalar()
        except SQLAlchemyError as e:
            self._rollback()
            self._handle_db_error(e, "ping")

    def _commit(self) -> None:
        try:
            self._session.commit()
        except SQLAlchemyError as e:
            self._rollback()
            if is_connection_error(e) or isinstance(e, IntegrityError):
                self._handle_db_error(e, "commit")
            raise TransactionError(
                repository_name=self._repository_name,
                phase="commit",
                original_error=str(e)
            ) from e

    def _rollback(self) -> None:
        """Roll back; a failing rollback is logged, never raised."""
        try:
            self._session.rollback()
        except SQLAlchemyError as e:
            self._logger.error(f"Rollback failed: {e}")
