"""
Repository Layer Exceptions.

============================================================
PURPOSE
============================================================
Repositories catch SQLAlchemy errors and re-raise them as one
of these, with the repository and operation attached. Callers
outside storage/ never see SQLAlchemy exceptions.

============================================================
HIERARCHY
============================================================
RepositoryException
├── DuplicateRecordError       unique constraint violated
├── IntegrityViolationError    any other constraint violated
├── RepositoryConnectionError  database unreachable
├── QueryError                 statement failed
└── TransactionError           commit / rollback failed

============================================================
"""

from typing import Optional


class RepositoryException(Exception):
    """Base exception for all repository operations."""

    def __init__(
        self,
        message: str,
        repository_name: str,
        operation: str,
        details: Optional[dict] = None
    ) -> None:
        self.message = message
        self.repository_name = repository_name
        self.operation = operation
        self.details = details or {}
        super().__init__(f"[{repository_name}] {operation}: {message}")


class DuplicateRecordError(RepositoryException):
    """A row with the same unique key already exists."""

    def __init__(self, repository_name: str, operation: str, constraint_name: str) -> None:
        super().__init__(
            message=f"Duplicate record violates {constraint_name}",
            repository_name=repository_name,
            operation=operation,
            details={"constraint": constraint_name}
        )
        self.constraint_name = constraint_name


class IntegrityViolationError(RepositoryException):
    """Not-null, check or foreign key constraint violated."""

    def __init__(self, repository_name: str, operation: str, original_error: str) -> None:
        super().__init__(
            message=f"Integrity constraint violated: {original_error}",
            repository_name=repository_name,
            operation=operation,
            details={"original_error": original_error}
        )


class RepositoryConnectionError(RepositoryException):
    """The database could not be reached."""

    def __init__(self, repository_name: str, operation: str, original_error: str) -> None:
        super().__init__(
            message=f"Database connection failed: {original_error}",
            repository_name=repository_name,
            operation=operation,
            details={"original_error": original_error}
        )


class QueryError(RepositoryException):
    def __init__(self, repository_name: str, operation: str, original_error: str) -> None:
        super().__init__(
            message=f"Query failed: {original_error}",
            repository_name=repository_name,
            operation=operation,
            details={"original_error": original_error}
        )


class TransactionError(RepositoryException):
    """Commit or rollback failed."""

    def __init__(self, repository_name: str, phase: str, original_error: str) -> None:
        super().__init__(
            message=f"Transaction {phase} failed: {original_error}",
            repository_name=repository_name,
            operation=phase,
            details={"phase": phase, "original_error": original_error}
        )
        self.phase = phase
