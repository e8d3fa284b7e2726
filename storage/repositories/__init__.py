"""
Repository Layer Package.

All database access goes through repository classes. Sessions
are injected, never created inside a repository, and every
SQLAlchemy error is re-raised as a repository exception.

Repositories:
- TradeRepository: imported trades

Adapters:
- SqlTradeStore: persistence collaborator of the import pipeline
"""

from storage.repositories.base import BaseRepository
from storage.repositories.exceptions import (
    DuplicateRecordError,
    IntegrityViolationError,
    QueryError,
    RepositoryConnectionError,
    RepositoryException,
    TransactionError,
)
from storage.repositories.trade_repo import SqlTradeStore, TradeRepository

__all__ = [
    "BaseRepository",
    "TradeRepository",
    "SqlTradeStore",
    "RepositoryException",
    "DuplicateRecordError",
    "IntegrityViolationError",
    "RepositoryConnectionError",
    "QueryError",
    "TransactionError",
]
