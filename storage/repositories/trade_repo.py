"""
Storage - Trade Repository.

============================================================
RESPONSIBILITY
============================================================
Stores imported trades and answers duplicate-key lookups.

- TradeRepository: SQLAlchemy access to the trades table
- SqlTradeStore: the import pipeline's persistence
  collaborator, translating repository exceptions into
  import errors

============================================================
TRANSACTIONS
============================================================
Each trade is committed on its own. A failed row is rolled
back without touching rows committed before it.

============================================================
"""

import logging
from datetime import datetime, timedelta
from typing import List, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from storage.models.trade import Trade
from storage.repositories.base import BaseRepository
from storage.repositories.exceptions import (
    DuplicateRecordError,
    RepositoryConnectionError,
    RepositoryException,
)
from trade_import.duplicates import truncate_to_second
from trade_import.errors import DuplicateTradeError, PersistenceError, StorageUnavailableError
from trade_import.types import CandidateTrade, Direction, ExistingTradeKey


logger = logging.getLogger(__name__)


class TradeRepository(BaseRepository[Trade]):
    """Repository for imported trades."""

    def __init__(self, session: Session) -> None:
        super().__init__(session, Trade, "TradeRepository")

    def create_trade(self, user_id: str, account_id: str, candidate: CandidateTrade) -> Trade:
        """
        Insert a trade built from a candidate and flush it.

        Raises:
            DuplicateRecordError: duplicate key already stored
            RepositoryException: any other database failure
        """
        result = candidate.result
        trade = Trade(
            user_id=user_id,
            account_id=account_id,
            symbol=candidate.symbol,
            direction=candidate.direction.value,
            order_type=candidate.order_type,
            quantity=candidate.quantity,
            entry_price=candidate.entry_price,
            exit_price=candidate.exit_price,
            entry_date=truncate_to_second(candidate.entry_date),
            exit_date=candidate.exit_date,
            pnl=candidate.pnl,
            commission=candidate.commission,
            net_pnl=candidate.net_pnl,
            result=result.value if result else None,
            mae=candidate.mae,
            mfe=candidate.mfe,
            source=candidate.source,
            source_strategy_name=candidate.source_strategy_name,
            source_account_name=candidate.source_account_name,
            exit_signal_name=candidate.exit_signal_name,
            external_trade_number=candidate.external_trade_number or None,
        )
        return self._add(trade)

    def find_by_entry_second(
        self,
        user_id: str,
        account_id: str,
        symbol: str,
        direction: str,
        entry_date: datetime,
    ) -> List[Trade]:
        """Trades of one user/account/symbol/direction entered within the given second."""
        start = truncate_to_second(entry_date)
        stmt = (
            select(Trade)
            .where(Trade.user_id == user_id)
            .where(Trade.account_id == account_id)
            .where(Trade.symbol == symbol)
            .where(Trade.direction == direction)
            .where(Trade.entry_date >= start)
            .where(Trade.entry_date < start + timedelta(seconds=1))
        )
        return self._execute_query(stmt)

    def ping(self) -> None:
        self._ping()

    def commit(self) -> None:
        self._commit()


class SqlTradeStore:
    """
    Persistence collaborator for ImportPipeline backed by a session.

    Usage:
        with get_db_session() as session:
            store = SqlTradeStore(session)
            result = ImportPipeline(store).execute(data, user_id, account_id)
    """

    def __init__(self, session: Session) -> None:
        self._repo = TradeRepository(session)

    def check_available(self) -> None:
        try:
            self._repo.ping()
        except RepositoryException as e:
            raise StorageUnavailableError(
                "Trade storage is unavailable",
                context={"operation": e.operation},
                cause=e,
            ) from e

    def find_trade_keys(
        self,
        user_id: str,
        account_id: str,
        symbol: str,
        direction: Direction,
        entry_date: datetime,
    ) -> Sequence[ExistingTradeKey]:
        # A failed lookup leaves every later row undecidable
        try:
            trades = self._repo.find_by_entry_second(
                user_id, account_id, symbol, direction.value, entry_date
            )
        except RepositoryException as e:
            raise StorageUnavailableError(
                "Trade storage is unavailable",
                context={"operation": e.operation},
                cause=e,
            ) from e

        return [
            ExistingTradeKey(
                trade_id=str(t.id),
                user_id=t.user_id,
                account_id=t.account_id,
                symbol=t.symbol,
                direction=Direction(t.direction),
                entry_price=t.entry_price,
                quantity=t.quantity,
                entry_date=t.entry_date,
            )
            for t in trades
        ]

    def save_trade(self, user_id: str, account_id: str, candidate: CandidateTrade) -> str:
        """
        Insert and commit one trade.

        Raises:
            DuplicateTradeError: duplicate key already stored
            StorageUnavailableError: database unreachable
            PersistenceError: any other storage failure
        """
        try:
            trade = self._repo.create_trade(user_id, account_id, candidate)
            self._repo.commit()
        except DuplicateRecordError as e:
            raise DuplicateTradeError(context={"constraint": e.constraint_name}, cause=e) from e
        except RepositoryConnectionError as e:
            raise StorageUnavailableError(
                "Trade storage is unavailable",
                context={"row_number": candidate.row_number},
                cause=e,
            ) from e
        except RepositoryException as e:
            raise PersistenceError(
                e.message,
                context={"row_number": candidate.row_number},
                cause=e,
            ) from e

        logger.debug(f"Stored trade {trade.id} from row {candidate.row_number}")
        return str(trade.id)
