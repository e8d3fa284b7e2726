"""
Trade Import - Duplicate Detection.

============================================================
DUPLICATE KEY
============================================================
A candidate is the same trade as a persisted one iff all of

    user_id, account_id, symbol, direction,
    entry_price (exact), quantity (exact),
    entry_date truncated to the second

match. Exit price, exit date and profit are not part of the key:
an open trade that is later closed and exported again still
matches its earlier import.

============================================================
LOOKUP CONTRACT
============================================================
The lookup narrows candidates by (user, account, symbol,
direction, entry second) through an index; the exact comparison
happens here. The detector never writes.

============================================================
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional, Protocol, Sequence, Tuple

from trade_import.types import CandidateTrade, Direction, ExistingTradeKey


logger = logging.getLogger(__name__)

DuplicateKey = Tuple[str, str, str, Direction, Decimal, Decimal, datetime]


class TradeLookup(Protocol):
    """Read side of the persistence collaborator."""

    def find_trade_keys(
        self,
        user_id: str,
        account_id: str,
        symbol: str,
        direction: Direction,
        entry_date: datetime,
    ) -> Sequence[ExistingTradeKey]:
        """Trades of the user/account/symbol/direction entered in the same second."""
        ...


def truncate_to_second(value: datetime) -> datetime:
    """Drop sub-second precision; naive values are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).replace(microsecond=0)


def duplicate_key(candidate: CandidateTrade, user_id: str, account_id: str) -> DuplicateKey:
    return (
        user_id,
        account_id,
        candidate.symbol,
        candidate.direction,
        candidate.entry_price,
        candidate.quantity,
        truncate_to_second(candidate.entry_date),
    )


def existing_key(existing: ExistingTradeKey) -> DuplicateKey:
    return (
        existing.user_id,
        existing.account_id,
        existing.symbol,
        existing.direction,
        existing.entry_price,
        existing.quantity,
        truncate_to_second(existing.entry_date),
    )


class DuplicateDetector:
    """Finds a persisted trade matching a candidate's duplicate key."""

    def find_duplicate(
        self,
        candidate: CandidateTrade,
        user_id: str,
        account_id: str,
        lookup: TradeLookup,
    ) -> Optional[str]:
        """
        Look for an existing trade with the same duplicate key.

        Args:
            candidate: Mapped and validated trade
            user_id: Owner of the import
            account_id: Target trading account
            lookup: Persistence read collaborator

        Returns:
            Id of the matching trade, or None
        """
        key = duplicate_key(candidate, user_id, account_id)
        existing = lookup.find_trade_keys(
            user_id,
            account_id,
            candidate.symbol,
            candidate.direction,
            key[-1],
        )

        for trade in existing:
            # Decimal equality is numeric: 6387.5 == 6387.50
            if existing_key(trade) == key:
                logger.debug(f"Row {candidate.row_number} matches existing trade {trade.trade_id}")
                return trade.trade_id
        return None
