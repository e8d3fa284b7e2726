"""
Test Factories.

============================================================
PURPOSE
============================================================
Builders for NT8 export rows and files, plus an in-memory
trade store implementing the pipeline's persistence contract.

============================================================
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, List, Optional, Set, Tuple

from trade_import.duplicates import truncate_to_second
from trade_import.errors import DuplicateTradeError, PersistenceError, StorageUnavailableError
from trade_import.types import (
    EXPECTED_COLUMNS,
    CandidateTrade,
    Direction,
    ExistingTradeKey,
)


USER_ID = "user-1"
ACCOUNT_ID = "account-1"

HEADER = ";".join(EXPECTED_COLUMNS)

DEFAULT_ROW: Dict[str, str] = {
    "Trade number": "1",
    "Instrument": "ES SEP25",
    "Account": "Sim101",
    "Strategy": "",
    "Market pos.": "Long",
    "Qty": "1",
    "Entry price": "6387,50",
    "Exit price": "6391,75",
    "Entry time": "2/9/2025 12:18:21",
    "Exit time": "2/9/2025 12:25:03",
    "Entry name": "Entry",
    "Exit name": "Exit",
    "Profit": "$ 212,50",
    "Cum. net profit": "$ 212,50",
    "Commission": "$ 4,20",
    "Fee1": "$ 0,00",
    "Fee2": "$ 0,00",
    "Fee3": "$ 0,00",
    "Fee4": "$ 0,00",
    "MAE": "$ 62,50",
    "MFE": "$ 250,00",
    "ETD": "$ 37,50",
    "Bars": "7",
}


def nt8_row(overrides: Optional[Dict[str, str]] = None) -> str:
    """One data line; overrides are keyed by column header."""
    values = dict(DEFAULT_ROW)
    values.update(overrides or {})
    return ";".join(values[column] for column in EXPECTED_COLUMNS)


def nt8_export(*rows: str, header: str = HEADER, newline: str = "\n") -> bytes:
    return newline.join([header, *rows]).encode("utf-8")


def five_trades() -> List[str]:
    """Five distinct trades, entered one minute apart."""
    return [
        nt8_row({
            "Trade number": str(i + 1),
            "Entry time": f"2/9/2025 12:1{i}:21",
            "Exit time": f"2/9/2025 12:2{i}:03",
        })
        for i in range(5)
    ]


def make_candidate(**overrides) -> CandidateTrade:
    values = dict(
        row_number=2,
        symbol="ES",
        direction=Direction.LONG,
        quantity=Decimal("1"),
        entry_price=Decimal("6387.50"),
        entry_date=datetime(2025, 9, 2, 12, 18, 21, tzinfo=timezone.utc),
        exit_price=Decimal("6391.75"),
        exit_date=datetime(2025, 9, 2, 12, 25, 3, tzinfo=timezone.utc),
        pnl=Decimal("212.50"),
        commission=Decimal("4.20"),
    )
    values.update(overrides)
    return CandidateTrade(**values)


class FakeTradeStore:
    """
    In-memory TradeStore.

    Failure injection:
    - available: False makes every call raise StorageUnavailableError
    - fail_rows: row numbers whose save raises PersistenceError
    - race_rows: row numbers stored by a "concurrent import" right
      before our insert, which then hits the unique key
    - disconnect_after: storage goes away after N successful saves
    """

    def __init__(self):
        self.trades: Dict[str, Tuple[str, str, CandidateTrade]] = {}
        self.available = True
        self.fail_rows: Set[int] = set()
        self.race_rows: Set[int] = set()
        self.disconnect_after: Optional[int] = None
        self.saves = 0
        self.lookups = 0

    def _check(self):
        if not self.available:
            raise StorageUnavailableError("Trade storage is unavailable")

    def _insert(self, user_id: str, account_id: str, candidate: CandidateTrade) -> str:
        trade_id = f"trade-{len(self.trades) + 1}"
        self.trades[trade_id] = (user_id, account_id, candidate)
        return trade_id

    def add_existing(self, user_id: str, account_id: str, candidate: CandidateTrade) -> str:
        return self._insert(user_id, account_id, candidate)

    def check_available(self) -> None:
        self._check()

    def find_trade_keys(self, user_id, account_id, symbol, direction, entry_date):
        self._check()
        self.lookups += 1
        second = truncate_to_second(entry_date)
        return [
            ExistingTradeKey(
                trade_id=trade_id,
                user_id=owner,
                account_id=account,
                symbol=c.symbol,
                direction=c.direction,
                entry_price=c.entry_price,
                quantity=c.quantity,
                entry_date=c.entry_date,
            )
            for trade_id, (owner, account, c) in self.trades.items()
            if owner == user_id
            and account == account_id
            and c.symbol == symbol
            and c.direction == direction
            and truncate_to_second(c.entry_date) == second
        ]

    def save_trade(self, user_id: str, account_id: str, candidate: CandidateTrade) -> str:
        self._check()
        if self.disconnect_after is not None and self.saves >= self.disconnect_after:
            self.available = False
            raise StorageUnavailableError("Trade storage is unavailable")
        if candidate.row_number in self.fail_rows:
            raise PersistenceError("disk full")
        if candidate.row_number in self.race_rows:
            self._insert(user_id, account_id, candidate)
            raise DuplicateTradeError()

        self.saves += 1
        return self._insert(user_id, account_id, candidate)
