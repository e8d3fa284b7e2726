"""
Trade Import - Type Definitions.

============================================================
PURPOSE
============================================================
Shared types for the NT8 import pipeline.

- Source file schema constants
- Raw and normalized row types
- Row outcome variants (valid / duplicate / invalid)
- Aggregate import result

============================================================
DESIGN PRINCIPLES
============================================================
- Immutable row-level data structures
- Clear typing for all fields
- No parsing logic
- Serializable for logging

============================================================
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


# =============================================================
# SOURCE SCHEMA
# =============================================================

EXPECTED_COLUMNS: Tuple[str, ...] = (
    "Trade number",
    "Instrument",
    "Account",
    "Strategy",
    "Market pos.",
    "Qty",
    "Entry price",
    "Exit price",
    "Entry time",
    "Exit time",
    "Entry name",
    "Exit name",
    "Profit",
    "Cum. net profit",
    "Commission",
    "Fee1",
    "Fee2",
    "Fee3",
    "Fee4",
    "MAE",
    "MFE",
    "ETD",
    "Bars",
)

COLUMN_COUNT = len(EXPECTED_COLUMNS)

COLUMN_INDEX: Dict[str, int] = {name: i for i, name in enumerate(EXPECTED_COLUMNS)}

DELIMITER = ";"

# Decimal places stored for prices and quantities
PRICE_SCALE = 8

# Every trade produced by this pipeline carries these tags
IMPORT_SOURCE = "NT8_IMPORT"
ORDER_TYPE = "MARKET"


# =============================================================
# ENUMS
# =============================================================

class Direction(str, Enum):
    """Position side of a trade."""
    LONG = "LONG"
    SHORT = "SHORT"


class TradeResult(str, Enum):
    """Outcome of a closed trade after commission."""
    WIN = "WIN"
    LOSS = "LOSS"
    BREAKEVEN = "BREAKEVEN"


class ImportMode(str, Enum):
    """Pipeline run mode."""
    PREVIEW = "preview"
    EXECUTE = "execute"


# =============================================================
# RAW INPUT
# =============================================================

@dataclass(frozen=True)
class RawRow:
    """One delimited line of the source file."""
    row_number: int
    fields: Tuple[str, ...]
    line: str = ""

    @property
    def field_count(self) -> int:
        return len(self.fields)

    def get(self, column: str) -> str:
        """Return the raw token for a named column, or "" if absent."""
        index = COLUMN_INDEX[column]
        if index >= len(self.fields):
            return ""
        return self.fields[index]


@dataclass(frozen=True)
class RecordSet:
    """Header plus data rows read from one file."""
    header: Tuple[str, ...]
    rows: Tuple[RawRow, ...]

    @property
    def header_matches(self) -> bool:
        """Whether the header names the expected columns in order."""
        normalized = tuple(" ".join(h.split()).lower() for h in self.header)
        return normalized == tuple(c.lower() for c in EXPECTED_COLUMNS)


# =============================================================
# NORMALIZED TRADE
# =============================================================

@dataclass(frozen=True)
class CandidateTrade:
    """Typed, normalized projection of one source row."""
    row_number: int
    symbol: str
    direction: Direction
    quantity: Decimal
    entry_price: Decimal
    entry_date: datetime
    exit_price: Optional[Decimal] = None
    exit_date: Optional[datetime] = None
    pnl: Optional[Decimal] = None
    commission: Decimal = Decimal("0")
    mae: Optional[Decimal] = None
    mfe: Optional[Decimal] = None
    source_strategy_name: Optional[str] = None
    source_account_name: Optional[str] = None
    exit_signal_name: Optional[str] = None
    external_trade_number: str = ""
    order_type: str = ORDER_TYPE
    source: str = IMPORT_SOURCE

    @property
    def net_pnl(self) -> Optional[Decimal]:
        """Profit after commission, None while the trade has no profit."""
        if self.pnl is None:
            return None
        return self.pnl - self.commission

    @property
    def result(self) -> Optional[TradeResult]:
        net = self.net_pnl
        if net is None:
            return None
        if net > 0:
            return TradeResult.WIN
        if net < 0:
            return TradeResult.LOSS
        return TradeResult.BREAKEVEN

    def to_dict(self) -> Dict[str, Any]:
        """Trade fields exposed to callers of the import API."""
        return {
            "symbol": self.symbol,
            "direction": self.direction.value,
            "quantity": self.quantity,
            "entryPrice": self.entry_price,
            "exitPrice": self.exit_price,
            "entryDate": self.entry_date,
            "exitDate": self.exit_date,
            "pnl": self.pnl,
            "commission": self.commission,
            "mae": self.mae,
            "mfe": self.mfe,
        }


@dataclass(frozen=True)
class FieldError:
    """A single problem found in one field of one row."""
    field_name: str
    message: str
    raw_value: str = ""

    def format(self, row_number: int) -> str:
        text = f"Row {row_number}: {self.field_name} - {self.message}"
        if self.raw_value:
            text += f" (value: '{self.raw_value}')"
        return text


@dataclass(frozen=True)
class ExistingTradeKey:
    """Duplicate-key projection of a persisted trade."""
    trade_id: str
    user_id: str
    account_id: str
    symbol: str
    direction: Direction
    entry_price: Decimal
    quantity: Decimal
    entry_date: datetime


# =============================================================
# ROW OUTCOMES
# =============================================================

@dataclass(frozen=True)
class RowOutcome:
    """Base of the valid / duplicate / invalid row classification."""

    is_valid = False
    is_duplicate = False

    @property
    def row_number(self) -> int:
        raise NotImplementedError

    @property
    def trade(self) -> Optional[CandidateTrade]:
        return None

    @property
    def errors(self) -> List[FieldError]:
        return []

    def error_messages(self) -> List[str]:
        return [e.format(self.row_number) for e in self.errors]


@dataclass(frozen=True)
class ValidRow(RowOutcome):
    """Row mapped and validated; persisted when trade_id is set."""
    candidate: CandidateTrade
    trade_id: Optional[str] = None

    is_valid = True

    @property
    def row_number(self) -> int:
        return self.candidate.row_number

    @property
    def trade(self) -> Optional[CandidateTrade]:
        return self.candidate


@dataclass(frozen=True)
class DuplicateRow(RowOutcome):
    """
    Row matching a trade that already exists.

    matched_trade_id points at a persisted trade; matched_row_number
    at an earlier row of the same file (preview only).
    """
    candidate: CandidateTrade
    matched_trade_id: Optional[str] = None
    matched_row_number: Optional[int] = None

    is_valid = True
    is_duplicate = True

    @property
    def row_number(self) -> int:
        return self.candidate.row_number

    @property
    def trade(self) -> Optional[CandidateTrade]:
        return self.candidate


@dataclass(frozen=True)
class InvalidRow(RowOutcome):
    """Row with one or more field errors."""
    number: int
    field_errors: Tuple[FieldError, ...]
    candidate: Optional[CandidateTrade] = None

    @property
    def row_number(self) -> int:
        return self.number

    @property
    def trade(self) -> Optional[CandidateTrade]:
        return self.candidate

    @property
    def errors(self) -> List[FieldError]:
        return list(self.field_errors)


# =============================================================
# IMPORT RESULT
# =============================================================

@dataclass
class ImportResult:
    """Aggregate result of one preview or execute call."""
    mode: ImportMode = ImportMode.PREVIEW
    outcomes: List[RowOutcome] = field(default_factory=list)
    imported_trade_ids: List[str] = field(default_factory=list)

    # Top-level failure (storage unreachable)
    failed: bool = False
    failure_reason: Optional[str] = None

    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def total_rows(self) -> int:
        return len(self.outcomes)

    @property
    def valid_count(self) -> int:
        return sum(1 for o in self.outcomes if isinstance(o, ValidRow))

    @property
    def duplicate_count(self) -> int:
        return sum(1 for o in self.outcomes if isinstance(o, DuplicateRow))

    @property
    def error_count(self) -> int:
        return sum(1 for o in self.outcomes if isinstance(o, InvalidRow))

    @property
    def imported_count(self) -> int:
        return len(self.imported_trade_ids)

    def add_outcome(self, outcome: RowOutcome) -> None:
        self.outcomes.append(outcome)
        if isinstance(outcome, ValidRow) and outcome.trade_id is not None:
            self.imported_trade_ids.append(outcome.trade_id)

    def mark_failed(self, reason: str) -> None:
        self.failed = True
        self.failure_reason = reason

    def summary(self) -> List[str]:
        """Human-readable summary lines."""
        lines = []
        if self.failed:
            lines.append(f"Import failed: {self.failure_reason}")

        if self.mode == ImportMode.EXECUTE:
            imported = self.imported_count
            headline = f"Successfully imported {imported} trade{'' if imported == 1 else 's'}"
        else:
            valid = self.valid_count
            headline = f"Found {valid} valid trade{'' if valid == 1 else 's'}"
        if self.duplicate_count:
            dupes = self.duplicate_count
            headline += f", {dupes} duplicate{'' if dupes == 1 else 's'} skipped"
        lines.append(headline)

        if self.error_count:
            errors = self.error_count
            lines.append(f"{errors} row{'' if errors == 1 else 's'} with errors")
            for outcome in self.outcomes:
                lines.extend(outcome.error_messages())
        return lines

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging."""
        return {
            "mode": self.mode.value,
            "total": self.total_rows,
            "valid": self.valid_count,
            "duplicates": self.duplicate_count,
            "errors": self.error_count,
            "imported": self.imported_count,
            "failed": self.failed,
            "failure_reason": self.failure_reason,
        }
