"""
Trade Import - Row Mapper.

============================================================
RESPONSIBILITY
============================================================
Maps one 23-column NT8 row onto a CandidateTrade.

- One rule per column (see FIELD RULES)
- Every field error of a row is collected before returning,
  so a single preview lists all problems of that row
- A row with the wrong column count yields one "row" error
  and no field mapping

============================================================
FIELD RULES
============================================================
Instrument    -> symbol       text before first space, required
Market pos.   -> direction    Long / Short, case-insensitive
Qty           -> quantity     decimal, required, > 0
Entry price   -> entryPrice   decimal, required
Exit price    -> exitPrice    decimal, empty = None

Quantities and prices with more than PRICE_SCALE decimal places
are rejected; storage would round them and break duplicate
matching.
Entry time    -> entryDate    timestamp, required
Exit time     -> exitDate     timestamp, empty = None
Profit        -> pnl          currency, empty = None
Commission    -> commission   currency, empty = 0
MAE / MFE     -> mae / mfe    decimal magnitude, empty = None
Strategy, Account, Exit name  trimmed passthrough
Trade number                  diagnostics only

============================================================
"""

import logging
from dataclasses import dataclass
from datetime import timezone, tzinfo
from decimal import Decimal
from typing import Callable, List, Optional, Tuple, TypeVar

from trade_import.commissions import estimate_commission
from trade_import.errors import EmptyValueError, ParseError
from trade_import.normalizers import parse_currency, parse_decimal, parse_timestamp
from trade_import.types import (
    COLUMN_COUNT,
    PRICE_SCALE,
    CandidateTrade,
    Direction,
    FieldError,
    RawRow,
)


logger = logging.getLogger(__name__)

T = TypeVar("T")

_DIRECTIONS = {
    "long": Direction.LONG,
    "short": Direction.SHORT,
}


@dataclass(frozen=True)
class MappingResult:
    """Either a candidate trade or the errors that prevented one."""
    row_number: int
    candidate: Optional[CandidateTrade] = None
    errors: Tuple[FieldError, ...] = ()

    @property
    def ok(self) -> bool:
        return self.candidate is not None and not self.errors


class RowMapper:
    """
    Maps raw NT8 rows to candidate trades.
    """

    def __init__(
        self,
        zone: tzinfo = timezone.utc,
        estimate_missing_commission: bool = False,
    ):
        """
        Initialize mapper.

        Args:
            zone: Zone the export's timestamps were recorded in
            estimate_missing_commission: Fill empty/zero commission from
                the broker schedule
        """
        self._zone = zone
        self._estimate_missing_commission = estimate_missing_commission

    # --------------------------------------------------------
    # FIELD HELPERS
    # --------------------------------------------------------

    def _required(
        self,
        parse: Callable[[str], T],
        field_name: str,
        token: str,
        errors: List[FieldError],
    ) -> Optional[T]:
        try:
            return parse(token)
        except EmptyValueError:
            errors.append(FieldError(field_name, f"{field_name} is required", token))
        except ParseError as e:
            errors.append(FieldError(field_name, e.reason, token))
        return None

    def _optional(
        self,
        parse: Callable[[str], T],
        field_name: str,
        token: str,
        errors: List[FieldError],
    ) -> Optional[T]:
        if not token.strip():
            return None
        return self._required(parse, field_name, token, errors)

    @staticmethod
    def _check_scale(
        value: Optional[Decimal],
        field_name: str,
        token: str,
        errors: List[FieldError],
    ) -> Optional[Decimal]:
        if value is None or value.normalize().as_tuple().exponent >= -PRICE_SCALE:
            return value
        errors.append(FieldError(field_name, f"more than {PRICE_SCALE} decimal places", token))
        return None

    def _parse_time(self, token: str):
        return parse_timestamp(token, self._zone)

    @staticmethod
    def _text(token: str) -> Optional[str]:
        return token.strip() or None

    # --------------------------------------------------------
    # COLUMN RULES
    # --------------------------------------------------------

    @staticmethod
    def extract_symbol(instrument: str) -> str:
        """'ES SEP25' -> 'ES'"""
        parts = instrument.split()
        return parts[0].upper() if parts else ""

    @staticmethod
    def parse_direction(token: str) -> Optional[Direction]:
        return _DIRECTIONS.get(token.strip().lower())

    # --------------------------------------------------------
    # MAPPING
    # --------------------------------------------------------

    def map(self, row: RawRow) -> MappingResult:
        """
        Map a raw row.

        Args:
            row: Raw row from the reader

        Returns:
            MappingResult holding a candidate or all field errors
        """
        if row.field_count != COLUMN_COUNT:
            error = FieldError(
                "row",
                f"expected {COLUMN_COUNT} columns, found {row.field_count}",
                row.line,
            )
            return MappingResult(row_number=row.row_number, errors=(error,))

        errors: List[FieldError] = []

        instrument = row.get("Instrument")
        symbol = self.extract_symbol(instrument)
        if not symbol:
            errors.append(FieldError("symbol", "missing symbol", instrument))

        position = row.get("Market pos.")
        direction = self.parse_direction(position)
        if direction is None:
            errors.append(FieldError("direction", "must be Long or Short", position))

        quantity = self._required(parse_decimal, "quantity", row.get("Qty"), errors)
        quantity = self._check_scale(quantity, "quantity", row.get("Qty"), errors)
        if quantity is not None and quantity <= 0:
            errors.append(FieldError("quantity", "must be greater than 0", row.get("Qty")))
            quantity = None

        entry_price = self._required(parse_decimal, "entryPrice", row.get("Entry price"), errors)
        exit_price = self._optional(parse_decimal, "exitPrice", row.get("Exit price"), errors)
        entry_price = self._check_scale(entry_price, "entryPrice", row.get("Entry price"), errors)
        exit_price = self._check_scale(exit_price, "exitPrice", row.get("Exit price"), errors)
        entry_date = self._required(self._parse_time, "entryDate", row.get("Entry time"), errors)
        exit_date = self._optional(self._parse_time, "exitDate", row.get("Exit time"), errors)
        pnl = self._optional(parse_currency, "pnl", row.get("Profit"), errors)

        commission_token = row.get("Commission")
        commission = self._optional(parse_currency, "commission", commission_token, errors)
        if commission is None and not commission_token.strip():
            commission = Decimal("0")
        if self._estimate_missing_commission and commission == 0 and symbol and quantity is not None:
            commission = estimate_commission(symbol, quantity)
            logger.debug(f"Row {row.row_number}: estimated commission {commission} for {symbol}")

        mae = self._optional(parse_decimal, "mae", row.get("MAE"), errors)
        mfe = self._optional(parse_decimal, "mfe", row.get("MFE"), errors)

        if errors:
            logger.debug(f"Row {row.row_number}: {len(errors)} field error(s)")
            return MappingResult(row_number=row.row_number, errors=tuple(errors))

        candidate = CandidateTrade(
            row_number=row.row_number,
            symbol=symbol,
            direction=direction,
            quantity=quantity,
            entry_price=entry_price,
            entry_date=entry_date,
            exit_price=exit_price,
            exit_date=exit_date,
            pnl=pnl,
            commission=commission,
            mae=abs(mae) if mae is not None else None,
            mfe=abs(mfe) if mfe is not None else None,
            source_strategy_name=self._text(row.get("Strategy")),
            source_account_name=self._text(row.get("Account")),
            exit_signal_name=self._text(row.get("Exit name")),
            external_trade_number=row.get("Trade number").strip(),
        )
        return MappingResult(row_number=row.row_number, candidate=candidate)
