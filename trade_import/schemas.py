"""
Pydantic Schemas for the NT8 Import API.

Field names are snake_case in Python and camelCase on the wire.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from trade_import.types import ImportResult, RowOutcome


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================
# ROW SCHEMAS
# =============================================================

class TradeResponse(CamelModel):
    symbol: str
    direction: str
    quantity: float
    entry_price: float
    exit_price: Optional[float] = None
    entry_date: datetime
    exit_date: Optional[datetime] = None
    pnl: Optional[float] = None
    commission: float = 0.0
    mae: Optional[float] = None
    mfe: Optional[float] = None


class RowResponse(CamelModel):
    row_number: int
    trade: Optional[TradeResponse] = None
    is_valid: bool
    is_duplicate: bool
    errors: List[str] = []

    @classmethod
    def from_outcome(cls, outcome: RowOutcome) -> "RowResponse":
        trade = outcome.trade
        return cls(
            row_number=outcome.row_number,
            trade=TradeResponse.model_validate(trade.to_dict()) if trade else None,
            is_valid=outcome.is_valid,
            is_duplicate=outcome.is_duplicate,
            errors=outcome.error_messages(),
        )


# =============================================================
# RESULT SCHEMAS
# =============================================================

class PreviewData(CamelModel):
    total: int
    valid: int
    duplicates: int
    errors: int
    trades: List[RowResponse] = []


class ExecuteData(PreviewData):
    imported: int
    summary: List[str] = []


class PreviewResponse(CamelModel):
    success: bool
    message: str
    data: PreviewData

    @classmethod
    def from_result(cls, result: ImportResult) -> "PreviewResponse":
        return cls(
            success=True,
            message=(
                f"Found {result.valid_count} valid trades, "
                f"{result.duplicate_count} duplicates, {result.error_count} errors"
            ),
            data=PreviewData(
                total=result.total_rows,
                valid=result.valid_count,
                duplicates=result.duplicate_count,
                errors=result.error_count,
                trades=[RowResponse.from_outcome(o) for o in result.outcomes],
            ),
        )


class ExecuteResponse(CamelModel):
    success: bool
    message: str
    data: ExecuteData

    @classmethod
    def from_result(cls, result: ImportResult) -> "ExecuteResponse":
        if result.failed:
            message = result.failure_reason or "Import failed"
        else:
            message = (
                f"Import completed: {result.imported_count} imported, "
                f"{result.duplicate_count} skipped, {result.error_count} errors"
            )
        return cls(
            success=not result.failed,
            message=message,
            data=ExecuteData(
                total=result.total_rows,
                valid=result.valid_count,
                duplicates=result.duplicate_count,
                errors=result.error_count,
                imported=result.imported_count,
                summary=result.summary(),
                trades=[RowResponse.from_outcome(o) for o in result.outcomes],
            ),
        )

