"""
Trade Import Package.

Imports NinjaTrader 8 "Trade Performance" exports into the trade
journal.

Pipeline:
    reader -> mapper -> validator -> duplicate detector
           -> (execute) persistence -> ImportResult

Modules:
- normalizers/: locale-tolerant number and timestamp parsing
- reader: delimited file decoding and row splitting
- mapper: source row to CandidateTrade
- validation: cross-field business rules
- duplicates: duplicate key and lookup
- pipeline: preview / execute orchestration
- router: FastAPI endpoints
"""

from trade_import.config import ImportConfig
from trade_import.errors import (
    DuplicateTradeError,
    FileTooLargeError,
    ImportFileError,
    PersistenceError,
    StorageUnavailableError,
    TradeImportError,
    UnreadableFileError,
)
from trade_import.pipeline import ImportPipeline, TradeStore
from trade_import.types import (
    CandidateTrade,
    Direction,
    DuplicateRow,
    FieldError,
    ImportMode,
    ImportResult,
    InvalidRow,
    RowOutcome,
    ValidRow,
)

__all__ = [
    "ImportConfig",
    "ImportPipeline",
    "TradeStore",
    "CandidateTrade",
    "Direction",
    "FieldError",
    "ImportMode",
    "ImportResult",
    "RowOutcome",
    "ValidRow",
    "DuplicateRow",
    "InvalidRow",
    "TradeImportError",
    "ImportFileError",
    "UnreadableFileError",
    "FileTooLargeError",
    "StorageUnavailableError",
    "PersistenceError",
    "DuplicateTradeError",
]
