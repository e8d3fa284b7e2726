"""
Trade Import - Import Pipeline.

============================================================
PURPOSE
============================================================
Orchestrates one preview or execute pass over an NT8 export.

    bytes -> reader -> mapper -> validator -> duplicate check
          -> (execute) persistence -> ImportResult

MODES:
- preview: classify every row, never write
- execute: classify every row and persist each valid row
  immediately, so a later row of the same file sees it

ROW CLASSIFICATION:
- Invalid beats Duplicate: only mapped and validated rows
  are checked for duplicates
- Per-row persistence failures become Invalid rows; the
  remaining rows are still processed
- Storage being unreachable fails the whole call

CRITICAL PRINCIPLE:
    Every line of the file is accounted for in the result,
    in file order. No row is silently dropped.

============================================================
"""

import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Dict, Optional, Protocol

from trade_import.config import ImportConfig
from trade_import.duplicates import DuplicateDetector, DuplicateKey, TradeLookup, duplicate_key
from trade_import.errors import (
    DuplicateTradeError,
    FileTooLargeError,
    ImportFileError,
    PersistenceError,
    StorageUnavailableError,
)
from trade_import.mapper import MappingResult, RowMapper
from trade_import.reader import DelimitedRecordReader
from trade_import.state_machine import PipelineState, PipelineStateMachine
from trade_import.types import (
    CandidateTrade,
    DuplicateRow,
    FieldError,
    ImportMode,
    ImportResult,
    InvalidRow,
    RowOutcome,
    ValidRow,
)
from trade_import.validation import RowValidator


logger = logging.getLogger(__name__)


class TradeStore(TradeLookup, Protocol):
    """Persistence collaborator used by the pipeline."""

    def check_available(self) -> None:
        """Raise StorageUnavailableError when storage cannot be reached."""
        ...

    def save_trade(self, user_id: str, account_id: str, candidate: CandidateTrade) -> str:
        """
        Persist one trade and return its id.

        Raises:
            DuplicateTradeError: the duplicate key already exists
            PersistenceError: the trade could not be stored
            StorageUnavailableError: storage is unreachable
        """
        ...


class ImportPipeline:
    """
    NT8 trade import pipeline.

    Holds no per-call state; every preview/execute call is a fresh
    pass over its input bytes.
    """

    def __init__(
        self,
        store: TradeStore,
        config: Optional[ImportConfig] = None,
        reader: Optional[DelimitedRecordReader] = None,
        mapper: Optional[RowMapper] = None,
        validator: Optional[RowValidator] = None,
        detector: Optional[DuplicateDetector] = None,
    ):
        """
        Initialize pipeline.

        Args:
            store: Persistence collaborator (lookup + writes)
            config: Import configuration, defaults to ImportConfig()
            reader, mapper, validator, detector: Component overrides
        """
        self._store = store
        self._config = config or ImportConfig()
        self._reader = reader or DelimitedRecordReader(encoding=self._config.encoding)
        self._mapper = mapper or RowMapper(
            zone=self._config.zone,
            estimate_missing_commission=self._config.estimate_missing_commission,
        )
        self._validator = validator or RowValidator()
        self._detector = detector or DuplicateDetector()

    # --------------------------------------------------------
    # ENTRY POINTS
    # --------------------------------------------------------

    def preview(self, file_bytes: bytes, user_id: str, account_id: str) -> ImportResult:
        """
        Classify every row without persisting anything.

        Raises:
            ImportFileError: the file is unreadable as a whole
        """
        return self._run(ImportMode.PREVIEW, file_bytes, user_id, account_id)

    def execute(self, file_bytes: bytes, user_id: str, account_id: str) -> ImportResult:
        """
        Classify every row and persist the valid, non-duplicate ones.

        Raises:
            ImportFileError: the file is unreadable as a whole
        """
        return self._run(ImportMode.EXECUTE, file_bytes, user_id, account_id)

    # --------------------------------------------------------
    # PASS
    # --------------------------------------------------------

    def _run(self, mode: ImportMode, file_bytes: bytes, user_id: str, account_id: str) -> ImportResult:
        result = ImportResult(mode=mode, started_at=datetime.now(timezone.utc))
        machine = PipelineStateMachine()
        machine.transition(PipelineState.READING)

        try:
            if len(file_bytes) > self._config.max_file_bytes:
                raise FileTooLargeError(len(file_bytes), self._config.max_file_bytes)
            records = self._reader.read(file_bytes)
        except ImportFileError as e:
            machine.fail()
            logger.warning(f"NT8 {mode.value} rejected file: {e.message}")
            raise

        if mode == ImportMode.EXECUTE:
            try:
                self._store.check_available()
            except StorageUnavailableError as e:
                return self._fail(result, machine, e)

        # Keys of valid rows seen earlier in this file (preview only;
        # execute sees them through the store)
        seen: Optional[Dict[DuplicateKey, int]] = {} if mode == ImportMode.PREVIEW else None

        try:
            for row in records.rows:
                machine.transition(PipelineState.MAPPING)
                mapping = self._mapper.map(row)

                machine.transition(PipelineState.CLASSIFYING)
                outcome = self._classify(mapping, user_id, account_id, seen)

                if mode == ImportMode.EXECUTE and isinstance(outcome, ValidRow):
                    machine.transition(PipelineState.PERSISTING)
                    outcome = self._persist(outcome, user_id, account_id)

                result.add_outcome(outcome)
        except StorageUnavailableError as e:
            return self._fail(result, machine, e)

        if mode == ImportMode.PREVIEW:
            machine.transition(PipelineState.PREVIEW_COMPLETE)
        else:
            machine.transition(PipelineState.EXECUTE_COMPLETE)

        result.completed_at = datetime.now(timezone.utc)
        logger.info(
            f"NT8 {mode.value} complete for account {account_id}: "
            f"total={result.total_rows} valid={result.valid_count} "
            f"duplicates={result.duplicate_count} errors={result.error_count} "
            f"imported={result.imported_count}"
        )
        return result

    def _fail(
        self,
        result: ImportResult,
        machine: PipelineStateMachine,
        error: StorageUnavailableError,
    ) -> ImportResult:
        machine.fail()
        result.mark_failed(error.message)
        result.completed_at = datetime.now(timezone.utc)
        logger.error(
            f"NT8 {result.mode.value} aborted after {result.total_rows} rows, "
            f"{result.imported_count} imported: {error.message}"
        )
        return result

    # --------------------------------------------------------
    # ROW STEPS
    # --------------------------------------------------------

    def _classify(
        self,
        mapping: MappingResult,
        user_id: str,
        account_id: str,
        seen: Optional[Dict[DuplicateKey, int]],
    ) -> RowOutcome:
        if not mapping.ok:
            return InvalidRow(mapping.row_number, mapping.errors)

        candidate = mapping.candidate
        errors = self._validator.validate(candidate)
        if errors:
            return InvalidRow(mapping.row_number, tuple(errors), candidate)

        matched_id = self._detector.find_duplicate(candidate, user_id, account_id, self._store)
        if matched_id is not None:
            return DuplicateRow(candidate, matched_trade_id=matched_id)

        if seen is not None:
            key = duplicate_key(candidate, user_id, account_id)
            if key in seen:
                return DuplicateRow(candidate, matched_row_number=seen[key])
            seen[key] = candidate.row_number

        return ValidRow(candidate)

    def _persist(self, outcome: ValidRow, user_id: str, account_id: str) -> RowOutcome:
        candidate = outcome.candidate
        try:
            trade_id = self._store.save_trade(user_id, account_id, candidate)
        except DuplicateTradeError:
            # Another import stored the same trade after our duplicate check
            matched_id = self._detector.find_duplicate(candidate, user_id, account_id, self._store)
            logger.info(f"Row {candidate.row_number} was stored concurrently, marking duplicate")
            return DuplicateRow(candidate, matched_trade_id=matched_id)
        except PersistenceError as e:
            logger.warning(f"Failed to import trade row {candidate.row_number}: {e.message}")
            error = FieldError("persistence", f"trade could not be saved: {e.message}")
            return InvalidRow(candidate.row_number, (error,), candidate)

        logger.debug(f"Row {candidate.row_number} imported as trade {trade_id}")
        return replace(outcome, trade_id=trade_id)
