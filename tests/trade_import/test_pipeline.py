"""
Import Pipeline Tests.

============================================================
PURPOSE
============================================================
End-to-end preview / execute behaviour against the in-memory
trade store.

TEST CATEGORIES:
- Preview: classification without writes
- Execute: persistence, idempotence, in-file duplicates
- Failures: per-row persistence errors, storage outages
- File errors: unreadable and oversize input

============================================================
"""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from tests.factories import ACCOUNT_ID, USER_ID, five_trades, make_candidate, nt8_export, nt8_row
from trade_import.config import ImportConfig
from trade_import.errors import FileTooLargeError, UnreadableFileError
from trade_import.pipeline import ImportPipeline
from trade_import.types import DuplicateRow, ImportMode, InvalidRow, ValidRow


def with_bad_third_row():
    rows = five_trades()
    rows[2] = nt8_row({
        "Trade number": "3",
        "Entry time": "2/9/2025 12:12:21",
        "Entry price": "abc",
    })
    return nt8_export(*rows)


# ============================================================
# PREVIEW
# ============================================================

class TestPreview:
    """Tests for ImportPipeline.preview."""

    def test_all_valid(self, pipeline, store):
        result = pipeline.preview(nt8_export(*five_trades()), USER_ID, ACCOUNT_ID)

        assert result.mode == ImportMode.PREVIEW
        assert result.total_rows == 5
        assert result.valid_count == 5
        assert result.duplicate_count == 0
        assert result.error_count == 0
        assert not result.failed

    def test_never_writes(self, pipeline, store):
        pipeline.preview(nt8_export(*five_trades()), USER_ID, ACCOUNT_ID)

        assert store.trades == {}
        assert store.saves == 0

    def test_outcomes_in_file_order(self, pipeline):
        result = pipeline.preview(with_bad_third_row(), USER_ID, ACCOUNT_ID)

        assert [o.row_number for o in result.outcomes] == [2, 3, 4, 5, 6]

    def test_one_bad_row(self, pipeline):
        """A bad row does not affect the rows around it."""
        result = pipeline.preview(with_bad_third_row(), USER_ID, ACCOUNT_ID)

        assert result.error_count == 1
        assert result.valid_count == 4
        bad = result.outcomes[2]
        assert isinstance(bad, InvalidRow)
        assert bad.errors[0].field_name == "entryPrice"
        assert bad.error_messages() == ["Row 4: entryPrice - not a number (value: 'abc')"]

    def test_existing_trade_is_duplicate(self, pipeline, store):
        existing_id = store.add_existing(USER_ID, ACCOUNT_ID, make_candidate())

        result = pipeline.preview(nt8_export(nt8_row()), USER_ID, ACCOUNT_ID)

        outcome = result.outcomes[0]
        assert isinstance(outcome, DuplicateRow)
        assert outcome.matched_trade_id == existing_id
        assert outcome.is_valid and outcome.is_duplicate

    def test_repeated_row_in_file_is_duplicate(self, pipeline):
        """Preview predicts that execute skips the second copy."""
        result = pipeline.preview(nt8_export(nt8_row(), nt8_row()), USER_ID, ACCOUNT_ID)

        assert result.valid_count == 1
        assert result.duplicate_count == 1
        assert result.outcomes[1].matched_row_number == 2

    def test_invalid_beats_duplicate(self, pipeline, store):
        """A row that would match an existing trade but fails validation is Invalid."""
        store.add_existing(USER_ID, ACCOUNT_ID, make_candidate())
        row = nt8_row({"Exit time": "1/9/2025 12:00:00"})

        result = pipeline.preview(nt8_export(row), USER_ID, ACCOUNT_ID)

        assert isinstance(result.outcomes[0], InvalidRow)
        assert result.duplicate_count == 0
        assert result.outcomes[0].errors[0].field_name == "exitDate"

    def test_invalid_rows_skip_lookup(self, pipeline, store):
        pipeline.preview(nt8_export(nt8_row({"Qty": "x"})), USER_ID, ACCOUNT_ID)

        assert store.lookups == 0

    def test_short_row_reported(self, pipeline):
        result = pipeline.preview(nt8_export(nt8_row(), "2;ES SEP25"), USER_ID, ACCOUNT_ID)

        assert result.total_rows == 2
        assert result.outcomes[1].errors[0].field_name == "row"

    def test_header_only(self, pipeline):
        result = pipeline.preview(nt8_export(), USER_ID, ACCOUNT_ID)

        assert result.total_rows == 0
        assert not result.failed
        assert result.completed_at is not None

    def test_configured_timezone(self, store):
        pipeline = ImportPipeline(store, ImportConfig(timezone="Europe/Berlin"))

        result = pipeline.preview(nt8_export(nt8_row()), USER_ID, ACCOUNT_ID)

        assert result.outcomes[0].trade.entry_date == datetime(2025, 9, 2, 10, 18, 21, tzinfo=timezone.utc)

    def test_out_of_range_time_is_row_error(self, store):
        """A timestamp that cannot be converted to UTC fails only its row."""
        pipeline = ImportPipeline(store, ImportConfig(timezone="America/New_York"))
        rows = five_trades()
        rows[1] = nt8_row({"Trade number": "2", "Exit time": "31/12/9999 23:30:00"})

        result = pipeline.preview(nt8_export(*rows), USER_ID, ACCOUNT_ID)

        assert result.error_count == 1
        assert result.valid_count == 4
        bad = result.outcomes[1]
        assert isinstance(bad, InvalidRow)
        assert bad.errors[0].field_name == "exitDate"
        assert bad.errors[0].message == "date out of range"

    def test_calls_are_independent(self, pipeline):
        """No state leaks from one call into the next."""
        first = pipeline.preview(nt8_export(nt8_row()), USER_ID, ACCOUNT_ID)
        second = pipeline.preview(nt8_export(nt8_row()), USER_ID, ACCOUNT_ID)

        assert first.valid_count == second.valid_count == 1


# ============================================================
# EXECUTE
# ============================================================

class TestExecute:
    """Tests for ImportPipeline.execute."""

    def test_imports_valid_rows(self, pipeline, store):
        result = pipeline.execute(nt8_export(*five_trades()), USER_ID, ACCOUNT_ID)

        assert result.mode == ImportMode.EXECUTE
        assert result.imported_count == 5
        assert len(store.trades) == 5
        assert all(isinstance(o, ValidRow) and o.trade_id for o in result.outcomes)
        assert result.imported_trade_ids == [o.trade_id for o in result.outcomes]

    def test_second_execute_all_duplicates(self, pipeline, store):
        data = nt8_export(*five_trades())
        pipeline.execute(data, USER_ID, ACCOUNT_ID)

        result = pipeline.execute(data, USER_ID, ACCOUNT_ID)

        assert result.duplicate_count == result.total_rows == 5
        assert result.imported_count == 0
        assert len(store.trades) == 5

    def test_preview_after_execute_shows_duplicates(self, pipeline):
        data = nt8_export(*five_trades())
        pipeline.execute(data, USER_ID, ACCOUNT_ID)

        result = pipeline.preview(data, USER_ID, ACCOUNT_ID)

        assert result.duplicate_count == 5

    def test_other_account_not_duplicate(self, pipeline):
        data = nt8_export(*five_trades())
        pipeline.execute(data, USER_ID, ACCOUNT_ID)

        result = pipeline.execute(data, USER_ID, "account-2")

        assert result.imported_count == 5

    def test_repeated_row_in_file(self, pipeline, store):
        """The first copy is stored before the second is checked."""
        result = pipeline.execute(nt8_export(nt8_row(), nt8_row()), USER_ID, ACCOUNT_ID)

        assert result.imported_count == 1
        assert result.duplicate_count == 1
        assert result.outcomes[1].matched_trade_id == result.outcomes[0].trade_id

    def test_bad_row_skipped(self, pipeline, store):
        result = pipeline.execute(with_bad_third_row(), USER_ID, ACCOUNT_ID)

        assert result.imported_count == 4
        assert result.error_count == 1
        assert len(store.trades) == 4

    def test_stored_candidate_fields(self, pipeline, store):
        pipeline.execute(nt8_export(nt8_row()), USER_ID, ACCOUNT_ID)

        user_id, account_id, candidate = next(iter(store.trades.values()))
        assert (user_id, account_id) == (USER_ID, ACCOUNT_ID)
        assert candidate.net_pnl == Decimal("208.30")

    def test_summary(self, pipeline):
        data = nt8_export(*five_trades())
        pipeline.execute(data, USER_ID, ACCOUNT_ID)

        new_trade = nt8_row({"Entry time": "2/9/2025 13:00:00", "Exit time": "2/9/2025 13:05:00"})

        result = pipeline.execute(nt8_export(*five_trades(), new_trade), USER_ID, ACCOUNT_ID)

        assert result.summary() == ["Successfully imported 1 trade, 5 duplicates skipped"]


# ============================================================
# FAILURES
# ============================================================

class TestPersistenceFailures:
    """Per-row and whole-call storage failures."""

    def test_row_failure_becomes_invalid(self, pipeline, store):
        store.fail_rows = {4}

        result = pipeline.execute(nt8_export(*five_trades()), USER_ID, ACCOUNT_ID)

        failed = result.outcomes[2]
        assert isinstance(failed, InvalidRow)
        assert failed.errors[0].field_name == "persistence"
        assert "disk full" in failed.errors[0].message
        assert result.imported_count == 4
        assert not result.failed

    def test_lost_race_becomes_duplicate(self, pipeline, store):
        """Unique key violation on insert: another import stored it first."""
        store.race_rows = {3}

        result = pipeline.execute(nt8_export(*five_trades()), USER_ID, ACCOUNT_ID)

        raced = result.outcomes[1]
        assert isinstance(raced, DuplicateRow)
        assert raced.matched_trade_id is not None
        assert result.imported_count == 4
        assert result.duplicate_count == 1

    def test_storage_unavailable_before_start(self, pipeline, store):
        store.available = False

        result = pipeline.execute(nt8_export(*five_trades()), USER_ID, ACCOUNT_ID)

        assert result.failed
        assert result.failure_reason == "Trade storage is unavailable"
        assert result.imported_count == 0
        assert result.total_rows == 0

    def test_storage_lost_mid_batch(self, pipeline, store):
        """Rows committed before the outage stay committed and counted."""
        store.disconnect_after = 2

        result = pipeline.execute(nt8_export(*five_trades()), USER_ID, ACCOUNT_ID)

        assert result.failed
        assert result.imported_count == 2
        assert len(store.trades) == 2
        assert result.summary()[0] == "Import failed: Trade storage is unavailable"

    def test_storage_unavailable_during_preview(self, pipeline, store):
        store.available = False

        result = pipeline.preview(nt8_export(nt8_row()), USER_ID, ACCOUNT_ID)

        assert result.failed


class TestFileErrors:
    """Whole-file failures raise instead of returning a result."""

    @pytest.mark.parametrize("data", [b"", b"\x00\x00\x00"])
    def test_unreadable(self, pipeline, data):
        with pytest.raises(UnreadableFileError):
            pipeline.preview(data, USER_ID, ACCOUNT_ID)

    def test_too_large(self, store):
        pipeline = ImportPipeline(store, ImportConfig(max_file_bytes=100))

        with pytest.raises(FileTooLargeError) as exc_info:
            pipeline.execute(nt8_export(*five_trades()), USER_ID, ACCOUNT_ID)

        assert exc_info.value.max_bytes == 100
        assert store.trades == {}
