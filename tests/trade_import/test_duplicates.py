"""
Duplicate Detection Tests.

============================================================
PURPOSE
============================================================
The duplicate key and the detector's exact comparison over
lookup results.

============================================================
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

from tests.factories import ACCOUNT_ID, USER_ID, FakeTradeStore, make_candidate
from trade_import.duplicates import DuplicateDetector, duplicate_key, truncate_to_second
from trade_import.types import Direction


class TestTruncateToSecond:
    """Tests for truncate_to_second."""

    def test_drops_microseconds(self):
        value = datetime(2025, 9, 2, 12, 18, 21, 999999, tzinfo=timezone.utc)

        assert truncate_to_second(value) == datetime(2025, 9, 2, 12, 18, 21, tzinfo=timezone.utc)

    def test_naive_treated_as_utc(self):
        naive = datetime(2025, 9, 2, 12, 18, 21)

        assert truncate_to_second(naive) == datetime(2025, 9, 2, 12, 18, 21, tzinfo=timezone.utc)

    def test_converts_to_utc(self):
        plus_two = timezone(timedelta(hours=2))
        value = datetime(2025, 9, 2, 14, 18, 21, tzinfo=plus_two)

        assert truncate_to_second(value) == datetime(2025, 9, 2, 12, 18, 21, tzinfo=timezone.utc)


class TestDuplicateKey:
    """Tests for duplicate_key."""

    def test_exit_fields_not_in_key(self):
        """A later export of the closed trade still matches."""
        open_trade = make_candidate(exit_price=None, exit_date=None, pnl=None)
        closed_trade = make_candidate()

        assert duplicate_key(open_trade, USER_ID, ACCOUNT_ID) == duplicate_key(closed_trade, USER_ID, ACCOUNT_ID)

    def test_price_compared_numerically(self):
        a = make_candidate(entry_price=Decimal("6387.5"))
        b = make_candidate(entry_price=Decimal("6387.50000000"))

        assert duplicate_key(a, USER_ID, ACCOUNT_ID) == duplicate_key(b, USER_ID, ACCOUNT_ID)


class TestDuplicateDetector:
    """Tests for DuplicateDetector."""

    def setup_method(self):
        self.detector = DuplicateDetector()
        self.store = FakeTradeStore()

    def test_no_existing_trades(self):
        assert self.detector.find_duplicate(make_candidate(), USER_ID, ACCOUNT_ID, self.store) is None

    def test_matching_trade(self):
        trade_id = self.store.add_existing(USER_ID, ACCOUNT_ID, make_candidate())

        match = self.detector.find_duplicate(make_candidate(row_number=9), USER_ID, ACCOUNT_ID, self.store)

        assert match == trade_id

    def test_sub_second_difference_matches(self):
        trade_id = self.store.add_existing(USER_ID, ACCOUNT_ID, make_candidate())
        candidate = make_candidate(
            entry_date=datetime(2025, 9, 2, 12, 18, 21, 500000, tzinfo=timezone.utc),
        )

        assert self.detector.find_duplicate(candidate, USER_ID, ACCOUNT_ID, self.store) == trade_id

    def test_different_quantity_not_duplicate(self):
        self.store.add_existing(USER_ID, ACCOUNT_ID, make_candidate())

        candidate = make_candidate(quantity=Decimal("2"))

        assert self.detector.find_duplicate(candidate, USER_ID, ACCOUNT_ID, self.store) is None

    def test_different_direction_not_duplicate(self):
        self.store.add_existing(USER_ID, ACCOUNT_ID, make_candidate())

        candidate = make_candidate(direction=Direction.SHORT)

        assert self.detector.find_duplicate(candidate, USER_ID, ACCOUNT_ID, self.store) is None

    def test_other_account_not_duplicate(self):
        self.store.add_existing(USER_ID, "other-account", make_candidate())

        assert self.detector.find_duplicate(make_candidate(), USER_ID, ACCOUNT_ID, self.store) is None

    def test_other_user_not_duplicate(self):
        self.store.add_existing("other-user", ACCOUNT_ID, make_candidate())

        assert self.detector.find_duplicate(make_candidate(), USER_ID, ACCOUNT_ID, self.store) is None

    def test_changed_exit_still_duplicate(self):
        trade_id = self.store.add_existing(USER_ID, ACCOUNT_ID, make_candidate(exit_price=None, exit_date=None))

        match = self.detector.find_duplicate(make_candidate(), USER_ID, ACCOUNT_ID, self.store)

        assert match == trade_id
