"""Tests for bill numbering and totals."""

from decimal import Decimal

import pytest

from harvest_ledger.billing import compute_total, next_bill_no, parse_bill_no


class TestNextBillNo:
    """Tests for next_bill_no()."""

    def test_empty_ledger_starts_at_1001(self):
        assert next_bill_no([]) == 1001

    def test_continues_from_highest(self):
        assert next_bill_no([{"billNo": 1500}]) == 1501

    def test_below_floor_resets_to_floor(self):
        """Numbers under 1000 are not incremented; the range restarts at 1001."""
        assert next_bill_no([{"billNo": 500}]) == 1001

    def test_exactly_floor_is_incremented(self):
        assert next_bill_no([{"billNo": 1000}]) == 1001

    def test_missing_and_non_numeric_count_as_zero(self):
        records = [{"billNo": None}, {"billNo": "abc"}, {}, {"billNo": "1203"}]
        assert next_bill_no(records) == 1204

    def test_uses_maximum_not_last(self, make_farmer):
        records = [make_farmer(bill_no=1009), make_farmer(bill_no=1003)]
        assert next_bill_no(records) == 1010

    def test_gaps_from_deletion_are_not_reused(self, make_farmer):
        """Deleting the oldest bills never lets the sequence restart."""
        remaining = [make_farmer(bill_no=1004)]
        assert next_bill_no(remaining) == 1005


class TestParseBillNo:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [(1001, 1001), ("1002", 1002), (" 1003 ", 1003), (1004.0, 1004)],
    )
    def test_numeric_values(self, raw, expected):
        assert parse_bill_no(raw) == expected

    @pytest.mark.parametrize("raw", [None, "", "abc", True, "NaN"])
    def test_non_numeric_values(self, raw):
        assert parse_bill_no(raw) is None


class TestComputeTotal:
    """Tests for compute_total()."""

    def test_whole_acres(self):
        assert compute_total(Decimal("4"), Decimal("1500")) == Decimal("6000")

    def test_rounds_to_whole_units(self):
        assert compute_total(Decimal("2.35"), Decimal("1333")) == Decimal("3133")

    def test_half_rounds_up(self):
        assert compute_total(Decimal("0.5"), Decimal("25")) == Decimal("13")
