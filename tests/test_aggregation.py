"""
Tests for the aggregation engine.

Records are given newest first, as storage returns them.
"""

import datetime as dt

import pytest

from tabungan.analytics import (
    cash_flow_summary,
    category_cards,
    category_share,
    category_total,
    grand_total,
    month_key,
    monthly_buckets,
    search_records,
)
from tabungan.models.transaction import Category, TransactionRecord


def _unknown_category_record(amount: int) -> TransactionRecord:
    """A row whose category is outside the enum, bypassing validation."""
    return TransactionRecord.model_construct(
        id="x1",
        category="tabungan_lama",
        amount=amount,
        note=None,
        date=dt.date(2025, 10, 1),
        active=True,
    )


class TestTotals:
    """Tests for per-category and grand totals."""

    def test_grand_total_scenario(self, scenario_records):
        total = grand_total(scenario_records)
        assert total.total == 400000
        assert total.count == 3

    def test_category_total(self, scenario_records):
        child = category_total(scenario_records, Category.CHILD)
        assert child.total == -200000
        assert child.count == 1

    def test_category_total_accepts_raw_value(self, scenario_records):
        assert category_total(scenario_records, "rumah").total == 500000

    def test_grand_total_equals_sum_of_categories(self, scenario_records):
        cards = category_cards(scenario_records)
        assert sum(card.total for card in cards.values()) == grand_total(scenario_records).total

    def test_unknown_category_counts_only_in_grand_total(self, scenario_records):
        records = scenario_records + [_unknown_category_record(50000)]
        assert grand_total(records).total == 450000
        assert grand_total(records).count == 4
        cards = category_cards(records)
        assert sum(card.count for card in cards.values()) == 3

    def test_empty_input(self):
        assert grand_total([]).total == 0
        assert grand_total([]).count == 0
        cards = category_cards([])
        assert set(cards) == set(Category)
        assert all(card.total == 0 and card.count == 0 for card in cards.values())


class TestCategoryShare:
    """Tests for pie chart slices."""

    def test_scenario_excludes_negative_category(self, scenario_records):
        shares = category_share(scenario_records)
        assert [share.category for share in shares] == [Category.HOUSING, Category.HOLIDAY]
        assert shares[0].percent == 83.3
        assert shares[1].percent == 16.7

    def test_colors_follow_category(self, scenario_records):
        shares = category_share(scenario_records)
        assert shares[0].color == "#3b82f6"
        assert shares[1].color == "#f59e0b"

    def test_zero_total_is_excluded(self, make_record):
        records = [
            make_record(100000, Category.HOUSING),
            make_record(50000, Category.CHILD),
            make_record(-50000, Category.CHILD),
        ]
        shares = category_share(records)
        assert [share.category for share in shares] == [Category.HOUSING]
        assert shares[0].percent == 100.0

    def test_all_negative_gives_no_slices(self, make_record):
        assert category_share([make_record(-1000, Category.HOLIDAY)]) == []

    def test_empty_input(self):
        assert category_share([]) == []

    @pytest.mark.parametrize("amounts", [
        {Category.HOUSING: 1, Category.CHILD: 1, Category.HOLIDAY: 1},
        {Category.HOUSING: 250000, Category.CHILD: 333333, Category.HOLIDAY: 77},
        {Category.HOUSING: 2, Category.CHILD: 1, Category.HOLIDAY: -5},
    ])
    def test_included_percents_sum_to_100(self, make_record, amounts):
        records = [make_record(amount, category) for category, amount in amounts.items()]
        shares = category_share(records)
        assert shares
        assert sum(share.percent for share in shares) == pytest.approx(100, abs=0.1 + 1e-9)


class TestMonthlyBuckets:
    """Tests for the monthly income/expense series."""

    def test_month_key_uses_indonesian_abbreviation(self):
        assert month_key(dt.date(2025, 10, 3)) == "Okt 25"
        assert month_key(dt.date(2024, 5, 1)) == "Mei 24"
        assert month_key("2025-08-17") == "Agu 25"

    def test_same_month_scenario(self, make_record):
        records = [
            make_record(300000, date=dt.date(2025, 10, 20)),
            make_record(-50000, date=dt.date(2025, 10, 2)),
        ]
        buckets = monthly_buckets(records)
        assert len(buckets) == 1
        assert buckets[0].month == "Okt 25"
        assert buckets[0].positive == 300000
        assert buckets[0].negative == 50000

    def test_order_of_first_occurrence(self, make_record):
        records = [
            make_record(1, date=dt.date(2025, 10, 1)),
            make_record(2, date=dt.date(2025, 9, 1)),
            make_record(3, date=dt.date(2025, 10, 5)),
        ]
        assert [b.month for b in monthly_buckets(records)] == ["Okt 25", "Sep 25"]

    def test_truncates_to_max_months(self, make_record):
        records = [
            make_record(1000, date=dt.date(2025, month, 1))
            for month in range(12, 0, -1)
        ]
        buckets = monthly_buckets(records, max_months=6)
        assert [b.month for b in buckets] == ["Des 25", "Nov 25", "Okt 25", "Sep 25", "Agu 25", "Jul 25"]

    def test_zero_amount_adds_to_neither_side(self, make_record):
        buckets = monthly_buckets([make_record(0)])
        assert buckets[0].positive == 0
        assert buckets[0].negative == 0

    def test_empty_input(self):
        assert monthly_buckets([]) == []


class TestCashFlowSummary:
    """Tests for the statistics detail block."""

    def test_scenario(self, scenario_records):
        summary = cash_flow_summary(scenario_records)
        assert summary.income == 600000
        assert summary.expense == 200000
        assert summary.net == 400000
        assert summary.count == 3

    def test_empty_input(self):
        summary = cash_flow_summary([])
        assert (summary.income, summary.expense, summary.net, summary.count) == (0, 0, 0, 0)


class TestSearchRecords:
    """Tests for the list search box."""

    @pytest.fixture
    def records(self, make_record):
        return [
            make_record(500000, note="Cicilan KPR", date=dt.date(2025, 10, 3)),
            make_record(-75000, note="Sepatu sekolah", date=dt.date(2025, 9, 12)),
        ]

    def test_empty_query_returns_everything(self, records):
        assert search_records(records, "") == records
        assert search_records(records, "   ") == records

    def test_matches_note_case_insensitive(self, records):
        assert search_records(records, "kpr") == [records[0]]

    def test_matches_amount_digits(self, records):
        assert search_records(records, "75000") == [records[1]]

    def test_matches_date(self, records):
        assert search_records(records, "2025-09") == [records[1]]

    def test_no_match(self, records):
        assert search_records(records, "liburan") == []

    def test_input_is_not_mutated(self, records):
        before = list(records)
        search_records(records, "kpr")
        assert records == before
