"""Shared fixtures. No test here touches the network."""

import datetime as dt

import pytest

from tabungan.models.transaction import Category, TransactionRecord


@pytest.fixture
def make_record():
    """Factory for TransactionRecord with sensible defaults."""
    counter = {"next": 1}

    def _make(
        amount: int,
        category: Category = Category.HOUSING,
        date: dt.date = dt.date(2025, 10, 3),
        note: str = None,
        active: bool = True,
        record_id: str = None,
    ) -> TransactionRecord:
        if record_id is None:
            record_id = str(counter["next"])
            counter["next"] += 1
        return TransactionRecord(
            id=record_id,
            category=category,
            amount=amount,
            note=note,
            date=date,
            active=active,
        )

    return _make


@pytest.fixture
def scenario_records(make_record):
    """Housing +500.000, Child -200.000, Holiday +100.000."""
    return [
        make_record(500000, Category.HOUSING),
        make_record(-200000, Category.CHILD),
        make_record(100000, Category.HOLIDAY),
    ]
