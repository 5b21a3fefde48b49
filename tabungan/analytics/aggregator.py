"""
Aggregation Engine

DESIGN DECISION: Aggregation is a pure reduction over a snapshot of
records that storage already filtered to active=True and ordered by
date descending. The engine:
- never performs I/O
- never mutates its input
- never re-filters the active flag (that is storage's contract)
- never raises on an unrecognised category (it only counts toward the
  grand total)
"""

import datetime as dt
from collections import OrderedDict
from typing import Iterable, Sequence, Union

import structlog

from tabungan.models.transaction import (
    CashFlowSummary,
    Category,
    CategoryShare,
    CategoryTotal,
    MonthlyBucket,
    TransactionRecord,
)


logger = structlog.get_logger(__name__)

DEFAULT_MAX_MONTHS = 6

# Short month names as rendered by the id-ID locale
MONTH_ABBREVIATIONS = (
    "Jan", "Feb", "Mar", "Apr", "Mei", "Jun",
    "Jul", "Agu", "Sep", "Okt", "Nov", "Des",
)


def _category_value(category) -> str:
    return category.value if isinstance(category, Category) else str(category)


def month_key(value: Union[dt.date, str]) -> str:
    """Bucket label for a date, e.g. ``date(2025, 10, 3)`` -> ``'Okt 25'``."""
    if isinstance(value, str):
        value = dt.date.fromisoformat(value[:10])
    return f"{MONTH_ABBREVIATIONS[value.month - 1]} {value.year % 100:02d}"


def category_total(
    records: Iterable[TransactionRecord],
    category: Union[Category, str],
) -> CategoryTotal:
    """Sum and count of the records recorded under one category."""
    wanted = _category_value(category)
    total = 0
    count = 0
    for record in records:
        if _category_value(record.category) == wanted:
            total += record.amount
            count += 1
    return CategoryTotal(total=total, count=count)


def grand_total(records: Iterable[TransactionRecord]) -> CategoryTotal:
    """Sum and count over every record, whatever its category."""
    total = 0
    count = 0
    for record in records:
        total += record.amount
        count += 1
    return CategoryTotal(total=total, count=count)


def category_cards(records: Sequence[TransactionRecord]) -> dict[Category, CategoryTotal]:
    """Per-category totals for the dashboard summary cards."""
    return {category: category_total(records, category) for category in Category}


def monthly_buckets(
    records: Iterable[TransactionRecord],
    max_months: int = DEFAULT_MAX_MONTHS,
) -> list[MonthlyBucket]:
    """
    Income and expense per calendar month.

    Buckets appear in the order their month is first seen, then the list
    is cut to max_months. Zero amounts add to neither side.
    """
    sums: "OrderedDict[str, list[int]]" = OrderedDict()
    for record in records:
        key = month_key(record.date)
        bucket = sums.setdefault(key, [0, 0])
        if record.amount > 0:
            bucket[0] += record.amount
        elif record.amount < 0:
            bucket[1] += -record.amount

    buckets = [
        MonthlyBucket(month=key, positive=positive, negative=negative)
        for key, (positive, negative) in sums.items()
    ]
    if len(buckets) > max_months:
        logger.debug(
            "monthly_buckets_truncated",
            bucket_count=len(buckets),
            max_months=max_months,
        )
    return buckets[:max(max_months, 0)]


def category_share(records: Sequence[TransactionRecord]) -> list[CategoryShare]:
    """
    Pie chart slices.

    Categories whose total is zero or negative are left out; percentages
    are relative to the sum of the slices that remain.
    """
    totals = [
        (category, category_total(records, category).total)
        for category in Category
    ]
    included = [(category, total) for category, total in totals if total > 0]
    included_sum = sum(total for _, total in included)

    shares = []
    for category, total in included:
        percent = round(total / included_sum * 100, 1) if included_sum else 0.0
        shares.append(CategoryShare(
            category=category,
            total=total,
            color=category.color,
            percent=percent,
        ))
    return shares


def cash_flow_summary(records: Iterable[TransactionRecord]) -> CashFlowSummary:
    """Total income, total expense, net balance and transaction count."""
    income = 0
    expense = 0
    count = 0
    for record in records:
        if record.amount > 0:
            income += record.amount
        elif record.amount < 0:
            expense += -record.amount
        count += 1
    return CashFlowSummary(
        income=income,
        expense=expense,
        net=income - expense,
        count=count,
    )


def search_records(
    records: Iterable[TransactionRecord],
    query: str,
) -> list[TransactionRecord]:
    """
    Filter a category list by free text.

    A record matches when the query appears in its amount digits, its
    note (case-insensitive) or its ISO date.
    """
    needle = (query or "").strip().lower()
    if not needle:
        return list(records)

    matches = []
    for record in records:
        note = (record.note or "").lower()
        if (
            needle in str(record.amount)
            or needle in note
            or needle in record.date.isoformat()
        ):
            matches.append(record)
    return matches
