"""Aggregation engine package."""

from tabungan.analytics.aggregator import (
    DEFAULT_MAX_MONTHS,
    cash_flow_summary,
    category_cards,
    category_share,
    category_total,
    grand_total,
    month_key,
    monthly_buckets,
    search_records,
)

__all__ = [
    "DEFAULT_MAX_MONTHS",
    "cash_flow_summary",
    "category_cards",
    "category_share",
    "category_total",
    "grand_total",
    "month_key",
    "monthly_buckets",
    "search_records",
]
