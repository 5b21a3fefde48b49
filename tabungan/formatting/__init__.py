"""Currency formatting package."""

from tabungan.formatting.currency import (
    clean_amount_text,
    format_amount,
    format_axis_thousands,
    format_rupiah,
    format_signed_rupiah,
    group_digits,
    parse_amount,
)

__all__ = [
    "clean_amount_text",
    "format_amount",
    "format_axis_thousands",
    "format_rupiah",
    "format_signed_rupiah",
    "group_digits",
    "parse_amount",
]
