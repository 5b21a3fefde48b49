"""Form validation package."""

from tabungan.validation.validator import TransactionValidator, require_amount_and_date

__all__ = ["TransactionValidator", "require_amount_and_date"]
