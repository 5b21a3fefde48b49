"""
Domain errors raised by the core (formatter, parser, form validation).

Storage and authentication errors live next to their collaborators
(see tabungan.services).
"""

from typing import Optional


class TabunganError(Exception):
    """Base exception for core errors."""
    pass


class InvalidAmountError(TabunganError):
    """The amount text could not be converted to a whole-unit integer."""

    def __init__(self, raw: Optional[str], reason: str = "not a valid amount"):
        self.raw = raw
        self.reason = reason
        super().__init__(f"Invalid amount {raw!r}: {reason}")


class MissingRequiredFieldError(TabunganError):
    """A required form field (amount or date) was left empty."""

    def __init__(self, field: str):
        self.field = field
        super().__init__(f"Missing required field: {field}")
