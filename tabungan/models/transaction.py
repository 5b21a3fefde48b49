"""
Core Data Models for Tabungan Dashboard

These models define the schemas for all data flowing between the
storage collaborator, the aggregation engine and the UI.
They are designed to:
1. Make invalid categories unrepresentable in storage
2. Keep fetched records immutable (each aggregation sees a snapshot)
3. Be serializable for storage rows and logging

DESIGN DECISION: "Statistics" is a view mode, not a category.
Only Category values ever reach storage.
"""

import datetime as dt
from enum import Enum
from typing import Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class Category(str, Enum):
    """
    Transaction categories.

    Values are the strings stored in the `jenis` column.
    """
    HOUSING = "rumah"
    CHILD = "anak"
    HOLIDAY = "holiday"

    @property
    def label(self) -> str:
        return CATEGORY_LABELS[self]

    @property
    def color(self) -> str:
        """Fixed chart color for this category."""
        return CATEGORY_COLORS[self]


CATEGORY_LABELS: dict[Category, str] = {
    Category.HOUSING: "Housing",
    Category.CHILD: "Child",
    Category.HOLIDAY: "Holiday",
}

CATEGORY_COLORS: dict[Category, str] = {
    Category.HOUSING: "#3b82f6",
    Category.CHILD: "#10b981",
    Category.HOLIDAY: "#f59e0b",
}


class ViewMode(str, Enum):
    """
    Dashboard tabs.

    Three tabs list one category each; STATISTICS shows charts over
    every category and has no storage value of its own.
    """
    HOUSING = "housing"
    CHILD = "child"
    HOLIDAY = "holiday"
    STATISTICS = "statistics"

    @property
    def category(self) -> Optional[Category]:
        """The category listed by this tab, None for statistics."""
        return _VIEW_CATEGORIES.get(self)

    @property
    def label(self) -> str:
        if self is ViewMode.STATISTICS:
            return "Statistics"
        return self.category.label

    @classmethod
    def from_param(cls, value: Optional[str]) -> "ViewMode":
        """Resolve a query-string value, falling back to HOUSING."""
        if value:
            for mode in cls:
                if value.lower() in (mode.value, mode.name.lower()):
                    return mode
            for mode in cls:
                if mode.category is not None and value.lower() == mode.category.value:
                    return mode
        return cls.HOUSING


_VIEW_CATEGORIES: dict[ViewMode, Category] = {
    ViewMode.HOUSING: Category.HOUSING,
    ViewMode.CHILD: Category.CHILD,
    ViewMode.HOLIDAY: Category.HOLIDAY,
}


# =============================================================================
# TRANSACTION MODELS
# =============================================================================

class TransactionRecord(BaseModel):
    """
    A transaction as returned by storage.

    Records are frozen: the aggregation engine receives snapshots and
    never mutates them. Updates go through TransactionUpdate.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: str = Field(
        ...,
        min_length=1,
        description="Opaque identifier assigned by storage"
    )
    category: Category = Field(
        ...,
        description="Category the transaction is recorded under"
    )
    amount: int = Field(
        ...,
        description="Signed amount in whole units (positive = income)"
    )
    note: Optional[str] = Field(
        default=None,
        max_length=1000,
        description="Free text note"
    )
    date: dt.date = Field(
        ...,
        description="Transaction date"
    )
    active: bool = Field(
        default=True,
        description="False once soft-deleted"
    )

    @field_validator("id", mode="before")
    @classmethod
    def stringify_id(cls, v):
        """Supabase returns integer ids; keep them opaque."""
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("note", mode="before")
    @classmethod
    def blank_note_is_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @property
    def is_income(self) -> bool:
        """Zero is rendered as income."""
        return self.amount >= 0

    @property
    def kind_label(self) -> str:
        return "Income" if self.is_income else "Expense"


class NewTransaction(BaseModel):
    """Payload for inserting a transaction. Always stored as active."""
    model_config = ConfigDict(str_strip_whitespace=True)

    category: Category
    amount: int
    note: Optional[str] = Field(default=None, max_length=1000)
    date: dt.date


class TransactionUpdate(BaseModel):
    """
    Payload for updating a transaction.

    Only amount, note and date are mutable. Category and the active
    flag are deliberately absent.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    amount: Optional[int] = None
    note: Optional[str] = Field(default=None, max_length=1000)
    date: Optional[dt.date] = None

    @model_validator(mode="after")
    def require_change(self) -> "TransactionUpdate":
        if self.amount is None and self.note is None and self.date is None:
            raise ValueError("Update must change at least one of amount, note or date")
        return self

    def changed_fields(self) -> dict:
        """Fields explicitly set, for storage backends."""
        return self.model_dump(exclude_unset=True)


class TransactionForm(BaseModel):
    """
    Raw input from the add/edit form.

    Nothing here is trusted: amount_text is whatever the user typed
    (usually already grouped by the formatter) and date may be empty.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    category: Category
    amount_text: str = ""
    note: Optional[str] = None
    date: Optional[dt.date] = None


# =============================================================================
# AGGREGATION RESULT MODELS
# =============================================================================

class CategoryTotal(BaseModel):
    """Sum and count of a group of transactions."""
    model_config = ConfigDict(frozen=True)

    total: int = 0
    count: int = Field(default=0, ge=0)


class MonthlyBucket(BaseModel):
    """Income and expense of one calendar month, for the line chart."""
    model_config = ConfigDict(frozen=True)

    month: str = Field(..., description="Short month label, e.g. 'Okt 25'")
    positive: int = Field(default=0, ge=0)
    negative: int = Field(default=0, ge=0)


class CategoryShare(BaseModel):
    """One pie slice."""
    model_config = ConfigDict(frozen=True)

    category: Category
    total: int = Field(..., gt=0)
    color: str
    percent: float = Field(..., ge=0.0, le=100.0)


class CashFlowSummary(BaseModel):
    """Totals shown under the statistics charts."""
    model_config = ConfigDict(frozen=True)

    income: int = Field(default=0, ge=0)
    expense: int = Field(default=0, ge=0)
    net: int = 0
    count: int = Field(default=0, ge=0)


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found on a form submission."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_amount', 'suspicious_value')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = None


class ValidationResult(BaseModel):
    """
    Result of validating a TransactionForm.

    When is_valid is True, amount holds the parsed integer.
    """

    validated_at: dt.datetime = Field(
        default_factory=dt.datetime.utcnow
    )
    is_valid: bool
    amount: Optional[int] = None
    issues: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[str] = Field(
        default_factory=list,
        description="Non-blocking warnings"
    )

    @property
    def has_errors(self) -> bool:
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def first_error(self) -> Optional[ValidationIssue]:
        for issue in self.issues:
            if issue.severity == "error":
                return issue
        return None
