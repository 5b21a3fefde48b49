"""
Two-Stage Form Validation

STAGE 1 - SCHEMA VALIDATION:
- Amount and date are present
- Amount parses to a whole-unit integer
- A failure here blocks the submit

STAGE 2 - SEMANTIC VALIDATION:
- Date far in the future
- Absurdly large amount
- Zero amount
- These only produce warnings

IMPORTANT: Validation NEVER silently fixes issues.
It reports them for the user to correct.
"""

import datetime as dt
from typing import Optional

from tabungan.config import get_settings
from tabungan.errors import InvalidAmountError, MissingRequiredFieldError
from tabungan.formatting import format_rupiah, parse_amount
from tabungan.models.transaction import (
    NewTransaction,
    TransactionForm,
    TransactionUpdate,
    ValidationIssue,
    ValidationResult,
)


def require_amount_and_date(form: TransactionForm) -> tuple[int, dt.date]:
    """
    Strict variant used when the caller wants exceptions, not issues.

    Raises:
        MissingRequiredFieldError: amount text or date is empty
        InvalidAmountError: amount text has no parsable integer
    """
    if not form.amount_text:
        raise MissingRequiredFieldError("amount")
    if form.date is None:
        raise MissingRequiredFieldError("date")
    return parse_amount(form.amount_text), form.date


class TransactionValidator:
    """Validates add/edit form submissions."""

    def __init__(
        self,
        max_amount: Optional[int] = None,
        future_date_tolerance_days: Optional[int] = None,
    ):
        if max_amount is None or future_date_tolerance_days is None:
            app = get_settings().app
            max_amount = app.max_transaction_amount if max_amount is None else max_amount
            if future_date_tolerance_days is None:
                future_date_tolerance_days = app.future_date_tolerance_days
        self._max_amount = max_amount
        self._future_tolerance = dt.timedelta(days=future_date_tolerance_days)

    def _validate_schema(
        self,
        form: TransactionForm,
    ) -> tuple[Optional[int], list[ValidationIssue]]:
        issues = []
        amount = None

        try:
            amount, _ = require_amount_and_date(form)
        except MissingRequiredFieldError as e:
            issues.append(ValidationIssue(
                field=e.field,
                issue_type="missing",
                message="Amount and date are required",
                severity="error",
                suggested_fix=f"Fill in the {e.field}",
            ))
        except InvalidAmountError as e:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_amount",
                message=f"Amount must be a number ({e.reason})",
                severity="error",
                suggested_fix="Use digits only, e.g. 500.000 or -200.000",
            ))

        return amount, issues

    def _validate_semantic(
        self,
        form: TransactionForm,
        amount: int,
    ) -> list[ValidationIssue]:
        issues = []

        if form.date > dt.date.today() + self._future_tolerance:
            issues.append(ValidationIssue(
                field="date",
                issue_type="future_date",
                message=f"Date ({form.date.isoformat()}) is in the future",
                severity="warning",
                suggested_fix="Please verify the date is correct",
            ))

        if abs(amount) > self._max_amount:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=f"Amount ({format_rupiah(amount)}) seems unusually large",
                severity="warning",
                suggested_fix="Please verify this amount is correct",
            ))

        if amount == 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="zero_amount",
                message="Amount is zero; it will be recorded as income",
                severity="info",
            ))

        return issues

    def validate(self, form: TransactionForm) -> ValidationResult:
        """
        Run both stages. Stage 2 only runs when stage 1 passes.
        """
        amount, issues = self._validate_schema(form)
        is_valid = not any(issue.severity == "error" for issue in issues)

        if is_valid:
            issues.extend(self._validate_semantic(form, amount))

        return ValidationResult(
            is_valid=is_valid,
            amount=amount if is_valid else None,
            issues=issues,
            warnings=[issue.message for issue in issues if issue.severity == "warning"],
        )

    @staticmethod
    def to_new_transaction(form: TransactionForm, result: ValidationResult) -> NewTransaction:
        """Build the insert payload from a valid result."""
        if not result.is_valid:
            raise ValueError("Cannot build a transaction from an invalid form")
        return NewTransaction(
            category=form.category,
            amount=result.amount,
            note=form.note or None,
            date=form.date,
        )

    @staticmethod
    def to_update(form: TransactionForm, result: ValidationResult) -> TransactionUpdate:
        """Build the update payload from a valid result (category is not included)."""
        if not result.is_valid:
            raise ValueError("Cannot build an update from an invalid form")
        return TransactionUpdate(
            amount=result.amount,
            note=form.note or "",
            date=form.date,
        )

    @staticmethod
    def get_user_friendly_summary(result: ValidationResult) -> str:
        """Short text for the form's error/warning box."""
        if result.is_valid and not result.warnings:
            return ""

        lines = []
        for issue in result.issues:
            if issue.severity == "error":
                lines.append(issue.message)
                if issue.suggested_fix:
                    lines.append(f"  {issue.suggested_fix}")
        for warning in result.warnings:
            lines.append(f"Warning: {warning}")
        return "\n".join(lines)
