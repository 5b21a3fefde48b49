"""
Data Models Package

All data flowing between storage, the aggregation engine and the UI
conforms to these schemas.
"""

from tabungan.models.transaction import (
    CATEGORY_COLORS,
    CATEGORY_LABELS,
    CashFlowSummary,
    Category,
    CategoryShare,
    CategoryTotal,
    MonthlyBucket,
    NewTransaction,
    TransactionForm,
    TransactionRecord,
    TransactionUpdate,
    ValidationIssue,
    ValidationResult,
    ViewMode,
)
from tabungan.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Transaction models
    "CATEGORY_COLORS",
    "CATEGORY_LABELS",
    "CashFlowSummary",
    "Category",
    "CategoryShare",
    "CategoryTotal",
    "MonthlyBucket",
    "NewTransaction",
    "TransactionForm",
    "TransactionRecord",
    "TransactionUpdate",
    "ValidationIssue",
    "ValidationResult",
    "ViewMode",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
