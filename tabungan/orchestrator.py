"""
Main Orchestrator for Tabungan Dashboard

This module ties together all the components and defines the
end-to-end flows for:
1. Transaction form (validate → parse → insert/update) and delete
2. Dashboard (fetch → aggregate → snapshot for rendering)

DESIGN DECISION: The orchestrator is the error boundary.
- StorageError never escapes to the UI; it becomes a FlowOutcome
  with a retry-prompting message
- Nothing is retried automatically
- Every mutation and every failure is audited
"""

import functools
import itertools
from typing import Callable, Optional
from uuid import UUID

import structlog
from pydantic import BaseModel, ConfigDict, Field

from tabungan.analytics import (
    cash_flow_summary,
    category_cards,
    category_share,
    grand_total,
    monthly_buckets,
)
from tabungan.audit import AuditLogger, create_correlation_id
from tabungan.config import get_settings
from tabungan.models.transaction import (
    CashFlowSummary,
    Category,
    CategoryShare,
    CategoryTotal,
    MonthlyBucket,
    TransactionForm,
    TransactionRecord,
    ValidationResult,
    ViewMode,
)
from tabungan.services.auth import AuthError, AuthService, AuthSession, LocalAuthService
from tabungan.services.storage import (
    AuditStorageInterface,
    InMemoryTransactionStorage,
    NotFoundError,
    StorageError,
    TransactionStorageInterface,
)
from tabungan.validation import TransactionValidator


logger = structlog.get_logger(__name__)

SAVE_FAILED_MESSAGE = "Could not save the transaction. Please try again."
DELETE_FAILED_MESSAGE = "Could not delete the transaction. Please try again."
LOAD_FAILED_MESSAGE = "Could not load transactions. Please try again."
NOT_FOUND_MESSAGE = "This transaction no longer exists."


class FlowOutcome(BaseModel):
    """What the UI needs to know after a form submit or delete."""

    success: bool
    message: str
    record_id: Optional[str] = None
    validation: Optional[ValidationResult] = None


class DashboardSnapshot(BaseModel):
    """
    Everything the dashboard renders for one load.

    On a failed fetch, error is set and the collections are empty.
    """
    model_config = ConfigDict(frozen=True)

    sequence: int
    view: ViewMode
    records: list[TransactionRecord] = Field(default_factory=list)
    all_records: list[TransactionRecord] = Field(default_factory=list)
    cards: dict[Category, CategoryTotal] = Field(default_factory=dict)
    grand_total: CategoryTotal = Field(default_factory=CategoryTotal)
    shares: list[CategoryShare] = Field(default_factory=list)
    months: list[MonthlyBucket] = Field(default_factory=list)
    cash_flow: CashFlowSummary = Field(default_factory=CashFlowSummary)
    error: Optional[str] = None


class DashboardState:
    """
    Holds the snapshot currently on screen.

    Snapshots carry the sequence number of the load that produced them;
    a snapshot older than the one already held is rejected, so a slow
    stale load can never overwrite newer data. A failed load keeps the
    previous data and only records the error.
    """

    def __init__(self):
        self.snapshot: Optional[DashboardSnapshot] = None
        self.error: Optional[str] = None

    def accept(self, snapshot: DashboardSnapshot) -> bool:
        if self.snapshot is not None and snapshot.sequence < self.snapshot.sequence:
            logger.info(
                "stale_snapshot_dropped",
                sequence=snapshot.sequence,
                current=self.snapshot.sequence,
            )
            return False

        self.error = snapshot.error
        if snapshot.error is None or self.snapshot is None:
            self.snapshot = snapshot
        return True


class TransactionFlow:
    """
    Orchestrates the add/edit form and delete.

    Flow:
    1. Validate → schema + semantic checks, parse amount
    2. Persist → insert (new) or update (edit)
    3. Audit → success or failure
    """

    def __init__(
        self,
        storage: TransactionStorageInterface,
        validator: Optional[TransactionValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._validator = validator or TransactionValidator()
        self._audit_logger = audit_logger or AuditLogger()

    async def load_for_edit(self, record_id: str) -> Optional[TransactionRecord]:
        """
        Fetch the record being edited.

        Returns None (and audits) when the record is missing, inactive
        or storage fails.
        """
        try:
            record = await self._storage.get_by_id(record_id)
        except StorageError as e:
            logger.error("load_for_edit_failed", record_id=record_id, error=str(e))
            await self._audit_logger.log_storage_failed("get_by_id", str(e), record_id)
            return None
        if record is None or not record.active:
            return None
        return record

    async def submit(
        self,
        form: TransactionForm,
        edit_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> FlowOutcome:
        """Validate and persist a form. Never raises StorageError."""
        correlation_id = correlation_id or create_correlation_id()

        result = self._validator.validate(form)
        if not result.is_valid:
            await self._audit_logger.log_validation_failed(
                category=form.category.value,
                issues=[issue.model_dump() for issue in result.issues],
                correlation_id=correlation_id,
            )
            first = result.first_error
            return FlowOutcome(
                success=False,
                message=first.message if first else "Invalid form",
                validation=result,
            )

        operation = "update" if edit_id else "insert"
        try:
            if edit_id:
                changes = self._validator.to_update(form, result)
                await self._storage.update(edit_id, changes)
                record_id = edit_id
                await self._audit_logger.log_transaction_updated(
                    record_id=record_id,
                    changes=changes.changed_fields(),
                    correlation_id=correlation_id,
                )
            else:
                new = self._validator.to_new_transaction(form, result)
                record_id = await self._storage.insert(new)
                await self._audit_logger.log_transaction_created(
                    record_id=record_id,
                    category=new.category.value,
                    amount=new.amount,
                    correlation_id=correlation_id,
                )
        except NotFoundError as e:
            await self._audit_logger.log_storage_failed(operation, str(e), edit_id, correlation_id)
            return FlowOutcome(success=False, message=NOT_FOUND_MESSAGE, validation=result)
        except StorageError as e:
            logger.error("save_failed", operation=operation, record_id=edit_id, error=str(e))
            await self._audit_logger.log_storage_failed(operation, str(e), edit_id, correlation_id)
            return FlowOutcome(success=False, message=SAVE_FAILED_MESSAGE, validation=result)

        return FlowOutcome(
            success=True,
            message="Transaction saved.",
            record_id=record_id,
            validation=result,
        )

    async def delete(
        self,
        record_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> FlowOutcome:
        """Soft-delete a record. Never raises StorageError."""
        correlation_id = correlation_id or create_correlation_id()
        try:
            await self._storage.soft_delete(record_id)
        except NotFoundError as e:
            await self._audit_logger.log_storage_failed("soft_delete", str(e), record_id, correlation_id)
            return FlowOutcome(success=False, message=NOT_FOUND_MESSAGE, record_id=record_id)
        except StorageError as e:
            logger.error("delete_failed", record_id=record_id, error=str(e))
            await self._audit_logger.log_storage_failed("soft_delete", str(e), record_id, correlation_id)
            return FlowOutcome(success=False, message=DELETE_FAILED_MESSAGE, record_id=record_id)

        await self._audit_logger.log_transaction_deleted(record_id, correlation_id)
        return FlowOutcome(success=True, message="Transaction deleted.", record_id=record_id)


class DashboardFlow:
    """
    Loads one dashboard snapshot: the active tab's list plus every
    active record for the summary cards and statistics.
    """

    def __init__(
        self,
        storage: TransactionStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        max_months: Optional[int] = None,
    ):
        self._storage = storage
        self._audit_logger = audit_logger or AuditLogger()
        if max_months is None:
            max_months = get_settings().app.chart_max_months
        self._max_months = max_months
        self._sequence = itertools.count(1)

    async def load(self, view: ViewMode) -> DashboardSnapshot:
        """Fetch and aggregate. Never raises StorageError."""
        sequence = next(self._sequence)
        try:
            all_records = await self._storage.fetch_all()
            if view.category is None:
                records = []
            else:
                records = await self._storage.fetch_by_category(view.category)
        except StorageError as e:
            logger.error("dashboard_load_failed", view=view.value, error=str(e))
            await self._audit_logger.log_storage_failed("fetch", str(e))
            return DashboardSnapshot(sequence=sequence, view=view, error=LOAD_FAILED_MESSAGE)

        return DashboardSnapshot(
            sequence=sequence,
            view=view,
            records=records,
            all_records=all_records,
            cards=category_cards(all_records),
            grand_total=grand_total(all_records),
            shares=category_share(all_records),
            months=monthly_buckets(all_records, self._max_months),
            cash_flow=cash_flow_summary(all_records),
        )


class AuthFlow:
    """Sign in / sign up / sign out with auditing."""

    def __init__(
        self,
        auth_service: AuthService,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._auth = auth_service
        self._audit_logger = audit_logger or AuditLogger()

    @property
    def session(self) -> Optional[AuthSession]:
        return self._auth.current_session

    async def sign_in(self, email: str, password: str, sign_up: bool = False) -> FlowOutcome:
        try:
            if sign_up:
                session = self._auth.sign_up(email, password)
                await self._audit_logger.log_signed_up(session.email)
            else:
                session = self._auth.sign_in(email, password)
                await self._audit_logger.log_signed_in(session.email)
        except AuthError as e:
            await self._audit_logger.log_auth_failed(email, str(e))
            return FlowOutcome(success=False, message=str(e) or "An error occurred")
        return FlowOutcome(success=True, message=f"Welcome, {session.display_name}")

    async def sign_out(self) -> FlowOutcome:
        email = self.session.email if self.session else None
        try:
            self._auth.sign_out()
        except AuthError as e:
            logger.warning("sign_out_failed", error=str(e))
        await self._audit_logger.log_signed_out(email)
        return FlowOutcome(success=True, message="Signed out.")


def create_auth_flow(
    backend: str,
    audit_logger: Optional[AuditLogger] = None,
) -> AuthFlow:
    """
    Build a fresh AuthFlow for one browser session.

    Each call gets its own AuthService (and, for Supabase, its own client),
    so a signed-in session and its token never leak to another visitor.
    """
    if backend == "memory":
        auth_service: AuthService = LocalAuthService()
    else:
        auth_service = AuthService()
    return AuthFlow(auth_service, audit_logger)


def create_app_components(
    use_storage: bool = True,
) -> tuple[TransactionFlow, DashboardFlow, Callable[[], AuthFlow]]:
    """
    Factory function to create all application components.

    The flows returned here hold no per-user state and can be shared
    across browser sessions. Sign-in state cannot, so the third element
    is a factory that builds a new AuthFlow per session.

    Args:
        use_storage: If False, use in-memory storage and local auth
                    (useful for testing and offline demos)

    Returns:
        (transaction_flow, dashboard_flow, auth_flow_factory)
    """
    settings = get_settings().app
    backend = settings.storage_backend if use_storage else "memory"

    audit_storage: Optional[AuditStorageInterface] = None
    if backend == "supabase":
        from tabungan.services.storage.supabase_store import (
            SupabaseTransactionStorage,
            create_supabase_client,
        )
        storage: TransactionStorageInterface = SupabaseTransactionStorage(create_supabase_client())
    elif backend == "google_sheets":
        from tabungan.services.storage.google_sheets import (
            GoogleSheetsClient,
            GoogleSheetsTransactionStorage,
        )
        storage = GoogleSheetsTransactionStorage(GoogleSheetsClient())
    else:
        storage = InMemoryTransactionStorage()

    if settings.audit_to_sheets and backend != "memory":
        from tabungan.services.storage.google_sheets import GoogleSheetsAuditStorage
        audit_storage = GoogleSheetsAuditStorage()

    audit_logger = AuditLogger(audit_storage)
    transaction_flow = TransactionFlow(storage=storage, audit_logger=audit_logger)
    dashboard_flow = DashboardFlow(
        storage=storage,
        audit_logger=audit_logger,
        max_months=settings.chart_max_months,
    )
    auth_flow_factory = functools.partial(create_auth_flow, backend, audit_logger)

    logger.info("components_created", backend=backend, audit_to_sheets=audit_storage is not None)
    return transaction_flow, dashboard_flow, auth_flow_factory
