"""
Integration tests for the transaction and dashboard flows.

Storage is in-memory, or a stub that always fails.
"""

import asyncio
import datetime as dt

import pytest

from tabungan.audit import AuditLogger
from tabungan.config import get_settings
from tabungan.models.audit import AuditEventType
from tabungan.models.transaction import Category, TransactionForm, ViewMode
from tabungan.orchestrator import (
    SAVE_FAILED_MESSAGE,
    AuthFlow,
    DashboardFlow,
    DashboardSnapshot,
    DashboardState,
    TransactionFlow,
    create_app_components,
    create_auth_flow,
)
from tabungan.services.auth import LocalAuthService
from tabungan.services.storage import (
    InMemoryAuditStorage,
    InMemoryTransactionStorage,
    StorageError,
    TransactionStorageInterface,
)
from tabungan.validation import TransactionValidator


class FailingStorage(TransactionStorageInterface):
    """Every call fails the way a dropped connection would."""

    def __init__(self):
        self.calls = 0

    async def _fail(self, *args, **kwargs):
        self.calls += 1
        raise StorageError("connection reset")

    fetch_by_category = _fail
    fetch_all = _fail
    get_by_id = _fail
    insert = _fail
    update = _fail
    soft_delete = _fail


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage):
    return AuditLogger(audit_storage)


@pytest.fixture
def validator():
    return TransactionValidator(max_amount=1_000_000_000, future_date_tolerance_days=7)


def _form(amount_text, category=Category.HOUSING, date=dt.date(2025, 10, 3), note=None):
    return TransactionForm(category=category, amount_text=amount_text, note=note, date=date)


def _event_types(audit_storage):
    return [event.event_type for event in audit_storage.events]


class TestTransactionFlow:
    """Tests for submit, edit and delete."""

    def test_submit_inserts_parsed_amount(self, validator, audit_logger, audit_storage):
        storage = InMemoryTransactionStorage()
        flow = TransactionFlow(storage, validator, audit_logger)

        outcome = asyncio.run(flow.submit(_form("-200.000", note="Les")))

        assert outcome.success
        record = asyncio.run(storage.get_by_id(outcome.record_id))
        assert record.amount == -200000
        assert record.note == "Les"
        assert _event_types(audit_storage) == [AuditEventType.TRANSACTION_CREATED]

    def test_submit_with_missing_date_does_not_touch_storage(self, validator, audit_logger, audit_storage):
        storage = InMemoryTransactionStorage()
        flow = TransactionFlow(storage, validator, audit_logger)

        outcome = asyncio.run(flow.submit(_form("1.000", date=None)))

        assert not outcome.success
        assert outcome.message == "Amount and date are required"
        assert asyncio.run(storage.fetch_all()) == []
        assert _event_types(audit_storage) == [AuditEventType.VALIDATION_FAILED]

    def test_edit_updates_amount_note_and_date(self, validator, audit_logger):
        storage = InMemoryTransactionStorage()
        flow = TransactionFlow(storage, validator, audit_logger)
        record_id = asyncio.run(flow.submit(_form("1.000", note="awal"))).record_id

        outcome = asyncio.run(flow.submit(
            _form("2.500", category=Category.HOUSING, date=dt.date(2025, 11, 1)),
            edit_id=record_id,
        ))

        assert outcome.success
        record = asyncio.run(flow.load_for_edit(record_id))
        assert record.amount == 2500
        assert record.note is None
        assert record.date == dt.date(2025, 11, 1)

    def test_edit_of_deleted_record_fails(self, validator, audit_logger):
        storage = InMemoryTransactionStorage()
        flow = TransactionFlow(storage, validator, audit_logger)
        record_id = asyncio.run(flow.submit(_form("1.000"))).record_id
        asyncio.run(flow.delete(record_id))

        assert asyncio.run(flow.load_for_edit(record_id)) is None
        assert asyncio.run(flow.load_for_edit("404")) is None

    def test_storage_failure_is_reported_not_raised(self, validator, audit_logger, audit_storage):
        storage = FailingStorage()
        flow = TransactionFlow(storage, validator, audit_logger)

        outcome = asyncio.run(flow.submit(_form("1.000")))

        assert not outcome.success
        assert outcome.message == SAVE_FAILED_MESSAGE
        assert storage.calls == 1
        assert _event_types(audit_storage) == [AuditEventType.SAVE_FAILED]

    def test_delete(self, validator, audit_logger, audit_storage):
        storage = InMemoryTransactionStorage()
        flow = TransactionFlow(storage, validator, audit_logger)
        record_id = asyncio.run(flow.submit(_form("1.000"))).record_id

        outcome = asyncio.run(flow.delete(record_id))

        assert outcome.success
        assert asyncio.run(storage.fetch_all()) == []
        assert _event_types(audit_storage)[-1] == AuditEventType.TRANSACTION_DELETED

    def test_delete_failure(self, validator, audit_logger, audit_storage):
        flow = TransactionFlow(FailingStorage(), validator, audit_logger)
        outcome = asyncio.run(flow.delete("1"))
        assert not outcome.success
        assert _event_types(audit_storage) == [AuditEventType.DELETE_FAILED]

    def test_delete_unknown_id(self, validator, audit_logger):
        flow = TransactionFlow(InMemoryTransactionStorage(), validator, audit_logger)
        outcome = asyncio.run(flow.delete("99"))
        assert not outcome.success
        assert outcome.message == "This transaction no longer exists."


class TestDashboardFlow:
    """Tests for dashboard snapshots."""

    def test_load_category_view(self, scenario_records, audit_logger):
        flow = DashboardFlow(InMemoryTransactionStorage(scenario_records), audit_logger, max_months=6)

        snapshot = asyncio.run(flow.load(ViewMode.CHILD))

        assert snapshot.error is None
        assert [r.amount for r in snapshot.records] == [-200000]
        assert snapshot.grand_total.total == 400000
        assert snapshot.cards[Category.HOUSING].total == 500000
        assert [s.percent for s in snapshot.shares] == [83.3, 16.7]
        assert snapshot.cash_flow.net == 400000

    def test_statistics_view_lists_nothing(self, scenario_records, audit_logger):
        flow = DashboardFlow(InMemoryTransactionStorage(scenario_records), audit_logger, max_months=6)
        snapshot = asyncio.run(flow.load(ViewMode.STATISTICS))
        assert snapshot.records == []
        assert len(snapshot.all_records) == 3
        assert snapshot.months[0].month == "Okt 25"

    def test_sequence_increases(self, audit_logger):
        flow = DashboardFlow(InMemoryTransactionStorage(), audit_logger, max_months=6)
        first = asyncio.run(flow.load(ViewMode.HOUSING))
        second = asyncio.run(flow.load(ViewMode.HOUSING))
        assert second.sequence > first.sequence

    def test_failure_gives_error_snapshot(self, audit_logger, audit_storage):
        flow = DashboardFlow(FailingStorage(), audit_logger, max_months=6)
        snapshot = asyncio.run(flow.load(ViewMode.HOUSING))
        assert snapshot.error is not None
        assert snapshot.records == []
        assert _event_types(audit_storage) == [AuditEventType.FETCH_FAILED]


class TestDashboardState:
    """Tests for stale-response handling."""

    def test_older_snapshot_is_rejected(self, make_record):
        state = DashboardState()
        newer = DashboardSnapshot(sequence=2, view=ViewMode.CHILD)
        older = DashboardSnapshot(
            sequence=1,
            view=ViewMode.HOUSING,
            records=[make_record(1)],
        )

        assert state.accept(newer)
        assert not state.accept(older)
        assert state.snapshot is newer

    def test_error_keeps_previous_data(self, make_record):
        state = DashboardState()
        good = DashboardSnapshot(sequence=1, view=ViewMode.HOUSING, records=[make_record(1)])
        failed = DashboardSnapshot(sequence=2, view=ViewMode.HOUSING, error="Could not load")

        state.accept(good)
        assert state.accept(failed)
        assert state.snapshot is good
        assert state.error == "Could not load"

    def test_success_clears_error(self):
        state = DashboardState()
        state.accept(DashboardSnapshot(sequence=1, view=ViewMode.HOUSING, error="x"))
        state.accept(DashboardSnapshot(sequence=2, view=ViewMode.HOUSING))
        assert state.error is None
        assert state.snapshot.sequence == 2


class TestAuthFlow:
    """Tests for sign in and sign out with the offline provider."""

    def test_sign_in_and_out(self, audit_logger, audit_storage):
        flow = AuthFlow(LocalAuthService(), audit_logger)

        outcome = asyncio.run(flow.sign_in("budi@example.com", "rahasia"))

        assert outcome.success
        assert flow.session.display_name == "budi"
        asyncio.run(flow.sign_out())
        assert flow.session is None
        assert _event_types(audit_storage) == [
            AuditEventType.USER_SIGNED_IN,
            AuditEventType.USER_SIGNED_OUT,
        ]

    def test_sign_in_failure(self, audit_logger, audit_storage):
        flow = AuthFlow(LocalAuthService(), audit_logger)
        outcome = asyncio.run(flow.sign_in("not-an-email", ""))
        assert not outcome.success
        assert flow.session is None
        assert _event_types(audit_storage) == [AuditEventType.AUTH_FAILED]


class TestAppComponents:
    """Tests for the component factory used by the Streamlit app."""

    @pytest.fixture
    def offline_components(self, monkeypatch):
        monkeypatch.setenv("STORAGE_BACKEND", "memory")
        get_settings.cache_clear()
        yield create_app_components(use_storage=False)
        get_settings.cache_clear()

    def test_sign_in_is_not_shared_between_sessions(self, offline_components):
        _, _, auth_flow_factory = offline_components
        first_visitor = auth_flow_factory()
        second_visitor = auth_flow_factory()

        asyncio.run(first_visitor.sign_in("alice@example.com", "rahasia"))

        assert first_visitor.session.display_name == "alice"
        assert second_visitor.session is None

    def test_sign_out_only_affects_own_session(self, offline_components):
        _, _, auth_flow_factory = offline_components
        alice = auth_flow_factory()
        bob = auth_flow_factory()
        asyncio.run(alice.sign_in("alice@example.com", "rahasia"))
        asyncio.run(bob.sign_in("bob@example.com", "rahasia"))

        asyncio.run(alice.sign_out())

        assert alice.session is None
        assert bob.session.email == "bob@example.com"

    def test_memory_backend_uses_local_auth(self):
        flow = create_auth_flow("memory")
        outcome = asyncio.run(flow.sign_in("budi@example.com", "x"))
        assert outcome.success


class TestDashboardMonthLimit:
    """Tests for the explicit month limit."""

    def test_zero_months_is_respected(self, scenario_records, audit_logger):
        flow = DashboardFlow(InMemoryTransactionStorage(scenario_records), audit_logger, max_months=0)
        snapshot = asyncio.run(flow.load(ViewMode.STATISTICS))
        assert snapshot.months == []
        assert snapshot.grand_total.count == 3
