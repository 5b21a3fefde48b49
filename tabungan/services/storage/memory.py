"""
In-Memory Storage Implementation

Used by the test suite and by the app when no backend is configured
(storage_backend=memory). Follows the same contract as the remote
backends, including soft delete and date-descending reads.
"""

from typing import Iterable, Optional

from tabungan.models.transaction import (
    Category,
    NewTransaction,
    TransactionRecord,
    TransactionUpdate,
)
from tabungan.models.audit import AuditEvent
from tabungan.services.storage.interface import (
    AuditStorageInterface,
    NotFoundError,
    TransactionStorageInterface,
)


class InMemoryTransactionStorage(TransactionStorageInterface):
    """Transactions kept in a dict keyed by id, ids are sequential integers."""

    def __init__(self, records: Optional[Iterable[TransactionRecord]] = None):
        self._records: dict[str, TransactionRecord] = {}
        self._order: dict[str, int] = {}
        self._next_id = 1
        for record in records or []:
            self._put(record)
            if record.id.isdigit():
                self._next_id = max(self._next_id, int(record.id) + 1)

    def _put(self, record: TransactionRecord) -> None:
        self._order.setdefault(record.id, len(self._order))
        self._records[record.id] = record

    def _active_sorted(self, category: Optional[Category] = None) -> list[TransactionRecord]:
        records = [
            record for record in self._records.values()
            if record.active and (category is None or record.category == category)
        ]
        records.sort(key=lambda r: (r.date, self._order[r.id]), reverse=True)
        return records

    def _require(self, record_id: str) -> TransactionRecord:
        record = self._records.get(str(record_id))
        if record is None:
            raise NotFoundError(f"Transaction not found: {record_id}")
        return record

    async def fetch_by_category(self, category: Category) -> list[TransactionRecord]:
        return self._active_sorted(category)

    async def fetch_all(self) -> list[TransactionRecord]:
        return self._active_sorted()

    async def get_by_id(self, record_id: str) -> Optional[TransactionRecord]:
        return self._records.get(str(record_id))

    async def insert(self, transaction: NewTransaction) -> str:
        record = TransactionRecord(
            id=str(self._next_id),
            category=transaction.category,
            amount=transaction.amount,
            note=transaction.note,
            date=transaction.date,
            active=True,
        )
        self._next_id += 1
        self._put(record)
        return record.id

    async def update(self, record_id: str, changes: TransactionUpdate) -> None:
        record = self._require(record_id)
        self._put(TransactionRecord.model_validate(
            {**record.model_dump(), **changes.changed_fields()}
        ))

    async def soft_delete(self, record_id: str) -> None:
        record = self._require(record_id)
        self._put(record.model_copy(update={"active": False}))


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of audit events."""

    def __init__(self):
        self.events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return sorted(self.events, key=lambda e: e.timestamp, reverse=True)[:limit]
