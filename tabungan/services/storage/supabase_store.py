"""
Supabase Storage Implementation

DESIGN DECISION: Supabase is the production backend. Transactions live
in a single table (default `tabungan_master`) with the columns

    id | jenis | nominal | keterangan | date | is_active

Filtering on is_active and ordering by date happen server-side; rows
that no longer fit the model (e.g. an unknown `jenis`) are skipped with
a warning instead of failing the whole read.

No call here is retried. A failure surfaces as StorageError and the
orchestrator decides what the user sees.
"""

import datetime as dt
from typing import Any, Optional

import structlog
from supabase import Client, create_client

from tabungan.config import get_settings
from tabungan.models.transaction import (
    Category,
    NewTransaction,
    TransactionRecord,
    TransactionUpdate,
)
from tabungan.services.storage.interface import (
    NotFoundError,
    StorageConnectionError,
    StorageError,
    TransactionStorageInterface,
)


logger = structlog.get_logger(__name__)


def create_supabase_client() -> Client:
    """Build a client from SupabaseSettings."""
    settings = get_settings().supabase
    try:
        return create_client(settings.url, settings.key)
    except Exception as e:
        raise StorageConnectionError(f"Failed to create Supabase client: {e}")


def row_to_record(row: dict[str, Any]) -> TransactionRecord:
    """Convert a `tabungan_master` row to a TransactionRecord."""
    return TransactionRecord(
        id=row["id"],
        category=Category(row["jenis"]),
        amount=int(row["nominal"]),
        note=row.get("keterangan"),
        date=dt.date.fromisoformat(str(row["date"])[:10]),
        active=bool(row.get("is_active", True)),
    )


def record_payload(transaction: NewTransaction) -> dict[str, Any]:
    """Row to insert for a new transaction."""
    return {
        "jenis": transaction.category.value,
        "nominal": transaction.amount,
        "keterangan": transaction.note or "",
        "date": transaction.date.isoformat(),
        "is_active": True,
    }


def update_payload(changes: TransactionUpdate) -> dict[str, Any]:
    """Column values for an update; only the fields that were set."""
    columns = {"amount": "nominal", "note": "keterangan", "date": "date"}
    payload = {}
    for field, value in changes.changed_fields().items():
        if isinstance(value, dt.date):
            value = value.isoformat()
        if field == "note":
            value = value or ""
        payload[columns[field]] = value
    return payload


class SupabaseTransactionStorage(TransactionStorageInterface):
    """Transactions stored in a Supabase (PostgREST) table."""

    def __init__(
        self,
        client: Optional[Client] = None,
        table_name: Optional[str] = None,
    ):
        self._client = client
        self._table_name = table_name

    @property
    def client(self) -> Client:
        if self._client is None:
            self._client = create_supabase_client()
        return self._client

    @property
    def table_name(self) -> str:
        if self._table_name is None:
            self._table_name = get_settings().supabase.table_name
        return self._table_name

    def _table(self):
        return self.client.table(self.table_name)

    def _rows_to_records(self, rows: list[dict]) -> list[TransactionRecord]:
        records = []
        for row in rows:
            try:
                records.append(row_to_record(row))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(
                    "skipping_malformed_row",
                    table=self.table_name,
                    row_id=row.get("id"),
                    error=str(e),
                )
        return records

    async def _fetch(self, category: Optional[Category]) -> list[TransactionRecord]:
        try:
            query = self._table().select("*").eq("is_active", True)
            if category is not None:
                query = query.eq("jenis", category.value)
            response = query.order("date", desc=True).execute()
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to fetch transactions: {e}")
        return self._rows_to_records(response.data or [])

    async def fetch_by_category(self, category: Category) -> list[TransactionRecord]:
        return await self._fetch(category)

    async def fetch_all(self) -> list[TransactionRecord]:
        return await self._fetch(None)

    async def get_by_id(self, record_id: str) -> Optional[TransactionRecord]:
        try:
            response = (
                self._table()
                .select("*")
                .eq("id", record_id)
                .limit(1)
                .execute()
            )
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to get transaction: {e}")

        rows = response.data or []
        if not rows:
            return None
        try:
            return row_to_record(rows[0])
        except (KeyError, TypeError, ValueError) as e:
            raise StorageError(f"Malformed transaction row {record_id}: {e}")

    async def insert(self, transaction: NewTransaction) -> str:
        try:
            response = self._table().insert(record_payload(transaction)).execute()
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save transaction: {e}")

        rows = response.data or []
        if not rows or "id" not in rows[0]:
            raise StorageError("Insert returned no row id")
        return str(rows[0]["id"])

    async def _update_columns(self, record_id: str, payload: dict[str, Any], action: str) -> None:
        try:
            response = (
                self._table()
                .update(payload)
                .eq("id", record_id)
                .execute()
            )
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to {action} transaction: {e}")

        if not response.data:
            raise NotFoundError(f"Transaction not found: {record_id}")

    async def update(self, record_id: str, changes: TransactionUpdate) -> None:
        await self._update_columns(record_id, update_payload(changes), "update")

    async def soft_delete(self, record_id: str) -> None:
        await self._update_columns(record_id, {"is_active": False}, "delete")
