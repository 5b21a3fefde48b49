"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Run against Supabase in production and Google Sheets as an alternative
2. Use in-memory storage for testing and offline demos
3. Keep the aggregation engine and UI decoupled from the backend

Contract every implementation honors:
- reads only ever return active records, newest date first
- soft_delete flips active to False; records are never removed
- update never touches category or the active flag
- failures raise StorageError (or a subclass); nothing is retried here
"""

from abc import ABC, abstractmethod
from typing import Optional

from tabungan.models.transaction import (
    Category,
    NewTransaction,
    TransactionRecord,
    TransactionUpdate,
)
from tabungan.models.audit import AuditEvent


class TransactionStorageInterface(ABC):
    """
    Abstract interface for transaction storage operations.

    Any storage implementation (Supabase, Google Sheets, etc.)
    must implement these methods.
    """

    @abstractmethod
    async def fetch_by_category(self, category: Category) -> list[TransactionRecord]:
        """
        Active records of one category, ordered by date descending.

        Raises:
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    async def fetch_all(self) -> list[TransactionRecord]:
        """
        Active records of every category, ordered by date descending.

        Raises:
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    async def get_by_id(self, record_id: str) -> Optional[TransactionRecord]:
        """
        Retrieve one record for editing.

        Returns:
            The record if found, None otherwise (inactive records included,
            so the caller can tell a deleted record apart)
        """
        pass

    @abstractmethod
    async def insert(self, transaction: NewTransaction) -> str:
        """
        Store a new active record.

        Returns:
            The id assigned by storage

        Raises:
            StorageError: If insert fails
        """
        pass

    @abstractmethod
    async def update(self, record_id: str, changes: TransactionUpdate) -> None:
        """
        Change amount, note and/or date of a record.

        Raises:
            NotFoundError: If the record doesn't exist
            StorageError: If update fails
        """
        pass

    @abstractmethod
    async def soft_delete(self, record_id: str) -> None:
        """
        Mark a record inactive.

        Raises:
            NotFoundError: If the record doesn't exist
            StorageError: If the update fails
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        """
        Get the most recent audit events (newest first).
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class StorageConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
