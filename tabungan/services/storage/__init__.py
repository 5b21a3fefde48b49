"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Supabase is the default backend; Google Sheets and in-memory storage
implement the same interface.
"""

from tabungan.services.storage.interface import (
    AuditStorageInterface,
    NotFoundError,
    StorageConnectionError,
    StorageError,
    TransactionStorageInterface,
)
from tabungan.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryTransactionStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "TransactionStorageInterface",
    # Exceptions
    "NotFoundError",
    "StorageConnectionError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryTransactionStorage",
]
