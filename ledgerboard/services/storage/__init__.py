"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Implements an in-memory backend and Google Sheets, designed to be swappable.
"""

from ledgerboard.services.storage.interface import (
    AuditStorageInterface,
    BackendConnectionError,
    NotFoundError,
    StorageError,
    Subscription,
    TransactionStorageInterface,
)
from ledgerboard.services.storage.subscriptions import (
    ListenerSubscription,
    SubscriptionRegistry,
)
from ledgerboard.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryTransactionStorage,
)
from ledgerboard.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsTransactionStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "Subscription",
    "TransactionStorageInterface",
    # Exceptions
    "BackendConnectionError",
    "NotFoundError",
    "StorageError",
    # Subscriptions
    "ListenerSubscription",
    "SubscriptionRegistry",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryTransactionStorage",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsTransactionStorage",
]
