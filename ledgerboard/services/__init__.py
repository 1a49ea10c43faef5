"""Services package."""

from ledgerboard.services.storage import (
    AuditStorageInterface,
    BackendConnectionError,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsTransactionStorage,
    InMemoryAuditStorage,
    InMemoryTransactionStorage,
    NotFoundError,
    StorageError,
    Subscription,
    TransactionStorageInterface,
)

__all__ = [
    # Storage services
    "AuditStorageInterface",
    "BackendConnectionError",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsTransactionStorage",
    "InMemoryAuditStorage",
    "InMemoryTransactionStorage",
    "NotFoundError",
    "StorageError",
    "Subscription",
    "TransactionStorageInterface",
]
