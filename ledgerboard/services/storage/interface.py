"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap the backend (Google Sheets today, a document database later)
2. Use in-memory storage for testing and offline mode
3. Inject the client explicitly instead of sharing a module-level singleton
4. Keep analytics decoupled from how snapshots are delivered

Data is keyed per user: every call names the owning user, and a backend
must never return one user's documents to another.

Real-time updates are modelled as subscriptions: a listener receives the
complete current snapshot of one collection right away and again after
every change, until it unsubscribes.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Optional

from ledgerboard.models.audit import AuditEvent
from ledgerboard.models.transaction import (
    StoredDocument,
    TransactionDraft,
    TransactionType,
    TransactionUpdate,
)


SnapshotListener = Callable[[list[StoredDocument]], None]
ErrorListener = Callable[[Exception], None]


class Subscription(ABC):
    """Handle returned by subscribe(); call unsubscribe() to stop updates."""

    @abstractmethod
    def unsubscribe(self) -> None:
        """Stop delivering snapshots. Safe to call more than once."""
        pass

    @property
    @abstractmethod
    def active(self) -> bool:
        pass


class TransactionStorageInterface(ABC):
    """
    Abstract interface for transaction storage operations.

    Any storage implementation must implement these methods.
    """

    def open(self) -> None:
        """Acquire backend resources. Called once at session start."""

    def close(self) -> None:
        """Release backend resources and drop all subscriptions."""

    def __enter__(self) -> "TransactionStorageInterface":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @abstractmethod
    async def add_transaction(
        self,
        user_id: str,
        draft: TransactionDraft,
    ) -> str:
        """
        Save a new transaction.

        Args:
            user_id: Owner of the transaction
            draft: The validated form input

        Returns:
            The ID assigned by the backend

        Raises:
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def update_transaction(
        self,
        user_id: str,
        transaction_type: TransactionType,
        transaction_id: str,
        update: TransactionUpdate,
    ) -> bool:
        """
        Apply a partial edit. The ordering timestamp is refreshed.

        Returns:
            True if updated successfully

        Raises:
            StorageError: If update fails
            NotFoundError: If the transaction doesn't exist for this user
        """
        pass

    @abstractmethod
    async def delete_transaction(
        self,
        user_id: str,
        transaction_type: TransactionType,
        transaction_id: str,
    ) -> bool:
        """
        Delete a transaction.

        Returns:
            True if deleted, False if it did not exist
        """
        pass

    @abstractmethod
    async def list_transactions(
        self,
        user_id: str,
        transaction_type: TransactionType,
    ) -> list[StoredDocument]:
        """
        Return the current documents of one of the user's collections.

        Documents are returned raw; normalize them before use.
        """
        pass

    @abstractmethod
    def subscribe(
        self,
        user_id: str,
        transaction_type: TransactionType,
        on_snapshot: SnapshotListener,
        on_error: Optional[ErrorListener] = None,
    ) -> Subscription:
        """
        Listen to one of the user's collections.

        The current snapshot is delivered before this returns.

        Args:
            user_id: Owner of the collection
            transaction_type: Which collection (sales or expenses)
            on_snapshot: Called with the complete list of documents
            on_error: Called when reading or delivering a snapshot fails

        Returns:
            Subscription handle
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
    async def get_recent_events(
        self,
        limit: int = 100,
        user_id: Optional[str] = None,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events, newest first.

        Args:
            limit: Maximum number of events to return
            user_id: Only events concerning this user
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class BackendConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
