"""
In-Memory Storage Implementation

Used for tests and for running the dashboard without a configured
backend. Behaves like the real backends: documents are keyed per user,
the storage assigns ids and timestamps, and subscribers get a fresh
snapshot after every change.

Nothing survives a restart.
"""

from collections.abc import Callable
from datetime import datetime
from typing import Any, Optional
from uuid import uuid4

import structlog

from ledgerboard.models.audit import AuditEvent
from ledgerboard.models.transaction import (
    StoredDocument,
    TransactionDraft,
    TransactionType,
    TransactionUpdate,
    utc_now,
)
from ledgerboard.services.storage.interface import (
    AuditStorageInterface,
    ErrorListener,
    NotFoundError,
    SnapshotListener,
    Subscription,
    TransactionStorageInterface,
)
from ledgerboard.services.storage.subscriptions import SubscriptionRegistry


logger = structlog.get_logger(__name__)

CollectionKey = tuple[str, TransactionType]


class InMemoryTransactionStorage(TransactionStorageInterface):
    """Dict-backed transaction storage."""

    def __init__(self, clock: Callable[[], datetime] = utc_now):
        """
        Args:
            clock: Source of the server-assigned timestamps
        """
        self._clock = clock
        self._collections: dict[CollectionKey, dict[str, dict[str, Any]]] = {}
        self._subscriptions = SubscriptionRegistry()

    def close(self) -> None:
        self._subscriptions.clear()

    def _collection(
        self,
        user_id: str,
        transaction_type: TransactionType,
    ) -> dict[str, dict[str, Any]]:
        return self._collections.setdefault((user_id, transaction_type), {})

    def _snapshot(
        self,
        user_id: str,
        transaction_type: TransactionType,
    ) -> list[StoredDocument]:
        return [
            StoredDocument(id=doc_id, data=dict(data))
            for doc_id, data in self._collection(user_id, transaction_type).items()
        ]

    def _publish(self, user_id: str, transaction_type: TransactionType) -> None:
        if self._subscriptions.has_listeners(user_id, transaction_type):
            self._subscriptions.publish(
                user_id, transaction_type, self._snapshot(user_id, transaction_type)
            )

    def put_document(
        self,
        user_id: str,
        transaction_type: TransactionType,
        document_id: str,
        data: dict[str, Any],
    ) -> None:
        """
        Store a raw document as-is, bypassing all validation.

        Used to load existing or legacy data (which may be malformed).
        """
        self._collection(user_id, transaction_type)[document_id] = dict(data)
        self._publish(user_id, transaction_type)

    async def add_transaction(
        self,
        user_id: str,
        draft: TransactionDraft,
    ) -> str:
        document_id = uuid4().hex
        data = draft.to_document_fields(user_id)
        data["timestamp"] = self._clock()

        self._collection(user_id, draft.transaction_type)[document_id] = data
        logger.debug(
            "transaction_stored",
            user_id=user_id,
            collection=draft.transaction_type.collection_name,
            document_id=document_id,
        )
        self._publish(user_id, draft.transaction_type)
        return document_id

    async def update_transaction(
        self,
        user_id: str,
        transaction_type: TransactionType,
        transaction_id: str,
        update: TransactionUpdate,
    ) -> bool:
        collection = self._collection(user_id, transaction_type)
        if transaction_id not in collection:
            raise NotFoundError(
                f"{transaction_type.label.capitalize()} not found: {transaction_id}"
            )

        collection[transaction_id].update(update.to_document_fields())
        collection[transaction_id]["timestamp"] = self._clock()
        self._publish(user_id, transaction_type)
        return True

    async def delete_transaction(
        self,
        user_id: str,
        transaction_type: TransactionType,
        transaction_id: str,
    ) -> bool:
        collection = self._collection(user_id, transaction_type)
        if collection.pop(transaction_id, None) is None:
            return False
        self._publish(user_id, transaction_type)
        return True

    async def list_transactions(
        self,
        user_id: str,
        transaction_type: TransactionType,
    ) -> list[StoredDocument]:
        return self._snapshot(user_id, transaction_type)

    def subscribe(
        self,
        user_id: str,
        transaction_type: TransactionType,
        on_snapshot: SnapshotListener,
        on_error: Optional[ErrorListener] = None,
    ) -> Subscription:
        subscription = self._subscriptions.add(
            user_id, transaction_type, on_snapshot, on_error
        )
        subscription.deliver(self._snapshot(user_id, transaction_type))
        return subscription

    @property
    def subscription_count(self) -> int:
        return len(self._subscriptions)


class InMemoryAuditStorage(AuditStorageInterface):
    """List-backed audit log."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_recent_events(
        self,
        limit: int = 100,
        user_id: Optional[str] = None,
    ) -> list[AuditEvent]:
        events = [
            event for event in self._events
            if user_id is None or event.user_id == user_id
        ]
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
