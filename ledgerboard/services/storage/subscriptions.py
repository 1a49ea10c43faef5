"""
Snapshot Subscriptions

Bookkeeping shared by the storage backends: who is listening to which
user's collection, and delivery of snapshots to them.

Delivery is synchronous and happens on the caller's thread. A listener
that raises does not stop delivery to the others; the failure is logged
and handed to that listener's error callback.
"""

from collections import defaultdict
from typing import Optional

import structlog

from ledgerboard.models.transaction import StoredDocument, TransactionType
from ledgerboard.services.storage.interface import (
    ErrorListener,
    SnapshotListener,
    Subscription,
)


logger = structlog.get_logger(__name__)

SubscriptionKey = tuple[str, TransactionType]


class ListenerSubscription(Subscription):
    """A single listener registered with a SubscriptionRegistry."""

    def __init__(
        self,
        registry: "SubscriptionRegistry",
        key: SubscriptionKey,
        on_snapshot: SnapshotListener,
        on_error: Optional[ErrorListener] = None,
    ):
        self._registry = registry
        self.key = key
        self.on_snapshot = on_snapshot
        self.on_error = on_error
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def unsubscribe(self) -> None:
        if self._active:
            self._active = False
            self._registry.remove(self)

    def deliver(self, documents: list[StoredDocument]) -> None:
        if not self._active:
            return
        try:
            self.on_snapshot([doc.model_copy(deep=True) for doc in documents])
        except Exception as e:
            user_id, transaction_type = self.key
            logger.error(
                "snapshot_listener_failed",
                user_id=user_id,
                collection=transaction_type.collection_name,
                error=str(e),
            )
            self.fail(e)

    def fail(self, error: Exception) -> None:
        if self._active and self.on_error is not None:
            self.on_error(error)


class SubscriptionRegistry:
    """Active listeners per (user, collection)."""

    def __init__(self):
        self._listeners: dict[SubscriptionKey, list[ListenerSubscription]] = defaultdict(list)

    def add(
        self,
        user_id: str,
        transaction_type: TransactionType,
        on_snapshot: SnapshotListener,
        on_error: Optional[ErrorListener] = None,
    ) -> ListenerSubscription:
        key = (user_id, transaction_type)
        subscription = ListenerSubscription(self, key, on_snapshot, on_error)
        self._listeners[key].append(subscription)
        logger.debug(
            "subscription_added",
            user_id=user_id,
            collection=transaction_type.collection_name,
        )
        return subscription

    def remove(self, subscription: ListenerSubscription) -> None:
        listeners = self._listeners.get(subscription.key, [])
        if subscription in listeners:
            listeners.remove(subscription)
        if not listeners:
            self._listeners.pop(subscription.key, None)

    def has_listeners(self, user_id: str, transaction_type: TransactionType) -> bool:
        return bool(self._listeners.get((user_id, transaction_type)))

    def publish(
        self,
        user_id: str,
        transaction_type: TransactionType,
        documents: list[StoredDocument],
    ) -> None:
        """Deliver a snapshot to every listener of one collection."""
        # Copy: a listener may unsubscribe while we iterate
        for subscription in list(self._listeners.get((user_id, transaction_type), [])):
            subscription.deliver(documents)

    def publish_error(
        self,
        user_id: str,
        transaction_type: TransactionType,
        error: Exception,
    ) -> None:
        for subscription in list(self._listeners.get((user_id, transaction_type), [])):
            subscription.fail(error)

    def clear(self) -> None:
        """Deactivate every subscription."""
        for listeners in list(self._listeners.values()):
            for subscription in list(listeners):
                subscription.unsubscribe()
        self._listeners.clear()

    def __len__(self) -> int:
        return sum(len(listeners) for listeners in self._listeners.values())
