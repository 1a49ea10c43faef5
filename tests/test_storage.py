"""
Tests for the storage backends and snapshot subscriptions.

The Google Sheets backend is exercised against an in-process fake
worksheet; no API calls are made.
"""

import asyncio
import pytest
from datetime import date, datetime, timezone
from decimal import Decimal

from ledgerboard.models.audit import AuditEventBuilder
from ledgerboard.models.transaction import (
    ExpenseCategory,
    StoredDocument,
    TransactionDraft,
    TransactionType,
    TransactionUpdate,
)
from ledgerboard.services.storage import (
    GoogleSheetsTransactionStorage,
    InMemoryAuditStorage,
    InMemoryTransactionStorage,
    NotFoundError,
    StorageError,
    SubscriptionRegistry,
)
from ledgerboard.services.storage.google_sheets import TRANSACTION_COLUMNS


FIXED_NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def sale_draft(amount="100", day=date(2024, 1, 3)):
    return TransactionDraft(
        transaction_type=TransactionType.SALE,
        amount=Decimal(amount),
        transaction_date=day,
    )


def expense_draft(amount="30", category=ExpenseCategory.FOOD):
    return TransactionDraft(
        transaction_type=TransactionType.EXPENSE,
        amount=Decimal(amount),
        transaction_date=date(2024, 1, 4),
        category=category,
    )


@pytest.fixture
def storage():
    return InMemoryTransactionStorage(clock=lambda: FIXED_NOW)


class TestInMemoryStorage:
    """Tests for the dict-backed backend."""

    def test_add_and_list(self, storage):
        doc_id = asyncio.run(storage.add_transaction("u1", sale_draft()))

        documents = asyncio.run(storage.list_transactions("u1", TransactionType.SALE))

        assert [d.id for d in documents] == [doc_id]
        assert documents[0].data["amount"] == "100"
        assert documents[0].data["date"] == "2024-01-03"
        assert documents[0].data["userId"] == "u1"
        assert documents[0].data["timestamp"] == FIXED_NOW

    def test_users_are_isolated(self, storage):
        asyncio.run(storage.add_transaction("u1", sale_draft()))
        asyncio.run(storage.add_transaction("u2", sale_draft("5")))

        u1_docs = asyncio.run(storage.list_transactions("u1", TransactionType.SALE))
        u2_docs = asyncio.run(storage.list_transactions("u2", TransactionType.SALE))

        assert len(u1_docs) == 1
        assert len(u2_docs) == 1
        assert u2_docs[0].data["amount"] == "5"

    def test_collections_are_separate(self, storage):
        asyncio.run(storage.add_transaction("u1", expense_draft()))

        assert asyncio.run(storage.list_transactions("u1", TransactionType.SALE)) == []
        expenses = asyncio.run(storage.list_transactions("u1", TransactionType.EXPENSE))
        assert expenses[0].data["category"] == "Food"

    def test_update(self, storage):
        doc_id = asyncio.run(storage.add_transaction("u1", sale_draft()))

        updated = asyncio.run(storage.update_transaction(
            "u1", TransactionType.SALE, doc_id, TransactionUpdate(amount=Decimal("120"))
        ))

        documents = asyncio.run(storage.list_transactions("u1", TransactionType.SALE))
        assert updated is True
        assert documents[0].data["amount"] == "120"
        assert documents[0].data["date"] == "2024-01-03"

    def test_update_other_users_document(self, storage):
        """Test that a user cannot edit someone else's record."""
        doc_id = asyncio.run(storage.add_transaction("u1", sale_draft()))

        with pytest.raises(NotFoundError):
            asyncio.run(storage.update_transaction(
                "u2", TransactionType.SALE, doc_id, TransactionUpdate(amount=Decimal("1"))
            ))

    def test_delete(self, storage):
        doc_id = asyncio.run(storage.add_transaction("u1", sale_draft()))

        assert asyncio.run(storage.delete_transaction("u1", TransactionType.SALE, doc_id)) is True
        assert asyncio.run(storage.delete_transaction("u1", TransactionType.SALE, doc_id)) is False
        assert asyncio.run(storage.list_transactions("u1", TransactionType.SALE)) == []

    def test_put_document_keeps_raw_data(self, storage):
        storage.put_document("u1", TransactionType.EXPENSE, "legacy", {"amount": "oops"})

        documents = asyncio.run(storage.list_transactions("u1", TransactionType.EXPENSE))

        assert documents == [StoredDocument(id="legacy", data={"amount": "oops"})]


class TestSubscriptions:
    """Tests for snapshot delivery."""

    def test_current_snapshot_delivered_on_subscribe(self, storage):
        asyncio.run(storage.add_transaction("u1", sale_draft()))
        received = []

        storage.subscribe("u1", TransactionType.SALE, received.append)

        assert len(received) == 1
        assert len(received[0]) == 1

    def test_snapshot_after_every_change(self, storage):
        received = []
        storage.subscribe("u1", TransactionType.SALE, received.append)

        doc_id = asyncio.run(storage.add_transaction("u1", sale_draft()))
        asyncio.run(storage.update_transaction(
            "u1", TransactionType.SALE, doc_id, TransactionUpdate(amount=Decimal("7"))
        ))
        asyncio.run(storage.delete_transaction("u1", TransactionType.SALE, doc_id))

        assert [len(snapshot) for snapshot in received] == [0, 1, 1, 0]
        assert received[2][0].data["amount"] == "7"

    def test_other_users_changes_not_delivered(self, storage):
        received = []
        storage.subscribe("u1", TransactionType.SALE, received.append)

        asyncio.run(storage.add_transaction("u2", sale_draft()))
        asyncio.run(storage.add_transaction("u1", expense_draft()))

        assert received == [[]]

    def test_unsubscribe_stops_delivery(self, storage):
        received = []
        subscription = storage.subscribe("u1", TransactionType.SALE, received.append)

        subscription.unsubscribe()
        subscription.unsubscribe()
        asyncio.run(storage.add_transaction("u1", sale_draft()))

        assert subscription.active is False
        assert len(received) == 1
        assert storage.subscription_count == 0

    def test_close_drops_all_subscriptions(self, storage):
        first = storage.subscribe("u1", TransactionType.SALE, lambda docs: None)
        second = storage.subscribe("u1", TransactionType.EXPENSE, lambda docs: None)

        storage.close()

        assert first.active is False
        assert second.active is False
        assert storage.subscription_count == 0

    def test_listener_gets_a_copy(self, storage):
        storage.put_document("u1", TransactionType.SALE, "s1", {"amount": 1})
        received = []
        storage.subscribe("u1", TransactionType.SALE, received.append)

        received[0][0].data["amount"] = 999

        documents = asyncio.run(storage.list_transactions("u1", TransactionType.SALE))
        assert documents[0].data["amount"] == 1

    def test_failing_listener_reports_error(self):
        """A listener that raises does not stop delivery to the others."""
        registry = SubscriptionRegistry()
        errors = []
        received = []

        def broken(documents):
            raise RuntimeError("render failed")

        registry.add("u1", TransactionType.SALE, broken, errors.append)
        registry.add("u1", TransactionType.SALE, received.append)

        registry.publish("u1", TransactionType.SALE, [StoredDocument(id="s1")])

        assert len(received) == 1
        assert len(errors) == 1
        assert str(errors[0]) == "render failed"


class TestInMemoryAuditStorage:
    """Tests for the list-backed audit log."""

    def test_recent_events_newest_first_and_filtered(self):
        audit_storage = InMemoryAuditStorage()
        for hour, (user_id, entity_id) in enumerate([("u1", "a"), ("u2", "b"), ("u1", "c")]):
            event = AuditEventBuilder.transaction_deleted(user_id, "sale", entity_id)
            event.timestamp = FIXED_NOW.replace(hour=hour)
            asyncio.run(audit_storage.append_event(event))

        events = asyncio.run(audit_storage.get_recent_events(user_id="u1"))

        assert [e.entity_id for e in events] == ["c", "a"]
        assert len(asyncio.run(audit_storage.get_recent_events(limit=1))) == 1


# =============================================================================
# Google Sheets backend against a fake worksheet
# =============================================================================

class FakeWorksheet:
    def __init__(self):
        self.rows = [list(TRANSACTION_COLUMNS)]
        self.fail_reads = False

    def get_all_values(self):
        if self.fail_reads:
            raise RuntimeError("quota exceeded")
        return [list(row) for row in self.rows]

    def append_row(self, row, value_input_option=None):
        self.rows.append(list(row))

    def update(self, range_name=None, values=None):
        index = int(range_name.split(":")[0][1:]) - 1
        self.rows[index] = list(values[0])

    def delete_rows(self, index):
        del self.rows[index - 1]


class FakeSheetsClient:
    def __init__(self):
        self.sheets = {
            TransactionType.SALE: FakeWorksheet(),
            TransactionType.EXPENSE: FakeWorksheet(),
        }
        self.connected = False

    def connect(self):
        self.connected = True

    def disconnect(self):
        self.connected = False

    def get_transactions_sheet(self, transaction_type):
        return self.sheets[transaction_type]


@pytest.fixture
def sheets_client():
    return FakeSheetsClient()


@pytest.fixture
def sheets_storage(sheets_client):
    storage = GoogleSheetsTransactionStorage(sheets_client)
    storage.open()
    return storage


class TestGoogleSheetsStorage:
    """Tests for the Sheets backend row mapping and user filtering."""

    def test_open_and_close(self, sheets_client, sheets_storage):
        assert sheets_client.connected is True
        sheets_storage.close()
        assert sheets_client.connected is False

    def test_add_writes_row(self, sheets_client, sheets_storage):
        doc_id = asyncio.run(sheets_storage.add_transaction("u1", expense_draft()))

        row = sheets_client.sheets[TransactionType.EXPENSE].rows[1]

        assert row[:6] == [doc_id, "u1", "expense", "30", "2024-01-04", "Food"]
        assert row[6]  # timestamp

    def test_rows_filtered_by_user(self, sheets_client, sheets_storage):
        asyncio.run(sheets_storage.add_transaction("u1", sale_draft("10")))
        asyncio.run(sheets_storage.add_transaction("u2", sale_draft("20")))

        documents = asyncio.run(sheets_storage.list_transactions("u1", TransactionType.SALE))

        assert len(documents) == 1
        assert documents[0].data["amount"] == "10"
        assert "category" not in documents[0].data

    def test_update_and_delete(self, sheets_client, sheets_storage):
        doc_id = asyncio.run(sheets_storage.add_transaction("u1", sale_draft("10")))

        asyncio.run(sheets_storage.update_transaction(
            "u1", TransactionType.SALE, doc_id, TransactionUpdate(amount=Decimal("15"))
        ))
        documents = asyncio.run(sheets_storage.list_transactions("u1", TransactionType.SALE))
        assert documents[0].data["amount"] == "15"
        assert documents[0].data["date"] == "2024-01-03"

        assert asyncio.run(sheets_storage.delete_transaction(
            "u1", TransactionType.SALE, doc_id
        )) is True
        assert sheets_client.sheets[TransactionType.SALE].rows == [TRANSACTION_COLUMNS]

    def test_update_missing_row(self, sheets_storage):
        with pytest.raises(NotFoundError):
            asyncio.run(sheets_storage.update_transaction(
                "u1", TransactionType.SALE, "nope", TransactionUpdate(amount=Decimal("1"))
            ))

    def test_delete_other_users_row(self, sheets_storage):
        doc_id = asyncio.run(sheets_storage.add_transaction("u1", sale_draft()))

        assert asyncio.run(sheets_storage.delete_transaction(
            "u2", TransactionType.SALE, doc_id
        )) is False

    def test_subscribers_see_writes_and_refresh(self, sheets_client, sheets_storage):
        received = []
        sheets_storage.subscribe("u1", TransactionType.SALE, received.append)

        asyncio.run(sheets_storage.add_transaction("u1", sale_draft()))
        # Someone edits the spreadsheet directly
        sheets_client.sheets[TransactionType.SALE].rows.append(
            ["manual", "u1", "sale", "abc", "", "", ""]
        )
        sheets_storage.refresh("u1")

        assert [len(snapshot) for snapshot in received] == [0, 1, 2]
        assert received[-1][1].data == {"userId": "u1", "type": "sale", "amount": "abc"}

    def test_read_failure_goes_to_error_listener(self, sheets_client, sheets_storage):
        errors = []
        received = []
        sheets_client.sheets[TransactionType.SALE].fail_reads = True

        sheets_storage.subscribe("u1", TransactionType.SALE, received.append, errors.append)

        assert received == []
        assert len(errors) == 1
        assert isinstance(errors[0], StorageError)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
