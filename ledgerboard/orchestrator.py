"""
Main Orchestrator for Ledgerboard

This module ties together all the components and defines the two flows
the UI drives:
1. Dashboard session (subscribe → normalize → aggregate → render)
2. Transaction writes (form input → validate → save/edit/delete → audit)

DESIGN DECISION: The storage client is passed in explicitly. A session
opens its subscriptions on start and drops them on close; nothing is
initialized at import time.

The aggregation engine never sees storage. The session hands it the
latest complete snapshot of sales and expenses and replaces the previous
result wholesale.
"""

from collections.abc import Callable
from datetime import date
from typing import Any, Optional
from uuid import UUID

import structlog

from ledgerboard.analytics import build_dashboard, newest_first
from ledgerboard.audit import AuditLogger, create_correlation_id
from ledgerboard.config import get_settings
from ledgerboard.config.settings import Settings
from ledgerboard.models.analytics import DashboardSnapshot
from ledgerboard.models.transaction import (
    CoercionIssue,
    Expense,
    Sale,
    StoredDocument,
    Transaction,
    TransactionType,
    TransactionUpdate,
    ValidationResult,
)
from ledgerboard.services.storage import (
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
from ledgerboard.validation import TransactionNormalizer, TransactionValidator


logger = structlog.get_logger(__name__)


class TransactionOperationError(Exception):
    """
    A write could not be completed.

    `str(error)` is a generic notice that is safe to show to the user;
    `retryable` says whether trying again might help.
    """

    def __init__(self, message: str, retryable: bool = True):
        super().__init__(message)
        self.retryable = retryable


class DashboardSession:
    """
    Live view of one user's books.

    Lifecycle:
        session = DashboardSession(storage, user_id, on_update=render)
        session.open()    # subscribes, first snapshot computed immediately
        ...               # every change recomputes session.dashboard
        session.close()   # unsubscribes

    Also usable as a context manager.
    """

    def __init__(
        self,
        storage: TransactionStorageInterface,
        user_id: str,
        on_update: Optional[Callable[[DashboardSnapshot], None]] = None,
        today: Optional[date] = None,
    ):
        """
        Args:
            storage: Injected storage backend (already opened)
            user_id: The signed-in user
            on_update: Called with the new DashboardSnapshot after every change
            today: Fallback date for records with unreadable dates
        """
        self._storage = storage
        self._user_id = user_id
        self._on_update = on_update
        self._today = today

        self._subscriptions: list[Subscription] = []
        self._opening = False
        self._sales: list[Sale] = []
        self._expenses: list[Expense] = []
        self._issues: dict[TransactionType, list[CoercionIssue]] = {
            transaction_type: [] for transaction_type in TransactionType
        }
        self._dashboard = DashboardSnapshot()
        self._last_error: Optional[Exception] = None

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    @property
    def is_open(self) -> bool:
        return bool(self._subscriptions)

    def open(self) -> "DashboardSession":
        if self.is_open:
            return self

        self._opening = True
        try:
            for transaction_type in TransactionType:
                self._subscriptions.append(self._storage.subscribe(
                    self._user_id,
                    transaction_type,
                    on_snapshot=self._snapshot_handler(transaction_type),
                    on_error=self._handle_error,
                ))
        finally:
            self._opening = False

        logger.info("dashboard_session_opened", user_id=self._user_id)
        self._recompute()
        return self

    def close(self) -> None:
        for subscription in self._subscriptions:
            subscription.unsubscribe()
        if self._subscriptions:
            logger.info("dashboard_session_closed", user_id=self._user_id)
        self._subscriptions = []

    def __enter__(self) -> "DashboardSession":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # -------------------------------------------------------------------------
    # Snapshot handling
    # -------------------------------------------------------------------------

    def _snapshot_handler(
        self,
        transaction_type: TransactionType,
    ) -> Callable[[list[StoredDocument]], None]:
        def handle(documents: list[StoredDocument]) -> None:
            self._apply_snapshot(transaction_type, documents)
        return handle

    def _apply_snapshot(
        self,
        transaction_type: TransactionType,
        documents: list[StoredDocument],
    ) -> None:
        normalizer = TransactionNormalizer(owner_id=self._user_id, today=self._today)
        records, issues = normalizer.normalize_snapshot(transaction_type, documents)

        if transaction_type is TransactionType.SALE:
            self._sales = records
        else:
            self._expenses = records
        self._issues[transaction_type] = issues
        self._last_error = None

        if issues:
            logger.warning(
                "records_coerced",
                user_id=self._user_id,
                collection=transaction_type.collection_name,
                issues=[issue.model_dump() for issue in issues],
            )

        if not self._opening:
            self._recompute()

    def _recompute(self) -> None:
        self._dashboard = build_dashboard(self._sales, self._expenses)
        if self._on_update is not None:
            self._on_update(self._dashboard)

    def _handle_error(self, error: Exception) -> None:
        logger.error("dashboard_snapshot_error", user_id=self._user_id, error=str(error))
        self._last_error = error

    # -------------------------------------------------------------------------
    # Read access for the UI
    # -------------------------------------------------------------------------

    @property
    def user_id(self) -> str:
        return self._user_id

    @property
    def dashboard(self) -> DashboardSnapshot:
        return self._dashboard

    @property
    def sales(self) -> list[Sale]:
        return list(self._sales)

    @property
    def expenses(self) -> list[Expense]:
        return list(self._expenses)

    @property
    def coercion_issues(self) -> list[CoercionIssue]:
        return [issue for issues in self._issues.values() for issue in issues]

    @property
    def last_error(self) -> Optional[Exception]:
        return self._last_error

    def transaction_log(self, transaction_type: TransactionType) -> list[Transaction]:
        """Records of one type, most recently saved first."""
        if transaction_type is TransactionType.SALE:
            return newest_first(self._sales)
        return newest_first(self._expenses)


class TransactionFlow:
    """
    Orchestrates writes.

    Flow:
    1. Validate → Two-stage validation of the form input
    2. Write → add / update / delete through the storage interface
    3. Audit → Every write and every failure is logged

    The dashboard is not touched here: storage pushes a new snapshot to
    any open session after a successful write.
    """

    def __init__(
        self,
        storage: TransactionStorageInterface,
        validator: Optional[TransactionValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._validator = validator or TransactionValidator()
        self._audit_logger = audit_logger or AuditLogger()

    @property
    def validator(self) -> TransactionValidator:
        return self._validator

    async def _fail(
        self,
        user_id: str,
        operation: str,
        transaction_type: TransactionType,
        error: StorageError,
        transaction_id: Optional[str],
        correlation_id: UUID,
    ) -> TransactionOperationError:
        await self._audit_logger.log_storage_failure(
            user_id=user_id,
            operation=operation,
            transaction_type=transaction_type.label,
            error_message=str(error),
            transaction_id=transaction_id,
            correlation_id=correlation_id,
        )
        if isinstance(error, NotFoundError):
            return TransactionOperationError(
                f"This {transaction_type.label} no longer exists.",
                retryable=False,
            )
        return TransactionOperationError(
            f"Failed to {operation} {transaction_type.label}. Please try again."
        )

    async def create(
        self,
        user_id: str,
        transaction_type: TransactionType,
        amount: Any,
        transaction_date: Any = None,
        category: Any = None,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[Optional[str], ValidationResult]:
        """
        Validate and save a new transaction.

        Returns:
            (transaction_id, validation_result). transaction_id is None
            when validation failed and nothing was saved.

        Raises:
            TransactionOperationError: If the backend rejected the write
        """
        correlation_id = correlation_id or create_correlation_id()

        draft, result = self._validator.validate(
            transaction_type,
            amount=amount,
            transaction_date=transaction_date,
            category=category,
        )

        if draft is None:
            await self._audit_logger.log_transaction_rejected(
                user_id=user_id,
                transaction_type=transaction_type.label,
                issues=[issue.model_dump() for issue in result.issues],
                correlation_id=correlation_id,
            )
            return None, result

        try:
            transaction_id = await self._storage.add_transaction(user_id, draft)
        except StorageError as e:
            raise await self._fail(
                user_id, "save", transaction_type, e, None, correlation_id
            ) from e

        await self._audit_logger.log_transaction_created(
            user_id=user_id,
            transaction_type=transaction_type.label,
            transaction_id=transaction_id,
            amount=str(draft.amount),
            correlation_id=correlation_id,
        )
        return transaction_id, result

    async def update(
        self,
        user_id: str,
        transaction_type: TransactionType,
        transaction_id: str,
        update: TransactionUpdate,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """
        Apply an edit. Returns False when the edit changes nothing.

        Raises:
            TransactionOperationError: If the backend rejected the write
        """
        if update.is_empty:
            return False
        if transaction_type is TransactionType.SALE and update.category is not None:
            update = update.model_copy(update={"category": None})
            if update.is_empty:
                return False

        correlation_id = correlation_id or create_correlation_id()

        try:
            await self._storage.update_transaction(
                user_id, transaction_type, transaction_id, update
            )
        except StorageError as e:
            raise await self._fail(
                user_id, "update", transaction_type, e, transaction_id, correlation_id
            ) from e

        await self._audit_logger.log_transaction_updated(
            user_id=user_id,
            transaction_type=transaction_type.label,
            transaction_id=transaction_id,
            changed_fields=update.to_document_fields(),
            correlation_id=correlation_id,
        )
        return True

    async def delete(
        self,
        user_id: str,
        transaction_type: TransactionType,
        transaction_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """
        Delete a transaction. Returns False if it was already gone.

        Raises:
            TransactionOperationError: If the backend rejected the delete
        """
        correlation_id = correlation_id or create_correlation_id()

        try:
            deleted = await self._storage.delete_transaction(
                user_id, transaction_type, transaction_id
            )
        except StorageError as e:
            raise await self._fail(
                user_id, "delete", transaction_type, e, transaction_id, correlation_id
            ) from e

        if deleted:
            await self._audit_logger.log_transaction_deleted(
                user_id=user_id,
                transaction_type=transaction_type.label,
                transaction_id=transaction_id,
                correlation_id=correlation_id,
            )
        return deleted


def create_app_components(
    settings: Optional[Settings] = None,
) -> tuple[TransactionStorageInterface, TransactionFlow, AuditLogger]:
    """
    Factory function to create all application components.

    The storage backend is chosen by `storage_backend` in the app settings.
    If Google Sheets is selected but not configured, falls back to
    in-memory storage so the dashboard still starts.

    Returns:
        (storage, transaction_flow, audit_logger), storage already opened
    """
    settings = settings or get_settings()
    app_settings = settings.app

    storage: TransactionStorageInterface
    if app_settings.storage_backend == "google_sheets":
        try:
            sheets_client = GoogleSheetsClient(settings.google_sheets)
            storage = GoogleSheetsTransactionStorage(sheets_client)
            storage.open()
            audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
        except Exception as e:
            # Storage not configured - continue without it
            logger.warning("storage_not_configured", backend="google_sheets", error=str(e))
            storage = InMemoryTransactionStorage()
            storage.open()
            audit_logger = AuditLogger(InMemoryAuditStorage())
    else:
        storage = InMemoryTransactionStorage()
        storage.open()
        audit_logger = AuditLogger(InMemoryAuditStorage())

    transaction_flow = TransactionFlow(
        storage=storage,
        validator=TransactionValidator(app_settings),
        audit_logger=audit_logger,
    )

    return storage, transaction_flow, audit_logger
