"""
Finance Session

This module ties the components together for one signed-in user:
- the AuthProvider says who is signed in
- the FinanceRepository holds that user's data in memory
- the RemoteStore persists it and reports remote changes
- the JsonSnapshotCache keeps a local fallback copy
- the AuditLogger records every mutation and failure

DESIGN DECISION: The repository is the single writer of in-memory state.
A mutation is validated locally, written to the remote store, and only then
applied to the repository. If the remote write fails nothing changes
locally and nothing is queued. Remote change notifications trigger a full
reload, and the last full reload wins.

All mutation pipelines and reloads run under one asyncio.Lock, so a remote
write and its local application never interleave with another mutation.
"""

import asyncio
from datetime import date
from typing import Any, Mapping, Optional, Union

import structlog
from pydantic import ValidationError as PydanticValidationError

from finance_tracker.aggregation import (
    annual_data,
    category_breakdown,
    current_month,
    current_year,
    default_month,
    default_year,
    filter_by_type,
    monthly_breakdown,
    monthly_data,
    month_options,
    months_with_data,
    parse_month_key,
    sort_by_date,
    years_with_data,
)
from finance_tracker.audit import AuditLogger, create_correlation_id
from finance_tracker.config import Settings, get_settings
from finance_tracker.errors import (
    AuthenticationRequiredError,
    FinanceError,
    NotFoundError,
    RemoteUnavailableError,
    StorageError,
    ValidationError,
)
from finance_tracker.models.finance import (
    AnnualData,
    AnnualGoals,
    CategoryTotal,
    FinanceSnapshot,
    GoalProgress,
    MonthlyData,
    Transaction,
    TransactionDraft,
    TransactionType,
    TransactionUpdate,
    validate_draft,
    validate_goals,
    validate_update,
)
from finance_tracker.progress import annual_progress, monthly_progress
from finance_tracker.repository import FinanceRepository
from finance_tracker.services.auth import AuthProvider, InMemoryAuthProvider
from finance_tracker.services.storage import (
    GoogleSheetsClient,
    GoogleSheetsRemoteStore,
    InMemoryRemoteStore,
    JsonSnapshotCache,
    RemoteStore,
    Subscription,
)


class FinanceSession:
    """
    Presentation-facing facade over one user's finance data.

    Queries are synchronous and read the in-memory repository.
    Mutations are async because they write through to the remote store.
    """

    def __init__(
        self,
        auth: AuthProvider,
        remote_store: RemoteStore,
        repository: Optional[FinanceRepository] = None,
        cache: Optional[JsonSnapshotCache] = None,
        audit_logger: Optional[AuditLogger] = None,
        month_options_start_year: int = 2020,
    ):
        self._auth = auth
        self._remote = remote_store
        self._repository = repository or FinanceRepository()
        self._cache = cache
        self._audit = audit_logger or AuditLogger()
        self._month_options_start_year = month_options_start_year

        self._lock = asyncio.Lock()
        self._user_id: Optional[str] = None
        self._subscription: Optional[Subscription] = None
        self._auth_unsubscribe = None
        self._last_sync_error: Optional[Exception] = None

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    @property
    def user_id(self) -> Optional[str]:
        return self._user_id

    @property
    def repository(self) -> FinanceRepository:
        return self._repository

    @property
    def remote_store(self) -> RemoteStore:
        return self._remote

    @property
    def cache(self) -> Optional[JsonSnapshotCache]:
        return self._cache

    @property
    def audit_logger(self) -> AuditLogger:
        return self._audit

    @property
    def last_sync_error(self) -> Optional[Exception]:
        """The error of the last failed reload, cleared by a successful one."""
        return self._last_sync_error

    async def start(self) -> None:
        """
        Follow the auth provider and load data for whoever is signed in.

        Raises:
            RemoteUnavailableError: if the initial load fails (cached data,
                                    if any, has been loaded)
        """
        if self._auth_unsubscribe is None:
            self._auth_unsubscribe = self._auth.on_auth_change(self._on_auth_change)
        await self._switch_user(self._auth.current_user())

    async def close(self) -> None:
        if self._auth_unsubscribe is not None:
            self._auth_unsubscribe()
            self._auth_unsubscribe = None
        self._drop_subscription()

    async def _on_auth_change(self, user_id: Optional[str]) -> None:
        await self._switch_user(user_id)

    async def _switch_user(self, user_id: Optional[str]) -> None:
        if user_id == self._user_id:
            return

        previous = self._user_id
        self._drop_subscription()

        # Never let one user's data survive into another user's session
        async with self._lock:
            self._repository.clear()
            self._user_id = user_id
            self._last_sync_error = None

        if user_id is None:
            await self._audit.log_signed_out(previous)
            return

        await self._audit.log_signed_in(user_id)
        await self.reload()

    # -------------------------------------------------------------------------
    # Sync with the remote store
    # -------------------------------------------------------------------------

    async def reload(self) -> FinanceSnapshot:
        """
        Replace the in-memory data with a full load from the remote store.

        When the store is unavailable the repository keeps its last
        snapshot; if it is empty, the local cache seeds it. The error is
        re-raised either way.

        If the signed-in user changed while this reload waited for the lock,
        nothing is loaded and the data now in memory is returned.

        Raises:
            AuthenticationRequiredError: if nobody is signed in
            RemoteUnavailableError: if the store could not be read
            ValidationError: if the loaded snapshot repeats a transaction id
                             (the previous data is kept)
        """
        correlation_id = create_correlation_id()
        user_id = self._user_id
        if user_id is None:
            error = AuthenticationRequiredError("sign in to load finance data")
            await self._audit.log_mutation_rejected("reload", error, correlation_id=correlation_id)
            raise error

        async with self._lock:
            if self._user_id != user_id:
                return self._repository.snapshot()
            try:
                snapshot = await self._remote.load_all(user_id)
            except RemoteUnavailableError as e:
                self._last_sync_error = e
                await self._audit.log_remote_unavailable(
                    "load_all", e, user_id=user_id, correlation_id=correlation_id,
                )
                await self._seed_from_cache(user_id, correlation_id)
                raise

            try:
                self._repository.replace_all(snapshot)
            except ValidationError as e:
                self._last_sync_error = e
                await self._audit.log_error(
                    "remote_snapshot_rejected", str(e),
                    details={"user_id": user_id}, correlation_id=correlation_id,
                )
                raise
            self._last_sync_error = None
            await self._write_cache(user_id, snapshot)

        await self._audit.log_data_loaded(
            user_id=user_id,
            transaction_count=len(snapshot.transactions),
            goal_count=len(snapshot.goals),
            source="remote",
            correlation_id=correlation_id,
        )
        if self._user_id == user_id:
            await self._ensure_subscription(user_id)
        return snapshot

    async def _on_remote_change(self) -> None:
        user_id = self._user_id
        if user_id is None:
            return
        await self._audit.log_remote_change(user_id)
        try:
            await self.reload()
        except (RemoteUnavailableError, ValidationError):
            # Already logged and kept in last_sync_error; the next change retries
            return

    async def _ensure_subscription(self, user_id: str) -> None:
        if self._subscription is not None and self._subscription.active:
            return
        try:
            subscription = await self._remote.subscribe(user_id, self._on_remote_change)
        except RemoteUnavailableError as e:
            self._last_sync_error = e
            await self._audit.log_remote_unavailable("subscribe", e, user_id=user_id)
            return
        if self._user_id != user_id:
            subscription.unsubscribe()
            return
        self._subscription = subscription

    def _drop_subscription(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    async def _seed_from_cache(self, user_id: str, correlation_id) -> None:
        if self._cache is None or len(self._repository) or self._repository.goals:
            return
        try:
            cached = self._cache.load(user_id)
        except StorageError as e:
            await self._audit.log_error("cache_read_failed", str(e), correlation_id=correlation_id)
            return
        if cached is None:
            return
        self._repository.replace_all(cached)
        await self._audit.log_cache_fallback(
            user_id=user_id,
            transaction_count=len(cached.transactions),
            correlation_id=correlation_id,
        )

    async def _write_cache(self, user_id: str, snapshot: FinanceSnapshot) -> None:
        if self._cache is None:
            return
        try:
            self._cache.save(user_id, snapshot)
        except StorageError as e:
            await self._audit.log_cache_write_failed(e, user_id=user_id)

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    async def _require_user(self, operation: str, correlation_id) -> str:
        if self._user_id is None:
            error = AuthenticationRequiredError(f"sign in before calling {operation}")
            await self._audit.log_mutation_rejected(operation, error, correlation_id=correlation_id)
            raise error
        return self._user_id

    async def _rejected(
        self,
        operation: str,
        error: FinanceError,
        user_id: str,
        correlation_id,
        entity_id: Optional[str] = None,
    ) -> FinanceError:
        if isinstance(error, RemoteUnavailableError):
            await self._audit.log_remote_unavailable(
                operation, error, user_id=user_id, correlation_id=correlation_id,
            )
        else:
            await self._audit.log_mutation_rejected(
                operation, error, user_id=user_id, entity_id=entity_id,
                correlation_id=correlation_id,
            )
        return error

    async def add_transaction(
        self,
        draft: Union[TransactionDraft, Mapping[str, Any]],
    ) -> Transaction:
        """
        Record a new transaction.

        Raises:
            AuthenticationRequiredError: if nobody is signed in
            ValidationError: if the draft is invalid
            RemoteUnavailableError: if the remote write failed (nothing stored)
        """
        operation = "add_transaction"
        correlation_id = create_correlation_id()

        async with self._lock:
            user_id = await self._require_user(operation, correlation_id)
            try:
                validated = validate_draft(draft)
                persisted = await self._remote.insert_transaction(user_id, validated)
                transaction = self._repository.add_transaction(
                    validated, transaction_id=persisted.id,
                )
            except (ValidationError, RemoteUnavailableError) as e:
                raise await self._rejected(operation, e, user_id, correlation_id)

        await self._audit.log_transaction_added(
            user_id=user_id,
            transaction_id=transaction.id,
            transaction_type=transaction.type.value,
            amount=str(transaction.amount),
            correlation_id=correlation_id,
        )
        return transaction

    async def update_transaction(
        self,
        transaction_id: str,
        fields: Union[TransactionUpdate, Mapping[str, Any]],
    ) -> Transaction:
        """
        Change some fields of a transaction; omitted fields stay as they are.

        Raises:
            AuthenticationRequiredError: if nobody is signed in
            NotFoundError: if the id is unknown
            ValidationError: if the merged transaction would be invalid
            RemoteUnavailableError: if the remote write failed (nothing changed)
        """
        operation = "update_transaction"
        correlation_id = create_correlation_id()

        async with self._lock:
            user_id = await self._require_user(operation, correlation_id)
            try:
                changes = validate_update(fields).changes()
                self._repository.preview_update(transaction_id, changes)
                await self._remote.update_transaction(user_id, transaction_id, changes)
                transaction = self._repository.update_transaction(transaction_id, changes)
            except (ValidationError, NotFoundError, RemoteUnavailableError) as e:
                raise await self._rejected(
                    operation, e, user_id, correlation_id, entity_id=transaction_id,
                )

        await self._audit.log_transaction_updated(
            user_id=user_id,
            transaction_id=transaction_id,
            changed_fields=sorted(changes),
            correlation_id=correlation_id,
        )
        return transaction

    async def delete_transaction(self, transaction_id: str) -> None:
        """
        Delete a transaction.

        Raises:
            AuthenticationRequiredError: if nobody is signed in
            NotFoundError: if the id is unknown (deleting twice is an error)
            RemoteUnavailableError: if the remote delete failed (nothing removed)
        """
        operation = "delete_transaction"
        correlation_id = create_correlation_id()

        async with self._lock:
            user_id = await self._require_user(operation, correlation_id)
            try:
                if not self._repository.has_transaction(transaction_id):
                    raise NotFoundError("transaction", transaction_id)
                await self._remote.delete_transaction(user_id, transaction_id)
                self._repository.delete_transaction(transaction_id)
            except (NotFoundError, RemoteUnavailableError) as e:
                raise await self._rejected(
                    operation, e, user_id, correlation_id, entity_id=transaction_id,
                )

        await self._audit.log_transaction_deleted(
            user_id=user_id,
            transaction_id=transaction_id,
            correlation_id=correlation_id,
        )

    async def upsert_goals(self, goals: Union[AnnualGoals, Mapping[str, Any]]) -> AnnualGoals:
        """
        Set the goals for a year, replacing any previous goals for that year.

        Raises:
            AuthenticationRequiredError: if nobody is signed in
            ValidationError: if the goal set is invalid
            RemoteUnavailableError: if the remote write failed (nothing stored)
        """
        operation = "upsert_goals"
        correlation_id = create_correlation_id()

        async with self._lock:
            user_id = await self._require_user(operation, correlation_id)
            try:
                validated = validate_goals(goals)
                await self._remote.upsert_goals(user_id, validated)
                stored = self._repository.upsert_goals(validated)
            except (ValidationError, RemoteUnavailableError) as e:
                raise await self._rejected(operation, e, user_id, correlation_id)

        await self._audit.log_goals_upserted(
            user_id=user_id,
            year=stored.year,
            correlation_id=correlation_id,
        )
        return stored

    # -------------------------------------------------------------------------
    # Queries (read-only, recomputed on every call)
    # -------------------------------------------------------------------------

    def transactions(
        self,
        transaction_type: Optional[TransactionType] = None,
        newest_first: bool = True,
    ) -> list[Transaction]:
        selected = self._repository.transactions
        if transaction_type is not None:
            selected = filter_by_type(selected, transaction_type)
        return sort_by_date(selected, newest_first=newest_first)

    def goals_for_year(self, year: int) -> Optional[AnnualGoals]:
        return self._repository.goals_for_year(year)

    def monthly_data(self, month: Optional[str] = None) -> MonthlyData:
        if month is None:
            month = current_month()
        return monthly_data(self._repository.transactions, month)

    def annual_data(self, year: Optional[int] = None) -> AnnualData:
        if year is None:
            year = current_year()
        return annual_data(self._repository.transactions, year)

    def monthly_breakdown(self, year: Optional[int] = None) -> list[MonthlyData]:
        if year is None:
            year = current_year()
        return monthly_breakdown(self._repository.transactions, year)

    def months_with_data(self) -> list[str]:
        return months_with_data(self._repository.transactions)

    def years_with_data(self) -> list[int]:
        return years_with_data(self._repository.transactions, self._repository.goals)

    def default_month(self, today: Optional[date] = None) -> str:
        return default_month(self.months_with_data(), today)

    def default_year(self, today: Optional[date] = None) -> int:
        return default_year(self.years_with_data(), today)

    def month_options(self, today: Optional[date] = None) -> list[str]:
        """
        Month keys for a period selector, newest first.

        Starts at the configured first year, or earlier if the data does.
        """
        years = self.years_with_data()
        start_year = min([self._month_options_start_year, *years])
        return month_options(start_year, today)

    def monthly_progress(self, month: Optional[str] = None) -> GoalProgress:
        """Progress of one month against its year's goals."""
        data = self.monthly_data(month)
        year, _ = parse_month_key(data.month)
        return monthly_progress(data, self._repository.goals_for_year(year))

    def annual_progress(self, year: Optional[int] = None) -> GoalProgress:
        data = self.annual_data(year)
        return annual_progress(data, self._repository.goals_for_year(data.year))

    def category_breakdown(
        self,
        month: Optional[str] = None,
        year: Optional[int] = None,
        transaction_type: TransactionType = TransactionType.EXPENSE,
        limit: Optional[int] = None,
    ) -> list[CategoryTotal]:
        """
        Category totals for a month, a year, or (with neither) all data.

        Raises:
            ValidationError: if both month and year are given
        """
        if month is not None and year is not None:
            raise ValidationError("month", "pass either month or year, not both")
        if month is not None:
            selected = self.monthly_data(month).transactions
        elif year is not None:
            selected = self.annual_data(year).transactions
        else:
            selected = self._repository.transactions
        return category_breakdown(selected, transaction_type, limit)


def create_session(
    auth: Optional[AuthProvider] = None,
    settings: Optional[Settings] = None,
) -> FinanceSession:
    """
    Factory function to create a session from configuration.

    Uses Google Sheets when it is configured, otherwise an in-memory store
    (data then lives only as long as the process). A snapshot cache is added
    when a cache directory is configured.
    """
    settings = settings or get_settings()
    logger = structlog.get_logger(__name__)

    try:
        remote_store: RemoteStore = GoogleSheetsRemoteStore(
            GoogleSheetsClient(settings.google_sheets)
        )
    except PydanticValidationError as e:
        # Storage not configured - continue without it
        logger.warning("remote_store_not_configured", error=str(e))
        remote_store = InMemoryRemoteStore()

    cache_dir = settings.app.cache_dir
    cache = JsonSnapshotCache(cache_dir) if cache_dir else None

    return FinanceSession(
        auth=auth or InMemoryAuthProvider(),
        remote_store=remote_store,
        cache=cache,
        month_options_start_year=settings.app.month_options_start_year,
    )
