"""
Audit Logger

DESIGN DECISION: Every mutation, reload and failure outside the pure core
is logged. This provides:
1. Complete traceability
2. Debugging capability when the remote store misbehaves
3. A visible record of every rejected mutation

The pure core (models, aggregation, repository, progress) never logs; the
session reports what happened through this logger.
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from finance_tracker.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Writes every event as a structured log line. Recent events are kept in
    memory (bounded) so the presentation layer can show a short history.
    """

    def __init__(self, history_size: int = 200):
        self._logger = structlog.get_logger("finance_tracker.audit")
        self._history: list[AuditEvent] = []
        self._history_size = history_size

    @property
    def history(self) -> list[AuditEvent]:
        """Recent events, oldest first."""
        return list(self._history)

    async def log(self, event: AuditEvent) -> None:
        """Log an audit event."""
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        self._history.append(event)
        if len(self._history) > self._history_size:
            del self._history[: len(self._history) - self._history_size]

    async def log_signed_in(self, user_id: str) -> None:
        await self.log(AuditEventBuilder.user_signed_in(user_id))

    async def log_signed_out(self, user_id: Optional[str]) -> None:
        await self.log(AuditEventBuilder.user_signed_out(user_id))

    async def log_data_loaded(
        self,
        user_id: str,
        transaction_count: int,
        goal_count: int,
        source: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a full snapshot load."""
        event = AuditEventBuilder.data_loaded(
            user_id=user_id,
            transaction_count=transaction_count,
            goal_count=goal_count,
            source=source,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_cache_fallback(
        self,
        user_id: str,
        transaction_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.cache_fallback_used(
            user_id=user_id,
            transaction_count=transaction_count,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_remote_change(self, user_id: str) -> None:
        await self.log(AuditEventBuilder.remote_change_received(user_id))

    async def log_transaction_added(
        self,
        user_id: str,
        transaction_id: str,
        transaction_type: str,
        amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.transaction_added(
            user_id=user_id,
            transaction_id=transaction_id,
            transaction_type=transaction_type,
            amount=amount,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_transaction_updated(
        self,
        user_id: str,
        transaction_id: str,
        changed_fields: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.transaction_updated(
            user_id=user_id,
            transaction_id=transaction_id,
            changed_fields=changed_fields,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_transaction_deleted(
        self,
        user_id: str,
        transaction_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.transaction_deleted(
            user_id=user_id,
            transaction_id=transaction_id,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_goals_upserted(
        self,
        user_id: str,
        year: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.goals_upserted(
            user_id=user_id,
            year=year,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_mutation_rejected(
        self,
        operation: str,
        error: Exception,
        user_id: Optional[str] = None,
        entity_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a mutation that failed validation, lookup or authentication."""
        event = AuditEventBuilder.mutation_rejected(
            operation=operation,
            error_type=type(error).__name__,
            error_message=str(error),
            user_id=user_id,
            entity_id=entity_id,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_remote_unavailable(
        self,
        operation: str,
        error: Exception,
        user_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.remote_unavailable(
            operation=operation,
            error_message=str(error),
            user_id=user_id,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_cache_write_failed(self, error: Exception, user_id: Optional[str] = None) -> None:
        await self.log(AuditEventBuilder.cache_write_failed(str(error), user_id=user_id))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a user action (e.g., adding a transaction).
    Pass it through all subsequent operations.
    """
    return uuid4()
