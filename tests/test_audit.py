"""
Tests for audit events and the audit logger.
"""

import asyncio

import pytest
from uuid import uuid4

from finance_tracker.audit import AuditLogger, create_correlation_id
from finance_tracker.errors import NotFoundError, RemoteUnavailableError
from finance_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)


class TestAuditModels:
    """Tests for audit event models."""

    def test_audit_event_creation(self):
        """Test AuditEvent creation."""
        event = AuditEvent(
            event_type=AuditEventType.TRANSACTION_ADDED,
            description="Test event",
            user_id="alice",
        )
        assert event.event_type == AuditEventType.TRANSACTION_ADDED
        assert event.severity == AuditSeverity.INFO
        assert event.event_id is not None
        assert event.timestamp.tzinfo is not None

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        correlation_id = uuid4()
        event = AuditEventBuilder.transaction_added(
            user_id="alice",
            transaction_id="t1",
            transaction_type="expense",
            amount="42.50",
            correlation_id=correlation_id,
        )
        log_dict = event.to_log_dict()

        assert log_dict["event_type"] == "transaction_added"
        assert log_dict["entity_type"] == "transaction"
        assert log_dict["entity_id"] == "t1"
        assert log_dict["correlation_id"] == str(correlation_id)
        assert log_dict["details"] == {"type": "expense", "amount": "42.50"}
        assert log_dict["is_user_action"] is True

    def test_rejected_mutation_is_a_warning(self):
        event = AuditEventBuilder.mutation_rejected(
            operation="delete_transaction",
            error_type="NotFoundError",
            error_message="transaction not found: x",
            entity_id="x",
        )
        assert event.severity == AuditSeverity.WARNING
        assert event.error_code == "NotFoundError"
        assert event.details == {"operation": "delete_transaction"}

    def test_remote_unavailable_is_an_error(self):
        event = AuditEventBuilder.remote_unavailable("load_all", "timeout", user_id="alice")
        assert event.severity == AuditSeverity.ERROR
        assert event.error_message == "timeout"

    def test_goals_entity_id_is_the_year(self):
        event = AuditEventBuilder.goals_upserted("alice", 2024)
        assert event.entity_type == "goals"
        assert event.entity_id == "2024"

    def test_data_loaded_details(self):
        event = AuditEventBuilder.data_loaded("alice", 3, 1, "remote")
        assert event.details == {"transaction_count": 3, "goal_count": 1, "source": "remote"}


class TestAuditLogger:
    """Tests for the audit logger."""

    def test_history_records_events(self):
        audit = AuditLogger()
        correlation_id = create_correlation_id()

        async def scenario():
            await audit.log_signed_in("alice")
            await audit.log_mutation_rejected(
                "delete_transaction",
                NotFoundError("transaction", "x"),
                user_id="alice",
                entity_id="x",
                correlation_id=correlation_id,
            )
            await audit.log_remote_unavailable(
                "load_all", RemoteUnavailableError("offline"), user_id="alice",
            )

        asyncio.run(scenario())

        types = [e.event_type for e in audit.history]
        assert types == [
            AuditEventType.USER_SIGNED_IN,
            AuditEventType.MUTATION_REJECTED,
            AuditEventType.REMOTE_UNAVAILABLE,
        ]
        assert audit.history[1].error_code == "NotFoundError"
        assert audit.history[1].correlation_id == correlation_id

    def test_history_is_bounded(self):
        audit = AuditLogger(history_size=3)

        async def scenario():
            for i in range(5):
                await audit.log_transaction_deleted("alice", f"t{i}")

        asyncio.run(scenario())

        assert [e.entity_id for e in audit.history] == ["t2", "t3", "t4"]

    def test_history_is_a_copy(self):
        audit = AuditLogger()
        asyncio.run(audit.log_signed_out("alice"))
        audit.history.clear()
        assert len(audit.history) == 1


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
