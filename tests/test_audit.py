"""
Tests for audit models and the audit logger.
"""

import asyncio
from uuid import uuid4

import pytest

from expense_manager.audit import AuditLogger, create_correlation_id
from expense_manager.models import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from expense_manager.services.storage import AuditStorageInterface


class FailingAuditStorage(AuditStorageInterface):
    """Audit storage that is always down."""

    async def append_event(self, event):
        raise ConnectionError("audit backend unavailable")

    async def get_events_by_correlation_id(self, correlation_id):
        return []

    async def get_events_by_entity(self, entity_type, entity_id):
        return []

    async def get_recent_events(self, limit=100):
        return []


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent defaults."""
        event = AuditEvent(
            event_type=AuditEventType.CATEGORY_CREATED,
            description="Category created: Groceries",
        )
        assert event.event_id is not None
        assert event.timestamp is not None
        assert event.severity == AuditSeverity.INFO

    def test_user_registered_event(self):
        """Test the registration event points at the new user."""
        user_id = uuid4()
        event = AuditEventBuilder.user_registered(user_id, "maria@example.com")
        log_dict = event.to_log_dict()

        assert log_dict["event_type"] == "user_registered"
        assert log_dict["entity_type"] == "user"
        assert log_dict["entity_id"] == str(user_id)
        assert log_dict["user_id"] == str(user_id)
        assert log_dict["details"] == {"email": "maria@example.com"}

    def test_audit_event_to_log_dict(self):
        """Test the structured log payload."""
        event = AuditEventBuilder.system_error("storage", "disk full")
        log_dict = event.to_log_dict()
        assert log_dict["event_type"] == "system_error"
        assert log_dict["severity"] == "error"
        assert log_dict["error_message"] == "disk full"

    def test_builder_descriptions(self):
        """Test builder descriptions read naturally."""
        user_id = uuid4()
        assert AuditEventBuilder.user_changed(
            AuditEventType.USER_LOGGED_IN, user_id
        ).description == "User logged in"
        assert AuditEventBuilder.category_changed(
            AuditEventType.CATEGORY_DELETED, uuid4(), user_id, "Travel"
        ).description == "Category deleted: Travel"
        assert AuditEventBuilder.expense_recorded(
            uuid4(), user_id, uuid4(), "BRL 10.00", "income"
        ).description == "Income recorded: BRL 10.00"

    def test_validation_failed_is_a_warning(self):
        """Test refusals are logged as warnings."""
        event = AuditEventBuilder.validation_failed(
            operation="delete_category",
            issues=[{"field": "category_id", "type": "in_use"}],
        )
        assert event.severity == AuditSeverity.WARNING
        assert event.details["operation"] == "delete_category"


class TestAuditLogger:
    """Tests for AuditLogger."""

    def test_log_persists_event(self, audit_storage):
        """Test events reach the configured storage."""
        logger = AuditLogger(audit_storage)
        correlation_id = create_correlation_id()

        async def scenario():
            await logger.log_category_changed(
                AuditEventType.CATEGORY_CREATED,
                category_id=uuid4(),
                user_id=uuid4(),
                name="Groceries",
                correlation_id=correlation_id,
            )
            return await audit_storage.get_events_by_correlation_id(correlation_id)

        events = asyncio.run(scenario())
        assert len(events) == 1
        assert events[0].event_type == AuditEventType.CATEGORY_CREATED

    def test_log_without_storage(self):
        """Test local-only logging succeeds."""
        event = AuditEventBuilder.user_registered(uuid4(), "maria@example.com")
        assert asyncio.run(AuditLogger().log(event)) is True

    def test_storage_failure_is_not_raised(self):
        """Test a broken audit backend never breaks the caller."""
        logger = AuditLogger(FailingAuditStorage())
        event = AuditEventBuilder.user_registered(uuid4(), "maria@example.com")
        assert asyncio.run(logger.log(event)) is False

    def test_log_error(self, audit_storage):
        """Test system errors are stored with their message."""
        logger = AuditLogger(audit_storage)

        async def scenario():
            await logger.log_error("storage", "disk full", details={"table": "expenses"})
            return await audit_storage.get_recent_events()

        [event] = asyncio.run(scenario())
        assert event.event_type == AuditEventType.SYSTEM_ERROR
        assert event.severity == AuditSeverity.ERROR
        assert event.error_message == "disk full"

    def test_correlation_ids_are_unique(self):
        """Test each call creates a new id."""
        assert create_correlation_id() != create_correlation_id()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
