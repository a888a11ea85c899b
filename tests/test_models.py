"""
Tests for IOU Tracker

Test strategy:
1. Unit tests for individual components (models, validators)
2. Integration tests for flows (with in-memory platform services)
3. No real device APIs in tests (use the local stand-ins)
"""

import pytest
from datetime import datetime, time, timezone
from decimal import Decimal
from uuid import uuid4

from iou_tracker.models.debt import (
    Category,
    DebtRecord,
    Direction,
    ReminderPolicy,
    Summary,
    UserSettings,
    ValidationIssue,
    ValidationResult,
)
from iou_tracker.models.monetization import AdFrequencyState, PurchaseState
from iou_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)


class TestDebtRecordModel:
    """Tests for the DebtRecord model."""

    def test_record_creation(self):
        """Test DebtRecord creation with defaults."""
        record = DebtRecord(
            direction=Direction.LENT,
            amount=Decimal("50"),
            counterparty_name="Ama",
        )
        assert record.id
        assert record.settled is False
        assert record.settled_date is None
        assert record.reminders_sent_count == 0
        assert record.is_active is True

    def test_record_strips_whitespace(self):
        """Test that whitespace is stripped from the name."""
        record = DebtRecord(
            direction=Direction.BORROWED,
            amount=Decimal("10"),
            counterparty_name="  Kofi  ",
        )
        assert record.counterparty_name == "Kofi"

    def test_record_rejects_non_positive_amount(self):
        """Test that zero and negative amounts are rejected."""
        for amount in (Decimal("0"), Decimal("-5")):
            with pytest.raises(ValueError):
                DebtRecord(
                    direction=Direction.LENT,
                    amount=amount,
                    counterparty_name="Ama",
                )

    def test_settled_record_requires_settled_date(self):
        """Test the settled flag and settled date go together."""
        with pytest.raises(ValueError, match="Settled record must have a settled date"):
            DebtRecord(
                direction=Direction.LENT,
                amount=Decimal("5"),
                counterparty_name="Ama",
                settled=True,
            )
        with pytest.raises(ValueError, match="Settled date given"):
            DebtRecord(
                direction=Direction.LENT,
                amount=Decimal("5"),
                counterparty_name="Ama",
                settled_date=datetime(2024, 1, 1),
            )

    def test_blank_optional_text_becomes_none(self):
        """Test that empty note and category are stored as absent."""
        record = DebtRecord(
            direction=Direction.LENT,
            amount=Decimal("5"),
            counterparty_name="Ama",
            note="",
            category_id="",
        )
        assert record.note is None
        assert record.category_id is None

    def test_reads_mobile_app_keys(self):
        """Test that records written by the mobile app load."""
        record = DebtRecord.model_validate({
            "id": "1718000000000",
            "type": "borrowed",
            "amount": 20,
            "personName": "Kofi",
            "date": "2024-06-01T10:00:00",
            "dueDate": "2024-06-20T10:00:00",
            "isSettled": False,
            "createdAt": "2024-06-01T10:00:00",
            "updatedAt": "2024-06-01T10:00:00",
            "remindersSent": 2,
        })
        assert record.direction is Direction.BORROWED
        assert record.counterparty_name == "Kofi"
        assert record.due_date == datetime(2024, 6, 20, 10, 0)
        assert record.reminders_sent_count == 2

    def test_aware_timestamps_become_naive_local(self):
        """Test that UTC timestamps are normalized to naive local time."""
        aware = datetime(2024, 6, 1, 10, 0, tzinfo=timezone.utc)
        record = DebtRecord(
            direction=Direction.LENT,
            amount=Decimal("5"),
            counterparty_name="Ama",
            created_date=aware,
        )
        assert record.created_date.tzinfo is None
        assert record.created_date == aware.astimezone().replace(tzinfo=None)

    def test_storage_dict_uses_aliases(self):
        """Test conversion to the stored JSON shape."""
        record = DebtRecord(
            direction=Direction.LENT,
            amount=Decimal("12.50"),
            counterparty_name="Ama",
        )
        data = record.to_storage_dict()
        assert data["type"] == "lent"
        assert data["personName"] == "Ama"
        assert data["isSettled"] is False
        assert "note" not in data
        assert DebtRecord.model_validate(data).amount == Decimal("12.50")


class TestSettingsModels:
    """Tests for settings and reminder policy models."""

    def test_reminder_policy_defaults(self):
        """Test the default reminder policy."""
        policy = ReminderPolicy()
        assert policy.enabled is True
        assert policy.days_before_due_date == 3
        assert policy.periodic_interval_days == 7
        assert policy.notification_time_of_day == time(9, 0)

    def test_reminder_policy_reads_stored_keys(self):
        """Test that stored settings keys map onto the policy."""
        policy = ReminderPolicy.model_validate({
            "enabled": False,
            "dueDateDaysBefore": 1,
            "periodicReminderDays": 14,
            "notificationTime": "18:30",
            "customMessage": "Pay up {name}",
        })
        assert policy.enabled is False
        assert policy.days_before_due_date == 1
        assert policy.periodic_interval_days == 14
        assert policy.notification_time_of_day == time(18, 30)

    def test_periodic_interval_must_be_positive(self):
        """Test that a zero-day cadence is rejected."""
        with pytest.raises(ValueError):
            ReminderPolicy(periodic_interval_days=0)

    def test_render_message(self):
        """Test template placeholder substitution."""
        policy = ReminderPolicy()
        record = DebtRecord(
            direction=Direction.LENT,
            amount=Decimal("50"),
            counterparty_name="Ama",
        )
        message = policy.render_message(record, "$50.00")
        assert message == "Hi Ama, just a friendly reminder about our loan of $50.00. Thanks!"

        borrowed = record.model_copy(update={"direction": Direction.BORROWED})
        assert "our debt of" in policy.render_message(borrowed, "$50.00")

    def test_user_settings_rejects_unknown_date_format(self):
        """Test that only supported date patterns are accepted."""
        with pytest.raises(ValueError, match="Unsupported date format"):
            UserSettings(date_format="yy/M/d")

    def test_user_settings_requires_authentication(self):
        """Test the app lock property."""
        assert UserSettings().requires_authentication is False
        assert UserSettings(pin_enabled=True).requires_authentication is True
        assert UserSettings(biometric_enabled=True).requires_authentication is True

    def test_currency_is_uppercased(self):
        assert UserSettings(currency="ghs").currency == "GHS"


class TestCategoryModel:
    """Tests for the Category model."""

    def test_category_creation(self):
        """Test Category creation with a generated ID."""
        category = Category(name="Trips")
        assert category.id.startswith("category_")
        assert category.is_default is False

    def test_category_rejects_bad_color(self):
        """Test that the color must be a hex code."""
        with pytest.raises(ValueError):
            Category(name="Trips", color="blue")


class TestSummaryModel:
    """Tests for the Summary model."""

    def test_net_balance_must_match(self):
        """Test that net balance equals owed minus owing."""
        with pytest.raises(ValueError, match="Net balance"):
            Summary(
                total_owed_to_user=Decimal("80"),
                total_user_owes=Decimal("20"),
                net_balance=Decimal("10"),
            )


class TestMonetizationModels:
    """Tests for purchase and ad counter models."""

    def test_purchase_state_defaults(self):
        state = PurchaseState()
        assert state.ad_free_unlocked is False
        assert state.transaction_id is None

    def test_ad_frequency_state_reads_stored_keys(self):
        """Test that stored ad counters load."""
        state = AdFrequencyState.model_validate({
            "lastInterstitialTimestamp": "2024-06-10T11:00:00",
            "interstitialsToday": 2,
            "interstitialsSession": 1,
            "lastDate": "2024-06-10",
        })
        assert state.interstitials_today == 2
        assert state.interstitials_session == 1
        assert state.to_storage_dict()["lastDate"] == "2024-06-10"


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.RECORD_CREATED,
            description="Record added",
        )
        assert event.event_type == AuditEventType.RECORD_CREATED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.RECORD_SETTLED,
            description="Record settled",
            details={"amount": "50"},
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "record_settled"
        assert log_dict["details"]["amount"] == "50"

    def test_audit_event_builder_record_created(self):
        """Test AuditEventBuilder.record_created."""
        correlation_id = uuid4()

        event = AuditEventBuilder.record_created(
            record_id="abc",
            counterparty_name="Ama",
            amount=Decimal("50"),
            direction="lent",
            correlation_id=correlation_id,
        )

        assert event.event_type == AuditEventType.RECORD_CREATED
        assert event.entity_id == "abc"
        assert event.correlation_id == correlation_id
        assert event.is_user_action is True

    def test_audit_event_builder_schedule_failed_is_warning(self):
        """Test that a failed reminder is logged as a warning."""
        event = AuditEventBuilder.reminder_schedule_failed("abc", "boom")
        assert event.severity == AuditSeverity.WARNING
        assert event.error_message == "boom"


class TestValidationResult:
    """Tests for ValidationResult model."""

    def test_validation_result_has_errors(self):
        """Test has_errors property."""
        result = ValidationResult(
            schema_valid=False,
            semantic_valid=False,
            is_valid=False,
            issues=[
                ValidationIssue(
                    field="amount",
                    issue_type="missing",
                    message="Amount is required",
                    severity="error",
                ),
            ],
        )
        assert result.has_errors is True
        assert result.error_count == 1
        assert result.error_messages == ["Amount is required"]

    def test_validation_result_warnings_only(self):
        """Test that warnings don't count as errors."""
        result = ValidationResult(
            schema_valid=True,
            semantic_valid=True,
            is_valid=True,
            issues=[
                ValidationIssue(
                    field="due_date",
                    issue_type="inconsistent",
                    message="Due date is before the date of the debt",
                    severity="warning",
                ),
            ],
        )
        assert result.has_errors is False
        assert result.error_count == 0


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
