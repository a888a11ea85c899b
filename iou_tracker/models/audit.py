"""
Audit Models for IOU Tracker

Every significant action in the system is logged for audit purposes.
This provides:
1. Traceability of every change to the user's records
2. Debugging information when reminders misbehave
3. Ability to reconstruct history after a bad edit

DESIGN DECISION: Audit logs are append-only. We never modify events;
the persisted trail is only ever trimmed from the oldest end.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.
    """
    # Records
    RECORD_CREATED = "record_created"
    RECORD_UPDATED = "record_updated"
    RECORD_SETTLED = "record_settled"
    RECORD_DELETED = "record_deleted"
    VALIDATION_FAILED = "validation_failed"

    # Reminders
    REMINDER_SCHEDULED = "reminder_scheduled"
    REMINDER_CANCELLED = "reminder_cancelled"
    REMINDER_ACKNOWLEDGED = "reminder_acknowledged"
    REMINDER_SCHEDULE_FAILED = "reminder_schedule_failed"
    REMINDER_POLICY_UPDATED = "reminder_policy_updated"

    # Categories
    CATEGORY_CREATED = "category_created"
    CATEGORY_UPDATED = "category_updated"
    CATEGORY_DELETED = "category_deleted"
    CATEGORIES_RESET = "categories_reset"

    # Export and purchases
    EXPORT_GENERATED = "export_generated"
    AD_FREE_UNLOCKED = "ad_free_unlocked"

    # Security
    PIN_CHANGED = "pin_changed"
    BIOMETRIC_CHANGED = "biometric_changed"

    # System events
    SYSTEM_ERROR = "system_error"
    CAPABILITY_UNAVAILABLE = "capability_unavailable"
    PERMISSION_DENIED = "permission_denied"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.now,
        description="When the event occurred (local time)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'record', 'category', 'export')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one user action)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_storage_dict(self) -> dict:
        """Convert to the JSON-compatible shape appended to the audit list."""
        return self.model_dump(mode="json", exclude_none=True)


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.record_created(record_id, name, amount, direction)
        event = AuditEventBuilder.reminder_scheduled(record_id, reminder_at, delay)
    """

    @staticmethod
    def record_created(
        record_id: str,
        counterparty_name: str,
        amount: Decimal,
        direction: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_CREATED,
            entity_type="record",
            entity_id=record_id,
            correlation_id=correlation_id,
            description=f"Record added: {direction} {amount} with {counterparty_name}",
            details={
                "counterparty_name": counterparty_name,
                "amount": str(amount),
                "direction": direction,
            },
            is_user_action=True,
        )

    @staticmethod
    def record_updated(
        record_id: str,
        changed_fields: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_UPDATED,
            entity_type="record",
            entity_id=record_id,
            correlation_id=correlation_id,
            description=f"Record updated: {', '.join(changed_fields) or 'no fields'}",
            details={"changed_fields": changed_fields},
            is_user_action=True,
        )

    @staticmethod
    def record_settled(
        record_id: str,
        amount: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_SETTLED,
            entity_type="record",
            entity_id=record_id,
            correlation_id=correlation_id,
            description=f"Record settled ({amount})",
            details={"amount": str(amount)},
            is_user_action=True,
        )

    @staticmethod
    def record_deleted(
        record_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_DELETED,
            severity=AuditSeverity.WARNING,
            entity_type="record",
            entity_id=record_id,
            correlation_id=correlation_id,
            description="Record deleted",
            is_user_action=True,
        )

    @staticmethod
    def validation_failed(
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="draft",
            correlation_id=correlation_id,
            description=f"Record draft rejected with {len(issues)} issues",
            details={"issues": issues},
            is_user_action=True,
        )

    @staticmethod
    def reminder_scheduled(
        record_id: str,
        reminder_at: datetime,
        delay_seconds: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REMINDER_SCHEDULED,
            entity_type="record",
            entity_id=record_id,
            description=f"Reminder scheduled for {reminder_at.isoformat(timespec='minutes')}",
            details={
                "reminder_at": reminder_at.isoformat(),
                "delay_seconds": delay_seconds,
            },
        )

    @staticmethod
    def reminder_cancelled(record_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REMINDER_CANCELLED,
            entity_type="record",
            entity_id=record_id,
            description="Pending reminder cancelled",
        )

    @staticmethod
    def reminder_acknowledged(record_id: str, reminders_sent: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REMINDER_ACKNOWLEDGED,
            entity_type="record",
            entity_id=record_id,
            description=f"Reminder acknowledged ({reminders_sent} sent so far)",
            details={"reminders_sent": reminders_sent},
            is_user_action=True,
        )

    @staticmethod
    def reminder_schedule_failed(record_id: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REMINDER_SCHEDULE_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="record",
            entity_id=record_id,
            description="Reminder could not be scheduled",
            error_message=error_message,
        )

    @staticmethod
    def reminder_policy_updated(enabled: bool, changed_fields: list[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REMINDER_POLICY_UPDATED,
            entity_type="settings",
            description=f"Reminder policy updated (enabled={enabled})",
            details={"enabled": enabled, "changed_fields": changed_fields},
            is_user_action=True,
        )

    @staticmethod
    def category_changed(
        event_type: AuditEventType,
        category_id: str,
        name: str,
    ) -> AuditEvent:
        action = event_type.value.removeprefix("category_")
        return AuditEvent(
            event_type=event_type,
            entity_type="category",
            entity_id=category_id,
            description=f"Category {action}: {name}",
            details={"name": name},
            is_user_action=True,
        )

    @staticmethod
    def categories_reset(category_count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CATEGORIES_RESET,
            entity_type="category",
            description="Categories reset to defaults",
            details={"category_count": category_count},
            is_user_action=True,
        )

    @staticmethod
    def export_generated(
        export_format: str,
        filename: str,
        record_count: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPORT_GENERATED,
            entity_type="export",
            entity_id=filename,
            description=f"Exported {record_count} records as {export_format}",
            details={
                "format": export_format,
                "filename": filename,
                "record_count": record_count,
            },
            is_user_action=True,
        )

    @staticmethod
    def ad_free_unlocked(transaction_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.AD_FREE_UNLOCKED,
            entity_type="purchase",
            entity_id=transaction_id,
            description="Ad-free version unlocked",
            is_user_action=True,
        )

    @staticmethod
    def security_changed(event_type: AuditEventType, enabled: bool) -> AuditEvent:
        return AuditEvent(
            event_type=event_type,
            entity_type="settings",
            description=f"{event_type.value.replace('_', ' ').capitalize()} (enabled={enabled})",
            details={"enabled": enabled},
            is_user_action=True,
        )

    @staticmethod
    def capability_unavailable(capability: str, context: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CAPABILITY_UNAVAILABLE,
            severity=AuditSeverity.DEBUG,
            description=f"{capability} unavailable in this runtime",
            details={"capability": capability, "context": context},
        )

    @staticmethod
    def permission_denied(permission: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PERMISSION_DENIED,
            severity=AuditSeverity.WARNING,
            description=f"Permission denied: {permission}",
            details={"permission": permission},
            is_user_action=True,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
