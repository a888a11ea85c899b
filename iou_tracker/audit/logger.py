"""
Audit Logger

DESIGN DECISION: Every change to the user's records, reminders,
categories and settings is logged.
This provides:
1. Complete traceability
2. Debugging capability when a reminder did not fire
3. A local history the user can inspect

The audit logger:
- Is async so it fits the async storage calls around it
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

import logging
import sys
from datetime import datetime
from typing import TYPE_CHECKING, Optional
from uuid import UUID, uuid4

import structlog

from iou_tracker.models.audit import AuditEvent, AuditEventBuilder, AuditEventType
from iou_tracker.models.debt import DebtRecord

if TYPE_CHECKING:
    # Storage implementations import services that log through this module
    from iou_tracker.services.storage import AuditStorageInterface


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


def configure_logging(level: str = "INFO") -> None:
    """
    Route stdlib logging (and therefore structlog) to stderr.

    structlog renders each entry to a JSON string, so the stdlib
    handler only prints the message.
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, level.upper(), logging.INFO),
    )


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. The audit trail in the key-value store (if configured)
    """

    def __init__(
        self,
        storage: Optional["AuditStorageInterface"] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger(__name__)

    @property
    def storage(self) -> Optional["AuditStorageInterface"]:
        return self._storage

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        elif event.severity.value == "debug":
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    # -------------------------------------------------------------------------
    # Records
    # -------------------------------------------------------------------------

    async def log_record_created(
        self,
        record: DebtRecord,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a new debt record."""
        event = AuditEventBuilder.record_created(
            record_id=record.id,
            counterparty_name=record.counterparty_name,
            amount=record.amount,
            direction=record.direction.value,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_record_updated(
        self,
        record_id: str,
        changed_fields: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.record_updated(
            record_id=record_id,
            changed_fields=changed_fields,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_record_settled(
        self,
        record: DebtRecord,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.record_settled(
            record_id=record.id,
            amount=record.amount,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_record_deleted(
        self,
        record_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.record_deleted(
            record_id=record_id,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_validation_failed(
        self,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a rejected record draft."""
        event = AuditEventBuilder.validation_failed(
            issues=issues,
            correlation_id=correlation_id,
        )
        await self.log(event)

    # -------------------------------------------------------------------------
    # Reminders
    # -------------------------------------------------------------------------

    async def log_reminder_scheduled(
        self,
        record_id: str,
        reminder_at: datetime,
        delay_seconds: int,
    ) -> None:
        event = AuditEventBuilder.reminder_scheduled(
            record_id=record_id,
            reminder_at=reminder_at,
            delay_seconds=delay_seconds,
        )
        await self.log(event)

    async def log_reminder_cancelled(self, record_id: str) -> None:
        await self.log(AuditEventBuilder.reminder_cancelled(record_id))

    async def log_reminder_acknowledged(
        self,
        record_id: str,
        reminders_sent: int,
    ) -> None:
        event = AuditEventBuilder.reminder_acknowledged(
            record_id=record_id,
            reminders_sent=reminders_sent,
        )
        await self.log(event)

    async def log_reminder_schedule_failed(
        self,
        record_id: str,
        error_message: str,
    ) -> None:
        """Log a reminder the platform refused or failed to schedule."""
        event = AuditEventBuilder.reminder_schedule_failed(
            record_id=record_id,
            error_message=error_message,
        )
        await self.log(event)

    async def log_reminder_policy_updated(
        self,
        enabled: bool,
        changed_fields: list[str],
    ) -> None:
        event = AuditEventBuilder.reminder_policy_updated(
            enabled=enabled,
            changed_fields=changed_fields,
        )
        await self.log(event)

    # -------------------------------------------------------------------------
    # Categories, export, purchases, security
    # -------------------------------------------------------------------------

    async def log_category_changed(
        self,
        event_type: AuditEventType,
        category_id: str,
        name: str,
    ) -> None:
        event = AuditEventBuilder.category_changed(
            event_type=event_type,
            category_id=category_id,
            name=name,
        )
        await self.log(event)

    async def log_categories_reset(self, category_count: int) -> None:
        await self.log(AuditEventBuilder.categories_reset(category_count))

    async def log_export_generated(
        self,
        export_format: str,
        filename: str,
        record_count: int,
    ) -> None:
        event = AuditEventBuilder.export_generated(
            export_format=export_format,
            filename=filename,
            record_count=record_count,
        )
        await self.log(event)

    async def log_ad_free_unlocked(self, transaction_id: str) -> None:
        await self.log(AuditEventBuilder.ad_free_unlocked(transaction_id))

    async def log_security_changed(
        self,
        event_type: AuditEventType,
        enabled: bool,
    ) -> None:
        """Log a PIN or biometric lock change. Never pass the PIN here."""
        event = AuditEventBuilder.security_changed(
            event_type=event_type,
            enabled=enabled,
        )
        await self.log(event)

    # -------------------------------------------------------------------------
    # Platform and errors
    # -------------------------------------------------------------------------

    async def log_capability_unavailable(self, capability: str, context: str) -> None:
        event = AuditEventBuilder.capability_unavailable(
            capability=capability,
            context=context,
        )
        await self.log(event)

    async def log_permission_denied(self, permission: str) -> None:
        await self.log(AuditEventBuilder.permission_denied(permission))

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

    Use this at the start of a new user action (e.g., adding a record).
    Pass it through all subsequent operations.
    """
    return uuid4()
