"""
Reminder Scheduler

Decides when the next local notification for a record should fire and
keeps the platform notification registry consistent with that decision.

Algorithm (per unsettled record):
1. With a due date: candidate = due date - days_before_due_date
2. Without one: candidate = (last reminder or created date) + periodic interval
3. The candidate's time of day is replaced by the policy's notification time
4. A due-date candidate that is not strictly in the future becomes
   now + grace minutes, so overdue items still get one catch-up reminder
5. The platform delay is the whole seconds until the candidate, at least 1

DESIGN DECISION: Reminders are a convenience, not a correctness
guarantee. Platform failures while scheduling or cancelling are logged
and swallowed here; they never block the record mutation that triggered
them. Storage failures are not platform failures and still propagate.
"""

import math
from datetime import datetime, time, timedelta
from typing import Any, Callable, Optional

import structlog

from iou_tracker.audit import AuditLogger
from iou_tracker.formatting import format_currency, format_date
from iou_tracker.models.debt import (
    DebtRecord,
    Direction,
    ReminderPolicy,
    UpcomingReminder,
    UserSettings,
)
from iou_tracker.services.platform import NotificationService
from iou_tracker.services.storage import RecordStore


NOTIFICATION_ID_PREFIX = "iou-reminder-"
REMINDER_PAYLOAD_TYPE = "reminder"


def notification_id(record_id: str) -> str:
    """Platform notification key for a record (one pending per record)."""
    return f"{NOTIFICATION_ID_PREFIX}{record_id}"


def _anchor(candidate: datetime, time_of_day: time) -> datetime:
    return candidate.replace(
        hour=time_of_day.hour,
        minute=time_of_day.minute,
        second=0,
        microsecond=0,
    )


def compute_reminder_at(
    record: DebtRecord,
    policy: ReminderPolicy,
    now: datetime,
    overdue_grace_minutes: int = 5,
) -> datetime:
    """
    Compute the instant the next reminder for a record should fire.

    Pure: depends only on its arguments.
    """
    if record.due_date is not None:
        candidate = _anchor(
            record.due_date - timedelta(days=policy.days_before_due_date),
            policy.notification_time_of_day,
        )
        if candidate <= now:
            return now + timedelta(minutes=overdue_grace_minutes)
        return candidate

    base = record.last_reminder_sent_at or record.created_date
    return _anchor(
        base + timedelta(days=policy.periodic_interval_days),
        policy.notification_time_of_day,
    )


def fire_delay_seconds(reminder_at: datetime, now: datetime) -> int:
    """Whole seconds until reminder_at, never less than 1."""
    return max(1, math.floor((reminder_at - now).total_seconds()))


def build_notification_content(record: DebtRecord, settings: UserSettings) -> tuple[str, str]:
    """
    Title and body of the reminder notification for a record.

    Returns:
        (title, body)
    """
    name = record.counterparty_name
    amount_text = format_currency(record.amount, settings.currency)
    lent = record.direction is Direction.LENT

    if record.due_date is not None:
        title = f"{name} owes you money" if lent else f"You owe money to {name}"
        body = f"{amount_text} is due on {format_date(record.due_date, settings.date_format)}"
    else:
        title = f"Reminder: {name} owes you" if lent else f"Reminder: You owe {name}"
        body = f"{amount_text} - {record.note or 'No additional notes'}"

    return title, body


def upcoming_reminders(
    records: list[DebtRecord],
    policy: ReminderPolicy,
    now: datetime,
    window_days: int = 7,
    overdue_grace_minutes: int = 5,
) -> list[UpcomingReminder]:
    """
    Reminders that would fire within [now, now + window_days], soonest first.

    Read-only projection: nothing is scheduled or persisted.
    """
    if not policy.enabled:
        return []

    window_end = now + timedelta(days=window_days)
    upcoming = []
    for record in records:
        if record.settled:
            continue
        reminder_at = compute_reminder_at(record, policy, now, overdue_grace_minutes)
        if now <= reminder_at <= window_end:
            upcoming.append(UpcomingReminder(record=record, reminder_at=reminder_at))

    upcoming.sort(key=lambda item: item.reminder_at)
    return upcoming


class ReminderScheduler:
    """
    Keeps one pending platform notification per unsettled record.

    Scheduling is idempotent: any pending notification for the record
    is cancelled before the new one is registered.
    """

    def __init__(
        self,
        record_store: RecordStore,
        notifications: NotificationService,
        audit_logger: Optional[AuditLogger] = None,
        clock: Callable[[], datetime] = datetime.now,
        overdue_grace_minutes: int = 5,
        upcoming_window_days: int = 7,
    ):
        self._record_store = record_store
        self._notifications = notifications
        self._audit_logger = audit_logger
        self._clock = clock
        self._overdue_grace_minutes = overdue_grace_minutes
        self._upcoming_window_days = upcoming_window_days
        self._logger = structlog.get_logger(__name__)

    @property
    def notifications_available(self) -> bool:
        return self._notifications.is_available()

    async def initialize_notifications(self) -> bool:
        """
        Make sure reminders can actually be delivered.

        Checks the capability, then asks for notification permission.
        A refusal is audited so the UI can tell the user to enable it.

        Returns:
            True if notifications are available and permitted
        """
        if not self.notifications_available:
            self._logger.info("notifications_unavailable")
            return False

        try:
            granted = await self._notifications.request_permission()
        except Exception as e:
            self._logger.warning("notification_permission_request_failed", error=str(e))
            return False

        if not granted:
            self._logger.info("notification_permission_refused")
            if self._audit_logger:
                await self._audit_logger.log_permission_denied("notifications")
            return False
        return True

    def compute_reminder_at(self, record: DebtRecord, policy: ReminderPolicy) -> datetime:
        return compute_reminder_at(
            record, policy, self._clock(), self._overdue_grace_minutes
        )

    def compose_message(self, record: DebtRecord, settings: UserSettings) -> str:
        """The user's reminder message template filled in for a record."""
        amount_text = format_currency(record.amount, settings.currency)
        return settings.reminders.render_message(record, amount_text)

    # -------------------------------------------------------------------------
    # Scheduling
    # -------------------------------------------------------------------------

    async def schedule_record(
        self,
        record: DebtRecord,
        settings: UserSettings,
    ) -> Optional[str]:
        """
        (Re)schedule the reminder for one record.

        Returns:
            The platform handle, or None if nothing was scheduled
        """
        if not settings.reminders.enabled:
            return None
        if record.settled:
            await self._cancel(record.id)
            return None
        if not self.notifications_available:
            self._logger.debug("notifications_unavailable", record_id=record.id)
            return None

        await self._cancel(record.id)

        now = self._clock()
        reminder_at = compute_reminder_at(
            record, settings.reminders, now, self._overdue_grace_minutes
        )
        delay = fire_delay_seconds(reminder_at, now)
        title, body = build_notification_content(record, settings)

        try:
            handle = await self._notifications.schedule(
                notification_id(record.id),
                delay,
                title,
                body,
                {"recordId": record.id, "type": REMINDER_PAYLOAD_TYPE},
            )
        except Exception as e:
            self._logger.warning(
                "reminder_schedule_failed",
                record_id=record.id,
                error=str(e),
            )
            if self._audit_logger:
                await self._audit_logger.log_reminder_schedule_failed(record.id, str(e))
            return None

        if handle is None:
            self._logger.info("reminder_schedule_declined", record_id=record.id)
            return None

        if self._audit_logger:
            await self._audit_logger.log_reminder_scheduled(record.id, reminder_at, delay)
        return handle

    async def schedule_all(self) -> int:
        """
        Schedule reminders for every unsettled record.

        Returns:
            Number of reminders actually scheduled
        """
        settings = await self._record_store.load_settings()
        if not settings.reminders.enabled:
            return 0

        scheduled = 0
        for record in await self._record_store.load_records():
            if record.settled:
                continue
            if await self.schedule_record(record, settings) is not None:
                scheduled += 1
        return scheduled

    # -------------------------------------------------------------------------
    # Cancellation
    # -------------------------------------------------------------------------

    async def _cancel(self, record_id: str) -> bool:
        if not self.notifications_available:
            return False
        try:
            await self._notifications.cancel(notification_id(record_id))
        except Exception as e:
            self._logger.warning(
                "reminder_cancel_failed",
                record_id=record_id,
                error=str(e),
            )
            return False
        return True

    async def cancel_record(self, record_id: str) -> None:
        """Cancel the pending reminder of one record, if any."""
        if await self._cancel(record_id) and self._audit_logger:
            await self._audit_logger.log_reminder_cancelled(record_id)

    async def cancel_all(self) -> None:
        """Cancel every pending reminder."""
        if not self.notifications_available:
            return
        try:
            await self._notifications.cancel_all()
        except Exception as e:
            self._logger.warning("reminder_cancel_all_failed", error=str(e))

    # -------------------------------------------------------------------------
    # Acknowledgement
    # -------------------------------------------------------------------------

    async def handle_acknowledgement(self, record_id: str) -> Optional[DebtRecord]:
        """
        Record that the user interacted with a fired reminder.

        Periodic reminders (no due date) are rescheduled from now on;
        due-date reminders are one-shot.

        Returns:
            The updated record, or None if it no longer exists
        """
        record = await self._record_store.get_record(record_id)
        if record is None:
            return None

        updated = await self._record_store.update_record(
            record_id,
            reminders_sent_count=record.reminders_sent_count + 1,
            last_reminder_sent_at=self._clock(),
        )
        if updated is None:
            return None

        if self._audit_logger:
            await self._audit_logger.log_reminder_acknowledged(
                record_id, updated.reminders_sent_count
            )

        if updated.due_date is None and not updated.settled:
            settings = await self._record_store.load_settings()
            await self.schedule_record(updated, settings)

        return updated

    async def handle_notification_response(
        self,
        payload: dict[str, Any],
    ) -> Optional[DebtRecord]:
        """
        Route a tapped notification's data payload to acknowledgement.

        Payloads that are not reminders are ignored.
        """
        if payload.get("type") != REMINDER_PAYLOAD_TYPE:
            return None
        # Notifications scheduled by the mobile app carry "iouId"
        record_id = payload.get("recordId") or payload.get("iouId")
        if not record_id:
            return None
        return await self.handle_acknowledgement(str(record_id))

    # -------------------------------------------------------------------------
    # Projection
    # -------------------------------------------------------------------------

    def upcoming_reminders(
        self,
        records: list[DebtRecord],
        settings: UserSettings,
        now: Optional[datetime] = None,
    ) -> list[UpcomingReminder]:
        return upcoming_reminders(
            records,
            settings.reminders,
            now or self._clock(),
            window_days=self._upcoming_window_days,
            overdue_grace_minutes=self._overdue_grace_minutes,
        )
