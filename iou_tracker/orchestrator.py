"""
Main Orchestrator for IOU Tracker

This module ties together all the components and defines the
end-to-end flows for:
1. Records (draft → validate → save → schedule reminder)
2. Settings (reminder policy, display preferences, app lock)
3. The UI action boundary (any failure → one user-facing message)

DESIGN DECISION: The orchestrator enforces the boundaries:
- No record is saved without passing validation
- Settling or deleting a record ALWAYS cancels its reminder
- Reminder failures never block a record mutation
- Every step is audited

Services are plain objects built once by create_app_components() and
passed to whoever needs them; there are no module-level singletons.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Awaitable, Callable, Optional
from uuid import UUID

from pydantic import BaseModel

from iou_tracker.audit import AuditLogger, configure_logging, create_correlation_id
from iou_tracker.config import Settings, get_settings
from iou_tracker.models.audit import AuditEventType
from iou_tracker.models.debt import (
    CategorySummary,
    Dashboard,
    DebtRecord,
    DebtRecordDraft,
    ExportFormat,
    ReminderPolicy,
    UserSettings,
    ValidationResult,
)
from iou_tracker.queries import (
    active_records,
    calculate_summary,
    category_summaries,
    settled_history,
)
from iou_tracker.services.ads import AdService
from iou_tracker.services.auth import AuthGate
from iou_tracker.services.categories import CategoryError, CategoryManager
from iou_tracker.services.contacts import ContactsManager
from iou_tracker.services.export import ExportManager, ExportRenderer, ExportResult
from iou_tracker.services.features import FeatureDisabledError, FeatureFlags
from iou_tracker.services.platform import (
    AdNetwork,
    BiometricService,
    CapabilityUnavailableError,
    ContactsService,
    FileShareService,
    LocalFileShareService,
    NotificationService,
    PermissionDeniedError,
    UnavailableAdNetwork,
    UnavailableBiometricService,
    UnavailableContactsService,
    UnavailableNotificationService,
)
from iou_tracker.services.purchases import PurchaseManager
from iou_tracker.services.reminders import ReminderScheduler
from iou_tracker.services.storage import (
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
    KeyValueAuditStorage,
    KeyValueStore,
    RecordStore,
    build_default_user_settings,
)
from iou_tracker.validation import DebtRecordValidator, ValidationFailedError


GENERIC_ERROR_MESSAGE = "Something went wrong. Please try again."


class DebtRecordFlow:
    """
    Orchestrates everything that changes or reads debt records.

    Flow for a new record:
    1. Validate → Two-stage validation of the form draft
    2. Save → Append to the record list
    3. Schedule → Register the reminder (best effort)
    4. Audit → Record what happened
    """

    def __init__(
        self,
        record_store: RecordStore,
        scheduler: ReminderScheduler,
        validator: Optional[DebtRecordValidator] = None,
        category_manager: Optional[CategoryManager] = None,
        export_manager: Optional[ExportManager] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._record_store = record_store
        self._scheduler = scheduler
        self._validator = validator or DebtRecordValidator()
        self._category_manager = category_manager
        self._export_manager = export_manager
        self._audit_logger = audit_logger

    async def _known_category_ids(self) -> Optional[list[str]]:
        if self._category_manager is None:
            return None
        return [category.id for category in await self._category_manager.get_categories()]

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    async def add_record(
        self,
        draft: DebtRecordDraft,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[DebtRecord, ValidationResult]:
        """
        Validate and save a new record, then schedule its reminder.

        Returns:
            (saved_record, validation_result) - the result may carry warnings

        Raises:
            ValidationFailedError: If the draft is invalid (nothing saved)
        """
        correlation_id = correlation_id or create_correlation_id()

        try:
            record, result = self._validator.build_record(
                draft, await self._known_category_ids()
            )
        except ValidationFailedError as e:
            if self._audit_logger:
                issues = [
                    {"field": i.field, "type": i.issue_type, "message": i.message}
                    for i in e.result.issues
                ]
                await self._audit_logger.log_validation_failed(issues, correlation_id)
            raise

        saved = await self._record_store.add_record(record)

        if self._audit_logger:
            await self._audit_logger.log_record_created(saved, correlation_id)

        settings = await self._record_store.load_settings()
        await self._scheduler.schedule_record(saved, settings)

        return saved, result

    async def update_record(
        self,
        record_id: str,
        correlation_id: Optional[UUID] = None,
        **changes: Any,
    ) -> Optional[DebtRecord]:
        """
        Apply field changes and reschedule the reminder.

        Returns:
            The updated record, or None if it does not exist
        """
        correlation_id = correlation_id or create_correlation_id()

        updated = await self._record_store.update_record(record_id, **changes)
        if updated is None:
            return None

        if self._audit_logger:
            await self._audit_logger.log_record_updated(
                record_id, sorted(changes), correlation_id
            )

        settings = await self._record_store.load_settings()
        await self._scheduler.schedule_record(updated, settings)
        return updated

    async def settle_record(
        self,
        record_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> Optional[DebtRecord]:
        """
        Mark a record as settled.

        CRITICAL: The pending reminder is cancelled whatever state the
        record was in.
        """
        correlation_id = correlation_id or create_correlation_id()

        settled = await self._record_store.settle_record(record_id)
        await self._scheduler.cancel_record(record_id)

        if settled is not None and self._audit_logger:
            await self._audit_logger.log_record_settled(settled, correlation_id)
        return settled

    async def delete_record(
        self,
        record_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """Delete a record and cancel its reminder."""
        correlation_id = correlation_id or create_correlation_id()

        deleted = await self._record_store.delete_record(record_id)
        await self._scheduler.cancel_record(record_id)

        if deleted and self._audit_logger:
            await self._audit_logger.log_record_deleted(record_id, correlation_id)
        return deleted

    async def acknowledge_reminder(self, record_id: str) -> Optional[DebtRecord]:
        return await self._scheduler.handle_acknowledgement(record_id)

    async def handle_notification_response(self, payload: dict) -> Optional[DebtRecord]:
        return await self._scheduler.handle_notification_response(payload)

    async def reschedule_all(self) -> int:
        return await self._scheduler.schedule_all()

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def dashboard(self, category_id: Optional[str] = None) -> Dashboard:
        """
        Summary, active records (newest first) and upcoming reminders.

        The summary always covers every record; category_id only
        filters the listed records.
        """
        records = await self._record_store.load_records()
        settings = await self._record_store.load_settings()
        return Dashboard(
            summary=calculate_summary(records),
            active_records=active_records(records, category_id),
            upcoming_reminders=self._scheduler.upcoming_reminders(records, settings),
        )

    async def history(self) -> list[DebtRecord]:
        return settled_history(await self._record_store.load_records())

    async def category_overview(self) -> list[CategorySummary]:
        if self._category_manager is None:
            return []
        categories = await self._category_manager.get_categories()
        return category_summaries(categories, await self._record_store.load_records())

    async def export(
        self,
        export_format: ExportFormat = ExportFormat.PDF,
    ) -> ExportResult:
        """
        Export every record.

        Raises:
            FeatureDisabledError: If export is switched off
            CapabilityUnavailableError: If no export manager is wired
        """
        if self._export_manager is None:
            raise CapabilityUnavailableError("export")

        records = await self._record_store.load_records()
        settings = await self._record_store.load_settings()
        return await self._export_manager.export(
            records,
            export_format,
            summary=calculate_summary(records),
            currency=settings.currency,
            date_pattern=settings.date_format,
        )


class SettingsFlow:
    """
    Orchestrates changes to user settings.

    Any change that alters what or when reminders fire is followed by
    rescheduling (or cancelling) every reminder.
    """

    def __init__(
        self,
        record_store: RecordStore,
        scheduler: ReminderScheduler,
        auth_gate: AuthGate,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._record_store = record_store
        self._scheduler = scheduler
        self._auth_gate = auth_gate
        self._audit_logger = audit_logger

    async def get_settings(self) -> UserSettings:
        return await self._record_store.load_settings()

    async def _apply_reminders(self, settings: UserSettings) -> None:
        if settings.reminders.enabled:
            await self._scheduler.schedule_all()
        else:
            await self._scheduler.cancel_all()

    async def update_reminder_policy(self, **changes: Any) -> UserSettings:
        """
        Change reminder settings, then reschedule or cancel everything.

        Switching reminders on asks for notification permission first.

        Raises:
            ValueError: For unknown fields or invalid values
        """
        unknown = set(changes) - set(ReminderPolicy.model_fields)
        if unknown:
            raise ValueError(f"Unknown reminder fields: {sorted(unknown)}")

        current = await self._record_store.load_settings()
        policy = ReminderPolicy.model_validate({**current.reminders.model_dump(), **changes})
        updated = await self._record_store.update_settings(reminders=policy)

        if self._audit_logger:
            await self._audit_logger.log_reminder_policy_updated(
                policy.enabled, sorted(changes)
            )

        if policy.enabled and not current.reminders.enabled:
            await self._scheduler.initialize_notifications()

        await self._apply_reminders(updated)
        return updated

    async def update_preferences(
        self,
        currency: Optional[str] = None,
        date_format: Optional[str] = None,
    ) -> UserSettings:
        """Change display currency or date format; reminder texts follow."""
        changes = {}
        if currency is not None:
            changes["currency"] = currency
        if date_format is not None:
            changes["date_format"] = date_format
        if not changes:
            return await self._record_store.load_settings()

        updated = await self._record_store.update_settings(**changes)
        await self._apply_reminders(updated)
        return updated

    # -------------------------------------------------------------------------
    # App lock
    # -------------------------------------------------------------------------

    async def set_pin(self, pin: str, confirm_pin: Optional[str] = None) -> UserSettings:
        pin_hash = self._auth_gate.hash_pin(pin, confirm_pin)
        updated = await self._record_store.update_settings(pin_enabled=True, pin=pin_hash)
        if self._audit_logger:
            await self._audit_logger.log_security_changed(AuditEventType.PIN_CHANGED, True)
        return updated

    async def disable_pin(self) -> UserSettings:
        updated = await self._record_store.update_settings(pin_enabled=False, pin=None)
        if self._audit_logger:
            await self._audit_logger.log_security_changed(AuditEventType.PIN_CHANGED, False)
        return updated

    async def verify_pin(self, pin: str) -> bool:
        """
        Check a PIN attempt.

        A correct PIN stored in plaintext (or with old hash parameters)
        is re-hashed on the spot.
        """
        settings = await self._record_store.load_settings()
        if not self._auth_gate.verify_pin(settings, pin):
            return False
        if self._auth_gate.needs_rehash(settings):
            await self._record_store.update_settings(pin=self._auth_gate.hash_pin(pin))
        return True

    async def enable_biometric(self) -> UserSettings:
        """
        Raises:
            CapabilityUnavailableError: No hardware or nothing enrolled
            PermissionDeniedError: Authentication failed
        """
        try:
            await self._auth_gate.confirm_biometric()
        except PermissionDeniedError as e:
            if self._audit_logger:
                await self._audit_logger.log_permission_denied(e.permission)
            raise

        updated = await self._record_store.update_settings(biometric_enabled=True)
        if self._audit_logger:
            await self._audit_logger.log_security_changed(AuditEventType.BIOMETRIC_CHANGED, True)
        return updated

    async def disable_biometric(self) -> UserSettings:
        updated = await self._record_store.update_settings(biometric_enabled=False)
        if self._audit_logger:
            await self._audit_logger.log_security_changed(AuditEventType.BIOMETRIC_CHANGED, False)
        return updated

    async def unlock(self, pin: Optional[str] = None) -> bool:
        """Try to open the app: no lock, then biometrics, then the PIN."""
        settings = await self._record_store.load_settings()
        if not self._auth_gate.requires_authentication(settings):
            return True
        if settings.biometric_enabled and await self._auth_gate.unlock_with_biometric(settings):
            return True
        if settings.pin_enabled and pin is not None:
            return await self.verify_pin(pin)
        return False


# =============================================================================
# UI ACTION BOUNDARY
# =============================================================================

class ActionResult(BaseModel):
    """Outcome of one user action, ready to show."""

    success: bool
    message: str = ""
    value: Any = None
    error_type: Optional[str] = None


async def run_user_action(
    action: Awaitable[Any],
    audit_logger: Optional[AuditLogger] = None,
    correlation_id: Optional[UUID] = None,
    success_message: str = "",
) -> ActionResult:
    """
    Await one user-initiated operation and convert any failure.

    Input and guard errors keep their own message; everything else gets
    the generic one and is logged. Nothing is retried: the user can
    repeat the action.
    """
    try:
        value = await action
    except (ValidationFailedError, CategoryError) as e:
        return ActionResult(success=False, message=str(e), error_type=type(e).__name__)
    except FeatureDisabledError as e:
        return ActionResult(
            success=False,
            message="This feature is not available.",
            error_type=type(e).__name__,
        )
    except (PermissionDeniedError, CapabilityUnavailableError) as e:
        return ActionResult(success=False, message=str(e), error_type=type(e).__name__)
    except Exception as e:
        if audit_logger:
            await audit_logger.log_error(
                error_type=type(e).__name__,
                error_message=str(e),
                correlation_id=correlation_id,
            )
        return ActionResult(
            success=False,
            message=GENERIC_ERROR_MESSAGE,
            error_type=type(e).__name__,
        )

    return ActionResult(success=True, message=success_message, value=value)


# =============================================================================
# WIRING
# =============================================================================

@dataclass
class AppComponents:
    """Every service the UI shell needs, built once at startup."""

    settings: Settings
    store: KeyValueStore
    audit_logger: AuditLogger
    feature_flags: FeatureFlags
    record_store: RecordStore
    scheduler: ReminderScheduler
    categories: CategoryManager
    exports: ExportManager
    purchases: PurchaseManager
    ads: AdService
    contacts: ContactsManager
    auth_gate: AuthGate
    records: DebtRecordFlow
    user_settings: SettingsFlow

    async def start(self) -> bool:
        """
        App launch: ask for notification permission and resync reminders.

        Returns:
            Whether reminders can be delivered
        """
        settings = await self.record_store.load_settings()
        if not settings.reminders.enabled:
            return False
        ready = await self.scheduler.initialize_notifications()
        if ready:
            await self.scheduler.schedule_all()
        return ready

    async def run(self, action: Awaitable[Any], success_message: str = "") -> ActionResult:
        return await run_user_action(
            action,
            audit_logger=self.audit_logger,
            success_message=success_message,
        )


def create_app_components(
    settings: Optional[Settings] = None,
    store: Optional[KeyValueStore] = None,
    notifications: Optional[NotificationService] = None,
    biometrics: Optional[BiometricService] = None,
    contacts: Optional[ContactsService] = None,
    file_share: Optional[FileShareService] = None,
    ad_network: Optional[AdNetwork] = None,
    clock: Callable[[], datetime] = datetime.now,
    use_disk: bool = True,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        store: Key-value store to use. Defaults to JSON files under the
               configured data directory, or memory when use_disk is False.
        notifications, biometrics, contacts, file_share, ad_network:
               Platform collaborators. Missing ones are replaced by
               stand-ins that report themselves unavailable.

    Returns:
        AppComponents with every service wired
    """
    settings = settings or get_settings()
    storage_settings = settings.storage
    reminder_defaults = settings.reminders
    ad_settings = settings.ads
    app_settings = settings.app

    configure_logging(app_settings.log_level)

    if store is None:
        if use_disk:
            store = JsonFileKeyValueStore(storage_settings.data_dir)
        else:
            store = InMemoryKeyValueStore()

    audit_logger = AuditLogger(
        KeyValueAuditStorage(
            store,
            key=storage_settings.audit_key,
            max_events=storage_settings.audit_log_max_events,
        )
    )
    feature_flags = FeatureFlags(app_settings.enabled_features_set)

    record_store = RecordStore(
        store,
        records_key=storage_settings.records_key,
        settings_key=storage_settings.settings_key,
        default_settings=build_default_user_settings(settings),
        clock=clock,
    )
    scheduler = ReminderScheduler(
        record_store,
        notifications or UnavailableNotificationService(),
        audit_logger=audit_logger,
        clock=clock,
        overdue_grace_minutes=reminder_defaults.overdue_grace_minutes,
        upcoming_window_days=reminder_defaults.upcoming_window_days,
    )
    categories = CategoryManager(
        store,
        feature_flags,
        key=storage_settings.categories_key,
        audit_logger=audit_logger,
        clock=clock,
    )
    exports = ExportManager(
        ExportRenderer(clock),
        file_share or LocalFileShareService(storage_settings.data_dir / "exports"),
        feature_flags,
        audit_logger=audit_logger,
    )
    purchases = PurchaseManager(
        store,
        key=storage_settings.purchase_key,
        audit_logger=audit_logger,
        clock=clock,
    )
    ads = AdService(
        store,
        purchases,
        ad_network or UnavailableAdNetwork(),
        feature_flags,
        key=storage_settings.ad_frequency_key,
        min_interval_minutes=ad_settings.min_interval_minutes,
        max_per_session=ad_settings.max_per_session,
        max_per_day=ad_settings.max_per_day,
        clock=clock,
    )
    contacts_manager = ContactsManager(
        contacts or UnavailableContactsService(),
        feature_flags,
        audit_logger=audit_logger,
    )
    auth_gate = AuthGate(biometrics or UnavailableBiometricService())
    validator = DebtRecordValidator(
        max_reasonable_amount=Decimal(str(app_settings.max_reasonable_amount)),
        clock=clock,
    )

    return AppComponents(
        settings=settings,
        store=store,
        audit_logger=audit_logger,
        feature_flags=feature_flags,
        record_store=record_store,
        scheduler=scheduler,
        categories=categories,
        exports=exports,
        purchases=purchases,
        ads=ads,
        contacts=contacts_manager,
        auth_gate=auth_gate,
        records=DebtRecordFlow(
            record_store,
            scheduler,
            validator=validator,
            category_manager=categories,
            export_manager=exports,
            audit_logger=audit_logger,
        ),
        user_settings=SettingsFlow(
            record_store,
            scheduler,
            auth_gate,
            audit_logger=audit_logger,
        ),
    )
