"""
Record Store

Loads and saves the debt record list and the user settings object.

DESIGN DECISION: Every mutation is a whole-list read-modify-write:
load the full list, change it in memory, save the full list. A failed
read or write aborts the operation before anything is saved, so a
mutation is either fully applied or not at all.
"""

from datetime import datetime
from typing import Any, Callable, Optional

from pydantic import ValidationError

from iou_tracker.config import Settings
from iou_tracker.models.debt import DebtRecord, ReminderPolicy, UserSettings
from iou_tracker.services.storage.interface import KeyValueStore, StorageError


_IMMUTABLE_FIELDS = frozenset({"id", "created_at"})


def build_default_user_settings(settings: Settings) -> UserSettings:
    """Build the settings a user starts with, from configuration."""
    app = settings.app
    reminders = settings.reminders
    return UserSettings(
        currency=app.default_currency,
        date_format=app.default_date_format,
        reminders=ReminderPolicy(
            enabled=reminders.enabled,
            days_before_due_date=reminders.days_before_due_date,
            periodic_interval_days=reminders.periodic_interval_days,
            notification_time_of_day=reminders.notification_time,
            message_template=reminders.message_template,
        ),
    )


class RecordStore:
    """
    Persistence for debt records and user settings.

    Missing keys read as "nothing stored yet": an empty record list and
    default settings.
    """

    def __init__(
        self,
        store: KeyValueStore,
        records_key: str = "iou_tracker_ious",
        settings_key: str = "iou_tracker_settings",
        default_settings: Optional[UserSettings] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._store = store
        self._records_key = records_key
        self._settings_key = settings_key
        self._default_settings = default_settings or UserSettings()
        self._clock = clock

    # -------------------------------------------------------------------------
    # Records
    # -------------------------------------------------------------------------

    async def load_records(self) -> list[DebtRecord]:
        """Load every stored record, settled ones included."""
        data = await self._store.get_json(self._records_key)
        if data is None:
            return []
        if not isinstance(data, list):
            raise StorageError("Stored record list is not a list")
        try:
            return [DebtRecord.model_validate(item) for item in data]
        except ValidationError as e:
            raise StorageError(f"Stored record list is malformed: {e}") from e

    async def save_records(self, records: list[DebtRecord]) -> None:
        """Replace the stored record list."""
        await self._store.set_json(
            self._records_key,
            [record.to_storage_dict() for record in records],
        )

    async def get_record(self, record_id: str) -> Optional[DebtRecord]:
        """Retrieve a record by its ID."""
        for record in await self.load_records():
            if record.id == record_id:
                return record
        return None

    async def add_record(self, record: DebtRecord) -> DebtRecord:
        """
        Append a new record.

        created_at and updated_at are stamped here; the ID is whatever the
        record was built with.
        """
        records = await self.load_records()
        if any(existing.id == record.id for existing in records):
            raise StorageError(f"Record ID already exists: {record.id}")

        now = self._clock()
        new_record = record.model_copy(update={"created_at": now, "updated_at": now})
        records.append(new_record)
        await self.save_records(records)
        return new_record

    async def update_record(self, record_id: str, **changes: Any) -> Optional[DebtRecord]:
        """
        Apply field changes to one record.

        Returns:
            The updated record, or None if no record has this ID

        Raises:
            ValueError: If changes touch an immutable or unknown field,
                or produce an invalid record
        """
        forbidden = _IMMUTABLE_FIELDS.intersection(changes)
        if forbidden:
            raise ValueError(f"Cannot change immutable fields: {sorted(forbidden)}")
        unknown = set(changes) - set(DebtRecord.model_fields)
        if unknown:
            raise ValueError(f"Unknown record fields: {sorted(unknown)}")

        records = await self.load_records()
        for index, record in enumerate(records):
            if record.id != record_id:
                continue

            data = record.model_dump()
            data.update(changes)
            data["updated_at"] = self._clock()
            updated = DebtRecord.model_validate(data)

            records[index] = updated
            await self.save_records(records)
            return updated

        return None

    async def settle_record(self, record_id: str) -> Optional[DebtRecord]:
        """
        Mark a record as settled.

        Settling twice keeps the original settlement date.
        """
        record = await self.get_record(record_id)
        if record is None:
            return None
        if record.settled:
            return record
        return await self.update_record(
            record_id,
            settled=True,
            settled_date=self._clock(),
        )

    async def delete_record(self, record_id: str) -> bool:
        """Delete a record. Returns False if it did not exist."""
        records = await self.load_records()
        remaining = [record for record in records if record.id != record_id]
        if len(remaining) == len(records):
            return False
        await self.save_records(remaining)
        return True

    # -------------------------------------------------------------------------
    # Settings
    # -------------------------------------------------------------------------

    async def load_settings(self) -> UserSettings:
        """
        Load user settings, filling missing keys from defaults.

        The merge is shallow: a stored "reminders" object replaces the
        default one as a whole (its own missing keys still get model
        defaults).
        """
        data = await self._store.get_json(self._settings_key)
        if data is None:
            return self._default_settings.model_copy(deep=True)
        if not isinstance(data, dict):
            raise StorageError("Stored settings are not an object")

        merged = self._default_settings.to_storage_dict()
        merged.update(data)
        try:
            return UserSettings.model_validate(merged)
        except ValidationError as e:
            raise StorageError(f"Stored settings are malformed: {e}") from e

    async def save_settings(self, settings: UserSettings) -> None:
        """Replace the stored settings object."""
        await self._store.set_json(self._settings_key, settings.to_storage_dict())

    async def update_settings(self, **changes: Any) -> UserSettings:
        """Apply field changes to the settings and persist them."""
        unknown = set(changes) - set(UserSettings.model_fields)
        if unknown:
            raise ValueError(f"Unknown settings fields: {sorted(unknown)}")

        current = await self.load_settings()
        data = current.model_dump()
        data.update(changes)
        updated = UserSettings.model_validate(data)
        await self.save_settings(updated)
        return updated
