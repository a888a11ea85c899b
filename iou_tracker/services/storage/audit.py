"""
Key-Value Audit Storage

Audit events are appended to a capped JSON list under one storage key.
When the list grows past the cap, the oldest events are dropped.
"""

from uuid import UUID

import structlog
from pydantic import ValidationError

from iou_tracker.models.audit import AuditEvent
from iou_tracker.services.storage.interface import (
    AuditStorageInterface,
    KeyValueStore,
    StorageError,
)


class KeyValueAuditStorage(AuditStorageInterface):
    """
    Audit trail persisted in the key-value store.

    Audit events are append-only.
    """

    def __init__(
        self,
        store: KeyValueStore,
        key: str = "iou_tracker_audit_log",
        max_events: int = 500,
    ):
        self._store = store
        self._key = key
        self._max_events = max_events
        self._logger = structlog.get_logger(__name__)

    async def _load_events(self) -> list[AuditEvent]:
        data = await self._store.get_json(self._key) or []
        events = []
        for item in data:
            try:
                events.append(AuditEvent.model_validate(item))
            except ValidationError:
                continue  # Skip malformed entries
        return events

    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event, trimming the oldest beyond the cap."""
        try:
            data = await self._store.get_json(self._key) or []
            data.append(event.to_storage_dict())
            if len(data) > self._max_events:
                data = data[-self._max_events:]
            await self._store.set_json(self._key, data)
            return True
        except StorageError as e:
            # Don't raise - audit logging should not break the main flow
            self._logger.warning(
                "audit_append_failed",
                error=str(e),
                event_id=str(event.event_id),
            )
            return False

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [
            event for event in await self._load_events()
            if event.correlation_id == correlation_id
        ]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        events = [
            event for event in await self._load_events()
            if event.entity_type == entity_type and event.entity_id == entity_id
        ]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        events = await self._load_events()
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
