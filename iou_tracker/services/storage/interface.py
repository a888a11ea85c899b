"""
Abstract Storage Interface

DESIGN DECISION: The app persists everything in a plain async key-value
store holding JSON strings, exactly like the phone's local storage.
We define an abstract interface for it so that we can:
1. Use a JSON-file store on disk for real use
2. Use in-memory storage for testing
3. Swap in a different backend without touching business logic

The interface is intentionally tiny: get, set, remove. Higher-level
stores (records, categories, purchases) do whole-value read-modify-write
on top of it.
"""

import json
from abc import ABC, abstractmethod
from typing import Any, Optional
from uuid import UUID

from iou_tracker.models.audit import AuditEvent


class StorageError(Exception):
    """Base exception for storage errors."""
    pass


class KeyValueStore(ABC):
    """
    Abstract async key-value store.

    Values are JSON-encoded strings. Implementations raise StorageError
    when the underlying medium fails.
    """

    @abstractmethod
    async def get_item(self, key: str) -> Optional[str]:
        """
        Read the raw value stored under a key.

        Returns:
            The stored string, or None if the key was never written
        """
        pass

    @abstractmethod
    async def set_item(self, key: str, value: str) -> None:
        """
        Replace the value stored under a key.

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def remove_item(self, key: str) -> None:
        """Remove a key. Removing a missing key is not an error."""
        pass

    async def get_json(self, key: str) -> Optional[Any]:
        """Read and decode a JSON value; None if the key is absent."""
        raw = await self.get_item(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise StorageError(f"Stored value for {key!r} is not valid JSON: {e}") from e

    async def set_json(self, key: str, value: Any) -> None:
        """Encode a value as JSON and store it."""
        await self.set_item(key, json.dumps(value, ensure_ascii=False))


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Get all events sharing a correlation ID, oldest first."""
        pass

    @abstractmethod
    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        """Get all events for a specific entity, oldest first."""
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get the most recent events, newest first."""
        pass
