"""
Local and Unavailable Platform Implementations

These are the implementations injected when the real platform SDKs are
absent. "Unavailable" variants report False from their capability check;
the in-memory notification registry keeps the scheduling contract
(one pending notification per ID) without delivering anything.
"""

from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Callable, Optional

from pydantic import BaseModel, Field

from iou_tracker.services.platform.interface import (
    AdNetwork,
    BiometricService,
    CapabilityUnavailableError,
    Contact,
    ContactsService,
    FileShareService,
    NotificationService,
)


class ScheduledNotification(BaseModel):
    """A notification waiting in the in-memory registry."""

    notification_id: str
    fire_at: datetime
    fire_delay_seconds: int = Field(ge=1)
    title: str
    body: str
    data: dict[str, Any] = Field(default_factory=dict)


class InMemoryNotificationService(NotificationService):
    """
    Notification registry held in memory.

    Keeps at most one pending notification per ID; scheduling an
    existing ID replaces it.
    """

    def __init__(
        self,
        permission_granted: bool = True,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._permission_granted = permission_granted
        self._clock = clock
        self._pending: dict[str, ScheduledNotification] = {}

    def is_available(self) -> bool:
        return True

    async def request_permission(self) -> bool:
        return self._permission_granted

    async def schedule(
        self,
        notification_id: str,
        fire_delay_seconds: int,
        title: str,
        body: str,
        data: Optional[dict[str, Any]] = None,
    ) -> Optional[str]:
        if not self._permission_granted:
            return None
        self._pending[notification_id] = ScheduledNotification(
            notification_id=notification_id,
            fire_at=self._clock() + timedelta(seconds=fire_delay_seconds),
            fire_delay_seconds=fire_delay_seconds,
            title=title,
            body=body,
            data=data or {},
        )
        return notification_id

    async def cancel(self, notification_id: str) -> None:
        self._pending.pop(notification_id, None)

    async def cancel_all(self) -> None:
        self._pending.clear()

    def pending(self) -> list[ScheduledNotification]:
        """Pending notifications, soonest first."""
        return sorted(self._pending.values(), key=lambda n: n.fire_at)

    def get(self, notification_id: str) -> Optional[ScheduledNotification]:
        return self._pending.get(notification_id)


class UnavailableNotificationService(NotificationService):
    """Stand-in for runtimes without local notifications."""

    def is_available(self) -> bool:
        return False

    async def request_permission(self) -> bool:
        return False

    async def schedule(
        self,
        notification_id: str,
        fire_delay_seconds: int,
        title: str,
        body: str,
        data: Optional[dict[str, Any]] = None,
    ) -> Optional[str]:
        raise CapabilityUnavailableError("notifications")

    async def cancel(self, notification_id: str) -> None:
        raise CapabilityUnavailableError("notifications")

    async def cancel_all(self) -> None:
        raise CapabilityUnavailableError("notifications")


class UnavailableBiometricService(BiometricService):
    """Stand-in for devices without biometric hardware."""

    async def has_hardware(self) -> bool:
        return False

    async def is_enrolled(self) -> bool:
        return False

    async def authenticate(self, prompt: str) -> bool:
        raise CapabilityUnavailableError("biometrics")


class UnavailableContactsService(ContactsService):
    """Stand-in for runtimes without address book access."""

    def is_available(self) -> bool:
        return False

    async def has_permission(self) -> bool:
        return False

    async def request_permission(self) -> bool:
        return False

    async def list_contacts(self) -> list[Contact]:
        raise CapabilityUnavailableError("contacts")


class LocalFileShareService(FileShareService):
    """
    Writes exports to a local directory.

    There is no share sheet outside a device, so sharing is reported as
    unavailable and callers stop after the write.
    """

    def __init__(self, export_dir: Path):
        self._export_dir = Path(export_dir).expanduser()

    async def write_file(self, name: str, content: str) -> str:
        if Path(name).name != name:
            raise ValueError(f"Export file name must not contain a path: {name}")
        self._export_dir.mkdir(parents=True, exist_ok=True)
        path = self._export_dir / name
        path.write_text(content, encoding="utf-8")
        return str(path)

    def is_sharing_available(self) -> bool:
        return False

    async def share(self, file_uri: str, mime_type: str) -> None:
        raise CapabilityUnavailableError("sharing")


class UnavailableAdNetwork(AdNetwork):
    """Stand-in for runtimes without an ad SDK."""

    def is_available(self) -> bool:
        return False

    def is_interstitial_loaded(self) -> bool:
        return False

    async def show_interstitial(self) -> bool:
        return False
