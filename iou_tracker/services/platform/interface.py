"""
Platform Capability Interfaces

DESIGN DECISION: Notifications, biometrics, contacts, file sharing and
ads are provided by the host platform and may simply not exist in the
current runtime (sandboxed shells, web, tests). Each collaborator
exposes an explicit capability check (is_available), and callers branch
on that boolean instead of catching import or runtime failures.

Implementations are injected at startup; nothing in the core imports a
platform SDK.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from pydantic import BaseModel, Field


class PlatformError(Exception):
    """Base exception for platform collaborator errors."""
    pass


class PermissionDeniedError(PlatformError):
    """The user refused a platform permission."""

    def __init__(self, permission: str, message: Optional[str] = None):
        self.permission = permission
        super().__init__(message or f"Permission denied: {permission}")


class CapabilityUnavailableError(PlatformError):
    """The platform does not provide this capability in this runtime."""

    def __init__(self, capability: str, message: Optional[str] = None):
        self.capability = capability
        super().__init__(message or f"{capability} is not available")


class Contact(BaseModel):
    """A device contact, reduced to what the record form needs."""

    id: str
    name: str = Field(..., min_length=1)
    phone_numbers: list[str] = Field(default_factory=list)
    emails: list[str] = Field(default_factory=list)

    @property
    def display_name(self) -> str:
        return self.name


class NotificationService(ABC):
    """Local notification scheduling."""

    @abstractmethod
    def is_available(self) -> bool:
        """Capability check: can notifications be scheduled at all?"""
        pass

    @abstractmethod
    async def request_permission(self) -> bool:
        """Ask for notification permission. Returns True if granted."""
        pass

    @abstractmethod
    async def schedule(
        self,
        notification_id: str,
        fire_delay_seconds: int,
        title: str,
        body: str,
        data: Optional[dict[str, Any]] = None,
    ) -> Optional[str]:
        """
        Schedule a notification to fire after a delay.

        Scheduling under an ID that is already pending replaces it.

        Returns:
            A platform handle, or None if the platform declined
        """
        pass

    @abstractmethod
    async def cancel(self, notification_id: str) -> None:
        """Cancel a pending notification. Unknown IDs are ignored."""
        pass

    @abstractmethod
    async def cancel_all(self) -> None:
        """Cancel every pending notification."""
        pass


class BiometricService(ABC):
    """Fingerprint / face authentication."""

    @abstractmethod
    async def has_hardware(self) -> bool:
        pass

    @abstractmethod
    async def is_enrolled(self) -> bool:
        pass

    @abstractmethod
    async def authenticate(self, prompt: str) -> bool:
        """Prompt the user. Returns True on success."""
        pass


class ContactsService(ABC):
    """Read access to the device address book."""

    @abstractmethod
    def is_available(self) -> bool:
        pass

    @abstractmethod
    async def has_permission(self) -> bool:
        pass

    @abstractmethod
    async def request_permission(self) -> bool:
        pass

    @abstractmethod
    async def list_contacts(self) -> list[Contact]:
        """List contacts. Only called once permission is granted."""
        pass


class FileShareService(ABC):
    """Writing exported files and handing them to the share sheet."""

    @abstractmethod
    async def write_file(self, name: str, content: str) -> str:
        """
        Write a text file.

        Returns:
            URI (or path) of the written file
        """
        pass

    @abstractmethod
    def is_sharing_available(self) -> bool:
        pass

    @abstractmethod
    async def share(self, file_uri: str, mime_type: str) -> None:
        pass


class AdNetwork(ABC):
    """Full-screen interstitial ads."""

    @abstractmethod
    def is_available(self) -> bool:
        """Capability check: is an ad SDK present in this runtime?"""
        pass

    @abstractmethod
    def is_interstitial_loaded(self) -> bool:
        pass

    @abstractmethod
    async def show_interstitial(self) -> bool:
        """Show the loaded interstitial. Returns True if it was shown."""
        pass
