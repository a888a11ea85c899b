"""Platform collaborator interfaces and their local stand-ins."""

from iou_tracker.services.platform.interface import (
    AdNetwork,
    BiometricService,
    CapabilityUnavailableError,
    Contact,
    ContactsService,
    FileShareService,
    NotificationService,
    PermissionDeniedError,
    PlatformError,
)
from iou_tracker.services.platform.local import (
    InMemoryNotificationService,
    LocalFileShareService,
    ScheduledNotification,
    UnavailableAdNetwork,
    UnavailableBiometricService,
    UnavailableContactsService,
    UnavailableNotificationService,
)

__all__ = [
    # Interfaces
    "AdNetwork",
    "BiometricService",
    "ContactsService",
    "FileShareService",
    "NotificationService",
    "Contact",
    # Exceptions
    "CapabilityUnavailableError",
    "PermissionDeniedError",
    "PlatformError",
    # Implementations
    "InMemoryNotificationService",
    "LocalFileShareService",
    "ScheduledNotification",
    "UnavailableAdNetwork",
    "UnavailableBiometricService",
    "UnavailableContactsService",
    "UnavailableNotificationService",
]
