"""Services package."""

from iou_tracker.services.ads import AdService
from iou_tracker.services.auth import AuthGate
from iou_tracker.services.categories import (
    CategoryError,
    CategoryManager,
    CategoryNotFoundError,
    DuplicateNameError,
    ProtectedDefaultError,
)
from iou_tracker.services.contacts import ContactsManager
from iou_tracker.services.export import ExportManager, ExportRenderer, ExportResult
from iou_tracker.services.features import FeatureDisabledError, FeatureFlags
from iou_tracker.services.purchases import PurchaseManager
from iou_tracker.services.reminders import ReminderScheduler
from iou_tracker.services.storage import (
    KeyValueStore,
    RecordStore,
    StorageError,
)

__all__ = [
    # Ads and purchases
    "AdService",
    "PurchaseManager",
    # Auth
    "AuthGate",
    # Categories
    "CategoryError",
    "CategoryManager",
    "CategoryNotFoundError",
    "DuplicateNameError",
    "ProtectedDefaultError",
    # Contacts
    "ContactsManager",
    # Export
    "ExportManager",
    "ExportRenderer",
    "ExportResult",
    # Features
    "FeatureDisabledError",
    "FeatureFlags",
    # Reminders
    "ReminderScheduler",
    # Storage
    "KeyValueStore",
    "RecordStore",
    "StorageError",
]
