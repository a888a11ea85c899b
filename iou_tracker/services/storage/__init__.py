"""
Storage Services Package

Provides the abstract key-value interface, its local implementations,
and the record/audit stores built on top of it.
"""

from iou_tracker.services.storage.interface import (
    AuditStorageInterface,
    KeyValueStore,
    StorageError,
)
from iou_tracker.services.storage.local import (
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
)
from iou_tracker.services.storage.records import (
    RecordStore,
    build_default_user_settings,
)
from iou_tracker.services.storage.audit import KeyValueAuditStorage

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "KeyValueStore",
    # Exceptions
    "StorageError",
    # Implementations
    "InMemoryKeyValueStore",
    "JsonFileKeyValueStore",
    "KeyValueAuditStorage",
    "RecordStore",
    "build_default_user_settings",
]
