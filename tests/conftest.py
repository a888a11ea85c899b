"""
Shared fixtures for IOU Tracker tests.

Everything runs against the in-memory key-value store and the in-memory
notification registry; time comes from a FixedClock so reminder
arithmetic is deterministic.
"""

import asyncio
from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from iou_tracker.audit import AuditLogger
from iou_tracker.models.debt import DebtRecord, Direction
from iou_tracker.services.features import FeatureFlags
from iou_tracker.services.platform import BiometricService, InMemoryNotificationService
from iou_tracker.services.reminders import ReminderScheduler
from iou_tracker.services.storage import (
    InMemoryKeyValueStore,
    KeyValueAuditStorage,
    RecordStore,
)


NOW = datetime(2024, 6, 10, 12, 0)


def run(coro):
    """Run a coroutine to completion."""
    return asyncio.run(coro)


class FixedClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class FakeBiometricService(BiometricService):
    """Biometric stand-in whose outcome is set per test."""

    def __init__(self, hardware=True, enrolled=True, succeeds=True):
        self.hardware = hardware
        self.enrolled = enrolled
        self.succeeds = succeeds
        self.prompts = []

    async def has_hardware(self):
        return self.hardware

    async def is_enrolled(self):
        return self.enrolled

    async def authenticate(self, prompt):
        self.prompts.append(prompt)
        return self.succeeds


def make_record(**overrides) -> DebtRecord:
    """A valid active record; override any field by name."""
    data = {
        "direction": Direction.LENT,
        "amount": Decimal("50"),
        "counterparty_name": "Ama",
        "created_date": NOW - timedelta(days=1),
        "created_at": NOW - timedelta(days=1),
        "updated_at": NOW - timedelta(days=1),
    }
    data.update(overrides)
    return DebtRecord(**data)


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def store():
    return InMemoryKeyValueStore()


@pytest.fixture
def audit_storage(store):
    return KeyValueAuditStorage(store)


@pytest.fixture
def audit_logger(audit_storage):
    return AuditLogger(audit_storage)


@pytest.fixture
def notifications(clock):
    return InMemoryNotificationService(clock=clock)


@pytest.fixture
def record_store(store, clock):
    return RecordStore(store, clock=clock)


@pytest.fixture
def scheduler(record_store, notifications, audit_logger, clock):
    return ReminderScheduler(
        record_store,
        notifications,
        audit_logger=audit_logger,
        clock=clock,
    )


@pytest.fixture
def all_features():
    return FeatureFlags.all_enabled()


@pytest.fixture
def no_features():
    return FeatureFlags([])
