"""
Data Models Package

This package contains all Pydantic models used in the IOU Tracker.
All data flowing through the system must conform to these schemas.
"""

from iou_tracker.models.debt import (
    Category,
    CategorySummary,
    Dashboard,
    DebtRecord,
    DebtRecordDraft,
    Direction,
    ExportFormat,
    Feature,
    ReminderPolicy,
    Summary,
    UpcomingReminder,
    UserSettings,
    ValidationIssue,
    ValidationResult,
)
from iou_tracker.models.monetization import AdFrequencyState, PurchaseState
from iou_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Debt models
    "Category",
    "CategorySummary",
    "Dashboard",
    "DebtRecord",
    "DebtRecordDraft",
    "Direction",
    "ExportFormat",
    "Feature",
    "ReminderPolicy",
    "Summary",
    "UpcomingReminder",
    "UserSettings",
    "ValidationIssue",
    "ValidationResult",
    # Monetization models
    "AdFrequencyState",
    "PurchaseState",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
