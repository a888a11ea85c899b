"""
Core Data Models for IOU Tracker

These models define the strict schemas for all data flowing through the system.
They are designed to:
1. Enforce type safety at runtime
2. Provide clear validation error messages
3. Be serializable for the key-value store
4. Stay readable by data written by the original mobile app

DESIGN DECISION: Python field names describe the domain
(direction, counterparty_name, settled), while the aliases keep the JSON
keys the mobile app already wrote to storage (type, personName, isSettled).
Always dump with by_alias=True when persisting.
"""

from datetime import datetime, time
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_serializer,
    field_validator,
    model_validator,
)

from iou_tracker.formatting import DATE_FORMATS


def new_record_id() -> str:
    """Generate an opaque record identifier."""
    return uuid4().hex


def to_local_naive(value: Optional[datetime]) -> Optional[datetime]:
    """
    Normalize a timestamp to naive local time.

    Records written by the mobile app carry UTC offsets ("...Z"), records
    created here are naive local times. Mixing both breaks comparisons, so
    everything is stored and compared as naive local time.
    """
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class Direction(str, Enum):
    """
    Which way the money went.

    LENT: the counterparty owes the user.
    BORROWED: the user owes the counterparty.
    """
    LENT = "lent"
    BORROWED = "borrowed"

    @property
    def label(self) -> str:
        return "Lent" if self is Direction.LENT else "Borrowed"


class Feature(str, Enum):
    """Named optional capabilities, switched on through configuration."""
    CONTACTS_INTEGRATION = "contacts_integration"
    CUSTOM_CATEGORIES = "custom_categories"
    EXPORT = "export"
    ADS = "ads"


class ExportFormat(str, Enum):
    """Supported export formats."""
    PDF = "pdf"  # HTML document meant for print-to-PDF
    CSV = "csv"


# =============================================================================
# CORE DEBT RECORD MODEL
# =============================================================================

class DebtRecord(BaseModel):
    """
    A single informal debt between the user and a counterparty.

    Once settled, a record no longer counts toward totals and never
    receives reminders again.
    """
    model_config = ConfigDict(
        str_strip_whitespace=True,
        populate_by_name=True,
    )

    # Identity
    id: str = Field(
        default_factory=new_record_id,
        min_length=1,
        description="Opaque unique record ID"
    )

    # Core fields
    direction: Direction = Field(
        ...,
        alias="type",
        description="LENT means the counterparty owes the user"
    )
    amount: Decimal = Field(
        ...,
        gt=0,
        description="Positive, currency-agnostic magnitude"
    )
    counterparty_name: str = Field(
        ...,
        alias="personName",
        min_length=1,
        max_length=200,
        description="Who the debt is with"
    )
    note: Optional[str] = Field(
        default=None,
        max_length=1000,
    )
    phone_number: Optional[str] = Field(
        default=None,
        alias="phoneNumber",
        max_length=30,
    )
    category_id: Optional[str] = Field(
        default=None,
        alias="categoryId",
        description="Weak reference to a Category; None means 'general'"
    )

    # Dates
    created_date: datetime = Field(
        default_factory=datetime.now,
        alias="date",
        description="When the debt arose"
    )
    due_date: Optional[datetime] = Field(
        default=None,
        alias="dueDate",
    )

    # Settlement
    settled: bool = Field(
        default=False,
        alias="isSettled",
    )
    settled_date: Optional[datetime] = Field(
        default=None,
        alias="settledDate",
    )

    # Bookkeeping
    created_at: datetime = Field(
        default_factory=datetime.now,
        alias="createdAt",
    )
    updated_at: datetime = Field(
        default_factory=datetime.now,
        alias="updatedAt",
    )

    # Reminder bookkeeping
    last_reminder_sent_at: Optional[datetime] = Field(
        default=None,
        alias="lastReminder",
    )
    reminders_sent_count: int = Field(
        default=0,
        ge=0,
        alias="remindersSent",
    )

    @field_validator(
        'created_date', 'due_date', 'settled_date',
        'created_at', 'updated_at', 'last_reminder_sent_at',
    )
    @classmethod
    def normalize_timestamps(cls, v: Optional[datetime]) -> Optional[datetime]:
        return to_local_naive(v)

    @field_validator('note', 'phone_number', 'category_id')
    @classmethod
    def empty_to_none(cls, v: Optional[str]) -> Optional[str]:
        """Blank optional text is stored as absent."""
        return v or None

    @model_validator(mode='after')
    def validate_settlement(self) -> 'DebtRecord':
        """settled_date is set if and only if the record is settled."""
        if self.settled and self.settled_date is None:
            raise ValueError("Settled record must have a settled date")
        if not self.settled and self.settled_date is not None:
            raise ValueError("Settled date given for an unsettled record")
        return self

    @property
    def is_active(self) -> bool:
        return not self.settled

    def to_storage_dict(self) -> dict:
        """Convert to the JSON-compatible shape written to storage."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class DebtRecordDraft(BaseModel):
    """
    Raw form input for a new record.

    CRITICAL: This is UNVALIDATED input. Nothing here is trusted until
    DebtRecordValidator has passed it; constraints are deliberately loose
    so the validator can report every problem at once instead of pydantic
    stopping at the first.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    direction: Optional[Direction] = None
    amount: Optional[Decimal] = None
    counterparty_name: str = ""
    note: Optional[str] = None
    phone_number: Optional[str] = None
    category_id: Optional[str] = None
    created_date: Optional[datetime] = None
    due_date: Optional[datetime] = None

    @field_validator('created_date', 'due_date')
    @classmethod
    def normalize_timestamps(cls, v: Optional[datetime]) -> Optional[datetime]:
        return to_local_naive(v)


# =============================================================================
# CATEGORIES
# =============================================================================

class Category(BaseModel):
    """A tag used to group records (e.g. Family, Business)."""
    model_config = ConfigDict(
        str_strip_whitespace=True,
        populate_by_name=True,
    )

    id: str = Field(
        default_factory=lambda: f"category_{uuid4().hex[:12]}",
        min_length=1,
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=50,
    )
    color: str = Field(
        default="#007AFF",
        pattern=r"^#[0-9A-Fa-f]{6}$",
        description="Hex color code"
    )
    icon: str = Field(
        default="banknote",
        min_length=1,
    )
    created_at: datetime = Field(
        default_factory=datetime.now,
        alias="createdAt",
    )
    is_default: bool = Field(
        default=False,
        alias="isDefault",
        description="Default categories cannot be deleted"
    )

    @field_validator('created_at')
    @classmethod
    def normalize_created_at(cls, v: datetime) -> datetime:
        return to_local_naive(v)

    def to_storage_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


# =============================================================================
# SETTINGS
# =============================================================================

class ReminderPolicy(BaseModel):
    """When and how the user wants to be reminded."""
    model_config = ConfigDict(populate_by_name=True)

    enabled: bool = Field(
        default=True,
        description="Master switch"
    )
    days_before_due_date: int = Field(
        default=3,
        ge=0,
        le=365,
        alias="dueDateDaysBefore",
    )
    periodic_interval_days: int = Field(
        default=7,
        ge=1,
        le=365,
        alias="periodicReminderDays",
    )
    notification_time_of_day: time = Field(
        default=time(9, 0),
        alias="notificationTime",
        description="Wall-clock time reminders fire at"
    )
    message_template: str = Field(
        default="Hi {name}, just a friendly reminder about our {type} of {amount}. Thanks!",
        alias="customMessage",
        max_length=500,
    )

    @field_serializer('notification_time_of_day')
    def serialize_time(self, v: time) -> str:
        return v.strftime("%H:%M")

    def render_message(self, record: DebtRecord, amount_text: str) -> str:
        """
        Fill the message template from a record.

        Only the {name}, {type} and {amount} placeholders are substituted;
        anything else in the template is left as typed.
        """
        return (
            self.message_template
            .replace("{name}", record.counterparty_name)
            .replace("{type}", "loan" if record.direction is Direction.LENT else "debt")
            .replace("{amount}", amount_text)
        )


class UserSettings(BaseModel):
    """Per-user preferences persisted in the key-value store."""
    model_config = ConfigDict(populate_by_name=True)

    pin_enabled: bool = Field(default=False, alias="pinEnabled")
    biometric_enabled: bool = Field(default=False, alias="biometricEnabled")
    pin: Optional[str] = Field(
        default=None,
        description="argon2 hash of the PIN, never the PIN itself"
    )
    currency: str = Field(default="USD", min_length=3, max_length=4)
    date_format: str = Field(default="MM/dd/yyyy", alias="dateFormat")
    reminders: ReminderPolicy = Field(default_factory=ReminderPolicy)

    @field_validator('date_format')
    @classmethod
    def validate_date_format(cls, v: str) -> str:
        if v not in DATE_FORMATS:
            raise ValueError(f"Unsupported date format: {v}")
        return v

    @field_validator('currency')
    @classmethod
    def upper_currency(cls, v: str) -> str:
        return v.upper()

    @property
    def requires_authentication(self) -> bool:
        return self.pin_enabled or self.biometric_enabled

    def to_storage_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# =============================================================================
# DERIVED VIEWS (never persisted)
# =============================================================================

class Summary(BaseModel):
    """Owed/owing totals over the active (unsettled) records."""

    total_owed_to_user: Decimal = Field(
        default=Decimal("0"),
        description="Money others owe to the user"
    )
    total_user_owes: Decimal = Field(
        default=Decimal("0"),
        description="Money the user owes to others"
    )
    net_balance: Decimal = Field(
        default=Decimal("0"),
        description="Positive means the user is in credit"
    )

    @model_validator(mode='after')
    def validate_net_balance(self) -> 'Summary':
        if self.net_balance != self.total_owed_to_user - self.total_user_owes:
            raise ValueError("Net balance must equal owed minus owing")
        return self


class UpcomingReminder(BaseModel):
    """A record paired with the instant its next reminder would fire."""

    record: DebtRecord
    reminder_at: datetime


class CategorySummary(BaseModel):
    """Active record count and total for one category."""

    category: Category
    active_count: int = Field(ge=0)
    total_amount: Decimal = Field(default=Decimal("0"))


class Dashboard(BaseModel):
    """Everything the home screen shows, computed in one read."""

    summary: Summary
    active_records: list[DebtRecord] = Field(default_factory=list)
    upcoming_reminders: list[UpcomingReminder] = Field(default_factory=list)


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'suspicious_value')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="What the user can do about it"
    )


class ValidationResult(BaseModel):
    """
    Result of the two-stage draft validation.

    Stage 1: Schema validation (required fields, positive amount)
    Stage 2: Semantic validation (suspicious but allowed values)
    """

    validated_at: datetime = Field(
        default_factory=datetime.now
    )
    schema_valid: bool
    semantic_valid: bool
    is_valid: bool
    issues: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def error_messages(self) -> list[str]:
        return [issue.message for issue in self.issues if issue.severity == "error"]
