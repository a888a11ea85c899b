"""
Models for the ad-free purchase and interstitial ad throttling.

Both are tiny state objects persisted as-is in the key-value store.
"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from iou_tracker.models.debt import to_local_naive


class PurchaseState(BaseModel):
    """Whether the one-time ad removal has been bought."""
    model_config = ConfigDict(populate_by_name=True)

    ad_free_unlocked: bool = Field(default=False, alias="adFreeUnlocked")
    purchase_date: Optional[datetime] = Field(default=None, alias="purchaseDate")
    transaction_id: Optional[str] = Field(default=None, alias="transactionId")

    @field_validator('purchase_date')
    @classmethod
    def normalize_purchase_date(cls, v: Optional[datetime]) -> Optional[datetime]:
        return to_local_naive(v)

    def to_storage_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class AdFrequencyState(BaseModel):
    """
    Counters used to throttle full-screen ads.

    The daily counter is tied to last_date and resets when the calendar
    day changes; the session counter resets when the app comes back to
    the foreground.
    """
    model_config = ConfigDict(populate_by_name=True)

    last_interstitial_timestamp: Optional[datetime] = Field(
        default=None,
        alias="lastInterstitialTimestamp",
    )
    interstitials_today: int = Field(default=0, ge=0, alias="interstitialsToday")
    interstitials_session: int = Field(default=0, ge=0, alias="interstitialsSession")
    last_date: date = Field(default_factory=date.today, alias="lastDate")

    @field_validator('last_interstitial_timestamp')
    @classmethod
    def normalize_timestamp(cls, v: Optional[datetime]) -> Optional[datetime]:
        return to_local_naive(v)

    def to_storage_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
