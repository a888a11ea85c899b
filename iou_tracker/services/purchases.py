"""
Ad-Free Purchase

A simulated one-time purchase that removes ads. There is no store
backend: unlocking always succeeds locally and produces a "sim_"
transaction ID. Restoring is not supported.
"""

import secrets
from datetime import datetime
from typing import Callable, Optional

from pydantic import ValidationError

from iou_tracker.audit import AuditLogger
from iou_tracker.models.monetization import PurchaseState
from iou_tracker.services.storage import KeyValueStore, StorageError


AD_FREE_PRODUCT_ID = "iou_tracker_remove_ads"
AD_FREE_PRICE_CENTS = 299
AD_FREE_PRICE_DISPLAY = "$2.99"


def simulated_transaction_id(now: datetime) -> str:
    return f"sim_{int(now.timestamp() * 1000)}_{secrets.token_hex(5)}"


class PurchaseManager:
    """Reads and writes the ad-free purchase state."""

    def __init__(
        self,
        store: KeyValueStore,
        key: str = "iou_tracker_ad_free_purchased",
        audit_logger: Optional[AuditLogger] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._store = store
        self._key = key
        self._audit_logger = audit_logger
        self._clock = clock

    @staticmethod
    def product_details() -> dict:
        """What the purchase screen shows."""
        return {
            "product_id": AD_FREE_PRODUCT_ID,
            "price": AD_FREE_PRICE_DISPLAY,
            "price_cents": AD_FREE_PRICE_CENTS,
        }

    async def get_state(self) -> PurchaseState:
        data = await self._store.get_json(self._key)
        if data is None:
            return PurchaseState()
        try:
            return PurchaseState.model_validate(data)
        except ValidationError as e:
            raise StorageError(f"Stored purchase state is malformed: {e}") from e

    async def is_ad_free_unlocked(self) -> bool:
        return (await self.get_state()).ad_free_unlocked

    async def unlock_ad_free(self) -> PurchaseState:
        """
        Complete the simulated purchase.

        Unlocking twice keeps the first purchase.
        """
        current = await self.get_state()
        if current.ad_free_unlocked:
            return current

        now = self._clock()
        state = PurchaseState(
            ad_free_unlocked=True,
            purchase_date=now,
            transaction_id=simulated_transaction_id(now),
        )
        await self._store.set_json(self._key, state.to_storage_dict())

        if self._audit_logger:
            await self._audit_logger.log_ad_free_unlocked(state.transaction_id)
        return state

    async def restore_purchases(self) -> bool:
        """No store backend to restore from; always False."""
        return False

    async def reset(self) -> None:
        """Forget the purchase (used for testing the free tier)."""
        await self._store.remove_item(self._key)
