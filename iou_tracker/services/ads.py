"""
Interstitial Ad Throttling

DESIGN DECISION: Full-screen ads are rate limited so they never
overwhelm the user. An interstitial is shown only when ALL limits pass:
- a minimum interval since the last one
- a per-session cap
- a per-day cap (the daily counter resets when the calendar day changes)

Counters live in the key-value store and are written after every shown
ad. Nothing is shown when the user bought ad-free, when the ads feature
is off, or when no ad network exists in this runtime.
"""

from datetime import datetime, timedelta
from typing import Callable

import structlog
from pydantic import ValidationError

from iou_tracker.models.debt import Feature
from iou_tracker.models.monetization import AdFrequencyState
from iou_tracker.services.features import FeatureFlags
from iou_tracker.services.platform import AdNetwork
from iou_tracker.services.purchases import PurchaseManager
from iou_tracker.services.storage import KeyValueStore, StorageError


class AdService:
    """Decides whether ads may be shown and shows interstitials."""

    def __init__(
        self,
        store: KeyValueStore,
        purchases: PurchaseManager,
        ad_network: AdNetwork,
        feature_flags: FeatureFlags,
        key: str = "adFrequencyData",
        min_interval_minutes: int = 5,
        max_per_session: int = 3,
        max_per_day: int = 8,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._store = store
        self._purchases = purchases
        self._ad_network = ad_network
        self._feature_flags = feature_flags
        self._key = key
        self._min_interval = timedelta(minutes=min_interval_minutes)
        self._max_per_session = max_per_session
        self._max_per_day = max_per_day
        self._clock = clock
        self._logger = structlog.get_logger(__name__)

    # -------------------------------------------------------------------------
    # Counters
    # -------------------------------------------------------------------------

    async def load_state(self) -> AdFrequencyState:
        data = await self._store.get_json(self._key)
        if data is None:
            return AdFrequencyState(last_date=self._clock().date())
        try:
            return AdFrequencyState.model_validate(data)
        except ValidationError as e:
            raise StorageError(f"Stored ad counters are malformed: {e}") from e

    async def _save_state(self, state: AdFrequencyState) -> None:
        await self._store.set_json(self._key, state.to_storage_dict())

    async def _current_state(self) -> AdFrequencyState:
        """Load counters, rolling the daily counter over on a new day."""
        state = await self.load_state()
        today = self._clock().date()
        if state.last_date != today:
            state = state.model_copy(update={"interstitials_today": 0, "last_date": today})
            await self._save_state(state)
        return state

    def _within_limits(self, state: AdFrequencyState) -> bool:
        now = self._clock()
        if (
            state.last_interstitial_timestamp is not None
            and now - state.last_interstitial_timestamp < self._min_interval
        ):
            return False
        if state.interstitials_today >= self._max_per_day:
            return False
        if state.interstitials_session >= self._max_per_session:
            return False
        return True

    # -------------------------------------------------------------------------
    # Decisions
    # -------------------------------------------------------------------------

    async def should_show_ads(self) -> bool:
        """False when ads are switched off or the user bought ad-free."""
        if not self._feature_flags.is_enabled(Feature.ADS):
            return False
        return not await self._purchases.is_ad_free_unlocked()

    async def can_show_interstitial(self) -> bool:
        """Whether the frequency limits currently allow an interstitial."""
        return self._within_limits(await self._current_state())

    async def show_interstitial(self, context: str = "general") -> bool:
        """
        Show an interstitial if everything allows it.

        Returns:
            True if an ad was shown
        """
        if not await self.should_show_ads():
            return False
        if not self._ad_network.is_available():
            self._logger.debug("ad_network_unavailable", context=context)
            return False

        state = await self._current_state()
        if not self._within_limits(state):
            self._logger.info("interstitial_throttled", context=context)
            return False
        if not self._ad_network.is_interstitial_loaded():
            return False

        if not await self._ad_network.show_interstitial():
            return False

        await self._save_state(state.model_copy(update={
            "last_interstitial_timestamp": self._clock(),
            "interstitials_today": state.interstitials_today + 1,
            "interstitials_session": state.interstitials_session + 1,
        }))
        self._logger.info("interstitial_shown", context=context)
        return True

    async def reset_session_counters(self) -> None:
        """Start a new ad session (call when the app comes to the foreground)."""
        state = await self.load_state()
        await self._save_state(state.model_copy(update={"interstitials_session": 0}))

    async def get_ad_stats(self) -> dict:
        state = await self._current_state()
        return {
            "interstitials_today": state.interstitials_today,
            "interstitials_session": state.interstitials_session,
            "can_show_ad": self._within_limits(state),
        }

