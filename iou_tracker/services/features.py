"""
Feature Flags

DESIGN DECISION: Entitlements are configuration, not code. The set of
enabled capability names is read once at startup (IOU_ENABLED_FEATURES)
and consulted by membership; switching a feature off never requires a
code change.
"""

from typing import Iterable, Union

from iou_tracker.models.debt import Feature


class FeatureDisabledError(Exception):
    """An operation was attempted for a feature that is switched off."""

    def __init__(self, feature: Feature):
        self.feature = feature
        super().__init__(f"Feature is not enabled: {feature.value}")


class FeatureFlags:
    """Immutable set of enabled features."""

    def __init__(self, enabled: Iterable[Union[Feature, str]]):
        names = set()
        for item in enabled:
            name = item.value if isinstance(item, Feature) else str(item).strip().lower()
            if name:
                names.add(name)
        self._enabled = frozenset(names)

    @classmethod
    def all_enabled(cls) -> "FeatureFlags":
        return cls(Feature)

    @property
    def enabled(self) -> frozenset[str]:
        return self._enabled

    def is_enabled(self, feature: Feature) -> bool:
        return feature.value in self._enabled

    def require(self, feature: Feature) -> None:
        """
        Raises:
            FeatureDisabledError: If the feature is switched off
        """
        if not self.is_enabled(feature):
            raise FeatureDisabledError(feature)

    def __contains__(self, feature: Feature) -> bool:
        return self.is_enabled(feature)

    def __repr__(self) -> str:
        return f"FeatureFlags({sorted(self._enabled)!r})"
