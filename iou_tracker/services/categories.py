"""
Category Manager

CRUD over the small list of tags used to group records.

DESIGN DECISION: The whole category list is one stored value. Every
mutation loads the list, changes it, and writes the full list back, so
a failed write leaves the previous list intact.

Reading is always allowed; creating, editing, deleting and resetting
require the custom_categories feature.
"""

from datetime import datetime
from typing import Callable, Optional

from pydantic import ValidationError

from iou_tracker.audit import AuditLogger
from iou_tracker.models.audit import AuditEventType
from iou_tracker.models.debt import Category, Feature
from iou_tracker.services.features import FeatureFlags
from iou_tracker.services.storage import KeyValueStore, StorageError


GENERAL_CATEGORY_ID = "general"

# (id, name, color, icon) of the categories every user starts with
DEFAULT_CATEGORIES = (
    ("general", "General", "#007AFF", "banknote"),
    ("personal", "Personal", "#34C759", "person"),
    ("business", "Business", "#FF9500", "building"),
    ("family", "Family", "#FF2D92", "house"),
)

CATEGORY_COLORS = (
    "#007AFF",  # Blue
    "#34C759",  # Green
    "#FF9500",  # Orange
    "#FF2D92",  # Pink
    "#5856D6",  # Purple
    "#FF3B30",  # Red
    "#00C7BE",  # Teal
    "#FFCC00",  # Yellow
    "#8E8E93",  # Gray
    "#A2845E",  # Brown
)

CATEGORY_ICONS = {
    "banknote": "Money",
    "person": "Person",
    "building": "Business",
    "house": "Home",
    "car": "Car",
    "cart": "Shopping",
    "gamecontroller": "Entertainment",
    "book": "Education",
    "heart": "Health",
    "airplane": "Travel",
    "gift": "Gift",
    "star": "Special",
}


# =============================================================================
# EXCEPTIONS
# =============================================================================

class CategoryError(Exception):
    """Base exception for category mutations."""
    pass


class DuplicateNameError(CategoryError):
    """Another category already uses this name (case-insensitive)."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Category name already exists: {name}")


class CategoryNotFoundError(CategoryError):
    def __init__(self, category_id: str):
        self.category_id = category_id
        super().__init__(f"Category not found: {category_id}")


class ProtectedDefaultError(CategoryError):
    """Default categories cannot be deleted."""

    def __init__(self, category_id: str):
        self.category_id = category_id
        super().__init__(f"Cannot delete default category: {category_id}")


def build_default_categories(now: datetime) -> list[Category]:
    return [
        Category(id=cid, name=name, color=color, icon=icon, created_at=now, is_default=True)
        for cid, name, color, icon in DEFAULT_CATEGORIES
    ]


class CategoryManager:
    """Category list persisted under a single key."""

    def __init__(
        self,
        store: KeyValueStore,
        feature_flags: FeatureFlags,
        key: str = "@iou_categories",
        audit_logger: Optional[AuditLogger] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._store = store
        self._feature_flags = feature_flags
        self._key = key
        self._audit_logger = audit_logger
        self._clock = clock

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    async def _load(self) -> list[Category]:
        data = await self._store.get_json(self._key)
        if data is None:
            # First run: seed and persist the defaults
            categories = build_default_categories(self._clock())
            await self._save(categories)
            return categories
        if not isinstance(data, list):
            raise StorageError("Stored category list is not a list")
        try:
            return [Category.model_validate(item) for item in data]
        except ValidationError as e:
            raise StorageError(f"Stored category list is malformed: {e}") from e

    async def _save(self, categories: list[Category]) -> None:
        await self._store.set_json(
            self._key,
            [category.to_storage_dict() for category in categories],
        )

    async def _audit(self, event_type: AuditEventType, category: Category) -> None:
        if self._audit_logger:
            await self._audit_logger.log_category_changed(event_type, category.id, category.name)

    @staticmethod
    def _name_taken(categories: list[Category], name: str, exclude_id: Optional[str] = None) -> bool:
        folded = name.strip().casefold()
        return any(
            c.name.casefold() == folded and c.id != exclude_id
            for c in categories
        )

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def get_categories(self) -> list[Category]:
        """All categories, seeding the defaults on first use."""
        return await self._load()

    async def get_category(self, category_id: str) -> Optional[Category]:
        for category in await self._load():
            if category.id == category_id:
                return category
        return None

    @staticmethod
    def available_colors() -> list[str]:
        return list(CATEGORY_COLORS)

    @staticmethod
    def available_icons() -> dict[str, str]:
        """Icon name to display label."""
        return dict(CATEGORY_ICONS)

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    async def create(
        self,
        name: str,
        color: str = "#007AFF",
        icon: str = "banknote",
    ) -> Category:
        """
        Create a user category.

        Raises:
            FeatureDisabledError: If custom categories are switched off
            DuplicateNameError: If the name is taken (case-insensitive)
            ValueError: If name, color or icon are invalid
        """
        self._feature_flags.require(Feature.CUSTOM_CATEGORIES)

        categories = await self._load()
        if self._name_taken(categories, name):
            raise DuplicateNameError(name.strip())

        category = Category(
            name=name,
            color=color,
            icon=icon,
            created_at=self._clock(),
            is_default=False,
        )
        categories.append(category)
        await self._save(categories)
        await self._audit(AuditEventType.CATEGORY_CREATED, category)
        return category

    async def update(
        self,
        category_id: str,
        name: Optional[str] = None,
        color: Optional[str] = None,
        icon: Optional[str] = None,
    ) -> Category:
        """
        Change name, color or icon of a category. None leaves a field as is.

        Raises:
            FeatureDisabledError, CategoryNotFoundError, DuplicateNameError
        """
        self._feature_flags.require(Feature.CUSTOM_CATEGORIES)

        categories = await self._load()
        for index, category in enumerate(categories):
            if category.id != category_id:
                continue

            changes = {}
            if name is not None and name.strip():
                if self._name_taken(categories, name, exclude_id=category_id):
                    raise DuplicateNameError(name.strip())
                changes["name"] = name
            if color is not None:
                changes["color"] = color
            if icon is not None:
                changes["icon"] = icon

            updated = Category.model_validate({**category.model_dump(), **changes})
            categories[index] = updated
            await self._save(categories)
            await self._audit(AuditEventType.CATEGORY_UPDATED, updated)
            return updated

        raise CategoryNotFoundError(category_id)

    async def delete(self, category_id: str) -> bool:
        """
        Delete a user category.

        Records pointing at a deleted category fall back to "general".

        Raises:
            FeatureDisabledError, CategoryNotFoundError, ProtectedDefaultError
        """
        self._feature_flags.require(Feature.CUSTOM_CATEGORIES)

        categories = await self._load()
        category = next((c for c in categories if c.id == category_id), None)
        if category is None:
            raise CategoryNotFoundError(category_id)
        if category.is_default:
            raise ProtectedDefaultError(category_id)

        await self._save([c for c in categories if c.id != category_id])
        await self._audit(AuditEventType.CATEGORY_DELETED, category)
        return True

    async def reset_to_defaults(self) -> list[Category]:
        """Replace the whole list with the default categories."""
        self._feature_flags.require(Feature.CUSTOM_CATEGORIES)

        categories = build_default_categories(self._clock())
        await self._save(categories)
        if self._audit_logger:
            await self._audit_logger.log_categories_reset(len(categories))
        return categories
