"""Derived views over the record list."""

from iou_tracker.queries.summary import (
    active_records,
    calculate_summary,
    category_summaries,
    settled_history,
)

__all__ = [
    "active_records",
    "calculate_summary",
    "category_summaries",
    "settled_history",
]
