"""
Summary Queries

DESIGN DECISION: Totals are DERIVED, never stored. Every read recomputes
them from the full record list, so a summary can never drift from the
records after a mutation.

Everything here is a pure function over a record list.
"""

from decimal import Decimal
from typing import Optional

from iou_tracker.models.debt import (
    Category,
    CategorySummary,
    DebtRecord,
    Direction,
    Summary,
)


GENERAL_CATEGORY_ID = "general"


def active_records(
    records: list[DebtRecord],
    category_id: Optional[str] = None,
) -> list[DebtRecord]:
    """
    Unsettled records, newest first.

    With category_id, only records tagged with that category.
    """
    active = [record for record in records if not record.settled]
    if category_id is not None:
        active = [record for record in active if record.category_id == category_id]
    active.sort(key=lambda r: r.created_date, reverse=True)
    return active


def calculate_summary(records: list[DebtRecord]) -> Summary:
    """
    Reduce the record list to owed/owing/net totals.

    Settled records are ignored. Empty input gives an all-zero summary.
    """
    owed_to_user = Decimal("0")
    user_owes = Decimal("0")

    for record in records:
        if record.settled:
            continue
        if record.direction is Direction.LENT:
            owed_to_user += record.amount
        else:
            user_owes += record.amount

    return Summary(
        total_owed_to_user=owed_to_user,
        total_user_owes=user_owes,
        net_balance=owed_to_user - user_owes,
    )


def category_summaries(
    categories: list[Category],
    records: list[DebtRecord],
) -> list[CategorySummary]:
    """
    Active record count and total per category, in category order.

    Records without a category, or pointing at a deleted one, count
    toward "general".
    """
    known_ids = {category.id for category in categories}
    counts = {category.id: 0 for category in categories}
    totals = {category.id: Decimal("0") for category in categories}

    for record in records:
        if record.settled:
            continue
        category_id = record.category_id if record.category_id in known_ids else GENERAL_CATEGORY_ID
        if category_id not in counts:
            continue
        counts[category_id] += 1
        totals[category_id] += record.amount

    return [
        CategorySummary(
            category=category,
            active_count=counts[category.id],
            total_amount=totals[category.id],
        )
        for category in categories
    ]


def settled_history(records: list[DebtRecord]) -> list[DebtRecord]:
    """Settled records, most recently settled first."""
    settled = [record for record in records if record.settled]
    settled.sort(key=lambda r: r.settled_date or r.updated_at, reverse=True)
    return settled
