"""
IOU Tracker - Source Package

The domain core of a personal IOU tracker: who owes the user money,
whom the user owes, and when to remind them about it.

DESIGN PRINCIPLES:
1. The record list is the single source of truth
2. Totals are derived on every read, never cached
3. Reminders are a convenience, never a correctness guarantee
4. Platform capabilities are checked explicitly, not guessed
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "IOU Tracker Team"
