"""Record draft validation package."""

from iou_tracker.validation.validator import DebtRecordValidator, ValidationFailedError

__all__ = ["DebtRecordValidator", "ValidationFailedError"]
