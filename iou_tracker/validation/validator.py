"""
Two-Stage Validation Pipeline

DESIGN DECISION: Validation of a record draft happens in two stages:

STAGE 1 - SCHEMA VALIDATION:
- Required field presence (direction, amount, name)
- Amount strictly positive
- This blocks submission

STAGE 2 - SEMANTIC VALIDATION:
- Due date before the date the debt arose
- Absurd amount detection
- Unknown category reference
- Phone number sanity
- These are warnings only; the user may still save

IMPORTANT: Validation NEVER silently fixes issues.
It reports them so the form can show them.
"""

from datetime import datetime, timedelta
from decimal import Decimal
from typing import Callable, Iterable, Optional

from iou_tracker.models.debt import (
    DebtRecord,
    DebtRecordDraft,
    ValidationIssue,
    ValidationResult,
)
from iou_tracker.services.contacts import is_valid_phone_number


class ValidationFailedError(Exception):
    """A record draft failed schema validation; nothing was saved."""

    def __init__(self, result: ValidationResult):
        self.result = result
        messages = result.error_messages or ["Invalid record"]
        super().__init__("; ".join(messages))


class DebtRecordValidator:
    """
    Validates record drafts through a two-stage pipeline.

    Stage 1: Schema validation (blocking)
    Stage 2: Semantic validation (warnings)
    """

    def __init__(
        self,
        max_reasonable_amount: Decimal = Decimal("1000000"),
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._max_reasonable_amount = Decimal(str(max_reasonable_amount))
        self._clock = clock

    def _validate_schema(
        self,
        draft: DebtRecordDraft,
    ) -> tuple[bool, list[ValidationIssue]]:
        """
        Stage 1: Schema validation.

        Returns: (is_valid, list_of_issues)
        """
        issues = []

        if draft.direction is None:
            issues.append(ValidationIssue(
                field="direction",
                issue_type="missing",
                message="Choose whether you lent or borrowed the money",
                severity="error",
            ))

        if draft.amount is None:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="missing",
                message="Amount is required",
                severity="error",
            ))
        elif not draft.amount.is_finite() or draft.amount <= 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Please enter a valid amount",
                severity="error",
                suggested_fix="The amount must be greater than zero",
            ))

        if not draft.counterparty_name:
            issues.append(ValidationIssue(
                field="counterparty_name",
                issue_type="missing",
                message="Please enter a person name",
                severity="error",
            ))
        elif len(draft.counterparty_name) > 200:
            issues.append(ValidationIssue(
                field="counterparty_name",
                issue_type="invalid_value",
                message="Person name is too long",
                severity="error",
                suggested_fix="Use at most 200 characters",
            ))

        if draft.note and len(draft.note) > 1000:
            issues.append(ValidationIssue(
                field="note",
                issue_type="invalid_value",
                message="Note is too long",
                severity="error",
                suggested_fix="Use at most 1000 characters",
            ))

        is_valid = not any(issue.severity == "error" for issue in issues)
        return is_valid, issues

    def _validate_semantic(
        self,
        draft: DebtRecordDraft,
        known_category_ids: Optional[set[str]],
    ) -> tuple[bool, list[ValidationIssue]]:
        """
        Stage 2: Semantic validation.

        Returns: (is_valid, list_of_issues)
        """
        issues = []
        now = self._clock()
        created = draft.created_date or now

        if draft.due_date and draft.due_date.date() < created.date():
            issues.append(ValidationIssue(
                field="due_date",
                issue_type="inconsistent",
                message="Due date is before the date of the debt",
                severity="warning",
                suggested_fix="Please verify both dates",
            ))

        if draft.created_date and draft.created_date > now + timedelta(days=1):
            issues.append(ValidationIssue(
                field="created_date",
                issue_type="future_date",
                message="The date of the debt is in the future",
                severity="warning",
                suggested_fix="Please verify the date is correct",
            ))

        if draft.amount is not None and draft.amount > self._max_reasonable_amount:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=f"Amount ({draft.amount:,.2f}) seems unusually high",
                severity="warning",
                suggested_fix="Please verify this amount is correct",
            ))

        if (
            draft.category_id
            and known_category_ids is not None
            and draft.category_id not in known_category_ids
        ):
            issues.append(ValidationIssue(
                field="category_id",
                issue_type="unknown_reference",
                message="Selected category no longer exists",
                severity="warning",
                suggested_fix="The record will be listed under General",
            ))

        if draft.phone_number and not is_valid_phone_number(draft.phone_number):
            issues.append(ValidationIssue(
                field="phone_number",
                issue_type="invalid_value",
                message="Phone number looks invalid",
                severity="warning",
                suggested_fix="Use 7 to 15 digits",
            ))

        is_valid = not any(issue.severity == "error" for issue in issues)
        return is_valid, issues

    def validate(
        self,
        draft: DebtRecordDraft,
        known_category_ids: Optional[Iterable[str]] = None,
    ) -> ValidationResult:
        """
        Run full two-stage validation pipeline.

        Args:
            draft: Raw form input
            known_category_ids: Existing category IDs; None skips the check

        Returns:
            ValidationResult with all issues found
        """
        category_ids = set(known_category_ids) if known_category_ids is not None else None
        all_issues = []

        schema_valid, schema_issues = self._validate_schema(draft)
        all_issues.extend(schema_issues)

        # Only run stage 2 if stage 1 passes
        semantic_valid = False
        if schema_valid:
            semantic_valid, semantic_issues = self._validate_semantic(draft, category_ids)
            all_issues.extend(semantic_issues)

        warnings = [issue.message for issue in all_issues if issue.severity == "warning"]

        return ValidationResult(
            validated_at=self._clock(),
            schema_valid=schema_valid,
            semantic_valid=semantic_valid,
            is_valid=schema_valid and semantic_valid,
            issues=all_issues,
            warnings=warnings,
        )

    def build_record(
        self,
        draft: DebtRecordDraft,
        known_category_ids: Optional[Iterable[str]] = None,
    ) -> tuple[DebtRecord, ValidationResult]:
        """
        Validate a draft and turn it into a new record.

        Raises:
            ValidationFailedError: If stage 1 found errors
        """
        result = self.validate(draft, known_category_ids)
        if not result.is_valid:
            raise ValidationFailedError(result)

        now = self._clock()
        record = DebtRecord(
            direction=draft.direction,
            amount=draft.amount,
            counterparty_name=draft.counterparty_name,
            note=draft.note,
            phone_number=draft.phone_number,
            category_id=draft.category_id,
            created_date=draft.created_date or now,
            due_date=draft.due_date,
            created_at=now,
            updated_at=now,
        )
        return record, result

    def get_user_friendly_summary(
        self,
        result: ValidationResult,
    ) -> str:
        """
        Generate a user-friendly summary of validation results.

        This is what the form shows next to the save button.
        """
        if result.is_valid and not result.warnings:
            return "✅ Looks good!"

        lines = []

        if not result.schema_valid:
            lines.append("❌ Please fix the following:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   • {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"     💡 {issue.suggested_fix}")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("⚠️ Please verify the following:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        if result.is_valid:
            lines.append("")
            lines.append("You can still save, but please double-check.")

        return "\n".join(lines)
