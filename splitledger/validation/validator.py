"""
Two-Stage Submission Validation

DESIGN DECISION: An expense is validated in two distinct stages before
anything is written:

STAGE 1 - SCHEMA VALIDATION:
- Description present
- Total is a positive two-decimal amount
- Payer present
- At least one split, no consumer twice
- Split amounts add up to the total (recomputed here, never trusted)

STAGE 2 - DIRECTORY VALIDATION:
- Payer and consumers are known members
- Every responsible party is a known, non-proxy member

WHY TWO STAGES:
1. Stage 1 needs nothing but the submission itself
2. Stage 2 needs a roster, which the caller may not have
3. No point checking members of a submission that is malformed

IMPORTANT: Validation NEVER silently fixes issues.
It reports them so the submission can be corrected.
"""

from decimal import Decimal
from typing import Optional, Sequence

from splitledger.allocation.money import from_cents, parse_amount, to_cents
from splitledger.config import get_settings
from splitledger.models.expense import (
    DraftSplit,
    Roster,
    ValidationIssue,
    ValidationResult,
)


class SubmissionValidator:
    """
    Validates a finalized expense draft through a two-stage pipeline.

    Stage 1: Schema validation (no directory needed)
    Stage 2: Directory validation (skipped when no roster is given)
    """

    def __init__(self):
        self._settings = get_settings().app

    def _validate_schema(
        self,
        description: Optional[str],
        total_amount,
        payer_id: Optional[str],
        splits: Sequence[DraftSplit],
    ) -> tuple[bool, list[ValidationIssue]]:
        """
        Stage 1: Schema validation.

        Returns: (is_valid, list_of_issues)
        """
        issues = []

        text = (description or "").strip()
        if not text:
            issues.append(ValidationIssue(
                field="description",
                issue_type="missing",
                message="Description is required",
                severity="error",
                suggested_fix="Say what the money was spent on",
            ))
        elif len(text) > self._settings.max_description_length:
            issues.append(ValidationIssue(
                field="description",
                issue_type="too_long",
                message=(
                    f"Description is longer than "
                    f"{self._settings.max_description_length} characters"
                ),
                severity="error",
            ))

        total = parse_amount(total_amount)
        if total is None:
            issues.append(ValidationIssue(
                field="total_amount",
                issue_type="invalid_format",
                message="Total amount must be a number with at most two decimal places",
                severity="error",
            ))
        elif total <= 0:
            issues.append(ValidationIssue(
                field="total_amount",
                issue_type="invalid_value",
                message="Total amount must be greater than zero",
                severity="error",
            ))
        elif total > Decimal(str(self._settings.max_expense_amount)):
            issues.append(ValidationIssue(
                field="total_amount",
                issue_type="suspicious_value",
                message=f"Amount ({total:,.2f}) seems unusually high",
                severity="warning",
                suggested_fix="Please verify this amount is correct",
            ))

        if not (payer_id or "").strip():
            issues.append(ValidationIssue(
                field="payer_id",
                issue_type="missing",
                message="Payer is required",
                severity="error",
            ))

        if not splits:
            issues.append(ValidationIssue(
                field="splits",
                issue_type="missing",
                message="Select at least one member who shares this expense",
                severity="error",
            ))
            return False, issues

        seen = set()
        split_cents = 0
        amounts_valid = True
        for split in splits:
            if split.consumer_id in seen:
                issues.append(ValidationIssue(
                    field="splits",
                    issue_type="duplicate_consumer",
                    message=f"Member {split.consumer_id} appears more than once",
                    severity="error",
                ))
            seen.add(split.consumer_id)

            if not split.consumer_id.strip():
                issues.append(ValidationIssue(
                    field="splits",
                    issue_type="missing",
                    message="A share has no member",
                    severity="error",
                ))

            if not split.responsible_id.strip():
                issues.append(ValidationIssue(
                    field="splits",
                    issue_type="missing",
                    message=f"No responsible party for member {split.consumer_id}",
                    severity="error",
                ))

            amount = parse_amount(split.amount)
            if amount is None or amount < 0:
                amounts_valid = False
                issues.append(ValidationIssue(
                    field="splits",
                    issue_type="invalid_value",
                    message=f"Share for member {split.consumer_id} is not a valid amount",
                    severity="error",
                ))
            else:
                split_cents += to_cents(amount)

        if amounts_valid and total is not None and total > 0:
            if split_cents != to_cents(total):
                issues.append(ValidationIssue(
                    field="splits",
                    issue_type="sum_mismatch",
                    message=(
                        f"Shares add up to {from_cents(split_cents)} "
                        f"but the total is {total}"
                    ),
                    severity="error",
                    suggested_fix="Redistribute the total before submitting",
                ))

        is_valid = not any(issue.severity == "error" for issue in issues)
        return is_valid, issues

    def _validate_directory(
        self,
        payer_id: str,
        splits: Sequence[DraftSplit],
        roster: Roster,
    ) -> tuple[bool, list[ValidationIssue]]:
        """
        Stage 2: Directory validation.

        Returns: (is_valid, list_of_issues)
        """
        issues = []

        if payer_id not in roster:
            issues.append(ValidationIssue(
                field="payer_id",
                issue_type="unknown_member",
                message=f"Payer {payer_id} is not a member of the group",
                severity="error",
            ))

        for split in splits:
            if split.consumer_id not in roster:
                issues.append(ValidationIssue(
                    field="splits",
                    issue_type="unknown_member",
                    message=f"Member {split.consumer_id} is not in the group",
                    severity="error",
                ))

            responsible = roster.get(split.responsible_id)
            if responsible is None:
                issues.append(ValidationIssue(
                    field="splits",
                    issue_type="unknown_member",
                    message=f"Responsible member {split.responsible_id} is not in the group",
                    severity="error",
                ))
            elif responsible.is_proxy:
                issues.append(ValidationIssue(
                    field="splits",
                    issue_type="proxy_responsible",
                    message=(
                        f"{responsible.display_name or responsible.id} cannot be "
                        f"responsible for a share"
                    ),
                    severity="error",
                    suggested_fix="Choose a guardian to pay for this share",
                ))

        is_valid = not any(issue.severity == "error" for issue in issues)
        return is_valid, issues

    def validate(
        self,
        description: Optional[str],
        total_amount,
        payer_id: Optional[str],
        splits: Sequence[DraftSplit],
        roster: Optional[Roster] = None,
    ) -> ValidationResult:
        """
        Run full two-stage validation pipeline.

        Returns:
            ValidationResult with all issues found
        """
        all_issues = []

        schema_valid, schema_issues = self._validate_schema(
            description, total_amount, payer_id, splits
        )
        all_issues.extend(schema_issues)

        # Only run stage 2 if stage 1 passes and we have a roster
        directory_valid = schema_valid
        if schema_valid and roster is not None:
            directory_valid, directory_issues = self._validate_directory(
                payer_id, splits, roster
            )
            all_issues.extend(directory_issues)

        warnings = [
            issue.message for issue in all_issues if issue.severity == "warning"
        ]

        return ValidationResult(
            schema_valid=schema_valid,
            directory_valid=directory_valid,
            is_valid=schema_valid and directory_valid,
            issues=all_issues,
            warnings=warnings,
        )

    def get_user_friendly_summary(
        self,
        result: ValidationResult,
    ) -> str:
        """Summary of validation results for display."""
        if result.is_valid and not result.warnings:
            return "All checks passed."

        lines = []

        if result.has_errors:
            lines.append("This expense cannot be saved yet:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   • {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"     {issue.suggested_fix}")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("Please verify the following:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        return "\n".join(lines)
