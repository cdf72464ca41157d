"""
Two-Stage Validation of Extracted Transactions

DESIGN DECISION: Validation happens in two distinct stages:

STAGE 1 - SCHEMA VALIDATION:
- Required field presence (amount)
- Format validation (YYYY-MM-DD dates)
- This catches fields the AI left out or mangled

STAGE 2 - SEMANTIC VALIDATION:
- Future and very old dates
- Absurd amounts
- Categories outside the profile's list
- The "available balance" figure picked up as the amount
- This catches plausible-looking but wrong extractions

IMPORTANT: Validation NEVER silently fixes issues.
It reports them so the user can review the draft.
"""

import re
from datetime import date, datetime, timedelta
from typing import Optional, Sequence

from smartspend.config import AppSettings, get_settings
from smartspend.models.ledger import (
    ExtractionResult,
    ValidationIssue,
    ValidationResult,
)

ISO_DATE_FORMAT = "%Y-%m-%d"

_ISO_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_BALANCE_PATTERN = re.compile(
    r"(?:avail(?:able)?|avl)\.?\s*bal(?:ance)?\.?\s*(?:is)?\s*[:\-]?\s*"
    r"(?:[a-z]{3}|rs\.?|₹|\$|€|£)?\s*([\d,]+(?:\.\d+)?)",
    re.IGNORECASE,
)


def parse_iso_date(value: Optional[str]) -> Optional[date]:
    """Strict YYYY-MM-DD parsing; anything else returns None."""
    if not value or not _ISO_DATE_PATTERN.match(value.strip()):
        return None
    try:
        return datetime.strptime(value.strip(), ISO_DATE_FORMAT).date()
    except ValueError:
        return None


def find_balance_figures(text: str) -> list[float]:
    """Amounts labelled as an available balance in a bank alert."""
    figures = []
    for match in _BALANCE_PATTERN.finditer(text or ""):
        raw = match.group(1).replace(",", "")
        try:
            figures.append(float(raw))
        except ValueError:
            continue
    return figures


class TransactionValidator:
    """
    Validates extracted transactions through a two-stage pipeline.

    Stage 1: Schema validation
    Stage 2: Semantic validation (only if stage 1 passes)
    """

    def __init__(self, settings: Optional[AppSettings] = None):
        self._settings = settings or get_settings().app

    def _validate_schema(
        self,
        extracted: ExtractionResult,
    ) -> tuple[bool, list[ValidationIssue]]:
        """
        Stage 1: Schema validation.

        Returns: (is_valid, list_of_issues)
        """
        issues = []

        if extracted.amount is None:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="missing",
                message="Amount is required but was not extracted",
                severity="error",
                suggested_fix="Make sure the alert text includes the transaction amount",
            ))
        elif extracted.amount <= 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount must be greater than zero",
                severity="error",
                suggested_fix="Check if the amount was read correctly",
            ))

        if not extracted.description:
            issues.append(ValidationIssue(
                field="description",
                issue_type="missing",
                message="No merchant or source was extracted",
                severity="warning",
                suggested_fix="You can type a description before saving",
            ))

        if not extracted.category:
            issues.append(ValidationIssue(
                field="category",
                issue_type="missing",
                message="No category was suggested",
                severity="warning",
                suggested_fix="Pick a category before saving",
            ))

        if not extracted.date:
            issues.append(ValidationIssue(
                field="date",
                issue_type="missing",
                message="Transaction date was not extracted",
                severity="warning",
                suggested_fix="Today's date will be used unless you change it",
            ))
        elif parse_iso_date(extracted.date) is None:
            issues.append(ValidationIssue(
                field="date",
                issue_type="invalid_format",
                message=f"Date '{extracted.date}' is not in YYYY-MM-DD format",
                severity="warning",
                suggested_fix="Today's date will be used unless you change it",
            ))

        is_valid = not any(issue.severity == "error" for issue in issues)

        return is_valid, issues

    def _validate_semantic(
        self,
        extracted: ExtractionResult,
        allowed_categories: Sequence[str],
        source_text: Optional[str],
    ) -> tuple[bool, list[ValidationIssue]]:
        """
        Stage 2: Semantic validation.

        Returns: (is_valid, list_of_issues)
        """
        issues = []
        today = date.today()
        parsed_date = parse_iso_date(extracted.date)

        max_future_date = today + timedelta(days=self._settings.future_date_tolerance_days)
        if parsed_date and parsed_date > max_future_date:
            issues.append(ValidationIssue(
                field="date",
                issue_type="future_date",
                message=f"Transaction date ({parsed_date}) is in the future",
                severity="warning",
                suggested_fix="Please verify the date is correct",
            ))

        min_reasonable_date = today - timedelta(days=365 * 2)
        if parsed_date and parsed_date < min_reasonable_date:
            issues.append(ValidationIssue(
                field="date",
                issue_type="suspicious_date",
                message=f"Transaction date ({parsed_date}) seems unusually old",
                severity="warning",
                suggested_fix="Please verify the date was read correctly",
            ))

        if extracted.amount and extracted.amount > self._settings.max_transaction_amount:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=f"Amount ({extracted.amount:,.2f}) seems unusually high",
                severity="warning",
                suggested_fix="Please verify this amount is correct",
            ))

        if extracted.category and extracted.category not in allowed_categories:
            issues.append(ValidationIssue(
                field="category",
                issue_type="not_allowed",
                message=f"Category '{extracted.category}' is not one of this profile's categories",
                severity="warning",
                suggested_fix="Pick the closest category from the list",
            ))

        if extracted.amount is not None and source_text:
            for balance in find_balance_figures(source_text):
                if abs(balance - extracted.amount) < 0.005:
                    issues.append(ValidationIssue(
                        field="amount",
                        issue_type="balance_as_amount",
                        message=(
                            f"Amount ({extracted.amount:,.2f}) is the available balance "
                            "mentioned in the alert, not the transaction amount"
                        ),
                        severity="error",
                        suggested_fix="Enter the debited or credited amount instead",
                    ))
                    break

        is_valid = not any(issue.severity == "error" for issue in issues)

        return is_valid, issues

    def validate(
        self,
        extracted: ExtractionResult,
        allowed_categories: Sequence[str],
        source_text: Optional[str] = None,
    ) -> ValidationResult:
        """
        Run full two-stage validation pipeline.

        Args:
            extracted: The AI's extraction to validate
            allowed_categories: The profile's category list
            source_text: The alert text the extraction came from

        Returns:
            ValidationResult with all issues found
        """
        all_issues = []

        schema_valid, schema_issues = self._validate_schema(extracted)
        all_issues.extend(schema_issues)

        # Only run stage 2 if stage 1 passes
        semantic_valid = False
        if schema_valid:
            semantic_valid, semantic_issues = self._validate_semantic(
                extracted, allowed_categories, source_text
            )
            all_issues.extend(semantic_issues)

        warnings = [issue.message for issue in all_issues if issue.severity == "warning"]

        is_valid = schema_valid and semantic_valid

        return ValidationResult(
            extraction_id=extracted.extraction_id,
            schema_valid=schema_valid,
            semantic_valid=semantic_valid,
            is_valid=is_valid,
            can_proceed_with_review=(
                extracted.amount is not None
                and not any(issue.severity == "error" for issue in all_issues)
            ),
            issues=all_issues,
            warnings=warnings,
        )

    def get_user_friendly_summary(
        self,
        result: ValidationResult,
    ) -> str:
        """
        Generate a user-friendly summary of validation results.
        """
        if result.is_valid and not result.warnings:
            return "All checks passed! Please review the details below."

        lines = []

        if result.has_errors:
            lines.append("Some information could not be used:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   • {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"     Tip: {issue.suggested_fix}")

        if result.warnings:
            lines.append("")
            lines.append("Please verify the following:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        lines.append("")
        if result.can_proceed_with_review:
            lines.append("You can still save, but please review carefully.")
        else:
            lines.append("Please fix the issues above before saving.")

        return "\n".join(lines).strip()
