"""
Transaction Input Validation

DESIGN DECISION: Raw user input is checked BEFORE any I/O.
Nothing is fetched, converted or stored for a draft that fails here.

Checks:
- Amount must be a finite number greater than zero
- Amount must fit the stored precision: at least 0.000001, below 10^12
- Currency must be a 3-letter code
- Category must not be blank and must fit in 100 characters

IMPORTANT: Validation NEVER silently fixes issues.
It reports them so the user can correct the input.
"""

from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Optional

from pydantic import BaseModel, Field

from expense_tracker.models.transaction import AMOUNT_QUANTUM, MAX_AMOUNT, TransactionDraft


MAX_CATEGORY_LENGTH = 100


class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_format', 'invalid_value')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning)$",
        description="Issue severity"
    )


class ValidationResult(BaseModel):
    """Outcome of validating one draft."""

    validated_at: datetime = Field(default_factory=datetime.now)
    amount: Optional[Decimal] = Field(
        default=None,
        description="Parsed amount when it was valid"
    )
    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_messages(self) -> list[str]:
        return [issue.message for issue in self.issues if issue.severity == "error"]


class ValidationError(Exception):
    """Draft rejected before any I/O."""

    def __init__(self, result: ValidationResult):
        self.result = result
        super().__init__("; ".join(result.error_messages) or "Invalid transaction")


def parse_amount(raw: str) -> Optional[Decimal]:
    """Parse user-entered amount text. Returns None if it isn't a finite number."""
    text = raw.strip() if raw else ""
    if not text:
        return None
    try:
        value = Decimal(text)
    except InvalidOperation:
        return None
    if not value.is_finite():
        return None
    return value


class TransactionValidator:
    """Validates a TransactionDraft."""

    def _validate_amount(self, draft: TransactionDraft) -> tuple[Optional[Decimal], list[ValidationIssue]]:
        amount = parse_amount(draft.amount)
        if amount is None:
            return None, [ValidationIssue(
                field="amount",
                issue_type="invalid_format",
                message="Invalid amount",
                severity="error",
            )]
        if amount <= 0:
            return None, [ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Invalid amount",
                severity="error",
            )]
        if amount < AMOUNT_QUANTUM or amount >= MAX_AMOUNT:
            return None, [ValidationIssue(
                field="amount",
                issue_type="out_of_range",
                message=f"Amount must be between {AMOUNT_QUANTUM} and {MAX_AMOUNT}",
                severity="error",
            )]
        return amount, []

    def _validate_currency(self, draft: TransactionDraft) -> list[ValidationIssue]:
        code = draft.currency_code.strip()
        if len(code) != 3 or not code.isascii() or not code.isalpha():
            return [ValidationIssue(
                field="currency_code",
                issue_type="invalid_format",
                message=f"Invalid currency code: {draft.currency_code!r}",
                severity="error",
            )]
        return []

    def _validate_category(self, draft: TransactionDraft) -> list[ValidationIssue]:
        if not draft.category.strip():
            return [ValidationIssue(
                field="category",
                issue_type="missing",
                message="Category is required",
                severity="error",
            )]
        if len(draft.category.strip()) > MAX_CATEGORY_LENGTH:
            return [ValidationIssue(
                field="category",
                issue_type="invalid_value",
                message=f"Category must be at most {MAX_CATEGORY_LENGTH} characters",
                severity="error",
            )]
        return []

    def validate(self, draft: TransactionDraft) -> ValidationResult:
        amount, issues = self._validate_amount(draft)
        issues.extend(self._validate_currency(draft))
        issues.extend(self._validate_category(draft))
        return ValidationResult(amount=amount, issues=issues)

    def validate_or_raise(self, draft: TransactionDraft) -> ValidationResult:
        """
        Validate and raise on any error-level issue.

        Raises:
            ValidationError: Carrying the full ValidationResult
        """
        result = self.validate(draft)
        if result.has_errors:
            raise ValidationError(result)
        return result
