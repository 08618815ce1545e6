"""Input validation package."""

from expense_tracker.validation.validator import (
    TransactionValidator,
    ValidationError,
    ValidationIssue,
    ValidationResult,
    parse_amount,
)

__all__ = [
    "TransactionValidator",
    "ValidationError",
    "ValidationIssue",
    "ValidationResult",
    "parse_amount",
]
