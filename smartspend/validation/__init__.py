"""Validation package."""

from smartspend.validation.validator import (
    TransactionValidator,
    find_balance_figures,
    parse_iso_date,
)

__all__ = ["TransactionValidator", "find_balance_figures", "parse_iso_date"]
