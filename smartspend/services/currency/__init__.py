"""Currency conversion package."""

from smartspend.services.currency.rebase import (
    RateUnavailableError,
    conversion_factor,
    convert_amount,
    rebase,
    rebase_ledger,
)

__all__ = [
    "RateUnavailableError",
    "conversion_factor",
    "convert_amount",
    "rebase",
    "rebase_ledger",
]
