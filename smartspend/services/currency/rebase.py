"""
Currency Rebase Engine

When the user switches display currency, EVERY amount in the ledger must
move to the new currency at once. A ledger that holds some amounts in the
old currency and some in the new one is never produced.

Rates come from an external provider as {currency_code: rate}, each rate
relative to the same pivot currency (USD). Converting A -> B multiplies
every amount by rate(B) / rate(A).

GUARANTEES:
- Pure: the input transactions are never modified
- Total: no transaction is dropped, added or reordered
- All or nothing: a missing or unusable rate fails before any conversion
- Reversible: A -> B -> A restores amounts up to floating-point rounding
"""

import math
from typing import Mapping, Sequence

from smartspend.models.ledger import Currency, Ledger, Transaction


class RateUnavailableError(Exception):
    """A required exchange rate is missing, zero, negative or not finite."""

    code = "RATE_UNAVAILABLE"

    def __init__(self, currency_code: str, message: str):
        self.currency_code = currency_code
        super().__init__(message)


def _usable_rate(rates: Mapping[str, float], code: str) -> float:
    if code not in rates:
        raise RateUnavailableError(code, f"No exchange rate available for {code}")

    try:
        rate = float(rates[code])
    except (TypeError, ValueError):
        raise RateUnavailableError(
            code, f"Exchange rate for {code} is not a number: {rates[code]!r}"
        ) from None

    if not math.isfinite(rate) or rate <= 0:
        raise RateUnavailableError(code, f"Exchange rate for {code} is unusable: {rate}")

    return rate


def conversion_factor(
    rates: Mapping[str, float],
    from_code: str,
    to_code: str,
) -> float:
    """
    Multiplier taking an amount in from_code to to_code.

    Raises:
        RateUnavailableError: If either rate is missing or unusable
    """
    from_rate = _usable_rate(rates, from_code)
    to_rate = _usable_rate(rates, to_code)
    if from_code == to_code:
        return 1.0
    return to_rate / from_rate


def convert_amount(
    amount: float,
    from_currency: Currency,
    to_currency: Currency,
    rates: Mapping[str, float],
) -> float:
    """Convert a single amount between two currencies."""
    return amount * conversion_factor(rates, from_currency.code, to_currency.code)


def rebase_ledger(
    transactions: Sequence[Transaction],
    from_currency: Currency,
    to_currency: Currency,
    rates: Mapping[str, float],
) -> list[Transaction]:
    """
    Re-express every transaction amount in a new currency.

    Args:
        transactions: Ledger entries, all in from_currency
        from_currency: Currency the amounts are currently in
        to_currency: Currency to convert to
        rates: Pivot-relative exchange rates

    Returns:
        New transactions in the same order; only `amount` differs

    Raises:
        RateUnavailableError: If a rate for either currency is missing
            or unusable. Nothing is converted in that case.
    """
    # Resolve the factor first so a bad rate table converts nothing
    factor = conversion_factor(rates, from_currency.code, to_currency.code)

    return [
        tx.model_copy(update={"amount": tx.amount * factor})
        for tx in transactions
    ]


def rebase(
    ledger: Ledger,
    to_currency: Currency,
    rates: Mapping[str, float],
) -> Ledger:
    """Rebase a whole Ledger; the returned ledger carries the new currency."""
    return Ledger(
        currency=to_currency,
        transactions=rebase_ledger(ledger.transactions, ledger.currency, to_currency, rates),
    )
