"""
Demo dataset for trying the app without real data.

Three rows in the first three categories of the chosen mode.
Amounts are in whatever currency the receiving ledger uses.
"""

from datetime import date

from smartspend.models.ledger import FinanceMode, Transaction, categories_for

_DEMO_ROWS = (
    (450.0, date(2024, 3, 1), "Monthly payment"),
    (120.0, date(2024, 3, 5), "Utility bill"),
    (85.0, date(2024, 3, 10), "Misc expense"),
)


def build_demo_transactions(mode: FinanceMode) -> list[Transaction]:
    """Fresh demo transactions (new ids on every call) for a mode."""
    categories = categories_for(mode)
    return [
        Transaction(category=category, amount=amount, description=description, date=day)
        for category, (amount, day, description) in zip(categories, _DEMO_ROWS)
    ]
