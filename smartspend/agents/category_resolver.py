"""
Category Resolver

The AI is told which categories are allowed, but it does not always
answer with one of them verbatim ("Groceries" for "Food", "salary" for
"Income/Salary"). This maps its answer back onto the profile's list.

This is DETERMINISTIC - no LLM involvement. Given the same inputs and
the same list order, the answer is always the same.

DESIGN DECISION: We use plain substring and keyword matching because:
1. It is transparent to the user
2. It is easy to debug
3. The user confirms the draft anyway
"""

import re
from typing import Optional, Sequence


# Words that identify a category when the AI used a near-synonym.
# Keyed by the lower-cased category name as it appears in the profile lists.
# Each keyword must start and end on a word boundary; a plural or "-y"
# ending is allowed, so "grocer" matches "groceries" but "bus" never
# matches "business".
CATEGORY_KEYWORDS: dict[str, tuple[str, ...]] = {
    # Individual
    "income/salary": ("salary", "payroll", "wage", "income"),
    "food": ("grocer", "restaurant", "dining", "meal", "cafe", "zomato", "swiggy", "snack"),
    "transport": ("fuel", "petrol", "diesel", "uber", "ola", "taxi", "cab", "metro", "bus", "train"),
    "rent": ("lease", "housing", "landlord"),
    "subscription": ("netflix", "spotify", "prime", "membership", "recurring"),
    "entertainment": ("movie", "cinema", "concert", "gaming", "leisure"),
    "investments": ("mutual fund", "stock", "equity", "sip", "brokerage"),
    # Business
    "revenue/sales": ("sale", "revenue", "customer payment", "receipt"),
    "operational expenses": ("office", "supplies", "operations", "overhead"),
    "salaries": ("salary", "salaries", "payroll", "wage"),
    "utilities": ("electricity", "water", "gas", "internet", "broadband", "power", "utility"),
    "vendor payments": ("vendor", "supplier"),
    "tax payments": ("tax", "gst", "vat", "tds"),
    "inventory": ("inventory", "stock purchase", "wholesale"),
    # Trip/Travel
    "refunds/credits": ("refund", "cashback", "reversal"),
    "mode of transportation": ("flight", "airline", "airfare", "train ticket", "bus ticket"),
    "accommodations": ("hotel", "hostel", "airbnb", "lodging", "resort"),
    "local transport": ("taxi", "uber", "ola", "metro", "cab", "rickshaw"),
    "activities": ("tour", "museum", "excursion", "sightseeing"),
    "shopping": ("shop", "shopping", "mall", "amazon", "flipkart", "souvenir", "apparel"),
    # Family
    "income/allowances": ("allowance", "salary", "income", "pocket money"),
    "groceries": ("grocer", "supermarket", "bigbasket", "vegetable"),
    "school/college fees": ("school", "college", "tuition", "university", "fees"),
    "healthcare": ("hospital", "clinic", "pharmacy", "medical", "doctor"),
    "insurance": ("insurance", "premium", "policy"),
    "maintenance": ("repair", "maintenance", "plumber", "electrician"),
}


def _match_substring(needle: str, allowed: Sequence[str]) -> Optional[str]:
    for category in allowed:
        candidate = category.lower()
        if candidate and (candidate in needle or needle in candidate):
            return category
    return None


_KEYWORD_SUFFIX = r"(?:s|es|y|ies)?"


def _keyword_pattern(keyword: str) -> re.Pattern:
    return re.compile(rf"\b{re.escape(keyword)}{_KEYWORD_SUFFIX}\b")


_KEYWORD_PATTERNS: dict[str, tuple[re.Pattern, ...]] = {
    category: tuple(_keyword_pattern(keyword) for keyword in keywords)
    for category, keywords in CATEGORY_KEYWORDS.items()
}


def _match_keywords(needle: str, allowed: Sequence[str]) -> Optional[str]:
    for category in allowed:
        patterns = _KEYWORD_PATTERNS.get(category.lower(), ())
        if any(pattern.search(needle) for pattern in patterns):
            return category
    return None


def resolve_category(
    returned: Optional[str],
    allowed: Sequence[str],
) -> Optional[str]:
    """
    Map a free-form category onto one of the allowed categories.

    1. An exact, case-sensitive match wins
    2. Otherwise the first allowed category (in list order) that contains
       the returned text, or is contained in it, ignoring case
    3. Otherwise the first allowed category whose keywords appear in
       the returned text
    4. Otherwise None; the caller keeps its current category

    A missing or blank answer resolves to None rather than to
    the first category.
    """
    if returned is None:
        return None

    if returned in allowed:
        return returned

    needle = returned.strip().lower()
    if not needle:
        return None

    return _match_substring(needle, allowed) or _match_keywords(needle, allowed)
