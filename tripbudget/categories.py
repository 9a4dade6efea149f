"""Predefined expense categories and their display labels."""

from typing import List, Tuple

# (value, label)
EXPENSE_CATEGORIES: Tuple[Tuple[str, str], ...] = (
    ("flight", "Flight"),
    ("hotel", "Hotel"),
    ("food", "Food & Dining"),
    ("transport", "Transport"),
    ("shopping", "Shopping"),
    ("activities", "Activities & Tours"),
    ("sightseeing", "Sightseeing"),
    ("other", "Other"),
)

CATEGORY_VALUES: Tuple[str, ...] = tuple(value for value, _ in EXPENSE_CATEGORIES)
_LABELS = dict(EXPENSE_CATEGORIES)

# categories whose expenses may span a date range (check-in/check-out, departure/arrival)
RANGED_CATEGORIES = ("hotel", "flight")

_DATE_LABELS = {
    "hotel": ("Check-in Date", "Check-out Date"),
    "flight": ("Departure Date", "Arrival Date"),
    "activities": ("Activity Date", "Activity Date"),
    "sightseeing": ("Activity Date", "Activity Date"),
    "food": ("Dining Date", "Dining Date"),
    "shopping": ("Shopping Date", "Shopping Date"),
    "transport": ("Travel Date", "Travel Date"),
}


def category_label(value: str) -> str:
    """Label for a predefined category, else the custom name capitalised."""
    if value in _LABELS:
        return _LABELS[value]
    value = value or ""
    return value[:1].upper() + value[1:]


def date_label(category: str, is_end: bool = False) -> str:
    start, end = _DATE_LABELS.get(category, ("Transaction Date", "Transaction Date"))
    return end if is_end else start


def uses_date_range(category: str) -> bool:
    return category in RANGED_CATEGORIES


def merge_categories(custom: List[str]) -> List[str]:
    """Predefined category values followed by custom names not already present."""
    merged = list(CATEGORY_VALUES)
    seen = {c.lower() for c in merged}
    for name in custom:
        key = name.strip().lower()
        if key and key not in seen:
            merged.append(name.strip())
            seen.add(key)
    return merged
