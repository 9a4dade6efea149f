"""
budget.py - budget aggregation over a trip's expense entries

Everything here is a pure function of (entries, allocated budget, rate table,
base currency), recomputed on every render. Entries are split into actual
spending (is_planned False) and planned spending (is_planned True); both are
converted into the base currency before summing.

Figures are floats; compare with a tolerance (pytest.approx) rather than ==.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set, Tuple, Union

from tripbudget.categories import category_label
from tripbudget.currency import ExchangeRates, currency_symbol, try_convert
from tripbudget.config import get_logger

logger = get_logger(__name__)

BudgetValue = Union[float, int, str, None]


@dataclass(frozen=True)
class BudgetSnapshot:
    total_spent: float
    total_planned: float
    actual_remaining: float
    projected_remaining: float
    percentage_spent: float
    # currency -> original amount counted without a rate
    unconverted: Dict[str, float] = field(default_factory=dict)

    @property
    def projected_total(self) -> float:
        return self.total_spent + self.total_planned

    @property
    def over_budget(self) -> bool:
        return self.actual_remaining < 0


@dataclass(frozen=True)
class CategoryTotal:
    category: str
    label: str
    spent: float = 0.0
    planned: float = 0.0

    @property
    def total(self) -> float:
        return self.spent + self.planned


def budget_amount(allocated_budget: BudgetValue) -> float:
    """Allocated budget as a float; None, blanks and junk count as 0."""
    if allocated_budget is None:
        return 0.0
    if isinstance(allocated_budget, str):
        text = allocated_budget.strip()
        if not text:
            return 0.0
        try:
            return float(text)
        except ValueError:
            logger.warning("Ignoring non-numeric allocated budget %r", allocated_budget)
            return 0.0
    return float(allocated_budget)


def _convert_entries(entries, rates, base_currency, unconverted: Dict[str, float], anchor: Optional[str]) -> float:
    total = 0.0
    for e in entries:
        result = try_convert(float(e.amount), e.currency, base_currency, rates, anchor)
        if not result.converted:
            unconverted[e.currency] = unconverted.get(e.currency, 0.0) + float(e.amount)
        total += result.amount
    return total


def aggregate(entries: Iterable, allocated_budget: BudgetValue, rates: Optional[ExchangeRates],
              base_currency: str, anchor: Optional[str] = None) -> BudgetSnapshot:
    """
    Compute spent/planned totals and remaining budget in base_currency.

    actual_remaining = budget - spent
    projected_remaining = budget - spent - planned
    percentage_spent = spent / budget * 100, or 0 when budget is not positive
    Remaining figures go negative when over budget. anchor is the currency the
    rate table is expressed in (RateSnapshot.base), inferred when omitted.
    """
    entries = list(entries)
    budget = budget_amount(allocated_budget)
    actual = [e for e in entries if not e.is_planned]
    planned = [e for e in entries if e.is_planned]

    unconverted: Dict[str, float] = {}
    total_spent = _convert_entries(actual, rates, base_currency, unconverted, anchor)
    total_planned = _convert_entries(planned, rates, base_currency, unconverted, anchor)
    if unconverted:
        logger.warning(
            "No exchange rate into %s for %s; amounts counted unconverted",
            base_currency, ", ".join(sorted(unconverted)),
        )

    percentage_spent = (total_spent / budget) * 100 if budget > 0 else 0.0
    return BudgetSnapshot(
        total_spent=total_spent,
        total_planned=total_planned,
        actual_remaining=budget - total_spent,
        projected_remaining=budget - total_spent - total_planned,
        percentage_spent=percentage_spent,
        unconverted=unconverted,
    )


def category_breakdown(entries: Iterable, rates: Optional[ExchangeRates], base_currency: str,
                       anchor: Optional[str] = None) -> Dict[str, float]:
    """Converted actual spending per category label (planned entries excluded)."""
    totals: Dict[str, float] = defaultdict(float)
    for e in entries:
        if e.is_planned:
            continue
        totals[e.category] += try_convert(float(e.amount), e.currency, base_currency, rates, anchor).amount
    return dict(totals)


def top_categories(breakdown: Dict[str, float], limit: Optional[int] = None) -> List[Tuple[str, float]]:
    ordered = sorted(breakdown.items(), key=lambda item: item[1], reverse=True)
    return ordered if limit is None else ordered[:limit]


def category_totals(entries: Iterable, rates: Optional[ExchangeRates], base_currency: str,
                    anchor: Optional[str] = None) -> List[CategoryTotal]:
    """Spent and planned per category, largest total first (chart data)."""
    spent: Dict[str, float] = defaultdict(float)
    planned: Dict[str, float] = defaultdict(float)
    for e in entries:
        amount = try_convert(float(e.amount), e.currency, base_currency, rates, anchor).amount
        if e.is_planned:
            planned[e.category] += amount
        else:
            spent[e.category] += amount
    rows = [
        CategoryTotal(category=c, label=category_label(c), spent=spent.get(c, 0.0), planned=planned.get(c, 0.0))
        for c in set(spent) | set(planned)
    ]
    rows.sort(key=lambda r: (-r.total, r.category))
    return rows


HEALTH_THRESHOLDS = ((90.0, "critical"), (75.0, "warning"), (50.0, "caution"))


def health_level(percentage_spent: float) -> str:
    for threshold, level in HEALTH_THRESHOLDS:
        if percentage_spent >= threshold:
            return level
    return "ok"


def total_contributed(contributors: Iterable) -> float:
    return sum(float(c.amount or 0) for c in contributors)


# ---------------------------------------------------------------------------
# Alerts
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class BudgetAlert:
    key: str
    level: float
    kind: str  # "info" | "warning" | "error"
    message: str
    detail: str = ""


ALERT_THRESHOLDS = (
    (50.0, "info", "You've spent 50% of your budget"),
    (75.0, "warning", "Warning: 75% of budget spent!"),
    (90.0, "warning", "Alert: 90% of budget spent!"),
    (100.0, "error", "Budget exceeded!"),
)
PROJECTED_KEY = "projected"
# a threshold re-arms once spending falls this many points below it
REARM_MARGIN = 5.0


class BudgetAlerts:
    """
    Remembers which alerts were already raised for one trip in one session.

    Keep one instance per (session, trip); check() returns only the alerts that
    are newly crossed since the last call.
    """

    def __init__(self):
        self.raised: Set[str] = set()

    def check(self, snapshot: BudgetSnapshot, allocated_budget: BudgetValue, base_currency: str) -> List[BudgetAlert]:
        budget = budget_amount(allocated_budget)
        if budget <= 0:
            return []

        symbol = currency_symbol(base_currency)
        spent_pct = snapshot.total_spent / budget * 100
        projected_pct = snapshot.projected_total / budget * 100
        alerts: List[BudgetAlert] = []

        for level, kind, message in ALERT_THRESHOLDS:
            key = f"spent_{level:g}"
            if spent_pct >= level and key not in self.raised:
                self.raised.add(key)
                alerts.append(BudgetAlert(
                    key=key, level=level, kind=kind, message=message,
                    detail=f"Current spending: {spent_pct:.1f}% ({symbol}{snapshot.total_spent:.2f})",
                ))

        if projected_pct >= 100 and PROJECTED_KEY not in self.raised:
            self.raised.add(PROJECTED_KEY)
            alerts.append(BudgetAlert(
                key=PROJECTED_KEY, level=100.0, kind="warning",
                message="Projected budget will exceed limit!",
                detail=f"With planned expenses: {projected_pct:.1f}% ({symbol}{snapshot.projected_total:.2f})",
            ))

        for level, _, _ in ALERT_THRESHOLDS:
            if spent_pct < level - REARM_MARGIN:
                self.raised.discard(f"spent_{level:g}")
        if projected_pct < 100 - REARM_MARGIN:
            self.raised.discard(PROJECTED_KEY)
        return alerts
