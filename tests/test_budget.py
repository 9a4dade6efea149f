import logging

import pytest

from tripbudget.budget import (
    BudgetAlerts,
    aggregate,
    budget_amount,
    category_breakdown,
    category_totals,
    health_level,
    top_categories,
    total_contributed,
)
from tripbudget.models import BudgetContributor, Expense

RATES = {"USD": 1.0, "EUR": 0.92, "GBP": 0.79, "JPY": 149.5}


def _expense(amount, currency="USD", category="other", is_planned=False, id=1):
    return Expense(id=id, trip_id=1, user_id="alice", name=f"e{id}", amount=amount,
                   currency=currency, category=category, date="2026-05-01", is_planned=is_planned)


def test_empty_trip_has_full_budget_remaining():
    snap = aggregate([], 500, RATES, "USD")
    assert snap.total_spent == 0
    assert snap.total_planned == 0
    assert snap.actual_remaining == 500
    assert snap.projected_remaining == 500
    assert snap.percentage_spent == 0


def test_spent_and_planned_are_split():
    entries = [
        _expense(30, id=1),
        _expense(20, id=2),
        _expense(10, is_planned=True, id=3),
    ]
    snap = aggregate(entries, 100, RATES, "USD")
    assert snap.total_spent == pytest.approx(50)
    assert snap.total_planned == pytest.approx(10)
    assert snap.actual_remaining == pytest.approx(50)
    assert snap.projected_remaining == pytest.approx(40)
    assert snap.percentage_spent == pytest.approx(50)
    assert snap.projected_total == pytest.approx(60)
    assert not snap.over_budget


def test_three_actual_entries_against_budget_of_100():
    entries = [_expense(30, id=1), _expense(20, id=2), _expense(10, id=3)]
    snap = aggregate(entries, 100, RATES, "USD")
    assert snap.total_spent == pytest.approx(60)
    assert snap.total_planned == 0
    assert snap.actual_remaining == pytest.approx(40)
    assert snap.projected_remaining == pytest.approx(40)
    assert snap.percentage_spent == pytest.approx(60)


def test_breakdown_sorts_hotel_before_food():
    entries = [_expense(30, category="food", id=1), _expense(50, category="hotel", id=2)]
    breakdown = category_breakdown(entries, RATES, "USD")
    assert breakdown == {"food": pytest.approx(30), "hotel": pytest.approx(50)}
    assert [c for c, _ in top_categories(breakdown)] == ["hotel", "food"]


def test_explicit_anchor_flags_unknown_codes():
    # one-sided table: EUR quoted against USD, USD itself not listed
    rates = {"EUR": 0.92}
    entries = [_expense(92, "EUR", id=1), _expense(10, "XYZ", id=2)]
    snap = aggregate(entries, 200, rates, "USD", anchor="USD")
    assert snap.total_spent == pytest.approx(110)
    assert snap.unconverted == {"XYZ": 10.0}


def test_entries_are_converted_to_base_currency():
    entries = [_expense(92, "EUR", id=1), _expense(79, "GBP", is_planned=True, id=2)]
    snap = aggregate(entries, 1000, RATES, "USD")
    assert snap.total_spent == pytest.approx(100)
    assert snap.total_planned == pytest.approx(100)

    in_eur = aggregate([_expense(100, "USD")], 200, RATES, "EUR")
    assert in_eur.total_spent == pytest.approx(92)
    assert in_eur.percentage_spent == pytest.approx(46)


def test_zero_budget_reports_zero_percent():
    snap = aggregate([_expense(40)], 0, RATES, "USD")
    assert snap.percentage_spent == 0
    assert snap.actual_remaining == pytest.approx(-40)
    assert snap.over_budget


@pytest.mark.parametrize("value,expected", [(None, 0.0), ("", 0.0), ("  ", 0.0), ("abc", 0.0), ("250.5", 250.5), (300, 300.0)])
def test_budget_amount_parsing(value, expected):
    assert budget_amount(value) == expected


def test_missing_budget_treated_as_zero():
    snap = aggregate([_expense(10)], None, RATES, "USD")
    assert snap.percentage_spent == 0
    assert snap.projected_remaining == pytest.approx(-10)


def test_over_budget_goes_negative():
    snap = aggregate([_expense(150)], 100, RATES, "USD")
    assert snap.actual_remaining == pytest.approx(-50)
    assert snap.percentage_spent == pytest.approx(150)


def test_unconverted_amounts_are_reported(caplog):
    entries = [_expense(10, "USD", id=1), _expense(5, "XYZ", id=2), _expense(7, "XYZ", is_planned=True, id=3)]
    with caplog.at_level(logging.WARNING, logger="tripbudget"):
        snap = aggregate(entries, 100, RATES, "USD")
    assert snap.total_spent == pytest.approx(15)
    assert snap.total_planned == pytest.approx(7)
    assert snap.unconverted == {"XYZ": 12.0}
    assert "XYZ" in caplog.text


def test_category_breakdown_excludes_planned():
    entries = [
        _expense(50, category="food", id=1),
        _expense(30, category="food", id=2),
        _expense(200, category="hotel", id=3),
        _expense(999, category="flight", is_planned=True, id=4),
    ]
    breakdown = category_breakdown(entries, RATES, "USD")
    assert breakdown == {"food": pytest.approx(80), "hotel": pytest.approx(200)}
    assert top_categories(breakdown) == [("hotel", 200), ("food", 80)]
    assert top_categories(breakdown, limit=1) == [("hotel", 200)]


def test_breakdown_partitions_total_spent():
    entries = [
        _expense(12.5, "EUR", "food", id=1),
        _expense(40, "GBP", "transport", id=2),
        _expense(3000, "JPY", "shopping", id=3),
        _expense(18, "USD", "food", id=4),
        _expense(60, "USD", "hotel", is_planned=True, id=5),
    ]
    snap = aggregate(entries, 500, RATES, "USD")
    assert sum(category_breakdown(entries, RATES, "USD").values()) == pytest.approx(snap.total_spent)


def test_category_totals_for_charts():
    entries = [
        _expense(50, category="food", id=1),
        _expense(20, category="food", is_planned=True, id=2),
        _expense(100, category="hotel", is_planned=True, id=3),
        _expense(5, category="snacks", id=4),
    ]
    rows = category_totals(entries, RATES, "USD")
    assert [r.category for r in rows] == ["hotel", "food", "snacks"]
    food = rows[1]
    assert food.label == "Food & Dining"
    assert food.spent == pytest.approx(50)
    assert food.planned == pytest.approx(20)
    assert rows[2].label == "Snacks"


@pytest.mark.parametrize("pct,level", [(0, "ok"), (49.9, "ok"), (50, "caution"), (75, "warning"), (89.9, "warning"), (90, "critical"), (140, "critical")])
def test_health_level(pct, level):
    assert health_level(pct) == level


def test_total_contributed():
    contributors = [
        BudgetContributor(id=1, trip_id=1, user_id="alice", name="Alice", amount=300),
        BudgetContributor(id=2, trip_id=1, user_id="alice", name="Bob", amount=200.5),
    ]
    assert total_contributed(contributors) == pytest.approx(500.5)
    assert total_contributed([]) == 0


def _spent(amount, planned=0.0):
    entries = [_expense(amount, id=1)]
    if planned:
        entries.append(_expense(planned, is_planned=True, id=2))
    return aggregate(entries, 100, RATES, "USD")


def test_alerts_fire_once_per_threshold():
    alerts = BudgetAlerts()
    assert alerts.check(_spent(40), 100, "USD") == []

    crossed = alerts.check(_spent(55), 100, "USD")
    assert [a.key for a in crossed] == ["spent_50"]
    assert crossed[0].kind == "info"
    assert crossed[0].message == "You've spent 50% of your budget"
    assert crossed[0].detail == "Current spending: 55.0% ($55.00)"

    assert alerts.check(_spent(60), 100, "USD") == []

    crossed = alerts.check(_spent(101), 100, "USD")
    assert [a.key for a in crossed] == ["spent_75", "spent_90", "spent_100", "projected"]
    assert crossed[0].message == "Warning: 75% of budget spent!"
    assert crossed[1].message == "Alert: 90% of budget spent!"
    assert crossed[2].kind == "error"
    assert crossed[2].message == "Budget exceeded!"


def test_alerts_rearm_after_dropping_below_threshold():
    alerts = BudgetAlerts()
    assert [a.key for a in alerts.check(_spent(52), 100, "USD")] == ["spent_50"]
    # within the margin: still considered raised
    alerts.check(_spent(47), 100, "USD")
    assert alerts.check(_spent(51), 100, "USD") == []
    # well below: re-armed
    alerts.check(_spent(30), 100, "USD")
    assert [a.key for a in alerts.check(_spent(51), 100, "USD")] == ["spent_50"]


def test_projected_alert_counts_planned_spending():
    alerts = BudgetAlerts()
    crossed = alerts.check(_spent(40, planned=70), 100, "USD")
    assert [a.key for a in crossed] == ["projected"]
    assert crossed[0].message == "Projected budget will exceed limit!"
    assert crossed[0].detail == "With planned expenses: 110.0% ($110.00)"


def test_no_alerts_without_budget():
    alerts = BudgetAlerts()
    snap = aggregate([_expense(500)], 0, RATES, "USD")
    assert alerts.check(snap, 0, "USD") == []
    assert alerts.check(snap, None, "USD") == []
