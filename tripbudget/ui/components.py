"""
components.py - reusable Streamlit components / forms / displays

This module contains the UI pieces used by the dashboard:
 - trip list, trip setup form (backed by a per-session TripDraft)
 - budget overview: metrics, health bar, alerts, charts
 - expense form / table with XLSX export / edit-delete panel
 - itinerary board, people (contributors + participants), friends

Forms validate what the user typed; business rules (access checks, currency
and date validation) are enforced again by the tracker, whose errors the
dashboard shows with st.error.
"""

import datetime
from dataclasses import dataclass, field
from io import BytesIO
from typing import Callable, Dict, List, Optional

import altair as alt
import pandas as pd
import streamlit as st

from tripbudget.budget import BudgetAlert, BudgetSnapshot, CategoryTotal, health_level
from tripbudget.categories import category_label, date_label, uses_date_range
from tripbudget.currency import CURRENCY_CODES, currency_name, format_money, try_convert
from tripbudget.itinerary import day_date, trip_length, trip_status
from tripbudget.models import Expense, Trip
from tripbudget.rates import RateSnapshot

HEALTH_COLORS = {"ok": "green", "caution": "blue", "warning": "orange", "critical": "red"}
ALERT_ICONS = {"info": "ℹ️", "warning": "⚠️", "error": "🚨", "success": "✅"}


def _trigger_rerun():
    st.rerun()


def _currency_label(code: str) -> str:
    return f"{code} - {currency_name(code)}"


@dataclass
class ExpenseInput:
    """Lightweight container passed to the on_submit callback."""
    name: str
    amount: float
    currency: str
    category: str
    date: str  # ISO date string
    date_to: Optional[str]
    is_planned: bool


@dataclass
class TripDraft:
    """
    In-progress trip setup, kept in st.session_state for one browser session.
    Contributors are collected before the trip exists and saved with it.
    """
    title: str = ""
    base_currency: str = "USD"
    allocated_budget: float = 0.0
    start_date: Optional[datetime.date] = None
    end_date: Optional[datetime.date] = None
    contributors: List[Dict] = field(default_factory=list)

    @property
    def contributed(self) -> float:
        return sum(float(c["amount"]) for c in self.contributors)


def get_trip_draft() -> TripDraft:
    if "trip_draft" not in st.session_state:
        st.session_state["trip_draft"] = TripDraft()
    return st.session_state["trip_draft"]


def reset_trip_draft():
    st.session_state["trip_draft"] = TripDraft()


def show_rates_caption(snapshot: Optional[RateSnapshot]):
    if snapshot is None:
        return
    if snapshot.fallback:
        st.sidebar.warning(snapshot.error or "Using fallback exchange rates.")
    if snapshot.as_of:
        st.sidebar.caption(f"{snapshot.source} rates ({snapshot.base}) as of {snapshot.as_of}")
    else:
        st.sidebar.caption(f"{snapshot.source} rates loaded")


def _show_unconverted(unconverted: Optional[Dict[str, float]]):
    if not unconverted:
        return
    parts = [f"{code}: {amount:.2f}" for code, amount in sorted(unconverted.items())]
    st.caption("Counted without conversion (missing rate): " + ", ".join(parts))


# ---------------------------------------------------------------------------
# Trips
# ---------------------------------------------------------------------------

def display_trips(trips: List[Trip], snapshots: Dict[int, BudgetSnapshot]):
    """Trip cards: status, budget and how much of it is spent."""
    st.header("My Trips")
    if not trips:
        st.info("No trips yet. Create one from the menu.")
        return
    for trip in trips:
        snapshot = snapshots.get(trip.id)
        status = trip_status(trip.start_date, trip.end_date)
        with st.container(border=True):
            col1, col2 = st.columns([3, 2])
            with col1:
                st.subheader(trip.title)
                if trip.start_date and trip.end_date:
                    st.caption(f"{trip.start_date} → {trip.end_date}")
                if status:
                    st.markdown(f"**{status.status.title()}** · {status.text}")
            with col2:
                st.write(f"Budget: {format_money(trip.allocated_budget, trip.base_currency)}")
                if snapshot is not None:
                    st.write(f"Spent: {format_money(snapshot.total_spent, trip.base_currency)}")
                    st.progress(min(max(snapshot.percentage_spent, 0.0), 100.0) / 100)


def display_trip_form(on_submit: Callable[[TripDraft], None]):
    """
    Trip setup form. Values are copied into the session TripDraft on every
    submit so a failed validation keeps what the user typed.
    """
    draft = get_trip_draft()
    st.header("Create Trip")

    with st.form(key="trip_setup_form"):
        title = st.text_input("Trip title", value=draft.title)
        base_currency = st.selectbox(
            "Base currency",
            options=list(CURRENCY_CODES),
            index=list(CURRENCY_CODES).index(draft.base_currency),
            format_func=_currency_label,
        )
        allocated_budget = st.number_input("Allocated budget", min_value=0.0, format="%.2f",
                                           value=float(draft.allocated_budget))
        col1, col2 = st.columns(2)
        with col1:
            start_date = st.date_input("Start date", value=draft.start_date)
        with col2:
            end_date = st.date_input("End date", value=draft.end_date)
        submit_button = st.form_submit_button("Create trip")

    draft.title, draft.base_currency, draft.allocated_budget = title, base_currency, allocated_budget
    draft.start_date, draft.end_date = start_date, end_date

    # contributors are collected outside the form so they can be added one by one
    st.markdown("**Budget contributors (optional)**")
    col1, col2, col3 = st.columns([3, 2, 1])
    with col1:
        c_name = st.text_input("Contributor name", key="draft_contributor_name")
    with col2:
        c_amount = st.number_input("Contribution", min_value=0.0, format="%.2f", key="draft_contributor_amount")
    with col3:
        if st.button("Add", key="draft_contributor_add") and c_name.strip() and c_amount > 0:
            draft.contributors.append({"name": c_name.strip(), "amount": round(c_amount, 2)})
    for c in draft.contributors:
        st.write(f"- {c['name']}: {format_money(c['amount'], draft.base_currency)}")
    if draft.contributors:
        st.caption(f"Total contributed: {format_money(draft.contributed, draft.base_currency)}")

    if submit_button:
        if not title.strip():
            st.error("Trip title is required.")
            return
        if start_date and end_date and end_date < start_date:
            st.error("End date must be on or after the start date.")
            return
        on_submit(draft)


def display_trip_settings(trip: Trip, on_save: Callable[[Dict], None], on_delete: Callable[[], None]):
    st.header("Trip Settings")
    with st.form(key=f"trip_settings_{trip.id}"):
        title = st.text_input("Trip title", value=trip.title)
        base_currency = st.selectbox(
            "Base currency",
            options=list(CURRENCY_CODES),
            index=list(CURRENCY_CODES).index(trip.base_currency) if trip.base_currency in CURRENCY_CODES else 0,
            format_func=_currency_label,
        )
        allocated_budget = st.number_input("Allocated budget", min_value=0.0, format="%.2f",
                                           value=float(trip.allocated_budget))
        col1, col2 = st.columns(2)
        with col1:
            start_date = st.date_input("Start date", value=_date_or_none(trip.start_date))
        with col2:
            end_date = st.date_input("End date", value=_date_or_none(trip.end_date))
        if st.form_submit_button("Save changes"):
            on_save({
                "title": title,
                "base_currency": base_currency,
                "allocated_budget": round(allocated_budget, 2),
                "start_date": start_date.isoformat() if start_date else None,
                "end_date": end_date.isoformat() if end_date else None,
            })
            st.success("Trip updated.")

    st.markdown("---")
    st.write("Delete this trip")
    confirm = st.checkbox("I confirm I want to delete this trip")
    if st.button("Delete trip") and confirm:
        on_delete()
        st.success("Trip deleted.")


def _date_or_none(value: Optional[str]) -> Optional[datetime.date]:
    try:
        return datetime.date.fromisoformat(value) if value else None
    except ValueError:
        return None


# ---------------------------------------------------------------------------
# Budget overview
# ---------------------------------------------------------------------------

def show_budget_alerts(alerts: List[BudgetAlert]):
    for alert in alerts:
        st.toast(f"**{alert.message}** {alert.detail}", icon=ALERT_ICONS.get(alert.kind))


def display_budget_overview(trip: Trip, snapshot: BudgetSnapshot, categories: List[CategoryTotal],
                            contributed: float = 0.0):
    """Headline figures, a health bar and two charts for one trip."""
    code = trip.base_currency
    st.header(f"Budget Overview: {trip.title}")
    if trip.allocated_budget <= 0 and snapshot.projected_total == 0:
        st.info("Set an allocated budget in Trip Settings and start adding expenses.")
        return
    _show_unconverted(snapshot.unconverted)

    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Budget", format_money(trip.allocated_budget, code))
    col2.metric("Spent", format_money(snapshot.total_spent, code), f"{snapshot.percentage_spent:.1f}%",
                delta_color="off")
    col3.metric("Remaining", format_money(snapshot.actual_remaining, code))
    col4.metric("Projected remaining", format_money(snapshot.projected_remaining, code),
                f"planned {format_money(snapshot.total_planned, code)}", delta_color="off")
    if contributed:
        st.caption(f"Contributors pledged {format_money(contributed, code)}")

    level = health_level(snapshot.percentage_spent)
    st.markdown(f"**Budget health:** :{HEALTH_COLORS[level]}[{level}]")
    st.progress(min(max(snapshot.percentage_spent, 0.0), 100.0) / 100)
    if snapshot.over_budget:
        st.error(f"Over budget by {format_money(-snapshot.actual_remaining, code)}")

    budget_df = pd.DataFrame([
        {"part": "Spent", "amount": snapshot.total_spent},
        {"part": "Planned", "amount": snapshot.total_planned},
        {"part": "Remaining", "amount": max(0.0, snapshot.actual_remaining)},
    ])
    if budget_df["amount"].sum() > 0:
        pie = alt.Chart(budget_df).mark_arc(innerRadius=50).encode(
            theta=alt.Theta(field="amount", type="quantitative"),
            color=alt.Color(
                field="part", type="nominal",
                scale=alt.Scale(domain=["Spent", "Planned", "Remaining"], range=["#ef4444", "#f97316", "#22c55e"]),
                legend=alt.Legend(title=""),
            ),
            tooltip=[
                alt.Tooltip("part:N", title=""),
                alt.Tooltip("amount:Q", title=f"Amount ({code})", format=".2f"),
            ],
        ).properties(title="How your budget is distributed")
        st.altair_chart(pie, use_container_width=True)

    if not categories:
        return
    rows = []
    for c in categories:
        rows.append({"category": c.label, "kind": "Spent", "amount": c.spent})
        rows.append({"category": c.label, "kind": "Planned", "amount": c.planned})
    df = pd.DataFrame(rows)
    ordered = [c.label for c in categories]
    bars = alt.Chart(df).mark_bar().encode(
        x=alt.X("category:N", sort=ordered, title="Category", axis=alt.Axis(labelAngle=-45)),
        y=alt.Y("amount:Q", title=f"Amount ({code})"),
        color=alt.Color("kind:N", scale=alt.Scale(domain=["Spent", "Planned"], range=["#ef4444", "#f97316"]),
                        legend=alt.Legend(title="")),
        tooltip=[
            alt.Tooltip("category:N", title="Category"),
            alt.Tooltip("kind:N", title=""),
            alt.Tooltip("amount:Q", title=f"Amount ({code})", format=".2f"),
        ],
    ).properties(title="Spending by category", height=300)
    st.altair_chart(bars, use_container_width=True)


# ---------------------------------------------------------------------------
# Expenses
# ---------------------------------------------------------------------------

def expense_form_error(name: str, amount: float, date_val: datetime.date,
                       date_to_val: Optional[datetime.date]) -> Optional[str]:
    """Message for the first invalid field of an expense form, None when valid."""
    if not (name or "").strip():
        return "Name is required."
    if amount < 0:
        return "Amount cannot be negative."
    if date_to_val is not None and date_to_val < date_val:
        return "End date must be on or after the start date."
    return None


def display_expense_form(on_submit: Callable[[ExpenseInput], None],
                         categories: List[str],
                         base_currency: str,
                         add_category_cb: Callable[[str], bool]):
    """
    Display the 'Add Expense' form.

    Parameters:
      - on_submit: callback invoked with ExpenseInput when the form validates
      - categories: category values to show in the dropdown
      - base_currency: preselected currency
      - add_category_cb: function(name)->bool used to persist a new category
    """
    st.subheader("Add Expense")
    with st.form(key="expense_form"):
        name = st.text_input("Name")
        amount = st.number_input("Amount", min_value=0.0, format="%.2f")
        currency = st.selectbox("Currency", options=list(CURRENCY_CODES),
                                index=list(CURRENCY_CODES).index(base_currency) if base_currency in CURRENCY_CODES else 0)

        extra_opt = "Add new category..."
        selected_cat = st.selectbox("Category", options=list(categories) + [extra_opt],
                                    format_func=lambda c: c if c == extra_opt else category_label(c))
        new_category_name = ""
        if selected_cat == extra_opt:
            # The new category will be created when the whole form is submitted.
            new_category_name = st.text_input("New category name")

        date_val = st.date_input(date_label(selected_cat), value=datetime.date.today())
        date_to_val = None
        if uses_date_range(selected_cat):
            date_to_val = st.date_input(date_label(selected_cat, is_end=True), value=None)
        is_planned = st.checkbox("Planned expense (not spent yet)")

        submit_button = st.form_submit_button("Add Expense")

    if not submit_button:
        return
    error = expense_form_error(name, amount, date_val, date_to_val)
    if error:
        st.error(error)
        return

    category_final = selected_cat
    if selected_cat == extra_opt:
        if not new_category_name.strip():
            st.error("Please either pick an existing category or type a new one and submit the form.")
            return
        if not add_category_cb(new_category_name.strip()):
            st.error("Could not add category (it may already exist).")
            return
        category_final = new_category_name.strip()

    on_submit(ExpenseInput(
        name=name.strip(),
        amount=round(amount, 2),
        currency=currency,
        category=category_final,
        date=date_val.isoformat(),
        date_to=date_to_val.isoformat() if date_to_val else None,
        is_planned=is_planned,
    ))
    st.success("Expense added.")


def expenses_dataframe(expenses: List[Expense], rates: Optional[Dict[str, float]], base_currency: str) -> pd.DataFrame:
    """One row per expense including the amount converted into the trip currency."""
    rows = []
    for e in expenses:
        converted = try_convert(float(e.amount), e.currency, base_currency, rates)
        rows.append({
            "id": int(e.id),
            "date": e.date,
            "date_to": e.date_to or "",
            "name": e.name,
            "category": category_label(e.category),
            "amount": float(e.amount),
            "currency": e.currency,
            f"amount_{base_currency}": round(converted.amount, 2),
            "status": "planned" if e.is_planned else "spent",
        })
    columns = ["id", "date", "date_to", "name", "category", "amount", "currency",
               f"amount_{base_currency}", "status"]
    return pd.DataFrame(rows, columns=columns)


def display_expense_list(expenses: List[Expense], rates: Optional[Dict[str, float]], base_currency: str):
    """
    Render expenses as an interactive table and provide an XLSX export button.
    The workbook has an "expenses" sheet and a "totals_by_currency" sheet.
    """
    st.subheader("Expenses")
    if not expenses:
        st.write("No expenses recorded.")
        return

    df = expenses_dataframe(expenses, rates, base_currency)
    st.dataframe(df.style.format({"amount": "{:.2f}", f"amount_{base_currency}": "{:.2f}"}),
                 use_container_width=True, hide_index=True)

    totals = df.groupby(["currency", "status"])["amount"].sum().reset_index()
    st.markdown("**Totals by currency**")
    for _, r in totals.iterrows():
        st.write(f"- {r['currency']} ({r['status']}): {r['amount']:.2f}")

    buffer = BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        df.to_excel(writer, index=False, sheet_name="expenses")
        totals.to_excel(writer, index=False, sheet_name="totals_by_currency")
    buffer.seek(0)

    st.download_button(
        label="Download as XLSX",
        data=buffer.getvalue(),
        file_name="trip_expenses.xlsx",
        mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    )


def display_manage_expenses(expenses: List[Expense], categories: List[str],
                            on_update: Callable[[int, Dict], None], on_delete: Callable[[int], None]):
    """UI to select, edit and delete an existing expense."""
    st.subheader("Edit / Delete Expense")
    if not expenses:
        st.info("No expenses recorded.")
        return

    options = {f"#{e.id} {e.name} {e.amount:.2f} {e.currency} {e.date}": e.id for e in expenses}
    sel_label = st.selectbox("Select expense", options=list(options.keys()))
    expense = next(e for e in expenses if e.id == options[sel_label])

    with st.form(key=f"edit_expense_{expense.id}"):
        name = st.text_input("Name", value=expense.name)
        amount = st.number_input("Amount", min_value=0.0, format="%.2f", value=float(expense.amount))
        currency = st.selectbox("Currency", options=list(CURRENCY_CODES),
                                index=list(CURRENCY_CODES).index(expense.currency) if expense.currency in CURRENCY_CODES else 0)
        cat_options = list(categories) if expense.category in categories else list(categories) + [expense.category]
        category = st.selectbox("Category", options=cat_options, index=cat_options.index(expense.category),
                                format_func=category_label)
        date_selected = st.date_input("Date", value=_date_or_none(expense.date) or datetime.date.today())
        date_to_selected = st.date_input("End date (hotel/flight only)", value=_date_or_none(expense.date_to))
        is_planned = st.checkbox("Planned expense", value=expense.is_planned)
        save_btn = st.form_submit_button("Save changes")

    if save_btn:
        date_to_checked = date_to_selected if uses_date_range(category) else None
        error = expense_form_error(name, amount, date_selected, date_to_checked)
        if error:
            st.error(error)
        else:
            on_update(expense.id, {
                "name": name,
                "amount": round(amount, 2),
                "currency": currency,
                "category": category,
                "date": date_selected.isoformat(),
                "date_to": date_to_checked.isoformat() if date_to_checked else None,
                "is_planned": is_planned,
            })
            st.success("Expense updated.")
            _trigger_rerun()

    # Delete UI (separate to avoid accidental deletes)
    st.markdown("---")
    st.write("Delete this expense")
    delete_confirm = st.checkbox("I confirm I want to delete this expense")
    if st.button("Delete expense") and delete_confirm:
        on_delete(expense.id)
        st.success("Expense deleted.")
        _trigger_rerun()


# ---------------------------------------------------------------------------
# Itinerary
# ---------------------------------------------------------------------------

def display_itinerary(trip: Trip, activities: list, on_add: Callable[[Dict], None],
                      on_update: Callable[[int, Dict], None], on_delete: Callable[[int], None]):
    """Day-by-day board: one tab per trip day with its activities and an add form."""
    st.header("Itinerary")
    days = trip_length(trip.start_date, trip.end_date)
    if not days:
        st.info("Set the trip start and end dates to plan the itinerary.")
        return

    tabs = st.tabs([f"Day {i}" for i in range(1, days + 1)])
    for day_index, tab in enumerate(tabs, start=1):
        with tab:
            st.caption(day_date(trip.start_date, day_index).strftime("%A, %d %B %Y"))
            for a in [a for a in activities if a.day_index == day_index]:
                col1, col2, col3 = st.columns([6, 1, 1])
                with col1:
                    label = f"{a.time} · {a.title}" if a.time else a.title
                    st.markdown(f"~~{label}~~" if a.completed else f"**{label}**")
                    if a.description:
                        st.caption(a.description)
                with col2:
                    done = st.checkbox("Done", value=a.completed, key=f"activity_done_{a.id}")
                    if done != a.completed:
                        on_update(a.id, {"completed": done})
                        _trigger_rerun()
                with col3:
                    if st.button("Delete", key=f"activity_delete_{a.id}"):
                        on_delete(a.id)
                        _trigger_rerun()

            with st.form(key=f"activity_form_{day_index}"):
                title = st.text_input("Activity")
                time_val = st.time_input("Time (optional)", value=None, key=f"activity_time_{day_index}")
                description = st.text_input("Description (optional)")
                category = st.selectbox("Type", options=["", "transport", "food", "activities", "sightseeing", "other"],
                                        format_func=lambda c: category_label(c) if c else "-")
                remind_me = st.checkbox("Remind me", value=False)
                if st.form_submit_button("Add activity"):
                    if not title.strip():
                        st.error("Activity title is required.")
                    else:
                        on_add({
                            "title": title.strip(),
                            "day_index": day_index,
                            "time": time_val.strftime("%H:%M") if time_val else None,
                            "description": description.strip() or None,
                            "category": category or None,
                            "remind_me": remind_me,
                        })
                        _trigger_rerun()


def show_reminders(reminders: list):
    for r in reminders:
        st.toast(f"**{r.title}** {r.message}", icon=ALERT_ICONS.get(r.kind))


# ---------------------------------------------------------------------------
# People
# ---------------------------------------------------------------------------

def display_contributors(trip: Trip, contributors: list, is_owner: bool,
                         on_add: Callable[[str, float], None], on_delete: Callable[[int], None]):
    st.subheader("Budget contributors")
    total = sum(float(c.amount) for c in contributors)
    if contributors:
        for c in contributors:
            col1, col2 = st.columns([5, 1])
            col1.write(f"{c.name}: {format_money(c.amount, trip.base_currency)}")
            if is_owner and col2.button("Remove", key=f"contributor_delete_{c.id}"):
                on_delete(c.id)
                _trigger_rerun()
        st.caption(f"Total contributed: {format_money(total, trip.base_currency)}")
    else:
        st.write("No contributors yet.")

    if not is_owner:
        return
    with st.form(key="contributor_form"):
        name = st.text_input("Name")
        amount = st.number_input("Amount", min_value=0.0, format="%.2f")
        if st.form_submit_button("Add contributor"):
            if not name.strip() or amount <= 0:
                st.error("Enter a name and an amount greater than 0.")
            else:
                on_add(name.strip(), round(amount, 2))
                _trigger_rerun()


def display_participants(participants: List[Dict], friends: List[Dict], is_owner: bool,
                         on_invite: Callable[[str], None], on_remove: Callable[[str], None]):
    st.subheader("Participants")
    for p in participants:
        col1, col2 = st.columns([5, 1])
        status = "" if p["status"] == "accepted" else " (invited)"
        col1.write(f"{p['name']} · {p['role']}{status}")
        if is_owner and p["role"] != "owner" and col2.button("Remove", key=f"participant_remove_{p['user_id']}"):
            on_remove(p["user_id"])
            _trigger_rerun()

    if not is_owner:
        return
    joined = {p["user_id"] for p in participants}
    candidates = [f for f in friends if f["user_id"] not in joined]
    if not candidates:
        st.caption("Add friends to invite them to this trip.")
        return
    labels = {f"{f['name']} <{f['email']}>": f["user_id"] for f in candidates}
    choice = st.selectbox("Invite a friend", options=list(labels.keys()))
    if st.button("Send invite"):
        on_invite(labels[choice])
        st.success("Invitation sent.")


def display_friends(friends: List[Dict], pending: List[Dict], sent: List[Dict],
                    search: Callable[[str], List[Dict]], actions: Dict[str, Callable]):
    """
    Friends page. actions maps "send", "accept", "reject", "remove", "block"
    to callbacks taking a user id (send/remove/block) or a friendship id.
    """
    st.header("Friends")

    query = st.text_input("Find people by name or email")
    for u in search(query) if query else []:
        col1, col2 = st.columns([5, 1])
        col1.write(f"{u['name']} <{u['email']}>")
        if col2.button("Add", key=f"friend_add_{u['user_id']}"):
            actions["send"](u["user_id"])
            _trigger_rerun()

    st.subheader("Requests")
    if not pending:
        st.write("No pending requests.")
    for r in pending:
        col1, col2, col3 = st.columns([4, 1, 1])
        col1.write(f"{r['name']} <{r['email']}>")
        if col2.button("Accept", key=f"friend_accept_{r['friendship_id']}"):
            actions["accept"](r["friendship_id"])
            _trigger_rerun()
        if col3.button("Decline", key=f"friend_reject_{r['friendship_id']}"):
            actions["reject"](r["friendship_id"])
            _trigger_rerun()
    for r in sent:
        col1, col2 = st.columns([5, 1])
        col1.write(f"Sent to {r['name']}")
        if col2.button("Cancel", key=f"friend_cancel_{r['friendship_id']}"):
            actions["reject"](r["friendship_id"])
            _trigger_rerun()

    st.subheader("My friends")
    if not friends:
        st.write("No friends yet.")
    for f in friends:
        col1, col2, col3 = st.columns([4, 1, 1])
        col1.write(f"{f['name']} <{f['email']}>")
        if col2.button("Remove", key=f"friend_remove_{f['user_id']}"):
            actions["remove"](f["user_id"])
            _trigger_rerun()
        if col3.button("Block", key=f"friend_block_{f['user_id']}"):
            actions["block"](f["user_id"])
            _trigger_rerun()
