"""
dashboard.py - Streamlit UI entrypoint and orchestration

This module wires the UI components (tripbudget.ui.components) with the
business logic (tripbudget.tracker, tripbudget.friends, tripbudget.budget).
The main() function builds the sidebar (identity, storage and rate status,
trip picker, menu) and routes actions to components and tracker methods.

Design notes:
 - Keep the dashboard responsible only for UI orchestration and presentation.
 - All persistence, access checks and business rules live in the tracker.
 - Per-session state (trip draft, raised budget alerts) lives in st.session_state;
   the rate cache is shared per process.
"""

from typing import Optional

import streamlit as st

from tripbudget import config
from tripbudget.budget import BudgetAlerts, aggregate, category_totals, total_contributed
from tripbudget.errors import TripBudgetError
from tripbudget.friends import FriendDirectory
from tripbudget.itinerary import daily_summary, due_reminders
from tripbudget.rates import RateSnapshot, RateSource
from tripbudget.tracker import TripTracker
from tripbudget.ui import components

MENU = [
    "My Trips",
    "Create Trip",
    "Budget Overview",
    "Expenses",
    "Itinerary",
    "People",
    "Friends",
    "Trip Settings",
]
# views that need a selected trip
TRIP_VIEWS = {"Budget Overview", "Expenses", "Itinerary", "People", "Trip Settings"}


@st.cache_resource
def _rate_source() -> RateSource:
    return RateSource()


def _signed_in_user(tracker: TripTracker) -> Optional[str]:
    """
    Identity comes from the hosting identity provider; locally it is typed in
    the sidebar (or preset with TRIPBUDGET_USER).
    """
    st.sidebar.subheader("Account")
    user_id = st.sidebar.text_input("User id", value=st.session_state.get("user_id", config.DEFAULT_USER))
    name = st.sidebar.text_input("Display name", value=st.session_state.get("user_name", ""))
    email = st.sidebar.text_input("Email", value=st.session_state.get("user_email", ""))
    user_id = user_id.strip()
    if not user_id:
        return None
    st.session_state["user_id"], st.session_state["user_name"], st.session_state["user_email"] = user_id, name, email
    tracker.ensure_user(user_id, email=email.strip(), name=name.strip())
    return user_id


def _rates_sidebar(rate_source: RateSource, base_currency: str) -> RateSnapshot:
    """Rate table for the trip currency; the caption reflects a forced refresh."""
    if st.sidebar.button("Refresh exchange rates"):
        snapshot = rate_source.refresh(base_currency, force=True)
    else:
        snapshot = rate_source.get(base_currency)
    components.show_rates_caption(snapshot)
    return snapshot


def _budget_alerts(trip_id: int) -> BudgetAlerts:
    key = f"budget_alerts_{trip_id}"
    if key not in st.session_state:
        st.session_state[key] = BudgetAlerts()
    return st.session_state[key]


def _pending_invites(tracker: TripTracker, user_id: str):
    invites = tracker.pending_invites(user_id)
    if not invites:
        return
    st.sidebar.subheader("Trip invitations")
    for trip in invites:
        st.sidebar.write(trip.title)
        col1, col2 = st.sidebar.columns(2)
        if col1.button("Join", key=f"invite_accept_{trip.id}"):
            tracker.respond_to_invite(user_id, trip.id, accept=True)
            st.rerun()
        if col2.button("Decline", key=f"invite_decline_{trip.id}"):
            tracker.respond_to_invite(user_id, trip.id, accept=False)
            st.rerun()


def main():
    """
    Streamlit page: sidebar menu controls which view is shown.
    Tracker errors (access denied, validation) are shown inline.
    """
    st.title("Trip Budget Dashboard")
    tracker = TripTracker()
    rate_source = _rate_source()

    backend_name, backend_msg = tracker.storage_status()
    if backend_name == "google_sheets":
        st.sidebar.success(backend_msg)
    else:
        st.sidebar.warning(backend_msg)
        st.sidebar.caption(
            "For cloud persistence, set GOOGLE_SHEET_ID and "
            "GOOGLE_SERVICE_ACCOUNT_JSON in Streamlit app Secrets."
        )

    try:
        user_id = _signed_in_user(tracker)
        if user_id is None:
            st.info("Enter a user id in the sidebar to sign in.")
            return
        _pending_invites(tracker, user_id)
        _route(tracker, rate_source, user_id)
    except TripBudgetError as exc:
        st.error(str(exc))


def _route(tracker: TripTracker, rate_source: RateSource, user_id: str):
    friends = FriendDirectory(tracker)
    trips = tracker.list_trips(user_id)
    choice = st.sidebar.selectbox("Select an option", MENU)

    trip = None
    if trips:
        labels = {f"{t.title} (#{t.id})": t for t in trips}
        trip = labels[st.sidebar.selectbox("Trip", options=list(labels.keys()))]

    rates_snapshot = _rates_sidebar(rate_source, trip.base_currency) if trip is not None else None
    rates = rates_snapshot.rates if rates_snapshot else {}
    anchor = rates_snapshot.base if rates_snapshot else None

    if choice in TRIP_VIEWS and trip is None:
        st.info("Create a trip first.")
        return

    if choice == "My Trips":
        snapshots = {}
        for t in trips:
            table = rate_source.get(t.base_currency)
            snapshots[t.id] = aggregate(
                tracker.list_expenses(user_id, t.id), t.allocated_budget,
                table.rates, t.base_currency, anchor=table.base,
            )
        components.display_trips(trips, snapshots)

    elif choice == "Create Trip":
        def on_submit(draft: components.TripDraft):
            new_trip = tracker.create_trip(
                user_id,
                title=draft.title,
                base_currency=draft.base_currency,
                allocated_budget=draft.allocated_budget,
                start_date=draft.start_date.isoformat() if draft.start_date else None,
                end_date=draft.end_date.isoformat() if draft.end_date else None,
            )
            for c in draft.contributors:
                tracker.add_contributor(user_id, new_trip.id, c["name"], c["amount"])
            components.reset_trip_draft()
            st.success(f"Trip '{new_trip.title}' created.")

        components.display_trip_form(on_submit)

    elif choice == "Budget Overview":
        expenses = tracker.list_expenses(user_id, trip.id)
        snapshot = aggregate(expenses, trip.allocated_budget, rates, trip.base_currency, anchor=anchor)
        components.show_budget_alerts(_budget_alerts(trip.id).check(snapshot, trip.allocated_budget, trip.base_currency))
        components.display_budget_overview(
            trip,
            snapshot,
            category_totals(expenses, rates, trip.base_currency, anchor=anchor),
            contributed=total_contributed(tracker.list_contributors(user_id, trip.id)),
        )

    elif choice == "Expenses":
        def on_submit(exp_input: components.ExpenseInput):
            tracker.add_expense(
                user_id,
                trip.id,
                name=exp_input.name,
                amount=exp_input.amount,
                currency=exp_input.currency,
                category=exp_input.category,
                date=exp_input.date,
                date_to=exp_input.date_to,
                is_planned=exp_input.is_planned,
            )

        def add_category(name: str) -> bool:
            return tracker.add_custom_category(user_id, trip.id, name) is not None

        categories = tracker.list_categories(user_id, trip.id)
        components.display_expense_form(on_submit, categories, trip.base_currency, add_category)
        expenses = tracker.list_expenses(user_id, trip.id)
        components.display_expense_list(expenses, rates, trip.base_currency)
        components.display_manage_expenses(
            expenses,
            categories,
            on_update=lambda expense_id, changes: tracker.update_expense(user_id, expense_id, **changes),
            on_delete=lambda expense_id: tracker.delete_expense(user_id, expense_id),
        )

    elif choice == "Itinerary":
        activities = tracker.list_activities(user_id, trip.id)
        components.show_reminders(daily_summary(activities, trip.start_date, trip.end_date))
        components.show_reminders(due_reminders(activities, trip.start_date, trip.end_date))
        components.display_itinerary(
            trip,
            activities,
            on_add=lambda values: tracker.add_activity(user_id, trip.id, **values),
            on_update=lambda activity_id, changes: tracker.update_activity(user_id, activity_id, **changes),
            on_delete=lambda activity_id: tracker.delete_activity(user_id, activity_id),
        )

    elif choice == "People":
        is_owner = trip.owner_id == user_id
        components.display_contributors(
            trip,
            tracker.list_contributors(user_id, trip.id),
            is_owner,
            on_add=lambda name, amount: tracker.add_contributor(user_id, trip.id, name, amount),
            on_delete=lambda contributor_id: tracker.delete_contributor(user_id, contributor_id),
        )
        components.display_participants(
            tracker.list_participants(user_id, trip.id),
            friends.friends(user_id),
            is_owner,
            on_invite=lambda friend_id: tracker.invite_participant(user_id, trip.id, friend_id),
            on_remove=lambda member_id: tracker.remove_participant(user_id, trip.id, member_id),
        )
        if not is_owner and st.button("Leave trip"):
            tracker.remove_participant(user_id, trip.id, user_id)
            st.rerun()

    elif choice == "Friends":
        components.display_friends(
            friends.friends(user_id),
            friends.pending_requests(user_id),
            friends.sent_requests(user_id),
            search=lambda query: friends.search_users(user_id, query),
            actions={
                "send": lambda other: friends.send_request(user_id, other),
                "accept": lambda friendship_id: friends.accept_request(user_id, friendship_id),
                "reject": lambda friendship_id: friends.reject_request(user_id, friendship_id),
                "remove": lambda other: friends.remove_friend(user_id, other),
                "block": lambda other: friends.block_user(user_id, other),
            },
        )

    elif choice == "Trip Settings":
        if trip.owner_id != user_id:
            st.info("Only the trip owner can change its settings.")
            return
        components.display_trip_settings(
            trip,
            on_save=lambda changes: tracker.update_trip(user_id, trip.id, **changes),
            on_delete=lambda: tracker.delete_trip(user_id, trip.id),
        )


if __name__ == "__main__":
    main()
