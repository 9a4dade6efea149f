import datetime

import httpx

from tripbudget.rates import RateSource
from tripbudget.ui import components, dashboard

T0 = datetime.datetime(2026, 3, 1, 12, 0, tzinfo=datetime.timezone.utc)


class FakeSidebar:
    """Records what the dashboard draws in the sidebar."""

    def __init__(self, clicked):
        self.clicked = clicked
        self.captions = []

    def button(self, label, **kwargs):
        return self.clicked

    def caption(self, text):
        self.captions.append(text)

    def warning(self, text):
        self.captions.append(text)


def test_expense_form_accepts_zero_amount():
    day = datetime.date(2026, 5, 1)
    assert components.expense_form_error("Free museum", 0.0, day, None) is None
    assert components.expense_form_error("Taxi", -1.0, day, None) == "Amount cannot be negative."
    assert components.expense_form_error("  ", 5.0, day, None) == "Name is required."
    assert components.expense_form_error("Hotel", 5.0, day, day - datetime.timedelta(days=1)) is not None
    assert components.expense_form_error("Hotel", 5.0, day, day) is None


def test_rates_caption_shows_refreshed_time(monkeypatch):
    clock_now = [T0]

    def handler(request):
        return httpx.Response(200, json={"rates": {"USD": 1, "EUR": 0.9}})

    source = RateSource(
        client=httpx.Client(transport=httpx.MockTransport(handler)),
        api_url="https://rates.test/v4/latest",
        clock=lambda: clock_now[0],
    )
    source.get("USD")
    clock_now[0] = T0 + datetime.timedelta(minutes=2)

    sidebar = FakeSidebar(clicked=True)
    monkeypatch.setattr(dashboard.st, "sidebar", sidebar)
    snapshot = dashboard._rates_sidebar(source, "USD")

    assert snapshot.fetched_at == T0 + datetime.timedelta(minutes=2)
    assert sidebar.captions == ["exchangerate-api.com rates (USD) as of 2026-03-01 12:02 UTC"]


def test_rates_caption_uses_cache_without_click(monkeypatch):
    calls = []

    def handler(request):
        calls.append(1)
        return httpx.Response(200, json={"rates": {"USD": 1, "EUR": 0.9}})

    source = RateSource(
        client=httpx.Client(transport=httpx.MockTransport(handler)),
        api_url="https://rates.test/v4/latest",
        clock=lambda: T0,
    )
    monkeypatch.setattr(dashboard.st, "sidebar", FakeSidebar(clicked=False))
    dashboard._rates_sidebar(source, "USD")
    dashboard._rates_sidebar(source, "USD")
    assert len(calls) == 1
