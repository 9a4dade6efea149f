import datetime
import itertools
import threading

import httpx
import pytest

from tripbudget.currency import convert
from tripbudget.rates import (
    FALLBACK_MAX_AGE,
    FALLBACK_RATES,
    FALLBACK_SOURCE,
    RateSource,
    fallback_rates,
    fetch_rates,
    fetch_snapshot,
)

API_URL = "https://rates.test/v4/latest"
T0 = datetime.datetime(2026, 3, 1, 12, 0, tzinfo=datetime.timezone.utc)


def _client(handler):
    return httpx.Client(transport=httpx.MockTransport(handler))


def _ok(rates):
    def handler(request):
        base = request.url.path.rsplit("/", 1)[-1]
        return httpx.Response(200, json={"base": base, "rates": rates})
    return handler


class FakeClock:
    def __init__(self, start=T0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += datetime.timedelta(seconds=seconds)


def test_fetch_snapshot_returns_live_table():
    seen = []

    def handler(request):
        seen.append(str(request.url))
        return httpx.Response(200, json={"rates": {"EUR": 1, "usd": 1.09, "GBP": 0.86}})

    snapshot = fetch_snapshot("eur", client=_client(handler), api_url=API_URL)
    assert seen == [f"{API_URL}/EUR"]
    assert not snapshot.fallback
    assert snapshot.requested == snapshot.base == "EUR"
    assert snapshot.rates == {"EUR": 1.0, "USD": 1.09, "GBP": 0.86}
    assert snapshot.error == ""
    assert snapshot.fetched_at is not None


def test_base_rate_is_forced_to_one():
    snapshot = fetch_snapshot("USD", client=_client(_ok({"USD": 0.999, "EUR": 0.92})), api_url=API_URL)
    assert snapshot.rates["USD"] == 1.0


@pytest.mark.parametrize("handler", [
    lambda request: httpx.Response(500),
    lambda request: httpx.Response(404, json={"error": "unknown base"}),
    lambda request: httpx.Response(200, content=b"<html>maintenance</html>"),
    lambda request: httpx.Response(200, json={"result": "error"}),
    lambda request: httpx.Response(200, json={"rates": {}}),
])
def test_failures_fall_back_to_static_table(handler):
    snapshot = fetch_snapshot("EUR", client=_client(handler), api_url=API_URL)
    assert snapshot.fallback
    assert snapshot.source == FALLBACK_SOURCE
    assert snapshot.base == "EUR"
    assert snapshot.rates == FALLBACK_RATES["EUR"]
    assert "fallback rates" in snapshot.error


def test_timeout_counts_as_failure():
    def handler(request):
        raise httpx.ConnectTimeout("timed out", request=request)

    snapshot = fetch_snapshot("USD", client=_client(handler), timeout=0.5, api_url=API_URL)
    assert snapshot.fallback
    assert "ConnectTimeout" in snapshot.error
    assert snapshot.rates == FALLBACK_RATES["USD"]


def test_other_bases_get_usd_fallback_anchor():
    def handler(request):
        raise httpx.ConnectError("offline", request=request)

    snapshot = fetch_snapshot("GBP", client=_client(handler), api_url=API_URL)
    assert snapshot.requested == "GBP"
    assert snapshot.base == "USD"
    # the USD-anchored table still converts between any two listed currencies
    assert convert(79, "GBP", "USD", snapshot.rates) == pytest.approx(100)
    assert convert(100, "GBP", "GBP", snapshot.rates) == 100


def test_fallback_rates_returns_a_copy():
    table = fallback_rates("usd")
    table["EUR"] = 123.0
    assert FALLBACK_RATES["USD"]["EUR"] == 0.92
    assert fallback_rates("SGD") == FALLBACK_RATES["USD"]


def test_fetch_rates_returns_plain_dict():
    rates = fetch_rates("USD", client=_client(_ok({"USD": 1, "JPY": 150})))
    assert rates == {"USD": 1.0, "JPY": 150.0}


def test_rate_source_reuses_fresh_table():
    calls = []

    def handler(request):
        calls.append(request.url.path)
        return httpx.Response(200, json={"rates": {"USD": 1, "EUR": 0.9}})

    clock = FakeClock()
    source = RateSource(client=_client(handler), max_age=600, api_url=API_URL, clock=clock)
    first = source.get("usd")
    clock.advance(599)
    assert source.get("USD") is first
    assert len(calls) == 1
    assert source.last_updated("USD") == T0

    clock.advance(2)
    source.get("USD")
    assert len(calls) == 2
    assert source.last_updated("USD") == T0 + datetime.timedelta(seconds=601)


def test_rate_source_caches_per_base_currency():
    calls = []

    def handler(request):
        calls.append(request.url.path.rsplit("/", 1)[-1])
        return httpx.Response(200, json={"rates": {"USD": 1, "EUR": 1}})

    source = RateSource(client=_client(handler), api_url=API_URL, clock=FakeClock())
    source.get("USD")
    source.get("EUR")
    source.get("USD")
    assert calls == ["USD", "EUR"]
    assert source.cached("EUR").requested == "EUR"
    source.clear()
    assert source.cached("USD") is None


def test_force_refresh_refetches():
    calls = []

    def handler(request):
        calls.append(1)
        return httpx.Response(200, json={"rates": {"USD": 1, "EUR": 0.9 + len(calls) / 100}})

    clock = FakeClock()
    source = RateSource(client=_client(handler), api_url=API_URL, clock=clock)
    source.get("USD")
    clock.advance(1)
    snapshot = source.refresh("USD", force=True)
    assert len(calls) == 2
    assert snapshot.rates["EUR"] == pytest.approx(0.92)


def test_fallback_table_is_retried_sooner():
    calls = []

    def handler(request):
        calls.append(1)
        return httpx.Response(503)

    clock = FakeClock()
    source = RateSource(client=_client(handler), max_age=3600, api_url=API_URL, clock=clock)
    assert source.get("USD").fallback
    clock.advance(FALLBACK_MAX_AGE - 1)
    source.get("USD")
    assert len(calls) == 1
    clock.advance(2)
    source.get("USD")
    assert len(calls) == 2


def test_concurrent_refreshes_share_one_request():
    entered = threading.Event()
    release = threading.Event()
    second_waiting = threading.Event()
    calls = []
    ticks = itertools.count()

    def clock():
        n = next(ticks)
        if n == 1:
            second_waiting.set()
        return T0 + datetime.timedelta(seconds=n)

    def handler(request):
        calls.append(1)
        entered.set()
        release.wait(5)
        return httpx.Response(200, json={"rates": {"USD": 1, "EUR": 0.9}})

    source = RateSource(client=_client(handler), api_url=API_URL, clock=clock)
    results = []
    first = threading.Thread(target=lambda: results.append(source.refresh("USD", force=True)))
    second = threading.Thread(target=lambda: results.append(source.refresh("USD", force=True)))

    first.start()
    assert entered.wait(5)
    second.start()
    assert second_waiting.wait(5)
    release.set()
    first.join(5)
    second.join(5)

    assert len(calls) == 1
    assert len(results) == 2
    assert results[0] is results[1]
