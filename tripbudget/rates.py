"""
rates.py - exchange rate source

fetch_rates() issues a single GET against the rate provider and degrades to a
static table on any failure (network error, timeout, non-2xx response, bad
payload). There is no retry or backoff: the caller decides when to refresh.

RateSource keeps the last table per requested base currency together with its
fetch time so the dashboard can show "rates as of ..." and refresh when the
trip base currency changes. Concurrent refreshes of the same currency share a
single request.
"""

import datetime
import threading
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional

import httpx

from tripbudget import config
from tripbudget.config import get_logger

logger = get_logger(__name__)

PROVIDER_NAME = "exchangerate-api.com"
FALLBACK_SOURCE = "built-in fallback table"

# Fallback tables keyed by anchor currency. Any other base gets the USD table.
FALLBACK_RATES: Dict[str, Dict[str, float]] = {
    "USD": {
        "USD": 1.0,
        "EUR": 0.92,
        "GBP": 0.79,
        "JPY": 149.5,
        "CAD": 1.36,
        "AUD": 1.52,
        "CHF": 0.88,
        "CNY": 7.24,
        "INR": 83.12,
        "MXN": 17.05,
        "MYR": 4.45,
        "SGD": 1.35,
    },
    "EUR": {
        "USD": 1.09,
        "EUR": 1.0,
        "GBP": 0.86,
        "JPY": 162.5,
        "CAD": 1.48,
        "AUD": 1.65,
        "CHF": 0.96,
        "CNY": 7.88,
        "INR": 90.45,
        "MXN": 18.55,
        "MYR": 4.85,
        "SGD": 1.47,
    },
}

# a fallback table is retried sooner than a live one
FALLBACK_MAX_AGE = 60.0


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


@dataclass(frozen=True)
class RateSnapshot:
    """
    A rate table plus the metadata the UI needs.

    requested: the base currency the caller asked for
    base: the currency every rate in `rates` is relative to. It differs from
          `requested` only when a fallback table for another anchor was used.
    """
    requested: str
    base: str
    rates: Dict[str, float] = field(default_factory=dict)
    fetched_at: Optional[datetime.datetime] = None
    source: str = PROVIDER_NAME
    fallback: bool = False
    error: str = ""

    @property
    def as_of(self) -> str:
        if self.fetched_at is None:
            return ""
        return self.fetched_at.strftime("%Y-%m-%d %H:%M UTC")


def fallback_base(base_currency: str) -> str:
    base = (base_currency or "").upper()
    return base if base in FALLBACK_RATES else "USD"


def fallback_rates(base_currency: str) -> Dict[str, float]:
    """Static table for USD or EUR; every other base gets the USD table."""
    return dict(FALLBACK_RATES[fallback_base(base_currency)])


def _normalize(base: str, rates: Dict) -> Dict[str, float]:
    table: Dict[str, float] = {}
    for code, value in rates.items():
        table[str(code).upper()] = float(value)
    if base in table:
        table[base] = 1.0
    return table


def _request_rates(base: str, client: Optional[httpx.Client], timeout: float, api_url: str) -> Dict[str, float]:
    url = f"{api_url}/{base}"
    if client is None:
        with httpx.Client(timeout=timeout) as own_client:
            response = own_client.get(url)
    else:
        response = client.get(url, timeout=timeout)
    response.raise_for_status()
    payload = response.json()
    rates = payload.get("rates") if isinstance(payload, dict) else None
    if not isinstance(rates, dict) or not rates:
        raise ValueError("rate provider response has no 'rates' table")
    return _normalize(base, rates)


def fetch_snapshot(
    base_currency: str,
    client: Optional[httpx.Client] = None,
    timeout: Optional[float] = None,
    api_url: Optional[str] = None,
) -> RateSnapshot:
    """Fetch live rates for base_currency; never raises."""
    base = (base_currency or "USD").strip().upper()
    if timeout is None:
        timeout = config.RATES_TIMEOUT
    if api_url is None:
        api_url = config.RATES_API_URL
    try:
        rates = _request_rates(base, client, timeout, api_url)
    except (httpx.HTTPError, ValueError, TypeError) as exc:
        logger.error("Error fetching exchange rates for %s: %s", base, exc)
        return RateSnapshot(
            requested=base,
            base=fallback_base(base),
            rates=fallback_rates(base),
            fetched_at=_utcnow(),
            source=FALLBACK_SOURCE,
            fallback=True,
            error=f"Live exchange rates unavailable ({exc.__class__.__name__}); using fallback rates.",
        )
    logger.info("Fetched %d exchange rates for %s", len(rates), base)
    return RateSnapshot(requested=base, base=base, rates=rates, fetched_at=_utcnow())


def fetch_rates(
    base_currency: str,
    client: Optional[httpx.Client] = None,
    timeout: Optional[float] = None,
) -> Dict[str, float]:
    """Return a {code: rate} table relative to base_currency (or the fallback table)."""
    return dict(fetch_snapshot(base_currency, client=client, timeout=timeout).rates)


class RateSource:
    """
    Per-process cache of rate tables, one per requested base currency.

    Tables are replaced wholesale on refresh. A live table is reused for
    max_age seconds, a fallback table for at most FALLBACK_MAX_AGE seconds.
    """

    def __init__(
        self,
        client: Optional[httpx.Client] = None,
        timeout: Optional[float] = None,
        max_age: Optional[float] = None,
        api_url: Optional[str] = None,
        clock: Callable[[], datetime.datetime] = _utcnow,
    ):
        self._client = client
        self._timeout = config.RATES_TIMEOUT if timeout is None else timeout
        self._max_age = config.RATES_MAX_AGE if max_age is None else max_age
        self._api_url = api_url or config.RATES_API_URL
        self._clock = clock
        self._tables: Dict[str, RateSnapshot] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, base: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(base)
            if lock is None:
                lock = self._locks[base] = threading.Lock()
            return lock

    def _is_fresh(self, snapshot: RateSnapshot) -> bool:
        if snapshot.fetched_at is None:
            return False
        max_age = min(self._max_age, FALLBACK_MAX_AGE) if snapshot.fallback else self._max_age
        age = (self._clock() - snapshot.fetched_at).total_seconds()
        return age < max_age

    def cached(self, base_currency: str) -> Optional[RateSnapshot]:
        return self._tables.get((base_currency or "").upper())

    def last_updated(self, base_currency: str) -> Optional[datetime.datetime]:
        snapshot = self.cached(base_currency)
        return snapshot.fetched_at if snapshot else None

    def get(self, base_currency: str) -> RateSnapshot:
        """Cached table for base_currency if still fresh, otherwise a new fetch."""
        snapshot = self.cached(base_currency)
        if snapshot is not None and self._is_fresh(snapshot):
            return snapshot
        return self.refresh(base_currency)

    def refresh(self, base_currency: str, force: bool = False) -> RateSnapshot:
        """
        Fetch rates for base_currency.

        Only one fetch per currency runs at a time; callers that waited for an
        in-flight fetch reuse its result instead of issuing another request.
        """
        base = (base_currency or "USD").strip().upper()
        requested_at = self._clock()
        with self._lock_for(base):
            current = self._tables.get(base)
            if current is not None and current.fetched_at is not None:
                if current.fetched_at >= requested_at:
                    return current
                if not force and self._is_fresh(current):
                    return current
            snapshot = fetch_snapshot(base, client=self._client, timeout=self._timeout, api_url=self._api_url)
            snapshot = RateSnapshot(
                requested=snapshot.requested,
                base=snapshot.base,
                rates=snapshot.rates,
                fetched_at=self._clock(),
                source=snapshot.source,
                fallback=snapshot.fallback,
                error=snapshot.error,
            )
            self._tables[base] = snapshot
            return snapshot

    def clear(self):
        self._tables = {}
