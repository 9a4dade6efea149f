"""
currency.py - supported currencies and conversion helpers

Exchange rate tables are plain dicts mapping a currency code to a rate,
all rates expressed relative to the currency the table was fetched for
("units of X per 1 unit of the table base"). The table base itself may or may
not appear in the table with a rate of 1.

Conversion is float arithmetic; amounts are rounded only when displayed.
"""

from dataclasses import dataclass
from typing import Callable, Dict, Mapping, Optional, Tuple

from tripbudget.config import get_logger

logger = get_logger(__name__)

# (code, symbol, name)
SUPPORTED_CURRENCIES: Tuple[Tuple[str, str, str], ...] = (
    ("USD", "$", "US Dollar"),
    ("EUR", "€", "Euro"),
    ("GBP", "£", "British Pound"),
    ("JPY", "¥", "Japanese Yen"),
    ("CAD", "C$", "Canadian Dollar"),
    ("AUD", "A$", "Australian Dollar"),
    ("CHF", "CHF", "Swiss Franc"),
    ("CNY", "¥", "Chinese Yuan"),
    ("INR", "₹", "Indian Rupee"),
    ("MXN", "$", "Mexican Peso"),
    ("MYR", "RM", "Malaysian Ringgit"),
    ("SGD", "S$", "Singapore Dollar"),
)

CURRENCY_CODES: Tuple[str, ...] = tuple(code for code, _, _ in SUPPORTED_CURRENCIES)
_SYMBOLS: Dict[str, str] = {code: symbol for code, symbol, _ in SUPPORTED_CURRENCIES}
_NAMES: Dict[str, str] = {code: name for code, _, name in SUPPORTED_CURRENCIES}

ExchangeRates = Mapping[str, float]


@dataclass(frozen=True)
class ConversionResult:
    """Outcome of a conversion that reports whether a rate was actually used."""
    amount: float
    converted: bool
    missing: Tuple[str, ...] = ()


def is_supported(code: str) -> bool:
    return code in _SYMBOLS


def currency_symbol(code: str) -> str:
    """Display symbol for a code; unknown codes are shown as-is."""
    return _SYMBOLS.get(code, code)


def currency_name(code: str) -> str:
    return _NAMES.get(code, code)


def _rate(rates: Optional[ExchangeRates], code: str) -> Optional[float]:
    if not rates:
        return None
    value = rates.get(code)
    if value is None:
        return None
    try:
        value = float(value)
    except (TypeError, ValueError):
        return None
    # a zero rate is as good as no rate; never divide by it
    return value if value else None


def table_anchor(rates: Optional[ExchangeRates]) -> Optional[str]:
    """The code a table is expressed in: its only entry with a rate of exactly 1."""
    if not rates:
        return None
    ones = [code for code in rates if _rate(rates, code) == 1.0]
    return ones[0] if len(ones) == 1 else None


def try_convert(amount: float, from_currency: str, to_currency: str,
                rates: Optional[ExchangeRates], anchor: Optional[str] = None) -> ConversionResult:
    """
    Convert amount between currencies using a single-anchor rate table.

    - same currency: amount unchanged
    - both rates known: normalize to the table base, then scale to the target
    - only the target rate known: from_currency is the table base, multiply
    - only the source rate known: to_currency is the table base, divide
    - neither known: amount unchanged, converted=False

    anchor is the table base (inferred with table_anchor() when omitted). In
    the one-sided cases a missing code that is not the anchor has no rate at
    all: the arithmetic is kept but the result is flagged converted=False.
    """
    if from_currency == to_currency:
        return ConversionResult(amount, True)

    rate_from = _rate(rates, from_currency)
    rate_to = _rate(rates, to_currency)
    if anchor is None:
        anchor = table_anchor(rates)

    if rate_from is not None and rate_to is not None:
        return ConversionResult((amount / rate_from) * rate_to, True)
    if rate_to is not None:
        known = anchor is None or from_currency == anchor
        return ConversionResult(amount * rate_to, known, () if known else (from_currency,))
    if rate_from is not None:
        known = anchor is None or to_currency == anchor
        return ConversionResult(amount / rate_from, known, () if known else (to_currency,))
    return ConversionResult(amount, False, (from_currency, to_currency))


def convert(amount: float, from_currency: str, to_currency: str,
            rates: Optional[ExchangeRates], anchor: Optional[str] = None) -> float:
    """
    Convert amount and return the number only.

    When a currency has no rate the amount is counted as-is (see try_convert)
    and a warning is logged.
    """
    result = try_convert(amount, from_currency, to_currency, rates, anchor)
    if not result.converted:
        logger.warning(
            "No exchange rate for %s (%s -> %s); counting %s as-is",
            ", ".join(result.missing), from_currency, to_currency, amount,
        )
    return result.amount


def make_converter(base_currency: str, rates: Optional[ExchangeRates]) -> Callable[[float, str], float]:
    """Return f(amount, from_currency) converting into base_currency."""
    def to_base(amount: float, from_currency: str) -> float:
        if from_currency == base_currency:
            return amount
        return convert(amount, from_currency, base_currency, rates)
    return to_base


def format_money(amount: float, code: str, decimals: int = 2) -> str:
    """Format for display, e.g. format_money(-12.5, "EUR") -> "-€12.50"."""
    symbol = currency_symbol(code)
    sign = "-" if amount < 0 else ""
    body = f"{abs(amount):,.{decimals}f}"
    if symbol == code:
        return f"{sign}{body} {code}"
    return f"{sign}{symbol}{body}"
