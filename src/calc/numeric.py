"""Numeric helpers shared by every calculator.

All user-entered amounts arrive as text. ``parse_numeric`` is the only place
text becomes a number and ``round_amount`` is applied to every derived output,
so results are reproducible regardless of float representation noise.
"""

import math
import re
import sys
from typing import Optional

from model.GloBEData import SBIERates
from tax.CurrencyDetails import CurrencyDetails, default_currency_details
from tax.SafeHarbourDetails import SafeHarbourDetails, default_safe_harbour_details
from tax.SBIEDetails import SBIEDetails, default_sbie_details

# Leading float prefix, the same prefix a browser's parseFloat accepts
_FLOAT_PREFIX = re.compile(r'^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)')


def parse_numeric(value) -> float:
    """Coerce user input to a float.

    Thousands-separator commas are stripped and the leading numeric prefix is
    parsed, so '1,234.5 EUR' gives 1234.5. Empty, invalid and non-finite input
    gives 0.0. Never raises.
    """
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
        return number if math.isfinite(number) else 0.0
    match = _FLOAT_PREFIX.match(str(value).replace(',', ''))
    if not match:
        return 0.0
    try:
        number = float(match.group(1))
    except (OverflowError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def round_amount(value: float, decimals: int = 2) -> float:
    """Round half-up to ``decimals`` places, nudged by machine epsilon."""
    factor = 10 ** decimals
    return math.floor((value + sys.float_info.epsilon) * factor + 0.5) / factor


def format_money(value: float, decimals: int = 2) -> str:
    """Thousands-grouped amount with exactly ``decimals`` places, e.g. '1,234.50'."""
    rounded = round_amount(value, decimals)
    if rounded == 0:
        rounded = 0.0  # no '-0.00'
    return f"{rounded:,.{decimals}f}"


def format_currency(value: float, currency: str = 'EUR', decimals: int = 0,
                    currencies: Optional[CurrencyDetails] = None) -> str:
    """Currency symbol plus grouped amount; negatives read '-€1,234'."""
    currencies = currencies or default_currency_details()
    symbol = currencies.symbol(currency)
    amount = format_money(value, decimals)
    if amount.startswith('-'):
        return f"-{symbol}{amount[1:]}"
    return f"{symbol}{amount}"


def format_percent(value: float, decimals: int = 2) -> str:
    return f"{format_money(value, decimals)}%"


def get_sbie_rates(year, sbie: Optional[SBIEDetails] = None) -> SBIERates:
    return (sbie or default_sbie_details()).rates_for(year)


def get_transition_rate(year, safe_harbour: Optional[SafeHarbourDetails] = None) -> float:
    return (safe_harbour or default_safe_harbour_details()).transition_rate(year)


def is_numeric(value) -> bool:
    """True when ``value`` has a leading number that ``parse_numeric`` would read."""
    if value is None or isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return math.isfinite(value)
    return _FLOAT_PREFIX.match(str(value).replace(',', '')) is not None


def is_blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())
