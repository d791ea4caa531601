"""Parlay arithmetic, American/decimal odds conversion and odds display helpers.

Everything here is pure. Conversions assume validated input: callers run
is_valid_odds() at the boundary, the arithmetic itself stays branch-free.
"""

from __future__ import annotations

import math
from numbers import Real
from typing import Any, Iterable

from app.config import settings

MIN_AMERICAN_ODDS = -10000
MAX_AMERICAN_ODDS = 10000
NOT_AVAILABLE = "N/A"


def _round_half_up(value: float) -> int:
    """Sportsbook rounding: .5 always goes up (also for negatives, like JS Math.round)."""
    return int(math.floor(value + 0.5))


def _is_real(value: Any) -> bool:
    # bool is an int subclass; True must not pass as +1 odds
    return isinstance(value, Real) and not isinstance(value, bool)


def american_to_decimal(american: int) -> float:
    """+150 -> 2.5, -110 -> 1.909..., payout multiplier including the stake."""
    if american > 0:
        return american / 100 + 1
    return 100 / abs(american) + 1


def decimal_to_american(decimal: float) -> int:
    """Inverse of american_to_decimal, rounded. Lossy: for display only."""
    if decimal >= 2:
        return _round_half_up((decimal - 1) * 100)
    return _round_half_up(-100 / (decimal - 1))


def parlay_decimal(decimal_odds: Iterable[float]) -> float:
    """Combined decimal odds of all legs. No legs is the neutral multiplier 1."""
    return math.prod(decimal_odds, start=1.0)


def parlay_payout(stake_cents: int, decimal: float) -> int:
    """Total return (stake + profit) in integer cents."""
    stake = stake_cents / 100
    profit = (decimal - 1) * stake
    return _round_half_up((profit + stake) * 100)


def format_currency(cents: int, symbol: str | None = None) -> str:
    """1234567 -> "$12,345.67". Integer arithmetic only, no float drift."""
    symbol = settings.CURRENCY_SYMBOL if symbol is None else symbol
    cents = int(cents)
    sign = "-" if cents < 0 else ""
    major, minor = divmod(abs(cents), 100)
    return f"{sign}{symbol}{major:,}.{minor:02d}"


def _is_finite(value: Any) -> bool:
    # Ints beyond float range overflow in isfinite(); they are never valid odds or lines
    try:
        return math.isfinite(value)
    except OverflowError:
        return False


def is_valid_odds(odds: Any) -> bool:
    """American odds: a whole number in [-10000, 10000], never 0."""
    if not _is_real(odds):
        return False
    if not _is_finite(odds):
        return False
    if odds != int(odds):
        return False
    if odds < MIN_AMERICAN_ODDS or odds > MAX_AMERICAN_ODDS:
        return False
    return odds != 0


def is_valid_line(line: Any) -> bool:
    """Point spread / total: any finite number."""
    return _is_real(line) and _is_finite(line)


def format_odds(odds: Any) -> str:
    """+150 / -110. Invalid or missing odds render as N/A, never as even money."""
    if not is_valid_odds(odds):
        return NOT_AVAILABLE
    odds = int(odds)
    if odds > 0:
        return f"+{odds}"
    return f"{odds}"


def format_combined_odds(odds: Any) -> str:
    """Signed combined parlay odds (+24200). Not range-limited like a single leg; N/A when absent."""
    if odds is None:
        return NOT_AVAILABLE
    odds = int(odds)
    if odds > 0:
        return f"+{odds}"
    return f"{odds}"
