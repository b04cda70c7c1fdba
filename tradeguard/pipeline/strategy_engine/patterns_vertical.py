"""Vertical spread patterns (2-leg, same expiry, same option type)."""

from typing import Optional

from .types import LegSet


def match_vertical(leg_set: LegSet) -> Optional[str]:
    """Identify a vertical spread from exactly 2 legs of one option type.

    Legs arrive sorted by strike, so ``low`` is the lower strike.
    """
    calls, puts = leg_set.calls, leg_set.puts

    if len(calls) == 2 and not puts:
        low, high = calls
        if low.side == "BUY" and high.side == "SELL":
            return "Bull Call Spread"
        if low.side == "SELL" and high.side == "BUY":
            return "Bear Call Spread"

    if len(puts) == 2 and not calls:
        low, high = puts
        if low.side == "BUY" and high.side == "SELL":
            return "Bear Put Spread"
        if low.side == "SELL" and high.side == "BUY":
            return "Bull Put Spread"

    return None
