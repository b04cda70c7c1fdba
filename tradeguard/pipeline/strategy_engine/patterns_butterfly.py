"""Butterfly patterns (3 legs of one option type, 1:2:1)."""

from typing import List, Optional

from .types import LegSet, ParsedLeg


def match_butterfly(leg_set: LegSet) -> Optional[str]:
    calls, puts = leg_set.calls, leg_set.puts

    if len(calls) == 3 and not puts and _is_butterfly(calls):
        return "Call Butterfly"
    if len(puts) == 3 and not calls and _is_butterfly(puts):
        return "Put Butterfly"

    return None


def _is_butterfly(legs: List[ParsedLeg]) -> bool:
    """Outer legs on one side, body on the other, body = sum of the wings."""
    low, mid, high = legs
    if low.strike is None or mid.strike is None or high.strike is None:
        return False
    if not (low.strike < mid.strike < high.strike):
        return False
    if low.side != high.side or mid.side == low.side:
        return False
    return low.quantity == high.quantity and mid.quantity == low.quantity + high.quantity
