"""Four-leg patterns: Iron Condor, Iron Butterfly."""

from typing import Optional

from .constants import STRIKE_TOLERANCE
from .types import LegSet

_CREDIT_WINGS = ("BUY", "SELL", "SELL", "BUY")
_DEBIT_WINGS = ("SELL", "BUY", "BUY", "SELL")


def match_four_leg(leg_set: LegSet) -> Optional[str]:
    """Match 2 puts + 2 calls.

    Any 2x2 put/call structure is labelled an Iron Condor; it is promoted to
    an Iron Butterfly only when the wings are consistent (long wings/short
    body or the reverse) and the inner put and call share a strike.
    """
    puts, calls = leg_set.puts, leg_set.calls
    if len(puts) != 2 or len(calls) != 2:
        return None

    put_low, put_high = puts
    call_low, call_high = calls
    sides = (put_low.side, put_high.side, call_low.side, call_high.side)

    if sides in (_CREDIT_WINGS, _DEBIT_WINGS) and _same_strike(put_high.strike, call_low.strike):
        return "Iron Butterfly"

    return "Iron Condor"


def _same_strike(a: Optional[float], b: Optional[float]) -> bool:
    if a is None or b is None:
        return False
    return abs(a - b) < STRIKE_TOLERANCE
