"""Calendar and diagonal spread patterns (legs across expirations)."""

from typing import Optional

from .constants import STRIKE_TOLERANCE
from .types import LegSet


def match_calendar(leg_set: LegSet) -> Optional[str]:
    """Identify calendar-family strategies.

    Any leg set spanning more than one expiration is a Diagonal unless it is
    exactly two opposite-side legs of one type at the same strike, which is a
    Calendar.
    """
    if leg_set.expiry_count <= 1:
        return None

    if len(leg_set.legs) == 2:
        a, b = leg_set.legs
        if (a.option_type is not None
                and a.option_type == b.option_type
                and a.side != b.side
                and a.strike is not None and b.strike is not None
                and abs(a.strike - b.strike) < STRIKE_TOLERANCE):
            return "Calendar"

    return "Diagonal"
