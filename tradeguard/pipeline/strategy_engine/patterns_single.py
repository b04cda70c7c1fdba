"""Single-leg strategy patterns."""

from typing import Optional

from .types import LegSet


def match_single(leg_set: LegSet) -> Optional[str]:
    """Identify a single-leg strategy. Returns strategy name or None."""
    if len(leg_set.legs) != 1:
        return None

    leg = leg_set.legs[0]
    if leg.option_type == "C":
        return "Long Call"
    if leg.option_type == "P":
        return "Long Put"

    return None
