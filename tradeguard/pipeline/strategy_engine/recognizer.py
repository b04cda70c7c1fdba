"""Main spread detection dispatcher."""

from typing import Callable, List, Optional, Sequence, Tuple

from .constants import STRATEGIES
from .patterns_butterfly import match_butterfly
from .patterns_calendar import match_calendar
from .patterns_multi import match_four_leg
from .patterns_single import match_single
from .patterns_vertical import match_vertical
from .types import DetectedSpread, LegSet, ParsedLeg

Matcher = Callable[[LegSet], Optional[str]]

# Evaluated in order, first match wins. Calendar/diagonal must stay first:
# a cross-expiry pair is never a vertical.
MATCHERS: Tuple[Matcher, ...] = (
    match_calendar,
    match_vertical,
    match_four_leg,
    match_butterfly,
    match_single,
)


def detect_spread_from_legs(legs: Sequence[ParsedLeg]) -> DetectedSpread:
    """Classify a set of legs into a named strategy.

    Total: every input (including an empty one) yields a DetectedSpread,
    falling back to ``Custom``/``Neutral``.

    Algorithm:
    1. Sort legs by strike (stable, missing strikes sort as 0)
    2. Split by option type and count distinct expirations
    3. Try each pattern matcher in MATCHERS order
    4. Fall back to Custom
    """
    leg_set = build_leg_set(legs)
    name = "Custom"
    for matcher in MATCHERS:
        matched = matcher(leg_set)
        if matched:
            name = matched
            break
    return _result(name, leg_set)


def build_leg_set(legs: Sequence[ParsedLeg]) -> LegSet:
    ordered = sorted(legs, key=lambda leg: leg.strike if leg.strike is not None else 0)
    return LegSet(
        legs=ordered,
        calls=[leg for leg in ordered if leg.option_type == "C"],
        puts=[leg for leg in ordered if leg.option_type == "P"],
        expiry_count=len({leg.expiry for leg in ordered}),
    )


def _result(name: str, leg_set: LegSet) -> DetectedSpread:
    """Build a DetectedSpread from a strategy name using the registry."""
    defn = STRATEGIES[name]
    return DetectedSpread(
        strategy=defn.name,
        direction=defn.direction,
        legs=legs_label(leg_set.legs),
        contracts=max([abs(leg.quantity) for leg in leg_set.legs] + [1]),
    )


def legs_label(legs: List[ParsedLeg]) -> str:
    return " / ".join(leg.label for leg in legs)
