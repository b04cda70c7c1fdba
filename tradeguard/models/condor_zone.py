"""
Iron Condor Geometry
Derives the four-strike zone layout of an iron condor from its leg text and
recorded economics, classifies a spot price into one of seven bands and
estimates P&L at expiry.
"""

import math
import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

_LEG_TOKEN = re.compile(r"(\d+(?:\.\d+)?)\s*([CP])", re.IGNORECASE)

# Fraction of the wing width assumed as credit when no entry data is usable
ESTIMATED_CREDIT_RATIO = 0.2


class CondorPriceZone(str, Enum):
    MAX_LOSS_LOW = "max_loss_low"
    RECOVER_LOW = "recover_low"
    PROFIT_LOW = "profit_low"
    MAX_PROFIT_CORE = "max_profit_core"
    PROFIT_HIGH = "profit_high"
    RECOVER_HIGH = "recover_high"
    MAX_LOSS_HIGH = "max_loss_high"


class CreditSource(str, Enum):
    PROFIT = "profit"          # recorded max profit / (100 * contracts)
    BREAKEVEN = "breakeven"    # lower short strike minus recorded breakeven
    ESTIMATE = "estimate"      # width * ESTIMATED_CREDIT_RATIO, a guess


@dataclass(frozen=True)
class IronCondorZone:
    lower_wing: float
    lower_short: float
    upper_short: float
    upper_wing: float
    lower_breakeven: float
    upper_breakeven: float
    credit_per_share: float
    width: float
    credit_source: CreditSource = CreditSource.PROFIT

    @property
    def is_estimated(self) -> bool:
        return self.credit_source == CreditSource.ESTIMATE


@dataclass(frozen=True)
class CondorPositionStatus:
    """Where the underlying sits relative to a condor's breakeven range"""
    zone: CondorPriceZone
    in_profit: bool
    in_core: bool
    distance_to_breakeven: float
    distance_pct: float
    stop_down: Optional[float]
    stop_up: Optional[float]


def _parse_leg_tokens(legs: str) -> List[Tuple[float, str]]:
    tokens = []
    for strike_raw, option_type in _LEG_TOKEN.findall(legs or ""):
        strike = float(strike_raw)
        if math.isfinite(strike):
            tokens.append((strike, option_type.upper()))
    return tokens


def _first_within_width(candidates, width: float):
    for value, source in candidates:
        if value is None or not math.isfinite(value):
            continue
        if 0 < value < width:
            return value, source
    return None


def get_iron_condor_zone(
    strategy: str,
    legs: str,
    breakeven: Optional[float],
    max_profit: Optional[float],
    contracts: Optional[int],
) -> Optional[IronCondorZone]:
    """Build the condor geometry, or None when it does not apply.

    None means "no geometry available" (not an iron condor, too few legs in
    the text, or strikes out of order) and is never an error.
    """
    if strategy != "Iron Condor":
        return None

    tokens = _parse_leg_tokens(legs)
    if len(tokens) < 4:
        return None

    puts = sorted(strike for strike, option_type in tokens if option_type == "P")
    calls = sorted(strike for strike, option_type in tokens if option_type == "C")
    if len(puts) < 2 or len(calls) < 2:
        return None

    lower_wing, lower_short = puts[0], puts[-1]
    upper_short, upper_wing = calls[0], calls[-1]
    if not (lower_wing < lower_short < upper_short < upper_wing):
        return None

    width = min(lower_short - lower_wing, upper_wing - upper_short)
    if not math.isfinite(width) or width <= 0:
        return None

    count = max(contracts or 1, 1)
    credit_from_profit = max_profit / (100 * count) if max_profit is not None else None
    credit_from_breakeven = lower_short - breakeven if breakeven is not None else None

    picked = _first_within_width(
        [(credit_from_profit, CreditSource.PROFIT), (credit_from_breakeven, CreditSource.BREAKEVEN)],
        width,
    )
    if picked is None:
        credit, source = round(width * ESTIMATED_CREDIT_RATIO, 4), CreditSource.ESTIMATE
    else:
        credit, source = picked

    return IronCondorZone(
        lower_wing=lower_wing,
        lower_short=lower_short,
        upper_short=upper_short,
        upper_wing=upper_wing,
        lower_breakeven=round(lower_short - credit, 4),
        upper_breakeven=round(upper_short + credit, 4),
        credit_per_share=credit,
        width=width,
        credit_source=source,
    )


def classify_iron_condor_price_zone(price: float, zone: IronCondorZone) -> CondorPriceZone:
    """Place a spot price in one of the seven ordered bands."""
    if price <= zone.lower_wing:
        return CondorPriceZone.MAX_LOSS_LOW
    if price < zone.lower_breakeven:
        return CondorPriceZone.RECOVER_LOW
    if price < zone.lower_short:
        return CondorPriceZone.PROFIT_LOW
    if price <= zone.upper_short:
        return CondorPriceZone.MAX_PROFIT_CORE
    if price <= zone.upper_breakeven:
        return CondorPriceZone.PROFIT_HIGH
    if price < zone.upper_wing:
        return CondorPriceZone.RECOVER_HIGH
    return CondorPriceZone.MAX_LOSS_HIGH


def estimate_iron_condor_pnl_at_expiry(price: float, zone: IronCondorZone, contracts: Optional[int]) -> float:
    """Dollar P&L at expiry for the whole position, rounded to cents."""
    count = max(contracts or 1, 1)
    put_side_loss = max(0.0, min(zone.width, zone.lower_short - price))
    call_side_loss = max(0.0, min(zone.width, price - zone.upper_short))
    per_share = zone.credit_per_share - put_side_loss - call_side_loss
    return round(per_share * 100 * count, 2)


def describe_condor_position(
    price: float,
    zone: IronCondorZone,
    stop_loss: Optional[float] = None,
) -> CondorPositionStatus:
    """Summarize a spot price against the breakeven range.

    A single recorded stop is mirrored onto the other side of the range by
    the same distance, so both tails carry a stop level.
    """
    band = classify_iron_condor_price_zone(price, zone)
    in_profit = zone.lower_breakeven <= price <= zone.upper_breakeven

    if price < zone.lower_breakeven:
        distance = zone.lower_breakeven - price
    elif price > zone.upper_breakeven:
        distance = price - zone.upper_breakeven
    else:
        distance = min(price - zone.lower_breakeven, zone.upper_breakeven - price)

    stop_down = None
    stop_up = None
    if stop_loss is not None:
        if stop_loss <= zone.lower_breakeven:
            stop_down = stop_loss
        elif stop_loss > zone.upper_breakeven:
            stop_down = round(zone.lower_breakeven - (stop_loss - zone.upper_breakeven), 2)

        if stop_loss >= zone.upper_breakeven:
            stop_up = stop_loss
        elif stop_down is not None:
            stop_up = round(zone.upper_breakeven + (zone.lower_breakeven - stop_down), 2)

    return CondorPositionStatus(
        zone=band,
        in_profit=in_profit,
        in_core=band == CondorPriceZone.MAX_PROFIT_CORE,
        distance_to_breakeven=round(distance, 4),
        distance_pct=round(distance / price * 100, 1) if price else 0.0,
        stop_down=stop_down,
        stop_up=stop_up,
    )
