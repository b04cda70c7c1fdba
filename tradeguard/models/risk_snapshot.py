"""
Risk Snapshot
Assigns a 1 (safe) .. 5 (critical) risk level to an open position from the
underlying price, using iron condor geometry when it applies and a
breakeven-distance heuristic otherwise.
"""

from dataclasses import dataclass
from datetime import date
from typing import Callable, Optional, Sequence, Tuple

from tradeguard.models.condor_zone import (
    CondorPriceZone,
    classify_iron_condor_price_zone,
    get_iron_condor_zone,
)
from tradeguard.models.trade import Trade
from tradeguard.utils.dates import compute_dte
from tradeguard.utils.formatting import usable_price

GREEN = "#4ade80"
YELLOW = "#fbbf24"
ORANGE = "#f97316"
RED = "#ef4444"
SLATE = "#64748b"


@dataclass(frozen=True)
class RiskSnapshot:
    level: int
    label: str
    color: str
    detail: str


NO_MARKET_DATA = RiskSnapshot(3, "—", SLATE, "Risk status needs current underlying price and expiry data.")
NO_BREAKEVEN = RiskSnapshot(3, "—", SLATE, "Breakeven is not set for this position.")

# ---------------------------------------------------------------------------
# Iron condor ladder: (zone, dte) -> snapshot, first match wins
# ---------------------------------------------------------------------------

_PROFIT_BANDS = (CondorPriceZone.PROFIT_LOW, CondorPriceZone.PROFIT_HIGH)
_RECOVERY_BANDS = (CondorPriceZone.RECOVER_LOW, CondorPriceZone.RECOVER_HIGH)

_CONDOR_CORE = "Price is inside the max-profit core between short strikes."
_CONDOR_PROFIT = "Price is inside breakeven range but outside max-profit core."
_CONDOR_RECOVER = "Price is outside breakeven and needs recovery to avoid loss at expiry."
_CONDOR_WING = "Price is in max-loss wing zone for this condor structure."

CONDOR_LADDER: Sequence[Tuple[Callable[[CondorPriceZone, int], bool], RiskSnapshot]] = (
    (lambda zone, dte: zone == CondorPriceZone.MAX_PROFIT_CORE, RiskSnapshot(1, "SAFE", GREEN, _CONDOR_CORE)),
    (lambda zone, dte: zone in _PROFIT_BANDS and dte > 3, RiskSnapshot(1, "SAFE", GREEN, _CONDOR_PROFIT)),
    (lambda zone, dte: zone in _PROFIT_BANDS, RiskSnapshot(2, "SAFE", GREEN, _CONDOR_PROFIT)),
    (lambda zone, dte: zone in _RECOVERY_BANDS and dte > 5, RiskSnapshot(3, "CAUTION", YELLOW, _CONDOR_RECOVER)),
    (lambda zone, dte: zone in _RECOVERY_BANDS, RiskSnapshot(4, "AT RISK", ORANGE, _CONDOR_RECOVER)),
    (lambda zone, dte: True, RiskSnapshot(5, "CRITICAL", RED, _CONDOR_WING)),
)

# ---------------------------------------------------------------------------
# Breakeven ladder: (price, breakeven, distance %, dte) -> snapshot
# ---------------------------------------------------------------------------

BREAKEVEN_LADDER: Sequence[Tuple[Callable[[float, float, float, int], bool], RiskSnapshot]] = (
    (lambda price, be, dist, dte: price >= be,
     RiskSnapshot(1, "SAFE", GREEN, "Underlying is above breakeven.")),
    (lambda price, be, dist, dte: dist < 3 and dte > 5,
     RiskSnapshot(2, "NEAR", GREEN, "Underlying is slightly below breakeven with time cushion.")),
    (lambda price, be, dist, dte: dist < 5 and dte > 3,
     RiskSnapshot(3, "CAUTION", YELLOW, "Below breakeven with moderate time pressure.")),
    (lambda price, be, dist, dte: dist < 10 and dte > 2,
     RiskSnapshot(4, "AT RISK", ORANGE, "Far below breakeven and close to expiry risk window.")),
    (lambda price, be, dist, dte: True,
     RiskSnapshot(5, "CRITICAL", RED, "Deep below breakeven with severe time pressure.")),
)


def get_risk_snapshot(trade: Trade, price: Optional[float], today: Optional[date] = None) -> RiskSnapshot:
    """Classify the position's current risk level."""
    price = usable_price(price)
    if price is None or trade.expiry_date is None:
        return NO_MARKET_DATA

    dte = compute_dte(trade.expiry_date, today)

    condor = get_iron_condor_zone(
        strategy=trade.strategy,
        legs=trade.legs,
        breakeven=trade.breakeven,
        max_profit=trade.max_profit,
        contracts=trade.contracts,
    )
    if condor is not None:
        zone = classify_iron_condor_price_zone(price, condor)
        return next(snapshot for matches, snapshot in CONDOR_LADDER if matches(zone, dte))

    if trade.breakeven is None:
        return NO_BREAKEVEN

    be = trade.breakeven
    dist = abs((be - price) / price * 100)
    return next(snapshot for matches, snapshot in BREAKEVEN_LADDER if matches(price, be, dist, dte))
