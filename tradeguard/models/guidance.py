"""
Position Guidance
Turns a position and the live underlying price into an action level, a
short verdict with concrete next steps, and four named triggers
(breakeven, stop, max-profit, time).

The verdict is picked from GUIDANCE_LADDER: an ordered list of
(predicate, state) pairs where the first match wins. Reordering the ladder
changes behaviour.
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Callable, List, Optional, Sequence, Tuple

from tradeguard.models.trade import Trade
from tradeguard.utils.dates import compute_dte
from tradeguard.utils.formatting import format_pct, format_price, usable_price


class GuidanceLevel(str, Enum):
    CRITICAL = "critical"
    DEFENSIVE = "defensive"
    WATCH = "watch"
    OFFENSIVE = "offensive"


class Playbook(str, Enum):
    CONSERVATIVE = "conservative"
    BALANCED = "balanced"
    AGGRESSIVE = "aggressive"


class TriggerState(str, Enum):
    HIT = "hit"
    WATCH = "watch"
    MISSING = "missing"


@dataclass(frozen=True)
class GuidanceTrigger:
    id: str
    label: str
    target: str
    state: TriggerState
    detail: str


@dataclass(frozen=True)
class GuidanceMetrics:
    dte: int
    edge_vs_breakeven_pct: Optional[float]
    stop_buffer_pct: Optional[float]
    target_gap_pct: Optional[float]
    in_profit_zone: Optional[bool]
    stop_breached: bool
    near_max_profit: bool = False


@dataclass(frozen=True)
class PositionGuidance:
    level: GuidanceLevel
    title: str
    summary: str
    confidence: int
    recommended_playbook: Playbook
    next_steps: List[str]
    triggers: List[GuidanceTrigger]
    metrics: GuidanceMetrics


@dataclass(frozen=True)
class _Context:
    """Everything the ladder predicates and next-step builders read."""
    price: Optional[float]
    breakeven: Optional[float]
    stop: Optional[float]
    target: Optional[float]
    urgency: int
    theta_pressure: bool
    bearish: bool
    metrics: GuidanceMetrics

    @property
    def has_price(self) -> bool:
        return self.price is not None

    @property
    def favor_direction(self) -> str:
        return "lower" if self.bearish else "higher"

    @property
    def adverse_direction(self) -> str:
        return "higher" if self.bearish else "lower"


@dataclass(frozen=True)
class GuidanceState:
    level: GuidanceLevel
    title: str
    summary: str
    playbook: Playbook
    next_steps: Callable[[_Context], List[str]] = field(repr=False)


# Confidence bounds
MIN_CONFIDENCE = 35
MAX_CONFIDENCE = 95
BASE_CONFIDENCE = 55

# Within this % of the profit target counts as "near max profit"
NEAR_TARGET_PCT = 1.5
# Theta bleed (per day, dollars) that counts as time-decay pressure
THETA_PRESSURE = -20


def _price_required(ctx: _Context) -> List[str]:
    return [
        "Fetch live quotes or enter manual price for this ticker.",
        "Do not add risk until spot, breakeven, and stop are visible together.",
        "Validate that stop and breakeven are set correctly.",
    ]


def _stop_breached(ctx: _Context) -> List[str]:
    return [
        "Close or reduce immediately; avoid averaging down on a broken level.",
        f"Execute conservative exit plan now ({format_price(ctx.stop)} stop crossed).",
        "After exit, journal the trigger and what failed.",
    ]


def _expiry_cliff(ctx: _Context) -> List[str]:
    return [
        "Cut risk now or roll; do not hold through expiry hoping for a late move.",
        "Prioritize preserving capital over full recovery attempts.",
        "Only re-enter if the setup rebuilds with time.",
    ]


def _defend_capital(ctx: _Context) -> List[str]:
    return [
        "Reduce 25-50% if price cannot reclaim breakeven soon.",
        f"Respect hard stop at {format_price(ctx.stop)}; no discretionary override.",
        "Pause new entries until this risk is normalized.",
    ]


def _harvest_gains(ctx: _Context) -> List[str]:
    return [
        "Take partial profits into strength.",
        f"Raise protection using stop {format_price(ctx.stop)} or breakeven {format_price(ctx.breakeven)}.",
        "Use aggressive adds only if risk remains capped.",
    ]


def _thesis_working(ctx: _Context) -> List[str]:
    return [
        "Hold core size and pre-plan profit-taking levels.",
        "Keep stop logic active to protect open gains.",
        "Avoid over-sizing while this setup is already in flight.",
    ]


def _neutral_watch(ctx: _Context) -> List[str]:
    return [
        f"Need a {ctx.favor_direction} move toward breakeven before adding confidence.",
        f"If price drifts {ctx.adverse_direction}, rotate to a defensive response.",
        "Stick to predefined exits and avoid impulse adjustments.",
    ]


GUIDANCE_LADDER: Sequence[Tuple[Callable[[_Context], bool], GuidanceState]] = (
    (
        lambda ctx: not ctx.has_price,
        GuidanceState(
            GuidanceLevel.WATCH, "Price Input Required",
            "Guidance is limited without a live price. Fetch quotes or add manual spot values first.",
            Playbook.BALANCED, _price_required,
        ),
    ),
    (
        lambda ctx: ctx.metrics.stop_breached,
        GuidanceState(
            GuidanceLevel.CRITICAL, "Stop Breached",
            "The position crossed its stop level. Capital protection takes priority over thesis.",
            Playbook.CONSERVATIVE, _stop_breached,
        ),
    ),
    (
        lambda ctx: ctx.metrics.in_profit_zone is False and ctx.metrics.dte <= 1,
        GuidanceState(
            GuidanceLevel.CRITICAL, "Expiry Cliff",
            "At 0-1 DTE and outside profit zone, gamma/theta risk is now asymmetric against you.",
            Playbook.CONSERVATIVE, _expiry_cliff,
        ),
    ),
    (
        lambda ctx: ctx.metrics.in_profit_zone is False and (ctx.metrics.dte <= 3 or ctx.urgency >= 4),
        GuidanceState(
            GuidanceLevel.DEFENSIVE, "Defend Capital",
            "The trade is on the wrong side of breakeven with elevated time or urgency pressure.",
            Playbook.CONSERVATIVE, _defend_capital,
        ),
    ),
    (
        lambda ctx: ctx.metrics.near_max_profit or (
            ctx.metrics.in_profit_zone is True and (ctx.metrics.dte <= 5 or ctx.theta_pressure)
        ),
        GuidanceState(
            GuidanceLevel.OFFENSIVE, "Harvest Gains",
            "Price is in a favorable zone and time decay can quickly erode open gains if left unmanaged.",
            Playbook.BALANCED, _harvest_gains,
        ),
    ),
    (
        lambda ctx: ctx.metrics.in_profit_zone is True,
        GuidanceState(
            GuidanceLevel.OFFENSIVE, "Thesis Working",
            "The position is above breakeven in favorable territory. Let it work while managing exits.",
            Playbook.BALANCED, _thesis_working,
        ),
    ),
    (
        lambda ctx: True,
        GuidanceState(
            GuidanceLevel.WATCH, "Neutral Watch",
            "The setup is not broken yet, but it still needs movement in your favor before risk increases.",
            Playbook.BALANCED, _neutral_watch,
        ),
    ),
)


def derive_profit_target(trade: Trade) -> Optional[float]:
    """Nearer strike toward the favorable side (min for bearish, max otherwise)."""
    if trade.strike_long is None or trade.strike_short is None:
        return None
    if trade.is_bearish:
        return min(trade.strike_long, trade.strike_short)
    return max(trade.strike_long, trade.strike_short)


def _directional_pct(level: float, price: float, bearish: bool) -> float:
    """% distance of price beyond ``level`` in the position's favor."""
    if bearish:
        return (level - price) / price * 100
    return (price - level) / price * 100


def _build_metrics(trade: Trade, price: Optional[float], target: Optional[float], dte: int) -> GuidanceMetrics:
    bearish = trade.is_bearish
    be = trade.breakeven
    stop = trade.stop_loss

    edge = _directional_pct(be, price, bearish) if price is not None and be is not None else None
    in_profit_zone = None if edge is None else edge >= 0

    stop_buffer = _directional_pct(stop, price, bearish) if price is not None and stop is not None else None
    stop_breached = False
    if price is not None and stop is not None:
        stop_breached = price >= stop if bearish else price <= stop

    target_gap = None
    if price is not None and target is not None:
        target_gap = -_directional_pct(target, price, bearish)

    return GuidanceMetrics(
        dte=dte,
        edge_vs_breakeven_pct=edge,
        stop_buffer_pct=stop_buffer,
        target_gap_pct=target_gap,
        in_profit_zone=in_profit_zone,
        stop_breached=stop_breached,
        near_max_profit=target_gap is not None and target_gap <= NEAR_TARGET_PCT,
    )


def _confidence(trade: Trade, has_price: bool, urgency: int, dte: int) -> int:
    confidence = BASE_CONFIDENCE
    if has_price:
        confidence += 18
    if trade.breakeven is not None:
        confidence += 8
    if trade.stop_loss is not None:
        confidence += 8
    if trade.theta_per_day is not None:
        confidence += 3
    if urgency >= 4:
        confidence += 4
    if dte <= 3:
        confidence += 4
    return max(MIN_CONFIDENCE, min(MAX_CONFIDENCE, confidence))


def _build_triggers(ctx: _Context) -> List[GuidanceTrigger]:
    m = ctx.metrics

    if ctx.breakeven is None:
        be_state, be_detail = TriggerState.MISSING, "Breakeven missing."
    elif m.in_profit_zone:
        be_state, be_detail = TriggerState.HIT, "Price is in the profit zone."
    else:
        move = format_pct(abs(m.edge_vs_breakeven_pct or 0))
        be_state, be_detail = TriggerState.WATCH, f"Needs {move} move {ctx.favor_direction}."

    if ctx.stop is None:
        stop_state, stop_detail = TriggerState.MISSING, "Stop missing."
    elif m.stop_breached:
        stop_state, stop_detail = TriggerState.HIT, "Stop was crossed."
    else:
        stop_state, stop_detail = TriggerState.WATCH, f"Buffer to stop: {format_pct(m.stop_buffer_pct)}."

    if ctx.target is None:
        target_state, target_detail = TriggerState.MISSING, "No defined short strike target."
    elif m.near_max_profit:
        target_state, target_detail = TriggerState.HIT, "Near or inside max-profit zone."
    else:
        target_state, target_detail = TriggerState.WATCH, f"Distance to target: {format_pct(m.target_gap_pct)}."

    if m.dte <= 3:
        time_state, time_detail = TriggerState.HIT, "High urgency time window."
    else:
        time_state, time_detail = TriggerState.WATCH, "Time cushion still available."

    return [
        GuidanceTrigger("breakeven", "Profit Zone (BE)", format_price(ctx.breakeven), be_state, be_detail),
        GuidanceTrigger("stop", "Stop Guard", format_price(ctx.stop), stop_state, stop_detail),
        GuidanceTrigger("max-profit", "Max-Profit Zone", format_price(ctx.target), target_state, target_detail),
        GuidanceTrigger("time", "Time Pressure", f"{m.dte} DTE", time_state, time_detail),
    ]


def build_position_guidance(trade: Trade, price: Optional[float], today: Optional[date] = None) -> PositionGuidance:
    """Derive the action level, verdict and triggers for one position."""
    price = usable_price(price)

    dte = compute_dte(trade.expiry_date, today)
    urgency = trade.urgency if trade.urgency is not None else 1
    target = derive_profit_target(trade)

    ctx = _Context(
        price=price,
        breakeven=trade.breakeven,
        stop=trade.stop_loss,
        target=target,
        urgency=urgency,
        theta_pressure=(trade.theta_per_day or 0) < THETA_PRESSURE,
        bearish=trade.is_bearish,
        metrics=_build_metrics(trade, price, target, dte),
    )

    state = next(state for matches, state in GUIDANCE_LADDER if matches(ctx))

    return PositionGuidance(
        level=state.level,
        title=state.title,
        summary=state.summary,
        confidence=_confidence(trade, ctx.has_price, urgency, dte),
        recommended_playbook=state.playbook,
        next_steps=state.next_steps(ctx),
        triggers=_build_triggers(ctx),
        metrics=ctx.metrics,
    )
