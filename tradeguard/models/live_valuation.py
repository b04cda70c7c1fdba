"""
Live Position Valuation
Reconstructs long/short sides for a position's legs, marks them to market
from option quotes and derives live P&L.
"""

import math
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Dict, List, Mapping, Optional

from loguru import logger

from tradeguard.models.option_symbol import ParsedOptionSymbol, parse_option_symbol
from tradeguard.models.trade import OptionQuote, Trade

LONG = "LONG"
SHORT = "SHORT"

SideMap = Dict[str, str]
SideRule = Callable[[List[ParsedOptionSymbol]], Optional[SideMap]]


@dataclass(frozen=True)
class PositionLegLive:
    symbol: str
    strike: float
    option_type: str
    expiry: date
    side: str
    mark: Optional[float]
    source: Optional[str]
    updated_at: Optional[str]


@dataclass(frozen=True)
class LiveOptionSnapshot:
    legs: List[PositionLegLive] = field(default_factory=list)
    has_all_quotes: bool = False
    mark_value: Optional[float] = None
    live_pnl: Optional[float] = None
    profit_capture_pct: Optional[float] = None
    risk_consumed_pct: Optional[float] = None


# ---------------------------------------------------------------------------
# Side inference
# ---------------------------------------------------------------------------

def _by_type(legs: List[ParsedOptionSymbol], option_type: str) -> List[ParsedOptionSymbol]:
    return sorted((leg for leg in legs if leg.option_type == option_type), key=lambda leg: leg.strike)


def _vertical(option_type: str, low_side: str, high_side: str) -> SideRule:
    def rule(legs: List[ParsedOptionSymbol]) -> Optional[SideMap]:
        same_type = _by_type(legs, option_type)
        if len(same_type) < 2:
            return None
        return {same_type[0].symbol: low_side, same_type[-1].symbol: high_side}
    return rule


def _iron_condor(legs: List[ParsedOptionSymbol]) -> Optional[SideMap]:
    puts = _by_type(legs, "P")
    calls = _by_type(legs, "C")
    if len(puts) < 2 or len(calls) < 2:
        return None
    return {
        puts[0].symbol: LONG,
        puts[-1].symbol: SHORT,
        calls[0].symbol: SHORT,
        calls[-1].symbol: LONG,
    }


def _diagonal(legs: List[ParsedOptionSymbol]) -> Optional[SideMap]:
    if len(legs) < 2:
        return None
    by_expiry = sorted(legs, key=lambda leg: (leg.expiry, leg.strike))
    return {by_expiry[0].symbol: SHORT, by_expiry[-1].symbol: LONG}


def _all_long(legs: List[ParsedOptionSymbol]) -> SideMap:
    return {leg.symbol: LONG for leg in legs}


def _default_sides(legs: List[ParsedOptionSymbol]) -> SideMap:
    """First half by strike long, second half short; a lone leg is long."""
    ordered = sorted(legs, key=lambda leg: leg.strike)
    if len(ordered) == 1:
        return {ordered[0].symbol: LONG}
    cutoff = math.ceil(len(ordered) / 2)
    return {leg.symbol: LONG if i < cutoff else SHORT for i, leg in enumerate(ordered)}


SIDE_RULES: Dict[str, SideRule] = {
    "Bull Call Spread": _vertical("C", LONG, SHORT),
    "Bear Call Spread": _vertical("C", SHORT, LONG),
    "Bull Put Spread": _vertical("P", LONG, SHORT),
    "Bear Put Spread": _vertical("P", SHORT, LONG),
    "Iron Condor": _iron_condor,
    "Diagonal": _diagonal,
}


def infer_sides(strategy: str, legs: List[ParsedOptionSymbol]) -> SideMap:
    """Map each leg symbol to LONG or SHORT for the given strategy label.

    Strategy-specific rules come from SIDE_RULES; a rule that cannot apply
    (too few legs of the right type) falls back to the default split.
    """
    rule = SIDE_RULES.get(strategy)
    if rule is None and strategy.startswith("Long"):
        rule = _all_long

    sides = rule(legs) if rule else None
    if sides is None:
        sides = _default_sides(legs)
    return sides


# ---------------------------------------------------------------------------
# Entry cashflow
# ---------------------------------------------------------------------------

def _contracts(trade: Trade) -> int:
    return max(trade.contracts or 1, 1)


def entry_cashflow_from_leg_prices(trade: Trade, legs: List[PositionLegLive]) -> Optional[float]:
    """Opening cashflow rebuilt from recorded per-side entry prices.

    Returns None unless every leg's side has a recorded price.
    """
    if not legs:
        return None
    long_entry = trade.close_price_long
    short_entry = trade.close_price_short
    if long_entry is None and short_entry is None:
        return None

    count = _contracts(trade)
    cashflow = 0.0
    for leg in legs:
        if leg.side == LONG:
            if long_entry is None:
                return None
            cashflow -= long_entry * 100 * count
        else:
            if short_entry is None:
                return None
            cashflow += short_entry * 100 * count
    return round(cashflow, 2)


def estimate_entry_cashflow(trade: Trade) -> float:
    """Strategy-level fallback: credit received or debit paid."""
    if trade.is_credit:
        if trade.max_profit is not None and math.isfinite(trade.max_profit):
            return trade.max_profit
        return trade.cost_basis
    return -trade.cost_basis


# ---------------------------------------------------------------------------
# Snapshot
# ---------------------------------------------------------------------------

def build_live_option_snapshot(trade: Trade, quotes: Mapping[str, OptionQuote]) -> LiveOptionSnapshot:
    """Mark a position to market from per-leg option quotes.

    If any leg lacks a usable mark the valuation is withheld entirely:
    ``has_all_quotes`` is False and every numeric field is None.
    """
    parsed = []
    for symbol in trade.ib_symbols:
        leg = parse_option_symbol(symbol)
        if leg is None:
            logger.debug(f"Trade {trade.id}: skipping unparseable leg symbol {symbol!r}")
            continue
        parsed.append(leg)

    if not parsed:
        return LiveOptionSnapshot()

    sides = infer_sides(trade.strategy, parsed)
    count = _contracts(trade)

    has_all_quotes = True
    mark_value = 0.0
    legs = []
    for leg in parsed:
        side = sides.get(leg.symbol, LONG)
        quote = quotes.get(leg.symbol)
        mark = quote.mark if quote is not None else None
        if mark is None or not math.isfinite(mark):
            has_all_quotes = False
            mark = None
        else:
            sign = 1 if side == LONG else -1
            mark_value += sign * mark * 100 * count

        legs.append(PositionLegLive(
            symbol=leg.symbol,
            strike=leg.strike,
            option_type=leg.option_type,
            expiry=leg.expiry,
            side=side,
            mark=mark,
            source=quote.source if quote is not None else None,
            updated_at=quote.updated_at if quote is not None else None,
        ))

    if not has_all_quotes:
        return LiveOptionSnapshot(legs=legs, has_all_quotes=False)

    entry_cashflow = entry_cashflow_from_leg_prices(trade, legs)
    if entry_cashflow is None:
        entry_cashflow = estimate_entry_cashflow(trade)
    live_pnl = round(mark_value + entry_cashflow, 2)

    profit_capture_pct = None
    if live_pnl > 0 and trade.max_profit is not None and trade.max_profit > 0:
        profit_capture_pct = round(live_pnl / trade.max_profit * 100, 1)

    risk_consumed_pct = None
    if live_pnl < 0 and trade.max_risk > 0:
        risk_consumed_pct = round(abs(live_pnl) / trade.max_risk * 100, 1)

    return LiveOptionSnapshot(
        legs=legs,
        has_all_quotes=True,
        mark_value=round(mark_value, 2),
        live_pnl=live_pnl,
        profit_capture_pct=profit_capture_pct,
        risk_consumed_pct=risk_consumed_pct,
    )
