"""
Position builder: turns a raw broker snapshot (positions, executions and an
account summary) into tracked option positions, stock holdings, option quotes
and underlying prices that the rest of the engine can score.
"""

import math
import re
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from loguru import logger

from tradeguard.models.option_symbol import ParsedOptionSymbol, clean_strike, normalize_symbol, parse_occ_symbol
from tradeguard.models.trade import OptionQuote, StockPosition, Trade
from tradeguard.pipeline.strategy_engine import detect_spread_from_legs, symbols_to_legs
from tradeguard.utils.dates import urgency_for_expiry

SYNC_NOTE = "Synced from broker snapshot."
QUOTE_SOURCE = "broker"

_NUMBER = re.compile(r"-?\d+(?:\.\d+)?")
_STOCK_TICKER = re.compile(r"^[A-Z.]{1,10}$")
_EXECUTION_TIME = "%Y%m%d-%H:%M:%S"

_CREDIT_FAMILY = ("Bull Put Spread", "Bear Call Spread", "Iron Condor", "Iron Butterfly")


@dataclass(frozen=True)
class BrokerPositionRow:
    symbol: str = ""
    contract: str = ""
    conid: Optional[int] = None
    quantity: float = 0.0
    market_price: Optional[float] = None
    market_value: Optional[float] = None
    average_cost: Optional[float] = None
    unrealized_pl: Optional[float] = None
    realized_pl: Optional[float] = None
    currency: str = "USD"
    raw: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class BrokerExecution:
    conid: Optional[int] = None
    symbol: Optional[str] = None
    trade_time: Optional[str] = None   # "20260220-14:31:05" or ISO 8601
    raw: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class BrokerSnapshot:
    fetched_at: datetime
    positions: List[BrokerPositionRow] = field(default_factory=list)
    executions: List[BrokerExecution] = field(default_factory=list)
    summary: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class AccountSummary:
    net_liquidation: Optional[float] = None
    cash: Optional[float] = None
    buying_power: Optional[float] = None
    maintenance_margin: Optional[float] = None
    excess_liquidity: Optional[float] = None
    margin_debt: float = 0.0


@dataclass(frozen=True)
class LiveModel:
    account_summary: AccountSummary
    open_positions: List[Trade]
    stocks: List[StockPosition]
    option_quotes: Dict[str, OptionQuote]
    underlying_prices: Dict[str, float]
    recent_executions: List[BrokerExecution]
    derived_trades: int = 0
    option_legs: int = 0


@dataclass(frozen=True)
class _OptionLeg:
    """An option row from the snapshot with its decoded contract."""
    contract: ParsedOptionSymbol
    quantity: float
    average_cost: Optional[float]
    market_price: Optional[float]
    market_value: Optional[float]
    unrealized: Optional[float]
    realized: Optional[float]
    conid: Optional[int]

    @property
    def ticker(self) -> str:
        return self.contract.ticker

    @property
    def symbol(self) -> str:
        return self.contract.symbol

    @property
    def strike(self) -> float:
        return self.contract.strike

    @property
    def option_type(self) -> str:
        return self.contract.option_type

    @property
    def expiry(self) -> date:
        return self.contract.expiry


# ---------------------------------------------------------------------------
# Numeric helpers
# ---------------------------------------------------------------------------

def to_number(value: Any) -> Optional[float]:
    """Best-effort numeric coercion for broker summary values.

    Accepts numbers, numeric strings with thousands separators and
    ``{"value": ...}`` / ``{"amount": ...}`` wrappers.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None
    if isinstance(value, str):
        match = _NUMBER.search(value.replace(",", ""))
        return float(match.group(0)) if match else None
    if isinstance(value, Mapping):
        for key in ("value", "amount", "val"):
            candidate = to_number(value.get(key))
            if candidate is not None:
                return candidate
    return None


def _average(values: Iterable[Optional[float]]) -> Optional[float]:
    clean = [v for v in values if v is not None]
    if not clean:
        return None
    return sum(clean) / len(clean)


def normalize_average_cost(avg_cost: Optional[float], market_price: Optional[float]) -> Optional[float]:
    """Per-share entry price; brokers often report average cost per contract (x100)."""
    if avg_cost is None:
        return None
    if market_price is not None and market_price > 0:
        ratio = avg_cost / market_price
        if 20 < ratio < 200:
            return avg_cost / 100
    if avg_cost > 1000:
        return avg_cost / 100
    return avg_cost


# ---------------------------------------------------------------------------
# Account summary
# ---------------------------------------------------------------------------

def _summary_key(key: str) -> str:
    return re.sub(r"[^a-z0-9]", "", key.lower())


def _pick_summary(summary: Mapping[str, Any], keys: Sequence[str]) -> Optional[float]:
    lookup = {}
    for raw_key, raw_value in summary.items():
        numeric = to_number(raw_value)
        if numeric is not None:
            lookup[_summary_key(str(raw_key))] = numeric

    for key in keys:
        value = to_number(summary.get(key))
        if value is not None:
            return value
        value = lookup.get(_summary_key(key))
        if value is not None:
            return value
    return None


def build_account_summary(summary: Mapping[str, Any]) -> AccountSummary:
    cash = _pick_summary(summary, ["totalCashValue", "TotalCashValue", "cash", "cashBalance"])
    return AccountSummary(
        net_liquidation=_pick_summary(summary, ["netLiquidation", "NetLiquidation", "net_liquidation"]),
        cash=cash,
        buying_power=_pick_summary(summary, ["buyingPower", "BuyingPower"]),
        maintenance_margin=_pick_summary(summary, ["maintMarginReq", "MaintMarginReq", "maintenanceMargin"]),
        excess_liquidity=_pick_summary(summary, ["excessLiquidity", "ExcessLiquidity"]),
        margin_debt=abs(cash) if cash is not None and cash < 0 else 0.0,
    )


def _summary_underlyings(summary: Mapping[str, Any]) -> Dict[str, float]:
    raw = summary.get("__underlying_prices")
    if not isinstance(raw, Mapping):
        return {}
    prices = {}
    for ticker_raw, value in raw.items():
        ticker = str(ticker_raw).strip().upper()
        numeric = to_number(value)
        if ticker and numeric is not None:
            prices[ticker] = round(numeric, 4)
    return prices


# ---------------------------------------------------------------------------
# Row parsing
# ---------------------------------------------------------------------------

def _parse_option_row(row: BrokerPositionRow) -> Optional[_OptionLeg]:
    contract = parse_occ_symbol(f"{row.symbol or ''} {row.contract or ''}")
    if contract is None:
        return None
    return _OptionLeg(
        contract=contract,
        quantity=row.quantity,
        average_cost=row.average_cost,
        market_price=row.market_price,
        market_value=row.market_value,
        unrealized=row.unrealized_pl,
        realized=row.realized_pl,
        conid=row.conid,
    )


def _stock_ticker(row: BrokerPositionRow) -> Optional[str]:
    candidate = (row.symbol or row.contract or "").strip().upper()
    if not candidate:
        return None
    first = candidate.split()[0]
    return first if _STOCK_TICKER.match(first) else None


def _parse_execution_time(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.strptime(value, _EXECUTION_TIME)
    except ValueError:
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


# ---------------------------------------------------------------------------
# Grouping
# ---------------------------------------------------------------------------

def _sort_legs(legs: Iterable[_OptionLeg]) -> List[_OptionLeg]:
    return sorted(legs, key=lambda leg: (leg.ticker, leg.expiry, leg.option_type, leg.strike))


def _order_group_key(execution: BrokerExecution) -> Optional[str]:
    raw = execution.raw or {}
    order_ref = raw.get("order_ref")
    if isinstance(order_ref, str) and order_ref.strip():
        return f"ref:{order_ref.strip()}"
    order_id = raw.get("order_id", raw.get("orderId"))
    if order_id is not None and str(order_id).strip():
        return f"oid:{str(order_id).strip()}"
    return None


def group_option_legs(legs: List[_OptionLeg], executions: Sequence[BrokerExecution]) -> List[List[_OptionLeg]]:
    """Split option legs into positions.

    Legs filled under the same order (order_ref, else order_id) form one
    position when at least two of them share a ticker; larger orders are
    claimed first, then the most recent. Leftovers are grouped per ticker:
    a two-leg same-type, different-expiry, opposite-sign pair stays together
    as a diagonal, anything else splits per expiry.
    """
    if not legs:
        return []

    hints = {}
    for execution in executions:
        if execution.conid is None:
            continue
        key = _order_group_key(execution)
        if key is None:
            continue
        hint = hints.setdefault(key, {"conids": set(), "latest": None})
        hint["conids"].add(execution.conid)
        ts = _parse_execution_time(execution.trade_time)
        if ts is not None and (hint["latest"] is None or ts > hint["latest"]):
            hint["latest"] = ts

    epoch = datetime.min.replace(tzinfo=timezone.utc)
    ordered_hints = sorted(
        hints.values(),
        key=lambda h: (len(h["conids"]), h["latest"] or epoch),
        reverse=True,
    )

    groups = []
    assigned = set()
    for hint in ordered_hints:
        candidates = [
            leg for leg in legs
            if leg.symbol not in assigned and leg.conid is not None and leg.conid in hint["conids"]
        ]
        if len(candidates) < 2 or len({leg.ticker for leg in candidates}) != 1:
            continue
        groups.append(_sort_legs(candidates))
        assigned.update(leg.symbol for leg in candidates)

    by_ticker = defaultdict(list)
    for leg in legs:
        if leg.symbol not in assigned:
            by_ticker[leg.ticker].append(leg)

    for ticker_legs in by_ticker.values():
        ticker_legs = _sort_legs(ticker_legs)
        if len(ticker_legs) == 2:
            a, b = ticker_legs
            if a.option_type == b.option_type and a.expiry != b.expiry and a.quantity * b.quantity < 0:
                groups.append(ticker_legs)
                continue

        by_expiry = defaultdict(list)
        for leg in ticker_legs:
            by_expiry[leg.expiry].append(leg)
        groups.extend(_sort_legs(expiry_legs) for expiry_legs in by_expiry.values())

    return groups


# ---------------------------------------------------------------------------
# Trade economics
# ---------------------------------------------------------------------------

def _leg_market_value(leg: _OptionLeg) -> Optional[float]:
    if leg.market_value is not None:
        return leg.market_value
    if leg.market_price is not None:
        return leg.market_price * 100 * leg.quantity
    return None


def infer_entry_flows(legs: Sequence[_OptionLeg]):
    """Opening (debit, credit) for a leg group, both non-negative.

    Market value minus unrealized P&L recovers the opening cost when every
    leg reports both; otherwise normalised average costs are used.
    """
    if all(_leg_market_value(leg) is not None and leg.unrealized is not None for leg in legs):
        opening = sum(_leg_market_value(leg) - leg.unrealized for leg in legs)
        return max(opening, 0.0), max(-opening, 0.0)

    long_cost = 0.0
    short_credit = 0.0
    for leg in legs:
        entry = normalize_average_cost(leg.average_cost, leg.market_price)
        if entry is None:
            continue
        amount = abs(leg.quantity) * entry * 100
        if leg.quantity > 0:
            long_cost += amount
        elif leg.quantity < 0:
            short_credit += amount
    return max(long_cost - short_credit, 0.0), max(short_credit - long_cost, 0.0)


def _classify_group(legs: Sequence[_OptionLeg]):
    if len(legs) == 1:
        leg = legs[0]
        if leg.quantity > 0:
            if leg.option_type == "C":
                return "Long Call", "Bullish"
            return "Long Put", "Bearish"
        return "Custom", "Neutral"

    detected = detect_spread_from_legs(symbols_to_legs((leg.contract, leg.quantity) for leg in legs))
    return detected.strategy, detected.direction


def _strategy_economics(strategy: str, legs: Sequence[_OptionLeg], debit: float, credit: float, qty: int):
    """(max_risk, max_profit, breakeven) for a leg group."""
    calls = sorted((leg for leg in legs if leg.option_type == "C"), key=lambda leg: leg.strike)
    puts = sorted((leg for leg in legs if leg.option_type == "P"), key=lambda leg: leg.strike)
    per_share = 100 * qty

    max_risk = debit if debit > 0 else max(credit, 0.0)
    max_profit = None
    breakeven = None

    if len(legs) == 1:
        leg = legs[0]
        if leg.quantity > 0:
            sign = 1 if leg.option_type == "C" else -1
            return debit, None, leg.strike + sign * debit / per_share
        return max(credit, debit), credit if credit > 0 else None, None

    vertical_width = abs(legs[0].strike - legs[1].strike) * per_share if len(legs) >= 2 else 0

    if strategy in ("Bull Call Spread", "Bear Put Spread"):
        max_risk = debit if debit > 0 else max(vertical_width - credit, 0.0)
        max_profit = max(vertical_width - max_risk, 0.0) if vertical_width > 0 else None
        if strategy == "Bull Call Spread" and calls:
            breakeven = calls[0].strike + max_risk / per_share
        elif strategy == "Bear Put Spread" and puts:
            breakeven = puts[-1].strike - max_risk / per_share

    elif strategy in ("Bull Put Spread", "Bear Call Spread"):
        max_profit = credit if credit > 0 else None
        max_risk = max(vertical_width - credit, 0.0) if vertical_width > 0 else max(debit, credit)
        if max_profit is not None:
            if strategy == "Bull Put Spread" and puts:
                breakeven = puts[-1].strike - max_profit / per_share
            elif strategy == "Bear Call Spread" and calls:
                breakeven = calls[0].strike + max_profit / per_share

    elif strategy in ("Iron Condor", "Iron Butterfly") and len(puts) >= 2 and len(calls) >= 2:
        width = min(
            abs(puts[-1].strike - puts[0].strike) * per_share,
            abs(calls[-1].strike - calls[0].strike) * per_share,
        )
        max_profit = credit if credit > 0 else None
        max_risk = max(width - credit, 0.0) if width > 0 else max(debit, credit)
        if max_profit is not None:
            breakeven = puts[-1].strike - max_profit / per_share

    elif strategy in ("Call Butterfly", "Put Butterfly"):
        wings = calls if strategy == "Call Butterfly" else puts
        if len(wings) >= 3:
            lower, body, upper = wings[0].strike, wings[len(wings) // 2].strike, wings[-1].strike
            width = min((body - lower) * per_share, (upper - body) * per_share)
            if width > 0:
                if debit > 0:
                    max_risk = debit
                    max_profit = max(width - debit, 0.0)
                    breakeven = lower + debit / per_share
                else:
                    max_profit = credit if credit > 0 else None
                    max_risk = max(width - credit, 0.0)
                    breakeven = lower + (max_profit or 0) / per_share

    else:
        max_risk = max(debit, credit, 0.0)
        max_profit = credit if credit > 0 else None

    return max_risk, max_profit, breakeven


def _entry_date(snapshot: BrokerSnapshot, legs: Sequence[_OptionLeg]) -> date:
    """Earliest execution touching the group, else the snapshot date."""
    conids = {leg.conid for leg in legs if leg.conid is not None}
    tickers = {leg.ticker for leg in legs}
    times = []
    for execution in snapshot.executions:
        matches = execution.conid is not None and execution.conid in conids
        if not matches and execution.symbol:
            upper = execution.symbol.upper()
            matches = any(ticker in upper for ticker in tickers)
        if matches:
            ts = _parse_execution_time(execution.trade_time)
            if ts is not None:
                times.append(ts)
    if times:
        return min(times).date()
    return snapshot.fetched_at.date()


def build_trade_from_legs(
    snapshot: BrokerSnapshot,
    legs: Sequence[_OptionLeg],
    trade_id: int,
    today: Optional[date] = None,
) -> Trade:
    first = legs[0]
    qty = max([int(abs(leg.quantity)) for leg in legs] + [1])
    strategy, direction = _classify_group(legs)
    debit, credit = infer_entry_flows(legs)
    max_risk, max_profit, breakeven = _strategy_economics(strategy, legs, debit, credit, qty)

    condor_like = strategy in ("Iron Condor", "Iron Butterfly")
    long_legs = [leg for leg in legs if leg.quantity > 0]
    short_legs = [leg for leg in legs if leg.quantity < 0]
    long_strikes = sorted(leg.strike for leg in long_legs)
    short_strikes = sorted(leg.strike for leg in short_legs)
    close_long = _average(normalize_average_cost(leg.average_cost, leg.market_price) for leg in long_legs)
    close_short = _average(normalize_average_cost(leg.average_cost, leg.market_price) for leg in short_legs)

    return Trade(
        id=trade_id,
        ticker=first.ticker,
        strategy=strategy,
        legs=" / ".join(
            f"{clean_strike(leg.strike)}{leg.option_type}"
            for leg in sorted(legs, key=lambda leg: leg.strike)
        ),
        direction=direction,
        entry_date=_entry_date(snapshot, legs),
        expiry_date=first.expiry,
        status="OPEN",
        position_type="option",
        cost_basis=round(credit if strategy in _CREDIT_FAMILY else max_risk, 2),
        max_risk=round(max(max_risk, 0.0), 2),
        max_profit=None if max_profit is None else round(max(max_profit, 0.0), 2),
        realized_pl=round(sum(leg.realized or 0 for leg in legs), 2),
        unrealized_pl=round(sum(leg.unrealized or 0 for leg in legs), 2),
        contracts=qty,
        breakeven=None if breakeven is None else round(breakeven, 4),
        strike_long=None if condor_like or not long_strikes else long_strikes[0],
        strike_short=None if condor_like or not short_strikes else short_strikes[-1],
        close_price_long=None if close_long is None else round(close_long, 4),
        close_price_short=None if close_short is None else round(close_short, 4),
        urgency=urgency_for_expiry(first.expiry, today),
        notes=SYNC_NOTE,
        source="import",
        ib_symbols=sorted({normalize_symbol(leg.symbol) for leg in legs}),
    )


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def build_live_model(snapshot: BrokerSnapshot, today: Optional[date] = None) -> LiveModel:
    """Build positions, stocks, quotes and prices from a broker snapshot."""
    option_legs = []
    stocks = []
    quotes = {}
    prices = {}
    updated_at = snapshot.fetched_at.isoformat()

    for row in snapshot.positions:
        leg = _parse_option_row(row)
        if leg is not None:
            option_legs.append(leg)
            if leg.market_price is not None:
                mark = round(leg.market_price, 4)
                quotes[leg.symbol] = OptionQuote(
                    mark=mark, last=mark, source=QUOTE_SOURCE, updated_at=updated_at,
                )
            continue

        ticker = _stock_ticker(row)
        if ticker is None:
            logger.debug(f"Skipping broker row with no recognisable instrument: {row.symbol!r}")
            continue

        cost_price = row.average_cost or 0.0
        close_price = row.market_price if row.market_price is not None else cost_price
        stocks.append(StockPosition(
            id=len(stocks) + 1,
            ticker=ticker,
            shares=row.quantity,
            cost_basis=round(cost_price * row.quantity, 2),
            cost_price=round(cost_price, 4),
            close_price=round(close_price, 4),
            unrealized_pl=round(row.unrealized_pl or 0, 2),
            notes=SYNC_NOTE,
        ))
        if row.market_price is not None:
            prices[ticker] = round(row.market_price, 4)

    groups = group_option_legs(option_legs, snapshot.executions)
    derived = [
        build_trade_from_legs(snapshot, legs, -(i + 1), today)
        for i, legs in enumerate(groups)
    ]
    open_positions = sorted(derived, key=lambda trade: trade.ticker)

    for ticker, price in _summary_underlyings(snapshot.summary).items():
        prices.setdefault(ticker, price)

    logger.info(
        f"Built live model: {len(option_legs)} option legs -> {len(derived)} positions, "
        f"{len(stocks)} stocks"
    )

    return LiveModel(
        account_summary=build_account_summary(snapshot.summary or {}),
        open_positions=open_positions,
        stocks=stocks,
        option_quotes=quotes,
        underlying_prices=prices,
        recent_executions=list(snapshot.executions),
        derived_trades=len(derived),
        option_legs=len(option_legs),
    )
