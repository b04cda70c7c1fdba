"""Pydantic request models for the TradeGuard API."""

from dataclasses import fields
from datetime import date, datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from tradeguard.models.trade import AccountSnapshot, JournalEntry, OptionQuote, Rule, Trade
from tradeguard.pipeline.strategy_engine import ParsedLeg
from tradeguard.services.position_builder import BrokerExecution, BrokerPositionRow, BrokerSnapshot


def _to_dataclass(model: BaseModel, cls):
    """Copy the fields ``cls`` declares from a request model."""
    return cls(**{f.name: getattr(model, f.name) for f in fields(cls) if hasattr(model, f.name)})


class SymbolParseRequest(BaseModel):
    symbols: List[str]


class LegIn(BaseModel):
    ticker: str
    expiry: Optional[date] = None
    strike: Optional[float] = Field(None, gt=0)
    option_type: Optional[Literal["C", "P"]] = None
    side: Literal["BUY", "SELL"]
    quantity: int = Field(1, ge=1)

    def to_leg(self) -> ParsedLeg:
        return _to_dataclass(self, ParsedLeg)


class SpreadDetectRequest(BaseModel):
    legs: List[LegIn]


class TradeIn(BaseModel):
    id: int
    ticker: str
    strategy: str
    legs: str = ""
    direction: str = "Neutral"
    entry_date: Optional[date] = None
    exit_date: Optional[date] = None
    expiry_date: Optional[date] = None
    status: str = "OPEN"
    position_type: str = "option"
    cost_basis: float = 0.0
    max_risk: float = 0.0
    max_profit: Optional[float] = None
    realized_pl: Optional[float] = None
    unrealized_pl: Optional[float] = None
    commissions: float = 0.0
    contracts: int = 1
    catalyst: str = "None"
    breakeven: Optional[float] = None
    stop_loss: Optional[float] = None
    strike_long: Optional[float] = None
    strike_short: Optional[float] = None
    close_price_long: Optional[float] = None
    close_price_short: Optional[float] = None
    theta_per_day: Optional[float] = None
    urgency: Optional[int] = None
    exit_trigger: str = ""
    notes: str = ""
    source: str = "manual"
    ib_symbols: List[str] = Field(default_factory=list)

    def to_trade(self) -> Trade:
        return _to_dataclass(self, Trade)


class QuoteIn(BaseModel):
    mark: float
    bid: Optional[float] = None
    ask: Optional[float] = None
    last: Optional[float] = None
    source: str = ""
    updated_at: Optional[str] = None

    def to_quote(self) -> OptionQuote:
        return _to_dataclass(self, OptionQuote)


class AccountIn(BaseModel):
    id: int = 0
    period_start: Optional[date] = None
    period_end: Optional[date] = None
    start_nav: float = 0.0
    end_nav: float
    twr: float = 0.0
    cash_end: float = 0.0
    stock_total: float = 0.0
    options_total: float = 0.0
    commissions_total: float = 0.0
    margin_debt: float = 0.0

    def to_account(self) -> AccountSnapshot:
        return _to_dataclass(self, AccountSnapshot)


class RuleIn(BaseModel):
    rule_number: int
    title: str
    severity: Literal["critical", "high", "medium", "info"] = "info"
    enabled: bool = True
    description: str = ""
    id: Optional[int] = None

    def to_rule(self) -> Rule:
        return _to_dataclass(self, Rule)


class JournalIn(BaseModel):
    id: int
    trade_id: int
    type: str = "pre_trade"
    thesis: str = ""
    emotional_state: str = ""
    plan_adherence_score: int = 0
    notes: str = ""

    def to_journal(self) -> JournalEntry:
        return _to_dataclass(self, JournalEntry)


class CondorZoneRequest(BaseModel):
    strategy: str
    legs: str
    breakeven: Optional[float] = None
    max_profit: Optional[float] = None
    contracts: int = 1
    price: Optional[float] = Field(None, gt=0)
    stop_loss: Optional[float] = None


class LivePositionRequest(BaseModel):
    trade: TradeIn
    price: Optional[float] = None
    quotes: Dict[str, QuoteIn] = Field(default_factory=dict)
    today: Optional[date] = None


class ScoringRequest(BaseModel):
    open_trades: List[TradeIn]
    all_trades: Optional[List[TradeIn]] = None   # defaults to open_trades
    account: AccountIn
    journals: List[JournalIn] = Field(default_factory=list)
    rules: List[RuleIn] = Field(default_factory=list)


class BoardRequest(BaseModel):
    positions: List[TradeIn]
    account: AccountIn
    journals: List[JournalIn] = Field(default_factory=list)
    rules: List[RuleIn] = Field(default_factory=list)
    quotes: Dict[str, QuoteIn] = Field(default_factory=dict)
    prices: Dict[str, float] = Field(default_factory=dict)
    today: Optional[date] = None


class BrokerRowIn(BaseModel):
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
    raw: Dict[str, Any] = Field(default_factory=dict)


class BrokerExecutionIn(BaseModel):
    conid: Optional[int] = None
    symbol: Optional[str] = None
    trade_time: Optional[str] = None
    raw: Dict[str, Any] = Field(default_factory=dict)


class BrokerSnapshotIn(BaseModel):
    fetched_at: datetime
    positions: List[BrokerRowIn] = Field(default_factory=list)
    executions: List[BrokerExecutionIn] = Field(default_factory=list)
    summary: Dict[str, Any] = Field(default_factory=dict)
    today: Optional[date] = None

    def to_snapshot(self) -> BrokerSnapshot:
        return BrokerSnapshot(
            fetched_at=self.fetched_at,
            positions=[_to_dataclass(row, BrokerPositionRow) for row in self.positions],
            executions=[_to_dataclass(ex, BrokerExecution) for ex in self.executions],
            summary=dict(self.summary),
        )
