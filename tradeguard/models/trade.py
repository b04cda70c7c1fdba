"""
Trade, Account, Rule and Journal Models
Read-only views of the records the store hands to the scoring engine
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import List, Optional


class TradeDirection(str, Enum):
    BULLISH = "Bullish"
    BEARISH = "Bearish"
    NEUTRAL = "Neutral"


class TradeStatus(str, Enum):
    OPEN = "OPEN"
    WIN = "WIN"
    LOSS = "LOSS"
    EXPIRED = "EXPIRED"


class RuleSeverity(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    INFO = "info"


# Strategies that open for a net credit
CREDIT_STRATEGIES = frozenset({"Bull Put Spread", "Bear Call Spread", "Iron Condor"})


@dataclass(frozen=True)
class Trade:
    """A tracked position (one row of the trade journal)"""
    id: int
    ticker: str
    strategy: str
    legs: str = ""
    direction: str = TradeDirection.NEUTRAL.value
    entry_date: Optional[date] = None
    exit_date: Optional[date] = None
    expiry_date: Optional[date] = None
    status: str = TradeStatus.OPEN.value
    position_type: str = "option"  # 'option' or 'stock'
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
    # Per-side entry leg prices as recorded at import
    close_price_long: Optional[float] = None
    close_price_short: Optional[float] = None
    theta_per_day: Optional[float] = None
    urgency: Optional[int] = None
    exit_trigger: str = ""
    notes: str = ""
    source: str = "manual"  # 'manual' or 'import'
    ib_symbols: List[str] = field(default_factory=list)

    @property
    def is_open(self) -> bool:
        return self.status == TradeStatus.OPEN.value

    @property
    def is_option(self) -> bool:
        return self.position_type == "option"

    @property
    def is_bearish(self) -> bool:
        return self.direction == TradeDirection.BEARISH.value

    @property
    def is_credit(self) -> bool:
        return self.strategy in CREDIT_STRATEGIES


@dataclass(frozen=True)
class AccountSnapshot:
    """Statement-period account totals. Scoring only needs end_nav."""
    id: int = 0
    period_start: Optional[date] = None
    period_end: Optional[date] = None
    start_nav: float = 0.0
    end_nav: float = 0.0
    twr: float = 0.0
    cash_end: float = 0.0
    stock_total: float = 0.0
    options_total: float = 0.0
    commissions_total: float = 0.0
    margin_debt: float = 0.0


@dataclass(frozen=True)
class StockPosition:
    id: int
    ticker: str
    shares: float
    cost_basis: float
    cost_price: float
    close_price: float
    unrealized_pl: float
    notes: str = ""


@dataclass(frozen=True)
class Rule:
    """Catalog entry for a discipline rule"""
    rule_number: int
    title: str
    severity: str = RuleSeverity.INFO.value
    enabled: bool = True
    description: str = ""
    id: Optional[int] = None


@dataclass(frozen=True)
class JournalEntry:
    id: int
    trade_id: int
    type: str = "pre_trade"  # 'pre_trade' or 'post_trade'
    thesis: str = ""
    emotional_state: str = ""
    plan_adherence_score: int = 0
    notes: str = ""


@dataclass(frozen=True)
class OptionQuote:
    """Live quote for a single option leg"""
    mark: float
    bid: Optional[float] = None
    ask: Optional[float] = None
    last: Optional[float] = None
    source: str = ""
    updated_at: Optional[str] = None
