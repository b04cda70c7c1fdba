"""Data types for the strategy engine."""

from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional

from tradeguard.models.option_symbol import clean_strike


@dataclass(frozen=True)
class ParsedLeg:
    """A single option leg as detected on a statement or broker snapshot."""
    ticker: str
    expiry: Optional[date]      # None when the source did not carry one
    strike: Optional[float]
    option_type: Optional[str]  # "C" or "P"
    side: str                   # "BUY" or "SELL"
    quantity: int               # Contracts, always positive

    @property
    def label(self) -> str:
        """Display label such as '160P' ('?' for missing parts)."""
        strike = "?" if self.strike is None else clean_strike(self.strike)
        return f"{strike}{self.option_type or '?'}"


@dataclass(frozen=True)
class StrategyDef:
    """Registry entry defining a strategy's metadata."""
    name: str
    direction: str              # "Bullish", "Bearish", "Neutral"
    credit_debit: Optional[str]  # "credit", "debit", None
    leg_count: int              # Expected number of legs (0 = any)
    category: str               # "single", "vertical", "multi", "butterfly", "calendar", "custom"


@dataclass(frozen=True)
class DetectedSpread:
    """Result of spread detection."""
    strategy: str               # e.g. "Iron Condor"
    direction: str              # "Bullish", "Bearish", "Neutral"
    legs: str                   # e.g. "160P / 165P / 205C / 210C"
    contracts: int


@dataclass(frozen=True)
class LegSet:
    """Legs pre-sorted by strike and split by option type.

    Built once by the recognizer and handed to every pattern matcher.
    """
    legs: List[ParsedLeg]
    calls: List[ParsedLeg] = field(default_factory=list)
    puts: List[ParsedLeg] = field(default_factory=list)
    expiry_count: int = 0
