"""Strategy registry: single source of truth for all strategy metadata."""

from .types import StrategyDef

STRATEGIES: dict[str, StrategyDef] = {
    # -- Single leg --
    "Long Call":         StrategyDef("Long Call",         "Bullish", "debit",  1, "single"),
    "Long Put":          StrategyDef("Long Put",          "Bearish", "debit",  1, "single"),
    # -- Verticals --
    "Bull Call Spread":  StrategyDef("Bull Call Spread",  "Bullish", "debit",  2, "vertical"),
    "Bear Call Spread":  StrategyDef("Bear Call Spread",  "Bearish", "credit", 2, "vertical"),
    "Bull Put Spread":   StrategyDef("Bull Put Spread",   "Bullish", "credit", 2, "vertical"),
    "Bear Put Spread":   StrategyDef("Bear Put Spread",   "Bearish", "debit",  2, "vertical"),
    # -- Four leg --
    "Iron Condor":       StrategyDef("Iron Condor",       "Neutral", "credit", 4, "multi"),
    "Iron Butterfly":    StrategyDef("Iron Butterfly",    "Neutral", "credit", 4, "multi"),
    # -- Butterflies --
    "Call Butterfly":    StrategyDef("Call Butterfly",    "Neutral", "debit",  3, "butterfly"),
    "Put Butterfly":     StrategyDef("Put Butterfly",     "Neutral", "debit",  3, "butterfly"),
    # -- Cross-expiry --
    "Calendar":          StrategyDef("Calendar",          "Neutral", "debit",  2, "calendar"),
    "Diagonal":          StrategyDef("Diagonal",          "Neutral", "debit",  2, "calendar"),
    # -- Fallback --
    "Custom":            StrategyDef("Custom",            "Neutral", None,     0, "custom"),
}

# Two strikes closer than this are the same strike
STRIKE_TOLERANCE = 0.0001
