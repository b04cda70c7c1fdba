"""Strategy Engine: leg-structure based spread detection.

Public API:
    detect_spread_from_legs(legs) -> DetectedSpread
    symbols_to_legs(entries) -> List[ParsedLeg]
"""

from .recognizer import detect_spread_from_legs, legs_label
from .adapters import symbols_to_legs
from .types import ParsedLeg, DetectedSpread, StrategyDef
from .constants import STRATEGIES

__all__ = [
    "detect_spread_from_legs", "legs_label", "symbols_to_legs",
    "ParsedLeg", "DetectedSpread", "StrategyDef", "STRATEGIES",
]
