"""Adapters that bridge parsed option symbols to the strategy engine's ParsedLeg type."""

from typing import Iterable, List, Tuple

from tradeguard.models.option_symbol import ParsedOptionSymbol
from .types import ParsedLeg


def symbols_to_legs(entries: Iterable[Tuple[ParsedOptionSymbol, int]]) -> List[ParsedLeg]:
    """Convert (parsed symbol, signed quantity) pairs into ParsedLegs.

    Positive quantities are long (BUY), negative are short (SELL).
    """
    legs = []
    for parsed, quantity in entries:
        legs.append(ParsedLeg(
            ticker=parsed.ticker,
            expiry=parsed.expiry,
            strike=parsed.strike,
            option_type=parsed.option_type,
            side="BUY" if quantity >= 0 else "SELL",
            quantity=abs(int(quantity)),
        ))
    return legs
