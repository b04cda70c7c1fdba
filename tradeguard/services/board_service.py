"""Board service: assembles the per-position live view used by the dashboard."""

from dataclasses import dataclass
from datetime import date
from typing import Iterable, List, Mapping, Optional, Sequence

from tradeguard.models.condor_zone import (
    CondorPositionStatus,
    IronCondorZone,
    describe_condor_position,
    get_iron_condor_zone,
)
from tradeguard.models.guidance import PositionGuidance, build_position_guidance
from tradeguard.models.live_valuation import LiveOptionSnapshot, build_live_option_snapshot
from tradeguard.models.risk_snapshot import RiskSnapshot, get_risk_snapshot
from tradeguard.models.trade import AccountSnapshot, JournalEntry, OptionQuote, Rule, Trade
from tradeguard.services.scoring_service import (
    ScoringLimits,
    ScoringResult,
    public_view,
    score_open_positions,
)
from tradeguard.utils.formatting import usable_price


@dataclass(frozen=True)
class BoardCondor:
    zone: IronCondorZone
    position: Optional[CondorPositionStatus]


@dataclass(frozen=True)
class BoardPosition:
    trade: Trade
    price: Optional[float]
    risk: RiskSnapshot
    live: LiveOptionSnapshot
    guidance: PositionGuidance
    condor: Optional[BoardCondor]


@dataclass(frozen=True)
class LiveBoard:
    positions: List[BoardPosition]
    scoring: ScoringResult


def _condor_view(trade: Trade, price: Optional[float]) -> Optional[BoardCondor]:
    zone = get_iron_condor_zone(trade.strategy, trade.legs, trade.breakeven, trade.max_profit, trade.contracts)
    if zone is None:
        return None
    status = describe_condor_position(price, zone, trade.stop_loss) if price is not None else None
    return BoardCondor(zone=zone, position=status)


def build_live_board(
    positions: Sequence[Trade],
    account: AccountSnapshot,
    rules: Iterable[Rule],
    journals: Iterable[JournalEntry],
    quotes: Mapping[str, OptionQuote],
    prices: Mapping[str, float],
    today: Optional[date] = None,
    limits: Optional[ScoringLimits] = None,
) -> LiveBoard:
    """Value, classify and score every open option position.

    ``prices`` maps ticker to underlying spot; ``quotes`` maps broker leg
    symbol to option quote. Scoring is returned in its public view.
    """
    open_options = [trade for trade in positions if trade.is_open and trade.is_option]

    board = []
    for trade in open_options:
        price = usable_price(prices.get(trade.ticker.upper()))
        board.append(BoardPosition(
            trade=trade,
            price=price,
            risk=get_risk_snapshot(trade, price, today),
            live=build_live_option_snapshot(trade, quotes),
            guidance=build_position_guidance(trade, price, today),
            condor=_condor_view(trade, price),
        ))

    scoring = score_open_positions(open_options, list(positions), account, journals, rules, limits)
    return LiveBoard(positions=board, scoring=public_view(scoring))
