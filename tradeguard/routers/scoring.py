"""Scoring routes - rule compliance and the live position board."""

from fastapi import APIRouter, Depends, HTTPException
from loguru import logger

from tradeguard.dependencies import get_limits
from tradeguard.schemas import BoardRequest, ScoringRequest
from tradeguard.services.board_service import build_live_board
from tradeguard.services.scoring_service import ScoringLimits, public_view, score_open_positions

router = APIRouter()


@router.post("/api/scoring")
async def score_positions(request: ScoringRequest, limits: ScoringLimits = Depends(get_limits)):
    """Score open positions against the rule catalog and portfolio limits"""
    try:
        open_trades = [t.to_trade() for t in request.open_trades]
        if request.all_trades is None:
            all_trades = open_trades
        else:
            all_trades = [t.to_trade() for t in request.all_trades]

        result = score_open_positions(
            open_trades,
            all_trades,
            request.account.to_account(),
            [j.to_journal() for j in request.journals],
            [r.to_rule() for r in request.rules],
            limits,
        )
        logger.info(f"/api/scoring: {len(open_trades)} positions, overall score {result.overall_score}")
        return public_view(result)
    except Exception as e:
        logger.error(f"Error scoring positions: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/api/board")
async def live_board(request: BoardRequest, limits: ScoringLimits = Depends(get_limits)):
    """Risk, live valuation, guidance and scoring for every open option position"""
    try:
        board = build_live_board(
            positions=[t.to_trade() for t in request.positions],
            account=request.account.to_account(),
            rules=[r.to_rule() for r in request.rules],
            journals=[j.to_journal() for j in request.journals],
            quotes={symbol: q.to_quote() for symbol, q in request.quotes.items()},
            prices={ticker.upper(): price for ticker, price in request.prices.items()},
            today=request.today,
            limits=limits,
        )
        logger.info(f"/api/board: returning {len(board.positions)} positions")
        return board
    except Exception as e:
        logger.error(f"Error building live board: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))
