"""Analysis routes - symbol parsing, spread detection and per-position views."""

from fastapi import APIRouter, HTTPException
from loguru import logger

from tradeguard.models.condor_zone import (
    classify_iron_condor_price_zone,
    describe_condor_position,
    estimate_iron_condor_pnl_at_expiry,
    get_iron_condor_zone,
)
from tradeguard.models.guidance import build_position_guidance
from tradeguard.models.live_valuation import build_live_option_snapshot
from tradeguard.models.option_symbol import parse_occ_symbol, parse_option_symbol
from tradeguard.models.risk_snapshot import get_risk_snapshot
from tradeguard.pipeline.strategy_engine import detect_spread_from_legs
from tradeguard.schemas import CondorZoneRequest, LivePositionRequest, SpreadDetectRequest, SymbolParseRequest

router = APIRouter()


@router.post("/api/symbols/parse")
async def parse_symbols(request: SymbolParseRequest):
    """Parse broker leg or OCC symbols; unparseable entries come back as null"""
    results = {
        symbol: parse_option_symbol(symbol) or parse_occ_symbol(symbol)
        for symbol in request.symbols
    }
    logger.info(
        f"/api/symbols/parse: {sum(1 for r in results.values() if r)} of {len(results)} parsed"
    )
    return {"results": results}


@router.post("/api/spreads/detect")
async def detect_spread(request: SpreadDetectRequest):
    """Classify a set of option legs into a named strategy"""
    if not request.legs:
        raise HTTPException(status_code=422, detail="At least one leg is required")
    try:
        return detect_spread_from_legs([leg.to_leg() for leg in request.legs])
    except Exception as e:
        logger.error(f"Error detecting spread: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/api/positions/condor-zone")
async def condor_zone(request: CondorZoneRequest):
    """Iron condor geometry, plus zone and expiry P&L when a price is given"""
    try:
        zone = get_iron_condor_zone(
            request.strategy, request.legs, request.breakeven, request.max_profit, request.contracts,
        )
        if zone is None:
            return {"zone": None}

        response = {"zone": zone}
        if request.price is not None:
            response["price_zone"] = classify_iron_condor_price_zone(request.price, zone)
            response["pnl_at_expiry"] = estimate_iron_condor_pnl_at_expiry(request.price, zone, request.contracts)
            response["position"] = describe_condor_position(request.price, zone, request.stop_loss)
        return response
    except Exception as e:
        logger.error(f"Error computing condor zone: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/api/positions/live")
async def live_position(request: LivePositionRequest):
    """Live valuation, risk level and guidance for a single position"""
    try:
        trade = request.trade.to_trade()
        quotes = {symbol: q.to_quote() for symbol, q in request.quotes.items()}
        return {
            "trade_id": trade.id,
            "live": build_live_option_snapshot(trade, quotes),
            "risk": get_risk_snapshot(trade, request.price, request.today),
            "guidance": build_position_guidance(trade, request.price, request.today),
        }
    except Exception as e:
        logger.error(f"Error building live view for trade {request.trade.id}: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))
