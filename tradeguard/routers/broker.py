"""Broker routes - turn a raw broker snapshot into scoreable positions."""

from fastapi import APIRouter, HTTPException
from loguru import logger

from tradeguard.schemas import BrokerSnapshotIn
from tradeguard.services.position_builder import build_live_model

router = APIRouter()


@router.post("/api/broker/live-model")
async def broker_live_model(request: BrokerSnapshotIn):
    """Group broker option rows into positions and collect quotes/prices"""
    try:
        model = build_live_model(request.to_snapshot(), today=request.today)
        logger.info(
            f"/api/broker/live-model: {model.option_legs} legs -> "
            f"{len(model.open_positions)} positions"
        )
        return model
    except Exception as e:
        logger.error(f"Error building live model: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))
