"""Health check route."""

from fastapi import APIRouter

router = APIRouter()


@router.get("/api/health")
async def health_check():
    """Simple health check endpoint"""
    return {"status": "ok", "service": "TradeGuard"}
