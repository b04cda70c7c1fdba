#!/usr/bin/env python3

"""
TradeGuard Web Application
Trade-structure classification, live valuation and rule scoring over HTTP
"""

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from tradeguard.dependencies import HOST, LOG_LEVEL, get_port
from tradeguard.routers import analysis, broker, health, scoring

# Configure logging
logger.add(
    "logs/tradeguard_{time}.log",
    rotation="1 day",
    retention="7 days",
    level=LOG_LEVEL,
)

app = FastAPI(
    title="TradeGuard",
    description="Options position risk, guidance and discipline scoring",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(analysis.router)
app.include_router(scoring.router)
app.include_router(broker.router)


if __name__ == "__main__":
    port = get_port()
    logger.info(f"Starting TradeGuard on http://localhost:{port}")
    uvicorn.run("app:app", host=HOST, port=port, log_level=LOG_LEVEL.lower())
