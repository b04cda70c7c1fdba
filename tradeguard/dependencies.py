"""Configuration shared across routers and services."""

import os
from functools import lru_cache

from dotenv import load_dotenv

from tradeguard.services.scoring_service import ScoringLimits

load_dotenv()

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
HOST = os.getenv("HOST", "0.0.0.0")


class ConfigError(ValueError):
    """An environment override could not be used."""


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}")


def load_limits() -> ScoringLimits:
    """Build scoring thresholds from TG_* environment overrides."""
    defaults = ScoringLimits()
    approved_raw = os.getenv("TG_APPROVED_STRATEGIES")
    if approved_raw is None:
        approved = defaults.approved_strategies
    else:
        approved = tuple(name.strip() for name in approved_raw.split(",") if name.strip())

    return ScoringLimits(
        max_risk_pct=_env_float("TG_MAX_RISK_PCT", defaults.max_risk_pct),
        small_risk_pct=_env_float("TG_SMALL_RISK_PCT", defaults.small_risk_pct),
        approved_strategies=approved,
        risk_budget_pct=_env_float("TG_RISK_BUDGET_PCT", defaults.risk_budget_pct),
        max_positions=_env_int("TG_MAX_POSITIONS", defaults.max_positions),
        max_earnings=_env_int("TG_MAX_EARNINGS", defaults.max_earnings),
        win_protocol_pct=_env_float("TG_WIN_PROTOCOL_PCT", defaults.win_protocol_pct),
    )


def get_port() -> int:
    return _env_int("PORT", 8000)


@lru_cache()
def get_limits() -> ScoringLimits:
    """FastAPI dependency: scoring limits, read once per process."""
    return load_limits()
