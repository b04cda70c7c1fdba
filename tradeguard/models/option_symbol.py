"""
Option Symbol Parsing
Decodes broker leg identifiers ("CRM 27FEB26 160 P") and OCC-style contract
codes ("CRM 260227P00160000") into structured legs.
"""

import re
from dataclasses import dataclass
from datetime import date
from typing import Optional

from loguru import logger

MONTHS = ("JAN", "FEB", "MAR", "APR", "MAY", "JUN", "JUL", "AUG", "SEP", "OCT", "NOV", "DEC")

_BROKER_SYMBOL = re.compile(r"^([A-Z.]+)\s+(\d{2})([A-Z]{3})(\d{2})\s+(\d+(?:\.\d+)?)\s+([CP])$")
_OCC_SYMBOL = re.compile(r"([A-Z.]+)\s+(\d{6})([CP])(\d{8})")


@dataclass(frozen=True)
class ParsedOptionSymbol:
    symbol: str          # normalized input, e.g. "CRM 27FEB26 160 P"
    ticker: str
    expiry: date
    strike: float
    option_type: str     # "C" or "P"


def parse_option_symbol(text: str) -> Optional[ParsedOptionSymbol]:
    """Parse a broker leg symbol. Returns None for anything malformed."""
    if not text:
        return None
    normalized = text.strip().upper()
    match = _BROKER_SYMBOL.match(normalized)
    if not match:
        return None

    ticker, dd, mon, yy, strike_raw, option_type = match.groups()
    if mon not in MONTHS:
        return None
    try:
        expiry = date(2000 + int(yy), MONTHS.index(mon) + 1, int(dd))
    except ValueError:
        logger.debug(f"Rejecting option symbol with impossible date: {normalized}")
        return None

    strike = float(strike_raw)
    if strike <= 0:
        return None

    return ParsedOptionSymbol(
        symbol=normalized,
        ticker=ticker,
        expiry=expiry,
        strike=strike,
        option_type=option_type,
    )


def parse_occ_symbol(text: str) -> Optional[ParsedOptionSymbol]:
    """Parse an OCC-style contract code (strike in thousandths).

    The returned ``symbol`` is the equivalent broker leg symbol so quotes and
    positions built from OCC rows key the same way as imported trades.
    """
    if not text:
        return None
    match = _OCC_SYMBOL.search(text.upper())
    if not match:
        return None

    ticker, yymmdd, option_type, strike_raw = match.groups()
    try:
        expiry = date(2000 + int(yymmdd[:2]), int(yymmdd[2:4]), int(yymmdd[4:6]))
    except ValueError:
        return None

    strike = int(strike_raw) / 1000
    if strike <= 0:
        return None

    return ParsedOptionSymbol(
        symbol=format_option_symbol(ticker, expiry, strike, option_type),
        ticker=ticker,
        expiry=expiry,
        strike=strike,
        option_type=option_type,
    )


def date_code(expiry: date) -> str:
    """27FEB26 style expiry code"""
    return f"{expiry.day:02d}{MONTHS[expiry.month - 1]}{expiry.year % 100:02d}"


def clean_strike(value: float) -> str:
    """Render a strike without trailing zeros: 160.0 -> '160', 2.50 -> '2.5'"""
    rounded = round(value, 4)
    if rounded == int(rounded):
        return str(int(rounded))
    return f"{rounded:.4f}".rstrip("0").rstrip(".")


def format_option_symbol(ticker: str, expiry: date, strike: float, option_type: str) -> str:
    return normalize_symbol(f"{ticker} {date_code(expiry)} {clean_strike(strike)} {option_type}")


def normalize_symbol(symbol: str) -> str:
    return re.sub(r"\s+", " ", symbol.strip().upper())
