"""Days-to-expiry helpers shared by the risk, guidance and builder modules."""

from datetime import date
from typing import Optional


def compute_dte(expiry: Optional[date], today: Optional[date] = None) -> int:
    """Calendar days from today to expiry.

    Past expiries clamp to 0 so an expired-but-open position reads as
    "expiring now" rather than carrying negative time. A missing expiry is 0.
    """
    if expiry is None:
        return 0
    today = today or date.today()
    return max(0, (expiry - today).days)


def urgency_for_expiry(expiry: Optional[date], today: Optional[date] = None) -> int:
    """1 (relaxed) .. 5 (expiring) urgency score; 3 when expiry is unknown."""
    if expiry is None:
        return 3
    dte = compute_dte(expiry, today)
    if dte <= 3:
        return 5
    if dte <= 7:
        return 4
    if dte <= 21:
        return 3
    if dte <= 60:
        return 2
    return 1
