"""
Shared pytest fixtures and factory helpers for TradeGuard tests.

Everything under test is pure, so factories build plain dataclasses; no
database or network is involved.
"""

from datetime import date

import pytest

from tradeguard.models.trade import AccountSnapshot, JournalEntry, OptionQuote, Rule, Trade

TODAY = date(2026, 2, 20)


# ---------------------------------------------------------------------------
# Core fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def today():
    """Fixed 'now' so DTE-driven outcomes are deterministic."""
    return TODAY


@pytest.fixture
def account():
    return make_account()


@pytest.fixture
def rules():
    return make_rules()


# ---------------------------------------------------------------------------
# Factory helpers
# ---------------------------------------------------------------------------

def make_trade(**overrides):
    """Build an open CRM iron condor; override any field by keyword."""
    fields = dict(
        id=101,
        ticker="CRM",
        strategy="Iron Condor",
        legs="160P / 165P / 205C / 210C",
        direction="Neutral",
        entry_date=date(2026, 2, 20),
        expiry_date=date(2026, 2, 27),
        status="OPEN",
        position_type="option",
        cost_basis=141.8,
        max_risk=141.8,
        max_profit=358.2,
        realized_pl=0.0,
        unrealized_pl=0.0,
        contracts=1,
        breakeven=161.42,
        close_price_long=1.36,
        close_price_short=2.12,
        urgency=4,
        exit_trigger="Close at 50% of max loss",
        source="import",
        ib_symbols=[
            "CRM 27FEB26 160 P",
            "CRM 27FEB26 165 P",
            "CRM 27FEB26 205 C",
            "CRM 27FEB26 210 C",
        ],
    )
    fields.update(overrides)
    return Trade(**fields)


def make_bull_call(**overrides):
    """Build an open NVDA bull call spread (290/320)."""
    fields = dict(
        id=202,
        ticker="NVDA",
        strategy="Bull Call Spread",
        legs="290C / 320C",
        direction="Bullish",
        entry_date=date(2026, 2, 10),
        expiry_date=date(2026, 3, 20),
        cost_basis=800.0,
        max_risk=800.0,
        max_profit=2200.0,
        contracts=1,
        breakeven=298.0,
        stop_loss=285.0,
        strike_long=290.0,
        strike_short=320.0,
        exit_trigger="Stop at 285",
        ib_symbols=["NVDA 20MAR26 290 C", "NVDA 20MAR26 320 C"],
    )
    fields.update(overrides)
    return Trade(**fields)


def make_account(end_nav=10000.0, **overrides):
    fields = dict(id=1, period_start=date(2026, 2, 1), period_end=date(2026, 2, 20),
                  start_nav=end_nav, end_nav=end_nav)
    fields.update(overrides)
    return AccountSnapshot(**fields)


def make_rules(disabled=()):
    """The standard rule catalog; rule numbers in ``disabled`` are switched off."""
    catalog = [
        (1, "2% Wall", "critical"),
        (2, "50% Stop", "critical"),
        (3, "Not Banned", "critical"),
        (4, "Approved Strategy", "high"),
        (5, "24hr Lockout", "high"),
        (7, "Direction Match", "medium"),
        (9, "Win Protocol", "info"),
        (10, "Journal", "info"),
    ]
    return [
        Rule(rule_number=number, title=title, severity=severity, enabled=number not in disabled)
        for number, title, severity in catalog
    ]


def make_journal(trade_id=101, id=1):
    return JournalEntry(id=id, trade_id=trade_id, thesis="Range-bound into expiry")


def make_quotes(marks):
    """symbol -> mark mapping to OptionQuote objects."""
    return {symbol: OptionQuote(mark=mark, source="test") for symbol, mark in marks.items()}
