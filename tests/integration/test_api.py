"""
API tests for the TradeGuard routes.

Each request goes through the full FastAPI stack: pydantic validation,
the service layer and JSON encoding of the dataclass results.
"""

import pytest
from fastapi.encoders import jsonable_encoder
from fastapi.testclient import TestClient

from app import app
from tradeguard.dependencies import get_limits
from tradeguard.services.scoring_service import ScoringLimits
from tests.conftest import make_account, make_bull_call, make_journal, make_rules, make_trade

client = TestClient(app)

CONDOR_QUOTES = {
    "CRM 27FEB26 160 P": {"mark": 0.6},
    "CRM 27FEB26 165 P": {"mark": 1.2},
    "CRM 27FEB26 205 C": {"mark": 1.1},
    "CRM 27FEB26 210 C": {"mark": 0.5},
}


def _payload(obj):
    return jsonable_encoder(obj)


def _scoring_body(trades, journals=()):
    return {
        "open_trades": [_payload(t) for t in trades],
        "account": _payload(make_account()),
        "journals": [_payload(j) for j in journals],
        "rules": [_payload(r) for r in make_rules()],
    }


@pytest.fixture
def custom_limits():
    app.dependency_overrides[get_limits] = lambda: ScoringLimits(max_risk_pct=1.0)
    yield
    app.dependency_overrides.clear()


def test_health():
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "TradeGuard"}


# ---------------------------------------------------------------------------
# Symbols and spreads
# ---------------------------------------------------------------------------

class TestSymbols:
    def test_parse_mixed_batch(self):
        response = client.post("/api/symbols/parse", json={
            "symbols": ["crm 27feb26 160 p", "NVDA 260320C00290000", "not a symbol"],
        })
        assert response.status_code == 200
        results = response.json()["results"]
        assert results["crm 27feb26 160 p"]["ticker"] == "CRM"
        assert results["crm 27feb26 160 p"]["expiry"] == "2026-02-27"
        assert results["crm 27feb26 160 p"]["option_type"] == "P"
        assert results["NVDA 260320C00290000"]["strike"] == 290.0
        assert results["not a symbol"] is None


class TestSpreadDetect:
    def _leg(self, strike, option_type, side):
        return {"ticker": "CRM", "expiry": "2026-02-27", "strike": strike,
                "option_type": option_type, "side": side, "quantity": 1}

    def test_iron_condor(self):
        response = client.post("/api/spreads/detect", json={"legs": [
            self._leg(160, "P", "BUY"),
            self._leg(165, "P", "SELL"),
            self._leg(205, "C", "SELL"),
            self._leg(210, "C", "BUY"),
        ]})
        assert response.status_code == 200
        body = response.json()
        assert body["strategy"] == "Iron Condor"
        assert body["direction"] == "Neutral"
        assert body["contracts"] == 1

    def test_empty_legs_rejected(self):
        assert client.post("/api/spreads/detect", json={"legs": []}).status_code == 422

    def test_bad_side_rejected(self):
        response = client.post("/api/spreads/detect", json={"legs": [self._leg(160, "P", "HOLD")]})
        assert response.status_code == 422


# ---------------------------------------------------------------------------
# Position views
# ---------------------------------------------------------------------------

class TestCondorZone:
    BODY = {
        "strategy": "Iron Condor",
        "legs": "160P / 165P / 205C / 210C",
        "max_profit": 358.2,
        "contracts": 1,
    }

    def test_geometry_only(self):
        body = client.post("/api/positions/condor-zone", json=self.BODY).json()
        assert body["zone"]["lower_breakeven"] == pytest.approx(161.418)
        assert body["zone"]["upper_breakeven"] == pytest.approx(208.582)
        assert body["zone"]["credit_source"] == "profit"
        assert "price_zone" not in body

    def test_with_price(self):
        body = client.post("/api/positions/condor-zone", json=dict(self.BODY, price=185)).json()
        assert body["price_zone"] == "max_profit_core"
        assert body["pnl_at_expiry"] == pytest.approx(358.2)
        assert body["position"]["in_core"] is True

    def test_not_a_condor(self):
        body = client.post("/api/positions/condor-zone", json=dict(self.BODY, strategy="Bull Call Spread")).json()
        assert body == {"zone": None}

    def test_non_positive_price_rejected(self):
        response = client.post("/api/positions/condor-zone", json=dict(self.BODY, price=0))
        assert response.status_code == 422


class TestLivePosition:
    def test_condor_view(self):
        response = client.post("/api/positions/live", json={
            "trade": _payload(make_trade()),
            "price": 185.0,
            "quotes": CONDOR_QUOTES,
            "today": "2026-02-20",
        })
        assert response.status_code == 200
        body = response.json()
        assert body["trade_id"] == 101
        assert body["live"]["has_all_quotes"] is True
        assert body["live"]["live_pnl"] == pytest.approx(32.0)
        assert body["risk"]["level"] == 1
        assert body["guidance"]["title"] == "Thesis Working"
        assert [t["id"] for t in body["guidance"]["triggers"]] == ["breakeven", "stop", "max-profit", "time"]

    def test_without_price_or_quotes(self):
        body = client.post("/api/positions/live", json={
            "trade": _payload(make_trade()),
            "today": "2026-02-20",
        }).json()
        assert body["live"]["has_all_quotes"] is False
        assert body["live"]["live_pnl"] is None
        assert body["risk"]["level"] == 3
        assert body["guidance"]["title"] == "Price Input Required"

    def test_zero_price_is_missing(self):
        response = client.post("/api/positions/live", json={
            "trade": _payload(make_trade()),
            "price": 0,
            "today": "2026-02-20",
        })
        assert response.status_code == 200
        body = response.json()
        assert body["risk"]["level"] == 3
        assert body["guidance"]["title"] == "Price Input Required"


# ---------------------------------------------------------------------------
# Scoring and board
# ---------------------------------------------------------------------------

class TestScoring:
    def test_public_rule_list(self):
        response = client.post("/api/scoring", json=_scoring_body([make_trade()], [make_journal()]))
        assert response.status_code == 200
        body = response.json()
        row = body["per_position"][0]
        assert [c["rule_number"] for c in row["checks"]] == [1, 2, 3, 4, 5, 7, 10]
        # win protocol is scored even though it is not shown
        assert row["score"] == 88
        assert body["overall_score"] == 88
        assert body["portfolio"]["total_risk_budget_pass"] is True

    def test_configured_limits(self, custom_limits):
        body = client.post("/api/scoring", json=_scoring_body([make_trade()])).json()
        wall = body["per_position"][0]["checks"][0]
        assert wall["passed"] is False

    def test_missing_account_rejected(self):
        body = _scoring_body([make_trade()])
        del body["account"]
        assert client.post("/api/scoring", json=body).status_code == 422


class TestBoard:
    def test_board(self):
        response = client.post("/api/board", json={
            "positions": [_payload(make_trade()), _payload(make_bull_call(status="WIN"))],
            "account": _payload(make_account()),
            "journals": [_payload(make_journal())],
            "rules": [_payload(r) for r in make_rules()],
            "quotes": CONDOR_QUOTES,
            "prices": {"crm": 185.0},
            "today": "2026-02-20",
        })
        assert response.status_code == 200
        body = response.json()
        assert [p["trade"]["id"] for p in body["positions"]] == [101]
        row = body["positions"][0]
        assert row["price"] == 185.0
        assert row["condor"]["position"]["zone"] == "max_profit_core"
        assert [c["rule_number"] for c in body["scoring"]["per_position"][0]["checks"]] == [1, 2, 3, 4, 5, 7, 10]


# ---------------------------------------------------------------------------
# Broker snapshot
# ---------------------------------------------------------------------------

def _broker_row(occ, conid, quantity, market_price, market_value, average_cost, unrealized):
    return {
        "symbol": occ,
        "contract": f"OPT {occ}",
        "conid": conid,
        "quantity": quantity,
        "market_price": market_price,
        "market_value": market_value,
        "average_cost": average_cost,
        "unrealized_pl": unrealized,
    }


def test_broker_live_model():
    response = client.post("/api/broker/live-model", json={
        "fetched_at": "2026-02-20T08:00:00Z",
        "today": "2026-02-20",
        "positions": [
            _broker_row("CRM 260227P00160000", 1, 1, 0.6, 60, 134.55, -20),
            _broker_row("CRM 260227P00165000", 2, -1, 1.2, -120, 205.45, 30),
            _broker_row("CRM 260227C00205000", 3, -1, 1.1, -110, 205.45, 40),
            _broker_row("CRM 260227C00210000", 4, 1, 0.5, 50, 134.55, -10),
        ],
        "summary": {"NetLiquidation": "7744.43"},
    })
    assert response.status_code == 200
    body = response.json()
    assert body["option_legs"] == 4
    assert body["derived_trades"] == 1
    position = body["open_positions"][0]
    assert position["strategy"] == "Iron Condor"
    assert position["legs"] == "160P / 165P / 205C / 210C"
    assert position["expiry_date"] == "2026-02-27"
    assert body["account_summary"]["net_liquidation"] == pytest.approx(7744.43)
    assert body["option_quotes"]["CRM 27FEB26 165 P"]["source"] == "broker"
