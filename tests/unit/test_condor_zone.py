"""Unit tests for iron condor geometry, zone bands and expiry P&L."""

import pytest

from tradeguard.models.condor_zone import (
    CondorPriceZone,
    CreditSource,
    classify_iron_condor_price_zone,
    describe_condor_position,
    estimate_iron_condor_pnl_at_expiry,
    get_iron_condor_zone,
)

LEGS = "160P / 165P / 205C / 210C"


def _zone(**overrides):
    params = dict(strategy="Iron Condor", legs=LEGS, breakeven=None, max_profit=200.0, contracts=1)
    params.update(overrides)
    return get_iron_condor_zone(**params)


# ---------------------------------------------------------------------------
# Geometry
# ---------------------------------------------------------------------------

class TestGeometry:
    def test_strikes_and_width(self):
        z = _zone()
        assert (z.lower_wing, z.lower_short, z.upper_short, z.upper_wing) == (160, 165, 205, 210)
        assert z.width == 5

    def test_credit_from_max_profit(self):
        z = _zone(max_profit=200.0)
        assert z.credit_per_share == pytest.approx(2.0)
        assert z.credit_source == CreditSource.PROFIT
        assert z.lower_breakeven == pytest.approx(163.0)
        assert z.upper_breakeven == pytest.approx(207.0)

    def test_credit_scales_with_contracts(self):
        assert _zone(max_profit=400.0, contracts=2).credit_per_share == pytest.approx(2.0)

    def test_falls_back_to_breakeven_credit(self):
        # 900 / 100 = 9 exceeds the 5-wide wings
        z = _zone(max_profit=900.0, breakeven=161.42)
        assert z.credit_source == CreditSource.BREAKEVEN
        assert z.credit_per_share == pytest.approx(3.58)

    def test_estimated_credit_is_flagged(self):
        z = _zone(max_profit=None, breakeven=None)
        assert z.credit_per_share == pytest.approx(1.0)
        assert z.credit_source == CreditSource.ESTIMATE
        assert z.is_estimated

    def test_uneven_wings_use_narrower_width(self):
        z = _zone(legs="155P / 165P / 205C / 208C", max_profit=None)
        assert z.width == 3

    @pytest.mark.parametrize("strategy,legs", [
        ("Bull Call Spread", LEGS),
        ("Iron Condor", "160P / 165P / 205C"),
        ("Iron Condor", "160P / 165P / 170P / 205C"),
        ("Iron Condor", "160P / 210P / 205C / 220C"),   # put side above call short
        ("Iron Condor", ""),
    ])
    def test_not_applicable(self, strategy, legs):
        assert _zone(strategy=strategy, legs=legs) is None

    def test_tolerant_leg_text(self):
        z = _zone(legs="buy 160 p, sell 165p, sell 205 C, buy 210c")
        assert z is not None
        assert z.upper_wing == 210


# ---------------------------------------------------------------------------
# Zone classification
# ---------------------------------------------------------------------------

class TestPriceZones:
    @pytest.mark.parametrize("price,expected", [
        (150, CondorPriceZone.MAX_LOSS_LOW),
        (160, CondorPriceZone.MAX_LOSS_LOW),
        (162, CondorPriceZone.RECOVER_LOW),
        (163, CondorPriceZone.PROFIT_LOW),
        (165, CondorPriceZone.MAX_PROFIT_CORE),
        (185, CondorPriceZone.MAX_PROFIT_CORE),
        (205, CondorPriceZone.MAX_PROFIT_CORE),
        (207, CondorPriceZone.PROFIT_HIGH),
        (209, CondorPriceZone.RECOVER_HIGH),
        (210, CondorPriceZone.MAX_LOSS_HIGH),
    ])
    def test_bands(self, price, expected):
        assert classify_iron_condor_price_zone(price, _zone()) == expected

    def test_bands_are_monotonic(self):
        z = _zone()
        order = list(CondorPriceZone)
        seen = [order.index(classify_iron_condor_price_zone(p / 2, z)) for p in range(280, 460)]
        assert seen == sorted(seen)
        assert set(seen) == set(range(7))


# ---------------------------------------------------------------------------
# Expiry P&L
# ---------------------------------------------------------------------------

class TestExpiryPnl:
    def test_max_profit_inside_core(self):
        z = _zone()
        for price in (165, 185, 205):
            assert estimate_iron_condor_pnl_at_expiry(price, z, 1) == pytest.approx(200.0)

    def test_zero_at_breakevens(self):
        z = _zone()
        assert estimate_iron_condor_pnl_at_expiry(163, z, 1) == pytest.approx(0.0)
        assert estimate_iron_condor_pnl_at_expiry(207, z, 1) == pytest.approx(0.0)

    def test_max_loss_capped_by_width(self):
        z = _zone()
        assert estimate_iron_condor_pnl_at_expiry(100, z, 2) == pytest.approx(-600.0)
        assert estimate_iron_condor_pnl_at_expiry(300, z, 2) == pytest.approx(-600.0)

    def test_decreases_away_from_core(self):
        z = _zone()
        down = [estimate_iron_condor_pnl_at_expiry(p, z, 1) for p in (165, 164, 162, 160)]
        up = [estimate_iron_condor_pnl_at_expiry(p, z, 1) for p in (205, 206, 208, 210)]
        assert down == sorted(down, reverse=True)
        assert up == sorted(up, reverse=True)


# ---------------------------------------------------------------------------
# Position summary
# ---------------------------------------------------------------------------

class TestDescribePosition:
    def test_inside_range(self):
        s = describe_condor_position(185, _zone())
        assert s.in_profit and s.in_core
        assert s.distance_to_breakeven == pytest.approx(22.0)

    def test_outside_range(self):
        s = describe_condor_position(150, _zone())
        assert not s.in_profit
        assert s.zone == CondorPriceZone.MAX_LOSS_LOW
        assert s.distance_to_breakeven == pytest.approx(13.0)
        assert s.distance_pct == pytest.approx(8.7)

    def test_lower_stop_is_mirrored_up(self):
        s = describe_condor_position(185, _zone(), stop_loss=160)
        assert s.stop_down == 160
        assert s.stop_up == pytest.approx(210.0)

    def test_upper_stop_is_mirrored_down(self):
        s = describe_condor_position(185, _zone(), stop_loss=212)
        assert s.stop_up == 212
        assert s.stop_down == pytest.approx(158.0)

    def test_no_stop(self):
        s = describe_condor_position(185, _zone())
        assert s.stop_down is None and s.stop_up is None
