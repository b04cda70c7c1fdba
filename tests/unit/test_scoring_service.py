"""Unit tests for rule scoring and portfolio checks."""

from datetime import date

import pytest

from tradeguard.models.trade import Rule
from tradeguard.services.scoring_service import (
    CheckState,
    ScoringLimits,
    pct,
    public_view,
    score_open_positions,
)
from tests.conftest import make_account, make_bull_call, make_journal, make_rules, make_trade


def _score(trades, all_trades=None, account=None, journals=(), rules=None, limits=None):
    return score_open_positions(
        trades,
        trades if all_trades is None else all_trades,
        account or make_account(),
        list(journals),
        make_rules() if rules is None else rules,
        limits,
    )


def _checks(result, index=0):
    return {c.rule_number: c for c in result.per_position[index].checks}


# ---------------------------------------------------------------------------
# Per-position checks
# ---------------------------------------------------------------------------

class TestPositionChecks:
    def test_full_battery_computed(self):
        result = _score([make_trade()])
        assert [c.rule_number for c in result.per_position[0].checks] == [1, 2, 3, 4, 5, 7, 9, 10]

    def test_clean_condor(self):
        checks = _checks(_score([make_trade()], journals=[make_journal()]))
        assert checks[1].passed
        assert checks[1].detail == "141.80 risk = 1.42% NAV"
        assert checks[2].detail == "Exit trigger present"
        assert checks[3].detail == "Direction and sizing pass"
        assert checks[4].detail == "Iron Condor is approved"
        assert checks[5].detail == "No same-day additional entries"
        assert checks[7].detail == "Direction aligned"
        assert checks[10].detail == "Journal entry exists"

    def test_two_percent_wall(self):
        result = _score([make_trade(max_risk=300)])
        checks = _checks(result)
        assert not checks[1].passed
        assert checks[1].detail == "300.00 risk = 3.00% NAV"
        assert result.per_position[0].critical_violations == 1

    def test_missing_exit_trigger(self):
        checks = _checks(_score([make_trade(exit_trigger="   ")]))
        assert not checks[2].passed
        assert checks[2].detail == "Missing explicit exit trigger"

    def test_bearish_is_banned(self):
        checks = _checks(_score([make_trade(direction="Bearish")]))
        assert not checks[3].passed
        assert checks[3].detail == "Bearish direction is blocked"
        assert not checks[7].passed
        assert checks[7].detail == "Bearish direction violates profile"

    def test_oversized_contracts(self):
        checks = _checks(_score([make_trade(contracts=2)]))
        assert not checks[3].passed
        assert checks[3].detail == "Contracts 2 exceeds max 1"

    def test_small_risk_exception(self):
        checks = _checks(_score([make_trade(strategy="Bear Call Spread", max_risk=50)]))
        assert checks[4].passed
        assert checks[4].detail == "Small-risk exception (<1% NAV)"

    def test_unapproved_strategy(self):
        checks = _checks(_score([make_trade(strategy="Bear Call Spread", max_risk=150)]))
        assert not checks[4].passed
        assert checks[4].detail == "Strategy not approved and risk too large"

    def test_same_day_lockout(self):
        first = make_trade()
        second = make_bull_call(entry_date=first.entry_date)
        checks = _checks(_score([first], all_trades=[first, second]))
        assert not checks[5].passed
        assert checks[5].detail == "1 other trades opened same day"

    def test_win_protocol(self):
        checks = _checks(_score([make_trade(unrealized_pl=50)]))
        assert checks[9].passed
        assert checks[9].detail == "At/above +30% trigger"

    def test_zero_nav_treats_risk_as_zero_pct(self):
        checks = _checks(_score([make_trade()], account=make_account(end_nav=0)))
        assert checks[1].passed
        assert checks[1].detail == "141.80 risk = 0.00% NAV"


# ---------------------------------------------------------------------------
# Rule catalog overrides
# ---------------------------------------------------------------------------

class TestRuleCatalog:
    def test_disabled_rule_forces_pass(self):
        result = _score([make_trade(max_risk=900)], rules=make_rules(disabled={1}))
        check = _checks(result)[1]
        assert check.passed
        assert check.detail == "Rule disabled"
        assert check.state == CheckState.DISABLED_OVERRIDE
        assert result.per_position[0].critical_violations == 0

    def test_disabled_rule_stays_in_result(self):
        result = _score([make_trade()], rules=make_rules(disabled={9}))
        assert 9 in _checks(result)

    def test_catalog_overrides_title_and_severity(self):
        rules = [Rule(rule_number=1, title="Risk Wall", severity="high")]
        result = _score([make_trade(max_risk=900)], rules=rules)
        check = _checks(result)[1]
        assert (check.title, check.severity) == ("Risk Wall", "high")
        assert check.state == CheckState.COMPUTED
        assert result.per_position[0].critical_violations == 0

    def test_absent_rule_keeps_defaults(self):
        check = _checks(_score([make_trade()], rules=[]))[2]
        assert (check.title, check.severity) == ("50% Stop", "critical")


# ---------------------------------------------------------------------------
# Scores
# ---------------------------------------------------------------------------

class TestScores:
    def test_score_counts_every_check(self):
        # rules 9 and 10 fail: 6 of 8
        assert _score([make_trade()]).per_position[0].score == 75

    def test_half_rounds_up(self):
        # rules 2, 9 and 10 fail: 5 of 8 = 62.5
        assert _score([make_trade(exit_trigger="")]).per_position[0].score == 63

    def test_overall_is_mean(self):
        a = make_trade(id=1, entry_date=date(2026, 2, 2))
        b = make_trade(id=2, entry_date=date(2026, 2, 3), exit_trigger="")
        result = _score([a, b])
        assert [row.score for row in result.per_position] == [75, 63]
        assert result.overall_score == 69

    def test_no_open_positions_is_perfect(self):
        result = _score([])
        assert result.overall_score == 100
        assert result.per_position == []
        assert result.portfolio.total_risk_pct == 0


# ---------------------------------------------------------------------------
# Portfolio
# ---------------------------------------------------------------------------

class TestPortfolio:
    def test_risk_budget(self):
        trades = [
            make_trade(id=1, max_risk=300, entry_date=date(2026, 2, 2)),
            make_trade(id=2, max_risk=300, entry_date=date(2026, 2, 3)),
        ]
        portfolio = _score(trades).portfolio
        assert portfolio.total_risk_amount == pytest.approx(600)
        assert portfolio.total_risk_pct == pytest.approx(6.0, abs=1e-9)
        assert portfolio.total_risk_budget_pass is False

    def test_position_count(self):
        trades = [make_trade(id=i, max_risk=10) for i in range(4)]
        portfolio = _score(trades).portfolio
        assert portfolio.position_count == 4
        assert portfolio.position_count_pass is False

    def test_earnings_concentration(self):
        trades = [make_trade(id=1, catalyst="Earnings"), make_trade(id=2, catalyst="Earnings")]
        portfolio = _score(trades).portfolio
        assert portfolio.earnings_count == 2
        assert portfolio.earnings_concentration_pass is False

    def test_within_limits(self):
        portfolio = _score([make_trade()]).portfolio
        assert portfolio.total_risk_budget_pass
        assert portfolio.position_count_pass
        assert portfolio.earnings_concentration_pass


# ---------------------------------------------------------------------------
# Limits and public view
# ---------------------------------------------------------------------------

class TestLimits:
    def test_custom_wall(self):
        result = _score([make_trade()], rules=[], limits=ScoringLimits(max_risk_pct=1.0))
        check = _checks(result)[1]
        assert check.title == "1% Wall"
        assert not check.passed

    def test_custom_approved_list(self):
        limits = ScoringLimits(approved_strategies=("Bull Put Spread",))
        check = _checks(_score([make_trade()], limits=limits))[4]
        assert not check.passed


class TestPublicView:
    def test_hides_win_protocol(self):
        result = _score([make_trade()])
        public = public_view(result)
        assert [c.rule_number for c in public.per_position[0].checks] == [1, 2, 3, 4, 5, 7, 10]
        assert public.per_position[0].score == result.per_position[0].score
        assert public.overall_score == result.overall_score


def test_pct_handles_zero_base():
    assert pct(50, 0) == 0
    assert pct(50, 200) == 25
