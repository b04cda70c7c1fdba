"""Scoring service: rule compliance per open position plus portfolio limits."""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from loguru import logger

from tradeguard.models.trade import AccountSnapshot, JournalEntry, Rule, RuleSeverity, Trade
from tradeguard.utils.formatting import round_half_up

# Computed for every position but left out of the per-position listing
# handed to clients (informational only).
HIDDEN_RULE_NUMBERS = frozenset({9})

MAX_CONTRACTS = 1


class CheckState(str, Enum):
    COMPUTED = "computed"
    DISABLED_OVERRIDE = "disabled_override"


@dataclass(frozen=True)
class ScoringLimits:
    max_risk_pct: float = 2.0
    small_risk_pct: float = 1.0
    approved_strategies: Tuple[str, ...] = ("Bull Call Spread", "Iron Condor")
    risk_budget_pct: float = 5.0
    max_positions: int = 3
    max_earnings: int = 1
    win_protocol_pct: float = 30.0


@dataclass(frozen=True)
class RuleCheck:
    rule_number: int
    title: str
    severity: str
    passed: bool
    detail: str
    state: CheckState = CheckState.COMPUTED


@dataclass(frozen=True)
class RuleCheckResult:
    trade_id: int
    ticker: str
    score: int
    critical_violations: int
    checks: List[RuleCheck] = field(default_factory=list)


@dataclass(frozen=True)
class PortfolioRuleChecks:
    total_risk_budget_pass: bool
    total_risk_pct: float
    total_risk_amount: float
    position_count_pass: bool
    position_count: int
    earnings_concentration_pass: bool
    earnings_count: int


@dataclass(frozen=True)
class ScoringResult:
    per_position: List[RuleCheckResult]
    portfolio: PortfolioRuleChecks
    overall_score: int


def pct(value: float, base: float) -> float:
    """value as a percentage of base; 0 when base is 0."""
    if not base:
        return 0.0
    return value / base * 100


# ---------------------------------------------------------------------------
# Per-position checks
# ---------------------------------------------------------------------------

def _position_checks(
    trade: Trade,
    all_trades: Sequence[Trade],
    account: AccountSnapshot,
    journaled: set,
    limits: ScoringLimits,
) -> List[RuleCheck]:
    nav = account.end_nav
    risk_pct = pct(trade.max_risk, nav)
    bearish = trade.is_bearish
    has_exit = bool((trade.exit_trigger or "").strip())
    approved = trade.strategy in limits.approved_strategies
    small_risk = trade.max_risk < nav * limits.small_risk_pct / 100
    same_day = sum(
        1 for other in all_trades
        if other.id != trade.id and other.entry_date == trade.entry_date
    )
    unrealized = trade.unrealized_pl or 0
    win_hit = unrealized > trade.max_risk * limits.win_protocol_pct / 100
    has_journal = trade.id in journaled

    if bearish:
        banned_detail = "Bearish direction is blocked"
    elif trade.contracts > MAX_CONTRACTS:
        banned_detail = f"Contracts {trade.contracts} exceeds max {MAX_CONTRACTS}"
    else:
        banned_detail = "Direction and sizing pass"

    if approved:
        strategy_detail = f"{trade.strategy} is approved"
    elif small_risk:
        strategy_detail = f"Small-risk exception (<{limits.small_risk_pct:g}% NAV)"
    else:
        strategy_detail = "Strategy not approved and risk too large"

    return [
        RuleCheck(
            1, f"{limits.max_risk_pct:g}% Wall", RuleSeverity.CRITICAL.value,
            risk_pct <= limits.max_risk_pct,
            f"{trade.max_risk:.2f} risk = {risk_pct:.2f}% NAV",
        ),
        RuleCheck(
            2, "50% Stop", RuleSeverity.CRITICAL.value, has_exit,
            "Exit trigger present" if has_exit else "Missing explicit exit trigger",
        ),
        RuleCheck(
            3, "Not Banned", RuleSeverity.CRITICAL.value,
            not bearish and trade.contracts <= MAX_CONTRACTS, banned_detail,
        ),
        RuleCheck(4, "Approved Strategy", RuleSeverity.HIGH.value, approved or small_risk, strategy_detail),
        RuleCheck(
            5, "24hr Lockout", RuleSeverity.HIGH.value, same_day == 0,
            "No same-day additional entries" if same_day == 0 else f"{same_day} other trades opened same day",
        ),
        RuleCheck(
            7, "Direction Match", RuleSeverity.MEDIUM.value, not bearish,
            "Bearish direction violates profile" if bearish else "Direction aligned",
        ),
        RuleCheck(
            9, "Win Protocol", RuleSeverity.INFO.value, win_hit,
            f"At/above +{limits.win_protocol_pct:g}% trigger" if win_hit
            else f"Not yet at +{limits.win_protocol_pct:g}% trigger",
        ),
        RuleCheck(
            10, "Journal", RuleSeverity.INFO.value, has_journal,
            "Journal entry exists" if has_journal else "No journal entry found",
        ),
    ]


def apply_rule_catalog(check: RuleCheck, rules_by_number: Dict[int, Rule]) -> RuleCheck:
    """Overlay the catalog's title/severity; a disabled rule always passes."""
    rule = rules_by_number.get(check.rule_number)
    if rule is None:
        return check
    if not rule.enabled:
        return replace(
            check,
            title=rule.title,
            severity=rule.severity,
            passed=True,
            detail="Rule disabled",
            state=CheckState.DISABLED_OVERRIDE,
        )
    return replace(check, title=rule.title, severity=rule.severity)


def _score(checks: List[RuleCheck]) -> int:
    if not checks:
        return 100
    passed = sum(1 for check in checks if check.passed)
    return round_half_up(passed / len(checks) * 100)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def score_open_positions(
    open_trades: Sequence[Trade],
    all_trades: Sequence[Trade],
    account: AccountSnapshot,
    journals: Iterable[JournalEntry],
    rules: Iterable[Rule],
    limits: Optional[ScoringLimits] = None,
) -> ScoringResult:
    """Score each open position against the rule battery and check portfolio limits.

    Every check (rule 9 included) counts toward the score. Use
    ``public_view`` before handing results to clients.
    """
    limits = limits or ScoringLimits()
    rules_by_number = {rule.rule_number: rule for rule in rules}
    journaled = {entry.trade_id for entry in journals}

    per_position = []
    for trade in open_trades:
        checks = [
            apply_rule_catalog(check, rules_by_number)
            for check in _position_checks(trade, all_trades, account, journaled, limits)
        ]
        critical = sum(
            1 for check in checks
            if not check.passed and check.severity == RuleSeverity.CRITICAL.value
        )
        per_position.append(RuleCheckResult(
            trade_id=trade.id,
            ticker=trade.ticker,
            score=_score(checks),
            critical_violations=critical,
            checks=checks,
        ))

    total_risk = sum(trade.max_risk for trade in open_trades)
    total_risk_pct = pct(total_risk, account.end_nav)
    earnings = sum(1 for trade in open_trades if trade.catalyst == "Earnings")

    portfolio = PortfolioRuleChecks(
        total_risk_budget_pass=total_risk_pct <= limits.risk_budget_pct,
        total_risk_pct=total_risk_pct,
        total_risk_amount=total_risk,
        position_count_pass=len(open_trades) <= limits.max_positions,
        position_count=len(open_trades),
        earnings_concentration_pass=earnings <= limits.max_earnings,
        earnings_count=earnings,
    )

    if per_position:
        overall = round_half_up(sum(row.score for row in per_position) / len(per_position))
    else:
        overall = 100

    logger.debug(
        f"Scored {len(per_position)} open positions: overall={overall}, "
        f"risk={total_risk_pct:.2f}% NAV"
    )
    return ScoringResult(per_position=per_position, portfolio=portfolio, overall_score=overall)


def public_checks(checks: Iterable[RuleCheck]) -> List[RuleCheck]:
    return [check for check in checks if check.rule_number not in HIDDEN_RULE_NUMBERS]


def public_view(result: ScoringResult) -> ScoringResult:
    """Drop hidden rules from each position's listing; scores are unchanged."""
    return replace(
        result,
        per_position=[replace(row, checks=public_checks(row.checks)) for row in result.per_position],
    )
