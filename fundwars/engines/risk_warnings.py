"""
FundWars — Warning Generator

Recomputes the full list of risk warnings from player state. Stateless:
the same input always yields the same list, and callers replace (never
merge) the previous list.

Threshold table:
    Cash          < 5000            CRITICAL < 1000,    else HIGH
    Health        < 30              CRITICAL < 15,      else HIGH
    Stress        > 80              CRITICAL > 90,      else HIGH
    Reputation    < 30              CRITICAL < 15,      else HIGH
    Loan burden   weekly interest > 20% of cash   HIGH > 40%, else MEDIUM
    Board crisis  per company                     HIGH
    Event deadline  weeks left <= 2               CRITICAL <= 1, else HIGH
    Runway        < 12 months while EBITDA < 0    CRITICAL < 6,  else HIGH
"""

from ..models import PlayerState, RiskWarning, WarningSeverity, WarningType
from .formatting import format_thousands

CASH_THRESHOLD = 5000
CASH_CRITICAL = 1000
HEALTH_THRESHOLD = 30
HEALTH_CRITICAL = 15
STRESS_THRESHOLD = 80
STRESS_CRITICAL = 90
REPUTATION_THRESHOLD = 30
REPUTATION_CRITICAL = 15
LOAN_BURDEN_RATIO = 0.2
LOAN_BURDEN_HIGH_RATIO = 0.4
DEADLINE_WEEKS = 2
RUNWAY_THRESHOLD = 12
RUNWAY_CRITICAL = 6


def _player_warnings(player: PlayerState) -> list[RiskWarning]:
    warnings = []

    if player.cash < CASH_THRESHOLD:
        warnings.append(RiskWarning(
            id="low_cash",
            type=WarningType.CASH,
            severity=WarningSeverity.CRITICAL if player.cash < CASH_CRITICAL else WarningSeverity.HIGH,
            title="Low Cash Balance",
            message=(
                f"Only ${format_thousands(player.cash)} remaining. "
                "Consider taking a loan or reducing lifestyle."
            ),
            current_value=player.cash,
            threshold=CASH_THRESHOLD,
            suggested_action="Open the financial menu to take a bridge loan",
        ))

    if player.health < HEALTH_THRESHOLD:
        warnings.append(RiskWarning(
            id="low_health",
            type=WarningType.HEALTH,
            severity=WarningSeverity.CRITICAL if player.health < HEALTH_CRITICAL else WarningSeverity.HIGH,
            title="Health Crisis",
            message=f"Your health is at {player.health}%. Burnout is imminent. Take time off.",
            current_value=player.health,
            threshold=HEALTH_THRESHOLD,
            suggested_action="Take a vacation",
        ))

    if player.stress > STRESS_THRESHOLD:
        warnings.append(RiskWarning(
            id="high_stress",
            type=WarningType.STRESS,
            severity=WarningSeverity.CRITICAL if player.stress > STRESS_CRITICAL else WarningSeverity.HIGH,
            title="Stress Overload",
            message=f"Stress at {player.stress}%. You're on the edge of a breakdown.",
            current_value=player.stress,
            threshold=STRESS_THRESHOLD,
            suggested_action="Reduce workload or use stress relief options",
        ))

    if player.reputation < REPUTATION_THRESHOLD:
        warnings.append(RiskWarning(
            id="low_reputation",
            type=WarningType.REPUTATION,
            severity=(
                WarningSeverity.CRITICAL if player.reputation < REPUTATION_CRITICAL
                else WarningSeverity.HIGH
            ),
            title="Reputation Damage",
            message=f"Your reputation is at {player.reputation}. People are losing faith in you.",
            current_value=player.reputation,
            threshold=REPUTATION_THRESHOLD,
            suggested_action="Focus on relationship building and successful deals",
        ))

    if player.loan_balance > 0:
        weekly_interest = player.loan_balance * player.loan_rate / 52
        if weekly_interest > player.cash * LOAN_BURDEN_RATIO:
            warnings.append(RiskWarning(
                id="loan_burden",
                type=WarningType.LOAN,
                severity=(
                    WarningSeverity.HIGH if weekly_interest > player.cash * LOAN_BURDEN_HIGH_RATIO
                    else WarningSeverity.MEDIUM
                ),
                title="Heavy Debt Burden",
                message=f"Weekly interest of ${format_thousands(weekly_interest)} is eating your income.",
                current_value=player.loan_balance,
                suggested_action="Pay down debt when possible",
            ))

    return warnings


def _portfolio_warnings(player: PlayerState, current_week: int) -> list[RiskWarning]:
    warnings = []

    for company in player.portfolio:
        if company.has_board_crisis:
            warnings.append(RiskWarning(
                id=f"crisis_{company.id}",
                type=WarningType.PORTFOLIO,
                severity=WarningSeverity.HIGH,
                title=f"Crisis at {company.name}",
                message=f"{company.name} has an active board crisis requiring your attention.",
                suggested_action=f"Open the portfolio and address {company.name}",
            ))

        event = company.active_event
        if event is not None:
            weeks_left = event.expires_week - current_week
            if weeks_left <= DEADLINE_WEEKS:
                plural = "" if weeks_left == 1 else "s"
                warnings.append(RiskWarning(
                    id=f"event_deadline_{company.id}",
                    type=WarningType.DEADLINE,
                    severity=WarningSeverity.CRITICAL if weeks_left <= 1 else WarningSeverity.HIGH,
                    title=f"Decision Required: {company.name}",
                    message=f"{event.title} requires a decision in {weeks_left} week{plural}.",
                    current_value=weeks_left,
                    threshold=DEADLINE_WEEKS,
                    suggested_action=(
                        f"Address the {event.type.value.replace('_', ' ').lower()} at {company.name}"
                    ),
                ))

        runway = company.runway_months
        if runway is not None and runway < RUNWAY_THRESHOLD and company.ebitda < 0:
            warnings.append(RiskWarning(
                id=f"runway_{company.id}",
                type=WarningType.PORTFOLIO,
                severity=WarningSeverity.CRITICAL if runway < RUNWAY_CRITICAL else WarningSeverity.HIGH,
                title=f"{company.name} Running Low on Cash",
                message=f"Only {runway} months of runway remaining. Consider additional funding.",
                current_value=runway,
                threshold=RUNWAY_THRESHOLD,
                suggested_action=f"Review {company.name} financials and consider a capital injection",
            ))

    return warnings


def generate_warnings(player: PlayerState, current_week: int) -> list[RiskWarning]:
    """
    Build every active warning for the player.

    Args:
        player: Current player snapshot including the portfolio.
        current_week: Simulated week, used for event deadlines.

    Returns:
        Warnings in a stable order: player-level first, then per company
        in portfolio order.
    """
    return _player_warnings(player) + _portfolio_warnings(player, current_week)
