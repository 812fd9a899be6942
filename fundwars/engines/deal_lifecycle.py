"""
FundWars — Deal Lifecycle

Company field defaults, deal-phase transitions and simple return math.

Deal phases move forward only:
    PIPELINE -> ANALYZED -> BIDDING -> WON | LOST
    WALKED_AWAY is reachable from any phase before WON.
Once WON the company is owned; an exit process can start (OWNED -> EXITING)
and be cancelled (EXITING -> OWNED), the only backward move.

MOIC and IRR are the simplified game formulas, not audit-grade.
"""

import math
from dataclasses import replace
from typing import Optional

from ..models import CompanyStatus, DealPhase, PortfolioCompany

# Revenue assumed when a company arrives without one
DEFAULT_REVENUE = 10_000_000
REVENUE_PER_EMPLOYEE = 200_000

DEFAULT_CUSTOMER_CHURN = 0.05
DEFAULT_CEO_PERFORMANCE = 70
DEFAULT_BOARD_ALIGNMENT = 80
INFINITE_RUNWAY = 999

_FORWARD_PHASES = {
    DealPhase.PIPELINE: {DealPhase.ANALYZED, DealPhase.WALKED_AWAY},
    DealPhase.ANALYZED: {DealPhase.BIDDING, DealPhase.WALKED_AWAY},
    DealPhase.BIDDING: {DealPhase.WON, DealPhase.LOST, DealPhase.WALKED_AWAY},
    DealPhase.WON: set(),
    DealPhase.LOST: set(),
    DealPhase.WALKED_AWAY: set(),
}


def initialize_portfolio_company_fields(company: PortfolioCompany) -> PortfolioCompany:
    """
    Fill missing optional fields with game defaults.

    Fields already set are left untouched, so calling this on an
    initialized company returns an equal snapshot.
    """
    revenue = company.revenue or DEFAULT_REVENUE
    updates = {}

    if company.employee_count is None:
        updates["employee_count"] = math.floor(revenue / REVENUE_PER_EMPLOYEE)
    if company.ebitda_margin is None:
        updates["ebitda_margin"] = (company.ebitda or 0) / max(1, company.revenue or 1)
    if company.cash_balance is None:
        updates["cash_balance"] = math.floor((company.ebitda or 0) * 0.5)
    if company.runway_months is None:
        updates["runway_months"] = INFINITE_RUNWAY
    if company.customer_churn is None:
        updates["customer_churn"] = DEFAULT_CUSTOMER_CHURN
    if company.ceo_performance is None:
        updates["ceo_performance"] = DEFAULT_CEO_PERFORMANCE
    if company.board_alignment is None:
        updates["board_alignment"] = DEFAULT_BOARD_ALIGNMENT

    if not updates:
        return company
    return replace(company, **updates)


def get_company_status(company: PortfolioCompany) -> CompanyStatus:
    if company.is_in_exit_process:
        return CompanyStatus.EXITING
    if company.deal_closed:
        return CompanyStatus.OWNED
    return CompanyStatus.PIPELINE


def advance_deal_phase(
    company: PortfolioCompany,
    phase: DealPhase,
    current_week: Optional[int] = None,
) -> PortfolioCompany:
    """
    Move a deal to its next phase.

    Raises:
        ValueError: if the move is not a legal forward transition.
    """
    allowed = _FORWARD_PHASES[company.deal_phase]
    if phase not in allowed:
        raise ValueError(
            f"Illegal deal phase transition {company.deal_phase.value} -> {phase.value} "
            f"for company '{company.id}'"
        )

    updates = {"deal_phase": phase}
    if phase == DealPhase.ANALYZED:
        updates["is_analyzed"] = True
    elif phase == DealPhase.WON:
        updates["deal_closed"] = True
        updates["acquisition_week"] = current_week
    return replace(company, **updates)


def start_exit_process(company: PortfolioCompany, exit_type: str = "STRATEGIC_SALE") -> PortfolioCompany:
    if get_company_status(company) != CompanyStatus.OWNED:
        raise ValueError(f"Company '{company.id}' must be owned to start an exit")
    return replace(company, is_in_exit_process=True, exit_type=exit_type)


def cancel_exit_process(company: PortfolioCompany) -> PortfolioCompany:
    if get_company_status(company) != CompanyStatus.EXITING:
        raise ValueError(f"Company '{company.id}' is not in an exit process")
    return replace(company, is_in_exit_process=False, exit_type=None)


def is_removed_from_portfolio(company: PortfolioCompany) -> bool:
    """LOST and WALKED_AWAY deals drop out of the active portfolio."""
    return company.deal_phase in (DealPhase.LOST, DealPhase.WALKED_AWAY)


# ---------------------------------------------------------------------------
# Returns
# ---------------------------------------------------------------------------

def calculate_company_moic(company: PortfolioCompany) -> float:
    """Current valuation over invested capital; 1.0 when nothing invested."""
    if company.investment_cost <= 0:
        return 1.0
    return company.current_valuation / company.investment_cost


def calculate_irr(entry_value: float, exit_value: float, years: float) -> Optional[float]:
    """Simplified IRR: (exit / entry) ** (1 / years) - 1."""
    if entry_value <= 0 or exit_value <= 0 or years <= 0:
        return None
    return (exit_value / entry_value) ** (1.0 / years) - 1.0
