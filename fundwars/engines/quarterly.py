"""
FundWars — Company Quarterly Simulator

Advances one portfolio company by one quarter (13 simulated weeks).

Steps:
    1. Annual growth rate = current growth + uniform(-5%, +5%)
    2. Market regime bias (PANIC / CREDIT_CRUNCH / BULL_RUN)
    3. Management bias (weak or strong CEO, misaligned board)
    4. Revenue grows by rate / 4
    5. EBITDA margin drifts (-2pts on 70% of draws, +1pt otherwise)
    6. Valuation = EBITDA x (8 + 20 x max(0, growth))
    7. Headcount reacts to strong growth or sharp decline
    8. Cash += quarterly EBITDA - quarterly debt service (2% of debt)
    9. Runway in months while burning cash, 999 otherwise
   10. Churn, CEO performance and board alignment random-walk

Returns a full new snapshot; the input company is never modified.
"""

import logging
import math
from dataclasses import replace

from ..models import MarketVolatility, PortfolioCompany
from .deal_lifecycle import INFINITE_RUNWAY, initialize_portfolio_company_fields
from .randomness import RandomSource, uniform

logger = logging.getLogger("fundwars.world.quarterly")

VOLATILITY_BIAS = {
    MarketVolatility.NORMAL: 0.0,
    MarketVolatility.BULL_RUN: 0.05,
    MarketVolatility.PANIC: -0.15,
    MarketVolatility.CREDIT_CRUNCH: -0.08,
}

GROWTH_VARIANCE = 0.05
BASE_EBITDA_MULTIPLE = 8
GROWTH_PREMIUM_FACTOR = 20

MARGIN_FLOOR = 0.05
MARGIN_CAP = 0.5
# Share of quarters drifting -0.02 (else +0.01). The web client's balance
# squeezes margins on only 30% of quarters; retune here if they diverge.
MARGIN_PRESSURE_PROBABILITY = 0.7

QUARTERLY_DEBT_SERVICE = 0.02  # ~8% annual / 4

HIRING_GROWTH_TRIGGER = 0.15
LAYOFF_GROWTH_TRIGGER = -0.10
MIN_HEADCOUNT = 10

CHURN_CAP = 0.3
CEO_DROP_ROLL = 0.90  # 10% of draws
CEO_FLOOR = 20
BOARD_DRIFT_ROLL = 0.85  # 15% of draws
BOARD_FLOOR = 20
BOARD_CAP = 100


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def management_bias(ceo_performance: float, board_alignment: float) -> float:
    bias = 0.0
    if ceo_performance < 30:
        bias -= 0.05
    elif ceo_performance > 80:
        bias += 0.03
    if board_alignment < 40:
        bias -= 0.02
    return bias


def simulate_quarter(
    company: PortfolioCompany,
    volatility: MarketVolatility,
    rng: RandomSource,
) -> PortfolioCompany:
    """
    Simulate one quarter for a company.

    Args:
        company: Snapshot to advance (missing optional fields take defaults).
        volatility: Current market regime.
        rng: Random source; draws are consumed in a fixed order.

    Returns:
        New PortfolioCompany snapshot with updated financials.
    """
    company = initialize_portfolio_company_fields(company)

    growth = company.revenue_growth + uniform(rng, -GROWTH_VARIANCE, GROWTH_VARIANCE)
    growth += VOLATILITY_BIAS.get(volatility, 0.0)
    growth += management_bias(company.ceo_performance, company.board_alignment)

    revenue = round(company.revenue * (1 + growth / 4))

    margin_drift = -0.02 if rng.next() < MARGIN_PRESSURE_PROBABILITY else 0.01
    margin = _clamp(company.ebitda_margin + margin_drift, MARGIN_FLOOR, MARGIN_CAP)
    ebitda = round(revenue * margin)

    multiple = BASE_EBITDA_MULTIPLE + max(0.0, growth) * GROWTH_PREMIUM_FACTOR
    valuation = round(ebitda * multiple)

    # Headcount
    employees = company.employee_count
    if growth > HIRING_GROWTH_TRIGGER:
        employees = employees + math.floor(employees * 0.05)
        employee_growth = 0.05
    elif growth < LAYOFF_GROWTH_TRIGGER:
        employees = max(MIN_HEADCOUNT, employees - math.floor(employees * 0.10))
        employee_growth = -0.10
    else:
        employee_growth = 0.0

    # Cash and runway
    cash_flow = ebitda / 4 - company.debt * QUARTERLY_DEBT_SERVICE
    cash = max(0.0, company.cash_balance + cash_flow)
    if ebitda < 0:
        monthly_burn = abs(ebitda) / 12
        runway = math.floor(cash / max(1.0, monthly_burn))
    else:
        runway = INFINITE_RUNWAY

    # Random walks
    churn = company.customer_churn
    if churn > 0:
        churn += (rng.next() - 0.5) * 0.02
    churn = _clamp(churn, 0.0, CHURN_CAP)

    ceo = company.ceo_performance
    if rng.next() > CEO_DROP_ROLL:
        ceo = max(CEO_FLOOR, ceo - 5)

    board = company.board_alignment
    if rng.next() > BOARD_DRIFT_ROLL:
        board += (rng.next() - 0.5) * 10
    board = _clamp(board, BOARD_FLOOR, BOARD_CAP)

    logger.debug(
        f"Quarter for {company.id}: growth={growth:.3f} revenue {company.revenue} -> {revenue}, "
        f"margin {company.ebitda_margin:.3f} -> {margin:.3f}"
    )

    return replace(
        company,
        revenue=revenue,
        revenue_growth=growth,
        ebitda_margin=margin,
        ebitda=ebitda,
        current_valuation=valuation,
        employee_count=employees,
        employee_growth=employee_growth,
        cash_balance=cash,
        runway_months=runway,
        customer_churn=churn,
        ceo_performance=ceo,
        board_alignment=board,
    )
