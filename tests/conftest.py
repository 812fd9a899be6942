"""Shared test fixtures for FundWars."""

import sys
import os
import pytest

# Add package root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from fundwars.models import (
    NPC,
    CompanyActiveEvent,
    DealPhase,
    EventSeverity,
    EventType,
    PlayerState,
    PortfolioCompany,
    RivalFund,
    RivalStrategy,
)
from fundwars.engines.randomness import FixedRandomSource, SequenceRandomSource

GOOD_PITCH = (
    "Our thesis: Acme Logistics is a market leader with 20% EBITDA margins and a "
    "management team we know well. We enter at an 8x multiple, drive value creation via "
    "pricing and route density, and see a 24% IRR on a strategic exit in 5 years. "
    "The key risk is customer concentration, which we mitigate with covenant headroom."
)

LONG_ANSWER = (
    "Specifically, the downside case has revenue falling 20%, EBITDA margin compressing "
    "to 15%, and we still hold 1.4x coverage with covenant headroom through year three."
)


@pytest.fixture
def company():
    """An owned, fully initialized LBO company."""
    return PortfolioCompany(
        id="pc_1",
        name="Acme Logistics",
        sector="Industrials",
        deal_type="LBO",
        revenue=100_000_000,
        ebitda=20_000_000,
        ebitda_margin=0.20,
        debt=60_000_000,
        cash_balance=8_000_000,
        current_valuation=200_000_000,
        investment_cost=150_000_000,
        revenue_growth=0.10,
        employee_count=500,
        customer_churn=0.05,
        runway_months=999,
        ceo_performance=70,
        board_alignment=80,
        deal_phase=DealPhase.WON,
        is_analyzed=True,
        deal_closed=True,
        acquisition_week=1,
    )


@pytest.fixture
def small_company():
    """An owned company below every valuation-gated event."""
    return PortfolioCompany(
        id="pc_small",
        name="Tiny Widgets",
        revenue=20_000_000,
        ebitda=2_000_000,
        ebitda_margin=0.10,
        cash_balance=1_000_000,
        current_valuation=20_000_000,
        revenue_growth=0.05,
        employee_count=100,
        customer_churn=0.05,
        ceo_performance=70,
        board_alignment=80,
        deal_phase=DealPhase.WON,
        deal_closed=True,
    )


@pytest.fixture
def revenue_drop_event():
    return CompanyActiveEvent(
        id="revenue_drop_pc_1_w10",
        company_id="pc_1",
        type=EventType.REVENUE_DROP,
        title="Revenue Miss",
        severity=EventSeverity.WARNING,
        expires_week=13,
        consult_advisor=True,
    )


@pytest.fixture
def player(company):
    return PlayerState(cash=25_000, reputation=55, portfolio=(company,))


@pytest.fixture
def npcs():
    return [
        NPC(id="sarah", name="Sarah Chen", relationship=60),
        NPC(id="hunter", name="Hunter Sterling", relationship=45),
        NPC(id="chad", name="Chad Worthington III", relationship=50),
        NPC(id="girlfriend_emma", name="Emma", relationship=70),
        NPC(id="rival_marcus", name="Marcus Vane", relationship=20, is_rival=True),
    ]


@pytest.fixture
def rival_funds():
    return [
        RivalFund(id="kkr_clone", name="Kessler Kravitz & Roth", strategy=RivalStrategy.PREDATORY),
        RivalFund(id="granite", name="Granite Peak Advisors", strategy=RivalStrategy.CONSERVATIVE),
    ]


@pytest.fixture
def midpoint_rng():
    """0.5 on every draw: no variance, no event, no tick side rolls."""
    return FixedRandomSource(0.5)


@pytest.fixture
def scripted_rng():
    """Factory for scripted draw sequences."""
    def _make(values, default=0.5):
        return SequenceRandomSource(values, default=default)
    return _make
