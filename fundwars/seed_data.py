"""Starter world for FundWars: NPC cast, rival funds, and a sample player with a small portfolio."""

import sys
import os
from dataclasses import replace
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from fundwars.engines.formatting import format_currency, format_multiple
from fundwars.engines.randomness import default_random_source
from fundwars.engines.world_tick import tick
from fundwars.models import (
    NPC,
    DealPhase,
    MarketVolatility,
    PlayerState,
    PortfolioCompany,
    RivalFund,
    RivalStrategy,
)

NPCS = [
    NPC(id="sarah", name="Sarah Chen", role="Senior Associate", relationship=60, trust=55),
    NPC(id="hunter", name="Hunter Sterling", role="Associate", relationship=45, trust=35),
    NPC(id="chad", name="Chad Worthington III", role="Analyst", relationship=50, trust=40),
    NPC(id="girlfriend_emma", name="Emma", role="Partner (personal)", relationship=70, trust=70),
    NPC(id="rival_marcus", name="Marcus Vane", role="Rival Partner", relationship=20, trust=10, is_rival=True),
]

RIVAL_FUNDS = [
    RivalFund(id="kkr_clone", name="Kessler Kravitz & Roth", strategy=RivalStrategy.PREDATORY, reputation=75),
    RivalFund(id="apex", name="Apex Capital Partners", strategy=RivalStrategy.AGGRESSIVE, reputation=60),
    RivalFund(id="harbor", name="Harborview Equity", strategy=RivalStrategy.OPPORTUNISTIC, reputation=55),
    RivalFund(id="granite", name="Granite Peak Advisors", strategy=RivalStrategy.CONSERVATIVE, reputation=65),
]

COMPANIES = [
    PortfolioCompany(
        id="pc_1", name="Acme Logistics", sector="Industrials", deal_type="LBO",
        revenue=100_000_000, ebitda=20_000_000, ebitda_margin=0.20, debt=60_000_000,
        cash_balance=8_000_000, current_valuation=200_000_000, investment_cost=150_000_000,
        revenue_growth=0.10, employee_count=500, customer_churn=0.05,
        ceo_performance=70, board_alignment=80,
        deal_phase=DealPhase.WON, is_analyzed=True, deal_closed=True, acquisition_week=1,
    ),
    PortfolioCompany(
        id="pc_2", name="BrightPath SaaS", sector="Technology", deal_type="GROWTH_EQUITY",
        revenue=40_000_000, ebitda=6_000_000, ebitda_margin=0.15, debt=5_000_000,
        cash_balance=12_000_000, current_valuation=90_000_000, investment_cost=60_000_000,
        revenue_growth=0.25, employee_count=180, customer_churn=0.08,
        ceo_performance=80, board_alignment=75,
        deal_phase=DealPhase.WON, is_analyzed=True, deal_closed=True, acquisition_week=5,
    ),
    PortfolioCompany(
        id="pc_3", name="Meridian Health Clinics", sector="Healthcare", deal_type="LBO",
        revenue=75_000_000, ebitda=9_000_000, debt=45_000_000,
        current_valuation=110_000_000,
        revenue_growth=0.04, deal_phase=DealPhase.BIDDING, is_analyzed=True,
    ),
]


def sample_player() -> PlayerState:
    """A mid-career associate holding the sample portfolio."""
    return PlayerState(
        cash=25_000,
        health=85,
        stress=35,
        reputation=55,
        ethics=60,
        audit_risk=5,
        loan_balance=40_000,
        loan_rate=0.08,
        portfolio=tuple(COMPANIES),
    )


def run_demo(weeks: int = 13, seed: int = 42):
    """Advance the sample world `weeks` weeks and print what happened."""
    rng = default_random_source(seed)
    player = sample_player()

    for week in range(1, weeks + 1):
        result = tick(player, RIVAL_FUNDS, NPCS, week, MarketVolatility.NORMAL, rng)
        portfolio = tuple(result.company_updates.get(c.id, c) for c in player.portfolio)
        player = replace(player, portfolio=portfolio)

        for event in result.new_events:
            print(f"  Week {week}: [{event.severity.value}] {event.title}")
        if result.npc_drama:
            print(f"  Week {week}: drama - {result.npc_drama.title}")
        if result.rival_action:
            print(f"  Week {week}: {result.rival_action.rival_name} - {result.rival_action.action}")
        if result.market_change:
            print(f"  Week {week}: market - {result.market_change.description}")
        if result.quarter_processed:
            print(f"  Week {week}: quarter closed")

    for company in player.portfolio:
        if company.deal_closed:
            print(f"  {company.name}: revenue {format_currency(company.revenue)}, "
                  f"valuation {format_currency(company.current_valuation)}, "
                  f"leverage {format_multiple(company.leverage)}")
    return player


if __name__ == "__main__":
    print("Simulating one quarter of the sample world...")
    run_demo()
    print("Done!")
