"""
FundWars — World Tick Orchestrator

One call per "advance time" action. Reads snapshots, returns a
WorldTickResult; nothing is mutated and there is no hidden state, so a
seeded random source reproduces a tick exactly.

Order within a tick:
    1. Quarter boundary (week % 13 == 0): simulate every owned company
    2. Every owned company: drop an expired event, then roll for a new one
       against the post-update snapshot
    3. Regenerate warnings from the incoming player state
    4. Independent rolls: NPC drama 10%, rival action 5%, market event 2%
"""

import logging
from dataclasses import replace
from typing import Optional, Sequence

from ..models import (
    NPC,
    MarketVolatility,
    PlayerState,
    RivalFund,
    WorldTickResult,
)
from .company_events import check_company_event, clear_expired_event
from .deal_lifecycle import initialize_portfolio_company_fields
from .narrative_events import check_market_event, check_npc_drama, simulate_rival_action
from .quarterly import simulate_quarter
from .randomness import RandomSource, chance, default_random_source
from .risk_warnings import generate_warnings

logger = logging.getLogger("fundwars.world")

WEEKS_PER_QUARTER = 13
NPC_DRAMA_PROBABILITY = 0.10
RIVAL_ACTION_PROBABILITY = 0.05
MARKET_EVENT_PROBABILITY = 0.02


def is_quarter_end(week: int) -> bool:
    return week % WEEKS_PER_QUARTER == 0


def tick(
    player: PlayerState,
    rival_funds: Sequence[RivalFund],
    npcs: Sequence[NPC],
    current_week: int,
    volatility: MarketVolatility,
    rng: Optional[RandomSource] = None,
) -> WorldTickResult:
    """
    Advance the world by one week.

    Args:
        player: Player snapshot (portfolio included).
        rival_funds: Competing funds.
        npcs: Characters eligible for drama.
        current_week: Week being processed.
        volatility: Market regime.
        rng: Random source; an unseeded generator when omitted.

    Returns:
        WorldTickResult with full updated snapshots for every company that
        changed this tick.
    """
    rng = rng or default_random_source()
    quarter = is_quarter_end(current_week)

    company_updates = {}
    new_events = []
    expired = []

    for company in player.portfolio:
        if not company.deal_closed:
            continue

        updated = None
        if quarter:
            updated = simulate_quarter(company, volatility, rng)

        current, expired_id = clear_expired_event(updated or company, current_week)
        if expired_id is not None:
            expired.append(expired_id)
            updated = current

        event = check_company_event(company, updated, current_week, rng)
        if event is not None:
            new_events.append(event)
            updated = replace(initialize_portfolio_company_fields(current), active_event=event)

        if updated is not None:
            company_updates[company.id] = updated

    warnings = generate_warnings(player, current_week)

    drama = None
    if chance(rng, NPC_DRAMA_PROBABILITY):
        drama = check_npc_drama(npcs, current_week, rng)

    rival_action = None
    if chance(rng, RIVAL_ACTION_PROBABILITY):
        rival_action = simulate_rival_action(rival_funds, player, rng)

    market_change = None
    if chance(rng, MARKET_EVENT_PROBABILITY):
        market_change = check_market_event(volatility, rng)

    logger.info(
        f"Week {current_week} tick: quarter={quarter} updates={len(company_updates)} "
        f"events={len(new_events)} warnings={len(warnings)} "
        f"drama={drama.id if drama else None} rival={rival_action.action if rival_action else None} "
        f"market={market_change.type if market_change else None}"
    )

    return WorldTickResult(
        week=current_week,
        company_updates=company_updates,
        new_events=tuple(new_events),
        expired_event_ids=tuple(expired),
        warnings=tuple(warnings),
        npc_drama=drama,
        rival_action=rival_action,
        market_change=market_change,
        quarter_processed=quarter,
    )
