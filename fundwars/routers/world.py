"""
World Router — /api/world

Stateless endpoints over the world simulation engines. The client sends the
current snapshots and receives the outcome; nothing is stored server-side.

Endpoints:
    POST /tick               advance one week
    POST /warnings           warnings for a player snapshot
    POST /simulate-quarter   one quarter for a single company
    POST /events/resolve     answer a company's active event
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from ..config import Settings, load_settings
from ..engines.company_events import resolve_company_event
from ..engines.deal_lifecycle import initialize_portfolio_company_fields
from ..engines.quarterly import simulate_quarter
from ..engines.randomness import default_random_source
from ..engines.risk_warnings import generate_warnings
from ..engines.world_tick import tick
from ..schemas import ResolveEventRequest, SimulateQuarterRequest, TickRequest, WarningsRequest

router = APIRouter(prefix="/api/world", tags=["World Simulation"])


def _rng(seed: Optional[int], settings: Settings):
    return default_random_source(seed if seed is not None else settings.random_seed)


@router.post("/tick")
def advance_week(req: TickRequest, settings: Settings = Depends(load_settings)):
    """
    Run one world tick: quarterly results on quarter boundaries, company
    events, warnings, NPC drama, rival moves and market shifts.
    """
    return tick(
        req.player,
        req.rival_funds,
        req.npcs,
        req.current_week,
        req.volatility,
        _rng(req.seed, settings),
    )


@router.post("/warnings")
def list_warnings(req: WarningsRequest):
    """Current warnings for the player and their portfolio."""
    return generate_warnings(req.player, req.current_week)


@router.post("/simulate-quarter")
def run_quarter(req: SimulateQuarterRequest, settings: Settings = Depends(load_settings)):
    """Simulate a single quarter for one company, filling missing fields first."""
    company = initialize_portfolio_company_fields(req.company)
    return simulate_quarter(company, req.volatility, _rng(req.seed, settings))


@router.post("/events/resolve")
def resolve_event(req: ResolveEventRequest, settings: Settings = Depends(load_settings)):
    """
    Apply the chosen option to the company's active event.
    Returns the updated company, player stat changes, and whether the risk hit.
    """
    try:
        return resolve_company_event(req.company, req.option_id, _rng(req.seed, settings))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
