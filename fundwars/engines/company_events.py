"""
FundWars — Company Event Engine

Decides when a portfolio company gets hit by an event, and resolves the
player's response to it.

Trigger rule (once per company per tick):
    - Skipped while the company holds a non-expired event
    - Base 8%/week, +10% if growth < -10%, +5% if CEO < 40, +5% if board < 50
    - On fire, eligible types are collected from company state and one is
      picked uniformly (COMPETITOR_THREAT when nothing qualifies)
    - The event expires 3 weeks after it fires

EVENT_LIBRARY is the single lookup table for every event type: title,
severity, whether the advisor can be consulted, narrative text and the
options offered to the player.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Optional

from ..models import (
    CompanyActiveEvent,
    EventSeverity,
    EventType,
    PortfolioCompany,
    StatChanges,
)
from .deal_lifecycle import initialize_portfolio_company_fields
from .randomness import RandomSource, pick

logger = logging.getLogger("fundwars.world.events")

BASE_EVENT_PROBABILITY = 0.08
EVENT_LIFETIME_WEEKS = 3

ACTIVIST_VALUATION_FLOOR = 100_000_000
IPO_VALUATION_FLOOR = 50_000_000
IPO_GROWTH_FLOOR = 0.20


@dataclass(frozen=True)
class EventOption:
    id: str
    label: str
    description: str
    outcome_text: str
    stat_changes: StatChanges = field(default_factory=StatChanges)
    # Additive deltas on numeric company fields
    company_deltas: dict = field(default_factory=dict)
    # Multiplicative factors on numeric company fields
    company_factors: dict = field(default_factory=dict)
    # Direct assignments (flags, exit type)
    company_sets: dict = field(default_factory=dict)
    risk: int = 0


@dataclass(frozen=True)
class EventDefinition:
    type: EventType
    title: str
    severity: EventSeverity
    consult_advisor: bool
    description: str
    options: tuple[EventOption, ...]


@dataclass(frozen=True)
class EventResolution:
    company: PortfolioCompany
    option_id: str
    outcome_text: str
    stat_changes: StatChanges
    risk_triggered: bool = False


# ---------------------------------------------------------------------------
# EVENT LIBRARY
# ---------------------------------------------------------------------------

EVENT_LIBRARY: dict[EventType, EventDefinition] = {
    EventType.REVENUE_DROP: EventDefinition(
        type=EventType.REVENUE_DROP,
        title="Revenue Miss",
        severity=EventSeverity.WARNING,
        consult_advisor=True,
        description=(
            "{name} just reported quarterly results: revenue came in below forecast. "
            "Sales blames product, product blames marketing, and the CEO wants an emergency board call."
        ),
        options=(
            EventOption(
                id="fire_sales",
                label="Fire the Sales VP",
                description="Make an example. Send a message.",
                outcome_text="The Sales VP is out. Revenue stabilizes but morale tanks.",
                stat_changes=StatChanges(stress=10),
                company_deltas={"revenue_growth": 0.02, "ceo_performance": -10},
            ),
            EventOption(
                id="pivot_strategy",
                label="Pivot Go-to-Market Strategy",
                description="Invest $2M in new sales infrastructure and marketing.",
                outcome_text="Bold move. Results will take 6 months to show.",
                stat_changes=StatChanges(reputation=5),
                company_deltas={"cash_balance": -2_000_000, "revenue_growth": 0.08},
                risk=30,
            ),
            EventOption(
                id="wait_and_see",
                label="Give them another quarter",
                description="Maybe it was a one-time blip.",
                outcome_text="You chose patience. The board is watching closely.",
                risk=60,
            ),
        ),
    ),
    EventType.KEY_CUSTOMER_LOSS: EventDefinition(
        type=EventType.KEY_CUSTOMER_LOSS,
        title="Major Customer Churning",
        severity=EventSeverity.CRITICAL,
        consult_advisor=True,
        description=(
            "{name}'s largest customer (18% of revenue) is not renewing. "
            "A competitor swooped in with a lower price. The market will notice."
        ),
        options=(
            EventOption(
                id="match_price",
                label="Match the competitor's price",
                description="Kill your margins but save the customer.",
                outcome_text="Customer stays. Your EBITDA takes a 20% hit.",
                company_deltas={"ebitda_margin": -0.05},
                company_factors={"ebitda": 0.8},
            ),
            EventOption(
                id="let_them_go",
                label="Let them walk",
                description="No customer is worth destroying your unit economics.",
                outcome_text="Revenue drops 18%. But your pricing integrity is intact.",
                stat_changes=StatChanges(reputation=-5),
                company_factors={"revenue": 0.82},
                company_sets={"revenue_growth": -0.15},
            ),
            EventOption(
                id="executive_intervention",
                label="Fly out personally",
                description="Drop everything, get on a plane, save the relationship.",
                outcome_text="The customer's CEO respects the hustle. Partial renewal secured.",
                stat_changes=StatChanges(stress=15, reputation=10),
                company_factors={"revenue": 0.92},
            ),
        ),
    ),
    EventType.MANAGEMENT_DEPARTURE: EventDefinition(
        type=EventType.MANAGEMENT_DEPARTURE,
        title="Executive Resignation",
        severity=EventSeverity.WARNING,
        consult_advisor=False,
        description=(
            "{name}'s CFO just handed in their notice and is heading to a competitor. "
            "They know everything about the roadmap."
        ),
        options=(
            EventOption(
                id="counteroffer",
                label="Massive counteroffer",
                description="Double their comp. Throw in more equity.",
                outcome_text="They stay, but everyone knows they were about to leave.",
                company_deltas={"cash_balance": -500_000},
            ),
            EventOption(
                id="let_go_gracefully",
                label="Wish them well",
                description="Hire a search firm, move on.",
                outcome_text="Professional transition. The market respects how you handled it.",
                stat_changes=StatChanges(reputation=5),
                company_deltas={"ceo_performance": -5},
            ),
            EventOption(
                id="enforce_noncompete",
                label="Threaten legal action",
                description="Enforce the non-compete. Make them suffer.",
                outcome_text="Lawyers are expensive and the press is bad, but the competitor backs off.",
                stat_changes=StatChanges(reputation=-10, ethics=-10),
                company_deltas={"cash_balance": -200_000},
            ),
        ),
    ),
    EventType.COMPETITOR_THREAT: EventDefinition(
        type=EventType.COMPETITOR_THREAT,
        title="Competitive Pressure",
        severity=EventSeverity.WARNING,
        consult_advisor=False,
        description="A well-funded competitor launched a product aimed squarely at {name}'s core customers.",
        options=(
            EventOption(
                id="innovate",
                label="Accelerate R&D",
                description="Out-build them.",
                outcome_text="R&D budget increased. New features in the pipeline.",
                company_deltas={"cash_balance": -1_000_000, "revenue_growth": 0.05},
            ),
            EventOption(
                id="acquire",
                label="Acquire the competitor",
                description="If you can't beat them, buy them.",
                outcome_text="Acquisition talks begin. This will be expensive.",
                stat_changes=StatChanges(stress=15),
                risk=40,
            ),
            EventOption(
                id="differentiate",
                label="Focus on enterprise",
                description="Move upmarket where they can't follow.",
                outcome_text="Sales pivots to enterprise. Longer cycles, higher margins.",
                company_deltas={"ebitda_margin": 0.03},
            ),
        ),
    ),
    EventType.ACQUISITION_OPPORTUNITY: EventDefinition(
        type=EventType.ACQUISITION_OPPORTUNITY,
        title="Bolt-On Opportunity",
        severity=EventSeverity.INFO,
        consult_advisor=False,
        description="A smaller rival of {name} is quietly for sale. It would add meaningful revenue.",
        options=(
            EventOption(
                id="acquire_full",
                label="Move aggressively",
                description="Pay up and close fast.",
                outcome_text="Deal closes in 30 days. Integration begins immediately.",
                stat_changes=StatChanges(reputation=5),
                company_deltas={"revenue": 5_000_000, "debt": 15_000_000},
            ),
            EventOption(
                id="negotiate_hard",
                label="Negotiate aggressively",
                description="Squeeze the price.",
                outcome_text="Negotiations drag on. They might walk.",
                stat_changes=StatChanges(stress=10),
                risk=50,
            ),
            EventOption(
                id="pass",
                label="Pass on this one",
                description="Stay disciplined.",
                outcome_text="You stay disciplined. A competitor picks it up.",
            ),
        ),
    ),
    EventType.REGULATORY_ISSUE: EventDefinition(
        type=EventType.REGULATORY_ISSUE,
        title="Regulatory Scrutiny",
        severity=EventSeverity.CRITICAL,
        consult_advisor=True,
        description="Regulators opened an inquiry into {name}'s billing practices.",
        options=(
            EventOption(
                id="full_cooperation",
                label="Full cooperation",
                description="Open the books.",
                outcome_text="Legal fees mount. But regulators appreciate the transparency.",
                stat_changes=StatChanges(ethics=10, audit_risk=-10),
                company_deltas={"cash_balance": -1_500_000},
            ),
            EventOption(
                id="fight_it",
                label="Fight the investigation",
                description="Lawyer up.",
                outcome_text="Years of litigation ahead. The outcome is uncertain.",
                stat_changes=StatChanges(ethics=-15, audit_risk=20, stress=20),
                company_deltas={"cash_balance": -500_000},
                risk=60,
            ),
            EventOption(
                id="settle_quickly",
                label="Seek quick settlement",
                description="Pay and move on.",
                outcome_text="Settlement reached. The market views this neutrally.",
                stat_changes=StatChanges(reputation=-5),
                company_deltas={"cash_balance": -3_000_000},
            ),
        ),
    ),
    EventType.UNION_DISPUTE: EventDefinition(
        type=EventType.UNION_DISPUTE,
        title="Labor Dispute",
        severity=EventSeverity.WARNING,
        consult_advisor=False,
        description="Workers at {name} are threatening to strike over wages.",
        options=(
            EventOption(
                id="negotiate_fairly",
                label="Negotiate in good faith",
                description="Meet them halfway.",
                outcome_text="After tense negotiations, a deal is reached. Workers are satisfied.",
                stat_changes=StatChanges(ethics=10, reputation=5),
                company_deltas={"ebitda_margin": -0.02},
            ),
            EventOption(
                id="hardline",
                label="Take a hard line",
                description="No concessions.",
                outcome_text="Workers strike. Production halts for two weeks.",
                stat_changes=StatChanges(ethics=-10, reputation=-10),
                company_factors={"revenue": 0.95},
                risk=70,
            ),
            EventOption(
                id="offshore",
                label="Accelerate offshoring",
                description="Move the work elsewhere.",
                outcome_text="Transition begins. Short-term pain, long-term savings.",
                stat_changes=StatChanges(ethics=-20, reputation=-15),
                company_deltas={"ebitda_margin": 0.05, "cash_balance": -2_000_000},
            ),
        ),
    ),
    EventType.SUPPLY_CHAIN_CRISIS: EventDefinition(
        type=EventType.SUPPLY_CHAIN_CRISIS,
        title="Supply Chain Disruption",
        severity=EventSeverity.CRITICAL,
        consult_advisor=False,
        description="{name}'s sole-source supplier just failed. Inventory covers three weeks.",
        options=(
            EventOption(
                id="emergency_sourcing",
                label="Emergency alternative sourcing",
                description="Pay whatever it takes.",
                outcome_text="Production continues at higher cost. Margins take a hit.",
                stat_changes=StatChanges(stress=15),
                company_deltas={"ebitda_margin": -0.08},
            ),
            EventOption(
                id="vertical_integration",
                label="Acquire a supplier",
                description="Never depend on one vendor again.",
                outcome_text="Vertical integration. Never again dependent on one supplier.",
                stat_changes=StatChanges(reputation=5),
                company_deltas={"cash_balance": -8_000_000},
            ),
            EventOption(
                id="delay_production",
                label="Delay production",
                description="Push orders into next year.",
                outcome_text="Revenue pushed out. Some customers defect.",
                stat_changes=StatChanges(reputation=-10),
                company_factors={"revenue": 0.85},
            ),
        ),
    ),
    EventType.ACTIVIST_INVESTOR: EventDefinition(
        type=EventType.ACTIVIST_INVESTOR,
        title="Activist Approaches",
        severity=EventSeverity.CRITICAL,
        consult_advisor=True,
        description="An activist fund built a stake in {name}'s debt and wants a say in strategy.",
        options=(
            EventOption(
                id="fight",
                label="Prepare for proxy war",
                description="Fight for control.",
                outcome_text="The battle begins. Your attention is consumed for months.",
                stat_changes=StatChanges(stress=25),
                company_deltas={"cash_balance": -1_000_000},
                company_sets={"has_board_crisis": True},
            ),
            EventOption(
                id="negotiate",
                label="Give them a board seat",
                description="Keep your enemies close.",
                outcome_text="They're in. Now every decision requires their approval.",
                stat_changes=StatChanges(reputation=-5),
                company_deltas={"board_alignment": -30},
            ),
            EventOption(
                id="accelerate_exit",
                label="Start exit process immediately",
                description="Control the narrative.",
                outcome_text="You take control of the narrative. Exit process begins.",
                stat_changes=StatChanges(reputation=10),
                company_sets={"is_in_exit_process": True, "exit_type": "STRATEGIC_SALE"},
            ),
        ),
    ),
    EventType.IPO_WINDOW: EventDefinition(
        type=EventType.IPO_WINDOW,
        title="IPO Window Opens",
        severity=EventSeverity.INFO,
        consult_advisor=False,
        description="Public markets are hungry for companies like {name}. Bankers are calling.",
        options=(
            EventOption(
                id="begin_ipo",
                label="Begin IPO process",
                description="Hire the banks, start the S-1.",
                outcome_text="IPO preparation begins. S-1 filing in 6 months.",
                stat_changes=StatChanges(stress=20),
                company_deltas={"cash_balance": -500_000},
                company_sets={"is_in_exit_process": True, "exit_type": "IPO"},
            ),
            EventOption(
                id="dual_track",
                label="Run dual track",
                description="IPO and sale process in parallel.",
                outcome_text="Maximum optionality. Maximum stress.",
                stat_changes=StatChanges(stress=30),
                company_deltas={"cash_balance": -750_000},
            ),
            EventOption(
                id="not_ready",
                label="We're not ready",
                description="Stay focused on fundamentals.",
                outcome_text="The window may close. But you stay focused on fundamentals.",
            ),
        ),
    ),
    EventType.STRATEGIC_BUYER_INTEREST: EventDefinition(
        type=EventType.STRATEGIC_BUYER_INTEREST,
        title="Strategic Interest",
        severity=EventSeverity.INFO,
        consult_advisor=True,
        description="A Fortune 500 strategic sent an unsolicited letter of interest for {name}.",
        options=(
            EventOption(
                id="engage_seriously",
                label="Engage seriously",
                description="Open the data room.",
                outcome_text="Negotiations begin. This could be transformational.",
                stat_changes=StatChanges(stress=15),
                company_sets={"is_in_exit_process": True, "exit_type": "STRATEGIC_SALE"},
            ),
            EventOption(
                id="play_hard_to_get",
                label="Play hard to get",
                description="Make them raise the bid.",
                outcome_text="They increase the offer. Or they walk.",
                risk=40,
            ),
            EventOption(
                id="politely_decline",
                label="Politely decline",
                description="Not for sale. Yet.",
                outcome_text="They move on. Hopefully the offer comes back later.",
                stat_changes=StatChanges(reputation=5),
            ),
        ),
    ),
}


def get_event_definition(event_type: EventType) -> EventDefinition:
    return EVENT_LIBRARY[event_type]


def has_live_event(company: PortfolioCompany, current_week: int) -> bool:
    """True while an attached event has not passed its expiry week."""
    event = company.active_event
    return event is not None and event.expires_week >= current_week


def clear_expired_event(company: PortfolioCompany, current_week: int) -> tuple[PortfolioCompany, Optional[str]]:
    """Detach an expired event. Returns (company, expired_event_id or None)."""
    event = company.active_event
    if event is None or event.expires_week >= current_week:
        return company, None
    return replace(company, active_event=None), event.id


# ---------------------------------------------------------------------------
# TRIGGER
# ---------------------------------------------------------------------------

def event_probability(growth: float, ceo_performance: float, board_alignment: float) -> float:
    probability = BASE_EVENT_PROBABILITY
    if growth < -0.10:
        probability += 0.10
    if ceo_performance < 40:
        probability += 0.05
    if board_alignment < 50:
        probability += 0.05
    return probability


def check_company_event(
    company: PortfolioCompany,
    updates: Optional[PortfolioCompany],
    current_week: int,
    rng: RandomSource,
) -> Optional[CompanyActiveEvent]:
    """
    Roll for a new event on one company.

    Args:
        company: Snapshot before this tick's quarterly update.
        updates: Snapshot after the quarterly update, or None when no
                 quarter was simulated. Effective values are read from it.
        current_week: Simulated week number.
        rng: Random source.

    Returns:
        A new CompanyActiveEvent, or None.
    """
    effective = updates if updates is not None else company

    if has_live_event(effective, current_week):
        return None

    growth = effective.revenue_growth
    ceo = effective.ceo_performance if effective.ceo_performance is not None else 70
    board = effective.board_alignment if effective.board_alignment is not None else 80
    valuation = effective.current_valuation

    if rng.next() > event_probability(growth, ceo, board):
        return None

    # Every roll is drawn so the number of draws per fired event is stable
    customer_roll = rng.next()
    management_roll = rng.next()
    strategic_roll = rng.next()
    competitor_roll = rng.next()
    rare_roll = rng.next()

    candidates = []
    if growth < 0:
        candidates.append(EventType.REVENUE_DROP)
    if customer_roll > 0.7:
        candidates.append(EventType.KEY_CUSTOMER_LOSS)
    if ceo < 50 or management_roll > 0.85:
        candidates.append(EventType.MANAGEMENT_DEPARTURE)
    if valuation > ACTIVIST_VALUATION_FLOOR:
        candidates.append(EventType.ACTIVIST_INVESTOR)
        if strategic_roll > 0.6:
            candidates.append(EventType.STRATEGIC_BUYER_INTEREST)
    if growth > IPO_GROWTH_FLOOR and valuation > IPO_VALUATION_FLOOR:
        candidates.append(EventType.IPO_WINDOW)
    if competitor_roll > 0.9:
        candidates.append(EventType.COMPETITOR_THREAT)
    if rare_roll > 0.95:
        candidates.append(EventType.REGULATORY_ISSUE)
        candidates.append(EventType.SUPPLY_CHAIN_CRISIS)

    if not candidates:
        candidates.append(EventType.COMPETITOR_THREAT)

    event_type = pick(rng, candidates)
    definition = get_event_definition(event_type)

    event = CompanyActiveEvent(
        id=f"{event_type.value.lower()}_{company.id}_w{current_week}",
        company_id=company.id,
        type=event_type,
        title=definition.title,
        severity=definition.severity,
        expires_week=current_week + EVENT_LIFETIME_WEEKS,
        consult_advisor=definition.consult_advisor,
        description=definition.description.format(name=company.name),
    )
    logger.info(f"Event fired for {company.id}: {event_type.value} (expires week {event.expires_week})")
    return event


# ---------------------------------------------------------------------------
# RESOLUTION
# ---------------------------------------------------------------------------

# Field ranges enforced after an option changes a company
_FIELD_LIMITS = {
    "ebitda_margin": (0.05, 0.5),
    "ceo_performance": (0, 100),
    "board_alignment": (0, 100),
    "cash_balance": (0, None),
    "revenue": (0, None),
    "debt": (0, None),
}


def _limit(field_name: str, value: float) -> float:
    low, high = _FIELD_LIMITS.get(field_name, (None, None))
    if low is not None:
        value = max(low, value)
    if high is not None:
        value = min(high, value)
    return value


def _amplify_downside(changes: StatChanges) -> StatChanges:
    """Double every harmful delta (negative cash/reputation/ethics, positive stress/audit risk)."""
    return replace(
        changes,
        cash=changes.cash * 2 if changes.cash < 0 else changes.cash,
        reputation=changes.reputation * 2 if changes.reputation < 0 else changes.reputation,
        ethics=changes.ethics * 2 if changes.ethics < 0 else changes.ethics,
        stress=changes.stress * 2 if changes.stress > 0 else changes.stress,
        audit_risk=changes.audit_risk * 2 if changes.audit_risk > 0 else changes.audit_risk,
    )


def resolve_company_event(
    company: PortfolioCompany,
    option_id: str,
    rng: RandomSource,
) -> EventResolution:
    """
    Apply the player's chosen option to the company's active event.

    Risky options roll once: a draw below risk% amplifies the downside.

    Raises:
        ValueError: no active event, or unknown option id.
    """
    event = company.active_event
    if event is None:
        raise ValueError(f"Company '{company.id}' has no active event to resolve")

    company = initialize_portfolio_company_fields(company)
    definition = get_event_definition(event.type)
    option = next((o for o in definition.options if o.id == option_id), None)
    if option is None:
        valid = [o.id for o in definition.options]
        raise ValueError(f"Unknown option '{option_id}' for {event.type.value}. Valid: {valid}")

    risk_triggered = option.risk > 0 and rng.next() * 100 < option.risk
    stat_changes = _amplify_downside(option.stat_changes) if risk_triggered else option.stat_changes

    updates = {}
    for name, factor in option.company_factors.items():
        updates[name] = _limit(name, getattr(company, name) * factor)
    for name, delta in option.company_deltas.items():
        base = updates.get(name, getattr(company, name) or 0)
        updates[name] = _limit(name, base + delta)
    updates.update(option.company_sets)

    for name in ("revenue", "ebitda"):
        if name in updates:
            updates[name] = round(updates[name])
    if "ebitda_margin" in updates and "ebitda" not in updates:
        revenue = updates.get("revenue", company.revenue)
        updates["ebitda"] = round(revenue * updates["ebitda_margin"])

    resolved = replace(company, active_event=None, **updates)
    logger.info(
        f"Event {event.id} resolved with '{option.id}'"
        + (" (risk triggered)" if risk_triggered else "")
    )
    return EventResolution(
        company=resolved,
        option_id=option.id,
        outcome_text=option.outcome_text,
        stat_changes=stat_changes,
        risk_triggered=risk_triggered,
    )
