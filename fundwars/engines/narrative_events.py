"""
FundWars — NPC Drama, Rival Action and Market Event Generators

Content tables with conditional gating. Each generator returns at most one
event; the per-tick trigger probabilities live in the world tick module.

NPC drama priority (first satisfied wins, each rolled independently):
    1. sarah_hunter_rivalry  sarah & hunter >= 40, roll > 0.70
    2. chad_secret           chad >= 30,           roll > 0.80
    3. emma_jealousy         emma >= 50, sarah >= 60, roll > 0.85
A drama needs at least two non-rival NPCs with relationship >= 40.

Also holds the helpers that merge stat-change payloads into player and
NPC snapshots.
"""

import logging
from dataclasses import replace
from typing import Optional, Sequence

from ..models import (
    NPC,
    DramaChoice,
    MarketChange,
    MarketVolatility,
    NPCDrama,
    PlayerState,
    RelationshipUpdate,
    RivalAction,
    RivalFund,
    RivalStrategy,
    StatChanges,
    Urgency,
)
from .randomness import RandomSource, pick

logger = logging.getLogger("fundwars.world.narrative")

DRAMA_RELATIONSHIP_FLOOR = 40
DRAMA_MIN_NPCS = 2
LP_APPROACH_REPUTATION = 50


# ---------------------------------------------------------------------------
# NPC DRAMA
# ---------------------------------------------------------------------------

def _sarah_hunter_rivalry(current_week: int) -> NPCDrama:
    return NPCDrama(
        id="sarah_hunter_rivalry",
        title="Office Politics Erupts",
        description=(
            'Sarah storms into your office. "Hunter is taking credit for MY model work. '
            "I've been here until 2am for weeks while he schmoozed clients. Now he's telling "
            'Chad HE ran the analysis?" Hunter\'s version is... different.'
        ),
        involved_npcs=("sarah", "hunter"),
        player_must_choose_side=True,
        urgency=Urgency.MEDIUM,
        expires_week=current_week + 2,
        choices=(
            DramaChoice(
                text="Back Sarah",
                description="Tell Chad the truth. Sarah did the work.",
                outcome_description="Sarah is vindicated. Hunter is humiliated, and now your enemy.",
                stat_changes=StatChanges(relationship_updates=(
                    RelationshipUpdate("sarah", 25, memory="Defended me when it mattered"),
                    RelationshipUpdate("hunter", -30, memory="Sided against me in front of Chad"),
                )),
            ),
            DramaChoice(
                text="Back Hunter",
                description="Tell Chad they were both involved. Give Hunter the win.",
                outcome_description="Hunter owes you one. Sarah looks at you differently now.",
                stat_changes=StatChanges(relationship_updates=(
                    RelationshipUpdate("hunter", 20, memory="Had my back in the credit dispute"),
                    RelationshipUpdate("sarah", -20, trust_change=-15, memory="Threw me under the bus"),
                )),
            ),
            DramaChoice(
                text="Stay out of it",
                description="Not your circus, not your monkeys.",
                outcome_description="Both feel abandoned. But at least you didn't make an enemy.",
                stat_changes=StatChanges(
                    reputation=-5,
                    relationship_updates=(
                        RelationshipUpdate("sarah", -10, memory="Wouldn't stand up for me"),
                        RelationshipUpdate("hunter", -5, memory="Too weak to pick a side"),
                    ),
                ),
            ),
        ),
    )


def _chad_secret(current_week: int) -> NPCDrama:
    return NPCDrama(
        id="chad_secret",
        title="Chad's Little Problem",
        description=(
            "Late night at the office. Chad pulls you aside. \"I told an LP we have a deal in "
            "exclusivity when... we don't. The meeting is tomorrow. I need you to build a data "
            'room that makes it look real. Just for 24 hours." He looks desperate.'
        ),
        involved_npcs=("chad",),
        player_must_choose_side=True,
        urgency=Urgency.HIGH,
        expires_week=current_week + 1,
        choices=(
            DramaChoice(
                text="Cover for him",
                description="Build the fake data room. Help Chad save face.",
                outcome_description="The LP is fooled. Chad owes you everything. But you've crossed a line.",
                stat_changes=StatChanges(
                    ethics=-30,
                    audit_risk=20,
                    relationship_updates=(
                        RelationshipUpdate("chad", 40, trust_change=30, memory="Saved my career when I needed it"),
                    ),
                    sets_flags=("COVERED_FOR_CHAD",),
                ),
            ),
            DramaChoice(
                text="I can't do that",
                description="Tell Chad he needs to come clean.",
                outcome_description='Chad stares at you coldly. "Remember this moment." Your ethics are intact, your career at risk.',
                stat_changes=StatChanges(
                    ethics=20,
                    reputation=-10,
                    relationship_updates=(
                        RelationshipUpdate("chad", -35, trust_change=-20, memory="Abandoned me in my hour of need"),
                    ),
                ),
            ),
            DramaChoice(
                text="Anonymous compliance tip",
                description="Protect yourself. Report to the compliance hotline.",
                outcome_description="Compliance investigates and Chad is put on leave. Someone will figure out it was you.",
                stat_changes=StatChanges(
                    ethics=30,
                    reputation=15,
                    audit_risk=-20,
                    relationship_updates=(
                        RelationshipUpdate("chad", -50, memory="The rat who ended my career"),
                    ),
                    sets_flags=("WHISTLEBLOWER_CHAD",),
                ),
            ),
        ),
    )


def _emma_jealousy(current_week: int) -> NPCDrama:
    return NPCDrama(
        id="emma_jealousy",
        title="Emma Suspects Something",
        description=(
            "Emma scrolls through your phone. \"Who's Sarah? Why are you texting at midnight "
            "about 'models'?\" She's not buying the work colleague explanation."
        ),
        involved_npcs=("girlfriend_emma", "sarah"),
        player_must_choose_side=False,
        urgency=Urgency.MEDIUM,
        expires_week=current_week + 3,
        choices=(
            DramaChoice(
                text="Prove your commitment to Emma",
                description="Plan a special weekend. Distance yourself from Sarah at work.",
                outcome_description="Emma feels loved. Sarah notices the cold shoulder and focuses on work.",
                stat_changes=StatChanges(
                    cash=-3000,
                    relationship_updates=(
                        RelationshipUpdate("girlfriend_emma", 20, trust_change=15, memory="Chose me over everything"),
                        RelationshipUpdate("sarah", -10, memory="Suddenly became distant"),
                    ),
                ),
            ),
            DramaChoice(
                text="Better at compartmentalizing",
                description="Keep both relationships but be more careful about communication.",
                outcome_description="You're walking a tightrope. Nothing changes, but everything feels fragile.",
                stat_changes=StatChanges(stress=15),
            ),
            DramaChoice(
                text="Examine your feelings",
                description="Maybe there IS something with Sarah...",
                outcome_description="You spend a long night thinking. The question is now real.",
                stat_changes=StatChanges(stress=10, sets_flags=("CONSIDERING_SARAH",)),
            ),
        ),
    )


def _relationship(npcs_by_id: dict, npc_id: str) -> Optional[int]:
    npc = npcs_by_id.get(npc_id)
    return npc.relationship if npc is not None else None


def check_npc_drama(
    npcs: Sequence[NPC],
    current_week: int,
    rng: RandomSource,
) -> Optional[NPCDrama]:
    """Return the first drama whose gate and roll both pass, or None."""
    close = [npc for npc in npcs if npc.relationship >= DRAMA_RELATIONSHIP_FLOOR and not npc.is_rival]
    if len(close) < DRAMA_MIN_NPCS:
        return None

    by_id = {npc.id: npc for npc in npcs}
    sarah = _relationship(by_id, "sarah")
    hunter = _relationship(by_id, "hunter")
    chad = _relationship(by_id, "chad")
    emma = _relationship(by_id, "girlfriend_emma")

    if sarah is not None and hunter is not None and sarah >= 40 and hunter >= 40:
        if rng.next() > 0.7:
            return _sarah_hunter_rivalry(current_week)

    if chad is not None and chad >= 30 and rng.next() > 0.8:
        return _chad_secret(current_week)

    if emma is not None and sarah is not None and emma >= 50 and sarah >= 60 and rng.next() > 0.85:
        return _emma_jealousy(current_week)

    return None


# ---------------------------------------------------------------------------
# RIVAL ACTIONS
# ---------------------------------------------------------------------------

def _actions_for(rival: RivalFund, player: PlayerState, rng: RandomSource) -> list[RivalAction]:
    actions = []

    if rival.strategy == RivalStrategy.PREDATORY:
        if player.portfolio:
            target = pick(rng, player.portfolio)
            actions.append(RivalAction(
                rival_id=rival.id,
                rival_name=rival.name,
                action="POACHING_ATTEMPT",
                target=target.name,
                impact=f"{rival.name} is trying to recruit key talent from {target.name}.",
            ))
        actions.append(RivalAction(
            rival_id=rival.id,
            rival_name=rival.name,
            action="MARKET_RUMOR",
            impact=f"{rival.name} is spreading rumors about your fund's performance.",
        ))
    elif rival.strategy == RivalStrategy.AGGRESSIVE:
        actions.append(RivalAction(
            rival_id=rival.id,
            rival_name=rival.name,
            action="DEAL_SNIPING",
            impact=f"{rival.name} is aggressively bidding on deals in your target sectors.",
        ))
    elif rival.strategy == RivalStrategy.OPPORTUNISTIC:
        if player.reputation < LP_APPROACH_REPUTATION:
            actions.append(RivalAction(
                rival_id=rival.id,
                rival_name=rival.name,
                action="LP_APPROACH",
                impact=f"{rival.name} is reaching out to your LPs, sensing weakness.",
            ))
    elif rival.strategy == RivalStrategy.CONSERVATIVE:
        actions.append(RivalAction(
            rival_id=rival.id,
            rival_name=rival.name,
            action="MARKET_OBSERVATION",
            impact=f"{rival.name} is quietly building a war chest and watching the market.",
        ))

    return actions


def simulate_rival_action(
    rival_funds: Sequence[RivalFund],
    player: PlayerState,
    rng: RandomSource,
) -> Optional[RivalAction]:
    """Pick a rival at random and one of the moves its strategy allows."""
    if not rival_funds:
        return None
    rival = pick(rng, rival_funds)
    actions = _actions_for(rival, player, rng)
    if not actions:
        return None
    return pick(rng, actions)


# ---------------------------------------------------------------------------
# MARKET EVENTS
# ---------------------------------------------------------------------------

_MARKET_CHANGES = (
    MarketChange(
        type="SECTOR_ROTATION",
        description="Investors are rotating out of tech into industrials.",
        impact=StatChanges(reputation=-2),
    ),
    MarketChange(
        type="INTEREST_RATE",
        description="The Fed signals potential rate changes, affecting deal financing.",
        impact=StatChanges(stress=5),
    ),
    MarketChange(
        type="CREDIT_CONDITIONS",
        description="Credit markets are tightening, making LBO financing more expensive.",
        impact=StatChanges(cash=-1000),
    ),
)

_VOLATILITY_SHIFT = MarketChange(
    type="VOLATILITY_SHIFT",
    description="Market sentiment is shifting and volatility is increasing.",
    impact=StatChanges(stress=3),
)


def check_market_event(volatility: MarketVolatility, rng: RandomSource) -> MarketChange:
    candidates = list(_MARKET_CHANGES)
    if volatility == MarketVolatility.NORMAL:
        candidates.append(_VOLATILITY_SHIFT)
    return pick(rng, candidates)


# ---------------------------------------------------------------------------
# PAYLOAD APPLICATION
# ---------------------------------------------------------------------------

def _bounded(value: float) -> int:
    return int(max(0, min(100, value)))


def apply_stat_changes(player: PlayerState, changes: StatChanges) -> PlayerState:
    """Merge a stat-change payload into a player snapshot (0-100 stats clamped)."""
    return replace(
        player,
        cash=player.cash + changes.cash,
        reputation=_bounded(player.reputation + changes.reputation),
        stress=_bounded(player.stress + changes.stress),
        ethics=_bounded(player.ethics + changes.ethics),
        audit_risk=_bounded(player.audit_risk + changes.audit_risk),
        health=_bounded(player.health + changes.health),
        flags=player.flags | frozenset(changes.sets_flags),
    )


def apply_relationship_changes(
    npcs: Sequence[NPC],
    updates: Sequence[RelationshipUpdate],
) -> list[NPC]:
    """Apply relationship operations; unknown NPC ids are ignored."""
    by_id = {}
    for update in updates:
        by_id.setdefault(update.npc_id, []).append(update)

    result = []
    for npc in npcs:
        for update in by_id.get(npc.id, []):
            memories = npc.memories + ((update.memory,) if update.memory else ())
            npc = replace(
                npc,
                relationship=_bounded(npc.relationship + update.change),
                trust=_bounded(npc.trust + update.trust_change),
                memories=memories,
            )
        result.append(npc)
    return result
