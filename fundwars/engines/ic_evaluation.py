"""
FundWars — Investment Committee Evaluation Engine

Scores the opening pitch and each interrogation answer, aggregates the
partners' final satisfaction into six weighted dimensions, and maps the
overall score to a verdict.

Pitch clarity (0-100):
    base 50, +5 per key term present, +10 for 200-800 chars (-5 over 800),
    +10 for three or more numbers.

Response reaction (satisfaction delta):
    financials +15 with a digit, else -10 ("numbers, not platitudes")
    operations +10 for concrete examples, risk +10 for "downside"
    long and specific +10 (satisfied); under 50 chars -15 (dismissive)
    +5 when the answer hits the partner's keyword

Dimensions (each clamped to 0-100):
    thesis_clarity   pitch + (avg - 50) * 0.5
    financial_rigor  40 + (returns - 50) * 1.2 + (risk hawk - 50) * 0.8
    risk_awareness   40 + (risk hawk - 50) * 1.5
    value_creation   40 + (operator - 50) * 1.5
    conviction       pitch * 0.5 + avg * 0.5
    specificity      30 + 15 per answer scoring above +5

The keyword heuristics sit behind ResponseScorer so an NLP or LLM-backed
scorer can replace them without touching the meeting state machine.
"""

import math
import re
from abc import ABC, abstractmethod
from typing import Optional, Sequence

from ..models import (
    DealOutcome,
    ICConsequences,
    ICEvaluation,
    ICExchange,
    ICPartner,
    ICQuestion,
    ICVerdict,
    PartnerArchetype,
    PartnerReaction,
    PartnerVote,
    PortfolioCompany,
    VerdictOutcome,
)
from .ic_partners import (
    CONDITIONAL_VOTE_REASON,
    HIGH_LEVERAGE,
    IC_EVALUATION_WEIGHTS,
    IC_VERDICT_THRESHOLDS,
    TABLED_VOTE_REASON,
    VOTE_APPROVE_AT,
    VOTE_CONDITIONAL_AT,
    VOTE_TABLED_AT,
    partner_by_archetype,
)

PITCH_KEY_TERMS = [
    "thesis", "ebitda", "irr", "multiple", "risk", "value creation", "exit", "management",
]
SPECIFICS_MARKERS = ["specifically", "for example", "in this case"]
GENERIC_FOLLOW_UP = "Let me try again. What specifically is your plan?"

NEUTRAL_SATISFACTION = 50
_NUMBER = re.compile(r"\d+")


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


# ---------------------------------------------------------------------------
# Configuration checks
# ---------------------------------------------------------------------------

def validate_weights(weights: dict) -> dict:
    missing = set(IC_EVALUATION_WEIGHTS) - set(weights)
    if missing:
        raise ValueError(f"Missing dimension weights: {sorted(missing)}")
    total = sum(weights[name] for name in IC_EVALUATION_WEIGHTS)
    if abs(total - 1.0) > 1e-6:
        raise ValueError(f"Dimension weights must sum to 1.0, got {total:.4f}")
    return weights


def validate_thresholds(thresholds: dict) -> dict:
    try:
        approved = thresholds["APPROVED"]
        conditional = thresholds["CONDITIONAL"]
        tabled = thresholds["TABLED"]
    except KeyError as e:
        raise ValueError(f"Missing verdict threshold: {e}")
    if not approved > conditional > tabled:
        raise ValueError(
            f"Verdict thresholds must be strictly descending, got "
            f"APPROVED={approved} CONDITIONAL={conditional} TABLED={tabled}"
        )
    return thresholds


# ---------------------------------------------------------------------------
# Pitch and response scoring
# ---------------------------------------------------------------------------

def evaluate_pitch_clarity(pitch: str) -> int:
    text = pitch.lower()
    score = 50
    for term in PITCH_KEY_TERMS:
        if term in text:
            score += 5

    if 200 < len(pitch) < 800:
        score += 10
    elif len(pitch) > 800:
        score -= 5

    if len(_NUMBER.findall(pitch)) >= 3:
        score += 10

    return int(_clamp(score))


def pitch_satisfaction_change(pitch_score: int) -> int:
    """Satisfaction shift applied to every partner after the pitch."""
    return math.floor((pitch_score - 50) / 10)


def evaluate_response(response: str, question: ICQuestion, partner: ICPartner) -> PartnerReaction:
    """
    Score one interrogation answer.

    Returns:
        PartnerReaction whose `satisfaction` is the delta to apply to the
        partner's running satisfaction.
    """
    text = response.lower()
    has_numbers = bool(_NUMBER.search(response))
    has_specifics = any(marker in text for marker in SPECIFICS_MARKERS)
    is_long = len(response) > 100

    satisfaction = 0
    reaction = "skeptical"
    feedback = ""
    follow_up = None

    if question.category == "financials":
        if has_numbers:
            satisfaction += 15
        else:
            satisfaction -= 10
            feedback = '"I asked for numbers, not platitudes."'
    if question.category == "operations" and has_specifics:
        satisfaction += 10
    if question.category == "risk" and "downside" in text:
        satisfaction += 10

    if is_long and has_specifics:
        satisfaction += 10
        reaction = "satisfied"
        feedback = feedback or '"That\'s more like it."'
    elif len(response) < 50:
        satisfaction -= 15
        reaction = "dismissive"
        feedback = '"That\'s all you\'ve got?"'
        follow_up = GENERIC_FOLLOW_UP

    if partner.keyword and partner.keyword in text:
        satisfaction += 5

    if not feedback:
        if satisfaction > 10:
            feedback, reaction = '"Good. Continue."', "satisfied"
        elif satisfaction > 0:
            feedback, reaction = '"Hmm."', "probing"
        elif satisfaction > -10:
            feedback, reaction = '"I\'m not convinced."', "skeptical"
        else:
            feedback, reaction = '"This is concerning."', "dismissive"

    if follow_up is None and reaction in ("skeptical", "dismissive") and question.follow_up_if_weak:
        follow_up = question.follow_up_if_weak

    return PartnerReaction(
        partner_id=partner.id,
        satisfaction=satisfaction,
        reaction=reaction,
        feedback=feedback,
        follow_up_question=follow_up,
    )


class ResponseScorer(ABC):
    """Turns player text into pitch scores and partner reactions."""

    @abstractmethod
    def score_pitch(self, pitch: str) -> int:
        ...

    @abstractmethod
    def score_response(self, response: str, question: ICQuestion, partner: ICPartner) -> PartnerReaction:
        ...


class HeuristicScorer(ResponseScorer):
    """Keyword and length heuristics; deterministic and offline."""

    def score_pitch(self, pitch: str) -> int:
        return evaluate_pitch_clarity(pitch)

    def score_response(self, response: str, question: ICQuestion, partner: ICPartner) -> PartnerReaction:
        return evaluate_response(response, question, partner)


# ---------------------------------------------------------------------------
# Final evaluation
# ---------------------------------------------------------------------------

_ADVICE = {
    "thesis_clarity": "Work on articulating your thesis more crisply. Partners should be able to repeat it back to you.",
    "financial_rigor": "Spend more time with the model. Know your IRR drivers cold.",
    "risk_awareness": "Every deal has risks. Acknowledge them specifically instead of hoping no one asks.",
    "value_creation": "Be more specific about HOW you create value, not just that you will.",
    "conviction": "If you do not believe in the deal, why should we? Show more conviction.",
    "specificity": "Replace buzzwords with specific numbers, names, and plans.",
}

_CONCEPTS = [
    ("financial_rigor", "LBO Mechanics"),
    ("risk_awareness", "Risk Assessment"),
    ("value_creation", "Value Creation"),
    ("thesis_clarity", "Thesis Development"),
]
CONCEPT_BAR = 60


def _archetype_satisfaction(partners, satisfaction: dict, archetype: PartnerArchetype) -> float:
    partner = partner_by_archetype(partners, archetype)
    if partner is None:
        return NEUTRAL_SATISFACTION
    return satisfaction.get(partner.id, NEUTRAL_SATISFACTION)


def calculate_dimensions(
    pitch_score: float,
    satisfaction: dict,
    history: Sequence[ICExchange],
    partners: Sequence[ICPartner],
) -> dict:
    average = sum(satisfaction.values()) / len(satisfaction) if satisfaction else NEUTRAL_SATISFACTION
    risk_hawk = _archetype_satisfaction(partners, satisfaction, PartnerArchetype.RISK_HAWK)
    operator = _archetype_satisfaction(partners, satisfaction, PartnerArchetype.OPERATOR)
    returns = _archetype_satisfaction(partners, satisfaction, PartnerArchetype.RETURNS_MAX)
    strong_answers = sum(1 for exchange in history if exchange.reaction.satisfaction > 5)

    return {
        "thesis_clarity": _clamp(pitch_score + (average - 50) * 0.5),
        "financial_rigor": _clamp(40 + (returns - 50) * 1.2 + (risk_hawk - 50) * 0.8),
        "risk_awareness": _clamp(40 + (risk_hawk - 50) * 1.5),
        "value_creation": _clamp(40 + (operator - 50) * 1.5),
        "conviction": _clamp(pitch_score * 0.5 + average * 0.5),
        "specificity": _clamp(strong_answers * 15 + 30),
    }


def calculate_final_evaluation(
    pitch_score: float,
    satisfaction: dict,
    history: Sequence[ICExchange],
    partners: Sequence[ICPartner],
    weights: Optional[dict] = None,
) -> ICEvaluation:
    """
    Aggregate a finished interrogation into dimension scores.

    Args:
        pitch_score: Opening pitch clarity (0-100).
        satisfaction: Final satisfaction per partner id.
        history: Answered questions, in order.
        partners: Meeting roster (used to locate archetypes).
        weights: Dimension weights; must sum to 1.0.

    Returns:
        ICEvaluation with the rounded overall score, concepts and advice.
    """
    weights = validate_weights(weights or IC_EVALUATION_WEIGHTS)
    dimensions = calculate_dimensions(pitch_score, satisfaction, history, partners)
    overall = round(sum(dimensions[name] * weights[name] for name in IC_EVALUATION_WEIGHTS))

    demonstrated = [label for name, label in _CONCEPTS if dimensions[name] > CONCEPT_BAR]
    missing = [label for name, label in _CONCEPTS if dimensions[name] <= CONCEPT_BAR]

    if "LBO Mechanics" in missing:
        recommendation = "Review the fundamentals of leverage and return attribution."
    elif "Risk Assessment" in missing:
        recommendation = "Practice identifying and articulating downside scenarios."
    elif "Value Creation" in missing:
        recommendation = "Study operational improvement playbooks and 100-day plans."
    else:
        recommendation = "Strong performance. Focus on nuance and conviction in future pitches."

    weakest = min(IC_EVALUATION_WEIGHTS, key=lambda name: dimensions[name])

    return ICEvaluation(
        dimensions=dimensions,
        overall_score=overall,
        concepts_demonstrated=tuple(demonstrated),
        concepts_missing=tuple(missing),
        learning_recommendation=recommendation,
        specific_advice=_ADVICE[weakest],
    )


def determine_verdict(score: float, thresholds: Optional[dict] = None) -> VerdictOutcome:
    thresholds = validate_thresholds(thresholds or IC_VERDICT_THRESHOLDS)
    if score >= thresholds["APPROVED"]:
        return VerdictOutcome.APPROVED
    if score >= thresholds["CONDITIONAL"]:
        return VerdictOutcome.CONDITIONAL
    if score >= thresholds["TABLED"]:
        return VerdictOutcome.TABLED
    return VerdictOutcome.REJECTED


def generate_votes(satisfaction: dict, partners: Sequence[ICPartner]) -> tuple[PartnerVote, ...]:
    """One vote per partner from final satisfaction. Table-driven, no randomness."""
    votes = []
    for partner in partners:
        level = satisfaction.get(partner.id, NEUTRAL_SATISFACTION)
        if level >= VOTE_APPROVE_AT:
            vote, reasoning = VerdictOutcome.APPROVED, partner.approve_reason
        elif level >= VOTE_CONDITIONAL_AT:
            vote, reasoning = VerdictOutcome.CONDITIONAL, CONDITIONAL_VOTE_REASON
        elif level >= VOTE_TABLED_AT:
            vote, reasoning = VerdictOutcome.TABLED, TABLED_VOTE_REASON
        else:
            vote, reasoning = VerdictOutcome.REJECTED, partner.reject_reason
        votes.append(PartnerVote(partner_id=partner.id, vote=vote, reasoning=reasoning))
    return tuple(votes)


# ---------------------------------------------------------------------------
# Verdict extras
# ---------------------------------------------------------------------------

def build_conditions(
    outcome: VerdictOutcome,
    votes: Sequence[PartnerVote],
    partners: Sequence[ICPartner],
    company: PortfolioCompany,
) -> tuple[str, ...]:
    """Conditions attached to CONDITIONAL and TABLED outcomes."""
    if outcome not in (VerdictOutcome.CONDITIONAL, VerdictOutcome.TABLED):
        return ()

    approving = {v.partner_id for v in votes if v.vote == VerdictOutcome.APPROVED}
    conditions = []

    hawk = partner_by_archetype(partners, PartnerArchetype.RISK_HAWK)
    if hawk is not None and hawk.id not in approving:
        if company.leverage > HIGH_LEVERAGE:
            conditions.append("Reduce leverage to 4.0x or below")
        else:
            conditions.append("Add covenant protection package")

    operator = partner_by_archetype(partners, PartnerArchetype.OPERATOR)
    if operator is not None and operator.id not in approving:
        conditions.append("Detailed 100-day operational plan required")

    returns = partner_by_archetype(partners, PartnerArchetype.RETURNS_MAX)
    if returns is not None and returns.id not in approving:
        conditions.append("Conduct additional buyer outreach for exit validation")

    return tuple(conditions)


def calculate_reputation_change(outcome: VerdictOutcome, overall_score: float) -> int:
    share = overall_score / 100
    if outcome == VerdictOutcome.APPROVED:
        return math.floor(share * 5) + 2
    if outcome == VerdictOutcome.CONDITIONAL:
        return math.floor(share * 3)
    if outcome == VerdictOutcome.TABLED:
        return -1
    return -math.floor((1 - share) * 5) - 1


def calculate_consequences(outcome: VerdictOutcome, evaluation: ICEvaluation) -> ICConsequences:
    if outcome == VerdictOutcome.APPROVED:
        deal_outcome = DealOutcome.PROCEED
    elif outcome == VerdictOutcome.CONDITIONAL:
        deal_outcome = DealOutcome.RENEGOTIATE
    else:
        deal_outcome = DealOutcome.WALK_AWAY

    dims = evaluation.dimensions
    skill_points = {
        "valuation": math.floor(dims["financial_rigor"] * 0.15),
        "negotiation": math.floor(dims["conviction"] * 0.10),
        "risk_management": math.floor(dims["risk_awareness"] * 0.10),
        "deal_execution": math.floor(evaluation.overall_score * 0.10),
    }
    return ICConsequences(
        deal_outcome=deal_outcome,
        reputation_change=calculate_reputation_change(outcome, evaluation.overall_score),
        skill_points=skill_points,
    )


def build_verdict(
    pitch_score: float,
    satisfaction: dict,
    history: Sequence[ICExchange],
    partners: Sequence[ICPartner],
    company: PortfolioCompany,
    weights: Optional[dict] = None,
    thresholds: Optional[dict] = None,
) -> ICVerdict:
    """Evaluate, vote and package the terminal ICVerdict."""
    evaluation = calculate_final_evaluation(pitch_score, satisfaction, history, partners, weights)
    outcome = determine_verdict(evaluation.overall_score, thresholds)
    votes = generate_votes(satisfaction, partners)

    return ICVerdict(
        outcome=outcome,
        dimensions=dict(evaluation.dimensions),
        overall_score=evaluation.overall_score,
        votes=votes,
        conditions=build_conditions(outcome, votes, partners, company),
        consequences=calculate_consequences(outcome, evaluation),
        concepts_demonstrated=evaluation.concepts_demonstrated,
        concepts_missing=evaluation.concepts_missing,
        learning_recommendation=evaluation.learning_recommendation,
        specific_advice=evaluation.specific_advice,
    )
