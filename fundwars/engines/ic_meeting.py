"""
FundWars — Investment Committee Meeting State Machine

Sequences one IC meeting:

    PREP -> OPENING_PITCH -> INTERROGATION -> DELIBERATION -> VERDICT

Phases only move forward. Every operation takes an ICSession snapshot and
returns a new one; a rejected input raises without producing a new
snapshot, so the caller's session is left exactly as it was.

Interrogation loop:
    - The current partner picks an unused question whose difficulty matches
      their mood (>70 easy, >40 medium, else hard), falling back to any
      unused question, then to the next partner with questions left.
    - An answer is scored, moves that partner's satisfaction and uses one
      question slot. If the reaction carries a follow-up, a coin flip keeps
      the same partner on the follow-up; otherwise the next partner asks.
    - Skipping costs the partner 15 satisfaction and still uses a slot.
    - After max_questions answers (or when nobody has questions left) the
      meeting moves to DELIBERATION, a 3 second pass-through that produces
      the ICVerdict.

Timers tick through advance_clock(): pitch expiry auto-submits the draft,
response expiry counts as a skip, deliberation expiry issues the verdict.
"""

import logging
import uuid
from dataclasses import dataclass, field, replace
from typing import Optional

from ..models import (
    IC_PHASE_ORDER,
    ICExchange,
    ICPartner,
    ICPhase,
    ICQuestion,
    ICVerdict,
    PartnerArchetype,
    PortfolioCompany,
)
from .ic_evaluation import HeuristicScorer, ResponseScorer, build_verdict, pitch_satisfaction_change
from .ic_partners import IC_PARTNERS, IC_QUESTIONS, partner_by_archetype, select_partners_for_meeting
from .ic_timer import DELIBERATION_SECONDS, OPENING_PITCH_SECONDS, RESPONSE_SECONDS, CountdownTimer
from .randomness import RandomSource, default_random_source, pick

logger = logging.getLogger("fundwars.ic")

MAX_QUESTIONS = 6
MIN_PITCH_CHARS = 50
MIN_RESPONSE_CHARS = 20
MAX_PITCH_CHARS = 1500
MAX_RESPONSE_CHARS = 800
INITIAL_SATISFACTION = 50
SKIP_PENALTY = 15
FOLLOW_UP_ROLL = 0.5

_DEFAULT_SCORER = HeuristicScorer()


class ICValidationError(ValueError):
    """Player input rejected in place (too short); no transition happened."""


class InvalidTransitionError(RuntimeError):
    """Operation not allowed in the session's current phase."""


@dataclass(frozen=True)
class ICSession:
    id: str
    company: PortfolioCompany
    player_level: str
    partners: tuple[ICPartner, ...]
    satisfaction: dict[str, int]
    phase: ICPhase = ICPhase.PREP
    current_partner_index: int = 0
    questions_asked: int = 0
    max_questions: int = MAX_QUESTIONS
    pitch_draft: str = ""
    opening_pitch: str = ""
    pitch_score: Optional[int] = None
    current_question: Optional[ICQuestion] = None
    current_question_text: Optional[str] = None
    history: tuple[ICExchange, ...] = ()
    skipped_questions: tuple[str, ...] = ()
    timer: CountdownTimer = field(default_factory=CountdownTimer)
    verdict: Optional[ICVerdict] = None
    cancelled: bool = False
    log: tuple[str, ...] = ()

    @property
    def current_partner(self) -> ICPartner:
        return self.partners[self.current_partner_index]

    @property
    def outcome(self) -> Optional[str]:
        if self.cancelled:
            return "CANCELLED"
        if self.verdict is not None:
            return self.verdict.outcome.value
        return None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _clamp(value: float) -> int:
    return int(max(0, min(100, value)))


def _require(session: ICSession, phase: ICPhase) -> None:
    if session.cancelled:
        raise InvalidTransitionError(f"IC session {session.id} was cancelled")
    if session.phase != phase:
        raise InvalidTransitionError(
            f"Operation requires phase {phase.value}, session {session.id} is in {session.phase.value}"
        )


def _transition(session: ICSession, phase: ICPhase, **changes) -> ICSession:
    current = IC_PHASE_ORDER.index(session.phase)
    target = IC_PHASE_ORDER.index(phase)
    if target != current + 1:
        raise InvalidTransitionError(f"Cannot move from {session.phase.value} to {phase.value}")
    logger.info(f"IC session {session.id}: {session.phase.value} -> {phase.value}")
    return replace(session, phase=phase, **changes)


def _with_log(session: ICSession, *lines: str) -> tuple[str, ...]:
    return session.log + tuple(lines)


def difficulty_for(satisfaction: float) -> str:
    if satisfaction > 70:
        return "easy"
    if satisfaction > 40:
        return "medium"
    return "hard"


def select_question(
    partner: ICPartner,
    satisfaction: float,
    used: set,
    rng: RandomSource,
    question_bank: Optional[dict] = None,
) -> Optional[ICQuestion]:
    """Pick an unused question for the partner, or None when they have none left."""
    bank = question_bank if question_bank is not None else IC_QUESTIONS
    available = [q for q in bank.get(partner.id, ()) if q.text not in used]
    if not available:
        return None
    target = difficulty_for(satisfaction)
    matching = [q for q in available if q.difficulty == target]
    return pick(rng, matching or available)


def _used_questions(session: ICSession) -> set:
    return {exchange.question for exchange in session.history} | set(session.skipped_questions)


def _pose(session: ICSession, index: int, question: ICQuestion, narrator) -> ICSession:
    partner = session.partners[index]
    text = question.text
    if narrator is not None:
        text = narrator.dress_question(partner, question.text, session.company, session.player_level)
    # Response clock starts once the question is on the table
    return replace(
        session,
        current_partner_index=index,
        current_question=question,
        current_question_text=text,
        timer=CountdownTimer.started(RESPONSE_SECONDS),
        log=_with_log(session, f"> {partner.name.upper()} ({partner.title}):", f'> "{text}"'),
    )


def _ask_next(session: ICSession, rng: RandomSource, narrator) -> ICSession:
    used = _used_questions(session)
    count = len(session.partners)
    for offset in range(count):
        index = (session.current_partner_index + offset) % count
        partner = session.partners[index]
        question = select_question(partner, session.satisfaction[partner.id], used, rng)
        if question is not None:
            return _pose(session, index, question, narrator)
    logger.info(f"IC session {session.id}: question bank exhausted")
    return _begin_deliberation(session)


def _begin_deliberation(session: ICSession) -> ICSession:
    return _transition(
        session,
        ICPhase.DELIBERATION,
        current_question=None,
        current_question_text=None,
        timer=CountdownTimer.started(DELIBERATION_SECONDS),
        log=_with_log(session, "", "> INTERROGATION COMPLETE", "> The partners are conferring privately..."),
    )


def _after_question(session: ICSession, rng: RandomSource, narrator) -> ICSession:
    if session.questions_asked >= session.max_questions:
        return _begin_deliberation(session)
    next_index = (session.current_partner_index + 1) % len(session.partners)
    return _ask_next(replace(session, current_partner_index=next_index), rng, narrator)


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------

def start_ic_session(
    company: PortfolioCompany,
    player_level: str = "associate",
    partners: Optional[tuple] = None,
    max_questions: int = MAX_QUESTIONS,
    session_id: Optional[str] = None,
) -> ICSession:
    """
    Open a new IC meeting in PREP.

    The roster is ordered for this deal (see select_partners_for_meeting)
    and every partner starts at neutral satisfaction.
    """
    roster = select_partners_for_meeting(company, partners or IC_PARTNERS)
    session = ICSession(
        id=session_id or uuid.uuid4().hex[:12],
        company=company,
        player_level=player_level,
        partners=roster,
        satisfaction={p.id: INITIAL_SATISFACTION for p in roster},
        max_questions=max_questions,
        log=(
            f"> IC MEETING INITIATED: {company.name}",
            f"> ATTENDEES: {', '.join(p.name for p in roster)}",
            "> STATUS: Awaiting player preparation",
        ),
    )
    logger.info(f"IC session {session.id} opened for {company.id} (level={player_level})")
    return session


def enter_meeting(session: ICSession) -> ICSession:
    """PREP -> OPENING_PITCH; starts the pitch countdown."""
    _require(session, ICPhase.PREP)
    chair = partner_by_archetype(session.partners, PartnerArchetype.SAGE) or session.partners[-1]
    return _transition(
        session,
        ICPhase.OPENING_PITCH,
        timer=CountdownTimer.started(OPENING_PITCH_SECONDS),
        log=_with_log(session, "", "> MEETING STARTED", f'> {chair.name}: "Let\'s hear your thesis."'),
    )


def update_pitch_draft(session: ICSession, text: str) -> ICSession:
    """Store the in-progress pitch; it is what a pitch timeout submits."""
    _require(session, ICPhase.OPENING_PITCH)
    return replace(session, pitch_draft=text[:MAX_PITCH_CHARS])


def submit_opening_pitch(
    session: ICSession,
    text: str,
    rng: Optional[RandomSource] = None,
    scorer: Optional[ResponseScorer] = None,
    narrator=None,
    timed_out: bool = False,
) -> ICSession:
    """
    Deliver the opening pitch and move to INTERROGATION.

    Raises:
        ICValidationError: pitch shorter than 50 characters (unless the
            pitch timer ran out, which submits whatever text exists).
        InvalidTransitionError: session not in OPENING_PITCH.
    """
    _require(session, ICPhase.OPENING_PITCH)
    if not timed_out and len(text) < MIN_PITCH_CHARS:
        logger.warning(f"IC session {session.id}: pitch too brief ({len(text)} chars)")
        raise ICValidationError("Pitch too brief. Partners are unimpressed.")

    rng = rng or default_random_source()
    scorer = scorer or _DEFAULT_SCORER
    pitch = text[:MAX_PITCH_CHARS]
    score = scorer.score_pitch(pitch)
    change = pitch_satisfaction_change(score)
    satisfaction = {
        p.id: _clamp(session.satisfaction[p.id] + change + p.pitch_bias) for p in session.partners
    }

    lines = ["> TIME EXPIRED. Pitch auto-submitted."] if timed_out else []
    lines += [
        f"> PITCH DELIVERED ({len(pitch)} characters)",
        "> Partners nod thoughtfully." if score >= 70 else "> Some skeptical looks around the table.",
        f"> {session.current_partner.name} leans forward...",
    ]
    session = _transition(
        session,
        ICPhase.INTERROGATION,
        opening_pitch=pitch,
        pitch_draft=pitch,
        pitch_score=score,
        satisfaction=satisfaction,
        timer=session.timer.stop(),
        log=_with_log(session, *lines),
    )
    return _ask_next(session, rng, narrator)


def submit_response(
    session: ICSession,
    text: str,
    rng: Optional[RandomSource] = None,
    scorer: Optional[ResponseScorer] = None,
    narrator=None,
) -> ICSession:
    """
    Answer the current question.

    Raises:
        ICValidationError: response shorter than 20 characters.
        InvalidTransitionError: not in INTERROGATION, no open question, or
            the question budget is already spent.
    """
    _require(session, ICPhase.INTERROGATION)
    if session.current_question is None:
        raise InvalidTransitionError(f"IC session {session.id} has no open question")
    if session.questions_asked >= session.max_questions:
        raise InvalidTransitionError(f"IC session {session.id} has used all {session.max_questions} questions")
    if len(text) < MIN_RESPONSE_CHARS:
        logger.warning(f"IC session {session.id}: response too brief ({len(text)} chars)")
        raise ICValidationError("Response too brief.")

    rng = rng or default_random_source()
    scorer = scorer or _DEFAULT_SCORER
    response = text[:MAX_RESPONSE_CHARS]
    partner = session.current_partner
    question = session.current_question

    reaction = scorer.score_response(response, question, partner)
    if narrator is not None:
        reaction = replace(reaction, feedback=narrator.dress_feedback(partner, reaction, response))

    satisfaction = dict(session.satisfaction)
    satisfaction[partner.id] = _clamp(satisfaction[partner.id] + reaction.satisfaction)

    session = replace(
        session,
        satisfaction=satisfaction,
        history=session.history + (ICExchange(
            partner_id=partner.id,
            question=question.text,
            category=question.category,
            response=response,
            reaction=reaction,
        ),),
        questions_asked=session.questions_asked + 1,
        current_question=None,
        current_question_text=None,
        log=_with_log(session, f'> YOUR RESPONSE: "{response[:50]}..."', f"> {partner.name}: {reaction.feedback}"),
    )

    if session.questions_asked >= session.max_questions:
        return _begin_deliberation(session)

    if reaction.follow_up_question and rng.next() > FOLLOW_UP_ROLL:
        follow_up = ICQuestion(
            partner_id=partner.id,
            text=reaction.follow_up_question,
            category=question.category,
            difficulty=question.difficulty,
            is_follow_up=True,
        )
        return _pose(session, session.current_partner_index, follow_up, narrator)

    return _after_question(session, rng, narrator)


def skip_question(
    session: ICSession,
    rng: Optional[RandomSource] = None,
    narrator=None,
) -> ICSession:
    """Decline to answer: the partner loses 15 satisfaction and the slot is spent."""
    _require(session, ICPhase.INTERROGATION)
    if session.current_question is None:
        raise InvalidTransitionError(f"IC session {session.id} has no open question")

    rng = rng or default_random_source()
    partner = session.current_partner
    satisfaction = dict(session.satisfaction)
    satisfaction[partner.id] = max(0, satisfaction[partner.id] - SKIP_PENALTY)

    session = replace(
        session,
        satisfaction=satisfaction,
        questions_asked=session.questions_asked + 1,
        skipped_questions=session.skipped_questions + (session.current_question.text,),
        current_question=None,
        current_question_text=None,
        log=_with_log(session, f"> You hesitate. {partner.name} frowns."),
    )
    return _after_question(session, rng, narrator)


def finalize_verdict(
    session: ICSession,
    weights: Optional[dict] = None,
    thresholds: Optional[dict] = None,
) -> ICVerdict:
    """Evaluate a session in DELIBERATION (or return the stored verdict)."""
    if session.phase == ICPhase.VERDICT and session.verdict is not None:
        return session.verdict
    _require(session, ICPhase.DELIBERATION)
    return build_verdict(
        pitch_score=session.pitch_score or 0,
        satisfaction=session.satisfaction,
        history=session.history,
        partners=session.partners,
        company=session.company,
        weights=weights,
        thresholds=thresholds,
    )


def complete_deliberation(
    session: ICSession,
    weights: Optional[dict] = None,
    thresholds: Optional[dict] = None,
) -> ICSession:
    """DELIBERATION -> VERDICT with the evaluated verdict attached."""
    verdict = finalize_verdict(session, weights, thresholds)
    logger.info(f"IC session {session.id}: verdict {verdict.outcome.value} (score {verdict.overall_score})")
    return _transition(
        session,
        ICPhase.VERDICT,
        verdict=verdict,
        timer=session.timer.stop(),
        log=_with_log(session, "> DELIBERATION COMPLETE", f"> VERDICT: {verdict.outcome.value}"),
    )


def advance_clock(
    session: ICSession,
    seconds: int = 1,
    rng: Optional[RandomSource] = None,
    scorer: Optional[ResponseScorer] = None,
    narrator=None,
) -> ICSession:
    """
    Tick the active countdown and fire its expiry action.

    PREP and VERDICT have no clock; the session is returned unchanged.
    """
    if session.cancelled:
        raise InvalidTransitionError(f"IC session {session.id} was cancelled")

    if session.phase in (ICPhase.PREP, ICPhase.VERDICT):
        return session

    session = replace(session, timer=session.timer.tick(seconds))
    if not session.timer.expired:
        return session

    if session.phase == ICPhase.OPENING_PITCH:
        return submit_opening_pitch(
            session, session.pitch_draft, rng=rng, scorer=scorer, narrator=narrator, timed_out=True
        )
    if session.phase == ICPhase.INTERROGATION:
        session = replace(session, log=_with_log(session, "> TIME EXPIRED."))
        return skip_question(session, rng=rng, narrator=narrator)
    return complete_deliberation(session)


def cancel_session(session: ICSession) -> ICSession:
    """Abandon the meeting before a verdict; nothing is carried forward."""
    if session.cancelled:
        raise InvalidTransitionError(f"IC session {session.id} was already cancelled")
    if session.phase == ICPhase.VERDICT:
        raise InvalidTransitionError(f"IC session {session.id} already reached a verdict")
    logger.info(f"IC session {session.id} cancelled during {session.phase.value}")
    return replace(
        session,
        cancelled=True,
        current_question=None,
        current_question_text=None,
        timer=session.timer.stop(),
        log=_with_log(session, "> MEETING CANCELLED"),
    )
