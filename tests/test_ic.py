"""Tests for the Investment Committee engines: scoring, verdicts and the meeting state machine."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from dataclasses import replace

import pytest

from conftest import GOOD_PITCH, LONG_ANSWER
from fundwars.models import (
    IC_PHASE_ORDER,
    DealOutcome,
    ICEvaluation,
    ICPartner,
    ICPhase,
    PartnerArchetype,
    PartnerReaction,
    PartnerVote,
    VerdictOutcome,
)
from fundwars.engines.ic_evaluation import (
    GENERIC_FOLLOW_UP,
    ResponseScorer,
    build_conditions,
    build_verdict,
    calculate_consequences,
    calculate_final_evaluation,
    determine_verdict,
    evaluate_pitch_clarity,
    evaluate_response,
    generate_votes,
    pitch_satisfaction_change,
)
from fundwars.engines.ic_meeting import (
    ICValidationError,
    InvalidTransitionError,
    advance_clock,
    cancel_session,
    complete_deliberation,
    difficulty_for,
    enter_meeting,
    finalize_verdict,
    select_question,
    skip_question,
    start_ic_session,
    submit_opening_pitch,
    submit_response,
    update_pitch_draft,
)
from fundwars.engines.ic_partners import (
    IC_PARTNERS,
    IC_QUESTIONS,
    get_partner,
    select_partners_for_meeting,
)
from fundwars.engines.randomness import FixedRandomSource

MARGARET = get_partner("margaret")
DAVID = get_partner("david")
VICTORIA = get_partner("victoria")
RICHARD = get_partner("richard")


@pytest.fixture
def rng():
    """0.0 on every draw: first matching question, never a follow-up."""
    return FixedRandomSource(0.0)


@pytest.fixture
def pitch_session(company):
    return enter_meeting(start_ic_session(company, "associate"))


@pytest.fixture
def interrogation(pitch_session, rng):
    return submit_opening_pitch(pitch_session, GOOD_PITCH, rng=rng)


def _answer_all(session, rng, answer=LONG_ANSWER):
    while session.phase == ICPhase.INTERROGATION:
        session = submit_response(session, answer, rng=rng)
    return session


# =========================================================================
# Roster
# =========================================================================

class TestRoster:
    def test_four_partners_six_questions_each(self):
        assert [p.id for p in IC_PARTNERS] == ["margaret", "david", "victoria", "richard"]
        for partner in IC_PARTNERS:
            assert len(IC_QUESTIONS[partner.id]) == 6

    def test_unknown_partner(self):
        with pytest.raises(ValueError):
            get_partner("gordon")

    def test_default_order(self, company):
        order = [p.id for p in select_partners_for_meeting(company)]
        assert order == ["margaret", "david", "victoria", "richard"]

    def test_growth_equity_led_by_operator(self, company):
        order = [p.id for p in select_partners_for_meeting(replace(company, deal_type="GROWTH_EQUITY"))]
        assert order == ["david", "margaret", "victoria", "richard"]

    def test_high_leverage_led_by_risk_hawk(self, company):
        levered = replace(company, deal_type="GROWTH_EQUITY", debt=100_000_000)
        assert select_partners_for_meeting(levered)[0].id == "margaret"

    def test_sage_speaks_last(self, company):
        roster = (RICHARD, VICTORIA, DAVID, MARGARET)
        assert select_partners_for_meeting(company, roster)[-1].id == "richard"


# =========================================================================
# Pitch and response scoring
# =========================================================================

class TestPitchScoring:
    def test_strong_pitch_caps_at_100(self):
        assert evaluate_pitch_clarity(GOOD_PITCH) == 100

    def test_plain_pitch_is_neutral(self):
        assert evaluate_pitch_clarity("We like this company a lot and believe it will do well.") == 50

    def test_long_pitch_penalized(self):
        assert evaluate_pitch_clarity("a" * 900) == 45

    def test_numbers_bonus(self):
        assert evaluate_pitch_clarity("Revenue 10, growth 20, margin 30 and that is the story.") == 60

    def test_satisfaction_change(self):
        assert pitch_satisfaction_change(100) == 5
        assert pitch_satisfaction_change(50) == 0
        assert pitch_satisfaction_change(45) == -1


class TestResponseScoring:
    def test_strong_risk_answer(self):
        question = IC_QUESTIONS["margaret"][0]
        reaction = evaluate_response(LONG_ANSWER, question, MARGARET)
        # risk +10, long and specific +10, covenant +5
        assert reaction.satisfaction == 25
        assert reaction.reaction == "satisfied"
        assert reaction.feedback == '"That\'s more like it."'
        assert reaction.follow_up_question is None

    def test_short_answer_dismissed(self):
        question = IC_QUESTIONS["victoria"][5]
        reaction = evaluate_response("We walk at 7.5x, a 22% irr floor.", question, VICTORIA)
        assert reaction.satisfaction == 5
        assert reaction.reaction == "dismissive"
        assert reaction.follow_up_question == GENERIC_FOLLOW_UP

    def test_financials_without_numbers(self):
        question = IC_QUESTIONS["victoria"][1]
        answer = "We will negotiate hard with the lenders and keep flexibility in the structure for sure."
        reaction = evaluate_response(answer, question, VICTORIA)
        assert reaction.satisfaction == -10
        assert reaction.feedback == '"I asked for numbers, not platitudes."'
        assert reaction.follow_up_question == question.follow_up_if_weak

    def test_keyword_affinity_probing(self):
        question = IC_QUESTIONS["richard"][1]
        answer = "Our reputation improves because this is a clean, simple deal."
        reaction = evaluate_response(answer, question, RICHARD)
        assert reaction.satisfaction == 5
        assert reaction.reaction == "probing"
        assert reaction.feedback == '"Hmm."'

    def test_neutral_answer_skeptical(self):
        question = IC_QUESTIONS["richard"][1]
        answer = "It is a good business and we think the team can grow it over time."
        reaction = evaluate_response(answer, question, RICHARD)
        assert reaction.satisfaction == 0
        assert reaction.reaction == "skeptical"


# =========================================================================
# Evaluation and verdict
# =========================================================================

class TestVerdict:
    def test_margaret_approves_at_75(self):
        satisfaction = {"margaret": 75, "david": 50, "victoria": 50, "richard": 50}
        votes = {v.partner_id: v for v in generate_votes(satisfaction, IC_PARTNERS)}
        assert votes["margaret"].vote == VerdictOutcome.APPROVED
        assert votes["margaret"].reasoning == "The risk analysis was thorough."
        assert votes["david"].vote == VerdictOutcome.TABLED

    def test_votes_deterministic(self):
        satisfaction = {"margaret": 30, "david": 56, "victoria": 70, "richard": 41}
        assert generate_votes(satisfaction, IC_PARTNERS) == generate_votes(satisfaction, IC_PARTNERS)

    def test_vote_tiers(self):
        satisfaction = {"margaret": 39, "david": 40, "victoria": 55, "richard": 70}
        votes = [v.vote for v in generate_votes(satisfaction, IC_PARTNERS)]
        assert votes == [
            VerdictOutcome.REJECTED,
            VerdictOutcome.TABLED,
            VerdictOutcome.CONDITIONAL,
            VerdictOutcome.APPROVED,
        ]

    def test_determine_verdict(self):
        assert determine_verdict(80) == VerdictOutcome.APPROVED
        assert determine_verdict(65) == VerdictOutcome.CONDITIONAL
        assert determine_verdict(50) == VerdictOutcome.TABLED
        assert determine_verdict(49) == VerdictOutcome.REJECTED

    def test_custom_thresholds(self):
        thresholds = {"APPROVED": 90, "CONDITIONAL": 70, "TABLED": 40}
        assert determine_verdict(85, thresholds) == VerdictOutcome.CONDITIONAL

    def test_thresholds_must_descend(self):
        with pytest.raises(ValueError):
            determine_verdict(70, {"APPROVED": 60, "CONDITIONAL": 70, "TABLED": 50})

    def test_weights_must_sum_to_one(self):
        weights = {
            "thesis_clarity": 0.2, "financial_rigor": 0.2, "risk_awareness": 0.2,
            "value_creation": 0.2, "conviction": 0.2, "specificity": 0.2,
        }
        with pytest.raises(ValueError):
            calculate_final_evaluation(50, {"margaret": 50}, (), IC_PARTNERS, weights)

    def test_neutral_meeting_rejected(self, company):
        satisfaction = {p.id: 50 for p in IC_PARTNERS}
        verdict = build_verdict(50, satisfaction, (), IC_PARTNERS, company)
        assert verdict.dimensions["risk_awareness"] == 40
        assert verdict.dimensions["specificity"] == 30
        assert verdict.outcome == VerdictOutcome.REJECTED
        assert verdict.conditions == ()
        assert verdict.consequences.deal_outcome == DealOutcome.WALK_AWAY
        assert verdict.consequences.reputation_change == -3
        assert "LBO Mechanics" in verdict.concepts_missing

    def test_perfect_meeting_approved(self, company):
        satisfaction = {p.id: 100 for p in IC_PARTNERS}
        verdict = build_verdict(100, satisfaction, (), IC_PARTNERS, company)
        # no answered questions, so specificity stays at its floor of 30
        assert verdict.overall_score == 93
        assert verdict.outcome == VerdictOutcome.APPROVED
        assert all(v.vote == VerdictOutcome.APPROVED for v in verdict.votes)
        assert verdict.consequences.reputation_change == 6
        assert verdict.consequences.deal_outcome == DealOutcome.PROCEED
        assert set(verdict.concepts_demonstrated) == {
            "LBO Mechanics", "Risk Assessment", "Value Creation", "Thesis Development",
        }
        assert verdict.concepts_missing == ()

    def test_conditions_for_levered_deal(self, company):
        levered = replace(company, debt=100_000_000)
        votes = (
            PartnerVote("margaret", VerdictOutcome.TABLED, ""),
            PartnerVote("david", VerdictOutcome.APPROVED, ""),
            PartnerVote("victoria", VerdictOutcome.CONDITIONAL, ""),
            PartnerVote("richard", VerdictOutcome.APPROVED, ""),
        )
        conditions = build_conditions(VerdictOutcome.CONDITIONAL, votes, IC_PARTNERS, levered)
        assert conditions == (
            "Reduce leverage to 4.0x or below",
            "Conduct additional buyer outreach for exit validation",
        )

    def test_covenant_condition_for_moderate_leverage(self, company):
        votes = tuple(PartnerVote(p.id, VerdictOutcome.TABLED, "") for p in IC_PARTNERS)
        conditions = build_conditions(VerdictOutcome.TABLED, votes, IC_PARTNERS, company)
        assert conditions[0] == "Add covenant protection package"
        assert "Detailed 100-day operational plan required" in conditions

    def test_consequences(self):
        evaluation = ICEvaluation(
            dimensions={"financial_rigor": 80, "conviction": 70, "risk_awareness": 60},
            overall_score=85,
        )
        consequences = calculate_consequences(VerdictOutcome.APPROVED, evaluation)
        assert consequences.skill_points == {
            "valuation": 12, "negotiation": 7, "risk_management": 6, "deal_execution": 8,
        }
        assert consequences.reputation_change == 6
        assert calculate_consequences(VerdictOutcome.CONDITIONAL, evaluation).deal_outcome == DealOutcome.RENEGOTIATE
        assert calculate_consequences(VerdictOutcome.TABLED, evaluation).reputation_change == -1


# =========================================================================
# Meeting state machine
# =========================================================================

class TestMeetingOpening:
    def test_session_starts_in_prep(self, company):
        session = start_ic_session(company, "associate", session_id="s1")
        assert session.id == "s1"
        assert session.phase == ICPhase.PREP
        assert session.satisfaction == {"margaret": 50, "david": 50, "victoria": 50, "richard": 50}
        assert session.outcome is None

    def test_enter_starts_pitch_clock(self, pitch_session):
        assert pitch_session.phase == ICPhase.OPENING_PITCH
        assert pitch_session.timer.remaining == 180
        assert '> Richard Morrison: "Let\'s hear your thesis."' in pitch_session.log

    def test_enter_twice_rejected(self, pitch_session):
        with pytest.raises(InvalidTransitionError):
            enter_meeting(pitch_session)

    def test_pitch_before_entering_rejected(self, company):
        with pytest.raises(InvalidTransitionError):
            submit_opening_pitch(start_ic_session(company, "associate"), GOOD_PITCH)

    def test_short_pitch_rejected_in_place(self, pitch_session, caplog):
        with caplog.at_level("WARNING", logger="fundwars.ic"):
            with pytest.raises(ICValidationError, match="too brief"):
                submit_opening_pitch(pitch_session, "Great company, great price!!!")
        assert pitch_session.phase == ICPhase.OPENING_PITCH
        assert pitch_session.opening_pitch == ""
        assert "too brief" in caplog.text

    def test_pitch_moves_satisfaction(self, interrogation):
        # +5 from the pitch, plus David +5 and Victoria -5 bias
        assert interrogation.pitch_score == 100
        assert interrogation.satisfaction == {"margaret": 55, "david": 60, "victoria": 50, "richard": 55}

    def test_first_question_from_lead_partner(self, interrogation):
        assert interrogation.phase == ICPhase.INTERROGATION
        assert interrogation.current_partner.id == "margaret"
        assert interrogation.current_question.difficulty == "medium"
        assert interrogation.current_question.text.startswith("Walk me through the downside case")
        assert interrogation.current_question_text == interrogation.current_question.text
        assert interrogation.timer.remaining == 90

    def test_pitch_truncated(self, pitch_session, rng):
        session = submit_opening_pitch(pitch_session, GOOD_PITCH * 10, rng=rng)
        assert len(session.opening_pitch) == 1500


class TestInterrogation:
    def test_response_scored_and_partner_advances(self, interrogation, rng):
        session = submit_response(interrogation, LONG_ANSWER, rng=rng)
        assert session.satisfaction["margaret"] == 80
        assert session.questions_asked == 1
        assert len(session.history) == 1
        assert session.history[0].reaction.reaction == "satisfied"
        assert session.current_partner.id == "david"
        assert session.current_question.text.startswith("Walk me through Day 1")

    def test_short_response_rejected_in_place(self, interrogation, rng):
        with pytest.raises(ICValidationError, match="too brief"):
            submit_response(interrogation, "Trust me.", rng=rng)
        assert interrogation.questions_asked == 0
        assert interrogation.history == ()

    def test_question_budget_forces_deliberation(self, interrogation, rng):
        session = _answer_all(interrogation, rng)
        assert session.phase == ICPhase.DELIBERATION
        assert session.questions_asked == 6
        assert len(session.history) == 6
        assert session.current_question is None
        with pytest.raises(InvalidTransitionError):
            submit_response(session, LONG_ANSWER, rng=rng)

    def test_satisfaction_clamped(self, interrogation, rng):
        session = _answer_all(interrogation, rng)
        assert session.satisfaction["margaret"] == 100
        assert all(0 <= value <= 100 for value in session.satisfaction.values())

    def test_questions_not_repeated(self, interrogation, rng):
        session = _answer_all(interrogation, rng)
        asked = [exchange.question for exchange in session.history]
        assert len(asked) == len(set(asked))

    def test_custom_question_budget(self, company, rng):
        session = enter_meeting(start_ic_session(company, "associate", max_questions=2))
        session = submit_opening_pitch(session, GOOD_PITCH, rng=rng)
        session = _answer_all(session, rng)
        assert session.questions_asked == 2

    def test_follow_up_keeps_partner(self, pitch_session):
        rng = FixedRandomSource(0.9)
        session = submit_opening_pitch(pitch_session, GOOD_PITCH, rng=rng)
        session = submit_response(session, "Not sure yet, honestly.", rng=rng)
        assert session.current_partner.id == "margaret"
        assert session.current_question.is_follow_up
        assert session.current_question.text == GENERIC_FOLLOW_UP
        assert session.questions_asked == 1
        assert session.satisfaction["margaret"] == 40

    def test_follow_up_roll_can_miss(self, pitch_session):
        rng = FixedRandomSource(0.3)
        session = submit_opening_pitch(pitch_session, GOOD_PITCH, rng=rng)
        session = submit_response(session, "Not sure yet, honestly.", rng=rng)
        assert session.current_partner.id == "david"
        assert not session.current_question.is_follow_up

    def test_skip_penalizes_and_advances(self, interrogation, rng):
        skipped_text = interrogation.current_question.text
        session = skip_question(interrogation, rng=rng)
        assert session.satisfaction["margaret"] == 40
        assert session.questions_asked == 1
        assert session.skipped_questions == (skipped_text,)
        assert session.current_partner.id == "david"
        assert "> You hesitate. Margaret Thornwood frowns." in session.log

    def test_skip_outside_interrogation(self, pitch_session, rng):
        with pytest.raises(InvalidTransitionError):
            skip_question(pitch_session, rng=rng)

    def test_custom_scorer(self, pitch_session, rng):
        class GenerousScorer(ResponseScorer):
            def score_pitch(self, pitch):
                return 50

            def score_response(self, response, question, partner):
                return PartnerReaction(partner.id, 50, "satisfied", '"Brilliant."')

        scorer = GenerousScorer()
        session = submit_opening_pitch(pitch_session, GOOD_PITCH, rng=rng, scorer=scorer)
        session = submit_response(session, LONG_ANSWER, rng=rng, scorer=scorer)
        assert session.satisfaction["margaret"] == 100
        assert session.history[0].reaction.feedback == '"Brilliant."'

    def test_partner_without_questions_goes_to_deliberation(self, company, rng):
        solo = ICPartner(
            id="solo", name="Solo Partner", title="Partner",
            archetype=PartnerArchetype.SAGE, satisfaction_threshold=60, keyword="",
        )
        session = enter_meeting(start_ic_session(company, "associate", partners=(solo,)))
        session = submit_opening_pitch(session, GOOD_PITCH, rng=rng)
        assert session.phase == ICPhase.DELIBERATION
        verdict = finalize_verdict(session)
        assert verdict.votes[0].partner_id == "solo"


class TestQuestionSelection:
    def test_difficulty_buckets(self):
        assert difficulty_for(71) == "easy"
        assert difficulty_for(70) == "medium"
        assert difficulty_for(41) == "medium"
        assert difficulty_for(40) == "hard"

    def test_hard_question_for_unhappy_partner(self, rng):
        question = select_question(MARGARET, 30, set(), rng)
        assert question.difficulty == "hard"

    def test_fallback_when_difficulty_missing(self, rng):
        question = select_question(MARGARET, 90, set(), rng)
        assert question == IC_QUESTIONS["margaret"][0]

    def test_used_questions_excluded(self, rng):
        used = {q.text for q in IC_QUESTIONS["margaret"][:5]}
        assert select_question(MARGARET, 50, used, rng) == IC_QUESTIONS["margaret"][5]

    def test_exhausted_partner(self, rng):
        used = {q.text for q in IC_QUESTIONS["margaret"]}
        assert select_question(MARGARET, 50, used, rng) is None


class TestDeliberationAndVerdict:
    def test_full_meeting_reaches_verdict(self, interrogation, rng):
        session = complete_deliberation(_answer_all(interrogation, rng))
        assert session.phase == ICPhase.VERDICT
        assert session.verdict.outcome == VerdictOutcome.APPROVED
        assert session.verdict.overall_score >= 80
        assert session.outcome == "APPROVED"
        assert finalize_verdict(session) is session.verdict

    def test_verdict_requires_deliberation(self, interrogation):
        with pytest.raises(InvalidTransitionError):
            finalize_verdict(interrogation)
        with pytest.raises(InvalidTransitionError):
            complete_deliberation(interrogation)

    def test_verdict_reads_final_satisfaction(self, interrogation, rng):
        session = _answer_all(interrogation, rng)
        session = replace(session, satisfaction={"margaret": 75, "david": 50, "victoria": 50, "richard": 50})
        verdict = finalize_verdict(session)
        margaret = next(v for v in verdict.votes if v.partner_id == "margaret")
        assert margaret.vote == VerdictOutcome.APPROVED
        assert margaret.reasoning == "The risk analysis was thorough."

    def test_phases_never_move_backward(self, company, rng):
        phases = []
        session = start_ic_session(company, "associate")
        phases.append(session.phase)
        session = enter_meeting(session)
        phases.append(session.phase)
        session = submit_opening_pitch(session, GOOD_PITCH, rng=rng)
        phases.append(session.phase)
        session = skip_question(session, rng=rng)
        phases.append(session.phase)
        while session.phase == ICPhase.INTERROGATION:
            session = submit_response(session, LONG_ANSWER, rng=rng)
            phases.append(session.phase)
        session = advance_clock(session, 3, rng=rng)
        phases.append(session.phase)

        indices = [IC_PHASE_ORDER.index(p) for p in phases]
        assert indices == sorted(indices)
        assert phases[-1] == ICPhase.VERDICT
        assert phases[-2] == ICPhase.DELIBERATION


class TestMeetingClock:
    def test_clock_counts_down(self, pitch_session):
        session = advance_clock(pitch_session, 10)
        assert session.timer.remaining == 170
        assert session.phase == ICPhase.OPENING_PITCH

    def test_pitch_timeout_submits_draft(self, pitch_session, rng):
        session = update_pitch_draft(pitch_session, "short draft")
        session = advance_clock(session, 180, rng=rng)
        assert session.phase == ICPhase.INTERROGATION
        assert session.opening_pitch == "short draft"
        assert session.pitch_score == 50
        assert session.satisfaction == {"margaret": 50, "david": 55, "victoria": 45, "richard": 50}
        assert "> TIME EXPIRED. Pitch auto-submitted." in session.log

    def test_pitch_timeout_with_empty_draft(self, pitch_session, rng):
        session = advance_clock(pitch_session, 200, rng=rng)
        assert session.phase == ICPhase.INTERROGATION
        assert session.opening_pitch == ""

    def test_response_timeout_counts_as_skip(self, interrogation, rng):
        session = advance_clock(interrogation, 90, rng=rng)
        assert session.questions_asked == 1
        assert session.satisfaction["margaret"] == 40
        assert session.current_partner.id == "david"
        assert session.timer.remaining == 90

    def test_deliberation_delay(self, interrogation, rng):
        session = _answer_all(interrogation, rng)
        waiting = advance_clock(session, 2, rng=rng)
        assert waiting.phase == ICPhase.DELIBERATION
        done = advance_clock(waiting, 1, rng=rng)
        assert done.phase == ICPhase.VERDICT
        assert done.verdict is not None

    def test_no_clock_in_prep(self, company):
        session = start_ic_session(company, "associate")
        assert advance_clock(session, 50) is session

    def test_draft_only_during_pitch(self, interrogation):
        with pytest.raises(InvalidTransitionError):
            update_pitch_draft(interrogation, "too late")


class TestCancellation:
    def test_cancel_mid_interrogation(self, interrogation, rng):
        session = cancel_session(interrogation)
        assert session.cancelled
        assert session.outcome == "CANCELLED"
        assert session.current_question is None
        with pytest.raises(InvalidTransitionError):
            submit_response(session, LONG_ANSWER, rng=rng)
        with pytest.raises(InvalidTransitionError):
            advance_clock(session, 1, rng=rng)
        with pytest.raises(InvalidTransitionError):
            cancel_session(session)

    def test_cancel_in_prep(self, company):
        session = cancel_session(start_ic_session(company, "associate"))
        with pytest.raises(InvalidTransitionError):
            enter_meeting(session)

    def test_cannot_cancel_after_verdict(self, interrogation, rng):
        session = complete_deliberation(_answer_all(interrogation, rng))
        with pytest.raises(InvalidTransitionError):
            cancel_session(session)
