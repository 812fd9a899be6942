"""Tests for the narrative providers and IC narration fallbacks."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest

from conftest import GOOD_PITCH, LONG_ANSWER
from fundwars.models import PartnerReaction
from fundwars.engines.ic_meeting import enter_meeting, start_ic_session, submit_opening_pitch, submit_response
from fundwars.engines.ic_partners import get_partner
from fundwars.engines.randomness import FixedRandomSource
from fundwars.narrative.ic_narration import ICNarrator, build_feedback_prompt, build_question_prompt
from fundwars.narrative.llm_provider import (
    AnthropicProvider,
    MockProvider,
    NarrativePrompt,
    NarrativeProvider,
    NarrativeProviderError,
    get_provider,
)


class LoudProvider(NarrativeProvider):
    """Shouts the canned line back, so dressing is visible in assertions."""

    def __init__(self):
        self.prompts = []

    def get_name(self) -> str:
        return "loud"

    def generate_narrative_text(self, prompt):
        self.prompts.append(prompt)
        return f"  {prompt.fallback.upper()}  "


class BrokenProvider(NarrativeProvider):
    def get_name(self) -> str:
        return "broken"

    def generate_narrative_text(self, prompt):
        raise NarrativeProviderError("upstream timeout")


class SilentProvider(NarrativeProvider):
    def get_name(self) -> str:
        return "silent"

    def generate_narrative_text(self, prompt):
        return "   "


PROMPT = NarrativePrompt(system_prompt="sys", prompt="Rephrase it.", fallback="What is the IRR?")


class TestProviders:
    def test_mock_returns_fallback(self):
        assert MockProvider().generate_narrative_text(PROMPT) == "What is the IRR?"

    def test_get_provider_mock(self):
        assert isinstance(get_provider("mock"), MockProvider)

    def test_auto_without_key_uses_mock(self, monkeypatch):
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
        assert isinstance(get_provider("auto"), MockProvider)

    def test_unknown_provider(self):
        with pytest.raises(ValueError, match="Unknown provider"):
            get_provider("gpt")

    def test_anthropic_requires_key(self, monkeypatch):
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
        with pytest.raises(ValueError, match="ANTHROPIC_API_KEY"):
            AnthropicProvider()


class TestICNarrator:
    def test_dressed_text_is_stripped(self):
        assert ICNarrator(LoudProvider()).narrate(PROMPT) == "WHAT IS THE IRR?"

    def test_provider_error_falls_back(self, caplog):
        with caplog.at_level("WARNING", logger="fundwars.narrative"):
            assert ICNarrator(BrokenProvider()).narrate(PROMPT) == "What is the IRR?"
        assert "upstream timeout" in caplog.text

    def test_empty_output_falls_back(self):
        assert ICNarrator(SilentProvider()).narrate(PROMPT) == "What is the IRR?"

    def test_question_prompt_carries_deal_context(self, company):
        margaret = get_partner("margaret")
        prompt = build_question_prompt(margaret, "Where is the downside?", company, "associate")
        assert "Margaret Thornwood" in prompt.system_prompt
        assert "Acme Logistics" in prompt.prompt
        assert "3.0x" in prompt.prompt
        assert prompt.fallback == "Where is the downside?"

    def test_feedback_prompt_truncates_answer(self):
        reaction = PartnerReaction("david", 10, "satisfied", '"Good. Continue."')
        prompt = build_feedback_prompt(get_partner("david"), reaction, "x" * 1000)
        assert "x" * 401 not in prompt.prompt
        assert prompt.fallback == '"Good. Continue."'


class TestMeetingNarration:
    def test_questions_and_feedback_dressed(self, company):
        provider = LoudProvider()
        narrator = ICNarrator(provider)
        rng = FixedRandomSource(0.0)
        session = enter_meeting(start_ic_session(company, "associate"))
        session = submit_opening_pitch(session, GOOD_PITCH, rng=rng, narrator=narrator)

        # scoring runs on the canned question; only the displayed text changes
        assert session.current_question_text == session.current_question.text.upper()

        session = submit_response(session, LONG_ANSWER, rng=rng, narrator=narrator)
        assert session.history[0].reaction.feedback == '"THAT\'S MORE LIKE IT."'
        assert session.satisfaction["margaret"] == 80
        assert len(provider.prompts) == 3

    def test_failing_narrator_keeps_meeting_running(self, company):
        narrator = ICNarrator(BrokenProvider())
        rng = FixedRandomSource(0.0)
        session = enter_meeting(start_ic_session(company, "associate"))
        session = submit_opening_pitch(session, GOOD_PITCH, rng=rng, narrator=narrator)
        assert session.current_question_text == session.current_question.text
        session = submit_response(session, LONG_ANSWER, rng=rng, narrator=narrator)
        assert session.history[0].reaction.feedback == '"That\'s more like it."'
        assert session.questions_asked == 1
