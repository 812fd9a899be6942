"""
FundWars — IC Narration

Builds prompts that let an AI provider rephrase partner questions and
feedback in each partner's voice. One attempt per line of dialogue; any
exception or empty output falls back to the canned text, so a provider
outage never blocks a meeting.
"""

import logging

from ..engines.formatting import format_currency, format_multiple, format_percent
from ..models import ICPartner, PartnerReaction, PortfolioCompany
from .llm_provider import NarrativePrompt, NarrativeProvider

logger = logging.getLogger("fundwars.narrative.ic")

_VOICE = {
    "RISK_HAWK": "Cold, precise, uses deadly silences.",
    "OPERATOR": "Warm but probing, draws on stories from running companies.",
    "RETURNS_MAX": "Fast, impatient, expects the presenter to keep up.",
    "SAGE": "Slow and philosophical, asks questions that reveal blind spots.",
}


def _system_prompt(partner: ICPartner) -> str:
    return (
        f"You are {partner.name}, {partner.title} on a private equity Investment Committee. "
        f"Speaking style: {_VOICE.get(partner.archetype.value, '')} "
        "Reply with a single line of dialogue, no stage directions, under 40 words."
    )


def _company_brief(company: PortfolioCompany, player_level: str) -> str:
    margin = company.ebitda_margin if company.ebitda_margin is not None else 0.0
    return (
        f"Deal: {company.name} ({company.sector}, {company.deal_type}). "
        f"Revenue {format_currency(company.revenue)}, EBITDA {format_currency(company.ebitda)} "
        f"({format_percent(margin)} margin), leverage {format_multiple(company.leverage)}, "
        f"growth {format_percent(company.revenue_growth)}. Presenter level: {player_level}."
    )


def build_question_prompt(
    partner: ICPartner,
    question_text: str,
    company: PortfolioCompany,
    player_level: str,
) -> NarrativePrompt:
    return NarrativePrompt(
        system_prompt=_system_prompt(partner),
        prompt=(
            f"{_company_brief(company, player_level)}\n"
            f"Rephrase this question in your own voice, keeping its meaning: \"{question_text}\""
        ),
        fallback=question_text,
    )


def build_feedback_prompt(
    partner: ICPartner,
    reaction: PartnerReaction,
    response: str,
) -> NarrativePrompt:
    return NarrativePrompt(
        system_prompt=_system_prompt(partner),
        prompt=(
            f"The presenter answered: \"{response[:400]}\"\n"
            f"Your reaction is {reaction.reaction}. "
            f"React in one line, in the spirit of: {reaction.feedback}"
        ),
        fallback=reaction.feedback,
    )


class ICNarrator:
    """Dresses up canned IC dialogue through a NarrativeProvider."""

    def __init__(self, provider: NarrativeProvider):
        self.provider = provider

    def narrate(self, prompt: NarrativePrompt) -> str:
        try:
            text = self.provider.generate_narrative_text(prompt)
        except Exception as e:
            logger.warning(f"Narration failed on {self.provider.get_name()} ({e}), using scripted line")
            return prompt.fallback
        if not text or not text.strip():
            logger.warning(f"Empty narration from {self.provider.get_name()}, using scripted line")
            return prompt.fallback
        return text.strip()

    def dress_question(
        self,
        partner: ICPartner,
        question_text: str,
        company: PortfolioCompany,
        player_level: str,
    ) -> str:
        return self.narrate(build_question_prompt(partner, question_text, company, player_level))

    def dress_feedback(self, partner: ICPartner, reaction: PartnerReaction, response: str) -> str:
        return self.narrate(build_feedback_prompt(partner, reaction, response))
