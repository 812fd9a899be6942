"""
FundWars — Narrative Provider Abstraction Layer

Provides a unified interface for the text generator that dresses up IC
questions and partner feedback:
  - AnthropicProvider: Uses Claude API (requires ANTHROPIC_API_KEY)
  - MockProvider: Returns the canned text, for tests and offline play

Each provider implements:
  - generate_narrative_text(prompt) -> str

Providers may raise; the caller (ICNarrator) owns the single-attempt
fallback to canned text. get_provider() picks a provider from settings and
available API keys.
"""

import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass

logger = logging.getLogger("fundwars.narrative")

DEFAULT_MODEL = "claude-sonnet-4-20250514"


class NarrativeProviderError(RuntimeError):
    """The provider could not produce text."""


# ---------------------------------------------------------------------------
# Prompt payload
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class NarrativePrompt:
    """Prompt-in for one generation; `fallback` is the canned text."""
    system_prompt: str
    prompt: str
    fallback: str
    max_tokens: int = 200


# ---------------------------------------------------------------------------
# Abstract Base Provider
# ---------------------------------------------------------------------------

class NarrativeProvider(ABC):
    """Abstract base class for narrative text providers."""

    @abstractmethod
    def generate_narrative_text(self, prompt: NarrativePrompt) -> str:
        """Return generated text for the prompt."""
        ...

    @abstractmethod
    def get_name(self) -> str:
        """Return provider name for display."""
        ...


# ---------------------------------------------------------------------------
# Anthropic Provider (Claude)
# ---------------------------------------------------------------------------

class AnthropicProvider(NarrativeProvider):
    """
    Narrative provider using Anthropic's Claude API.

    Requires ANTHROPIC_API_KEY environment variable.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = DEFAULT_MODEL,
        timeout: float = 10.0,
    ):
        try:
            import anthropic
        except ImportError:
            raise ImportError(
                "anthropic package not installed. Run: pip install anthropic"
            )

        self.api_key = api_key or os.environ.get("ANTHROPIC_API_KEY", "")
        if not self.api_key:
            raise ValueError(
                "ANTHROPIC_API_KEY not set. Set it in environment or pass api_key."
            )

        self.client = anthropic.Anthropic(api_key=self.api_key, timeout=timeout, max_retries=0)
        self.model = model

    def get_name(self) -> str:
        return f"Claude ({self.model})"

    def generate_narrative_text(self, prompt: NarrativePrompt) -> str:
        kwargs = {
            "model": self.model,
            "max_tokens": prompt.max_tokens,
            "messages": [{"role": "user", "content": prompt.prompt}],
        }
        if prompt.system_prompt:
            kwargs["system"] = prompt.system_prompt

        try:
            response = self.client.messages.create(**kwargs)
        except Exception as e:
            logger.error(f"Anthropic API error: {e}")
            raise NarrativeProviderError(str(e)) from e

        return "".join(block.text for block in response.content if block.type == "text").strip()


# ---------------------------------------------------------------------------
# Mock Provider (for testing without API key)
# ---------------------------------------------------------------------------

class MockProvider(NarrativeProvider):
    """
    Deterministic provider: returns the canned text unchanged, so offline
    play reads exactly like the scripted content.
    """

    def get_name(self) -> str:
        return "Mock narrator (offline mode)"

    def generate_narrative_text(self, prompt: NarrativePrompt) -> str:
        return prompt.fallback


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------

def get_provider(
    provider_name: str = "auto",
    api_key: str | None = None,
    model: str = DEFAULT_MODEL,
) -> NarrativeProvider:
    """
    Get a narrative provider instance.

    Args:
        provider_name: "anthropic", "mock", or "auto" (tries Anthropic first, falls back to mock)
        api_key: Optional API key override
        model: Model name for Anthropic

    Returns:
        A NarrativeProvider instance
    """
    if provider_name == "anthropic":
        return AnthropicProvider(api_key=api_key, model=model)
    elif provider_name == "mock":
        return MockProvider()
    elif provider_name == "auto":
        key = api_key or os.environ.get("ANTHROPIC_API_KEY", "")
        if key:
            try:
                return AnthropicProvider(api_key=key, model=model)
            except Exception as e:
                logger.warning(f"Anthropic unavailable ({e}), falling back to mock")
                return MockProvider()
        else:
            logger.info("No ANTHROPIC_API_KEY found, using mock narrator")
            return MockProvider()
    else:
        raise ValueError(f"Unknown provider: {provider_name}. Use 'anthropic', 'mock', or 'auto'.")
