"""
FundWars — Configuration

Runtime settings are read from environment variables with in-code defaults
(FUNDWARS_* prefix, plus ANTHROPIC_API_KEY for the narrative provider).

Game-balance tables (tick probabilities, IC weights and thresholds) live
next to the engines that consume them; this module only holds what an
operator would change between deployments.
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Settings:
    narrative_provider: str = "auto"
    narrative_model: str = "claude-sonnet-4-20250514"
    log_level: str = "INFO"
    random_seed: Optional[int] = None
    anthropic_api_key: str = ""


def load_settings() -> Settings:
    """Build Settings from the current environment."""
    seed = os.environ.get("FUNDWARS_RANDOM_SEED", "").strip()
    return Settings(
        narrative_provider=os.environ.get("FUNDWARS_NARRATIVE_PROVIDER", "auto"),
        narrative_model=os.environ.get(
            "FUNDWARS_NARRATIVE_MODEL", "claude-sonnet-4-20250514"
        ),
        log_level=os.environ.get("FUNDWARS_LOG_LEVEL", "INFO").upper(),
        random_seed=int(seed) if seed else None,
        anthropic_api_key=os.environ.get("ANTHROPIC_API_KEY", ""),
    )


def configure_logging(level: str = "INFO") -> None:
    """Attach a stream handler to the fundwars logger namespace."""
    logger = logging.getLogger("fundwars")
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s")
        )
        logger.addHandler(handler)
