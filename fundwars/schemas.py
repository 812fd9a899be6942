"""
FundWars Pydantic Schemas

Defines request/response models for the FastAPI REST API.

The domain records in models.py are frozen dataclasses; pydantic validates
them directly when they appear as fields here, so request bodies reuse the
domain types instead of mirroring them.

Naming convention:
    - XxxRequest: POST/PUT request body
    - XxxResponse: response body that is not a domain record
"""

from typing import Optional

from pydantic import BaseModel, Field, field_validator

from .models import (
    NPC,
    ICExchange,
    ICPhase,
    ICQuestion,
    ICVerdict,
    MarketVolatility,
    PlayerState,
    PortfolioCompany,
    RivalFund,
)

PLAYER_LEVELS = ("analyst", "associate", "vp", "principal", "partner")


# ---------------------------------------------------------------------------
# WORLD SCHEMAS
# ---------------------------------------------------------------------------

class TickRequest(BaseModel):
    """Request body for advancing the world one week."""
    player: PlayerState
    rival_funds: list[RivalFund] = Field(default_factory=list)
    npcs: list[NPC] = Field(default_factory=list)
    current_week: int = Field(..., ge=0)
    volatility: MarketVolatility = MarketVolatility.NORMAL
    seed: Optional[int] = Field(None, description="Seed for a reproducible tick")


class WarningsRequest(BaseModel):
    player: PlayerState
    current_week: int = Field(..., ge=0)


class SimulateQuarterRequest(BaseModel):
    company: PortfolioCompany
    volatility: MarketVolatility = MarketVolatility.NORMAL
    seed: Optional[int] = None


class ResolveEventRequest(BaseModel):
    """Request body for answering a company's active event."""
    company: PortfolioCompany
    option_id: str = Field(..., min_length=1)
    seed: Optional[int] = None


# ---------------------------------------------------------------------------
# IC SCHEMAS
# ---------------------------------------------------------------------------

class CreateSessionRequest(BaseModel):
    """Request body for opening an IC meeting on a deal."""
    company: PortfolioCompany
    player_level: str = "associate"
    max_questions: int = Field(6, ge=1, le=12)
    seed: Optional[int] = None

    @field_validator("player_level")
    @classmethod
    def validate_player_level(cls, v):
        v = v.strip().lower()
        if v not in PLAYER_LEVELS:
            raise ValueError(f"player_level must be one of {', '.join(PLAYER_LEVELS)}")
        return v


class TextSubmission(BaseModel):
    """Pitch, draft, or response text. Length minimums are enforced by the meeting."""
    text: str = Field("", max_length=5000)


class ClockRequest(BaseModel):
    seconds: int = Field(1, ge=1, le=600)


class TimerResponse(BaseModel):
    duration: int
    remaining: int
    running: bool


class ICSessionResponse(BaseModel):
    """Player-facing view of an IC meeting."""
    id: str
    company_id: str
    company_name: str
    player_level: str
    phase: ICPhase
    outcome: Optional[str] = None
    cancelled: bool = False
    partners: list[str]
    current_partner_id: Optional[str] = None
    current_question: Optional[ICQuestion] = None
    current_question_text: Optional[str] = None
    questions_asked: int
    max_questions: int
    satisfaction: dict[str, int]
    pitch_score: Optional[int] = None
    history: list[ICExchange] = Field(default_factory=list)
    skipped_questions: list[str] = Field(default_factory=list)
    timer: TimerResponse
    verdict: Optional[ICVerdict] = None
    log: list[str] = Field(default_factory=list)

    @classmethod
    def from_session(cls, session) -> "ICSessionResponse":
        return cls(
            id=session.id,
            company_id=session.company.id,
            company_name=session.company.name,
            player_level=session.player_level,
            phase=session.phase,
            outcome=session.outcome,
            cancelled=session.cancelled,
            partners=[p.id for p in session.partners],
            current_partner_id=(
                session.current_partner.id if session.current_question is not None else None
            ),
            current_question=session.current_question,
            current_question_text=session.current_question_text,
            questions_asked=session.questions_asked,
            max_questions=session.max_questions,
            satisfaction=dict(session.satisfaction),
            pitch_score=session.pitch_score,
            history=list(session.history),
            skipped_questions=list(session.skipped_questions),
            timer=TimerResponse(
                duration=session.timer.duration,
                remaining=session.timer.remaining,
                running=session.timer.running,
            ),
            verdict=session.verdict,
            log=list(session.log),
        )
