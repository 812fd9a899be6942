"""
Investment Committee Router — /api/ic

Drives IC meetings over HTTP. Sessions are held in an in-process registry
with their own random source, so a seeded meeting replays identically.
Cancelled meetings are discarded at once; concluded ones are evicted
FINISHED_SESSION_TTL seconds after their verdict.

Error mapping:
    ICValidationError      -> 422 (input too short, session unchanged)
    InvalidTransitionError -> 409 (wrong phase, cancelled, budget spent)
    unknown session        -> 404
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Callable, Optional

from fastapi import APIRouter, Depends, HTTPException

from ..config import Settings, load_settings
from ..engines.ic_meeting import (
    ICSession,
    ICValidationError,
    InvalidTransitionError,
    advance_clock,
    cancel_session,
    complete_deliberation,
    enter_meeting,
    skip_question,
    start_ic_session,
    submit_opening_pitch,
    submit_response,
    update_pitch_draft,
)
from ..engines.randomness import RandomSource, default_random_source
from ..models import ICPhase
from ..narrative.ic_narration import ICNarrator
from ..narrative.llm_provider import get_provider
from ..schemas import ClockRequest, CreateSessionRequest, ICSessionResponse, TextSubmission

logger = logging.getLogger("fundwars.ic.api")

router = APIRouter(prefix="/api/ic", tags=["Investment Committee"])


# =========================================================================
# SESSION REGISTRY
# =========================================================================

FINISHED_SESSION_TTL = 900  # seconds a concluded meeting stays readable


@dataclass
class _Entry:
    session: ICSession
    rng: RandomSource
    lock: threading.Lock = field(default_factory=threading.Lock)
    finished_at: Optional[float] = None


class SessionRegistry:
    """
    In-memory store of live IC sessions, keyed by session id.

    The registry lock only guards the map; each session carries its own
    lock, so a slow narration call holds up that meeting alone. Cancelled
    sessions are dropped at once, concluded ones after `finished_ttl`.
    """

    def __init__(self, finished_ttl: float = FINISHED_SESSION_TTL):
        self.finished_ttl = finished_ttl
        self._entries: dict[str, _Entry] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _purge_finished(self) -> None:
        now = time.monotonic()
        stale = [
            session_id for session_id, entry in self._entries.items()
            if entry.finished_at is not None and now - entry.finished_at >= self.finished_ttl
        ]
        for session_id in stale:
            del self._entries[session_id]
        if stale:
            logger.info(f"Evicted {len(stale)} concluded IC session(s)")

    def _lookup(self, session_id: str) -> _Entry:
        with self._lock:
            self._purge_finished()
            entry = self._entries.get(session_id)
        if entry is None:
            raise HTTPException(status_code=404, detail=f"IC session {session_id} not found")
        return entry

    def add(self, session: ICSession, rng: RandomSource) -> None:
        with self._lock:
            self._purge_finished()
            self._entries[session.id] = _Entry(session, rng)

    def get(self, session_id: str) -> _Entry:
        return self._lookup(session_id)

    def update(self, session_id: str, operation: Callable[[ICSession, RandomSource], ICSession]) -> ICSession:
        """Apply an operation and store the new snapshot; errors leave the stored one in place."""
        entry = self._lookup(session_id)
        with entry.lock:
            try:
                session = operation(entry.session, entry.rng)
            except ICValidationError as e:
                raise HTTPException(status_code=422, detail=str(e))
            except InvalidTransitionError as e:
                raise HTTPException(status_code=409, detail=str(e))
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            entry.session = session
            if session.phase == ICPhase.VERDICT and entry.finished_at is None:
                entry.finished_at = time.monotonic()
            return session

    def remove(self, session_id: str) -> None:
        with self._lock:
            self._entries.pop(session_id, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


registry = SessionRegistry()


def get_registry() -> SessionRegistry:
    return registry


@lru_cache(maxsize=4)
def _build_narrator(provider_name: str, api_key: str, model: str) -> ICNarrator:
    provider = get_provider(provider_name, api_key=api_key or None, model=model)
    logger.info(f"IC narration via {provider.get_name()}")
    return ICNarrator(provider)


def get_narrator(settings: Settings = Depends(load_settings)) -> ICNarrator:
    return _build_narrator(settings.narrative_provider, settings.anthropic_api_key, settings.narrative_model)


def _view(session: ICSession) -> ICSessionResponse:
    return ICSessionResponse.from_session(session)


# =========================================================================
# ENDPOINTS
# =========================================================================

@router.post("/sessions", status_code=201, response_model=ICSessionResponse)
def create_session(
    req: CreateSessionRequest,
    settings: Settings = Depends(load_settings),
    sessions: SessionRegistry = Depends(get_registry),
):
    """Open an IC meeting for a deal. The meeting starts in PREP."""
    seed: Optional[int] = req.seed if req.seed is not None else settings.random_seed
    session = start_ic_session(req.company, req.player_level, max_questions=req.max_questions)
    sessions.add(session, default_random_source(seed))
    return _view(session)


@router.get("/sessions/{session_id}", response_model=ICSessionResponse)
def get_session(session_id: str, sessions: SessionRegistry = Depends(get_registry)):
    return _view(sessions.get(session_id).session)


@router.post("/sessions/{session_id}/enter", response_model=ICSessionResponse)
def enter(session_id: str, sessions: SessionRegistry = Depends(get_registry)):
    """Walk into the room: PREP -> OPENING_PITCH, pitch clock starts."""
    return _view(sessions.update(session_id, lambda s, rng: enter_meeting(s)))


@router.put("/sessions/{session_id}/draft", response_model=ICSessionResponse)
def save_draft(session_id: str, req: TextSubmission, sessions: SessionRegistry = Depends(get_registry)):
    """Save the pitch in progress; submitted automatically if the pitch clock runs out."""
    return _view(sessions.update(session_id, lambda s, rng: update_pitch_draft(s, req.text)))


@router.post("/sessions/{session_id}/pitch", response_model=ICSessionResponse)
def pitch(
    session_id: str,
    req: TextSubmission,
    sessions: SessionRegistry = Depends(get_registry),
    narrator: ICNarrator = Depends(get_narrator),
):
    """Deliver the opening pitch (min 50 characters)."""
    return _view(sessions.update(
        session_id, lambda s, rng: submit_opening_pitch(s, req.text, rng=rng, narrator=narrator)
    ))


@router.post("/sessions/{session_id}/responses", response_model=ICSessionResponse)
def respond(
    session_id: str,
    req: TextSubmission,
    sessions: SessionRegistry = Depends(get_registry),
    narrator: ICNarrator = Depends(get_narrator),
):
    """Answer the current partner's question (min 20 characters)."""
    return _view(sessions.update(
        session_id, lambda s, rng: submit_response(s, req.text, rng=rng, narrator=narrator)
    ))


@router.post("/sessions/{session_id}/skip", response_model=ICSessionResponse)
def skip(
    session_id: str,
    sessions: SessionRegistry = Depends(get_registry),
    narrator: ICNarrator = Depends(get_narrator),
):
    return _view(sessions.update(session_id, lambda s, rng: skip_question(s, rng=rng, narrator=narrator)))


@router.post("/sessions/{session_id}/clock", response_model=ICSessionResponse)
def tick_clock(
    session_id: str,
    req: ClockRequest,
    sessions: SessionRegistry = Depends(get_registry),
    narrator: ICNarrator = Depends(get_narrator),
):
    """Advance the meeting clock; expiries fire their phase actions."""
    return _view(sessions.update(
        session_id, lambda s, rng: advance_clock(s, req.seconds, rng=rng, narrator=narrator)
    ))


@router.post("/sessions/{session_id}/verdict")
def verdict(session_id: str, sessions: SessionRegistry = Depends(get_registry)):
    """
    Conclude deliberation and return the verdict.
    Calling it again after the verdict returns the same result.
    """
    def conclude(session: ICSession, rng: RandomSource) -> ICSession:
        if session.phase == ICPhase.VERDICT and not session.cancelled:
            return session
        return complete_deliberation(session)

    return sessions.update(session_id, conclude).verdict


@router.delete("/sessions/{session_id}", response_model=ICSessionResponse)
def cancel(session_id: str, sessions: SessionRegistry = Depends(get_registry)):
    """Abandon the meeting before a verdict. The session is discarded; the final view is returned."""
    session = sessions.update(session_id, lambda s, rng: cancel_session(s))
    sessions.remove(session_id)
    logger.info(f"IC session {session_id} discarded")
    return _view(session)
