import dataclasses
import logging
import random
import time
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException
from pydantic import BaseModel, Field

from keystride.application.adaptive import Phase
from keystride.application.challenge_link import generate_parent_challenge_text
from keystride.application.engine import ProgressionEngine
from keystride.consts import VERSION
from keystride.domain.errors import UnknownModuleError
from keystride.domain.models import Keystroke, SessionSummary

# Setup logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("keystride.server")

_engine: ProgressionEngine | None = None


def get_engine() -> ProgressionEngine:
    """Process-wide engine built from the resolved configuration on first use."""
    global _engine
    if _engine is None:
        from keystride.application.config import resolve_config
        from keystride.application.factory import get_engine as build_engine

        _engine = build_engine(resolve_config())
    return _engine


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info(f"keystride server v{VERSION} starting up...")
    yield
    # Shutdown
    if _engine is not None:
        _engine.save()
    logger.info("keystride server shutting down...")


app = FastAPI(
    title="keystride",
    description="Adaptive typing progression engine.",
    version=VERSION,
    lifespan=lifespan,
)


class HealthResponse(BaseModel):
    status: str
    version: str
    uptime_seconds: float


start_time = time.time()


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """
    Simple health check to verify server is reachable.
    """
    return HealthResponse(status="ok", version=VERSION, uptime_seconds=time.time() - start_time)


@app.get("/version")
async def get_version():
    return {"version": VERSION}


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


class KeystrokeRequest(BaseModel):
    key: str = Field(min_length=1)
    correct: bool
    iki_ms: float
    previous_key: str | None = None


class KeyMetricResponse(BaseModel):
    key: str
    correct: int
    total: int
    accuracy: float
    avg_iki: int
    iki_std_dev: int
    sr_box: int
    sr_sessions_until_review: int


@app.post("/keystrokes", response_model=KeyMetricResponse)
def record_keystroke(req: KeystrokeRequest, engine: ProgressionEngine = Depends(get_engine)):
    state = engine.record_keystroke(req.key, req.correct, req.iki_ms, req.previous_key)
    m = state.key_metrics[req.key]
    return KeyMetricResponse(
        key=req.key,
        correct=m.correct,
        total=m.total,
        accuracy=m.accuracy,
        avg_iki=m.avg_iki,
        iki_std_dev=m.iki_std_dev,
        sr_box=m.sr_box,
        sr_sessions_until_review=m.sr_sessions_until_review,
    )


class SessionRequest(BaseModel):
    game: str
    duration_ms: int = 0
    wpm: int = 0
    accuracy: int = 0
    exercise_count: int = 0
    keys_used: list[str] = []


class SessionResponse(BaseModel):
    stars_earned: int
    total_stars: int
    daily_streak: int
    total_sessions: int


@app.post("/sessions", response_model=SessionResponse)
def end_session(req: SessionRequest, engine: ProgressionEngine = Depends(get_engine)):
    summary = SessionSummary(
        game=req.game,
        duration_ms=req.duration_ms,
        wpm=req.wpm,
        accuracy=req.accuracy,
        exercise_count=req.exercise_count,
        keys_used=tuple(req.keys_used),
    )
    state, stars = engine.end_session(summary)
    return SessionResponse(
        stars_earned=stars,
        total_stars=state.stars,
        daily_streak=state.profile.daily_streak,
        total_sessions=state.profile.total_sessions,
    )


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


class KeysResponse(BaseModel):
    keys: list[str]


@app.get("/keys/review", response_model=KeysResponse)
def review_keys(engine: ProgressionEngine = Depends(get_engine)):
    return KeysResponse(keys=engine.get_review_keys())


@app.get("/keys/mastered", response_model=KeysResponse)
def mastered_keys(engine: ProgressionEngine = Depends(get_engine)):
    return KeysResponse(keys=engine.get_mastered_keys())


@app.get("/keys/weak", response_model=KeysResponse)
def weak_keys(threshold: float = 0.75, engine: ProgressionEngine = Depends(get_engine)):
    return KeysResponse(keys=engine.get_weak_keys(threshold))


@app.get("/norms")
def norms(engine: ProgressionEngine = Depends(get_engine)):
    return dataclasses.asdict(engine.get_norms())


@app.get("/report")
def report(engine: ProgressionEngine = Depends(get_engine)):
    return dataclasses.asdict(engine.get_report())


class KeystrokeModel(BaseModel):
    key: str
    correct: bool
    time_ms: int


class ExerciseRequest(BaseModel):
    module_id: str
    phase: Phase | None = None  # None: choose from keystrokes
    keystrokes: list[KeystrokeModel] = []


class ExerciseResponse(BaseModel):
    module_id: str
    phase: Phase
    text: str


@app.post("/exercise", response_model=ExerciseResponse)
def next_exercise(req: ExerciseRequest, engine: ProgressionEngine = Depends(get_engine)):
    keystrokes = [Keystroke(k.key, k.correct, k.time_ms) for k in req.keystrokes]
    try:
        exercise = engine.next_exercise(req.module_id, keystrokes, phase=req.phase)
    except UnknownModuleError as e:
        raise HTTPException(status_code=404, detail=str(e)) from None
    return ExerciseResponse(module_id=exercise.module_id, phase=exercise.phase, text=exercise.text)


# ---------------------------------------------------------------------------
# Caregiver challenge
# ---------------------------------------------------------------------------


class ChallengeResponse(BaseModel):
    token: str | None


class ChallengeDetails(BaseModel):
    keys: list[str]
    issued_at: int
    text: str


@app.post("/challenge", response_model=ChallengeResponse)
def create_challenge(engine: ProgressionEngine = Depends(get_engine)):
    """Token for the learner's toughest keys; null when there are none."""
    return ChallengeResponse(token=engine.encode_challenge())


@app.get("/challenge/{token}", response_model=ChallengeDetails)
def open_challenge(token: str, seed: int | None = None):
    challenge = ProgressionEngine.decode_challenge(token)
    if challenge is None:
        raise HTTPException(status_code=400, detail="This challenge link is expired or invalid.")
    return ChallengeDetails(
        keys=challenge.keys,
        issued_at=challenge.issued_at,
        text=generate_parent_challenge_text(challenge.keys, random.Random(seed)),
    )
