"""
Session recorder.

Two halves:
- ``SessionLog`` accumulates the keystrokes of a live session and derives
  live WPM/accuracy. It is owned by the game running the session.
- ``end_session`` folds a finished session into the progression state:
  history, stars, streak, profile totals and the spaced-repetition step.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, replace
from datetime import date, datetime

from keystride.application.norms import get_norms
from keystride.application.scheduler import advance_after_session
from keystride.application.utils.numbers import round_half_up
from keystride.domain.constants import (
    MAX_SESSION_STARS,
    MAX_SESSIONS,
    MODULE_COMPLETE_MIN_KEYSTROKES,
    PHASE_TIME_MAX_MS,
    ROLLING_WINDOW,
    SESSION_LOG_CAPACITY,
    STAR_EXERCISES_TIERS,
    STAR_HIGH_ACCURACY,
    STAR_SPEED_MULTIPLIER,
)
from keystride.domain.models import (
    AgeNorm,
    Keystroke,
    Module,
    Profile,
    ProgressionState,
    Session,
    SessionSummary,
)

logger = logging.getLogger(__name__)


# ---------- Live session ----------


@dataclass(frozen=True)
class LiveMetrics:
    accuracy: int  # percent
    wpm: int
    avg_time_ms: int


def calculate_live_metrics(keystrokes: Sequence[Keystroke]) -> LiveMetrics:
    """
    Accuracy and speed over the last 30 keystrokes.

    Fewer than three keystrokes report 100% accuracy and 0 WPM.
    Times outside (0, 2000) ms are left out of the speed figures.
    """
    if len(keystrokes) < 3:
        return LiveMetrics(accuracy=100, wpm=0, avg_time_ms=0)

    recent = keystrokes[-ROLLING_WINDOW:]
    correct = sum(1 for k in recent if k.correct)
    accuracy = round_half_up(correct / len(recent) * 100)

    times = [k.time_ms for k in recent if 0 < k.time_ms < PHASE_TIME_MAX_MS]
    total_time = sum(times)
    avg_time = round_half_up(total_time / len(times)) if times else 0
    wpm = round_half_up((len(recent) / 5) / (total_time / 60000)) if total_time > 0 else 0

    return LiveMetrics(accuracy=accuracy, wpm=wpm, avg_time_ms=avg_time)


def check_module_complete(keystrokes: Sequence[Keystroke], module: Module) -> bool:
    """A module is complete once live metrics meet both of its targets."""
    if len(keystrokes) < MODULE_COMPLETE_MIN_KEYSTROKES:
        return False
    live = calculate_live_metrics(keystrokes)
    return live.accuracy >= module.target_accuracy and live.wpm >= module.target_wpm


@dataclass(frozen=True)
class SessionLog:
    """
    Bounded log of a live session's keystrokes.

    Once ``capacity`` is reached the oldest keystroke is dropped. The set of
    distinct keys used is kept separately and is never truncated.
    """

    keystrokes: tuple[Keystroke, ...] = ()
    keys_used: tuple[str, ...] = ()
    capacity: int = SESSION_LOG_CAPACITY

    def record(self, key: str, correct: bool, time_ms: int) -> "SessionLog":
        keystrokes = (*self.keystrokes, Keystroke(key, correct, time_ms))[-self.capacity :]
        keys_used = self.keys_used if key in self.keys_used else (*self.keys_used, key)
        return replace(self, keystrokes=keystrokes, keys_used=keys_used)

    @property
    def live(self) -> LiveMetrics:
        return calculate_live_metrics(self.keystrokes)

    def summarize(self, game: str, duration_ms: int, exercise_count: int) -> SessionSummary:
        live = self.live
        return SessionSummary(
            game=game,
            duration_ms=duration_ms,
            wpm=live.wpm,
            accuracy=live.accuracy,
            exercise_count=exercise_count,
            keys_used=self.keys_used,
        )


# ---------- Session end ----------


def calculate_session_stars(wpm: float, accuracy: float, exercise_count: int, norms: AgeNorm) -> int:
    """
    Award 1-7 stars for a finished session.

    One for finishing, up to two for accuracy, up to two for speed and up to
    two for volume.
    """
    stars = 1

    if accuracy >= norms.accuracy:
        stars += 1
    if accuracy >= STAR_HIGH_ACCURACY:
        stars += 1

    if wpm >= norms.wpm:
        stars += 1
    if wpm >= norms.wpm * STAR_SPEED_MULTIPLIER:
        stars += 1

    for tier in STAR_EXERCISES_TIERS:
        if exercise_count >= tier:
            stars += 1

    return min(stars, MAX_SESSION_STARS)


def update_daily_streak(profile: Profile, today: date) -> Profile:
    """
    Apply the calendar-day streak rule.

    Same day: unchanged. Next day: streak + 1. Any bigger gap: back to 1.
    A first-ever session starts the streak at 1.
    """
    last = profile.last_session_date
    today_str = today.isoformat()
    if last == today_str:
        return profile

    streak = profile.daily_streak
    if last:
        try:
            delta = (today - date.fromisoformat(last)).days
        except ValueError:
            logger.warning(f"Unreadable last session date {last!r}; restarting streak")
            delta = None
        if delta == 1:
            streak += 1
        elif delta is None or delta > 1:
            streak = 1
        # delta < 0: the clock went backwards; keep the streak as is
    else:
        streak = 1

    return replace(
        profile,
        last_session_date=today_str,
        daily_streak=streak,
        longest_streak=max(profile.longest_streak, streak),
    )


def end_session(
    state: ProgressionState,
    summary: SessionSummary,
    now: datetime | None = None,
) -> tuple[ProgressionState, int]:
    """
    Fold a finished session into the progression state.

    Not idempotent: calling it twice for one logical session counts the
    session twice. The game's "finish" action owns that guarantee.

    Args:
        state: Current progression state.
        summary: What the game reports about the session.
        now: Local time the session ended (defaults to now).

    Returns:
        (new state, stars earned this session)
    """
    now = now or datetime.now()
    norms = get_norms(state.profile.age_group)
    stars = calculate_session_stars(summary.wpm, summary.accuracy, summary.exercise_count, norms)

    session = Session(
        timestamp=int(now.timestamp() * 1000),
        date=now.date().isoformat(),
        game=summary.game,
        duration_ms=summary.duration_ms,
        wpm=summary.wpm,
        accuracy=summary.accuracy,
        exercise_count=summary.exercise_count,
        stars_earned=stars,
    )
    sessions = (*state.sessions, session)[-MAX_SESSIONS:]

    profile = update_daily_streak(state.profile, now.date())
    profile = replace(
        profile,
        total_sessions=profile.total_sessions + 1,
        total_practice_time_ms=profile.total_practice_time_ms + (summary.duration_ms or 0),
    )

    logger.info(
        f"Session ended: game={summary.game} wpm={summary.wpm} "
        f"accuracy={summary.accuracy} stars={stars}"
    )

    new_state = replace(
        state,
        profile=profile,
        key_metrics=advance_after_session(state.key_metrics, summary.keys_used),
        stars=state.stars + stars,
        sessions=sessions,
    )
    return new_state, stars
