"""
Domain models for learner progression.

These are pure data structures with no I/O or external dependencies.
Every model is frozen: operations build new instances with
``dataclasses.replace`` and never mutate an existing state in place.
"""

from dataclasses import dataclass, field
from typing import Any

from .constants import DEFAULT_THEME, STATE_VERSION


@dataclass(frozen=True)
class KeyMetric:
    """
    Running statistics for a single key.

    Attributes:
        correct: Correct keystrokes recorded for the key.
        total: All keystrokes recorded for the key.
        accuracy: correct / total, recomputed on every update.
        iki_samples: Rolling window of recent inter-keystroke intervals (ms).
        avg_iki: Mean of ``iki_samples``, rounded to whole ms.
        iki_std_dev: Population standard deviation of ``iki_samples`` (ms).
        last_practiced: Epoch milliseconds of the last keystroke.
        sr_box: Leitner box index (0-4).
        sr_sessions_until_review: Sessions left before the key is due again.
    """

    correct: int = 0
    total: int = 0
    accuracy: float = 0.0
    iki_samples: tuple[int, ...] = ()
    avg_iki: int = 0
    iki_std_dev: int = 0
    last_practiced: int = 0
    sr_box: int = 0
    sr_sessions_until_review: int = 1


@dataclass(frozen=True)
class BigramMetric:
    """Running statistics for an ordered pair of keys. Never scheduled."""

    correct: int = 0
    total: int = 0
    avg_iki: int = 0
    iki_samples: tuple[int, ...] = ()

    @property
    def success_rate(self) -> float:
        return self.correct / self.total if self.total else 0.0


@dataclass(frozen=True)
class Session:
    """
    A finished practice session, appended to history and never changed.

    Attributes:
        timestamp: Epoch milliseconds when the session ended.
        date: Local calendar day, YYYY-MM-DD.
        game: Identifier of the game or module that ran the session.
        duration_ms: Session length.
        wpm: Words per minute reported by the game.
        accuracy: Accuracy percent reported by the game.
        exercise_count: Exercises completed.
        stars_earned: Stars awarded (0-7).
    """

    timestamp: int
    date: str
    game: str
    duration_ms: int
    wpm: int
    accuracy: int
    exercise_count: int
    stars_earned: int


@dataclass(frozen=True)
class Profile:
    name: str = ""
    age_group: str | None = None
    created_at: int = 0
    total_sessions: int = 0
    total_practice_time_ms: int = 0
    daily_streak: int = 0
    longest_streak: int = 0
    last_session_date: str | None = None  # YYYY-MM-DD
    extra: dict[str, Any] = field(default_factory=dict)  # unknown stored fields


@dataclass(frozen=True)
class Unlockables:
    themes: tuple[str, ...] = (DEFAULT_THEME,)
    active_theme: str = DEFAULT_THEME
    extra: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ProgressionState:
    """
    Aggregate root exchanged with the persistence collaborator.

    ``game_progress`` values are opaque documents owned by each game.
    ``extra`` carries unknown top-level fields from storage so that newer
    saves survive a round-trip through an older engine.
    """

    version: int = STATE_VERSION
    profile: Profile = field(default_factory=Profile)
    stars: int = 0
    key_metrics: dict[str, KeyMetric] = field(default_factory=dict)
    bigram_metrics: dict[str, BigramMetric] = field(default_factory=dict)
    game_progress: dict[str, dict[str, Any]] = field(default_factory=dict)
    sessions: tuple[Session, ...] = ()
    achievements: tuple[str, ...] = ()
    unlockables: Unlockables = field(default_factory=Unlockables)
    extra: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Keystroke:
    """One keystroke inside a live session (not persisted)."""

    key: str
    correct: bool
    time_ms: int


@dataclass(frozen=True)
class SessionSummary:
    """End-of-session report handed to ``end_session`` by a game."""

    game: str
    duration_ms: int = 0
    wpm: int = 0
    accuracy: int = 0
    exercise_count: int = 0
    keys_used: tuple[str, ...] = ()


@dataclass(frozen=True)
class AgeNorm:
    wpm: int
    accuracy: int
    session_minutes: int


@dataclass(frozen=True)
class Module:
    """A curriculum unit: an ordered key set introduced together."""

    id: str
    name: str
    description: str
    keys: tuple[str, ...]
    target_wpm: int
    target_accuracy: int
