"""
Progression engine: application layer orchestrator.

Holds the learner's current state and exposes the event interface that
games call into. All state transitions are delegated to the pure functions
in this package; storage goes through an injected StateStore.
"""

import logging
import random
from collections.abc import Callable, Sequence

from keystride.application import adaptive, metrics, progression, report, scheduler, session
from keystride.application.challenge_link import (
    ChallengeToken,
    decode_challenge,
    encode_challenge,
)
from keystride.application.norms import get_norms
from keystride.application.state_codec import dump_state, parse_state
from keystride.domain.constants import REVIEW_INJECTION_PROBABILITY, WEAK_ACCURACY_THRESHOLD
from keystride.domain.errors import StateFormatError, StorageError
from keystride.domain.models import AgeNorm, Keystroke, ProgressionState, SessionSummary
from keystride.domain.ports import RandomSource, StateStore

logger = logging.getLogger(__name__)


class ProgressionEngine:
    """
    Stateful facade over the progression core.

    Follows Dependency Inversion: depends on the StateStore abstraction,
    not on a concrete storage medium. Storage failures are logged and never
    interrupt practice; the in-memory state stays authoritative.

    Single-writer: callers must serialize calls.
    """

    def __init__(
        self,
        store: StateStore,
        rng: RandomSource | None = None,
        review_probability: float = REVIEW_INJECTION_PROBABILITY,
    ):
        """
        Args:
            store: Where the serialized state lives.
            rng: Randomness for exercise generation; a fresh ``random.Random`` if omitted.
            review_probability: Chance of prepending a review fragment to an exercise.
        """
        self._store = store
        self._rng = rng or random.Random()
        self.review_probability = review_probability
        self._state = self.load()

    @property
    def state(self) -> ProgressionState:
        return self._state

    # ---------- Persistence ----------

    def load(self) -> ProgressionState:
        """Read the stored state, falling back to defaults on any failure."""
        try:
            payload = self._store.read()
        except StateFormatError as e:
            logger.warning(f"Stored progress data is corrupt, starting fresh: {e}")
            return progression.create_default_state()
        except StorageError as e:
            logger.warning(f"Failed to load progress data: {e}")
            return progression.create_default_state()

        if payload is None:
            return progression.create_default_state()

        try:
            return parse_state(payload)
        except StateFormatError as e:
            logger.warning(f"Stored progress data is corrupt, starting fresh: {e}")
            return progression.create_default_state()

    def save(self) -> bool:
        """Persist the current state. Returns False if it could not be written."""
        try:
            payload = dump_state(self._state)
        except (TypeError, ValueError) as e:
            logger.warning(f"Progress data is not serializable, not saving: {e}")
            return False
        try:
            self._store.write(payload)
        except StorageError as e:
            logger.warning(f"Failed to save progress data: {e}")
            return False
        return True

    def reset(self) -> ProgressionState:
        """Drop all progress, in memory and in storage."""
        try:
            self._store.clear()
        except StorageError as e:
            logger.warning(f"Failed to clear stored progress: {e}")
        self._state = progression.reset_state()
        return self._state

    # ---------- Events ----------

    def record_keystroke(
        self, key: str, correct: bool, iki_ms: float, previous_key: str | None = None
    ) -> ProgressionState:
        """Fire on every accepted keypress. Not persisted until the next save."""
        self._state = metrics.record_keystroke(self._state, key, correct, iki_ms, previous_key)
        return self._state

    def end_session(self, summary: SessionSummary) -> tuple[ProgressionState, int]:
        """Fire exactly once when a practice session concludes, then save."""
        self._state, stars = session.end_session(self._state, summary)
        self.save()
        return self._state, stars

    def update_game_progress(
        self, game: str, transform: Callable[[dict], dict]
    ) -> ProgressionState:
        self._state = progression.update_game_progress(self._state, game, transform)
        self.save()
        return self._state

    def update_profile(self, **changes) -> ProgressionState:
        self._state = progression.update_profile(self._state, **changes)
        self.save()
        return self._state

    # ---------- Queries ----------

    def get_review_keys(self) -> list[str]:
        return scheduler.get_due_keys(self._state.key_metrics)

    def get_mastered_keys(self) -> list[str]:
        return metrics.get_mastered_keys(self._state.key_metrics)

    def get_weak_keys(self, threshold: float = WEAK_ACCURACY_THRESHOLD) -> list[str]:
        return metrics.get_weak_keys(self._state.key_metrics, threshold)

    def get_norms(self) -> AgeNorm:
        return get_norms(self._state.profile.age_group)

    def get_report(self) -> report.ReportData:
        return report.generate_report(self._state)

    def next_exercise(
        self,
        module_id: str,
        keystrokes: Sequence[Keystroke] = (),
        phase: adaptive.Phase | None = None,
    ) -> adaptive.Exercise:
        return adaptive.generate_exercise(
            self._state,
            module_id,
            keystrokes,
            self._rng,
            phase=phase,
            review_probability=self.review_probability,
        )

    # ---------- Caregiver challenge ----------

    def encode_challenge(self) -> str | None:
        return encode_challenge(self._state)

    @staticmethod
    def decode_challenge(token: str) -> ChallengeToken | None:
        return decode_challenge(token)
