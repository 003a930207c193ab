"""
Persisted state format.

The stored document is a versioned JSON object with camelCase keys:

    {version, profile, stars, keyMetrics, bigramMetrics, gameProgress,
     sessions, achievements, unlockables}

Loading overlays the stored document on a freshly built default, per top-level
field and recursively for ``profile``, each object ``gameProgress`` entry and
``unlockables``. Old saves missing newer fields therefore load cleanly, and
unknown fields are carried through untouched.

Saving trims IKI sample windows (10 per key, 5 per bigram). Aggregates are
written in full, so only the sample windows shrink across a reload.
"""

import copy
import json
from collections.abc import Mapping
from typing import Any

from keystride.application.progression import create_default_state
from keystride.domain.constants import (
    MAX_SESSIONS,
    SAVED_BIGRAM_SAMPLES,
    SAVED_KEY_SAMPLES,
    STATE_VERSION,
)
from keystride.domain.errors import StateFormatError
from keystride.domain.models import (
    BigramMetric,
    KeyMetric,
    Profile,
    ProgressionState,
    Session,
    Unlockables,
)

_PROFILE_FIELDS = {
    "name": "name",
    "ageGroup": "age_group",
    "createdAt": "created_at",
    "totalSessions": "total_sessions",
    "totalPracticeTimeMs": "total_practice_time_ms",
    "dailyStreak": "daily_streak",
    "longestStreak": "longest_streak",
    "lastSessionDate": "last_session_date",
}
_STATE_FIELDS = {
    "version",
    "profile",
    "stars",
    "keyMetrics",
    "bigramMetrics",
    "gameProgress",
    "sessions",
    "achievements",
    "unlockables",
}
_UNLOCKABLE_FIELDS = {"themes", "activeTheme"}


# ---------- Encoding ----------


def _samples(samples: tuple[int, ...], keep: int | None) -> list[int]:
    if keep is None:
        return list(samples)
    return list(samples[-keep:]) if keep > 0 else []


def encode_key_metric(m: KeyMetric, keep: int | None = None) -> dict[str, Any]:
    return {
        "correct": m.correct,
        "total": m.total,
        "accuracy": m.accuracy,
        "ikiSamples": _samples(m.iki_samples, keep),
        "avgIKI": m.avg_iki,
        "ikiStdDev": m.iki_std_dev,
        "lastPracticed": m.last_practiced,
        "srBox": m.sr_box,
        "srSessionsUntilReview": m.sr_sessions_until_review,
    }


def encode_bigram_metric(m: BigramMetric, keep: int | None = None) -> dict[str, Any]:
    return {
        "correct": m.correct,
        "total": m.total,
        "avgIKI": m.avg_iki,
        "ikiSamples": _samples(m.iki_samples, keep),
    }


def encode_session(s: Session) -> dict[str, Any]:
    return {
        "date": s.timestamp,
        "dateStr": s.date,
        "game": s.game,
        "durationMs": s.duration_ms,
        "wpm": s.wpm,
        "accuracy": s.accuracy,
        "exerciseCount": s.exercise_count,
        "starsEarned": s.stars_earned,
    }


def encode_profile(p: Profile) -> dict[str, Any]:
    doc = dict(p.extra)
    for json_name, attr in _PROFILE_FIELDS.items():
        doc[json_name] = getattr(p, attr)
    return doc


def encode_state(state: ProgressionState, compact: bool = True) -> dict[str, Any]:
    """
    Convert a state to its JSON document.

    Args:
        state: The state to encode.
        compact: Trim IKI sample windows to their saved size.
    """
    key_keep = SAVED_KEY_SAMPLES if compact else None
    bigram_keep = SAVED_BIGRAM_SAMPLES if compact else None
    return {
        **state.extra,
        "version": state.version,
        "profile": encode_profile(state.profile),
        "stars": state.stars,
        "keyMetrics": {k: encode_key_metric(m, key_keep) for k, m in state.key_metrics.items()},
        "bigramMetrics": {
            k: encode_bigram_metric(m, bigram_keep) for k, m in state.bigram_metrics.items()
        },
        "gameProgress": copy.deepcopy(state.game_progress),
        "sessions": [encode_session(s) for s in state.sessions],
        "achievements": list(state.achievements),
        "unlockables": {
            **state.unlockables.extra,
            "themes": list(state.unlockables.themes),
            "activeTheme": state.unlockables.active_theme,
        },
    }


def dump_state(state: ProgressionState) -> str:
    """Serialize a state for storage (compacted)."""
    return json.dumps(encode_state(state, compact=True), separators=(",", ":"))


# ---------- Decoding ----------


def _int(value: Any, default: int = 0) -> int:
    if value is None:
        return default
    return int(value)


def _sample_tuple(value: Any) -> tuple[int, ...]:
    return tuple(int(v) for v in (value or ()))


def decode_key_metric(doc: Mapping[str, Any]) -> KeyMetric:
    base = KeyMetric()
    return KeyMetric(
        correct=_int(doc.get("correct")),
        total=_int(doc.get("total")),
        accuracy=float(doc.get("accuracy", base.accuracy)),
        iki_samples=_sample_tuple(doc.get("ikiSamples")),
        avg_iki=_int(doc.get("avgIKI")),
        iki_std_dev=_int(doc.get("ikiStdDev")),
        last_practiced=_int(doc.get("lastPracticed")),
        sr_box=_int(doc.get("srBox")),
        sr_sessions_until_review=_int(
            doc.get("srSessionsUntilReview"), base.sr_sessions_until_review
        ),
    )


def decode_bigram_metric(doc: Mapping[str, Any]) -> BigramMetric:
    return BigramMetric(
        correct=_int(doc.get("correct")),
        total=_int(doc.get("total")),
        avg_iki=_int(doc.get("avgIKI")),
        iki_samples=_sample_tuple(doc.get("ikiSamples")),
    )


def decode_session(doc: Mapping[str, Any]) -> Session:
    return Session(
        timestamp=_int(doc.get("date")),
        date=str(doc.get("dateStr") or ""),
        game=str(doc.get("game") or ""),
        duration_ms=_int(doc.get("durationMs")),
        wpm=_int(doc.get("wpm")),
        accuracy=_int(doc.get("accuracy")),
        exercise_count=_int(doc.get("exerciseCount")),
        stars_earned=_int(doc.get("starsEarned")),
    )


def decode_profile(doc: Mapping[str, Any]) -> Profile:
    values = {attr: doc.get(json_name) for json_name, attr in _PROFILE_FIELDS.items()}
    return Profile(
        name=str(values["name"] or ""),
        age_group=values["age_group"],
        created_at=_int(values["created_at"]),
        total_sessions=_int(values["total_sessions"]),
        total_practice_time_ms=_int(values["total_practice_time_ms"]),
        daily_streak=_int(values["daily_streak"]),
        longest_streak=_int(values["longest_streak"]),
        last_session_date=values["last_session_date"],
        extra={k: v for k, v in doc.items() if k not in _PROFILE_FIELDS},
    )


def _merge(defaults: Mapping[str, Any], stored: Any) -> dict[str, Any]:
    if stored is None:
        return dict(defaults)
    if not isinstance(stored, Mapping):
        raise StateFormatError(f"expected an object, got {type(stored).__name__}")
    return {**defaults, **stored}


def merge_with_defaults(
    stored: Mapping[str, Any], defaults: Mapping[str, Any]
) -> dict[str, Any]:
    """Overlay a stored document on the default document (default first)."""
    merged = {**defaults, **stored}
    merged["profile"] = _merge(defaults["profile"], stored.get("profile"))
    merged["unlockables"] = _merge(defaults["unlockables"], stored.get("unlockables"))

    game_progress = _merge(defaults["gameProgress"], stored.get("gameProgress"))
    for game, default_doc in defaults["gameProgress"].items():
        doc = game_progress.get(game)
        # Game documents are opaque; only mappings are filled in from defaults
        if doc is None or isinstance(doc, Mapping):
            game_progress[game] = _merge(default_doc, doc)
    merged["gameProgress"] = game_progress
    return merged


def decode_state(stored: Any, now_ms: int | None = None) -> ProgressionState:
    """
    Build a state from a stored document, filling gaps from the defaults.

    Raises:
        StateFormatError: The document cannot be interpreted as a state.
    """
    if not isinstance(stored, Mapping):
        raise StateFormatError(f"state must be an object, got {type(stored).__name__}")

    defaults = encode_state(create_default_state(now_ms), compact=False)
    try:
        doc = merge_with_defaults(stored, defaults)
        unlockables = doc["unlockables"]
        return ProgressionState(
            version=_int(doc["version"], STATE_VERSION),
            profile=decode_profile(doc["profile"]),
            stars=_int(doc["stars"]),
            key_metrics={
                str(k): decode_key_metric(v) for k, v in (doc["keyMetrics"] or {}).items()
            },
            bigram_metrics={
                str(k): decode_bigram_metric(v) for k, v in (doc["bigramMetrics"] or {}).items()
            },
            game_progress=dict(doc["gameProgress"]),
            sessions=tuple(decode_session(s) for s in (doc["sessions"] or ()))[-MAX_SESSIONS:],
            achievements=tuple(str(a) for a in (doc["achievements"] or ())),
            unlockables=Unlockables(
                themes=tuple(str(t) for t in unlockables["themes"]),
                active_theme=str(unlockables["activeTheme"]),
                extra={k: v for k, v in unlockables.items() if k not in _UNLOCKABLE_FIELDS},
            ),
            extra={k: v for k, v in doc.items() if k not in _STATE_FIELDS},
        )
    except StateFormatError:
        raise
    except (AttributeError, KeyError, OverflowError, TypeError, ValueError) as e:
        raise StateFormatError(f"malformed state: {e}") from e


def parse_state(payload: str, now_ms: int | None = None) -> ProgressionState:
    """Parse a stored JSON payload. Raises StateFormatError on any defect."""
    try:
        stored = json.loads(payload)
    except (TypeError, ValueError) as e:
        raise StateFormatError(f"state is not valid JSON: {e}") from e
    return decode_state(stored, now_ms)
