"""
Progression store: operations on the aggregate root that are not
keystroke- or session-driven.

Game progress documents are opaque here; only the game that owns a
document interprets it.
"""

import copy
import logging
import time
from collections.abc import Callable
from dataclasses import replace
from typing import Any

from keystride.application.norms import is_age_group
from keystride.domain.constants import DEFAULT_GAME_PROGRESS
from keystride.domain.models import Module, Profile, ProgressionState, Unlockables

logger = logging.getLogger(__name__)

GameProgress = dict[str, Any]

_UNSET: Any = object()


def create_default_state(now_ms: int | None = None) -> ProgressionState:
    """Build a fresh state for a learner who has never practiced."""
    created = now_ms if now_ms is not None else int(time.time() * 1000)
    return ProgressionState(
        profile=Profile(created_at=created),
        game_progress=copy.deepcopy(DEFAULT_GAME_PROGRESS),
        unlockables=Unlockables(),
    )


def reset_state(now_ms: int | None = None) -> ProgressionState:
    logger.info("Progression state reset")
    return create_default_state(now_ms)


def update_game_progress(
    state: ProgressionState,
    game: str,
    transform: Callable[[GameProgress], GameProgress],
) -> ProgressionState:
    """
    Replace one game's progress document with ``transform(current)``.

    The transform receives a deep copy (an empty dict for an unknown game),
    so it may mutate its argument freely without touching ``state``.
    """
    current = copy.deepcopy(state.game_progress.get(game, {}))
    game_progress = dict(state.game_progress)
    game_progress[game] = transform(current)
    return replace(state, game_progress=game_progress)


def record_module_result(
    progress: GameProgress, module: Module, wpm: int, accuracy: int
) -> GameProgress:
    """
    Transform for the ``typeflow`` document: keep per-module bests.

    Use as ``update_game_progress(state, "typeflow",
    lambda p: record_module_result(p, module, wpm, accuracy))``.
    """
    modules = dict(progress.get("moduleProgress") or {})
    prev = modules.get(module.id) or {}
    best_wpm = max(prev.get("bestWpm", 0), wpm)
    best_accuracy = max(prev.get("bestAccuracy", 0), accuracy)

    modules[module.id] = {
        "bestWpm": best_wpm,
        "bestAccuracy": best_accuracy,
        "completed": best_wpm >= module.target_wpm and best_accuracy >= module.target_accuracy,
        "sessions": prev.get("sessions", 0) + 1,
    }
    return {
        **progress,
        "moduleProgress": modules,
        "totalSessions": progress.get("totalSessions", 0) + 1,
        "bestWpm": max(progress.get("bestWpm", 0), wpm),
    }


def update_profile(
    state: ProgressionState,
    name: str | None = None,
    age_group: str | None = _UNSET,
) -> ProgressionState:
    """
    Change display name and/or age group.

    Pass ``age_group=None`` to clear it. Unrecognized labels are stored as
    unset so norm lookups fall back to the default.
    """
    profile = state.profile
    if name is not None:
        profile = replace(profile, name=name)
    if age_group is not _UNSET:
        if age_group is not None and not is_age_group(age_group):
            logger.warning(f"Unknown age group {age_group!r}; leaving it unset")
            age_group = None
        profile = replace(profile, age_group=age_group)
    return replace(state, profile=profile)


def award_achievement(state: ProgressionState, achievement_id: str) -> ProgressionState:
    if achievement_id in state.achievements:
        return state
    return replace(state, achievements=(*state.achievements, achievement_id))


def unlock_theme(state: ProgressionState, theme: str) -> ProgressionState:
    owned = state.unlockables.themes
    if theme in owned:
        return state
    return replace(state, unlockables=replace(state.unlockables, themes=(*owned, theme)))


def select_theme(state: ProgressionState, theme: str) -> ProgressionState:
    """Activate an owned theme; requests for themes not owned are ignored."""
    if theme not in state.unlockables.themes:
        logger.debug(f"Theme {theme!r} is not unlocked; keeping {state.unlockables.active_theme!r}")
        return state
    return replace(state, unlockables=replace(state.unlockables, active_theme=theme))
