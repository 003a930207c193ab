"""
Caregiver report over the most recent sessions.

Read-only: derives a summary from session history and key metrics and
never changes the state.
"""

import math
from dataclasses import dataclass, field

from keystride.application.metrics import get_mastered_keys, get_weak_keys
from keystride.application.norms import get_norms
from keystride.application.utils.numbers import mean, round_half_up
from keystride.domain.constants import (
    NORM_ABOVE_FACTOR,
    NORM_BELOW_FACTOR,
    REPORT_MASTERED_LIMIT,
    REPORT_WEAK_LIMIT,
    REPORT_WINDOW,
    SUGGESTION_WEAK_LIMIT,
)
from keystride.domain.models import ProgressionState

NO_PRACTICE_SUMMARY = "No practice sessions this week yet."
START_SUGGESTION = "Start with the home row lesson to build a strong foundation."
ACCURACY_SUGGESTION = "Focus on accuracy over speed. Slow down and hit the right keys."
FREQUENCY_SUGGESTION = "Try to practice at least 3-4 times per week for best results."
WARMUP_SUGGESTION = (
    "Speed dipped this week. A short warm-up drill at the start of each session helps."
)


@dataclass(frozen=True)
class ReportData:
    summary: str
    keys_learned: int
    avg_wpm: int
    avg_accuracy: int
    fluency_change: int  # percent, second half of the window vs the first
    weak_keys: list[str]
    strong_keys: list[str]
    sessions_this_week: int
    streak: int
    total_stars: int
    compared_to_norm: str | None
    suggestions: list[str] = field(default_factory=list)


def fluency_change(wpms: list[int]) -> int:
    """
    Percent change in mean WPM from the first half of ``wpms`` to the second.

    The first half takes ``ceil(n/2)`` entries. A single session compares
    against itself (0%).
    """
    if not wpms:
        return 0
    half = math.ceil(len(wpms) / 2)
    first_avg = mean(wpms[:half])
    second_avg = mean(wpms[half:]) if wpms[half:] else first_avg
    if second_avg <= 0:
        return 0
    return round_half_up((second_avg - first_avg) / max(first_avg, 1) * 100)


def norm_label(avg_wpm: float, norm_wpm: int) -> str:
    if avg_wpm >= norm_wpm * NORM_ABOVE_FACTOR:
        return "above expectations"
    if avg_wpm < norm_wpm * NORM_BELOW_FACTOR:
        return "building up"
    return "on track"


def generate_report(state: ProgressionState) -> ReportData:
    recent = state.sessions[-REPORT_WINDOW:]
    count = len(recent)

    if count == 0:
        return ReportData(
            summary=NO_PRACTICE_SUMMARY,
            keys_learned=0,
            avg_wpm=0,
            avg_accuracy=0,
            fluency_change=0,
            weak_keys=[],
            strong_keys=[],
            sessions_this_week=0,
            streak=state.profile.daily_streak,
            total_stars=state.stars,
            compared_to_norm=None,
            suggestions=[START_SUGGESTION],
        )

    wpms = [s.wpm for s in recent]
    avg_wpm = round_half_up(mean(wpms))
    avg_accuracy = round_half_up(mean([s.accuracy for s in recent]))
    change = fluency_change(wpms)

    mastered = get_mastered_keys(state.key_metrics)
    weak = get_weak_keys(state.key_metrics)

    suggestions = []
    if weak:
        keys = ", ".join(weak[:SUGGESTION_WEAK_LIMIT]).upper()
        suggestions.append(f"Extra practice recommended for: {keys}")
    if avg_accuracy < 80:
        suggestions.append(ACCURACY_SUGGESTION)
    if count < 3:
        suggestions.append(FREQUENCY_SUGGESTION)
    if change < 0:
        suggestions.append(WARMUP_SUGGESTION)

    return ReportData(
        summary=f"{count} sessions this week. Average {avg_wpm} WPM at {avg_accuracy}% accuracy.",
        keys_learned=len(mastered),
        avg_wpm=avg_wpm,
        avg_accuracy=avg_accuracy,
        fluency_change=change,
        weak_keys=weak[:REPORT_WEAK_LIMIT],
        strong_keys=mastered[:REPORT_MASTERED_LIMIT],
        sessions_this_week=count,
        streak=state.profile.daily_streak,
        total_stars=state.stars,
        compared_to_norm=norm_label(avg_wpm, get_norms(state.profile.age_group).wpm),
        suggestions=suggestions,
    )
