from dataclasses import replace

import pytest

from keystride.application.report import (
    ACCURACY_SUGGESTION,
    FREQUENCY_SUGGESTION,
    NO_PRACTICE_SUMMARY,
    START_SUGGESTION,
    WARMUP_SUGGESTION,
    fluency_change,
    generate_report,
    norm_label,
)
from keystride.domain.models import KeyMetric, Profile, Session


def _sessions(wpms, accuracy=90):
    return tuple(
        Session(timestamp=i, date="2026-02-01", game="typeflow", duration_ms=60_000,
                wpm=w, accuracy=accuracy, exercise_count=3, stars_earned=2)
        for i, w in enumerate(wpms)
    )


class TestFluencyChange:
    def test_second_half_faster(self):
        assert fluency_change([10, 10, 10, 30, 30, 30, 30]) == 100

    def test_second_half_slower(self):
        assert fluency_change([30, 15]) == -50

    @pytest.mark.parametrize("wpms", [[], [20], [0, 0]])
    def test_no_change(self, wpms):
        assert fluency_change(wpms) == 0


def test_norm_label():
    assert norm_label(34, 28) == "above expectations"
    assert norm_label(28, 28) == "on track"
    assert norm_label(19, 28) == "building up"


class TestGenerateReport:
    def test_no_sessions(self, state):
        report = generate_report(state)
        assert report.summary == NO_PRACTICE_SUMMARY
        assert report.compared_to_norm is None
        assert report.suggestions == [START_SUGGESTION]
        assert report.sessions_this_week == 0

    def test_week_of_improvement(self, state):
        state = replace(
            state,
            sessions=_sessions([10, 10, 10, 30, 30, 30, 30]),
            stars=14,
            profile=Profile(daily_streak=4, age_group="8-9"),
        )
        report = generate_report(state)
        assert report.summary == "7 sessions this week. Average 21 WPM at 90% accuracy."
        assert report.fluency_change > 0
        assert report.avg_wpm == 21
        assert report.streak == 4
        assert report.total_stars == 14
        assert report.compared_to_norm == "on track"
        assert report.suggestions == []

    def test_only_last_seven_sessions(self, state):
        state = replace(state, sessions=_sessions([100, 100, 100] + [20] * 7))
        report = generate_report(state)
        assert report.sessions_this_week == 7
        assert report.avg_wpm == 20

    def test_suggestions(self, state):
        state = replace(
            state,
            sessions=_sessions([30, 20], accuracy=70),
            key_metrics={
                "j": KeyMetric(correct=6, total=10, accuracy=0.6),
                "f": KeyMetric(correct=5, total=10, accuracy=0.5),
            },
        )
        report = generate_report(state)
        assert report.weak_keys == ["f", "j"]
        assert report.suggestions == [
            "Extra practice recommended for: F, J",
            ACCURACY_SUGGESTION,
            FREQUENCY_SUGGESTION,
            WARMUP_SUGGESTION,
        ]

    def test_strong_keys_are_mastered_keys(self, state):
        state = replace(
            state,
            sessions=_sessions([20, 20, 20]),
            key_metrics={"f": KeyMetric(correct=20, total=20, accuracy=1.0, iki_std_dev=30)},
        )
        report = generate_report(state)
        assert report.strong_keys == ["f"]
        assert report.keys_learned == 1
