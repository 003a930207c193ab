from dataclasses import replace

import pytest

from keystride.application.metrics import (
    get_mastered_keys,
    get_weak_keys,
    record_keystroke,
    update_bigram_metric,
    update_key_metric,
)
from keystride.domain.models import KeyMetric


def _type(state, key, times, correct=True, iki=120):
    for _ in range(times):
        state = record_keystroke(state, key, correct, iki, now_ms=5_000)
    return state


class TestRecordKeystroke:
    def test_twenty_steady_keystrokes_master_the_key(self, state):
        state = _type(state, "f", 20, iki=120)

        m = state.key_metrics["f"]
        assert m.accuracy == 1.0
        assert m.total == 20
        assert m.iki_std_dev == 0
        assert "f" in get_mastered_keys(state.key_metrics)
        # Box untouched until a session ends
        assert m.sr_box == 0

    def test_counts_are_monotonic_and_accuracy_exact(self, state):
        pattern = [True, False, True, True, False, False, True]
        previous_total = 0
        correct = 0
        for i, ok in enumerate(pattern, start=1):
            state = record_keystroke(state, "k", ok, 150)
            m = state.key_metrics["k"]
            correct += ok
            assert m.total == i
            assert m.total >= previous_total
            assert m.correct <= m.total
            assert m.accuracy == pytest.approx(correct / i)
            previous_total = m.total

    def test_input_state_is_not_modified(self, state):
        new_state = record_keystroke(state, "f", True, 100, previous_key="j")
        assert state.key_metrics == {}
        assert state.bigram_metrics == {}
        assert "f" in new_state.key_metrics
        assert "jf" in new_state.bigram_metrics

    def test_bigram_recorded_only_with_previous_key(self, state):
        state = record_keystroke(state, "f", True, 100, previous_key=None)
        state = record_keystroke(state, "j", True, 100, previous_key="")
        assert state.bigram_metrics == {}

        state = record_keystroke(state, "j", False, 100, previous_key="f")
        bigram = state.bigram_metrics["fj"]
        assert bigram.total == 1
        assert bigram.correct == 0
        assert bigram.success_rate == 0.0

    def test_last_practiced_stamped(self, state):
        state = record_keystroke(state, "f", True, 100, now_ms=42)
        assert state.key_metrics["f"].last_practiced == 42


class TestIkiWindow:
    def test_window_keeps_latest_twenty(self):
        m = None
        for iki in range(100, 125):
            m = update_key_metric(m, True, iki, now_ms=0)
        assert len(m.iki_samples) == 20
        assert m.iki_samples[0] == 105
        assert m.iki_samples[-1] == 124

    def test_bigram_window_keeps_latest_twenty(self):
        m = None
        for iki in range(100, 130):
            m = update_bigram_metric(m, True, iki)
        assert len(m.iki_samples) == 20
        assert m.iki_samples[0] == 110

    @pytest.mark.parametrize("iki", [5000, 3000, 0, -4])
    def test_outliers_are_ignored(self, iki):
        m = update_key_metric(None, True, 200, now_ms=0)
        after = update_key_metric(m, True, iki, now_ms=0)
        assert after.iki_samples == (200,)
        assert after.avg_iki == 200
        assert after.total == 2

    def test_just_under_pause_limit_is_kept(self):
        m = update_key_metric(None, True, 2999, now_ms=0)
        assert m.iki_samples == (2999,)

    def test_averages_round_half_up(self):
        m = update_key_metric(None, True, 120, now_ms=0)
        m = update_key_metric(m, True, 121, now_ms=0)
        assert m.avg_iki == 121
        assert m.iki_std_dev == 1


class TestLeitnerBox:
    def test_wrong_keystroke_demotes_to_box_zero(self):
        m = KeyMetric(correct=10, total=10, accuracy=1.0, sr_box=3, sr_sessions_until_review=14)
        after = update_key_metric(m, False, 150, now_ms=0)
        assert after.sr_box == 0
        assert after.sr_sessions_until_review == 1

    def test_key_at_box_two_resets_after_a_miss(self, state):
        state = replace(
            state,
            key_metrics={"j": KeyMetric(correct=8, total=8, accuracy=1.0, sr_box=2,
                                        sr_sessions_until_review=7)},
        )
        state = record_keystroke(state, "j", False, 180)
        assert state.key_metrics["j"].sr_box == 0
        assert state.key_metrics["j"].sr_sessions_until_review == 1

    def test_correct_keystrokes_never_promote(self):
        m = KeyMetric(correct=5, total=5, accuracy=1.0, sr_box=1, sr_sessions_until_review=3)
        for _ in range(10):
            m = update_key_metric(m, True, 150, now_ms=0)
        assert m.sr_box == 1


class TestDerivedSets:
    def test_mastery_requires_consistency(self):
        metrics = {"a": KeyMetric(correct=19, total=20, accuracy=0.95, iki_std_dev=200)}
        assert get_mastered_keys(metrics) == []

    def test_mastery_requires_enough_data(self):
        metrics = {"a": KeyMetric(correct=19, total=19, accuracy=1.0, iki_std_dev=10)}
        assert get_mastered_keys(metrics) == []

    def test_weak_keys_sorted_weakest_first(self):
        metrics = {
            "a": KeyMetric(correct=7, total=10, accuracy=0.7),
            "s": KeyMetric(correct=4, total=10, accuracy=0.4),
            "d": KeyMetric(correct=9, total=10, accuracy=0.9),
            "f": KeyMetric(correct=1, total=9, accuracy=1 / 9),
        }
        assert get_weak_keys(metrics) == ["s", "a"]
        assert get_weak_keys(metrics, threshold=0.95) == ["s", "a", "d"]
