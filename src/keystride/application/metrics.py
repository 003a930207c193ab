"""
Metrics store: per-key and per-bigram keystroke statistics.

This is a pure computation module with no I/O. Every function takes a state
(or metric) and returns a new one; inputs are never modified.
"""

import time
from collections.abc import Mapping
from dataclasses import replace

from keystride.application.utils.numbers import mean, population_std_dev, round_half_up
from keystride.domain.constants import (
    IKI_MAX_MS,
    IKI_MIN_MS,
    IKI_WINDOW,
    MASTERY_MAX_STDDEV_MS,
    MASTERY_MIN_ACCURACY,
    MASTERY_MIN_TOTAL,
    SR_INTERVALS,
    WEAK_ACCURACY_THRESHOLD,
    WEAK_MIN_TOTAL,
)
from keystride.domain.models import BigramMetric, KeyMetric, ProgressionState


def _push_sample(samples: tuple[int, ...], iki_ms: float) -> tuple[int, ...]:
    """Append an IKI sample to the rolling window, discarding pauses."""
    if not IKI_MIN_MS < iki_ms < IKI_MAX_MS:
        return samples
    return (*samples, int(iki_ms))[-IKI_WINDOW:]


def update_key_metric(
    existing: KeyMetric | None,
    correct: bool,
    iki_ms: float,
    now_ms: int | None = None,
) -> KeyMetric:
    """
    Fold one keystroke into a key's statistics.

    A wrong keystroke demotes the key to Leitner box 0 immediately. A correct
    one never promotes it; promotion happens only at session boundaries.
    """
    m = existing or KeyMetric()
    new_correct = m.correct + (1 if correct else 0)
    new_total = m.total + 1
    samples = _push_sample(m.iki_samples, iki_ms)

    sr_box = m.sr_box
    if not correct and sr_box > 0:
        sr_box = 0

    return replace(
        m,
        correct=new_correct,
        total=new_total,
        accuracy=new_correct / new_total,
        iki_samples=samples,
        avg_iki=round_half_up(mean(samples)),
        iki_std_dev=round_half_up(population_std_dev(samples)),
        last_practiced=now_ms if now_ms is not None else int(time.time() * 1000),
        sr_box=sr_box,
        sr_sessions_until_review=SR_INTERVALS[sr_box],
    )


def update_bigram_metric(
    existing: BigramMetric | None, correct: bool, iki_ms: float
) -> BigramMetric:
    m = existing or BigramMetric()
    samples = _push_sample(m.iki_samples, iki_ms)
    return BigramMetric(
        correct=m.correct + (1 if correct else 0),
        total=m.total + 1,
        avg_iki=round_half_up(mean(samples)),
        iki_samples=samples,
    )


def record_keystroke(
    state: ProgressionState,
    key: str,
    correct: bool,
    iki_ms: float,
    previous_key: str | None = None,
    now_ms: int | None = None,
) -> ProgressionState:
    """
    Record a single keystroke against ``key`` and, when a previous key
    exists in the same input stream, against the ``previous_key + key`` bigram.

    Args:
        state: Current progression state.
        key: The key the learner was expected to type.
        correct: Whether the learner typed it.
        iki_ms: Milliseconds since the previous keystroke.
        previous_key: The key before this one, or None/"" at stream start.
        now_ms: Epoch milliseconds to stamp as last practice (defaults to now).

    Returns:
        A new state; ``state`` is left untouched.
    """
    key_metrics = dict(state.key_metrics)
    key_metrics[key] = update_key_metric(state.key_metrics.get(key), correct, iki_ms, now_ms)

    bigram_metrics = state.bigram_metrics
    if previous_key:
        bigram = previous_key + key
        bigram_metrics = dict(state.bigram_metrics)
        bigram_metrics[bigram] = update_bigram_metric(
            state.bigram_metrics.get(bigram), correct, iki_ms
        )

    return replace(state, key_metrics=key_metrics, bigram_metrics=bigram_metrics)


def get_mastered_keys(key_metrics: Mapping[str, KeyMetric]) -> list[str]:
    """
    Keys that are both reliable and consistent.

    A key is mastered when it has enough data, high accuracy, AND a low
    IKI standard deviation. High accuracy alone is not enough.
    """
    return [
        key
        for key, m in key_metrics.items()
        if m.total >= MASTERY_MIN_TOTAL
        and m.accuracy >= MASTERY_MIN_ACCURACY
        and m.iki_std_dev < MASTERY_MAX_STDDEV_MS
    ]


def get_weak_keys(
    key_metrics: Mapping[str, KeyMetric], threshold: float = WEAK_ACCURACY_THRESHOLD
) -> list[str]:
    """Keys with enough data and accuracy below ``threshold``, weakest first."""
    weak = [
        (key, m.accuracy)
        for key, m in key_metrics.items()
        if m.total >= WEAK_MIN_TOTAL and m.accuracy < threshold
    ]
    weak.sort(key=lambda item: item[1])
    return [key for key, _ in weak]
