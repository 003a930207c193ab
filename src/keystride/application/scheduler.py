"""
Leitner-box spaced repetition over session boundaries.

Review intervals count completed sessions, not wall-clock days.
"""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import replace

from keystride.domain.constants import (
    SR_INTERVALS,
    SR_MIN_TOTAL_FOR_REVIEW,
    SR_PROMOTION_ACCURACY,
    SR_TOP_BOX,
)
from keystride.domain.models import KeyMetric

logger = logging.getLogger(__name__)


def get_due_keys(key_metrics: Mapping[str, KeyMetric]) -> list[str]:
    """
    Keys whose review countdown has run out, weakest first.

    Keys with fewer than five recorded keystrokes are never due. Equal
    accuracies keep insertion order (``sorted`` is stable).
    """
    due = [
        (key, m.accuracy)
        for key, m in key_metrics.items()
        if m.total >= SR_MIN_TOTAL_FOR_REVIEW and m.sr_sessions_until_review <= 0
    ]
    return [key for key, _ in sorted(due, key=lambda item: item[1])]


def advance_after_session(
    key_metrics: Mapping[str, KeyMetric], practiced_keys: Iterable[str]
) -> dict[str, KeyMetric]:
    """
    Move every key one session forward.

    - Practiced with accuracy >= 0.85: promote one box (capped at the top box)
      and restart the countdown at the new box's interval.
    - Practiced below that: keep the box, restart the countdown.
    - Not practiced: count down by one, never below zero.

    Must run exactly once per completed session.
    """
    practiced = set(practiced_keys)
    updated: dict[str, KeyMetric] = {}
    promoted = 0

    for key, m in key_metrics.items():
        if key in practiced:
            box = m.sr_box
            if m.accuracy >= SR_PROMOTION_ACCURACY and box < SR_TOP_BOX:
                box += 1
                promoted += 1
            updated[key] = replace(m, sr_box=box, sr_sessions_until_review=SR_INTERVALS[box])
        else:
            updated[key] = replace(
                m, sr_sessions_until_review=max(0, m.sr_sessions_until_review - 1)
            )

    logger.debug(f"Advanced {len(updated)} keys after session ({promoted} promoted)")
    return updated
