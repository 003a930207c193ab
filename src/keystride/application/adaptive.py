"""
Adaptive challenge generator.

Picks what a learner types next from the current module's keys and the
metrics store. Within a session the learner moves through four phases:

1. DRILL       - repeat the weakest keys until accuracy settles
2. WORDS       - real words built from the module's keys, weak keys favored
3. COMPLEXITY  - preview keys from the next module among comfortable words
4. MASTERY     - weak bigrams, longer words and left/right rhythm strings

The phase is recomputed before every exercise with no hysteresis, so a
learner near a threshold can move back and forth between phases.

Every generator is a pure function of its inputs plus an injected
``RandomSource``. An empty key set yields an empty string.
"""

import enum
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from keystride.application.scheduler import get_due_keys
from keystride.application.utils.sampling import pick, shuffled
from keystride.domain import keyboard
from keystride.domain.constants import (
    COMPLEXITY_TO_MASTERY,
    DEFAULT_AVG_TIME_MS,
    DRILL_TO_WORDS,
    MIN_KEYSTROKES_FOR_PHASE,
    PHASE_TIME_MAX_MS,
    REVIEW_INJECTION_PROBABILITY,
    ROLLING_WINDOW,
    SPEED_BONUS_DIVISOR,
    SPEED_BONUS_PIVOT_MS,
    WEAK_BIGRAM_MIN_TOTAL,
    WEAK_BIGRAM_RATE,
    WORD_WEAK_ACCURACY,
    WORDS_TO_COMPLEXITY,
)
from keystride.domain.models import BigramMetric, Keystroke, KeyMetric, ProgressionState
from keystride.domain.ports import RandomSource

logger = logging.getLogger(__name__)

UNSEEN_KEY_ACCURACY = 0.5


class Phase(str, enum.Enum):
    DRILL = "drill"
    WORDS = "words"
    COMPLEXITY = "complexity"
    MASTERY = "mastery"


@dataclass(frozen=True)
class Exercise:
    module_id: str
    phase: Phase
    text: str


def _spellable(word: str, keys: set[str] | frozenset[str]) -> bool:
    return all(c in keys for c in word)


def _bank(words: Sequence[str] | None) -> Sequence[str]:
    return keyboard.all_words() if words is None else words


# ---------- Phase ----------


def determine_phase(
    keystrokes: Sequence[Keystroke],
    module_index: int,
    module_count: int | None = None,
) -> Phase:
    """
    Choose the phase for the next exercise.

    Args:
        keystrokes: Keystrokes recorded so far this session.
        module_index: Position of the current module in the curriculum.
        module_count: Number of modules (defaults to the shipped curriculum).
    """
    if len(keystrokes) < MIN_KEYSTROKES_FOR_PHASE:
        return Phase.DRILL

    if module_count is None:
        module_count = len(keyboard.load_modules())

    recent = keystrokes[-ROLLING_WINDOW:]
    accuracy = sum(1 for k in recent if k.correct) / len(recent) * 100
    times = [k.time_ms for k in recent if 0 < k.time_ms < PHASE_TIME_MAX_MS]
    avg_time = sum(times) / len(times) if times else DEFAULT_AVG_TIME_MS

    speed_bonus = max(0.0, (SPEED_BONUS_PIVOT_MS - avg_time) / SPEED_BONUS_DIVISOR)
    effective = accuracy + speed_bonus

    if effective >= COMPLEXITY_TO_MASTERY:
        return Phase.MASTERY
    if effective >= WORDS_TO_COMPLEXITY and module_index < module_count - 1:
        return Phase.COMPLEXITY
    if accuracy >= DRILL_TO_WORDS:
        return Phase.WORDS
    return Phase.DRILL


# ---------- Generators ----------


def generate_drill(keys: Sequence[str], key_metrics: Mapping[str, KeyMetric]) -> str:
    """Weakest key, its partner alternation, adjacent pairs, then f/j anchors."""
    key_array = [k for k in keys if k != " "]
    if not key_array:
        return ""

    def accuracy(k: str) -> float:
        m = key_metrics.get(k)
        return m.accuracy if m else UNSEEN_KEY_ACCURACY

    weakest = sorted(key_array, key=accuracy)[0]
    patterns = [weakest * 4]

    partner = keyboard.partner_key(weakest)
    if partner and partner in key_array:
        patterns.append((weakest + partner) * 3)

    pairs = [key_array[i] + key_array[i + 1] for i in range(0, len(key_array) - 1, 2)]
    if pairs:
        patterns.append(" ".join(p * 3 for p in pairs[:2]))

    if "f" in key_array and "j" in key_array:
        patterns.append("fjfj fjfj")

    return " ".join(patterns[:3])


def generate_words(
    keys: Sequence[str],
    key_metrics: Mapping[str, KeyMetric],
    rng: RandomSource,
    words: Sequence[str] | None = None,
) -> str:
    """Four distinct bank words, favoring ones rich in weak keys."""
    key_set = set(keys)
    candidates = [w for w in _bank(words) if len(w) >= 2 and _spellable(w, key_set)]
    if not candidates:
        return generate_drill(keys, key_metrics)

    # Unseen keys count as strong here
    weak = {k for k in keys if k in key_metrics and key_metrics[k].accuracy < WORD_WEAK_ACCURACY}
    scored = []
    for word in candidates:
        weak_hits = sum(1 for c in word if c in weak)
        length_bonus = min(len(word) / 6, 1)
        scored.append((weak_hits * 2 + length_bonus + rng.random() * 0.5, word))
    scored.sort(key=lambda item: item[0], reverse=True)

    selected: list[str] = []
    for _, word in scored:
        if word not in selected:
            selected.append(word)
        if len(selected) == 4:
            break
    return " ".join(selected)


def generate_complexity(
    current_keys: Sequence[str],
    next_keys: Sequence[str],
    key_metrics: Mapping[str, KeyMetric],
    rng: RandomSource,
    words: Sequence[str] | None = None,
) -> str:
    """Preview the next module's first new key between comfortable words."""
    if not current_keys:
        return ""
    current = set(current_keys)
    new_keys = [k for k in next_keys if k not in current and k != " "]
    if not new_keys:
        return generate_words(current_keys, key_metrics, rng, words)

    bank = _bank(words)
    allowed = current | set(new_keys[:2])
    new_set = set(new_keys)
    preview_words = [
        w for w in bank if any(c in new_set for c in w) and _spellable(w, allowed)
    ]
    comfort_words = [w for w in bank if _spellable(w, current)][:10]

    new_key = new_keys[0]
    partner = keyboard.partner_key(new_key)
    if partner and partner in current:
        result = [(partner + new_key) * 2]
    else:
        result = [new_key * 3]

    if preview_words:
        result.append(pick(preview_words, rng))

    result.extend(shuffled(comfort_words, rng)[:2])
    return " ".join(result)


def weak_bigrams(
    keys: Sequence[str], bigram_metrics: Mapping[str, BigramMetric], limit: int = 2
) -> list[str]:
    """In-module bigrams with enough attempts and a success rate under 90%, weakest first."""
    key_set = set(keys)
    weak = [
        (bigram, m.success_rate)
        for bigram, m in bigram_metrics.items()
        if len(bigram) == 2
        and bigram[0] in key_set
        and bigram[1] in key_set
        and m.total >= WEAK_BIGRAM_MIN_TOTAL
        and m.success_rate < WEAK_BIGRAM_RATE
    ]
    weak.sort(key=lambda item: item[1])
    return [bigram for bigram, _ in weak[:limit]]


def generate_mastery(
    keys: Sequence[str],
    bigram_metrics: Mapping[str, BigramMetric],
    rng: RandomSource,
    words: Sequence[str] | None = None,
) -> str:
    """Weak-bigram drills, challenge words and a left/right rhythm string."""
    if not keys:
        return ""
    key_set = set(keys)
    result: list[str] = []

    drills = weak_bigrams(keys, bigram_metrics)
    if drills:
        result.append(" ".join(bg * 3 for bg in drills))

    long_words = [w for w in _bank(words) if len(w) >= 4 and _spellable(w, key_set)]
    result.extend(shuffled(long_words, rng)[:4])

    left = [k for k in keys if k in keyboard.LEFT_HAND_KEYS]
    right = [k for k in keys if k in keyboard.RIGHT_HAND_KEYS]
    if left and right:
        result.append("".join(pick(left, rng) + pick(right, rng) for _ in range(6)))

    if not result:
        # No weak bigrams, no long words and a one-handed key set
        return generate_drill(keys, {})
    return " ".join(result[:4])


def generate_review_fragment(
    due_keys: Sequence[str],
    module_keys: Sequence[str],
    rng: RandomSource,
    words: Sequence[str] | None = None,
) -> str:
    """
    Drill up to two due keys that belong to the module, plus one word.

    Due keys outside the module are skipped; they resurface once their
    module is active.
    """
    module_set = set(module_keys)
    applicable = [k for k in due_keys if k in module_set]
    if not applicable:
        return ""

    patterns = []
    for key in applicable[:2]:
        partner = keyboard.partner_key(key)
        if partner and partner in module_set:
            patterns.append((key + partner) * 2)
        else:
            patterns.append(key * 4)

    review_set = set(applicable)
    matches = [
        w for w in _bank(words) if _spellable(w, module_set) and any(c in review_set for c in w)
    ]
    if matches:
        patterns.append(pick(matches, rng))
    return " ".join(patterns)


def generate_challenge(
    phase: Phase,
    module_keys: Sequence[str],
    next_module_keys: Sequence[str] | None,
    key_metrics: Mapping[str, KeyMetric],
    bigram_metrics: Mapping[str, BigramMetric],
    due_keys: Sequence[str],
    rng: RandomSource,
    review_probability: float = REVIEW_INJECTION_PROBABILITY,
    words: Sequence[str] | None = None,
) -> str:
    """
    Produce the next exercise text for ``phase``.

    When keys are due for review, a review fragment is prepended with
    probability ``review_probability``.

    Returns:
        The practice text, or "" when ``module_keys`` is empty.
    """
    if not module_keys:
        return ""

    if phase is Phase.WORDS:
        base = generate_words(module_keys, key_metrics, rng, words)
    elif phase is Phase.COMPLEXITY:
        if next_module_keys:
            base = generate_complexity(module_keys, next_module_keys, key_metrics, rng, words)
        else:
            base = generate_words(module_keys, key_metrics, rng, words)
    elif phase is Phase.MASTERY:
        base = generate_mastery(module_keys, bigram_metrics, rng, words)
    else:
        base = generate_drill(module_keys, key_metrics)

    if due_keys and rng.random() < review_probability:
        review = generate_review_fragment(due_keys, module_keys, rng, words)
        if review and base:
            logger.debug(f"Injected review fragment: {review!r}")
            return f"{review} {base}"

    return base


def generate_exercise(
    state: ProgressionState,
    module_id: str,
    keystrokes: Sequence[Keystroke],
    rng: RandomSource,
    phase: Phase | None = None,
    review_probability: float = REVIEW_INJECTION_PROBABILITY,
) -> Exercise:
    """
    Pick the phase (unless forced) and generate the next exercise for a module.

    Raises:
        UnknownModuleError: ``module_id`` is not in the curriculum.
    """
    module = keyboard.get_module(module_id)
    index = keyboard.module_index(module_id)
    upcoming = keyboard.next_module(module_id)

    if phase is None:
        phase = determine_phase(keystrokes, index)

    text = generate_challenge(
        phase,
        module.keys,
        upcoming.keys if upcoming else None,
        state.key_metrics,
        state.bigram_metrics,
        get_due_keys(state.key_metrics),
        rng,
        review_probability=review_probability,
    )
    return Exercise(module_id=module.id, phase=phase, text=text)
