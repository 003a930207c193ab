"""
Shareable caregiver challenge.

A learner's toughest keys are packed into a short opaque token that fits in
a link. Whoever opens the link gets a practice text built from those keys.
"""

import base64
import json
import logging
import time
from dataclasses import dataclass

from keystride.application.metrics import get_weak_keys
from keystride.application.utils.sampling import shuffled
from keystride.domain import keyboard
from keystride.domain.constants import CHALLENGE_MAX_KEYS, CHALLENGE_WEAK_THRESHOLD
from keystride.domain.models import ProgressionState
from keystride.domain.ports import RandomSource

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChallengeToken:
    keys: list[str]
    issued_at: int  # epoch ms


def encode_token(keys: list[str], issued_at: int) -> str:
    payload = json.dumps({"k": keys, "t": issued_at}, separators=(",", ":"))
    return base64.urlsafe_b64encode(payload.encode("utf-8")).decode("ascii").rstrip("=")


def encode_challenge(state: ProgressionState, now_ms: int | None = None) -> str | None:
    """
    Build a token from up to six keys below 90% accuracy.

    Returns:
        The token, or None when the learner has no weak keys to share.
    """
    keys = get_weak_keys(state.key_metrics, CHALLENGE_WEAK_THRESHOLD)[:CHALLENGE_MAX_KEYS]
    if not keys:
        return None
    issued = now_ms if now_ms is not None else int(time.time() * 1000)
    return encode_token(keys, issued)


def decode_challenge(token: str) -> ChallengeToken | None:
    """Decode a token; any malformed input yields None instead of raising."""
    if not isinstance(token, str) or not token:
        return None
    try:
        padded = token + "=" * (-len(token) % 4)
        raw = base64.b64decode(padded, altchars=b"-_", validate=True)
        doc = json.loads(raw.decode("utf-8"))
    except ValueError as e:
        logger.debug(f"Rejected challenge token: {e}")
        return None

    if not isinstance(doc, dict):
        return None
    keys = doc.get("k")
    issued = doc.get("t", 0)
    if (
        not isinstance(keys, list)
        or not keys
        or not all(isinstance(k, str) and k for k in keys)
        or not isinstance(issued, int)
    ):
        return None
    return ChallengeToken(keys=keys, issued_at=issued)


def generate_parent_challenge_text(keys: list[str], rng: RandomSource) -> str:
    """
    Drill the first three keys, then up to six common words that use any of them.

    With no matching word, the joined keys repeated three times stand in.
    """
    if not keys:
        return ""
    key_set = set(keys)
    parts = [key * 4 for key in keys[:3]]

    common = keyboard.load_word_bank().get("common", ())
    relevant = [w for w in common if any(c in key_set for c in w)]
    if relevant:
        parts.extend(shuffled(relevant, rng)[:6])
    else:
        parts.append("".join(keys) * 3)
    return " ".join(parts)
