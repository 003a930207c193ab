"""Age-appropriate benchmark lookup."""

from keystride.domain.constants import AGE_NORMS, DEFAULT_AGE_GROUP
from keystride.domain.models import AgeNorm

AGE_GROUPS = tuple(AGE_NORMS)


def is_age_group(label: str | None) -> bool:
    return label in AGE_NORMS


def get_norms(age_group: str | None) -> AgeNorm:
    """Return the norm for ``age_group``; unset or unknown labels get the 10-11 norm."""
    wpm, accuracy, minutes = AGE_NORMS.get(age_group or "", AGE_NORMS[DEFAULT_AGE_GROUP])
    return AgeNorm(wpm=wpm, accuracy=accuracy, session_minutes=minutes)
