# Domain Package
from .models import (
    AgeNorm,
    BigramMetric,
    Keystroke,
    KeyMetric,
    Module,
    Profile,
    ProgressionState,
    Session,
    SessionSummary,
    Unlockables,
)
from .ports import RandomSource, StateStore

__all__ = [
    "AgeNorm",
    "BigramMetric",
    "Keystroke",
    "KeyMetric",
    "Module",
    "Profile",
    "ProgressionState",
    "Session",
    "SessionSummary",
    "Unlockables",
    "RandomSource",
    "StateStore",
]
