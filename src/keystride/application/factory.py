"""
Engine Factory
Centralizes wiring of the progression engine from configuration.
"""

import logging
import random

from keystride.application.config import AppConfig
from keystride.application.engine import ProgressionEngine
from keystride.infrastructure.adapters.json_store import JsonFileStateStore

logger = logging.getLogger(__name__)


def get_engine(config: AppConfig) -> ProgressionEngine:
    """
    Returns an engine backed by the configured state file.

    A configured age group is applied only to a profile that has none yet.
    """
    engine = ProgressionEngine(
        JsonFileStateStore(config.state_file),
        rng=random.Random(config.seed),
        review_probability=config.review_probability,
    )
    if config.age_group and engine.state.profile.age_group is None:
        logger.debug(f"Applying configured age group {config.age_group!r}")
        engine.update_profile(age_group=config.age_group)
    return engine
