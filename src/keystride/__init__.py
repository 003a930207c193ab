"""keystride: adaptive skill-progression engine for typing practice."""

from keystride.consts import VERSION

__version__ = VERSION
