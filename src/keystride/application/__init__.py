# Application Package
from .engine import ProgressionEngine

__all__ = ["ProgressionEngine"]
