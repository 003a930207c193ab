# Infrastructure State Store Adapters Package
from .json_store import JsonFileStateStore
from .memory_store import MemoryStateStore

__all__ = ["JsonFileStateStore", "MemoryStateStore"]
