"""
Ports (interfaces) for the progression engine.

These define the contract that infrastructure adapters must implement.
The engine depends on these abstractions, never on a concrete storage medium.
"""

from abc import ABC, abstractmethod
from typing import Protocol


class StateStore(ABC):
    """
    Port for persisting the serialized progression state.

    Implementations:
        - JsonFileStateStore: Writes the state document to a file.
        - MemoryStateStore: Keeps the document in memory (tests, embedding).
    """

    @abstractmethod
    def read(self) -> str | None:
        """
        Return the stored document, or None if nothing has been saved yet.

        Raises:
            StorageError: The backing medium is unavailable.
        """
        pass

    @abstractmethod
    def write(self, payload: str) -> None:
        """
        Replace the stored document.

        Raises:
            StorageError: The backing medium is unavailable.
        """
        pass

    @abstractmethod
    def clear(self) -> None:
        """Remove the stored document if present."""
        pass


class RandomSource(Protocol):
    """
    Source of randomness for content generation.

    ``random.Random`` satisfies this protocol; tests supply a scripted fake.
    """

    def random(self) -> float:
        """Return the next float in [0, 1)."""
        ...
