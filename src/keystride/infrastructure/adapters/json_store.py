"""
JSON file state store: infrastructure adapter for local disk.

Implements StateStore by keeping the serialized state in a single file.
"""

import logging
import os
from pathlib import Path

from keystride.domain.errors import StateFormatError, StorageError
from keystride.domain.ports import StateStore

logger = logging.getLogger(__name__)


class JsonFileStateStore(StateStore):
    """
    Stores the state document at ``path``.

    Writes go to a sibling temp file first and are then moved into place, so
    a crash mid-write leaves the previous document intact.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def read(self) -> str | None:
        """Raises StateFormatError when the file is not UTF-8 text."""
        if not self.path.exists():
            return None
        try:
            return self.path.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            raise StateFormatError(f"{self.path} is not UTF-8 text: {e}") from e
        except OSError as e:
            raise StorageError(f"Cannot read {self.path}: {e}") from e

    def write(self, payload: str) -> None:
        tmp = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(payload, encoding="utf-8")
            os.replace(tmp, self.path)
        except OSError as e:
            raise StorageError(f"Cannot write {self.path}: {e}") from e
        logger.debug(f"[store] wrote {len(payload)} bytes to {self.path}")

    def clear(self) -> None:
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"Cannot remove {self.path}: {e}") from e
