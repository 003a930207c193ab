"""Exception taxonomy for keystride.

Nothing here is fatal to a practice session: callers at the load/save
boundary catch these, log, and continue with in-memory state.
"""


class KeystrideError(Exception):
    """Base class for all keystride errors."""


class StateFormatError(KeystrideError, ValueError):
    """Stored payload could not be decoded into a progression state."""


class StorageError(KeystrideError):
    """A state store could not read or write its backing medium."""


class UnknownModuleError(KeystrideError, KeyError):
    """No curriculum module exists with the requested id."""

    def __init__(self, module_id: str):
        super().__init__(module_id)
        self.module_id = module_id

    def __str__(self) -> str:
        return f"Unknown module: {self.module_id!r}"
