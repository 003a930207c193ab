from keystride.domain.ports import StateStore


class MemoryStateStore(StateStore):
    """Keeps the state document in memory. Useful for tests and embedding."""

    def __init__(self, payload: str | None = None):
        self.payload = payload
        self.writes = 0

    def read(self) -> str | None:
        return self.payload

    def write(self, payload: str) -> None:
        self.payload = payload
        self.writes += 1

    def clear(self) -> None:
        self.payload = None
