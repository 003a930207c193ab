import pytest

from keystride.application.progression import create_default_state
from keystride.domain.models import Keystroke


class FakeRandom:
    """Replays scripted floats, then ``default`` forever. Counts draws."""

    def __init__(self, values=(), default=0.0):
        self._values = list(values)
        self.default = default
        self.calls = 0

    def random(self) -> float:
        self.calls += 1
        if self._values:
            return self._values.pop(0)
        return self.default


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Keep tests away from the real ~/.config/keystride and KEYSTRIDE_* env."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    for var in ("STATE_FILE", "AGE_GROUP", "REVIEW_PROBABILITY", "SEED", "HOST", "PORT"):
        monkeypatch.delenv(f"KEYSTRIDE_{var}", raising=False)
    return home


@pytest.fixture
def rng():
    return FakeRandom()


@pytest.fixture
def scripted_rng():
    return FakeRandom


@pytest.fixture
def state():
    return create_default_state(now_ms=1_000)


@pytest.fixture
def make_keystrokes():
    def _make(count, correct=True, time_ms=300, key="f"):
        return [Keystroke(key, correct, time_ms) for _ in range(count)]

    return _make
