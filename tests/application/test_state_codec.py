import json
from dataclasses import replace
from datetime import datetime

import pytest

from keystride.application.metrics import record_keystroke
from keystride.application.progression import award_achievement, unlock_theme
from keystride.application.session import end_session
from keystride.application.state_codec import dump_state, encode_state, parse_state
from keystride.domain.errors import StateFormatError
from keystride.domain.models import SessionSummary


@pytest.fixture
def practiced_state(state):
    previous = None
    for i in range(25):
        key = "fj"[i % 2]
        state = record_keystroke(state, key, i % 5 != 0, 100 + i, previous, now_ms=9_000 + i)
        previous = key
    state, _ = end_session(
        state,
        SessionSummary(game="typeflow", duration_ms=30_000, wpm=12, accuracy=80, keys_used=("f", "j")),
        now=datetime(2026, 5, 1, 9, 30),
    )
    state = award_achievement(state, "first-session")
    return unlock_theme(state, "ocean")


class TestRoundTrip:
    def test_load_of_save_matches_except_sample_windows(self, practiced_state):
        loaded = parse_state(dump_state(practiced_state))

        expected = replace(
            practiced_state,
            key_metrics={
                k: replace(m, iki_samples=m.iki_samples[-10:])
                for k, m in practiced_state.key_metrics.items()
            },
            bigram_metrics={
                k: replace(m, iki_samples=m.iki_samples[-5:])
                for k, m in practiced_state.bigram_metrics.items()
            },
        )
        assert loaded == expected
        assert len(loaded.key_metrics["f"].iki_samples) == 10
        assert len(loaded.bigram_metrics["fj"].iki_samples) == 5

    def test_saving_does_not_trim_memory(self, practiced_state):
        before = practiced_state.key_metrics["f"].iki_samples
        dump_state(practiced_state)
        assert practiced_state.key_metrics["f"].iki_samples == before
        assert len(before) == 13

    def test_document_uses_camel_case(self, practiced_state):
        doc = json.loads(dump_state(practiced_state))
        assert set(doc["keyMetrics"]["f"]) >= {"ikiSamples", "avgIKI", "srBox"}
        assert doc["profile"]["totalSessions"] == 1
        assert doc["sessions"][0]["dateStr"] == "2026-05-01"
        assert doc["unlockables"]["activeTheme"] == "default"


class TestDefaultFirstMerge:
    def test_old_save_missing_fields(self):
        state = parse_state(json.dumps({"stars": 12, "profile": {"name": "Ada"}}))
        assert state.stars == 12
        assert state.profile.name == "Ada"
        assert state.profile.daily_streak == 0
        assert state.unlockables.themes == ("default",)
        assert "journal" in state.game_progress

    def test_partial_game_document_is_filled_in(self):
        state = parse_state(json.dumps({"gameProgress": {"pong": {"highScore": 9}}}))
        assert state.game_progress["pong"] == {
            "highScore": 9,
            "levelsCleared": 0,
            "totalSessions": 0,
        }
        assert state.game_progress["typeflow"]["bestWpm"] == 0

    def test_unknown_fields_pass_through(self):
        stored = {
            "futureField": {"a": 1},
            "profile": {"name": "Ada", "avatar": "owl"},
            "gameProgress": {"chess": {"rating": 800}},
            "unlockables": {"themes": ["default"], "activeTheme": "default", "badges": [1]},
        }
        state = parse_state(json.dumps(stored))
        assert state.extra == {"futureField": {"a": 1}}
        assert state.profile.extra == {"avatar": "owl"}
        assert state.game_progress["chess"] == {"rating": 800}

        doc = encode_state(state)
        assert doc["futureField"] == {"a": 1}
        assert doc["profile"]["avatar"] == "owl"
        assert doc["unlockables"]["badges"] == [1]

    def test_non_mapping_game_document_is_kept_as_is(self):
        state = parse_state(json.dumps({"gameProgress": {"pong": [], "custom": ["level-1"]}}))
        assert state.game_progress["pong"] == []
        assert state.game_progress["custom"] == ["level-1"]
        assert json.loads(dump_state(state))["gameProgress"]["custom"] == ["level-1"]

    def test_session_history_capped_on_load(self):
        sessions = [{"date": i, "dateStr": "2026-01-01", "game": "pong"} for i in range(120)]
        state = parse_state(json.dumps({"sessions": sessions}))
        assert len(state.sessions) == 100
        assert state.sessions[0].timestamp == 20


@pytest.mark.parametrize(
    "payload",
    [
        "not json",
        "[]",
        "null",
        '{"profile": 5}',
        '{"sessions": 5}',
        '{"keyMetrics": {"f": {"total": "abc"}}}',
        '{"stars": NaN}',
        '{"keyMetrics": {"f": {"total": 1e400}}}',
        '{"keyMetrics": {"f": 1}}',
        '{"profile": {"totalSessions": [1]}}',
        '{"sessions": [{"wpm": {}}]}',
        '{"unlockables": {"themes": 3}}',
        '{"achievements": 7}',
        '{"gameProgress": "pong"}',
    ],
)
def test_corrupt_payload_raises_state_format_error(payload):
    with pytest.raises(StateFormatError):
        parse_state(payload)
