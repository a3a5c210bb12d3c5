"""Tests for match save/load."""

import json

import pytest

from dicy.agent.registry import AgentRepository
from dicy.engine.match import MatchEngine, MatchSettings
from dicy.utils.rng import GameRNG
from dicy.utils.serialization import deserialize_match, load_match, save_match, serialize_match


@pytest.fixture
def engine():
    engine = MatchEngine(rng=GameRNG(42), repository=AgentRepository())
    engine.start(MatchSettings(humans=2, bots=1, width=7, height=6))
    engine.end_turn()
    return engine


def test_save_and_load_match(engine, tmp_path):
    path = save_match(engine, tmp_path / "saves" / "match.json")
    loaded = load_match(path)

    assert loaded.snapshot() == engine.snapshot()
    assert loaded.turn == 2
    assert loaded.current_player.id == engine.current_player.id
    assert loaded.rng.seed == 42


def test_rng_state_survives(engine, tmp_path):
    path = save_match(engine, tmp_path / "match.json")
    loaded = load_match(path)

    assert [loaded.rng.random() for _ in range(5)] == [engine.rng.random() for _ in range(5)]


def test_loaded_match_keeps_playing(engine, tmp_path):
    loaded = load_match(save_match(engine, tmp_path / "match.json"))

    result = loaded.end_turn()
    expected = engine.end_turn()

    assert result == expected
    assert loaded.snapshot() == engine.snapshot()


def test_serialized_match_is_json(engine):
    data = serialize_match(engine)
    assert json.loads(json.dumps(data))["version"] == 1


def test_invalid_json(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json")
    with pytest.raises(ValueError):
        load_match(path)


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_match(tmp_path / "missing.json")


def test_malformed_data(engine):
    data = serialize_match(engine)
    del data["tiles"]
    with pytest.raises(ValueError):
        deserialize_match(data)


def test_unknown_version(engine):
    data = serialize_match(engine)
    data["version"] = 99
    with pytest.raises(ValueError):
        deserialize_match(data)
