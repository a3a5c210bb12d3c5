"""Tests for level parsing, level start and scenario export."""

import pytest
from pydantic import ValidationError

from dicy.agent.registry import AgentRepository
from dicy.engine.levels import create_scenario_from_match, settings_from_config, start_level
from dicy.engine.match import MatchEngine, MatchSettings
from dicy.models.level import ConfigLevel, ScenarioLevel, parse_level
from dicy.utils.constants import DEFAULT_MAX_DICE
from dicy.utils.rng import GameRNG


def new_engine(seed=3):
    return MatchEngine(rng=GameRNG(seed), repository=AgentRepository())


SCENARIO = {
    "type": "scenario",
    "id": "bridge",
    "name": "The Bridge",
    "width": 4,
    "height": 3,
    "maxDice": 6,
    "players": [{"id": 0}, {"id": 1, "isBot": True, "botAI": "hard", "storedDice": 2}],
    "tiles": [
        {"x": 0, "y": 0, "owner": 0, "dice": 4},
        {"x": 1, "y": 0, "owner": 0},
        {"x": 2, "y": 0, "owner": 1, "dice": 2},
        {"x": 3, "y": 0, "owner": 1, "dice": 6},
    ],
}


class TestParseLevel:
    def test_config_level(self):
        level = parse_level({"type": "config", "mapSize": "8x5", "bots": 3, "gameMode": "fair"})

        assert isinstance(level, ConfigLevel)
        assert level.dimensions == (8, 5)
        assert level.bots == 3
        assert level.max_dice == DEFAULT_MAX_DICE

    def test_scenario_level(self):
        level = parse_level(SCENARIO)

        assert isinstance(level, ScenarioLevel)
        assert level.players[1].agent_id == "hard"
        assert level.tiles[1].dice is None

    def test_map_level_allows_unowned_tiles(self):
        level = parse_level(
            {
                "type": "map",
                "width": 3,
                "height": 3,
                "players": [{"id": 0}, {"id": 1}],
                "tiles": [{"x": x, "y": y} for x in range(3) for y in range(3)],
            }
        )
        assert level.type == "map"

    @pytest.mark.parametrize(
        "data",
        [
            {"type": "config", "mapSize": "8by5"},
            {"type": "config", "mapStyle": "preset"},
            {"type": "config", "gameMode": "chaos"},
            {"type": "config", "humans": 1, "bots": 0},
            {"type": "config", "maxDice": 17},
            {"type": "config", "maxDice": 0},
            {"type": "puzzle"},
            {**SCENARIO, "players": [{"id": 0}]},
            {**SCENARIO, "players": [{"id": 0}, {"id": 0}]},
            {**SCENARIO, "tiles": [{"x": 4, "y": 0, "owner": 0}]},
            {**SCENARIO, "tiles": [{"x": 0, "y": 0, "owner": 0}, {"x": 0, "y": 0, "owner": 1}]},
            {**SCENARIO, "tiles": [{"x": 0, "y": 0}]},
            {**SCENARIO, "tiles": [{"x": 0, "y": 0, "owner": 5}]},
            {**SCENARIO, "tiles": [{"x": 0, "y": 0, "owner": 0, "dice": 7}]},
            {**SCENARIO, "width": 2},
        ],
    )
    def test_invalid_levels(self, data):
        with pytest.raises(ValidationError):
            parse_level(data)


class TestStartLevel:
    def test_config_level_starts_procedural_match(self):
        engine = new_engine()
        start_level(engine, parse_level({"type": "config", "mapSize": "7x7", "humans": 0, "bots": 3}))

        assert (engine.board.width, engine.board.height) == (7, 7)
        assert len(engine.players) == 3
        assert all(p.is_bot for p in engine.players)

    def test_settings_from_config(self):
        level = parse_level({"type": "config", "mapSize": "9x4", "botAI": "medium", "diceSides": 8})
        settings = settings_from_config(level)

        assert isinstance(settings, MatchSettings)
        assert (settings.width, settings.height) == (9, 4)
        assert settings.bot_agent == "medium"
        assert settings.dice_sides == 8

    def test_scenario_applied_verbatim(self):
        engine = new_engine()
        start_level(engine, parse_level(SCENARIO))

        board = engine.board
        assert board.max_dice == 6
        assert board.tile_at(0, 0).dice == 4
        assert board.tile_at(1, 0).dice == 1
        assert board.tile_at(3, 0).owner == 1
        assert board.playable_count() == 4
        assert engine.get_player(1).stored_dice == 2
        assert engine.get_player(1).agent_id == "hard"
        assert engine.get_player(0).agent_id is None

    def test_map_level_deals_territories(self):
        engine = new_engine()
        level = parse_level(
            {
                "type": "map",
                "width": 4,
                "height": 4,
                "players": [{"id": 0}, {"id": 1}],
                "tiles": [{"x": x, "y": y} for x in range(4) for y in range(2)],
            }
        )
        start_level(engine, level)

        assert engine.board.playable_count() == 8
        assert len(engine.board.owned_positions(0)) == 4
        assert len(engine.board.owned_positions(1)) == 4


class TestCreateScenario:
    def test_exported_scenario_reloads_identically(self):
        engine = new_engine()
        engine.start(MatchSettings(humans=1, bots=2, width=6, height=5))
        engine.players[0].stored_dice = 3

        exported = create_scenario_from_match(engine, "Snapshot", description="mid-game", scenario_id="s1")
        data = exported.model_dump(by_alias=True)

        reloaded = new_engine(seed=99)
        start_level(reloaded, parse_level(data))

        assert reloaded.board == engine.board
        assert [p.id for p in reloaded.players] == [p.id for p in engine.players]
        assert reloaded.players[0].stored_dice == 3
        assert data["name"] == "Snapshot"

    def test_requires_match(self):
        with pytest.raises(RuntimeError):
            create_scenario_from_match(new_engine(), "Empty")
