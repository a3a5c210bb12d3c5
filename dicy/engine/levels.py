"""Starting matches from level descriptions and exporting them back."""

import logging
from typing import Optional, Union

from ..models.level import ConfigLevel, ScenarioLevel, ScenarioPlayer, ScenarioTile
from .match import MatchEngine, MatchSettings

logger = logging.getLogger(__name__)


def settings_from_config(level: ConfigLevel) -> MatchSettings:
    """Translate a procedural level into match settings."""
    width, height = level.dimensions
    return MatchSettings(
        width=width,
        height=height,
        humans=level.humans,
        bots=level.bots,
        max_dice=level.max_dice,
        dice_sides=level.dice_sides,
        map_style=level.map_style,
        game_mode=level.game_mode,
        bot_agent=level.bot_ai,
    )


def start_level(engine: MatchEngine, level: Union[ConfigLevel, ScenarioLevel]) -> None:
    """Start a match on ``engine`` from any kind of level."""
    if isinstance(level, ConfigLevel):
        engine.start(settings_from_config(level))
    else:
        engine.load_scenario(level)


def create_scenario_from_match(
    engine: MatchEngine, name: str, description: str = "", scenario_id: Optional[str] = None
) -> ScenarioLevel:
    """Capture the engine's current board and roster as a scenario level.

    Raises:
        RuntimeError: If no match has been started
    """
    if engine.board is None:
        raise RuntimeError("No match in progress")

    board = engine.board
    scenario = ScenarioLevel(
        type="scenario",
        id=scenario_id,
        name=name,
        description=description,
        width=board.width,
        height=board.height,
        max_dice=board.max_dice,
        dice_sides=engine.dice_sides,
        players=[
            ScenarioPlayer(
                id=p.id,
                is_bot=p.is_bot,
                color=p.color,
                stored_dice=p.stored_dice,
                agent_id=p.agent_id,
                name=p.name,
            )
            for p in engine.players
        ],
        tiles=[
            ScenarioTile(x=x, y=y, owner=t.owner, dice=t.dice)
            for x, y, t in board.positions()
            if not t.blocked
        ],
    )
    logger.info(f"Exported scenario '{name}' with {len(scenario.tiles)} tiles")
    return scenario
