"""Pydantic schemas for level descriptions.

A level is either a procedural ``config`` (size, style, mode, bots) or a fixed
``scenario``/``map`` with an explicit tile list. ``map`` levels only use the
tile list as a preset layout; ``scenario`` levels are applied verbatim.
"""

from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, field_validator, model_validator

from ..utils.constants import (
    DEFAULT_DICE_SIDES,
    DEFAULT_MAX_DICE,
    GAME_MODES,
    MAP_STYLES,
    MAX_DICE_PER_TERRITORY,
    MAX_DICE_SIDES,
)
from ..utils.grid import parse_map_size


class ConfigLevel(BaseModel):
    """Procedural level: drives board generation."""

    type: Literal["config"] = "config"
    name: Optional[str] = None
    map_size: str = Field(default="6x6", alias="mapSize", description="Map size as WxH")
    map_style: str = Field(default="full", alias="mapStyle")
    game_mode: str = Field(default="classic", alias="gameMode")
    humans: int = Field(default=1, ge=0)
    bots: int = Field(default=1, ge=0)
    bot_ai: str = Field(default="easy", alias="botAI", description="Agent id for bot seats")
    max_dice: int = Field(default=DEFAULT_MAX_DICE, ge=1, le=MAX_DICE_PER_TERRITORY, alias="maxDice")
    dice_sides: int = Field(default=DEFAULT_DICE_SIDES, ge=1, le=MAX_DICE_SIDES, alias="diceSides")

    class Config:
        populate_by_name = True

    @field_validator("map_size")
    @classmethod
    def _check_map_size(cls, value: str) -> str:
        parse_map_size(value)
        return value

    @field_validator("map_style")
    @classmethod
    def _check_style(cls, value: str) -> str:
        if value != "random" and (value not in MAP_STYLES or value == "preset"):
            raise ValueError(f"Unknown map style: {value}")
        return value

    @field_validator("game_mode")
    @classmethod
    def _check_mode(cls, value: str) -> str:
        if value not in GAME_MODES:
            raise ValueError(f"Unknown game mode: {value}")
        return value

    @model_validator(mode="after")
    def _check_player_count(self) -> "ConfigLevel":
        if self.humans + self.bots < 2:
            raise ValueError("A level needs at least 2 players")
        return self

    @property
    def dimensions(self) -> tuple[int, int]:
        return parse_map_size(self.map_size)


class ScenarioTile(BaseModel):
    """One playable tile of a fixed layout."""

    x: int = Field(ge=0)
    y: int = Field(ge=0)
    owner: Optional[int] = None
    dice: Optional[int] = Field(default=None, ge=1)


class ScenarioPlayer(BaseModel):
    """Starting metadata for one seat of a fixed layout."""

    id: int = Field(ge=0)
    is_bot: bool = Field(default=False, alias="isBot")
    color: int = 0
    stored_dice: int = Field(default=0, ge=0, alias="storedDice")
    agent_id: Optional[str] = Field(default=None, alias="botAI")
    name: Optional[str] = None

    class Config:
        populate_by_name = True


class ScenarioLevel(BaseModel):
    """Fixed level: explicit board and roster."""

    type: Literal["scenario", "map"] = "scenario"
    id: Optional[str] = None
    name: Optional[str] = None
    description: str = ""
    width: int = Field(ge=3)
    height: int = Field(ge=3)
    max_dice: int = Field(default=DEFAULT_MAX_DICE, ge=1, le=MAX_DICE_PER_TERRITORY, alias="maxDice")
    dice_sides: int = Field(default=DEFAULT_DICE_SIDES, ge=1, le=MAX_DICE_SIDES, alias="diceSides")
    players: list[ScenarioPlayer] = Field(min_length=2)
    tiles: list[ScenarioTile] = Field(default_factory=list)

    class Config:
        populate_by_name = True

    @model_validator(mode="after")
    def _check_layout(self) -> "ScenarioLevel":
        player_ids = [p.id for p in self.players]
        if len(set(player_ids)) != len(player_ids):
            raise ValueError("Duplicate player ids")

        seen = set()
        for i, tile in enumerate(self.tiles):
            if tile.x >= self.width or tile.y >= self.height:
                raise ValueError(f"Tile {i}: ({tile.x}, {tile.y}) outside {self.width}x{self.height}")
            if (tile.x, tile.y) in seen:
                raise ValueError(f"Tile {i}: duplicate position ({tile.x}, {tile.y})")
            seen.add((tile.x, tile.y))

            if self.type != "scenario":
                continue
            if tile.owner is None:
                raise ValueError(f"Tile {i}: scenario tiles need an owner")
            if tile.owner not in player_ids:
                raise ValueError(f"Tile {i}: unknown owner {tile.owner}")
            if tile.dice is not None and tile.dice > self.max_dice:
                raise ValueError(f"Tile {i}: {tile.dice} dice exceeds cap {self.max_dice}")
        return self


Level = Annotated[Union[ConfigLevel, ScenarioLevel], Field(discriminator="type")]

_level_adapter = TypeAdapter(Level)


def parse_level(data: dict) -> Union[ConfigLevel, ScenarioLevel]:
    """Validate a level record and return the matching model.

    Raises:
        pydantic.ValidationError: If the record is malformed
    """
    return _level_adapter.validate_python(data)
