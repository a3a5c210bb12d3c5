"""Data models for Dicy."""

from .agent import AgentDefinition
from .battle import BattleResult, ReinforcementResult
from .board import Board, Position
from .level import ConfigLevel, ScenarioLevel, parse_level
from .player import Player
from .tile import Tile

__all__ = [
    "AgentDefinition",
    "BattleResult",
    "Board",
    "ConfigLevel",
    "Player",
    "Position",
    "ReinforcementResult",
    "ScenarioLevel",
    "Tile",
    "parse_level",
]
