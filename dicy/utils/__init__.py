"""Utility functions and constants for Dicy."""

from .constants import (
    AGENT_DEFAULT_MAX_MOVES,
    AGENT_DEFAULT_TIMEOUT,
    DEFAULT_DICE_SIDES,
    DEFAULT_MAX_DICE,
    MAX_TURNS,
    MIN_TILES_PER_PLAYER,
    RNG_SEED_DEFAULT,
)
from .grid import DIRECTIONS, is_adjacent, manhattan_distance, parse_map_size
from .rng import GameRNG

__all__ = [
    "AGENT_DEFAULT_MAX_MOVES",
    "AGENT_DEFAULT_TIMEOUT",
    "DEFAULT_DICE_SIDES",
    "DEFAULT_MAX_DICE",
    "MAX_TURNS",
    "MIN_TILES_PER_PLAYER",
    "RNG_SEED_DEFAULT",
    "DIRECTIONS",
    "is_adjacent",
    "manhattan_distance",
    "parse_map_size",
    "GameRNG",
]
