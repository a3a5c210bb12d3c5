"""Game-mode post-processing applied once after board assignment."""

import logging
from typing import Callable, Dict, Sequence

from ..models.board import Board
from ..models.player import Player
from ..utils.rng import GameRNG

logger = logging.getLogger(__name__)


def apply_classic(board: Board, players: Sequence[Player], rng: GameRNG) -> None:
    """No change."""


def apply_madness(board: Board, players: Sequence[Player], rng: GameRNG) -> None:
    """Every playable tile starts at the dice cap."""
    for tile in board.tiles:
        if not tile.blocked:
            tile.dice = board.max_dice


def apply_two_of_two(board: Board, players: Sequence[Player], rng: GameRNG) -> None:
    """Every playable tile starts with exactly 2 dice."""
    for tile in board.tiles:
        if not tile.blocked:
            tile.dice = min(2, board.max_dice)


def apply_fair(board: Board, players: Sequence[Player], rng: GameRNG) -> None:
    """Trim dice until every player has the roster's minimum total.

    Dice are removed one at a time from random tiles holding more than one.
    A player whose tiles are all at 1 die keeps their surplus.
    """
    totals = {p.id: board.total_dice(p.id) for p in players}
    minimum = min(totals.values(), default=0)

    for player in players:
        excess = totals[player.id] - minimum
        tiles = board.tiles_owned_by(player.id)
        while excess > 0:
            reducible = [t for t in tiles if t.dice > 1]
            if not reducible:
                logger.warning(f"Fair mode: player {player.id} keeps {excess} extra dice")
                break
            rng.choice(reducible).dice -= 1
            excess -= 1


GAME_MODE_TRANSFORMS: Dict[str, Callable[[Board, Sequence[Player], GameRNG], None]] = {
    "classic": apply_classic,
    "madness": apply_madness,
    "2of2": apply_two_of_two,
    "fair": apply_fair,
}


def apply_game_mode(mode: str, board: Board, players: Sequence[Player], rng: GameRNG) -> None:
    """Apply a named game mode to a freshly assigned board.

    Raises:
        ValueError: If the mode name is unknown
    """
    transform = GAME_MODE_TRANSFORMS.get(mode)
    if transform is None:
        raise ValueError(f"Unknown game mode: {mode}")
    transform(board, players, rng)
    logger.debug(f"Applied game mode {mode}")
