"""Board generation: layout, connectivity repair, ownership and starting dice."""

import logging
import math
from typing import Iterable, List, Optional, Sequence, Tuple

from ..models.board import Board
from ..models.player import Player
from ..utils.constants import (
    INITIAL_DICE_MULTIPLIER,
    MIN_TILES_PER_PLAYER,
    RANDOM_STYLE_CHOICES,
    SIMPLE_HOLE_PERCENTAGE,
)
from ..utils.rng import GameRNG
from .connectivity import ensure_connectivity
from .map_styles import STYLE_GENERATORS, generate_continents, generate_simple

logger = logging.getLogger(__name__)

# Hole percentages tried in order when a layout is too small for the roster
FALLBACK_HOLE_PERCENTAGES = (SIMPLE_HOLE_PERCENTAGE, 0.1, 0.05, 0.0)


def resolve_style(style: str, rng: GameRNG, has_preset: bool = False) -> str:
    """Map a requested style name to the generator that will run.

    ``random`` picks uniformly among the organic styles. Unknown names and a
    ``preset`` request without a layout fall back to ``continents``.
    """
    if style == "random":
        return rng.choice(RANDOM_STYLE_CHOICES)
    if style == "preset":
        if has_preset:
            return style
        logger.warning("Preset style requested without a layout, using continents")
        return "continents"
    if style not in STYLE_GENERATORS:
        logger.warning(f"Unknown map style '{style}', using continents")
        return "continents"
    return style


def apply_preset_layout(board: Board, layout: Iterable[Tuple[int, int]]) -> None:
    """Unblock the listed positions; out-of-bounds entries are ignored."""
    for x, y in layout:
        if board.in_bounds(x, y):
            board.tiles[board.index(x, y)].blocked = False


def generate_board(
    width: int,
    height: int,
    players: Sequence[Player],
    max_dice: int,
    style: str,
    rng: GameRNG,
    preset_layout: Optional[Iterable[Tuple[int, int]]] = None,
) -> Board:
    """Generate a playable board for a match.

    Algorithm:
    1. Carve the playable layout with the chosen style
    2. Repair connectivity (every style except full and preset)
    3. If fewer than 4 tiles per player are playable, regenerate with the
       random-holes fallback, trying smaller hole percentages in turn
    4. Shuffle playable tiles and deal them round-robin with 1 die each
    5. Top up each seat's starting dice (see ``distribute_initial_dice``)

    Generation never fails: when even the fallback cannot reach the minimum
    the degraded board is returned with a warning.

    Args:
        width: Board width in tiles
        height: Board height in tiles
        players: Roster in seat order
        max_dice: Per-tile dice cap
        style: Map style name (see MAP_STYLES) or "random"
        rng: Random source
        preset_layout: Playable (x, y) positions for the preset style

    Returns:
        Fully assigned Board

    Raises:
        ValueError: If the roster is empty or the size is invalid
    """
    if not players:
        raise ValueError("Cannot generate a board without players")

    board = Board(width=width, height=height, max_dice=max_dice)
    chosen = resolve_style(style, rng, has_preset=preset_layout is not None)
    logger.info(f"Generating {chosen} map ({width}x{height}) for {len(players)} players")

    if chosen == "preset":
        apply_preset_layout(board, preset_layout)
    else:
        STYLE_GENERATORS.get(chosen, generate_continents)(board, rng)
        if chosen != "full":
            ensure_connectivity(board)

    min_tiles = len(players) * MIN_TILES_PER_PLAYER
    if board.playable_count() < min_tiles and chosen != "full":
        logger.warning(
            f"{chosen} map has {board.playable_count()} playable tiles, "
            f"need {min_tiles}; using fallback"
        )
        for hole_percentage in FALLBACK_HOLE_PERCENTAGES:
            generate_simple(board, rng, hole_percentage)
            if board.playable_count() >= min_tiles:
                break
        else:
            logger.warning(
                f"Board {width}x{height} cannot fit {min_tiles} tiles; "
                f"continuing with {board.playable_count()}"
            )

    assign_territories(board, players, rng)
    distribute_initial_dice(board, players, rng)
    return board


def assign_territories(board: Board, players: Sequence[Player], rng: GameRNG) -> None:
    """Deal shuffled playable tiles round-robin, one die each."""
    playable = board.playable_indices()
    rng.shuffle(playable)
    for i, idx in enumerate(playable):
        tile = board.tiles[idx]
        tile.owner = players[i % len(players)].id
        tile.dice = 1


def distribute_initial_dice(board: Board, players: Sequence[Player], rng: GameRNG) -> None:
    """Top up starting dice per seat.

    Each seat ``i`` ends with ``floor(tiles_per_player * 2.5) + i`` dice in
    total, counting the 1 die already on every owned tile. Later seats get a
    small bonus to offset moving after earlier ones. Dice go on random owned
    tiles below the cap until the target is met or every tile is full.
    """
    tiles_per_player = board.playable_count() // len(players)
    base_dice = math.floor(tiles_per_player * INITIAL_DICE_MULTIPLIER)

    for seat, player in enumerate(players):
        owned = board.tiles_owned_by(player.id)
        remaining = base_dice + seat - len(owned)
        eligible: List = [t for t in owned if t.dice < board.max_dice]

        while remaining > 0 and eligible:
            pick = rng.randrange(len(eligible))
            tile = eligible[pick]
            tile.dice += 1
            remaining -= 1
            if tile.dice >= board.max_dice:
                eligible[pick] = eligible[-1]
                eligible.pop()
