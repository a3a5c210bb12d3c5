"""End-of-turn reinforcement.

Players earn one die per tile in their largest connected region. Earned
dice plus any stored overflow are dropped one at a time on random owned
tiles below the cap; whatever cannot be placed is stored for next turn.
"""

import logging
from typing import Optional

from ..models.battle import ReinforcementResult
from ..models.board import Board
from ..models.player import Player
from ..utils.rng import GameRNG
from .territory import largest_connected_region

logger = logging.getLogger(__name__)


def reinforcements_for(board: Board, player_id: int) -> int:
    """Dice a player would earn if their turn ended now."""
    return largest_connected_region(board, player_id)


def distribute_reinforcements(
    board: Board, player: Player, rng: GameRNG, max_dice: Optional[int] = None
) -> ReinforcementResult:
    """Place a player's reinforcements and update their store.

    Args:
        board: Board to mutate
        player: Player being reinforced (``stored_dice`` is rewritten)
        rng: Random source for tile picks
        max_dice: Per-tile cap (defaults to the board's cap)

    Returns:
        ReinforcementResult with ``placed + stored == earned + from_store``
    """
    cap = board.max_dice if max_dice is None else max_dice
    earned = largest_connected_region(board, player.id)
    from_store = player.stored_dice
    pool = earned + from_store

    eligible = [pos for pos in board.owned_positions(player.id) if board.tile_at(*pos).dice < cap]
    touched = []

    while pool > 0 and eligible:
        pick = rng.randrange(len(eligible))
        pos = eligible[pick]
        tile = board.tile_at(*pos)
        tile.dice += 1
        pool -= 1
        touched.append(pos)
        if tile.dice >= cap:
            eligible[pick] = eligible[-1]
            eligible.pop()

    player.stored_dice = pool
    result = ReinforcementResult(
        player_id=player.id,
        earned=earned,
        placed=len(touched),
        stored=pool,
        from_store=from_store,
        touched=touched,
    )
    logger.debug(
        f"Player {player.id} reinforced: earned {earned}, placed {result.placed}, stored {pool}"
    )
    return result
