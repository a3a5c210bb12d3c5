"""Attack validation and dice combat.

Combat rules:
- Attacker rolls one die per die on the attacking tile, defender likewise
- Attacker wins only if their sum is strictly greater (ties go to the defender)
- Win: captured tile takes attacker dice - 1, attacking tile drops to 1
- Loss: attacking tile drops to 1, defending tile untouched
"""

import logging
from enum import Enum
from typing import List, Optional, Tuple

from ..models.battle import BattleResult
from ..models.board import Board, Position
from ..utils.grid import is_adjacent
from ..utils.rng import GameRNG

logger = logging.getLogger(__name__)


class AttackRejection(str, Enum):
    """Reason codes for an attack that cannot be made."""

    INVALID_COORDINATES = "invalid_coordinates"
    NOT_YOUR_TILE = "not_your_tile"
    CANNOT_ATTACK_SELF = "cannot_attack_self"
    NOT_ENOUGH_DICE = "not_enough_dice"
    NOT_ADJACENT = "not_adjacent"


class InvalidAttackError(ValueError):
    """Raised when an attack fails validation. The board is left untouched."""

    def __init__(self, reason: AttackRejection, from_pos: Position, to_pos: Position):
        self.reason = reason
        self.from_pos = from_pos
        self.to_pos = to_pos
        super().__init__(f"Attack {from_pos} -> {to_pos} rejected: {reason.value}")


def can_attack(
    board: Board, attacker_id: int, from_pos: Position, to_pos: Position
) -> Optional[AttackRejection]:
    """Check whether an attack is legal.

    Args:
        board: Current board
        attacker_id: Player making the attack
        from_pos: (x, y) of the attacking tile
        to_pos: (x, y) of the target tile

    Returns:
        None if the attack is legal, otherwise the rejection reason
    """
    attacker_tile = board.tile_at(*from_pos)
    defender_tile = board.tile_at(*to_pos)

    if attacker_tile is None or defender_tile is None:
        return AttackRejection.INVALID_COORDINATES
    if attacker_tile.owner != attacker_id:
        return AttackRejection.NOT_YOUR_TILE
    if attacker_tile.owner == defender_tile.owner:
        return AttackRejection.CANNOT_ATTACK_SELF
    if attacker_tile.dice <= 1:
        return AttackRejection.NOT_ENOUGH_DICE
    if not is_adjacent(*from_pos, *to_pos):
        return AttackRejection.NOT_ADJACENT
    return None


def roll_dice(rng: GameRNG, count: int, sides: int) -> Tuple[int, ...]:
    """Roll ``count`` dice with faces 1..sides."""
    return tuple(rng.randint(1, sides) for _ in range(count))


class CombatResolver:
    """Resolves attacks and keeps the match's battle history."""

    def __init__(self, rng: GameRNG):
        self.rng = rng
        self.history: List[BattleResult] = []

    def resolve_attack(
        self,
        board: Board,
        attacker_id: int,
        dice_sides: int,
        from_pos: Position,
        to_pos: Position,
    ) -> BattleResult:
        """Validate and resolve one attack, mutating the board.

        Args:
            board: Board to mutate
            attacker_id: Player making the attack
            dice_sides: Faces per die
            from_pos: (x, y) of the attacking tile
            to_pos: (x, y) of the target tile

        Returns:
            BattleResult describing both rolls and the outcome

        Raises:
            InvalidAttackError: If the attack is not legal
        """
        from_pos = tuple(from_pos)
        to_pos = tuple(to_pos)
        reason = can_attack(board, attacker_id, from_pos, to_pos)
        if reason is not None:
            raise InvalidAttackError(reason, from_pos, to_pos)

        attacker_tile = board.tile_at(*from_pos)
        defender_tile = board.tile_at(*to_pos)

        attacker_rolls = roll_dice(self.rng, attacker_tile.dice, dice_sides)
        defender_rolls = roll_dice(self.rng, defender_tile.dice, dice_sides)
        won = sum(attacker_rolls) > sum(defender_rolls)

        result = BattleResult(
            attacker_id=attacker_id,
            defender_id=defender_tile.owner,
            from_pos=from_pos,
            to_pos=to_pos,
            attacker_rolls=attacker_rolls,
            defender_rolls=defender_rolls,
            won=won,
        )

        if won:
            defender_tile.owner = attacker_id
            defender_tile.dice = attacker_tile.dice - 1
        attacker_tile.dice = 1

        self.history.append(result)
        logger.debug(
            f"Player {attacker_id} {from_pos} -> {to_pos}: "
            f"{result.attacker_sum} vs {result.defender_sum} ({'won' if won else 'lost'})"
        )
        return result
