"""The capability object injected into agent programs as ``api``.

Everything here runs inside the worker process against a private copy of
the board. Queries are read only. ``attack`` and ``end_turn`` only queue an
intent (streamed to the host straight away) and update the private copy
optimistically so the agent's later reasoning sees a consistent world; the
host replays and re-validates the intents against the real board.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence

from ..engine.combat import can_attack
from ..engine.probability import win_probability
from ..engine.territory import largest_connected_region
from ..models.board import Board
from ..models.player import Player
from ..utils.constants import AGENT_MAX_LOG_CHARS, AGENT_MAX_STORAGE_BYTES
from .protocol import API_VERSION, AttackIntent, EndTurnIntent, LogMessage

logger = logging.getLogger(__name__)

TURN_ENDED = "turn_ended"
MAX_MOVES = "max_moves"
INVALID_ARGUMENTS = "invalid_arguments"


@dataclass(frozen=True)
class TileView:
    """Read-only view of one playable tile."""

    x: int
    y: int
    owner: Optional[int]
    dice: int


@dataclass(frozen=True)
class PlayerView:
    """Read-only view of one seat."""

    id: int
    name: str
    is_bot: bool
    alive: bool
    stored_dice: int


@dataclass(frozen=True)
class ActionResult:
    """Outcome of ``api.attack``.

    ``success`` means the intent was queued, not that the battle was won;
    ``expected_win`` is the local prediction that was applied.
    """

    success: bool
    expected_win: bool = False
    reason: Optional[str] = None


@dataclass(frozen=True)
class AttackSimulation:
    """Predicted effect of an attack, computed on a scratch copy."""

    success: bool
    expected_win: bool = False
    win_probability: float = 0.0
    my_region: int = 0
    enemy_region: int = 0
    my_reinforcements: int = 0
    enemy_reinforcements: int = 0
    reason: Optional[str] = None


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class AgentAPI:
    """Narrow, versioned interface exposed to agent code."""

    version = API_VERSION

    def __init__(
        self,
        board: Board,
        players: Sequence[Player],
        my_id: int,
        turn: int,
        dice_sides: int,
        storage: Optional[Dict[str, Any]] = None,
        max_moves: int = 200,
        emit: Optional[Callable[[Any], None]] = None,
    ):
        self._board = board
        self._players = {p.id: p for p in players}
        self._my_id = my_id
        self._turn = turn
        self._dice_sides = dice_sides
        self._storage = dict(storage or {})
        self._max_moves = max_moves
        self._emit = emit or (lambda message: None)
        self._moves = 0
        self._turn_ended = False

    # Identity and configuration

    @property
    def my_id(self) -> int:
        return self._my_id

    @property
    def max_dice(self) -> int:
        return self._board.max_dice

    @property
    def dice_sides(self) -> int:
        return self._dice_sides

    @property
    def width(self) -> int:
        return self._board.width

    @property
    def height(self) -> int:
        return self._board.height

    @property
    def turn(self) -> int:
        return self._turn

    @property
    def moves(self) -> int:
        """Attack intents queued so far this turn."""
        return self._moves

    @property
    def turn_ended(self) -> bool:
        return self._turn_ended

    @property
    def players(self) -> List[PlayerView]:
        return [self._player_view(p) for p in self._players.values()]

    def player_info(self, player_id: int) -> Optional[PlayerView]:
        player = self._players.get(player_id)
        return self._player_view(player) if player else None

    # Tile queries

    def my_tiles(self) -> List[TileView]:
        return [t for t in self.all_tiles() if t.owner == self._my_id]

    def enemy_tiles(self) -> List[TileView]:
        return [t for t in self.all_tiles() if t.owner != self._my_id]

    def all_tiles(self) -> List[TileView]:
        return [TileView(x, y, tile.owner, tile.dice) for x, y, tile in self._board.positions() if not tile.blocked]

    def tile_at(self, x: int, y: int) -> Optional[TileView]:
        if not (_is_int(x) and _is_int(y)):
            return None
        tile = self._board.tile_at(x, y)
        return TileView(x, y, tile.owner, tile.dice) if tile else None

    def adjacent_tiles(self, x: int, y: int) -> List[TileView]:
        """Playable neighbours of a playable tile; empty for blocked or off-board cells."""
        if not (_is_int(x) and _is_int(y)):
            return []
        if self._board.tile_at(x, y) is None:
            return []
        return [self.tile_at(nx, ny) for nx, ny in self._board.neighbors(x, y)]

    # Analysis helpers

    def largest_connected_region(self, player_id: int) -> int:
        return largest_connected_region(self._board, player_id)

    def reinforcements_for(self, player_id: int) -> int:
        """Dice the player would receive at end of turn, stored overflow included."""
        player = self._players.get(player_id)
        stored = player.stored_dice if player else 0
        return largest_connected_region(self._board, player_id) + stored

    def win_probability(self, attacker_dice: int, defender_dice: int, sides: Optional[int] = None) -> float:
        return win_probability(attacker_dice, defender_dice, sides or self._dice_sides)

    def simulate_attack(self, from_x: int, from_y: int, to_x: int, to_y: int) -> AttackSimulation:
        """Predict an attack without touching the agent's world."""
        if not all(_is_int(v) for v in (from_x, from_y, to_x, to_y)):
            return AttackSimulation(success=False, reason=INVALID_ARGUMENTS)
        reason = can_attack(self._board, self._my_id, (from_x, from_y), (to_x, to_y))
        if reason is not None:
            return AttackSimulation(success=False, reason=reason.value)

        scratch = self._board.copy()
        source = scratch.tile_at(from_x, from_y)
        target = scratch.tile_at(to_x, to_y)
        enemy_id = target.owner
        probability = win_probability(source.dice, target.dice, self._dice_sides)
        expected_win = source.dice > target.dice

        if expected_win:
            target.owner = self._my_id
            target.dice = source.dice - 1
        source.dice = 1

        my_region = largest_connected_region(scratch, self._my_id)
        enemy_region = largest_connected_region(scratch, enemy_id) if enemy_id is not None else 0
        enemy = self._players.get(enemy_id)
        return AttackSimulation(
            success=True,
            expected_win=expected_win,
            win_probability=probability,
            my_region=my_region,
            enemy_region=enemy_region,
            my_reinforcements=my_region + self._players[self._my_id].stored_dice,
            enemy_reinforcements=enemy_region + (enemy.stored_dice if enemy else 0),
        )

    # Actions

    def attack(self, from_x: int, from_y: int, to_x: int, to_y: int) -> ActionResult:
        """Queue an attack and apply the predicted outcome locally."""
        if self._turn_ended:
            self.log("Cannot attack after ending turn")
            return ActionResult(success=False, reason=TURN_ENDED)
        if self._moves >= self._max_moves:
            self.log("Max moves reached")
            return ActionResult(success=False, reason=MAX_MOVES)
        if not all(_is_int(v) for v in (from_x, from_y, to_x, to_y)):
            return ActionResult(success=False, reason=INVALID_ARGUMENTS)

        reason = can_attack(self._board, self._my_id, (from_x, from_y), (to_x, to_y))
        if reason is not None:
            return ActionResult(success=False, reason=reason.value)

        self._emit(AttackIntent(from_pos=(from_x, from_y), to_pos=(to_x, to_y)))
        self._moves += 1

        source = self._board.tile_at(from_x, from_y)
        target = self._board.tile_at(to_x, to_y)
        expected_win = source.dice > target.dice
        if expected_win:
            target.owner = self._my_id
            target.dice = source.dice - 1
        source.dice = 1
        return ActionResult(success=True, expected_win=expected_win)

    def end_turn(self) -> None:
        if not self._turn_ended:
            self._turn_ended = True
            self._emit(EndTurnIntent())

    # Storage and logging

    def save(self, key: str, value: Any) -> None:
        """Persist a JSON-serializable value for future turns and matches.

        Raises:
            TypeError: If the key is not a string or the value cannot be stored
            ValueError: If the whole storage would exceed AGENT_MAX_STORAGE_BYTES
        """
        if not isinstance(key, str):
            raise TypeError("storage keys must be strings")
        json.dumps(value)
        updated = dict(self._storage)
        updated[key] = value
        size = len(json.dumps(updated))
        if size > AGENT_MAX_STORAGE_BYTES:
            raise ValueError(f"storage limit exceeded ({size} > {AGENT_MAX_STORAGE_BYTES} bytes)")
        self._storage = updated

    def load(self, key: str, default: Any = None) -> Any:
        return self._storage.get(key, default)

    def storage(self) -> Dict[str, Any]:
        return dict(self._storage)

    def log(self, *parts, sep: str = " ") -> None:
        message = sep.join(str(p) for p in parts)
        if len(message) > AGENT_MAX_LOG_CHARS:
            message = message[:AGENT_MAX_LOG_CHARS] + "..."
        self._emit(LogMessage(message=message))

    def _player_view(self, player: Player) -> PlayerView:
        return PlayerView(player.id, player.name, player.is_bot, player.alive, player.stored_dice)
