"""Inert game-state snapshots handed to agent code.

The snapshot is plain JSON-compatible data: the worker rebuilds its own
board from it, so agent code never holds a reference to host objects.
"""

from typing import Any, Dict, List, Sequence, Tuple

from ..models.board import Board
from ..models.player import Player
from ..models.tile import Tile


def serialize_game_state(
    board: Board,
    players: Sequence[Player],
    player_id: int,
    turn: int,
    dice_sides: int,
) -> Dict[str, Any]:
    """Serialize the state an agent is allowed to see.

    Args:
        board: Authoritative board (read only)
        players: Full roster
        player_id: Seat the agent is playing
        turn: Current turn number
        dice_sides: Faces per die

    Returns:
        JSON-compatible dict
    """
    return {
        "width": board.width,
        "height": board.height,
        "maxDice": board.max_dice,
        "diceSides": dice_sides,
        "turn": turn,
        "myId": player_id,
        "players": [
            {
                "id": p.id,
                "name": p.name,
                "isBot": p.is_bot,
                "color": p.color,
                "alive": p.alive,
                "storedDice": p.stored_dice,
            }
            for p in players
        ],
        "tiles": [
            {"x": x, "y": y, "owner": tile.owner, "dice": tile.dice}
            for x, y, tile in board.positions()
            if not tile.blocked
        ],
    }


def restore_game_state(state: Dict[str, Any]) -> Tuple[Board, List[Player]]:
    """Rebuild a private board and roster from a snapshot.

    Raises:
        KeyError: If a required field is missing
        ValueError: If the data violates model invariants
    """
    board = Board(width=state["width"], height=state["height"], max_dice=state["maxDice"])
    for t in state["tiles"]:
        board.tiles[board.index(t["x"], t["y"])] = Tile(owner=t["owner"], dice=t["dice"], blocked=False)

    players = [
        Player(
            id=p["id"],
            is_bot=p.get("isBot", False),
            color=p.get("color", 0),
            alive=p.get("alive", True),
            stored_dice=p.get("storedDice", 0),
            name=p.get("name"),
        )
        for p in state["players"]
    ]
    return board, players
