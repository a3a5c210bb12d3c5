"""Match state serialization to/from JSON.

Saves board, roster, turn position, settings and RNG state so a match can
be resumed exactly where it stopped.
"""

import json
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional, Union

from ..models.board import Board
from ..models.player import Player
from ..models.tile import Tile
from .rng import GameRNG

if TYPE_CHECKING:
    from ..engine.events import EventBus
    from ..engine.match import MatchEngine
    from ..sandbox.runner import AgentSandbox

SAVE_FORMAT_VERSION = 1


def save_match(engine: "MatchEngine", filepath: Union[str, Path]) -> Path:
    """Save match state to a JSON file.

    Args:
        engine: Engine with a match in progress (or finished)
        filepath: Destination; parent directories are created

    Returns:
        Path written
    """
    path = Path(filepath)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        json.dump(serialize_match(engine), f, indent=2)
    return path


def load_match(
    filepath: Union[str, Path],
    events: Optional["EventBus"] = None,
    sandbox: Optional["AgentSandbox"] = None,
) -> "MatchEngine":
    """Load a match saved with ``save_match``.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the JSON is invalid or malformed
    """
    with open(filepath) as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid save file {filepath}: {e}") from e
    return deserialize_match(data, events=events, sandbox=sandbox)


def serialize_match(engine: "MatchEngine") -> dict[str, Any]:
    """Convert the engine's match to a JSON-compatible dictionary."""
    state = engine.snapshot()
    state["version"] = SAVE_FORMAT_VERSION
    state["seed"] = engine.rng.seed
    state["rngState"] = engine.rng.get_state()  # Save RNG state for determinism
    return state


def deserialize_match(
    data: dict[str, Any],
    events: Optional["EventBus"] = None,
    sandbox: Optional["AgentSandbox"] = None,
) -> "MatchEngine":
    """Rebuild an engine from a serialized match. No events are published."""
    from ..engine.match import MatchEngine, MatchSettings

    if data.get("version", SAVE_FORMAT_VERSION) != SAVE_FORMAT_VERSION:
        raise ValueError(f"Unsupported save format version: {data.get('version')}")

    try:
        rng = GameRNG(data.get("seed"))
        if "rngState" in data:
            # JSON turns the state tuple into nested lists
            state = data["rngState"]
            if isinstance(state, list):
                state = (state[0], tuple(state[1]), state[2])
            rng.set_state(state)

        board = Board(width=data["width"], height=data["height"], max_dice=data["maxDice"])
        for t in data["tiles"]:
            board.tiles[board.index(t["x"], t["y"])] = Tile(owner=t["owner"], dice=t["dice"], blocked=False)

        players = [
            Player(
                id=p["id"],
                is_bot=p["isBot"],
                color=p.get("color", 0),
                alive=p.get("alive", True),
                stored_dice=p.get("storedDice", 0),
                name=p.get("name"),
                agent_id=p.get("agentId"),
            )
            for p in data["players"]
        ]

        engine = MatchEngine(rng=rng, events=events, sandbox=sandbox)
        engine.settings = MatchSettings.from_dict(data["settings"])
        engine.board = board
        engine.players = players
        engine.turn = data["turn"]
        engine.current_index = next(i for i, p in enumerate(players) if p.id == data["currentPlayerId"])
        engine.game_over = data.get("gameOver", False)
        engine.winner = data.get("winnerId")
    except (KeyError, TypeError, StopIteration) as e:
        raise ValueError(f"Malformed save data: {e}") from e

    return engine
