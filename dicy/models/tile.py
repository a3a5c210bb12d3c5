"""Tile data model for a single grid cell."""

from dataclasses import dataclass
from typing import Optional


@dataclass
class Tile:
    """One cell of the board.

    A tile is either blocked terrain (a hole in the map) or playable. Playable
    tiles are owned by a player and hold at least one die once the board has
    been assigned. The tile's position is implicit in its row-major index.
    """

    owner: Optional[int] = None  # Player id, or None
    dice: int = 0  # Dice stacked on the tile
    blocked: bool = True  # Unplayable terrain

    def __post_init__(self):
        """Validate tile data after initialization."""
        if self.dice < 0:
            raise ValueError(f"Invalid dice: {self.dice} (must be >= 0)")
        if self.blocked and (self.owner is not None or self.dice != 0):
            raise ValueError("Blocked tile cannot have an owner or dice")

    def block(self) -> None:
        """Turn the tile into terrain, clearing owner and dice."""
        self.blocked = True
        self.owner = None
        self.dice = 0
