"""Board data model: a rectangular grid of tiles."""

import copy
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Tuple

from ..utils.constants import DEFAULT_MAX_DICE
from ..utils.grid import DIRECTIONS
from .tile import Tile

Position = Tuple[int, int]


@dataclass
class Board:
    """Rectangular grid of tiles stored in a flat row-major list.

    The board is created once per match by the generator and then mutated in
    place by combat and reinforcement.
    """

    width: int
    height: int
    max_dice: int = DEFAULT_MAX_DICE
    tiles: List[Tile] = field(default_factory=list)

    def __post_init__(self):
        """Validate board data and fill missing tiles as blocked."""
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Invalid board size: {self.width}x{self.height}")
        if self.max_dice < 1:
            raise ValueError(f"Invalid max_dice: {self.max_dice} (must be >= 1)")
        if not self.tiles:
            self.tiles = [Tile() for _ in range(self.width * self.height)]
        if len(self.tiles) != self.width * self.height:
            raise ValueError(
                f"Board has {len(self.tiles)} tiles, expected {self.width * self.height}"
            )

    def index(self, x: int, y: int) -> int:
        """Convert x,y coordinates to a tile index."""
        return y * self.width + x

    def coords(self, index: int) -> Position:
        """Convert a tile index to x,y coordinates."""
        return index % self.width, index // self.width

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def raw_tile(self, x: int, y: int) -> Optional[Tile]:
        """Get the tile at coordinates, even if blocked (None if out of bounds)."""
        if not self.in_bounds(x, y):
            return None
        return self.tiles[self.index(x, y)]

    def tile_at(self, x: int, y: int) -> Optional[Tile]:
        """Get the playable tile at coordinates (None if blocked or out of bounds)."""
        tile = self.raw_tile(x, y)
        if tile is None or tile.blocked:
            return None
        return tile

    def neighbors(self, x: int, y: int) -> List[Position]:
        """Get coordinates of the playable tiles 4-adjacent to (x, y)."""
        result = []
        for dx, dy in DIRECTIONS:
            nx, ny = x + dx, y + dy
            if self.tile_at(nx, ny) is not None:
                result.append((nx, ny))
        return result

    def positions(self) -> Iterator[Tuple[int, int, Tile]]:
        """Iterate over (x, y, tile) for every cell in row-major order."""
        for idx, tile in enumerate(self.tiles):
            x, y = self.coords(idx)
            yield x, y, tile

    def playable_indices(self) -> List[int]:
        return [idx for idx, tile in enumerate(self.tiles) if not tile.blocked]

    def playable_count(self) -> int:
        return sum(1 for tile in self.tiles if not tile.blocked)

    def owned_positions(self, player_id: int) -> List[Position]:
        """Get coordinates of every playable tile owned by a player."""
        return [
            self.coords(idx)
            for idx, tile in enumerate(self.tiles)
            if not tile.blocked and tile.owner == player_id
        ]

    def tiles_owned_by(self, player_id: int) -> List[Tile]:
        return [t for t in self.tiles if not t.blocked and t.owner == player_id]

    def total_dice(self, player_id: int) -> int:
        return sum(t.dice for t in self.tiles_owned_by(player_id))

    def owners(self) -> set:
        """Set of player ids that own at least one playable tile."""
        return {t.owner for t in self.tiles if not t.blocked and t.owner is not None}

    def copy(self) -> "Board":
        """Deep copy of the board (used for snapshots and what-if analysis)."""
        return copy.deepcopy(self)
