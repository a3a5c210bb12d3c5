"""Territory analysis: connected groups of tiles owned by one player."""

from typing import List

from ..models.board import Board, Position


def connected_regions(board: Board, player_id: int) -> List[List[Position]]:
    """Split a player's tiles into 4-connected regions.

    Flood fill only crosses tiles owned by the same player, so two clusters
    separated by an enemy or blocked tile are separate regions.

    Args:
        board: Board to analyze
        player_id: Owner whose tiles are grouped

    Returns:
        List of regions, each a list of (x, y) positions
    """
    visited = set()
    regions = []

    for start in board.owned_positions(player_id):
        if start in visited:
            continue

        region = []
        stack = [start]
        visited.add(start)
        while stack:
            x, y = stack.pop()
            region.append((x, y))
            for nx, ny in board.neighbors(x, y):
                if (nx, ny) not in visited and board.tiles[board.index(nx, ny)].owner == player_id:
                    visited.add((nx, ny))
                    stack.append((nx, ny))

        regions.append(region)

    return regions


def largest_connected_region(board: Board, player_id: int) -> int:
    """Size of the player's largest connected region (0 if they own nothing)."""
    return max((len(region) for region in connected_regions(board, player_id)), default=0)


def owned_tile_count(board: Board, player_id: int) -> int:
    """Total playable tiles owned, connected or not."""
    return len(board.owned_positions(player_id))
