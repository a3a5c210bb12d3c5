"""Connectivity analysis and repair for playable tiles.

Playable tiles must form one 4-connected region so that every player can
eventually reach every other. Generators that carve disjoint shapes run
``ensure_connectivity`` afterwards, which bridges stray regions into the
largest one with L-shaped corridors.
"""

import logging
from collections import deque
from typing import List, Optional, Tuple

from ..models.board import Board, Position
from ..utils.grid import DIRECTIONS, manhattan_distance

logger = logging.getLogger(__name__)


def find_connected_components(board: Board) -> List[List[int]]:
    """Group playable tiles into 4-connected components (BFS).

    Returns:
        List of components, each a list of tile indices in discovery order
    """
    visited = set()
    components = []

    for start, tile in enumerate(board.tiles):
        if tile.blocked or start in visited:
            continue

        component = []
        queue = deque([start])
        visited.add(start)
        while queue:
            idx = queue.popleft()
            component.append(idx)
            x, y = board.coords(idx)
            for dx, dy in DIRECTIONS:
                nx, ny = x + dx, y + dy
                if not board.in_bounds(nx, ny):
                    continue
                n_idx = board.index(nx, ny)
                if not board.tiles[n_idx].blocked and n_idx not in visited:
                    visited.add(n_idx)
                    queue.append(n_idx)

        components.append(component)

    return components


def is_connected(board: Board) -> bool:
    """True if the playable tiles form at most one component."""
    return len(find_connected_components(board)) <= 1


def create_bridge(board: Board, start: Position, end: Position) -> None:
    """Carve an L-shaped corridor between two cells.

    The corridor runs horizontally along ``start``'s row, then vertically
    along ``end``'s column. Cells outside the board are skipped.
    """
    (x1, y1), (x2, y2) = start, end

    for x in range(min(x1, x2), max(x1, x2) + 1):
        if board.in_bounds(x, y1):
            board.tiles[board.index(x, y1)].blocked = False

    for y in range(min(y1, y2), max(y1, y2) + 1):
        if board.in_bounds(x2, y):
            board.tiles[board.index(x2, y)].blocked = False


def closest_pair(
    board: Board, component: List[int], target: List[int]
) -> Optional[Tuple[Position, Position]]:
    """Find the pair of cells (one from each group) with the smallest Manhattan distance."""
    best = None
    best_distance = None
    target_coords = [board.coords(idx) for idx in target]

    for idx in component:
        x1, y1 = board.coords(idx)
        for x2, y2 in target_coords:
            distance = manhattan_distance(x1, y1, x2, y2)
            if best_distance is None or distance < best_distance:
                best_distance = distance
                best = ((x1, y1), (x2, y2))

    return best


def ensure_connectivity(board: Board) -> int:
    """Bridge components together until one playable region remains.

    Each round links the smallest component to the largest through their
    closest cell pair, then recomputes components, since a corridor can
    merge more than the two groups it was aimed at.

    Args:
        board: Board to repair in place

    Returns:
        Number of bridges carved
    """
    bridges = 0
    components = find_connected_components(board)

    while len(components) > 1:
        largest = max(components, key=len)
        smallest = min(components, key=len)
        pair = closest_pair(board, smallest, largest)
        if pair is None:
            break
        create_bridge(board, pair[0], pair[1])
        bridges += 1
        components = find_connected_components(board)

    if bridges:
        logger.debug(f"Connectivity repaired with {bridges} bridge(s)")
    return bridges
