"""Procedural map styles.

Each style takes a board whose tiles all start blocked and unblocks the
playable subset. Styles only touch the ``blocked`` flag; ownership and dice
are assigned later by the generator.
"""

import math

from ..models.board import Board
from ..utils.constants import (
    CAVES_BLOCK_THRESHOLD,
    CAVES_INITIAL_BLOCK_CHANCE,
    CAVES_ITERATIONS,
    CAVES_UNBLOCK_THRESHOLD,
    CIRCLE_NOISE_FACTOR,
    CONTINENTS_MAX_PLACEMENT_ATTEMPTS,
    CONTINENTS_MAX_RADIUS_FACTOR,
    CONTINENTS_MIN_DISTANCE_FACTOR,
    CONTINENTS_NOISE_FACTOR,
    CONTINENTS_SMALL_MAP_TILES,
    ISLANDS_LAKE_RADIUS_FACTOR,
    ISLANDS_MAIN_RADIUS_FACTOR,
    ISLANDS_MAX_ADDITIONAL_ISLANDS,
    ISLANDS_MIN_SMALL_ISLANDS,
    ISLANDS_SMALL_MAX_ADDITIONAL_RADIUS,
    ISLANDS_SMALL_MIN_RADIUS,
    MAZE_WIDEN_CHANCE,
    SIMPLE_HOLE_PERCENTAGE,
    SIMPLE_MAX_ATTEMPTS_MULTIPLIER,
    SWISS_MAX_ATTEMPTS_MULTIPLIER,
    SWISS_MAX_HOLE_PERCENTAGE,
    SWISS_MIN_HOLE_PERCENTAGE,
    TUNNELS_DIRECTION_CHANGE_CHANCE,
    TUNNELS_MAX_ADDITIONAL_PATHS,
    TUNNELS_MIN_PATHS,
    TUNNELS_PATH_LENGTH_FACTOR,
    TUNNELS_WIDEN_CHANCE,
)
from ..utils.grid import DIRECTIONS
from ..utils.rng import GameRNG
from .connectivity import create_bridge, is_connected


def _unblock(board: Board, x: int, y: int) -> None:
    if board.in_bounds(x, y):
        board.tiles[board.index(x, y)].blocked = False


def generate_full(board: Board, rng: GameRNG) -> None:
    """Every tile playable."""
    for tile in board.tiles:
        tile.blocked = False


def generate_tunnels(board: Board, rng: GameRNG) -> None:
    """Narrow winding corridors from several random walks."""
    num_paths = TUNNELS_MIN_PATHS + rng.randrange(TUNNELS_MAX_ADDITIONAL_PATHS)
    path_length = math.floor(board.width * board.height * TUNNELS_PATH_LENGTH_FACTOR)

    for _ in range(num_paths):
        x = rng.randrange(board.width)
        y = rng.randrange(board.height)
        direction = rng.randrange(4)

        for _ in range(path_length):
            _unblock(board, x, y)
            if rng.random() < TUNNELS_DIRECTION_CHANGE_CHANCE:
                direction = rng.randrange(4)
            dx, dy = DIRECTIONS[direction]
            # Walks are clamped to the board edge
            x = min(max(x + dx, 0), board.width - 1)
            y = min(max(y + dy, 0), board.height - 1)

    carved = board.playable_indices()
    for idx in carved:
        if rng.random() < TUNNELS_WIDEN_CHANCE:
            x, y = board.coords(idx)
            dx, dy = DIRECTIONS[rng.randrange(4)]
            _unblock(board, x + dx, y + dy)


def punch_holes(board: Board, rng: GameRNG, hole_percentage: float, attempts_multiplier: int) -> int:
    """Unblock everything, then block random tiles while connectivity holds.

    Returns:
        Number of holes created
    """
    generate_full(board, rng)

    target = math.floor(board.width * board.height * hole_percentage)
    max_attempts = target * attempts_multiplier
    holes = 0
    attempts = 0

    while holes < target and attempts < max_attempts:
        tile = board.tiles[rng.randrange(len(board.tiles))]
        if not tile.blocked:
            tile.blocked = True
            if is_connected(board):
                holes += 1
            else:
                tile.blocked = False
        attempts += 1

    return holes


def generate_swiss(board: Board, rng: GameRNG) -> None:
    """Full grid with 30-40% holes that never split the map."""
    hole_percentage = rng.uniform(SWISS_MIN_HOLE_PERCENTAGE, SWISS_MAX_HOLE_PERCENTAGE)
    punch_holes(board, rng, hole_percentage, SWISS_MAX_ATTEMPTS_MULTIPLIER)


def generate_simple(board: Board, rng: GameRNG, hole_percentage: float = SIMPLE_HOLE_PERCENTAGE) -> None:
    """Fallback layout: random connected holes."""
    punch_holes(board, rng, hole_percentage, SIMPLE_MAX_ATTEMPTS_MULTIPLIER)


def generate_continents(board: Board, rng: GameRNG) -> None:
    """Two to four noisy landmasses joined by corridors."""
    small = board.width * board.height < CONTINENTS_SMALL_MAP_TILES
    num_continents = 2 if small else 2 + rng.randrange(3)

    avg_dim = (board.width + board.height) / 2
    min_distance = avg_dim * CONTINENTS_MIN_DISTANCE_FACTOR
    max_radius = min_distance * CONTINENTS_MAX_RADIUS_FACTOR

    centers = []
    attempts = 0
    while len(centers) < num_continents and attempts < CONTINENTS_MAX_PLACEMENT_ATTEMPTS:
        cx = rng.randrange(board.width)
        cy = rng.randrange(board.height)
        too_close = any(math.hypot(cx - ox, cy - oy) < min_distance for ox, oy, _ in centers)
        if not too_close:
            radius = max_radius * 0.6 + rng.random() * max_radius * 0.4
            centers.append((cx, cy, radius))
        attempts += 1

    if not centers:
        centers.append((board.width // 2, board.height // 2, avg_dim / 3))

    for y in range(board.height):
        for x in range(board.width):
            for cx, cy, radius in centers:
                noise = (rng.random() - 0.5) * radius * CONTINENTS_NOISE_FACTOR
                if math.hypot(x - cx, y - cy) + noise < radius:
                    _unblock(board, x, y)
                    break

    for (x1, y1, _), (x2, y2, _) in zip(centers, centers[1:]):
        create_bridge(board, (x1, y1), (x2, y2))


def count_blocked_neighbors(board: Board, x: int, y: int) -> int:
    """Blocked cells in the 3x3 neighbourhood; off-board cells count as blocked."""
    count = 0
    for dy in (-1, 0, 1):
        for dx in (-1, 0, 1):
            if dx == 0 and dy == 0:
                continue
            tile = board.raw_tile(x + dx, y + dy)
            if tile is None or tile.blocked:
                count += 1
    return count


def generate_caves(board: Board, rng: GameRNG) -> None:
    """Organic caverns from a cellular automaton."""
    for tile in board.tiles:
        tile.blocked = rng.random() < CAVES_INITIAL_BLOCK_CHANCE

    for _ in range(CAVES_ITERATIONS):
        next_state = []
        for x, y, tile in board.positions():
            blocked_around = count_blocked_neighbors(board, x, y)
            if blocked_around >= CAVES_BLOCK_THRESHOLD:
                next_state.append(True)
            elif blocked_around <= CAVES_UNBLOCK_THRESHOLD:
                next_state.append(False)
            else:
                next_state.append(tile.blocked)
        for tile, blocked in zip(board.tiles, next_state):
            tile.blocked = blocked

    for x, y, tile in board.positions():
        if x in (0, board.width - 1) or y in (0, board.height - 1):
            tile.blocked = True


def carve_circle(board: Board, cx: float, cy: float, radius: float, rng: GameRNG) -> None:
    """Unblock cells inside a noisy circle."""
    for y in range(board.height):
        for x in range(board.width):
            noise = (rng.random() - 0.5) * radius * CIRCLE_NOISE_FACTOR
            if math.hypot(x - cx, y - cy) + noise < radius:
                board.tiles[board.index(x, y)].blocked = False


def fill_circle(board: Board, cx: float, cy: float, radius: float) -> None:
    """Block cells strictly inside a circle."""
    for y in range(board.height):
        for x in range(board.width):
            if math.hypot(x - cx, y - cy) < radius:
                board.tiles[board.index(x, y)].blocked = True


def generate_islands(board: Board, rng: GameRNG) -> None:
    """Ring-shaped main island with a central lake and satellites around it."""
    center_x = board.width // 2
    center_y = board.height // 2
    main_radius = (board.width + board.height) / 2 * ISLANDS_MAIN_RADIUS_FACTOR

    carve_circle(board, center_x, center_y, main_radius, rng)
    fill_circle(board, center_x, center_y, main_radius * ISLANDS_LAKE_RADIUS_FACTOR)

    count = ISLANDS_MIN_SMALL_ISLANDS + rng.randrange(ISLANDS_MAX_ADDITIONAL_ISLANDS)
    for i in range(count):
        angle = i / count * math.pi * 2
        distance = main_radius + 2 + rng.random() * 3
        ix = math.floor(center_x + math.cos(angle) * distance)
        iy = math.floor(center_y + math.sin(angle) * distance)
        radius = ISLANDS_SMALL_MIN_RADIUS + rng.random() * ISLANDS_SMALL_MAX_ADDITIONAL_RADIUS
        carve_circle(board, ix, iy, radius, rng)
        create_bridge(board, (center_x, center_y), (ix, iy))


def unvisited_maze_neighbors(board: Board, x: int, y: int, visited: set) -> list:
    """Cells two steps away that stay inside the border and were not carved yet."""
    result = []
    for dx, dy in DIRECTIONS:
        nx, ny = x + dx * 2, y + dy * 2
        if 1 <= nx < board.width - 1 and 1 <= ny < board.height - 1 and (nx, ny) not in visited:
            result.append((nx, ny))
    return result


def generate_maze(board: Board, rng: GameRNG) -> None:
    """Recursive backtracker maze with randomly widened corridors."""
    start = (board.width // 2, board.height // 2)
    visited = {start}
    stack = [start]
    _unblock(board, *start)

    while stack:
        x, y = stack[-1]
        options = unvisited_maze_neighbors(board, x, y, visited)
        if not options:
            stack.pop()
            continue
        nx, ny = rng.choice(options)
        visited.add((nx, ny))
        _unblock(board, nx, ny)
        _unblock(board, (x + nx) // 2, (y + ny) // 2)
        stack.append((nx, ny))

    carved = board.playable_indices()
    for idx in carved:
        if rng.random() < MAZE_WIDEN_CHANCE:
            x, y = board.coords(idx)
            for dx, dy in DIRECTIONS:
                _unblock(board, x + dx, y + dy)


STYLE_GENERATORS = {
    "full": generate_full,
    "continents": generate_continents,
    "caves": generate_caves,
    "islands": generate_islands,
    "maze": generate_maze,
    "tunnels": generate_tunnels,
    "swiss": generate_swiss,
}
