"""Grid geometry helpers for the tile board."""

# Order matters for adjacency listings: up, right, down, left
DIRECTIONS = ((0, -1), (1, 0), (0, 1), (-1, 0))


def manhattan_distance(x1: int, y1: int, x2: int, y2: int) -> int:
    """Calculate Manhattan distance between two grid cells.

    Two tiles are adjacent (and may fight) exactly when their Manhattan
    distance is 1. Corridors carved between regions are L-shaped, so this is
    also the length of the shortest corridor between two cells.

    Args:
        x1: X coordinate of first cell
        y1: Y coordinate of first cell
        x2: X coordinate of second cell
        y2: Y coordinate of second cell

    Returns:
        Manhattan distance between the two cells

    Examples:
        >>> manhattan_distance(0, 0, 3, 3)
        6
        >>> manhattan_distance(2, 1, 2, 2)
        1
    """
    return abs(x2 - x1) + abs(y2 - y1)


def is_adjacent(x1: int, y1: int, x2: int, y2: int) -> bool:
    """Return True if two cells share an edge."""
    return manhattan_distance(x1, y1, x2, y2) == 1


def parse_map_size(value: str) -> tuple[int, int]:
    """Parse a "WxH" map size category such as "6x6".

    Raises:
        ValueError: If the string is not two positive integers joined by 'x'
    """
    parts = value.lower().split("x")
    if len(parts) != 2:
        raise ValueError(f"Invalid map size: {value!r} (expected WxH)")
    width, height = (int(p) for p in parts)
    if width <= 0 or height <= 0:
        raise ValueError(f"Invalid map size: {value!r} (dimensions must be > 0)")
    return width, height
