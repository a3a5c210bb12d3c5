"""Tests for territory analysis."""

import pytest

from dicy.engine.territory import connected_regions, largest_connected_region, owned_tile_count


@pytest.fixture
def board(make_board):
    return make_board(
        [
            "0:1 0:1 1:1",
            "1:1 # 0:1",
        ]
    )


def test_regions_split_by_enemy_and_terrain(board):
    regions = connected_regions(board, 0)
    assert sorted(len(r) for r in regions) == [1, 2]
    assert largest_connected_region(board, 0) == 2
    assert owned_tile_count(board, 0) == 3


def test_two_disjoint_clusters(make_board):
    board = make_board(
        [
            "0:1 0:1 1:1 1:1",
            "1:1 1:1 0:1 0:1",
        ]
    )
    assert owned_tile_count(board, 0) == 4
    assert largest_connected_region(board, 0) == 2


def test_diagonals_do_not_connect(make_board):
    board = make_board(["0:1 1:1", "1:1 0:1"])
    assert largest_connected_region(board, 0) == 1
    assert len(connected_regions(board, 0)) == 2


def test_independent_of_traversal_order(make_board):
    rows = ["0:1 0:1 # 0:1", "1:1 0:1 0:1 0:1", "0:1 # 1:1 1:1"]
    mirrored = [" ".join(reversed(row.split())) for row in reversed(rows)]

    assert largest_connected_region(make_board(rows), 0) == 6
    assert largest_connected_region(make_board(mirrored), 0) == 6


def test_absent_player(board):
    assert largest_connected_region(board, 7) == 0
    assert connected_regions(board, 7) == []
