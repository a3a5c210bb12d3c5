"""Shared fixtures for Dicy tests."""

import pytest

from dicy.models.board import Board
from dicy.models.tile import Tile


def board_from_rows(rows, max_dice=8):
    """Build a board from rows of space-separated cells.

    ``#`` is blocked terrain; ``<owner>:<dice>`` is a playable tile,
    e.g. ``0:3`` for player 0 with three dice.
    """
    grid = [row.split() for row in rows]
    height, width = len(grid), len(grid[0])
    tiles = []
    for cells in grid:
        for cell in cells:
            if cell == "#":
                tiles.append(Tile())
            else:
                owner, dice = cell.split(":")
                tiles.append(Tile(owner=int(owner), dice=int(dice), blocked=False))
    return Board(width=width, height=height, max_dice=max_dice, tiles=tiles)


@pytest.fixture
def make_board():
    return board_from_rows


class ScriptedSandbox:
    """Stand-in for AgentSandbox that returns canned outcomes without a subprocess.

    ``script`` is either a list of outcomes (consumed in order, the last one
    repeats) or a callable ``(board, player) -> SandboxOutcome``.
    """

    def __init__(self, script=None):
        self.script = script
        self.calls = []
        self.applied = 0

    async def take_turn(self, agent, board, player, *, players, turn, dice_sides):
        from dicy.sandbox.protocol import EndTurnIntent
        from dicy.sandbox.runner import AgentTurnState, SandboxOutcome

        self.calls.append((agent.id, player.id, turn))
        if callable(self.script):
            return self.script(board, player)
        if self.script:
            return self.script.pop(0) if len(self.script) > 1 else self.script[0]
        return SandboxOutcome(status=AgentTurnState.COMPLETED, intents=[EndTurnIntent()])

    def mark_applied(self):
        self.applied += 1


@pytest.fixture
def scripted_sandbox():
    return ScriptedSandbox


def scenario(tiles, players=None, width=3, height=3, dice_sides=6, max_dice=8):
    """Scenario level from ``(x, y, owner, dice)`` tuples. Two humans by default."""
    from dicy.models.level import ScenarioLevel

    players = players or [{"id": 0}, {"id": 1}]
    return ScenarioLevel.model_validate(
        {
            "type": "scenario",
            "width": width,
            "height": height,
            "maxDice": max_dice,
            "diceSides": dice_sides,
            "players": players,
            "tiles": [{"x": x, "y": y, "owner": owner, "dice": dice} for x, y, owner, dice in tiles],
        }
    )


@pytest.fixture
def make_scenario():
    return scenario
