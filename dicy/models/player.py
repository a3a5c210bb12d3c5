"""Player data model."""

from dataclasses import dataclass
from typing import Optional


@dataclass
class Player:
    """A seat in the match.

    Players are never removed from the roster: elimination flips ``alive``.
    ``stored_dice`` holds reinforcements that could not be placed because every
    owned tile was at the dice cap; they are carried into the next turn.
    """

    id: int  # 0-indexed, stable for the match
    is_bot: bool = False
    color: int = 0
    alive: bool = True
    stored_dice: int = 0  # Reinforcement overflow carried between turns
    name: Optional[str] = None
    agent_id: Optional[str] = None  # Strategy driving a bot seat

    def __post_init__(self):
        """Validate player data after initialization."""
        if self.id < 0:
            raise ValueError(f"Invalid player id: {self.id} (must be >= 0)")
        if self.stored_dice < 0:
            raise ValueError(f"Invalid stored_dice: {self.stored_dice} (must be >= 0)")
        if self.name is None:
            self.name = f"Bot {self.id}" if self.is_bot else f"Human {self.id + 1}"
