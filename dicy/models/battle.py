"""Battle and reinforcement result records."""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple


@dataclass(frozen=True)
class BattleResult:
    """Record of one resolved attack.

    Attributes:
        attacker_id: Player who attacked
        defender_id: Owner of the defending tile before the battle
        from_pos: (x, y) of the attacking tile
        to_pos: (x, y) of the defending tile
        attacker_rolls: Individual die faces rolled by the attacker
        defender_rolls: Individual die faces rolled by the defender
        won: True if the attacker's sum was strictly greater
    """

    attacker_id: int
    defender_id: Optional[int]
    from_pos: Tuple[int, int]
    to_pos: Tuple[int, int]
    attacker_rolls: Tuple[int, ...]
    defender_rolls: Tuple[int, ...]
    won: bool

    @property
    def attacker_sum(self) -> int:
        return sum(self.attacker_rolls)

    @property
    def defender_sum(self) -> int:
        return sum(self.defender_rolls)

    def to_dict(self) -> dict:
        return {
            "attackerId": self.attacker_id,
            "defenderId": self.defender_id,
            "from": {"x": self.from_pos[0], "y": self.from_pos[1]},
            "to": {"x": self.to_pos[0], "y": self.to_pos[1]},
            "attackerRolls": list(self.attacker_rolls),
            "attackerSum": self.attacker_sum,
            "defenderRolls": list(self.defender_rolls),
            "defenderSum": self.defender_sum,
            "won": self.won,
        }


@dataclass
class ReinforcementResult:
    """Outcome of end-of-turn reinforcement for one player.

    Attributes:
        player_id: Player who was reinforced
        earned: Dice earned from the largest connected territory this turn
        placed: Dice actually placed on tiles
        stored: Dice carried over to the next turn (every tile at cap)
        from_store: Dice that came from the previous turn's overflow
        touched: Position of each die placed, in placement order
    """

    player_id: int
    earned: int
    placed: int
    stored: int
    from_store: int
    touched: List[Tuple[int, int]] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "playerId": self.player_id,
            "earned": self.earned,
            "placed": self.placed,
            "stored": self.stored,
            "fromStore": self.from_store,
            "touched": [{"x": x, "y": y} for x, y in self.touched],
        }
