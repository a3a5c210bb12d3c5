"""Game engine components."""

from .combat import AttackRejection, CombatResolver, InvalidAttackError
from .events import EventBus
from .map_generator import generate_board
from .match import BotTurnReport, GameOverError, MatchEngine, MatchSettings

__all__ = [
    "AttackRejection",
    "BotTurnReport",
    "CombatResolver",
    "EventBus",
    "GameOverError",
    "InvalidAttackError",
    "MatchEngine",
    "MatchSettings",
    "generate_board",
]
