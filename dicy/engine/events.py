"""Typed domain events and the bus that carries them.

The engine publishes these events; renderers, the match server and tests
subscribe. Nothing here knows about presentation.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, ClassVar, Dict, List, Optional

from blinker import Signal

from ..models.battle import BattleResult, ReinforcementResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GameStarted:
    name: ClassVar[str] = "game_started"

    player_ids: List[int]  # Seat order
    width: int
    height: int
    game_mode: str
    map_style: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.name,
            "playerIds": list(self.player_ids),
            "width": self.width,
            "height": self.height,
            "gameMode": self.game_mode,
            "mapStyle": self.map_style,
        }


@dataclass(frozen=True)
class TurnStarted:
    name: ClassVar[str] = "turn_started"

    turn: int
    player_id: int
    is_bot: bool

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.name, "turn": self.turn, "playerId": self.player_id, "isBot": self.is_bot}


@dataclass(frozen=True)
class AttackResolved:
    name: ClassVar[str] = "attack_resolved"

    turn: int
    result: BattleResult

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.name, "turn": self.turn, **self.result.to_dict()}


@dataclass(frozen=True)
class PlayerEliminated:
    name: ClassVar[str] = "player_eliminated"

    turn: int
    player_id: int

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.name, "turn": self.turn, "playerId": self.player_id}


@dataclass(frozen=True)
class ReinforcementsApplied:
    name: ClassVar[str] = "reinforcements_applied"

    turn: int
    result: ReinforcementResult

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.name, "turn": self.turn, **self.result.to_dict()}


@dataclass(frozen=True)
class GameOver:
    name: ClassVar[str] = "game_over"

    turn: int
    winner_id: Optional[int]  # None when the turn limit ended the match
    reason: str = "conquest"

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.name, "turn": self.turn, "winnerId": self.winner_id, "reason": self.reason}


@dataclass(frozen=True)
class AgentTurnFinished:
    name: ClassVar[str] = "agent_turn_finished"

    turn: int
    player_id: int
    agent_id: str
    status: str  # completed, timed_out or errored
    applied: int
    skipped: int
    error: Optional[str] = None
    logs: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.name,
            "turn": self.turn,
            "playerId": self.player_id,
            "agentId": self.agent_id,
            "status": self.status,
            "applied": self.applied,
            "skipped": self.skipped,
            "error": self.error,
            "logs": list(self.logs),
        }


EVENT_TYPES = (
    GameStarted,
    TurnStarted,
    AttackResolved,
    PlayerEliminated,
    ReinforcementsApplied,
    GameOver,
    AgentTurnFinished,
)


class EventBus:
    """Event bus with one blinker Signal per event class.

    Subscribers receive the event instance as their only argument.
    """

    def __init__(self):
        self._signals: Dict[type, Signal] = {}
        self._all = Signal("all")

    def subscribe(self, event_type: type, fn: Callable[[Any], None]) -> None:
        sig = self._signals.setdefault(event_type, Signal(event_type.name))
        # Strong reference so lambdas and bound methods stay connected
        sig.connect(fn, weak=False)

    def subscribe_all(self, fn: Callable[[Any], None]) -> None:
        self._all.connect(fn, weak=False)

    def unsubscribe(self, event_type: type, fn: Callable[[Any], None]) -> None:
        sig = self._signals.get(event_type)
        if sig:
            sig.disconnect(fn)

    def unsubscribe_all(self, fn: Callable[[Any], None]) -> None:
        self._all.disconnect(fn)

    def publish(self, event) -> None:
        sig = self._signals.get(type(event))
        if sig:
            sig.send(event)
        self._all.send(event)
        logger.debug(f"[EVENT] {event.name}")


class EventRecorder:
    """Collects every published event, in order."""

    def __init__(self, bus: EventBus):
        self.events: List[Any] = []
        bus.subscribe_all(self.events.append)

    def of_type(self, event_type: type) -> List[Any]:
        return [e for e in self.events if isinstance(e, event_type)]
