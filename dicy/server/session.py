"""Match session management for the HTTP/WebSocket service."""

import asyncio
import logging
import uuid
from dataclasses import dataclass, field

from fastapi import WebSocket

from ..agent.registry import AgentRepository
from ..engine.levels import start_level
from ..engine.match import BotTurnReport, MatchEngine, MatchSettings
from ..models.level import parse_level
from ..sandbox.runner import AgentSandbox
from ..utils.rng import GameRNG

logger = logging.getLogger(__name__)


def report_to_dict(report: BotTurnReport) -> dict:
    return {
        "playerId": report.player_id,
        "agentId": report.agent_id,
        "status": report.status,
        "applied": report.applied,
        "skipped": report.skipped,
        "battles": [b.to_dict() for b in report.battles],
        "reinforcement": report.reinforcement.to_dict() if report.reinforcement else None,
        "error": report.error,
        "logs": report.logs,
    }


@dataclass
class MatchSession:
    """One match plus the WebSocket clients watching it.

    Domain events published by the engine are queued and pushed to every
    connected client after each request.
    """

    id: str
    engine: MatchEngine
    seed: int
    connections: list[WebSocket] = field(default_factory=list)
    pending: list[dict] = field(default_factory=list)
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)  # One sandboxed turn at a time

    def __post_init__(self):
        self.engine.events.subscribe_all(self._queue_event)

    def _queue_event(self, event) -> None:
        self.pending.append(event.to_dict())

    def get_state(self) -> dict:
        return self.engine.snapshot()

    async def play_bots(self, until_human: bool = False) -> list[BotTurnReport]:
        """Play the current bot turn, or every bot turn until a human must move."""
        reports = []
        async with self.lock:
            while not self.engine.game_over and self.engine.current_player.is_bot:
                reports.append(await self.engine.play_bot_turn())
                if not until_human:
                    break
        return reports

    async def flush(self) -> None:
        """Broadcast queued events to all clients."""
        events, self.pending = self.pending, []
        for event in events:
            await self.broadcast(event)

    async def broadcast(self, message: dict):
        """Send message to all connected WebSocket clients.

        Args:
            message: Dictionary to send as JSON
        """
        disconnected = []
        for ws in self.connections:
            try:
                await ws.send_json(message)
            except Exception as e:
                logger.warning(f"Failed to send to WebSocket: {e}")
                disconnected.append(ws)

        for ws in disconnected:
            self.connections.remove(ws)

    def add_connection(self, websocket: WebSocket):
        self.connections.append(websocket)
        logger.info(f"WebSocket connected to match {self.id}, total: {len(self.connections)}")

    def remove_connection(self, websocket: WebSocket):
        if websocket in self.connections:
            self.connections.remove(websocket)
            logger.info(f"WebSocket disconnected from match {self.id}, remaining: {len(self.connections)}")


class MatchSessionManager:
    """Manages all active match sessions (in memory)."""

    def __init__(self, repository: AgentRepository | None = None, timeout: float | None = None):
        self.repository = repository or AgentRepository()
        self.sandbox_timeout = timeout
        self.sessions: dict[str, MatchSession] = {}

    def create_session(
        self, settings: MatchSettings | None = None, level: dict | None = None, seed: int | None = None
    ) -> MatchSession:
        """Create and start a new match.

        Args:
            settings: Procedural match settings (ignored when ``level`` is given)
            level: Level record, validated with ``parse_level``
            seed: Optional RNG seed for determinism

        Returns:
            Newly created MatchSession

        Raises:
            pydantic.ValidationError: If the level record is invalid
            ValueError: If neither settings nor level is given
        """
        if settings is None and level is None:
            raise ValueError("A match needs settings or a level")

        match_id = f"match-{uuid.uuid4().hex[:8]}"
        if seed is None:
            seed = uuid.uuid4().int % (2**32)

        # Each match gets its own sandbox so turns in one match never wait on another
        sandbox = AgentSandbox(self.repository, timeout=self.sandbox_timeout)
        engine = MatchEngine(rng=GameRNG(seed), sandbox=sandbox, repository=self.repository)
        session = MatchSession(id=match_id, engine=engine, seed=seed)

        if level is not None:
            start_level(engine, parse_level(level))
        else:
            engine.start(settings)

        self.sessions[match_id] = session
        logger.info(f"Created match {match_id}: seed={seed}, players={len(engine.players)}")
        return session

    def get(self, match_id: str) -> MatchSession | None:
        return self.sessions.get(match_id)

    def delete(self, match_id: str) -> bool:
        """Delete a match session. Returns False if not found."""
        if match_id in self.sessions:
            del self.sessions[match_id]
            logger.info(f"Deleted match {match_id}")
            return True
        return False

    async def cleanup_all(self):
        """Close client connections and drop every session (called on shutdown)."""
        for session in self.sessions.values():
            for ws in list(session.connections):
                try:
                    await ws.close()
                except Exception as e:
                    logger.debug(f"Error closing WebSocket: {e}")
        self.sessions.clear()
