"""Host side of the agent sandbox.

Each automated turn spawns a fresh worker process, sends it an inert game
snapshot and collects the intents it streams back. The host never waits on
agent code cooperating: a wall-clock timeout kills the process and keeps
whatever intents arrived before it.
"""

import asyncio
import logging
import math
import os
import sys
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence

from ..models.agent import AgentDefinition
from ..models.board import Board
from ..models.player import Player
from ..utils.constants import (
    AGENT_DEFAULT_MAX_MOVES,
    AGENT_DEFAULT_TIMEOUT,
    AGENT_MAX_LOG_LINES,
    AGENT_MEMORY_LIMIT_BYTES,
)
from .protocol import (
    AttackIntent,
    DoneMessage,
    EndTurnIntent,
    ErrorMessage,
    Intent,
    LogMessage,
    TurnRequest,
    decode_message,
)
from .snapshot import serialize_game_state

if TYPE_CHECKING:
    from ..agent.registry import AgentRepository

logger = logging.getLogger(__name__)

WORKER_MODULE = "dicy.sandbox.worker"
# Stream buffer for one protocol line (storage documents can be large)
STREAM_LIMIT = 16 * 1024 * 1024
PACKAGE_ROOT = Path(__file__).resolve().parents[2]


class AgentTurnState(str, Enum):
    """Lifecycle of one automated turn."""

    IDLE = "idle"
    DISPATCHED = "dispatched"
    COMPLETED = "completed"
    TIMED_OUT = "timed_out"
    ERRORED = "errored"
    APPLIED = "applied"


@dataclass
class SandboxOutcome:
    """What came back from one sandboxed turn.

    Attributes:
        status: COMPLETED, TIMED_OUT or ERRORED
        intents: Intents in the order the agent queued them (possibly partial)
        storage: Updated persistent storage (only for completed turns)
        error: Error description for errored or timed-out turns
        logs: Lines the agent logged
        elapsed: Wall-clock seconds spent
    """

    status: AgentTurnState
    intents: List[Intent] = field(default_factory=list)
    storage: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    logs: List[str] = field(default_factory=list)
    elapsed: float = 0.0


def default_timeout() -> float:
    """Per-turn timeout, overridable with DICY_AGENT_TIMEOUT."""
    value = os.environ.get("DICY_AGENT_TIMEOUT")
    if not value:
        return AGENT_DEFAULT_TIMEOUT
    try:
        return float(value)
    except ValueError:
        logger.warning(f"Ignoring invalid DICY_AGENT_TIMEOUT={value!r}")
        return AGENT_DEFAULT_TIMEOUT


class AgentSandbox:
    """Runs agent programs in isolated worker processes, one turn at a time."""

    def __init__(
        self,
        repository: Optional["AgentRepository"] = None,
        timeout: Optional[float] = None,
        max_moves: int = AGENT_DEFAULT_MAX_MOVES,
        memory_limit: Optional[int] = AGENT_MEMORY_LIMIT_BYTES,
        python: str = sys.executable,
    ):
        self.repository = repository
        self.default_timeout = timeout if timeout is not None else default_timeout()
        self.default_max_moves = max_moves
        self.memory_limit = memory_limit
        self.python = python
        self.state = AgentTurnState.IDLE
        self.transitions: List[AgentTurnState] = []

    def _transition(self, state: AgentTurnState) -> None:
        self.state = state
        self.transitions.append(state)

    def mark_applied(self) -> None:
        """Record that the engine replayed the last outcome; back to IDLE."""
        self._transition(AgentTurnState.APPLIED)
        self._transition(AgentTurnState.IDLE)

    def _worker_env(self) -> Dict[str, str]:
        env = dict(os.environ)
        paths = [str(PACKAGE_ROOT)]
        if env.get("PYTHONPATH"):
            paths.append(env["PYTHONPATH"])
        env["PYTHONPATH"] = os.pathsep.join(paths)
        return env

    async def take_turn(
        self,
        agent: AgentDefinition,
        board: Board,
        player: Player,
        *,
        players: Sequence[Player],
        turn: int,
        dice_sides: int,
    ) -> SandboxOutcome:
        """Play one turn for ``player`` with ``agent``'s program.

        Never raises for agent faults: syntax errors, policy violations,
        exceptions, crashes and timeouts all come back as an outcome.

        Args:
            agent: Strategy to run
            board: Authoritative board (only serialized, never shared)
            player: Seat being played
            players: Full roster
            turn: Current turn number
            dice_sides: Faces per die

        Returns:
            SandboxOutcome with the intents to replay

        Raises:
            RuntimeError: If another sandboxed turn is still in flight
        """
        if self.state == AgentTurnState.DISPATCHED:
            raise RuntimeError("A sandboxed turn is already in progress")

        timeout = agent.timeout or self.default_timeout
        max_moves = agent.max_moves if agent.max_moves is not None else self.default_max_moves
        storage = self.repository.load_storage(agent.id) if self.repository else {}

        request = TurnRequest(
            code=agent.code,
            state=serialize_game_state(board, players, player.id, turn, dice_sides),
            storage=storage,
            max_moves=max_moves,
            cpu_seconds=math.ceil(timeout) + 1,
            memory_bytes=self.memory_limit,
        )
        payload = request.model_dump_json(by_alias=True).encode()

        self.transitions = []
        self._transition(AgentTurnState.DISPATCHED)
        logger.info(f"[SANDBOX] Dispatching {agent.id} for player {player.id} (turn {turn}, timeout {timeout}s)")
        started = time.monotonic()

        outcome = SandboxOutcome(status=AgentTurnState.ERRORED)
        final: List[Any] = []
        try:
            proc = await asyncio.create_subprocess_exec(
                self.python,
                "-m",
                WORKER_MODULE,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.DEVNULL,
                env=self._worker_env(),
                limit=STREAM_LIMIT,
            )
        except OSError as e:
            outcome.error = f"Could not start worker: {e}"
            logger.error(f"[SANDBOX] {outcome.error}")
            self._transition(outcome.status)
            return outcome

        try:
            await asyncio.wait_for(self._exchange(proc, payload, outcome, final, max_moves), timeout)
        except asyncio.TimeoutError:
            outcome.status = AgentTurnState.TIMED_OUT
            outcome.error = f"Timed out after {timeout}s"
            logger.warning(
                f"[SANDBOX] Agent {agent.id} timed out after {timeout}s; "
                f"keeping {len(outcome.intents)} queued intents"
            )
        except asyncio.CancelledError:
            self._transition(AgentTurnState.ERRORED)
            raise
        except Exception as e:
            # Oversized lines (ValueError/LimitOverrunError) or a broken pipe
            outcome.status = AgentTurnState.ERRORED
            outcome.error = f"Unreadable worker output: {type(e).__name__}: {e}"
            logger.error(f"[SANDBOX] Agent {agent.id}: {outcome.error}")
        else:
            message = final[0] if final else None
            if isinstance(message, DoneMessage):
                outcome.status = AgentTurnState.COMPLETED
                outcome.storage = message.storage
            elif isinstance(message, ErrorMessage):
                outcome.error = f"{message.kind} error: {message.error}"
                logger.warning(f"[SANDBOX] Agent {agent.id} failed: {outcome.error}")
            else:
                outcome.error = f"Worker exited with code {proc.returncode} before finishing"
                logger.error(f"[SANDBOX] Agent {agent.id}: {outcome.error}")
        finally:
            if proc.returncode is None:
                await self._kill(proc)

        outcome.elapsed = time.monotonic() - started
        self._transition(outcome.status)

        if outcome.status == AgentTurnState.COMPLETED and self.repository is not None:
            self.repository.save_storage(agent.id, outcome.storage or {})

        logger.info(
            f"[SANDBOX] Agent {agent.id} {outcome.status.value}: "
            f"{len(outcome.intents)} intents in {outcome.elapsed:.2f}s"
        )
        return outcome

    async def _exchange(
        self,
        proc: asyncio.subprocess.Process,
        payload: bytes,
        outcome: SandboxOutcome,
        final: List[Any],
        max_moves: int,
    ) -> None:
        """Send the request and collect messages until the worker exits.

        Messages are appended to ``outcome`` as they arrive so a timeout
        cancelling this coroutine leaves the partial queue in place.
        """
        try:
            proc.stdin.write(payload)
            await proc.stdin.drain()
            proc.stdin.close()
        except (BrokenPipeError, ConnectionResetError) as e:
            logger.warning(f"[SANDBOX] Worker closed stdin early: {e}")

        attacks = 0
        async for raw in proc.stdout:
            message = decode_message(raw.decode(errors="replace"))
            if message is None:
                continue
            if isinstance(message, AttackIntent):
                if attacks >= max_moves:
                    logger.warning("[SANDBOX] Dropping attack intent beyond move budget")
                    continue
                attacks += 1
                outcome.intents.append(message)
            elif isinstance(message, EndTurnIntent):
                outcome.intents.append(message)
            elif isinstance(message, LogMessage):
                if len(outcome.logs) < AGENT_MAX_LOG_LINES:
                    outcome.logs.append(message.message)
                logger.debug(f"[AGENT] {message.message}")
            elif isinstance(message, (DoneMessage, ErrorMessage)) and not final:
                final.append(message)

        await proc.wait()

    async def _kill(self, proc: asyncio.subprocess.Process) -> None:
        try:
            proc.kill()
        except ProcessLookupError:
            pass
        await proc.wait()
