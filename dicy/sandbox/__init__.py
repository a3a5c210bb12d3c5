"""Sandboxed execution of user-authored agent programs."""

from .protocol import API_VERSION, AttackIntent, EndTurnIntent
from .runner import AgentSandbox, AgentTurnState, SandboxOutcome
from .snapshot import serialize_game_state

__all__ = [
    "API_VERSION",
    "AgentSandbox",
    "AgentTurnState",
    "AttackIntent",
    "EndTurnIntent",
    "SandboxOutcome",
    "serialize_game_state",
]
