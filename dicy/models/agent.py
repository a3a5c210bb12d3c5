"""Agent definition data model."""

from dataclasses import dataclass
from typing import Optional


@dataclass
class AgentDefinition:
    """A programmable strategy that plays bot turns inside the sandbox.

    ``code`` is Python source run against the agent API. ``timeout`` (seconds)
    and ``max_moves`` override the sandbox defaults when set. Persistent
    key-value storage is kept by the agent repository under ``id``.
    """

    id: str
    name: str
    code: str
    description: str = ""
    timeout: Optional[float] = None
    max_moves: Optional[int] = None
    builtin: bool = False

    def __post_init__(self):
        """Validate agent data after initialization."""
        if not self.id:
            raise ValueError("Agent id cannot be empty")
        if not self.code or not self.code.strip():
            raise ValueError(f"Agent {self.id} has no code")
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError(f"Invalid timeout: {self.timeout} (must be > 0)")
        if self.max_moves is not None and self.max_moves < 0:
            raise ValueError(f"Invalid max_moves: {self.max_moves} (must be >= 0)")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "code": self.code,
            "timeout": self.timeout,
            "maxMoves": self.max_moves,
            "builtin": self.builtin,
        }
