"""Agent strategies and the repository that stores them."""

from .builtin import BUILTIN_AGENTS
from .registry import AgentExport, AgentRepository

__all__ = ["AgentExport", "AgentRepository", "BUILTIN_AGENTS"]
