"""Agent repository: built-in and custom strategies plus their storage.

The repository is an explicit object handed to whatever needs agents (the
sandbox, the match engine, the server). It can be backed by a JSON file or
kept in memory for tests and one-off matches.
"""

import copy
import json
import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from ..models.agent import AgentDefinition
from .builtin import BUILTIN_AGENTS

logger = logging.getLogger(__name__)


class AgentExport(BaseModel):
    """Shareable agent document produced by ``export_agent``."""

    name: str = Field(min_length=1)
    code: str = Field(min_length=1)
    description: str = ""
    timeout: Optional[float] = Field(default=None, gt=0)
    max_moves: Optional[int] = Field(default=None, ge=0, alias="maxMoves")
    exported_at: Optional[str] = Field(default=None, alias="exportedAt")

    class Config:
        populate_by_name = True


class AgentRepository:
    """Stores custom agents and per-agent persistent storage."""

    def __init__(self, path: Optional[Path] = None):
        """Create a repository.

        Args:
            path: JSON file to load from and save to, or None for in-memory
        """
        self.path = Path(path) if path else None
        self.custom: Dict[str, AgentDefinition] = {}
        self.storage: Dict[str, Dict[str, Any]] = {}
        if self.path and self.path.exists():
            self._load()

    # Lookup

    def get(self, agent_id: str) -> Optional[AgentDefinition]:
        return BUILTIN_AGENTS.get(agent_id) or self.custom.get(agent_id)

    def require(self, agent_id: str) -> AgentDefinition:
        """Get an agent or raise KeyError."""
        agent = self.get(agent_id)
        if agent is None:
            raise KeyError(f"Unknown agent: {agent_id}")
        return agent

    def list_agents(self) -> List[AgentDefinition]:
        """Built-in agents first, then custom ones in registration order."""
        return list(BUILTIN_AGENTS.values()) + list(self.custom.values())

    # Custom agent CRUD

    def register(
        self,
        name: str,
        code: str,
        description: str = "",
        agent_id: Optional[str] = None,
        timeout: Optional[float] = None,
        max_moves: Optional[int] = None,
    ) -> AgentDefinition:
        """Add (or replace) a custom agent.

        Raises:
            ValueError: If the id belongs to a built-in or the definition is invalid
        """
        agent_id = agent_id or self.generate_id()
        if agent_id in BUILTIN_AGENTS:
            raise ValueError(f"Cannot overwrite built-in agent: {agent_id}")

        agent = AgentDefinition(
            id=agent_id,
            name=name,
            code=code,
            description=description,
            timeout=timeout,
            max_moves=max_moves,
        )
        self.custom[agent_id] = agent
        self._save()
        logger.info(f"Registered custom agent {agent_id} ({name})")
        return agent

    def update(self, agent_id: str, **changes) -> AgentDefinition:
        """Change fields of a custom agent.

        Raises:
            KeyError: If no custom agent has this id
            ValueError: If the result is invalid
        """
        if agent_id in BUILTIN_AGENTS:
            raise ValueError(f"Cannot modify built-in agent: {agent_id}")
        if agent_id not in self.custom:
            raise KeyError(f"Unknown custom agent: {agent_id}")

        fields = self.custom[agent_id].to_dict()
        fields["max_moves"] = fields.pop("maxMoves")
        fields.update(changes)
        fields["id"] = agent_id
        fields["builtin"] = False
        agent = AgentDefinition(**fields)
        self.custom[agent_id] = agent
        self._save()
        return agent

    def delete(self, agent_id: str) -> bool:
        """Remove a custom agent and its storage. Returns False if it did not exist."""
        if agent_id not in self.custom:
            return False
        del self.custom[agent_id]
        self.clear_storage(agent_id)
        self._save()
        logger.info(f"Deleted custom agent {agent_id}")
        return True

    def generate_id(self) -> str:
        return f"custom_{uuid.uuid4().hex[:12]}"

    # Sharing

    def export_agent(self, agent_id: str) -> str:
        """Export an agent as a JSON document.

        Raises:
            KeyError: If the agent does not exist
        """
        agent = self.require(agent_id)
        document = AgentExport(
            name=agent.name,
            code=agent.code,
            description=agent.description,
            timeout=agent.timeout,
            max_moves=agent.max_moves,
            exported_at=datetime.now(timezone.utc).isoformat(),
        )
        return document.model_dump_json(by_alias=True, indent=2)

    def import_agent(self, document: str) -> AgentDefinition:
        """Register a custom agent from an exported JSON document.

        Raises:
            pydantic.ValidationError: If the document is not valid JSON or misses fields
        """
        data = AgentExport.model_validate_json(document)
        return self.register(
            name=data.name,
            code=data.code,
            description=data.description,
            timeout=data.timeout,
            max_moves=data.max_moves,
        )

    # Persistent storage

    def load_storage(self, agent_id: str) -> Dict[str, Any]:
        return copy.deepcopy(self.storage.get(agent_id, {}))

    def save_storage(self, agent_id: str, data: Dict[str, Any]) -> None:
        self.storage[agent_id] = copy.deepcopy(data)
        self._save()

    def clear_storage(self, agent_id: str) -> None:
        if self.storage.pop(agent_id, None) is not None:
            self._save()

    # File backing

    def _load(self) -> None:
        try:
            with open(self.path) as f:
                data = json.load(f)
            for agent_data in data.get("agents", []):
                agent = AgentDefinition(
                    id=agent_data["id"],
                    name=agent_data["name"],
                    code=agent_data["code"],
                    description=agent_data.get("description", ""),
                    timeout=agent_data.get("timeout"),
                    max_moves=agent_data.get("maxMoves"),
                )
                self.custom[agent.id] = agent
            self.storage = data.get("storage", {})
        except (OSError, json.JSONDecodeError, KeyError, ValueError) as e:
            logger.warning(f"Failed to load agents from {self.path}: {e}; starting empty")
            self.custom.clear()
            self.storage = {}

    def _save(self) -> None:
        if not self.path:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        data = {
            "agents": [agent.to_dict() for agent in self.custom.values()],
            "storage": self.storage,
        }
        with open(self.path, "w") as f:
            json.dump(data, f, indent=2)
