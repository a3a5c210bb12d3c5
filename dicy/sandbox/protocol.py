"""Wire protocol between the host and the agent worker process.

The host writes one ``TurnRequest`` JSON document to the worker's stdin.
The worker answers with newline-delimited JSON messages: one per queued
intent as soon as it is queued, any number of log lines, then a single
``done`` or ``error`` message.
"""

import logging
from typing import Annotated, Any, Dict, Literal, Optional, Tuple, Union

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

logger = logging.getLogger(__name__)

# Bumped whenever the agent API or message set changes incompatibly
API_VERSION = 1


class TurnRequest(BaseModel):
    """Everything the worker needs for one turn. Inert data only."""

    api_version: int = Field(default=API_VERSION, alias="apiVersion")
    code: str
    state: Dict[str, Any]
    storage: Dict[str, Any] = Field(default_factory=dict)
    max_moves: int = Field(ge=0, alias="maxMoves")
    cpu_seconds: Optional[int] = Field(default=None, ge=1, alias="cpuSeconds")
    memory_bytes: Optional[int] = Field(default=None, ge=1, alias="memoryBytes")

    class Config:
        populate_by_name = True


class AttackIntent(BaseModel):
    type: Literal["attack"] = "attack"
    from_pos: Tuple[int, int] = Field(alias="from")
    to_pos: Tuple[int, int] = Field(alias="to")

    class Config:
        populate_by_name = True


class EndTurnIntent(BaseModel):
    type: Literal["end_turn"] = "end_turn"


class LogMessage(BaseModel):
    type: Literal["log"] = "log"
    message: str


class DoneMessage(BaseModel):
    type: Literal["done"] = "done"
    storage: Dict[str, Any] = Field(default_factory=dict)
    moves: int = 0


class ErrorMessage(BaseModel):
    type: Literal["error"] = "error"
    kind: Literal["syntax", "policy", "runtime", "protocol"]
    error: str


Intent = Union[AttackIntent, EndTurnIntent]

WorkerMessage = Annotated[
    Union[AttackIntent, EndTurnIntent, LogMessage, DoneMessage, ErrorMessage],
    Field(discriminator="type"),
]

_message_adapter = TypeAdapter(WorkerMessage)


def encode_message(message: BaseModel) -> str:
    """Serialize a message as one JSON line (no trailing newline)."""
    return message.model_dump_json(by_alias=True)


def decode_message(line: str) -> Optional[WorkerMessage]:
    """Parse one worker output line.

    Returns:
        The message, or None if the line is blank or malformed. Malformed
        lines are logged and otherwise ignored.
    """
    line = line.strip()
    if not line:
        return None
    try:
        return _message_adapter.validate_json(line)
    except ValidationError as e:
        logger.warning(f"[SANDBOX] Ignoring malformed worker message: {line[:200]!r} ({e.error_count()} errors)")
        return None
