"""Pydantic response schemas for API endpoints."""

from pydantic import BaseModel, Field


class MatchStateResponse(BaseModel):
    """Response containing current match state."""

    matchId: str  # noqa: N815
    turn: int
    currentPlayerId: int  # noqa: N815
    gameOver: bool  # noqa: N815
    winnerId: int | None  # noqa: N815
    state: dict
    stats: list[dict] = Field(default_factory=list)


class CreateMatchResponse(BaseModel):
    """Response after creating a new match."""

    matchId: str  # noqa: N815
    seed: int
    state: dict


class AttackResponse(BaseModel):
    """Response after a resolved attack."""

    result: dict
    gameOver: bool  # noqa: N815
    winnerId: int | None = None  # noqa: N815


class EndTurnResponse(BaseModel):
    """Response after ending the current player's turn."""

    reinforcement: dict
    turn: int
    currentPlayerId: int  # noqa: N815
    gameOver: bool  # noqa: N815


class BotTurnResponse(BaseModel):
    """Response after one or more automated turns."""

    reports: list[dict]
    turn: int
    currentPlayerId: int  # noqa: N815
    gameOver: bool  # noqa: N815
    winnerId: int | None = None  # noqa: N815


class AgentInfo(BaseModel):
    """Public description of an agent (code omitted)."""

    id: str
    name: str
    description: str = ""
    builtin: bool = False


class AgentListResponse(BaseModel):
    agents: list[AgentInfo]
