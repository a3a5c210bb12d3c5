"""Pydantic request schemas for API endpoints."""

from pydantic import BaseModel, Field

from ...utils.constants import DEFAULT_DICE_SIDES, DEFAULT_MAX_DICE


class CreateMatchRequest(BaseModel):
    """Request to create a new match, from settings or from a level record."""

    width: int = Field(default=6, ge=1)
    height: int = Field(default=6, ge=1)
    humans: int = Field(default=1, ge=0)
    bots: int = Field(default=1, ge=0)
    maxDice: int = Field(default=DEFAULT_MAX_DICE, ge=1)  # noqa: N815
    diceSides: int = Field(default=DEFAULT_DICE_SIDES, ge=1)  # noqa: N815
    mapStyle: str = Field(default="random")  # noqa: N815
    gameMode: str = Field(default="classic")  # noqa: N815
    botAgent: str = Field(default="easy", description="Agent id for every bot seat")  # noqa: N815
    seed: int | None = Field(default=None, description="Optional RNG seed for determinism")
    level: dict | None = Field(
        default=None, description="Level record (config or scenario); overrides the settings above"
    )


class AttackRequest(BaseModel):
    """Attack from one tile to an adjacent enemy tile."""

    from_pos: tuple[int, int] = Field(alias="from", description="Attacking tile [x, y]")
    to_pos: tuple[int, int] = Field(alias="to", description="Target tile [x, y]")

    class Config:
        populate_by_name = True
