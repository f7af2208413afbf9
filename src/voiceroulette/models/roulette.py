"""Roulette run models: requests, results, and history records."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from voiceroulette.models.roster import Member


class RouletteRequest(BaseModel):
    """Body of a roulette request. Range checks happen in the selection engine."""

    # Booleans and floats pass through untouched; select_members rejects them.
    count: Any


class SelectionResult(BaseModel):
    """Winners in draw order. The first winner is the first one the wheel lands on."""

    model_config = ConfigDict(frozen=True)

    winners: tuple[Member, ...]

    @property
    def count(self) -> int:
        return len(self.winners)


class RouletteStarted(BaseModel):
    """Response to a roulette request.

    ``sectors`` is the wheel layout (member ids in snapshot order);
    ``winner_sectors[i]`` is the sector the wheel lands on for ``winners[i]``.
    When a run is already spinning on the channel the request is ignored and
    ``started`` is False.
    """

    started: bool
    run_id: str = ""
    guild_id: str = ""
    channel_id: str = ""
    total_members: int = 0
    selected_count: int = 0
    winners: list[Member] = Field(default_factory=list)
    sectors: list[str] = Field(default_factory=list)
    winner_sectors: list[int] = Field(default_factory=list)
    spin_duration_seconds: float = 0.0


class RouletteRecord(BaseModel):
    """A finished run, as handed to the history sink."""

    model_config = ConfigDict(frozen=True)

    run_id: str
    guild_id: str
    channel_id: str
    total_members: int
    selected_count: int
    winners: tuple[Member, ...]
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
