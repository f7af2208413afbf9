"""Guild, voice channel, and member models served to the browser page."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class Member(BaseModel):
    """A person in a voice channel. ``id`` is unique within a snapshot."""

    model_config = ConfigDict(frozen=True)

    id: str
    display_name: str
    username: str = ""
    avatar_url: str | None = None


class GuildInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    icon_url: str | None = None


class VoiceChannel(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    position: int = 0


class RosterSnapshot(BaseModel):
    """The occupants of one voice channel at one moment.

    Immutable once fetched. A roulette run uses exactly one snapshot so the
    wheel that is drawn always matches the pool the winners are drawn from.
    """

    model_config = ConfigDict(frozen=True)

    guild_id: str
    channel_id: str
    members: tuple[Member, ...] = Field(default_factory=tuple)

    def __len__(self) -> int:
        return len(self.members)

    def index_of(self, member_id: str) -> int:
        """Position of a member in snapshot order. Raises ValueError if absent."""
        for idx, member in enumerate(self.members):
            if member.id == member_id:
                return idx
        raise ValueError(f"member {member_id!r} is not in this snapshot")
