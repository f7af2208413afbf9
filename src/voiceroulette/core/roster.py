"""Voice roster providers — where guild, channel, and member data comes from.

The HTTP layer depends only on the ``RosterProvider`` protocol. The Discord
implementation lives in ``voiceroulette.discord.roster``; ``InMemoryRosterProvider``
backs development mode and tests.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Protocol

from voiceroulette.core.errors import NotFound
from voiceroulette.models.roster import GuildInfo, Member, RosterSnapshot, VoiceChannel

logger = logging.getLogger(__name__)


class RosterProvider(Protocol):
    """Read-only view of guilds, their voice channels, and who is in them.

    Implementations raise ``NotFound`` for an unknown guild or channel (a
    channel that exists but is not a voice channel counts as unknown) and
    ``UpstreamUnavailable`` when the data source is not ready.
    """

    async def get_guild(self, guild_id: str) -> GuildInfo: ...

    async def list_voice_channels(self, guild_id: str) -> list[VoiceChannel]: ...

    async def list_voice_members(self, guild_id: str, channel_id: str) -> RosterSnapshot: ...


class InMemoryRosterProvider:
    """Static rosters registered up front.

    Usage:
        provider = InMemoryRosterProvider()
        provider.add_guild(GuildInfo(id="1", name="Test Server"))
        provider.add_channel("1", VoiceChannel(id="10", name="General"), members)
    """

    def __init__(self) -> None:
        self._guilds: dict[str, GuildInfo] = {}
        self._channels: dict[str, dict[str, VoiceChannel]] = {}
        self._members: dict[tuple[str, str], tuple[Member, ...]] = {}

    def add_guild(self, guild: GuildInfo) -> None:
        self._guilds[guild.id] = guild
        self._channels.setdefault(guild.id, {})

    def add_channel(
        self,
        guild_id: str,
        channel: VoiceChannel,
        members: Iterable[Member] = (),
    ) -> None:
        if guild_id not in self._guilds:
            raise KeyError(f"unknown guild {guild_id!r}; call add_guild first")
        self._channels[guild_id][channel.id] = channel
        self._members[(guild_id, channel.id)] = tuple(members)

    def set_members(self, guild_id: str, channel_id: str, members: Iterable[Member]) -> None:
        """Replace a channel's occupants, as if people joined or left."""
        if (guild_id, channel_id) not in self._members:
            raise KeyError(f"unknown channel {channel_id!r}")
        self._members[(guild_id, channel_id)] = tuple(members)

    async def get_guild(self, guild_id: str) -> GuildInfo:
        guild = self._guilds.get(guild_id)
        if guild is None:
            raise NotFound("guild", guild_id)
        return guild

    async def list_voice_channels(self, guild_id: str) -> list[VoiceChannel]:
        await self.get_guild(guild_id)
        return sorted(self._channels[guild_id].values(), key=lambda c: (c.position, c.id))

    async def list_voice_members(self, guild_id: str, channel_id: str) -> RosterSnapshot:
        await self.get_guild(guild_id)
        members = self._members.get((guild_id, channel_id))
        if members is None:
            raise NotFound("channel", channel_id)
        return RosterSnapshot(guild_id=guild_id, channel_id=channel_id, members=members)


def demo_roster_provider(guild_id: str) -> InMemoryRosterProvider:
    """A small fixed guild for running the page locally without a bot."""
    provider = InMemoryRosterProvider()
    provider.add_guild(GuildInfo(id=guild_id, name="Roulette Demo"))
    provider.add_channel(
        guild_id,
        VoiceChannel(id="1001", name="Lounge", position=0),
        [
            Member(id="1", display_name="Alice", username="alice"),
            Member(id="2", display_name="Bob", username="bob"),
            Member(id="3", display_name="Carol", username="carol"),
            Member(id="4", display_name="Dave", username="dave"),
        ],
    )
    provider.add_channel(guild_id, VoiceChannel(id="1002", name="Quiet Room", position=1))
    logger.info("demo_roster_loaded guild=%s", guild_id)
    return provider
