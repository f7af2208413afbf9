"""Roster provider backed by the bot's gateway cache.

Reads only what discord.py already holds in memory (guilds, channels, and
voice states), so no request here ever calls the Discord REST API.
"""

from __future__ import annotations

import logging

import discord

from voiceroulette.core.errors import NotFound, UpstreamUnavailable
from voiceroulette.models.roster import GuildInfo, Member, RosterSnapshot, VoiceChannel

logger = logging.getLogger(__name__)


def _snowflake(value: str) -> int | None:
    return int(value) if value.isdigit() else None


def member_from_discord(member: discord.Member) -> Member:
    return Member(
        id=str(member.id),
        display_name=member.display_name,
        username=member.name,
        avatar_url=member.display_avatar.url,
    )


class DiscordRosterProvider:
    """RosterProvider over a connected discord.py client."""

    def __init__(self, client: discord.Client) -> None:
        self._client = client

    def _guild(self, guild_id: str) -> discord.Guild:
        if not self._client.is_ready():
            raise UpstreamUnavailable("gateway not ready")
        snowflake = _snowflake(guild_id)
        guild = self._client.get_guild(snowflake) if snowflake is not None else None
        if guild is None:
            logger.info("guild_not_found guild=%s", guild_id)
            raise NotFound("guild", guild_id)
        return guild

    async def get_guild(self, guild_id: str) -> GuildInfo:
        guild = self._guild(guild_id)
        return GuildInfo(
            id=str(guild.id),
            name=guild.name,
            icon_url=guild.icon.url if guild.icon is not None else None,
        )

    async def list_voice_channels(self, guild_id: str) -> list[VoiceChannel]:
        guild = self._guild(guild_id)
        channels = [
            VoiceChannel(id=str(channel.id), name=channel.name, position=channel.position)
            for channel in guild.voice_channels
        ]
        return sorted(channels, key=lambda c: c.position)

    async def list_voice_members(self, guild_id: str, channel_id: str) -> RosterSnapshot:
        guild = self._guild(guild_id)
        snowflake = _snowflake(channel_id)
        channel = guild.get_channel(snowflake) if snowflake is not None else None
        if not isinstance(channel, discord.VoiceChannel):
            logger.info("voice_channel_not_found guild=%s channel=%s", guild_id, channel_id)
            raise NotFound("channel", channel_id)
        return RosterSnapshot(
            guild_id=str(guild.id),
            channel_id=str(channel.id),
            members=tuple(member_from_discord(m) for m in channel.members),
        )
