"""Discord embed builders for Voice Roulette."""

from __future__ import annotations

from datetime import datetime, timedelta

import discord

COLOR_ROULETTE = 0x5865F2  # Blurple, roulette links
COLOR_ERROR = 0xE74C3C  # Red, failures

FOOTER = "Voice Roulette"


def roulette_link(frontend_url: str, token: str, backend_url: str) -> str:
    """The page URL a /roulette reply hands out."""
    return f"{frontend_url}?token={token}&api_url={backend_url}"


def _describe_ttl(ttl: timedelta) -> str:
    minutes = int(ttl.total_seconds() // 60)
    if minutes >= 60 and minutes % 60 == 0:
        hours = minutes // 60
        return f"{hours} hour" if hours == 1 else f"{hours} hours"
    return f"{minutes} minute" if minutes == 1 else f"{minutes} minutes"


def build_roulette_link_embed(
    url: str,
    ttl: timedelta,
    expires_at: datetime | None = None,
    guild_name: str | None = None,
) -> discord.Embed:
    """Ephemeral reply to /roulette: the link and how long it stays valid."""
    title = "Voice Roulette"
    if guild_name:
        title = f"Voice Roulette · {guild_name}"
    embed = discord.Embed(
        title=title,
        url=url,
        description=(
            "Open the link to pick people from a voice channel.\n\n"
            f"{url}"
        ),
        color=COLOR_ROULETTE,
    )
    embed.add_field(name="Valid for", value=_describe_ttl(ttl), inline=True)
    if expires_at is not None:
        embed.add_field(
            name="Expires",
            value=discord.utils.format_dt(expires_at, style="R"),
            inline=True,
        )
    embed.set_footer(text=f"{FOOTER} · Only you can see this link")
    return embed


def build_error_embed(message: str) -> discord.Embed:
    embed = discord.Embed(title="Something went wrong", description=message, color=COLOR_ERROR)
    embed.set_footer(text=FOOTER)
    return embed
