"""Discord bot for Voice Roulette.

Runs alongside FastAPI using the same event loop. Its one slash command,
/roulette, issues a session token bound to the guild and the invoking user
and replies (ephemerally) with the link to the roulette page. Its gateway
cache is what the HTTP API reads guilds, voice channels, and members from.

The bot is optional: if DISCORD_BOT_TOKEN is not set, nothing starts.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

import discord
from discord import Intents, app_commands
from discord.ext import commands

from voiceroulette.discord.embeds import (
    build_error_embed,
    build_roulette_link_embed,
    roulette_link,
)
from voiceroulette.models.session import TokenScope

if TYPE_CHECKING:
    from voiceroulette.config import Settings
    from voiceroulette.core.tokens import TokenStore

logger = logging.getLogger(__name__)


class RouletteBot(commands.Bot):
    """The Voice Roulette Discord bot.

    Runs in-process with FastAPI and shares its TokenStore, so a token issued
    here is immediately valid for the HTTP API.
    """

    def __init__(self, settings: Settings, token_store: TokenStore) -> None:
        intents = Intents.default()
        intents.members = True  # display names of voice channel members
        intents.voice_states = True

        super().__init__(
            command_prefix="!",
            intents=intents,
            description="Voice Roulette -- pick people from a voice channel at random.",
        )
        self.settings = settings
        self.token_store = token_store
        self._setup_commands()

    def _setup_commands(self) -> None:
        """Register slash commands on the bot's command tree."""

        @self.tree.command(name="roulette", description="Get a link to the voice roulette")
        @app_commands.guild_only()
        async def roulette_command(interaction: discord.Interaction) -> None:
            await self._handle_roulette(interaction)

    async def setup_hook(self) -> None:
        """Called when the bot is ready to start. Syncs slash commands."""
        if self.settings.discord_guild_id:
            guild = discord.Object(id=int(self.settings.discord_guild_id))
            self.tree.copy_global_to(guild=guild)
            await self.tree.sync(guild=guild)
            logger.info("discord_commands_synced guild_id=%s", self.settings.discord_guild_id)
        else:
            await self.tree.sync()
            logger.info("discord_commands_synced globally")

    async def on_ready(self) -> None:
        """Called when the bot has connected to Discord (and on every reconnect)."""
        user = self.user
        name = user.name if user else "unknown"
        logger.info("discord_bot_ready user=%s guilds=%d", name, len(self.guilds))

    async def _handle_roulette(self, interaction: discord.Interaction) -> None:
        """Handle the /roulette slash command: issue a token and send the link."""
        if interaction.guild_id is None:
            await interaction.response.send_message(
                "This command can only be used in a server.",
                ephemeral=True,
            )
            return

        try:
            token = self.token_store.issue(
                TokenScope(
                    guild_id=str(interaction.guild_id),
                    issuing_user_id=str(interaction.user.id),
                )
            )
            url = roulette_link(self.settings.frontend_url, token.value, self.settings.backend_url)
            guild_name = interaction.guild.name if interaction.guild is not None else None
            embed = build_roulette_link_embed(
                url,
                self.token_store.ttl,
                expires_at=token.expires_at,
                guild_name=guild_name,
            )
        except Exception:  # Last-resort handler; the user still gets a reply
            logger.exception(
                "roulette_command_failed guild=%s user=%s",
                interaction.guild_id,
                interaction.user.id,
            )
            await interaction.response.send_message(
                embed=build_error_embed("Could not create a roulette link. Please try again."),
                ephemeral=True,
            )
            return

        try:
            await interaction.response.send_message(embed=embed, ephemeral=True)
        except discord.HTTPException:
            logger.exception("roulette_reply_failed guild=%s", interaction.guild_id)
            return
        logger.info(
            "roulette_link_sent guild=%s user=%s token=%s",
            interaction.guild_id,
            interaction.user.id,
            token.preview,
        )


def is_discord_enabled(settings: Settings) -> bool:
    """Check whether Discord integration should be started.

    True only when discord_enabled is set and a bot token is configured.
    """
    return bool(settings.discord_enabled and settings.discord_bot_token)


async def start_discord_bot(settings: Settings, token_store: TokenStore) -> RouletteBot:
    """Create and start the Discord bot in the current event loop.

    Returns the bot instance so the caller can stop it during shutdown.
    The bot runs as a background task; this function returns immediately
    after starting it.
    """
    bot = RouletteBot(settings=settings, token_store=token_store)

    async def _run_bot() -> None:
        try:
            await bot.start(settings.discord_bot_token)
        except asyncio.CancelledError:
            logger.info("discord_bot_cancelled")
        except Exception:  # bot.start raises connection and auth errors
            logger.exception("discord_bot_error")
        finally:
            if not bot.is_closed():
                await bot.close()

    asyncio.create_task(_run_bot(), name="discord-bot")
    logger.info("discord_bot_started")
    return bot
