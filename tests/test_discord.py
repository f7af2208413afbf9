"""Tests for the Discord bot integration.

All Discord objects are mocked — no real Discord connection required.
"""

from __future__ import annotations

import asyncio
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock, patch

import discord
import pytest
from discord import app_commands
from fakes import FakeClock

from voiceroulette.config import Settings
from voiceroulette.core.errors import NotFound, UpstreamUnavailable
from voiceroulette.core.tokens import TokenStore
from voiceroulette.discord.bot import RouletteBot, is_discord_enabled, start_discord_bot
from voiceroulette.discord.embeds import (
    build_error_embed,
    build_roulette_link_embed,
    roulette_link,
)
from voiceroulette.discord.roster import DiscordRosterProvider


def make_interaction(**overrides) -> AsyncMock:
    """Build a fully-configured Discord interaction mock."""
    interaction = AsyncMock(spec=discord.Interaction)
    interaction.response = AsyncMock()
    interaction.followup = AsyncMock()
    interaction.user = MagicMock(spec=discord.Member)
    interaction.user.id = overrides.get("user_id", 12345)
    interaction.user.display_name = overrides.get("display_name", "TestUser")
    interaction.guild_id = overrides.get("guild_id", 987654321)
    interaction.guild = MagicMock(spec=discord.Guild)
    interaction.guild.name = overrides.get("guild_name", "Test Server")
    return interaction


def sent_embed(interaction: AsyncMock) -> discord.Embed:
    call = interaction.response.send_message.call_args
    return call.kwargs["embed"]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def settings_discord_enabled() -> Settings:
    """Settings with Discord enabled."""
    return Settings(
        roulette_env="development",
        discord_bot_token="test-token-not-real",
        discord_guild_id="987654321",
        discord_enabled=True,
        frontend_url="https://roulette.example",
        backend_url="https://api.roulette.example",
    )


@pytest.fixture
def bot(settings_discord_enabled: Settings, token_store: TokenStore) -> RouletteBot:
    return RouletteBot(settings=settings_discord_enabled, token_store=token_store)


# ---------------------------------------------------------------------------
# is_discord_enabled
# ---------------------------------------------------------------------------


class TestIsDiscordEnabled:
    def test_enabled_with_token(self, settings_discord_enabled: Settings) -> None:
        assert is_discord_enabled(settings_discord_enabled) is True

    def test_disabled_when_flag_false(self) -> None:
        settings = Settings(discord_bot_token="some-token", discord_enabled=False)
        assert is_discord_enabled(settings) is False

    def test_disabled_when_token_empty(self) -> None:
        settings = Settings(roulette_env="development", discord_bot_token="", discord_enabled=True)
        assert is_discord_enabled(settings) is False


# ---------------------------------------------------------------------------
# RouletteBot
# ---------------------------------------------------------------------------


class TestRouletteBot:
    def test_bot_creation(
        self, bot: RouletteBot, settings_discord_enabled: Settings, token_store: TokenStore
    ) -> None:
        assert bot.settings is settings_discord_enabled
        assert bot.token_store is token_store
        assert bot.intents.members
        assert bot.intents.voice_states

    def test_bot_has_roulette_command(self, bot: RouletteBot) -> None:
        command_names = [cmd.name for cmd in bot.tree.get_commands()]
        assert command_names == ["roulette"]

    def test_roulette_command_is_guild_only(self, bot: RouletteBot) -> None:
        command = bot.tree.get_command("roulette")
        assert command is not None
        assert command.guild_only

    async def test_setup_hook_syncs_to_guild(self, bot: RouletteBot) -> None:
        with (
            patch.object(app_commands.CommandTree, "copy_global_to") as copy_global,
            patch.object(app_commands.CommandTree, "sync", new_callable=AsyncMock) as sync,
        ):
            await bot.setup_hook()
        copy_global.assert_called_once()
        assert sync.call_args.kwargs["guild"].id == 987654321

    async def test_setup_hook_syncs_globally(self, token_store: TokenStore) -> None:
        settings = Settings(discord_bot_token="tok", discord_enabled=True, discord_guild_id="")
        bot = RouletteBot(settings=settings, token_store=token_store)
        with patch.object(app_commands.CommandTree, "sync", new_callable=AsyncMock) as sync:
            await bot.setup_hook()
        sync.assert_called_once_with()


class TestRouletteCommand:
    async def test_issues_token_and_replies_ephemerally(
        self, bot: RouletteBot, token_store: TokenStore
    ) -> None:
        interaction = make_interaction(guild_id=555, user_id=42)
        await bot._handle_roulette(interaction)

        interaction.response.send_message.assert_called_once()
        assert interaction.response.send_message.call_args.kwargs["ephemeral"] is True
        assert len(token_store) == 1

        embed = sent_embed(interaction)
        assert isinstance(embed, discord.Embed)
        assert embed.url.startswith("https://roulette.example?token=")
        assert embed.url.endswith("&api_url=https://api.roulette.example")
        assert embed.title == "Voice Roulette · Test Server"

        token_value = embed.url.split("token=")[1].split("&")[0]
        scope = token_store.validate(token_value)
        assert scope.guild_id == "555"
        assert scope.issuing_user_id == "42"

    async def test_embed_shows_ttl(self, bot: RouletteBot) -> None:
        interaction = make_interaction()
        await bot._handle_roulette(interaction)
        fields = {f.name: f.value for f in sent_embed(interaction).fields}
        assert fields["Valid for"] == "1 hour"

    async def test_outside_a_server(self, bot: RouletteBot, token_store: TokenStore) -> None:
        interaction = make_interaction(guild_id=None)
        await bot._handle_roulette(interaction)

        call = interaction.response.send_message.call_args
        assert "server" in call.args[0]
        assert call.kwargs["ephemeral"] is True
        assert len(token_store) == 0

    async def test_issue_failure_gets_friendly_reply(self, bot: RouletteBot) -> None:
        interaction = make_interaction()
        with patch.object(bot.token_store, "issue", side_effect=RuntimeError("boom")):
            await bot._handle_roulette(interaction)

        call = interaction.response.send_message.call_args
        assert call.kwargs["ephemeral"] is True
        assert call.kwargs["embed"].title == "Something went wrong"

    async def test_reply_failure_is_logged_not_raised(self, bot: RouletteBot) -> None:
        interaction = make_interaction()
        interaction.response.send_message.side_effect = discord.HTTPException(
            MagicMock(status=500), "server error"
        )
        await bot._handle_roulette(interaction)


class TestStartDiscordBot:
    async def test_start_creates_task(
        self, settings_discord_enabled: Settings, token_store: TokenStore
    ) -> None:
        with patch.object(RouletteBot, "start", new_callable=AsyncMock) as mock_start:
            bot = await start_discord_bot(settings_discord_enabled, token_store)
            assert isinstance(bot, RouletteBot)
            assert bot.token_store is token_store
            # Give the task a moment to start
            await asyncio.sleep(0.05)
            mock_start.assert_called_once_with("test-token-not-real")
            await bot.close()


# ---------------------------------------------------------------------------
# Embeds
# ---------------------------------------------------------------------------


class TestEmbeds:
    def test_roulette_link(self) -> None:
        assert (
            roulette_link("http://127.0.0.1:5500", "abc", "http://localhost:8000")
            == "http://127.0.0.1:5500?token=abc&api_url=http://localhost:8000"
        )

    def test_link_embed(self) -> None:
        clock = FakeClock()
        embed = build_roulette_link_embed(
            "http://x?token=t&api_url=y",
            timedelta(minutes=30),
            expires_at=clock.now,
        )
        assert embed.url == "http://x?token=t&api_url=y"
        assert "http://x?token=t&api_url=y" in embed.description
        fields = {f.name: f.value for f in embed.fields}
        assert fields["Valid for"] == "30 minutes"
        assert fields["Expires"].startswith("<t:")
        assert embed.footer.text.startswith("Voice Roulette")

    def test_error_embed(self) -> None:
        embed = build_error_embed("nope")
        assert embed.description == "nope"


# ---------------------------------------------------------------------------
# DiscordRosterProvider
# ---------------------------------------------------------------------------


def make_member(member_id: int, display_name: str) -> MagicMock:
    member = MagicMock(spec=discord.Member)
    member.id = member_id
    member.display_name = display_name
    member.name = display_name.lower()
    member.display_avatar = MagicMock()
    member.display_avatar.url = f"https://cdn.example/{member_id}.png"
    return member


def make_voice_channel(channel_id: int, name: str, position: int, members: list) -> MagicMock:
    channel = MagicMock(spec=discord.VoiceChannel)
    channel.id = channel_id
    channel.name = name
    channel.position = position
    channel.members = members
    return channel


@pytest.fixture
def discord_guild() -> MagicMock:
    lounge = make_voice_channel(10, "Lounge", 1, [make_member(1, "Alice"), make_member(2, "Bob")])
    stage = make_voice_channel(11, "Stage", 0, [])
    text = MagicMock(spec=discord.TextChannel)
    text.id = 12
    channels = {10: lounge, 11: stage, 12: text}

    guild = MagicMock(spec=discord.Guild)
    guild.id = 555
    guild.name = "Test Server"
    guild.icon = None
    guild.voice_channels = [lounge, stage]
    guild.get_channel.side_effect = channels.get
    return guild


@pytest.fixture
def discord_client(discord_guild: MagicMock) -> MagicMock:
    client = MagicMock(spec=discord.Client)
    client.is_ready.return_value = True
    client.get_guild.side_effect = lambda gid: discord_guild if gid == 555 else None
    return client


class TestDiscordRosterProvider:
    async def test_guild_info(self, discord_client: MagicMock) -> None:
        provider = DiscordRosterProvider(discord_client)
        info = await provider.get_guild("555")
        assert info.name == "Test Server"
        assert info.icon_url is None

    async def test_voice_channels_sorted(self, discord_client: MagicMock) -> None:
        provider = DiscordRosterProvider(discord_client)
        channels = await provider.list_voice_channels("555")
        assert [c.name for c in channels] == ["Stage", "Lounge"]

    async def test_voice_members(self, discord_client: MagicMock) -> None:
        provider = DiscordRosterProvider(discord_client)
        snapshot = await provider.list_voice_members("555", "10")
        assert snapshot.guild_id == "555"
        assert snapshot.channel_id == "10"
        assert [m.display_name for m in snapshot.members] == ["Alice", "Bob"]
        assert snapshot.members[0].username == "alice"
        assert snapshot.members[0].avatar_url == "https://cdn.example/1.png"

    @pytest.mark.parametrize("channel_id", ["12", "99", "not-a-snowflake"])
    async def test_missing_or_text_channel(
        self, discord_client: MagicMock, channel_id: str
    ) -> None:
        provider = DiscordRosterProvider(discord_client)
        with pytest.raises(NotFound):
            await provider.list_voice_members("555", channel_id)

    async def test_unknown_guild(self, discord_client: MagicMock) -> None:
        provider = DiscordRosterProvider(discord_client)
        with pytest.raises(NotFound):
            await provider.get_guild("777")

    async def test_not_ready(self, discord_client: MagicMock) -> None:
        discord_client.is_ready.return_value = False
        provider = DiscordRosterProvider(discord_client)
        with pytest.raises(UpstreamUnavailable):
            await provider.list_voice_channels("555")
