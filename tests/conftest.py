"""Shared test fixtures."""

from __future__ import annotations

from datetime import timedelta

import pytest
from fakes import (
    CHANNEL_ID,
    EMPTY_CHANNEL_ID,
    GUILD_ID,
    OTHER_GUILD_ID,
    FakeClock,
    FakeTicker,
    make_members,
)

from voiceroulette.config import Settings
from voiceroulette.core.roster import InMemoryRosterProvider
from voiceroulette.core.tokens import TokenStore
from voiceroulette.models.roster import GuildInfo, Member, VoiceChannel


@pytest.fixture
def settings() -> Settings:
    """Test settings with defaults."""
    return Settings(roulette_env="development", discord_enabled=False, discord_bot_token="")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def token_store(clock: FakeClock) -> TokenStore:
    return TokenStore(ttl=timedelta(hours=1), clock=clock)


@pytest.fixture
def ticker() -> FakeTicker:
    return FakeTicker()


@pytest.fixture
def members() -> list[Member]:
    return make_members("Alice", "Bob", "Carol", "Dave")


@pytest.fixture
def roster(members: list[Member]) -> InMemoryRosterProvider:
    """Two guilds; the first has a populated and an empty voice channel."""
    provider = InMemoryRosterProvider()
    provider.add_guild(GuildInfo(id=GUILD_ID, name="Test Server"))
    provider.add_channel(GUILD_ID, VoiceChannel(id=CHANNEL_ID, name="General", position=0), members)
    provider.add_channel(GUILD_ID, VoiceChannel(id=EMPTY_CHANNEL_ID, name="AFK", position=1))
    provider.add_guild(GuildInfo(id=OTHER_GUILD_ID, name="Other Server"))
    provider.add_channel(
        OTHER_GUILD_ID,
        VoiceChannel(id="2001", name="Secret"),
        make_members("Mallory"),
    )
    return provider
