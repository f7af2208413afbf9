"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from voiceroulette.api.errors import install_error_handlers
from voiceroulette.api.events import router as events_router
from voiceroulette.api.guild import router as guild_router
from voiceroulette.api.history import router as history_router
from voiceroulette.api.session import router as session_router
from voiceroulette.config import APP_VERSION, Settings
from voiceroulette.core.event_bus import EventBus
from voiceroulette.core.history import ResultHistory
from voiceroulette.core.roster import InMemoryRosterProvider, RosterProvider, demo_roster_provider
from voiceroulette.core.roulette import RouletteService, TickerFactory
from voiceroulette.core.selection import RandomSource
from voiceroulette.core.tokens import TokenStore

logger = logging.getLogger(__name__)


def init_state(
    app: FastAPI,
    *,
    roster: RosterProvider,
    token_store: TokenStore | None = None,
    rng: RandomSource | None = None,
    ticker_factory: TickerFactory | None = None,
) -> None:
    """Create the process-scoped state every router depends on."""
    settings: Settings = app.state.settings
    if token_store is None:
        token_store = TokenStore(ttl=timedelta(seconds=settings.token_ttl_seconds))

    history = ResultHistory(max_size=settings.history_max_size)
    event_bus = EventBus()

    app.state.token_store = token_store
    app.state.roster = roster
    app.state.history = history
    app.state.event_bus = event_bus
    app.state.roulette = RouletteService(
        roster,
        history,
        event_bus,
        rng=rng,
        ticker_factory=ticker_factory,
        spin_duration=settings.spin_duration_seconds,
        min_turns=settings.spin_min_turns,
        max_turns=settings.spin_max_turns,
        frame_rate=settings.spin_frame_rate,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: token store, optional Discord bot, token sweeper."""
    settings: Settings = app.state.settings
    token_store = TokenStore(ttl=timedelta(seconds=settings.token_ttl_seconds))

    # Start Discord bot if configured
    discord_bot = None
    from voiceroulette.discord.bot import is_discord_enabled

    roster: RosterProvider
    if is_discord_enabled(settings):
        from voiceroulette.discord.bot import start_discord_bot
        from voiceroulette.discord.roster import DiscordRosterProvider

        discord_bot = await start_discord_bot(settings, token_store)
        roster = DiscordRosterProvider(discord_bot)
        logger.info("discord_bot_integration_started")
    elif settings.is_development:
        roster = demo_roster_provider(settings.dev_guild_id)
        logger.info("discord_bot_integration_disabled roster=demo")
    else:
        roster = InMemoryRosterProvider()
        logger.warning("discord_bot_integration_disabled roster=empty")
    app.state.discord_bot = discord_bot

    init_state(app, roster=roster, token_store=token_store)

    from voiceroulette.core.sweeper import start_token_sweeper

    scheduler = start_token_sweeper(token_store, settings.token_sweep_interval_seconds)
    app.state.scheduler = scheduler

    yield

    await app.state.roulette.shutdown()

    scheduler.shutdown(wait=False)
    logger.info("scheduler_stopped")

    # Shutdown Discord bot if running
    if discord_bot is not None:
        await discord_bot.close()
        logger.info("discord_bot_integration_stopped")

    token_store.clear()


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the Voice Roulette FastAPI application."""
    settings = settings or Settings()

    logging.basicConfig(
        level=getattr(logging, settings.roulette_log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(
        title="Voice Roulette",
        version=APP_VERSION,
        description="Pick people from a Discord voice channel with a spinning wheel",
        docs_url="/docs" if settings.roulette_env != "production" else None,
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins(),
        allow_methods=["GET", "POST", "DELETE"],
        allow_headers=["X-Access-Token", "Content-Type"],
    )
    install_error_handlers(app)

    # API routers
    app.include_router(session_router)
    app.include_router(guild_router)
    app.include_router(history_router)
    app.include_router(events_router)

    # Dev tokens bypass /roulette; never mount them next to a live bot
    from voiceroulette.discord.bot import is_discord_enabled

    if settings.is_development and not is_discord_enabled(settings):
        from voiceroulette.api.dev import router as dev_router

        app.include_router(dev_router)

    @app.get("/health")
    async def health() -> dict[str, object]:
        bot = getattr(app.state, "discord_bot", None)
        bot_user = str(bot.user) if bot is not None and bot.user is not None else None
        token_store = getattr(app.state, "token_store", None)
        return {
            "status": "ok",
            "env": settings.roulette_env,
            "version": APP_VERSION,
            "bot": bot_user or "not ready",
            "guilds": len(bot.guilds) if bot is not None else 0,
            "active_tokens": len(token_store) if token_store is not None else 0,
        }

    return app


app = create_app()
