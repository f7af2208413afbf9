"""FastAPI dependency injection for app-scoped state and token validation."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import Depends, Header, Query, Request

from voiceroulette.config import Settings
from voiceroulette.core.errors import Unauthorized, UnauthorizedReason
from voiceroulette.core.event_bus import EventBus
from voiceroulette.core.history import ResultHistory
from voiceroulette.core.roster import RosterProvider
from voiceroulette.core.roulette import RouletteService
from voiceroulette.core.tokens import TokenStore
from voiceroulette.models.session import TokenScope

logger = logging.getLogger(__name__)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_token_store(request: Request) -> TokenStore:
    """Get the session token store from app state."""
    return request.app.state.token_store


def get_roster(request: Request) -> RosterProvider:
    return request.app.state.roster


def get_roulette(request: Request) -> RouletteService:
    return request.app.state.roulette


def get_history(request: Request) -> ResultHistory:
    return request.app.state.history


def get_event_bus(request: Request) -> EventBus:
    return request.app.state.event_bus


def get_access_token(
    token: Annotated[str | None, Query()] = None,
    x_access_token: Annotated[str | None, Header()] = None,
) -> str | None:
    """The raw session token: ``token`` query parameter first, then ``X-Access-Token``."""
    return token or x_access_token


async def require_scope(
    store: Annotated[TokenStore, Depends(get_token_store)],
    access_token: Annotated[str | None, Depends(get_access_token)],
    guild_id: Annotated[str | None, Query()] = None,
) -> TokenScope:
    """Resolve the caller's token to its scope, or raise Unauthorized.

    The token may come from the ``token`` query parameter (links opened from
    Discord) or the ``X-Access-Token`` header. A request that names a guild
    other than the token's own is rejected exactly like an unknown token.
    """
    scope = store.validate(access_token)
    if guild_id is not None and guild_id != scope.guild_id:
        logger.warning(
            "cross_guild_request_rejected token_guild=%s requested_guild=%s",
            scope.guild_id,
            guild_id,
        )
        raise Unauthorized(UnauthorizedReason.INVALID)
    return scope


ScopeDep = Annotated[TokenScope, Depends(require_scope)]
AccessTokenDep = Annotated[str | None, Depends(get_access_token)]
SettingsDep = Annotated[Settings, Depends(get_settings)]
TokenStoreDep = Annotated[TokenStore, Depends(get_token_store)]
RosterDep = Annotated[RosterProvider, Depends(get_roster)]
RouletteDep = Annotated[RouletteService, Depends(get_roulette)]
HistoryDep = Annotated[ResultHistory, Depends(get_history)]
EventBusDep = Annotated[EventBus, Depends(get_event_bus)]
