"""SSE (Server-Sent Events) endpoint for live wheel animation."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncIterator

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import StreamingResponse

from voiceroulette.api.deps import AccessTokenDep, EventBusDep, ScopeDep, TokenStoreDep
from voiceroulette.core.errors import Unauthorized
from voiceroulette.core.event_bus import EVENT_TYPES, EventBus
from voiceroulette.core.tokens import TokenStore

router = APIRouter(prefix="/api/events", tags=["events"])
logger = logging.getLogger(__name__)

_HEARTBEAT_INTERVAL = 15  # seconds

# Each open stream holds a queue and a connection; cap them.
_MAX_SSE_CONNECTIONS = 100
_connection_semaphore = asyncio.Semaphore(_MAX_SSE_CONNECTIONS)


def format_sse(event: dict) -> str:
    """Render one bus envelope as an SSE message."""
    data = json.dumps(event, default=str)
    return f"event: {event['type']}\ndata: {data}\n\n"


async def event_stream(
    request: Request,
    bus: EventBus,
    store: TokenStore,
    access_token: str,
    guild_id: str,
    event_type: str | None = None,
    heartbeat_interval: float = _HEARTBEAT_INTERVAL,
) -> AsyncIterator[str]:
    """Yield SSE messages for ``guild_id`` until the client leaves or the token lapses.

    The token is re-checked after every wait, so an expired or swept token
    ends the stream before anything else is sent.
    """
    yield ": connected\n\n"
    logger.info("sse_connected guild=%s filter=%s", guild_id, event_type)

    async with bus.subscribe(guild_id) as sub:
        while True:
            if await request.is_disconnected():
                break
            event = await sub.get(timeout=heartbeat_interval)
            try:
                store.validate(access_token)
            except Unauthorized as exc:
                logger.info("sse_token_lapsed guild=%s reason=%s", guild_id, exc.reason)
                break
            if event is None:
                yield ": heartbeat\n\n"
                continue
            if event_type is not None and event["type"] != event_type:
                continue
            yield format_sse(event)

    logger.info("sse_disconnected guild=%s", guild_id)


@router.get("/stream")
async def sse_stream(
    request: Request,
    scope: ScopeDep,
    access_token: AccessTokenDep,
    store: TokenStoreDep,
    bus: EventBusDep,
    event_type: str | None = None,
) -> StreamingResponse:
    """Server-Sent Events stream for the token's guild.

    Query params:
        event_type: optional filter — one of the roulette event types
                    (e.g. "wheel.frame", "roulette.finished").
                    If omitted, receives all events.

    Sends an initial comment to flush proxy buffers and periodic heartbeats
    to keep the connection alive through reverse proxies.

    Errors:
        400 — unknown event_type value
        401 — token missing, unknown, or expired
        429 — global connection limit reached
    """
    if event_type is not None and event_type not in EVENT_TYPES:
        raise HTTPException(
            status_code=400,
            detail=f"Unknown event_type {event_type!r}. Valid values: {sorted(EVENT_TYPES)}",
        )

    if _connection_semaphore.locked():
        raise HTTPException(
            status_code=429,
            detail=(
                f"Too many concurrent SSE connections "
                f"(limit: {_MAX_SSE_CONNECTIONS}). Try again later."
            ),
        )

    async def generate() -> AsyncIterator[str]:
        async with _connection_semaphore:
            async for message in event_stream(
                request, bus, store, access_token or "", scope.guild_id, event_type
            ):
                yield message

    return StreamingResponse(
        generate(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )
