"""Guild, voice channel, and roster endpoints.

All reads are limited to the guild the caller's token is bound to.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter

from voiceroulette.api.deps import RosterDep, RouletteDep, ScopeDep
from voiceroulette.models.roster import GuildInfo, RosterSnapshot, VoiceChannel
from voiceroulette.models.roulette import RouletteRequest, RouletteStarted

router = APIRouter(prefix="/api/guild", tags=["guild"])
logger = logging.getLogger(__name__)


@router.get("", response_model=GuildInfo)
async def get_guild(scope: ScopeDep, roster: RosterDep) -> GuildInfo:
    """Name and icon of the token's guild."""
    return await roster.get_guild(scope.guild_id)


@router.get("/channels", response_model=list[VoiceChannel])
async def list_channels(scope: ScopeDep, roster: RosterDep) -> list[VoiceChannel]:
    """Voice channels of the token's guild, in sidebar order."""
    return await roster.list_voice_channels(scope.guild_id)


@router.get("/channels/{channel_id}/members", response_model=RosterSnapshot)
async def list_members(channel_id: str, scope: ScopeDep, roster: RosterDep) -> RosterSnapshot:
    """Who is in a voice channel right now."""
    return await roster.list_voice_members(scope.guild_id, channel_id)


@router.post("/channels/{channel_id}/roulette", response_model=RouletteStarted)
async def start_roulette(
    channel_id: str,
    body: RouletteRequest,
    scope: ScopeDep,
    roulette: RouletteDep,
) -> RouletteStarted:
    """Draw ``count`` winners and start spinning the wheel onto them.

    The winners are in the response immediately; the animation streams on
    ``/api/events/stream``. If the channel's wheel is already spinning the
    request is ignored and ``started`` is false.

    Errors:
        400 — count out of range, or the channel is empty
        404 — channel not found
        503 — Discord not ready
    """
    return await roulette.start(scope.guild_id, channel_id, body.count)


@router.post("/channels/{channel_id}/roulette/stop")
async def stop_roulette(channel_id: str, scope: ScopeDep, roulette: RouletteDep) -> dict:
    """Stop the channel's wheel where it is. The run is not recorded."""
    stopped = await roulette.stop(scope.guild_id, channel_id)
    if stopped:
        logger.info("roulette_stop_requested guild=%s channel=%s", scope.guild_id, channel_id)
    return {"stopped": stopped}
