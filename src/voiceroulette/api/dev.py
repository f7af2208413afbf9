"""Development-only helpers. Mounted only in development with the Discord bot off."""

from __future__ import annotations

import logging

from fastapi import APIRouter
from pydantic import BaseModel

from voiceroulette.api.deps import SettingsDep, TokenStoreDep
from voiceroulette.discord.embeds import roulette_link
from voiceroulette.models.session import TokenScope

router = APIRouter(prefix="/api/dev", tags=["dev"])
logger = logging.getLogger(__name__)


class DevTokenRequest(BaseModel):
    guild_id: str
    issuing_user_id: str = "dev"


@router.post("/tokens")
async def issue_dev_token(
    body: DevTokenRequest,
    store: TokenStoreDep,
    settings: SettingsDep,
) -> dict:
    """Issue a session token without going through Discord."""
    token = store.issue(TokenScope(guild_id=body.guild_id, issuing_user_id=body.issuing_user_id))
    logger.info("dev_token_issued guild=%s", body.guild_id)
    return {
        "token": token.value,
        "guild_id": body.guild_id,
        "expires_at": token.expires_at.isoformat(),
        "url": roulette_link(settings.frontend_url, token.value, settings.backend_url),
    }
