"""Token check endpoint used by the page before it loads anything else."""

from __future__ import annotations

from fastapi import APIRouter

from voiceroulette.api.deps import ScopeDep

router = APIRouter(prefix="/api", tags=["session"])


@router.get("/validate-token")
async def validate_token(scope: ScopeDep) -> dict:
    """Confirm the token is live and report which guild it is bound to.

    Errors:
        401 — token missing, unknown, or expired (see ``reason``)
    """
    return {"valid": True, "guild_id": scope.guild_id}
