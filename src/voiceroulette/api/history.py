"""Result history endpoints."""

from __future__ import annotations

from fastapi import APIRouter

from voiceroulette.api.deps import HistoryDep, ScopeDep
from voiceroulette.core.errors import NotFound
from voiceroulette.core.history import format_winners
from voiceroulette.models.roulette import RouletteRecord

router = APIRouter(prefix="/api/history", tags=["history"])


def _serialize(record: RouletteRecord) -> dict:
    data = record.model_dump(mode="json")
    data["text"] = format_winners(record.winners)
    return data


@router.get("")
async def list_history(scope: ScopeDep, history: HistoryDep) -> dict:
    """Finished runs for the token's guild, newest first."""
    records = history.list(scope.guild_id)
    return {"data": [_serialize(r) for r in records], "count": len(records)}


@router.get("/{index}")
async def get_history_entry(index: int, scope: ScopeDep, history: HistoryDep) -> dict:
    """One finished run; ``0`` is the most recent."""
    record = history.get(scope.guild_id, index)
    if record is None:
        raise NotFound("result", str(index))
    return {"data": _serialize(record)}


@router.delete("")
async def clear_history(scope: ScopeDep, history: HistoryDep) -> dict:
    return {"removed": history.clear(scope.guild_id)}
