"""Result history — the sink that finished roulette runs are recorded to.

Kept in memory per guild, newest first, capped at ``max_size`` records.
"""

from __future__ import annotations

import logging
import threading
from collections import defaultdict, deque
from collections.abc import Sequence

from voiceroulette.models.roster import Member
from voiceroulette.models.roulette import RouletteRecord

logger = logging.getLogger(__name__)

DEFAULT_MAX_SIZE = 50


def format_winners(winners: Sequence[Member]) -> str:
    """Plain-text ranking suitable for pasting into chat: ``1. Name`` per line."""
    return "\n".join(f"{rank}. {member.display_name}" for rank, member in enumerate(winners, 1))


class ResultHistory:
    def __init__(self, max_size: int = DEFAULT_MAX_SIZE) -> None:
        if max_size < 1:
            raise ValueError("max_size must be positive")
        self._max_size = max_size
        self._records: dict[str, deque[RouletteRecord]] = defaultdict(
            lambda: deque(maxlen=self._max_size)
        )
        self._lock = threading.Lock()

    def record(self, entry: RouletteRecord) -> None:
        with self._lock:
            self._records[entry.guild_id].appendleft(entry)
        logger.info(
            "history_recorded run=%s guild=%s channel=%s winners=%d",
            entry.run_id,
            entry.guild_id,
            entry.channel_id,
            len(entry.winners),
        )

    def list(self, guild_id: str) -> list[RouletteRecord]:
        """All retained records for a guild, newest first."""
        with self._lock:
            return list(self._records.get(guild_id, ()))

    def get(self, guild_id: str, index: int) -> RouletteRecord | None:
        """The ``index``-th newest record, or None when out of range."""
        records = self.list(guild_id)
        if 0 <= index < len(records):
            return records[index]
        return None

    def clear(self, guild_id: str) -> int:
        """Drop a guild's history. Returns how many records were removed."""
        with self._lock:
            removed = self._records.pop(guild_id, None)
        return len(removed) if removed else 0
