"""Periodic removal of expired session tokens.

Runs as an APScheduler interval job on the application's event loop. The job
itself is a plain function so tests can call it directly.
"""

from __future__ import annotations

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from voiceroulette.core.tokens import TokenStore

logger = logging.getLogger(__name__)

SWEEP_JOB_ID = "token_sweep"


def sweep_expired_tokens(store: TokenStore) -> int:
    removed = store.sweep()
    if removed:
        logger.info("token_sweep removed=%d remaining=%d", removed, len(store))
    return removed


def start_token_sweeper(store: TokenStore, interval_seconds: int) -> AsyncIOScheduler:
    """Start a scheduler that sweeps ``store`` every ``interval_seconds``.

    Must be called from a running event loop. The caller owns shutdown.
    """
    if interval_seconds < 1:
        raise ValueError("interval_seconds must be positive")
    scheduler = AsyncIOScheduler()
    scheduler.add_job(
        sweep_expired_tokens,
        trigger=IntervalTrigger(seconds=interval_seconds),
        kwargs={"store": store},
        id=SWEEP_JOB_ID,
        name="Sweep expired session tokens",
        replace_existing=True,
    )
    scheduler.start()
    logger.info("token_sweeper_started interval=%ds", interval_seconds)
    return scheduler
