"""Roulette runs — snapshot, select, spin, record.

A run takes exactly one roster snapshot, draws the winners from it, and then
hands the same snapshot to a SpinChoreographer that lands the wheel on each
winner in draw order. The animation runs as a background asyncio task that
publishes every frame on the guild's event bus; the HTTP request that started
the run returns as soon as the winners are known.

At most one run is in flight per voice channel. A finished run is recorded to
the result history; a stopped or failed one is not.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field

from voiceroulette.core import event_bus as events
from voiceroulette.core.choreographer import (
    DEFAULT_FRAME_RATE,
    DEFAULT_MAX_TURNS,
    DEFAULT_MIN_TURNS,
    DEFAULT_SPIN_DURATION,
    AsyncioFrameTicker,
    FrameTicker,
    SpinChoreographer,
    SpinResult,
)
from voiceroulette.core.event_bus import EventBus
from voiceroulette.core.history import ResultHistory, format_winners
from voiceroulette.core.roster import RosterProvider
from voiceroulette.core.selection import RandomSource, default_random, select_members
from voiceroulette.core.wheel import sector_at
from voiceroulette.models.roster import Member, RosterSnapshot
from voiceroulette.models.roulette import RouletteRecord, RouletteStarted, SelectionResult

logger = logging.getLogger(__name__)

TickerFactory = Callable[[], FrameTicker]


@dataclass
class RouletteRun:
    """One in-flight run on one voice channel."""

    run_id: str
    snapshot: RosterSnapshot
    selection: SelectionResult
    wheel: SpinChoreographer
    task: asyncio.Task[None] | None = None
    cancelled: bool = False
    results: list[SpinResult] = field(default_factory=list)

    @property
    def winners(self) -> list[Member]:
        return list(self.selection.winners)

    @property
    def guild_id(self) -> str:
        return self.snapshot.guild_id

    @property
    def channel_id(self) -> str:
        return self.snapshot.channel_id

    @property
    def key(self) -> tuple[str, str]:
        return (self.guild_id, self.channel_id)


class RouletteService:
    """Starts, tracks, and stops roulette runs.

    Usage:
        service = RouletteService(roster, history, bus)
        started = await service.start(guild_id, channel_id, count=2)
        await service.stop(guild_id, channel_id)
    """

    def __init__(
        self,
        roster: RosterProvider,
        history: ResultHistory,
        event_bus: EventBus,
        *,
        rng: RandomSource | None = None,
        ticker_factory: TickerFactory | None = None,
        spin_duration: float = DEFAULT_SPIN_DURATION,
        min_turns: int = DEFAULT_MIN_TURNS,
        max_turns: int = DEFAULT_MAX_TURNS,
        frame_rate: int = DEFAULT_FRAME_RATE,
    ) -> None:
        self._roster = roster
        self._history = history
        self._bus = event_bus
        self._rng = rng or default_random()
        self._ticker_factory = ticker_factory or (lambda: AsyncioFrameTicker(frame_rate))
        self._spin_duration = spin_duration
        self._min_turns = min_turns
        self._max_turns = max_turns
        self._runs: dict[tuple[str, str], RouletteRun] = {}

    @property
    def history(self) -> ResultHistory:
        return self._history

    def active_run(self, guild_id: str, channel_id: str) -> RouletteRun | None:
        return self._runs.get((guild_id, channel_id))

    def active_runs(self) -> list[RouletteRun]:
        return list(self._runs.values())

    async def start(self, guild_id: str, channel_id: str, count: object) -> RouletteStarted:
        """Draw ``count`` winners from the channel and start spinning onto them.

        Raises InvalidCount / EmptyRoster before anything is published, and
        NotFound / UpstreamUnavailable from the roster provider. If the
        channel already has a run in flight, nothing happens and the response
        has ``started=False``.
        """
        key = (guild_id, channel_id)
        if key in self._runs:
            logger.info("roulette_ignored guild=%s channel=%s already_running", *key)
            return RouletteStarted(started=False, guild_id=guild_id, channel_id=channel_id)

        snapshot = await self._roster.list_voice_members(guild_id, channel_id)
        winners = select_members(snapshot.members, count, self._rng)
        selection = SelectionResult(winners=tuple(winners))

        # The roster fetch may have yielded to another request for this channel.
        if key in self._runs:
            logger.info("roulette_ignored guild=%s channel=%s already_running", *key)
            return RouletteStarted(started=False, guild_id=guild_id, channel_id=channel_id)

        run_id = uuid.uuid4().hex
        sector_count = len(snapshot)

        async def publish_frame(rotation: float, progress: float) -> None:
            await self._bus.publish(
                guild_id,
                events.WHEEL_FRAME,
                {
                    "run_id": run_id,
                    "channel_id": channel_id,
                    "rotation": rotation,
                    "progress": progress,
                    "sector": sector_at(rotation, sector_count),
                },
            )

        wheel = SpinChoreographer(
            snapshot.members,
            ticker=self._ticker_factory(),
            rng=self._rng,
            duration=self._spin_duration,
            min_turns=self._min_turns,
            max_turns=self._max_turns,
            on_frame=publish_frame,
        )
        run = RouletteRun(run_id=run_id, snapshot=snapshot, selection=selection, wheel=wheel)
        self._runs[key] = run

        started = RouletteStarted(
            started=True,
            run_id=run_id,
            guild_id=guild_id,
            channel_id=channel_id,
            total_members=len(snapshot),
            selected_count=selection.count,
            winners=list(selection.winners),
            sectors=[member.id for member in snapshot.members],
            winner_sectors=[snapshot.index_of(member.id) for member in selection.winners],
            spin_duration_seconds=self._spin_duration,
        )
        await self._bus.publish(guild_id, events.ROULETTE_STARTED, started.model_dump(mode="json"))
        logger.info(
            "roulette_started run=%s guild=%s channel=%s members=%d winners=%d",
            run_id,
            guild_id,
            channel_id,
            len(snapshot),
            selection.count,
        )

        run.task = asyncio.create_task(self._drive(run))
        return started

    async def _drive(self, run: RouletteRun) -> None:
        async def on_spin_started(position: int, member: Member, index: int) -> None:
            await self._bus.publish(
                run.guild_id,
                events.SPIN_STARTED,
                {
                    "run_id": run.run_id,
                    "channel_id": run.channel_id,
                    "position": position,
                    "member": member.model_dump(mode="json"),
                    "sector": index,
                },
            )

        async def on_spin_finished(position: int, member: Member, result: SpinResult) -> None:
            if run.cancelled:
                return
            await self._bus.publish(
                run.guild_id,
                events.SPIN_FINISHED,
                {
                    "run_id": run.run_id,
                    "channel_id": run.channel_id,
                    "position": position,
                    "member": member.model_dump(mode="json"),
                    "sector": result.target_index,
                    "rotation": result.final_rotation,
                    "completed": result.completed,
                },
            )

        if run.cancelled:
            return

        try:
            run.results = await run.wheel.spin_sequence(
                run.winners,
                on_spin_started=on_spin_started,
                on_spin_finished=on_spin_finished,
            )
            finished = len(run.results) == len(run.winners) and all(
                result.completed for result in run.results
            )
            if run.cancelled or not finished:
                if not run.cancelled:
                    await self._publish_cancelled(run)
                return

            record = RouletteRecord(
                run_id=run.run_id,
                guild_id=run.guild_id,
                channel_id=run.channel_id,
                total_members=len(run.snapshot),
                selected_count=run.selection.count,
                winners=run.selection.winners,
            )
            self._history.record(record)
            await self._bus.publish(
                run.guild_id,
                events.ROULETTE_FINISHED,
                {
                    "run_id": run.run_id,
                    "channel_id": run.channel_id,
                    "winners": [member.model_dump(mode="json") for member in run.winners],
                    "text": format_winners(run.winners),
                },
            )
            logger.info("roulette_finished run=%s guild=%s", run.run_id, run.guild_id)
        except Exception:
            logger.exception("roulette_failed run=%s guild=%s", run.run_id, run.guild_id)
            await self._bus.publish(
                run.guild_id,
                events.ROULETTE_FAILED,
                {"run_id": run.run_id, "channel_id": run.channel_id},
            )
        finally:
            if self._runs.get(run.key) is run:
                del self._runs[run.key]

    async def stop(self, guild_id: str, channel_id: str) -> bool:
        """Cancel the channel's in-flight run. Returns False when there was none."""
        run = self._runs.pop((guild_id, channel_id), None)
        if run is None:
            return False
        run.cancelled = True
        run.wheel.stop()
        await self._publish_cancelled(run)
        return True

    async def _publish_cancelled(self, run: RouletteRun) -> None:
        await self._bus.publish(
            run.guild_id,
            events.ROULETTE_CANCELLED,
            {
                "run_id": run.run_id,
                "channel_id": run.channel_id,
                "rotation": run.wheel.rotation,
            },
        )
        logger.info("roulette_cancelled run=%s guild=%s", run.run_id, run.guild_id)

    async def shutdown(self) -> None:
        """Stop every run and wait for their tasks to wind down."""
        runs = list(self._runs.values())
        self._runs.clear()
        tasks = []
        for run in runs:
            run.cancelled = True
            run.wheel.stop()
            if run.task is not None:
                run.task.cancel()
                tasks.append(run.task)
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
