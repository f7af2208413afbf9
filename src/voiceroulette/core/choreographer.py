"""Spin choreographer — animates the wheel onto each winner in turn.

The wheel's rotation is advanced once per frame tick. Each tick is an explicit
``await ticker.next_frame()``, so the animation is a plain cooperative asyncio
task: ordered, cancellable, and driven by a fake ticker in tests instead of
wall-clock sleeps.

One spin:
    Idle → Spinning → Idle

A multi-winner run (``spin_sequence``):
    Idle → Spinning(1) → Idle → Spinning(2) → … → Idle

Usage:
    wheel = SpinChoreographer(snapshot.members, on_frame=publish_frame)
    results = await wheel.spin_sequence(winners)
"""

from __future__ import annotations

import asyncio
import logging
import secrets
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Protocol

from voiceroulette.core.errors import EmptyRoster
from voiceroulette.core.selection import RandomSource
from voiceroulette.core.wheel import ease_out_cubic, sector_angle, target_rotation
from voiceroulette.models.roster import Member

logger = logging.getLogger(__name__)

DEFAULT_SPIN_DURATION = 4.0  # seconds
DEFAULT_MIN_TURNS = 3
DEFAULT_MAX_TURNS = 5
DEFAULT_FRAME_RATE = 60


class FrameTicker(Protocol):
    """Source of frame ticks. Times are seconds on a monotonic clock."""

    def now(self) -> float: ...

    async def next_frame(self) -> float:
        """Suspend until the next frame and return its timestamp."""
        ...


class AsyncioFrameTicker:
    """Frame ticks paced by ``asyncio.sleep`` on the running loop's clock."""

    def __init__(self, frame_rate: int = DEFAULT_FRAME_RATE) -> None:
        if frame_rate < 1:
            raise ValueError("frame_rate must be positive")
        self._interval = 1.0 / frame_rate

    def now(self) -> float:
        return asyncio.get_running_loop().time()

    async def next_frame(self) -> float:
        await asyncio.sleep(self._interval)
        return self.now()


@dataclass
class WheelState:
    """Live state of one wheel. Sector ``k`` belongs to ``members[k]``."""

    members: tuple[Member, ...]
    rotation: float = 0.0
    is_spinning: bool = False


@dataclass(frozen=True)
class SpinResult:
    target_index: int
    start_rotation: float
    target_rotation: float
    final_rotation: float
    frames: int
    completed: bool  # False when stopped before landing


FrameCallback = Callable[[float, float], Awaitable[None]]
SpinStartedCallback = Callable[[int, Member, int], Awaitable[None]]
SpinFinishedCallback = Callable[[int, Member, SpinResult], Awaitable[None]]


class SpinChoreographer:
    """Drives one wheel. At most one spin is in flight at a time."""

    def __init__(
        self,
        members: Sequence[Member],
        *,
        ticker: FrameTicker | None = None,
        rng: RandomSource | None = None,
        duration: float = DEFAULT_SPIN_DURATION,
        min_turns: int = DEFAULT_MIN_TURNS,
        max_turns: int = DEFAULT_MAX_TURNS,
        on_frame: FrameCallback | None = None,
    ) -> None:
        if not members:
            raise EmptyRoster()
        if duration < 0:
            raise ValueError("duration must not be negative")
        self.state = WheelState(members=tuple(members))
        self._ticker = ticker or AsyncioFrameTicker()
        self._rng = rng or secrets.SystemRandom()
        self._duration = duration
        self._min_turns = min_turns
        self._max_turns = max_turns
        self._on_frame = on_frame
        # Bumped by every spin and every stop; a spin that sees a newer
        # generation after a frame tick has been stopped.
        self._generation = 0
        self._stops = 0

    @property
    def rotation(self) -> float:
        return self.state.rotation

    @property
    def is_spinning(self) -> bool:
        return self.state.is_spinning

    @property
    def sector_count(self) -> int:
        return len(self.state.members)

    @property
    def sector_width(self) -> float:
        return sector_angle(self.sector_count)

    def index_of(self, member_id: str) -> int:
        """Sector index of a member. The same roster order is used for layout."""
        for idx, member in enumerate(self.state.members):
            if member.id == member_id:
                return idx
        raise ValueError(f"member {member_id!r} is not on this wheel")

    def plan(self, target_index: int) -> float:
        """Pick the extra turns for the next spin and return its absolute target."""
        extra_turns = self._rng.randint(self._min_turns, self._max_turns)
        return target_rotation(self.state.rotation, target_index, self.sector_count, extra_turns)

    async def spin(self, target_index: int) -> SpinResult | None:
        """Spin onto sector ``target_index``.

        Returns None (and does nothing) if a spin is already in flight.
        Returns a result with ``completed=False`` if ``stop()`` interrupted it;
        rotation then stays at the last rendered frame.
        """
        if self.state.is_spinning:
            logger.debug("spin_ignored already_spinning target=%d", target_index)
            return None
        if not 0 <= target_index < self.sector_count:
            raise ValueError(
                f"sector {target_index} out of range for {self.sector_count} sectors"
            )

        self._generation += 1
        generation = self._generation
        self.state.is_spinning = True
        start = self.state.rotation
        target = self.plan(target_index)
        started_at = self._ticker.now()
        frames = 0
        completed = False

        try:
            while True:
                now = await self._ticker.next_frame()
                if generation != self._generation:
                    break

                if self._duration > 0:
                    progress = min((now - started_at) / self._duration, 1.0)
                else:
                    progress = 1.0
                if progress >= 1.0:
                    # Assign the exact target so the landing sector is never off by drift.
                    self.state.rotation = target
                else:
                    self.state.rotation = start + (target - start) * ease_out_cubic(progress)
                frames += 1

                if self._on_frame is not None:
                    await self._on_frame(self.state.rotation, progress)
                if progress >= 1.0:
                    completed = True
                    break
        finally:
            if generation == self._generation:
                self.state.is_spinning = False

        return SpinResult(
            target_index=target_index,
            start_rotation=start,
            target_rotation=target,
            final_rotation=self.state.rotation,
            frames=frames,
            completed=completed,
        )

    async def spin_sequence(
        self,
        winners: Sequence[Member],
        on_spin_started: SpinStartedCallback | None = None,
        on_spin_finished: SpinFinishedCallback | None = None,
    ) -> list[SpinResult]:
        """Spin onto each winner in draw order, one spin at a time.

        Stops sequencing at the first spin that was ignored or interrupted, and
        when ``stop()`` is called between two spins.
        """
        stops = self._stops
        results: list[SpinResult] = []
        for position, member in enumerate(winners):
            if self._stops != stops:
                break
            index = self.index_of(member.id)
            if on_spin_started is not None:
                await on_spin_started(position, member, index)
                if self._stops != stops:
                    break
            result = await self.spin(index)
            if result is None:
                break
            results.append(result)
            if on_spin_finished is not None:
                await on_spin_finished(position, member, result)
            if not result.completed:
                break
        return results

    def stop(self) -> None:
        """Halt the current spin. Never raises; safe to call when idle."""
        if self.state.is_spinning:
            logger.info("spin_stopped rotation=%.4f", self.state.rotation)
        self._generation += 1
        self._stops += 1
        self.state.is_spinning = False
