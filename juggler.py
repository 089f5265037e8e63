"""
Juggler Simulation Core: Layer 1
Ball lifecycle, throw scheduler and per-ball flight timers.

A single Juggler instance owns every ball. Mutations take the write side
of an RWLock, queries take the read side, and no lock is held across an
``await``. Scheduler and flight timers are asyncio tasks tagged with the
generation that spawned them; a Reset bumps the generation so timers left
over from the previous run exit on their next tick without touching the
new balls.

The write side is taken on the event-loop thread; its critical sections
hold no awaits and no I/O, so the loop only ever waits on field updates.
"""

import asyncio
import enum
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, replace
from typing import List, Optional

import numpy as np

# ──────────────────────────────────────────────
# Constants
# ──────────────────────────────────────────────
MIN_FLIGHT_SECONDS: int = 5
MAX_FLIGHT_SECONDS: int = 10   # inclusive
SECONDS_PER_MINUTE: float = 60.0


class BallStatus(str, enum.Enum):
    IN_HAND = "in_hand"
    IN_FLIGHT = "in_flight"
    DROPPED = "dropped"   # reserved, never produced


@dataclass
class Ball:
    """Juggling ball. Passive data, mutated only by Juggler under its lock."""
    id: int
    status: BallStatus = BallStatus.IN_HAND
    flight_duration: int = 0
    elapsed: int = 0
    flight_start: Optional[float] = None


@dataclass
class Snapshot:
    """Every observable field of one generation, read under a single lock."""
    in_hand: int
    in_air: int
    balls: List[Ball]
    elapsed: float
    is_running: bool
    is_finished: bool
    total_balls: int
    target_duration: float


class RWLock:
    """Many readers or one writer, built on threading.Condition.

    Waiting writers block new readers so that a steady stream of stats
    polls cannot starve the timers. Not reentrant.
    """

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read_locked(self):
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write_locked(self):
        with self._cond:
            self._writers_waiting += 1
            while self._writer or self._readers:
                self._cond.wait()
            self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class Juggler:
    """Simulation state + throw scheduler + flight timers."""

    # ── Class-level constants ─────────────────────────────────────────────────
    THROW_INTERVAL = 0.5   # scheduler period (s)
    FLIGHT_TICK    = 1.0   # one elapsed "second" per tick

    # ── Constructor ───────────────────────────────────────────────────────────

    def __init__(self, total_balls: int = 0, duration_minutes: float = 0,
                 throw_interval: Optional[float] = None, flight_tick: Optional[float] = None,
                 seed: Optional[int] = None):
        self.throw_interval = self.THROW_INTERVAL if throw_interval is None else throw_interval
        self.flight_tick    = self.FLIGHT_TICK if flight_tick is None else flight_tick
        self._rng  = np.random.default_rng(seed)
        self._lock = RWLock()
        self._tasks: set = set()

        self._generation = 0
        self._populate(total_balls, duration_minutes)
        # A fresh juggler is idle until the first reset.
        self._active   = False
        self._finished = True

    def _populate(self, total_balls: int, duration_minutes: float) -> None:
        """Rebuild balls and queues. Caller holds the write lock (or owns self)."""
        self._balls: dict[int, Ball] = {}
        self._in_hand: List[int] = []
        self._in_air: List[int] = []
        self._next_id = 1
        self._total_balls = total_balls
        self._target_duration = duration_minutes * SECONDS_PER_MINUTE
        self._generation_start = time.monotonic()

        for _ in range(total_balls):
            ball = Ball(id=self._next_id)
            self._balls[ball.id] = ball
            self._in_hand.append(ball.id)
            self._next_id += 1

    # ──────────────────────────────────────────────────────────────────────────
    # Mutations
    # ──────────────────────────────────────────────────────────────────────────

    def reset(self, total_balls: int, duration_minutes: float) -> None:
        """Start a new generation with every ball in hand."""
        with self._lock.write_locked():
            self._generation += 1
            self._populate(total_balls, duration_minutes)
            self._active   = True
            self._finished = False

    def stop(self) -> None:
        """Halt the scheduler. In-flight balls still land."""
        with self._lock.write_locked():
            self._active   = False
            self._finished = True

    def throw_ball(self) -> bool:
        """
        Move the oldest in-hand ball into the air and start its flight timer.

        Returns False when the hand is empty. Needs a running event loop.
        """
        loop = asyncio.get_running_loop()
        with self._lock.write_locked():
            if not self._in_hand:
                return False

            ball_id = self._in_hand.pop(0)
            self._in_air.append(ball_id)

            ball = self._balls[ball_id]
            ball.status = BallStatus.IN_FLIGHT
            ball.flight_duration = int(self._rng.integers(MIN_FLIGHT_SECONDS,
                                                          MAX_FLIGHT_SECONDS + 1))
            ball.elapsed = 0
            ball.flight_start = time.time()
            generation = self._generation

        self._spawn(loop, self._fly(ball_id, generation))
        return True

    def _spawn(self, loop, coro) -> asyncio.Task:
        task = loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _fly(self, ball_id: int, generation: int) -> None:
        """Flight timer: one elapsed second per tick until the catch."""
        while True:
            await asyncio.sleep(self.flight_tick)
            with self._lock.write_locked():
                if generation != self._generation:
                    return   # orphaned by a reset
                ball = self._balls[ball_id]
                ball.elapsed += 1
                progress = f"{ball.elapsed}/{ball.flight_duration}"
                caught = ball.elapsed >= ball.flight_duration
                if caught:
                    self._catch(ball)

            print(f"[FLIGHT] Ball {ball_id}: {progress} seconds")
            if caught:
                print(f"[CATCH] Ball {ball_id} caught")
                return

    def _catch(self, ball: Ball) -> None:
        """Re-file a landed ball into the hand. Caller holds the write lock."""
        self._in_air.remove(ball.id)
        self._in_hand.append(ball.id)
        ball.status = BallStatus.IN_HAND
        ball.elapsed = 0

    # ──────────────────────────────────────────────────────────────────────────
    # Throw scheduler
    # ──────────────────────────────────────────────────────────────────────────

    def start(self) -> asyncio.Task:
        """Spawn the throw scheduler for the current generation."""
        loop = asyncio.get_running_loop()
        with self._lock.read_locked():
            generation = self._generation
        return self._spawn(loop, self._schedule(generation))

    async def _schedule(self, generation: int) -> None:
        while True:
            await asyncio.sleep(self.throw_interval)

            with self._lock.write_locked():
                if generation != self._generation:
                    return
                done = not self._active or self._time_over()
                if done:
                    self._active   = False
                    self._finished = True
            if done:
                print(f"[SCHED] Generation {generation} finished")
                return

            thrown = 0
            while self.throw_ball():
                thrown += 1
            if thrown:
                print(f"[THROW] Threw {thrown} ball(s)! Time: {self.elapsed():.0f} seconds")

    async def shutdown(self) -> None:
        """Cancel every scheduler and flight task and wait for them to exit."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    # ──────────────────────────────────────────────────────────────────────────
    # Queries
    # ──────────────────────────────────────────────────────────────────────────

    def stats(self):
        """Return (in_hand, in_air, balls) where balls are copies sorted by id."""
        with self._lock.read_locked():
            balls = [replace(self._balls[i]) for i in sorted(self._balls)]
            return len(self._in_hand), len(self._in_air), balls

    def snapshot(self) -> Snapshot:
        """All counts, balls and flags of the current generation at one instant."""
        with self._lock.read_locked():
            elapsed = time.monotonic() - self._generation_start
            return Snapshot(
                in_hand=len(self._in_hand),
                in_air=len(self._in_air),
                balls=[replace(self._balls[i]) for i in sorted(self._balls)],
                elapsed=elapsed,
                is_running=self._active and elapsed < self._target_duration,
                is_finished=self._finished,
                total_balls=self._total_balls,
                target_duration=self._target_duration,
            )

    def _time_over(self) -> bool:
        return time.monotonic() - self._generation_start >= self._target_duration

    def is_time_over(self) -> bool:
        with self._lock.read_locked():
            return self._time_over()

    def is_running(self) -> bool:
        with self._lock.read_locked():
            return self._active and not self._time_over()

    def is_finished(self) -> bool:
        with self._lock.read_locked():
            return self._finished

    def all_balls_in_hand(self) -> bool:
        with self._lock.read_locked():
            return not self._in_air

    def elapsed(self) -> float:
        """Seconds since the current generation began."""
        with self._lock.read_locked():
            return time.monotonic() - self._generation_start

    @property
    def total_balls(self) -> int:
        with self._lock.read_locked():
            return self._total_balls

    @property
    def target_duration(self) -> float:
        """Generation length in seconds."""
        with self._lock.read_locked():
            return self._target_duration

    @property
    def generation_start(self) -> float:
        with self._lock.read_locked():
            return self._generation_start

    @property
    def generation(self) -> int:
        with self._lock.read_locked():
            return self._generation

    def pending_tasks(self) -> int:
        return len(self._tasks)

    def format_stats(self) -> str:
        """Human-readable state report."""
        with self._lock.read_locked():
            lines = [
                "=== Juggling State ===",
                f"Elapsed Time: {time.monotonic() - self._generation_start:.0f} seconds",
                f"Balls in Hand: {len(self._in_hand)}",
                f"Balls in Air: {len(self._in_air)}",
                "Ball Details:",
            ]
            for ball_id in sorted(self._balls):
                ball = self._balls[ball_id]
                if ball.status is BallStatus.IN_FLIGHT:
                    status = f"in flight ({ball.elapsed}/{ball.flight_duration} sec)"
                elif ball.status is BallStatus.IN_HAND:
                    status = "in hand"
                else:
                    status = ball.status.value
                lines.append(f"  Ball {ball.id}: {status}")
            lines.append("=" * 22)
        return "\n".join(lines)
