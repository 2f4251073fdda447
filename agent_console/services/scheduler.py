"""
Cancellable repeating-task scheduler.

``schedule(interval, task)`` arms a fixed-rate trigger and returns a
CancellationToken; ``cancel(token)`` disarms it and is idempotent. Each tick
runs as its own asyncio task, so cancelling a trigger never aborts a tick
that is already running.

Overlap policy is skip-if-busy: when a trigger fires while the previous tick
of the same token is still running, the new tick is skipped and counted,
never queued and never run concurrently.

Usage:
    scheduler = IntervalScheduler()
    token = scheduler.schedule(3.0, orchestrator.auto_tick, name="auto-cycle")
    ...
    scheduler.cancel(token)
    await scheduler.drain(token)   # wait for an in-flight tick to finish
"""

import asyncio
import itertools
from typing import Awaitable, Callable

import structlog

logger = structlog.get_logger(__name__)

TickTask = Callable[[], Awaitable[None]]

_token_ids = itertools.count(1)


class CancellationToken:
    """Handle for one armed repeating trigger."""

    def __init__(self, name: str, interval_seconds: float) -> None:
        self.id = next(_token_ids)
        self.name = name
        self.interval_seconds = interval_seconds
        self.cancelled = False
        self.ticks_started = 0
        self.ticks_completed = 0
        self.ticks_skipped = 0
        self._trigger: asyncio.Task | None = None
        self._in_flight: asyncio.Task | None = None

    @property
    def busy(self) -> bool:
        """True while a tick of this trigger is running."""
        return self._in_flight is not None and not self._in_flight.done()

    def __repr__(self) -> str:
        state = "cancelled" if self.cancelled else "armed"
        return f"<CancellationToken {self.name}#{self.id} every {self.interval_seconds}s {state}>"


class IntervalScheduler:
    """Arms fixed-rate triggers on the running event loop."""

    def __init__(self) -> None:
        self._armed: dict[int, CancellationToken] = {}

    def schedule(self, interval_seconds: float, task: TickTask, *, name: str) -> CancellationToken:
        """
        Arm a repeating trigger. Must be called from a running event loop.

        Args:
            interval_seconds: Seconds between triggers (the first fires after one interval).
            task:             Coroutine function run on every non-skipped tick.
            name:             Label used in logs and for ``active_count(name)``.

        Returns:
            Token identifying the trigger.
        """
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")

        token = CancellationToken(name, interval_seconds)
        token._trigger = asyncio.create_task(self._run_trigger(token, task), name=f"trigger:{name}")
        self._armed[token.id] = token
        logger.info("scheduler_armed", timer=name, token_id=token.id, interval_seconds=interval_seconds)
        return token

    def cancel(self, token: CancellationToken) -> bool:
        """
        Disarm a trigger. Further calls with the same token are no-ops.

        Returns:
            True if the token was armed, False if it was already cancelled.
        """
        if token.cancelled:
            return False
        token.cancelled = True
        self._armed.pop(token.id, None)
        if token._trigger is not None:
            token._trigger.cancel()
        logger.info("scheduler_disarmed", timer=token.name, token_id=token.id, tick_in_flight=token.busy)
        return True

    def active_count(self, name: str | None = None) -> int:
        """Number of armed triggers, optionally restricted to one name."""
        if name is None:
            return len(self._armed)
        return sum(1 for token in self._armed.values() if token.name == name)

    async def drain(self, token: CancellationToken) -> None:
        """Wait until the token's in-flight tick, if any, has finished."""
        in_flight = token._in_flight
        if in_flight is not None and not in_flight.done():
            await asyncio.wait({in_flight})

    async def shutdown(self, *, wait: bool = True) -> None:
        """Disarm every trigger; optionally wait for in-flight ticks."""
        tokens = list(self._armed.values())
        for token in tokens:
            self.cancel(token)
        if wait:
            for token in tokens:
                await self.drain(token)

    async def _run_trigger(self, token: CancellationToken, task: TickTask) -> None:
        loop = asyncio.get_running_loop()
        next_fire = loop.time() + token.interval_seconds
        while not token.cancelled:
            await asyncio.sleep(max(0.0, next_fire - loop.time()))
            next_fire += token.interval_seconds
            if token.cancelled:
                break
            if token.busy:
                token.ticks_skipped += 1
                logger.info("scheduler_tick_skipped", timer=token.name, token_id=token.id)
                continue
            token.ticks_started += 1
            token._in_flight = asyncio.create_task(
                self._run_tick(token, task), name=f"tick:{token.name}:{token.ticks_started}"
            )

    async def _run_tick(self, token: CancellationToken, task: TickTask) -> None:
        try:
            await task()
        except Exception:
            logger.exception("scheduler_tick_failed", timer=token.name, token_id=token.id)
        finally:
            token.ticks_completed += 1
