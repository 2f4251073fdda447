"""
Orchestrator: the scheduling core of the console.

Every mutating action follows the same shape:

    mutating backend call  →  refresh pipeline (concurrent, each step tolerant)

The refresh pipeline always runs, even when the mutating call failed, so one
backend hiccup never leaves the console stale beyond that call. The failure
is re-raised after the refresh for the Action Surface to turn into a status
message.

Pipelines:
    FULL: queue, summary+logs, status   (process-next, run-loop, ingest, auto tick)
    SEED: summary+logs, status          (seeding does not touch the mailbox)

Auto cycle:
    start_auto() arms exactly one repeating trigger on the scheduler (disarming
    any previous one first); stop_auto() disarms it. A tick that would overlap a
    still-running auto tick is skipped, whichever timer fired either of them.
    A tick in flight when stop_auto() is called still completes its refresh
    pipeline.
"""

import asyncio
import itertools
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Awaitable, Callable, Iterator

import structlog

from agent_console.config import OrchestratorConfig
from agent_console.constants import (
    ACTION_PROCESS,
    AGENT_STATUS_PATH,
    AUTO_CYCLE_TIMER_NAME,
    ENTITY_ANALYTICS,
    ENTITY_CONFIG,
    ENTITY_LOGS,
    ENTITY_STATUS,
    INGEST_MOCK_EMAIL_PATH,
    MSG_ACTION_FAILED,
    MSG_NOTHING_PENDING,
    MSG_PROCESSED,
    RUN_LOOP_PATH,
    RUN_ONCE_PATH,
    SEED_VENDORS_PATH,
)
from agent_console.exceptions import AgentServiceError, OrchestrationInvariantError
from agent_console.models.agent import (
    AgentStatus,
    IngestDraft,
    RunLoopResult,
    RunOnceResult,
    parse_snapshot,
)
from agent_console.models.console import OrchestrationView, RunState
from agent_console.services.poller import MailboxPoller
from agent_console.services.refresher import SummaryRefresher
from agent_console.services.scheduler import CancellationToken, IntervalScheduler
from agent_console.services.state_store import StateStore
from agent_console.services.transport import TransportClient

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class RefreshStep:
    """One read-only refresh; touches a set of entities disjoint from its siblings."""

    name: str
    run: Callable[[], Awaitable[None]]


class Orchestrator:
    """Sequences backend actions and refreshes, and owns the auto cycle."""

    def __init__(
        self,
        transport: TransportClient,
        store: StateStore,
        poller: MailboxPoller,
        refresher: SummaryRefresher,
        scheduler: IntervalScheduler,
        config: OrchestratorConfig | None = None,
    ) -> None:
        self.transport = transport
        self.store = store
        self.poller = poller
        self.refresher = refresher
        self.scheduler = scheduler
        self.config = config or OrchestratorConfig()

        # OrchestrationState: _timer is set iff auto_run_enabled
        self.auto_run_enabled = False
        self._timer: CancellationToken | None = None
        # At most one auto tick runs at a time, whichever timer fired it
        self._tick_in_flight: asyncio.Task | None = None
        self._manual_in_flight = 0
        self._tick_numbers = itertools.count(1)
        self._ticks_completed = 0
        self._ticks_skipped = 0

        self.full_pipeline: tuple[RefreshStep, ...] = (
            RefreshStep("queue", self._refresh_queue_step),
            RefreshStep("summary", self._refresh_summary_step),
            RefreshStep("status", self._refresh_status_step),
        )
        self.seed_pipeline: tuple[RefreshStep, ...] = (
            RefreshStep("summary", self._refresh_summary_step),
            RefreshStep("status", self._refresh_status_step),
        )

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def run_state(self) -> RunState:
        if self.auto_run_enabled:
            return RunState.AUTO_RUNNING
        if self._manual_in_flight:
            return RunState.MANUAL_RUNNING
        return RunState.IDLE

    def describe(self) -> OrchestrationView:
        timer = self._timer
        return OrchestrationView(
            run_state=self.run_state,
            auto_run_enabled=self.auto_run_enabled,
            auto_interval_seconds=self.config.auto_interval_seconds,
            ticks_completed=self._ticks_completed,
            ticks_skipped=self._ticks_skipped + (timer.ticks_skipped if timer else 0),
        )

    @contextmanager
    def _manual_run(self, action: str) -> Iterator[None]:
        self._manual_in_flight += 1
        logger.debug("orchestrator_action_started", action=action, run_state=self.run_state.value)
        try:
            yield
        finally:
            self._manual_in_flight -= 1

    # ------------------------------------------------------------------
    # Refresh pipeline
    # ------------------------------------------------------------------

    async def run_pipeline(self, steps: tuple[RefreshStep, ...]) -> None:
        """Run refresh steps concurrently; a failing step never affects the others."""
        self.store.begin_refresh()
        try:
            results = await asyncio.gather(*(step.run() for step in steps), return_exceptions=True)
        finally:
            self.store.end_refresh()

        for step, result in zip(steps, results):
            if isinstance(result, AgentServiceError):
                logger.warning("refresh_step_failed", step=step.name, error=str(result))
            elif isinstance(result, BaseException):
                raise result

    async def _refresh_queue_step(self) -> None:
        await self.poller.poll_queue()

    async def _refresh_summary_step(self) -> None:
        summary, logs, errors = await self.refresher.refresh_summary()
        if summary is not None:
            self.store.set_analytics(summary)
        else:
            self._record_missing(ENTITY_ANALYTICS, errors)
        if logs is not None:
            self.store.set_logs(logs)
        else:
            self._record_missing(ENTITY_LOGS, errors)

    def _record_missing(self, entity: str, errors: dict[str, AgentServiceError]) -> None:
        error = errors.get(entity) or f"{entity} unavailable"
        self.store.record_failure(entity, error)

    async def _refresh_status_step(self) -> None:
        try:
            status = parse_snapshot(AgentStatus, await self.transport.get(AGENT_STATUS_PATH))
        except AgentServiceError as e:
            self.store.record_failure(ENTITY_STATUS, e)
            raise
        self.store.set_agent_status(status)

    async def refresh_queue(self) -> int:
        """Manual queue refresh; returns the number of queued messages."""
        items = await self.poller.poll_queue()
        return len(items)

    async def refresh_summary(self) -> None:
        """Manual analytics/logs refresh."""
        await self.run_pipeline((RefreshStep("summary", self._refresh_summary_step),))

    async def refresh_all(self) -> None:
        await self.run_pipeline(self.full_pipeline)

    async def load_initial_state(self) -> None:
        """Startup load: agent config + status, queue, analytics + logs."""
        config, status, errors = await self.refresher.load_agent_meta()
        if config is not None:
            self.store.set_agent_config(config)
        else:
            self._record_missing(ENTITY_CONFIG, errors)
        if status is not None:
            self.store.set_agent_status(status)
        else:
            self._record_missing(ENTITY_STATUS, errors)

        await self.run_pipeline(
            (
                RefreshStep("queue", self._refresh_queue_step),
                RefreshStep("summary", self._refresh_summary_step),
            )
        )
        logger.info("orchestrator_initial_state_loaded", version=self.store.version)

    # ------------------------------------------------------------------
    # Mutating operations
    # ------------------------------------------------------------------

    async def process_next(self) -> RunOnceResult:
        """Process at most one pending message, then run the full refresh."""
        with self._manual_run("process_next"):
            return await self._process_next()

    async def _process_next(self) -> RunOnceResult:
        try:
            result = parse_snapshot(RunOnceResult, await self.transport.post(RUN_ONCE_PATH))
            self.store.set_status_message(MSG_PROCESSED if result.processed else MSG_NOTHING_PENDING)
            logger.info("orchestrator_run_once", processed=result.processed)
        finally:
            await self.run_pipeline(self.full_pipeline)
        return result

    async def run_bounded(self, max_steps: int) -> RunLoopResult:
        """Process up to ``max_steps`` messages in one backend call, then refresh."""
        if max_steps <= 0:
            raise ValueError("max_steps must be a positive integer")

        with self._manual_run("run_bounded"):
            try:
                result = parse_snapshot(
                    RunLoopResult,
                    await self.transport.post(RUN_LOOP_PATH, {"max_steps": max_steps}),
                )
                logger.info("orchestrator_run_loop", max_steps=max_steps, processed=result.processed)
            finally:
                await self.run_pipeline(self.full_pipeline)
            return result

    async def seed(self) -> None:
        """Ask the backend to seed sample vendor requests."""
        with self._manual_run("seed"):
            try:
                # Seeding parameters are backend-determined; the list is reserved.
                await self.transport.post(SEED_VENDORS_PATH, [])
                self.store.mark_seeded()
                logger.info("orchestrator_seeded")
            finally:
                await self.run_pipeline(self.seed_pipeline)

    async def ingest(self, draft: IngestDraft) -> None:
        """Submit a synthetic inbound message; it should show up in the queue."""
        with self._manual_run("ingest"):
            try:
                await self.transport.post(INGEST_MOCK_EMAIL_PATH, draft.model_dump())
                logger.info("orchestrator_ingested", subject=draft.subject)
            finally:
                await self.run_pipeline(self.full_pipeline)

    # ------------------------------------------------------------------
    # Auto cycle
    # ------------------------------------------------------------------

    def start_auto(self) -> None:
        """Arm the auto cycle. Re-arms (never duplicates) when already running."""
        if self._timer is not None:
            self._disarm()
        self._timer = self.scheduler.schedule(
            self.config.auto_interval_seconds, self.auto_tick, name=AUTO_CYCLE_TIMER_NAME
        )
        self.auto_run_enabled = True
        self._check_timer_invariant()
        logger.info("auto_cycle_started", interval_seconds=self.config.auto_interval_seconds)

    def stop_auto(self) -> None:
        """Disarm the auto cycle. No-op when it is not running."""
        if self._timer is not None:
            self._disarm()
            logger.info("auto_cycle_stopped")
        self.auto_run_enabled = False
        self._check_timer_invariant()

    def _disarm(self) -> None:
        timer = self._timer
        if timer is None:
            return
        self.scheduler.cancel(timer)
        self._ticks_skipped += timer.ticks_skipped
        self._timer = None

    def _check_timer_invariant(self) -> None:
        armed = self.scheduler.active_count(AUTO_CYCLE_TIMER_NAME)
        expected = 1 if self.auto_run_enabled else 0
        if (self._timer is not None) != self.auto_run_enabled or armed != expected:
            raise OrchestrationInvariantError(
                f"auto cycle has {armed} armed timer(s), expected {expected}"
            )

    @property
    def tick_running(self) -> bool:
        """True while an auto tick is in flight, including one left by a stopped timer."""
        return self._tick_in_flight is not None and not self._tick_in_flight.done()

    async def auto_tick(self) -> None:
        """
        One auto-cycle tick: same steps as process-next, failures become a status line.

        A tick that fires while another auto tick is still running is skipped,
        even when the two come from different timers (start while running, or
        stop then start).
        """
        if self.tick_running:
            self._ticks_skipped += 1
            logger.info("auto_tick_skipped")
            return

        self._tick_in_flight = asyncio.current_task()
        tick = next(self._tick_numbers)
        with structlog.contextvars.bound_contextvars(auto_tick=tick):
            try:
                await self._process_next()
            except AgentServiceError as e:
                logger.warning("auto_tick_failed", error=str(e))
                self.store.set_status_message(
                    MSG_ACTION_FAILED.format(action=ACTION_PROCESS, error=e)
                )
            finally:
                self._ticks_completed += 1
                self._tick_in_flight = None

    async def wait_for_ticks(self) -> None:
        """Wait for the auto tick still running, if any (also after stop_auto)."""
        tick = self._tick_in_flight
        if tick is not None and tick is not asyncio.current_task() and not tick.done():
            await asyncio.wait({tick})

    async def shutdown(self) -> None:
        """Teardown: disarm the auto cycle so no orphaned ticks remain."""
        self.stop_auto()
        await self.wait_for_ticks()
        logger.info("orchestrator_shutdown")
