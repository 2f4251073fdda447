"""
Operator actions.

One entry point per console button. Each sets an in-progress status line,
delegates to the orchestrator, then sets the result line. A backend failure
becomes "<Action> failed: <description>" on the status line; it is never
raised to the caller. No business logic lives here beyond message formatting.
"""

import structlog

from agent_console.constants import (
    ACTION_INGEST,
    ACTION_PROCESS,
    ACTION_RUN_LOOP,
    ACTION_SEED,
    MSG_ACTION_FAILED,
    MSG_AUTO_STARTED,
    MSG_AUTO_STARTING,
    MSG_AUTO_STOPPED,
    MSG_AUTO_STOPPING,
    MSG_INGESTED,
    MSG_INGESTING,
    MSG_NOTHING_PENDING,
    MSG_PROCESSED,
    MSG_PROCESSING,
    MSG_QUEUE_REFRESHED,
    MSG_REFRESHING_QUEUE,
    MSG_REFRESHING_SUMMARY,
    MSG_RUN_LOOP_DONE,
    MSG_RUN_LOOP_STARTED,
    MSG_SEEDED,
    MSG_SEEDING,
    MSG_SUMMARY_REFRESHED,
)
from agent_console.exceptions import AgentServiceError
from agent_console.models.agent import IngestDraft
from agent_console.services.orchestrator import Orchestrator
from agent_console.services.state_store import StateStore

logger = structlog.get_logger(__name__)


class ConsoleActions:
    """User-invocable console operations."""

    def __init__(self, orchestrator: Orchestrator, store: StateStore) -> None:
        self.orchestrator = orchestrator
        self.store = store

    def _say(self, message: str) -> str:
        self.store.set_status_message(message)
        return message

    def _failed(self, action: str, error: AgentServiceError) -> str:
        logger.warning("console_action_failed", action=action, error=str(error))
        return self._say(MSG_ACTION_FAILED.format(action=action, error=error))

    async def seed(self) -> str:
        self._say(MSG_SEEDING)
        try:
            await self.orchestrator.seed()
        except AgentServiceError as e:
            return self._failed(ACTION_SEED, e)
        return self._say(MSG_SEEDED)

    async def ingest(self, draft: IngestDraft | None = None) -> str:
        """Submit ``draft``, or the stored draft when none is given."""
        if draft is not None:
            self.store.set_draft(draft)
        self._say(MSG_INGESTING)
        try:
            await self.orchestrator.ingest(self.store.draft)
        except AgentServiceError as e:
            return self._failed(ACTION_INGEST, e)
        return self._say(MSG_INGESTED)

    async def process_next(self) -> str:
        self._say(MSG_PROCESSING)
        try:
            result = await self.orchestrator.process_next()
        except AgentServiceError as e:
            return self._failed(ACTION_PROCESS, e)
        return self._say(MSG_PROCESSED if result.processed else MSG_NOTHING_PENDING)

    async def run_loop(self, steps: int | None = None) -> str:
        if steps is None:
            steps = self.orchestrator.config.default_run_steps
        self._say(MSG_RUN_LOOP_STARTED.format(steps=steps))
        try:
            result = await self.orchestrator.run_bounded(steps)
        except AgentServiceError as e:
            return self._failed(ACTION_RUN_LOOP, e)
        return self._say(MSG_RUN_LOOP_DONE.format(processed=result.processed))

    def start_auto(self) -> str:
        self._say(MSG_AUTO_STARTING)
        self.orchestrator.start_auto()
        return self._say(
            MSG_AUTO_STARTED.format(interval=self.orchestrator.config.auto_interval_seconds)
        )

    def stop_auto(self) -> str:
        self._say(MSG_AUTO_STOPPING)
        self.orchestrator.stop_auto()
        return self._say(MSG_AUTO_STOPPED)

    def update_draft(self, draft: IngestDraft) -> IngestDraft:
        self.store.set_draft(draft)
        return self.store.draft

    async def refresh_queue(self) -> str:
        self._say(MSG_REFRESHING_QUEUE)
        count = await self.orchestrator.refresh_queue()
        return self._say(MSG_QUEUE_REFRESHED.format(count=count))

    async def refresh_summary(self) -> str:
        self._say(MSG_REFRESHING_SUMMARY)
        await self.orchestrator.refresh_summary()
        return self._say(MSG_SUMMARY_REFRESHED)
