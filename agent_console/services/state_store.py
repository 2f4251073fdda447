"""
State store for the console view.

Holds the latest snapshot of every backend entity plus the local draft and
status line. Entity snapshots are replaced wholesale, never merged field by
field, so a reader can never observe a half-updated composite. Writers are
the Orchestrator and the Poller; the Action Surface only touches the status
line and the draft.

Each write bumps ``version`` so the event stream can tell when to push a new
view without holding an asyncio primitive bound to one event loop.
"""

from datetime import UTC, datetime

import structlog

from agent_console.constants import (
    ENTITIES,
    ENTITY_ANALYTICS,
    ENTITY_CONFIG,
    ENTITY_LOGS,
    ENTITY_QUEUE,
    ENTITY_STATUS,
)
from agent_console.models.agent import (
    AgentConfig,
    AgentStatus,
    AnalyticsSummary,
    IngestDraft,
    LogEntry,
    QueueItem,
)
from agent_console.models.console import ConsoleSnapshot, RefreshHealth

logger = structlog.get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class StateStore:
    """Single in-memory holder of the console snapshot."""

    def __init__(self, draft: IngestDraft | None = None) -> None:
        self.version = 0
        self.agent_config: AgentConfig | None = None
        self.agent_status: AgentStatus | None = None
        self.queue: tuple[QueueItem, ...] = ()
        self.logs: tuple[LogEntry, ...] = ()
        self.analytics: AnalyticsSummary | None = None
        self.draft: IngestDraft = draft or IngestDraft()
        self.status_message = ""
        self.seeded = False
        self._refreshes_in_flight = 0
        self.refresh_health: dict[str, RefreshHealth] = {
            entity: RefreshHealth() for entity in ENTITIES
        }

    # ------------------------------------------------------------------
    # Entity setters (wholesale replacement)
    # ------------------------------------------------------------------

    def set_agent_config(self, config: AgentConfig) -> None:
        self.agent_config = config
        self._record_success(ENTITY_CONFIG)

    def set_agent_status(self, status: AgentStatus) -> None:
        self.agent_status = status
        self._record_success(ENTITY_STATUS)

    def set_queue(self, items: list[QueueItem]) -> None:
        self.queue = tuple(items)
        self._record_success(ENTITY_QUEUE)

    def clear_queue(self) -> None:
        """Empty the queue view after a failed poll (not a successful refresh)."""
        self.queue = ()
        self._bump()

    def set_logs(self, logs: list[LogEntry]) -> None:
        self.logs = tuple(logs)
        self._record_success(ENTITY_LOGS)

    def set_analytics(self, summary: AnalyticsSummary) -> None:
        self.analytics = summary
        self._record_success(ENTITY_ANALYTICS)

    # ------------------------------------------------------------------
    # Local state
    # ------------------------------------------------------------------

    def set_draft(self, draft: IngestDraft) -> None:
        self.draft = draft
        self._bump()

    def set_status_message(self, message: str) -> None:
        self.status_message = message
        self._bump()

    def mark_seeded(self) -> None:
        self.seeded = True
        self._bump()

    def begin_refresh(self) -> None:
        self._refreshes_in_flight += 1
        self._bump()

    def end_refresh(self) -> None:
        self._refreshes_in_flight = max(0, self._refreshes_in_flight - 1)
        self._bump()

    @property
    def refreshing(self) -> bool:
        return self._refreshes_in_flight > 0

    # ------------------------------------------------------------------
    # Refresh bookkeeping
    # ------------------------------------------------------------------

    def record_failure(self, entity: str, error: Exception | str) -> None:
        """
        Note a failed best-effort refresh of one entity.

        The entity's prior snapshot stays in place; only the health record
        changes, so staleness remains visible on the console.
        """
        health = self.refresh_health[entity]
        self.refresh_health[entity] = health.model_copy(
            update={"last_failure_at": _utcnow(), "last_error": str(error)}
        )
        logger.debug("state_store_refresh_failure_recorded", entity=entity, error=str(error))
        self._bump()

    def _record_success(self, entity: str) -> None:
        health = self.refresh_health[entity]
        self.refresh_health[entity] = health.model_copy(
            update={"last_success_at": _utcnow(), "last_error": None}
        )
        self._bump()

    def _bump(self) -> None:
        self.version += 1

    def snapshot(self) -> ConsoleSnapshot:
        """Return an immutable copy of the current state."""
        return ConsoleSnapshot(
            version=self.version,
            agent_config=self.agent_config,
            agent_status=self.agent_status,
            queue=list(self.queue),
            logs=list(self.logs),
            analytics=self.analytics,
            draft=self.draft,
            status_message=self.status_message,
            seeded=self.seeded,
            refreshing=self.refreshing,
            refresh_health=dict(self.refresh_health),
        )
