"""Models for the console view served to the operator."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field, computed_field

from agent_console.models.agent import (
    AgentConfig,
    AgentStatus,
    AnalyticsSummary,
    IngestDraft,
    LogEntry,
    QueueItem,
)


class RunState(str, Enum):
    """Orchestrator state machine."""

    IDLE = "idle"
    MANUAL_RUNNING = "manual_running"
    AUTO_RUNNING = "auto_running"


class RefreshHealth(BaseModel):
    """Outcome of the latest refreshes of one entity."""

    last_success_at: datetime | None = None
    last_failure_at: datetime | None = None
    # Error of the most recent attempt; cleared by the next success
    last_error: str | None = None

    @computed_field
    @property
    def stale(self) -> bool:
        """True when the most recent attempt failed."""
        return self.last_error is not None


class ConsoleSnapshot(BaseModel):
    """Immutable copy of everything the state store holds."""

    version: int
    agent_config: AgentConfig | None = None
    agent_status: AgentStatus | None = None
    queue: list[QueueItem] = Field(default_factory=list)
    logs: list[LogEntry] = Field(default_factory=list)
    analytics: AnalyticsSummary | None = None
    draft: IngestDraft = Field(default_factory=IngestDraft)
    status_message: str = ""
    seeded: bool = False
    refreshing: bool = False
    refresh_health: dict[str, RefreshHealth] = Field(default_factory=dict)


class OrchestrationView(BaseModel):
    """Orchestrator state as shown on the console."""

    run_state: RunState
    auto_run_enabled: bool
    auto_interval_seconds: float
    ticks_completed: int = 0
    ticks_skipped: int = 0


class ConsoleView(BaseModel):
    """Full display payload: store snapshot plus orchestration state."""

    backend_url: str
    snapshot: ConsoleSnapshot
    orchestration: OrchestrationView


class ActionResponse(BaseModel):
    """Result of an operator action."""

    message: str
    view: ConsoleView
