"""
Data models for agent backend snapshots.

Every model here mirrors a JSON body returned by the agent service. Snapshots
accept unknown fields so a stored snapshot carries the full response body;
the console never computes these values locally.
"""

from enum import Enum
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from agent_console.constants import (
    DEFAULT_DRAFT_BODY,
    DEFAULT_DRAFT_FROM_EMAIL,
    DEFAULT_DRAFT_SUBJECT,
)
from agent_console.exceptions import MalformedResponseError


class ServiceMode(str, Enum):
    """Whether a backend subsystem is simulated or real."""

    MOCK = "mock"
    LIVE = "live"


class BackendSnapshot(BaseModel):
    """Base for pass-through snapshots received from the agent service."""

    model_config = ConfigDict(extra="allow", populate_by_name=True, frozen=True)


class AgentConfig(BackendSnapshot):
    """Which backend subsystems run in mock vs. live mode."""

    gmail_mode: ServiceMode = ServiceMode.MOCK
    gemini_mode: ServiceMode = ServiceMode.MOCK


class AgentStatus(BackendSnapshot):
    """Point-in-time counters of the agent's message pipeline."""

    pending: int = Field(default=0, ge=0)
    in_process: int = Field(default=0, ge=0)
    responded: int = Field(default=0, ge=0)
    escalated: int = Field(default=0, ge=0)


class QueueItem(BackendSnapshot):
    """One inbound message visible in the polled mailbox view."""

    message_id: str | None = Field(default=None, alias="messageId")
    thread_id: str | None = Field(default=None, alias="threadId")
    sender: str = Field(default="", alias="from")
    subject: str = ""
    snippet: str = ""

    @property
    def key(self) -> str | None:
        """Identity key: messageId, falling back to threadId."""
        return self.message_id or self.thread_id


class PollResponse(BackendSnapshot):
    """Body of GET /gmail/poll."""

    items: list[QueueItem] = Field(default_factory=list)


class LogEntities(BackendSnapshot):
    """Entities the agent extracted from an inquiry."""

    request_id: str | None = None


class LogEntry(BackendSnapshot):
    """One completed interaction."""

    id: str = Field(alias="_id")
    from_email: str = ""
    subject: str = ""
    intent: str | None = None
    entities: LogEntities | None = None
    resolution_type: str | None = None
    labels: list[str] = Field(default_factory=list)


class AnalyticsSummary(BackendSnapshot):
    """Aggregate interaction counters."""

    total: int = 0
    auto_resolved: int = 0
    info_request: int = 0
    escalated: int = 0
    by_intent: dict[str, int] = Field(default_factory=dict)


class RunOnceResult(BackendSnapshot):
    """Body of POST /agent/run-once."""

    processed: bool


class RunLoopResult(BackendSnapshot):
    """Body of POST /agent/run-loop."""

    processed: int = Field(ge=0)


class IngestDraft(BaseModel):
    """Operator-edited synthetic inbound message, submitted on ingest."""

    from_email: str = DEFAULT_DRAFT_FROM_EMAIL
    subject: str = DEFAULT_DRAFT_SUBJECT
    body: str = DEFAULT_DRAFT_BODY


SnapshotT = TypeVar("SnapshotT", bound=BaseModel)


def parse_snapshot(model: type[SnapshotT], body: Any) -> SnapshotT:
    """
    Validate a backend JSON body against a snapshot model.

    Raises:
        MalformedResponseError: If the body does not have the expected shape.
    """
    try:
        return model.model_validate(body)
    except ValidationError as e:
        raise MalformedResponseError(
            f"unexpected {model.__name__} payload: {e.error_count()} validation error(s)"
        ) from e


def parse_log_entries(body: Any) -> list[LogEntry]:
    """Validate a GET /logs body (a JSON array of log entries)."""
    if not isinstance(body, list):
        raise MalformedResponseError(
            f"unexpected logs payload: expected a list, got {type(body).__name__}"
        )
    return [parse_snapshot(LogEntry, entry) for entry in body]
