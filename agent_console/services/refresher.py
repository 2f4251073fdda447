"""
Analytics / interaction-log refresher.

Fetches related read-only snapshots concurrently and reports each one
independently: a failed fetch yields ``None`` ("no update") for that entity
only. Writing the results into the state store is the orchestrator's job.

Usage:
    refresher = SummaryRefresher(transport)
    summary, logs, errors = await refresher.refresh_summary()
    # summary is None when /analytics/summary failed (errors["analytics"] says
    # why); logs may still be set.
"""

import asyncio
from functools import partial
from typing import Any, Callable, NamedTuple, TypeVar

import structlog

from agent_console.constants import (
    AGENT_CONFIG_PATH,
    AGENT_STATUS_PATH,
    ANALYTICS_SUMMARY_PATH,
    ENTITY_ANALYTICS,
    ENTITY_CONFIG,
    ENTITY_LOGS,
    ENTITY_STATUS,
    LOGS_PATH,
)
from agent_console.exceptions import AgentServiceError
from agent_console.models.agent import (
    AgentConfig,
    AgentStatus,
    AnalyticsSummary,
    LogEntry,
    parse_log_entries,
    parse_snapshot,
)
from agent_console.services.transport import TransportClient

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class SummaryRefresh(NamedTuple):
    """Outcome of one summary refresh; errors are keyed by state store entity."""

    summary: AnalyticsSummary | None
    logs: list[LogEntry] | None
    errors: dict[str, AgentServiceError]


class AgentMeta(NamedTuple):
    """Outcome of one startup metadata load."""

    config: AgentConfig | None
    status: AgentStatus | None
    errors: dict[str, AgentServiceError]


class SummaryRefresher:
    """Best-effort reader of analytics, logs and agent metadata."""

    def __init__(self, transport: TransportClient) -> None:
        self.transport = transport

    async def refresh_summary(self) -> SummaryRefresh:
        """
        Fetch the analytics summary and the interaction logs in parallel.

        Returns:
            SummaryRefresh; summary or logs is None when its fetch failed, and
            the failure is in ``errors`` for that call only.
        """
        errors: dict[str, AgentServiceError] = {}
        summary, logs = await asyncio.gather(
            self._fetch(
                ENTITY_ANALYTICS, ANALYTICS_SUMMARY_PATH, partial(parse_snapshot, AnalyticsSummary), errors
            ),
            self._fetch(ENTITY_LOGS, LOGS_PATH, parse_log_entries, errors),
        )
        return SummaryRefresh(summary, logs, errors)

    async def load_agent_meta(self) -> AgentMeta:
        """Fetch agent configuration and status counters in parallel (startup)."""
        errors: dict[str, AgentServiceError] = {}
        config, status = await asyncio.gather(
            self._fetch(ENTITY_CONFIG, AGENT_CONFIG_PATH, partial(parse_snapshot, AgentConfig), errors),
            self._fetch(ENTITY_STATUS, AGENT_STATUS_PATH, partial(parse_snapshot, AgentStatus), errors),
        )
        return AgentMeta(config, status, errors)

    async def _fetch(
        self,
        entity: str,
        path: str,
        parse: Callable[[Any], T],
        errors: dict[str, AgentServiceError],
    ) -> T | None:
        try:
            return parse(await self.transport.get(path))
        except AgentServiceError as e:
            logger.warning("refresh_fetch_failed", backend_path=path, error=str(e))
            errors[entity] = e
            return None
