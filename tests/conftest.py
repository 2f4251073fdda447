"""
Shared test fixtures for the agent console test suite.

The agent backend is replaced by FakeAgentBackend, an in-memory model of the
REST endpoints served through httpx.MockTransport; no real network traffic.
"""

import asyncio
import itertools
import json
from typing import Any

import httpx
import pytest
import structlog
from fastapi.testclient import TestClient

from agent_console.config import OrchestratorConfig
from agent_console.services.actions import ConsoleActions
from agent_console.services.orchestrator import Orchestrator
from agent_console.services.poller import MailboxPoller
from agent_console.services.refresher import SummaryRefresher
from agent_console.services.scheduler import IntervalScheduler
from agent_console.services.state_store import StateStore
from agent_console.services.transport import TransportClient

BACKEND_URL = "http://agent.test"

SEEDED_REQUESTS = [
    {"request_id": "VR-2025-0012", "vendor": "Acme Supplies", "status": "under_review"},
    {"request_id": "VR-2025-0013", "vendor": "Globex", "status": "approved"},
    {"request_id": "VR-2025-0014", "vendor": "Initech", "status": "docs_missing"},
]


class FakeAgentBackend:
    """In-memory stand-in for the vendor-inquiry agent REST API."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, str, Any]] = []
        self.queue: list[dict] = []
        self.logs: list[dict] = []
        self.vendor_requests: list[dict] = []
        self.responded = 0
        self.escalated = 0
        # path -> HTTP status to answer with instead of the normal response
        self.failures: dict[str, int] = {}
        # paths answered with a non-JSON body
        self.malformed: set[str] = set()
        # path -> seconds to wait before answering
        self.delays: dict[str, float] = {}
        self._ids = itertools.count(1)

    # -- helpers ---------------------------------------------------------

    def calls_to(self, path: str, method: str | None = None) -> list[tuple[str, str, Any]]:
        return [c for c in self.calls if c[1] == path and (method is None or c[0] == method)]

    def add_message(self, sender: str, subject: str, body: str) -> dict:
        n = next(self._ids)
        item = {
            "messageId": f"msg-{n}",
            "threadId": f"thr-{n}",
            "from": sender,
            "subject": subject,
            "snippet": body[:80],
        }
        self.queue.append(item)
        return item

    def _process_one(self) -> bool:
        if not self.queue:
            return False
        item = self.queue.pop(0)
        intent = "status" if "status" in item["subject"].lower() else "docs"
        self.logs.append(
            {
                "_id": f"log-{len(self.logs) + 1}",
                "from_email": item["from"],
                "subject": item["subject"],
                "intent": intent,
                "entities": {"request_id": "VR-2025-0012"},
                "resolution_type": "auto_resolved",
                "labels": ["VM-QUERIES", "VM-RESPONDED"],
            }
        )
        self.responded += 1
        return True

    def status(self) -> dict:
        pending = len(self.queue) + sum(1 for r in self.vendor_requests if r["status"] != "approved")
        return {
            "pending": pending,
            "in_process": 0,
            "responded": self.responded,
            "escalated": self.escalated,
        }

    def summary(self) -> dict:
        by_intent: dict[str, int] = {}
        for entry in self.logs:
            by_intent[entry["intent"]] = by_intent.get(entry["intent"], 0) + 1
        return {
            "total": len(self.logs),
            "auto_resolved": sum(1 for e in self.logs if e["resolution_type"] == "auto_resolved"),
            "info_request": 0,
            "escalated": self.escalated,
            "by_intent": by_intent,
        }

    # -- transport -------------------------------------------------------

    async def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        body = json.loads(request.content) if request.content else None
        self.calls.append((request.method, path, body))

        if path in self.delays:
            await asyncio.sleep(self.delays[path])
        if path in self.failures:
            return httpx.Response(self.failures[path], text="backend exploded")
        if path in self.malformed:
            return httpx.Response(200, text="<html>not json</html>")

        route = (request.method, path)
        if route == ("GET", "/agent/config"):
            return httpx.Response(200, json={"gmail_mode": "mock", "gemini_mode": "mock"})
        if route == ("GET", "/agent/status"):
            return httpx.Response(200, json=self.status())
        if route == ("GET", "/gmail/poll"):
            return httpx.Response(200, json={"items": list(self.queue)})
        if route == ("GET", "/analytics/summary"):
            return httpx.Response(200, json=self.summary())
        if route == ("GET", "/logs"):
            return httpx.Response(200, json=list(self.logs))
        if route == ("POST", "/seed/vendors"):
            self.vendor_requests = [dict(r) for r in SEEDED_REQUESTS]
            return httpx.Response(200, json={"ok": True, "inserted": len(self.vendor_requests)})
        if route == ("POST", "/ingest/mock-email"):
            item = self.add_message(body["from_email"], body["subject"], body["body"])
            return httpx.Response(200, json={"ok": True, "messageId": item["messageId"]})
        if route == ("POST", "/agent/run-once"):
            return httpx.Response(200, json={"processed": self._process_one()})
        if route == ("POST", "/agent/run-loop"):
            processed = 0
            while processed < body["max_steps"] and self._process_one():
                processed += 1
            return httpx.Response(200, json={"processed": processed})
        return httpx.Response(404, text="not found")


@pytest.fixture(autouse=True)
def _configure_structlog_for_tests():
    """Configure structlog for tests using a simple, deterministic setup."""
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(0),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )


@pytest.fixture
def fake_backend() -> FakeAgentBackend:
    return FakeAgentBackend()


@pytest.fixture
def transport(fake_backend: FakeAgentBackend) -> TransportClient:
    return TransportClient(BACKEND_URL, transport=httpx.MockTransport(fake_backend.handler))


@pytest.fixture
def store() -> StateStore:
    return StateStore()


@pytest.fixture
def scheduler() -> IntervalScheduler:
    return IntervalScheduler()


@pytest.fixture
def orchestrator_config() -> OrchestratorConfig:
    return OrchestratorConfig(auto_interval_seconds=0.02)


@pytest.fixture
def orchestrator(
    transport: TransportClient,
    store: StateStore,
    scheduler: IntervalScheduler,
    orchestrator_config: OrchestratorConfig,
) -> Orchestrator:
    return Orchestrator(
        transport,
        store,
        MailboxPoller(transport, store),
        SummaryRefresher(transport),
        scheduler,
        orchestrator_config,
    )


@pytest.fixture
def actions(orchestrator: Orchestrator, store: StateStore) -> ConsoleActions:
    return ConsoleActions(orchestrator, store)


@pytest.fixture
def client(
    monkeypatch: pytest.MonkeyPatch,
    transport: TransportClient,
    store: StateStore,
    orchestrator: Orchestrator,
    actions: ConsoleActions,
) -> TestClient:
    """FastAPI TestClient with console services wired to the fake backend."""
    monkeypatch.setenv("BACKEND_URL", BACKEND_URL)
    # Clear the lru_cache so settings pick up test env vars
    from agent_console.config import get_settings

    get_settings.cache_clear()

    from agent_console.main import app

    app.state.settings = get_settings()
    app.state.transport = transport
    app.state.store = store
    app.state.orchestrator = orchestrator
    app.state.actions = actions
    return TestClient(app)
