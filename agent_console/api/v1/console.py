"""
Console API endpoints.

The operator console's action surface and display surface:
- GET  /api/v1/console                  - current view (snapshot + orchestration state)
- GET  /api/v1/console/events           - SSE stream of the view, pushed on every change
- PUT  /api/v1/console/draft            - edit the ingest draft
- POST /api/v1/console/seed             - seed sample vendor requests
- POST /api/v1/console/ingest           - ingest the draft as a mock email
- POST /api/v1/console/process-next     - run the agent once
- POST /api/v1/console/run-loop         - run the agent for up to N steps
- POST /api/v1/console/auto/start       - start the auto cycle
- POST /api/v1/console/auto/stop        - stop the auto cycle
- POST /api/v1/console/refresh/queue    - re-poll the mailbox queue
- POST /api/v1/console/refresh/summary  - re-fetch analytics and threads
"""

import asyncio
from typing import AsyncGenerator

import structlog
from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field
from sse_starlette.sse import EventSourceResponse

from agent_console.models.agent import IngestDraft
from agent_console.models.console import ActionResponse, ConsoleView
from agent_console.services.actions import ConsoleActions
from agent_console.services.orchestrator import Orchestrator
from agent_console.services.state_store import StateStore

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/console", tags=["console"])


class RunLoopRequest(BaseModel):
    """Request body for a bounded run-loop."""

    max_steps: int | None = Field(default=None, gt=0, description="Step bound (default from config)")


def _get_state(request: Request, name: str):
    service = getattr(request.app.state, name, None)
    if service is None:
        raise HTTPException(status_code=503, detail="Console services are not initialized")
    return service


def _get_actions(request: Request) -> ConsoleActions:
    return _get_state(request, "actions")


def build_view(request: Request) -> ConsoleView:
    store: StateStore = _get_state(request, "store")
    orchestrator: Orchestrator = _get_state(request, "orchestrator")
    return ConsoleView(
        backend_url=orchestrator.transport.base_url,
        snapshot=store.snapshot(),
        orchestration=orchestrator.describe(),
    )


def _respond(request: Request, message: str) -> ActionResponse:
    return ActionResponse(message=message, view=build_view(request))


async def stream_view(request: Request, poll_seconds: float) -> AsyncGenerator[dict, None]:
    """
    Yield the console view as SSE events whenever the store version changes.

    Args:
        request:      Incoming request (used to detect client disconnects).
        poll_seconds: Interval between store version checks.
    """
    store: StateStore = _get_state(request, "store")
    last_version = -1
    try:
        while not await request.is_disconnected():
            if store.version != last_version:
                view = build_view(request)
                last_version = view.snapshot.version
                yield {"event": "view", "data": view.model_dump_json(by_alias=True)}
            await asyncio.sleep(poll_seconds)
    except asyncio.CancelledError:
        logger.debug("console_stream_closed", last_version=last_version)
        raise


@router.get("", response_model=ConsoleView)
async def get_console(request: Request) -> ConsoleView:
    """Return the current console view."""
    return build_view(request)


@router.get("/events", response_class=EventSourceResponse)
async def console_events(request: Request) -> EventSourceResponse:
    """
    Stream the console view with Server-Sent Events.

    Example usage with curl:
    ```
    curl -N http://localhost:8080/api/v1/console/events
    ```
    """
    settings = _get_state(request, "settings")
    return EventSourceResponse(stream_view(request, settings.console.stream_poll_seconds))


@router.put("/draft", response_model=IngestDraft)
async def update_draft(body: IngestDraft, request: Request) -> IngestDraft:
    """Replace the ingest draft."""
    return _get_actions(request).update_draft(body)


@router.post("/seed", response_model=ActionResponse)
async def seed(request: Request) -> ActionResponse:
    message = await _get_actions(request).seed()
    return _respond(request, message)


@router.post("/ingest", response_model=ActionResponse)
async def ingest(request: Request, body: IngestDraft | None = None) -> ActionResponse:
    """Ingest the given draft, or the stored draft when the body is empty."""
    message = await _get_actions(request).ingest(body)
    return _respond(request, message)


@router.post("/process-next", response_model=ActionResponse)
async def process_next(request: Request) -> ActionResponse:
    message = await _get_actions(request).process_next()
    return _respond(request, message)


@router.post("/run-loop", response_model=ActionResponse)
async def run_loop(request: Request, body: RunLoopRequest | None = None) -> ActionResponse:
    max_steps = body.max_steps if body is not None else None
    message = await _get_actions(request).run_loop(max_steps)
    return _respond(request, message)


@router.post("/auto/start", response_model=ActionResponse)
async def start_auto(request: Request) -> ActionResponse:
    message = _get_actions(request).start_auto()
    return _respond(request, message)


@router.post("/auto/stop", response_model=ActionResponse)
async def stop_auto(request: Request) -> ActionResponse:
    message = _get_actions(request).stop_auto()
    return _respond(request, message)


@router.post("/refresh/queue", response_model=ActionResponse)
async def refresh_queue(request: Request) -> ActionResponse:
    message = await _get_actions(request).refresh_queue()
    return _respond(request, message)


@router.post("/refresh/summary", response_model=ActionResponse)
async def refresh_summary(request: Request) -> ActionResponse:
    message = await _get_actions(request).refresh_summary()
    return _respond(request, message)
