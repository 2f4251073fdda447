"""
Vendor Inquiry Agent Console - Main FastAPI Application.

Operator console that drives and observes the vendor-inquiry agent service:
seed sample data, ingest mock emails, process the queue manually or on an
automatic cycle, and watch status, queue, threads and analytics.

Run with:
    uvicorn agent_console.main:app --reload --port 8080
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from agent_console.api.v1.console import router as console_router
from agent_console.config import get_settings
from agent_console.constants import API_TITLE, API_VERSION
from agent_console.logging_config import setup_logging
from agent_console.middleware import RequestContextMiddleware
from agent_console.services.actions import ConsoleActions
from agent_console.services.orchestrator import Orchestrator
from agent_console.services.poller import MailboxPoller
from agent_console.services.refresher import SummaryRefresher
from agent_console.services.scheduler import IntervalScheduler
from agent_console.services.state_store import StateStore
from agent_console.services.transport import TransportClient

# Get settings before logging setup so we know the debug flag
settings = get_settings()

# Configure logging
setup_logging(settings.debug)

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Lifespan event handler for startup and shutdown."""
    logger.info("api_startup", backend_url=settings.backend_url, cors_origins=settings.cors_origins)

    # Create services once at startup
    transport = TransportClient(settings.backend_url, settings.transport)
    store = StateStore()
    scheduler = IntervalScheduler()
    orchestrator = Orchestrator(
        transport,
        store,
        MailboxPoller(transport, store),
        SummaryRefresher(transport),
        scheduler,
        settings.orchestrator,
    )

    _app.state.settings = settings
    _app.state.transport = transport
    _app.state.store = store
    _app.state.orchestrator = orchestrator
    _app.state.actions = ConsoleActions(orchestrator, store)

    logger.info("services_initialized")

    if settings.orchestrator.load_on_startup:
        await orchestrator.load_initial_state()

    yield

    # Teardown cancels the auto cycle so no tick outlives the console.
    await orchestrator.shutdown()
    await scheduler.shutdown()
    await transport.close()
    logger.info("api_shutdown")


# Create FastAPI app
app = FastAPI(
    title=API_TITLE,
    description=(
        "Operator console for the vendor-inquiry agent: drives run-once, "
        "bounded run-loops and an automatic cycle, and reconciles the agent's "
        "status, mailbox queue, interaction logs and analytics."
    ),
    version=API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# Request context middleware must come before CORS so every response gets
# the X-Request-ID header (including preflight OPTIONS responses).
app.add_middleware(RequestContextMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Include routers
app.include_router(console_router, prefix="/api/v1")


@app.get("/")
async def root() -> dict:
    """Root endpoint with API info."""
    return {
        "name": API_TITLE,
        "version": API_VERSION,
        "backend_url": settings.backend_url,
        "console": "/api/v1/console",
        "docs": "/docs",
    }


@app.get("/health")
async def health() -> dict:
    """Health check endpoint."""
    return {"status": "healthy"}
