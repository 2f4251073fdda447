"""
Stable constants for the agent console.

Backend endpoint paths and operator-facing status messages live here. For
operational parameters that vary per environment (backend URL, intervals,
timeouts), see config.py.
"""

API_TITLE = "Vendor Inquiry Agent Console"
API_VERSION = "0.1.0"

# --- Agent backend endpoints ---
ANALYTICS_SUMMARY_PATH = "/analytics/summary"
LOGS_PATH = "/logs"
AGENT_CONFIG_PATH = "/agent/config"
AGENT_STATUS_PATH = "/agent/status"
GMAIL_POLL_PATH = "/gmail/poll"
SEED_VENDORS_PATH = "/seed/vendors"
INGEST_MOCK_EMAIL_PATH = "/ingest/mock-email"
RUN_ONCE_PATH = "/agent/run-once"
RUN_LOOP_PATH = "/agent/run-loop"

# --- State store entity keys (used for refresh bookkeeping) ---
ENTITY_CONFIG = "config"
ENTITY_STATUS = "status"
ENTITY_QUEUE = "queue"
ENTITY_ANALYTICS = "analytics"
ENTITY_LOGS = "logs"
ENTITIES: tuple[str, ...] = (
    ENTITY_CONFIG,
    ENTITY_STATUS,
    ENTITY_QUEUE,
    ENTITY_ANALYTICS,
    ENTITY_LOGS,
)

# --- Scheduler ---
AUTO_CYCLE_TIMER_NAME = "auto-cycle"

# --- Default ingest draft ---
DEFAULT_DRAFT_FROM_EMAIL = "vendor@example.com"
DEFAULT_DRAFT_SUBJECT = "What is the status of VR-2025-0012?"
DEFAULT_DRAFT_BODY = (
    "Hi team, could you confirm the status of my vendor registration "
    "VR-2025-0012? Thanks."
)

# --- Status line messages ---
MSG_SEEDING = "Seeding sample vendor requests..."
MSG_SEEDED = "Seeded sample vendor requests."
MSG_INGESTING = "Ingesting mock email..."
MSG_INGESTED = "Email ingested. You can now Process Next."
MSG_PROCESSING = "Processing next email..."
MSG_PROCESSED = "Processed one email and replied (mock)."
MSG_NOTHING_PENDING = "No emails pending."
MSG_RUN_LOOP_STARTED = "Running loop for up to {steps} steps..."
MSG_RUN_LOOP_DONE = "Loop done. Processed {processed} messages."
MSG_AUTO_STARTING = "Starting auto cycle..."
MSG_AUTO_STARTED = "Auto cycle running every {interval:g}s."
MSG_AUTO_STOPPING = "Stopping auto cycle..."
MSG_AUTO_STOPPED = "Auto cycle stopped."
MSG_REFRESHING_QUEUE = "Refreshing queue..."
MSG_QUEUE_REFRESHED = "Queue refreshed: {count} message(s)."
MSG_REFRESHING_SUMMARY = "Refreshing analytics and threads..."
MSG_SUMMARY_REFRESHED = "Analytics and threads refreshed."

# "<action> failed: <description>"
MSG_ACTION_FAILED = "{action} failed: {error}"
ACTION_SEED = "Seed"
ACTION_INGEST = "Ingest"
ACTION_PROCESS = "Process"
ACTION_RUN_LOOP = "Run-loop"
