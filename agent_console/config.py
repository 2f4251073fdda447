"""
Application configuration using pydantic-settings.
Loads environment variables from .env file.

Nested config groups (TransportConfig, OrchestratorConfig, ConsoleConfig) are
env-overridable via the double-underscore delimiter, e.g.:
    TRANSPORT__REQUEST_TIMEOUT_SECONDS=10
    ORCHESTRATOR__AUTO_INTERVAL_SECONDS=5
    CONSOLE__STREAM_POLL_SECONDS=1
"""

from functools import lru_cache

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class TransportConfig(BaseModel):
    """HTTP calls to the agent backend."""

    # None disables the timeout entirely
    request_timeout_seconds: float | None = 30.0


class OrchestratorConfig(BaseModel):
    """Orchestrator scheduling configuration.

    Env-overridable via ORCHESTRATOR__KEY format, e.g.:
        ORCHESTRATOR__AUTO_INTERVAL_SECONDS=3
        ORCHESTRATOR__DEFAULT_RUN_STEPS=25
    """

    # Seconds between automatic run-once cycles
    auto_interval_seconds: float = Field(default=3.0, gt=0)
    # Step bound used by "Run N steps" when the operator gives none
    default_run_steps: int = Field(default=10, gt=0)
    # Pull config, status, queue and summary once when the app starts
    load_on_startup: bool = True


class ConsoleConfig(BaseModel):
    """Display surface configuration."""

    # How often the event stream checks the state store for a new version
    stream_poll_seconds: float = Field(default=0.5, gt=0)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_nested_delimiter="__",
    )

    # Agent backend
    backend_url: str = "http://localhost:8000"

    # App Settings
    debug: bool = False
    cors_origins: list[str] = ["http://localhost:3000", "http://localhost:5173"]

    # Nested config groups (env-overridable via SECTION__KEY format)
    transport: TransportConfig = Field(default_factory=TransportConfig)
    orchestrator: OrchestratorConfig = Field(default_factory=OrchestratorConfig)
    console: ConsoleConfig = Field(default_factory=ConsoleConfig)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
