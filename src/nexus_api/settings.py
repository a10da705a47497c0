"""Settings for the Freelance Nexus project service."""

from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings
from pydantic_settings import SettingsConfigDict


class Settings(BaseSettings):
    """
    Settings for the project service.

    [pydantic.BaseSettings](https://docs.pydantic.dev/latest/concepts/pydantic_settings/) reads
    configuration values from environment variables and, for local development, a .env file.

    Environment variable names are case-insensitive (DATABASE_URL and database_url both work).
    """

    service_name: str = "Freelance Nexus Project Service"
    """Service name reported by the health endpoints and in log records."""

    # PostgreSQL
    database_url: Optional[str] = None
    """PostgreSQL connection string. When unset the API starts but data endpoints return 503."""

    db_pool_min_size: int = 2
    """Minimum number of pooled connections."""

    db_pool_max_size: int = 10
    """Maximum number of pooled connections."""

    db_command_timeout: float = 30.0
    """Per-statement timeout in seconds."""

    # Azure Storage Queue (event broker)
    azure_queue_connection_string: Optional[str] = None
    """Azure Storage Queue connection string. When unset, events are only logged."""

    project_events_queue: str = "project-events"
    """Queue receiving project.* events."""

    proposal_events_queue: str = "proposal-events"
    """Queue receiving proposal.* events."""

    # Notification consumer
    enable_notification_consumer: bool = False
    """Run the background consumer that turns events into notifications."""

    consumer_poll_interval_seconds: float = 5.0
    """Sleep between queue polls when the queues are empty."""

    consumer_visibility_timeout: int = 60
    """Seconds a received message stays invisible to other consumers."""

    consumer_max_dequeue_count: int = 5
    """Messages dequeued more often than this are dropped as poison messages."""

    # AI scoring collaborator (Gemini)
    gemini_api_key: Optional[str] = None
    """Gemini API key. When unset, AI endpoints return their fallback values."""

    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    """Base URL of the Gemini REST API."""

    gemini_model: str = "gemini-1.5-flash"
    """Gemini model used for ranking, summaries and recommendations."""

    ai_timeout_seconds: float = 10.0
    """Upper bound for one AI call, after which the fallback value is returned."""

    # Error mapping
    legacy_error_status: bool = False
    """Collapse NotFound/InvalidState/Conflict to HTTP 400 for clients written against the old API."""

    # Logging
    log_level: str = "INFO"
    """Minimum level for the stdout sink."""

    log_file_path: Optional[str] = None
    """Optional path for a rotating log file sink."""

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        validate_default=True,
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalise the log level and reject unknown names."""
        level = v.strip().upper()
        if level not in {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @field_validator("ai_timeout_seconds")
    @classmethod
    def validate_ai_timeout(cls, v: float) -> float:
        """AI calls must be bounded."""
        if v <= 0:
            raise ValueError("ai_timeout_seconds must be greater than 0")
        return v
