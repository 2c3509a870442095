"""Pydantic configuration models with env var support.

Configuration Hierarchy (highest to lowest precedence):
1. Direct kwargs to load_config()
2. Environment variables (CODEREF__SECTION__KEY)
3. Repo YAML (.coderef/config.yaml)
4. Global YAML (~/.config/coderef/config.yaml)
5. Built-in defaults (this file)

Environment Variable Format:
    CODEREF__<SECTION>__<KEY>=<VALUE>

Examples:
    CODEREF__LOGGING__LEVEL=DEBUG
    CODEREF__SERVER__PORT=8080
    CODEREF__WEBHOOK__SECRET=s3cret
    CODEREF__CONSUMER__BATCH_SIZE=25
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from coderef.config.constants import PENDING_BATCH_MAX

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class LogOutputConfig(BaseModel):
    """Single logging output configuration.

    Env vars: Not directly configurable via env (use YAML for multi-output).
    """

    format: Literal["json", "console"] = "console"
    destination: str = "stderr"  # stderr, stdout, or absolute file path
    level: LogLevel | None = None  # Inherits from parent if None

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if v in ("stderr", "stdout"):
            return v
        path = Path(v).expanduser()
        if not path.is_absolute():
            raise ValueError(f"File destination must be absolute path: {v}")
        return str(path)


class LoggingConfig(BaseModel):
    """Logging configuration.

    Env vars:
        CODEREF__LOGGING__LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    level: LogLevel = Field(
        default="INFO",
        description="Root log level. DEBUG logs every reference decision.",
    )
    outputs: list[LogOutputConfig] = Field(default_factory=lambda: [LogOutputConfig()])


class ServerConfig(BaseModel):
    """HTTP server configuration.

    Env vars:
        CODEREF__SERVER__HOST: Bind address (default: 127.0.0.1)
        CODEREF__SERVER__PORT: Port number (default: 7655)
    """

    host: str = Field(
        default="127.0.0.1",
        description="Bind address. Use 0.0.0.0 to accept webhooks from the network.",
    )
    port: int = Field(
        default=7655,
        description="Server port.",
    )
    shutdown_timeout_sec: float = Field(
        default=5.0,
        description="Graceful shutdown timeout for the consumer loop.",
    )

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        if not (0 <= v <= 65535):
            raise ValueError(f"Port must be 0-65535, got {v}")
        return v


class WebhookConfig(BaseModel):
    """Webhook ingestion configuration.

    Env vars:
        CODEREF__WEBHOOK__SECRET: Shared HMAC secret configured on the repository
        CODEREF__WEBHOOK__REQUIRE_SIGNATURE: Reject unsigned deliveries
    """

    secret: str | None = Field(
        default=None,
        description="Shared secret used to sign push payloads (HMAC-SHA256).",
    )
    require_signature: bool = Field(
        default=True,
        description="Reject deliveries without a valid signature. "
        "SECURITY RISK: Disabling accepts forged payloads.",
    )


class ConsumerConfig(BaseModel):
    """Change event consumer configuration.

    Env vars:
        CODEREF__CONSUMER__ENABLED: Run the background consumer loop
        CODEREF__CONSUMER__BATCH_SIZE: Pending events pulled per batch
        CODEREF__CONSUMER__POLL_INTERVAL_SEC: Delay between pulls
        CODEREF__CONSUMER__MAX_CONCURRENCY: Events processed concurrently
    """

    enabled: bool = Field(
        default=True,
        description="Run the background consumer loop inside the server.",
    )
    batch_size: int = Field(
        default=50,
        description="Pending events pulled per batch, oldest first.",
    )
    poll_interval_sec: float = Field(
        default=5.0,
        description="Delay between pulls when the queue is empty.",
    )
    max_concurrency: int = Field(
        default=4,
        description="Events processed concurrently. Updates to one reference are "
        "always serialized regardless of this value.",
    )

    @field_validator("batch_size")
    @classmethod
    def validate_batch_size(cls, v: int) -> int:
        if not (1 <= v <= PENDING_BATCH_MAX):
            raise ValueError(f"batch_size must be 1-{PENDING_BATCH_MAX}, got {v}")
        return v

    @field_validator("max_concurrency")
    @classmethod
    def validate_max_concurrency(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"max_concurrency must be >= 1, got {v}")
        return v


class GitHubConfig(BaseModel):
    """GitHub contents API configuration.

    Env vars:
        CODEREF__GITHUB__TOKEN: Token used for private repositories
        CODEREF__GITHUB__API_URL: API base URL (GitHub Enterprise)
    """

    api_url: str = Field(
        default="https://api.github.com",
        description="GitHub REST API base URL.",
    )
    token: str | None = Field(
        default=None,
        description="Personal access or app token. Required for private repositories.",
    )
    default_ref: str = Field(
        default="main",
        description="Ref used when registering document links without a commit.",
    )
    timeout_sec: float = Field(
        default=10.0,
        description="Per-request timeout for content fetches.",
    )


class NotificationsConfig(BaseModel):
    """Notification dispatch configuration.

    Env vars:
        CODEREF__NOTIFICATIONS__SLACK_WEBHOOK_URL: Incoming webhook URL
        CODEREF__NOTIFICATIONS__MAX_CONTENT_LENGTH: Snippet truncation budget
    """

    slack_webhook_url: str | None = Field(
        default=None,
        description="Slack incoming webhook. When unset notifications are only logged.",
    )
    max_content_length: int = Field(
        default=200,
        description="Characters of old/new content included in a message before truncation.",
    )
    timeout_sec: float = Field(
        default=5.0,
        description="Per-notification dispatch timeout.",
    )


class DatabaseConfig(BaseModel):
    """Database connection configuration.

    Env vars:
        CODEREF__DATABASE__PATH: SQLite database file
        CODEREF__DATABASE__MAX_RETRIES: Max retry attempts for locked DB
    """

    path: str = Field(
        default=".coderef/coderef.db",
        description="SQLite database file. Relative paths resolve against the working directory.",
    )
    busy_timeout_ms: int = Field(
        default=30000,
        description="SQLite busy timeout (ms). How long to wait for locks.",
    )
    max_retries: int = Field(
        default=3,
        description="Max retry attempts for locked database errors.",
    )
    retry_base_delay_sec: float = Field(
        default=0.1,
        description="Base delay between retries (exponential backoff).",
    )


class TrackingConfig(BaseModel):
    """Change detection tuning.

    Env vars:
        CODEREF__TRACKING__FUZZY_THRESHOLD: Minimum similarity for a partial match
    """

    fuzzy_threshold: float = Field(
        default=0.5,
        description="Minimum normalized similarity for a partial movement match. "
        "TRADEOFF: Lower values report weaker overlaps as moved code.",
    )

    @field_validator("fuzzy_threshold")
    @classmethod
    def validate_threshold(cls, v: float) -> float:
        if not (0.0 <= v < 1.0):
            raise ValueError(f"fuzzy_threshold must be in [0, 1), got {v}")
        return v


class CodeRefConfig(BaseModel):
    """Root configuration for CodeRef.

    All settings can be configured via:
    1. Environment variables: CODEREF__SECTION__KEY
    2. YAML config files (repo or global)
    3. Direct kwargs to load_config()
    """

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    webhook: WebhookConfig = Field(default_factory=WebhookConfig)
    consumer: ConsumerConfig = Field(default_factory=ConsumerConfig)
    github: GitHubConfig = Field(default_factory=GitHubConfig)
    notifications: NotificationsConfig = Field(default_factory=NotificationsConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    tracking: TrackingConfig = Field(default_factory=TrackingConfig)
