"""Config module exports."""

from coderef.config.loader import load_config, resolve_database_path
from coderef.config.models import (
    CodeRefConfig,
    ConsumerConfig,
    DatabaseConfig,
    GitHubConfig,
    LoggingConfig,
    NotificationsConfig,
    ServerConfig,
    TrackingConfig,
    WebhookConfig,
)

__all__ = [
    "load_config",
    "resolve_database_path",
    "CodeRefConfig",
    "ConsumerConfig",
    "DatabaseConfig",
    "GitHubConfig",
    "LoggingConfig",
    "NotificationsConfig",
    "ServerConfig",
    "TrackingConfig",
    "WebhookConfig",
]
