"""Core module exports."""

from coderef.core.errors import (
    CodeRefError,
    ConfigError,
    ErrorCode,
    InternalError,
    error_body,
)
from coderef.core.logging import (
    clear_request_id,
    configure_logging,
    get_logger,
    get_request_id,
    set_request_id,
)

__all__ = [
    # Errors
    "CodeRefError",
    "ConfigError",
    "ErrorCode",
    "InternalError",
    "error_body",
    # Logging
    "clear_request_id",
    "configure_logging",
    "get_logger",
    "get_request_id",
    "set_request_id",
]
