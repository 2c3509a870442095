"""CodeRef error types with typed error codes.

Error code ranges:
- 1xxx: Links (parsing, validation)
- 2xxx: Config
- 3xxx: Extraction
- 4xxx: Tracking
- 5xxx: Webhook
- 9xxx: Internal
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Typed error codes for programmatic handling."""

    # Links (1xxx)
    LINK_MALFORMED = 1001
    REFERENCE_INVALID = 1002

    # Config (2xxx)
    CONFIG_PARSE_ERROR = 2001
    CONFIG_INVALID_VALUE = 2002
    CONFIG_MISSING_REQUIRED = 2003

    # Extraction (3xxx)
    FILE_NOT_FOUND = 3001
    FUNCTION_NOT_FOUND = 3002
    LINE_OUT_OF_RANGE = 3003

    # Tracking (4xxx)
    REFERENCE_NOT_FOUND = 4001
    REFERENCE_STALE = 4002
    EVENT_NOT_FOUND = 4003
    EVENT_STATE_INVALID = 4004

    # Webhook (5xxx)
    SIGNATURE_MISMATCH = 5001
    PAYLOAD_INVALID = 5002

    # Internal (9xxx)
    INTERNAL_ERROR = 9001


@dataclass(frozen=True, slots=True)
class CodeRefError(Exception):
    """Base error with structured context for HTTP responses."""

    code: ErrorCode
    message: str
    retryable: bool = False
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def error_name(self) -> str:
        """String identifier for logging (e.g., 'CONFIG_PARSE_ERROR')."""
        return self.code.name

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON responses."""
        return {
            "code": self.code.value,
            "error": self.error_name,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.error_name}: {self.message}"


class ConfigError(CodeRefError):
    """Configuration-related errors."""

    @classmethod
    def parse_error(cls, path: str, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_PARSE_ERROR,
            message=f"Failed to parse config at {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def invalid_value(cls, field: str, value: Any, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_INVALID_VALUE,
            message=f"Invalid value for '{field}': {reason}",
            details={"field": field, "value": str(value), "reason": reason},
        )

    @classmethod
    def missing_required(cls, field: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_MISSING_REQUIRED,
            message=f"Missing required config field: {field}",
            details={"field": field},
        )


class InternalError(CodeRefError):
    """Internal/unexpected errors."""

    @classmethod
    def unexpected(cls, reason: str, **details: Any) -> "InternalError":
        return cls(
            code=ErrorCode.INTERNAL_ERROR,
            message=f"Internal error: {reason}",
            details=details,
        )


def error_body(error: Exception) -> dict[str, Any]:
    """Build a JSON error body for any exception.

    Domain exceptions expose ``error_code``; CodeRefError carries ``code``.
    Anything else is reported as an internal error.
    """
    if isinstance(error, CodeRefError):
        return error.to_dict()
    code = getattr(error, "error_code", ErrorCode.INTERNAL_ERROR)
    return {
        "code": code.value,
        "error": code.name,
        "message": str(error),
    }
