"""Notification payload records."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol


class Resolution:
    """Known conflict resolutions. Any other value is echoed verbatim."""

    MANUAL = "manual"
    AUTO = "auto"
    IGNORE = "ignore"


@dataclass(frozen=True, slots=True)
class ConflictResolution:
    """How a conflict should be (or was) resolved."""

    conflict_type: str
    resolution: str
    new_content: str | None = None
    new_start_line: int | None = None
    new_end_line: int | None = None


@dataclass(frozen=True, slots=True)
class NotificationPayload:
    """Everything needed to tell people about one reference change."""

    reference_id: str
    change_type: str
    old_content: str
    new_content: str | None = None
    document_ids: tuple[str, ...] = ()
    conflict: ConflictResolution | None = None
    confidence: float | None = None
    reason: str | None = None


class NotificationSink(Protocol):
    """Transport for rendered notifications. Returns False when not delivered."""

    async def send(self, payload: dict[str, Any]) -> bool: ...
