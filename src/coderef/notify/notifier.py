"""Best-effort notification dispatch.

Every public method swallows and logs failures. Notifications never raise
into the tracking flow and never roll back a persisted update.
"""

from __future__ import annotations

import asyncio
from typing import Any

import structlog

from coderef.notify.formatting import (
    DEFAULT_MAX_CONTENT_LENGTH,
    format_change_message,
    format_conflict_message,
    format_repository_summary,
)
from coderef.notify.models import NotificationPayload, NotificationSink

log = structlog.get_logger(__name__)


class Notifier:
    """Formats payloads and hands them to a sink."""

    def __init__(
        self,
        sink: NotificationSink,
        *,
        max_content_length: int = DEFAULT_MAX_CONTENT_LENGTH,
        timeout_sec: float | None = None,
    ) -> None:
        self._sink = sink
        self._limit = max_content_length
        self._timeout = timeout_sec

    async def _deliver(self, body: dict[str, Any]) -> bool:
        async with asyncio.timeout(self._timeout):
            return await self._sink.send(body)

    async def send_change_notification(self, payload: NotificationPayload) -> bool:
        try:
            message = format_change_message(
                payload.reference_id,
                payload.change_type,
                payload.old_content,
                payload.new_content,
                limit=self._limit,
            )
            delivered = await self._deliver(
                {
                    "type": "code_change",
                    "reference_id": payload.reference_id,
                    "document_ids": list(payload.document_ids),
                    "change_type": payload.change_type,
                    "old_content": payload.old_content,
                    "new_content": payload.new_content,
                    "confidence": payload.confidence,
                    "reason": payload.reason,
                    "message": message,
                }
            )
        except Exception as e:
            log.error("change_notification_failed", reference_id=payload.reference_id, error=str(e))
            return False
        if delivered:
            log.info("change_notification_sent", reference_id=payload.reference_id)
        else:
            log.warning("change_notification_undelivered", reference_id=payload.reference_id)
        return delivered

    async def send_conflict_notification(self, payload: NotificationPayload) -> bool:
        conflict = payload.conflict
        if conflict is None:
            log.warning("conflict_notification_without_resolution", reference_id=payload.reference_id)
            return False
        try:
            message = format_conflict_message(payload.reference_id, conflict.conflict_type, conflict.resolution)
            delivered = await self._deliver(
                {
                    "type": "conflict",
                    "reference_id": payload.reference_id,
                    "document_ids": list(payload.document_ids),
                    "change_type": payload.change_type,
                    "old_content": payload.old_content,
                    "conflict_type": conflict.conflict_type,
                    "resolution": conflict.resolution,
                    "new_content": conflict.new_content,
                    "new_start_line": conflict.new_start_line,
                    "new_end_line": conflict.new_end_line,
                    "message": message,
                }
            )
        except Exception as e:
            log.error("conflict_notification_failed", reference_id=payload.reference_id, error=str(e))
            return False
        if delivered:
            log.info("conflict_notification_sent", reference_id=payload.reference_id)
        else:
            log.warning("conflict_notification_undelivered", reference_id=payload.reference_id)
        return delivered

    async def send(self, payload: NotificationPayload) -> bool:
        """Route to the conflict or change sender based on the payload."""
        if payload.conflict is not None:
            return await self.send_conflict_notification(payload)
        return await self.send_change_notification(payload)

    async def send_bulk_notifications(self, payloads: list[NotificationPayload]) -> list[bool]:
        """Attempt every payload; one failure never stops the rest."""
        log.info("bulk_notifications_started", count=len(payloads))
        results = await asyncio.gather(*(self.send(p) for p in payloads), return_exceptions=True)
        outcomes: list[bool] = []
        for payload, result in zip(payloads, results, strict=True):
            if isinstance(result, BaseException):
                log.error("notification_failed", reference_id=payload.reference_id, error=str(result))
                outcomes.append(False)
            else:
                outcomes.append(result)
        log.info("bulk_notifications_completed", sent=sum(outcomes), failed=len(outcomes) - sum(outcomes))
        return outcomes

    async def send_repository_summary(self, repository: str, total_changes: int, affected_references: int) -> bool:
        try:
            delivered = await self._deliver(
                {
                    "type": "summary",
                    "repository": repository,
                    "total_changes": total_changes,
                    "affected_references": affected_references,
                    "message": format_repository_summary(repository, total_changes, affected_references),
                }
            )
        except Exception as e:
            log.error("repository_summary_failed", repository=repository, error=str(e))
            return False
        log.info("repository_summary_sent", repository=repository, delivered=delivered)
        return delivered
