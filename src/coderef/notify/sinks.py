"""Notification transports."""

from __future__ import annotations

from typing import Any

import httpx
import structlog

log = structlog.get_logger(__name__)


class SlackWebhookSink:
    """Posts the rendered message to a Slack incoming webhook."""

    def __init__(
        self,
        webhook_url: str,
        *,
        timeout_sec: float = 5.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._url = webhook_url
        self._timeout = timeout_sec
        self._client = client

    async def send(self, payload: dict[str, Any]) -> bool:
        body = {"text": payload.get("message", "")}
        if self._client is not None:
            response = await self._client.post(self._url, json=body, timeout=self._timeout)
        else:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(self._url, json=body)
        if response.is_success:
            return True
        log.warning("slack_webhook_rejected", status_code=response.status_code)
        return False


class LogSink:
    """Logs notifications. Used when no transport is configured."""

    async def send(self, payload: dict[str, Any]) -> bool:
        log.info(
            "notification",
            type=payload.get("type"),
            reference_id=payload.get("reference_id"),
            message=payload.get("message"),
        )
        return True
