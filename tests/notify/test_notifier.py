"""Tests for notify/notifier.py and notify/sinks.py."""

from __future__ import annotations

import asyncio
import json
from typing import Any

import httpx
import pytest

from coderef.notify.models import ConflictResolution, NotificationPayload
from coderef.notify.notifier import Notifier
from coderef.notify.sinks import LogSink, SlackWebhookSink


class FlakySink:
    """Fails the first send and records every attempt."""

    def __init__(self) -> None:
        self.attempts: list[dict[str, Any]] = []

    async def send(self, payload: dict[str, Any]) -> bool:
        self.attempts.append(payload)
        if len(self.attempts) == 1:
            raise ConnectionError("first dispatch fails")
        return True


class SlowSink:
    async def send(self, payload: dict[str, Any]) -> bool:
        await asyncio.sleep(1)
        return True


def _change(reference_id: str = "r1") -> NotificationPayload:
    return NotificationPayload(
        reference_id=reference_id,
        change_type="modified",
        old_content="old()",
        new_content="new()",
        document_ids=("doc-1",),
        confidence=0.75,
        reason="similar code found",
    )


def _conflict(resolution: str = "manual") -> NotificationPayload:
    return NotificationPayload(
        reference_id="r2",
        change_type="deleted",
        old_content="gone()",
        conflict=ConflictResolution(conflict_type="deleted", resolution=resolution),
    )


class TestNotifier:
    """Tests for Notifier."""

    @pytest.mark.asyncio
    async def test_change_notification_body(self, sink: Any) -> None:
        """Change notifications carry the rendered message and metadata."""
        assert await Notifier(sink).send_change_notification(_change())

        [body] = sink.sent
        assert body["type"] == "code_change"
        assert body["document_ids"] == ["doc-1"]
        assert body["confidence"] == 0.75
        assert body["message"].startswith("Code reference r1 has been modified.")

    @pytest.mark.asyncio
    async def test_conflict_notification_body(self, sink: Any) -> None:
        """Conflict notifications carry the resolution."""
        assert await Notifier(sink).send_conflict_notification(_conflict())

        [body] = sink.sent
        assert body["type"] == "conflict"
        assert body["resolution"] == "manual"
        assert "Manual intervention needed" in body["message"]

    @pytest.mark.asyncio
    async def test_conflict_without_resolution(self, sink: Any) -> None:
        """A conflict send without conflict details is refused."""
        assert await Notifier(sink).send_conflict_notification(_change()) is False
        assert sink.sent == []

    @pytest.mark.asyncio
    async def test_send_routes_by_payload(self, sink: Any) -> None:
        """send() picks the conflict path when a conflict is present."""
        notifier = Notifier(sink)

        await notifier.send(_change())
        await notifier.send(_conflict())

        assert [b["type"] for b in sink.sent] == ["code_change", "conflict"]

    @pytest.mark.asyncio
    async def test_sink_error_is_swallowed(self, sink: Any) -> None:
        """Transport errors are logged and reported as False."""
        sink.fail_with = RuntimeError("down")

        assert await Notifier(sink).send(_change()) is False

    @pytest.mark.asyncio
    async def test_timeout_is_a_failure(self) -> None:
        """A slow sink is cut off by the notifier timeout."""
        assert await Notifier(SlowSink(), timeout_sec=0.01).send(_change()) is False

    @pytest.mark.asyncio
    async def test_content_truncated_to_limit(self, sink: Any) -> None:
        """The configured content budget applies to the message."""
        payload = NotificationPayload("r1", "modified", "a" * 50, "b" * 50)

        await Notifier(sink, max_content_length=10).send(payload)

        assert "a" * 10 + "..." in sink.sent[0]["message"]

    @pytest.mark.asyncio
    async def test_bulk_is_all_settled(self) -> None:
        """A failing first dispatch does not stop the second."""
        flaky = FlakySink()

        results = await Notifier(flaky).send_bulk_notifications([_change("r1"), _change("r2")])

        assert len(flaky.attempts) == 2
        assert results == [False, True]

    @pytest.mark.asyncio
    async def test_repository_summary(self, sink: Any) -> None:
        """Summaries are delivered with their counts."""
        assert await Notifier(sink).send_repository_summary("acme/widgets", 2, 5)

        assert sink.sent[0]["type"] == "summary"
        assert sink.sent[0]["affected_references"] == 5


class TestSinks:
    """Tests for notification sinks."""

    @pytest.mark.asyncio
    async def test_slack_posts_text(self) -> None:
        """The Slack sink posts the message as text."""
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, text="ok")

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            sink = SlackWebhookSink("https://hooks.example/T1", client=client)
            assert await sink.send({"message": "hello"})

        assert str(requests[0].url) == "https://hooks.example/T1"
        assert json.loads(requests[0].content) == {"text": "hello"}

    @pytest.mark.asyncio
    async def test_slack_rejection(self) -> None:
        """Non-success responses report False."""
        transport = httpx.MockTransport(lambda request: httpx.Response(500))

        async with httpx.AsyncClient(transport=transport) as client:
            sink = SlackWebhookSink("https://hooks.example/T1", client=client)
            assert await sink.send({"message": "hello"}) is False

    @pytest.mark.asyncio
    async def test_log_sink(self) -> None:
        """The log sink always succeeds."""
        assert await LogSink().send({"type": "code_change", "message": "m"})
