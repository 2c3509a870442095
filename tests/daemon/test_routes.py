"""Tests for daemon/routes.py module.

Requests go through the full Starlette app with the consumer loop
disabled; batches are driven through the process-pending route.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any

from starlette.testclient import TestClient

from coderef.daemon.lifecycle import ServerController
from coderef.tracking.models import CodeReference, ReferenceStatus
from coderef.webhook.signature import compute_signature

MakeRef = Callable[..., CodeReference]

SECRET = "s3cret"


def _deliver(
    client: TestClient, payload: dict[str, Any], *, event: str = "push", secret: str | None = SECRET
) -> Any:
    body = json.dumps(payload).encode()
    headers = {"X-GitHub-Event": event, "Content-Type": "application/json"}
    if secret is not None:
        headers["X-Hub-Signature-256"] = compute_signature(body, secret)
    return client.post("/api/webhooks/github", content=body, headers=headers)


def _push(*paths: str, sha: str = "c2") -> dict[str, Any]:
    return {
        "repository": {"full_name": "acme/widgets"},
        "commits": [{"id": sha, "timestamp": "2026-05-01T09:00:00Z", "modified": list(paths)}],
    }


class TestGithubWebhook:
    """Tests for POST /api/webhooks/github."""

    def test_push_creates_pending_events(
        self, client: TestClient, controller: ServerController, make_reference: MakeRef
    ) -> None:
        """A signed push for a tracked file is accepted and queued."""
        ref = controller.store.add_reference(make_reference("beta", start_line=2))

        response = _deliver(client, _push("src/app.ts", "docs/other.md"))

        assert response.status_code == 202
        data = response.json()
        assert data["repository"] == "acme/widgets"
        assert data["events_created"] == 1
        assert data["affected_references"] == 1
        event = controller.store.require_event(data["event_ids"][0])
        assert event.affected_references == (ref.id,)

    def test_bad_signature(self, client: TestClient, controller: ServerController) -> None:
        """Signatures made with another secret are rejected before parsing."""
        response = _deliver(client, _push("src/app.ts"), secret="wrong")

        assert response.status_code == 401
        assert response.json()["error"] == "SIGNATURE_MISMATCH"
        assert controller.store.get_pending_events() == []

    def test_missing_signature(self, client: TestClient) -> None:
        """Unsigned deliveries are rejected when a secret is configured."""
        response = _deliver(client, _push("src/app.ts"), secret=None)

        assert response.status_code == 401
        assert response.json()["message"] == "Missing signature header"

    def test_ping(self, client: TestClient) -> None:
        """Ping deliveries answer pong."""
        response = _deliver(client, {"zen": "Keep it simple."}, event="ping")

        assert response.status_code == 200
        assert response.json() == {"message": "pong"}

    def test_other_events_ignored(self, client: TestClient) -> None:
        """Unsupported event types are acknowledged and ignored."""
        response = _deliver(client, {"action": "opened"}, event="pull_request")

        assert response.status_code == 200
        assert response.json()["message"] == "Event type 'pull_request' ignored"

    def test_invalid_payload(self, client: TestClient) -> None:
        """Push bodies without a repository are rejected."""
        response = _deliver(client, {"commits": []})

        assert response.status_code == 400
        assert response.json()["error"] == "PAYLOAD_INVALID"

    def test_webhook_status(self, client: TestClient) -> None:
        """The status route describes the intake."""
        data = client.get("/api/webhooks/status").json()

        assert data["supported_events"] == ["push", "ping"]
        assert data["secret_configured"] is True


class TestProcessPending:
    """Tests for POST /api/webhooks/process-pending."""

    def test_push_then_process_updates_reference(
        self,
        client: TestClient,
        controller: ServerController,
        provider: Any,
        sink: Any,
        make_reference: MakeRef,
    ) -> None:
        """A processed push updates the reference and notifies once."""
        ref = controller.store.add_reference(make_reference("beta", start_line=2))
        provider.put("acme", "widgets", "src/app.ts", "alpha\nbeta v2\ngamma\n")
        _deliver(client, _push("src/app.ts"))

        response = client.post("/api/webhooks/process-pending")

        assert response.status_code == 200
        data = response.json()
        assert (data["pulled"], data["completed"], data["failed"]) == (1, 1, 0)
        assert controller.store.require_reference(ref.id).content == "beta v2"
        assert [p["type"] for p in sink.sent] == ["code_change"]

    def test_empty_queue(self, client: TestClient) -> None:
        """Nothing pending is a zero batch."""
        assert client.post("/api/webhooks/process-pending").json()["pulled"] == 0

    def test_invalid_limit(self, client: TestClient) -> None:
        """Non-numeric and non-positive limits are rejected."""
        assert client.post("/api/webhooks/process-pending?limit=abc").status_code == 400
        assert client.post("/api/webhooks/process-pending?limit=0").status_code == 400


class TestEvents:
    """Tests for event administration routes."""

    def test_failed_event_requeue(
        self, client: TestClient, controller: ServerController, make_reference: MakeRef
    ) -> None:
        """A failed event can be inspected and requeued once."""
        controller.store.add_reference(make_reference("beta", start_line=2))
        event_id = _deliver(client, _push("src/app.ts")).json()["event_ids"][0]
        client.post("/api/webhooks/process-pending")

        failed = client.get(f"/api/events/{event_id}").json()
        assert failed["processing_status"] == "failed"
        assert "File not found" in failed["error_message"]

        requeued = client.post(f"/api/events/{event_id}/requeue")
        assert requeued.status_code == 200
        assert requeued.json()["processing_status"] == "pending"

        again = client.post(f"/api/events/{event_id}/requeue")
        assert again.status_code == 409
        assert again.json()["error"] == "EVENT_STATE_INVALID"

    def test_unknown_event(self, client: TestClient) -> None:
        """Unknown ids are 404."""
        response = client.get("/api/events/nope")

        assert response.status_code == 404
        assert response.json()["error"] == "EVENT_NOT_FOUND"


class TestReferences:
    """Tests for reference routes."""

    def test_list_and_filter(self, client: TestClient, controller: ServerController, make_reference: MakeRef) -> None:
        """References are listed with optional filters."""
        active = controller.store.add_reference(make_reference("a", start_line=1))
        controller.store.add_reference(make_reference("b", start_line=2, status=ReferenceStatus.DELETED))

        everything = client.get("/api/references").json()
        only_active = client.get("/api/references", params={"status": "active"}).json()

        assert everything["count"] == 2
        assert [r["id"] for r in only_active["references"]] == [active.id]

    def test_list_bad_status(self, client: TestClient) -> None:
        """Unknown statuses are a client error."""
        assert client.get("/api/references", params={"status": "gone"}).status_code == 400

    def test_get_missing(self, client: TestClient) -> None:
        """Unknown references are 404."""
        assert client.get("/api/references/nope").status_code == 404

    def test_set_status(self, client: TestClient, controller: ServerController, make_reference: MakeRef) -> None:
        """Status can be changed explicitly, including reactivation."""
        ref = controller.store.add_reference(make_reference("a", start_line=1, status=ReferenceStatus.DELETED))

        response = client.post(f"/api/references/{ref.id}/status", json={"status": "active"})

        assert response.status_code == 200
        assert response.json()["status"] == "active"
        assert controller.store.require_reference(ref.id).is_active

    def test_set_status_rejects_unknown(
        self, client: TestClient, controller: ServerController, make_reference: MakeRef
    ) -> None:
        """The body is validated."""
        ref = controller.store.add_reference(make_reference("a", start_line=1))

        response = client.post(f"/api/references/{ref.id}/status", json={"status": "archived"})

        assert response.status_code == 400


class TestDocuments:
    """Tests for document routes."""

    DOC = "Entry point: [main](github://acme/widgets/src/app.ts:2)\n"

    def test_register_and_render(self, client: TestClient, provider: Any) -> None:
        """Registered links render as fenced snippets."""
        provider.put("acme", "widgets", "src/app.ts", "alpha\nbeta\ngamma\n")

        registered = client.post("/api/documents/guide/links", json={"content": self.DOC}).json()
        rendered = client.post("/api/documents/guide/render", json={"content": self.DOC}).json()

        assert registered["registered"] == 1
        assert registered["failed"] == 0
        assert registered["links"][0]["created"] is True
        assert rendered["content"] == "Entry point: ```typescript\nbeta\n```\n"

    def test_register_reports_failures(self, client: TestClient) -> None:
        """Unresolvable links are listed as failed."""
        data = client.post("/api/documents/guide/links", json={"content": self.DOC}).json()

        assert data["registered"] == 0
        assert data["failed"] == 1
        assert "File not found" in data["links"][0]["error"]

    def test_body_required(self, client: TestClient) -> None:
        """A body without content is rejected."""
        assert client.post("/api/documents/guide/links", json={}).status_code == 400


class TestDiagnostics:
    """Tests for /health and /status."""

    def test_health(self, client: TestClient) -> None:
        """Health reports healthy."""
        data = client.get("/health").json()

        assert data["status"] == "healthy"
        assert "uptime_seconds" in data

    def test_status(self, client: TestClient) -> None:
        """Status reports consumer and queue counts."""
        data = client.get("/status").json()

        assert data["consumer"]["running"] is False
        assert data["events"] == {"pending": 0, "processing": 0, "completed": 0, "failed": 0}
        assert data["database"]["exists"] is True

    def test_request_id_header(self, client: TestClient) -> None:
        """Delivery ids are echoed as the request id."""
        response = client.get("/health", headers={"X-GitHub-Delivery": "d-123"})

        assert response.headers["X-Request-ID"] == "d-123"

    def test_request_id_generated(self, client: TestClient) -> None:
        """Requests without an id get a generated one."""
        assert len(client.get("/health").headers["X-Request-ID"]) == 12
