"""Tests for webhook/ingest.py module."""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any

import pytest

from coderef.store.repository import ReferenceStore
from coderef.tracking.models import ChangeType, CodeReference, ProcessingStatus, ReferenceStatus
from coderef.webhook.errors import InvalidPayloadError
from coderef.webhook.ingest import WebhookIngestor, parse_push_payload, plan_change_events
from coderef.webhook.models import PushPayload


def _push(*commits: dict[str, Any], full_name: str = "acme/widgets") -> PushPayload:
    return PushPayload.model_validate({"repository": {"full_name": full_name}, "commits": list(commits)})


def _commit(sha: str, ts: str = "2026-03-01T10:00:00Z", **changes: list[str]) -> dict[str, Any]:
    return {"id": sha, "timestamp": ts, **changes}


class TestParsePushPayload:
    """Tests for parse_push_payload."""

    def test_valid_body(self) -> None:
        """A push body parses with owner and name split."""
        body = json.dumps(
            {
                "ref": "refs/heads/main",
                "repository": {"full_name": "acme/widgets", "private": False},
                "commits": [_commit("c1", modified=["src/app.ts"])],
            }
        ).encode()

        payload = parse_push_payload(body)

        assert payload.repository.owner == "acme"
        assert payload.repository.name == "widgets"
        assert payload.commits[0].modified == ["src/app.ts"]
        assert payload.commits[0].added == []

    def test_not_json(self) -> None:
        """Undecodable bodies are rejected."""
        with pytest.raises(InvalidPayloadError, match="not JSON"):
            parse_push_payload(b"{nope")

    def test_missing_repository(self) -> None:
        """The repository object is required."""
        with pytest.raises(InvalidPayloadError, match="repository"):
            parse_push_payload(b'{"commits": []}')

    def test_bad_full_name(self) -> None:
        """full_name must be owner/repo."""
        with pytest.raises(InvalidPayloadError, match="full_name"):
            parse_push_payload(b'{"repository": {"full_name": "widgets"}}')


class TestPlanChangeEvents:
    """Tests for plan_change_events."""

    def test_only_tracked_paths(self) -> None:
        """Untracked files produce no events."""
        payload = _push(_commit("c1", modified=["src/app.ts", "README.md"]))

        events = plan_change_events(payload, {"src/app.ts": ["r1", "r2"]})

        assert len(events) == 1
        event = events[0]
        assert event.file_path == "src/app.ts"
        assert event.change_type is ChangeType.MODIFIED
        assert event.affected_references == ("r1", "r2")
        assert event.processing_status is ProcessingStatus.PENDING
        assert event.commit_sha == "c1"

    def test_one_event_per_category(self) -> None:
        """Added, removed and modified each map to their own change type."""
        payload = _push(_commit("c1", added=["a.py"], removed=["b.py"], modified=["c.py"]))
        tracked = {"a.py": ["r1"], "b.py": ["r2"], "c.py": ["r3"]}

        events = plan_change_events(payload, tracked)

        assert {(e.file_path, e.change_type) for e in events} == {
            ("a.py", ChangeType.ADDED),
            ("b.py", ChangeType.DELETED),
            ("c.py", ChangeType.MODIFIED),
        }

    def test_last_commit_wins(self) -> None:
        """Repeated changes to one file collapse onto the last commit."""
        payload = _push(
            _commit("c1", "2026-03-01T10:00:00Z", modified=["src/app.ts"]),
            _commit("c2", "2026-03-01T11:00:00Z", modified=["src/app.ts"]),
        )

        [event] = plan_change_events(payload, {"src/app.ts": ["r1"]})

        assert event.commit_sha == "c2"
        assert event.timestamp.hour == 11

    def test_path_without_active_references(self) -> None:
        """An empty id list counts as untracked."""
        payload = _push(_commit("c1", modified=["src/app.ts"]))

        assert plan_change_events(payload, {"src/app.ts": []}) == []


class TestWebhookIngestor:
    """Tests for WebhookIngestor against the store."""

    def test_creates_pending_events(
        self, store: ReferenceStore, make_reference: Callable[..., CodeReference]
    ) -> None:
        """Events are stored pending with the active references of the file."""
        active = store.add_reference(make_reference("x", start_line=1))
        store.add_reference(make_reference("y", start_line=2, status=ReferenceStatus.DELETED))
        payload = _push(_commit("c1", modified=["src/app.ts"]))

        result = WebhookIngestor(store).ingest(payload)

        assert result.repository == "acme/widgets"
        assert result.commits == 1
        [event] = result.events
        stored = store.require_event(event.id)
        assert stored.processing_status is ProcessingStatus.PENDING
        assert stored.affected_references == (active.id,)
        assert result.to_dict()["events_created"] == 1
        assert result.to_dict()["affected_references"] == 1

    def test_no_commits(self, store: ReferenceStore) -> None:
        """A push without commits creates nothing."""
        result = WebhookIngestor(store).ingest(_push())

        assert result.events == ()
        assert store.get_pending_events() == []

    def test_other_repository_ignored(
        self, store: ReferenceStore, make_reference: Callable[..., CodeReference]
    ) -> None:
        """References in other repositories are not affected."""
        store.add_reference(make_reference("x", start_line=1))
        payload = _push(_commit("c1", modified=["src/app.ts"]), full_name="acme/gadgets")

        assert WebhookIngestor(store).ingest(payload).events == ()
