"""Turn push payloads into pending change events.

Ingestion only reads tracked paths and writes events; it never fetches
file content. The consumer does the slow work later.
"""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog
from pydantic import ValidationError

from coderef.tracking.models import ChangeType, CodeChangeEvent, new_id, utcnow
from coderef.webhook.errors import InvalidPayloadError
from coderef.webhook.models import PushCommit, PushPayload

if TYPE_CHECKING:
    from coderef.store.repository import ReferenceStore

log = structlog.get_logger(__name__)

_CATEGORIES: tuple[tuple[str, ChangeType], ...] = (
    ("added", ChangeType.ADDED),
    ("removed", ChangeType.DELETED),
    ("modified", ChangeType.MODIFIED),
)


def parse_push_payload(body: bytes) -> PushPayload:
    """Decode and validate a push body.

    Raises:
        InvalidPayloadError: Body is not JSON or lacks required fields.
    """
    try:
        data = json.loads(body)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise InvalidPayloadError(f"body is not JSON ({e})") from e
    try:
        return PushPayload.model_validate(data)
    except ValidationError as e:
        err = e.errors()[0]
        where = ".".join(str(loc) for loc in err["loc"])
        raise InvalidPayloadError(f"{where}: {err['msg']}") from e


def plan_change_events(
    payload: PushPayload, tracked_paths: Mapping[str, Sequence[str]]
) -> list[CodeChangeEvent]:
    """One pending event per (file, change category) touching a tracked path.

    tracked_paths maps file path to the ids of active references in it.
    When several commits touch the same file in the same way, the event
    carries the last of them.
    """
    owner, repo = payload.repository.owner, payload.repository.name
    latest: dict[tuple[str, ChangeType], PushCommit] = {}
    for commit in payload.commits:
        for attr, change_type in _CATEGORIES:
            for path in getattr(commit, attr):
                if tracked_paths.get(path):
                    latest[(path, change_type)] = commit

    now = utcnow()
    return [
        CodeChangeEvent(
            id=new_id(),
            repository_owner=owner,
            repository_name=repo,
            file_path=path,
            change_type=change_type,
            commit_sha=commit.id,
            timestamp=commit.timestamp,
            affected_references=tuple(tracked_paths[path]),
            created_at=now,
        )
        for (path, change_type), commit in latest.items()
    ]


@dataclass(frozen=True, slots=True)
class IngestResult:
    repository: str
    commits: int
    events: tuple[CodeChangeEvent, ...]

    @property
    def affected_references(self) -> int:
        return len({ref for event in self.events for ref in event.affected_references})

    def to_dict(self) -> dict[str, object]:
        return {
            "repository": self.repository,
            "commits": self.commits,
            "events_created": len(self.events),
            "event_ids": [event.id for event in self.events],
            "affected_references": self.affected_references,
        }


class WebhookIngestor:
    """Creates pending change events for push payloads."""

    def __init__(self, store: ReferenceStore) -> None:
        self._store = store

    def ingest(self, payload: PushPayload) -> IngestResult:
        repository = payload.repository.full_name
        if not payload.commits:
            log.info("push_without_commits", repository=repository)
            return IngestResult(repository, 0, ())

        tracked = self._store.tracked_paths(payload.repository.owner, payload.repository.name)
        events = plan_change_events(payload, tracked)
        self._store.add_events(events)
        log.info(
            "push_ingested",
            repository=repository,
            commits=len(payload.commits),
            events_created=len(events),
        )
        return IngestResult(repository, len(payload.commits), tuple(events))
