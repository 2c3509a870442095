"""Value records for tracked references and change events."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4

from coderef.links.models import ReferenceType


def utcnow() -> datetime:
    return datetime.now(UTC)


def new_id() -> str:
    return uuid4().hex


class ReferenceStatus(str, Enum):
    """Lifecycle of a tracked reference."""

    ACTIVE = "active"
    DELETED = "deleted"
    CONFLICT = "conflict"


class ChangeType(str, Enum):
    """File-level change category carried by an event."""

    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"
    MOVED = "moved"
    RENAMED = "renamed"


class ProcessingStatus(str, Enum):
    """Event lifecycle. ``completed`` is terminal and immutable."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class CodeReference:
    """A tracked pointer into a repository file."""

    id: str
    repository_owner: str
    repository_name: str
    file_path: str
    reference_type: ReferenceType
    content: str
    content_hash: str
    start_line: int | None = None
    end_line: int | None = None
    function_name: str | None = None
    class_name: str | None = None
    status: ReferenceStatus = ReferenceStatus.ACTIVE
    commit_sha: str | None = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def qualified_name(self) -> str | None:
        """``Class.method`` for scoped functions, else the bare function name."""
        if self.function_name is None:
            return None
        if self.class_name:
            return f"{self.class_name}.{self.function_name}"
        return self.function_name

    @property
    def repository(self) -> str:
        return f"{self.repository_owner}/{self.repository_name}"

    @property
    def is_active(self) -> bool:
        return self.status is ReferenceStatus.ACTIVE

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "repository_owner": self.repository_owner,
            "repository_name": self.repository_name,
            "file_path": self.file_path,
            "reference_type": self.reference_type.value,
            "start_line": self.start_line,
            "end_line": self.end_line,
            "function_name": self.function_name,
            "class_name": self.class_name,
            "content": self.content,
            "content_hash": self.content_hash,
            "status": self.status.value,
            "commit_sha": self.commit_sha,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


@dataclass(frozen=True, slots=True)
class CodeChangeEvent:
    """One file-level change awaiting reference re-validation."""

    id: str
    repository_owner: str
    repository_name: str
    file_path: str
    change_type: ChangeType
    commit_sha: str
    timestamp: datetime
    affected_references: tuple[str, ...] = ()
    processing_status: ProcessingStatus = ProcessingStatus.PENDING
    error_message: str | None = None
    created_at: datetime = field(default_factory=utcnow)
    processed_at: datetime | None = None

    @property
    def repository(self) -> str:
        return f"{self.repository_owner}/{self.repository_name}"

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "repository_owner": self.repository_owner,
            "repository_name": self.repository_name,
            "file_path": self.file_path,
            "change_type": self.change_type.value,
            "commit_sha": self.commit_sha,
            "timestamp": self.timestamp.isoformat(),
            "affected_references": list(self.affected_references),
            "processing_status": self.processing_status.value,
            "error_message": self.error_message,
            "processed_at": self.processed_at.isoformat() if self.processed_at else None,
        }


@dataclass(frozen=True, slots=True)
class MovementResult:
    """Where a reference's previous content went in the new file text."""

    found: bool
    confidence: float
    reason: str
    start_line: int | None = None
    end_line: int | None = None

    @property
    def exact(self) -> bool:
        return self.found and self.confidence >= 1.0


class Disposition(str, Enum):
    """What the engine decided for one reference."""

    UNCHANGED = "unchanged"
    UPDATED = "updated"
    DELETED = "deleted"


@dataclass(frozen=True, slots=True)
class ReferenceDecision:
    """Outcome of re-validating one reference against new file content."""

    disposition: Disposition
    before: CodeReference
    after: CodeReference
    movement: MovementResult | None = None
    reason: str | None = None

    @property
    def relocated(self) -> bool:
        return (self.before.start_line, self.before.end_line) != (
            self.after.start_line,
            self.after.end_line,
        )


@dataclass(frozen=True, slots=True)
class ReferenceOutcome:
    """Per-reference result recorded by the tracker."""

    reference_id: str
    disposition: Disposition | None
    error: str | None = None

    @property
    def failed(self) -> bool:
        return self.error is not None


@dataclass(frozen=True, slots=True)
class EventOutcome:
    """Result of processing one change event."""

    event_id: str
    status: ProcessingStatus
    references: tuple[ReferenceOutcome, ...] = ()
    error_message: str | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "event_id": self.event_id,
            "status": self.status.value,
            "error_message": self.error_message,
            "references": [
                {
                    "reference_id": r.reference_id,
                    "disposition": r.disposition.value if r.disposition else None,
                    "error": r.error,
                }
                for r in self.references
            ],
        }
