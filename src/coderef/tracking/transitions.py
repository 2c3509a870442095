"""Pure state transitions for references and events.

Each function returns a new record; nothing here touches storage.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime

from coderef.tracking.models import (
    CodeChangeEvent,
    CodeReference,
    ProcessingStatus,
    ReferenceStatus,
    utcnow,
)


def apply_deletion(ref: CodeReference, *, now: datetime | None = None) -> CodeReference:
    """Mark a reference deleted. Content is kept for the conflict message."""
    return replace(ref, status=ReferenceStatus.DELETED, updated_at=now or utcnow())


def apply_content_update(
    ref: CodeReference,
    content: str,
    content_hash: str,
    *,
    start_line: int | None = None,
    end_line: int | None = None,
    commit_sha: str | None = None,
    now: datetime | None = None,
) -> CodeReference:
    """New snapshot content, keeping the line span unless one is given."""
    return replace(
        ref,
        content=content,
        content_hash=content_hash,
        start_line=ref.start_line if start_line is None else start_line,
        end_line=ref.end_line if end_line is None else end_line,
        commit_sha=commit_sha or ref.commit_sha,
        updated_at=now or utcnow(),
    )


def apply_status(ref: CodeReference, status: ReferenceStatus, *, now: datetime | None = None) -> CodeReference:
    """Explicit status change requested from outside the tracker."""
    return replace(ref, status=status, updated_at=now or utcnow())


def mark_processing(event: CodeChangeEvent) -> CodeChangeEvent:
    return replace(event, processing_status=ProcessingStatus.PROCESSING, error_message=None)


def mark_completed(event: CodeChangeEvent, *, now: datetime | None = None) -> CodeChangeEvent:
    return replace(
        event,
        processing_status=ProcessingStatus.COMPLETED,
        error_message=None,
        processed_at=now or utcnow(),
    )


def mark_failed(event: CodeChangeEvent, message: str, *, now: datetime | None = None) -> CodeChangeEvent:
    return replace(
        event,
        processing_status=ProcessingStatus.FAILED,
        error_message=message,
        processed_at=now or utcnow(),
    )


def mark_requeued(event: CodeChangeEvent) -> CodeChangeEvent:
    return replace(event, processing_status=ProcessingStatus.PENDING, error_message=None, processed_at=None)
