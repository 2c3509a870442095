"""Load/save boundary around the tracking core.

``ReferenceStore`` converts between table rows and frozen records. Writes
that must not interleave (reference compare-and-swap, event claims and
state transitions) run inside immediate transactions.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Iterable
from dataclasses import replace
from datetime import UTC, datetime

import structlog
from sqlalchemy import func
from sqlmodel import col, select

from coderef.documents.models import DocumentLink
from coderef.links.models import ReferenceType
from coderef.store.database import Database
from coderef.store.tables import ChangeEventRow, DocumentLinkRow, ReferenceRow
from coderef.tracking.errors import (
    EventNotFoundError,
    EventStateError,
    ReferenceNotFoundError,
    StaleReferenceError,
)
from coderef.tracking.models import (
    ChangeType,
    CodeChangeEvent,
    CodeReference,
    ProcessingStatus,
    ReferenceStatus,
)
from coderef.tracking.transitions import (
    apply_status,
    mark_completed,
    mark_failed,
    mark_processing,
    mark_requeued,
)

logger = structlog.get_logger()


def _epoch(value: datetime) -> float:
    return value.timestamp()


def _from_epoch(value: float) -> datetime:
    return datetime.fromtimestamp(value, tz=UTC)


# --- row <-> record -----------------------------------------------------------


def _reference_from_row(row: ReferenceRow) -> CodeReference:
    return CodeReference(
        id=row.id,
        repository_owner=row.repository_owner,
        repository_name=row.repository_name,
        file_path=row.file_path,
        reference_type=ReferenceType(row.reference_type),
        content=row.content,
        content_hash=row.content_hash,
        start_line=row.start_line,
        end_line=row.end_line,
        function_name=row.function_name,
        class_name=row.class_name,
        status=ReferenceStatus(row.status),
        commit_sha=row.commit_sha,
        created_at=_from_epoch(row.created_at),
        updated_at=_from_epoch(row.updated_at),
    )


def _copy_reference(ref: CodeReference, row: ReferenceRow) -> None:
    row.repository_owner = ref.repository_owner
    row.repository_name = ref.repository_name
    row.file_path = ref.file_path
    row.reference_type = ref.reference_type.value
    row.start_line = ref.start_line
    row.end_line = ref.end_line
    row.function_name = ref.function_name
    row.class_name = ref.class_name
    row.content = ref.content
    row.content_hash = ref.content_hash
    row.status = ref.status.value
    row.commit_sha = ref.commit_sha
    row.created_at = _epoch(ref.created_at)
    row.updated_at = _epoch(ref.updated_at)


def _event_from_row(row: ChangeEventRow) -> CodeChangeEvent:
    return CodeChangeEvent(
        id=row.id,
        repository_owner=row.repository_owner,
        repository_name=row.repository_name,
        file_path=row.file_path,
        change_type=ChangeType(row.change_type),
        commit_sha=row.commit_sha,
        timestamp=_from_epoch(row.timestamp),
        affected_references=tuple(json.loads(row.affected_references)),
        processing_status=ProcessingStatus(row.processing_status),
        error_message=row.error_message,
        created_at=_from_epoch(row.created_at),
        processed_at=_from_epoch(row.processed_at) if row.processed_at is not None else None,
    )


def _event_row(event: CodeChangeEvent) -> ChangeEventRow:
    return ChangeEventRow(
        id=event.id,
        repository_owner=event.repository_owner,
        repository_name=event.repository_name,
        file_path=event.file_path,
        change_type=event.change_type.value,
        commit_sha=event.commit_sha,
        timestamp=_epoch(event.timestamp),
        affected_references=json.dumps(list(event.affected_references)),
        processing_status=event.processing_status.value,
        error_message=event.error_message,
        created_at=_epoch(event.created_at),
        processed_at=_epoch(event.processed_at) if event.processed_at else None,
    )


def _copy_event_state(event: CodeChangeEvent, row: ChangeEventRow) -> None:
    row.processing_status = event.processing_status.value
    row.error_message = event.error_message
    row.processed_at = _epoch(event.processed_at) if event.processed_at else None


def _link_from_row(row: DocumentLinkRow) -> DocumentLink:
    return DocumentLink(
        document_id=row.document_id,
        reference_id=row.reference_id,
        placeholder=row.placeholder,
        context=row.context,
        position=row.position,
        id=row.id,
    )


class ReferenceStore:
    """Persistence for references, change events and document links."""

    def __init__(self, db: Database) -> None:
        self.db = db

    # --- references -----------------------------------------------------------

    def add_reference(self, ref: CodeReference) -> CodeReference:
        row = ReferenceRow(id=ref.id)
        _copy_reference(ref, row)
        with self.db.session() as session:
            session.add(row)
            session.commit()
        logger.debug("reference_added", reference_id=ref.id, file_path=ref.file_path)
        return ref

    def get_reference(self, reference_id: str) -> CodeReference | None:
        with self.db.session() as session:
            row = session.get(ReferenceRow, reference_id)
            return _reference_from_row(row) if row is not None else None

    def require_reference(self, reference_id: str) -> CodeReference:
        ref = self.get_reference(reference_id)
        if ref is None:
            raise ReferenceNotFoundError(reference_id)
        return ref

    def get_references(self, reference_ids: Iterable[str]) -> list[CodeReference]:
        """References for the given ids, in the given order. Unknown ids are skipped."""
        ids = list(reference_ids)
        if not ids:
            return []
        with self.db.session() as session:
            rows = session.exec(select(ReferenceRow).where(col(ReferenceRow.id).in_(ids))).all()
            by_id = {row.id: _reference_from_row(row) for row in rows}
        return [by_id[i] for i in ids if i in by_id]

    def list_references(
        self,
        *,
        owner: str | None = None,
        repo: str | None = None,
        status: ReferenceStatus | None = None,
        file_path: str | None = None,
    ) -> list[CodeReference]:
        stmt = select(ReferenceRow)
        if owner is not None:
            stmt = stmt.where(ReferenceRow.repository_owner == owner)
        if repo is not None:
            stmt = stmt.where(ReferenceRow.repository_name == repo)
        if status is not None:
            stmt = stmt.where(ReferenceRow.status == status.value)
        if file_path is not None:
            stmt = stmt.where(ReferenceRow.file_path == file_path)
        stmt = stmt.order_by(col(ReferenceRow.created_at), col(ReferenceRow.id))
        with self.db.session() as session:
            return [_reference_from_row(row) for row in session.exec(stmt).all()]

    def find_reference(
        self,
        owner: str,
        repo: str,
        file_path: str,
        reference_type: ReferenceType,
        *,
        start_line: int | None = None,
        end_line: int | None = None,
        function_name: str | None = None,
        class_name: str | None = None,
    ) -> CodeReference | None:
        """Existing non-deleted reference with the same descriptor, if any.

        Function references are matched by name, since their lines move.
        """
        stmt = select(ReferenceRow).where(
            ReferenceRow.repository_owner == owner,
            ReferenceRow.repository_name == repo,
            ReferenceRow.file_path == file_path,
            ReferenceRow.reference_type == reference_type.value,
            ReferenceRow.status != ReferenceStatus.DELETED.value,
        )
        if reference_type is ReferenceType.FUNCTION:
            stmt = stmt.where(
                ReferenceRow.function_name == function_name,
                ReferenceRow.class_name == class_name,
            )
        else:
            stmt = stmt.where(ReferenceRow.start_line == start_line, ReferenceRow.end_line == end_line)
        with self.db.session() as session:
            row = session.exec(stmt.limit(1)).first()
            return _reference_from_row(row) if row is not None else None

    def tracked_paths(self, owner: str, repo: str) -> dict[str, list[str]]:
        """File path -> ids of active references in that file."""
        stmt = (
            select(ReferenceRow.file_path, ReferenceRow.id)
            .where(
                ReferenceRow.repository_owner == owner,
                ReferenceRow.repository_name == repo,
                ReferenceRow.status == ReferenceStatus.ACTIVE.value,
            )
            .order_by(col(ReferenceRow.created_at), col(ReferenceRow.id))
        )
        paths: dict[str, list[str]] = {}
        with self.db.session() as session:
            for file_path, reference_id in session.exec(stmt).all():
                paths.setdefault(file_path, []).append(reference_id)
        return paths

    def save_reference(self, ref: CodeReference, *, expected_hash: str) -> CodeReference:
        """Write ref if the stored content hash still equals expected_hash.

        Raises:
            ReferenceNotFoundError: The reference no longer exists.
            StaleReferenceError: Another writer updated it first.
        """
        with self.db.immediate_transaction() as session:
            row = session.get(ReferenceRow, ref.id)
            if row is None:
                raise ReferenceNotFoundError(ref.id)
            if row.content_hash != expected_hash:
                raise StaleReferenceError(ref.id, expected_hash, row.content_hash)
            _copy_reference(ref, row)
            session.add(row)
        return ref

    def set_reference_status(self, reference_id: str, status: ReferenceStatus) -> CodeReference:
        """Explicit status change. The only way a deleted reference becomes active again."""
        with self.db.immediate_transaction() as session:
            row = session.get(ReferenceRow, reference_id)
            if row is None:
                raise ReferenceNotFoundError(reference_id)
            updated = apply_status(_reference_from_row(row), status)
            _copy_reference(updated, row)
            session.add(row)
        logger.info("reference_status_set", reference_id=reference_id, status=status.value)
        return updated

    # --- change events --------------------------------------------------------

    def add_events(self, events: Iterable[CodeChangeEvent]) -> list[CodeChangeEvent]:
        stored = list(events)
        if not stored:
            return []
        with self.db.session() as session:
            for event in stored:
                session.add(_event_row(event))
            session.commit()
        return stored

    def get_event(self, event_id: str) -> CodeChangeEvent | None:
        with self.db.session() as session:
            row = session.get(ChangeEventRow, event_id)
            return _event_from_row(row) if row is not None else None

    def require_event(self, event_id: str) -> CodeChangeEvent:
        event = self.get_event(event_id)
        if event is None:
            raise EventNotFoundError(event_id)
        return event

    def get_pending_events(self, limit: int = 50) -> list[CodeChangeEvent]:
        """Oldest pending events first."""
        stmt = (
            select(ChangeEventRow)
            .where(ChangeEventRow.processing_status == ProcessingStatus.PENDING.value)
            .order_by(col(ChangeEventRow.timestamp), col(ChangeEventRow.created_at), col(ChangeEventRow.id))
            .limit(limit)
        )
        with self.db.session() as session:
            return [_event_from_row(row) for row in session.exec(stmt).all()]

    def count_events(self) -> dict[str, int]:
        """Event counts per processing status."""
        stmt = select(ChangeEventRow.processing_status, func.count()).group_by(
            col(ChangeEventRow.processing_status)
        )
        counts = {status.value: 0 for status in ProcessingStatus}
        with self.db.session() as session:
            for status, count in session.exec(stmt).all():
                counts[status] = count
        return counts

    def _transition(
        self,
        event_id: str,
        allowed: tuple[ProcessingStatus, ...],
        operation: str,
        apply: Callable[[CodeChangeEvent], CodeChangeEvent],
    ) -> CodeChangeEvent:
        with self.db.immediate_transaction() as session:
            row = session.get(ChangeEventRow, event_id)
            if row is None:
                raise EventNotFoundError(event_id)
            current = _event_from_row(row)
            if current.processing_status not in allowed:
                raise EventStateError(event_id, current.processing_status.value, operation)
            updated = apply(current)
            _copy_event_state(updated, row)
            session.add(row)
        return updated

    def claim_event(self, event_id: str) -> CodeChangeEvent | None:
        """Move a pending event to processing. None if it is no longer pending."""
        try:
            return self._transition(event_id, (ProcessingStatus.PENDING,), "claim", mark_processing)
        except EventStateError:
            return None

    def complete_event(self, event_id: str) -> CodeChangeEvent:
        return self._transition(event_id, (ProcessingStatus.PROCESSING,), "complete", mark_completed)

    def fail_event(self, event_id: str, message: str) -> CodeChangeEvent:
        return self._transition(
            event_id,
            (ProcessingStatus.PROCESSING,),
            "fail",
            lambda event: mark_failed(event, message),
        )

    def requeue_event(self, event_id: str) -> CodeChangeEvent:
        """Return a failed event to pending. Completed events are immutable."""
        event = self._transition(event_id, (ProcessingStatus.FAILED,), "requeue", mark_requeued)
        logger.info("event_requeued", event_id=event_id)
        return event

    # --- document links -------------------------------------------------------

    def add_document_link(self, link: DocumentLink) -> DocumentLink:
        row = DocumentLinkRow(
            document_id=link.document_id,
            reference_id=link.reference_id,
            placeholder=link.placeholder,
            context=link.context,
            position=link.position,
        )
        with self.db.session() as session:
            session.add(row)
            session.commit()
            session.refresh(row)
            return replace(link, id=row.id)

    def links_for_document(self, document_id: str) -> list[DocumentLink]:
        stmt = (
            select(DocumentLinkRow)
            .where(DocumentLinkRow.document_id == document_id)
            .order_by(col(DocumentLinkRow.position), col(DocumentLinkRow.id))
        )
        with self.db.session() as session:
            return [_link_from_row(row) for row in session.exec(stmt).all()]

    def document_ids_for_reference(self, reference_id: str) -> list[str]:
        stmt = (
            select(DocumentLinkRow.document_id)
            .where(DocumentLinkRow.reference_id == reference_id)
            .distinct()
            .order_by(col(DocumentLinkRow.document_id))
        )
        with self.db.session() as session:
            return list(session.exec(stmt).all())

    def clear_document_links(self, document_id: str) -> int:
        stmt = select(DocumentLinkRow).where(DocumentLinkRow.document_id == document_id)
        with self.db.session() as session:
            rows = session.exec(stmt).all()
            for row in rows:
                session.delete(row)
            session.commit()
        return len(rows)

