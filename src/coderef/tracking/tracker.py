"""Change tracker: the imperative shell around the pure engine.

For one change event the tracker claims the event, loads its references,
fetches the new file content once, asks the engine for a decision per
reference, persists each decision and then notifies. A failure on one
reference is recorded and the rest are still attempted. The event ends
``completed`` when every reference succeeded, otherwise ``failed`` with the
collected messages.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import AsyncIterator
from typing import TYPE_CHECKING, Any

import structlog

from coderef.extraction.errors import SourceFileNotFoundError
from coderef.notify.models import ConflictResolution, NotificationPayload, Resolution
from coderef.tracking.engine import deletion_decision, evaluate_reference
from coderef.tracking.models import (
    ChangeType,
    CodeChangeEvent,
    CodeReference,
    Disposition,
    EventOutcome,
    ProcessingStatus,
    ReferenceDecision,
    ReferenceOutcome,
)

if TYPE_CHECKING:
    from coderef.extraction.models import FileContent, FileContentProvider
    from coderef.notify.notifier import Notifier
    from coderef.store.repository import ReferenceStore


class ChangeTracker:
    """Applies change events to their affected references."""

    def __init__(
        self,
        store: ReferenceStore,
        provider: FileContentProvider,
        notifier: Notifier,
        *,
        fuzzy_threshold: float = 0.5,
        log: Any = None,
    ) -> None:
        self._store = store
        self._provider = provider
        self._notifier = notifier
        self._threshold = fuzzy_threshold
        self._log = log or structlog.get_logger(__name__)
        # One writer per reference id; entries live while someone holds or waits.
        self._locks: dict[str, tuple[asyncio.Lock, int]] = {}

    async def process_event(self, event_id: str) -> EventOutcome | None:
        """Claim and process one pending event.

        Returns None when the event is no longer pending (another worker
        claimed it, or it already finished).
        """
        event = self._store.claim_event(event_id)
        if event is None:
            self._log.debug("event_not_claimed", event_id=event_id)
            return None
        log = self._log.bind(event_id=event.id, file_path=event.file_path, change_type=event.change_type.value)
        log.info("event_processing")

        try:
            outcomes = await self._process_references(event, log)
        except Exception as e:
            # Loading the event's inputs failed; nothing was written.
            log.exception("event_crashed")
            self._store.fail_event(event.id, str(e))
            return EventOutcome(event.id, ProcessingStatus.FAILED, error_message=str(e))

        failures = [o for o in outcomes if o.failed]
        if failures:
            message = "; ".join(f"{o.reference_id}: {o.error}" for o in failures)
            self._store.fail_event(event.id, message)
            log.warning("event_failed", failed=len(failures), total=len(outcomes), error=message)
            return EventOutcome(event.id, ProcessingStatus.FAILED, tuple(outcomes), message)

        self._store.complete_event(event.id)
        log.info("event_completed", references=len(outcomes))
        return EventOutcome(event.id, ProcessingStatus.COMPLETED, tuple(outcomes))

    async def _process_references(self, event: CodeChangeEvent, log: Any) -> list[ReferenceOutcome]:
        refs = self._store.get_references(event.affected_references)
        missing = set(event.affected_references) - {ref.id for ref in refs}
        for reference_id in sorted(missing):
            log.warning("reference_missing", reference_id=reference_id)

        file: FileContent | None = None
        fetch_error: Exception | None = None
        if event.change_type is not ChangeType.DELETED and refs:
            try:
                file = await self._provider.get_file_content(
                    event.repository_owner, event.repository_name, event.file_path, event.commit_sha
                )
                if file is None:
                    fetch_error = SourceFileNotFoundError(event.file_path, event.commit_sha)
            except Exception as e:
                fetch_error = e
            if fetch_error is not None:
                log.warning("file_content_unavailable", error=str(fetch_error))

        outcomes: list[ReferenceOutcome] = []
        for ref in refs:
            outcomes.append(await self._process_reference(event, ref.id, file, fetch_error, log))
        return outcomes

    async def _process_reference(
        self,
        event: CodeChangeEvent,
        reference_id: str,
        file: FileContent | None,
        fetch_error: Exception | None,
        log: Any,
    ) -> ReferenceOutcome:
        log = log.bind(reference_id=reference_id)
        async with self._writer(reference_id):
            try:
                # Reload under the lock so a concurrent writer's result is seen.
                ref = self._store.get_reference(reference_id)
                if ref is None:
                    log.warning("reference_missing")
                    return ReferenceOutcome(reference_id, None)
                if not ref.is_active:
                    log.debug("reference_skipped", status=ref.status.value)
                    return ReferenceOutcome(reference_id, Disposition.UNCHANGED)

                if event.change_type is ChangeType.DELETED:
                    decision = deletion_decision(ref)
                else:
                    if fetch_error is not None:
                        raise fetch_error
                    assert file is not None
                    decision = evaluate_reference(
                        ref,
                        file.content,
                        commit_sha=event.commit_sha,
                        threshold=self._threshold,
                        log=log,
                    )

                if decision.disposition is Disposition.UNCHANGED:
                    log.debug("reference_unchanged")
                    return ReferenceOutcome(reference_id, Disposition.UNCHANGED)

                self._store.save_reference(decision.after, expected_hash=ref.content_hash)
                log.info(
                    "reference_updated" if decision.disposition is Disposition.UPDATED else "reference_deleted",
                    start_line=decision.after.start_line,
                    end_line=decision.after.end_line,
                    reason=decision.reason,
                )
            except Exception as e:
                log.warning("reference_failed", error=str(e), error_type=type(e).__name__)
                return ReferenceOutcome(reference_id, None, error=str(e))

        # Update is durable; notification outcome cannot undo it.
        await self._notify(event, decision)
        return ReferenceOutcome(reference_id, decision.disposition)

    @contextlib.asynccontextmanager
    async def _writer(self, reference_id: str) -> AsyncIterator[None]:
        lock, users = self._locks.get(reference_id, (asyncio.Lock(), 0))
        self._locks[reference_id] = (lock, users + 1)
        try:
            async with lock:
                yield
        finally:
            lock, users = self._locks[reference_id]
            if users == 1:
                del self._locks[reference_id]
            else:
                self._locks[reference_id] = (lock, users - 1)

    async def _notify(self, event: CodeChangeEvent, decision: ReferenceDecision) -> None:
        try:
            document_ids = tuple(self._store.document_ids_for_reference(decision.before.id))
        except Exception as e:
            self._log.warning("document_lookup_failed", reference_id=decision.before.id, error=str(e))
            document_ids = ()
        await self._notifier.send(_payload_for(event, decision, document_ids))


def _change_label(event: CodeChangeEvent, decision: ReferenceDecision) -> str:
    if event.change_type in (ChangeType.MOVED, ChangeType.RENAMED):
        return event.change_type.value
    if decision.movement is not None and decision.movement.exact and decision.relocated:
        return ChangeType.MOVED.value
    return ChangeType.MODIFIED.value


def _payload_for(
    event: CodeChangeEvent, decision: ReferenceDecision, document_ids: tuple[str, ...]
) -> NotificationPayload:
    before: CodeReference = decision.before
    after: CodeReference = decision.after
    movement = decision.movement
    if decision.disposition is Disposition.DELETED:
        return NotificationPayload(
            reference_id=before.id,
            change_type=ChangeType.DELETED.value,
            old_content=before.content,
            document_ids=document_ids,
            conflict=ConflictResolution(conflict_type=ChangeType.DELETED.value, resolution=Resolution.MANUAL),
            confidence=0.0,
            reason=decision.reason,
        )
    return NotificationPayload(
        reference_id=before.id,
        change_type=_change_label(event, decision),
        old_content=before.content,
        new_content=after.content,
        document_ids=document_ids,
        confidence=movement.confidence if movement is not None else None,
        reason=decision.reason,
    )
