"""Pure per-reference change evaluation.

Given a reference and the new text of its file, decide whether the
reference is unchanged, updated (new content and/or new line span) or
deleted. No I/O: the tracker loads inputs, persists the result and sends
notifications.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

import structlog

from coderef.extraction.errors import FunctionNotFoundError, LineOutOfRangeError
from coderef.extraction.extractor import extract_function, extract_range
from coderef.links.models import ReferenceType
from coderef.tracking.hashing import content_hash
from coderef.tracking.models import (
    CodeReference,
    Disposition,
    MovementResult,
    ReferenceDecision,
)
from coderef.tracking.movement import detect_movement
from coderef.tracking.transitions import apply_content_update, apply_deletion

FUNCTION_REMOVED_REASON = "function not found in new content"


def _line_span(ref: CodeReference) -> tuple[int, int]:
    start = ref.start_line or 0
    if ref.reference_type is ReferenceType.LINE:
        return start, start
    return start, ref.end_line or start


def _evaluate_lines(
    ref: CodeReference,
    text: str,
    commit_sha: str | None,
    threshold: float,
    now: datetime | None,
    log: Any,
) -> ReferenceDecision:
    start, end = _line_span(ref)
    try:
        extracted = extract_range(text, start, end)
    except LineOutOfRangeError:
        # File shrank below the reference. Only a verbatim relocation can save it.
        movement = detect_movement(ref.content, text, threshold=threshold, near=start)
        if not movement.exact:
            raise
        log.debug("reference_relocated_after_truncation", reference_id=ref.id, start_line=movement.start_line)
        after = apply_content_update(
            ref,
            ref.content,
            ref.content_hash,
            start_line=movement.start_line,
            end_line=movement.end_line if ref.reference_type is ReferenceType.RANGE else None,
            commit_sha=commit_sha,
            now=now,
        )
        return ReferenceDecision(Disposition.UPDATED, ref, after, movement, movement.reason)

    new_hash = content_hash(extracted.content)
    if new_hash == ref.content_hash:
        return ReferenceDecision(Disposition.UNCHANGED, ref, ref)

    movement = detect_movement(ref.content, text, threshold=threshold, near=start)
    if movement.exact:
        after = apply_content_update(
            ref,
            ref.content,
            ref.content_hash,
            start_line=movement.start_line,
            end_line=movement.end_line if ref.reference_type is ReferenceType.RANGE else None,
            commit_sha=commit_sha,
            now=now,
        )
    else:
        after = apply_content_update(ref, extracted.content, new_hash, commit_sha=commit_sha, now=now)
    return ReferenceDecision(Disposition.UPDATED, ref, after, movement, movement.reason)


def _evaluate_function(
    ref: CodeReference,
    text: str,
    commit_sha: str | None,
    threshold: float,
    now: datetime | None,
    log: Any,
) -> ReferenceDecision:
    name = ref.qualified_name or ""
    try:
        extracted = extract_function(text, name, ref.file_path)
    except FunctionNotFoundError:
        log.debug("function_not_resolved", reference_id=ref.id, function_name=name)
        return ReferenceDecision(
            Disposition.DELETED,
            ref,
            apply_deletion(ref, now=now),
            reason=FUNCTION_REMOVED_REASON,
        )

    new_hash = content_hash(extracted.content)
    if new_hash == ref.content_hash:
        return ReferenceDecision(Disposition.UNCHANGED, ref, ref)

    movement = detect_movement(ref.content, text, threshold=threshold, near=ref.start_line)
    after = apply_content_update(
        ref,
        extracted.content,
        new_hash,
        start_line=extracted.start_line,
        end_line=extracted.end_line,
        commit_sha=commit_sha,
        now=now,
    )
    return ReferenceDecision(Disposition.UPDATED, ref, after, movement, movement.reason)


def evaluate_reference(
    ref: CodeReference,
    text: str,
    *,
    commit_sha: str | None = None,
    threshold: float = 0.5,
    now: datetime | None = None,
    log: Any = None,
) -> ReferenceDecision:
    """Re-validate one reference against the new text of its file.

    line/range references re-extract at their stored coordinates. When the
    stored content turns up verbatim elsewhere the reference follows it;
    otherwise it takes whatever now sits at those coordinates. Function
    references re-resolve by name and follow the declaration. A function
    that no longer resolves is treated as deleted.

    Raises:
        LineOutOfRangeError: The file is shorter than a line/range reference
            and its content cannot be found verbatim.
    """
    log = log or structlog.get_logger(__name__)
    if ref.reference_type is ReferenceType.FUNCTION:
        return _evaluate_function(ref, text, commit_sha, threshold, now, log)
    return _evaluate_lines(ref, text, commit_sha, threshold, now, log)


def deletion_decision(ref: CodeReference, *, now: datetime | None = None) -> ReferenceDecision:
    """Decision for a reference whose whole file was deleted."""
    return ReferenceDecision(
        Disposition.DELETED,
        ref,
        apply_deletion(ref, now=now),
        movement=MovementResult(found=False, confidence=0.0, reason="file deleted"),
        reason="file deleted",
    )
