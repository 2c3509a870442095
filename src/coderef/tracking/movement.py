"""Movement detection: where did a reference's previous content go?

Priority order:
1. Verbatim match of the old lines anywhere in the new text -> 1.0.
2. Best whitespace-normalized similarity over windows of the same line
   count, accepted above a threshold -> (threshold, 0.99].
3. Nothing similar -> 0.0.

Similarity is difflib's ratio, which is monotonic in the amount of shared
text. Partial matches are capped below 1.0 so only verbatim relocation
reports full confidence.
"""

from __future__ import annotations

from difflib import SequenceMatcher

from coderef.extraction.structure import split_lines
from coderef.tracking.models import MovementResult

EXACT_REASON = "exact match, moved"
PARTIAL_REASON = "similar code found"
NOT_FOUND_REASON = "code not found in new content"

PARTIAL_CONFIDENCE_CAP = 0.99


def _normalize(text: str) -> str:
    return " ".join(text.split())


def _exact_starts(old_lines: list[str], new_lines: list[str]) -> list[int]:
    width = len(old_lines)
    first = old_lines[0]
    return [
        i + 1
        for i in range(len(new_lines) - width + 1)
        if new_lines[i] == first and new_lines[i : i + width] == old_lines
    ]


def _best_window(old: str, new_lines: list[str], width: int) -> tuple[float, int, int]:
    target = _normalize(old)
    matcher = SequenceMatcher(autojunk=False)
    matcher.set_seq2(target)
    best, best_start, best_size = 0.0, 0, width
    for size in dict.fromkeys((width, max(width - 1, 1), width + 1)):
        for i in range(max(len(new_lines) - size + 1, 0)):
            matcher.set_seq1(_normalize("\n".join(new_lines[i : i + size])))
            if matcher.real_quick_ratio() <= best or matcher.quick_ratio() <= best:
                continue
            ratio = matcher.ratio()
            if ratio > best:
                best, best_start, best_size = ratio, i + 1, size
    return best, best_start, best_size


def detect_movement(
    old_content: str,
    new_text: str,
    *,
    threshold: float = 0.5,
    near: int | None = None,
) -> MovementResult:
    """Search new_text for old_content.

    Args:
        old_content: Snippet stored on the reference.
        new_text: Full new file text.
        threshold: Minimum similarity for a partial match.
        near: Previous start line; breaks ties between verbatim matches.
    """
    old_lines = [line.rstrip("\r") for line in split_lines(old_content)]
    if not old_content.strip():
        return MovementResult(found=False, confidence=0.0, reason=NOT_FOUND_REASON)
    new_lines = [line.rstrip("\r") for line in split_lines(new_text)]
    width = len(old_lines)

    starts = _exact_starts(old_lines, new_lines)
    if starts:
        start = min(starts, key=lambda s: abs(s - near)) if near is not None else starts[0]
        return MovementResult(
            found=True,
            confidence=1.0,
            reason=EXACT_REASON,
            start_line=start,
            end_line=start + width - 1,
        )

    ratio, start, size = _best_window(old_content, new_lines, width)
    if ratio > threshold:
        # Whitespace-only differences normalize to a perfect ratio; still not verbatim.
        confidence = min(ratio, PARTIAL_CONFIDENCE_CAP)
        return MovementResult(
            found=True,
            confidence=confidence,
            reason=PARTIAL_REASON,
            start_line=start,
            end_line=start + size - 1,
        )

    return MovementResult(found=False, confidence=0.0, reason=NOT_FOUND_REASON)
