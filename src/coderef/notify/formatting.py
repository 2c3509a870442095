"""Human-readable notification messages."""

from __future__ import annotations

from coderef.config.constants import TRUNCATION_MARKER
from coderef.notify.models import Resolution

DEFAULT_MAX_CONTENT_LENGTH = 200

_RESOLUTION_LINES: dict[str, tuple[str, ...]] = {
    Resolution.MANUAL: (
        "Resolution required: Manual intervention needed",
        "Please review and update the affected documentation.",
    ),
    Resolution.AUTO: (
        "Resolution required: Automatically resolved",
        "The code reference has been automatically updated.",
    ),
    Resolution.IGNORE: (
        "Resolution required: Ignored",
        "The conflict has been marked as ignored.",
    ),
}


def truncate(content: str, limit: int = DEFAULT_MAX_CONTENT_LENGTH) -> str:
    if len(content) <= limit:
        return content
    return content[:limit] + TRUNCATION_MARKER


def _block(title: str, content: str, limit: int) -> str:
    return f"\n\n{title}:\n```\n{truncate(content, limit)}\n```"


def format_change_message(
    reference_id: str,
    change_type: str,
    old_content: str,
    new_content: str | None = None,
    *,
    limit: int = DEFAULT_MAX_CONTENT_LENGTH,
) -> str:
    message = f"Code reference {reference_id} has been {change_type}."
    if change_type == "deleted":
        message += _block("Original content", old_content, limit)
    elif new_content is not None and change_type != "added":
        message += _block("Old content", old_content, limit)
        message += _block("New content", new_content, limit)
    else:
        message += _block("Content", new_content if new_content is not None else old_content, limit)
    return message


def format_conflict_message(reference_id: str, conflict_type: str, resolution: str) -> str:
    message = f"Code conflict detected for reference {reference_id}."
    message += f"\n\nConflict type: {conflict_type}"
    lines = _RESOLUTION_LINES.get(resolution)
    if lines is None:
        message += f"\n\nResolution required: {resolution}"
    else:
        message += "\n\n" + "\n".join(lines)
    return message


def format_repository_summary(repository: str, total_changes: int, affected_references: int) -> str:
    return (
        "Repository Update Summary\n\n"
        f"Repository: {repository}\n"
        f"Total changes: {total_changes}\n"
        f"Affected code references: {affected_references}\n\n"
        "All code references have been processed and updated."
    )
