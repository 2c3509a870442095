"""Snippet extraction over decoded file text.

The module-level functions are pure: they take text and return frozen
results. ``CodeExtractor`` wraps them with a content provider for callers
that start from repository coordinates.
"""

from __future__ import annotations

from pathlib import PurePosixPath

import structlog

from coderef.extraction.errors import (
    FunctionNotFoundError,
    LineOutOfRangeError,
    SourceFileNotFoundError,
)
from coderef.extraction.models import (
    FileContent,
    FileContentProvider,
    FunctionExtraction,
    LineExtraction,
)
from coderef.extraction.structure import find_declaration, find_type_span, split_lines
from coderef.links.validation import check_reference

log = structlog.get_logger(__name__)

_LANGUAGES: dict[str, str] = {
    "ts": "typescript",
    "tsx": "typescript",
    "js": "javascript",
    "jsx": "javascript",
    "mjs": "javascript",
    "py": "python",
    "java": "java",
    "cpp": "cpp",
    "cc": "cpp",
    "c": "c",
    "h": "c",
    "cs": "csharp",
    "go": "go",
    "rs": "rust",
    "php": "php",
    "rb": "ruby",
    "scala": "scala",
    "kt": "kotlin",
    "swift": "swift",
    "dart": "dart",
}


def language_for_path(path: str) -> str:
    """Fenced-code language tag for a file path ('text' when unknown)."""
    suffix = PurePosixPath(path).suffix.lower().lstrip(".")
    return _LANGUAGES.get(suffix, "text")


def extract_range(text: str, start_line: int, end_line: int, *, sha: str | None = None) -> LineExtraction:
    """Lines start_line..end_line (1-indexed, inclusive) joined by newline.

    Raises:
        InvalidReferenceError: If the range is inverted or not positive.
        LineOutOfRangeError: If a requested line is past the end of the file.
    """
    check_reference("range", start_line, end_line)
    lines = split_lines(text)
    total = len(lines)
    if end_line > total:
        raise LineOutOfRangeError(end_line, total)
    return LineExtraction(
        content="\n".join(lines[start_line - 1 : end_line]),
        line_numbers=tuple(range(start_line, end_line + 1)),
        total_lines=total,
        sha=sha,
    )


def extract_line(text: str, line: int, *, sha: str | None = None) -> LineExtraction:
    """A single 1-indexed line."""
    check_reference("line", line)
    return extract_range(text, line, line, sha=sha)


def _is_python(file_path: str) -> bool:
    return language_for_path(file_path) == "python"


def extract_function(
    text: str, function_name: str, file_path: str = "", *, sha: str | None = None
) -> FunctionExtraction:
    """Declaration through closing delimiter of a named function.

    ``Class.method`` restricts the search to the body of ``Class``.

    Raises:
        FunctionNotFoundError: If no declaration matches.
    """
    python = _is_python(file_path)
    type_name, _, name = function_name.rpartition(".")
    lo, hi = 0, len(text)
    if type_name:
        span = find_type_span(text, type_name.rsplit(".", 1)[-1], python=python)
        if span is None:
            raise FunctionNotFoundError(file_path, function_name)
        lo, hi = span

    decl = find_declaration(text, name, python=python, lo=lo, hi=hi)
    if decl is None:
        raise FunctionNotFoundError(file_path, function_name)

    lines = split_lines(text)
    start = decl.start_line(text)
    end = min(decl.end_line(text), len(lines))
    return FunctionExtraction(
        content="\n".join(lines[start - 1 : end]),
        function_name=function_name,
        start_line=start,
        end_line=end,
        sha=sha,
    )


class CodeExtractor:
    """Extraction against repository coordinates through a content provider."""

    def __init__(self, provider: FileContentProvider) -> None:
        self._provider = provider

    async def fetch(self, owner: str, repo: str, path: str, ref: str | None = None) -> FileContent:
        """Fetch file content, raising SourceFileNotFoundError when absent."""
        content = await self._provider.get_file_content(owner, repo, path, ref)
        if content is None:
            log.debug("file_content_missing", owner=owner, repo=repo, path=path, ref=ref)
            raise SourceFileNotFoundError(path, ref)
        return content

    async def extract_line(
        self, owner: str, repo: str, path: str, line: int, ref: str | None = None
    ) -> LineExtraction:
        file = await self.fetch(owner, repo, path, ref)
        return extract_line(file.content, line, sha=file.sha)

    async def extract_range(
        self, owner: str, repo: str, path: str, start_line: int, end_line: int, ref: str | None = None
    ) -> LineExtraction:
        file = await self.fetch(owner, repo, path, ref)
        return extract_range(file.content, start_line, end_line, sha=file.sha)

    async def extract_function(
        self, owner: str, repo: str, path: str, function_name: str, ref: str | None = None
    ) -> FunctionExtraction:
        file = await self.fetch(owner, repo, path, ref)
        return extract_function(file.content, function_name, path, sha=file.sha)
