"""Code link parser.

Document text is scanned once, left to right, by a small tokenizer. It
recognizes the markdown link form ``[label](github://owner/repo/path)``
with an optional location suffix:

    :N        single line
    :N-M      inclusive line range
    #name     function or method (``Class.method`` scopes to a type)

Ordinary markdown links (any other scheme) are skipped untouched. When a
target could be read more than one way the ``#`` suffix wins, then a
range, then a single line.
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from dataclasses import dataclass

from coderef.config.constants import LINK_SCHEME
from coderef.links.errors import MalformedLinkError
from coderef.links.models import CodeLink, ReferenceType, RepoInfo

# Canonical integers only, so re-serializing a link reproduces its text.
_LINE_SUFFIX = re.compile(r"(0|[1-9]\d*)(?:-(0|[1-9]\d*))?")

_OPEN = "(" + LINK_SCHEME


@dataclass(frozen=True, slots=True)
class _Target:
    owner: str
    repo: str
    file_path: str
    start_line: int | None = None
    end_line: int | None = None
    function_name: str | None = None

    @property
    def reference_type(self) -> ReferenceType:
        if self.function_name is not None:
            return ReferenceType.FUNCTION
        if self.start_line is not None and self.end_line is not None:
            return ReferenceType.RANGE
        return ReferenceType.LINE


def _parse_target(target: str) -> _Target | None:
    """Split ``owner/repo/path[suffix]`` (scheme already removed)."""
    owner, sep, rest = target.partition("/")
    if not owner or not sep:
        return None
    repo, sep, location = rest.partition("/")
    if not repo or not sep or not location:
        return None

    # Path is at least one character, so the search starts at index 1.
    hash_at = location.find("#", 1)
    if hash_at > 0 and hash_at < len(location) - 1:
        return _Target(owner, repo, location[:hash_at], function_name=location[hash_at + 1 :])

    colon_at = location.rfind(":")
    if colon_at > 0:
        match = _LINE_SUFFIX.fullmatch(location, colon_at + 1)
        if match:
            start, end = match.group(1), match.group(2)
            return _Target(
                owner,
                repo,
                location[:colon_at],
                start_line=int(start),
                end_line=int(end) if end is not None else None,
            )

    return _Target(owner, repo, location)


def _context_for(text: str, offset: int) -> str:
    """Text leading up to the link on its own line, else the line directly above."""
    line_start = text.rfind("\n", 0, offset) + 1
    before = text[line_start:offset].strip()
    if before or line_start == 0:
        return before
    prev_start = text.rfind("\n", 0, line_start - 1) + 1
    return text[prev_start : line_start - 1].strip()


class _LinkScanner:
    """Single-pass tokenizer over document text.

    Each candidate starts at ``[``. The label runs to the next ``]``, which
    must be followed immediately by ``(github://``. The target runs to the
    first ``)`` on the same line. A failed candidate resumes scanning at the
    character after its ``[``.
    """

    def __init__(self, text: str) -> None:
        self._text = text

    def __iter__(self) -> Iterator[CodeLink]:
        text = self._text
        pos = 0
        while True:
            start = text.find("[", pos)
            if start < 0:
                return
            link, end = self._read_link(start)
            if link is None:
                pos = start + 1
                continue
            yield link
            pos = end

    def _read_link(self, start: int) -> tuple[CodeLink | None, int]:
        text = self._text
        close = text.find("]", start + 1)
        if close < 0 or close == start + 1:
            return None, start
        if not text.startswith(_OPEN, close + 1):
            return None, start

        target_start = close + 1 + len(_OPEN)
        end = text.find(")", target_start)
        if end < 0:
            return None, start
        newline = text.find("\n", target_start, end)
        if newline >= 0:
            return None, start

        target = _parse_target(text[target_start:end])
        if target is None:
            return None, start

        link = CodeLink(
            reference_type=target.reference_type,
            owner=target.owner,
            repo=target.repo,
            file_path=target.file_path,
            label=text[start + 1 : close],
            original_text=text[start : end + 1],
            context=_context_for(text, start),
            start_line=target.start_line,
            end_line=target.end_line,
            function_name=target.function_name,
        )
        return link, end + 1


def parse_code_links(text: str) -> list[CodeLink]:
    """Parse every github:// code link in document order."""
    if not text:
        return []
    return list(_LinkScanner(text))


def format_link(link: CodeLink) -> str:
    """Serialize a link back to its markdown form."""
    return f"[{link.label}]({link.url})"


def extract_repo_info(url: str) -> RepoInfo:
    """Read owner, repo and file path from a single github:// URL.

    Raises:
        MalformedLinkError: If the scheme is absent or the URL lacks a path.
    """
    if not url.startswith(LINK_SCHEME):
        raise MalformedLinkError(url)
    target = _parse_target(url[len(LINK_SCHEME) :])
    if target is None:
        raise MalformedLinkError(url)
    return RepoInfo(owner=target.owner, repo=target.repo, file_path=target.file_path)
