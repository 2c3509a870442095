"""Extraction results and the file content provider contract."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True, slots=True)
class FileContent:
    """Decoded file text plus its blob identity."""

    content: str
    sha: str


@dataclass(frozen=True, slots=True)
class LineExtraction:
    """Lines sliced out of a file (1-indexed, inclusive)."""

    content: str
    line_numbers: tuple[int, ...]
    total_lines: int
    sha: str | None = None

    @property
    def start_line(self) -> int:
        return self.line_numbers[0]

    @property
    def end_line(self) -> int:
        return self.line_numbers[-1]


@dataclass(frozen=True, slots=True)
class FunctionExtraction:
    """Declaration through closing delimiter of one function."""

    content: str
    function_name: str
    start_line: int
    end_line: int
    sha: str | None = None


@dataclass(frozen=True, slots=True)
class FunctionSignature:
    """Declared parameters and span of one function."""

    name: str
    parameters: tuple[str, ...]
    return_type: str | None
    start_line: int
    end_line: int
    hash: str


class FileContentProvider(Protocol):
    """Fetches file text from a repository at a given ref."""

    async def get_file_content(
        self, owner: str, repo: str, path: str, ref: str | None = None
    ) -> FileContent | None: ...
