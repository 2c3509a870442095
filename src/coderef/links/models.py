"""Value records for parsed code links."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from coderef.config.constants import LINK_SCHEME


class ReferenceType(str, Enum):
    """What a link points at inside a file."""

    LINE = "line"
    RANGE = "range"
    FUNCTION = "function"


@dataclass(frozen=True, slots=True)
class RepoInfo:
    """Repository coordinates of a single github:// URL."""

    owner: str
    repo: str
    file_path: str


@dataclass(frozen=True, slots=True)
class CodeLink:
    """One github:// link found in document text."""

    reference_type: ReferenceType
    owner: str
    repo: str
    file_path: str
    label: str
    original_text: str
    context: str = ""
    start_line: int | None = None
    end_line: int | None = None
    function_name: str | None = None

    @property
    def suffix(self) -> str:
        if self.function_name is not None:
            return f"#{self.function_name}"
        if self.start_line is None:
            return ""
        if self.end_line is not None:
            return f":{self.start_line}-{self.end_line}"
        return f":{self.start_line}"

    @property
    def url(self) -> str:
        return f"{LINK_SCHEME}{self.owner}/{self.repo}/{self.file_path}{self.suffix}"

    @property
    def class_name(self) -> str | None:
        """Enclosing type for dotted function names (``Class.method``)."""
        if self.function_name and "." in self.function_name:
            return self.function_name.rsplit(".", 1)[0]
        return None

    def to_dict(self) -> dict[str, object]:
        return {
            "type": self.reference_type.value,
            "owner": self.owner,
            "repo": self.repo,
            "file_path": self.file_path,
            "start_line": self.start_line,
            "end_line": self.end_line,
            "function_name": self.function_name,
            "label": self.label,
            "original_text": self.original_text,
            "context": self.context,
        }
