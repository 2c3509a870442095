"""Document link records."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class DocumentLink:
    """A placeholder in a document bound to one tracked reference.

    The binding is made once when the document is registered. Tracking
    works on reference ids and never re-derives them from document text.
    """

    document_id: str
    reference_id: str
    placeholder: str
    context: str = ""
    position: int = 0
    id: int | None = None


@dataclass(frozen=True, slots=True)
class LinkRegistration:
    """Outcome of registering one link found in a document."""

    placeholder: str
    reference_id: str | None = None
    created: bool = False
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, object]:
        return {
            "placeholder": self.placeholder,
            "reference_id": self.reference_id,
            "created": self.created,
            "error": self.error,
        }
