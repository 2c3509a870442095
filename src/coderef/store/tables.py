"""SQLModel table definitions.

Rows stay inside the store package. The rest of the code sees the frozen
records from ``coderef.tracking.models`` and ``coderef.documents.models``.
Timestamps are stored as epoch seconds.
"""

from __future__ import annotations

from sqlmodel import Field, SQLModel


class ReferenceRow(SQLModel, table=True):
    """Tracked code reference."""

    __tablename__ = "code_references"

    id: str = Field(primary_key=True)
    repository_owner: str = Field(index=True)
    repository_name: str = Field(index=True)
    file_path: str = Field(index=True)
    reference_type: str
    start_line: int | None = None
    end_line: int | None = None
    function_name: str | None = None
    class_name: str | None = None
    content: str = ""
    content_hash: str = ""
    status: str = Field(default="active", index=True)
    commit_sha: str | None = None
    created_at: float = 0.0
    updated_at: float = 0.0


class ChangeEventRow(SQLModel, table=True):
    """Queued file-level change event."""

    __tablename__ = "code_change_events"

    id: str = Field(primary_key=True)
    repository_owner: str = Field(index=True)
    repository_name: str = Field(index=True)
    file_path: str
    change_type: str
    commit_sha: str
    timestamp: float = Field(index=True)
    affected_references: str = "[]"  # JSON array of reference ids
    processing_status: str = Field(default="pending", index=True)
    error_message: str | None = None
    created_at: float = 0.0
    processed_at: float | None = None


class DocumentLinkRow(SQLModel, table=True):
    """Placeholder in a document bound to one code reference."""

    __tablename__ = "document_links"

    id: int | None = Field(default=None, primary_key=True)
    document_id: str = Field(index=True)
    reference_id: str = Field(foreign_key="code_references.id", index=True)
    placeholder: str
    context: str = ""
    position: int = 0
