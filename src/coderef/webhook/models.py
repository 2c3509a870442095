"""Push payload models (the subset of GitHub's push event that is used)."""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PushRepository(BaseModel):
    model_config = ConfigDict(extra="ignore")

    full_name: str

    @field_validator("full_name")
    @classmethod
    def validate_full_name(cls, v: str) -> str:
        owner, sep, name = v.partition("/")
        if not owner or not sep or not name or "/" in name:
            raise ValueError(f"full_name must be 'owner/repo', got {v!r}")
        return v

    @property
    def owner(self) -> str:
        return self.full_name.split("/", 1)[0]

    @property
    def name(self) -> str:
        return self.full_name.split("/", 1)[1]


class PushCommit(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    added: list[str] = Field(default_factory=list)
    removed: list[str] = Field(default_factory=list)
    modified: list[str] = Field(default_factory=list)

    @field_validator("timestamp")
    @classmethod
    def ensure_aware(cls, v: datetime) -> datetime:
        return v if v.tzinfo is not None else v.replace(tzinfo=UTC)


class PushPayload(BaseModel):
    """``{repository: {full_name}, commits: [{id, timestamp, added, removed, modified}]}``."""

    model_config = ConfigDict(extra="ignore")

    repository: PushRepository
    commits: list[PushCommit] = Field(default_factory=list)
