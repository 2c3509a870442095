"""Root conftest.py for test configuration.

Ensures local src/ directory takes priority over any installed packages,
and provides in-memory collaborators shared by the test modules.
"""

import asyncio
import sys
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import pytest

# Insert local src directory at the beginning of sys.path
_src_dir = Path(__file__).parent.parent / "src"
if str(_src_dir) not in sys.path:
    sys.path.insert(0, str(_src_dir))

from coderef.extraction.models import FileContent  # noqa: E402
from coderef.links.models import ReferenceType  # noqa: E402
from coderef.store.database import Database  # noqa: E402
from coderef.store.repository import ReferenceStore  # noqa: E402
from coderef.tracking.hashing import content_hash  # noqa: E402
from coderef.tracking.models import CodeReference, new_id  # noqa: E402


class FakeContentProvider:
    """In-memory FileContentProvider keyed by (owner, repo, path), optionally per commit."""

    def __init__(self) -> None:
        self.files: dict[tuple[str, str, str], str] = {}
        self.revisions: dict[tuple[str, str, str, str], str] = {}
        self.delays: dict[str, float] = {}
        self.calls: list[tuple[str, str, str, str | None]] = []
        self.error: Exception | None = None

    def put(self, owner: str, repo: str, path: str, content: str, ref: str | None = None) -> None:
        if ref is None:
            self.files[(owner, repo, path)] = content
        else:
            self.revisions[(owner, repo, path, ref)] = content

    async def get_file_content(
        self, owner: str, repo: str, path: str, ref: str | None = None
    ) -> FileContent | None:
        self.calls.append((owner, repo, path, ref))
        if ref in self.delays:
            await asyncio.sleep(self.delays[ref])
        if self.error is not None:
            raise self.error
        content = self.revisions.get((owner, repo, path, ref or ""), self.files.get((owner, repo, path)))
        if content is None:
            return None
        return FileContent(content=content, sha=f"sha-{len(self.calls)}")


class RecordingSink:
    """NotificationSink that records payloads and can be told to fail."""

    def __init__(self) -> None:
        self.sent: list[dict[str, Any]] = []
        self.fail_with: Exception | None = None
        self.result = True

    async def send(self, payload: dict[str, Any]) -> bool:
        self.sent.append(payload)
        if self.fail_with is not None:
            raise self.fail_with
        return self.result


@pytest.fixture
def provider() -> FakeContentProvider:
    return FakeContentProvider()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def database(tmp_path: Path) -> Iterator[Database]:
    db = Database(tmp_path / "coderef.db")
    db.create_all()
    yield db
    db.dispose()


@pytest.fixture
def store(database: Database) -> ReferenceStore:
    return ReferenceStore(database)


@pytest.fixture
def make_reference() -> Callable[..., CodeReference]:
    """Factory for CodeReference records with consistent hashes."""

    def _make(
        content: str = "line two",
        *,
        reference_type: ReferenceType = ReferenceType.LINE,
        file_path: str = "src/app.ts",
        owner: str = "acme",
        repo: str = "widgets",
        **fields: Any,
    ) -> CodeReference:
        return CodeReference(
            id=fields.pop("id", new_id()),
            repository_owner=owner,
            repository_name=repo,
            file_path=file_path,
            reference_type=reference_type,
            content=content,
            content_hash=content_hash(content),
            **fields,
        )

    return _make
