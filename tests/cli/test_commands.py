"""Tests for the coderef CLI commands."""

from __future__ import annotations

import json
from collections.abc import Iterator
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import httpx
import pytest
from click.testing import CliRunner

from coderef.cli.main import cli
from coderef.store.database import Database
from coderef.store.repository import ReferenceStore
from coderef.tracking.models import ChangeType, CodeChangeEvent, ProcessingStatus, new_id

DOC = """\
# Guide

[ok](github://acme/widgets/src/app.ts:3)
[range](github://acme/widgets/src/app.ts:9-4)
"""


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def root_store(tmp_path: Path) -> Iterator[ReferenceStore]:
    """Store at the default database location under tmp_path."""
    db = Database(tmp_path / ".coderef" / "coderef.db")
    db.create_all()
    yield ReferenceStore(db)
    db.dispose()


def _failed_event(store: ReferenceStore) -> CodeChangeEvent:
    [event] = store.add_events(
        [
            CodeChangeEvent(
                id=new_id(),
                repository_owner="acme",
                repository_name="widgets",
                file_path="src/app.ts",
                change_type=ChangeType.MODIFIED,
                commit_sha="c1",
                timestamp=datetime(2026, 5, 1, tzinfo=UTC),
            )
        ]
    )
    store.claim_event(event.id)
    return store.fail_event(event.id, "boom")


class TestCli:
    """Tests for the command group."""

    def test_version(self, runner: CliRunner) -> None:
        """--version prints the program version."""
        result = runner.invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert "coderef" in result.output
        assert "0.1.0" in result.output

    def test_help_lists_commands(self, runner: CliRunner) -> None:
        """All commands are registered."""
        result = runner.invoke(cli, ["--help"])

        for name in ("serve", "scan", "process", "requeue", "status"):
            assert name in result.output


class TestScan:
    """Tests for coderef scan."""

    def test_reports_invalid_links(self, runner: CliRunner, tmp_path: Path) -> None:
        """Invalid links are reported and the exit code is non-zero."""
        doc = tmp_path / "guide.md"
        doc.write_text(DOC)

        result = runner.invoke(cli, ["scan", str(doc), "--json"])

        assert result.exit_code == 1
        data = json.loads(result.output)
        assert data["invalid"] == 1
        assert [link["error"] is None for link in data["links"]] == [True, False]
        assert data["links"][1]["type"] == "range"

    def test_all_valid(self, runner: CliRunner, tmp_path: Path) -> None:
        """A document with valid links exits cleanly."""
        doc = tmp_path / "guide.md"
        doc.write_text("[ok](github://acme/widgets/src/app.ts#main)\n")

        result = runner.invoke(cli, ["scan", str(doc)])

        assert result.exit_code == 0
        assert "1 link(s), 0 invalid" in result.output

    def test_no_links(self, runner: CliRunner, tmp_path: Path) -> None:
        """Plain documents say so."""
        doc = tmp_path / "plain.md"
        doc.write_text("[site](https://example.com)\n")

        result = runner.invoke(cli, ["scan", str(doc)])

        assert result.exit_code == 0
        assert "No code links found" in result.output


class TestRequeue:
    """Tests for coderef requeue."""

    def test_requeues_failed_event(self, runner: CliRunner, tmp_path: Path, root_store: ReferenceStore) -> None:
        """A failed event goes back to pending."""
        event = _failed_event(root_store)

        result = runner.invoke(cli, ["requeue", "--root", str(tmp_path), event.id])

        assert result.exit_code == 0, result.output
        assert f"Requeued {event.id} (src/app.ts)" in result.output
        assert root_store.require_event(event.id).processing_status is ProcessingStatus.PENDING

    def test_unknown_event(self, runner: CliRunner, tmp_path: Path, root_store: ReferenceStore) -> None:
        """Unknown ids are a usage error."""
        result = runner.invoke(cli, ["requeue", "--root", str(tmp_path), "nope"])

        assert result.exit_code == 1
        assert "Change event not found: nope" in result.output


class TestProcess:
    """Tests for coderef process."""

    def test_empty_queue(self, runner: CliRunner, tmp_path: Path, root_store: ReferenceStore) -> None:
        """No pending events is reported plainly."""
        result = runner.invoke(cli, ["process", "--root", str(tmp_path)])

        assert result.exit_code == 0, result.output
        assert "No pending events" in result.output

    def test_limit_bounds(self, runner: CliRunner, tmp_path: Path) -> None:
        """--limit is checked against the batch cap."""
        result = runner.invoke(cli, ["process", "--root", str(tmp_path), "--limit", "501"])

        assert result.exit_code == 2


class TestStatus:
    """Tests for coderef status."""

    def test_unreachable(self, runner: CliRunner, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """A daemon that is not running is reported, not raised."""

        def refuse(*args: Any, **kwargs: Any) -> httpx.Response:
            raise httpx.ConnectError("connection refused")

        monkeypatch.setattr(httpx, "get", refuse)

        result = runner.invoke(cli, ["status", "--root", str(tmp_path), "--port", "7999"])

        assert result.exit_code == 0
        assert "Daemon: not reachable on port 7999" in result.output

    def test_running(self, runner: CliRunner, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """A reachable daemon reports consumer state and queue counts."""
        body = {
            "version": "0.1.0",
            "consumer": {"state": "idle", "last_error": None},
            "events": {"pending": 2, "processing": 0, "completed": 5, "failed": 1},
        }
        monkeypatch.setattr(httpx, "get", lambda *args, **kwargs: httpx.Response(200, json=body))

        result = runner.invoke(cli, ["status", "--root", str(tmp_path)])

        assert result.exit_code == 0
        assert "Daemon: running (port 7655, version 0.1.0)" in result.output
        assert "Consumer: idle" in result.output
        assert "Events: 2 pending, 0 processing, 5 completed, 1 failed" in result.output
