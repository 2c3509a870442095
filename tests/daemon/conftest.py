"""Daemon test fixtures: a controller over a temp database and fake collaborators."""

from collections.abc import Iterator
from pathlib import Path
from typing import Any

import pytest
from starlette.testclient import TestClient

from coderef.config.models import CodeRefConfig, ConsumerConfig, DatabaseConfig, WebhookConfig
from coderef.daemon.app import create_app
from coderef.daemon.lifecycle import ServerController, build_controller

WEBHOOK_SECRET = "s3cret"


@pytest.fixture
def daemon_config(tmp_path: Path) -> CodeRefConfig:
    return CodeRefConfig(
        database=DatabaseConfig(path=str(tmp_path / "daemon.db")),
        consumer=ConsumerConfig(enabled=False),
        webhook=WebhookConfig(secret=WEBHOOK_SECRET),
    )


@pytest.fixture
def controller(daemon_config: CodeRefConfig, tmp_path: Path, provider: Any, sink: Any) -> Iterator[ServerController]:
    ctl = build_controller(daemon_config, tmp_path, provider=provider, sink=sink)
    yield ctl
    ctl.store.db.dispose()


@pytest.fixture
def client(controller: ServerController) -> Iterator[TestClient]:
    with TestClient(create_app(controller)) as test_client:
        yield test_client
