"""Daemon lifecycle management."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

import structlog
import uvicorn

from coderef.config.loader import resolve_database_path
from coderef.daemon.consumer import EventConsumer
from coderef.documents.linker import DocumentLinker
from coderef.extraction.extractor import CodeExtractor
from coderef.github.client import GitHubContentProvider
from coderef.notify.notifier import Notifier
from coderef.notify.sinks import LogSink, SlackWebhookSink
from coderef.store.database import Database
from coderef.store.repository import ReferenceStore
from coderef.tracking.tracker import ChangeTracker
from coderef.webhook.ingest import WebhookIngestor

if TYPE_CHECKING:
    from coderef.config.models import CodeRefConfig, NotificationsConfig
    from coderef.extraction.models import FileContentProvider
    from coderef.notify.models import NotificationSink

logger = structlog.get_logger()


@dataclass
class ServerController:
    """
    Orchestrates daemon components.

    Components:
    - ReferenceStore: references, events and document links
    - WebhookIngestor: turns push deliveries into pending events
    - ChangeTracker: applies one event to its references
    - EventConsumer: pulls pending events in the background
    - DocumentLinker: registers and renders document placeholders
    """

    config: CodeRefConfig
    store: ReferenceStore
    provider: FileContentProvider
    notifier: Notifier

    ingestor: WebhookIngestor = field(init=False)
    tracker: ChangeTracker = field(init=False)
    consumer: EventConsumer = field(init=False)
    linker: DocumentLinker = field(init=False)
    _shutdown_event: asyncio.Event = field(default_factory=asyncio.Event, init=False)

    def __post_init__(self) -> None:
        self.ingestor = WebhookIngestor(self.store)
        self.tracker = ChangeTracker(
            self.store,
            self.provider,
            self.notifier,
            fuzzy_threshold=self.config.tracking.fuzzy_threshold,
        )
        self.consumer = EventConsumer(
            store=self.store,
            tracker=self.tracker,
            batch_size=self.config.consumer.batch_size,
            poll_interval_sec=self.config.consumer.poll_interval_sec,
            max_concurrency=self.config.consumer.max_concurrency,
        )
        self.linker = DocumentLinker(
            self.store,
            CodeExtractor(self.provider),
            default_ref=self.config.github.default_ref,
        )

    async def start(self) -> None:
        """Start background components."""
        logger.info("server_starting", database=str(self.store.db.db_path))
        if self.config.consumer.enabled:
            self.consumer.start()
        else:
            logger.info("event_consumer_disabled")

        base_url = f"http://{self.config.server.host}:{self.config.server.port}"
        logger.info("endpoint", name="webhook", url=f"{base_url}/api/webhooks/github")
        logger.info("endpoint", name="health", url=f"{base_url}/health")
        logger.info("endpoint", name="status", url=f"{base_url}/status")

    async def stop(self) -> None:
        """Stop background components gracefully."""
        logger.info("server_stopping")
        timeout = self.config.server.shutdown_timeout_sec
        try:
            async with asyncio.timeout(timeout):
                await self.consumer.stop()
        except TimeoutError:
            logger.warning("server_stop_timeout", message=f"Shutdown timed out after {timeout}s")

        self._shutdown_event.set()
        logger.info("server_stopped")

    def wait_for_shutdown(self) -> asyncio.Event:
        """Get the shutdown event for external coordination."""
        return self._shutdown_event


def build_sink(config: NotificationsConfig) -> NotificationSink:
    """Slack sink when a webhook URL is configured, else a log-only sink."""
    if config.slack_webhook_url:
        return SlackWebhookSink(config.slack_webhook_url, timeout_sec=config.timeout_sec)
    return LogSink()


def open_store(config: CodeRefConfig, root: Path | None = None) -> ReferenceStore:
    """Open (creating if needed) the configured database."""
    db = Database.from_config(resolve_database_path(config, root), config.database)
    db.create_all()
    return ReferenceStore(db)


def build_controller(
    config: CodeRefConfig,
    root: Path | None = None,
    *,
    provider: FileContentProvider | None = None,
    sink: NotificationSink | None = None,
) -> ServerController:
    """Wire the daemon components from configuration."""
    notifier = Notifier(
        sink or build_sink(config.notifications),
        max_content_length=config.notifications.max_content_length,
        timeout_sec=config.notifications.timeout_sec,
    )
    return ServerController(
        config=config,
        store=open_store(config, root),
        provider=provider or GitHubContentProvider.from_config(config.github),
        notifier=notifier,
    )


async def run_server(config: CodeRefConfig, root: Path | None = None) -> None:
    """Run the daemon until uvicorn receives a shutdown signal."""
    from coderef.daemon.app import create_app

    controller = build_controller(config, root)
    app = create_app(controller)

    uvicorn_config = uvicorn.Config(
        app,
        host=config.server.host,
        port=config.server.port,
        log_level="warning",  # Use structlog instead
        timeout_graceful_shutdown=int(config.server.shutdown_timeout_sec) or None,
    )
    server = uvicorn.Server(uvicorn_config)
    try:
        await server.serve()
    finally:
        controller.store.db.dispose()
