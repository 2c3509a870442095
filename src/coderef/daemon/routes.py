"""HTTP routes for the CodeRef daemon.

Webhook intake, event administration, reference queries, document
registration and rendering, plus health and status diagnostics.
"""

from __future__ import annotations

import importlib.metadata
import os
import sys
import time
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog
from pydantic import BaseModel, ValidationError
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from coderef.config.constants import EVENT_HEADER, SIGNATURE_HEADER
from coderef.core.errors import ErrorCode, error_body
from coderef.tracking.models import ReferenceStatus
from coderef.webhook.errors import InvalidPayloadError
from coderef.webhook.ingest import parse_push_payload
from coderef.webhook.signature import require_valid_signature

if TYPE_CHECKING:
    from coderef.daemon.lifecycle import ServerController

logger = structlog.get_logger()

Handler = Callable[[Request], Awaitable[JSONResponse]]

SUPPORTED_EVENTS = ("push", "ping")

_STATUS_BY_CODE: dict[ErrorCode, int] = {
    ErrorCode.LINK_MALFORMED: 400,
    ErrorCode.REFERENCE_INVALID: 400,
    ErrorCode.PAYLOAD_INVALID: 400,
    ErrorCode.LINE_OUT_OF_RANGE: 422,
    ErrorCode.SIGNATURE_MISMATCH: 401,
    ErrorCode.FILE_NOT_FOUND: 404,
    ErrorCode.FUNCTION_NOT_FOUND: 404,
    ErrorCode.REFERENCE_NOT_FOUND: 404,
    ErrorCode.EVENT_NOT_FOUND: 404,
    ErrorCode.REFERENCE_STALE: 409,
    ErrorCode.EVENT_STATE_INVALID: 409,
}


class ReferenceStatusUpdate(BaseModel):
    """Body of ``POST /api/references/{id}/status``."""

    status: ReferenceStatus


class DocumentBody(BaseModel):
    """Body of the document link and render routes."""

    content: str
    ref: str | None = None


def _get_version() -> str:
    """Get package version from installed metadata."""
    try:
        return importlib.metadata.version("coderef")
    except importlib.metadata.PackageNotFoundError:
        return "dev"


def _get_db_stats(db_path: Path) -> dict[str, Any]:
    """Get SQLite database statistics."""
    stats: dict[str, Any] = {"exists": db_path.exists()}
    if db_path.exists():
        stats["size_bytes"] = db_path.stat().st_size
        wal_path = Path(str(db_path) + "-wal")
        if wal_path.exists():
            stats["wal_size_bytes"] = wal_path.stat().st_size
    return stats


def error_response(error: Exception) -> JSONResponse:
    """Map an exception to its JSON error body and HTTP status."""
    body = error_body(error)
    status_code = _STATUS_BY_CODE.get(ErrorCode(body["code"]), 500)
    if status_code >= 500:
        logger.error("request_failed", error=str(error), error_type=type(error).__name__)
    return JSONResponse(body, status_code=status_code)


def _guarded(handler: Handler) -> Handler:
    async def wrapper(request: Request) -> JSONResponse:
        try:
            return await handler(request)
        except Exception as e:
            return error_response(e)

    wrapper.__name__ = handler.__name__
    wrapper.__doc__ = handler.__doc__
    return wrapper


async def _read_model(request: Request, model: type[BaseModel]) -> Any:
    try:
        return model.model_validate_json(await request.body())
    except ValidationError as e:
        raise InvalidPayloadError(str(e.errors(include_url=False)[0]["msg"])) from e


def create_routes(controller: ServerController) -> list[Route]:
    """Create HTTP routes bound to the daemon controller."""
    start_time = time.time()
    version = _get_version()
    store = controller.store

    async def github_webhook(request: Request) -> JSONResponse:
        """Verify and dispatch one GitHub delivery."""
        body = await request.body()
        webhook = controller.config.webhook
        if webhook.secret or webhook.require_signature:
            require_valid_signature(body, request.headers.get(SIGNATURE_HEADER), webhook.secret)

        event_type = request.headers.get(EVENT_HEADER, "")
        if event_type == "ping":
            logger.info("webhook_ping")
            return JSONResponse({"message": "pong"})
        if event_type != "push":
            logger.info("webhook_event_ignored", event_type=event_type)
            return JSONResponse({"message": f"Event type '{event_type}' ignored"})

        result = controller.ingestor.ingest(parse_push_payload(body))
        if result.events:
            controller.consumer.wake()
        return JSONResponse(result.to_dict(), status_code=202)

    async def process_pending(request: Request) -> JSONResponse:
        """Run one consumer batch now."""
        raw_limit = request.query_params.get("limit")
        try:
            limit = int(raw_limit) if raw_limit else None
        except ValueError as e:
            raise InvalidPayloadError(f"limit must be an integer, got {raw_limit!r}") from e
        if limit is not None and limit < 1:
            raise InvalidPayloadError(f"limit must be positive, got {limit}")
        result = await controller.consumer.run_once(limit)
        return JSONResponse(result.to_dict())

    async def webhook_status(request: Request) -> JSONResponse:
        _ = request  # unused
        return JSONResponse(
            {
                "endpoint": "/api/webhooks/github",
                "supported_events": list(SUPPORTED_EVENTS),
                "signature_required": controller.config.webhook.require_signature,
                "secret_configured": controller.config.webhook.secret is not None,
            }
        )

    async def get_event(request: Request) -> JSONResponse:
        event = store.require_event(request.path_params["event_id"])
        return JSONResponse(event.to_dict())

    async def requeue_event(request: Request) -> JSONResponse:
        """Return a failed event to the pending queue."""
        event = store.requeue_event(request.path_params["event_id"])
        controller.consumer.wake()
        return JSONResponse(event.to_dict())

    async def list_references(request: Request) -> JSONResponse:
        params = request.query_params
        raw_status = params.get("status")
        try:
            status = ReferenceStatus(raw_status) if raw_status else None
        except ValueError as e:
            raise InvalidPayloadError(f"unknown status {raw_status!r}") from e
        refs = store.list_references(
            owner=params.get("owner"),
            repo=params.get("repo"),
            status=status,
            file_path=params.get("file_path"),
        )
        return JSONResponse({"references": [ref.to_dict() for ref in refs], "count": len(refs)})

    async def get_reference(request: Request) -> JSONResponse:
        ref = store.require_reference(request.path_params["reference_id"])
        return JSONResponse(ref.to_dict())

    async def set_reference_status(request: Request) -> JSONResponse:
        """Explicit external status change."""
        update: ReferenceStatusUpdate = await _read_model(request, ReferenceStatusUpdate)
        ref = store.set_reference_status(request.path_params["reference_id"], update.status)
        return JSONResponse(ref.to_dict())

    async def register_links(request: Request) -> JSONResponse:
        """Parse a document and bind its links to tracked references."""
        doc: DocumentBody = await _read_model(request, DocumentBody)
        document_id = request.path_params["document_id"]
        results = await controller.linker.register(document_id, doc.content, ref=doc.ref)
        return JSONResponse(
            {
                "document_id": document_id,
                "links": [r.to_dict() for r in results],
                "registered": sum(1 for r in results if r.ok),
                "failed": sum(1 for r in results if not r.ok),
            }
        )

    async def render_document(request: Request) -> JSONResponse:
        doc: DocumentBody = await _read_model(request, DocumentBody)
        document_id = request.path_params["document_id"]
        return JSONResponse(
            {"document_id": document_id, "content": controller.linker.render(document_id, doc.content)}
        )

    async def health(request: Request) -> JSONResponse:
        """Health check endpoint.

        Returns a quick status suitable for liveness probes.
        For detailed diagnostics, use /status instead.
        """
        _ = request  # unused
        return JSONResponse(
            {
                "status": "healthy",
                "version": version,
                "uptime_seconds": round(time.time() - start_time, 1),
            }
        )

    async def status(request: Request) -> JSONResponse:
        """Detailed status endpoint with consumer and queue diagnostics."""
        _ = request  # unused
        consumer = controller.consumer.status
        return JSONResponse(
            {
                "version": version,
                "uptime_seconds": round(time.time() - start_time, 1),
                "runtime": {"python_version": sys.version.split()[0], "pid": os.getpid()},
                "consumer": {
                    "state": consumer.state.value,
                    "running": consumer.running,
                    "processed_total": consumer.processed_total,
                    "failed_total": consumer.failed_total,
                    "last_batch_at": consumer.last_batch_at,
                    "last_error": consumer.last_error,
                },
                "events": store.count_events(),
                "database": _get_db_stats(store.db.db_path),
            }
        )

    return [
        Route("/api/webhooks/github", _guarded(github_webhook), methods=["POST"]),
        Route("/api/webhooks/process-pending", _guarded(process_pending), methods=["POST"]),
        Route("/api/webhooks/status", _guarded(webhook_status), methods=["GET"]),
        Route("/api/events/{event_id}", _guarded(get_event), methods=["GET"]),
        Route("/api/events/{event_id}/requeue", _guarded(requeue_event), methods=["POST"]),
        Route("/api/references", _guarded(list_references), methods=["GET"]),
        Route("/api/references/{reference_id}", _guarded(get_reference), methods=["GET"]),
        Route("/api/references/{reference_id}/status", _guarded(set_reference_status), methods=["POST"]),
        Route("/api/documents/{document_id}/links", _guarded(register_links), methods=["POST"]),
        Route("/api/documents/{document_id}/render", _guarded(render_document), methods=["POST"]),
        Route("/health", health, methods=["GET"]),
        Route("/status", _guarded(status), methods=["GET"]),
    ]
