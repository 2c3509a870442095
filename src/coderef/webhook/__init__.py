"""Push webhook ingestion."""

from coderef.webhook.errors import InvalidPayloadError, SignatureMismatchError, WebhookError
from coderef.webhook.ingest import IngestResult, WebhookIngestor, parse_push_payload, plan_change_events
from coderef.webhook.models import PushCommit, PushPayload, PushRepository
from coderef.webhook.signature import compute_signature, require_valid_signature, verify_signature

__all__ = [
    "WebhookIngestor",
    "IngestResult",
    "parse_push_payload",
    "plan_change_events",
    "compute_signature",
    "verify_signature",
    "require_valid_signature",
    "PushPayload",
    "PushCommit",
    "PushRepository",
    "WebhookError",
    "SignatureMismatchError",
    "InvalidPayloadError",
]
