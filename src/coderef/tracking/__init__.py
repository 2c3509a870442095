"""Reference tracking: records, pure evaluation, and the change tracker."""

from coderef.tracking.engine import deletion_decision, evaluate_reference
from coderef.tracking.errors import (
    EventNotFoundError,
    EventStateError,
    ReferenceNotFoundError,
    StaleReferenceError,
    TrackingError,
)
from coderef.tracking.hashing import content_hash
from coderef.tracking.models import (
    ChangeType,
    CodeChangeEvent,
    CodeReference,
    Disposition,
    EventOutcome,
    MovementResult,
    ProcessingStatus,
    ReferenceDecision,
    ReferenceOutcome,
    ReferenceStatus,
)
from coderef.tracking.movement import detect_movement
from coderef.tracking.tracker import ChangeTracker
from coderef.tracking.transitions import (
    apply_content_update,
    apply_deletion,
    apply_status,
    mark_completed,
    mark_failed,
    mark_processing,
    mark_requeued,
)

__all__ = [
    # Shell
    "ChangeTracker",
    # Pure core
    "evaluate_reference",
    "deletion_decision",
    "detect_movement",
    "content_hash",
    "apply_deletion",
    "apply_content_update",
    "apply_status",
    "mark_processing",
    "mark_completed",
    "mark_failed",
    "mark_requeued",
    # Models
    "ChangeType",
    "CodeChangeEvent",
    "CodeReference",
    "Disposition",
    "EventOutcome",
    "MovementResult",
    "ProcessingStatus",
    "ReferenceDecision",
    "ReferenceOutcome",
    "ReferenceStatus",
    # Errors
    "TrackingError",
    "ReferenceNotFoundError",
    "StaleReferenceError",
    "EventNotFoundError",
    "EventStateError",
]
