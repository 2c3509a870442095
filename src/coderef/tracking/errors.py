"""Tracking error types."""

from coderef.core.errors import ErrorCode


class TrackingError(Exception):
    """Base error for reference tracking."""

    error_code = ErrorCode.INTERNAL_ERROR


class ReferenceNotFoundError(TrackingError):
    """No reference with this id."""

    error_code = ErrorCode.REFERENCE_NOT_FOUND

    def __init__(self, reference_id: str) -> None:
        super().__init__(f"Code reference not found: {reference_id}")
        self.reference_id = reference_id


class StaleReferenceError(TrackingError):
    """Stored content hash changed since the reference was loaded."""

    error_code = ErrorCode.REFERENCE_STALE

    def __init__(self, reference_id: str, expected_hash: str, actual_hash: str) -> None:
        super().__init__(
            f"Code reference {reference_id} was modified concurrently "
            f"(expected hash {expected_hash[:12]}, found {actual_hash[:12]})"
        )
        self.reference_id = reference_id
        self.expected_hash = expected_hash
        self.actual_hash = actual_hash


class EventNotFoundError(TrackingError):
    """No change event with this id."""

    error_code = ErrorCode.EVENT_NOT_FOUND

    def __init__(self, event_id: str) -> None:
        super().__init__(f"Change event not found: {event_id}")
        self.event_id = event_id


class EventStateError(TrackingError):
    """Event is not in a state that allows the requested transition."""

    error_code = ErrorCode.EVENT_STATE_INVALID

    def __init__(self, event_id: str, status: str, operation: str) -> None:
        super().__init__(f"Cannot {operation} event {event_id}: status is {status}")
        self.event_id = event_id
        self.status = status
        self.operation = operation
