"""Webhook error types."""

from coderef.core.errors import ErrorCode


class WebhookError(Exception):
    """Base error for webhook ingestion."""

    error_code = ErrorCode.PAYLOAD_INVALID


class SignatureMismatchError(WebhookError):
    """Delivery signature is missing or does not match the payload."""

    error_code = ErrorCode.SIGNATURE_MISMATCH

    def __init__(self, reason: str = "Invalid webhook signature") -> None:
        super().__init__(reason)
        self.reason = reason


class InvalidPayloadError(WebhookError):
    """Payload body is not a usable push event."""

    error_code = ErrorCode.PAYLOAD_INVALID

    def __init__(self, reason: str) -> None:
        super().__init__(f"Invalid webhook payload: {reason}")
        self.reason = reason
