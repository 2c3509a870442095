"""Link module error types."""

from coderef.core.errors import ErrorCode


class LinkError(Exception):
    """Base error for link parsing and validation."""

    error_code = ErrorCode.LINK_MALFORMED


class MalformedLinkError(LinkError):
    """URL does not follow the github:// link grammar."""

    error_code = ErrorCode.LINK_MALFORMED

    def __init__(self, url: str) -> None:
        super().__init__(f"Invalid GitHub URL format: {url}")
        self.url = url


class InvalidReferenceError(LinkError):
    """Reference fields are inconsistent with its type."""

    error_code = ErrorCode.REFERENCE_INVALID

    def __init__(self, reference_type: str, reason: str) -> None:
        super().__init__(f"Invalid {reference_type} reference: {reason}")
        self.reference_type = reference_type
        self.reason = reason
