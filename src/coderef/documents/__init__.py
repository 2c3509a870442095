"""Document placeholders bound to tracked references."""

from coderef.documents.models import DocumentLink, LinkRegistration

__all__ = ["DocumentLink", "LinkRegistration"]
