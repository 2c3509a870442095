"""Code link parsing and reference validation."""

from coderef.links.errors import InvalidReferenceError, LinkError, MalformedLinkError
from coderef.links.models import CodeLink, ReferenceType, RepoInfo
from coderef.links.parser import extract_repo_info, format_link, parse_code_links
from coderef.links.validation import check_reference, is_valid_reference, validate_link

__all__ = [
    # Parsing
    "parse_code_links",
    "extract_repo_info",
    "format_link",
    # Validation
    "is_valid_reference",
    "check_reference",
    "validate_link",
    # Models
    "CodeLink",
    "ReferenceType",
    "RepoInfo",
    # Errors
    "LinkError",
    "MalformedLinkError",
    "InvalidReferenceError",
]
