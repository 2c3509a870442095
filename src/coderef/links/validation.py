"""Reference field validation.

A reference's positional fields must match its type:

    line      start_line > 0
    range     start_line > 0, end_line > 0, end_line >= start_line
    function  non-empty function_name

Any other type is invalid.
"""

from __future__ import annotations

from coderef.links.errors import InvalidReferenceError
from coderef.links.models import CodeLink, ReferenceType


def _coerce_type(reference_type: ReferenceType | str | None) -> ReferenceType | None:
    if isinstance(reference_type, ReferenceType):
        return reference_type
    try:
        return ReferenceType(reference_type)
    except ValueError:
        return None


def _violation(
    reference_type: ReferenceType | str | None,
    start_line: int | None,
    end_line: int | None,
    function_name: str | None,
) -> str | None:
    kind = _coerce_type(reference_type)
    if kind is None:
        return f"unknown reference type {reference_type!r}"
    if kind is ReferenceType.LINE:
        if start_line is None or start_line <= 0:
            return "start_line must be a positive line number"
        return None
    if kind is ReferenceType.RANGE:
        if start_line is None or start_line <= 0:
            return "start_line must be a positive line number"
        if end_line is None or end_line <= 0:
            return "end_line must be a positive line number"
        if end_line < start_line:
            return f"end_line {end_line} precedes start_line {start_line}"
        return None
    if not function_name:
        return "function_name is required"
    return None


def is_valid_reference(
    reference_type: ReferenceType | str | None,
    start_line: int | None = None,
    end_line: int | None = None,
    function_name: str | None = None,
) -> bool:
    """True when the fields are consistent with the reference type."""
    return _violation(reference_type, start_line, end_line, function_name) is None


def check_reference(
    reference_type: ReferenceType | str | None,
    start_line: int | None = None,
    end_line: int | None = None,
    function_name: str | None = None,
) -> None:
    """Raise InvalidReferenceError when the fields are inconsistent."""
    reason = _violation(reference_type, start_line, end_line, function_name)
    if reason is not None:
        name = reference_type.value if isinstance(reference_type, ReferenceType) else str(reference_type)
        raise InvalidReferenceError(name, reason)


def validate_link(link: CodeLink) -> None:
    """Raise InvalidReferenceError when a parsed link cannot become a reference."""
    check_reference(link.reference_type, link.start_line, link.end_line, link.function_name)
