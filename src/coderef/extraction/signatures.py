"""Function signature detection."""

from __future__ import annotations

import hashlib
import re

from coderef.extraction.models import FunctionSignature
from coderef.extraction.structure import BodyKind, find_declaration, split_parameters

_ARROW = re.compile(r"=>\s*$")


def _return_type(text: str, params_close: int, body_start: int, body_kind: BodyKind) -> str | None:
    tail = text[params_close + 1 : body_start]
    if body_kind is BodyKind.EXPRESSION:
        tail = _ARROW.sub("", tail).rstrip("= \t")
    elif body_kind is BodyKind.BRACE:
        tail = _ARROW.sub("", tail.rstrip())
    tail = tail.strip()
    for marker in (":", "->"):
        if tail.startswith(marker):
            tail = tail[len(marker) :].strip()
            break
    else:
        # Modifiers such as ``throws X`` or ``const`` are not a return type.
        return None
    return tail or None


def _normalize(region: str) -> str:
    return " ".join(region.split())


def detect_function_signature(text: str, function_name: str, *, python: bool = False) -> FunctionSignature | None:
    """Locate a function and describe its declared signature.

    Returns None when no declaration matches, which callers read as the
    function having been removed or renamed.
    """
    name = function_name.rpartition(".")[2]
    decl = find_declaration(text, name, python=python)
    if decl is None:
        return None

    parameters = tuple(split_parameters(text[decl.params_open + 1 : decl.params_close]))
    region = text[decl.start : decl.end + 1]
    return FunctionSignature(
        name=name,
        parameters=parameters,
        return_type=_return_type(text, decl.params_close, decl.body_start, decl.body_kind),
        start_line=decl.start_line(text),
        end_line=decl.end_line(text),
        hash=hashlib.sha256(_normalize(region).encode()).hexdigest(),
    )
