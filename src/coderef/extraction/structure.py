"""Structural text scanning for function and type declarations.

This is not a parser. It finds a declaration token for a name, then bounds
the body with balanced-delimiter matching (C-family languages) or
indentation (``def``-style declarations). String literals and comments are
skipped while matching delimiters so braces inside them do not count.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

_PAIRS = {"{": "}", "(": ")", "[": "]"}
_QUOTES = "\"'`"

# Words that show a "declaration" is really a statement following a call.
_STATEMENT_WORDS = frozenset(
    {
        "if", "else", "for", "while", "do", "switch", "try", "catch", "return",
        "class", "struct", "interface", "enum", "function", "def", "func", "fn",
        "let", "var", "import", "export",
    }
)  # fmt: skip

# Text that precedes a call site rather than a declaration.
_CALL_PREFIX = re.compile(
    r"(?:\.|\?\.|\bnew|\breturn|\bawait|\bthrow|\byield|\btypeof|[=(,!&|+\-/%?:\[{])\s*$"
)


class BodyKind(Enum):
    BRACE = "brace"
    INDENT = "indent"
    EXPRESSION = "expression"


@dataclass(frozen=True, slots=True)
class Declaration:
    """Location of one declaration in a text."""

    name: str
    start: int
    params_open: int
    params_close: int
    body_kind: BodyKind
    body_start: int
    end: int

    def start_line(self, text: str) -> int:
        return line_of(text, self.start)

    def end_line(self, text: str) -> int:
        return line_of(text, self.end)


def split_lines(text: str) -> list[str]:
    """Split on newlines, ignoring the terminator of the final line."""
    lines = text.split("\n")
    if len(lines) > 1 and lines[-1] == "":
        lines.pop()
    return lines


def line_of(text: str, offset: int) -> int:
    """1-indexed line number containing offset."""
    return text.count("\n", 0, offset) + 1


def _line_bounds(text: str, offset: int) -> tuple[int, int]:
    start = text.rfind("\n", 0, offset) + 1
    end = text.find("\n", offset)
    return start, len(text) if end < 0 else end


def _skip_string(text: str, at: int) -> int:
    quote = text[at]
    i = at + 1
    n = len(text)
    while i < n:
        ch = text[i]
        if ch == "\\":
            i += 2
            continue
        if ch == quote:
            return i + 1
        # Only template literals span lines.
        if ch == "\n" and quote != "`":
            return i
        i += 1
    return n


def match_delimiter(text: str, open_at: int) -> int | None:
    """Offset of the delimiter closing the one at open_at, or None if unbalanced."""
    opener = text[open_at]
    closer = _PAIRS[opener]
    depth = 0
    i = open_at
    n = len(text)
    while i < n:
        ch = text[i]
        if ch in _QUOTES:
            i = _skip_string(text, i)
            continue
        if text.startswith("//", i):
            newline = text.find("\n", i)
            if newline < 0:
                return None
            i = newline
            continue
        if text.startswith("/*", i):
            close = text.find("*/", i + 2)
            if close < 0:
                return None
            i = close + 2
            continue
        if ch == opener:
            depth += 1
        elif ch == closer:
            depth -= 1
            if depth == 0:
                return i
        i += 1
    return None


def _indent_width(line: str) -> int:
    return len(line) - len(line.lstrip(" \t"))


def _indented_block_end(text: str, header_start: int, colon_at: int) -> int:
    """Offset of the last character of an indentation-scoped block."""
    header_line_start, _ = _line_bounds(text, header_start)
    base = _indent_width(text[header_line_start:header_start] + "x")
    _, body_from = _line_bounds(text, colon_at)
    end = body_from
    cursor = body_from
    n = len(text)
    while cursor < n:
        line_start = cursor + 1
        newline = text.find("\n", line_start)
        line_end = n if newline < 0 else newline
        line = text[line_start:line_end]
        if line.strip():
            if _indent_width(line) <= base:
                break
            end = line_end
        cursor = line_end
        if newline < 0:
            break
    return max(end - 1, colon_at)


def _header_colon(text: str, after: int) -> int | None:
    """First ``:`` at bracket depth zero after offset (Python headers)."""
    i = after
    n = len(text)
    while i < n:
        ch = text[i]
        if ch in _QUOTES:
            i = _skip_string(text, i)
            continue
        if ch in _PAIRS:
            close = match_delimiter(text, i)
            if close is None:
                return None
            i = close + 1
            continue
        if ch == ":":
            return i
        i += 1
    return None


def _def_pattern(name: str) -> re.Pattern[str]:
    return re.compile(rf"\b(?:async\s+)?def\s+{re.escape(name)}\s*\(")


def _keyword_patterns(name: str) -> list[re.Pattern[str]]:
    n = re.escape(name)
    generics = r"(?:<[^>\n]*>)?"
    return [
        re.compile(rf"\bfunction\b\s*\*?\s*{n}\s*{generics}\s*\("),
        re.compile(rf"\bfunc\s+(?:\([^)\n]*\)\s*)?{n}\s*(?:\[[^\]\n]*\])?\s*\("),
        re.compile(rf"\bfn\s+{n}\s*{generics}\s*\("),
        re.compile(rf"\bfun\s+(?:<[^>\n]*>\s*)?(?:\w+\.)?{n}\s*\("),
        re.compile(
            rf"\b(?:const|let|var)\s+{n}\s*(?::[^=\n]+)?=\s*(?:async\s+)?(?:function\b\s*\*?\s*\w*\s*)?{generics}\s*\("
        ),
        re.compile(
            rf"^[ \t]*(?:(?:public|private|protected|static|readonly|async)\s+)*{n}\s*(?::[^=\n]+)?=\s*(?:async\s+)?\(",
            re.MULTILINE,
        ),
    ]


def _generic_pattern(name: str) -> re.Pattern[str]:
    return re.compile(rf"(?<![\w$.]){re.escape(name)}\s*(?:<[^>\n(]*>)?\s*\(")


def _in_comment(prefix: str) -> bool:
    stripped = prefix.lstrip()
    return "//" in prefix or stripped.startswith(("*", "/*", "#"))


def _body_after(
    text: str, params_close: int, strict: bool
) -> tuple[BodyKind, int, int] | None:
    """Locate the body following a parameter list.

    Returns (kind, body_start, end) or None when the parameter list is not
    followed by a body (a call, a prototype or an abstract declaration).
    """
    i = params_close + 1
    n = len(text)
    while i < n:
        ch = text[i]
        if ch in _QUOTES:
            i = _skip_string(text, i)
            continue
        if ch == ";":
            return None
        if text.startswith("=>", i):
            between = text[params_close + 1 : i]
            if strict and not _plausible_signature_tail(between):
                return None
            j = i + 2
            while j < n and text[j] in " \t\r\n":
                j += 1
            if j < n and text[j] == "{":
                close = match_delimiter(text, j)
                return BodyKind.BRACE, j, n - 1 if close is None else close
            _, line_end = _line_bounds(text, j)
            return BodyKind.EXPRESSION, j, max(line_end - 1, j)
        if ch == "{":
            between = text[params_close + 1 : i]
            if strict and not _plausible_signature_tail(between):
                return None
            close = match_delimiter(text, i)
            return BodyKind.BRACE, i, n - 1 if close is None else close
        if ch == "=" and not text.startswith("==", i):
            if strict or "\n" in text[params_close + 1 : i]:
                return None
            # Expression-bodied declaration, e.g. ``fun f() = 1``.
            _, line_end = _line_bounds(text, i)
            return BodyKind.EXPRESSION, i, max(line_end - 1, i)
        if strict and ch in "()":
            return None
        i += 1
    return None


def _plausible_signature_tail(between: str) -> bool:
    """Text between ``)`` and the body may only hold a return type or modifiers."""
    filled = [segment for segment in between.split("\n") if segment.strip()]
    if len(filled) > 1:
        return False
    words = set(re.findall(r"[A-Za-z_]\w*", between))
    return not (words & _STATEMENT_WORDS)


def _declaration_at(
    text: str, name: str, match: re.Match[str], *, indented: bool, strict: bool = False
) -> Declaration | None:
    params_open = match.end() - 1
    line_start, _ = _line_bounds(text, match.start())
    if _in_comment(text[line_start : match.start()]):
        return None
    params_close = match_delimiter(text, params_open)
    if params_close is None:
        return None

    if indented:
        colon = _header_colon(text, params_close + 1)
        if colon is None:
            return None
        end = _indented_block_end(text, match.start(), colon)
        return Declaration(name, match.start(), params_open, params_close, BodyKind.INDENT, colon, end)

    body = _body_after(text, params_close, strict)
    if body is None:
        return None
    kind, body_start, end = body
    return Declaration(name, match.start(), params_open, params_close, kind, body_start, end)


def _first_declaration(
    text: str,
    name: str,
    pattern: re.Pattern[str],
    lo: int,
    hi: int,
    *,
    indented: bool = False,
    strict: bool = False,
) -> Declaration | None:
    for match in pattern.finditer(text, lo, hi):
        if strict:
            line_start, _ = _line_bounds(text, match.start())
            if _CALL_PREFIX.search(text[line_start : match.start()]):
                continue
        decl = _declaration_at(text, name, match, indented=indented, strict=strict)
        if decl is not None:
            return decl
    return None


def find_declaration(
    text: str,
    name: str,
    *,
    python: bool = False,
    lo: int = 0,
    hi: int | None = None,
) -> Declaration | None:
    """First declaration of name within text[lo:hi], or None.

    With ``python`` only ``def`` declarations are considered. Otherwise
    keyword declarations (``function``, ``func``, ``fn``, bound arrow
    functions) and bare method signatures are tried, and the earliest wins.
    """
    hi = len(text) if hi is None else hi
    found = [_first_declaration(text, name, _def_pattern(name), lo, hi, indented=True)]
    if not python:
        found.extend(_first_declaration(text, name, p, lo, hi) for p in _keyword_patterns(name))
        found.append(_first_declaration(text, name, _generic_pattern(name), lo, hi, strict=True))
    candidates = [decl for decl in found if decl is not None]
    if not candidates:
        return None
    return min(candidates, key=lambda d: d.start)


_TYPE_KEYWORDS = r"(?:class|struct|interface|impl|object|trait)"


def find_type_span(text: str, type_name: str, *, python: bool = False) -> tuple[int, int] | None:
    """Offsets (start, end) of the body of a named class-like declaration."""
    pattern = re.compile(rf"\b{_TYPE_KEYWORDS}\s+{re.escape(type_name)}\b")
    for match in pattern.finditer(text):
        line_start, _ = _line_bounds(text, match.start())
        if _in_comment(text[line_start : match.start()]):
            continue
        if python:
            colon = _header_colon(text, match.end())
            if colon is None:
                continue
            return colon, _indented_block_end(text, match.start(), colon)
        open_at = _first_unquoted(text, "{", match.end(), stop=";")
        if open_at is None:
            continue
        close = match_delimiter(text, open_at)
        return open_at, len(text) - 1 if close is None else close
    return None


def _first_unquoted(text: str, target: str, start: int, stop: str) -> int | None:
    i = start
    n = len(text)
    while i < n:
        ch = text[i]
        if ch in _QUOTES:
            i = _skip_string(text, i)
            continue
        if ch == target:
            return i
        if ch in stop:
            return None
        i += 1
    return None


def split_parameters(params: str) -> list[str]:
    """Split a parameter list on commas at nesting depth zero."""
    parts: list[str] = []
    depth = 0
    current: list[str] = []
    i = 0
    while i < len(params):
        ch = params[i]
        if ch in _QUOTES:
            end = _skip_string(params, i)
            current.append(params[i:end])
            i = end
            continue
        if ch in "([{<":
            depth += 1
        elif ch in ")]}>" and not (ch == ">" and i > 0 and params[i - 1] == "="):
            depth = max(depth - 1, 0)
        elif ch == "," and depth == 0:
            parts.append("".join(current).strip())
            current = []
            i += 1
            continue
        current.append(ch)
        i += 1
    parts.append("".join(current).strip())
    return [part for part in parts if part]
