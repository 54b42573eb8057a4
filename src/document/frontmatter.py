"""Header/body text format.

A document file is a block of ``key: value`` header lines between two
``---`` delimiter lines, followed by free-text markdown::

    ---
    title: Budgeting For Freelancers
    keywords:
      primary: freelance budget
      secondary:
        - tax buffer
        - irregular income
    seo_score: 82
    ---

    # Budgeting For Freelancers
    ...

The header dialect is a small YAML subset, parsed line by line without a
YAML dependency: scalars (null, booleans, integers, floats, plain or
double-quoted strings), block mappings and block sequences. Anything more
complex than a list of scalars is written as a single-line JSON flow
value, which the parser reads back as-is. ``serialize`` quotes every
string that would otherwise read back as a different type, so
``parse(serialize(h, b)) == (h, b)`` for any header produced by ``parse``.

Parsing never raises: malformed input degrades to an empty header or to
plain string values.
"""

from __future__ import annotations

import copy
import json
import logging
import math
import re
from typing import Any

from pressroom.document.models import Document

logger = logging.getLogger(__name__)

DELIMITER = "---"

_DOCUMENT_RE = re.compile(
    r"\A---\r?\n(?:---|(.*?)\r?\n---)[ \t]*(?:\r?\n(.*))?\Z", re.DOTALL
)
_INT_RE = re.compile(r"[-+]?\d+")
_FLOAT_RE = re.compile(r"[-+]?(?:\d+\.\d*|\.\d+|\d+)(?:[eE][-+]?\d+)?")
_RESERVED_WORDS = frozenset({"null", "~", "true", "false"})
_QUOTE_LEADERS = frozenset("\"'[]{}-#&*!|>%@`,?")
_QUOTE_ANYWHERE = (":", "#", "\n", "\r", '"')


# ── Parsing ──────────────────────────────────────────────────────────


def parse(text: str) -> Document:
    """Split *text* into header and body.

    Returns an empty header and the untouched input as the body when the
    text does not open with a header block.
    """
    match = _DOCUMENT_RE.match(text)
    if match is None:
        return Document(header={}, body=text)

    raw_header = (match.group(1) or "").replace("\r\n", "\n")
    body = _unframe(match.group(2) or "")
    try:
        header = parse_header(raw_header)
    except Exception:  # noqa: BLE001 - header syntax must never halt a run
        logger.warning("Unreadable document header, treating as empty", exc_info=True)
        header = {}
    return Document(header=header, body=body)


def _unframe(raw: str) -> str:
    """Drop the blank separator line and final newline that ``serialize`` adds."""
    for newline in ("\r\n", "\n"):
        if raw.startswith(newline):
            raw = raw[len(newline) :]
            break
    for newline in ("\r\n", "\n"):
        if raw.endswith(newline):
            raw = raw[: -len(newline)]
            break
    return raw


def parse_header(raw: str) -> dict[str, Any]:
    """Parse the lines between the delimiters into a mapping."""
    entries = _tokenize(raw)
    header, _ = _parse_mapping(entries, 0, 0)
    return header


def _tokenize(raw: str) -> list[tuple[int, str]]:
    """Return ``(indent, content)`` for every meaningful header line."""
    entries: list[tuple[int, str]] = []
    for line in raw.split("\n"):
        content = line.strip()
        if not content or content.startswith("#"):
            continue
        indent = len(line) - len(line.lstrip(" "))
        entries.append((indent, content))
    return entries


def _is_sequence_item(content: str) -> bool:
    return content == "-" or content.startswith("- ")


def _parse_mapping(
    entries: list[tuple[int, str]], pos: int, indent: int
) -> tuple[dict[str, Any], int]:
    result: dict[str, Any] = {}
    while pos < len(entries):
        level, content = entries[pos]
        if level < indent:
            break
        if level > indent or _is_sequence_item(content):
            # Orphaned line with no owning key.
            pos += 1
            continue

        key, sep, rest = content.partition(":")
        pos += 1
        if not sep:
            continue
        key = key.strip().strip("\"'")
        rest = rest.strip()
        if rest:
            result[key] = _parse_scalar(rest)
            continue

        # Empty value: peek at the next line to tell a sequence from a
        # nested mapping.
        if pos < len(entries):
            next_level, next_content = entries[pos]
            if _is_sequence_item(next_content) and next_level >= indent:
                result[key], pos = _parse_sequence(entries, pos, next_level)
                continue
            if next_level > indent:
                result[key], pos = _parse_mapping(entries, pos, next_level)
                continue
        result[key] = None
    return result, pos


def _parse_sequence(
    entries: list[tuple[int, str]], pos: int, indent: int
) -> tuple[list[Any], int]:
    items: list[Any] = []
    while pos < len(entries):
        level, content = entries[pos]
        if level < indent or (level == indent and not _is_sequence_item(content)):
            break
        pos += 1
        if level > indent:
            continue
        items.append(_parse_scalar(content[1:].strip()))
    return items, pos


def _parse_scalar(raw: str) -> Any:
    value = raw.strip()
    if not value:
        return None

    if value.startswith('"'):
        try:
            return json.loads(value)
        except ValueError:
            return value
    if len(value) >= 2 and value[0] == value[-1] == "'":
        return value[1:-1].replace("''", "'")

    lowered = value.lower()
    if lowered in ("null", "~"):
        return None
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    if _INT_RE.fullmatch(value):
        return int(value)
    if _FLOAT_RE.fullmatch(value):
        number = float(value)
        # out-of-range literals stay text so they serialize back unchanged
        return number if math.isfinite(number) else value

    if value[0] in "[{":
        try:
            return json.loads(value)
        except ValueError:
            pass
        if value[0] == "[" and value.endswith("]"):
            inner = value[1:-1]
            return [_parse_scalar(part) for part in inner.split(",") if part.strip()]
    return value


# ── Serialization ────────────────────────────────────────────────────


def serialize(header: dict[str, Any], body: str) -> str:
    """Render a header and body back into document text."""
    lines: list[str] = []
    for key, value in header.items():
        _emit(lines, str(key), value, 0)
    header_text = "".join(f"{line}\n" for line in lines)
    return f"{DELIMITER}\n{header_text}{DELIMITER}\n\n{body}\n"


def dumps(document: Document) -> str:
    return serialize(document.header, document.body)


def _emit(lines: list[str], key: str, value: Any, indent: int) -> None:
    pad = " " * indent
    if isinstance(value, dict):
        if not value:
            lines.append(f"{pad}{key}: {{}}")
            return
        lines.append(f"{pad}{key}:")
        for sub_key, sub_value in value.items():
            _emit(lines, str(sub_key), sub_value, indent + 2)
        return

    if isinstance(value, (list, tuple)):
        if not value:
            lines.append(f"{pad}{key}: []")
        elif all(_is_scalar(item) for item in value):
            lines.append(f"{pad}{key}:")
            for item in value:
                lines.append(f"{pad}  - {format_scalar(item)}")
        else:
            lines.append(f"{pad}{key}: {_flow(value)}")
        return

    lines.append(f"{pad}{key}: {format_scalar(value)}")


def _is_scalar(value: Any) -> bool:
    return value is None or isinstance(value, (str, int, float, bool))


def _flow(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, default=str)


def format_scalar(value: Any) -> str:
    """Encode one scalar so that ``_parse_scalar`` reads back the same value."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return repr(value)

    text = str(value)
    if _needs_quoting(text):
        return json.dumps(text, ensure_ascii=False)
    return text


def _needs_quoting(text: str) -> bool:
    if not text or text != text.strip():
        return True
    if text.lower() in _RESERVED_WORDS:
        return True
    if _INT_RE.fullmatch(text) or _FLOAT_RE.fullmatch(text):
        return True
    if text[0] in _QUOTE_LEADERS:
        return True
    return any(marker in text for marker in _QUOTE_ANYWHERE)


# ── Header updates ───────────────────────────────────────────────────


def deep_merge(base: dict[str, Any], patch: dict[str, Any]) -> dict[str, Any]:
    """Merge *patch* into a copy of *base*.

    Nested mappings merge key by key; lists and scalars replace wholesale.
    """
    merged = copy.deepcopy(base)
    for key, value in patch.items():
        current = merged.get(key)
        if isinstance(value, dict) and isinstance(current, dict):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def update_header(text: str, partial: dict[str, Any]) -> str:
    """Merge *partial* into the header of *text* without touching the body."""
    document = parse(text)
    return serialize(deep_merge(document.header, partial), document.body)
