"""Markdown body to HTML conversion.

Rendering is done by Python-Markdown with the tables, fenced-code and
sane-lists extensions. Generated articles often start a list or table on
the line right after a paragraph, or switch from bullets to numbers
without a blank line; Python-Markdown would fold those lines into the
previous block. ``separate_blocks`` inserts the missing blank lines first,
so every list run and table renders as its own block and a change of list
marker always opens a new list.
"""

from __future__ import annotations

import re

import markdown

EXTENSIONS = ["tables", "fenced_code", "sane_lists"]

_FENCE_RE = re.compile(r"^\s*(```|~~~)")
_UL_RE = re.compile(r"^[-*+] \S")
_OL_RE = re.compile(r"^\d+\. \S")


def _block_kind(line: str) -> str:
    if _UL_RE.match(line):
        return "ul"
    if _OL_RE.match(line):
        return "ol"
    if line.startswith("|"):
        return "table"
    return "text"


def separate_blocks(body: str) -> str:
    """Put a blank line before each list run or table that lacks one.

    Indented lines continue the current block (nested items, wrapped
    text) and fenced code is copied untouched.
    """
    out: list[str] = []
    current: str | None = None
    in_fence = False
    for line in body.replace("\r\n", "\n").split("\n"):
        if _FENCE_RE.match(line):
            in_fence = not in_fence
            current = None
            out.append(line)
            continue
        if in_fence:
            out.append(line)
            continue
        if not line.strip():
            current = None
            out.append(line)
            continue
        if line[0] in " \t":
            out.append(line)
            continue

        kind = _block_kind(line)
        if current is not None and kind != current and kind != "text":
            out.append("")
        current = kind
        out.append(line)
    return "\n".join(out)


def to_html(body: str) -> str:
    """Convert a markdown body to an HTML fragment."""
    return markdown.markdown(separate_blocks(body), extensions=EXTENSIONS, output_format="html")
