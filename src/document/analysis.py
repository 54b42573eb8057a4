"""Content analysis helpers operating on markdown bodies."""

from __future__ import annotations

import re
from urllib.parse import urlparse

from pressroom.document.models import Heading, Image, Link

SLUG_MAX_LENGTH = 60
DESCRIPTION_MAX_LENGTH = 160

_FENCED_BLOCK_RE = re.compile(r"```.*?```", re.DOTALL)
_HEADING_LINE_RE = re.compile(r"^(#{1,6}) (.+)$")
_LINK_RE = re.compile(r"(?<!!)\[([^\]]+)\]\(([^)\s]+)(?:\s+\"[^\"]*\")?\)")
_IMAGE_RE = re.compile(r"!\[([^\]]*)\]\(([^)\s]+)(?:\s+\"[^\"]*\")?\)")
_WORD_SPLIT_RE = re.compile(r"\s+")
_SENTENCE_END_RE = re.compile(r"[.!?]+(?=\s|$)")


def extract_headings(body: str) -> list[Heading]:
    """Headings in document order, ignoring lines inside fenced code."""
    headings: list[Heading] = []
    in_fence = False
    for line in body.splitlines():
        stripped = line.strip()
        if stripped.startswith("```"):
            in_fence = not in_fence
            continue
        if in_fence:
            continue
        match = _HEADING_LINE_RE.match(stripped)
        if match:
            headings.append(Heading(level=len(match.group(1)), text=match.group(2).strip()))
    return headings


def is_internal_url(url: str, internal_domains: list[str] | tuple[str, ...] = ()) -> bool:
    """Root-relative paths and URLs on one of *internal_domains* are internal."""
    if url.startswith("/") and not url.startswith("//"):
        return True
    if url.startswith("#"):
        return True
    host = (urlparse(url if "//" in url else f"//{url}").hostname or "").lower()
    if not host:
        return False
    for domain in internal_domains:
        domain = domain.lower().lstrip(".")
        if host == domain or host.endswith(f".{domain}"):
            return True
    return False


def extract_links(body: str, internal_domains: list[str] | tuple[str, ...] = ()) -> list[Link]:
    """Markdown links (images excluded) with internal/external classification."""
    text = _FENCED_BLOCK_RE.sub("", body)
    return [
        Link(
            text=match.group(1),
            url=match.group(2),
            is_internal=is_internal_url(match.group(2), internal_domains),
        )
        for match in _LINK_RE.finditer(text)
    ]


def extract_images(body: str) -> list[Image]:
    text = _FENCED_BLOCK_RE.sub("", body)
    return [Image(alt=m.group(1).strip(), url=m.group(2)) for m in _IMAGE_RE.finditer(text)]


def plain_text(body: str) -> str:
    """Strip structural markup, keeping the readable words."""
    text = _FENCED_BLOCK_RE.sub("", body)
    text = _IMAGE_RE.sub("", text)
    text = _LINK_RE.sub(r"\1", text)
    text = re.sub(r"^#{1,6}\s+", "", text, flags=re.MULTILINE)
    text = re.sub(r"^\s*\|.*\|\s*$", "", text, flags=re.MULTILINE)
    text = re.sub(r"^\s*(?:-{3,}|\*{3,}|_{3,})\s*$", "", text, flags=re.MULTILINE)
    text = re.sub(r"^\s*>\s?", "", text, flags=re.MULTILINE)
    text = re.sub(r"[*_~`]", "", text)
    return text


def count_words(body: str) -> int:
    return len([w for w in _WORD_SPLIT_RE.split(plain_text(body)) if w])


def split_paragraphs(body: str) -> list[str]:
    """Prose paragraphs: blank-line separated blocks that are not
    headings, lists, tables, quotes, code or images."""
    text = _FENCED_BLOCK_RE.sub("", body)
    paragraphs: list[str] = []
    for block in re.split(r"\n\s*\n", text):
        stripped = block.strip()
        if not stripped:
            continue
        first = stripped.lstrip()
        if first.startswith(("#", "|", ">", "- ", "* ", "+ ", "<", "![")):
            continue
        if re.match(r"^\d+[.)] ", first) or re.match(r"^(?:-{3,}|\*{3,})$", first):
            continue
        paragraphs.append(stripped)
    return paragraphs


def count_sentences(text: str) -> int:
    return len(_SENTENCE_END_RE.findall(text)) or (1 if text.strip() else 0)


def strip_inline_markup(text: str) -> str:
    text = _LINK_RE.sub(r"\1", text)
    text = text.replace("**", "").replace("*", "").replace("`", "")
    return text.strip()


def extract_description(body: str, primary_phrase: str = "") -> str:
    """Meta description from the first paragraph after the title heading.

    Truncated to 160 characters; the primary phrase is prefixed when the
    paragraph does not mention it.
    """
    first = ""
    for line in body.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("# "):
            continue
        if stripped.startswith("#"):
            break
        if stripped.startswith(("!", "|", "```", "<")):
            continue
        first = stripped
        break

    description = strip_inline_markup(first)
    if len(description) > DESCRIPTION_MAX_LENGTH:
        description = description[: DESCRIPTION_MAX_LENGTH - 3].rstrip() + "..."
    if primary_phrase and description and primary_phrase.lower() not in description.lower():
        description = f"{primary_phrase}: {description}"[:DESCRIPTION_MAX_LENGTH]
    if not description and primary_phrase:
        description = (
            f"Learn everything about {primary_phrase}. Expert insights and actionable tips."
        )
    return description


def extract_secondary_phrases(body: str, primary_phrase: str = "", limit: int = 5) -> list[str]:
    """Secondary topical phrases taken from level-2 headings."""
    primary = primary_phrase.lower().strip()
    phrases: list[str] = []
    for heading in extract_headings(body):
        if heading.level != 2:
            continue
        phrase = strip_inline_markup(heading.text).rstrip("?:.!").strip()
        lowered = phrase.lower()
        if not phrase or lowered == primary or lowered.startswith(("faq", "frequently asked")):
            continue
        if lowered not in (p.lower() for p in phrases):
            phrases.append(phrase)
        if len(phrases) >= limit:
            break
    return phrases


def slugify(text: str, max_length: int = SLUG_MAX_LENGTH) -> str:
    slug = re.sub(r"['‘’]", "", text.lower())
    slug = re.sub(r"[^a-z0-9]+", "-", slug).strip("-")
    return slug[:max_length].rstrip("-")


def strip_preamble(text: str) -> str:
    """Drop chatter or a wrapping code fence around a generated article.

    Everything before the first level-1 heading is discarded when such a
    heading exists.
    """
    cleaned = text.strip()
    fence = re.match(r"^```(?:markdown|md)?\s*\n(.*?)\n```\s*$", cleaned, re.DOTALL)
    if fence:
        cleaned = fence.group(1).strip()
    match = re.search(r"^# .+$", cleaned, re.MULTILINE)
    if match and match.start() > 0:
        cleaned = cleaned[match.start():]
    return cleaned
