"""Research enrichment: web search via Firecrawl, page text via trafilatura.

Both operations degrade to empty results; research only ever improves a
prompt, it never blocks generation.
"""

from __future__ import annotations

import json
import logging
from urllib.error import URLError
from urllib.request import Request, urlopen

import trafilatura

from pressroom.integrations.base import Researcher, SearchResult

logger = logging.getLogger(__name__)

FIRECRAWL_BASE = "https://api.firecrawl.dev/v1"
_USER_AGENT = "Pressroom/0.4 (+content pipeline)"
_MAX_EXCERPT_CHARS = 1500


class FirecrawlResearcher(Researcher):
    """Search the web with Firecrawl and extract readable page text."""

    def __init__(self, api_key: str, *, timeout: int = 30, base_url: str = FIRECRAWL_BASE) -> None:
        self.api_key = api_key
        self.timeout = timeout
        self.base_url = base_url.rstrip("/")

    def search(self, phrase: str, limit: int = 5) -> list[SearchResult]:
        if not self.api_key or not phrase.strip():
            return []
        payload = {"query": phrase, "limit": limit, "lang": "en"}
        request = Request(  # noqa: S310
            f"{self.base_url}/search",
            data=json.dumps(payload).encode("utf-8"),
            method="POST",
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
        )
        try:
            with urlopen(request, timeout=self.timeout) as response:  # noqa: S310
                data = json.loads(response.read().decode("utf-8"))
        except (URLError, TimeoutError, OSError, ValueError) as exc:
            logger.warning("Research search failed for %r: %s", phrase, exc)
            return []

        results: list[SearchResult] = []
        for entry in data.get("data") or []:
            if not isinstance(entry, dict) or not entry.get("url"):
                continue
            metadata = entry.get("metadata") or {}
            results.append(
                SearchResult(
                    url=entry["url"],
                    title=entry.get("title") or metadata.get("title") or "",
                    excerpt=(entry.get("description") or metadata.get("description") or "")[
                        :_MAX_EXCERPT_CHARS
                    ],
                )
            )
        return results[:limit]

    def fetch_page(self, url: str) -> str:
        if not url:
            return ""
        try:
            request = Request(url, headers={"User-Agent": _USER_AGENT})  # noqa: S310
            with urlopen(request, timeout=self.timeout) as response:  # noqa: S310
                html = response.read().decode("utf-8", errors="replace")
        except (URLError, TimeoutError, OSError) as exc:
            logger.debug("Failed to fetch %s: %s", url, exc)
            return ""

        try:
            extracted = trafilatura.extract(
                html,
                include_comments=False,
                include_tables=True,
                output_format="txt",
            )
        except Exception as exc:  # noqa: BLE001 - extraction quirks on arbitrary HTML
            logger.debug("Extraction failed for %s: %s", url, exc)
            return ""
        return extracted or ""


def gather_notes(researcher: Researcher, phrase: str, limit: int = 3) -> list[SearchResult]:
    """Search *phrase* and replace each excerpt with the fetched page text
    when the page yields any."""
    notes: list[SearchResult] = []
    for result in researcher.search(phrase, limit=limit):
        body = researcher.fetch_page(result.url)
        excerpt = body[:_MAX_EXCERPT_CHARS] if body else result.excerpt
        notes.append(result.model_copy(update={"excerpt": excerpt}))
    return notes
