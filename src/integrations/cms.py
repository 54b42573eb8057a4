"""Destination CMS client (Webflow v2 collection items API).

The client honours the API's rate limiting through an explicit
RateLimiter object: remaining budget and reset time are read from every
response, the client waits when the budget drops to the floor, and an
HTTP 429 is retried after ``Retry-After`` seconds up to a bounded number
of attempts.
"""

from __future__ import annotations

import json
import logging
import time
import urllib.error
import urllib.request
from collections.abc import Callable, Mapping
from typing import Any

from pressroom.errors import PublisherError, RateLimitError
from pressroom.integrations.base import Publisher

logger = logging.getLogger(__name__)

DEFAULT_RETRY_AFTER = 60


class RateLimiter:
    """Tracks the destination's request budget for one client.

    A fresh limiter per client (or per test) keeps budgets independent.
    """

    def __init__(
        self,
        floor: int = 2,
        *,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.floor = floor
        self.remaining: int | None = None
        self.reset_at: float = 0.0
        self._clock = clock
        self._sleep = sleep

    def before_request(self) -> float:
        """Block until the budget allows another call. Returns seconds waited."""
        if self.remaining is None or self.remaining > self.floor:
            return 0.0
        wait = max(0.0, self.reset_at - self._clock()) + 1.0
        logger.info("Rate limit near (%s left), waiting %.0fs", self.remaining, wait)
        self._sleep(wait)
        self.remaining = None
        return wait

    def record(self, headers: Mapping[str, str] | None) -> None:
        """Update the budget from ``x-ratelimit-*`` response headers."""
        if not headers:
            return
        remaining = _header(headers, "x-ratelimit-remaining")
        reset = _header(headers, "x-ratelimit-reset")
        if remaining is not None:
            try:
                self.remaining = int(remaining)
            except ValueError:
                pass
        if reset is not None:
            try:
                self.reset_at = float(reset)
            except ValueError:
                pass

    def backoff(self, retry_after: float) -> None:
        logger.warning("Rate limited, retrying in %.0fs", retry_after)
        self._sleep(retry_after)


def _header(headers: Mapping[str, str], name: str) -> str | None:
    getter = getattr(headers, "get", None)
    if getter is None:
        return None
    value = getter(name)
    if value is None:
        value = getter(name.title())
    return value


class CMSClient(Publisher):
    """Client for a Webflow-style collection items API.

    Handles bearer authentication, rate limiting and item CRUD via urllib.
    """

    def __init__(
        self,
        api_key: str,
        collection_id: str,
        *,
        api_base: str = "https://api.webflow.com/v2",
        timeout: int = 30,
        max_retries: int = 3,
        field_mapping: dict[str, str] | None = None,
        limiter: RateLimiter | None = None,
    ) -> None:
        self.api_key = api_key
        self.collection_id = collection_id
        self.base_url = api_base.rstrip("/")
        self.timeout = timeout
        self.max_retries = max_retries
        self.field_mapping = field_mapping or {
            "title": "name",
            "slug": "slug",
            "body": "post-body",
            "summary": "post-summary",
            "thumbnail": "thumbnail",
        }
        self.limiter = limiter or RateLimiter()

    def _request(self, method: str, path: str, data: dict | None = None) -> dict:
        """Make an authenticated request, retrying on HTTP 429."""
        url = f"{self.base_url}{path}"
        body = json.dumps(data).encode("utf-8") if data is not None else None

        for attempt in range(self.max_retries + 1):
            self.limiter.before_request()
            req = urllib.request.Request(
                url,
                data=body,
                method=method,
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                    "accept": "application/json",
                },
            )
            try:
                with urllib.request.urlopen(req, timeout=self.timeout) as resp:  # noqa: S310
                    self.limiter.record(resp.headers)
                    raw = resp.read().decode("utf-8")
                    return json.loads(raw) if raw.strip() else {}
            except urllib.error.HTTPError as exc:
                self.limiter.record(exc.headers)
                if exc.code == 429:
                    if attempt >= self.max_retries:
                        raise RateLimitError(
                            f"{method} {path} still rate limited after {self.max_retries} retries"
                        ) from exc
                    retry_after = _header(exc.headers, "retry-after") if exc.headers else None
                    self.limiter.backoff(_seconds(retry_after))
                    continue
                detail = exc.read().decode("utf-8", errors="replace")[:200]
                raise PublisherError(f"{method} {path} failed: {exc.code} {detail}") from exc
            except (urllib.error.URLError, TimeoutError, OSError, ValueError) as exc:
                raise PublisherError(f"{method} {path} failed: {exc}") from exc

        raise RateLimitError(f"{method} {path} exhausted retries")  # pragma: no cover

    # ── Item operations ──────────────────────────────────────────

    def create_record(self, fields: dict[str, Any], *, is_draft: bool = False) -> str:
        payload = {"isArchived": False, "isDraft": is_draft, "fieldData": fields}
        result = self._request("POST", f"/collections/{self.collection_id}/items", payload)
        item_id = result.get("id")
        if not item_id:
            raise PublisherError("Create item response did not include an id")
        return str(item_id)

    def update_record(self, record_id: str, fields: dict[str, Any]) -> None:
        payload = {"isArchived": False, "isDraft": False, "fieldData": fields}
        self._request("PATCH", f"/collections/{self.collection_id}/items/{record_id}", payload)

    def publish_records(self, record_ids: list[str]) -> None:
        self._request(
            "POST",
            f"/collections/{self.collection_id}/items/publish",
            {"itemIds": list(record_ids)},
        )

    def get_record(self, record_id: str) -> dict:
        return self._request("GET", f"/collections/{self.collection_id}/items/{record_id}")

    def build_fields(
        self, header: dict[str, Any], html_body: str, image_url: str | None = None
    ) -> dict[str, Any]:
        """Map header fields and rendered HTML onto the collection's field slugs."""
        mapping = self.field_mapping
        fields: dict[str, Any] = {
            mapping["title"]: header.get("meta_title") or header.get("title") or "",
            mapping["slug"]: header.get("slug") or "",
            mapping["body"]: html_body,
            mapping["summary"]: header.get("description") or header.get("meta_description") or "",
        }
        if image_url and mapping.get("thumbnail"):
            fields[mapping["thumbnail"]] = image_url
        return fields


def _seconds(value: str | None) -> float:
    if value is None:
        return float(DEFAULT_RETRY_AFTER)
    try:
        return max(0.0, float(value))
    except ValueError:
        return float(DEFAULT_RETRY_AFTER)
