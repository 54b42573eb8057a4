"""JSON-backed article tracker.

Persists all TrackerEntries in a single JSON file keyed by slug, loaded on
init and saved after every write operation.
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from pressroom.content.models import TrackerEntry
from pressroom.shared.fileio import atomic_write_text

logger = logging.getLogger(__name__)

TRACKER_FILENAME = "blog-tracker.json"

# Alias to avoid shadowing by ContentTracker.list method
_list = list


class _TrackerData(BaseModel):
    """Internal wrapper for JSON serialization."""

    posts: dict[str, TrackerEntry] = Field(default_factory=dict)
    updated_at: datetime | None = None


class ContentTracker:
    """Per-slug metadata store shared by every pipeline stage.

    Loads the tracker file on init and saves after every mutation. A corrupt
    file is logged and replaced; the tracker is derived data, not the source
    of truth for any status.
    """

    def __init__(self, path: Path) -> None:
        self._path = path
        self._data = self._load()

    # ── Private helpers ──────────────────────────────────────────

    def _load(self) -> _TrackerData:
        if not self._path.exists():
            return _TrackerData()
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
            return _TrackerData.model_validate(raw)
        except (json.JSONDecodeError, ValueError, KeyError):
            logger.warning("Corrupt tracker at %s, starting fresh", self._path)
            return _TrackerData()

    def _save(self) -> None:
        self._data.updated_at = datetime.now(tz=UTC)
        atomic_write_text(self._path, self._data.model_dump_json(indent=2))

    # ── Write operations ─────────────────────────────────────────

    def upsert(self, slug: str, **fields: Any) -> TrackerEntry:
        """Merge *fields* into the entry for *slug*, creating it if needed."""
        current = self._data.posts.get(slug)
        base = current.model_dump() if current is not None else {"slug": slug}
        now = datetime.now(tz=UTC)
        if current is None:
            base.setdefault("created_at", now)
        entry = TrackerEntry.model_validate({**base, **fields, "slug": slug, "updated_at": now})
        self._data.posts[slug] = entry
        self._save()
        return entry

    def remove(self, slug: str) -> bool:
        if self._data.posts.pop(slug, None) is None:
            return False
        self._save()
        return True

    # ── Read operations ──────────────────────────────────────────

    def get(self, slug: str) -> TrackerEntry | None:
        """Return the entry for *slug*, or None if not tracked."""
        return self._data.posts.get(slug)

    def list(self, stage: str | None = None) -> _list[TrackerEntry]:
        """Return entries, optionally filtered by stage, sorted by slug."""
        entries = sorted(self._data.posts.values(), key=lambda e: e.slug)
        if stage is not None:
            entries = [e for e in entries if e.stage == stage]
        return _list(entries)

    def exists(self, slug: str) -> bool:
        return slug in self._data.posts

    def total_cost(self) -> float:
        return round(
            sum(e.generation.cost_usd for e in self._data.posts.values() if e.generation), 4
        )
