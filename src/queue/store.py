"""JSON-backed work queue.

The whole backlog lives in one file (``{"queue": [...]}``) and is read and
replaced as a unit on every mutation. That is safe only because a single
process owns the file at a time; running several workers against the same
file would need a per-item version stamp to keep selection exclusive.
"""

from __future__ import annotations

import json
import logging
from collections import Counter
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from pressroom.errors import InvariantViolation, QueueStoreError, bounded_message
from pressroom.queue.models import Verdict, WorkItem, WorkStatus, check_transition
from pressroom.shared.fileio import atomic_write_text, read_json

logger = logging.getLogger(__name__)

QUEUE_FILENAME = "keyword-queue.json"

# Alias to avoid shadowing by QueueStore.list method
_list = list


class _QueueData(BaseModel):
    """Internal wrapper for JSON serialization."""

    model_config = ConfigDict(extra="allow")

    queue: list[WorkItem] = Field(default_factory=list)


class QueueStore:
    """Durable, ordered backlog of work items.

    Unlike the other JSON stores, a corrupt queue file is an error rather
    than a fresh start: silently emptying the backlog would lose work.
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    # ── Private helpers ──────────────────────────────────────────

    def _load(self) -> _QueueData:
        try:
            raw = read_json(self.path)
        except (json.JSONDecodeError, OSError) as exc:
            raise QueueStoreError(f"Cannot read queue file {self.path}: {exc}") from exc
        if raw is None:
            return _QueueData()
        if isinstance(raw, list):
            raw = {"queue": raw}
        try:
            return _QueueData.model_validate(raw)
        except ValidationError as exc:
            raise QueueStoreError(f"Invalid queue file {self.path}: {exc}") from exc

    def _save(self, data: _QueueData) -> None:
        atomic_write_text(self.path, data.model_dump_json(indent=2))

    @staticmethod
    def _index(data: _QueueData, item_id: str) -> int:
        for position, item in enumerate(data.queue):
            if item.id == item_id:
                return position
        raise KeyError(item_id)

    # ── Whole-collection access ──────────────────────────────────

    def load_all(self) -> _list[WorkItem]:
        return _list(self._load().queue)

    def save_all(self, items: _list[WorkItem]) -> None:
        """Replace the whole collection, keeping any top-level extras."""
        data = self._load() if self.path.exists() else _QueueData()
        data.queue = _list(items)
        self._save(data)

    # ── Read operations ──────────────────────────────────────────

    def get(self, item_id: str) -> WorkItem | None:
        for item in self._load().queue:
            if item.id == item_id:
                return item
        return None

    def find_by_slug(self, slug: str) -> WorkItem | None:
        for item in self._load().queue:
            if item.slug == slug:
                return item
        return None

    def list(self, status: WorkStatus | None = None) -> _list[WorkItem]:
        """Items in selection order, optionally filtered by status."""
        items = self._load().queue
        if status is not None:
            items = [item for item in items if item.status == status]
        return sorted(items, key=lambda item: item.sort_key)

    def next_eligible(self) -> WorkItem | None:
        """Lowest (priority, id) item that is queued and approved.

        Reading never mutates the store; repeated calls return the same item
        until something updates it.
        """
        eligible = [item for item in self._load().queue if item.is_eligible]
        if not eligible:
            return None
        return min(eligible, key=lambda item: item.sort_key)

    def counts(self) -> dict[WorkStatus, int]:
        tally = Counter(item.status for item in self._load().queue)
        return {status: tally.get(status, 0) for status in WorkStatus}

    # ── Write operations ─────────────────────────────────────────

    def add(self, item: WorkItem) -> WorkItem:
        data = self._load()
        if any(existing.id == item.id for existing in data.queue):
            raise ValueError(f"Work item {item.id!r} already exists")
        if item.created_at is None:
            item = item.model_copy(update={"created_at": datetime.now(tz=UTC)})
        data.queue.append(item)
        self._save(data)
        return item

    def update(self, item_id: str, **fields: Any) -> WorkItem:
        """Merge *fields* into one item and save the collection.

        A status change must be allowed by the transition table.
        Raises KeyError if the id does not exist.
        """
        data = self._load()
        position = self._index(data, item_id)
        current = data.queue[position]
        if "status" in fields:
            check_transition(item_id, current.status, WorkStatus(fields["status"]))
        if fields.get("error"):
            fields["error"] = bounded_message(str(fields["error"]))
        merged = {**current.model_dump(), **fields}
        updated = WorkItem.model_validate(merged)
        data.queue[position] = updated
        self._save(data)
        logger.debug("Updated work item %s: %s", item_id, sorted(fields))
        return updated

    def claim(self, item_id: str) -> WorkItem:
        """Move an eligible item to ``generating`` in a single load/save.

        Raises InvariantViolation if the item is no longer eligible, which
        means another run already picked it.
        """
        data = self._load()
        position = self._index(data, item_id)
        current = data.queue[position]
        if current.status != WorkStatus.QUEUED:
            raise InvariantViolation(
                f"Work item {item_id!r} was selected but is {current.status.value}, not queued"
            )
        if current.verdict != Verdict.APPROVE:
            raise InvariantViolation(
                f"Work item {item_id!r} is not approved (verdict={current.verdict}) "
                "and must not be generated"
            )
        claimed = current.model_copy(
            update={
                "status": WorkStatus.GENERATING,
                "started_at": datetime.now(tz=UTC),
                "error": "",
            }
        )
        data.queue[position] = claimed
        self._save(data)
        return claimed

    def requeue(self, item_id: str) -> WorkItem:
        """Operator reset of a failed item back to ``queued``."""
        item = self.get(item_id)
        if item is None:
            raise KeyError(item_id)
        check_transition(item_id, item.status, WorkStatus.QUEUED)
        return self.update(
            item_id,
            status=WorkStatus.QUEUED,
            error="",
            started_at=None,
            finished_at=None,
            duration_seconds=None,
        )

    def skip(self, item_id: str, reason: str = "") -> WorkItem:
        fields: dict[str, Any] = {"status": WorkStatus.SKIPPED}
        if reason:
            fields["error"] = bounded_message(reason)
        return self.update(item_id, **fields)
