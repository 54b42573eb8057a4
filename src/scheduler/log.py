"""Bounded scheduler event log.

Keeps the most recent events (published / staged / failed / reported) for
reporting and an exact per-day publish counter for the daily quota. The
counter lives beside the bounded event list so that trimming old events
never undercounts today's publishes. The queue store, not this log, is the
source of truth for item status.
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, date, datetime, timedelta
from enum import StrEnum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from pressroom.errors import bounded_message
from pressroom.shared.fileio import atomic_write_text, read_json

logger = logging.getLogger(__name__)

LOG_FILENAME = "cron-log.json"
DEFAULT_MAX_EVENTS = 500
COUNTER_RETENTION_DAYS = 35


class EventType(StrEnum):
    PUBLISHED = "published"
    STAGED = "staged"
    FAILED = "failed"
    REPORTED = "reported"


class SchedulerEvent(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: EventType
    timestamp: datetime
    item_id: str = ""
    keyword: str = ""
    slug: str = ""
    duration_seconds: float | None = None
    error: str = ""


class _LogData(BaseModel):
    """Internal wrapper for JSON serialization."""

    events: list[SchedulerEvent] = Field(default_factory=list)
    daily_published: dict[str, int] = Field(default_factory=dict)


def _as_utc(moment: datetime) -> datetime:
    return moment.replace(tzinfo=UTC) if moment.tzinfo is None else moment.astimezone(UTC)


class SchedulerLog:
    """Append-only, size-bounded event log persisted as one JSON file."""

    def __init__(self, path: Path, max_events: int = DEFAULT_MAX_EVENTS) -> None:
        self.path = path
        self.max_events = max_events

    # ── Private helpers ──────────────────────────────────────────

    def _load(self) -> _LogData:
        try:
            raw = read_json(self.path)
            if raw is None:
                return _LogData()
            return _LogData.model_validate(raw)
        except (json.JSONDecodeError, ValidationError, OSError):
            logger.warning("Corrupt scheduler log at %s, starting fresh", self.path)
            return _LogData()

    def _save(self, data: _LogData) -> None:
        atomic_write_text(self.path, data.model_dump_json(indent=2))

    # ── Write operations ─────────────────────────────────────────

    def append(
        self,
        event_type: EventType,
        *,
        item_id: str = "",
        keyword: str = "",
        slug: str = "",
        duration_seconds: float | None = None,
        error: str = "",
        timestamp: datetime | None = None,
    ) -> SchedulerEvent:
        """Record one event, trimming the list to the newest ``max_events``."""
        moment = _as_utc(timestamp or datetime.now(tz=UTC))
        event = SchedulerEvent(
            type=event_type,
            timestamp=moment,
            item_id=item_id,
            keyword=keyword,
            slug=slug,
            duration_seconds=duration_seconds,
            error=bounded_message(error) if error else "",
        )
        data = self._load()
        data.events.append(event)
        if len(data.events) > self.max_events:
            data.events = data.events[-self.max_events :]

        if event_type == EventType.PUBLISHED:
            day = moment.date().isoformat()
            data.daily_published[day] = data.daily_published.get(day, 0) + 1
            cutoff = (moment.date() - timedelta(days=COUNTER_RETENTION_DAYS)).isoformat()
            data.daily_published = {
                key: count for key, count in data.daily_published.items() if key >= cutoff
            }

        self._save(data)
        return event

    # ── Read operations ──────────────────────────────────────────

    def events(
        self,
        *,
        since: datetime | None = None,
        types: set[EventType] | None = None,
    ) -> list[SchedulerEvent]:
        """Events in chronological order, optionally filtered."""
        found = self._load().events
        if since is not None:
            floor = _as_utc(since)
            found = [e for e in found if _as_utc(e.timestamp) >= floor]
        if types is not None:
            found = [e for e in found if e.type in types]
        return found

    def published_on(self, day: date) -> int:
        """Number of publishes on *day* (UTC).

        Uses the per-day counter; for log files written before the counter
        existed, falls back to counting retained events.
        """
        data = self._load()
        counted = data.daily_published.get(day.isoformat(), 0)
        from_events = sum(
            1
            for e in data.events
            if e.type == EventType.PUBLISHED and _as_utc(e.timestamp).date() == day
        )
        return max(counted, from_events)

    def last(self, event_type: EventType) -> SchedulerEvent | None:
        for event in reversed(self._load().events):
            if event.type == event_type:
                return event
        return None

    def reported_since(self, moment: datetime) -> bool:
        last = self.last(EventType.REPORTED)
        return last is not None and _as_utc(last.timestamp) >= _as_utc(moment)
