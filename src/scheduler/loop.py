"""Time-windowed scheduler that decides when to run the orchestrator.

Each tick checks two independent conditions: the weekly report window and
the publish windows. A publish window runs at most one item, and only while
today's publish count (read from the scheduler log) is below the quota.
A tick never raises: every failure is logged and the next tick runs.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from datetime import UTC, datetime
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel

from pressroom.config import SchedulerConfig
from pressroom.errors import bounded_message
from pressroom.pipeline.models import RunResult
from pressroom.scheduler.log import EventType, SchedulerLog

if TYPE_CHECKING:
    from pressroom.pipeline.orchestrator import Orchestrator

logger = logging.getLogger(__name__)


class TickAction(StrEnum):
    OUTSIDE_WINDOW = "outside_window"
    QUOTA_REACHED = "quota_reached"
    NO_WORK = "no_work"
    RAN = "ran"
    ERROR = "error"


class TickResult(BaseModel):
    """What a single tick decided and did."""

    at: datetime
    action: TickAction
    published_today: int = 0
    reported: bool = False
    run: RunResult | None = None
    error: str = ""


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


class Scheduler:
    """Single-worker scheduler; ticks never overlap."""

    def __init__(
        self,
        settings: SchedulerConfig,
        *,
        orchestrator: Orchestrator,
        log: SchedulerLog,
        report_fn: Callable[[datetime], Any] | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.settings = settings
        self.orchestrator = orchestrator
        self.log = log
        self.report_fn = report_fn
        self.clock = clock

    # ── Window checks ────────────────────────────────────────────

    def in_publish_window(self, now: datetime) -> bool:
        now = now.astimezone(UTC)
        return (
            now.hour in self.settings.publish_hours_utc
            and now.minute < self.settings.window_minutes
        )

    def in_report_window(self, now: datetime) -> bool:
        now = now.astimezone(UTC)
        return (
            now.weekday() == self.settings.report_weekday
            and now.hour == self.settings.report_hour_utc
            and now.minute < self.settings.window_minutes
        )

    def published_today(self, now: datetime) -> int:
        return self.log.published_on(now.astimezone(UTC).date())

    # ── Ticks ────────────────────────────────────────────────────

    def tick(self, now: datetime | None = None) -> TickResult:
        """Evaluate the windows once and act on them."""
        now = now or self.clock()
        result = TickResult(at=now, action=TickAction.OUTSIDE_WINDOW)
        try:
            result.reported = self._maybe_report(now)
        except Exception as exc:
            logger.exception("Weekly report failed")
            result.error = bounded_message(exc)

        try:
            self._maybe_publish(now, result)
        except Exception as exc:
            logger.exception("Scheduler tick failed")
            result.action = TickAction.ERROR
            result.error = bounded_message(exc)
        return result

    def _maybe_report(self, now: datetime) -> bool:
        if self.report_fn is None or not self.in_report_window(now):
            return False
        window_start = now.astimezone(UTC).replace(minute=0, second=0, microsecond=0)
        if self.log.reported_since(window_start):
            return False
        logger.info("Report window reached, sending weekly summary")
        self.report_fn(now)
        self.log.append(EventType.REPORTED, timestamp=now)
        return True

    def _maybe_publish(self, now: datetime, result: TickResult) -> None:
        count = self.published_today(now)
        result.published_today = count
        if not self.in_publish_window(now):
            return
        quota = self.settings.posts_per_day
        if count >= quota:
            logger.debug("Daily quota reached (%d/%d)", count, quota)
            result.action = TickAction.QUOTA_REACHED
            return

        item = self.orchestrator.queue.next_eligible()
        if item is None:
            logger.info("Publish window open but no eligible work items")
            result.action = TickAction.NO_WORK
            return

        logger.info(
            "Publish window open (%d/%d published today), running %s", count, quota, item.id
        )
        result.run = self.orchestrator.run_item(item, staging=self.settings.staging)
        result.action = TickAction.RAN

    def run_forever(
        self,
        interval: float | None = None,
        *,
        sleep: Callable[[float], None] = time.sleep,
        max_ticks: int | None = None,
    ) -> int:
        """Tick on a fixed interval until interrupted; returns ticks run."""
        interval = self.settings.tick_interval_seconds if interval is None else interval
        logger.info(
            "Scheduler started: %d posts/day at %s UTC, ticking every %ss",
            self.settings.posts_per_day,
            ", ".join(f"{h:02d}:00" for h in self.settings.publish_hours_utc),
            interval,
        )
        ticks = 0
        while max_ticks is None or ticks < max_ticks:
            self.tick()
            ticks += 1
            if max_ticks is not None and ticks >= max_ticks:
                break
            sleep(interval)
        return ticks
