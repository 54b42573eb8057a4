"""Weekly summary of publishing activity.

Reads the scheduler log (last 7 days of published and failed events), the
queue counts and the tracker totals, and renders them as HTML for delivery
or plain text for a terminal preview.
"""

from __future__ import annotations

import html
import logging
import math
from datetime import UTC, datetime, timedelta

from pydantic import BaseModel, Field

from pressroom.content.models import TrackerEntry
from pressroom.content.store import ContentTracker
from pressroom.errors import ReportDeliveryError
from pressroom.integrations.base import ReportSender
from pressroom.queue.models import WorkStatus
from pressroom.queue.store import QueueStore
from pressroom.scheduler.log import EventType, SchedulerEvent, SchedulerLog

logger = logging.getLogger(__name__)

REPORT_WINDOW_DAYS = 7
TOP_PERFORMERS = 5


class WeeklySummary(BaseModel):
    """Everything the weekly report shows."""

    period_start: datetime
    period_end: datetime
    published: list[SchedulerEvent] = Field(default_factory=list)
    failed: list[SchedulerEvent] = Field(default_factory=list)
    queue_counts: dict[str, int] = Field(default_factory=dict)
    total_published: int = 0
    total_clicks: int = 0
    total_impressions: int = 0
    total_cost_usd: float = 0.0
    top_performers: list[TrackerEntry] = Field(default_factory=list)
    posts_per_day: int = 1

    @property
    def queued(self) -> int:
        return self.queue_counts.get(WorkStatus.QUEUED.value, 0)

    @property
    def days_of_backlog(self) -> int:
        """Days of queued work left at the configured daily quota."""
        return math.ceil(self.queued / max(self.posts_per_day, 1))

    @property
    def subject(self) -> str:
        return (
            f"Blog report: {len(self.published)} published, {self.queued} queued "
            f"({self.period_end:%Y-%m-%d})"
        )


def build_weekly_summary(
    log: SchedulerLog,
    queue: QueueStore,
    tracker: ContentTracker,
    *,
    posts_per_day: int,
    now: datetime | None = None,
) -> WeeklySummary:
    now = now or datetime.now(tz=UTC)
    since = now - timedelta(days=REPORT_WINDOW_DAYS)
    events = log.events(since=since, types={EventType.PUBLISHED, EventType.FAILED})

    published_posts = [
        entry for entry in tracker.list() if entry.stage == "published" or entry.published_at
    ]
    top = sorted(
        (entry for entry in published_posts if entry.performance.clicks > 0),
        key=lambda entry: entry.performance.clicks,
        reverse=True,
    )[:TOP_PERFORMERS]

    return WeeklySummary(
        period_start=since,
        period_end=now,
        published=[e for e in events if e.type == EventType.PUBLISHED],
        failed=[e for e in events if e.type == EventType.FAILED],
        queue_counts={status.value: count for status, count in queue.counts().items()},
        total_published=len(published_posts),
        total_clicks=sum(entry.performance.clicks for entry in published_posts),
        total_impressions=sum(entry.performance.impressions for entry in published_posts),
        total_cost_usd=tracker.total_cost(),
        top_performers=top,
        posts_per_day=posts_per_day,
    )


def _duration(event: SchedulerEvent) -> str:
    return f"{event.duration_seconds:.1f}s" if event.duration_seconds is not None else "-"


def render_text(summary: WeeklySummary) -> str:
    """Plain-text rendering for ``report --preview``."""
    lines = [
        f"Period: {summary.period_start:%Y-%m-%d} - {summary.period_end:%Y-%m-%d}",
        f"Published this week: {len(summary.published)}",
        f"Failed this week: {len(summary.failed)}",
        f"Queue remaining: {summary.queued} ({summary.days_of_backlog} days at "
        f"{summary.posts_per_day}/day)",
        f"Total published: {summary.total_published}",
        f"Total clicks: {summary.total_clicks}",
        f"Total impressions: {summary.total_impressions}",
        f"Generation cost to date: ${summary.total_cost_usd:.2f}",
    ]
    if summary.published:
        lines.extend(["", "Recent publishes:"])
        lines.extend(f"  - {e.slug or '-'} ({e.keyword}) {_duration(e)}" for e in summary.published)
    if summary.failed:
        lines.extend(["", "Failures:"])
        lines.extend(f"  - {e.keyword}: {e.error[:60]}" for e in summary.failed)
    if summary.top_performers:
        lines.extend(["", "Top performers:"])
        lines.extend(
            f"  - {(p.title or p.slug)[:40]}: {p.performance.clicks} clicks, "
            f"{p.performance.impressions} impressions"
            for p in summary.top_performers
        )
    return "\n".join(lines)


def _table(headers: list[str], rows: list[list[str]]) -> str:
    head = "".join(f"<th>{html.escape(h)}</th>" for h in headers)
    body = "".join(
        "<tr>" + "".join(f"<td>{html.escape(cell)}</td>" for cell in row) + "</tr>" for row in rows
    )
    return f"<table><thead><tr>{head}</tr></thead><tbody>{body}</tbody></table>"


def render_html(summary: WeeklySummary, *, brand: str = "") -> str:
    """Self-contained HTML email body."""
    title = html.escape(brand or "Blog")
    parts = [
        "<!DOCTYPE html>",
        '<html><head><meta charset="utf-8"><style>'
        "body{font-family:-apple-system,'Segoe UI',Roboto,sans-serif;color:#1f2937}"
        "table{border-collapse:collapse;width:100%}"
        "th,td{text-align:left;padding:6px 10px;border-bottom:1px solid #e5e7eb}"
        ".failed{color:#b91c1c}"
        "</style></head><body>",
        f"<h1>{title} weekly automation report</h1>",
        f"<p>{summary.period_start:%Y-%m-%d} &ndash; {summary.period_end:%Y-%m-%d}</p>",
        "<ul>",
        f"<li>Published this week: <strong>{len(summary.published)}</strong></li>",
        f"<li>In queue: <strong>{summary.queued}</strong></li>",
        f"<li>Total published: <strong>{summary.total_published}</strong></li>",
        "</ul>",
    ]
    if summary.failed:
        parts.append(f'<p class="failed">Failed: {len(summary.failed)} post(s)</p>')

    if summary.published:
        parts.append("<h2>Published this week</h2>")
        parts.append(
            _table(
                ["Slug", "Keyword", "Time"],
                [[e.slug or "-", e.keyword, _duration(e)] for e in summary.published],
            )
        )
    if summary.failed:
        parts.append('<h2 class="failed">Failed</h2>')
        parts.append(
            _table(["Keyword", "Error"], [[e.keyword, e.error[:60]] for e in summary.failed])
        )
    if summary.top_performers:
        parts.append("<h2>Top performers</h2>")
        parts.append(
            f"<p>Total: {summary.total_clicks} clicks, "
            f"{summary.total_impressions} impressions</p>"
        )
        parts.append(
            _table(
                ["Post", "Clicks", "Impr.", "CTR"],
                [
                    [
                        (p.title or p.slug)[:40],
                        str(p.performance.clicks),
                        str(p.performance.impressions),
                        f"{p.performance.ctr:.1f}%",
                    ]
                    for p in summary.top_performers
                ],
            )
        )

    counts = summary.queue_counts
    parts.extend(
        [
            "<h2>Queue status</h2>",
            "<ul>",
            f"<li>Queued: {counts.get('queued', 0)}</li>",
            f"<li>Staged: {counts.get('staged', 0)}</li>",
            f"<li>Published: {counts.get('published', 0)}</li>",
            f"<li>Failed: {counts.get('failed', 0)}</li>",
            "</ul>",
            f"<p>At {summary.posts_per_day} posts/day the queue has "
            f"<strong>{summary.days_of_backlog} days</strong> of content remaining.</p>",
            "</body></html>",
        ]
    )
    return "\n".join(parts)


def send_report(
    summary: WeeklySummary, sender: ReportSender | None, recipient: str, *, brand: str = ""
) -> str:
    """Deliver the HTML report; returns the provider message id."""
    if sender is None:
        raise ReportDeliveryError("No report channel configured (set [report] api_key)")
    if not recipient:
        raise ReportDeliveryError("No report recipient configured")
    message_id = sender.send(recipient, summary.subject, render_html(summary, brand=brand))
    logger.info("Weekly report sent to %s (%s)", recipient, message_id)
    return message_id
