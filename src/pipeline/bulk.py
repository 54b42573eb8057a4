"""Bulk publish pass for staged work items.

Replays only the publish and announce stages for items a staging run left
in the approved location, oldest priority first, pausing between items to
stay under the destination's rate limit.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from pressroom.pipeline.models import RunResult, StageName
from pressroom.pipeline.orchestrator import Orchestrator
from pressroom.queue.models import WorkItem, WorkStatus

logger = logging.getLogger(__name__)


def staged_items(orchestrator: Orchestrator, limit: int | None = None) -> list[WorkItem]:
    """Staged items with a document, in (priority, id) order."""
    items = [item for item in orchestrator.queue.list(WorkStatus.STAGED) if item.slug]
    if limit is not None:
        items = items[: max(limit, 0)]
    return items


def publish_approved(
    orchestrator: Orchestrator,
    *,
    limit: int | None = None,
    delay_seconds: float | None = None,
    sleep: Callable[[float], None] = time.sleep,
    on_result: Callable[[WorkItem, RunResult], None] | None = None,
) -> list[RunResult]:
    """Publish every staged item (or the first *limit*) and return the results.

    A publish failure marks that item failed and the pass moves on; an
    invariant violation stops the pass.
    """
    delay = orchestrator.config.cms.bulk_delay_seconds if delay_seconds is None else delay_seconds
    items = staged_items(orchestrator, limit)
    if not items:
        logger.info("No staged items to publish")
        return []

    results: list[RunResult] = []
    for index, item in enumerate(items):
        if index and delay > 0:
            sleep(delay)
        result = orchestrator.resume(item.slug, StageName.PUBLISH)
        results.append(result)
        if on_result is not None:
            on_result(item, result)

    published = sum(1 for r in results if r.status == WorkStatus.PUBLISHED)
    logger.info("Bulk publish finished: %d/%d published", published, len(results))
    return results
