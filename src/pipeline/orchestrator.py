"""Stage orchestrator -- drives one work item through the fixed stage sequence.

Stages run in order (generate, illustrate, gate, publish, announce). Each
stage's failure is handled by the fixed ``STAGE_POLICY`` table: a fatal
failure stops the run and marks the item ``failed``; a non-fatal one is
logged and the run continues without that stage's effect. Stage errors
never escape ``run_item`` except invariant violations, which are recorded
on the item and then re-raised.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pressroom.config import PressroomConfig
from pressroom.content.models import GenerationUsage
from pressroom.content.store import ContentTracker
from pressroom.document import analysis, frontmatter
from pressroom.document.markup import to_html
from pressroom.document.models import Document, DocumentStage
from pressroom.document.repository import DocumentRepository
from pressroom.errors import (
    DocumentMissing,
    GenerationError,
    InvariantViolation,
    PublisherError,
    StageSkipped,
    bounded_message,
)
from pressroom.integrations.base import (
    Announcer,
    ImageProvider,
    Publisher,
    ReportSender,
    Researcher,
    SearchResult,
    TextGenerator,
)
from pressroom.pipeline.models import (
    STAGE_ORDER,
    STAGE_POLICY,
    FailurePolicy,
    RunResult,
    StageName,
    StepOutcome,
    StepStatus,
)
from pressroom.pipeline.prompts import (
    ARTICLE_SYSTEM_PROMPT,
    build_article_prompt,
    build_image_prompt,
)
from pressroom.quality.gate import evaluate, is_publish_ready
from pressroom.quality.models import Rubric
from pressroom.queue.models import WorkItem, WorkStatus, can_transition
from pressroom.queue.store import QueueStore
from pressroom.scheduler.log import EventType, SchedulerLog
from pressroom.shared.fileio import atomic_write_text

logger = logging.getLogger(__name__)

# Stages that run when publishing is deliberately deferred.
STAGING_STAGES: list[StageName] = [StageName.GENERATE, StageName.ILLUSTRATE, StageName.GATE]


@dataclass
class Collaborators:
    """External providers the stages call. None means not configured."""

    generator: TextGenerator | None = None
    researcher: Researcher | None = None
    images: ImageProvider | None = None
    publisher: Publisher | None = None
    announcer: Announcer | None = None
    reporter: ReportSender | None = None


@dataclass
class _RunContext:
    """Mutable state shared by the stages of one run."""

    item: WorkItem | None
    slug: str
    keyword: str = ""
    status: WorkStatus = WorkStatus.GENERATING
    score: int | None = None


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


class Orchestrator:
    """Runs work items through the stage sequence and records the outcome."""

    def __init__(
        self,
        config: PressroomConfig,
        *,
        queue: QueueStore,
        repo: DocumentRepository,
        tracker: ContentTracker,
        log: SchedulerLog,
        collaborators: Collaborators,
        rubric: Rubric | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.config = config
        self.queue = queue
        self.repo = repo
        self.tracker = tracker
        self.log = log
        self.collaborators = collaborators
        self.rubric = rubric or Rubric.from_config(config)
        self.clock = clock
        self._handlers: dict[StageName, Callable[[_RunContext], str]] = {
            StageName.GENERATE: self._generate,
            StageName.ILLUSTRATE: self._illustrate,
            StageName.GATE: self._gate,
            StageName.PUBLISH: self._publish,
            StageName.ANNOUNCE: self._announce,
        }

    @classmethod
    def from_config(
        cls, config: PressroomConfig, collaborators: Collaborators | None = None
    ) -> Orchestrator:
        """Wire the stores under ``config.paths`` and the configured providers."""
        from pressroom.integrations import build_collaborators

        paths = config.paths
        return cls(
            config,
            queue=QueueStore(paths.queue_file),
            repo=DocumentRepository(paths.content),
            tracker=ContentTracker(paths.tracker_file),
            log=SchedulerLog(paths.scheduler_log_file, config.scheduler.max_log_events),
            collaborators=collaborators or build_collaborators(config),
        )

    # ── Entry points ─────────────────────────────────────────────

    def run_next(self, *, staging: bool | None = None) -> RunResult | None:
        """Run the next eligible item, or return None when the backlog is empty."""
        item = self.queue.next_eligible()
        if item is None:
            logger.info("No eligible work items")
            return None
        return self.run_item(item, staging=staging)

    def run_item(self, item: WorkItem, *, staging: bool | None = None) -> RunResult:
        """Run every stage for a queued, approved item.

        The item is claimed (moved to ``generating``) before any stage runs,
        so it can never be selected twice. With *staging* the publish and
        announce stages are skipped and the item ends ``staged`` with its
        document in the approved location.
        """
        staging = self.config.scheduler.staging if staging is None else staging
        claimed = self.queue.claim(item.id)
        logger.info(
            "Running %s (%s)%s", claimed.id, claimed.keyword, " [staging]" if staging else ""
        )

        context = _RunContext(
            item=claimed, slug=claimed.slug, keyword=claimed.keyword, status=claimed.status
        )
        stages = STAGING_STAGES if staging else STAGE_ORDER
        final = WorkStatus.STAGED if staging else WorkStatus.PUBLISHED
        return self._execute(context, stages, final)

    def resume(self, slug: str, start: StageName = StageName.PUBLISH) -> RunResult:
        """Re-run the stages from *start* onward for an existing document.

        Used to retry publish and announce without regenerating content. A
        slug with no work item behind it (a hand-written document) runs
        without queue bookkeeping.
        """
        item = self.queue.find_by_slug(slug)
        if start == StageName.GENERATE:
            if item is None:
                raise InvariantViolation(f"No work item has slug {slug!r}; cannot regenerate")
            return self.run_item(item)
        if item is not None and item.status == WorkStatus.QUEUED:
            raise InvariantViolation(
                f"Work item {item.id!r} is still queued; run it from the generate stage"
            )
        location = self.repo.stage_of(slug)
        if location is None:
            raise DocumentMissing(slug)

        stages = STAGE_ORDER[STAGE_ORDER.index(start) :]
        final = WorkStatus.PUBLISHED if StageName.PUBLISH in stages else None
        keyword = item.keyword if item is not None else self.repo.read(slug).primary_phrase
        if item is not None:
            status = item.status
        else:
            status = (
                WorkStatus.PUBLISHED if location == DocumentStage.PUBLISHED else WorkStatus.STAGED
            )
        context = _RunContext(item=item, slug=slug, keyword=keyword, status=status)
        logger.info("Resuming %s from %s", slug, start.value)
        return self._execute(context, stages, final)

    def resume_path(self, path: Path, start: StageName = StageName.PUBLISH) -> RunResult:
        """Resume from a document file path; the slug comes from its header or name."""
        document = self.repo.load_path(path)
        slug = document.slug or path.stem
        if not self.repo.exists(slug):
            # Adopt a stray file into the lifecycle directories.
            document.header.setdefault("slug", slug)
            target = self.repo.path_for(slug, document.stage)
            atomic_write_text(target, frontmatter.dumps(document))
            logger.info("Adopted %s into %s", path, target.parent)
        return self.resume(slug, start)

    # ── Stage loop ───────────────────────────────────────────────

    def _execute(
        self, context: _RunContext, stages: list[StageName], final: WorkStatus | None
    ) -> RunResult:
        started = self.clock()
        item = context.item
        result = RunResult(
            item_id=item.id if item is not None else "",
            keyword=context.keyword,
            slug=context.slug,
            status=context.status,
            started_at=started,
        )

        for stage in stages:
            tick = time.monotonic()
            try:
                detail = self._handlers[stage](context)
            except StageSkipped as exc:
                result.steps.append(self._outcome(stage, StepStatus.SKIPPED, str(exc), tick))
                logger.info("[%s] skipped: %s", stage.value, exc)
                continue
            except InvariantViolation as exc:
                result.steps.append(self._outcome(stage, StepStatus.FAILED, str(exc), tick))
                logger.error("[%s] invariant violated for %s: %s", stage.value, context.slug, exc)
                self._fail(context, result, stage, exc)
                raise
            except Exception as exc:
                if STAGE_POLICY[stage] == FailurePolicy.FATAL:
                    result.steps.append(
                        self._outcome(stage, StepStatus.FAILED, bounded_message(exc), tick)
                    )
                    logger.error("[%s] failed for %s: %s", stage.value, context.keyword, exc)
                    return self._fail(context, result, stage, exc)
                result.steps.append(
                    self._outcome(stage, StepStatus.WARNED, bounded_message(exc), tick)
                )
                logger.warning(
                    "[%s] failed for %s, continuing: %s", stage.value, context.keyword, exc
                )
                continue

            result.slug = context.slug
            result.steps.append(self._outcome(stage, StepStatus.OK, detail, tick))
            logger.info("[%s] %s", stage.value, detail)

        result.slug = context.slug
        result.score = context.score
        return self._finish(context, result, final)

    @staticmethod
    def _outcome(stage: StageName, status: StepStatus, detail: str, tick: float) -> StepOutcome:
        return StepOutcome(
            stage=stage,
            status=status,
            detail=detail,
            duration_seconds=round(time.monotonic() - tick, 3),
        )

    def _finish(
        self, context: _RunContext, result: RunResult, final: WorkStatus | None
    ) -> RunResult:
        finished = self.clock()
        duration = round((finished - result.started_at).total_seconds(), 1)
        result.finished_at = finished
        result.duration_seconds = duration
        if final is None:
            return result

        result.status = final
        if context.item is not None:
            self.queue.update(
                context.item.id,
                status=final,
                slug=context.slug,
                finished_at=finished,
                duration_seconds=duration,
                error="",
            )
        self.log.append(
            EventType.PUBLISHED if final == WorkStatus.PUBLISHED else EventType.STAGED,
            item_id=result.item_id,
            keyword=context.keyword,
            slug=context.slug,
            duration_seconds=duration,
            timestamp=finished,
        )
        logger.info("%s %s in %.1fs", final.value.capitalize(), context.slug, duration)
        return result

    def _fail(
        self, context: _RunContext, result: RunResult, stage: StageName, exc: BaseException
    ) -> RunResult:
        finished = self.clock()
        message = bounded_message(f"{stage.value}: {bounded_message(exc)}")
        result.error = message
        result.slug = context.slug
        result.finished_at = finished
        result.duration_seconds = round((finished - result.started_at).total_seconds(), 1)

        item = context.item
        if item is not None:
            current = self.queue.get(item.id)
            fields: dict[str, Any] = {
                "error": message,
                "finished_at": finished,
                "duration_seconds": result.duration_seconds,
            }
            if context.slug:
                fields["slug"] = context.slug
            if current is not None and can_transition(current.status, WorkStatus.FAILED):
                fields["status"] = WorkStatus.FAILED
                result.status = WorkStatus.FAILED
            elif current is not None:
                result.status = current.status
            if current is not None:
                self.queue.update(item.id, **fields)
        else:
            result.status = WorkStatus.FAILED

        self.log.append(
            EventType.FAILED,
            item_id=result.item_id,
            keyword=context.keyword,
            slug=context.slug,
            duration_seconds=result.duration_seconds,
            error=message,
            timestamp=finished,
        )
        return result

    # ── Stages ───────────────────────────────────────────────────

    def _research(self, keyword: str) -> list[SearchResult]:
        from pressroom.integrations.research import gather_notes

        researcher = self.collaborators.researcher
        if researcher is None or not self.config.generation.research:
            return []
        try:
            return gather_notes(researcher, keyword, self.config.generation.research_results)
        except Exception:
            logger.warning("Research for %r failed, generating without it", keyword, exc_info=True)
            return []

    def _generate(self, context: _RunContext) -> str:
        generator = self.collaborators.generator
        if generator is None:
            raise GenerationError("No text generator configured")
        item = context.item
        if item is None:
            raise InvariantViolation(f"Cannot generate {context.slug!r} without a work item")

        settings = self.config.generation
        keyword = item.keyword
        template = item.template or settings.default_template
        category = item.category or settings.default_category
        slug = item.slug or analysis.slugify(item.display_title)
        if not slug:
            raise GenerationError(f"Cannot derive a slug for work item {item.id!r}")
        context.slug = slug

        prompt = build_article_prompt(
            title=item.display_title,
            keyword=keyword,
            template=template,
            category=category,
            min_words=self.rubric.min_words_for(template),
            brand=self.config.site.brand,
            research=self._research(keyword),
        )
        generated = generator.generate(
            prompt, settings.max_output_tokens, system=ARTICLE_SYSTEM_PROMPT
        )

        parsed = frontmatter.parse(generated.text)
        body = analysis.strip_preamble(parsed.body)
        if not body:
            raise GenerationError("Generator returned an empty article")

        h1 = next((h for h in analysis.extract_headings(body) if h.level == 1), None)
        title = item.title or (h1.text if h1 is not None else keyword)
        description = analysis.extract_description(body, keyword)
        secondary = parsed.secondary_phrases or analysis.extract_secondary_phrases(body, keyword)
        now = self.clock().isoformat()

        header: dict[str, Any] = {
            "title": title,
            "slug": slug,
            "description": description,
            "meta_title": title,
            "meta_description": description,
            "keywords": {"primary": keyword, "secondary": secondary},
            "category": category,
            "template": template,
            "author": settings.author,
            "stage": DocumentStage.DRAFT.value,
            "created_at": now,
            "updated_at": now,
            "published_at": None,
            "seo_score": None,
            "featured_image": {"url": "", "alt": title},
            "cms_item_id": "",
            "cms_published": False,
            "generation": {
                "model": generated.model,
                "input_tokens": generated.input_tokens,
                "output_tokens": generated.output_tokens,
                "cost_usd": generated.cost_usd,
            },
        }
        if settings.cta_text and settings.cta_url:
            header["cta"] = {"text": settings.cta_text, "url": settings.cta_url}

        document = Document(header=frontmatter.deep_merge(parsed.header, header), body=body)
        self.repo.create(document)

        word_count = analysis.count_words(body)
        self.tracker.upsert(
            slug,
            title=title,
            keyword=keyword,
            category=category,
            stage=DocumentStage.DRAFT.value,
            word_count=word_count,
            generation=GenerationUsage(
                model=generated.model,
                input_tokens=generated.input_tokens,
                output_tokens=generated.output_tokens,
                cost_usd=generated.cost_usd,
            ),
        )
        self.queue.update(item.id, slug=slug)
        return f"{slug}: {word_count} words (${generated.cost_usd:.4f})"

    def _illustrate(self, context: _RunContext) -> str:
        images = self.collaborators.images
        if images is None:
            raise StageSkipped("No image provider configured")
        document = self.repo.read(context.slug)
        title = document.title or context.keyword
        url = images.render_image(build_image_prompt(title, context.keyword))
        local = images.fetch(url, self.config.paths.images_dir / f"{context.slug}.png")
        self.repo.update_header(
            context.slug, {"featured_image": {"url": url, "alt": title, "path": str(local)}}
        )
        return f"hero image saved to {local}"

    def _gate(self, context: _RunContext) -> str:
        document = self.repo.read(context.slug)
        # Approval does not depend on the score.
        if document.stage in (DocumentStage.DRAFT, DocumentStage.REVIEW):
            self.repo.promote(context.slug, DocumentStage.APPROVED)
            self.tracker.upsert(context.slug, stage=DocumentStage.APPROVED.value)

        report = evaluate(document, self.rubric)
        context.score = report.score
        self.repo.update_header(context.slug, {"seo_score": report.score})
        self.tracker.upsert(
            context.slug, seo_score=report.score, word_count=report.stats.word_count
        )
        threshold = self.rubric.min_score_to_publish
        if not is_publish_ready(report, self.rubric):
            logger.warning(
                "Quality score for %s is %d, below the publish threshold of %d",
                context.slug,
                report.score,
                threshold,
            )
            return f"score {report.score}/100 (below {threshold})"
        return f"score {report.score}/100"

    def _publish(self, context: _RunContext) -> str:
        publisher = self.collaborators.publisher
        if publisher is None:
            raise PublisherError(
                "No destination publishing system configured; set [cms] or run in staging mode"
            )
        document = self.repo.read(context.slug)
        header = document.header
        featured = header.get("featured_image")
        image_url = featured.get("url") if isinstance(featured, dict) else None

        fields = publisher.build_fields(header, to_html(document.body), image_url or None)
        self._archive_payload(context.slug, fields)

        record_id = str(header.get("cms_item_id") or "")
        if record_id:
            publisher.update_record(record_id, fields)
        else:
            record_id = publisher.create_record(fields)
            # Persist the id first so a retry updates instead of duplicating.
            self.repo.update_header(context.slug, {"cms_item_id": record_id})
        publisher.publish_records([record_id])

        published_at = self.clock()
        self.repo.promote(
            context.slug,
            DocumentStage.PUBLISHED,
            {
                "cms_item_id": record_id,
                "cms_published": True,
                "published_at": published_at.isoformat(),
            },
        )
        self.tracker.upsert(
            context.slug,
            stage=DocumentStage.PUBLISHED.value,
            cms_item_id=record_id,
            published_at=published_at,
        )
        return f"published as {record_id}"

    def _announce(self, context: _RunContext) -> str:
        announcer = self.collaborators.announcer
        if announcer is None:
            raise StageSkipped("No search-index announcer configured")
        url = self.config.site.article_url(context.slug)
        announcer.submit(url)
        self.tracker.upsert(context.slug, indexed_at=self.clock())
        return f"submitted {url}"

    def _archive_payload(self, slug: str, fields: dict[str, Any]) -> Path:
        path = self.config.paths.html_dir / f"{slug}.json"
        atomic_write_text(path, json.dumps(fields, indent=2, ensure_ascii=False))
        return path
