"""CLI interface for pressroom."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape

from pressroom.config import PressroomConfig, load_config, merge_cli_overrides
from pressroom.content.store import ContentTracker
from pressroom.document import frontmatter
from pressroom.document.models import DocumentStage
from pressroom.document.repository import DocumentRepository
from pressroom.errors import InvariantViolation, PressroomError, ReportDeliveryError
from pressroom.integrations import build_collaborators
from pressroom.pipeline.bulk import publish_approved, staged_items
from pressroom.pipeline.models import RunResult, StageName, StepStatus
from pressroom.pipeline.orchestrator import Orchestrator
from pressroom.quality.gate import evaluate, format_report
from pressroom.quality.models import Rubric
from pressroom.queue.models import WorkItem, WorkStatus
from pressroom.queue.store import QueueStore
from pressroom.reporting import build_weekly_summary, render_text, send_report
from pressroom.scheduler.log import EventType
from pressroom.scheduler.loop import Scheduler
from pressroom.shared.fileio import atomic_write_text

app = typer.Typer(
    name="pressroom",
    help="Unattended content pipeline: queue, generate, gate, publish, report.",
)
queue_app = typer.Typer(help="Inspect and manage the work queue.")
app.add_typer(queue_app, name="queue")

console = Console()

_STEP_STYLE = {
    StepStatus.OK: "green",
    StepStatus.SKIPPED: "dim",
    StepStatus.WARNED: "yellow",
    StepStatus.FAILED: "red",
}


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        from pressroom import __version__

        console.print(f"pressroom {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    config_path: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Path to a pressroom TOML config file."),
    ] = None,
    root: Annotated[
        Path | None,
        typer.Option("--root", help="Project root holding content/, data/ and output/."),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-V", help="Enable debug logging."),
    ] = False,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
) -> None:
    """Pressroom - keep the blog publishing while nobody is watching."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = {"config_path": config_path, "root": str(root) if root else None}


def _config(ctx: typer.Context, **overrides: object) -> PressroomConfig:
    state = ctx.obj or {}
    config = load_config(state.get("config_path"))
    return merge_cli_overrides(config, root=state.get("root"), **overrides)


def _orchestrator(config: PressroomConfig) -> Orchestrator:
    return Orchestrator.from_config(config, collaborators=build_collaborators(config))


def _print_result(result: RunResult) -> None:
    for step in result.steps:
        style = _STEP_STYLE[step.status]
        console.print(
            f"  [{style}]{step.status.value:>7}[/{style}] {step.stage.value}: {escape(step.detail)}"
        )
    if result.status == WorkStatus.FAILED or result.error:
        console.print(f"[red]Failed:[/red] {escape(result.error)}")
        return
    score = f", score {result.score}" if result.score is not None else ""
    console.print(
        f"[bold green]Done[/bold green] {result.slug} -> {result.status.value} "
        f"in {result.duration_seconds:.1f}s{score}"
    )


def _print_item(item: WorkItem) -> None:
    console.print(
        f"  {item.id:<8} p{item.priority:<3} {item.status.value:<10} "
        f"{escape(item.display_title)}"
        + (f" [dim]({item.slug})[/dim]" if item.slug else "")
        + (f" [red]{escape(item.error[:60])}[/red]" if item.error else "")
    )


# ── Run commands ─────────────────────────────────────────────────


@app.command()
def run(
    ctx: typer.Context,
    once: Annotated[
        bool,
        typer.Option("--once", help="Run the next eligible item now and exit."),
    ] = False,
    staging: Annotated[
        bool | None,
        typer.Option(
            "--staging/--no-staging",
            help="Generate and gate but do not publish; items end staged.",
        ),
    ] = None,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Show what would run without changing anything."),
    ] = False,
    interval: Annotated[
        int | None,
        typer.Option("--interval", help="Seconds between scheduler ticks."),
    ] = None,
) -> None:
    """Run the scheduler continuously, or one item with --once."""
    config = _config(ctx, staging=staging, interval=interval)
    queue = QueueStore(config.paths.queue_file)

    try:
        if dry_run:
            item = queue.next_eligible()
            if item is None:
                console.print("[yellow]No eligible work items.[/yellow]")
                return
            mode = "staging" if config.scheduler.staging else "publish"
            console.print(f"[bold]Would run ({mode}):[/bold]")
            _print_item(item)
            return

        orchestrator = _orchestrator(config)
        if once:
            result = orchestrator.run_next(staging=config.scheduler.staging)
            if result is None:
                console.print("[yellow]No eligible work items.[/yellow]")
                return
            console.print(f"[bold]{escape(result.keyword)}[/bold]")
            _print_result(result)
            if result.status == WorkStatus.FAILED:
                raise typer.Exit(1)
            return

        def _report(now: datetime) -> None:
            summary = build_weekly_summary(
                orchestrator.log,
                orchestrator.queue,
                orchestrator.tracker,
                posts_per_day=config.scheduler.posts_per_day,
                now=now,
            )
            send_report(
                summary,
                orchestrator.collaborators.reporter,
                config.report.recipient,
                brand=config.site.brand,
            )

        scheduler = Scheduler(
            config.scheduler,
            orchestrator=orchestrator,
            log=orchestrator.log,
            report_fn=_report,
        )
        if config.scheduler.staging:
            console.print("[yellow]Staging mode: content will not be published.[/yellow]")
        try:
            scheduler.run_forever()
        except KeyboardInterrupt:
            console.print("Scheduler stopped.")
    except PressroomError as exc:
        console.print(f"[red]Error:[/red] {escape(str(exc))}")
        raise typer.Exit(1) from exc


@app.command(name="run-from")
def run_from(
    ctx: typer.Context,
    target: Annotated[str, typer.Argument(help="Document slug or path to a markdown file.")],
    start: Annotated[
        StageName,
        typer.Option("--from", help="Stage to start from."),
    ] = StageName.PUBLISH,
) -> None:
    """Resume the stage sequence for an existing document."""
    config = _config(ctx)
    orchestrator = _orchestrator(config)
    path = Path(target)
    try:
        if path.suffix == ".md" and path.is_file():
            result = orchestrator.resume_path(path, start)
        else:
            result = orchestrator.resume(target, start)
    except PressroomError as exc:
        console.print(f"[red]Error:[/red] {escape(str(exc))}")
        raise typer.Exit(1) from exc

    _print_result(result)
    if result.status == WorkStatus.FAILED or result.error:
        raise typer.Exit(1)


@app.command(name="publish-approved")
def publish_approved_cmd(
    ctx: typer.Context,
    limit: Annotated[
        int | None,
        typer.Option("--limit", "-n", help="Publish at most this many items."),
    ] = None,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="List what would be published."),
    ] = False,
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip the confirmation prompt."),
    ] = False,
) -> None:
    """Publish staged items (publish + announce only)."""
    config = _config(ctx)
    orchestrator = _orchestrator(config)
    items = staged_items(orchestrator, limit)
    if not items:
        console.print("[yellow]No staged items to publish.[/yellow]")
        return

    console.print(f"[bold]{len(items)} staged item(s):[/bold]")
    for item in items:
        _print_item(item)
    if dry_run:
        return
    if not yes and not typer.confirm(f"Publish {len(items)} item(s)?"):
        raise typer.Exit(0)

    def _on_result(item: WorkItem, result: RunResult) -> None:
        console.print(f"[bold]{escape(item.display_title)}[/bold]")
        _print_result(result)

    try:
        results = publish_approved(orchestrator, limit=limit, on_result=_on_result)
    except InvariantViolation as exc:
        console.print(f"[red]Error:[/red] {escape(str(exc))}")
        raise typer.Exit(1) from exc

    failed = [r for r in results if r.status == WorkStatus.FAILED or r.error]
    console.print(f"\nPublished {len(results) - len(failed)}/{len(results)}")
    if failed:
        raise typer.Exit(1)


# ── Quality ──────────────────────────────────────────────────────


@app.command(name="check-score")
def check_score(
    ctx: typer.Context,
    file: Annotated[
        Path | None,
        typer.Argument(help="Markdown document to score."),
    ] = None,
    all_documents: Annotated[
        bool,
        typer.Option("--all", help="Score every document in every lifecycle location."),
    ] = False,
    update: Annotated[
        bool,
        typer.Option("--update", help="Write the score back into each document header."),
    ] = False,
    min_score: Annotated[
        int | None,
        typer.Option("--min-score", help="Publish threshold to compare against."),
    ] = None,
) -> None:
    """Score documents with the quality gate."""
    config = _config(ctx, min_score=min_score)
    rubric = Rubric.from_config(config)
    repo = DocumentRepository(config.paths.content)

    if file is None and not all_documents:
        console.print("[red]Error:[/red] pass a FILE or --all")
        raise typer.Exit(1)

    if file is not None:
        if not file.is_file():
            console.print(f"[red]Error:[/red] File not found: {file}")
            raise typer.Exit(1)
        document = repo.load_path(file)
        report = evaluate(document, rubric)
        console.print(format_report(report, document.slug or file.stem), markup=False)
        verdict = "ready" if report.score >= rubric.min_score_to_publish else "below threshold"
        console.print(f"\nThreshold {rubric.min_score_to_publish}: {verdict}")
        if update:
            text = frontmatter.update_header(
                file.read_text(encoding="utf-8"), {"seo_score": report.score}
            )
            atomic_write_text(file, text)
        return

    entries = repo.list()
    if not entries:
        console.print("[yellow]No documents found.[/yellow]")
        return
    scores: list[int] = []
    for stage, path in entries:
        document = repo.load_path(path)
        report = evaluate(document, rubric)
        scores.append(report.score)
        style = "green" if report.score >= rubric.min_score_to_publish else "yellow"
        console.print(
            f"  [{style}]{report.score:>3}[/{style}]  {stage.value:<9} {document.slug or path.stem}"
        )
        if update and document.slug:
            repo.update_header(document.slug, {"seo_score": report.score})
    average = sum(scores) / len(scores)
    console.print(f"\n{len(scores)} document(s), average score {average:.0f}")


# ── Reporting and status ─────────────────────────────────────────


@app.command()
def report(
    ctx: typer.Context,
    preview: Annotated[
        bool,
        typer.Option("--preview/--send", help="Print the report instead of sending it."),
    ] = False,
    to: Annotated[
        str | None,
        typer.Option("--to", help="Override the report recipient."),
    ] = None,
) -> None:
    """Build the weekly summary and send it (or preview it)."""
    config = _config(ctx, recipient=to)
    orchestrator = _orchestrator(config)
    summary = build_weekly_summary(
        orchestrator.log,
        orchestrator.queue,
        orchestrator.tracker,
        posts_per_day=config.scheduler.posts_per_day,
        now=datetime.now(tz=UTC),
    )
    if preview:
        console.print(f"To: {config.report.recipient or '(not set)'}")
        console.print(render_text(summary), markup=False)
        return
    try:
        message_id = send_report(
            summary,
            orchestrator.collaborators.reporter,
            config.report.recipient,
            brand=config.site.brand,
        )
    except ReportDeliveryError as exc:
        console.print(f"[red]Error:[/red] {escape(str(exc))}")
        raise typer.Exit(1) from exc
    orchestrator.log.append(EventType.REPORTED)
    console.print(f"[green]Report sent to {config.report.recipient}[/green] ({message_id})")


@app.command()
def status(ctx: typer.Context) -> None:
    """Show lifecycle, queue and tracker totals."""
    config = _config(ctx)
    repo = DocumentRepository(config.paths.content)
    queue = QueueStore(config.paths.queue_file)
    tracker = ContentTracker(config.paths.tracker_file)

    console.print("[bold]Documents[/bold]")
    for stage, count in repo.counts().items():
        console.print(f"  {stage.value:<10} {count}")

    console.print("\n[bold]Queue[/bold]")
    try:
        counts = queue.counts()
    except PressroomError as exc:
        console.print(f"[red]Error:[/red] {escape(str(exc))}")
        raise typer.Exit(1) from exc
    for work_status, count in counts.items():
        console.print(f"  {work_status.value:<10} {count}")
    eligible = queue.next_eligible()
    if eligible is not None:
        console.print(f"  next: {escape(eligible.display_title)} ({eligible.id})")

    drafts = repo.list(DocumentStage.DRAFT)
    if drafts:
        console.print("\n[bold]Recent drafts[/bold]")
        for _, path in drafts[-10:]:
            entry = tracker.get(path.stem)
            score = entry.seo_score if entry is not None and entry.seo_score is not None else "-"
            console.print(f"  {path.stem}  score {score}")

    console.print(f"\nGeneration cost to date: ${tracker.total_cost():.2f}")


@app.command()
def promote(
    ctx: typer.Context,
    slug: Annotated[str, typer.Argument(help="Document slug.")],
    stage: Annotated[DocumentStage, typer.Argument(help="Target lifecycle stage.")],
) -> None:
    """Move a document to another lifecycle location."""
    config = _config(ctx)
    repo = DocumentRepository(config.paths.content)
    try:
        path = repo.promote(slug, stage)
    except PressroomError as exc:
        console.print(f"[red]Error:[/red] {escape(str(exc))}")
        raise typer.Exit(1) from exc
    console.print(f"[green]Moved {slug} to {path.parent.name}/[/green]")


# ── Queue commands ───────────────────────────────────────────────


@queue_app.command(name="list")
def queue_list(
    ctx: typer.Context,
    work_status: Annotated[
        WorkStatus | None,
        typer.Option("--status", "-s", help="Only show items with this status."),
    ] = None,
) -> None:
    """List work items in selection order."""
    config = _config(ctx)
    items = QueueStore(config.paths.queue_file).list(work_status)
    if not items:
        console.print("[yellow]Queue is empty.[/yellow]")
        return
    for item in items:
        _print_item(item)


@queue_app.command(name="requeue")
def queue_requeue(
    ctx: typer.Context,
    item_id: Annotated[str, typer.Argument(help="Work item id.")],
) -> None:
    """Reset a failed item back to queued."""
    config = _config(ctx)
    try:
        item = QueueStore(config.paths.queue_file).requeue(item_id)
    except KeyError as exc:
        console.print(f"[red]Error:[/red] No work item {item_id!r}")
        raise typer.Exit(1) from exc
    except PressroomError as exc:
        console.print(f"[red]Error:[/red] {escape(str(exc))}")
        raise typer.Exit(1) from exc
    console.print(f"[green]Requeued {item.id}[/green]")


@queue_app.command(name="skip")
def queue_skip(
    ctx: typer.Context,
    item_id: Annotated[str, typer.Argument(help="Work item id.")],
    reason: Annotated[str, typer.Option("--reason", help="Why the item is skipped.")] = "",
) -> None:
    """Mark a queued item as skipped."""
    config = _config(ctx)
    try:
        item = QueueStore(config.paths.queue_file).skip(item_id, reason)
    except KeyError as exc:
        console.print(f"[red]Error:[/red] No work item {item_id!r}")
        raise typer.Exit(1) from exc
    except PressroomError as exc:
        console.print(f"[red]Error:[/red] {escape(str(exc))}")
        raise typer.Exit(1) from exc
    console.print(f"[green]Skipped {item.id}[/green]")


if __name__ == "__main__":
    app()
