"""Tests for the pressroom CLI."""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from pressroom import __version__
from pressroom.cli import app
from pressroom.document import frontmatter
from pressroom.document.models import Document
from pressroom.errors import GenerationError
from pressroom.pipeline.orchestrator import Collaborators
from pressroom.queue.models import Verdict, WorkItem, WorkStatus
from pressroom.queue.store import QueueStore
from pressroom.scheduler.log import EventType, SchedulerLog

CONFIG_TOML = """\
[site]
base_url = "https://example.com"
brand = "Example"

[cms]
bulk_delay_seconds = 0

[report]
recipient = "owner@example.com"
"""


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def project(tmp_path: Path, collaborators: Collaborators) -> Iterator[Path]:
    """A project root with a config file and in-memory collaborators wired in."""
    (tmp_path / "pressroom.toml").write_text(CONFIG_TOML, encoding="utf-8")
    with patch("pressroom.cli.build_collaborators", return_value=collaborators):
        yield tmp_path


def _invoke(runner: CliRunner, root: Path, *args: str, input: str | None = None):
    return runner.invoke(
        app,
        ["--config", str(root / "pressroom.toml"), "--root", str(root), *args],
        input=input,
    )


def _queue(root: Path) -> QueueStore:
    return QueueStore(root / "data" / "keyword-queue.json")


def _seed(root: Path, *items: WorkItem) -> QueueStore:
    queue = _queue(root)
    for item in items:
        queue.add(item)
    return queue


def _item(item_id: str = "kw-001", keyword: str = "budget basics", **kwargs) -> WorkItem:
    return WorkItem(id=item_id, keyword=keyword, verdict=Verdict.APPROVE, **kwargs)


class TestBasics:
    def test_help(self, runner: CliRunner):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "run" in result.output
        assert "publish-approved" in result.output

    def test_version(self, runner: CliRunner):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output


class TestRun:
    def test_once_publishes(self, runner: CliRunner, project: Path):
        queue = _seed(project, _item())
        result = _invoke(runner, project, "run", "--once", "--no-staging")

        assert result.exit_code == 0, result.output
        assert "Done" in result.output
        assert queue.get("kw-001").status == WorkStatus.PUBLISHED
        assert (project / "content" / "published" / "budget-basics.md").exists()

    def test_once_staging(self, runner: CliRunner, project: Path):
        queue = _seed(project, _item())
        result = _invoke(runner, project, "run", "--once", "--staging")

        assert result.exit_code == 0, result.output
        assert queue.get("kw-001").status == WorkStatus.STAGED
        assert (project / "content" / "approved" / "budget-basics.md").exists()

    def test_once_failure_exits_nonzero(
        self, runner: CliRunner, project: Path, collaborators: Collaborators
    ):
        collaborators.generator.error = GenerationError("model timed out")
        queue = _seed(project, _item())
        result = _invoke(runner, project, "run", "--once")

        assert result.exit_code == 1
        assert "model timed out" in result.output
        assert queue.get("kw-001").status == WorkStatus.FAILED

    def test_once_with_empty_queue(self, runner: CliRunner, project: Path):
        result = _invoke(runner, project, "run", "--once")
        assert result.exit_code == 0
        assert "No eligible work items" in result.output

    def test_dry_run_changes_nothing(self, runner: CliRunner, project: Path):
        queue = _seed(project, _item())
        result = _invoke(runner, project, "run", "--dry-run", "--staging")

        assert result.exit_code == 0
        assert "Would run (staging)" in result.output
        assert queue.get("kw-001").status == WorkStatus.QUEUED

    def test_corrupt_queue_reported(self, runner: CliRunner, project: Path):
        path = project / "data" / "keyword-queue.json"
        path.parent.mkdir(parents=True)
        path.write_text("{oops", encoding="utf-8")
        result = _invoke(runner, project, "run", "--once")
        assert result.exit_code == 1
        assert "Cannot read queue file" in result.output


class TestResumeAndBulk:
    def test_run_from_publishes_staged_item(self, runner: CliRunner, project: Path):
        queue = _seed(project, _item())
        _invoke(runner, project, "run", "--once", "--staging")

        result = _invoke(runner, project, "run-from", "budget-basics", "--from", "publish")
        assert result.exit_code == 0, result.output
        assert queue.get("kw-001").status == WorkStatus.PUBLISHED

    def test_run_from_unknown_slug(self, runner: CliRunner, project: Path):
        result = _invoke(runner, project, "run-from", "nothing-here")
        assert result.exit_code == 1
        assert "No document found" in result.output

    def test_publish_approved_with_confirmation(self, runner: CliRunner, project: Path):
        queue = _seed(project, _item("a", "first topic"), _item("b", "second topic"))
        _invoke(runner, project, "run", "--once", "--staging")
        _invoke(runner, project, "run", "--once", "--staging")

        result = _invoke(runner, project, "publish-approved", input="y\n")

        assert result.exit_code == 0, result.output
        assert "Published 2/2" in result.output
        assert queue.counts()[WorkStatus.PUBLISHED] == 2

    def test_publish_approved_dry_run(self, runner: CliRunner, project: Path):
        queue = _seed(project, _item())
        _invoke(runner, project, "run", "--once", "--staging")

        result = _invoke(runner, project, "publish-approved", "--dry-run")
        assert result.exit_code == 0
        assert "1 staged item(s)" in result.output
        assert queue.get("kw-001").status == WorkStatus.STAGED

    def test_publish_approved_nothing_staged(self, runner: CliRunner, project: Path):
        result = _invoke(runner, project, "publish-approved", "--yes")
        assert result.exit_code == 0
        assert "No staged items" in result.output


class TestCheckScore:
    def test_single_file_with_update(self, runner: CliRunner, project: Path):
        path = project / "post.md"
        doc = Document(
            header={"title": "Title", "keywords": {"primary": "title"}},
            body="# Title\n\nOne sentence.",
        )
        path.write_text(frontmatter.dumps(doc), encoding="utf-8")

        result = _invoke(runner, project, "check-score", str(path), "--update")
        assert result.exit_code == 0, result.output
        assert "below threshold" in result.output
        assert isinstance(frontmatter.parse(path.read_text()).header["seo_score"], int)

    def test_requires_target(self, runner: CliRunner, project: Path):
        result = _invoke(runner, project, "check-score")
        assert result.exit_code == 1

    def test_all_documents(self, runner: CliRunner, project: Path):
        _seed(project, _item())
        _invoke(runner, project, "run", "--once", "--staging")

        result = _invoke(runner, project, "check-score", "--all", "--min-score", "0")
        assert result.exit_code == 0
        assert "budget-basics" in result.output
        assert "1 document(s)" in result.output


class TestReport:
    def test_preview(self, runner: CliRunner, project: Path):
        result = _invoke(runner, project, "report", "--preview")
        assert result.exit_code == 0
        assert "To: owner@example.com" in result.output
        assert "Published this week: 0" in result.output

    def test_send_records_event(
        self, runner: CliRunner, project: Path, collaborators: Collaborators
    ):
        result = _invoke(runner, project, "report", "--send")

        assert result.exit_code == 0, result.output
        recipient, subject, html = collaborators.reporter.sent[0]
        assert recipient == "owner@example.com"
        assert subject.startswith("Blog report")
        assert "Example weekly automation report" in html
        log = SchedulerLog(project / "data" / "cron-log.json")
        assert log.last(EventType.REPORTED) is not None

    def test_send_without_channel(
        self, runner: CliRunner, project: Path, collaborators: Collaborators
    ):
        collaborators.reporter = None
        result = _invoke(runner, project, "report", "--send")
        assert result.exit_code == 1
        assert "No report channel" in result.output


class TestQueueCommands:
    def test_list(self, runner: CliRunner, project: Path):
        _seed(project, _item("kw-002", "index funds", priority=1), _item())
        result = _invoke(runner, project, "queue", "list")
        assert result.exit_code == 0
        assert result.output.index("kw-002") < result.output.index("kw-001")

    def test_list_empty(self, runner: CliRunner, project: Path):
        result = _invoke(runner, project, "queue", "list", "--status", "failed")
        assert "Queue is empty" in result.output

    def test_requeue_and_skip(self, runner: CliRunner, project: Path):
        queue = _seed(project, _item(), _item("kw-002", "index funds"))
        queue.claim("kw-001")
        queue.update("kw-001", status=WorkStatus.FAILED, error="generate: boom")

        assert _invoke(runner, project, "queue", "requeue", "kw-001").exit_code == 0
        assert queue.get("kw-001").status == WorkStatus.QUEUED

        result = _invoke(runner, project, "queue", "skip", "kw-002", "--reason", "duplicate")
        assert result.exit_code == 0
        assert queue.get("kw-002").error == "duplicate"

    def test_requeue_of_queued_item_is_a_noop(self, runner: CliRunner, project: Path):
        _seed(project, _item())
        result = _invoke(runner, project, "queue", "requeue", "kw-001")
        assert result.exit_code == 0
        assert _queue(project).get("kw-001").status == WorkStatus.QUEUED

    def test_unknown_item(self, runner: CliRunner, project: Path):
        result = _invoke(runner, project, "queue", "skip", "missing")
        assert result.exit_code == 1
        assert "No work item" in result.output


class TestStatusAndPromote:
    def test_status(self, runner: CliRunner, project: Path):
        _seed(project, _item(), _item("kw-002", "index funds"))
        _invoke(runner, project, "run", "--once", "--staging")

        result = _invoke(runner, project, "status")
        assert result.exit_code == 0
        assert "Documents" in result.output
        assert "next: index funds (kw-002)" in result.output

    def test_promote(self, runner: CliRunner, project: Path):
        _seed(project, _item())
        _invoke(runner, project, "run", "--once", "--staging")

        result = _invoke(runner, project, "promote", "budget-basics", "review")
        assert result.exit_code == 0
        assert (project / "content" / "review" / "budget-basics.md").exists()

    def test_promote_missing(self, runner: CliRunner, project: Path):
        result = _invoke(runner, project, "promote", "ghost", "approved")
        assert result.exit_code == 1
