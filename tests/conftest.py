"""Shared fixtures: a config rooted in tmp_path and in-memory collaborators."""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import pytest

from pressroom.config import PathsConfig, PressroomConfig, SiteConfig
from pressroom.integrations.base import (
    Announcer,
    GenerationResult,
    ImageProvider,
    Publisher,
    ReportSender,
    TextGenerator,
)
from pressroom.pipeline.orchestrator import Collaborators, Orchestrator
from pressroom.queue.store import QueueStore

FIXED_NOW = datetime(2026, 3, 2, 8, 1, tzinfo=UTC)

ARTICLE = """\
Sure! Here is the article you asked for.

# Budget Basics for Families

Budget basics help every household see where the money goes each month.

## Build a monthly plan

List every source of income and every fixed bill. Then set a limit for
groceries, transport and fun.

## Start an emergency fund

Put aside a small amount every payday. See [saving tips](/blog/saving-tips)
and the [Investopedia guide](https://www.investopedia.com/terms/b/budget.asp).

## FAQ

### How much should I save?

Start with whatever you can and raise it every quarter.
"""


# ---------------------------------------------------------------------------
# Fake collaborators
# ---------------------------------------------------------------------------


class FakeGenerator(TextGenerator):
    def __init__(self, text: str = ARTICLE, error: Exception | None = None) -> None:
        self.text = text
        self.error = error
        self.prompts: list[str] = []

    def generate(
        self, prompt: str, max_output_tokens: int, *, system: str = ""
    ) -> GenerationResult:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return GenerationResult(
            text=self.text,
            model="test-model",
            input_tokens=1200,
            output_tokens=900,
            cost_usd=0.0171,
        )


class FakeImages(ImageProvider):
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.prompts: list[str] = []

    def render_image(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return "https://images.test/hero.png"

    def fetch(self, url: str, destination: Path) -> Path:
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_bytes(b"\x89PNG")
        return destination


class FakePublisher(Publisher):
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.created: list[dict[str, Any]] = []
        self.updated: list[tuple[str, dict[str, Any]]] = []
        self.published: list[str] = []

    def create_record(self, fields: dict[str, Any]) -> str:
        if self.error is not None:
            raise self.error
        self.created.append(fields)
        return f"rec-{len(self.created)}"

    def update_record(self, record_id: str, fields: dict[str, Any]) -> None:
        if self.error is not None:
            raise self.error
        self.updated.append((record_id, fields))

    def publish_records(self, record_ids: list[str]) -> None:
        self.published.extend(record_ids)

    def build_fields(
        self, header: dict[str, Any], html_body: str, image_url: str | None = None
    ) -> dict[str, Any]:
        fields: dict[str, Any] = {
            "name": header.get("title", ""),
            "slug": header.get("slug", ""),
            "post-body": html_body,
        }
        if image_url:
            fields["thumbnail"] = {"url": image_url}
        return fields


class FakeAnnouncer(Announcer):
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.urls: list[str] = []

    def submit(self, url: str) -> dict[str, Any]:
        if self.error is not None:
            raise self.error
        self.urls.append(url)
        return {"urlNotificationMetadata": {"url": url}}


class FakeSender(ReportSender):
    def __init__(self) -> None:
        self.sent: list[tuple[str, str, str]] = []

    def send(self, recipient: str, subject: str, html: str) -> str:
        self.sent.append((recipient, subject, html))
        return f"msg-{len(self.sent)}"


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def config(tmp_path: Path) -> PressroomConfig:
    return PressroomConfig(
        paths=PathsConfig(root=str(tmp_path)),
        site=SiteConfig(base_url="https://example.com", blog_path="/blog"),
    )


@pytest.fixture()
def collaborators() -> Collaborators:
    return Collaborators(
        generator=FakeGenerator(),
        images=FakeImages(),
        publisher=FakePublisher(),
        announcer=FakeAnnouncer(),
        reporter=FakeSender(),
    )


@pytest.fixture()
def orchestrator(config: PressroomConfig, collaborators: Collaborators) -> Orchestrator:
    orch = Orchestrator.from_config(config, collaborators=collaborators)
    orch.clock = lambda: FIXED_NOW
    return orch


@pytest.fixture()
def queue(orchestrator: Orchestrator) -> QueueStore:
    return orchestrator.queue
