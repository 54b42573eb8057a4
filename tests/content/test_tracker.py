"""Tests for ContentTracker -- per-article metadata keyed by slug."""

from __future__ import annotations

import json
from pathlib import Path

from pressroom.content.models import GenerationUsage
from pressroom.content.store import ContentTracker


class TestUpsert:
    def test_creates_entry(self, tmp_path: Path):
        tracker = ContentTracker(tmp_path / "tracker.json")
        entry = tracker.upsert("budget-basics", title="Budget Basics", word_count=1800)

        assert entry.slug == "budget-basics"
        assert entry.created_at is not None
        assert tracker.exists("budget-basics")

    def test_merges_fields(self, tmp_path: Path):
        tracker = ContentTracker(tmp_path / "tracker.json")
        tracker.upsert("a", title="A", stage="draft")
        created = tracker.get("a").created_at
        tracker.upsert("a", stage="approved", seo_score=81)

        entry = tracker.get("a")
        assert entry.title == "A"
        assert entry.stage == "approved"
        assert entry.seo_score == 81
        assert entry.created_at == created

    def test_persists_to_disk(self, tmp_path: Path):
        path = tmp_path / "tracker.json"
        ContentTracker(path).upsert("a", generation=GenerationUsage(model="m", cost_usd=0.25))

        raw = json.loads(path.read_text(encoding="utf-8"))
        assert raw["posts"]["a"]["generation"]["cost_usd"] == 0.25
        assert ContentTracker(path).get("a").generation.model == "m"


class TestRead:
    def test_list_filters_and_sorts(self, tmp_path: Path):
        tracker = ContentTracker(tmp_path / "tracker.json")
        tracker.upsert("b", stage="published")
        tracker.upsert("a", stage="published")
        tracker.upsert("c", stage="draft")

        assert [e.slug for e in tracker.list()] == ["a", "b", "c"]
        assert [e.slug for e in tracker.list("published")] == ["a", "b"]

    def test_total_cost(self, tmp_path: Path):
        tracker = ContentTracker(tmp_path / "tracker.json")
        tracker.upsert("a", generation=GenerationUsage(cost_usd=0.1234))
        tracker.upsert("b", generation=GenerationUsage(cost_usd=0.2))
        tracker.upsert("c")
        assert tracker.total_cost() == 0.3234

    def test_remove(self, tmp_path: Path):
        tracker = ContentTracker(tmp_path / "tracker.json")
        tracker.upsert("a")
        assert tracker.remove("a") is True
        assert tracker.remove("a") is False
        assert tracker.get("a") is None


class TestCorruption:
    def test_corrupt_file_starts_fresh(self, tmp_path: Path):
        path = tmp_path / "tracker.json"
        path.write_text("not json", encoding="utf-8")
        tracker = ContentTracker(path)
        assert tracker.list() == []
        tracker.upsert("a")
        assert ContentTracker(path).exists("a")
