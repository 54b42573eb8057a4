"""Tests for DocumentRepository lifecycle locations."""

from __future__ import annotations

from pathlib import Path

import pytest

from pressroom.document import frontmatter
from pressroom.document.models import Document, DocumentStage
from pressroom.document.repository import DocumentRepository
from pressroom.errors import DocumentMissing, DuplicateDocument


def _make_doc(slug: str = "budget-basics", **header: object) -> Document:
    header = {"title": "Budget Basics", "slug": slug, **header}
    return Document(header=header, body="# Budget Basics")


def _write(repo: DocumentRepository, location: DocumentStage, slug: str, **header: object) -> Path:
    path = repo.path_for(slug, location)
    path.parent.mkdir(parents=True, exist_ok=True)
    doc = _make_doc(slug, **header)
    path.write_text(frontmatter.dumps(doc), encoding="utf-8")
    return path


class TestCreate:
    def test_writes_draft_and_forces_stage(self, tmp_path: Path):
        repo = DocumentRepository(tmp_path)
        path = repo.create(_make_doc(stage="published"))
        assert path == tmp_path / "drafts" / "budget-basics.md"
        assert repo.read("budget-basics").header["stage"] == "draft"

    def test_requires_slug(self, tmp_path: Path):
        repo = DocumentRepository(tmp_path)
        with pytest.raises(ValueError):
            repo.create(Document(header={"title": "No slug"}, body=""))

    def test_overwrites_existing_draft(self, tmp_path: Path):
        repo = DocumentRepository(tmp_path)
        repo.create(_make_doc(title="First"))
        repo.create(_make_doc(title="Second"))
        assert repo.read("budget-basics").title == "Second"

    def test_refuses_when_already_advanced(self, tmp_path: Path):
        repo = DocumentRepository(tmp_path)
        _write(repo, DocumentStage.APPROVED, "budget-basics", stage="approved")
        with pytest.raises(DuplicateDocument):
            repo.create(_make_doc())


class TestPromote:
    def test_moves_file_and_stamps_header(self, tmp_path: Path):
        repo = DocumentRepository(tmp_path)
        repo.create(_make_doc())
        target = repo.promote("budget-basics", DocumentStage.APPROVED, {"seo_score": 74})

        assert target == tmp_path / "approved" / "budget-basics.md"
        assert not (tmp_path / "drafts" / "budget-basics.md").exists()
        doc = repo.read("budget-basics")
        assert doc.header["stage"] == "approved"
        assert doc.header["seo_score"] == 74
        assert "updated_at" in doc.header
        assert doc.body == "# Budget Basics"

    def test_missing_document(self, tmp_path: Path):
        repo = DocumentRepository(tmp_path)
        with pytest.raises(DocumentMissing):
            repo.promote("ghost", DocumentStage.PUBLISHED)


class TestLocate:
    def test_returns_none_when_absent(self, tmp_path: Path):
        assert DocumentRepository(tmp_path).locate("nothing") is None

    def test_header_is_authoritative(self, tmp_path: Path):
        repo = DocumentRepository(tmp_path)
        _write(repo, DocumentStage.DRAFT, "moved", stage="approved")

        path = repo.locate("moved")
        assert path == tmp_path / "approved" / "moved.md"
        assert not (tmp_path / "drafts" / "moved.md").exists()
        assert repo.stage_of("moved") == DocumentStage.APPROVED

    def test_interrupted_move_keeps_most_advanced_copy(self, tmp_path: Path):
        repo = DocumentRepository(tmp_path)
        _write(repo, DocumentStage.APPROVED, "twice", stage="approved")
        _write(repo, DocumentStage.PUBLISHED, "twice", stage="published", cms_item_id="abc")

        path = repo.locate("twice")
        assert path == tmp_path / "published" / "twice.md"
        assert not (tmp_path / "approved" / "twice.md").exists()
        assert repo.read("twice").header["cms_item_id"] == "abc"

    def test_missing_stage_uses_location(self, tmp_path: Path):
        repo = DocumentRepository(tmp_path)
        _write(repo, DocumentStage.REVIEW, "parked")
        assert repo.stage_of("parked") == DocumentStage.REVIEW


class TestListing:
    def test_list_and_counts(self, tmp_path: Path):
        repo = DocumentRepository(tmp_path)
        repo.ensure_directories()
        repo.create(_make_doc("b-post"))
        repo.create(_make_doc("a-post"))
        _write(repo, DocumentStage.PUBLISHED, "live", stage="published")

        drafts = repo.list(DocumentStage.DRAFT)
        assert [p.stem for _, p in drafts] == ["a-post", "b-post"]
        assert repo.counts() == {
            DocumentStage.DRAFT: 2,
            DocumentStage.REVIEW: 0,
            DocumentStage.APPROVED: 0,
            DocumentStage.PUBLISHED: 1,
        }

    def test_update_header_in_place(self, tmp_path: Path):
        repo = DocumentRepository(tmp_path)
        repo.create(_make_doc())
        doc = repo.update_header("budget-basics", {"featured_image": {"url": "u"}})
        assert doc.header["featured_image"] == {"url": "u"}
        assert repo.locate("budget-basics") == tmp_path / "drafts" / "budget-basics.md"
