"""Lifecycle locations for documents on disk.

Each document lives at ``<content_dir>/<location>/<slug>.md`` where the
location directory is derived from the header ``stage`` field. The header
is authoritative: when a file sits in a directory that disagrees with its
header, or when an interrupted move left copies in two directories, the
repository moves the most advanced copy to its derived location and drops
the stale ones the next time the slug is looked up.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pressroom.document import frontmatter
from pressroom.document.models import LOCATION_DIRS, STAGE_RANK, Document, DocumentStage
from pressroom.errors import DocumentMissing, DuplicateDocument
from pressroom.shared.fileio import atomic_write_text

logger = logging.getLogger(__name__)

DOCUMENT_SUFFIX = ".md"

# Alias to avoid shadowing by DocumentRepository.list method
_list = list


class DocumentRepository:
    """Reads, writes and moves documents between lifecycle directories."""

    def __init__(self, content_dir: Path) -> None:
        self.content_dir = content_dir

    # ── Paths ────────────────────────────────────────────────────

    def directory(self, stage: DocumentStage) -> Path:
        return self.content_dir / LOCATION_DIRS[stage]

    def path_for(self, slug: str, stage: DocumentStage) -> Path:
        return self.directory(stage) / f"{slug}{DOCUMENT_SUFFIX}"

    def ensure_directories(self) -> None:
        for stage in DocumentStage:
            self.directory(stage).mkdir(parents=True, exist_ok=True)

    # ── Private helpers ──────────────────────────────────────────

    def _copies(self, slug: str) -> _list[tuple[DocumentStage, Path]]:
        return [
            (stage, self.path_for(slug, stage))
            for stage in DocumentStage
            if self.path_for(slug, stage).is_file()
        ]

    @staticmethod
    def _effective_stage(document: Document, location: DocumentStage) -> DocumentStage:
        """Header stage when declared, else the directory the file sits in."""
        raw = document.header.get("stage")
        try:
            return DocumentStage(str(raw)) if raw is not None else location
        except ValueError:
            return location

    def _write(self, path: Path, document: Document) -> None:
        atomic_write_text(path, frontmatter.serialize(document.header, document.body))

    # ── Lookup ───────────────────────────────────────────────────

    def locate(self, slug: str) -> Path | None:
        """Return the single authoritative path for *slug*, reconciling strays."""
        copies = self._copies(slug)
        if not copies:
            return None

        ranked: _list[tuple[int, int, DocumentStage, Path, Document]] = []
        for location, path in copies:
            document = self.load_path(path)
            stage = self._effective_stage(document, location)
            ranked.append((STAGE_RANK[stage], STAGE_RANK[location], stage, path, document))
        ranked.sort(key=lambda entry: (entry[0], entry[1]), reverse=True)
        _, _, stage, path, document = ranked[0]

        target = self.path_for(slug, stage)
        if path != target:
            logger.warning(
                "Document %s found in %s but its header says %s, moving it",
                slug,
                path.parent.name,
                stage.value,
            )
            self._write(target, document)
        for _, _, _, stale, _ in ranked:
            if stale != target and stale.exists():
                if stale != path:
                    logger.warning("Dropping stale copy of %s at %s", slug, stale)
                stale.unlink()
        return target

    def exists(self, slug: str) -> bool:
        return bool(self._copies(slug))

    def stage_of(self, slug: str) -> DocumentStage | None:
        path = self.locate(slug)
        if path is None:
            return None
        return _stage_for_dir(path)

    def load_path(self, path: Path) -> Document:
        return frontmatter.parse(path.read_text(encoding="utf-8"))

    def read(self, slug: str) -> Document:
        """Load the document for *slug*.

        Raises DocumentMissing if no lifecycle location holds it.
        """
        path = self.locate(slug)
        if path is None:
            raise DocumentMissing(slug)
        return self.load_path(path)

    def list(self, stage: DocumentStage | None = None) -> _list[tuple[DocumentStage, Path]]:
        """Document files per location, sorted by slug within each location."""
        stages = [stage] if stage is not None else _list(DocumentStage)
        found: _list[tuple[DocumentStage, Path]] = []
        for current in stages:
            directory = self.directory(current)
            if directory.is_dir():
                found.extend((current, p) for p in sorted(directory.glob(f"*{DOCUMENT_SUFFIX}")))
        return found

    def counts(self) -> dict[DocumentStage, int]:
        return {stage: len(self.list(stage)) for stage in DocumentStage}

    # ── Write operations ─────────────────────────────────────────

    def create(self, document: Document) -> Path:
        """Write a new draft.

        Regenerating over an existing draft is allowed; a copy that already
        moved past drafts raises DuplicateDocument.
        """
        slug = document.slug
        if not slug:
            raise ValueError("Document header has no slug")
        advanced = [loc for loc, _ in self._copies(slug) if loc != DocumentStage.DRAFT]
        if advanced:
            raise DuplicateDocument(
                f"Document {slug!r} already exists in {LOCATION_DIRS[advanced[0]]}"
            )
        header = dict(document.header)
        header["stage"] = DocumentStage.DRAFT.value
        path = self.path_for(slug, DocumentStage.DRAFT)
        self._write(path, Document(header=header, body=document.body))
        logger.info("Wrote draft %s", path)
        return path

    def update_header(self, slug: str, partial: dict[str, Any]) -> Document:
        """Merge *partial* into the header of the document, in place."""
        path = self.locate(slug)
        if path is None:
            raise DocumentMissing(slug)
        text = frontmatter.update_header(path.read_text(encoding="utf-8"), partial)
        atomic_write_text(path, text)
        return frontmatter.parse(text)

    def promote(
        self,
        slug: str,
        stage: DocumentStage,
        header: dict[str, Any] | None = None,
    ) -> Path:
        """Move a document to *stage*, stamping the header first.

        The new copy is written before the old one is removed so an
        interruption leaves a duplicate that ``locate`` reconciles, never a
        lost document.
        """
        source = self.locate(slug)
        if source is None:
            raise DocumentMissing(slug)
        document = self.load_path(source)
        patch: dict[str, Any] = {
            "stage": stage.value,
            "updated_at": datetime.now(tz=UTC).isoformat(),
        }
        patch.update(header or {})
        moved = Document(header=frontmatter.deep_merge(document.header, patch), body=document.body)

        target = self.path_for(slug, stage)
        self._write(target, moved)
        if source != target:
            source.unlink(missing_ok=True)
            logger.info("Moved %s from %s to %s", slug, source.parent.name, target.parent.name)
        return target


def _stage_for_dir(path: Path) -> DocumentStage:
    for stage, dirname in LOCATION_DIRS.items():
        if path.parent.name == dirname:
            return stage
    return DocumentStage.DRAFT
