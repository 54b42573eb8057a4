"""Document data types.

A Document is a (header, body) pair. The header is kept as a plain
ordered mapping so that fields the pipeline does not interpret survive
every parse/serialize cycle untouched.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field


class DocumentStage(StrEnum):
    """Authoring stage recorded in the header ``stage`` field."""

    DRAFT = "draft"
    REVIEW = "review"
    APPROVED = "approved"
    PUBLISHED = "published"


# Ordering used to pick the authoritative copy when a document shows up
# in more than one location.
STAGE_RANK: dict[DocumentStage, int] = {
    DocumentStage.DRAFT: 0,
    DocumentStage.REVIEW: 1,
    DocumentStage.APPROVED: 2,
    DocumentStage.PUBLISHED: 3,
}

# Directory name for each lifecycle location under the content root.
LOCATION_DIRS: dict[DocumentStage, str] = {
    DocumentStage.DRAFT: "drafts",
    DocumentStage.REVIEW: "review",
    DocumentStage.APPROVED: "approved",
    DocumentStage.PUBLISHED: "published",
}


class Heading(BaseModel):
    """A markdown heading found in a body."""

    level: int
    text: str


class Link(BaseModel):
    """A markdown link found in a body."""

    text: str
    url: str
    is_internal: bool = False


class Image(BaseModel):
    """A markdown image found in a body."""

    alt: str
    url: str


class Document(BaseModel):
    """Header + body record moved between pipeline stages."""

    header: dict[str, Any] = Field(default_factory=dict)
    body: str = ""

    @property
    def slug(self) -> str:
        value = self.header.get("slug")
        return value if isinstance(value, str) else ""

    @property
    def title(self) -> str:
        value = self.header.get("title")
        return value if isinstance(value, str) else ""

    @property
    def stage(self) -> DocumentStage:
        """Header stage, defaulting to draft for unknown or missing values."""
        raw = self.header.get("stage")
        try:
            return DocumentStage(str(raw))
        except ValueError:
            return DocumentStage.DRAFT

    @property
    def primary_phrase(self) -> str:
        keywords = self.header.get("keywords")
        if isinstance(keywords, dict) and isinstance(keywords.get("primary"), str):
            return keywords["primary"]
        value = self.header.get("primary_keyword")
        return value if isinstance(value, str) else ""

    @property
    def secondary_phrases(self) -> list[str]:
        keywords = self.header.get("keywords")
        raw: Any = None
        if isinstance(keywords, dict):
            raw = keywords.get("secondary")
        if raw is None:
            raw = self.header.get("secondary_keywords")
        if isinstance(raw, list):
            return [str(v) for v in raw if v is not None and str(v).strip()]
        return []
