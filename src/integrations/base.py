"""Contracts for the external collaborators the pipeline calls.

Each collaborator is reached through one of these narrow interfaces so the
orchestrator never depends on a concrete provider. Implementations raise a
subclass of ``ProviderError`` on failure; a timeout counts as a failure.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from pydantic import BaseModel


class GenerationResult(BaseModel):
    """Text returned by a generation provider with its accounting."""

    text: str
    model: str = ""
    input_tokens: int = 0
    output_tokens: int = 0
    cost_usd: float = 0.0


class SearchResult(BaseModel):
    url: str
    title: str = ""
    excerpt: str = ""


class TextGenerator(ABC):
    """Base class for text-generation providers."""

    @abstractmethod
    def generate(
        self, prompt: str, max_output_tokens: int, *, system: str = ""
    ) -> GenerationResult:
        """Generate text for *prompt*. Raises GenerationError on failure."""


class Researcher(ABC):
    """Base class for research and fact-lookup providers.

    Both operations return empty results rather than raising.
    """

    @abstractmethod
    def search(self, phrase: str, limit: int = 5) -> list[SearchResult]:
        """Ranked results for *phrase*."""

    @abstractmethod
    def fetch_page(self, url: str) -> str:
        """Readable body text of *url*, or an empty string."""


class ImageProvider(ABC):
    """Base class for image generation."""

    @abstractmethod
    def render_image(self, prompt: str) -> str:
        """Render an image and return its URL. Raises ImageError on failure."""

    @abstractmethod
    def fetch(self, url: str, destination: Path) -> Path:
        """Download *url* to *destination*. Raises ImageError on failure."""


class Publisher(ABC):
    """Base class for the destination publishing system."""

    @abstractmethod
    def create_record(self, fields: dict[str, Any]) -> str:
        """Create a record and return its id."""

    @abstractmethod
    def update_record(self, record_id: str, fields: dict[str, Any]) -> None:
        """Replace the fields of an existing record."""

    @abstractmethod
    def publish_records(self, record_ids: list[str]) -> None:
        """Make the given records live."""

    @abstractmethod
    def build_fields(
        self, header: dict[str, Any], html_body: str, image_url: str | None = None
    ) -> dict[str, Any]:
        """Map a document header and rendered body to destination fields."""


class Announcer(ABC):
    """Base class for search-index submission."""

    @abstractmethod
    def submit(self, url: str) -> dict[str, Any]:
        """Announce *url*; returns the provider acknowledgement."""


class ReportSender(ABC):
    """Base class for report delivery."""

    @abstractmethod
    def send(self, recipient: str, subject: str, html: str) -> str:
        """Deliver a rendered summary and return the provider message id."""
