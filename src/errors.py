"""Exception hierarchy shared across the pipeline.

Three families matter to callers:

* ``InvariantViolation`` -- persisted state contradicts itself (an item
  selected twice, a document missing where the queue says it exists).
  Always fatal and surfaced with context.
* ``ProviderError`` -- an external collaborator failed or timed out.
  The orchestrator decides per stage whether this aborts a run.
* ``StageSkipped`` -- a stage had nothing to do; not a failure.
"""

from __future__ import annotations

MAX_ERROR_LENGTH = 200


def bounded_message(exc: BaseException | str, limit: int = MAX_ERROR_LENGTH) -> str:
    """Render an exception as a single message no longer than ``limit``."""
    text = str(exc) if not isinstance(exc, str) else exc
    if not text and isinstance(exc, BaseException):
        text = type(exc).__name__
    return text[:limit]


class PressroomError(Exception):
    """Base class for all pressroom errors."""


class InvariantViolation(PressroomError):
    """Persisted state broke the single-writer assumptions."""


class IllegalTransition(InvariantViolation):
    """A work item status change is not permitted by the transition table."""

    def __init__(self, item_id: str, current: str, requested: str) -> None:
        self.item_id = item_id
        self.current = current
        self.requested = requested
        super().__init__(
            f"Work item {item_id!r} cannot move from {current!r} to {requested!r}"
        )


class DocumentMissing(InvariantViolation):
    """No lifecycle location holds a document that should exist."""

    def __init__(self, slug: str) -> None:
        self.slug = slug
        super().__init__(f"No document found for slug {slug!r} in any lifecycle location")


class DuplicateDocument(InvariantViolation):
    """A document would be created over content that already moved on."""


class QueueStoreError(PressroomError):
    """The queue file exists but cannot be read."""


class ProviderError(PressroomError):
    """An external collaborator call failed or timed out."""


class GenerationError(ProviderError):
    """Text generation failed."""


class ImageError(ProviderError):
    """Image rendering or download failed."""


class PublisherError(ProviderError):
    """The destination publishing system rejected a request."""


class RateLimitError(PublisherError):
    """The destination kept rate-limiting after all retries."""


class IndexingError(ProviderError):
    """Search-index submission failed."""


class ReportDeliveryError(ProviderError):
    """The reporting channel could not deliver a summary."""


class StageSkipped(PressroomError):
    """A stage had nothing to do (for example, its collaborator is not configured)."""
