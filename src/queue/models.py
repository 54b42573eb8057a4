"""Work item data model and status transition table."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from pressroom.errors import IllegalTransition


class WorkStatus(StrEnum):
    """Lifecycle status of a work item."""

    QUEUED = "queued"
    GENERATING = "generating"
    STAGED = "staged"
    PUBLISHED = "published"
    SKIPPED = "skipped"
    FAILED = "failed"


class Verdict(StrEnum):
    APPROVE = "approve"
    REJECT = "reject"


# Allowed status changes. ``failed -> queued`` is the operator requeue and
# ``failed -> published`` an operator resume of publish + announce; nothing
# ever moves back to ``queued`` on its own.
TRANSITIONS: dict[WorkStatus, frozenset[WorkStatus]] = {
    WorkStatus.QUEUED: frozenset({WorkStatus.GENERATING, WorkStatus.SKIPPED}),
    WorkStatus.GENERATING: frozenset(
        {WorkStatus.PUBLISHED, WorkStatus.STAGED, WorkStatus.FAILED}
    ),
    WorkStatus.STAGED: frozenset({WorkStatus.PUBLISHED, WorkStatus.FAILED}),
    WorkStatus.FAILED: frozenset({WorkStatus.QUEUED, WorkStatus.PUBLISHED}),
    WorkStatus.PUBLISHED: frozenset(),
    WorkStatus.SKIPPED: frozenset(),
}


def can_transition(current: WorkStatus, requested: WorkStatus) -> bool:
    return current == requested or requested in TRANSITIONS[current]


def check_transition(item_id: str, current: WorkStatus, requested: WorkStatus) -> None:
    """Raise IllegalTransition unless *current* may move to *requested*."""
    if not can_transition(current, requested):
        raise IllegalTransition(item_id, current.value, requested.value)


class WorkItem(BaseModel):
    """One backlog entry: a topic to be written, gated and published.

    Unknown fields in the queue file are kept and written back untouched.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str
    priority: int = 99
    created_at: datetime | None = None

    keyword: str
    title: str = ""
    template: str = ""
    category: str = ""

    validated: bool = Field(
        default=False, validation_alias=AliasChoices("validated", "ai_validated")
    )
    verdict: Verdict | None = Field(
        default=None, validation_alias=AliasChoices("verdict", "ai_validation_result")
    )
    validation_reason: str = Field(
        default="", validation_alias=AliasChoices("validation_reason", "ai_validation_reason")
    )

    status: WorkStatus = WorkStatus.QUEUED
    slug: str = ""
    started_at: datetime | None = None
    finished_at: datetime | None = None
    error: str = ""
    duration_seconds: float | None = None

    @field_validator("verdict", mode="before")
    @classmethod
    def _normalize_verdict(cls, value: object) -> object:
        if isinstance(value, str):
            value = value.strip().lower()
            return value or None
        return value

    @field_validator("priority", mode="before")
    @classmethod
    def _default_priority(cls, value: object) -> object:
        return 99 if value in (None, "") else value

    @property
    def is_eligible(self) -> bool:
        """Queued and approved: the only items the scheduler may pick."""
        return self.status == WorkStatus.QUEUED and self.verdict == Verdict.APPROVE

    @property
    def sort_key(self) -> tuple[int, str]:
        return (self.priority, self.id)

    @property
    def display_title(self) -> str:
        return self.title or self.keyword
