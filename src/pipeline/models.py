"""Stage names, the fixed failure policy, and run results."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field

from pressroom.queue.models import WorkStatus


class StageName(StrEnum):
    GENERATE = "generate"
    ILLUSTRATE = "illustrate"
    GATE = "gate"
    PUBLISH = "publish"
    ANNOUNCE = "announce"


STAGE_ORDER: list[StageName] = [
    StageName.GENERATE,
    StageName.ILLUSTRATE,
    StageName.GATE,
    StageName.PUBLISH,
    StageName.ANNOUNCE,
]


class FailurePolicy(StrEnum):
    FATAL = "fatal"  # abort the run, mark the item failed
    CONTINUE = "continue"  # log a warning, carry on without the stage's effect


# Fixed per stage; not configurable per run.
STAGE_POLICY: dict[StageName, FailurePolicy] = {
    StageName.GENERATE: FailurePolicy.FATAL,
    StageName.ILLUSTRATE: FailurePolicy.CONTINUE,
    StageName.GATE: FailurePolicy.CONTINUE,
    StageName.PUBLISH: FailurePolicy.FATAL,
    StageName.ANNOUNCE: FailurePolicy.CONTINUE,
}


class StepStatus(StrEnum):
    OK = "ok"
    SKIPPED = "skipped"
    WARNED = "warned"  # non-fatal failure
    FAILED = "failed"  # fatal failure


class StepOutcome(BaseModel):
    """What one stage did during a run."""

    stage: StageName
    status: StepStatus
    detail: str = ""
    duration_seconds: float = 0.0


class RunResult(BaseModel):
    """Summary of one orchestrator run against one work item."""

    item_id: str
    keyword: str = ""
    slug: str = ""
    status: WorkStatus
    steps: list[StepOutcome] = Field(default_factory=list)
    error: str = ""
    started_at: datetime | None = None
    finished_at: datetime | None = None
    duration_seconds: float = 0.0
    score: int | None = None

    @property
    def ok(self) -> bool:
        return self.status in (WorkStatus.PUBLISHED, WorkStatus.STAGED)

    def step(self, stage: StageName) -> StepOutcome | None:
        for outcome in self.steps:
            if outcome.stage == stage:
                return outcome
        return None
