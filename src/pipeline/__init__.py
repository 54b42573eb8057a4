"""Stage orchestration for the content lifecycle.

  orchestrator -- runs one work item through generate, illustrate, gate,
                  publish and announce under the fixed failure policy
  bulk         -- replays publish + announce for staged items
  prompts      -- article and hero-image prompts
"""

from pressroom.pipeline.models import (
    STAGE_ORDER,
    STAGE_POLICY,
    FailurePolicy,
    RunResult,
    StageName,
    StepOutcome,
    StepStatus,
)
from pressroom.pipeline.orchestrator import Collaborators, Orchestrator

__all__ = [
    "STAGE_ORDER",
    "STAGE_POLICY",
    "Collaborators",
    "FailurePolicy",
    "Orchestrator",
    "RunResult",
    "StageName",
    "StepOutcome",
    "StepStatus",
]
