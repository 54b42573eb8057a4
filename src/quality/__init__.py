"""Quality gate: deterministic publish-readiness scoring."""

from pressroom.quality.gate import evaluate, format_report, is_publish_ready
from pressroom.quality.models import Issue, QualityReport, QualityStats, Rubric, Severity

__all__ = [
    "Issue",
    "QualityReport",
    "QualityStats",
    "Rubric",
    "Severity",
    "evaluate",
    "format_report",
    "is_publish_ready",
]
