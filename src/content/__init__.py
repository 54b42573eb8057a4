"""Content tracker: per-article metadata aggregated across stages."""

from pressroom.content.models import GenerationUsage, PerformanceMetrics, TrackerEntry
from pressroom.content.store import ContentTracker

__all__ = [
    "ContentTracker",
    "GenerationUsage",
    "PerformanceMetrics",
    "TrackerEntry",
]
