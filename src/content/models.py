"""Tracker models -- cross-cutting metadata per article, keyed by slug.

The tracker aggregates what every stage learns about an article (score,
destination id, publish and index timestamps, generation cost, traffic
counters) so reporting can read one file instead of walking documents.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class GenerationUsage(BaseModel):
    """Token usage and cost of the generation call that wrote an article."""

    model: str = ""
    input_tokens: int = 0
    output_tokens: int = 0
    cost_usd: float = 0.0


class PerformanceMetrics(BaseModel):
    """Search performance counters filled in by reporting jobs."""

    clicks: int = 0
    impressions: int = 0
    ctr: float = 0.0
    position: float | None = None
    updated_at: datetime | None = None


class TrackerEntry(BaseModel):
    """Everything known about one article outside its document."""

    model_config = ConfigDict(extra="allow")

    slug: str
    title: str = ""
    keyword: str = ""
    category: str = ""
    stage: str = "draft"
    word_count: int = 0
    seo_score: int | None = None
    cms_item_id: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None
    published_at: datetime | None = None
    indexed_at: datetime | None = None
    generation: GenerationUsage | None = None
    performance: PerformanceMetrics = Field(default_factory=PerformanceMetrics)
