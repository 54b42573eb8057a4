"""Quality gate data types."""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from pressroom.config import PressroomConfig


class Severity(StrEnum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


SEVERITY_ORDER: dict[Severity, int] = {
    Severity.ERROR: 0,
    Severity.WARNING: 1,
    Severity.INFO: 2,
}


class Issue(BaseModel):
    """One failed or partially-met check."""

    severity: Severity
    rule: str
    message: str
    points: int  # points lost


class QualityStats(BaseModel):
    word_count: int = 0
    heading_count: int = 0
    h2_count: int = 0
    internal_link_count: int = 0
    external_link_count: int = 0
    image_count: int = 0


class QualityReport(BaseModel):
    """Result of one gate evaluation. Only ``score`` is persisted."""

    score: int
    earned_points: int
    total_points: int
    issues: list[Issue] = Field(default_factory=list)
    passed: list[str] = Field(default_factory=list)
    stats: QualityStats = Field(default_factory=QualityStats)

    def issues_by(self, severity: Severity) -> list[Issue]:
        return [issue for issue in self.issues if issue.severity == severity]


DEFAULT_AUTHORITY_DOMAINS = [
    "wikipedia.org",
    "investopedia.com",
    "forbes.com",
    "bloomberg.com",
    "reuters.com",
    "wsj.com",
    "nytimes.com",
    "harvard.edu",
    "nih.gov",
    "sec.gov",
]

DEFAULT_TEMPLATE_MIN_WORDS: dict[str, int] = {
    "how-to": 1500,
    "ultimate-guide": 3000,
    "listicle": 1200,
    "comparison": 1500,
    "review": 1200,
}


class Rubric(BaseModel):
    """Limits the gate scores against."""

    title_max_length: int = 60
    description_min_length: int = 120
    description_max_length: int = 160
    slug_max_length: int = 60
    min_word_count: int = 800
    min_internal_links: int = 3
    min_score_to_publish: int = 70
    default_template: str = "how-to"
    guide_templates: list[str] = Field(default_factory=lambda: ["ultimate-guide", "how-to"])
    template_min_words: dict[str, int] = Field(
        default_factory=lambda: dict(DEFAULT_TEMPLATE_MIN_WORDS)
    )
    authority_domains: list[str] = Field(default_factory=lambda: list(DEFAULT_AUTHORITY_DOMAINS))
    internal_domains: list[str] = Field(default_factory=list)

    @classmethod
    def from_config(cls, config: PressroomConfig) -> Rubric:
        seo = config.seo
        return cls(
            title_max_length=seo.title_max_length,
            description_min_length=seo.description_min_length,
            description_max_length=seo.description_max_length,
            slug_max_length=seo.slug_max_length,
            min_word_count=seo.min_word_count,
            min_internal_links=seo.min_internal_links,
            min_score_to_publish=seo.min_score_to_publish,
            default_template=config.generation.default_template,
            guide_templates=list(seo.guide_templates),
            template_min_words=dict(seo.template_min_words),
            authority_domains=list(seo.authority_domains),
            internal_domains=config.site.all_internal_domains(),
        )

    def min_words_for(self, template: str) -> int:
        if template in self.template_min_words:
            return self.template_min_words[template]
        return self.template_min_words.get(self.default_template, self.min_word_count)
