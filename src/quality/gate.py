"""Publish-readiness scoring.

``evaluate`` runs a fixed list of weighted checks over a document's header
and body and returns a QualityReport. Near misses earn partial credit; a
missing structural element always scores zero for its check. The function
is pure: no I/O, no clock, no randomness.
"""

from __future__ import annotations

from typing import Any

from pressroom.document import analysis
from pressroom.document.models import Document
from pressroom.quality.models import (
    SEVERITY_ORDER,
    Issue,
    QualityReport,
    QualityStats,
    Rubric,
    Severity,
)

FIRST_WORDS_WINDOW = 100
MAX_SENTENCES_PER_PARAGRAPH = 5
LONG_PARAGRAPH_RATIO = 0.3
SECONDARY_COVERAGE_RATIO = 0.5


class _Tally:
    """Running point total for one evaluation."""

    def __init__(self) -> None:
        self.total = 0
        self.earned = 0
        self.issues: list[Issue] = []
        self.passed: list[str] = []

    def check(self, points: int) -> None:
        self.total += points

    def award(self, points: int, note: str) -> None:
        self.earned += points
        self.passed.append(note)

    def penalize(
        self, severity: Severity, rule: str, message: str, lost: int, partial: int = 0
    ) -> None:
        self.earned += partial
        self.issues.append(Issue(severity=severity, rule=rule, message=message, points=lost))


def _text(header: dict[str, Any], key: str) -> str:
    value = header.get(key)
    return value.strip() if isinstance(value, str) else ""


def evaluate(document: Document, rubric: Rubric | None = None) -> QualityReport:
    """Score *document* against *rubric* (defaults when omitted)."""
    rubric = rubric or Rubric()
    header = document.header
    body = document.body
    tally = _Tally()

    headings = analysis.extract_headings(body)
    links = analysis.extract_links(body, rubric.internal_domains)
    images = analysis.extract_images(body)
    word_count = analysis.count_words(body)
    primary = document.primary_phrase.strip()
    secondaries = document.secondary_phrases
    template = _text(header, "template") or rubric.default_template
    h2_texts = [h.text.lower() for h in headings if h.level == 2]

    # Title
    tally.check(10)
    title = _text(header, "title")
    if not title:
        tally.penalize(Severity.ERROR, "title", "Title is missing", 10)
    elif len(title) > rubric.title_max_length:
        tally.penalize(
            Severity.WARNING,
            "title-length",
            f"Title is {len(title)} chars (max {rubric.title_max_length})",
            5,
            partial=5,
        )
    elif primary and primary.lower() not in title.lower():
        tally.penalize(
            Severity.WARNING,
            "title-keyword",
            f'Title does not contain primary phrase "{primary}"',
            5,
            partial=5,
        )
    else:
        tally.award(10, "Title: good length and contains primary phrase")

    # Meta description
    tally.check(10)
    description = _text(header, "meta_description") or _text(header, "description")
    if not description:
        tally.penalize(Severity.ERROR, "meta-description", "Meta description is missing", 10)
    elif len(description) < rubric.description_min_length:
        tally.penalize(
            Severity.WARNING,
            "meta-description-short",
            f"Meta description is {len(description)} chars (min {rubric.description_min_length})",
            5,
            partial=5,
        )
    elif len(description) > rubric.description_max_length:
        tally.penalize(
            Severity.WARNING,
            "meta-description-long",
            f"Meta description is {len(description)} chars (max {rubric.description_max_length})",
            3,
            partial=7,
        )
    else:
        tally.award(10, "Meta description: good length")

    # Slug
    tally.check(5)
    slug = _text(header, "slug")
    if not slug:
        tally.penalize(Severity.ERROR, "slug", "Slug is missing", 5)
    elif len(slug) > rubric.slug_max_length:
        tally.penalize(
            Severity.WARNING,
            "slug-length",
            f"Slug is {len(slug)} chars (max {rubric.slug_max_length})",
            3,
            partial=2,
        )
    elif any(ch.isupper() for ch in slug):
        tally.penalize(
            Severity.WARNING, "slug-case", "Slug contains uppercase characters", 2, partial=3
        )
    else:
        tally.award(5, "Slug: clean and short")

    # Level-1 heading
    tally.check(10)
    h1 = next((h for h in headings if h.level == 1), None)
    if h1 is None:
        tally.penalize(Severity.WARNING, "h1-missing", "No H1 heading found", 10)
    elif primary and primary.lower() not in h1.text.lower():
        tally.penalize(
            Severity.WARNING,
            "h1-keyword",
            f'H1 does not contain primary phrase "{primary}"',
            5,
            partial=5,
        )
    else:
        tally.award(10, "H1: contains primary phrase")

    # Primary phrase early in the body
    tally.check(10)
    if primary:
        opening = " ".join(body.split()[:FIRST_WORDS_WINDOW]).lower()
        if primary.lower() in opening:
            tally.award(10, f"Primary phrase in first {FIRST_WORDS_WINDOW} words")
        else:
            tally.penalize(
                Severity.WARNING,
                "keyword-intro",
                f"Primary phrase not found in first {FIRST_WORDS_WINDOW} words",
                10,
            )
    else:
        tally.penalize(Severity.INFO, "keyword-missing", "No primary phrase defined", 5, partial=5)

    # Secondary phrases across level-2 headings
    tally.check(10)
    if not h2_texts:
        tally.penalize(Severity.WARNING, "h2-missing", "No H2 headings found", 10)
    elif not secondaries:
        tally.penalize(
            Severity.INFO,
            "secondary-keywords",
            "No secondary phrases defined to check H2s against",
            5,
            partial=5,
        )
    else:
        matched = sum(1 for phrase in secondaries if any(phrase.lower() in h2 for h2 in h2_texts))
        ratio = matched / len(secondaries)
        if ratio >= SECONDARY_COVERAGE_RATIO:
            tally.award(10, f"H2s: {matched}/{len(secondaries)} secondary phrases in headings")
        elif ratio > 0:
            tally.penalize(
                Severity.INFO,
                "h2-keywords",
                f"Only {matched}/{len(secondaries)} secondary phrases in H2s",
                5,
                partial=5,
            )
        else:
            tally.penalize(
                Severity.WARNING, "h2-keywords", "No secondary phrases found in H2 headings", 10
            )

    # Word count
    tally.check(10)
    template_floor = rubric.min_words_for(template)
    if word_count < rubric.min_word_count:
        tally.penalize(
            Severity.ERROR,
            "word-count",
            f"Word count is {word_count} (min {rubric.min_word_count})",
            10,
        )
    elif word_count < template_floor:
        tally.penalize(
            Severity.WARNING,
            "word-count-template",
            f'Word count is {word_count} (template "{template}" recommends {template_floor}+)',
            5,
            partial=5,
        )
    else:
        tally.award(10, f"Word count: {word_count} words")

    # Internal links
    tally.check(10)
    internal = [link for link in links if link.is_internal]
    external = [link for link in links if not link.is_internal]
    if len(internal) < rubric.min_internal_links:
        tally.penalize(
            Severity.WARNING,
            "internal-links",
            f"Only {len(internal)} internal links (min {rubric.min_internal_links})",
            10,
        )
    else:
        tally.award(10, f"Internal links: {len(internal)} found")

    # Image alt text
    tally.check(5)
    if not images:
        tally.penalize(Severity.INFO, "no-images", "No images found in content", 3, partial=2)
    else:
        missing_alt = [image for image in images if not image.alt]
        if missing_alt:
            tally.penalize(
                Severity.WARNING,
                "image-alt",
                f"{len(missing_alt)} image(s) missing alt text",
                5,
            )
        else:
            tally.award(5, f"Images: {len(images)} with alt text")

    # Classification tag
    tally.check(5)
    schema_type = _text(header, "schema_type")
    if schema_type:
        tally.award(5, f"Schema type: {schema_type}")
    else:
        tally.penalize(Severity.INFO, "schema", "No schema_type defined in header", 5)

    # Question-answer section
    tally.check(5)
    has_faq = any(
        "faq" in h.text.lower() or "frequently asked" in h.text.lower() for h in headings
    )
    if has_faq:
        tally.award(5, "FAQ section present")
    elif template in rubric.guide_templates:
        tally.penalize(Severity.INFO, "faq", "No FAQ section (recommended for guides)", 5)
    else:
        tally.penalize(Severity.INFO, "faq", "No FAQ section", 2, partial=3)

    # Call to action
    tally.check(5)
    cta = header.get("cta")
    if isinstance(cta, dict) and _text(cta, "text") and _text(cta, "url"):
        tally.award(5, "CTA defined")
    else:
        tally.penalize(Severity.WARNING, "cta", "No CTA defined in header", 5)

    # Paragraph length distribution
    tally.check(5)
    paragraphs = analysis.split_paragraphs(body)
    long_paragraphs = [
        p for p in paragraphs if analysis.count_sentences(p) > MAX_SENTENCES_PER_PARAGRAPH
    ]
    if not paragraphs:
        tally.penalize(Severity.WARNING, "paragraphs", "No prose paragraphs found", 5)
    elif len(long_paragraphs) > len(paragraphs) * LONG_PARAGRAPH_RATIO:
        tally.penalize(
            Severity.INFO,
            "paragraphs",
            f"{len(long_paragraphs)}/{len(paragraphs)} paragraphs are too long "
            f"(>{MAX_SENTENCES_PER_PARAGRAPH} sentences)",
            5,
        )
    else:
        tally.award(5, "Paragraph length: good")

    # External authority links
    tally.check(5)
    authority = [
        link
        for link in external
        if any(_on_domain(link.url, domain) for domain in rubric.authority_domains)
    ]
    if authority:
        tally.award(5, f"External authority links: {len(authority)} found")
    elif external:
        tally.penalize(
            Severity.INFO,
            "authority-links",
            f"Has {len(external)} external link(s) but none from authority sources",
            3,
            partial=2,
        )
    else:
        tally.penalize(Severity.WARNING, "authority-links", "No external authority links", 5)

    score = round(100 * tally.earned / tally.total) if tally.total else 0
    return QualityReport(
        score=score,
        earned_points=tally.earned,
        total_points=tally.total,
        issues=sorted(tally.issues, key=lambda issue: SEVERITY_ORDER[issue.severity]),
        passed=tally.passed,
        stats=QualityStats(
            word_count=word_count,
            heading_count=len(headings),
            h2_count=len(h2_texts),
            internal_link_count=len(internal),
            external_link_count=len(external),
            image_count=len(images),
        ),
    )


def _on_domain(url: str, domain: str) -> bool:
    return analysis.is_internal_url(url, [domain]) and not url.startswith(("/", "#"))


def is_publish_ready(report: QualityReport, rubric: Rubric | None = None) -> bool:
    rubric = rubric or Rubric()
    return report.score >= rubric.min_score_to_publish


def format_report(report: QualityReport, slug: str = "") -> str:
    """Render a report as markdown for the terminal or a review note."""
    lines = [f"# Quality check: {slug or 'report'}", "", f"Score: **{report.score}/100**", ""]
    stats = report.stats
    lines.extend(
        [
            "## Stats",
            f"- Words: {stats.word_count}",
            f"- Headings: {stats.heading_count} ({stats.h2_count} H2s)",
            f"- Internal links: {stats.internal_link_count}",
            f"- External links: {stats.external_link_count}",
            f"- Images: {stats.image_count}",
        ]
    )

    sections = [
        (Severity.ERROR, "Errors (must fix)"),
        (Severity.WARNING, "Warnings (should fix)"),
        (Severity.INFO, "Suggestions"),
    ]
    if report.issues:
        lines.extend(["", "## Issues"])
        for severity, heading in sections:
            found = report.issues_by(severity)
            if found:
                lines.extend(["", f"### {heading}"])
                lines.extend(f"- {issue.message}" for issue in found)

    if report.passed:
        lines.extend(["", "## Passed"])
        lines.extend(f"- {note}" for note in report.passed)
    return "\n".join(lines)
