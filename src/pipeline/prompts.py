"""Prompts for article generation and hero images."""

from __future__ import annotations

from pressroom.integrations.base import SearchResult

ARTICLE_SYSTEM_PROMPT = """\
You are a senior editor writing search-optimised articles for a publication's
blog. You write in clear, concrete prose for readers who want to act on what
they read. You never invent statistics, quotes, or sources.

Output rules:
- Return markdown only, starting with a single level-1 heading (# Title).
- Use level-2 headings (##) for the main sections and ### for subsections.
- Keep paragraphs to at most four sentences.
- Include a "Frequently Asked Questions" section with 4-6 questions as ###
  headings when the format is a guide.
- Link to at least three related articles on the site using root-relative
  links such as [budget planning](/blog/budget-planning).
- Cite at least one authoritative external source with a normal markdown link.
- No preamble, no closing remarks about the article itself.
"""

TEMPLATE_GUIDANCE: dict[str, str] = {
    "how-to": (
        "Format: step-by-step how-to guide. Open with the outcome the reader "
        "gets, list prerequisites, then numbered steps with a section per step."
    ),
    "ultimate-guide": (
        "Format: comprehensive guide. Cover fundamentals, advanced techniques, "
        "common mistakes, and tools, with a summary table near the end."
    ),
    "listicle": (
        "Format: numbered list article. Each item gets its own ## heading, a "
        "short explanation, and one practical example."
    ),
    "comparison": (
        "Format: comparison. Include a markdown comparison table, a section per "
        "option, and a clear recommendation by reader situation."
    ),
    "review": (
        "Format: review. Cover what it is, who it is for, strengths, weaknesses, "
        "pricing, alternatives, and a verdict."
    ),
}

IMAGE_STYLE = (
    "Clean editorial illustration, soft natural light, muted palette with one "
    "accent colour, generous negative space. No text, no logos, no UI elements. -- "
)


def _format_research(notes: list[SearchResult]) -> str:
    if not notes:
        return ""
    lines = ["## Research notes", "", "Top-ranking pages for this topic (do not copy text):", ""]
    for index, note in enumerate(notes, start=1):
        lines.append(f"{index}. {note.title or note.url} ({note.url})")
        if note.excerpt:
            excerpt = " ".join(note.excerpt.split())[:800]
            lines.append(f"   {excerpt}")
    lines.append("")
    lines.append("Cover everything these pages cover, fill their gaps, and add original value.")
    return "\n".join(lines)


def build_article_prompt(
    *,
    title: str,
    keyword: str,
    template: str,
    category: str,
    secondary_phrases: list[str] | None = None,
    min_words: int = 1500,
    brand: str = "",
    research: list[SearchResult] | None = None,
) -> str:
    """User prompt for one article."""
    guidance = TEMPLATE_GUIDANCE.get(template, TEMPLATE_GUIDANCE["how-to"])
    parts = [
        f"Write an article titled: {title}",
        "",
        f"Primary keyword: {keyword}",
        f"Category: {category}",
        guidance,
        f"Length: at least {min_words} words.",
        f'Use the exact phrase "{keyword}" in the H1 and within the first 100 words.',
    ]
    if secondary_phrases:
        parts.append(
            "Work these secondary phrases into ## headings: " + ", ".join(secondary_phrases)
        )
    if brand:
        parts.append(f"The publication is {brand}; mention it naturally at most twice.")
    research_block = _format_research(research or [])
    if research_block:
        parts.extend(["", research_block])
    return "\n".join(parts)


def build_image_prompt(title: str, keyword: str) -> str:
    return f"{IMAGE_STYLE}Hero image for an article titled \"{title}\" about {keyword}."
