"""External collaborators and their wiring from configuration."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pressroom.integrations.base import (
    Announcer,
    GenerationResult,
    ImageProvider,
    Publisher,
    ReportSender,
    Researcher,
    SearchResult,
    TextGenerator,
)

if TYPE_CHECKING:
    from pressroom.config import PressroomConfig
    from pressroom.pipeline.orchestrator import Collaborators

logger = logging.getLogger(__name__)

__all__ = [
    "Announcer",
    "GenerationResult",
    "ImageProvider",
    "Publisher",
    "ReportSender",
    "Researcher",
    "SearchResult",
    "TextGenerator",
    "build_collaborators",
]


def build_collaborators(config: PressroomConfig) -> Collaborators:
    """Instantiate every collaborator the configuration enables.

    Unconfigured collaborators are left as None; the stages that need them
    report themselves skipped.
    """
    from pressroom.integrations.cms import CMSClient, RateLimiter
    from pressroom.integrations.email import ResendSender
    from pressroom.integrations.images import HttpImageProvider
    from pressroom.integrations.indexing import GoogleIndexer
    from pressroom.integrations.llm import AnthropicGenerator
    from pressroom.integrations.research import FirecrawlResearcher
    from pressroom.pipeline.orchestrator import Collaborators

    collaborators = Collaborators(
        generator=AnthropicGenerator(config.generation.model, timeout=config.generation.timeout),
    )
    if config.research.is_configured and config.generation.research:
        collaborators.researcher = FirecrawlResearcher(
            config.research.api_key, timeout=config.research.timeout
        )
    if config.images.is_configured:
        collaborators.images = HttpImageProvider(
            config.images.api_url,
            config.images.api_key,
            image_size=config.images.image_size,
            timeout=config.images.timeout,
        )
    if config.cms.is_configured:
        collaborators.publisher = CMSClient(
            config.cms.api_key,
            config.cms.collection_id,
            api_base=config.cms.api_base,
            timeout=config.cms.timeout,
            max_retries=config.cms.max_retries,
            field_mapping=dict(config.cms.field_mapping),
            limiter=RateLimiter(config.cms.rate_limit_floor),
        )
    if config.indexing.is_configured:
        collaborators.announcer = GoogleIndexer(
            config.indexing.service_account_path, timeout=config.indexing.timeout
        )
    if config.report.is_configured:
        collaborators.reporter = ResendSender(
            config.report.api_key, config.report.sender, timeout=config.report.timeout
        )

    enabled = [name for name, value in vars(collaborators).items() if value is not None]
    logger.debug("Collaborators enabled: %s", ", ".join(enabled) or "none")
    return collaborators
