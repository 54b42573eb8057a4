"""Unified configuration loaded from .pressroom.toml, env vars, and CLI flags.

Loading order: defaults → TOML file → env vars → CLI flags.
"""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

from pydantic import BaseModel, Field

from pressroom.quality.models import DEFAULT_AUTHORITY_DOMAINS, DEFAULT_TEMPLATE_MIN_WORDS

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".pressroom.toml"
CONFIG_SEARCH_PATHS = [
    Path("."),
]
GLOBAL_CONFIG_PATH = Path.home() / ".config" / "pressroom" / "config.toml"


class PathsConfig(BaseModel):
    """[paths] section. Relative directories resolve against ``root``."""

    root: str = "."
    content_dir: str = "content"
    data_dir: str = "data"
    output_dir: str = "output"

    def _resolve(self, value: str) -> Path:
        path = Path(value).expanduser()
        return path if path.is_absolute() else Path(self.root).expanduser() / path

    @property
    def content(self) -> Path:
        return self._resolve(self.content_dir)

    @property
    def data(self) -> Path:
        return self._resolve(self.data_dir)

    @property
    def output(self) -> Path:
        return self._resolve(self.output_dir)

    @property
    def queue_file(self) -> Path:
        return self.data / "keyword-queue.json"

    @property
    def scheduler_log_file(self) -> Path:
        return self.data / "cron-log.json"

    @property
    def tracker_file(self) -> Path:
        return self.data / "blog-tracker.json"

    @property
    def html_dir(self) -> Path:
        return self.output / "html"

    @property
    def images_dir(self) -> Path:
        return self.output / "images"


class SiteConfig(BaseModel):
    """[site] section."""

    base_url: str = "https://example.com"
    blog_path: str = "/blog"
    brand: str = ""
    internal_domains: list[str] = Field(default_factory=list)

    def all_internal_domains(self) -> list[str]:
        """Configured internal domains plus the host of ``base_url``."""
        domains = list(self.internal_domains)
        host = urlparse(self.base_url).hostname
        if host:
            bare = host.removeprefix("www.")
            if bare not in domains:
                domains.append(bare)
        return domains

    def article_url(self, slug: str) -> str:
        path = "/" + self.blog_path.strip("/") if self.blog_path.strip("/") else ""
        return f"{self.base_url.rstrip('/')}{path}/{slug}"


class SeoConfig(BaseModel):
    """[seo] section -- the quality gate rubric."""

    title_max_length: int = 60
    description_min_length: int = 120
    description_max_length: int = 160
    slug_max_length: int = 60
    min_word_count: int = 800
    min_internal_links: int = 3
    min_score_to_publish: int = 70
    authority_domains: list[str] = Field(default_factory=lambda: list(DEFAULT_AUTHORITY_DOMAINS))
    guide_templates: list[str] = Field(default_factory=lambda: ["ultimate-guide", "how-to"])
    template_min_words: dict[str, int] = Field(
        default_factory=lambda: dict(DEFAULT_TEMPLATE_MIN_WORDS)
    )


class GenerationConfig(BaseModel):
    """[generation] section."""

    model: str = "sonnet"
    max_output_tokens: int = 8000
    timeout: int = 180
    research: bool = True
    research_results: int = 3
    default_template: str = "how-to"
    default_category: str = "general"
    author: str = ""
    cta_text: str = ""
    cta_url: str = ""


class ImagesConfig(BaseModel):
    """[images] section."""

    api_url: str = "https://fal.run/fal-ai/ideogram/v3"
    image_size: str = "landscape_16_9"
    api_key: str = ""
    timeout: int = 120

    @property
    def is_configured(self) -> bool:
        return bool(self.api_url and self.api_key)


DEFAULT_FIELD_MAPPING: dict[str, str] = {
    "title": "name",
    "slug": "slug",
    "body": "post-body",
    "summary": "post-summary",
    "thumbnail": "thumbnail",
}


class CmsConfig(BaseModel):
    """[cms] section -- the destination publishing system."""

    api_base: str = "https://api.webflow.com/v2"
    collection_id: str = ""
    api_key: str = ""
    timeout: int = 30
    rate_limit_floor: int = 2
    max_retries: int = 3
    bulk_delay_seconds: float = 2.0
    field_mapping: dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_FIELD_MAPPING))

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key and self.collection_id)


class IndexingConfig(BaseModel):
    """[indexing] section."""

    service_account_path: str = ""
    timeout: int = 30

    @property
    def is_configured(self) -> bool:
        return bool(self.service_account_path)


class SchedulerConfig(BaseModel):
    """[scheduler] section."""

    posts_per_day: int = 3
    publish_hours_utc: list[int] = Field(default_factory=lambda: [8, 12, 16])
    window_minutes: int = 5
    tick_interval_seconds: int = 300
    report_weekday: int = 6  # Monday == 0
    report_hour_utc: int = 18
    max_log_events: int = 500
    staging: bool = False


class ReportConfig(BaseModel):
    """[report] section."""

    recipient: str = ""
    sender: str = "reports@example.com"
    api_key: str = ""
    timeout: int = 30

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key and self.recipient)


class ResearchConfig(BaseModel):
    """[research] section."""

    api_key: str = ""
    timeout: int = 30

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)


class PressroomConfig(BaseModel):
    """Top-level configuration model for the whole pipeline."""

    paths: PathsConfig = Field(default_factory=PathsConfig)
    site: SiteConfig = Field(default_factory=SiteConfig)
    seo: SeoConfig = Field(default_factory=SeoConfig)
    generation: GenerationConfig = Field(default_factory=GenerationConfig)
    research: ResearchConfig = Field(default_factory=ResearchConfig)
    images: ImagesConfig = Field(default_factory=ImagesConfig)
    cms: CmsConfig = Field(default_factory=CmsConfig)
    indexing: IndexingConfig = Field(default_factory=IndexingConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    report: ReportConfig = Field(default_factory=ReportConfig)


def load_config(path: str | Path | None = None) -> PressroomConfig:
    """Load configuration from a TOML file.

    Search order:
    1. Explicit path (if provided)
    2. .pressroom.toml in CWD
    3. ~/.config/pressroom/config.toml

    Then overlay environment variables.
    """
    data: dict[str, object] = {}

    if path is not None:
        toml_path = Path(path)
        if toml_path.exists():
            data = _load_toml(toml_path)
        else:
            logger.warning("Config file not found: %s", toml_path)
    else:
        for search_dir in CONFIG_SEARCH_PATHS:
            candidate = search_dir / CONFIG_FILENAME
            if candidate.exists():
                data = _load_toml(candidate)
                logger.info("Loaded config from %s", candidate)
                break
        if not data and GLOBAL_CONFIG_PATH.exists():
            data = _load_toml(GLOBAL_CONFIG_PATH)
            logger.info("Loaded config from %s", GLOBAL_CONFIG_PATH)

    config = PressroomConfig.model_validate(data) if data else PressroomConfig()
    return _apply_env_vars(config)


def merge_cli_overrides(config: PressroomConfig, **cli_kwargs: object) -> PressroomConfig:
    """Overlay explicitly-set CLI flags onto the config.

    Only overrides values where the CLI flag was explicitly provided
    (i.e., not None).
    """
    data = config.model_dump()

    mapping: dict[str, tuple[str, str]] = {
        "root": ("paths", "root"),
        "model": ("generation", "model"),
        "staging": ("scheduler", "staging"),
        "min_score": ("seo", "min_score_to_publish"),
        "recipient": ("report", "recipient"),
        "interval": ("scheduler", "tick_interval_seconds"),
    }

    for key, value in cli_kwargs.items():
        if value is None:
            continue
        if key in mapping:
            section, field = mapping[key]
            data[section][field] = value

    return PressroomConfig.model_validate(data)


def _load_toml(path: Path) -> dict[str, object]:
    """Load a TOML file and return the data dict."""
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (tomllib.TOMLDecodeError, OSError) as exc:
        logger.warning("Failed to parse %s: %s", path, exc)
        return {}


def _truthy(raw: str) -> bool:
    return raw.strip().lower() in ("true", "1", "yes", "on")


def _apply_env_vars(config: PressroomConfig) -> PressroomConfig:
    """Apply environment variable overrides to config."""
    data: dict[str, Any] = config.model_dump()

    env_mapping: dict[str, tuple[str, str]] = {
        "PRESSROOM_ROOT": ("paths", "root"),
        "PRESSROOM_MODEL": ("generation", "model"),
        "CMS_API_KEY": ("cms", "api_key"),
        "CMS_COLLECTION_ID": ("cms", "collection_id"),
        "FIRECRAWL_API_KEY": ("research", "api_key"),
        "IMAGE_API_KEY": ("images", "api_key"),
        "GOOGLE_SERVICE_ACCOUNT_PATH": ("indexing", "service_account_path"),
        "RESEND_API_KEY": ("report", "api_key"),
        "REPORT_EMAIL": ("report", "recipient"),
    }

    for env_var, (section, field) in env_mapping.items():
        value = os.environ.get(env_var)
        if value is not None:
            data[section][field] = value

    staging_raw = os.environ.get("PRESSROOM_STAGING")
    if staging_raw is not None:
        data["scheduler"]["staging"] = _truthy(staging_raw)

    return PressroomConfig.model_validate(data)
