"""Tests for configuration loading and overrides."""

from __future__ import annotations

from pathlib import Path

import pytest

from pressroom.config import (
    CmsConfig,
    PathsConfig,
    PressroomConfig,
    SiteConfig,
    load_config,
    merge_cli_overrides,
)

_ENV_VARS = [
    "PRESSROOM_ROOT",
    "PRESSROOM_MODEL",
    "PRESSROOM_STAGING",
    "CMS_API_KEY",
    "CMS_COLLECTION_ID",
    "REPORT_EMAIL",
    "FIRECRAWL_API_KEY",
    "IMAGE_API_KEY",
    "GOOGLE_SERVICE_ACCOUNT_PATH",
    "RESEND_API_KEY",
]


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr("pressroom.config.GLOBAL_CONFIG_PATH", tmp_path / "absent.toml")


class TestLoadConfig:
    def test_defaults_without_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.chdir(tmp_path)
        config = load_config()
        assert config.scheduler.posts_per_day == 3
        assert config.scheduler.publish_hours_utc == [8, 12, 16]
        assert config.seo.min_score_to_publish == 70
        assert config.scheduler.staging is False

    def test_explicit_file(self, tmp_path: Path):
        path = tmp_path / "custom.toml"
        path.write_text(
            '[scheduler]\nposts_per_day = 5\npublish_hours_utc = [6, 18]\n\n'
            '[seo]\nmin_score_to_publish = 80\n\n'
            '[cms.field_mapping]\ntitle = "name"\nslug = "slug"\nbody = "content"\n'
            'summary = "excerpt"\n',
            encoding="utf-8",
        )
        config = load_config(path)
        assert config.scheduler.posts_per_day == 5
        assert config.scheduler.publish_hours_utc == [6, 18]
        assert config.seo.min_score_to_publish == 80
        assert config.cms.field_mapping["body"] == "content"

    def test_file_in_working_directory(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        (tmp_path / ".pressroom.toml").write_text('[site]\nbrand = "Acme"\n', encoding="utf-8")
        monkeypatch.chdir(tmp_path)
        assert load_config().site.brand == "Acme"

    def test_missing_explicit_file_uses_defaults(self, tmp_path: Path):
        assert load_config(tmp_path / "nope.toml") == PressroomConfig()

    def test_invalid_toml_uses_defaults(self, tmp_path: Path):
        path = tmp_path / "bad.toml"
        path.write_text("[scheduler\nposts_per_day = ", encoding="utf-8")
        assert load_config(path).scheduler.posts_per_day == 3

    def test_env_overrides(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        path = tmp_path / "c.toml"
        path.write_text('[cms]\napi_key = "from-file"\n', encoding="utf-8")
        monkeypatch.setenv("CMS_API_KEY", "from-env")
        monkeypatch.setenv("CMS_COLLECTION_ID", "col-1")
        monkeypatch.setenv("PRESSROOM_STAGING", "yes")

        config = load_config(path)
        assert config.cms.api_key == "from-env"
        assert config.cms.is_configured
        assert config.scheduler.staging is True


class TestCliOverrides:
    def test_only_explicit_values_apply(self):
        config = PressroomConfig()
        merged = merge_cli_overrides(config, staging=None, min_score=55, root="/srv/blog")
        assert merged.scheduler.staging is False
        assert merged.seo.min_score_to_publish == 55
        assert merged.paths.root == "/srv/blog"

    def test_unknown_keys_ignored(self):
        merged = merge_cli_overrides(PressroomConfig(), color="blue")
        assert merged == PressroomConfig()


class TestSections:
    def test_paths_resolve_against_root(self, tmp_path: Path):
        paths = PathsConfig(root=str(tmp_path), output_dir="/var/out")
        assert paths.content == tmp_path / "content"
        assert paths.queue_file == tmp_path / "data" / "keyword-queue.json"
        assert paths.scheduler_log_file == tmp_path / "data" / "cron-log.json"
        assert paths.html_dir == Path("/var/out/html")

    def test_article_url(self):
        assert SiteConfig(base_url="https://ex.com/").article_url("a") == "https://ex.com/blog/a"
        assert SiteConfig(base_url="https://ex.com", blog_path="").article_url("a") == (
            "https://ex.com/a"
        )

    def test_internal_domains_include_base_host(self):
        site = SiteConfig(base_url="https://www.ex.com", internal_domains=["ex.com"])
        assert site.all_internal_domains() == ["ex.com"]

    def test_cms_needs_key_and_collection(self):
        assert not CmsConfig(api_key="k").is_configured
        assert CmsConfig(api_key="k", collection_id="c").is_configured
