"""Tests for pagefind_docs.config module."""

import os
from pathlib import Path

from pagefind_docs.client import DEFAULT_BASE_URL
from pagefind_docs.config import (
    DEFAULT_DB_PATH,
    ingest_settings_from_env,
    load_env_files,
    snapshot_config_from_env,
    snapshot_urls_from_env,
)
from pagefind_docs.snapshot import DEFAULT_SNAPSHOT_URLS


class TestSnapshotUrls:
    def test_default_only(self):
        assert snapshot_urls_from_env({}) == DEFAULT_SNAPSHOT_URLS

    def test_list_then_single_then_default(self):
        env = {
            "PAGEFIND_DOCS_SNAPSHOT_URLS": "https://a.test/x, https://b.test/x",
            "PAGEFIND_DOCS_SNAPSHOT_URL": "https://c.test/x",
        }
        assert snapshot_urls_from_env(env) == [
            "https://a.test/x",
            "https://b.test/x",
            "https://c.test/x",
            *DEFAULT_SNAPSHOT_URLS,
        ]

    def test_duplicates_removed(self):
        env = {
            "PAGEFIND_DOCS_SNAPSHOT_URLS": f"https://a.test/x,,{DEFAULT_SNAPSHOT_URLS[0]}",
            "PAGEFIND_DOCS_SNAPSHOT_URL": "https://a.test/x",
        }
        assert snapshot_urls_from_env(env) == ["https://a.test/x", *DEFAULT_SNAPSHOT_URLS]

    def test_blank_values_ignored(self):
        env = {"PAGEFIND_DOCS_SNAPSHOT_URLS": "  ", "PAGEFIND_DOCS_SNAPSHOT_URL": ""}
        assert snapshot_urls_from_env(env) == DEFAULT_SNAPSHOT_URLS


class TestSnapshotConfig:
    def test_bundled_dir(self):
        config = snapshot_config_from_env({"PAGEFIND_DOCS_BUNDLED_DIR": "/opt/plugin"})
        assert config.bundled_directory == Path("/opt/plugin")

    def test_no_bundled_dir(self):
        config = snapshot_config_from_env({"PAGEFIND_DOCS_BUNDLED_DIR": " "})
        assert config.bundled_directory is None
        assert config.source_urls == DEFAULT_SNAPSHOT_URLS


class TestIngestSettings:
    def test_defaults(self):
        settings = ingest_settings_from_env({})
        assert settings.db_path == DEFAULT_DB_PATH
        assert settings.base_url == DEFAULT_BASE_URL
        assert settings.concurrency == 15
        assert settings.progress_every == 100

    def test_overrides(self):
        settings = ingest_settings_from_env(
            {
                "PAGEFIND_DOCS_DB_PATH": "/srv/docs.parquet",
                "PAGEFIND_DOCS_BASE_URL": "https://other.test/pagefind",
                "PAGEFIND_DOCS_CONCURRENCY": "4",
            }
        )
        assert settings.db_path == Path("/srv/docs.parquet")
        assert settings.base_url == "https://other.test/pagefind"
        assert settings.concurrency == 4

    def test_invalid_concurrency_falls_back(self):
        assert ingest_settings_from_env({"PAGEFIND_DOCS_CONCURRENCY": "lots"}).concurrency == 15
        assert ingest_settings_from_env({"PAGEFIND_DOCS_CONCURRENCY": "0"}).concurrency == 15


class TestLoadEnvFiles:
    def test_prefers_working_directory(self, tmp_path):
        (tmp_path / ".env").write_text("X=1\n")
        config_env = tmp_path / "config.env"
        config_env.write_text("X=2\n")
        loaded = []

        result = load_env_files(
            cwd=tmp_path, config_env_file=config_env, load_env=loaded.append
        )

        assert result == tmp_path / ".env"
        assert loaded == [tmp_path / ".env"]

    def test_falls_back_to_config_dir(self, tmp_path):
        config_env = tmp_path / "config.env"
        config_env.write_text("X=2\n")
        loaded = []

        result = load_env_files(
            cwd=tmp_path / "empty", config_env_file=config_env, load_env=loaded.append
        )

        assert result == config_env
        assert loaded == [config_env]

    def test_nothing_to_load(self, tmp_path):
        loaded = []
        result = load_env_files(
            cwd=tmp_path, config_env_file=tmp_path / "missing.env", load_env=loaded.append
        )
        assert result is None
        assert loaded == []

    def test_loads_values_with_dotenv(self, tmp_path, monkeypatch):
        # Registers the variable so monkeypatch removes it afterwards.
        monkeypatch.setenv("PAGEFIND_DOCS_TEST_VALUE", "placeholder")
        monkeypatch.delenv("PAGEFIND_DOCS_TEST_VALUE")
        (tmp_path / ".env").write_text("PAGEFIND_DOCS_TEST_VALUE=from-dotenv\n")

        load_env_files(cwd=tmp_path, config_env_file=tmp_path / "missing.env")

        assert os.environ["PAGEFIND_DOCS_TEST_VALUE"] == "from-dotenv"
