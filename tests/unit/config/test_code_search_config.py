"""Unit tests for configuration models and ConfigManager."""

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from code_search.config import (
    INDEXER_URL_ENV,
    Config,
    ConfigManager,
    IndexerConfig,
    SearchConfig,
)


class TestConfigModels:
    """Tests for configuration defaults and validation."""

    def test_defaults(self):
        config = Config()
        assert config.indexer.type == "tantivy"
        assert config.indexer.fuzziness == "AUTO"
        assert config.indexer.facets_ignore_language_filter is True
        assert config.indexing.max_file_size == 1048576
        assert config.search.context_lines == 2
        assert config.search.page_size == 10

    def test_index_dir_accepts_strings(self):
        assert IndexerConfig(index_dir="some/dir").index_dir == Path("some/dir")

    def test_url_trailing_slash_is_stripped(self):
        assert IndexerConfig(url="http://es:9200/").url == "http://es:9200"

    def test_unknown_backend_is_rejected(self):
        with pytest.raises(ValidationError):
            IndexerConfig(type="solr")

    @pytest.mark.parametrize("distance", [-1, 3])
    def test_edit_distance_range(self, distance):
        with pytest.raises(ValidationError):
            IndexerConfig(edit_distance=distance)

    def test_negative_context_lines_rejected(self):
        with pytest.raises(ValidationError):
            SearchConfig(context_lines=-1)


class TestConfigManager:
    """Tests for loading and saving configuration files."""

    def test_missing_file_gives_defaults(self, tmp_path):
        manager = ConfigManager(tmp_path / ".code-search" / "config.json")
        assert manager.load() == Config()

    def test_save_and_load(self, tmp_path):
        config_path = tmp_path / ".code-search" / "config.json"
        manager = ConfigManager(config_path)
        config = Config()
        config.indexer.type = "elasticsearch"
        config.search.context_lines = 4

        manager.save(config)
        loaded = ConfigManager(config_path).load()

        assert loaded.indexer.type == "elasticsearch"
        assert loaded.search.context_lines == 4
        assert json.loads(config_path.read_text())["indexer"]["type"] == "elasticsearch"

    def test_relative_index_dir_resolves_against_project_root(self, tmp_path):
        config_path = tmp_path / ".code-search" / "config.json"
        config_path.parent.mkdir()
        config_path.write_text(json.dumps({"indexer": {"index_dir": "data/idx"}}))

        config = ConfigManager(config_path).load()

        assert config.indexer.index_dir == (tmp_path / "data" / "idx").resolve()

    def test_invalid_file_raises_value_error(self, tmp_path):
        config_path = tmp_path / "config.json"
        config_path.write_text("{not json")

        with pytest.raises(ValueError, match="Failed to load config"):
            ConfigManager(config_path).load()

    def test_environment_overrides_url(self, tmp_path, monkeypatch):
        monkeypatch.setenv(INDEXER_URL_ENV, "http://override:9200/")

        config = ConfigManager(tmp_path / "config.json").load()

        assert config.indexer.url == "http://override:9200"

    def test_save_without_config_fails(self, tmp_path):
        with pytest.raises(ValueError):
            ConfigManager(tmp_path / "config.json").save()

    def test_create_default_config(self, tmp_path):
        manager = ConfigManager(tmp_path / ".code-search" / "config.json")
        config = manager.create_default_config()

        assert manager.config_path.exists()
        assert manager.get_config() is config

    def test_backtrack_finds_parent_config(self, tmp_path):
        ConfigManager(tmp_path / ".code-search" / "config.json").create_default_config()
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)

        manager = ConfigManager.create_with_backtrack(nested)

        assert manager.config_path == tmp_path / ".code-search" / "config.json"

    def test_backtrack_defaults_to_start_dir(self, tmp_path):
        manager = ConfigManager.create_with_backtrack(tmp_path)
        assert manager.config_path == tmp_path / ".code-search" / "config.json"
