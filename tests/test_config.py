"""Tests for worktree.lib.config module."""

import pytest
from pathlib import Path

from worktree.lib.config import (
    CONFIG_FILE,
    WorkTreeConfig,
    find_config,
    load_config,
)
from worktree.lib.errors import ConfigError


class TestLoadConfig:
    """Test load_config function."""

    def test_none_returns_defaults(self):
        assert load_config(None) == WorkTreeConfig()

    def test_missing_file_returns_defaults(self, tmp_path):
        config = load_config(tmp_path / CONFIG_FILE)
        assert config.ignored_dirs == []
        assert config.strict_in_progress is False
        assert config.log_level == "WARNING"
        assert config.scope_separator == "; "

    def test_empty_file_returns_defaults(self, tmp_path):
        path = tmp_path / CONFIG_FILE
        path.write_text("")
        assert load_config(path) == WorkTreeConfig()

    def test_full_config(self, tmp_path):
        path = tmp_path / CONFIG_FILE
        path.write_text(
            "ignored_dirs: [vendor, third_party]\n"
            "strict_in_progress: true\n"
            "log_level: INFO\n"
            "scope_separator: ' / '\n"
        )
        config = load_config(path)
        assert config.ignored_dirs == ["vendor", "third_party"]
        assert config.strict_in_progress is True
        assert config.log_level == "INFO"
        assert config.scope_separator == " / "

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / CONFIG_FILE
        path.write_text("ignored_dirs: [vendor\n")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_config(path)

    @pytest.mark.parametrize("content", [
        "unknown_key: 1\n",
        "log_level: LOUD\n",
        "strict_in_progress: maybe\n",
        "ignored_dirs: [a/b]\n",
        "- just\n- a list\n",
    ])
    def test_schema_violations(self, tmp_path, content):
        path = tmp_path / CONFIG_FILE
        path.write_text(content)
        with pytest.raises(ConfigError, match="Invalid config"):
            load_config(path)


class TestFindConfig:
    """Test find_config function."""

    def test_finds_in_parent(self, tmp_path):
        (tmp_path / CONFIG_FILE).write_text("log_level: DEBUG\n")
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)
        assert find_config(nested) == (tmp_path / CONFIG_FILE).resolve()

    def test_nearest_wins(self, tmp_path):
        (tmp_path / CONFIG_FILE).write_text("")
        inner = tmp_path / "inner"
        inner.mkdir()
        (inner / CONFIG_FILE).write_text("")
        assert find_config(inner) == (inner / CONFIG_FILE).resolve()

    def test_none_when_absent(self, tmp_path, monkeypatch):
        monkeypatch.setattr(Path, "is_file", lambda self: False)
        assert find_config(tmp_path) is None
