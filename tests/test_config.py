"""
Tests for configuration loading — lpass-bridge.yml discovery, validation
and environment overrides.
"""

import textwrap
from pathlib import Path

import pytest

from lpass_bridge.core.config.loader import (
    CONFIG_FILE,
    DEFAULT_SEARCH_PATHS,
    ConfigError,
    LastPassSettings,
    find_config_file,
    load_settings,
)
from lpass_bridge.core.data import ASKPASS_PATH


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Empty HOME and cwd, no LPB_* overrides."""
    home = tmp_path / "home"
    home.mkdir()
    work = tmp_path / "work"
    work.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.chdir(work)
    monkeypatch.delenv("LPB_CLI_PATH", raising=False)
    monkeypatch.delenv("LPB_NAMESPACE", raising=False)
    return work


def _write(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(textwrap.dedent(content))
    return path


# ── Settings model ──────────────────────────────────────────────────


class TestLastPassSettings:
    def test_defaults(self):
        settings = LastPassSettings(home="/home/me")
        assert settings.cli_path is None
        assert settings.search_paths == DEFAULT_SEARCH_PATHS
        assert settings.namespace == "lpass-bridge"
        assert settings.list_timeout == 5.0
        assert settings.sync_timeout == 5.0
        assert settings.command_timeout is None
        assert settings.askpass_path == str(ASKPASS_PATH)

    def test_environment(self):
        settings = LastPassSettings(home="/home/me", askpass_path="/opt/askpass.sh")
        assert settings.environment == {"HOME": "/home/me", "LPASS_ASKPASS": "/opt/askpass.sh"}

    def test_qualified_name(self):
        assert LastPassSettings(namespace="iTerm2").qualified_name("MyBank") == "iTerm2/MyBank"

    def test_namespace_slashes_stripped(self):
        assert LastPassSettings(namespace=" /iTerm2/ ").namespace == "iTerm2"

    def test_empty_namespace_rejected(self):
        with pytest.raises(ValueError):
            LastPassSettings(namespace="  /  ")

    def test_non_positive_timeout_rejected(self):
        with pytest.raises(ValueError):
            LastPassSettings(list_timeout=0)

    def test_null_timeout_means_no_deadline(self):
        assert LastPassSettings(sync_timeout=None).sync_timeout is None

    def test_search_paths_are_independent_copies(self):
        a = LastPassSettings()
        a.search_paths.append("/extra")
        assert "/extra" not in LastPassSettings().search_paths


# ── Discovery ───────────────────────────────────────────────────────


class TestFindConfigFile:
    def test_in_current_directory(self, isolated_env):
        config = _write(isolated_env / CONFIG_FILE, "namespace: x\n")
        assert find_config_file() == config.resolve()

    def test_walks_up(self, isolated_env):
        config = _write(isolated_env / CONFIG_FILE, "namespace: x\n")
        nested = isolated_env / "a" / "b"
        nested.mkdir(parents=True)
        assert find_config_file(nested) == config.resolve()

    def test_user_config_fallback(self, tmp_path):
        user_file = tmp_path / "home" / ".config" / "lpass-bridge" / "config.yml"
        user = _write(user_file, "namespace: u\n")
        assert find_config_file() == user

    def test_none(self):
        assert find_config_file() is None


# ── Loading ─────────────────────────────────────────────────────────


class TestLoadSettings:
    def test_defaults_without_file(self):
        settings = load_settings()
        assert settings.namespace == "lpass-bridge"

    def test_flat_file(self, tmp_path):
        config = _write(
            tmp_path / "cfg.yml",
            """\
            cli_path: /opt/bin/lpass
            namespace: iTerm2
            list_timeout: 2.5
            """,
        )
        settings = load_settings(config)
        assert settings.cli_path == "/opt/bin/lpass"
        assert settings.namespace == "iTerm2"
        assert settings.list_timeout == 2.5

    def test_nested_lastpass_section(self, tmp_path):
        config = _write(
            tmp_path / "cfg.yml",
            """\
            lastpass:
              namespace: nested
              command_timeout: 30
            """,
        )
        settings = load_settings(config)
        assert settings.namespace == "nested"
        assert settings.command_timeout == 30

    def test_discovered_file(self, isolated_env):
        _write(isolated_env / CONFIG_FILE, "namespace: found\n")
        assert load_settings().namespace == "found"

    def test_empty_file(self, tmp_path):
        config = _write(tmp_path / "cfg.yml", "")
        assert load_settings(config).namespace == "lpass-bridge"

    def test_missing_explicit_file(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            load_settings(tmp_path / "nope.yml")

    def test_invalid_yaml(self, tmp_path):
        config = _write(tmp_path / "cfg.yml", "namespace: [unclosed\n")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_settings(config)

    def test_not_a_mapping(self, tmp_path):
        config = _write(tmp_path / "cfg.yml", "- a\n- b\n")
        with pytest.raises(ConfigError, match="mapping"):
            load_settings(config)

    def test_lastpass_section_not_a_mapping(self, tmp_path):
        config = _write(tmp_path / "cfg.yml", "lastpass: nope\n")
        with pytest.raises(ConfigError, match="mapping"):
            load_settings(config)

    def test_invalid_values(self, tmp_path):
        config = _write(tmp_path / "cfg.yml", "sync_timeout: -1\n")
        with pytest.raises(ConfigError, match="Invalid lpass-bridge configuration"):
            load_settings(config)

    def test_env_overrides_file(self, tmp_path, monkeypatch):
        config = _write(tmp_path / "cfg.yml", "namespace: file\ncli_path: /file/lpass\n")
        monkeypatch.setenv("LPB_NAMESPACE", "env")
        monkeypatch.setenv("LPB_CLI_PATH", "/env/lpass")
        settings = load_settings(config)
        assert settings.namespace == "env"
        assert settings.cli_path == "/env/lpass"
