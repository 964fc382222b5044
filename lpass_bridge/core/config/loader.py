"""
Configuration loader — reads lpass-bridge.yml into LastPassSettings.

Lookup order:
    explicit --config path
    lpass-bridge.yml in the current directory or any parent
    ~/.config/lpass-bridge/config.yml
    built-in defaults

Environment variables override file values:
    LPB_CLI_PATH   → cli_path
    LPB_NAMESPACE  → namespace
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, field_validator

from lpass_bridge.core.data import ASKPASS_PATH

logger = logging.getLogger(__name__)

# Default config filename
CONFIG_FILE = "lpass-bridge.yml"
USER_CONFIG_FILE = Path("~/.config/lpass-bridge/config.yml")

DEFAULT_SEARCH_PATHS = [
    "/opt/local/bin/lpass",
    "/opt/homebrew/bin/lpass",
    "/usr/local/bin/lpass",
    "/usr/bin/lpass",
]

_ENV_OVERRIDES = {
    "LPB_CLI_PATH": "cli_path",
    "LPB_NAMESPACE": "namespace",
}


class ConfigError(Exception):
    """Raised when lpass-bridge configuration is invalid or unreadable."""


class LastPassSettings(BaseModel):
    """Everything the LastPass recipes read from configuration.

    Read-only for the duration of a run; shared by all invocations.
    """

    cli_path: str | None = None
    search_paths: list[str] = Field(default_factory=lambda: list(DEFAULT_SEARCH_PATHS))
    namespace: str = "lpass-bridge"
    home: str = Field(default_factory=lambda: str(Path.home()))
    askpass_path: str = Field(default_factory=lambda: str(ASKPASS_PATH))
    list_timeout: float | None = 5.0
    sync_timeout: float | None = 5.0
    command_timeout: float | None = None
    login_marker: str = "lpass login"

    @field_validator("namespace")
    @classmethod
    def _namespace_not_empty(cls, value: str) -> str:
        value = value.strip().strip("/")
        if not value:
            raise ValueError("namespace must not be empty")
        return value

    @field_validator("list_timeout", "sync_timeout", "command_timeout")
    @classmethod
    def _positive_timeout(cls, value: float | None) -> float | None:
        if value is not None and value <= 0:
            raise ValueError("timeouts must be positive (or null for no deadline)")
        return value

    @property
    def environment(self) -> dict[str, str]:
        """Fixed environment every lpass invocation gets."""
        return {"HOME": self.home, "LPASS_ASKPASS": self.askpass_path}

    def qualified_name(self, account_name: str) -> str:
        """``<namespace>/<name>`` as lpass expects for add / show --id."""
        return f"{self.namespace}/{account_name}"


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Search for lpass-bridge.yml starting from the given directory, walking up.

    Falls back to the per-user config file if it exists.

    Args:
        start_dir: Directory to start searching from (default: cwd).

    Returns:
        Path to the config file, or None if not found.
    """
    current = (start_dir or Path.cwd()).resolve()

    for _ in range(20):  # safety limit
        candidate = current / CONFIG_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break  # filesystem root
        current = parent

    user_file = USER_CONFIG_FILE.expanduser()
    if user_file.is_file():
        return user_file
    return None


def load_settings(path: Path | None = None) -> LastPassSettings:
    """Load and validate settings.

    Args:
        path: Explicit config path. If None, searches upward and then the
            per-user location; with no file at all, defaults are used.

    Returns:
        Validated LastPassSettings.

    Raises:
        ConfigError: If an explicit file is missing, or any file is invalid.
    """
    data: dict = {}

    if path is not None and not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    if path is None:
        path = find_config_file()

    if path is not None:
        data = _read_yaml(path)
    else:
        logger.debug("No %s found, using defaults", CONFIG_FILE)

    for env_key, field_name in _ENV_OVERRIDES.items():
        value = os.environ.get(env_key)
        if value:
            data[field_name] = value

    try:
        settings = LastPassSettings.model_validate(data)
    except Exception as e:
        raise ConfigError(f"Invalid lpass-bridge configuration: {e}") from e

    logger.info("Using namespace '%s'", settings.namespace)
    return settings


def _read_yaml(path: Path) -> dict:
    logger.debug("Loading config from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    # Settings may sit under a "lastpass" key or be flat
    section = data.get("lastpass", data)
    if not isinstance(section, dict):
        raise ConfigError(f"Expected 'lastpass' to be a mapping in {path}")
    return dict(section)
