"""
Shared test fixtures and configuration.
"""

import sys
from pathlib import Path

import pytest

from lpass_bridge.adapters.mock import MockProcessFactory
from lpass_bridge.core.config.loader import LastPassSettings
from lpass_bridge.core.services.cli_locator import CLILocator
from lpass_bridge.core.services.lastpass_recipes import LastPassCommands
from tests.doubles import PromptRecorder, RecordingNotifier

FAKE_CLI = "/opt/fake/bin/lpass"


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def fixtures_dir() -> Path:
    """Return the test fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def python() -> str:
    """Interpreter used to spawn throwaway child processes."""
    return sys.executable


@pytest.fixture
def settings(tmp_path: Path) -> LastPassSettings:
    return LastPassSettings(
        cli_path=FAKE_CLI,
        namespace="iTerm2",
        home=str(tmp_path),
        askpass_path="/opt/fake/askpass.sh",
    )


@pytest.fixture
def locator() -> CLILocator:
    return CLILocator(custom_path=FAKE_CLI, is_usable=lambda path: True)


@pytest.fixture
def factory() -> MockProcessFactory:
    return MockProcessFactory()


@pytest.fixture
def prompt() -> PromptRecorder:
    return PromptRecorder()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def commands(settings, locator, prompt, factory) -> LastPassCommands:
    return LastPassCommands(settings, locator, prompt, process_factory=factory)
