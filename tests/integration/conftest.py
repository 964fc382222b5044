"""
Auto-mark all tests in this directory as integration tests.

These drive ``tests/fixtures/fake_lpass.py`` through real
InteractiveProcess runs (real pipes, real threads, real kills).

Run ONLY integration tests:
    pytest tests/integration/ -m integration

Run ONLY unit tests:
    pytest -m "not integration"
"""

import json
import sys
from pathlib import Path

import pytest

from lpass_bridge.core.config.loader import LastPassSettings

FAKE_LPASS = Path(__file__).parent.parent / "fixtures" / "fake_lpass.py"


def pytest_collection_modifyitems(items):
    """Auto-apply the 'integration' marker to every test in this directory."""
    for item in items:
        if "/integration/" in str(item.fspath):
            item.add_marker(pytest.mark.integration)


class FakeLastPass:
    """A scripted lpass installed under a temp HOME."""

    def __init__(self, root: Path):
        self.home = root / "home"
        self.home.mkdir()
        bin_dir = root / "bin"
        bin_dir.mkdir()
        self.path = bin_dir / "lpass"
        self.path.write_text(f'#!/bin/sh\nexec "{sys.executable}" "{FAKE_LPASS}" "$@"\n')
        self.path.chmod(0o755)
        self.script({})

    def script(self, scenario: dict) -> None:
        (self.home / "scenario.json").write_text(json.dumps(scenario), encoding="utf-8")

    def calls(self) -> list[dict]:
        log = self.home / "calls.jsonl"
        if not log.exists():
            return []
        return [json.loads(line) for line in log.read_text(encoding="utf-8").splitlines()]

    def settings(self, **overrides) -> LastPassSettings:
        values = {
            "cli_path": str(self.path),
            "namespace": "iTerm2",
            "home": str(self.home),
            "list_timeout": 10.0,
            "sync_timeout": 10.0,
            "command_timeout": 10.0,
        }
        values.update(overrides)
        return LastPassSettings(**values)


@pytest.fixture
def fake_lpass(tmp_path: Path) -> FakeLastPass:
    return FakeLastPass(tmp_path)
