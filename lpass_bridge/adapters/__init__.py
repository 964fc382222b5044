"""Adapters — process bindings for the lpass executable.

Public re-exports for convenient access.
"""

from lpass_bridge.adapters.mock import MockProcess, MockProcessFactory, ScriptedResponse
from lpass_bridge.adapters.shell.process import InteractiveProcess, ProcessLaunchError

__all__ = [
    "InteractiveProcess",
    "MockProcess",
    "MockProcessFactory",
    "ProcessLaunchError",
    "ScriptedResponse",
]
