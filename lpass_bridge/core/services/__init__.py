"""LastPass services — recipes, the data-source façade and its collaborators."""

from lpass_bridge.core.services.cli_locator import CLILocator
from lpass_bridge.core.services.lastpass_recipes import LastPassCommands
from lpass_bridge.core.services.lastpass_source import LastPassDataSource
from lpass_bridge.core.services.notifier import LoggingNotifier, Notifier

__all__ = [
    "CLILocator",
    "LastPassCommands",
    "LastPassDataSource",
    "LoggingNotifier",
    "Notifier",
]
