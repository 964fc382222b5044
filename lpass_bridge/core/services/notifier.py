"""
Notifier — how failed operations reach the user.

The façade's CatchRecipe handlers are the only callers. The core ships
a logging implementation; the CLI swaps in one that prints.
"""

from __future__ import annotations

import logging
from typing import Protocol

logger = logging.getLogger(__name__)

LOGIN_COMMAND = "lpass login your@email.address"
LOGIN_MESSAGE = f"Not logged in to LastPass. Open a terminal and run `{LOGIN_COMMAND}`."
TIMEOUT_MESSAGE = "The LastPass service took too long to respond."


class Notifier(Protocol):
    """Presentation hooks for the three user-visible failure classes."""

    def timed_out(self, message: str) -> None: ...

    def login_required(self) -> None: ...

    def failed(self, error: Exception, message: str) -> None: ...


class LoggingNotifier:
    """Notifier that only writes to the log."""

    def timed_out(self, message: str) -> None:
        logger.warning("%s %s", TIMEOUT_MESSAGE, message)

    def login_required(self) -> None:
        logger.warning(LOGIN_MESSAGE)

    def failed(self, error: Exception, message: str) -> None:
        logger.error("%s (%s)", message, error)
