"""
Authentication prompt handler — answers one password challenge per run.

Attached to the stderr stream of a single process invocation. States:

    IDLE          → no prompt issued yet
    PROMPT_ISSUED → one prompt attempted; terminal for this invocation

Evaluated on every stderr chunk:
    1. chunk mentions the login marker  → raise LOGIN_REQUIRED
    2. IDLE                             → PROMPT_ISSUED, ask for the secret,
                                          reply with it (+ newline) or raise
                                          CANCELED_BY_USER
    3. PROMPT_ISSUED                    → reply with nothing

A handler instance belongs to exactly one invocation. Build a new one
for every run.
"""

from __future__ import annotations

import logging
from enum import StrEnum
from typing import Callable

from lpass_bridge.core.engine.errors import ErrorKind, RecipeError

logger = logging.getLogger(__name__)

SecretPrompt = Callable[[str], "str | None"]

DEFAULT_LOGIN_MARKER = "lpass login"
DEFAULT_PROMPT_MESSAGE = "Enter your LastPass master password:"


class AuthState(StrEnum):
    """Auth handler states."""

    IDLE = "idle"
    PROMPT_ISSUED = "prompt_issued"


class AuthPromptHandler:
    """Stateful stderr interceptor for one process run.

    Args:
        prompt: Asks the user for a secret; ``None`` means they declined.
            Called synchronously and must not spawn processes itself.
        login_marker: Text that means the session is gone and no password
            will help.
        message: Shown by the prompt.
    """

    def __init__(
        self,
        prompt: SecretPrompt,
        login_marker: str = DEFAULT_LOGIN_MARKER,
        message: str = DEFAULT_PROMPT_MESSAGE,
    ):
        self.prompt = prompt
        self.login_marker = login_marker
        self.message = message
        self.state = AuthState.IDLE
        self.prompt_count = 0
        # End of the previous chunk, so a marker split across reads still matches.
        self._tail = ""

    def __call__(self, chunk: bytes | None) -> bytes | None:
        if not chunk:
            return None

        text = self._tail + chunk.decode("utf-8", errors="replace")
        keep = len(self.login_marker) - 1
        self._tail = text[-keep:] if keep > 0 else ""
        if self.login_marker and self.login_marker in text:
            logger.info("lpass reports no active session")
            raise RecipeError(ErrorKind.LOGIN_REQUIRED)

        if self.state == AuthState.PROMPT_ISSUED:
            return None

        self.state = AuthState.PROMPT_ISSUED
        self.prompt_count += 1
        logger.debug("Prompting for master password")
        secret = self.prompt(self.message)
        if secret is None:
            raise RecipeError(ErrorKind.CANCELED_BY_USER)
        return (secret + "\n").encode("utf-8")
