"""
Recipe errors — the single failure channel of every pipeline.

Lower layers only classify and raise. Presentation happens in the
outermost CatchRecipe of each operation, nowhere else.
"""

from __future__ import annotations

from enum import StrEnum


class ErrorKind(StrEnum):
    """Why a recipe produced no output."""

    UNUSABLE_BINARY = "unusable_binary"
    RUNTIME_FAILURE = "runtime_failure"
    MALFORMED_OUTPUT = "malformed_output"
    SYNC_FAILED = "sync_failed"
    CANCELED_BY_USER = "canceled_by_user"
    TIMED_OUT = "timed_out"
    LOGIN_REQUIRED = "login_required"


_DEFAULT_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.UNUSABLE_BINARY: "The lpass binary is missing or not executable",
    ErrorKind.RUNTIME_FAILURE: "The command exited with a non-zero status",
    ErrorKind.MALFORMED_OUTPUT: "The command produced unexpected output",
    ErrorKind.SYNC_FAILED: "The new record was not synced to the server",
    ErrorKind.CANCELED_BY_USER: "Canceled by user",
    ErrorKind.TIMED_OUT: "The command did not finish before its deadline",
    ErrorKind.LOGIN_REQUIRED: "Not logged in to LastPass",
}


class RecipeError(Exception):
    """Raised when a recipe cannot produce its output.

    The ``kind`` is carried unchanged through SequenceRecipe stages.
    """

    def __init__(self, kind: ErrorKind, message: str = ""):
        self.kind = kind
        self.message = message or _DEFAULT_MESSAGES[kind]
        super().__init__(f"{kind.value}: {self.message}")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RecipeError):
            return NotImplemented
        return self.kind == other.kind and self.message == other.message

    def __hash__(self) -> int:
        return hash((self.kind, self.message))
