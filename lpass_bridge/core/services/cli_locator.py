"""
CLI locator — where the lpass binary lives, and whether it is worth trying.

Keeps a usability flag so a known-bad path is not relaunched on every
call:

    None   → not checked yet
    True   → path resolved to an executable
    False  → marked unusable (missing, not executable, failed to launch)

``reset_usability()`` clears a False flag (and any user-chosen path) so
the next resolution starts over. It does nothing otherwise.
"""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path
from typing import Callable, Sequence

from lpass_bridge.core.config.loader import DEFAULT_SEARCH_PATHS
from lpass_bridge.core.engine.errors import ErrorKind, RecipeError

logger = logging.getLogger(__name__)

# Returns a user-chosen path to try, or None to give up.
LocateCallback = Callable[[], "str | None"]

_EXECUTABLE_NAME = "lpass"


def is_usable_executable(path: str) -> bool:
    """True if ``path`` is an existing, executable regular file."""
    candidate = Path(path)
    return candidate.is_file() and os.access(candidate, os.X_OK)


class CLILocator:
    """Resolves the lpass path and tracks whether it can be launched.

    Args:
        custom_path: Explicit path (from config). Always preferred.
        search_paths: Well-known install locations, tried in order.
        locate: Asked for a path when nothing else works; may be asked
            repeatedly until it returns a usable path or None.
        is_usable: Usability probe, overridable for tests.
    """

    def __init__(
        self,
        custom_path: str | None = None,
        search_paths: Sequence[str] = DEFAULT_SEARCH_PATHS,
        locate: LocateCallback | None = None,
        is_usable: Callable[[str], bool] = is_usable_executable,
    ):
        self._configured_path = custom_path
        self._custom_path = custom_path
        self._search_paths = list(search_paths)
        self._locate = locate
        self._is_usable = is_usable
        self.usable: bool | None = None

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} path={self._custom_path!r} usable={self.usable!r}>"

    @property
    def path(self) -> str:
        """Resolve the executable path.

        Resolution does not overwrite a False usability flag; only
        ``reset_usability()`` does.
        """
        if self._custom_path:
            if self.usable is None:
                self.usable = self._is_usable(self._custom_path)
            return self._custom_path

        found = self._search()
        if found is not None:
            if self.usable is None:
                self.usable = True
            return found

        # A known-bad state does not re-prompt; reset_usability() re-arms it.
        if self.usable is not False:
            chosen = self._ask_user()
            if chosen is not None:
                return chosen

        if self._custom_path:
            return self._custom_path
        self.usable = False
        return self._search_paths[0] if self._search_paths else _EXECUTABLE_NAME

    def raise_if_unusable(self) -> str:
        """Resolve the path, raising UNUSABLE_BINARY if it is known bad."""
        path = self.path
        if self.usable is False:
            raise RecipeError(ErrorKind.UNUSABLE_BINARY, f"lpass is not usable at {path}")
        return path

    def check_usability(self) -> bool:
        return self._is_usable(self.path)

    def mark_unusable(self) -> None:
        if self.usable is not False:
            logger.warning("Marking lpass at %s as unusable", self._custom_path or "default path")
        self.usable = False

    def reset_usability(self) -> None:
        """Forget a previous failure so the next call re-resolves the path."""
        if self.usable is False:
            logger.info("Resetting lpass usability")
            self.usable = None
            self._custom_path = self._configured_path

    # ── Internals ───────────────────────────────────────────────

    def _search(self) -> str | None:
        for candidate in self._search_paths:
            if self._is_usable(candidate):
                return candidate
        which = shutil.which(_EXECUTABLE_NAME)
        if which and self._is_usable(which):
            return which
        return None

    def _ask_user(self) -> str | None:
        if self._locate is None:
            return None
        while True:
            chosen = self._locate()
            if chosen is None:
                return None
            self._custom_path = chosen
            self.usable = self._is_usable(chosen)
            if self.usable:
                logger.info("Using user-selected lpass at %s", chosen)
                return chosen
            logger.warning("Selected path %s is not an executable", chosen)
