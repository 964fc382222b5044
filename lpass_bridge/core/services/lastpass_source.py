"""
LastPass data source — the caller-facing façade over the recipes.

Each public operation builds its recipe, wraps it in a CatchRecipe and
runs it once. The catch handler is the single place failures are
presented:

    CANCELED_BY_USER  → silent (logged at INFO)
    TIMED_OUT         → notifier.timed_out(<operation message>)
    LOGIN_REQUIRED    → notifier.login_required()
    anything else     → notifier.failed(error, <operation message>)

Operations never raise RecipeError; a ``None`` / ``False`` result means
the failure has already been presented.
"""

from __future__ import annotations

import logging
from typing import Any

from lpass_bridge.adapters.shell.process import InteractiveProcess
from lpass_bridge.core.config.loader import LastPassSettings
from lpass_bridge.core.engine.auth import SecretPrompt
from lpass_bridge.core.engine.errors import ErrorKind, RecipeError
from lpass_bridge.core.engine.recipe import CatchRecipe, Recipe
from lpass_bridge.core.models.account import (
    Account,
    AccountIdentifier,
    AddRequest,
    SetPasswordRequest,
)
from lpass_bridge.core.services.cli_locator import CLILocator
from lpass_bridge.core.services.lastpass_recipes import LastPassCommands, ProcessFactory
from lpass_bridge.core.services.notifier import LoggingNotifier, Notifier

logger = logging.getLogger(__name__)

LIST_FAILED = "The account list could not be fetched."
FETCH_FAILED = "The password could not be fetched."
SET_FAILED = "The password could not be set."
DELETE_FAILED = "The account could not be deleted."
ADD_FAILED = "The account could not be added."

_NOT_LOGGED_IN_PREFIX = "Not logged in"


def _decline(message: str) -> None:
    return None


def _as_identifier(identifier: AccountIdentifier | str) -> AccountIdentifier:
    if isinstance(identifier, AccountIdentifier):
        return identifier
    return AccountIdentifier(value=identifier)


class LastPassDataSource:
    """Typed secret operations backed by the lpass CLI.

    Args:
        settings: Loaded settings (defaults if omitted).
        locator: Path/usability collaborator; built from settings if omitted.
        prompt: Master-password prompt; without one every challenge is
            treated as a cancellation.
        notifier: Failure presentation; defaults to logging only.
        process_factory: InteractiveProcess or a compatible double.
    """

    autogenerated_passwords_only = False

    def __init__(
        self,
        settings: LastPassSettings | None = None,
        locator: CLILocator | None = None,
        prompt: SecretPrompt | None = None,
        notifier: Notifier | None = None,
        process_factory: ProcessFactory = InteractiveProcess,
    ):
        self.settings = settings or LastPassSettings()
        self.locator = locator or CLILocator(
            custom_path=self.settings.cli_path,
            search_paths=self.settings.search_paths,
        )
        self.notifier = notifier or LoggingNotifier()
        self.commands = LastPassCommands(
            self.settings,
            self.locator,
            prompt or _decline,
            process_factory=process_factory,
        )

    # ── Operations ──────────────────────────────────────────────

    def accounts(self) -> list[Account] | None:
        """List synced accounts in the namespace."""
        ok, result = self._perform(LIST_FAILED, self.commands.list_accounts_recipe(), None)
        return result if ok else None

    def fetch_password(self, identifier: AccountIdentifier | str) -> str | None:
        ok, result = self._perform(
            FETCH_FAILED, self.commands.get_password_recipe(), _as_identifier(identifier)
        )
        return result if ok else None

    def set_password(self, identifier: AccountIdentifier | str, password: str) -> bool:
        request = SetPasswordRequest(
            account_identifier=_as_identifier(identifier),
            new_password=password,
        )
        ok, _ = self._perform(SET_FAILED, self.commands.set_password_recipe(), request)
        return ok

    def delete(self, identifier: AccountIdentifier | str) -> bool:
        ok, _ = self._perform(
            DELETE_FAILED, self.commands.delete_recipe(), _as_identifier(identifier)
        )
        return ok

    def add(self, user_name: str, account_name: str, password: str) -> AccountIdentifier | None:
        """Create a record, sync it, and return its server-side id."""
        request = AddRequest(user_name=user_name, account_name=account_name, password=password)
        ok, result = self._perform(ADD_FAILED, self.commands.add_account_recipe(), request)
        return result if ok else None

    def check_availability(self) -> bool:
        """True if lpass runs and has a session. Never raises."""
        try:
            output = self.commands.status()
        except RecipeError as e:
            logger.info("lpass is unavailable: %s", e)
            return False

        if output.ok:
            return True
        if output.stdout.decode("utf-8", errors="replace").startswith(_NOT_LOGGED_IN_PREFIX):
            self.notifier.login_required()
        else:
            logger.info("lpass status exited with code %d", output.return_code)
        return False

    def reset_errors(self) -> None:
        self.locator.reset_usability()

    # ── Failure policy ──────────────────────────────────────────

    def _perform(self, message: str, recipe: Recipe[Any, Any], inputs: Any) -> tuple[bool, Any]:
        """Run ``recipe`` under a CatchRecipe; report whether it succeeded."""
        failures: list[Exception] = []

        def handle(error: Exception) -> None:
            failures.append(error)
            self._present(error, message)

        result = CatchRecipe(recipe, handle).transform(inputs)
        return not failures, result

    def _present(self, error: Exception, message: str) -> None:
        kind = error.kind if isinstance(error, RecipeError) else None

        if kind == ErrorKind.CANCELED_BY_USER:
            logger.info("%s Canceled by user.", message)
            return
        if kind == ErrorKind.TIMED_OUT:
            self.notifier.timed_out(message)
            return
        if kind == ErrorKind.LOGIN_REQUIRED:
            self.notifier.login_required()
            return
        logger.info("%s (%s)", message, kind or type(error).__name__)
        self.notifier.failed(error, message)
