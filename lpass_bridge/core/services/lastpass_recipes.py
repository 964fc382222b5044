"""
LastPass recipes — typed pipelines over the ``lpass`` command line.

Every operation is one or more process invocations with a fixed
environment (HOME + LPASS_ASKPASS) and an output parser:

    list           ls --format=%ai\\t%an\\t%au <namespace>
    fetch password show --password <id>
    set password   edit --non-interactive --password <id>   (password on stdin)
    delete         rm <id>
    add            add <namespace>/<name> --non-interactive  (credentials on stdin)
                   → sync now
                   → show --id <namespace>/<name>
    availability   status --color=never

Two recipe flavours:
    basic    argv fixed at build time, bounded deadline, stderr answered by
             a fresh AuthPromptHandler per run (list, sync)
    dynamic  argv and stdin payload derived from the runtime input
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, TypeVar

from lpass_bridge.adapters.shell.process import InteractiveProcess, ProcessLaunchError
from lpass_bridge.core.config.loader import LastPassSettings
from lpass_bridge.core.engine.auth import AuthPromptHandler, SecretPrompt
from lpass_bridge.core.engine.errors import ErrorKind, RecipeError
from lpass_bridge.core.engine.recipe import CommandRecipe, SequenceRecipe
from lpass_bridge.core.models.account import (
    UNSYNCED_ID,
    Account,
    AccountIdentifier,
    AddRequest,
    SetPasswordRequest,
)
from lpass_bridge.core.models.output import ProcessOutput
from lpass_bridge.core.services.cli_locator import CLILocator

logger = logging.getLogger(__name__)

I = TypeVar("I")
O = TypeVar("O")

# Same keyword signature as InteractiveProcess (MockProcessFactory matches it).
ProcessFactory = Callable[..., Any]

LIST_FORMAT = "--format=%ai\t%an\t%au"

_STDERR_SNIPPET = 200


@dataclass(frozen=True)
class Invocation:
    """argv (without the executable) plus an optional one-shot stdin payload."""

    args: list[str]
    stdin: bytes | None = None

    def __repr__(self) -> str:
        payload = "None" if self.stdin is None else f"<{len(self.stdin)} bytes>"
        return f"Invocation(args={self.args!r}, stdin={payload})"


# ═══════════════════════════════════════════════════════════════════
#  Output parsers
# ═══════════════════════════════════════════════════════════════════


def decode_stdout(output: ProcessOutput) -> str:
    try:
        return output.stdout.decode("utf-8")
    except UnicodeDecodeError as e:
        raise RecipeError(ErrorKind.MALFORMED_OUTPUT, f"stdout is not UTF-8: {e}") from e


def parse_account_list(output: ProcessOutput) -> list[Account]:
    """Parse ``id<TAB>name<TAB>user`` lines.

    Lines without exactly three fields are skipped, as are unsynced
    records (id ``"0"``), which have no stable identifier.
    """
    accounts = []
    for line in decode_stdout(output).split("\n"):
        parts = line.split("\t")
        if len(parts) != 3:
            continue
        if parts[0] == UNSYNCED_ID:
            logger.debug("Skipping unsynced account %r", parts[1])
            continue
        accounts.append(
            Account(
                identifier=AccountIdentifier(value=parts[0]),
                account_name=parts[1],
                user_name=parts[2],
            )
        )
    return accounts


def parse_password(output: ProcessOutput) -> str:
    return decode_stdout(output).strip()


def parse_identifier(output: ProcessOutput) -> AccountIdentifier:
    """Last line of ``show --id`` output; ``"0"`` means the sync never happened."""
    lines = decode_stdout(output).strip().split("\n")
    id_string = lines[-1].strip()
    if not id_string:
        raise RecipeError(ErrorKind.MALFORMED_OUTPUT, "show --id printed nothing")
    if id_string == UNSYNCED_ID:
        raise RecipeError(ErrorKind.SYNC_FAILED)
    return AccountIdentifier(value=id_string)


def _ignore_output(output: ProcessOutput) -> None:
    return None


def checked(transformer: Callable[[ProcessOutput], O]) -> Callable[[ProcessOutput], O]:
    """Reject timed-out and non-zero runs before ``transformer`` sees them."""

    def transform(output: ProcessOutput) -> O:
        if output.timed_out:
            raise RecipeError(ErrorKind.TIMED_OUT)
        if output.return_code != 0:
            stderr = output.stderr.decode("utf-8", errors="replace").strip()
            detail = f"exit code {output.return_code}"
            if stderr:
                detail = f"{detail}: {stderr[-_STDERR_SNIPPET:]}"
            raise RecipeError(ErrorKind.RUNTIME_FAILURE, detail)
        return transformer(output)

    return transform


# ═══════════════════════════════════════════════════════════════════
#  Recipe construction
# ═══════════════════════════════════════════════════════════════════


class LastPassCommands:
    """Builds LastPass recipes bound to one settings/locator pair.

    Args:
        settings: Namespace, timeouts, environment.
        locator: Resolves the lpass path; consulted before every launch.
        prompt: Secret prompt handed to each run's AuthPromptHandler.
        process_factory: InteractiveProcess or a compatible double.
    """

    def __init__(
        self,
        settings: LastPassSettings,
        locator: CLILocator,
        prompt: SecretPrompt,
        process_factory: ProcessFactory = InteractiveProcess,
    ):
        self.settings = settings
        self.locator = locator
        self.prompt = prompt
        self.process_factory = process_factory

    # ── Building blocks ─────────────────────────────────────────

    def basic_recipe(
        self,
        args: list[str],
        output_transformer: Callable[[ProcessOutput], O],
        timeout: float | None = None,
    ) -> CommandRecipe[Any, O]:
        """Fixed argv; stderr challenges answered once per run."""
        fixed_args = list(args)

        def build(_inputs: Any):
            command = self.locator.raise_if_unusable()
            handler = AuthPromptHandler(self.prompt, login_marker=self.settings.login_marker)
            return self.process_factory(
                command,
                fixed_args,
                self.settings.environment,
                handle_stderr=handler,
                deadline=_deadline(timeout),
            )

        return CommandRecipe(build, checked(output_transformer), recovery=self._recover)

    def dynamic_recipe(
        self,
        input_transformer: Callable[[I], Invocation],
        output_transformer: Callable[[ProcessOutput], O],
        timeout: float | None = None,
    ) -> CommandRecipe[I, O]:
        """argv and stdin payload computed from the input.

        The payload (if any) is written right after launch and stdin is
        closed; with no payload stdin is closed immediately.
        """

        def build(inputs: I):
            invocation = input_transformer(inputs)
            command = self.locator.raise_if_unusable()
            process = self.process_factory(
                command,
                invocation.args,
                self.settings.environment,
                deadline=_deadline(timeout),
            )
            process.did_launch = _one_shot(process, invocation.stdin)
            return process

        return CommandRecipe(build, checked(output_transformer), recovery=self._recover)

    def _recover(self, error: Exception) -> Any:
        if isinstance(error, ProcessLaunchError):
            self.locator.mark_unusable()
            raise RecipeError(ErrorKind.UNUSABLE_BINARY, str(error)) from error
        raise error

    # ── Operations ──────────────────────────────────────────────

    def list_accounts_recipe(self) -> CommandRecipe[Any, list[Account]]:
        args = ["ls", LIST_FORMAT, self.settings.namespace]
        return self.basic_recipe(args, parse_account_list, timeout=self.settings.list_timeout)

    def get_password_recipe(self) -> CommandRecipe[AccountIdentifier, str]:
        def invocation(identifier: AccountIdentifier) -> Invocation:
            return Invocation(["show", "--password", identifier.value])

        return self.dynamic_recipe(
            invocation, parse_password, timeout=self.settings.command_timeout
        )

    def set_password_recipe(self) -> CommandRecipe[SetPasswordRequest, None]:
        def invocation(request: SetPasswordRequest) -> Invocation:
            return Invocation(
                ["edit", "--non-interactive", "--password", request.account_identifier.value],
                stdin=(request.new_password + "\n").encode("utf-8"),
            )

        return self.dynamic_recipe(
            invocation, _ignore_output, timeout=self.settings.command_timeout
        )

    def delete_recipe(self) -> CommandRecipe[AccountIdentifier, None]:
        def invocation(identifier: AccountIdentifier) -> Invocation:
            return Invocation(["rm", identifier.value])

        return self.dynamic_recipe(
            invocation, _ignore_output, timeout=self.settings.command_timeout
        )

    def add_account_recipe(self) -> SequenceRecipe[AddRequest, None, AccountIdentifier]:
        """add → sync → show --id, as one recipe.

        A failure after the add step leaves the new record in the vault.
        """

        def add_invocation(request: AddRequest) -> Invocation:
            payload = f"Username: {request.user_name}\nPassword: {request.password}"
            return Invocation(
                ["add", self.settings.qualified_name(request.account_name), "--non-interactive"],
                stdin=payload.encode("utf-8"),
            )

        def show_invocation(state: tuple[AddRequest, None]) -> Invocation:
            request, _ = state
            return Invocation(["show", "--id", self.settings.qualified_name(request.account_name)])

        add = self.dynamic_recipe(
            add_invocation, _ignore_output, timeout=self.settings.command_timeout
        )
        sync = self.basic_recipe(
            ["sync", "now"], _ignore_output, timeout=self.settings.sync_timeout
        )
        show = self.dynamic_recipe(
            show_invocation, parse_identifier, timeout=self.settings.command_timeout
        )
        return SequenceRecipe(SequenceRecipe(add, sync), show)

    def status(self) -> ProcessOutput:
        """Run ``status --color=never`` and return its raw output.

        Raises:
            RecipeError: UNUSABLE_BINARY if lpass is known bad or cannot launch.
        """
        command = self.locator.raise_if_unusable()
        process = self.process_factory(
            command,
            ["status", "--color=never"],
            self.settings.environment,
            deadline=_deadline(self.settings.list_timeout),
        )
        process.did_launch = _one_shot(process, None)
        try:
            return process.run()
        except ProcessLaunchError as e:
            return self._recover(e)


def _deadline(timeout: float | None) -> float | None:
    if timeout is None:
        return None
    return time.monotonic() + timeout


def _one_shot(process: Any, payload: bytes | None) -> Callable[[], None]:
    def did_launch() -> None:
        if payload:
            process.write(payload)
        process.close_input()

    return did_launch
