"""
Mock process — scripted stand-in for InteractiveProcess.

Used by tests to drive recipes without spawning anything. A
MockProcessFactory is configured with one scripted response per argument
vector and hands out MockProcess instances that replay it through the
same callbacks a real process would fire.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable

from lpass_bridge.adapters.shell.process import (
    ProcessLaunchError,
    StderrHandler,
    StdoutHandler,
    TerminationHandler,
)
from lpass_bridge.core.models.output import ProcessOutput

# Exit code reported for scripted deadline kills (SIGKILL on POSIX).
KILLED_RETURN_CODE = -9


@dataclass
class ScriptedResponse:
    """What a mock process emits when it runs."""

    stdout: bytes = b""
    stderr_chunks: list[bytes] = field(default_factory=list)
    return_code: int = 0
    timed_out: bool = False
    launch_error: str | None = None


class MockProcess:
    """Replays a ScriptedResponse through the InteractiveProcess interface."""

    def __init__(
        self,
        command: str,
        args: list[str],
        env: dict[str, str],
        handle_stdout: StdoutHandler | None = None,
        handle_stderr: StderrHandler | None = None,
        handle_termination: TerminationHandler | None = None,
        deadline: float | None = None,
        response: ScriptedResponse | None = None,
    ):
        self.command = command
        self.args = list(args)
        self.env = dict(env)
        self.handle_stdout = handle_stdout
        self.handle_stderr = handle_stderr
        self.handle_termination = handle_termination
        self.deadline = deadline
        self.did_launch: Callable[[], None] | None = None
        self.output: ProcessOutput | None = None
        self.response = response or ScriptedResponse()

        self.written: list[bytes] = []
        self.writes_after_close: list[bytes] = []
        self.termination_calls: list[int] = []
        self.launched = False
        self._input_closed = False

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} argv={self.argv!r}>"

    @property
    def argv(self) -> list[str]:
        return [self.command, *self.args]

    @property
    def input_closed(self) -> bool:
        return self._input_closed

    @property
    def stdin_bytes(self) -> bytes:
        return b"".join(self.written)

    def run(self) -> ProcessOutput:
        self.launch()
        return self.wait()

    def launch(self) -> None:
        if self.launched:
            raise RuntimeError(f"{self!r} was already launched")
        if self.response.launch_error is not None:
            raise ProcessLaunchError(self.response.launch_error)
        self.launched = True
        if self.did_launch is not None:
            try:
                self.did_launch()
            except BaseException:
                self._finish(KILLED_RETURN_CODE, timed_out=False)
                raise

    def wait(self) -> ProcessOutput:
        if not self.launched:
            raise RuntimeError(f"{self!r} was never launched")
        if self.output is not None:
            return self.output

        stderr = bytearray()
        try:
            if self.response.stdout and self.handle_stdout is not None:
                self.handle_stdout(self.response.stdout)
            for chunk in self.response.stderr_chunks:
                stderr.extend(chunk)
                if self.handle_stderr is not None:
                    reply = self.handle_stderr(chunk)
                    if reply:
                        self.write(reply)
        except BaseException:
            self._finish(KILLED_RETURN_CODE, timed_out=False, stderr=bytes(stderr))
            raise

        return_code = KILLED_RETURN_CODE if self.response.timed_out else self.response.return_code
        self._finish(return_code, timed_out=self.response.timed_out, stderr=bytes(stderr))
        assert self.output is not None
        return self.output

    def write(self, data: bytes) -> None:
        if self._input_closed:
            self.writes_after_close.append(bytes(data))
            return
        self.written.append(bytes(data))

    def close_input(self) -> None:
        self._input_closed = True

    def _finish(self, return_code: int, timed_out: bool, stderr: bytes = b"") -> None:
        if self.output is not None:
            return
        self._input_closed = True
        self.output = ProcessOutput(
            stdout=self.response.stdout,
            stderr=stderr,
            return_code=return_code,
            timed_out=timed_out,
        )
        self.termination_calls.append(return_code)
        if self.handle_termination is not None:
            self.handle_termination(return_code)


class MockProcessFactory:
    """Callable with InteractiveProcess's constructor signature.

    Responses are keyed by argument vector (without the executable).
    Unscripted vectors succeed with empty output.
    """

    def __init__(self, default: ScriptedResponse | None = None):
        self._default = default or ScriptedResponse()
        self._responses: dict[tuple[str, ...], ScriptedResponse] = {}
        self._call_log: list[MockProcess] = []

    def __call__(
        self,
        command: str,
        args: list[str],
        env: dict[str, str],
        handle_stdout: StdoutHandler | None = None,
        handle_stderr: StderrHandler | None = None,
        handle_termination: TerminationHandler | None = None,
        deadline: float | None = None,
    ) -> MockProcess:
        response = self._responses.get(tuple(args), self._default)
        process = MockProcess(
            command,
            args,
            env,
            handle_stdout=handle_stdout,
            handle_stderr=handle_stderr,
            handle_termination=handle_termination,
            deadline=deadline,
            response=response,
        )
        self._call_log.append(process)
        return process

    @property
    def call_log(self) -> list[MockProcess]:
        """Every process this factory has built, in order."""
        return self._call_log

    @property
    def call_count(self) -> int:
        return len(self._call_log)

    def calls_for(self, *args: str) -> list[MockProcess]:
        return [p for p in self._call_log if tuple(p.args) == args]

    def set_response(self, args: list[str], response: ScriptedResponse) -> None:
        """Set the scripted response for one argument vector."""
        self._responses[tuple(args)] = response

    def set_output(self, args: list[str], stdout: str | bytes, return_code: int = 0) -> None:
        data = stdout.encode("utf-8") if isinstance(stdout, str) else stdout
        self.set_response(args, ScriptedResponse(stdout=data, return_code=return_code))

    def set_failure(self, args: list[str], return_code: int = 1, stderr: bytes = b"") -> None:
        """Configure a specific argument vector to exit non-zero."""
        chunks = [stderr] if stderr else []
        self.set_response(args, ScriptedResponse(stderr_chunks=chunks, return_code=return_code))

    def set_timeout(self, args: list[str]) -> None:
        self.set_response(args, ScriptedResponse(timed_out=True))

    def reset(self) -> None:
        """Clear call log and scripted responses."""
        self._call_log.clear()
        self._responses.clear()
