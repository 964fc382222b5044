"""
Interactive process adapter — run one external program, streaming both ways.

This is the single place where lpass-bridge spawns processes. Each
instance owns exactly one run:

    launch → (stdout / stderr chunks → callbacks, stdin writes) → exit or deadline kill → ProcessOutput

Threading model:
    - One reader thread per output pipe pushes chunks into a shared
      event queue.
    - The thread that calls ``run()`` / ``wait()`` drains that queue and
      invokes the stdout/stderr callbacks, so callbacks never overlap.
    - One writer thread owns stdin. ``write()`` and ``close_input()``
      only enqueue work; writes land in call order.

The child leads its own session, so a kill (deadline or callback error)
reaches every process it started. A run ends when the child exits, not
when its pipes close: descendants that keep stdout/stderr open are not
waited for.
"""

from __future__ import annotations

import logging
import os
import queue
import signal
import subprocess
import threading
import time
from typing import Callable

from lpass_bridge.core.models.output import ProcessOutput

logger = logging.getLogger(__name__)

StdoutHandler = Callable[[bytes], None]
StderrHandler = Callable[[bytes], "bytes | None"]
TerminationHandler = Callable[[int], None]

_CHUNK_SIZE = 4096
_STDOUT = "stdout"
_STDERR = "stderr"
_CLOSE = object()

# Reader/writer threads get this long to finish after the process is reaped.
_JOIN_TIMEOUT = 2.0

# How often the pump checks whether the child has exited.
_POLL_INTERVAL = 0.05

# After the child exits, output still in flight is collected for this long.
# Pipes held open past it belong to descendants and are abandoned.
_EXIT_GRACE = 0.5


class ProcessLaunchError(Exception):
    """Raised when the executable cannot be started at all.

    Distinct from a non-zero exit: the program never ran.
    """


class InteractiveProcess:
    """One run of an external program with asynchronous I/O.

    Args:
        command: Absolute path of the executable.
        args: Argument vector (without the executable).
        env: Complete environment for the child; nothing is inherited.
        handle_stdout: Called with each stdout chunk as it arrives.
        handle_stderr: Called with each stderr chunk; bytes it returns
            are written to the process's stdin.
        handle_termination: Called once with the exit code after the
            process has been reaped.
        deadline: Absolute ``time.monotonic()`` value after which the
            process is killed. ``None`` waits forever.
    """

    def __init__(
        self,
        command: str,
        args: list[str],
        env: dict[str, str],
        handle_stdout: StdoutHandler | None = None,
        handle_stderr: StderrHandler | None = None,
        handle_termination: TerminationHandler | None = None,
        deadline: float | None = None,
    ):
        self.command = command
        self.args = list(args)
        self.env = dict(env)
        self.handle_stdout = handle_stdout
        self.handle_stderr = handle_stderr
        self.handle_termination = handle_termination
        self.deadline = deadline
        # Post-launch hook, typically writes a one-shot payload and closes stdin.
        self.did_launch: Callable[[], None] | None = None
        self.output: ProcessOutput | None = None

        self._proc: subprocess.Popen | None = None
        self._events: queue.Queue = queue.Queue()
        self._stdin_queue: queue.Queue = queue.Queue()
        self._stdin_lock = threading.Lock()
        self._input_closed = False
        self._threads: list[threading.Thread] = []
        self._stdout = bytearray()
        self._stderr = bytearray()
        self._pipes_abandoned = False

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} argv={self.argv!r}>"

    @property
    def argv(self) -> list[str]:
        return [self.command, *self.args]

    @property
    def pid(self) -> int | None:
        return self._proc.pid if self._proc is not None else None

    @property
    def running(self) -> bool:
        return self._proc is not None and self._proc.poll() is None

    @property
    def input_closed(self) -> bool:
        return self._input_closed

    # ── Lifecycle ───────────────────────────────────────────────

    def run(self) -> ProcessOutput:
        """Launch, wait for exit or deadline, and return the output record."""
        self.launch()
        return self.wait()

    def launch(self) -> None:
        """Start the process and its I/O threads, then call ``did_launch``.

        Raises:
            ProcessLaunchError: The executable is missing or not runnable.
            RuntimeError: The instance was already launched.
        """
        if self._proc is not None:
            raise RuntimeError(f"{self!r} was already launched")

        logger.debug("Launching: %s", " ".join(self.argv))
        try:
            self._proc = subprocess.Popen(
                self.argv,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                env=self.env,
                bufsize=0,
                start_new_session=True,
            )
        except OSError as e:
            raise ProcessLaunchError(f"Cannot launch {self.command}: {e}") from e

        self._threads = [
            threading.Thread(
                target=self._read_pipe,
                args=(_STDOUT, self._proc.stdout),
                name=f"lpb-stdout-{self._proc.pid}",
                daemon=True,
            ),
            threading.Thread(
                target=self._read_pipe,
                args=(_STDERR, self._proc.stderr),
                name=f"lpb-stderr-{self._proc.pid}",
                daemon=True,
            ),
            threading.Thread(
                target=self._write_stdin,
                name=f"lpb-stdin-{self._proc.pid}",
                daemon=True,
            ),
        ]
        for thread in self._threads:
            thread.start()

        if self.did_launch is not None:
            try:
                self.did_launch()
            except BaseException:
                self._kill()
                self._finish(timed_out=False)
                raise

    def wait(self) -> ProcessOutput:
        """Pump callbacks until the process exits or its deadline passes.

        If a callback raises, the process is killed and reaped before
        the exception propagates.
        """
        if self._proc is None:
            raise RuntimeError(f"{self!r} was never launched")
        if self.output is not None:
            return self.output

        try:
            timed_out = self._pump()
        except BaseException:
            self._kill()
            self._finish(timed_out=False)
            raise

        self._finish(timed_out=timed_out)
        assert self.output is not None
        return self.output

    # ── stdin ───────────────────────────────────────────────────

    def write(self, data: bytes) -> None:
        """Queue bytes for the process's stdin. Dropped once input is closed."""
        with self._stdin_lock:
            if self._input_closed:
                logger.debug("Dropping %d bytes written after stdin was closed", len(data))
                return
            self._stdin_queue.put(bytes(data))

    def close_input(self) -> None:
        """Close stdin after all queued writes. Idempotent."""
        with self._stdin_lock:
            if self._input_closed:
                return
            self._input_closed = True
            self._stdin_queue.put(_CLOSE)

    # ── Internals ───────────────────────────────────────────────

    def _remaining(self) -> float | None:
        if self.deadline is None:
            return None
        return self.deadline - time.monotonic()

    def _pump(self) -> bool:
        """Dispatch output events until both pipes close and the process exits.

        Returns:
            True if the deadline expired and the process was killed.
        """
        assert self._proc is not None
        open_pipes = 2
        exited_at: float | None = None

        while open_pipes:
            remaining = self._remaining()
            if remaining is not None and remaining <= 0:
                self._kill()
                return True

            if exited_at is None and self._proc.poll() is not None:
                exited_at = time.monotonic()
            if exited_at is not None and time.monotonic() - exited_at >= _EXIT_GRACE:
                logger.debug(
                    "%s exited but %d pipe(s) are still held open; not waiting for EOF",
                    self.command,
                    open_pipes,
                )
                self._pipes_abandoned = True
                break

            tick = _POLL_INTERVAL if remaining is None else min(_POLL_INTERVAL, remaining)
            try:
                stream, chunk = self._events.get(timeout=tick)
            except queue.Empty:
                continue
            if chunk is None:
                open_pipes -= 1
                continue
            self._dispatch(stream, chunk)

        remaining = self._remaining()
        try:
            self._proc.wait(timeout=remaining)
        except subprocess.TimeoutExpired:
            self._kill()
            return True
        return False

    def _dispatch(self, stream: str, chunk: bytes) -> None:
        if stream == _STDOUT:
            self._stdout.extend(chunk)
            if self.handle_stdout is not None:
                self.handle_stdout(chunk)
            return

        self._stderr.extend(chunk)
        if self.handle_stderr is not None:
            reply = self.handle_stderr(chunk)
            if reply:
                self.write(reply)

    def _read_pipe(self, stream: str, pipe) -> None:
        try:
            while True:
                chunk = pipe.read(_CHUNK_SIZE)
                if not chunk:
                    break
                self._events.put((stream, chunk))
        except (OSError, ValueError) as e:
            logger.debug("Stopped reading %s of %s: %s", stream, self.command, e)
        finally:
            self._events.put((stream, None))

    def _write_stdin(self) -> None:
        assert self._proc is not None
        pipe = self._proc.stdin
        while True:
            item = self._stdin_queue.get()
            if item is _CLOSE:
                break
            try:
                view = memoryview(item)
                while view:
                    written = pipe.write(view)
                    view = view[written:]
            except (BrokenPipeError, ValueError, OSError) as e:
                logger.debug("stdin of %s closed early: %s", self.command, e)
                with self._stdin_lock:
                    self._input_closed = True
                break
        try:
            pipe.close()
        except OSError:
            pass

    def _kill(self) -> None:
        """SIGKILL the child and everything in its process group."""
        if self._proc is None or self._proc.poll() is not None:
            return
        logger.debug("Killing %s (process group %s)", self.command, self._proc.pid)
        try:
            os.killpg(self._proc.pid, signal.SIGKILL)
        except ProcessLookupError:
            pass

    def _finish(self, timed_out: bool) -> None:
        """Reap the process, collect leftovers, fire the termination callback."""
        if self.output is not None:
            return
        assert self._proc is not None

        self.close_input()
        return_code = self._proc.wait()
        readers, writers = self._threads[:2], self._threads[2:]
        for thread in writers:
            thread.join(timeout=_JOIN_TIMEOUT)
        # Readers of abandoned pipes stay blocked until the descendants let go.
        if not self._pipes_abandoned:
            for thread in readers:
                thread.join(timeout=_JOIN_TIMEOUT)

        # Chunks that arrived after the pump stopped are captured, not dispatched.
        while True:
            try:
                stream, chunk = self._events.get_nowait()
            except queue.Empty:
                break
            if chunk:
                (self._stdout if stream == _STDOUT else self._stderr).extend(chunk)

        for reader, pipe in zip(readers, (self._proc.stdout, self._proc.stderr)):
            if pipe is not None and not reader.is_alive():
                try:
                    pipe.close()
                except OSError:
                    pass

        self.output = ProcessOutput(
            stdout=bytes(self._stdout),
            stderr=bytes(self._stderr),
            return_code=return_code,
            timed_out=timed_out,
        )
        if timed_out:
            logger.warning("%s %s killed after deadline", self.command, self.args[:1])
        else:
            logger.debug("%s exited with code %d", self.command, return_code)

        if self.handle_termination is not None:
            self.handle_termination(return_code)
