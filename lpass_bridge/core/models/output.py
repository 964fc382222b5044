"""
Process output record — what a finished (or killed) process left behind.

Created exactly once per run by the process handle, either when the
process terminates on its own or when its deadline kills it. Frozen:
recipes inspect it, nobody edits it.
"""

from __future__ import annotations

from pydantic import BaseModel


class ProcessOutput(BaseModel):
    """Captured result of one external process run.

    ``return_code`` is the exit status reported by the OS. When the
    process was killed for overrunning its deadline, ``timed_out`` is
    set and the code is the negative signal number of the kill.
    """

    model_config = {"frozen": True}

    stdout: bytes = b""
    stderr: bytes = b""
    return_code: int = 0
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        """Whether the process exited cleanly within its deadline."""
        return self.return_code == 0 and not self.timed_out
