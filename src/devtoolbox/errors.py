"""Error taxonomy shared by the command, device and telemetry layers.

None of these are fatal: the registry and the sampler recover from them
locally and turn them into log lines or status strings.
"""

from __future__ import annotations

from typing import Optional, Sequence


class ToolboxError(Exception):
    """Base class for every recoverable toolbox error."""


class ToolNotFound(ToolboxError):
    """The external executable could not be located or spawned."""

    def __init__(self, executable: str, reason: str = "") -> None:
        self.executable = str(executable)
        self.reason = reason
        message = f"Tool not found: {self.executable}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class CommandFailed(ToolboxError):
    """The process ran but exited with a non-success status."""

    def __init__(
        self,
        args: Sequence[str],
        returncode: Optional[int],
        stderr: Optional[str] = None,
    ) -> None:
        self.args_list = list(args)
        self.returncode = returncode
        self.stderr = stderr
        detail = (stderr or "").strip() or f"exit status {returncode}"
        super().__init__(f"Command failed: {' '.join(self.args_list)}: {detail}")


class CommandTimeout(ToolboxError):
    """The process was terminated because its deadline expired or it was cancelled."""

    def __init__(
        self,
        args: Sequence[str],
        timeout: Optional[float],
        *,
        cancelled: bool = False,
    ) -> None:
        self.args_list = list(args)
        self.timeout = timeout
        self.cancelled = cancelled
        if cancelled:
            reason = "cancelled"
        else:
            reason = f"timed out after {timeout:g} s"
        super().__init__(f"Command {reason}: {' '.join(self.args_list)}")


class ParseFailure(ToolboxError):
    """Tool output did not have the textual shape expected for a metric."""

    def __init__(self, metric: str, text: str = "", reason: str = "") -> None:
        self.metric = metric
        self.text = text
        self.reason = reason
        message = f"Could not parse {metric}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class DeviceUnavailable(ToolboxError):
    """An operation that needs a selected device was invoked without one."""


__all__ = [
    "ToolboxError",
    "ToolNotFound",
    "CommandFailed",
    "CommandTimeout",
    "ParseFailure",
    "DeviceUnavailable",
]
