"""Blocking execution of external device tools."""

from __future__ import annotations

import logging
import subprocess
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

from ..errors import CommandFailed, CommandTimeout, ToolNotFound
from .proctree import NEW_SESSION, TERMINATE_GRACE_S, terminate_process_tree

logger = logging.getLogger(__name__)

# How often a blocked call wakes up to look at its cancel event.
CANCEL_POLL_S = 0.1

_UNSET = object()


@dataclass
class CommandResult:
    """Outcome of one finished external command."""

    success: bool
    stdout: str
    stderr: Optional[str] = None
    returncode: Optional[int] = None
    args: List[str] = field(default_factory=list)


def decode_output(raw: bytes | None) -> str:
    """Decode tool output, replacing undecodable bytes instead of raising."""
    if not raw:
        return ""
    return raw.decode("utf-8", errors="replace")


def build_argv(executable: str, args: Sequence[object]) -> List[str]:
    return [str(executable), *(str(arg) for arg in args)]


def spawn(argv: Sequence[str]) -> subprocess.Popen:
    """Start ``argv`` with both output pipes attached to the parent."""
    try:
        return subprocess.Popen(
            list(argv),
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            start_new_session=NEW_SESSION,
        )
    except OSError as exc:
        raise ToolNotFound(argv[0], exc.strerror or str(exc)) from exc


def stop_process(proc: subprocess.Popen, *, grace: float = TERMINATE_GRACE_S) -> None:
    """
    Terminate ``proc`` with its descendants and release its pipes.

    A descendant that escaped the process group can keep the pipes open
    indefinitely; after ``grace`` seconds they are closed without waiting
    for EOF.
    """
    terminate_process_tree(proc.pid, grace=grace, process_group=NEW_SESSION)
    try:
        proc.communicate(timeout=grace)
    except subprocess.TimeoutExpired:
        logger.warning("pid %s: output still held open after stop, closing pipes", proc.pid)
        for pipe in (proc.stdout, proc.stderr):
            if pipe is not None:
                pipe.close()
        proc.kill()
        proc.wait()


def execute(
    executable: str,
    args: Sequence[object] = (),
    *,
    timeout: Optional[float] = None,
    cancel_event: Optional[threading.Event] = None,
) -> CommandResult:
    """
    Run ``executable`` with ``args`` to completion and capture its output.

    Blocks until the process exits. With ``timeout`` (seconds) or a
    ``cancel_event`` the call becomes bounded: on expiry or cancellation
    the process tree is terminated and :class:`CommandTimeout` is raised.

    Raises :class:`ToolNotFound` if the executable cannot be spawned.
    """
    argv = build_argv(executable, args)
    proc = spawn(argv)
    logger.debug("Started pid %s: %s", proc.pid, " ".join(argv))

    deadline = None if timeout is None else time.monotonic() + float(timeout)
    while True:
        wait: Optional[float] = CANCEL_POLL_S if cancel_event is not None else None
        if deadline is not None:
            remaining = max(0.0, deadline - time.monotonic())
            wait = remaining if wait is None else min(wait, remaining)
        try:
            stdout, stderr = proc.communicate(timeout=wait)
            break
        except subprocess.TimeoutExpired:
            cancelled = cancel_event is not None and cancel_event.is_set()
            expired = deadline is not None and time.monotonic() >= deadline
            if not (cancelled or expired):
                continue
            logger.warning(
                "%s pid %s: %s",
                "Cancelling" if cancelled else "Deadline expired for",
                proc.pid,
                " ".join(argv),
            )
            stop_process(proc)
            raise CommandTimeout(argv, timeout, cancelled=cancelled)
        except KeyboardInterrupt:
            # The tool runs in its own session and no longer sees the terminal's SIGINT.
            stop_process(proc)
            raise

    err_text = decode_output(stderr)
    return CommandResult(
        success=proc.returncode == 0,
        stdout=decode_output(stdout),
        stderr=err_text or None,
        returncode=proc.returncode,
        args=argv,
    )


Runner = Callable[..., CommandResult]


class CommandGateway:
    """
    One external tool bound to an executable path and optional fixed args.

    ``for_device`` derives a gateway that targets a single serial, which is
    how the bridge and flashing tools address one of several devices.
    """

    def __init__(
        self,
        executable: str,
        *,
        prefix_args: Sequence[str] = (),
        default_timeout: Optional[float] = None,
        runner: Runner = execute,
    ) -> None:
        self.executable = str(executable)
        self.prefix_args = tuple(str(arg) for arg in prefix_args)
        self.default_timeout = default_timeout
        self._runner = runner

    def __repr__(self) -> str:
        return f"CommandGateway({self.executable!r}, prefix_args={self.prefix_args!r})"

    def for_device(self, serial: str) -> "CommandGateway":
        return CommandGateway(
            self.executable,
            prefix_args=(*self.prefix_args, "-s", str(serial)),
            default_timeout=self.default_timeout,
            runner=self._runner,
        )

    def argv(self, *args: object) -> List[str]:
        return build_argv(self.executable, (*self.prefix_args, *args))

    def run(self, *args: object, timeout: object = _UNSET) -> CommandResult:
        """Run the tool with ``args``; raises :class:`ToolNotFound`."""
        limit = self.default_timeout if timeout is _UNSET else timeout
        return self._runner(
            self.executable,
            (*self.prefix_args, *args),
            timeout=limit,
        )

    def check_output(self, *args: object, timeout: object = _UNSET) -> str:
        """Like :meth:`run` but raise :class:`CommandFailed` on a non-zero exit."""
        result = self.run(*args, timeout=timeout)
        if not result.success:
            raise CommandFailed(self.argv(*args), result.returncode, result.stderr)
        return result.stdout

    def is_available(self) -> bool:
        """Return True if ``<tool> --version`` runs and exits successfully."""
        try:
            return self._runner(self.executable, ("--version",), timeout=self.default_timeout).success
        except (ToolNotFound, CommandTimeout):
            return False
