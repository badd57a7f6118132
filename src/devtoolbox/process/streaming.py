"""
Streaming execution of long-running external tools.

Two reader threads (one per pipe) push decoded lines onto a single queue;
the calling thread drains that queue, hands every line to ``on_line`` as
it arrives and only then collects the exit status. :class:`StreamingSession`
moves the whole run onto a background thread for callers that own a tick
loop and must not block it.
"""

from __future__ import annotations

import logging
import queue
import threading
import time
from dataclasses import dataclass
from typing import IO, Callable, List, Optional, Sequence

from ..errors import ToolboxError
from .gateway import CANCEL_POLL_S, build_argv, spawn
from .proctree import NEW_SESSION, TERMINATE_GRACE_S, terminate_process_tree

logger = logging.getLogger(__name__)

ERROR_MARKERS = ("FAILED", "error")

LineHandler = Callable[[str], None]

_EOF = object()


@dataclass
class StreamingResult:
    """Aggregated outcome of a streamed run."""

    success: bool
    aggregated_output: str
    aggregated_error: Optional[str] = None
    returncode: Optional[int] = None
    cancelled: bool = False


def is_error_line(line: str) -> bool:
    """Case-sensitive check for the markers the flashing tools print on failure."""
    return any(marker in line for marker in ERROR_MARKERS)


def _pump_lines(
    stream: IO[bytes],
    channel: "queue.Queue[object]",
    *,
    encoding: str = "utf-8",
    errors: str = "replace",
) -> None:
    """Forward each line of ``stream`` into ``channel``, then post EOF."""
    try:
        for raw in iter(stream.readline, b""):
            channel.put(raw.decode(encoding, errors=errors).rstrip("\r\n"))
    except (OSError, ValueError) as exc:
        logger.debug("Pipe reader stopped early: %s", exc)
    finally:
        try:
            stream.close()
        except OSError:
            pass
        channel.put(_EOF)


def execute_streaming(
    executable: str,
    args: Sequence[object],
    on_line: LineHandler,
    *,
    cancel_event: Optional[threading.Event] = None,
    timeout: Optional[float] = None,
) -> StreamingResult:
    """
    Run ``executable`` and deliver its stdout/stderr lines to ``on_line``.

    Lines from the two pipes interleave in arrival order. Each line is also
    sorted into the output or error aggregate (see :func:`is_error_line`);
    ``success`` reflects only the exit status.

    Setting ``cancel_event`` or passing ``timeout`` terminates the process
    tree; the result is then returned with ``cancelled=True``.

    Raises :class:`~devtoolbox.errors.ToolNotFound` if the tool cannot start.
    """
    argv = build_argv(executable, args)
    proc = spawn(argv)
    logger.debug("Streaming pid %s: %s", proc.pid, " ".join(argv))

    channel: "queue.Queue[object]" = queue.Queue()
    readers = [
        threading.Thread(
            target=_pump_lines,
            args=(pipe, channel),
            name=f"stream-{name}-{proc.pid}",
            daemon=True,
        )
        for name, pipe in (("stdout", proc.stdout), ("stderr", proc.stderr))
    ]
    for reader in readers:
        reader.start()

    deadline = None if timeout is None else time.monotonic() + float(timeout)
    bounded = cancel_event is not None or deadline is not None
    output_lines: List[str] = []
    error_lines: List[str] = []
    open_pipes = len(readers)
    cancelled = False
    # Set once stopped: a descendant outside the process group may still hold
    # a pipe, so EOF is only awaited until then.
    abandon_at: Optional[float] = None

    while open_pipes:
        if bounded and not cancelled and (
            (cancel_event is not None and cancel_event.is_set())
            or (deadline is not None and time.monotonic() >= deadline)
        ):
            logger.info("Stopping streamed pid %s", proc.pid)
            cancelled = True
            terminate_process_tree(proc.pid, process_group=NEW_SESSION)
            abandon_at = time.monotonic() + TERMINATE_GRACE_S
        if abandon_at is not None and time.monotonic() >= abandon_at:
            logger.warning("pid %s: output still held open after stop, leaving readers", proc.pid)
            break
        try:
            item = channel.get(timeout=CANCEL_POLL_S if bounded else None)
        except queue.Empty:
            continue
        except KeyboardInterrupt:
            terminate_process_tree(proc.pid, process_group=NEW_SESSION)
            raise

        if item is _EOF:
            open_pipes -= 1
            continue

        line = str(item)
        if is_error_line(line):
            error_lines.append(line)
        else:
            output_lines.append(line)
        try:
            on_line(line)
        except Exception:
            logger.exception("Line handler failed for %r", line)

    if not open_pipes:
        for reader in readers:
            reader.join()
    returncode = proc.wait()

    return StreamingResult(
        success=returncode == 0 and not cancelled,
        aggregated_output="\n".join(output_lines),
        aggregated_error="\n".join(error_lines) if error_lines else None,
        returncode=returncode,
        cancelled=cancelled,
    )


class StreamingSession:
    """
    Background streamed run whose lines are collected by the owner's tick.

    The worker thread only enqueues lines; :meth:`drain` is called from the
    thread that owns the UI state, so nothing else is mutated concurrently.
    """

    def __init__(
        self,
        executable: str,
        args: Sequence[object],
        *,
        timeout: Optional[float] = None,
        thread_name: Optional[str] = None,
    ) -> None:
        self.executable = str(executable)
        self.args = [str(arg) for arg in args]
        self._timeout = timeout
        self._lines: "queue.Queue[str]" = queue.Queue()
        self._cancel = threading.Event()
        self._result: Optional[StreamingResult] = None
        self._error: Optional[ToolboxError] = None
        self._thread = threading.Thread(
            target=self._run,
            name=thread_name or f"StreamingSession({self.executable})",
            daemon=True,
        )

    def _run(self) -> None:
        try:
            self._result = execute_streaming(
                self.executable,
                self.args,
                self._lines.put,
                cancel_event=self._cancel,
                timeout=self._timeout,
            )
        except ToolboxError as exc:
            logger.warning("Streaming %s failed: %s", self.executable, exc)
            self._error = exc

    def start(self) -> "StreamingSession":
        self._thread.start()
        return self

    def drain(self, max_lines: Optional[int] = None) -> List[str]:
        """Return the lines received since the previous call, oldest first."""
        lines: List[str] = []
        while max_lines is None or len(lines) < max_lines:
            try:
                lines.append(self._lines.get_nowait())
            except queue.Empty:
                break
        return lines

    def stop(self, *, join: bool = False, timeout: Optional[float] = None) -> None:
        """Terminate the underlying process (not just the reader loop)."""
        self._cancel.set()
        if join:
            self._thread.join(timeout)

    def join(self, timeout: Optional[float] = None) -> None:
        self._thread.join(timeout)

    def is_alive(self) -> bool:
        return self._thread.is_alive()

    def done(self) -> bool:
        return self._thread.ident is not None and not self._thread.is_alive()

    @property
    def result(self) -> Optional[StreamingResult]:
        return self._result

    @property
    def error(self) -> Optional[ToolboxError]:
        return self._error


def start_streaming(
    executable: str,
    args: Sequence[object],
    *,
    timeout: Optional[float] = None,
    thread_name: Optional[str] = None,
) -> StreamingSession:
    """Start :func:`execute_streaming` on a daemon thread and return its session."""
    return StreamingSession(
        executable,
        args,
        timeout=timeout,
        thread_name=thread_name,
    ).start()
