"""Qt worker that streams an external tool's output as signals."""

from __future__ import annotations

import threading
from typing import Optional, Sequence

from PySide6.QtCore import QObject, Signal, Slot

from ..errors import ToolboxError
from .streaming import execute_streaming


class StreamingWorker(QObject):
    """QObject-based worker around :func:`execute_streaming`.

    It is meant to live in its own QThread: lines are emitted from the
    worker thread and reach GUI slots through queued connections, so the
    GUI never touches state from a reader thread.
    """

    line_received = Signal(str)
    error = Signal(str)
    finished = Signal(object)  # StreamingResult | None

    def __init__(
        self,
        executable: str,
        args: Sequence[str],
        *,
        timeout: Optional[float] = None,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._executable = executable
        self._args = list(args)
        self._timeout = timeout
        self._cancel = threading.Event()

    @Slot()
    def start(self) -> None:
        """Entry point for the QThread: run the tool until it exits or is stopped."""
        result = None
        try:
            result = execute_streaming(
                self._executable,
                self._args,
                self.line_received.emit,
                cancel_event=self._cancel,
                timeout=self._timeout,
            )
        except ToolboxError as exc:
            self.error.emit(str(exc))
        finally:
            self.finished.emit(result)

    @Slot()
    def stop(self) -> None:
        """Terminate the running tool; ``finished`` follows once it has exited."""
        self._cancel.set()
