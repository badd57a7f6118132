"""Non-visual Qt controller that drives the sampler from a timer."""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from PySide6.QtCore import QObject, QTimer, Signal, Slot

from ..process.streaming import StreamingSession, start_streaming
from ..telemetry.sampler import TelemetrySampler

logger = logging.getLogger(__name__)


class MonitorController(QObject):
    """
    Owns the UI tick for one device family.

    Every timeout runs the sampler's interval gate and drains the attached
    streaming session, so sampler state and streamed lines are only ever
    touched on the Qt thread.
    """

    samples_updated = Signal()
    stream_lines = Signal(list)
    stream_finished = Signal(object)  # StreamingResult | None
    error_reported = Signal(str)

    def __init__(
        self,
        sampler: TelemetrySampler,
        *,
        tick_ms: int = 100,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self._sampler = sampler
        self._stream: Optional[StreamingSession] = None
        # Replaced sessions, drained until they report finished.
        self._retired: List[StreamingSession] = []
        self._timer = QTimer(self)
        self._timer.setInterval(max(1, int(tick_ms)))
        self._timer.timeout.connect(self.on_tick)

    @property
    def sampler(self) -> TelemetrySampler:
        return self._sampler

    @property
    def stream(self) -> Optional[StreamingSession]:
        return self._stream

    # --------------------------------------------------------------- timer
    def start(self) -> None:
        self._timer.start()

    def stop(self) -> None:
        self._timer.stop()

    def is_running(self) -> bool:
        return self._timer.isActive()

    # --------------------------------------------------------------- sampling
    @Slot(bool)
    def set_sampling(self, enabled: bool) -> None:
        self._sampler.set_enabled(enabled)
        if enabled:
            self.samples_updated.emit()

    # --------------------------------------------------------------- streaming
    def start_stream(
        self,
        executable: str,
        args: Sequence[str],
        *,
        timeout: Optional[float] = None,
    ) -> StreamingSession:
        """
        Start a background streamed command; its lines arrive via ``stream_lines``.

        A session that is still attached is stopped; its remaining lines and
        its ``stream_finished`` are still delivered on later ticks.
        """
        if self._stream is not None:
            if not self._stream.done():
                self._stream.stop()
            self._retired.append(self._stream)
        self._stream = start_streaming(executable, args, timeout=timeout)
        return self._stream

    @Slot()
    def stop_stream(self) -> None:
        if self._stream is not None:
            self._stream.stop()

    # --------------------------------------------------------------- tick
    @Slot()
    def on_tick(self) -> None:
        if self._sampler.tick():
            self.samples_updated.emit()
        self._drain_stream()

    def _drain_stream(self) -> None:
        for session in list(self._retired):
            if self._drain_session(session):
                self._retired.remove(session)
        if self._stream is not None and self._drain_session(self._stream):
            self._stream = None

    def _drain_session(self, session: StreamingSession) -> bool:
        """Emit pending lines; return True once the session has finished."""
        finished = session.done()
        lines = session.drain()
        if lines:
            self.stream_lines.emit(lines)
        if not finished:
            return False
        if session.error is not None:
            self.error_reported.emit(str(session.error))
        self.stream_finished.emit(session.result)
        return True
