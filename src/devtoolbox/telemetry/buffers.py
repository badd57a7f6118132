"""
Bounded per-metric sample history that plot code can snapshot.

The sampler is the single writer; readers (plot widgets, the CLI) take
copies through :meth:`MetricSeries.snapshot` or :meth:`MetricStore.read`.
"""

from __future__ import annotations

import threading
from typing import Dict, List, Optional, Tuple

import numpy as np

from .models import Sample
from .ringbuffer import RingBuffer

DEFAULT_HISTORY_CAPACITY = 1000

CPU_LOAD = "cpu_load"
MEMORY_USAGE = "memory_usage"
BATTERY_LEVEL = "battery_level"
BATTERY_TEMPERATURE = "battery_temperature"
THERMAL = "thermal"

TRACKED_METRICS = (CPU_LOAD, MEMORY_USAGE, BATTERY_LEVEL, BATTERY_TEMPERATURE, THERMAL)


class MetricSeries:
    """Ring buffer plus lock holding the history of one metric."""

    def __init__(self, capacity: int = DEFAULT_HISTORY_CAPACITY) -> None:
        self._buffer: RingBuffer[Sample] = RingBuffer(capacity)
        self._lock = threading.RLock()

    @property
    def capacity(self) -> int:
        return self._buffer.capacity

    def push(self, sample: Sample) -> None:
        """Append ``sample``; the oldest sample is evicted once full."""
        with self._lock:
            self._buffer.append(sample)

    def set_capacity(self, capacity: int) -> None:
        """Change the bound; lowering it evicts the oldest excess samples now."""
        with self._lock:
            self._buffer.resize(int(capacity))

    def clear(self) -> None:
        with self._lock:
            self._buffer.clear()

    def snapshot(self) -> List[Sample]:
        """Return a copy of the samples, oldest first."""
        with self._lock:
            return list(self._buffer)

    def latest(self) -> Optional[Sample]:
        with self._lock:
            if len(self._buffer) == 0:
                return None
            return self._buffer[-1]

    def __len__(self) -> int:
        with self._lock:
            return len(self._buffer)


class MetricStore:
    """Mapping of metric name -> :class:`MetricSeries`, created on first use."""

    def __init__(self, capacity: int = DEFAULT_HISTORY_CAPACITY) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._default_capacity = int(capacity)
        self._series: Dict[str, MetricSeries] = {}
        self._lock = threading.RLock()

    @property
    def default_capacity(self) -> int:
        return self._default_capacity

    def series(self, metric: str) -> MetricSeries:
        with self._lock:
            found = self._series.get(metric)
            if found is None:
                found = MetricSeries(self._default_capacity)
                self._series[metric] = found
            return found

    def push(self, metric: str, sample: Sample) -> None:
        self.series(metric).push(sample)

    def set_capacity(self, metric: str, capacity: int) -> None:
        self.series(metric).set_capacity(capacity)

    def set_capacity_all(self, capacity: int) -> None:
        """Apply one capacity to every existing series and to new ones."""
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        with self._lock:
            self._default_capacity = int(capacity)
            for found in self._series.values():
                found.set_capacity(capacity)

    def clear(self, metric: str) -> None:
        with self._lock:
            found = self._series.get(metric)
        if found is not None:
            found.clear()

    def clear_all(self) -> None:
        with self._lock:
            series = list(self._series.values())
        for found in series:
            found.clear()

    def read(self, metric: str) -> List[Sample]:
        with self._lock:
            found = self._series.get(metric)
        return found.snapshot() if found is not None else []

    def latest(self, metric: str) -> Optional[Sample]:
        with self._lock:
            found = self._series.get(metric)
        return found.latest() if found is not None else None

    def arrays(self, metric: str) -> Tuple[np.ndarray, np.ndarray]:
        """Return ``(timestamps, values)`` as float64 arrays for plotting."""
        samples = self.read(metric)
        count = len(samples)
        times = np.fromiter((s.timestamp for s in samples), dtype=np.float64, count=count)
        values = np.fromiter((s.value for s in samples), dtype=np.float64, count=count)
        return times, values

    def metrics(self) -> List[str]:
        with self._lock:
            return list(self._series)
