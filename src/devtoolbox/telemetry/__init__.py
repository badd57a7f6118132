"""Device telemetry: text parsers, bounded metric history and the sampler.

:class:`TelemetrySampler` runs shell probes against the selected device on
an interval gate and appends the parsed numbers to a :class:`MetricStore`,
whose per-metric ring buffers are what plot code reads.
"""

from .buffers import (
    BATTERY_LEVEL,
    BATTERY_TEMPERATURE,
    CPU_LOAD,
    DEFAULT_HISTORY_CAPACITY,
    MEMORY_USAGE,
    THERMAL,
    TRACKED_METRICS,
    MetricSeries,
    MetricStore,
)
from .models import Sample, TelemetrySnapshot
from .parsers import format_bytes
from .ringbuffer import RingBuffer
from .sampler import MetricProbe, TelemetrySampler, default_probes

__all__ = [
    "BATTERY_LEVEL",
    "BATTERY_TEMPERATURE",
    "CPU_LOAD",
    "DEFAULT_HISTORY_CAPACITY",
    "MEMORY_USAGE",
    "THERMAL",
    "TRACKED_METRICS",
    "MetricProbe",
    "MetricSeries",
    "MetricStore",
    "RingBuffer",
    "Sample",
    "TelemetrySampler",
    "TelemetrySnapshot",
    "default_probes",
    "format_bytes",
]
