"""
Interval-gated telemetry sampling for the selected bridge device.

The sampler does not own a timer: whoever drives the UI calls
:meth:`TelemetrySampler.tick` as often as it likes and a sampling pass
runs only once ``interval`` seconds have gone by since the previous one.
Ticks that arrive late trigger a single pass; missed intervals are not
backfilled.
"""

from __future__ import annotations

import functools
import logging
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from ..devices.registry import DeviceRegistry
from ..errors import CommandFailed, DeviceUnavailable, ParseFailure, ToolboxError
from ..process.gateway import CommandGateway
from ..tools.debug import time_block
from . import parsers
from .buffers import (
    BATTERY_LEVEL,
    BATTERY_TEMPERATURE,
    CPU_LOAD,
    MEMORY_USAGE,
    THERMAL,
    MetricStore,
)
from .models import BatteryInfo, MemoryInfo, Sample, TelemetrySnapshot

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_S = 1.0

Recorder = Callable[[TelemetrySnapshot, Any, str], Mapping[str, float]]


@dataclass(frozen=True)
class MetricProbe:
    """
    One shell command on the device plus how to read its output.

    ``parse`` turns raw text into a value (raising ``ParseFailure``),
    ``record`` stores display text on the snapshot and returns the numeric
    series values to append. ``fallback`` is tried when the command fails
    or its output does not parse.
    """

    name: str
    command: Tuple[str, ...]
    parse: Callable[[str], Any]
    record: Recorder
    fallback: Optional["MetricProbe"] = None


# ---------------------------------------------------------------------- recorders
def _record_cpu_load(snapshot: TelemetrySnapshot, load: float, raw: str) -> Dict[str, float]:
    try:
        snapshot.cpu_usage = parsers.format_load_average(raw)
    except ParseFailure:
        snapshot.cpu_usage = f"Load: {load:g}"
    return {CPU_LOAD: load}


def _record_cpu_cores(snapshot: TelemetrySnapshot, cores: int, raw: str) -> Dict[str, float]:
    if snapshot.cpu_usage.startswith("Load:"):
        snapshot.cpu_usage += f" | {cores} cores"
    return {}


def _record_memory(snapshot: TelemetrySnapshot, memory: MemoryInfo, raw: str) -> Dict[str, float]:
    snapshot.memory_info = memory.as_display()
    return {MEMORY_USAGE: memory.usage_percent}


def _record_battery(snapshot: TelemetrySnapshot, battery: BatteryInfo, raw: str) -> Dict[str, float]:
    snapshot.battery_info = battery.as_display()
    values: Dict[str, float] = {}
    if battery.level_percent is not None:
        values[BATTERY_LEVEL] = battery.level_percent
    if battery.temperature_c is not None:
        values[BATTERY_TEMPERATURE] = battery.temperature_c
    return values


def _record_thermal(snapshot: TelemetrySnapshot, celsius: float, raw: str) -> Dict[str, float]:
    snapshot.thermal_info = f"{celsius:.1f}°C"
    return {THERMAL: celsius}


def _record_network(snapshot: TelemetrySnapshot, counters, raw: str) -> Dict[str, float]:
    snapshot.network_stats = parsers.format_net_stats(counters)
    return {}


def _record_processes(snapshot: TelemetrySnapshot, processes, raw: str) -> Dict[str, float]:
    snapshot.processes = list(processes)
    return {}


def default_probes(
    interfaces: Iterable[str] = parsers.DEFAULT_INTERFACES,
) -> List[MetricProbe]:
    """The probes run against an Android device on every pass."""
    return [
        MetricProbe("cpu_load", ("cat", "/proc/loadavg"), parsers.parse_load_average, _record_cpu_load),
        MetricProbe("cpu_cores", ("cat", "/proc/cpuinfo"), parsers.parse_cpu_count, _record_cpu_cores),
        MetricProbe("memory", ("cat", "/proc/meminfo"), parsers.parse_meminfo, _record_memory),
        MetricProbe("battery", ("dumpsys", "battery"), parsers.parse_battery, _record_battery),
        MetricProbe(
            "thermal",
            ("cat", "/sys/class/thermal/thermal_zone0/temp"),
            parsers.parse_thermal_zone,
            _record_thermal,
        ),
        MetricProbe(
            "network",
            ("cat", "/proc/net/dev"),
            functools.partial(parsers.parse_net_dev, interfaces=tuple(interfaces)),
            _record_network,
        ),
        MetricProbe(
            "processes",
            ("ps", "-A", "-o", "PID,NAME,%CPU,RSS,USER,S"),
            parsers.parse_process_list,
            _record_processes,
            fallback=MetricProbe(
                "processes", ("ps",), parsers.parse_legacy_process_list, _record_processes
            ),
        ),
    ]


class TelemetrySampler:
    """
    Samples the registry's selected device into a :class:`MetricStore`.

    Idle until :meth:`enable`; the sampler is the only writer of its store
    and of :attr:`snapshot`.
    """

    def __init__(
        self,
        registry: DeviceRegistry,
        store: Optional[MetricStore] = None,
        *,
        interval: float = DEFAULT_INTERVAL_S,
        clock: Callable[[], float] = time.monotonic,
        probes: Optional[Sequence[MetricProbe]] = None,
        shell_prefix: Sequence[str] = ("shell",),
    ) -> None:
        self.registry = registry
        self.store = store if store is not None else MetricStore()
        self._interval = DEFAULT_INTERVAL_S
        self.set_interval(interval)
        self._clock = clock
        self._probes = list(probes) if probes is not None else default_probes()
        self._shell_prefix = tuple(shell_prefix)
        self._enabled = False
        self.start_time: Optional[float] = None
        self.last_sample_time: Optional[float] = None
        self.snapshot = TelemetrySnapshot()

    # ------------------------------------------------------------------ settings
    @property
    def interval(self) -> float:
        return self._interval

    def set_interval(self, seconds: float) -> None:
        seconds = float(seconds)
        if seconds <= 0.0:
            raise ValueError("sampling interval must be positive")
        self._interval = seconds

    def set_capacity(self, capacity: int) -> None:
        """Resize every series; excess history is dropped immediately."""
        self.store.set_capacity_all(capacity)

    @property
    def sampling(self) -> bool:
        return self._enabled

    # ------------------------------------------------------------------ state machine
    def _now(self, now: Optional[float]) -> float:
        return self._clock() if now is None else float(now)

    def enable(self, now: Optional[float] = None) -> None:
        """Start a fresh session and take the first sample right away."""
        if self._enabled:
            return
        now = self._now(now)
        self._enabled = True
        self.store.clear_all()
        self.start_time = now
        self.sample_pass(now)
        self.last_sample_time = now

    def disable(self) -> None:
        """Stop sampling; collected history stays readable."""
        self._enabled = False
        self.last_sample_time = None

    def set_enabled(self, enabled: bool, now: Optional[float] = None) -> None:
        if enabled:
            self.enable(now)
        else:
            self.disable()

    def toggle(self, now: Optional[float] = None) -> bool:
        self.set_enabled(not self._enabled, now)
        return self._enabled

    def clear(self, now: Optional[float] = None) -> None:
        """Drop all history and restart the session clock if still sampling."""
        self.store.clear_all()
        self.start_time = self._now(now) if self._enabled else None

    def tick(self, now: Optional[float] = None) -> bool:
        """Run a pass if the interval has elapsed; return True if one ran."""
        if not self._enabled:
            return False
        now = self._now(now)
        if self.last_sample_time is not None and now - self.last_sample_time < self._interval:
            return False
        self.sample_pass(now)
        self.last_sample_time = now
        return True

    # ------------------------------------------------------------------ sampling
    def sample_pass(self, now: Optional[float] = None) -> int:
        """
        Run every probe once against the selected device.

        Returns the number of samples appended. A failing probe is logged
        and skipped; without a selected device the pass does nothing.
        """
        now = self._now(now)
        try:
            gateway = self.registry.gateway_for_selected()
        except DeviceUnavailable as exc:
            logger.debug("Sampling pass skipped: %s", exc)
            return 0

        if self.start_time is None:
            self.start_time = now
        elapsed = now - self.start_time

        snapshot = TelemetrySnapshot(cpu_usage="CPU usage unavailable", thermal_info="Not available")
        appended = 0
        with time_block("sampling pass"):
            for probe in self._probes:
                try:
                    values = self._run_probe(gateway, probe, snapshot)
                except ParseFailure as exc:
                    logger.debug("Skipping %s this pass: %s", probe.name, exc)
                    continue
                except ToolboxError as exc:
                    logger.warning("Skipping %s this pass: %s", probe.name, exc)
                    continue
                for metric, value in values.items():
                    self.store.push(metric, Sample(elapsed, float(value)))
                    appended += 1

        snapshot.last_update = datetime.now().strftime("%H:%M:%S")
        self.snapshot = snapshot
        return appended

    def _run_probe(
        self,
        gateway: CommandGateway,
        probe: MetricProbe,
        snapshot: TelemetrySnapshot,
    ) -> Mapping[str, float]:
        args = (*self._shell_prefix, *probe.command)
        try:
            result = gateway.run(*args)
            if not result.success:
                raise CommandFailed(gateway.argv(*args), result.returncode, result.stderr)
            parsed = probe.parse(result.stdout)
        except (CommandFailed, ParseFailure):
            if probe.fallback is None:
                raise
            return self._run_probe(gateway, probe.fallback, snapshot)
        return probe.record(snapshot, parsed, result.stdout)
