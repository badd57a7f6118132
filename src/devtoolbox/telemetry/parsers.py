"""
Parsers for the text that device shell commands print.

Each parser takes the raw output of one command and either returns a
typed value or raises :class:`~devtoolbox.errors.ParseFailure`, so the
sampler can skip one metric without losing the others.
"""

from __future__ import annotations

import logging
import math
from typing import Dict, Iterable, List, Optional, Sequence

from ..errors import ParseFailure
from .models import BatteryInfo, InterfaceCounters, MemoryInfo, ProcessInfo

logger = logging.getLogger(__name__)

DEFAULT_INTERFACES = ("wlan0", "rmnet0", "eth0")

_BYTE_UNITS = ("B", "KB", "MB", "GB", "TB")

_POWER_SOURCE_KEYS = {
    "AC powered": "AC Powered",
    "USB powered": "USB Powered",
    "Wireless powered": "Wireless Powered",
}


def _to_float(token: str) -> Optional[float]:
    """Parse a finite number; ``nan`` and ``inf`` count as unparseable."""
    try:
        value = float(token)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def _key_values(text: str) -> Dict[str, str]:
    """Split ``key: value`` lines; later duplicates do not replace earlier ones."""
    pairs: Dict[str, str] = {}
    for line in text.splitlines():
        key, sep, value = line.partition(":")
        if not sep:
            continue
        pairs.setdefault(key.strip(), value.strip())
    return pairs


# ---------------------------------------------------------------------- CPU
def parse_load_average(text: str) -> float:
    """Return the 1-minute load: the first numeric token of the first line."""
    lines = text.strip().splitlines()
    if not lines:
        raise ParseFailure("cpu_load", text, "empty output")
    for token in lines[0].split():
        try:
            value = float(token)
        except ValueError:
            continue
        if not math.isfinite(value):
            raise ParseFailure("cpu_load", text, "load is not finite")
        return value
    raise ParseFailure("cpu_load", text, "no numeric token on first line")


def format_load_average(text: str) -> str:
    parts = text.split()
    if len(parts) < 3:
        raise ParseFailure("cpu_load", text, "expected three load figures")
    return f"Load: {parts[0]} {parts[1]} {parts[2]} (1m 5m 15m)"


def parse_cpu_count(text: str) -> int:
    """Count ``processor`` entries in ``/proc/cpuinfo``."""
    count = sum(1 for line in text.splitlines() if line.startswith("processor"))
    if count == 0:
        raise ParseFailure("cpu_count", text, "no processor entries")
    return count


# ---------------------------------------------------------------------- memory
def _kb_value(raw: Optional[str]) -> Optional[int]:
    if not raw:
        return None
    try:
        return int(raw.split()[0])
    except (IndexError, ValueError):
        return None


def parse_meminfo(text: str) -> MemoryInfo:
    """Parse ``/proc/meminfo``; ``MemTotal`` and ``MemAvailable`` are required."""
    fields = _key_values(text)
    total = _kb_value(fields.get("MemTotal"))
    available = _kb_value(fields.get("MemAvailable"))
    if total is None or available is None:
        raise ParseFailure("memory_usage", text, "MemTotal/MemAvailable missing")
    if total <= 0:
        raise ParseFailure("memory_usage", text, "MemTotal is zero")
    return MemoryInfo(
        total_kb=total,
        available_kb=available,
        free_kb=_kb_value(fields.get("MemFree")),
        buffers_kb=_kb_value(fields.get("Buffers")),
        cached_kb=_kb_value(fields.get("Cached")),
        swap_total_kb=_kb_value(fields.get("SwapTotal")),
        swap_free_kb=_kb_value(fields.get("SwapFree")),
    )


# ---------------------------------------------------------------------- battery
def parse_battery(text: str) -> BatteryInfo:
    """
    Parse ``dumpsys battery``.

    ``temperature`` is reported in tenths of a degree and ``voltage`` in
    millivolts. Output with neither a level nor a temperature is rejected.
    """
    fields = _key_values(text)
    info = BatteryInfo()

    level = fields.get("level")
    if level is not None:
        info.level_percent = _to_float(level)
    temperature = _to_float(fields.get("temperature", ""))
    if temperature is not None:
        info.temperature_c = temperature / 10.0
    voltage = _to_float(fields.get("voltage", ""))
    if voltage is not None:
        info.voltage_v = voltage / 1000.0
    info.health = fields.get("health")
    info.status = fields.get("status")
    for key, label in _POWER_SOURCE_KEYS.items():
        if key in fields:
            info.power_sources[label] = fields[key]

    if info.level_percent is None and info.temperature_c is None:
        raise ParseFailure("battery", text, "no level or temperature")
    return info


# ---------------------------------------------------------------------- thermal
def parse_thermal_zone(text: str) -> float:
    """Convert a thermal zone reading in millidegrees to degrees Celsius."""
    value = _to_float(text.strip())
    if value is None:
        raise ParseFailure("thermal", text, "not a number")
    return value / 1000.0


# ---------------------------------------------------------------------- network
def parse_net_dev(
    text: str,
    interfaces: Iterable[str] = DEFAULT_INTERFACES,
) -> Dict[str, InterfaceCounters]:
    """
    Sum receive/transmit byte counters from ``/proc/net/dev`` per interface.

    Only ``interfaces`` are reported; the two header lines are skipped.
    """
    wanted = set(interfaces)
    counters: Dict[str, InterfaceCounters] = {}
    for line in text.splitlines()[2:]:
        parts = line.replace(":", ": ", 1).split()
        if len(parts) < 10:
            continue
        name = parts[0].rstrip(":")
        if name not in wanted:
            continue
        try:
            rx, tx = int(parts[1]), int(parts[9])
        except ValueError:
            logger.debug("Bad counters for %s: %r", name, line)
            continue
        entry = counters.setdefault(name, InterfaceCounters())
        entry.rx_bytes += rx
        entry.tx_bytes += tx
    if not counters:
        raise ParseFailure("network", text, "no monitored interfaces")
    return counters


def format_bytes(count: int) -> str:
    """Format a byte count with 1024-based units: ``512 B``, ``1.50 KB``."""
    size = float(count)
    unit = 0
    while size >= 1024.0 and unit < len(_BYTE_UNITS) - 1:
        size /= 1024.0
        unit += 1
    if unit == 0:
        return f"{int(count)} {_BYTE_UNITS[0]}"
    return f"{size:.2f} {_BYTE_UNITS[unit]}"


def format_net_stats(counters: Dict[str, InterfaceCounters]) -> Dict[str, str]:
    stats: Dict[str, str] = {}
    for name, entry in counters.items():
        stats[f"{name} RX"] = format_bytes(entry.rx_bytes)
        stats[f"{name} TX"] = format_bytes(entry.tx_bytes)
    return stats


# ---------------------------------------------------------------------- processes
def _sorted_by_pid(processes: List[ProcessInfo]) -> List[ProcessInfo]:
    return sorted(processes, key=lambda proc: proc.pid_number)


def _rows(text: str, min_fields: int) -> List[Sequence[str]]:
    rows = []
    for line in text.splitlines()[1:]:
        parts = line.split()
        if len(parts) >= min_fields:
            rows.append(parts)
    return rows


def parse_process_list(text: str) -> List[ProcessInfo]:
    """Parse ``ps -A -o PID,NAME,%CPU,RSS,USER,S`` output, sorted by pid."""
    processes = [
        ProcessInfo(
            pid=parts[0],
            name=parts[1],
            cpu_percent=parts[2],
            memory=f"{parts[3]} KB",
            user=parts[4],
            state=parts[5],
        )
        for parts in _rows(text, 6)
    ]
    if not processes:
        raise ParseFailure("processes", text, "no process rows")
    return _sorted_by_pid(processes)


def parse_legacy_process_list(text: str) -> List[ProcessInfo]:
    """Parse plain ``ps`` output (USER PID PPID VSZ RSS WCHAN ADDR S NAME)."""
    processes = [
        ProcessInfo(
            pid=parts[1],
            name=parts[8],
            cpu_percent="N/A",
            memory=f"{parts[4]} KB",
            user=parts[0],
            state=parts[7],
        )
        for parts in _rows(text, 9)
    ]
    if not processes:
        raise ParseFailure("processes", text, "no process rows")
    return _sorted_by_pid(processes)
