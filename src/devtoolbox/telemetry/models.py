"""Dataclasses produced by the telemetry parsers and the sampler."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional


@dataclass(frozen=True)
class Sample:
    """One observation; ``timestamp`` is seconds since the session started."""

    timestamp: float
    value: float


@dataclass
class MemoryInfo:
    total_kb: int
    available_kb: int
    free_kb: Optional[int] = None
    buffers_kb: Optional[int] = None
    cached_kb: Optional[int] = None
    swap_total_kb: Optional[int] = None
    swap_free_kb: Optional[int] = None

    @property
    def usage_percent(self) -> float:
        return (self.total_kb - self.available_kb) / self.total_kb * 100.0

    def as_display(self) -> Dict[str, str]:
        rows = {
            "Total Memory": self.total_kb,
            "Free Memory": self.free_kb,
            "Available Memory": self.available_kb,
            "Buffers": self.buffers_kb,
            "Cached": self.cached_kb,
            "Swap Total": self.swap_total_kb,
            "Swap Free": self.swap_free_kb,
        }
        display = {key: f"{value} kB" for key, value in rows.items() if value is not None}
        display["Memory Usage"] = f"{self.usage_percent:.1f}%"
        return display


@dataclass
class BatteryInfo:
    level_percent: Optional[float] = None
    temperature_c: Optional[float] = None
    voltage_v: Optional[float] = None
    health: Optional[str] = None
    status: Optional[str] = None
    power_sources: Dict[str, str] = field(default_factory=dict)

    def as_display(self) -> Dict[str, str]:
        display: Dict[str, str] = {}
        if self.level_percent is not None:
            display["Battery Level"] = f"{self.level_percent:g}%"
        if self.temperature_c is not None:
            display["Temperature"] = f"{self.temperature_c:.1f}°C"
        if self.voltage_v is not None:
            display["Voltage"] = f"{self.voltage_v:.2f}V"
        if self.health is not None:
            display["Health"] = self.health
        if self.status is not None:
            display["Status"] = self.status
        display.update(self.power_sources)
        return display


@dataclass
class InterfaceCounters:
    rx_bytes: int = 0
    tx_bytes: int = 0


@dataclass
class ProcessInfo:
    pid: str
    name: str
    cpu_percent: str
    memory: str
    user: str
    state: str

    @property
    def pid_number(self) -> int:
        try:
            return int(self.pid)
        except ValueError:
            return 0


@dataclass
class TelemetrySnapshot:
    """Latest human-readable readings, replaced on every sampling pass."""

    cpu_usage: str = ""
    memory_info: Dict[str, str] = field(default_factory=dict)
    battery_info: Dict[str, str] = field(default_factory=dict)
    thermal_info: str = ""
    network_stats: Dict[str, str] = field(default_factory=dict)
    processes: List[ProcessInfo] = field(default_factory=list)
    last_update: str = "Never"
