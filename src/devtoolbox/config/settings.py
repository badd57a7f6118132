"""Settings for the command and telemetry pipeline, stored as YAML."""

from __future__ import annotations

import math
import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Mapping, MutableMapping, Optional, Tuple

import yaml

CONFIG_ENV_VAR = "DEVTOOLBOX_CONFIG"
DEFAULT_CONFIG_PATH = Path("~/.config/devtoolbox/config.yaml")

DEFAULT_EXECUTABLES: Dict[str, str] = {
    "adb": "adb",
    "fastboot": "fastboot",
    "qdl": "qdl-rs",
    "qramdump": "qramdump",
}

DEFAULT_INTERFACES: Tuple[str, ...] = ("wlan0", "rmnet0", "eth0")

# Device family name -> key in ``executables``.
FAMILY_EXECUTABLE_KEYS: Dict[str, str] = {
    "adb": "adb",
    "fastboot": "fastboot",
    "edl": "qdl",
    "ramdump": "qramdump",
}


def _as_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return default


@dataclass(slots=True)
class ToolboxConfig:
    """
    Scalar knobs the UI copies in and out of the pipeline.

    ``command_timeout_s`` of ``None`` keeps external calls unbounded.
    """

    sampling_interval_s: float = 1.0
    history_capacity: int = 1000
    command_timeout_s: Optional[float] = None
    ui_tick_ms: int = 100
    log_level: str = "INFO"
    executables: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_EXECUTABLES))
    monitored_interfaces: Tuple[str, ...] = DEFAULT_INTERFACES

    def sanitized(self) -> ToolboxConfig:
        """Return a copy with derived limits applied."""
        try:
            interval = float(self.sampling_interval_s)
        except (TypeError, ValueError):
            interval = 1.0
        if not math.isfinite(interval) or interval <= 0.0:
            interval = 1.0

        timeout = self.command_timeout_s
        if timeout is not None:
            try:
                timeout = float(timeout)
            except (TypeError, ValueError):
                timeout = None
            else:
                if not math.isfinite(timeout) or timeout <= 0.0:
                    timeout = None

        executables = dict(DEFAULT_EXECUTABLES)
        if isinstance(self.executables, Mapping):
            executables.update(
                {str(k): str(v) for k, v in self.executables.items() if v}
            )

        interfaces = self.monitored_interfaces
        if isinstance(interfaces, str):
            interfaces = tuple(part.strip() for part in interfaces.split(",") if part.strip())
        elif not isinstance(interfaces, (list, tuple)):
            interfaces = DEFAULT_INTERFACES

        return ToolboxConfig(
            sampling_interval_s=max(0.05, interval),
            history_capacity=max(1, _as_int(self.history_capacity, 1000)),
            command_timeout_s=timeout,
            ui_tick_ms=max(10, _as_int(self.ui_tick_ms, 100)),
            log_level=str(self.log_level or "INFO").upper(),
            executables=executables,
            monitored_interfaces=tuple(str(name) for name in interfaces),
        )

    def executable_for(self, family_name: str) -> str:
        key = FAMILY_EXECUTABLE_KEYS.get(family_name, family_name)
        return self.executables.get(key, DEFAULT_EXECUTABLES.get(key, key))

    def to_mapping(self) -> Dict[str, Any]:
        data = asdict(self)
        data["monitored_interfaces"] = list(self.monitored_interfaces)
        return data


def _recognized_fields() -> set[str]:
    """Return the dataclass field names accepted by :class:`ToolboxConfig`."""
    return {f.name for f in fields(ToolboxConfig)}


def _normalize_mapping(data: Mapping[str, Any]) -> MutableMapping[str, Any]:
    """Flatten a top-level ``telemetry`` block into the root mapping."""
    if "telemetry" in data and isinstance(data["telemetry"], Mapping):
        merged: MutableMapping[str, Any] = {}
        for key, value in data.items():
            if key == "telemetry":
                merged.update(value)
            else:
                merged[key] = value
        return merged
    return dict(data)


def config_from_mapping(data: Mapping[str, Any] | None) -> ToolboxConfig:
    """Build :class:`ToolboxConfig` from ``data`` (ignoring unknown keys)."""
    if not data:
        return ToolboxConfig()
    normalized = _normalize_mapping(data)
    known = _recognized_fields()
    payload = {key: normalized[key] for key in normalized.keys() & known}
    return ToolboxConfig(**payload).sanitized()


def default_config_path() -> Path:
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path).expanduser()
    return DEFAULT_CONFIG_PATH.expanduser()


def load_config(path: str | Path | None = None) -> ToolboxConfig:
    """
    Load configuration from ``path`` (or :func:`default_config_path`).

    Missing files fall back to default :class:`ToolboxConfig`.
    """
    cfg_path = Path(path).expanduser() if path is not None else default_config_path()
    if not cfg_path.exists():
        return ToolboxConfig()
    with cfg_path.open("r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh) or {}
    if not isinstance(raw, Mapping):
        raise ValueError(f"Expected mapping in {cfg_path}, got {type(raw).__name__}")
    return config_from_mapping(raw)


def save_config(path: str | Path, config: ToolboxConfig) -> None:
    cfg_path = Path(path).expanduser()
    cfg_path.parent.mkdir(parents=True, exist_ok=True)
    with cfg_path.open("w", encoding="utf-8") as fh:
        yaml.safe_dump(
            config.sanitized().to_mapping(),
            fh,
            default_flow_style=False,
            sort_keys=False,
        )


__all__ = [
    "ToolboxConfig",
    "config_from_mapping",
    "default_config_path",
    "load_config",
    "save_config",
]
