"""Device discovery for the bridge, flashing, EDL and ramdump tools."""

from .families import (
    ADB,
    EDL,
    FAMILIES,
    FASTBOOT,
    RAMDUMP,
    DeviceFamily,
    get_family,
    parse_device_lines,
)
from .models import Device
from .registry import DeviceRegistry, apply_selection_policy

__all__ = [
    "ADB",
    "EDL",
    "FAMILIES",
    "FASTBOOT",
    "RAMDUMP",
    "Device",
    "DeviceFamily",
    "DeviceRegistry",
    "apply_selection_policy",
    "get_family",
    "parse_device_lines",
]
