"""Device families and the parsers for their listing output.

Every family lists one device per line; they differ in the listing
command, in which lines count as devices and in the attributes they carry.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from .models import Device

logger = logging.getLogger(__name__)

LinePredicate = Callable[[str], bool]


def _contains_any(*markers: str) -> LinePredicate:
    def predicate(line: str) -> bool:
        return any(marker in line for marker in markers)

    return predicate


@dataclass(frozen=True)
class DeviceFamily:
    """
    How to enumerate devices for one class of tool.

    ``skip_lines`` drops leading header lines, ``banner_markers`` drops any
    line containing one of the markers and ``line_filter`` (when set) keeps
    only the lines it accepts. ``status`` overrides the second token for
    tools whose listing has no status column.
    """

    name: str
    executable: str
    list_args: Tuple[str, ...]
    skip_lines: int = 0
    banner_markers: Tuple[str, ...] = ()
    line_filter: Optional[LinePredicate] = None
    min_fields: int = 2
    status: Optional[str] = None
    attribute_defaults: Mapping[str, str] = field(default_factory=dict)

    def with_executable(self, executable: str) -> "DeviceFamily":
        return replace(self, executable=str(executable))


ADB = DeviceFamily(
    name="adb",
    executable="adb",
    list_args=("devices", "-l"),
    skip_lines=1,
    banner_markers=("List of devices", "* daemon"),
)

FASTBOOT = DeviceFamily(
    name="fastboot",
    executable="fastboot",
    list_args=("devices",),
)

EDL = DeviceFamily(
    name="edl",
    executable="qdl-rs",
    list_args=("--list-devices",),
    line_filter=_contains_any("9008", "EDL", "QDLoader"),
    min_fields=3,
    status="Ready",
    attribute_defaults={"mode": "EDL", "vid": "05c6", "pid": "9008"},
)

RAMDUMP = DeviceFamily(
    name="ramdump",
    executable="qramdump",
    list_args=("--list-devices",),
    line_filter=_contains_any("crash", "ramdump"),
    min_fields=3,
    status="Crashed",
    attribute_defaults={"mode": "Ramdump"},
)

FAMILIES: Dict[str, DeviceFamily] = {
    family.name: family for family in (ADB, FASTBOOT, EDL, RAMDUMP)
}


def get_family(name: str) -> DeviceFamily:
    try:
        return FAMILIES[name]
    except KeyError:
        raise ValueError(
            f"Unknown device family {name!r} (expected one of {', '.join(FAMILIES)})"
        ) from None


def parse_attributes(tokens: Sequence[str]) -> Dict[str, str]:
    """Collect ``key:value`` tokens; tokens without a key or value are ignored."""
    attributes: Dict[str, str] = {}
    for token in tokens:
        key, sep, value = token.partition(":")
        if sep and key and value:
            attributes[key] = value
    return attributes


def parse_device_line(line: str, family: DeviceFamily) -> Optional[Device]:
    """Parse one listing line, or return ``None`` if it is not a device."""
    parts = line.split()
    if len(parts) < max(2, family.min_fields):
        return None

    attributes = dict(family.attribute_defaults)
    attributes.update(parse_attributes(parts[2:]))
    return Device(
        identifier=parts[0],
        status=family.status or parts[1],
        attributes=attributes,
        family=family.name,
    )


def parse_device_lines(text: str, family: DeviceFamily) -> List[Device]:
    """
    Parse a whole listing into devices, best-effort.

    Unparseable lines are skipped; a repeated identifier keeps its first entry.
    """
    devices: List[Device] = []
    seen: set[str] = set()
    for line in text.splitlines()[family.skip_lines:]:
        if not line.strip():
            continue
        if any(marker in line for marker in family.banner_markers):
            continue
        if family.line_filter is not None and not family.line_filter(line):
            continue

        device = parse_device_line(line, family)
        if device is None:
            logger.debug("Skipping %s listing line: %r", family.name, line)
            continue
        if device.identifier in seen:
            logger.debug("Duplicate %s device %s ignored", family.name, device.identifier)
            continue
        seen.add(device.identifier)
        devices.append(device)
    return devices
