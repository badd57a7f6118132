"""Device enumeration and selection with the auto-connect policy."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional, Sequence

from ..errors import DeviceUnavailable, ToolboxError
from ..process.gateway import CommandGateway
from ..tools.debug import time_block
from .families import DeviceFamily, parse_device_lines
from .models import Device

logger = logging.getLogger(__name__)


def apply_selection_policy(
    devices: Sequence[Device], current: Optional[str]
) -> Optional[str]:
    """
    Return the selection that should hold after a refresh.

    One device is auto-selected, no devices clears the selection, and with
    several devices the current selection survives only if still listed.
    One of several devices is never picked automatically.
    """
    if len(devices) == 1:
        return devices[0].identifier
    if not devices:
        return None
    if current is not None and any(d.identifier == current for d in devices):
        return current
    return None


class DeviceRegistry:
    """Owns the device list and the selection for one device family."""

    def __init__(
        self,
        family: DeviceFamily,
        gateway: Optional[CommandGateway] = None,
        *,
        timeout: Optional[float] = None,
    ) -> None:
        self.family = family
        self.gateway = gateway or CommandGateway(family.executable, default_timeout=timeout)
        self._devices: List[Device] = []
        self._selected: Optional[str] = None
        self.last_refresh: str = "Never"
        self.last_error: Optional[str] = None

    # ------------------------------------------------------------------ queries
    @property
    def devices(self) -> List[Device]:
        return list(self._devices)

    @property
    def selected_id(self) -> Optional[str]:
        return self._selected

    def selected(self) -> Optional[Device]:
        for device in self._devices:
            if device.identifier == self._selected:
                return device
        return None

    def require_selected(self) -> Device:
        device = self.selected()
        if device is None:
            raise DeviceUnavailable(f"No {self.family.name} device selected")
        return device

    def gateway_for_selected(self) -> CommandGateway:
        """Gateway that addresses the selected device with ``-s <serial>``."""
        return self.gateway.for_device(self.require_selected().identifier)

    def status_message(self) -> str:
        count = len(self._devices)
        if count == 0:
            return "No devices found"
        if count == 1 and self._selected is not None:
            return "Auto-connected to single device"
        return f"{count} devices available"

    # ------------------------------------------------------------------ mutation
    def refresh(self) -> List[Device]:
        """
        Re-list devices and apply the auto-connect policy.

        A failed listing is logged and leaves the previous list and
        selection in place.
        """
        with time_block(f"refresh {self.family.name} devices"):
            try:
                output = self.gateway.check_output(*self.family.list_args)
            except ToolboxError as exc:
                logger.warning("Failed to refresh %s devices: %s", self.family.name, exc)
                self.last_error = str(exc)
                return self.devices

        self._devices = parse_device_lines(output, self.family)
        self.last_error = None
        self.last_refresh = datetime.now().strftime("%H:%M:%S")

        previous = self._selected
        self._selected = apply_selection_policy(self._devices, previous)
        if self._selected is not None and self._selected != previous:
            logger.info("Auto-connected to single device: %s", self._selected)
        elif previous is not None and self._selected is None:
            logger.info(
                "Previously selected device %s is no longer available, cleared selection",
                previous,
            )
        return self.devices

    def select(self, identifier: Optional[str]) -> None:
        """Select a listed device by identifier, or clear with ``None``."""
        if identifier is None:
            self._selected = None
            return
        if not any(d.identifier == identifier for d in self._devices):
            raise DeviceUnavailable(f"Device {identifier} is not connected")
        self._selected = identifier
