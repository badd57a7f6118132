from __future__ import annotations

from typing import Dict, List, Sequence, Tuple, Union

import pytest

from devtoolbox.process.gateway import CommandResult

ADB_DEVICES_ONE = (
    "List of devices attached\n"
    "emulator-5554          device product:sdk_gphone64 model:sdk_gphone64_x86_64 "
    "device:emu64x transport_id:1\n"
    "\n"
)

ADB_DEVICES_TWO = (
    "List of devices attached\n"
    "R58M12345      device usb:1-1 product:beyond1 model:SM_G973F transport_id:3\n"
    "emulator-5554  device product:sdk_gphone64 model:sdk_gphone64_x86_64 transport_id:1\n"
)

ADB_DEVICES_NONE = "List of devices attached\n\n"

DEVICE_OUTPUTS: Dict[str, str] = {
    "cat /proc/loadavg": "1.25 0.80 0.50 2/1234 5678\n",
    "cat /proc/cpuinfo": "processor\t: 0\nBogoMIPS\t: 38.40\nprocessor\t: 1\n",
    "cat /proc/meminfo": (
        "MemTotal:        1000 kB\n"
        "MemFree:          100 kB\n"
        "MemAvailable:     400 kB\n"
        "Buffers:           20 kB\n"
        "Cached:           200 kB\n"
    ),
    "dumpsys battery": (
        "Current Battery Service state:\n"
        "  AC powered: false\n"
        "  USB powered: true\n"
        "  level: 85\n"
        "  voltage: 4123\n"
        "  temperature: 312\n"
        "  health: 2\n"
        "  status: 2\n"
    ),
    "cat /sys/class/thermal/thermal_zone0/temp": "45000\n",
    "cat /proc/net/dev": (
        "Inter-|   Receive                                                |  Transmit\n"
        " face |bytes    packets errs drop fifo frame compressed multicast|bytes    packets\n"
        "    lo:     512       4    0    0    0     0          0         0      512       4 0 0 0 0 0 0\n"
        " wlan0:    1536      10    0    0    0     0          0         0     2048      12 0 0 0 0 0 0\n"
    ),
    "ps -A -o PID,NAME,%CPU,RSS,USER,S": (
        "  PID NAME             %CPU   RSS USER     S\n"
        "  200 surfaceflinger    3.0  2000 system   S\n"
        "    1 init              0.0  1000 root     S\n"
    ),
}

Response = Union[str, CommandResult, Exception]


class FakeAdb:
    """Runner for :class:`CommandGateway` that answers like an adb binary."""

    def __init__(
        self,
        devices_text: str = ADB_DEVICES_ONE,
        outputs: Dict[str, Response] | None = None,
    ) -> None:
        self.devices_text: Response = devices_text
        self.outputs: Dict[str, Response] = dict(DEVICE_OUTPUTS if outputs is None else outputs)
        self.calls: List[Tuple[str, ...]] = []

    def _answer(self, executable: str, args: Tuple[str, ...], response: Response) -> CommandResult:
        if isinstance(response, Exception):
            raise response
        if isinstance(response, CommandResult):
            return response
        return CommandResult(True, response, None, 0, [executable, *args])

    def __call__(self, executable: str, args: Sequence[str], *, timeout=None) -> CommandResult:
        args = tuple(str(a) for a in args)
        self.calls.append(args)
        if args == ("devices", "-l"):
            return self._answer(executable, args, self.devices_text)
        if args[:1] == ("-s",) and args[2:3] == ("shell",):
            key = " ".join(args[3:])
            if key in self.outputs:
                return self._answer(executable, args, self.outputs[key])
        return CommandResult(False, "", f"/system/bin/sh: {args[-1]}: not found", 127, [executable, *args])

    def shell_calls(self) -> List[str]:
        return [" ".join(call[3:]) for call in self.calls if call[:1] == ("-s",)]


@pytest.fixture
def fake_adb() -> FakeAdb:
    return FakeAdb()


# Leaves a grandchild in its own session that holds stdout/stderr for 8 s
# after the tool itself has been stopped.
ESCAPED_GRANDCHILD_SCRIPT = """\
import os, time
if os.fork() == 0:
    os.setsid()
    if os.fork() == 0:
        time.sleep(8)
    os._exit(0)
print("started", flush=True)
time.sleep(60)
"""
