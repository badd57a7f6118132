from __future__ import annotations

import pytest

from conftest import ADB_DEVICES_NONE, ADB_DEVICES_ONE, ADB_DEVICES_TWO, FakeAdb
from devtoolbox.devices import (
    ADB,
    EDL,
    FASTBOOT,
    RAMDUMP,
    Device,
    DeviceRegistry,
    apply_selection_policy,
    parse_device_lines,
)
from devtoolbox.errors import DeviceUnavailable, ToolNotFound
from devtoolbox.process.gateway import CommandGateway, CommandResult


def _registry(fake: FakeAdb) -> DeviceRegistry:
    return DeviceRegistry(ADB, CommandGateway("adb", runner=fake))


def test_parse_adb_listing_with_attributes() -> None:
    devices = parse_device_lines(ADB_DEVICES_TWO, ADB)

    assert [d.identifier for d in devices] == ["R58M12345", "emulator-5554"]
    phone = devices[0]
    assert phone.status == "device"
    assert phone.attribute("model") == "SM_G973F"
    assert phone.attribute("transport_id") == "3"
    assert phone.attribute("usb") == "1-1"
    assert phone.family == "adb"


def test_parse_skips_short_lines_and_duplicates() -> None:
    text = "List of devices attached\nlonely\nabc device\nabc offline\n"
    devices = parse_device_lines(text, ADB)

    assert [(d.identifier, d.status) for d in devices] == [("abc", "device")]


def test_parse_fastboot_listing() -> None:
    devices = parse_device_lines("0123456789ABCDEF\tfastboot\n\n", FASTBOOT)

    assert devices == [Device("0123456789ABCDEF", "fastboot", {}, "fastboot")]


def test_parse_edl_listing_filters_and_defaults() -> None:
    text = (
        "Scanning USB...\n"
        "COM7 Qualcomm HS-USB QDLoader 9008 vid:05c6 pid:9008\n"
        "COM8 EDL\n"
    )
    devices = parse_device_lines(text, EDL)

    assert len(devices) == 1
    assert devices[0].identifier == "COM7"
    assert devices[0].status == "Ready"
    assert devices[0].attributes == {"mode": "EDL", "vid": "05c6", "pid": "9008"}


def test_parse_ramdump_listing() -> None:
    text = "COM4 ramdump ready\nCOM5 idle device\n"
    devices = parse_device_lines(text, RAMDUMP)

    assert [(d.identifier, d.status, d.attribute("mode")) for d in devices] == [
        ("COM4", "Crashed", "Ramdump")
    ]


def _devices(*ids: str) -> list[Device]:
    return [Device(i, "device") for i in ids]


@pytest.mark.parametrize(
    "ids,current,expected",
    [
        ((), "a", None),
        (("a",), None, "a"),
        (("b",), "a", "b"),
        (("a", "b"), None, None),
        (("a", "b"), "b", "b"),
        (("a", "b"), "c", None),
    ],
)
def test_selection_policy(ids, current, expected) -> None:
    assert apply_selection_policy(_devices(*ids), current) == expected


def test_refresh_auto_connects_single_device() -> None:
    registry = _registry(FakeAdb(ADB_DEVICES_ONE))

    devices = registry.refresh()

    assert [d.identifier for d in devices] == ["emulator-5554"]
    assert registry.selected_id == "emulator-5554"
    assert registry.selected() == devices[0]
    assert registry.status_message() == "Auto-connected to single device"
    assert registry.last_refresh != "Never"


def test_refresh_never_auto_selects_among_several() -> None:
    fake = FakeAdb(ADB_DEVICES_TWO)
    registry = _registry(fake)

    registry.refresh()
    assert registry.selected_id is None
    assert registry.status_message() == "2 devices available"

    registry.select("R58M12345")
    registry.refresh()
    assert registry.selected_id == "R58M12345"

    fake.devices_text = (
        "List of devices attached\n"
        "emulator-5554  device\n"
        "emulator-5556  device\n"
    )
    registry.refresh()
    assert registry.selected_id is None


def test_refresh_with_no_devices_clears_selection() -> None:
    fake = FakeAdb(ADB_DEVICES_ONE)
    registry = _registry(fake)
    registry.refresh()

    fake.devices_text = ADB_DEVICES_NONE
    assert registry.refresh() == []
    assert registry.selected() is None
    assert registry.status_message() == "No devices found"


def test_failed_listing_keeps_previous_state() -> None:
    fake = FakeAdb(ADB_DEVICES_ONE)
    registry = _registry(fake)
    registry.refresh()

    fake.devices_text = CommandResult(False, "", "adb: server version mismatch", 1)
    devices = registry.refresh()

    assert [d.identifier for d in devices] == ["emulator-5554"]
    assert registry.selected_id == "emulator-5554"
    assert "server version mismatch" in (registry.last_error or "")

    fake.devices_text = ToolNotFound("adb")
    registry.refresh()
    assert registry.selected_id == "emulator-5554"
    assert "Tool not found" in (registry.last_error or "")


def test_select_requires_listed_device() -> None:
    registry = _registry(FakeAdb(ADB_DEVICES_TWO))
    registry.refresh()

    with pytest.raises(DeviceUnavailable):
        registry.select("not-there")
    with pytest.raises(DeviceUnavailable):
        registry.require_selected()

    registry.select("emulator-5554")
    assert registry.gateway_for_selected().prefix_args == ("-s", "emulator-5554")
    registry.select(None)
    assert registry.selected_id is None
