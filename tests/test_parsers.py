from __future__ import annotations

import pytest

from conftest import DEVICE_OUTPUTS
from devtoolbox.errors import ParseFailure
from devtoolbox.telemetry import parsers


def test_meminfo_usage_percent() -> None:
    info = parsers.parse_meminfo("MemTotal: 1000 kB\nMemAvailable: 400 kB\n")

    assert info.usage_percent == pytest.approx(60.0)
    assert info.as_display()["Memory Usage"] == "60.0%"


def test_meminfo_requires_total_and_available() -> None:
    with pytest.raises(ParseFailure):
        parsers.parse_meminfo("MemTotal: 1000 kB\nMemFree: 10 kB\n")
    with pytest.raises(ParseFailure):
        parsers.parse_meminfo("MemTotal: 0 kB\nMemAvailable: 0 kB\n")


@pytest.mark.parametrize(
    "count,expected",
    [
        (0, "0 B"),
        (512, "512 B"),
        (1023, "1023 B"),
        (1536, "1.50 KB"),
        (5 * 1024 * 1024, "5.00 MB"),
        (3 * 1024**4, "3.00 TB"),
        (2048 * 1024**4, "2048.00 TB"),
    ],
)
def test_format_bytes(count: int, expected: str) -> None:
    assert parsers.format_bytes(count) == expected


def test_load_average_first_numeric_token() -> None:
    assert parsers.parse_load_average("0.42 0.30 0.25 1/200 300\n") == pytest.approx(0.42)
    assert parsers.format_load_average("0.42 0.30 0.25 1/200 300") == "Load: 0.42 0.30 0.25 (1m 5m 15m)"
    with pytest.raises(ParseFailure):
        parsers.parse_load_average("")
    with pytest.raises(ParseFailure):
        parsers.parse_load_average("cat: /proc/loadavg: Permission denied")


def test_cpu_count() -> None:
    assert parsers.parse_cpu_count(DEVICE_OUTPUTS["cat /proc/cpuinfo"]) == 2
    with pytest.raises(ParseFailure):
        parsers.parse_cpu_count("Hardware: Qualcomm\n")


def test_battery_dump() -> None:
    info = parsers.parse_battery(DEVICE_OUTPUTS["dumpsys battery"])

    assert info.level_percent == 85.0
    assert info.temperature_c == pytest.approx(31.2)
    assert info.voltage_v == pytest.approx(4.123)
    assert info.health == "2"
    assert info.status == "2"
    display = info.as_display()
    assert display["Battery Level"] == "85%"
    assert display["Temperature"] == "31.2°C"
    assert display["Voltage"] == "4.12V"
    assert display["USB Powered"] == "true"


def test_battery_without_level_or_temperature_fails() -> None:
    with pytest.raises(ParseFailure):
        parsers.parse_battery("Current Battery Service state:\n  present: true\n")


def test_thermal_zone() -> None:
    assert parsers.parse_thermal_zone("45000\n") == pytest.approx(45.0)
    with pytest.raises(ParseFailure):
        parsers.parse_thermal_zone("No such file or directory")


@pytest.mark.parametrize("token", ["nan", "inf", "-inf", "NaN"])
def test_non_finite_readings_are_rejected(token: str) -> None:
    with pytest.raises(ParseFailure):
        parsers.parse_thermal_zone(token)
    with pytest.raises(ParseFailure):
        parsers.parse_load_average(f"{token} 0.30 0.25 1/200 300\n")
    with pytest.raises(ParseFailure):
        parsers.parse_battery(f"  level: {token}\n  temperature: {token}\n")

    info = parsers.parse_battery(f"  level: 80\n  temperature: {token}\n  voltage: {token}\n")
    assert info.level_percent == 80.0
    assert info.temperature_c is None
    assert info.voltage_v is None


def test_net_dev_counts_only_monitored_interfaces() -> None:
    counters = parsers.parse_net_dev(DEVICE_OUTPUTS["cat /proc/net/dev"])

    assert set(counters) == {"wlan0"}
    assert counters["wlan0"].rx_bytes == 1536
    assert counters["wlan0"].tx_bytes == 2048
    assert parsers.format_net_stats(counters) == {"wlan0 RX": "1.50 KB", "wlan0 TX": "2.00 KB"}


def test_net_dev_handles_glued_counters() -> None:
    text = "h1\nh2\n  eth0:123456 1 0 0 0 0 0 0 654321 2 0 0 0 0 0 0\n"
    counters = parsers.parse_net_dev(text, interfaces=["eth0"])

    assert counters["eth0"].rx_bytes == 123456
    assert counters["eth0"].tx_bytes == 654321


def test_process_list_sorted_by_numeric_pid() -> None:
    text = (
        "PID NAME %CPU RSS USER S\n"
        "200 surfaceflinger 3.0 2000 system S\n"
        "abc weird 0.0 1 root Z\n"
        "10 kthreadd 0.0 0 root S\n"
        "short row\n"
    )
    processes = parsers.parse_process_list(text)

    assert [p.pid for p in processes] == ["abc", "10", "200"]
    assert processes[2].name == "surfaceflinger"
    assert processes[2].memory == "2000 KB"
    assert processes[2].cpu_percent == "3.0"


def test_legacy_process_list() -> None:
    text = (
        "USER     PID   PPID  VSZ    RSS   WCHAN  ADDR S NAME\n"
        "root     1     0     10632  2068  0      0    S init\n"
    )
    (proc,) = parsers.parse_legacy_process_list(text)

    assert (proc.pid, proc.name, proc.user, proc.state) == ("1", "init", "root", "S")
    assert proc.cpu_percent == "N/A"
    assert proc.memory == "2068 KB"
