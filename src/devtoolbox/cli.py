"""Command-line front end: list devices, run or stream a tool, watch telemetry."""

from __future__ import annotations

import argparse
import logging
import math
import sys
import time
from typing import Optional, Sequence

from .config import ToolboxConfig, load_config
from .devices import FAMILIES, DeviceRegistry, get_family
from .errors import ToolboxError
from .logging_config import configure_logging
from .process import CommandGateway, execute_streaming
from .telemetry import TRACKED_METRICS, MetricStore, TelemetrySampler, default_probes

logger = logging.getLogger(__name__)


def _int_at_least(text: str, minimum: int) -> int:
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected an integer, got {text!r}") from None
    if value < minimum:
        raise argparse.ArgumentTypeError(f"must be at least {minimum}, got {value}")
    return value


def _positive_int(text: str) -> int:
    return _int_at_least(text, 1)


def _non_negative_int(text: str) -> int:
    return _int_at_least(text, 0)


def _positive_float(text: str) -> float:
    try:
        value = float(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected a number, got {text!r}") from None
    if not math.isfinite(value) or value <= 0.0:
        raise argparse.ArgumentTypeError(f"must be a positive number, got {text}")
    return value


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="devtoolbox",
        description="Drive adb/fastboot/EDL/ramdump tools and sample device telemetry",
    )
    parser.add_argument("--config", help="YAML settings file (default: $DEVTOOLBOX_CONFIG)")
    parser.add_argument("--log-level", help="Logging level (default: from config, INFO)")
    sub = parser.add_subparsers(dest="command", required=True)

    devices = sub.add_parser("devices", help="List attached devices for a tool family")
    devices.add_argument("--family", choices=sorted(FAMILIES), default="adb")

    run = sub.add_parser("run", help="Run a tool to completion and print its output")
    run.add_argument("family", choices=sorted(FAMILIES))
    run.add_argument("tool_args", nargs=argparse.REMAINDER)

    stream = sub.add_parser("stream", help="Run a tool and print output as it arrives")
    stream.add_argument("family", choices=sorted(FAMILIES))
    stream.add_argument("tool_args", nargs=argparse.REMAINDER)

    monitor = sub.add_parser("monitor", help="Sample telemetry from the selected adb device")
    monitor.add_argument("--serial", help="Device to sample when several are attached")
    monitor.add_argument("--interval", type=_positive_float, help="Seconds between sampling passes")
    monitor.add_argument("--capacity", type=_positive_int, help="Samples kept per metric")
    monitor.add_argument(
        "--count",
        type=_non_negative_int,
        default=10,
        help="Number of passes before exiting (default: 10, 0 = forever)",
    )
    return parser


def _tool_args(raw: Sequence[str]) -> list[str]:
    args = list(raw)
    if args and args[0] == "--":
        args = args[1:]
    return args


def _registry(cfg: ToolboxConfig, family_name: str) -> DeviceRegistry:
    family = get_family(family_name).with_executable(cfg.executable_for(family_name))
    return DeviceRegistry(family, timeout=cfg.command_timeout_s)


def _cmd_devices(cfg: ToolboxConfig, args: argparse.Namespace) -> int:
    registry = _registry(cfg, args.family)
    devices = registry.refresh()
    if registry.last_error is not None:
        print(registry.last_error, file=sys.stderr)
        return 1
    for device in devices:
        marker = "*" if device.identifier == registry.selected_id else " "
        print(f"{marker} {device.label()}")
    print(registry.status_message())
    return 0


def _cmd_run(cfg: ToolboxConfig, args: argparse.Namespace) -> int:
    gateway = CommandGateway(
        cfg.executable_for(args.family), default_timeout=cfg.command_timeout_s
    )
    result = gateway.run(*_tool_args(args.tool_args))
    if result.stdout:
        sys.stdout.write(result.stdout)
    if result.stderr:
        sys.stderr.write(result.stderr)
    return 0 if result.success else 1


def _cmd_stream(cfg: ToolboxConfig, args: argparse.Namespace) -> int:
    result = execute_streaming(
        cfg.executable_for(args.family),
        _tool_args(args.tool_args),
        lambda line: print(line, flush=True),
        timeout=cfg.command_timeout_s,
    )
    if result.aggregated_error:
        logger.warning("Tool reported errors:\n%s", result.aggregated_error)
    return 0 if result.success else 1


def _cmd_monitor(cfg: ToolboxConfig, args: argparse.Namespace) -> int:
    registry = _registry(cfg, "adb")
    registry.refresh()
    if args.serial:
        registry.select(args.serial)
    device = registry.require_selected()

    store = MetricStore(cfg.history_capacity if args.capacity is None else args.capacity)
    sampler = TelemetrySampler(
        registry,
        store,
        interval=cfg.sampling_interval_s if args.interval is None else args.interval,
        probes=default_probes(cfg.monitored_interfaces),
    )
    print(f"Sampling {device.label()} every {sampler.interval:g} s")

    passes = 0
    sampler.enable()
    try:
        while True:
            if sampler.tick() or passes == 0:
                passes += 1
                _print_latest(sampler)
                if args.count and passes >= args.count:
                    break
            time.sleep(cfg.ui_tick_ms / 1000.0)
    except KeyboardInterrupt:
        pass
    finally:
        sampler.disable()
    return 0


def _print_latest(sampler: TelemetrySampler) -> None:
    snap = sampler.snapshot
    values = []
    for metric in TRACKED_METRICS:
        sample = sampler.store.latest(metric)
        if sample is not None:
            values.append(f"{metric}={sample.value:.2f}")
    stamp = sampler.store.latest(TRACKED_METRICS[0])
    t = f"t={stamp.timestamp:6.1f}s " if stamp is not None else ""
    print(f"[{snap.last_update}] {t}{' '.join(values)}")


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_arg_parser()
    args = parser.parse_args(argv)

    try:
        cfg = load_config(args.config)
    except (OSError, ValueError) as exc:
        print(f"Cannot load config: {exc}", file=sys.stderr)
        return 1
    configure_logging(args.log_level.upper() if args.log_level else cfg.log_level)

    handlers = {
        "devices": _cmd_devices,
        "run": _cmd_run,
        "stream": _cmd_stream,
        "monitor": _cmd_monitor,
    }
    try:
        return handlers[args.command](cfg, args)
    except (ToolboxError, ValueError) as exc:
        print(str(exc), file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
