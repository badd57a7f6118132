"""devtoolbox: command execution and telemetry pipeline for device tools."""

__version__ = "0.1.0"
