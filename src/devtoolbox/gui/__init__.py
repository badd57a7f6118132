"""Qt glue for the pipeline; rendering lives elsewhere."""

from .monitor_controller import MonitorController

__all__ = ["MonitorController"]
