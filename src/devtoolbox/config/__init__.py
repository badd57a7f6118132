"""Configuration objects and helpers for devtoolbox.

The YAML file only carries scalars the pipeline needs: the sampling
interval, the history capacity, command timeouts and where the device
tools live. See :mod:`settings`.
"""

from .settings import (
    ToolboxConfig,
    config_from_mapping,
    default_config_path,
    load_config,
    save_config,
)

__all__ = [
    "ToolboxConfig",
    "config_from_mapping",
    "default_config_path",
    "load_config",
    "save_config",
]
