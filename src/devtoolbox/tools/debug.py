"""Opt-in timing instrumentation for refreshes and sampling passes."""

from __future__ import annotations

import logging
import os
import time
from contextlib import contextmanager
from typing import Iterator

logger = logging.getLogger("devtoolbox.debug")

DEBUG_DEVTOOLBOX = os.getenv("DEVTOOLBOX_DEBUG", "").lower() in {"1", "true", "yes", "on"}


def debug_enabled() -> bool:
    """Return True when timings should be logged."""
    return DEBUG_DEVTOOLBOX


@contextmanager
def time_block(label: str) -> Iterator[None]:
    """
    Log how long the block took when ``DEVTOOLBOX_DEBUG`` is set.

    Disabled, this costs one flag check.
    """
    if not debug_enabled():
        yield
        return

    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed_ms = (time.perf_counter() - start) * 1000.0
        logger.debug("%s took %.3f ms", label, elapsed_ms)
