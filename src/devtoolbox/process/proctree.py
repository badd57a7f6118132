"""Helpers for stopping external tools together with their children."""

from __future__ import annotations

import logging
import os
import signal
from typing import Final

import psutil

logger = logging.getLogger(__name__)

TERMINATE_GRACE_S: Final[float] = 2.0

# Tools are started as session leaders on POSIX so the whole group can be
# signalled, including descendants that were re-parented away from the child.
NEW_SESSION: Final[bool] = os.name == "posix"


def _signal_group(pgid: int, sig: int) -> None:
    try:
        os.killpg(pgid, sig)
    except (ProcessLookupError, PermissionError):
        pass


def terminate_process_tree(
    pid: int,
    *,
    grace: float = TERMINATE_GRACE_S,
    process_group: bool = False,
) -> None:
    """
    Terminate ``pid`` and every descendant it spawned.

    Device tools such as ``adb`` fork helper servers, so killing only the
    direct child can leave a grandchild holding our pipes open. With
    ``process_group`` the process group led by ``pid`` is signalled too.
    Processes still alive after ``grace`` seconds are killed outright.
    """
    try:
        parent = psutil.Process(pid)
    except psutil.NoSuchProcess:
        parent = None

    procs = []
    if parent is not None:
        try:
            procs = parent.children(recursive=True)
        except psutil.NoSuchProcess:
            procs = []
        procs.append(parent)

    if process_group:
        _signal_group(pid, signal.SIGTERM)
    for proc in procs:
        try:
            proc.terminate()
        except psutil.NoSuchProcess:
            continue

    _, alive = psutil.wait_procs(procs, timeout=grace)
    for proc in alive:
        logger.debug("Killing pid %s after %.1f s grace", proc.pid, grace)
        try:
            proc.kill()
        except psutil.NoSuchProcess:
            pass
    if process_group:
        _signal_group(pid, signal.SIGKILL)
