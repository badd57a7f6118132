"""Execution of external device tools.

:func:`execute` runs a tool to completion, :func:`execute_streaming`
forwards output line by line while it runs, and :class:`StreamingSession`
does the latter on a background thread for tick-driven callers.
"""

from .gateway import CommandGateway, CommandResult, execute
from .streaming import (
    StreamingResult,
    StreamingSession,
    execute_streaming,
    is_error_line,
    start_streaming,
)

__all__ = [
    "CommandGateway",
    "CommandResult",
    "execute",
    "StreamingResult",
    "StreamingSession",
    "execute_streaming",
    "is_error_line",
    "start_streaming",
]
