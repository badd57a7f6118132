"""Process-wide logging setup for the command-line front end."""

from __future__ import annotations

from logging.config import dictConfig

_configured = False


def configure_logging(level: str | int = "INFO") -> None:
    """Install one stderr handler on the root logger (first call wins)."""
    global _configured
    if _configured:
        return

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "plain": {
                    "format": "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
                    "datefmt": "%H:%M:%S",
                }
            },
            "handlers": {
                "default": {
                    "class": "logging.StreamHandler",
                    "stream": "ext://sys.stderr",
                    "level": level,
                    "formatter": "plain",
                }
            },
            "root": {"handlers": ["default"], "level": level},
        }
    )

    _configured = True
