from __future__ import annotations

"""
Logging setup shared by the CLI and the service.
"""

import logging
import sys

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def setup_logging(level: str = "INFO", format_string: str | None = None) -> None:
    """
    Configure root logging to stderr so JSON printed by the CLI stays clean.

    Args:
        level: Logging level name, one of LOG_LEVELS (case-insensitive)
        format_string: Custom format string (uses DEFAULT_FORMAT if None)

    Raises:
        ValueError: if level is not a known level name
    """
    name = str(level).upper()
    if name not in LOG_LEVELS:
        raise ValueError(f"Unknown log level {level!r}; use one of {', '.join(LOG_LEVELS)}")

    logging.basicConfig(
        level=getattr(logging, name),
        format=format_string or DEFAULT_FORMAT,
        handlers=[logging.StreamHandler(sys.stderr)],
        force=True,
    )


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
