"""Logging setup for the CLI and the preview server."""

from __future__ import annotations

import logging

from rich.logging import RichHandler


def setup_logging(level: str = "WARNING") -> None:
    """Route the standard library's logging through rich."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
        force=True,
    )
