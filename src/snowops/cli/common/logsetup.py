"""Logging setup for the CLI."""

from __future__ import annotations

import logging

from rich.logging import RichHandler

from snowops.cli.common.output import console


def configure_logging(verbose: bool = False) -> None:
    """Route the `snowops` logger tree through rich; DEBUG when verbose."""
    handler = RichHandler(console=console, show_path=False, rich_tracebacks=True)
    handler.setFormatter(logging.Formatter("%(message)s"))
    root = logging.getLogger("snowops")
    root.handlers[:] = [handler]
    root.setLevel(logging.DEBUG if verbose else logging.WARNING)
    root.propagate = False
