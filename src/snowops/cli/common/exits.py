"""Exit handling utilities for the CLI."""

from typing import NoReturn

import typer

from snowops.cli.common.output import out
from snowops.core.errors import ConfigurationError


def ok_exit(msg: str | None = None) -> NoReturn:
    """Exit successfully with an optional informational message."""
    if msg:
        out.info(msg)
    raise typer.Exit(0)


def die(msg: str, code: int = 1) -> NoReturn:
    """Exit with an error message and optional exit code."""
    out.error(msg)
    raise typer.Exit(code)


def warn_exit(msg: str, code: int = 0) -> NoReturn:
    """Exit with a warning message and optional exit code."""
    out.warn(msg)
    raise typer.Exit(code)


def exit_from_exc(exc: Exception, *, message: str | None = None, code: int | None = None) -> NoReturn:
    """
    Print an error for `exc` and exit.

    Configuration errors exit with 2 (bad input); connection and retrieval
    errors with 1, unless `code` overrides it.
    """
    if code is None:
        code = 2 if isinstance(exc, ConfigurationError) else 1
    out.error(message or str(exc))
    raise typer.Exit(code) from exc
