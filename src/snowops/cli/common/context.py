"""Application context management for the CLI."""

from dataclasses import dataclass

import typer

from snowops.cli.common.exits import exit_from_exc
from snowops.cli.common.output import out
from snowops.core.adapters.snowflake import SnowflakeAdapter
from snowops.core.config import ConnectionConfig, load_connection_config
from snowops.core.connection import SnowflakeConnectionManager
from snowops.core.errors import SnowopsError


@dataclass
class ReAppContext:
    """Application context holding the Snowflake session and metadata adapter."""

    profile: str | None
    config: ConnectionConfig
    manager: SnowflakeConnectionManager
    adapter: SnowflakeAdapter


def load_config_or_exit(profile: str | None) -> ConnectionConfig:
    """Load the connection profile, exiting with code 2 when it is unusable."""
    try:
        return load_connection_config(profile)
    except SnowopsError as exc:
        exit_from_exc(exc)


def build_re_context(ctx: typer.Context, profile: str | None) -> ReAppContext:
    """Connect once for the whole invocation and close the session on exit.

    Args:
        ctx: Typer context; the disconnect is registered with `call_on_close`.
        profile: Optional profile name from the connections file.

    Returns:
        ReAppContext: Context with an open session and adapter.
    """
    config = load_config_or_exit(profile)
    manager = SnowflakeConnectionManager()
    try:
        with out.status(f"Connecting to {config.account}..."):
            session = manager.connect(config)
    except SnowopsError as exc:
        exit_from_exc(exc)
    ctx.call_on_close(manager.disconnect)
    return ReAppContext(
        profile=profile,
        config=config,
        manager=manager,
        adapter=SnowflakeAdapter(session),
    )
