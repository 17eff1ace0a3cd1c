"""CLI application for Snowflake schema reverse and forward engineering."""

import typer

from snowops.api import SnowopsApi
from snowops.cli.commands.forward import app as fe_app
from snowops.cli.commands.reverse import app as re_app
from snowops.cli.common.context import load_config_or_exit
from snowops.cli.common.exits import die, ok_exit
from snowops.cli.common.logsetup import configure_logging
from snowops.cli.common.options import ProfileOpt
from snowops.cli.common.output import out

app = typer.Typer(
    help="snowops - Snowflake schema reverse / forward engineering",
    no_args_is_help=True,
)

app.add_typer(re_app, name="re", help="List and extract tables / views.")
app.add_typer(fe_app, name="fe", help="Render schema DDL.")


@app.callback()
def _main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """Configure logging for every command."""
    configure_logging(verbose)


@app.command("test-connection")
def test_connection(profile: str | None = ProfileOpt):
    """
    Check that the profile can connect to Snowflake.
    """
    config = load_config_or_exit(profile)
    with out.status(f"Testing connection to {config.account}..."):
        error, sso = SnowopsApi().test_connection(config)
    if error:
        die(error["message"], code=1)
    if sso:
        out.kv({"SSO URL": sso.get("ssoUrl"), "Redirect port": sso.get("redirectPort")})
        ok_exit("Open the SSO URL in a browser to finish signing in")
    out.success(f"Connected to {config.account}")


if __name__ == "__main__":
    app()
