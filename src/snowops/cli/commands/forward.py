"""Commands for forward engineering schema DDL."""

import typer

from snowops.api import SnowopsApi
from snowops.cli.common.exits import die
from snowops.cli.common.options import DatabaseOpt
from snowops.cli.common.output import out

app = typer.Typer(
    help="Render CREATE / DROP SCHEMA scripts",
    no_args_is_help=True,
)


@app.command("create-schema")
def create_schema(
    name: str = typer.Argument(..., help="Schema name"),
    database: str | None = DatabaseOpt,
    transient: bool = typer.Option(False, "--transient", help="Create a TRANSIENT schema"),
    managed_access: bool = typer.Option(
        False, "--managed-access", help="Add WITH MANAGED ACCESS"
    ),
    comment: str | None = typer.Option(None, "--comment", help="Schema comment"),
    retention: int | None = typer.Option(
        None, "--retention", help="DATA_RETENTION_TIME_IN_DAYS"
    ),
):
    """
    Print the CREATE SCHEMA statement for a schema.
    """
    role = {
        "name": name,
        "transient": transient,
        "managedAccess": managed_access,
        "comment": comment,
        "dataRetention": retention,
    }
    container = {"role": role, "database": database} if database else {"role": role}
    error, script = SnowopsApi().get_add_container_script(container)
    if error:
        die(error["message"], code=1)
    out.script(script)


@app.command("drop-schema")
def drop_schema(
    name: str = typer.Argument(..., help="Schema name"),
    database: str | None = DatabaseOpt,
):
    """
    Print the DROP SCHEMA statement for a schema.
    """
    container = {"role": {"name": name}}
    if database:
        container["database"] = database
    error, script = SnowopsApi().get_delete_container_script(container)
    if error:
        die(error["message"], code=1)
    out.script(script)
