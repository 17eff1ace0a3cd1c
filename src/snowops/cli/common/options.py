"""Common CLI options for the CLI."""

import typer

ProfileOpt = typer.Option(
    None,
    "--profile",
    "-p",
    help="Connection profile (from ~/.snowflake/connections.toml)",
)

DatabaseOpt = typer.Option(
    None,
    "--database",
    "-d",
    help="Restrict to one database",
)

NameOpt = typer.Option(
    None,
    "--name",
    help="Regex on database.schema.entity",
)

KindOpt = typer.Option(
    [],
    "--kind",
    help="Entity kind (table or view). This is reusable.",
    show_default=False,
)

UseOrOpt = typer.Option(
    False,
    "--or",
    help="Use OR instead of AND between selectors",
)

AllOpt = typer.Option(
    False,
    "--all",
    help="Extract all matched entities without selection UI",
)

SampleAbsoluteOpt = typer.Option(
    None,
    "--sample-absolute",
    help="Fixed number of rows sampled per table",
)

SamplePercentOpt = typer.Option(
    None,
    "--sample-percent",
    help="Percentage of each table's rows to sample",
)

WorkersOpt = typer.Option(
    None,
    "--workers",
    "-n",
    help="Number of tables retrieved in parallel per schema",
)

IsolateOpt = typer.Option(
    False,
    "--isolate-failures",
    help="Skip entities that fail instead of aborting the whole run",
)

OutputOpt = typer.Option(
    None,
    "--output",
    "-o",
    help="Write packages JSON to this file instead of stdout",
)
