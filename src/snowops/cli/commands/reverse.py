"""Commands for reverse engineering Snowflake schemas."""

import json
from pathlib import Path

import typer

from snowops.cli.common.context import ReAppContext, build_re_context
from snowops.cli.common.exits import die, exit_from_exc, warn_exit
from snowops.cli.common.options import (
    AllOpt,
    DatabaseOpt,
    IsolateOpt,
    KindOpt,
    NameOpt,
    OutputOpt,
    ProfileOpt,
    SampleAbsoluteOpt,
    SamplePercentOpt,
    UseOrOpt,
    WorkersOpt,
)
from snowops.cli.common.output import out
from snowops.cli.common.progress import RichProgressSink
from snowops.cli.common.selector_builder import build_selector
from snowops.cli.tui import select_entities as tui_select_entities
from snowops.core.config import max_workers_from_env
from snowops.core.entities import entity_choices, group_selection, select_entities
from snowops.core.errors import ConfigurationError, SnowopsError
from snowops.core.models import DEFAULT_ABSOLUTE_SAMPLE, ExtractionRequest, SamplingPolicy
from snowops.core.reverse import ExtractionContext, FailurePolicy, extract

app = typer.Typer(
    help="Reverse engineer Snowflake schemas into collection packages",
    no_args_is_help=True,
)


@app.callback()
def _init(ctx: typer.Context, profile: str | None = ProfileOpt):
    """Open the Snowflake session shared by the subcommand."""
    if ctx.resilient_parsing:
        return
    ctx.obj = build_re_context(ctx, profile)


def sampling_from_options(absolute: int | None, percent: float | None) -> SamplingPolicy:
    """Translate the sampling flags into a validated policy."""
    if absolute is not None and percent is not None:
        raise ConfigurationError(
            "Use either --sample-absolute or --sample-percent, not both.", field="sampling"
        )
    if percent is not None:
        settings = {"active": "relative", "relative": {"value": percent}}
    else:
        value = absolute if absolute is not None else DEFAULT_ABSOLUTE_SAMPLE
        settings = {"active": "absolute", "absolute": {"value": value}}
    return SamplingPolicy.from_dict(settings)


@app.command()
def names(
    ctx: typer.Context,
    database: str | None = DatabaseOpt,
):
    """
    List tables and views per schema.
    """
    appctx: ReAppContext = ctx.obj
    database = database or appctx.config.database

    try:
        with out.status("Listing entities..."):
            listing = appctx.adapter.list_entities_names(database)
    except SnowopsError as exc:
        exit_from_exc(exc)

    if not listing:
        warn_exit("No entities found", code=0)

    out.names_table(listing, title="Entities (views marked with (v))")


@app.command("extract")
def extract_cmd(
    ctx: typer.Context,
    schemas: list[str] = typer.Argument(..., help="Schemas as database.schema"),
    name: str | None = NameOpt,
    kind: list[str] = KindOpt,
    use_or: bool = UseOrOpt,
    all_: bool = AllOpt,
    sample_absolute: int | None = SampleAbsoluteOpt,
    sample_percent: float | None = SamplePercentOpt,
    workers: int | None = WorkersOpt,
    isolate: bool = IsolateOpt,
    output: Path | None = OutputOpt,
):
    """
    Extract the selected entities of one or more schemas.
    """
    appctx: ReAppContext = ctx.obj

    try:
        selector = build_selector(name=name, kinds=kind, use_or=use_or)
    except ValueError as e:
        die(str(e), code=2)

    try:
        sampling = sampling_from_options(sample_absolute, sample_percent)
    except ConfigurationError as exc:
        exit_from_exc(exc)

    databases = {s.split(".", 1)[0] for s in schemas}
    listing: dict[str, list[str]] = {}
    try:
        with out.status("Listing entities..."):
            for database in sorted(databases):
                listing.update(appctx.adapter.list_entities_names(database))
    except SnowopsError as exc:
        exit_from_exc(exc)

    missing = [s for s in schemas if s not in listing]
    for schema in missing:
        out.warn(f"Schema not found or empty: {schema}")

    choices = select_entities(
        entity_choices({s: listing[s] for s in schemas if s in listing}), selector
    )
    if not choices:
        warn_exit("No entities found", code=0)

    selected = choices if all_ else tui_select_entities(choices)
    if not selected:
        warn_exit("No entities selected", code=0)

    out.header("Selected entities")
    out.entities_table(selected, title="Selected")

    grouped = group_selection(selected)
    request = ExtractionRequest(
        schemas=[s for s in schemas if s in grouped],
        collections=grouped,
        sampling=sampling,
        hidden_keys=appctx.config.hidden_keys,
    )

    name_width = max((len(c.name) for c in selected), default=0)
    try:
        with RichProgressSink(len(selected), name_width=name_width) as sink:
            extraction = ExtractionContext(
                fetcher=appctx.adapter,
                sink=sink,
                failure_policy=FailurePolicy.ISOLATE if isolate else FailurePolicy.FAIL_FAST,
                max_workers=workers or max_workers_from_env(),
            )
            result = extract(extraction, request)
    except SnowopsError as exc:
        exit_from_exc(exc)

    payload = json.dumps(result.to_dicts(), indent=2, default=str)
    if output:
        output.write_text(payload + "\n", encoding="utf-8")
        out.success(f"Wrote {len(result.packages)} package(s) to {output}")
    else:
        out.script(payload)

    out.packages_table(result.to_dicts(), title="Packages")

    if result.errors:
        out.failures_table(result.errors, title="Failed entities")
        raise typer.Exit(1)
