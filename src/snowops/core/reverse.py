"""Reverse-engineering orchestration: from selected schemas to collection packages.

For every selected schema the container metadata is fetched once, tables are
retrieved concurrently on a bounded thread pool, and views are gathered
sequentially into a single view-group package. The functionality here is
synchronous and infrastructure-agnostic; all warehouse access goes through a
`MetadataFetcher` and all reporting through a `ProgressSink`.
"""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Mapping, Protocol, Union

from snowops.core.config import DEFAULT_MAX_WORKERS
from snowops.core.entities import parse_entity_listing, split_entity_names
from snowops.core.errors import ConfigurationError
from snowops.core.inference import filter_meta_properties, handle_complex_types_documents
from snowops.core.logsink import LoggingSink
from snowops.core.models import (
    CollectionPackage,
    EntityRef,
    ExtractionRequest,
    SamplingPolicy,
    SchemaRef,
    ViewGroupPackage,
    ViewInfo,
)
from snowops.core.protocols import ProgressSink
from snowops.core.sampling import compute_sample_size

logger = logging.getLogger(__name__)

Package = Union[CollectionPackage, ViewGroupPackage]


class MetadataFetcher(Protocol):
    """Interface for the per-entity retrieval calls used by the orchestration."""

    def list_entities_names(self, database: str | None = None) -> dict[str, list[str]]:
        ...

    def get_ddl(self, entity: EntityRef) -> str:
        ...

    def get_view_ddl(self, entity: EntityRef) -> str:
        ...

    def get_rows_count(self, entity: EntityRef) -> int:
        ...

    def get_json_schema(
        self, sample_size: int, entity: EntityRef
    ) -> tuple[list[dict[str, Any]], dict[str, Any]]:
        ...

    def get_entity_data(self, entity: EntityRef) -> dict[str, Any]:
        ...

    def get_view_data(self, entity: EntityRef) -> dict[str, Any]:
        ...

    def get_container_data(self, schema: SchemaRef) -> dict[str, Any]:
        ...


class FailurePolicy(str, Enum):
    """
    What happens when retrieving one entity fails.

    Values:
        FAIL_FAST: The first failure aborts the whole extraction.
        ISOLATE: The failing entity (or schema) is skipped and recorded;
                 everything else is still extracted.
    """

    FAIL_FAST = "fail_fast"
    ISOLATE = "isolate"


@dataclass
class ExtractionContext:
    """Collaborators and knobs for one extraction run."""

    fetcher: MetadataFetcher
    sink: ProgressSink = field(default_factory=LoggingSink)
    failure_policy: FailurePolicy = FailurePolicy.FAIL_FAST
    max_workers: int = DEFAULT_MAX_WORKERS

    def __post_init__(self) -> None:
        if self.max_workers < 1:
            raise ConfigurationError("max_workers must be >= 1", field="max_workers")

    def notify(self, message: str, container_name: str, entity_name: str) -> None:
        """Report progress on one entity to the sink."""
        self.sink.progress(message, container_name, entity_name)
        self.sink.log(
            "info",
            {"message": message, "containerName": container_name, "entityName": entity_name},
            "Getting schema",
        )


@dataclass(frozen=True)
class EntityFailure:
    """An entity (or a whole schema when `entity` is None) that could not be retrieved."""

    schema: str
    entity: str | None
    message: str


@dataclass
class ExtractionResult:
    """Packages produced by an extraction plus the failures that were isolated."""

    packages: list[Package] = field(default_factory=list)
    errors: list[EntityFailure] = field(default_factory=list)

    def to_dicts(self) -> list[dict[str, Any]]:
        return [p.to_dict() for p in self.packages]


def build_table_package(
    ctx: ExtractionContext,
    schema: SchemaRef,
    table: str,
    container_data: Mapping[str, Any],
    sampling: SamplingPolicy,
) -> CollectionPackage:
    """Retrieve DDL, sample, schema and attributes of one table."""
    fetcher = ctx.fetcher
    entity = EntityRef(schema=schema, name=table)
    container = schema.full_name

    ctx.notify("Start getting data from table", container, table)
    ddl = fetcher.get_ddl(entity)
    quantity = fetcher.get_rows_count(entity)

    ctx.notify("Fetching record for JSON schema inference", container, table)
    documents, json_schema = fetcher.get_json_schema(
        compute_sample_size(quantity, sampling), entity
    )
    entity_data = fetcher.get_entity_data(entity)

    ctx.notify("Schema inference", container, table)
    handled_documents = handle_complex_types_documents(json_schema, documents)

    ctx.notify("Data retrieved successfully", container, table)
    return CollectionPackage(
        db_name=schema.schema_name,
        collection_name=table,
        database=schema.database,
        entity_level=entity_data,
        documents=handled_documents,
        ddl=ddl,
        json_schema=dict(filter_meta_properties(entity_data, json_schema)),
        container_data=dict(container_data),
    )


def build_view_info(ctx: ExtractionContext, schema: SchemaRef, view: str) -> ViewInfo:
    """Retrieve DDL and attributes of one view."""
    entity = EntityRef(schema=schema, name=view)
    container = schema.full_name

    ctx.notify("Start getting data from view", container, view)
    ddl = ctx.fetcher.get_view_ddl(entity)
    data = ctx.fetcher.get_view_data(entity)

    ctx.notify("Data retrieved successfully", container, view)
    return ViewInfo(name=view, data=data, ddl=ddl)


def _record_failure(
    ctx: ExtractionContext,
    errors: list[EntityFailure],
    schema: str,
    entity: str | None,
    exc: Exception,
) -> None:
    """Log an isolated failure and remember it for the result."""
    ctx.sink.log(
        "error",
        {"schema": schema, "entity": entity, "error": str(exc)},
        "Entity retrieval failed",
    )
    logger.warning("Skipping %s.%s: %s", schema, entity or "*", exc)
    errors.append(EntityFailure(schema=schema, entity=entity, message=str(exc)))


def fetch_tables_parallel(
    ctx: ExtractionContext,
    schema: SchemaRef,
    tables: list[str],
    container_data: Mapping[str, Any],
    sampling: SamplingPolicy,
    errors: list[EntityFailure],
) -> list[CollectionPackage]:
    """
    Build table packages concurrently, up to `ctx.max_workers` at a time.

    Results are joined by table name and returned in the order of `tables`.
    Under FAIL_FAST the first failure cancels pending work and is re-raised.
    """
    if not tables:
        return []

    by_name: dict[str, CollectionPackage] = {}

    with ThreadPoolExecutor(max_workers=min(ctx.max_workers, len(tables))) as pool:
        futures: dict[Future, str] = {
            pool.submit(build_table_package, ctx, schema, table, container_data, sampling): table
            for table in tables
        }
        for f in as_completed(futures):
            table = futures[f]
            try:
                by_name[table] = f.result()
            except Exception as exc:  # noqa: BLE001
                if ctx.failure_policy is FailurePolicy.FAIL_FAST:
                    for pending in futures:
                        pending.cancel()
                    raise
                _record_failure(ctx, errors, schema.full_name, table, exc)

    return [by_name[t] for t in tables if t in by_name]


def build_view_group_package(
    ctx: ExtractionContext,
    schema: SchemaRef,
    views: list[str],
    container_data: Mapping[str, Any],
    errors: list[EntityFailure],
) -> ViewGroupPackage | None:
    """Gather all views of a schema into one package; None when there are none."""
    infos: list[ViewInfo] = []
    for view in views:
        try:
            infos.append(build_view_info(ctx, schema, view))
        except Exception as exc:  # noqa: BLE001
            if ctx.failure_policy is FailurePolicy.FAIL_FAST:
                raise
            _record_failure(ctx, errors, schema.full_name, view, exc)

    if not infos:
        return None

    return ViewGroupPackage(
        db_name=schema.schema_name,
        database=schema.database,
        views=infos,
        container_data=dict(container_data),
    )


def collect_schema_packages(
    ctx: ExtractionContext,
    schema_name: str,
    selection: Mapping[str, str] | Iterable[str],
    sampling: SamplingPolicy,
    errors: list[EntityFailure] | None = None,
) -> list[Package]:
    """
    Build every package of one schema: tables first, then the view group.

    Args:
        ctx: Extraction context.
        schema_name: Schema full name in the form `database.schema`.
        selection: Either a `name -> kind` mapping or host labels where views
                   carry the ` (v)` suffix.
        sampling: Sampling policy for the tables.
        errors: Collector for isolated failures.
    """
    errors = errors if errors is not None else []
    schema = SchemaRef.parse(schema_name)
    listing = split_entity_names(
        selection if isinstance(selection, Mapping) else parse_entity_listing(selection)
    )

    try:
        container_data = ctx.fetcher.get_container_data(schema)
    except Exception as exc:  # noqa: BLE001
        if ctx.failure_policy is FailurePolicy.FAIL_FAST:
            raise
        _record_failure(ctx, errors, schema.full_name, None, exc)
        return []

    packages: list[Package] = list(
        fetch_tables_parallel(ctx, schema, listing.tables, container_data, sampling, errors)
    )
    view_package = build_view_group_package(ctx, schema, listing.views, container_data, errors)
    if view_package is not None:
        packages.append(view_package)
    return packages


def extract(ctx: ExtractionContext, request: ExtractionRequest) -> ExtractionResult:
    """Run one extraction request across all of its schemas, in request order."""
    result = ExtractionResult()
    ctx.sink.log(
        "info",
        {"schemas": request.schemas, "sampling": request.sampling.active.value},
        "Retrieving schema",
        request.hidden_keys,
    )
    for schema_name in request.schemas:
        packages = collect_schema_packages(
            ctx,
            schema_name,
            request.collections.get(schema_name, []),
            request.sampling,
            result.errors,
        )
        result.packages.extend(p for p in packages if p)
    return result


def get_db_collections_names(
    fetcher: MetadataFetcher, database: str | None = None
) -> dict[str, list[str]]:
    """Return entity names per `database.schema` (views suffixed with ` (v)`)."""
    return fetcher.list_entities_names(database)
