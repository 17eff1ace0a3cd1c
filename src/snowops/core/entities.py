"""Entity classification: split a schema listing into tables and views."""

from __future__ import annotations

from typing import Iterable, Mapping

from snowops.core.models import EntityChoice, EntityListing, EntityRef, SchemaRef
from snowops.core.selectors import EntitySelector

VIEW_SUFFIX = " (v)"

TABLE_KINDS = frozenset(
    {"table", "base table", "external table", "dynamic table", "transient table"}
)
VIEW_KINDS = frozenset({"view", "materialized view", "secure view"})


def split_entity_names(listing: Mapping[str, str]) -> EntityListing:
    """
    Partition a `name -> kind` listing into tables and views.

    Source order is kept within each bucket. Names whose kind is not a known
    table or view kind are dropped.
    """
    tables: list[str] = []
    views: list[str] = []
    for name, kind in listing.items():
        normalized = (kind or "").strip().lower()
        if normalized in TABLE_KINDS:
            tables.append(name)
        elif normalized in VIEW_KINDS:
            views.append(name)
    return EntityListing(tables=tables, views=views)


def mark_view_name(name: str) -> str:
    """Return the listing label used for a view (`NAME (v)`)."""
    return f"{name}{VIEW_SUFFIX}"


def parse_entity_listing(names: Iterable[str]) -> dict[str, str]:
    """Turn a host selection (views suffixed with ` (v)`) into `name -> kind`."""
    listing: dict[str, str] = {}
    for label in names:
        if label.endswith(VIEW_SUFFIX):
            listing[label[: -len(VIEW_SUFFIX)]] = "view"
        else:
            listing[label] = "table"
    return listing


def get_full_entity_name(schema: str | SchemaRef, name: str) -> str:
    """Build the quoted, fully qualified name of `name` inside `schema`."""
    schema_ref = schema if isinstance(schema, SchemaRef) else SchemaRef.parse(schema)
    return EntityRef(schema=schema_ref, name=name).full_name


def entity_choices(names: Mapping[str, Iterable[str]]) -> list[EntityChoice]:
    """Expand a names listing (`database.schema -> labels`) into EntityChoice items."""
    choices: list[EntityChoice] = []
    for schema, labels in names.items():
        for name, kind in parse_entity_listing(labels).items():
            choices.append(EntityChoice(schema=schema, name=name, kind=kind))
    return choices


def select_entities(
    choices: Iterable[EntityChoice], selector: EntitySelector
) -> list[EntityChoice]:
    """Return the choices accepted by `selector`, in listing order."""
    return [c for c in choices if selector.matches(c)]


def group_selection(choices: Iterable[EntityChoice]) -> dict[str, list[str]]:
    """Group selected choices back into host labels per schema full name."""
    grouped: dict[str, list[str]] = {}
    for c in choices:
        label = mark_view_name(c.name) if c.kind == "view" else c.name
        grouped.setdefault(c.schema, []).append(label)
    return grouped
