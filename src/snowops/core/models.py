"""Core domain models for Snowflake reverse engineering.

These models represent schemas, entities and the packages handed back to the
host in a simple, mostly immutable form. They are intentionally free of
Snowflake connector types and UI/CLI concerns.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping

from snowops.core.errors import ConfigurationError

DDL_TYPE = "snowflake"
DEFAULT_ABSOLUTE_SAMPLE = 1000
DEFAULT_RELATIVE_SAMPLE = 1.0


def quote_identifier(name: str) -> str:
    """Return a double-quoted Snowflake identifier with embedded quotes doubled."""
    return '"' + name.replace('"', '""') + '"'


@dataclass(frozen=True)
class SchemaRef:
    """A `database.schema` container reference."""

    database: str
    schema_name: str

    @classmethod
    def parse(cls, value: str) -> SchemaRef:
        """Split `database.schema` into a SchemaRef."""
        parts = value.strip().split(".")
        if len(parts) != 2:
            raise ConfigurationError(
                f"Schema must be in the form `database.schema`, got '{value}'.",
                field="schema",
            )
        database, schema_name = parts
        if not database or not schema_name:
            raise ConfigurationError(
                f"Schema must be in the form `database.schema`, got '{value}'.",
                field="schema",
            )
        return cls(database=database, schema_name=schema_name)

    @property
    def full_name(self) -> str:
        return f"{self.database}.{self.schema_name}"

    @property
    def quoted_name(self) -> str:
        return f"{quote_identifier(self.database)}.{quote_identifier(self.schema_name)}"


@dataclass(frozen=True)
class EntityRef:
    """A table or view inside a schema."""

    schema: SchemaRef
    name: str

    @property
    def full_name(self) -> str:
        """Fully qualified, quoted name usable in SQL statements."""
        return f"{self.schema.quoted_name}.{quote_identifier(self.name)}"

    @property
    def display_name(self) -> str:
        return f"{self.schema.full_name}.{self.name}"


class SamplingMode(str, Enum):
    """Which branch of a sampling policy is active."""

    ABSOLUTE = "absolute"
    RELATIVE = "relative"


@dataclass(frozen=True)
class SamplingPolicy:
    """
    How many rows to read per entity for schema inference.

    Attributes:
        active: Which branch applies.
        absolute: Row count used verbatim when `active` is absolute.
        relative: Percentage of the row count used when `active` is relative.
    """

    active: SamplingMode = SamplingMode.ABSOLUTE
    absolute: int = DEFAULT_ABSOLUTE_SAMPLE
    relative: float = DEFAULT_RELATIVE_SAMPLE

    @classmethod
    def from_dict(cls, settings: Mapping[str, Any]) -> SamplingPolicy:
        """Build a policy from the host's `recordSamplingSettings` payload."""
        if not isinstance(settings, Mapping):
            raise ConfigurationError(
                "Sampling settings must be a mapping.", field="recordSamplingSettings"
            )
        try:
            active = SamplingMode(str(settings.get("active", "")).lower())
        except ValueError as exc:
            raise ConfigurationError(
                f"Unknown sampling mode: {settings.get('active')!r}",
                field="active",
            ) from exc

        absolute = _branch_value(settings, "absolute", required=active is SamplingMode.ABSOLUTE)
        relative = _branch_value(settings, "relative", required=active is SamplingMode.RELATIVE)

        if absolute is not None and (absolute < 0 or int(absolute) != absolute):
            raise ConfigurationError(
                "Absolute sample size must be a non-negative integer.", field="absolute"
            )
        if relative is not None and not 0 <= relative <= 100:
            raise ConfigurationError(
                "Relative sample size must be between 0 and 100.", field="relative"
            )

        return cls(
            active=active,
            absolute=int(absolute) if absolute is not None else DEFAULT_ABSOLUTE_SAMPLE,
            relative=relative if relative is not None else DEFAULT_RELATIVE_SAMPLE,
        )


def _branch_value(settings: Mapping[str, Any], key: str, *, required: bool) -> float | None:
    branch = settings.get(key)
    raw = branch.get("value") if isinstance(branch, Mapping) else None
    if raw is None:
        if required:
            raise ConfigurationError(f"Missing `{key}.value` in sampling settings.", field=key)
        return None
    if isinstance(raw, bool):
        raise ConfigurationError(f"`{key}.value` must be a number.", field=key)
    try:
        value = float(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"`{key}.value` must be a number.", field=key) from exc
    if not math.isfinite(value):
        raise ConfigurationError(f"`{key}.value` must be a finite number.", field=key)
    return value


@dataclass(frozen=True)
class EntityListing:
    """Entity names of one schema, split by kind, in source order."""

    tables: list[str] = field(default_factory=list)
    views: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class ExtractionRequest:
    """
    One reverse-engineering request.

    Attributes:
        schemas: Schema full names (`database.schema`) in the order to process.
        collections: Selected entity names per schema full name.
        sampling: Sampling policy applied to every table.
        hidden_keys: Payload keys redacted before logging.
    """

    schemas: list[str]
    collections: Mapping[str, list[str]]
    sampling: SamplingPolicy
    hidden_keys: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ExtractionRequest:
        """Build a request from the host payload (`collectionData`, `recordSamplingSettings`)."""
        collection_data = data.get("collectionData") or {}
        collections = collection_data.get("collections") or {}
        schemas = list(collection_data.get("dataBaseNames") or [])
        return cls(
            schemas=schemas,
            collections={k: list(v or []) for k, v in collections.items()},
            sampling=SamplingPolicy.from_dict(data.get("recordSamplingSettings") or {}),
            hidden_keys=tuple(data.get("hiddenKeys") or ()),
        )


@dataclass
class ViewInfo:
    """One view entry inside a view-group package."""

    name: str
    data: dict[str, Any]
    ddl: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "data": self.data,
            "ddl": {"script": self.ddl, "type": DDL_TYPE},
        }


@dataclass
class CollectionPackage:
    """Reverse-engineered table: documents, DDL and validation schema."""

    db_name: str
    collection_name: str
    database: str
    entity_level: dict[str, Any]
    documents: list[dict[str, Any]]
    ddl: str
    json_schema: dict[str, Any]
    container_data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "dbName": self.db_name,
            "collectionName": self.collection_name,
            "entityLevel": self.entity_level,
            "documents": self.documents,
            "views": [],
            "ddl": {
                "script": self.ddl,
                "type": DDL_TYPE,
                "takeAllDdlProperties": True,
            },
            "emptyBucket": False,
            "validation": {"jsonSchema": self.json_schema},
            "bucketInfo": _bucket_info(self.database, self.container_data),
        }


@dataclass
class ViewGroupPackage:
    """All views of one schema, emitted as a single package."""

    db_name: str
    database: str
    views: list[ViewInfo]
    container_data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "dbName": self.db_name,
            "entityLevel": {},
            "views": [v.to_dict() for v in self.views],
            "emptyBucket": False,
            "bucketInfo": _bucket_info(self.database, self.container_data),
        }


def _bucket_info(database: str, container_data: Mapping[str, Any]) -> dict[str, Any]:
    return {"indexes": [], "database": database, **container_data}


@dataclass(frozen=True)
class EntityChoice:
    """An entity offered for selection: schema full name, bare name and kind."""

    schema: str
    name: str
    kind: str

    @property
    def label(self) -> str:
        return f"{self.schema}.{self.name}"
