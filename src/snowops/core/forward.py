"""Forward engineering of containers: schema descriptions to CREATE/DROP DDL.

Both builders are pure: the same container always renders the same script.
Hydration and rendering are delegated to a `DDLProvider` and name
canonicalization to a `NameResolver`; `SnowflakeDDLProvider` and
`DefaultNameResolver` are the defaults.
"""

from __future__ import annotations

import re
from typing import Any, Mapping

from snowops.core.protocols import DDLProvider, NameResolver

DEFAULT_SCHEMA_NAME = "New_schema"

SCHEMA_LEVEL_DEFAULTS: dict[str, Any] = {
    "transient": False,
    "managedAccess": False,
    "comment": "",
    "dataRetention": None,
}

_PLAIN_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_$]*$")


def format_identifier(name: str) -> str:
    """Leave plain identifiers bare and double-quote everything else."""
    if _PLAIN_IDENTIFIER.match(name):
        return name
    return '"' + name.replace('"', '""') + '"'


def format_comment(comment: str) -> str:
    return "'" + comment.replace("\\", "\\\\").replace("'", "\\'") + "'"


def prepare_container_level_data(container_data: Mapping[str, Any]) -> dict[str, Any]:
    """Merge schema-level defaults under the values set on the container."""
    return {
        key: container_data[key] if container_data.get(key) is not None else default
        for key, default in SCHEMA_LEVEL_DEFAULTS.items()
    }


class DefaultNameResolver:
    """Takes the business name (`code`) of a container, falling back to `name`."""

    def get_db_name(self, role: Mapping[str, Any]) -> str:
        return str(role.get("code") or role.get("name") or DEFAULT_SCHEMA_NAME)


class SnowflakeDDLProvider:
    """Hydrates containers and renders Snowflake schema statements."""

    def __init__(self, name_resolver: NameResolver | None = None) -> None:
        self.name_resolver = name_resolver or DefaultNameResolver()

    def _qualified_name(self, name: str, database: str | None) -> str:
        if database:
            return f"{format_identifier(database)}.{format_identifier(name)}"
        return format_identifier(name)

    def hydrate_schema(
        self, container_data: Mapping[str, Any], level_data: Mapping[str, Any]
    ) -> dict[str, Any]:
        return {
            **level_data,
            "name": container_data["name"],
            "database": container_data.get("database") or None,
        }

    def create_schema(self, hydrated: Mapping[str, Any]) -> str:
        parts = ["CREATE"]
        if hydrated.get("transient"):
            parts.append("TRANSIENT")
        parts.append("SCHEMA IF NOT EXISTS")
        parts.append(self._qualified_name(hydrated["name"], hydrated.get("database")))
        if hydrated.get("managedAccess"):
            parts.append("WITH MANAGED ACCESS")
        if hydrated.get("dataRetention") is not None:
            parts.append(f"DATA_RETENTION_TIME_IN_DAYS = {int(hydrated['dataRetention'])}")
        if hydrated.get("comment"):
            parts.append(f"COMMENT = {format_comment(str(hydrated['comment']))}")
        return " ".join(parts) + ";"

    def hydrate_for_delete_schema(self, container: Mapping[str, Any]) -> dict[str, Any]:
        name = self.name_resolver.get_db_name(container)
        return {"name": self._qualified_name(name, container.get("database"))}


def build_create_container_script(
    container: Mapping[str, Any],
    ddl_provider: DDLProvider,
    name_resolver: NameResolver,
) -> str:
    """Render the CREATE SCHEMA statement of `container` (`{"role": {...}}`)."""
    role = container.get("role") or {}
    container_data = {
        "database": container.get("database"),
        **role,
        "name": name_resolver.get_db_name(role),
    }
    level_data = prepare_container_level_data(container_data)
    hydrated = ddl_provider.hydrate_schema(container_data, level_data)
    return ddl_provider.create_schema(hydrated)


def build_drop_container_script(container: Mapping[str, Any], ddl_provider: DDLProvider) -> str:
    """Render `DROP SCHEMA IF EXISTS <name>;` for `container`."""
    role = container.get("role") or {}
    hydrated = ddl_provider.hydrate_for_delete_schema({**container, **role})
    return f"DROP SCHEMA IF EXISTS {hydrated['name']};"
