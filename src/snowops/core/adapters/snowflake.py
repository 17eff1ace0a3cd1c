from __future__ import annotations

from typing import Any, Iterable

from snowops.core.entities import mark_view_name
from snowops.core.errors import RetrievalError
from snowops.core.inference import infer_json_schema
from snowops.core.models import EntityRef, SchemaRef, quote_identifier
from snowops.core.protocols import WarehouseSession

SYSTEM_SCHEMAS = frozenset({"INFORMATION_SCHEMA"})


def _literal(value: str) -> str:
    """Return `value` as a single-quoted SQL string literal."""
    return "'" + value.replace("\\", "\\\\").replace("'", "\\'") + "'"


def _flag(value: Any) -> bool:
    """Interpret SHOW-command flags ('Y', 'true', 'ON', True...) as booleans."""
    if isinstance(value, bool):
        return value
    return str(value or "").strip().upper() in {"Y", "YES", "TRUE", "ON"}


def _first_value(row: dict[str, Any]) -> Any:
    return next(iter(row.values()), None)


class SnowflakeAdapter:
    """Adapter issuing the metadata and sampling statements for reverse engineering."""

    def __init__(self, session: WarehouseSession) -> None:
        self.session = session

    def _run(self, statement: str, *, entity: str | None = None) -> list[dict[str, Any]]:
        """Execute a statement, turning driver failures into RetrievalError."""
        try:
            return self.session.execute(statement)
        except RetrievalError:
            raise
        except Exception as exc:  # noqa: BLE001
            target = f" for {entity}" if entity else ""
            raise RetrievalError(
                f"Statement failed{target}: {exc}", entity=entity, statement=statement
            ) from exc

    def _show_like(
        self, what: str, name: str, scope: str, *, entity: str | None = None
    ) -> dict[str, Any] | None:
        """Run `SHOW <what> LIKE '<name>' IN <scope>` and return the exact-name match."""
        rows = self._run(f"SHOW {what} LIKE {_literal(name)} IN {scope}", entity=entity)
        for row in rows:
            if row.get("name") == name:
                return row
        return None

    def list_entities_names(self, database: str | None = None) -> dict[str, list[str]]:
        """
        List tables and views per `database.schema`.

        Views carry the ` (v)` suffix so a selection can be split again later.
        System schemas are skipped.
        """
        scope = f"DATABASE {quote_identifier(database)}" if database else "ACCOUNT"
        tables = self._run(f"SHOW TERSE TABLES IN {scope}")
        external = self._run(f"SHOW EXTERNAL TABLES IN {scope}")
        views = self._run(f"SHOW TERSE VIEWS IN {scope}")

        names: dict[str, list[str]] = {}

        def _add(rows: Iterable[dict[str, Any]], *, is_view: bool) -> None:
            for row in rows:
                schema_name = row.get("schema_name")
                if not schema_name or schema_name in SYSTEM_SCHEMAS:
                    continue
                key = f"{row.get('database_name')}.{schema_name}"
                label = mark_view_name(row["name"]) if is_view else row["name"]
                bucket = names.setdefault(key, [])
                if label not in bucket:
                    bucket.append(label)

        _add(tables, is_view=False)
        _add(external, is_view=False)
        _add(views, is_view=True)
        return names

    def get_ddl(self, entity: EntityRef) -> str:
        """Return the CREATE TABLE statement of a table."""
        return self._get_ddl("TABLE", entity)

    def get_view_ddl(self, entity: EntityRef) -> str:
        """Return the CREATE VIEW statement of a view."""
        return self._get_ddl("VIEW", entity)

    def _get_ddl(self, kind: str, entity: EntityRef) -> str:
        rows = self._run(
            f"SELECT GET_DDL({_literal(kind)}, {_literal(entity.full_name)}) AS DDL",
            entity=entity.display_name,
        )
        if not rows:
            raise RetrievalError(
                f"No DDL returned for {entity.display_name}", entity=entity.display_name
            )
        return str(_first_value(rows[0]) or "")

    def get_rows_count(self, entity: EntityRef) -> int:
        """Return the number of rows in a table."""
        rows = self._run(
            f"SELECT COUNT(*) AS COUNT FROM {entity.full_name}", entity=entity.display_name
        )
        count = _first_value(rows[0]) if rows else 0
        return max(int(count or 0), 0)

    def get_columns(self, entity: EntityRef) -> list[dict[str, Any]]:
        """Return declared columns (`name`, `type`, `nullable`, `comment`) in table order."""
        rows = self._run(f"DESC TABLE {entity.full_name}", entity=entity.display_name)
        return [
            {
                "name": row.get("name"),
                "type": row.get("type"),
                "nullable": _flag(row.get("null?", "Y")),
                "comment": row.get("comment"),
            }
            for row in rows
            if row.get("name")
        ]

    def get_documents(self, entity: EntityRef, limit: int) -> list[dict[str, Any]]:
        """Return up to `limit` rows of the entity."""
        if limit <= 0:
            return []
        return self._run(
            f"SELECT * FROM {entity.full_name} LIMIT {int(limit)}", entity=entity.display_name
        )

    def get_json_schema(
        self, sample_size: int, entity: EntityRef
    ) -> tuple[list[dict[str, Any]], dict[str, Any]]:
        """Sample the entity and infer its schema; returns (documents, json_schema)."""
        columns = self.get_columns(entity)
        documents = self.get_documents(entity, sample_size)
        return documents, infer_json_schema(documents, columns)

    def get_entity_data(self, entity: EntityRef) -> dict[str, Any]:
        """Return table-level attributes (external flag, clustering, retention...)."""
        scope = f"SCHEMA {entity.schema.quoted_name}"
        row = self._show_like("TABLES", entity.name, scope, entity=entity.display_name)
        if row is not None and not _flag(row.get("is_external")):
            return {
                "external": False,
                "transient": str(row.get("kind") or "").upper() == "TRANSIENT",
                "temporary": str(row.get("kind") or "").upper() == "TEMPORARY",
                "clusteringKey": row.get("cluster_by") or "",
                "comment": row.get("comment") or "",
                "retentionTime": row.get("retention_time"),
                "changeTracking": _flag(row.get("change_tracking")),
            }

        ext = self._show_like("EXTERNAL TABLES", entity.name, scope, entity=entity.display_name)
        if ext is None:
            if row is None:
                raise RetrievalError(
                    f"Table {entity.display_name} was not found.", entity=entity.display_name
                )
            ext = row
        return {
            "external": True,
            "comment": ext.get("comment") or "",
            "location": ext.get("location") or "",
            "fileFormat": ext.get("file_format_name") or ext.get("file_format_type") or "",
            "autoRefresh": _flag(ext.get("auto_refresh")),
        }

    def get_view_data(self, entity: EntityRef) -> dict[str, Any]:
        """Return view-level attributes (secure, materialized, comment)."""
        row = self._show_like(
            "VIEWS", entity.name, f"SCHEMA {entity.schema.quoted_name}", entity=entity.display_name
        )
        if row is None:
            raise RetrievalError(
                f"View {entity.display_name} was not found.", entity=entity.display_name
            )
        return {
            "secure": _flag(row.get("is_secure")),
            "materialized": _flag(row.get("is_materialized")),
            "comment": row.get("comment") or "",
        }

    def get_container_data(self, schema: SchemaRef) -> dict[str, Any]:
        """Return schema-level attributes; called once per schema."""
        row = self._show_like(
            "SCHEMAS",
            schema.schema_name,
            f"DATABASE {quote_identifier(schema.database)}",
            entity=schema.full_name,
        )
        if row is None:
            raise RetrievalError(
                f"Schema {schema.full_name} was not found.", entity=schema.full_name
            )
        options = str(row.get("options") or "").upper()
        return {
            "transient": "TRANSIENT" in options,
            "managedAccess": "MANAGED ACCESS" in options,
            "comment": row.get("comment") or "",
            "dataRetention": row.get("retention_time"),
        }
