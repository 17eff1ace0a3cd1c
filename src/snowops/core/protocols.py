"""Interfaces for the collaborators the core depends on.

The core never talks to a Snowflake connection, a DDL library or a UI
directly; it only uses these protocols. Concrete defaults live in
`snowops.core.connection`, `snowops.core.forward` and `snowops.core.logsink`.
"""

from __future__ import annotations

from typing import Any, Mapping, Protocol

from snowops.core.config import ConnectionConfig


class WarehouseSession(Protocol):
    """An open warehouse session able to run one statement at a time."""

    def execute(self, statement: str) -> list[dict[str, Any]]:
        """Run `statement` and return its rows as dicts keyed by column name."""
        ...


class ConnectionManager(Protocol):
    """Opens and closes the shared warehouse session for one run."""

    def connect(self, config: ConnectionConfig) -> WarehouseSession:
        """Open a session; raise SnowflakeConnectionError on failure."""
        ...

    def disconnect(self) -> None:
        """Close the session if one is open."""
        ...

    def test_connection(self, config: ConnectionConfig) -> dict[str, Any] | None:
        """Check that a session can be opened with `config`."""
        ...


class SsoUrlProvider(Protocol):
    """Acquires SSO data for `externalbrowser` authentication."""

    def get_sso_url_data(self, config: ConnectionConfig) -> dict[str, Any]:
        """Return the SSO URL payload handed back to the host."""
        ...


class DDLProvider(Protocol):
    """Hydrates container descriptions and renders schema DDL."""

    def hydrate_schema(
        self, container_data: Mapping[str, Any], level_data: Mapping[str, Any]
    ) -> dict[str, Any]:
        """Merge container data and schema-level data into a hydrated container."""
        ...

    def create_schema(self, hydrated: Mapping[str, Any]) -> str:
        """Render a CREATE SCHEMA statement."""
        ...

    def hydrate_for_delete_schema(self, container: Mapping[str, Any]) -> dict[str, Any]:
        """Return at least `{"name": ...}` for a DROP SCHEMA statement."""
        ...


class NameResolver(Protocol):
    """Canonicalizes a container role into its schema name."""

    def get_db_name(self, role: Mapping[str, Any]) -> str:
        ...


class ProgressSink(Protocol):
    """Side channel for logs and progress; never influences results."""

    def log(
        self,
        level: str,
        payload: Any,
        message: str,
        hidden_keys: tuple[str, ...] = (),
    ) -> None:
        ...

    def progress(self, message: str, container_name: str, entity_name: str) -> None:
        ...

    def clear(self) -> None:
        ...
