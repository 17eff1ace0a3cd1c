"""Host-facing entry points.

`SnowopsApi` is built once with its collaborators and then serves every host
call. Each call returns an `(error, result)` pair: `error` is None on success
or the `{"message": str}` payload on failure. This is the only place where
typed errors are collapsed into strings.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Mapping

from snowops.core.adapters.snowflake import SnowflakeAdapter
from snowops.core.config import ConnectionConfig, max_workers_from_env
from snowops.core.connection import SnowflakeConnectionManager
from snowops.core.errors import SnowflakeConnectionError, to_error_payload
from snowops.core.forward import (
    DefaultNameResolver,
    SnowflakeDDLProvider,
    build_create_container_script,
    build_drop_container_script,
)
from snowops.core.logsink import LoggingSink
from snowops.core.models import ExtractionRequest
from snowops.core.protocols import (
    ConnectionManager,
    DDLProvider,
    NameResolver,
    ProgressSink,
    WarehouseSession,
)
from snowops.core.reverse import (
    ExtractionContext,
    FailurePolicy,
    MetadataFetcher,
    extract,
    get_db_collections_names,
)

logger = logging.getLogger(__name__)

ApiResult = tuple[dict[str, Any] | None, Any]


class SnowopsApi:
    """Reverse and forward engineering entry points with injected collaborators."""

    def __init__(
        self,
        connection_manager: ConnectionManager | None = None,
        ddl_provider: DDLProvider | None = None,
        name_resolver: NameResolver | None = None,
        sink: ProgressSink | None = None,
        *,
        fetcher_factory: Callable[[WarehouseSession], MetadataFetcher] = SnowflakeAdapter,
        failure_policy: FailurePolicy = FailurePolicy.FAIL_FAST,
        max_workers: int | None = None,
    ) -> None:
        self.connection_manager = connection_manager or SnowflakeConnectionManager()
        self.name_resolver = name_resolver or DefaultNameResolver()
        self.ddl_provider = ddl_provider or SnowflakeDDLProvider(self.name_resolver)
        self.sink = sink or LoggingSink()
        self.fetcher_factory = fetcher_factory
        self.failure_policy = failure_policy
        self.max_workers = max_workers or max_workers_from_env()
        self._session: WarehouseSession | None = None

    def _handle_error(self, error: Exception) -> ApiResult:
        """Log the structured error, then collapse it into the host payload."""
        self.sink.log(
            "error",
            {"error": str(error), "type": type(error).__name__, **vars(error)},
            "Reverse Engineering error",
        )
        logger.debug("Reverse engineering failed", exc_info=error)
        return to_error_payload(error), None

    def _config(self, connection_info: Mapping[str, Any] | ConnectionConfig) -> ConnectionConfig:
        if isinstance(connection_info, ConnectionConfig):
            return connection_info
        return ConnectionConfig.from_dict(connection_info)

    def _open(self, config: ConnectionConfig) -> WarehouseSession:
        self.sink.clear()
        self.sink.log("info", config.redacted(), "connectionInfo", config.hidden_keys)
        self._session = self.connection_manager.connect(config)
        return self._session

    def connect(self, connection_info: Mapping[str, Any] | ConnectionConfig) -> ApiResult:
        try:
            self._open(self._config(connection_info))
        except Exception as exc:  # noqa: BLE001
            return self._handle_error(exc)
        return None, None

    def disconnect(self) -> ApiResult:
        try:
            self.connection_manager.disconnect()
        except Exception as exc:  # noqa: BLE001
            return self._handle_error(exc)
        finally:
            self._session = None
        return None, None

    def test_connection(self, connection_info: Mapping[str, Any] | ConnectionConfig) -> ApiResult:
        """Check credentials; for `externalbrowser` auth this returns the SSO payload."""
        try:
            config = self._config(connection_info)
            self.sink.clear()
            self.sink.log("info", config.redacted(), "connectionInfo", config.hidden_keys)
            return None, self.connection_manager.test_connection(config)
        except Exception as exc:  # noqa: BLE001
            return self._handle_error(exc)

    def get_external_browser_url(
        self, connection_info: Mapping[str, Any] | ConnectionConfig
    ) -> ApiResult:
        try:
            config = self._config(connection_info)
            return None, self.connection_manager.test_connection(
                config.model_copy(update={"auth_type": "externalbrowser"})
            )
        except Exception as exc:  # noqa: BLE001
            return self._handle_error(exc)

    def get_databases(self) -> ApiResult:
        return None, None

    def get_document_kinds(self) -> ApiResult:
        return None, None

    def get_db_collections_names(
        self, connection_info: Mapping[str, Any] | ConnectionConfig
    ) -> ApiResult:
        """Connect and list entity names per `database.schema`."""
        try:
            config = self._config(connection_info)
            session = self._open(config)
            names = get_db_collections_names(self.fetcher_factory(session), config.database)
        except Exception as exc:  # noqa: BLE001
            return self._handle_error(exc)
        self.sink.log("info", {"entities": names}, "Found entities")
        return None, names

    def get_db_collections_data(self, data: Mapping[str, Any]) -> ApiResult:
        """Extract the selected entities into collection packages (as dicts)."""
        try:
            if self._session is None:
                raise SnowflakeConnectionError("Not connected to Snowflake.")
            request = ExtractionRequest.from_dict(data)
            ctx = ExtractionContext(
                fetcher=self.fetcher_factory(self._session),
                sink=self.sink,
                failure_policy=self.failure_policy,
                max_workers=self.max_workers,
            )
            result = extract(ctx, request)
        except Exception as exc:  # noqa: BLE001
            return self._handle_error(exc)
        return None, result.to_dicts()

    def get_add_container_script(self, container: Mapping[str, Any]) -> ApiResult:
        try:
            return None, build_create_container_script(
                container, self.ddl_provider, self.name_resolver
            )
        except Exception as exc:  # noqa: BLE001
            return self._handle_error(exc)

    def get_delete_container_script(self, container: Mapping[str, Any]) -> ApiResult:
        try:
            return None, build_drop_container_script(container, self.ddl_provider)
        except Exception as exc:  # noqa: BLE001
            return self._handle_error(exc)
