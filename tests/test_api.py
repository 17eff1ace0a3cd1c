import logging

from snowops.api import SnowopsApi
from snowops.core.errors import DEFAULT_ERROR_MESSAGE, SnowflakeConnectionError, to_error_payload
from snowops.core.logsink import LoggingSink
from snowops.core.reverse import FailurePolicy

CONNECTION_INFO = {"account": "xy12345", "user": "ANALYST", "password": "secret"}


class _ManagerStub:
    def __init__(self, error: Exception | None = None):
        self.error = error
        self.connected = 0
        self.disconnected = 0
        self.tested: list[str] = []

    def connect(self, config):
        if self.error is not None:
            raise self.error
        self.connected += 1
        return object()

    def disconnect(self):
        self.disconnected += 1

    def test_connection(self, config):
        if self.error is not None:
            raise self.error
        self.tested.append(config.auth_type)
        if config.auth_type == "externalbrowser":
            return {"ssoUrl": "https://sso.example.com", "proofKey": "pk", "redirectPort": 1}
        return None


class _FetcherStub:
    def __init__(self, session):
        self.session = session

    def list_entities_names(self, database=None):
        return {"DB.PUBLIC": ["T1", "V1 (v)"]}

    def get_ddl(self, entity):
        return "create table T1 (ID NUMBER);"

    def get_view_ddl(self, entity):
        return "create view V1 as select 1;"

    def get_rows_count(self, entity):
        return 10

    def get_json_schema(self, sample_size, entity):
        return [{"ID": 1}], {"type": "object", "properties": {"ID": {"type": "number"}}}

    def get_entity_data(self, entity):
        return {"external": False}

    def get_view_data(self, entity):
        return {}

    def get_container_data(self, schema):
        return {}


class _SinkStub:
    def __init__(self):
        self.logs: list[tuple[str, object, str]] = []
        self.cleared = 0

    def log(self, level, payload, message, hidden_keys=()):
        self.logs.append((level, payload, message))

    def progress(self, message, container_name, entity_name):
        return None

    def clear(self):
        self.cleared += 1


def _api(manager=None, sink=None, **kwargs) -> SnowopsApi:
    return SnowopsApi(
        connection_manager=manager or _ManagerStub(),
        sink=sink or _SinkStub(),
        fetcher_factory=_FetcherStub,
        **kwargs,
    )


def test_to_error_payload_falls_back_to_default_message():
    assert to_error_payload(RuntimeError("")) == {"message": DEFAULT_ERROR_MESSAGE}
    assert to_error_payload("plain") == {"message": "plain"}
    assert to_error_payload(None) == {"message": DEFAULT_ERROR_MESSAGE}


def test_reverse_engineering_round_trip():
    api = _api()

    error, names = api.get_db_collections_names(CONNECTION_INFO)
    assert error is None
    assert names == {"DB.PUBLIC": ["T1", "V1 (v)"]}

    error, packages = api.get_db_collections_data(
        {
            "collectionData": {
                "dataBaseNames": ["DB.PUBLIC"],
                "collections": {"DB.PUBLIC": ["T1", "V1 (v)"]},
            },
            "recordSamplingSettings": {"active": "absolute", "absolute": {"value": 5}},
        }
    )
    assert error is None
    assert [p["dbName"] for p in packages] == ["PUBLIC", "PUBLIC"]
    assert packages[0]["collectionName"] == "T1"
    assert packages[1]["views"][0]["name"] == "V1"


def test_collections_data_before_connect_returns_error():
    error, result = _api().get_db_collections_data({"collectionData": {}})

    assert error == {"message": "Not connected to Snowflake."}
    assert result is None


def test_invalid_sampling_is_reported_as_message():
    api = _api()
    api.connect(CONNECTION_INFO)

    error, _ = api.get_db_collections_data(
        {"collectionData": {}, "recordSamplingSettings": {"active": "never"}}
    )

    assert "Unknown sampling mode" in error["message"]


def test_connection_error_with_empty_message_uses_default():
    sink = _SinkStub()
    api = _api(manager=_ManagerStub(error=SnowflakeConnectionError("", account="xy12345")), sink=sink)

    error, result = api.test_connection(CONNECTION_INFO)

    assert error == {"message": DEFAULT_ERROR_MESSAGE}
    assert result is None
    level, payload, message = sink.logs[-1]
    assert level == "error"
    assert payload["type"] == "SnowflakeConnectionError"
    assert payload["account"] == "xy12345"


def test_connection_info_is_logged_redacted():
    sink = _SinkStub()

    _api(sink=sink).connect(CONNECTION_INFO)

    _, payload, message = sink.logs[0]
    assert message == "connectionInfo"
    assert payload["password"] == "***"
    assert sink.cleared == 1


def test_camel_case_hidden_keys_keep_secrets_out_of_the_log(caplog):
    sink = LoggingSink(logging.getLogger("api_test"))
    info = {
        "account": "xy12345",
        "user": "ANALYST",
        "authType": "keypair",
        "privateKeyPath": "/keys/k.p8",
        "privateKeyPassphrase": "s3cr3t-pass",
        "token": "t0k-value",
        "hiddenKeys": ["password", "privateKeyPassphrase"],
    }

    with caplog.at_level(logging.INFO, logger="api_test"):
        error, _ = _api(sink=sink).connect(info)

    assert error is None
    assert "connectionInfo" in caplog.text
    assert "s3cr3t-pass" not in caplog.text
    assert "t0k-value" not in caplog.text


def test_get_external_browser_url_forces_browser_auth():
    manager = _ManagerStub()

    error, payload = _api(manager=manager).get_external_browser_url(CONNECTION_INFO)

    assert error is None
    assert payload["ssoUrl"] == "https://sso.example.com"
    assert manager.tested == ["externalbrowser"]


def test_disconnect_delegates_to_manager():
    manager = _ManagerStub()
    api = _api(manager=manager)

    api.connect(CONNECTION_INFO)
    assert api.disconnect() == (None, None)
    assert manager.disconnected == 1


def test_databases_and_document_kinds_are_empty():
    api = _api()

    assert api.get_databases() == (None, None)
    assert api.get_document_kinds() == (None, None)


def test_container_scripts():
    api = _api()

    assert api.get_add_container_script({"role": {"name": "ANALYTICS"}}) == (
        None,
        "CREATE SCHEMA IF NOT EXISTS ANALYTICS;",
    )
    assert api.get_delete_container_script({"role": {"name": "ANALYTICS"}}) == (
        None,
        "DROP SCHEMA IF EXISTS ANALYTICS;",
    )


def test_isolate_policy_is_passed_to_extraction():
    class _BrokenFetcher(_FetcherStub):
        def get_ddl(self, entity):
            raise RuntimeError("no access")

    api = SnowopsApi(
        connection_manager=_ManagerStub(),
        sink=_SinkStub(),
        fetcher_factory=_BrokenFetcher,
        failure_policy=FailurePolicy.ISOLATE,
    )
    api.connect(CONNECTION_INFO)

    error, packages = api.get_db_collections_data(
        {
            "collectionData": {
                "dataBaseNames": ["DB.PUBLIC"],
                "collections": {"DB.PUBLIC": ["T1", "V1 (v)"]},
            },
            "recordSamplingSettings": {"active": "absolute", "absolute": {"value": 5}},
        }
    )

    assert error is None
    assert len(packages) == 1
    assert packages[0]["views"][0]["name"] == "V1"
