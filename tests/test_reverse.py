import threading

import pytest

from snowops.core.errors import ConfigurationError, RetrievalError
from snowops.core.models import ExtractionRequest, SamplingMode, SamplingPolicy
from snowops.core.reverse import (
    ExtractionContext,
    FailurePolicy,
    collect_schema_packages,
    extract,
    get_db_collections_names,
)


class _FetcherStub:
    def __init__(self, *, rows: int = 1000, failing: set[str] | None = None, external=()):
        self.rows = rows
        self.failing = failing or set()
        self.external = set(external)
        self.sample_sizes: dict[str, int] = {}
        self.container_calls: list[str] = []
        self._lock = threading.Lock()

    def _check(self, name: str) -> None:
        if name in self.failing:
            raise RetrievalError(f"boom {name}", entity=name)

    def list_entities_names(self, database=None):
        return {"DB.PUBLIC": ["T1", "V1 (v)"]}

    def get_ddl(self, entity):
        self._check(entity.name)
        return f"create or replace TABLE {entity.name} (ID NUMBER(38,0));"

    def get_view_ddl(self, entity):
        self._check(entity.name)
        return f"create or replace view {entity.name} as select 1;"

    def get_rows_count(self, entity):
        return self.rows

    def get_json_schema(self, sample_size, entity):
        with self._lock:
            self.sample_sizes[entity.name] = sample_size
        documents = [{"ID": 1, "VALUE": "{}"}]
        schema = {
            "type": "object",
            "properties": {"ID": {"type": "number", "mode": "number"}, "VALUE": {"type": "string"}},
        }
        return documents, schema

    def get_entity_data(self, entity):
        return {"external": entity.name in self.external}

    def get_view_data(self, entity):
        return {"secure": False}

    def get_container_data(self, schema):
        self.container_calls.append(schema.full_name)
        self._check(schema.full_name)
        return {"transient": False, "comment": ""}


class _SinkStub:
    def __init__(self):
        self.progress_events: list[tuple[str, str, str]] = []
        self.logs: list[tuple[str, str]] = []
        self._lock = threading.Lock()

    def log(self, level, payload, message, hidden_keys=()):
        with self._lock:
            self.logs.append((level, message))

    def progress(self, message, container_name, entity_name):
        with self._lock:
            self.progress_events.append((message, container_name, entity_name))

    def clear(self):
        self.progress_events.clear()


def _request(collections: dict[str, list[str]], percent: float = 10) -> ExtractionRequest:
    return ExtractionRequest.from_dict(
        {
            "collectionData": {"dataBaseNames": list(collections), "collections": collections},
            "recordSamplingSettings": {"active": "relative", "relative": {"value": percent}},
        }
    )


def test_extract_single_table_builds_one_package():
    fetcher = _FetcherStub(rows=1000)
    ctx = ExtractionContext(fetcher=fetcher, sink=_SinkStub())

    result = extract(ctx, _request({"DB.PUBLIC": ["T1"]}))
    packages = result.to_dicts()

    assert fetcher.sample_sizes == {"T1": 100}
    assert len(packages) == 1
    package = packages[0]
    assert package["dbName"] == "PUBLIC"
    assert package["collectionName"] == "T1"
    assert package["views"] == []
    assert package["bucketInfo"]["database"] == "DB"
    assert package["documents"] == [{"ID": 1, "VALUE": "{}"}]
    assert result.errors == []


def test_extract_table_and_view_builds_two_packages():
    ctx = ExtractionContext(fetcher=_FetcherStub(), sink=_SinkStub())

    packages = extract(ctx, _request({"DB.PUBLIC": ["T1", "V1 (v)"]})).to_dicts()

    assert len(packages) == 2
    assert packages[0]["collectionName"] == "T1"
    assert [v["name"] for v in packages[1]["views"]] == ["V1"]
    assert packages[1]["views"][0]["ddl"]["type"] == "snowflake"


def test_no_view_package_when_schema_has_no_views():
    ctx = ExtractionContext(fetcher=_FetcherStub(), sink=_SinkStub())

    packages = extract(ctx, _request({"DB.PUBLIC": ["T1", "T2"]})).to_dicts()

    assert all(p["views"] == [] for p in packages)
    assert len(packages) == 2


def test_table_progress_is_reported_in_order():
    sink = _SinkStub()
    ctx = ExtractionContext(fetcher=_FetcherStub(), sink=sink)

    extract(ctx, _request({"DB.PUBLIC": ["T1", "V1 (v)"]}))

    table_steps = [m for m, _, e in sink.progress_events if e == "T1"]
    view_steps = [m for m, _, e in sink.progress_events if e == "V1"]
    assert table_steps == [
        "Start getting data from table",
        "Fetching record for JSON schema inference",
        "Schema inference",
        "Data retrieved successfully",
    ]
    assert view_steps == ["Start getting data from view", "Data retrieved successfully"]
    assert {c for _, c, _ in sink.progress_events} == {"DB.PUBLIC"}


def test_tables_are_returned_in_selection_order_with_many_workers():
    tables = [f"T{i}" for i in range(1, 9)]
    ctx = ExtractionContext(fetcher=_FetcherStub(), sink=_SinkStub(), max_workers=3)

    packages = extract(ctx, _request({"DB.PUBLIC": tables})).to_dicts()

    assert [p["collectionName"] for p in packages] == tables


def test_container_data_is_fetched_once_per_schema():
    fetcher = _FetcherStub()
    ctx = ExtractionContext(fetcher=fetcher, sink=_SinkStub())

    extract(ctx, _request({"DB.PUBLIC": ["T1", "T2", "V1 (v)"], "DB.RAW": ["E1"]}))

    assert fetcher.container_calls == ["DB.PUBLIC", "DB.RAW"]


def test_external_tables_drop_meta_properties():
    ctx = ExtractionContext(fetcher=_FetcherStub(external={"T1"}), sink=_SinkStub())

    packages = extract(ctx, _request({"DB.PUBLIC": ["T1", "T2"]})).to_dicts()

    assert list(packages[0]["validation"]["jsonSchema"]["properties"]) == ["ID"]
    assert list(packages[1]["validation"]["jsonSchema"]["properties"]) == ["ID", "VALUE"]


def test_fail_fast_aborts_on_first_error():
    ctx = ExtractionContext(fetcher=_FetcherStub(failing={"T2"}), sink=_SinkStub())

    with pytest.raises(RetrievalError, match="boom T2"):
        extract(ctx, _request({"DB.PUBLIC": ["T1", "T2", "T3"]}))


def test_isolate_skips_failing_entities():
    sink = _SinkStub()
    ctx = ExtractionContext(
        fetcher=_FetcherStub(failing={"T2", "V1"}),
        sink=sink,
        failure_policy=FailurePolicy.ISOLATE,
    )

    result = extract(ctx, _request({"DB.PUBLIC": ["T1", "T2", "V1 (v)", "V2 (v)"]}))
    packages = result.to_dicts()

    assert [p.get("collectionName") for p in packages] == ["T1", None]
    assert [v["name"] for v in packages[1]["views"]] == ["V2"]
    assert sorted(f.entity for f in result.errors) == ["T2", "V1"]
    assert ("error", "Entity retrieval failed") in sink.logs


def test_isolate_skips_schema_when_container_data_fails():
    ctx = ExtractionContext(
        fetcher=_FetcherStub(failing={"DB.BROKEN"}),
        sink=_SinkStub(),
        failure_policy=FailurePolicy.ISOLATE,
    )

    result = extract(ctx, _request({"DB.BROKEN": ["T1"], "DB.PUBLIC": ["T1"]}))

    assert [p["bucketInfo"]["database"] for p in result.to_dicts()] == ["DB"]
    assert result.to_dicts()[0]["dbName"] == "PUBLIC"
    assert result.errors[0].schema == "DB.BROKEN"
    assert result.errors[0].entity is None


def test_collect_schema_packages_accepts_name_kind_mapping():
    ctx = ExtractionContext(fetcher=_FetcherStub(), sink=_SinkStub())
    sampling = SamplingPolicy(active=SamplingMode.ABSOLUTE, absolute=5)

    packages = collect_schema_packages(
        ctx, "DB.PUBLIC", {"T1": "TABLE", "V1": "VIEW", "S1": "STAGE"}, sampling
    )

    assert len(packages) == 2
    assert ctx.fetcher.sample_sizes == {"T1": 5}


def test_empty_selection_produces_no_packages():
    ctx = ExtractionContext(fetcher=_FetcherStub(), sink=_SinkStub())

    assert extract(ctx, _request({"DB.PUBLIC": []})).packages == []


def test_extraction_context_rejects_non_positive_workers():
    with pytest.raises(ConfigurationError, match="max_workers"):
        ExtractionContext(fetcher=_FetcherStub(), max_workers=0)


def test_get_db_collections_names_delegates_to_fetcher():
    assert get_db_collections_names(_FetcherStub()) == {"DB.PUBLIC": ["T1", "V1 (v)"]}
