import pytest

from snowops.core.errors import ConfigurationError
from snowops.core.models import (
    CollectionPackage,
    EntityRef,
    ExtractionRequest,
    SchemaRef,
    ViewGroupPackage,
    ViewInfo,
    quote_identifier,
)


@pytest.mark.parametrize("value", ["DB", "DB.PUBLIC.T1", "DB.", ".PUBLIC", ""])
def test_schema_ref_parse_rejects_invalid_input(value: str):
    with pytest.raises(ConfigurationError, match="database.schema"):
        SchemaRef.parse(value)


def test_schema_ref_parse_accepts_valid_input():
    ref = SchemaRef.parse(" DB.PUBLIC ")

    assert (ref.database, ref.schema_name) == ("DB", "PUBLIC")
    assert ref.full_name == "DB.PUBLIC"


def test_configuration_error_is_a_value_error():
    with pytest.raises(ValueError):
        SchemaRef.parse("nope")


def test_quote_identifier_doubles_embedded_quotes():
    assert quote_identifier('my "odd" table') == '"my ""odd"" table"'


def test_entity_ref_names():
    entity = EntityRef(schema=SchemaRef("DB", "PUBLIC"), name="T1")

    assert entity.full_name == '"DB"."PUBLIC"."T1"'
    assert entity.display_name == "DB.PUBLIC.T1"


def test_extraction_request_from_host_payload():
    request = ExtractionRequest.from_dict(
        {
            "collectionData": {
                "dataBaseNames": ["DB.PUBLIC"],
                "collections": {"DB.PUBLIC": ["T1", "V1 (v)"]},
            },
            "recordSamplingSettings": {"active": "absolute", "absolute": {"value": 10}},
            "hiddenKeys": ["password"],
        }
    )

    assert request.schemas == ["DB.PUBLIC"]
    assert request.collections == {"DB.PUBLIC": ["T1", "V1 (v)"]}
    assert request.sampling.absolute == 10
    assert request.hidden_keys == ("password",)


def test_collection_package_to_dict_shape():
    package = CollectionPackage(
        db_name="PUBLIC",
        collection_name="T1",
        database="DB",
        entity_level={"external": False},
        documents=[{"ID": 1}],
        ddl="create table T1 (ID NUMBER)",
        json_schema={"properties": {"ID": {"type": "number"}}},
        container_data={"transient": False},
    ).to_dict()

    assert package["dbName"] == "PUBLIC"
    assert package["collectionName"] == "T1"
    assert package["views"] == []
    assert package["emptyBucket"] is False
    assert package["ddl"] == {
        "script": "create table T1 (ID NUMBER)",
        "type": "snowflake",
        "takeAllDdlProperties": True,
    }
    assert package["validation"] == {"jsonSchema": {"properties": {"ID": {"type": "number"}}}}
    assert package["bucketInfo"] == {"indexes": [], "database": "DB", "transient": False}


def test_view_group_package_to_dict_shape():
    package = ViewGroupPackage(
        db_name="PUBLIC",
        database="DB",
        views=[ViewInfo(name="V1", data={"secure": False}, ddl="create view V1 as select 1")],
    ).to_dict()

    assert package["dbName"] == "PUBLIC"
    assert package["entityLevel"] == {}
    assert package["views"] == [
        {
            "name": "V1",
            "data": {"secure": False},
            "ddl": {"script": "create view V1 as select 1", "type": "snowflake"},
        }
    ]
    assert package["bucketInfo"]["database"] == "DB"
    assert "collectionName" not in package
