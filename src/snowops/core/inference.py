"""Schema inference from sampled Snowflake rows.

The inferred schema is JSON-Schema-like: an object with a `properties`
mapping, one entry per column. Declared column types (from `DESC TABLE`) are
authoritative; sampled documents refine semi-structured columns (VARIANT,
OBJECT, ARRAY) with nested `properties` / `items`. Documents are normalized
afterwards so they agree with the schema they produced.
"""

from __future__ import annotations

import copy
import datetime as dt
import json
import logging
import re
from decimal import Decimal
from typing import Any, Iterable, Mapping, Sequence

logger = logging.getLogger(__name__)

JSON_SCHEMA_DRAFT = "http://json-schema.org/draft-04/schema#"

META_PROPERTIES = ("VALUE", "METADATA$FILENAME", "METADATA$FILE_ROW_NUMBER")

_COMPLEX_MODES = frozenset({"variant", "object", "array"})

_TYPE_MAP: dict[str, str] = {
    "number": "number",
    "decimal": "number",
    "numeric": "number",
    "int": "number",
    "integer": "number",
    "bigint": "number",
    "smallint": "number",
    "tinyint": "number",
    "byteint": "number",
    "float": "number",
    "float4": "number",
    "float8": "number",
    "double": "number",
    "double precision": "number",
    "real": "number",
    "fixed": "number",
    "varchar": "string",
    "char": "string",
    "character": "string",
    "string": "string",
    "text": "string",
    "binary": "string",
    "varbinary": "string",
    "boolean": "boolean",
    "date": "string",
    "datetime": "string",
    "time": "string",
    "timestamp": "string",
    "timestamp_ltz": "string",
    "timestamp_ntz": "string",
    "timestamp_tz": "string",
    "variant": "string",
    "object": "object",
    "array": "array",
    "geography": "object",
    "geometry": "object",
    "vector": "array",
}

_TYPE_PARAMS = re.compile(r"\(.*\)$")


def column_type_to_schema(data_type: str) -> dict[str, Any]:
    """
    Map a Snowflake column type (as reported by `DESC TABLE`) to a descriptor.

    The descriptor carries a JSON type in `type` and the Snowflake type name,
    lower-cased and without parameters, in `mode`. Unknown types fall back to
    `string`.
    """
    base = _TYPE_PARAMS.sub("", (data_type or "").strip()).strip().lower()
    descriptor: dict[str, Any] = {"type": _TYPE_MAP.get(base, "string"), "mode": base or "string"}
    if base in {"date", "time"}:
        descriptor["format"] = base
    elif base == "datetime" or base.startswith("timestamp"):
        descriptor["format"] = "date-time"
    elif base in {"binary", "varbinary"}:
        descriptor["contentEncoding"] = "hex"
    return descriptor


def infer_value_schema(value: Any) -> dict[str, Any]:
    """Infer a descriptor from a single Python value (recursively for containers)."""
    if value is None:
        return {"type": "null"}
    if isinstance(value, bool):
        return {"type": "boolean"}
    if isinstance(value, (int, float, Decimal)):
        return {"type": "number"}
    if isinstance(value, (dt.datetime, dt.date, dt.time)):
        return {"type": "string", "format": "date-time"}
    if isinstance(value, (bytes, bytearray)):
        return {"type": "string", "contentEncoding": "hex"}
    if isinstance(value, Mapping):
        return {
            "type": "object",
            "properties": {str(k): infer_value_schema(v) for k, v in value.items()},
        }
    if isinstance(value, (list, tuple)):
        items: dict[str, Any] = {}
        for item in value:
            items = merge_schemas(items, infer_value_schema(item))
        schema: dict[str, Any] = {"type": "array"}
        if items:
            schema["items"] = items
        return schema
    return {"type": "string"}


def merge_schemas(left: dict[str, Any], right: dict[str, Any]) -> dict[str, Any]:
    """Merge two descriptors; the first concrete (non-null) type wins."""
    if not left:
        return copy.deepcopy(right)
    if not right:
        return left
    merged = dict(left)
    if merged.get("type") == "null" and right.get("type") != "null":
        merged["type"] = right.get("type")
    if "properties" in right:
        props = dict(merged.get("properties") or {})
        for key, sub in right["properties"].items():
            props[key] = merge_schemas(props.get(key, {}), sub)
        merged["properties"] = props
    if "items" in right:
        merged["items"] = merge_schemas(merged.get("items") or {}, right["items"])
    for key, val in right.items():
        merged.setdefault(key, val)
    return merged


def decode_json_cell(value: Any) -> Any:
    """Decode a JSON-encoded cell; return it verbatim when it is not valid JSON."""
    if not isinstance(value, str):
        return value
    try:
        return json.loads(value)
    except ValueError:
        return value


def infer_json_schema(
    documents: Iterable[Mapping[str, Any]],
    columns: Sequence[Mapping[str, Any]] | None = None,
) -> dict[str, Any]:
    """
    Build the inferred schema of an entity.

    Args:
        documents: Sampled rows (consumed once).
        columns: Optional declared columns with `name`, `type` and
            `nullable` keys, in table order.

    Returns:
        A schema dict that always contains a `properties` mapping.
    """
    properties: dict[str, Any] = {}
    required: list[str] = []

    for column in columns or ():
        name = str(column["name"])
        properties[name] = column_type_to_schema(str(column.get("type") or ""))
        if column.get("comment"):
            properties[name]["description"] = column["comment"]
        if column.get("nullable") is False:
            required.append(name)

    for document in documents:
        for key, raw in document.items():
            declared = properties.get(key)
            if declared is None:
                properties[key] = infer_value_schema(raw)
                continue
            if declared.get("mode") not in _COMPLEX_MODES:
                continue
            value = decode_json_cell(raw)
            if not isinstance(value, (Mapping, list)):
                continue
            observed = infer_value_schema(value)
            if declared["mode"] == "variant":
                declared["type"] = observed["type"]
            elif declared["type"] != observed["type"]:
                logger.debug(
                    "Column %s declared %s but sampled %s", key, declared["type"], observed["type"]
                )
                continue
            properties[key] = merge_schemas(declared, observed)

    schema: dict[str, Any] = {
        "$schema": JSON_SCHEMA_DRAFT,
        "type": "object",
        "properties": properties,
    }
    if required:
        schema["required"] = required
    return schema


def _coerce_scalar(value: Any) -> Any:
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, (dt.datetime, dt.date, dt.time)):
        return value.isoformat()
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).hex()
    return value


def _normalize_cell(descriptor: Mapping[str, Any] | None, value: Any) -> Any:
    if descriptor is None:
        return _coerce_scalar(value)
    declared = descriptor.get("type")
    mode = descriptor.get("mode")
    if isinstance(value, str) and (declared in ("object", "array") or mode in _COMPLEX_MODES):
        decoded = decode_json_cell(value)
        if mode == "variant" and not isinstance(decoded, (Mapping, list)):
            return value
        value = decoded
    if isinstance(value, Mapping):
        props = descriptor.get("properties") or {}
        return {k: _normalize_cell(props.get(k), v) for k, v in value.items()}
    if isinstance(value, list):
        items = descriptor.get("items")
        return [_normalize_cell(items, v) for v in value]
    return _coerce_scalar(value)


def handle_complex_types_documents(
    schema: Mapping[str, Any],
    documents: Iterable[Mapping[str, Any]],
) -> list[dict[str, Any]]:
    """
    Return copies of `documents` reshaped to match `schema`.

    Semi-structured cells that the driver hands back as JSON text are decoded
    wherever the schema declares an object, array or variant; scalar driver
    types (Decimal, datetimes, bytes) become JSON-friendly values.
    """
    properties = schema.get("properties") or {}
    return [
        {key: _normalize_cell(properties.get(key), value) for key, value in document.items()}
        for document in documents
    ]


def filter_meta_properties(
    entity_data: Mapping[str, Any],
    json_schema: Mapping[str, Any],
) -> Mapping[str, Any]:
    """
    Strip staged-file pseudo-columns from the schema of an external table.

    Non-external entities get their schema back unchanged.
    """
    if not entity_data.get("external"):
        return json_schema
    properties = json_schema.get("properties") or {}
    return {
        **json_schema,
        "properties": {k: v for k, v in properties.items() if k not in META_PROPERTIES},
    }
