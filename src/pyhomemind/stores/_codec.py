"""Firestore typed-value JSON encoding.

The REST API wraps every value in a single-key object naming its type,
e.g. ``{"stringValue": "Kitchen"}`` or
``{"arrayValue": {"values": [...]}}``.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any


def encode_value(value: Any) -> dict[str, Any]:
    """Encode a plain JSON-compatible value."""
    if value is None:
        return {"nullValue": None}
    # bool before int: bool is an int subclass.
    if isinstance(value, bool):
        return {"booleanValue": value}
    if isinstance(value, int):
        return {"integerValue": str(value)}
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            return {"doubleValue": str(value)}
        return {"doubleValue": value}
    if isinstance(value, str):
        return {"stringValue": value}
    if isinstance(value, Mapping):
        return {"mapValue": {"fields": encode_fields(value)}}
    if isinstance(value, (list, tuple)):
        return {"arrayValue": {"values": [encode_value(v) for v in value]}}
    raise TypeError(f"Cannot encode {type(value).__name__} as a Firestore value")


def encode_fields(data: Mapping[str, Any]) -> dict[str, Any]:
    return {str(key): encode_value(value) for key, value in data.items()}


def decode_value(value: Mapping[str, Any]) -> Any:
    """Decode one typed value back to plain Python."""
    if "nullValue" in value:
        return None
    if "booleanValue" in value:
        return bool(value["booleanValue"])
    if "integerValue" in value:
        return int(value["integerValue"])
    if "doubleValue" in value:
        return float(value["doubleValue"])
    if "stringValue" in value:
        return str(value["stringValue"])
    if "timestampValue" in value:
        return str(value["timestampValue"])
    if "referenceValue" in value:
        return str(value["referenceValue"])
    if "bytesValue" in value:
        return str(value["bytesValue"])
    if "geoPointValue" in value:
        return dict(value["geoPointValue"])
    if "mapValue" in value:
        return decode_fields(value["mapValue"].get("fields", {}))
    if "arrayValue" in value:
        return [decode_value(v) for v in value["arrayValue"].get("values", [])]
    raise ValueError(f"Unknown Firestore value type: {sorted(value)}")


def decode_fields(fields: Mapping[str, Any]) -> dict[str, Any]:
    return {key: decode_value(value) for key, value in fields.items()}
