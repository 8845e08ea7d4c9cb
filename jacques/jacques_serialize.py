"""
Conversion between Jacques values and plain Python data, plus JSON/YAML
encoding of that data.
"""
from __future__ import annotations

import json
from typing import Any

import yaml

from jacques.jacques_datatypes import (
    JacquesValue, JacquesNumber, JacquesString, JacquesBoolean, JacquesArray,
    JacquesRecord, JacquesInstance,
)
from jacques.jacques_errors import TypeMismatch


# --------------------------
# Helpers
# --------------------------

def to_builtin(value: Any, *, strict: bool = False) -> Any:
    """Jacques value -> plain Python data.

    Functions and classes have no data form: with `strict` they raise
    TypeMismatch, otherwise they are returned unchanged.
    """
    match value:
        case JacquesNumber():
            v = value.value
            return int(v) if v.is_integer() else v
        case JacquesString():
            return value.value
        case JacquesBoolean():
            return value.value
        case JacquesArray():
            return [to_builtin(e, strict=strict) for e in value.elements]
        case JacquesRecord():
            return {k: to_builtin(v, strict=strict) for k, v in value.properties.items()}
        case JacquesInstance():
            return {k: to_builtin(v, strict=strict) for k, v in value.public_properties().items()}
        case _:
            if strict:
                kind = getattr(value, "type_tag", type(value).__name__)
                raise TypeMismatch(f"Cannot serialize {kind}")
            return value


def from_builtin(data: Any) -> JacquesValue:
    """Plain Python data (as produced by json/yaml loaders) -> Jacques value."""
    match data:
        case bool():
            return JacquesBoolean(data)
        case int() | float():
            return JacquesNumber(data)
        case str():
            return JacquesString(data)
        case list() | tuple():
            return JacquesArray(from_builtin(x) for x in data)
        case dict():
            return JacquesRecord({str(k): from_builtin(v) for k, v in data.items()})
        case None:
            raise TypeMismatch("null values have no Jacques representation")
        case _:
            raise TypeMismatch(f"Unsupported data type: {type(data).__name__}")


# --------------------------
# Public API
# --------------------------

def deserialize(text: str, *, fmt: str) -> Any:
    """Decode JSON or YAML text into plain Python data. Decoder errors propagate."""
    f = (fmt or "").lower()
    if f == "json":
        return json.loads(text)
    if f == "yaml":
        return yaml.safe_load(text)
    raise ValueError(f"Unsupported serialization format: {fmt!r}")


def serialize(value: Any, *, fmt: str, pretty: bool = True) -> str:
    """Encode a Jacques value as 'json' or 'yaml' text."""
    # Record.ToJSON renders through Printer.to_json for its `{ "k": v }` layout.
    f = (fmt or "").lower()
    built = to_builtin(value, strict=True)
    if f == "json":
        return json.dumps(built, ensure_ascii=False, indent=2 if pretty else None)
    if f == "yaml":
        return yaml.safe_dump(built, sort_keys=False, allow_unicode=True)
    raise ValueError(f"Unsupported serialization format: {fmt!r}")


__all__ = [
    "to_builtin",
    "from_builtin",
    "deserialize",
    "serialize",
]
