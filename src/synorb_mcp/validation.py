"""
Explicit argument validation for tool input schemas.

Covers the subset of JSON Schema the tool catalog uses: ``type`` (string,
number, integer, boolean, array, object), ``properties``, ``required``,
``additionalProperties``, ``items``, ``enum``, ``minimum`` and ``default``.
"""

from __future__ import annotations

import copy
from typing import Any, Mapping

from synorb_common.errors import ArgumentValidationError


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_integer(value: Any) -> bool:
    if isinstance(value, float):
        return value.is_integer()
    return isinstance(value, int) and not isinstance(value, bool)


_TYPE_CHECKS = {
    "string": lambda v: isinstance(v, str),
    "number": _is_number,
    "integer": _is_integer,
    "boolean": lambda v: isinstance(v, bool),
    "array": lambda v: isinstance(v, (list, tuple)),
    "object": lambda v: isinstance(v, Mapping),
}


def _path(parent: str, key: str | int) -> str:
    if isinstance(key, int):
        return f"{parent}[{key}]"
    return f"{parent}.{key}" if parent else key


def _fail(path: str, message: str) -> ArgumentValidationError:
    return ArgumentValidationError(f"{path or 'arguments'}: {message}", field=path or None)


def _validate(schema: Mapping[str, Any], value: Any, path: str) -> Any:
    expected = schema.get("type")
    if expected is not None:
        check = _TYPE_CHECKS.get(expected)
        if check is None:
            raise ValueError(f"unsupported schema type: {expected!r}")
        if not check(value):
            raise _fail(path, f"expected {expected}, got {type(value).__name__}")

    if "enum" in schema and value not in schema["enum"]:
        allowed = ", ".join(repr(v) for v in schema["enum"])
        raise _fail(path, f"must be one of {allowed}, got {value!r}")

    if "minimum" in schema and _is_number(value) and value < schema["minimum"]:
        raise _fail(path, f"must be >= {schema['minimum']}, got {value!r}")

    if expected == "integer":
        return int(value)

    if expected == "array":
        item_schema = schema.get("items")
        if not item_schema:
            return list(value)
        return [_validate(item_schema, item, _path(path, i)) for i, item in enumerate(value)]

    if expected == "object":
        return _validate_object(schema, value, path)

    return value


def _validate_object(schema: Mapping[str, Any], value: Mapping[str, Any], path: str) -> dict:
    properties: Mapping[str, Any] = schema.get("properties") or {}
    required = set(schema.get("required") or ())

    if schema.get("additionalProperties") is False:
        unknown = sorted(k for k in value if k not in properties)
        if unknown:
            raise _fail(path, f"unknown field(s): {', '.join(unknown)}")

    out: dict[str, Any] = {}
    for key, prop in properties.items():
        sub_path = _path(path, key)
        if key not in value or value[key] is None:
            if key in required:
                raise _fail(sub_path, "required field missing")
            if "default" in prop:
                out[key] = copy.deepcopy(prop["default"])
            continue
        out[key] = _validate(prop, value[key], sub_path)

    # additionalProperties allowed: pass through untouched
    for key, v in value.items():
        if key not in properties:
            out[key] = v

    return out


def validate_arguments(schema: Mapping[str, Any], arguments: Mapping[str, Any] | None) -> dict:
    """Validate ``arguments`` against an object ``schema``.

    Returns a new dict with defaults substituted for absent optional fields.
    Raises ArgumentValidationError naming the offending field path.
    """
    if arguments is None:
        arguments = {}
    if not isinstance(arguments, Mapping):
        raise _fail("", f"expected object, got {type(arguments).__name__}")
    return _validate_object(schema, arguments, "")
