"""JSON functions (``json`` namespace).

Functions taking ``data`` accept either a JSON document as a string or an
already-decoded value (map, list, ...). Paths use dot notation where a
numeric part indexes into a list: ``'items.0.name'``.
"""

import copy
import json
from typing import Any

from exql.errors import FunctionError
from exql.functions import FunctionCategory, FunctionRegistry, optional, param, variadic
from exql.lib.conversion import to_bool, to_string, type_name
from exql.values import to_plain, to_value

registry = FunctionRegistry(FunctionCategory.JSON)


def _reject_constant(name: str) -> Any:
    raise ValueError(f"unexpected constant {name}")


def _loads(text: str) -> Any:
    """Decode JSON into the value model (every number becomes a float)."""
    return json.loads(text, parse_int=float, parse_constant=_reject_constant)


def _decode(name: str, data: Any) -> Any:
    if isinstance(data, str):
        try:
            return _loads(data)
        except ValueError as e:
            raise FunctionError(f"{name}: invalid JSON: {e}") from e
    return copy.deepcopy(data)


def _index(part: str) -> int | None:
    return int(part) if part.isdigit() else None


def _get_path(data: Any, path: str) -> Any:
    if not path:
        return data
    current = data
    for part in path.split("."):
        if isinstance(current, dict):
            current = current.get(part)
        elif isinstance(current, list):
            i = _index(part)
            if i is None or i >= len(current):
                return None
            current = current[i]
        else:
            return None
        if current is None:
            return None
    return current


def _container_for(part: str) -> Any:
    return [] if _index(part) is not None else {}


def _set_parts(data: Any, parts: list[str], value: Any) -> Any:
    """Set ``value`` at ``parts`` inside ``data`` (mutated), creating containers as needed."""
    if not parts:
        return value
    key, rest = parts[0], parts[1:]

    if isinstance(data, list):
        i = _index(key)
        if i is None:
            return data
        while len(data) <= i:
            data.append(None)
        child = data[i]
        if rest and child is None:
            child = _container_for(rest[0])
        data[i] = _set_parts(child, rest, value)
        return data

    if not isinstance(data, dict):
        data = {}
    child = data.get(key)
    if rest and child is None:
        child = _container_for(rest[0])
    data[key] = _set_parts(child, rest, value)
    return data


# -----------------------------------------------------------------------------
# Encoding and decoding
# -----------------------------------------------------------------------------


@registry.function(
    "json_parse",
    "Decodes a JSON document",
    [param("text", "string")],
    "any",
    examples=["json.json_parse('{\"a\": 1}').a == 1"],
)
def _json_parse(text: Any) -> Any:
    text = to_string("json_parse", text)
    try:
        return _loads(text)
    except ValueError as e:
        raise FunctionError(f"json_parse: invalid JSON: {e}") from e


@registry.function(
    "json_string",
    "Encodes a value as JSON with sorted keys; pretty prints with two-space indentation",
    [param("data", "any"), optional("pretty", "boolean")],
    "string",
)
def _json_string(data: Any, *pretty: Any) -> str:
    indent = 2 if pretty and to_bool("json_string", pretty[0]) else None
    separators = None if indent else (",", ":")
    try:
        return json.dumps(
            to_plain(data),
            indent=indent,
            separators=separators,
            sort_keys=True,
            ensure_ascii=False,
            allow_nan=False,
        )
    except ValueError as e:
        raise FunctionError(f"json_string: marshalling failed: {e}") from e


@registry.function("json_valid", "True when the text is a valid JSON document", [param("text", "string")], "boolean")
def _json_valid(text: Any) -> bool:
    text = to_string("json_valid", text)
    try:
        _loads(text)
    except ValueError:
        return False
    return True


# -----------------------------------------------------------------------------
# Paths
# -----------------------------------------------------------------------------


@registry.function(
    "json_get",
    "Returns the value at a path, or null when missing",
    [param("data", "any"), param("path", "string")],
    "any",
    examples=["json.json_get(payload, 'items.0.id')"],
)
def _json_get(data: Any, path: Any) -> Any:
    return _get_path(_decode("json_get", data), to_string("json_get", path))


@registry.function(
    "json_set",
    "Returns a copy with the value at a path set, creating objects and arrays on the way",
    [param("data", "any"), param("path", "string"), param("value", "any")],
    "any",
)
def _json_set(data: Any, path: Any, value: Any) -> Any:
    path = to_string("json_set", path)
    if not path:
        return value
    return _set_parts(_decode("json_set", data), path.split("."), to_value(value))


@registry.function(
    "json_delete",
    "Returns a copy without the value at a path",
    [param("data", "any"), param("path", "string")],
    "any",
)
def _json_delete(data: Any, path: Any) -> Any:
    path = to_string("json_delete", path)
    if not path:
        return None
    data = _decode("json_delete", data)
    parts = path.split(".")
    parent = _get_path(data, ".".join(parts[:-1]))
    last = parts[-1]
    if isinstance(parent, dict):
        parent.pop(last, None)
    elif isinstance(parent, list):
        i = _index(last)
        if i is not None and i < len(parent):
            del parent[i]
    return data


@registry.function(
    "json_has",
    "True when the path resolves to a non-null value",
    [param("data", "any"), param("path", "string")],
    "boolean",
)
def _json_has(data: Any, path: Any) -> bool:
    return _get_path(_decode("json_has", data), to_string("json_has", path)) is not None


# -----------------------------------------------------------------------------
# Inspection
# -----------------------------------------------------------------------------


@registry.function("json_keys", "Returns the sorted keys of an object", [param("data", "any")], "list")
def _json_keys(data: Any) -> list:
    data = _decode("json_keys", data)
    if not isinstance(data, dict):
        raise FunctionError(f"json_keys: expected object, got {type_name(data)}")
    return sorted(data)


@registry.function(
    "json_values",
    "Returns the values of an object (by sorted key) or the items of an array",
    [param("data", "any")],
    "list",
)
def _json_values(data: Any) -> list:
    data = _decode("json_values", data)
    if isinstance(data, dict):
        return [data[key] for key in sorted(data)]
    if isinstance(data, list):
        return data
    raise FunctionError(f"json_values: expected object or array, got {type_name(data)}")


@registry.function(
    "json_length", "Length of an object, array or string", [param("data", "any")], "number"
)
def _json_length(data: Any) -> float:
    data = _decode("json_length", data)
    if isinstance(data, (dict, list, str)):
        return float(len(data))
    raise FunctionError(f"json_length: cannot get length of {type_name(data)}")


@registry.function(
    "json_merge",
    "Shallow merge of objects; later arguments win",
    [param("first", "any"), param("second", "any"), variadic("rest", "any")],
    "map",
)
def _json_merge(*documents: Any) -> dict:
    result: dict = {}
    for position, document in enumerate(documents, start=1):
        if isinstance(document, str):
            try:
                document = _loads(document)
            except ValueError as e:
                raise FunctionError(f"json_merge: argument {position} invalid JSON: {e}") from e
        if not isinstance(document, dict):
            raise FunctionError(f"json_merge: argument {position} is not an object")
        result.update(copy.deepcopy(document))
    return result


@registry.function(
    "json_type",
    "Returns null, boolean, number, string, array or object ('invalid' for unparsable text)",
    [param("data", "any")],
    "string",
)
def _json_type(data: Any) -> str:
    if isinstance(data, str):
        try:
            data = _loads(data)
        except ValueError:
            return "invalid"
    if data is None:
        return "null"
    if isinstance(data, bool):
        return "boolean"
    if isinstance(data, (int, float)):
        return "number"
    if isinstance(data, str):
        return "string"
    if isinstance(data, list):
        return "array"
    if isinstance(data, dict):
        return "object"
    return "unknown"
