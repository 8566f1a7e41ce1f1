"""Map functions (``map`` namespace).

Maps are string-keyed dicts. Every function returns a new map and never
mutates its input; the path functions take dotted paths such as
``'user.address.city'``.
"""

import copy
from typing import Any

from exql.errors import FunctionError
from exql.functions import FunctionCategory, FunctionRegistry, optional, param, variadic
from exql.lib.conversion import expect_list, expect_map, is_nullish, loose_key, to_string
from exql.values import type_of

registry = FunctionRegistry(FunctionCategory.MAP)


def _split_path(name: str, path: Any) -> list[str]:
    path = to_string(name, path)
    return path.split(".") if path else []


def _deep_merge(target: dict, source: dict) -> None:
    for key, value in source.items():
        if isinstance(value, dict) and isinstance(target.get(key), dict):
            _deep_merge(target[key], value)
        else:
            target[key] = copy.deepcopy(value)


# -----------------------------------------------------------------------------
# Basic operations
# -----------------------------------------------------------------------------


@registry.function("keys", "Returns the keys in sorted order", [param("map", "map")], "list")
def _keys(mapping: Any) -> list:
    return sorted(expect_map("keys", mapping))


@registry.function(
    "values", "Returns the values ordered by their sorted keys", [param("map", "map")], "list"
)
def _values(mapping: Any) -> list:
    mapping = expect_map("values", mapping)
    return [mapping[key] for key in sorted(mapping)]


@registry.function("size", "Returns the number of entries", [param("map", "map")], "number")
def _size(mapping: Any) -> float:
    return float(len(expect_map("size", mapping)))


@registry.function("isEmpty", "True when the map has no entries", [param("map", "map")], "boolean")
def _is_empty(mapping: Any) -> bool:
    return not expect_map("isEmpty", mapping)


@registry.function(
    "has", "True when the key is present", [param("map", "map"), param("key", "string")], "boolean"
)
def _has(mapping: Any, key: Any) -> bool:
    return to_string("has", key) in expect_map("has", mapping)


@registry.function(
    "get",
    "Returns the value for key, or default (null) when absent",
    [param("map", "map"), param("key", "string"), optional("default", "any")],
    "any",
    examples=["map.get(config, 'timeout', 30)"],
)
def _get(mapping: Any, key: Any, *default: Any) -> Any:
    mapping = expect_map("get", mapping)
    key = to_string("get", key)
    if key in mapping:
        return mapping[key]
    return default[0] if default else None


@registry.function(
    "set",
    "Returns a copy with key set to value",
    [param("map", "map"), param("key", "string"), param("value", "any")],
    "map",
)
def _set(mapping: Any, key: Any, value: Any) -> dict:
    result = dict(expect_map("set", mapping))
    result[to_string("set", key)] = value
    return result


@registry.function(
    "delete", "Returns a copy without key", [param("map", "map"), param("key", "string")], "map"
)
def _delete(mapping: Any, key: Any) -> dict:
    result = dict(expect_map("delete", mapping))
    result.pop(to_string("delete", key), None)
    return result


# -----------------------------------------------------------------------------
# Merging and transformation
# -----------------------------------------------------------------------------


@registry.function(
    "merge",
    "Shallow merge; later maps win",
    [param("map", "map"), variadic("maps", "map")],
    "map",
    examples=["map.merge(defaults, overrides)"],
)
def _merge(*maps: Any) -> dict:
    result: dict = {}
    for position, mapping in enumerate(maps, start=1):
        if not isinstance(mapping, dict):
            raise FunctionError(f"merge: argument {position} expected map, got {type_of(mapping).value}")
        result.update(mapping)
    return result


@registry.function(
    "mergeDeep",
    "Recursive merge; nested maps are merged, other values replaced",
    [param("map", "map"), variadic("maps", "map")],
    "map",
)
def _merge_deep(*maps: Any) -> dict:
    for position, mapping in enumerate(maps, start=1):
        if not isinstance(mapping, dict):
            raise FunctionError(
                f"mergeDeep: argument {position} expected map, got {type_of(mapping).value}"
            )
    result = copy.deepcopy(maps[0])
    for mapping in maps[1:]:
        _deep_merge(result, mapping)
    return result


@registry.function(
    "invert", "Swaps keys and values; values are keyed by their string form", [param("map", "map")], "map"
)
def _invert(mapping: Any) -> dict:
    return {loose_key(value): key for key, value in expect_map("invert", mapping).items()}


@registry.function(
    "filter", "Drops entries whose value is null, false, 0 or ''", [param("map", "map")], "map"
)
def _filter(mapping: Any) -> dict:
    return {key: value for key, value in expect_map("filter", mapping).items() if not is_nullish(value)}


@registry.function(
    "filterKeys",
    "Keeps only the listed keys",
    [param("map", "map"), param("keys", "list")],
    "map",
    examples=["map.filterKeys(user, ['name', 'email'])"],
)
def _filter_keys(mapping: Any, keys: Any) -> dict:
    mapping = expect_map("filterKeys", mapping)
    wanted = {loose_key(key) for key in expect_list("filterKeys", keys)}
    return {key: value for key, value in mapping.items() if key in wanted}


@registry.function(
    "omitKeys", "Drops the listed keys", [param("map", "map"), param("keys", "list")], "map"
)
def _omit_keys(mapping: Any, keys: Any) -> dict:
    mapping = expect_map("omitKeys", mapping)
    unwanted = {loose_key(key) for key in expect_list("omitKeys", keys)}
    return {key: value for key, value in mapping.items() if key not in unwanted}


@registry.function(
    "rename",
    "Renames keys according to a {old: new} mapping",
    [param("map", "map"), param("mapping", "map")],
    "map",
    examples=["map.rename(row, renames)"],
)
def _rename(mapping: Any, renames: Any) -> dict:
    mapping = expect_map("rename", mapping)
    renames = expect_map("rename", renames)
    result = {}
    for key, value in mapping.items():
        if key in renames:
            result[to_string("rename", renames[key])] = value
        else:
            result[key] = value
    return result


# -----------------------------------------------------------------------------
# Conversion
# -----------------------------------------------------------------------------


@registry.function(
    "toList", "Returns [key, value] pairs sorted by key", [param("map", "map")], "list"
)
def _to_list(mapping: Any) -> list:
    mapping = expect_map("toList", mapping)
    return [[key, mapping[key]] for key in sorted(mapping)]


@registry.function(
    "fromList",
    "Builds a map from [key, value] pairs",
    [param("pairs", "list")],
    "map",
    examples=["map.fromList([['a', 1], ['b', 2]])"],
)
def _from_list(pairs: Any) -> dict:
    result = {}
    for i, pair in enumerate(expect_list("fromList", pairs)):
        if not isinstance(pair, list):
            raise FunctionError(f"fromList: item {i} expected list, got {type_of(pair).value}")
        if len(pair) < 2:
            raise FunctionError(f"fromList: pair {i} must have at least 2 elements")
        result[to_string("fromList", pair[0])] = pair[1]
    return result


@registry.function(
    "toQueryString",
    "Renders key=value pairs joined by '&', sorted by key; lists repeat the key",
    [param("map", "map")],
    "string",
)
def _to_query_string(mapping: Any) -> str:
    mapping = expect_map("toQueryString", mapping)
    parts = []
    for key in sorted(mapping):
        value = mapping[key]
        if isinstance(value, list):
            parts.extend(f"{key}={loose_key(item)}" for item in value)
        else:
            parts.append(f"{key}={loose_key(value)}")
    return "&".join(parts)


@registry.function(
    "fromQueryString",
    "Parses 'a=1&b=2'; repeated keys collect into a list",
    [param("query", "string")],
    "map",
)
def _from_query_string(query: Any) -> dict:
    query = to_string("fromQueryString", query)
    result: dict = {}
    if not query:
        return result
    for part in query.split("&"):
        if "=" not in part:
            continue
        key, value = part.split("=", 1)
        if key not in result:
            result[key] = value
        elif isinstance(result[key], list):
            result[key].append(value)
        else:
            result[key] = [result[key], value]
    return result


# -----------------------------------------------------------------------------
# Paths
# -----------------------------------------------------------------------------


@registry.function(
    "getPath",
    "Returns the value at a dotted path, or default (null) when missing",
    [param("map", "map"), param("path", "string"), optional("default", "any")],
    "any",
    examples=["map.getPath(user, 'address.city', 'unknown')"],
)
def _get_path(mapping: Any, path: Any, *default: Any) -> Any:
    current: Any = expect_map("getPath", mapping)
    for part in _split_path("getPath", path):
        if not isinstance(current, dict):
            if default:
                return default[0]
            raise FunctionError(f"getPath: path '{path}' invalid at part '{part}' (not a map)")
        if part not in current:
            return default[0] if default else None
        current = current[part]
    return current


@registry.function(
    "setPath",
    "Returns a copy with the value at a dotted path set, creating maps on the way",
    [param("map", "map"), param("path", "string"), param("value", "any")],
    "map",
)
def _set_path(mapping: Any, path: Any, value: Any) -> dict:
    mapping = expect_map("setPath", mapping)
    parts = _split_path("setPath", path)
    if not parts:
        raise FunctionError("setPath: path cannot be empty")
    result = copy.deepcopy(mapping)
    current = result
    for part in parts[:-1]:
        if not isinstance(current.get(part), dict):
            current[part] = {}
        current = current[part]
    current[parts[-1]] = value
    return result


@registry.function(
    "hasPath", "True when every part of a dotted path exists", [param("map", "map"), param("path", "string")], "boolean"
)
def _has_path(mapping: Any, path: Any) -> bool:
    current: Any = expect_map("hasPath", mapping)
    for part in _split_path("hasPath", path):
        if not isinstance(current, dict) or part not in current:
            return False
        current = current[part]
    return True


@registry.function(
    "deletePath",
    "Returns a copy without the value at a dotted path",
    [param("map", "map"), param("path", "string")],
    "map",
)
def _delete_path(mapping: Any, path: Any) -> dict:
    mapping = expect_map("deletePath", mapping)
    parts = _split_path("deletePath", path)
    if not parts:
        raise FunctionError("deletePath: path cannot be empty")
    result = copy.deepcopy(mapping)
    current = result
    for part in parts[:-1]:
        current = current.get(part)
        if not isinstance(current, dict):
            return result
    current.pop(parts[-1], None)
    return result
