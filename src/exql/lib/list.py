"""List functions (``list`` namespace).

Every function returns a new list; inputs are never mutated. Element
comparison (list_contains, unique, ...) uses the loose string form of a
value, so ``1`` and ``'1'`` match here even though ``==`` keeps them apart.
"""

import random
from functools import cmp_to_key
from typing import Any

from exql.errors import CoercionError, FunctionError
from exql.functions import FunctionCategory, FunctionRegistry, optional, param, variadic
from exql.lib.conversion import expect_list, is_nullish, loose_key, to_int, to_number
from exql.values import type_of

registry = FunctionRegistry(FunctionCategory.LIST)


def _compare(a: Any, b: Any) -> int:
    """Numeric comparison when both sides convert, string comparison otherwise."""
    try:
        x, y = to_number("sort", a), to_number("sort", b)
    except CoercionError:
        x, y = loose_key(a), loose_key(b)
    return (x > y) - (x < y)


def _resolve_index(size: int, index: int) -> int:
    return index + size if index < 0 else index


# -----------------------------------------------------------------------------
# Basic operations
# -----------------------------------------------------------------------------


@registry.function("list_length", "Returns the number of elements", [param("list", "list")], "number")
def _list_length(items: Any) -> float:
    return float(len(expect_list("list_length", items)))


@registry.function("list_is_empty", "True when the list has no elements", [param("list", "list")], "boolean")
def _list_is_empty(items: Any) -> bool:
    return not expect_list("list_is_empty", items)


@registry.function(
    "list_get",
    "Returns the element at index (negative counts from the end); out of range returns default or fails",
    [param("list", "list"), param("index", "number"), optional("default", "any")],
    "any",
    examples=["list.list_get(items, -1)", "list.list_get(items, 10, 'none')"],
)
def _list_get(items: Any, index: Any, *default: Any) -> Any:
    items = expect_list("list_get", items)
    i = _resolve_index(len(items), to_int("list_get", index))
    if 0 <= i < len(items):
        return items[i]
    if default:
        return default[0]
    raise FunctionError(f"list_get: index {i} out of bounds (list length: {len(items)})")


@registry.function(
    "list_set",
    "Returns a copy with the element at index replaced",
    [param("list", "list"), param("index", "number"), param("value", "any")],
    "list",
)
def _list_set(items: Any, index: Any, value: Any) -> list:
    items = expect_list("list_set", items)
    i = _resolve_index(len(items), to_int("list_set", index))
    if not 0 <= i < len(items):
        raise FunctionError(f"list_set: index {i} out of bounds (list length: {len(items)})")
    result = list(items)
    result[i] = value
    return result


# -----------------------------------------------------------------------------
# Construction
# -----------------------------------------------------------------------------


@registry.function(
    "append",
    "Returns a copy with the values added at the end",
    [param("list", "list"), param("value", "any"), variadic("values", "any")],
    "list",
)
def _append(items: Any, *values: Any) -> list:
    return expect_list("append", items) + list(values)


@registry.function(
    "prepend",
    "Returns a copy with the values added at the front, in argument order",
    [param("list", "list"), param("value", "any"), variadic("values", "any")],
    "list",
)
def _prepend(items: Any, *values: Any) -> list:
    return list(values) + expect_list("prepend", items)


@registry.function(
    "list_insert",
    "Inserts a value before index; the index is clamped to the list bounds",
    [param("list", "list"), param("index", "number"), param("value", "any")],
    "list",
)
def _list_insert(items: Any, index: Any, value: Any) -> list:
    items = expect_list("list_insert", items)
    i = to_int("list_insert", index)
    if i < 0:
        i = len(items) + i + 1
    i = min(max(i, 0), len(items))
    return items[:i] + [value] + items[i:]


@registry.function(
    "list_remove",
    "Returns a copy without the element at index",
    [param("list", "list"), param("index", "number")],
    "list",
)
def _list_remove(items: Any, index: Any) -> list:
    items = expect_list("list_remove", items)
    i = _resolve_index(len(items), to_int("list_remove", index))
    if not 0 <= i < len(items):
        raise FunctionError(f"list_remove: index {i} out of bounds (list length: {len(items)})")
    return items[:i] + items[i + 1:]


@registry.function("list_concat", "Concatenates lists", [variadic("lists", "list")], "list")
def _list_concat(*lists: Any) -> list:
    result: list = []
    for position, items in enumerate(lists, start=1):
        if not isinstance(items, list):
            raise FunctionError(
                f"list_concat: argument {position} expected list, got {type_of(items).value}"
            )
        result.extend(items)
    return result


# -----------------------------------------------------------------------------
# Access
# -----------------------------------------------------------------------------


@registry.function(
    "first",
    "Returns the first element, or default when the list is empty",
    [param("list", "list"), optional("default", "any")],
    "any",
)
def _first(items: Any, *default: Any) -> Any:
    items = expect_list("first", items)
    if items:
        return items[0]
    if default:
        return default[0]
    raise FunctionError("first: list is empty")


@registry.function(
    "last",
    "Returns the last element, or default when the list is empty",
    [param("list", "list"), optional("default", "any")],
    "any",
)
def _last(items: Any, *default: Any) -> Any:
    items = expect_list("last", items)
    if items:
        return items[-1]
    if default:
        return default[0]
    raise FunctionError("last: list is empty")


registry.alias("head", "first")


@registry.function("tail", "Returns every element but the first", [param("list", "list")], "list")
def _tail(items: Any) -> list:
    return expect_list("tail", items)[1:]


registry.alias("rest", "tail")


@registry.function("list_init", "Returns every element but the last", [param("list", "list")], "list")
def _list_init(items: Any) -> list:
    return expect_list("list_init", items)[:-1]


@registry.function(
    "slice",
    "Returns elements from start up to end (exclusive); negative values count from the end",
    [param("list", "list"), param("start", "number"), optional("end", "number")],
    "list",
    examples=["list.slice([1, 2, 3, 4], 1, -1) == [2, 3]"],
)
def _slice(items: Any, start: Any, *end: Any) -> list:
    items = expect_list("slice", items)
    begin = _resolve_index(len(items), to_int("slice", start))
    stop = _resolve_index(len(items), to_int("slice", end[0])) if end else len(items)
    begin = max(begin, 0)
    stop = min(stop, len(items))
    if begin > stop:
        return []
    return items[begin:stop]


@registry.function(
    "take", "Returns the first count elements", [param("list", "list"), param("count", "number")], "list"
)
def _take(items: Any, count: Any) -> list:
    items = expect_list("take", items)
    n = to_int("take", count)
    if n < 0:
        raise FunctionError("take: count must be non-negative")
    return items[:n]


@registry.function(
    "drop", "Returns the list without its first count elements", [param("list", "list"), param("count", "number")], "list"
)
def _drop(items: Any, count: Any) -> list:
    items = expect_list("drop", items)
    n = to_int("drop", count)
    if n < 0:
        raise FunctionError("drop: count must be non-negative")
    return items[n:]


# -----------------------------------------------------------------------------
# Transformation
# -----------------------------------------------------------------------------


@registry.function("reverse", "Returns the elements in reverse order", [param("list", "list")], "list")
def _reverse(items: Any) -> list:
    return expect_list("reverse", items)[::-1]


@registry.function(
    "sort",
    "Sorts ascending; numbers compare numerically, anything else by string form",
    [param("list", "list")],
    "list",
)
def _sort(items: Any) -> list:
    return sorted(expect_list("sort", items), key=cmp_to_key(_compare))


@registry.function("sort_desc", "Sorts descending", [param("list", "list")], "list")
def _sort_desc(items: Any) -> list:
    return sorted(expect_list("sort_desc", items), key=cmp_to_key(_compare), reverse=True)


@registry.function("shuffle", "Returns the elements in random order", [param("list", "list")], "list")
def _shuffle(items: Any) -> list:
    result = list(expect_list("shuffle", items))
    random.shuffle(result)
    return result


@registry.function(
    "unique", "Removes duplicates, keeping first occurrences", [param("list", "list")], "list"
)
def _unique(items: Any) -> list:
    seen: set[str] = set()
    result = []
    for item in expect_list("unique", items):
        key = loose_key(item)
        if key not in seen:
            seen.add(key)
            result.append(item)
    return result


def _flatten(items: list, depth: int) -> list:
    if depth <= 0:
        return list(items)
    result = []
    for item in items:
        if isinstance(item, list):
            result.extend(_flatten(item, depth - 1))
        else:
            result.append(item)
    return result


@registry.function(
    "flatten",
    "Flattens nested lists up to depth levels (default 1)",
    [param("list", "list"), optional("depth", "number")],
    "list",
    examples=["list.flatten([[1, [2]], [3]]) == [1, [2], 3]"],
)
def _flatten_function(items: Any, *depth: Any) -> list:
    items = expect_list("flatten", items)
    levels = to_int("flatten", depth[0]) if depth else 1
    if levels < 0:
        raise FunctionError("flatten: depth must be non-negative")
    return _flatten(items, levels)


# -----------------------------------------------------------------------------
# Search
# -----------------------------------------------------------------------------


@registry.function(
    "list_contains", "True when the list holds the value", [param("list", "list"), param("value", "any")], "boolean"
)
def _list_contains(items: Any, value: Any) -> bool:
    key = loose_key(value)
    return any(loose_key(item) == key for item in expect_list("list_contains", items))


@registry.function(
    "list_index_of",
    "Index of the first matching element at or after start, or -1",
    [param("list", "list"), param("value", "any"), optional("start", "number")],
    "number",
)
def _list_index_of(items: Any, value: Any, *start: Any) -> float:
    items = expect_list("list_index_of", items)
    begin = max(to_int("list_index_of", start[0]), 0) if start else 0
    key = loose_key(value)
    for i in range(begin, len(items)):
        if loose_key(items[i]) == key:
            return float(i)
    return -1.0


@registry.function(
    "list_last_index_of",
    "Index of the last matching element, or -1",
    [param("list", "list"), param("value", "any")],
    "number",
)
def _list_last_index_of(items: Any, value: Any) -> float:
    items = expect_list("list_last_index_of", items)
    key = loose_key(value)
    for i in range(len(items) - 1, -1, -1):
        if loose_key(items[i]) == key:
            return float(i)
    return -1.0


@registry.function(
    "list_count", "Number of elements matching the value", [param("list", "list"), param("value", "any")], "number"
)
def _list_count(items: Any, value: Any) -> float:
    key = loose_key(value)
    return float(sum(1 for item in expect_list("list_count", items) if loose_key(item) == key))


# -----------------------------------------------------------------------------
# Generation
# -----------------------------------------------------------------------------


@registry.function(
    "range",
    "Numbers from start (default 0) up to end (exclusive) by step (default 1)",
    [param("end_or_start", "number"), optional("end", "number"), optional("step", "number")],
    "list",
    examples=["list.range(3) == [0, 1, 2]", "list.range(10, 0, -5) == [10, 5]"],
)
def _range(*args: Any) -> list[float]:
    numbers = [to_number("range", arg) for arg in args]
    if len(numbers) == 1:
        start, end, step = 0.0, numbers[0], 1.0
    elif len(numbers) == 2:
        start, end, step = numbers[0], numbers[1], 1.0
    else:
        start, end, step = numbers
    if step == 0:
        raise FunctionError("range: step cannot be zero")

    result = []
    current = start
    while (current < end) if step > 0 else (current > end):
        result.append(current)
        current += step
    return result


@registry.function(
    "list_repeat", "A list holding value count times", [param("value", "any"), param("count", "number")], "list"
)
def _list_repeat(value: Any, count: Any) -> list:
    n = to_int("list_repeat", count)
    if n < 0:
        raise FunctionError("list_repeat: count must be non-negative")
    return [value] * n


@registry.function(
    "zip",
    "Pairs up elements of the lists; stops at the shortest",
    [param("list", "list"), variadic("lists", "list")],
    "list",
    examples=["list.zip([1, 2], ['a', 'b']) == [[1, 'a'], [2, 'b']]"],
)
def _zip(*lists: Any) -> list:
    for position, items in enumerate(lists, start=1):
        if not isinstance(items, list):
            raise FunctionError(f"zip: argument {position} expected list, got {type_of(items).value}")
    return [list(group) for group in zip(*lists)]


@registry.function(
    "filter",
    "Removes null, false, 0 and empty-string elements",
    [param("list", "list")],
    "list",
)
def _filter(items: Any) -> list:
    return [item for item in expect_list("filter", items) if not is_nullish(item)]
