"""Utility and control functions (``util`` namespace).

Arguments are evaluated before a function runs, so ``util.if`` and friends
select between already-computed values rather than short-circuiting.
"""

import logging
import random
import string
import time
import uuid
from typing import Any

from exql.errors import FunctionError
from exql.functions import FunctionCategory, FunctionRegistry, optional, param, variadic
from exql.lib.conversion import to_bool, to_int, to_number, to_string
from exql.values import ValueType, equals, format_number, format_value, type_of

logger = logging.getLogger(__name__)

registry = FunctionRegistry(FunctionCategory.UTIL)

RANDOM_ALPHABET = string.ascii_letters + string.digits
RANDOM_DEFAULT_LENGTH = 10
RANDOM_MAX_LENGTH = 1000


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, dict)):
        return not value
    return False


def _describe(value: Any) -> str:
    value_type = type_of(value)
    if value_type is ValueType.NULL:
        return "null"
    if value_type is ValueType.BOOL:
        return f"boolean: {format_value(value)}"
    if value_type is ValueType.NUMBER:
        return f"number: {format_number(value)}"
    if value_type is ValueType.STRING:
        return f"string: {format_value(value)} (length: {len(value)})"
    if value_type is ValueType.LIST:
        return f"list: length {len(value)}, elements: {format_value(value)}"
    if value_type is ValueType.MAP:
        return f"map: {len(value)} keys, content: {format_value(value)}"
    return f"{value_type.value}: {format_value(value)}"


# -----------------------------------------------------------------------------
# Conditionals
# -----------------------------------------------------------------------------


@registry.function(
    "if",
    "Returns then when the condition is truthy, otherwise else (null when omitted)",
    [param("condition", "any"), param("then", "any"), optional("else", "any")],
    "any",
    examples=["util.if(age >= 18, 'adult', 'minor')"],
)
def _if(condition: Any, then: Any, *otherwise: Any) -> Any:
    if to_bool("if", condition):
        return then
    return otherwise[0] if otherwise else None


@registry.function(
    "unless",
    "Inverse of if",
    [param("condition", "any"), param("then", "any"), optional("else", "any")],
    "any",
)
def _unless(condition: Any, then: Any, *otherwise: Any) -> Any:
    if not to_bool("unless", condition):
        return then
    return otherwise[0] if otherwise else None


@registry.function(
    "switch",
    "Matches value against case/result pairs; the last argument is the default",
    [param("value", "any"), param("case", "any"), param("result", "any"), variadic("rest", "any")],
    "any",
    examples=["util.switch(status, 'a', 'Active', 'i', 'Inactive', 'Unknown')"],
)
def _switch(value: Any, *pairs: Any) -> Any:
    if len(pairs) % 2 == 0:
        raise FunctionError(
            "switch: expected an odd number of arguments (value, case1, result1, ..., default)"
        )
    for i in range(0, len(pairs) - 1, 2):
        if equals(value, pairs[i]):
            return pairs[i + 1]
    return pairs[-1]


# -----------------------------------------------------------------------------
# Null handling and selection
# -----------------------------------------------------------------------------


@registry.function("coalesce", "Returns the first non-null argument", [variadic("values", "any")], "any")
def _coalesce(*values: Any) -> Any:
    return next((value for value in values if value is not None), None)


registry.alias("first_non_null", "coalesce")


@registry.function(
    "default",
    "Returns value, or fallback when value is null",
    [param("value", "any"), param("fallback", "any")],
    "any",
)
def _default(value: Any, fallback: Any) -> Any:
    return fallback if value is None else value


@registry.function(
    "first_non_empty",
    "Returns the first argument that is not null, blank, or an empty list/map",
    [variadic("values", "any")],
    "any",
)
def _first_non_empty(*values: Any) -> Any:
    return next((value for value in values if not _is_empty(value)), None)


@registry.function("greatest", "Returns the numerically largest argument", [variadic("values", "any")], "any")
def _greatest(*values: Any) -> Any:
    if not values:
        return None
    best = values[0]
    for value in values[1:]:
        if to_number("greatest", value) > to_number("greatest", best):
            best = value
    return best


@registry.function("least", "Returns the numerically smallest argument", [variadic("values", "any")], "any")
def _least(*values: Any) -> Any:
    if not values:
        return None
    best = values[0]
    for value in values[1:]:
        if to_number("least", value) < to_number("least", best):
            best = value
    return best


@registry.function(
    "choose",
    "Returns the option at a 1-based index",
    [param("index", "number"), param("option", "any"), variadic("options", "any")],
    "any",
    examples=["util.choose(2, 'a', 'b', 'c') == 'b'"],
)
def _choose(index: Any, *options: Any) -> Any:
    i = to_int("choose", index)
    if not 1 <= i <= len(options):
        raise FunctionError("choose: index out of bounds")
    return options[i - 1]


# -----------------------------------------------------------------------------
# Debugging and inspection
# -----------------------------------------------------------------------------


@registry.function(
    "debug",
    "Logs the arguments at DEBUG level and returns the first one",
    [variadic("values", "any")],
    "any",
)
def _debug(*values: Any) -> Any:
    logger.debug("%s", " ".join(format_value(value) for value in values))
    return values[0] if values else None


@registry.function("inspect", "Describes a value's type and content", [param("value", "any")], "string")
def _inspect(value: Any) -> str:
    return _describe(value)


@registry.function("dump", "Describes each argument, one per line", [variadic("values", "any")], "string")
def _dump(*values: Any) -> str:
    return "\n".join(_describe(value) for value in values)


@registry.function("identity", "Returns its argument", [param("value", "any")], "any")
def _identity(value: Any) -> Any:
    return value


registry.alias("constant", "identity")


@registry.function("noop", "Ignores its arguments and returns null", [variadic("values", "any")], "null")
def _noop(*values: Any) -> None:
    return None


@registry.function(
    "try_or",
    "Returns value, or fallback when value is null",
    [param("value", "any"), param("fallback", "any")],
    "any",
)
def _try_or(value: Any, fallback: Any) -> Any:
    return fallback if value is None else value


registry.alias("safe", "identity")


# -----------------------------------------------------------------------------
# Conversion
# -----------------------------------------------------------------------------


@registry.function("tostring", "Converts a scalar to a string", [param("value", "any")], "string")
def _tostring(value: Any) -> str:
    return to_string("tostring", value)


@registry.function("tonumber", "Converts a value to a number", [param("value", "any")], "number")
def _tonumber(value: Any) -> float:
    return to_number("tonumber", value)


@registry.function("tobool", "Converts a value to a boolean", [param("value", "any")], "boolean")
def _tobool(value: Any) -> bool:
    return to_bool("tobool", value)


@registry.function(
    "tolist",
    "No arguments: []; one list: itself; one value: [value]; several: all of them",
    [variadic("values", "any")],
    "list",
)
def _tolist(*values: Any) -> list:
    if len(values) == 1:
        return values[0] if isinstance(values[0], list) else [values[0]]
    return list(values)


# -----------------------------------------------------------------------------
# Validation
# -----------------------------------------------------------------------------


@registry.function(
    "assert",
    "Fails with message unless the condition is truthy; returns true",
    [param("condition", "any"), optional("message", "string")],
    "boolean",
)
def _assert(condition: Any, *message: Any) -> bool:
    if not to_bool("assert", condition):
        text = to_string("assert", message[0]) if message else "Assertion failed"
        raise FunctionError(f"assertion failed: {text}")
    return True


@registry.function(
    "validate",
    "Returns value when the condition holds, otherwise fallback (null when omitted)",
    [param("value", "any"), param("condition", "any"), optional("fallback", "any")],
    "any",
)
def _validate(value: Any, condition: Any, *fallback: Any) -> Any:
    if to_bool("validate", condition):
        return value
    return fallback[0] if fallback else None


@registry.function(
    "require",
    "Returns value, failing with message when it is null",
    [param("value", "any"), optional("message", "string")],
    "any",
)
def _require(value: Any, *message: Any) -> Any:
    if value is None:
        text = to_string("require", message[0]) if message else "Required value is null"
        raise FunctionError(f"required value missing: {text}")
    return value


# -----------------------------------------------------------------------------
# Miscellaneous
# -----------------------------------------------------------------------------


@registry.function("uuid", "Returns a random version 4 UUID", [], "string")
def _uuid() -> str:
    return str(uuid.uuid4())


@registry.function("timestamp", "Returns the current Unix time in whole seconds", [], "number")
def _timestamp() -> float:
    return float(int(time.time()))


@registry.function(
    "random_string",
    "Returns a random alphanumeric string (default length 10, at most 1000)",
    [optional("length", "number")],
    "string",
)
def _random_string(*length: Any) -> str:
    size = RANDOM_DEFAULT_LENGTH
    if length:
        size = to_int("random_string", length[0])
        if size <= 0:
            size = RANDOM_DEFAULT_LENGTH
        size = min(size, RANDOM_MAX_LENGTH)
    return "".join(random.choices(RANDOM_ALPHABET, k=size))
