"""Strict conversion helpers shared by the built-in libraries.

Unlike the lenient coercions the operators use, these raise errors prefixed
with the calling function's name when a value cannot be converted:
CoercionError for numbers, FunctionError for everything else.
"""

import math
from typing import Any

from exql.errors import CoercionError, FunctionError
from exql.values import ValueType, format_number, format_value, parse_number, type_of


def type_name(value: Any) -> str:
    return type_of(value).value


def to_string(name: str, value: Any) -> str:
    """Convert a scalar to a string.

    Integral numbers render without a decimal point, booleans as
    ``true``/``false`` and null as the empty string.
    """
    value_type = type_of(value)
    if value_type is ValueType.STRING:
        return value
    if value_type is ValueType.NUMBER:
        return format_number(value)
    if value_type is ValueType.BOOL:
        return "true" if value else "false"
    if value_type is ValueType.NULL:
        return ""
    raise FunctionError(f"{name}: expected string, got {value_type.value}")


def to_number(name: str, value: Any) -> float:
    """Convert a value to a float; strings must be decimal numbers."""
    try:
        return parse_number(value)
    except CoercionError as e:
        raise CoercionError(f"{name}: {e}") from None


def to_int(name: str, value: Any) -> int:
    """Convert to a number and truncate toward zero."""
    number = to_number(name, value)
    if not math.isfinite(number):
        raise FunctionError(f"{name}: expected a finite number, got {format_number(number)}")
    return int(number)


def to_bool(name: str, value: Any) -> bool:
    value_type = type_of(value)
    if value_type is ValueType.BOOL:
        return value
    if value_type is ValueType.NUMBER:
        return value != 0
    if value_type in (ValueType.STRING, ValueType.LIST, ValueType.MAP):
        return len(value) > 0
    if value_type is ValueType.NULL:
        return False
    raise FunctionError(f"{name}: cannot convert {value_type.value} to bool")


def expect_list(name: str, value: Any) -> list:
    if not isinstance(value, list):
        raise FunctionError(f"{name}: expected list, got {type_name(value)}")
    return value


def expect_map(name: str, value: Any) -> dict:
    if not isinstance(value, dict):
        raise FunctionError(f"{name}: expected map, got {type_name(value)}")
    return value


def is_nullish(value: Any) -> bool:
    """True for null, false, 0 and the empty string."""
    value_type = type_of(value)
    if value_type is ValueType.NULL:
        return True
    if value_type is ValueType.BOOL:
        return not value
    if value_type is ValueType.NUMBER:
        return value == 0
    if value_type is ValueType.STRING:
        return value == ""
    return False


def loose_key(value: Any) -> str:
    """Loose string form used to compare and key values inside libraries.

    Strings stay as-is, numbers and booleans use their string form, null is
    the empty string and containers use format_value.
    """
    value_type = type_of(value)
    if value_type is ValueType.STRING:
        return value
    if value_type is ValueType.NUMBER:
        return format_number(value)
    if value_type is ValueType.BOOL:
        return "true" if value else "false"
    if value_type is ValueType.NULL:
        return ""
    return format_value(value)
