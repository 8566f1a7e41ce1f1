"""Value model and coercion rules for EXQL.

Runtime values are plain Python objects:

- Null: None
- Bool: bool
- Number: float (the only numeric type)
- String: str
- List: list
- Map: dict with str keys
- Namespace: a Context
- Each: the EACH sentinel

The helpers here implement the language's conversions (to_bool, to_number),
tag-aware equality, numeric ordering and list membership, plus rendering
of values for diagnostics.
"""

import json
import math
import re
from enum import Enum
from typing import Any

from exql.errors import CoercionError
from exql.types import EACH, Context, Each, Value


class ValueType(Enum):
    """Runtime type tags."""

    NULL = "null"
    BOOL = "bool"
    NUMBER = "number"
    STRING = "string"
    LIST = "list"
    MAP = "map"
    NAMESPACE = "namespace"
    EACH = "each"
    OTHER = "other"  # host objects the language knows nothing about


def type_of(value: Value) -> ValueType:
    """Return the runtime tag of a value."""
    if value is None:
        return ValueType.NULL
    # bool subclasses int, so it must be checked first
    if isinstance(value, bool):
        return ValueType.BOOL
    if isinstance(value, (int, float)):
        return ValueType.NUMBER
    if isinstance(value, str):
        return ValueType.STRING
    if isinstance(value, list):
        return ValueType.LIST
    if isinstance(value, dict):
        return ValueType.MAP
    if isinstance(value, Context):
        return ValueType.NAMESPACE
    if isinstance(value, Each):
        return ValueType.EACH
    return ValueType.OTHER


# -----------------------------------------------------------------------------
# Host data normalization
# -----------------------------------------------------------------------------


def to_value(obj: Any) -> Value:
    """Normalize host data into the value model.

    Integers become floats, tuples become lists and map keys become strings.
    Contexts, EACH and unknown objects pass through untouched.
    """
    if obj is None or isinstance(obj, (bool, str, float)):
        return obj
    if isinstance(obj, int):
        return float(obj)
    if isinstance(obj, (list, tuple)):
        return [to_value(item) for item in obj]
    if isinstance(obj, dict):
        return {str(key): to_value(item) for key, item in obj.items()}
    return obj


# -----------------------------------------------------------------------------
# Coercions
# -----------------------------------------------------------------------------


# Plain decimal literals only: ASCII digits, no surrounding space, no "_" separators
_DECIMAL_PATTERN = re.compile(
    r"[+-]?(?:(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?|inf(?:inity)?)|nan",
    re.IGNORECASE | re.ASCII,
)


def parse_decimal(text: str) -> float | None:
    """Parse a decimal number, returning None when ``text`` is not one.

    Accepts an optional sign, digits with an optional fraction and exponent,
    and the words inf, infinity and nan in any case.
    """
    if _DECIMAL_PATTERN.fullmatch(text) is None:
        return None
    return float(text)


def to_bool(value: Value) -> bool:
    """Truthiness: false, 0, "" and null are false; everything else is true."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return value != ""
    return value is not None


def to_number(value: Value) -> float:
    """Lenient numeric conversion used by the operators.

    Strings that do not parse, null, lists, maps and namespaces all become 0.
    """
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        number = parse_decimal(value)
        return 0.0 if number is None else number
    return 0.0


def parse_number(value: Value) -> float:
    """Strict numeric conversion.

    Raises:
        CoercionError: If the value is a string that does not parse, or a
            value with no numeric meaning (list, map, namespace, null).
    """
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        number = parse_decimal(value)
        if number is None:
            raise CoercionError(f"cannot convert string '{value}' to number")
        return number
    raise CoercionError(f"cannot convert {type_of(value).value} to number")


# -----------------------------------------------------------------------------
# Comparison
# -----------------------------------------------------------------------------


def equals(left: Value, right: Value) -> bool:
    """Tag-aware structural equality.

    Values of different tags are never equal (``42 != "42"``); lists and
    maps compare element-wise and entry-wise. Numbers compare as IEEE
    doubles, so nan never equals itself and -0 equals 0.
    """
    left_type = type_of(left)
    if left_type is not type_of(right):
        return False

    if left_type is ValueType.NUMBER:
        return float(left) == float(right)
    if left_type is ValueType.LIST:
        return len(left) == len(right) and all(
            equals(a, b) for a, b in zip(left, right)
        )
    if left_type is ValueType.MAP:
        return left.keys() == right.keys() and all(
            equals(left[key], right[key]) for key in left
        )
    if left_type in (ValueType.NAMESPACE, ValueType.OTHER):
        return left is right
    return left == right


def less_than(left: Value, right: Value) -> bool:
    return to_number(left) < to_number(right)


def less_equal(left: Value, right: Value) -> bool:
    return to_number(left) <= to_number(right)


def greater_than(left: Value, right: Value) -> bool:
    return to_number(left) > to_number(right)


def greater_equal(left: Value, right: Value) -> bool:
    return to_number(left) >= to_number(right)


def contains(container: Value, item: Value) -> bool:
    """List membership; any other container yields False."""
    if not isinstance(container, list):
        return False
    return any(equals(element, item) for element in container)


# -----------------------------------------------------------------------------
# Rendering
# -----------------------------------------------------------------------------


def format_number(number: float) -> str:
    """Render a number without a trailing ``.0`` when it is integral."""
    number = float(number)
    if math.isfinite(number) and number.is_integer() and abs(number) < 1e21:
        return str(int(number))
    return repr(number)


def format_value(value: Value) -> str:
    """Render a value in expression-like notation.

    Examples:
        format_value(None) -> 'null'
        format_value(3.0) -> '3'
        format_value(["a", 1.5]) -> '["a", 1.5]'
        format_value({"k": True}) -> '{"k": true}'
    """
    value_type = type_of(value)
    if value_type is ValueType.NULL:
        return "null"
    if value_type is ValueType.BOOL:
        return "true" if value else "false"
    if value_type is ValueType.NUMBER:
        return format_number(value)
    if value_type is ValueType.STRING:
        return json.dumps(value, ensure_ascii=False)
    if value_type is ValueType.LIST:
        return "[" + ", ".join(format_value(item) for item in value) + "]"
    if value_type is ValueType.MAP:
        entries = (
            f"{json.dumps(key, ensure_ascii=False)}: {format_value(item)}"
            for key, item in value.items()
        )
        return "{" + ", ".join(entries) + "}"
    if value_type is ValueType.NAMESPACE:
        return "<namespace>"
    if value is EACH:
        return "<each>"
    return repr(value)


def to_plain(value: Value) -> Any:
    """Convert a value into JSON-serializable data.

    Integral numbers become ints; namespaces and EACH become marker strings.
    """
    value_type = type_of(value)
    if value_type is ValueType.NUMBER:
        number = float(value)
        if math.isfinite(number) and number.is_integer():
            return int(number)
        return number
    if value_type is ValueType.LIST:
        return [to_plain(item) for item in value]
    if value_type is ValueType.MAP:
        return {key: to_plain(item) for key, item in value.items()}
    if value_type in (ValueType.NAMESPACE, ValueType.EACH, ValueType.OTHER):
        return format_value(value)
    return value
