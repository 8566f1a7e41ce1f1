"""String functions (``string`` namespace).

Lengths and indexes count code points; ``size`` is the UTF-8 byte length.
Scalar arguments are converted with to_string/to_number, so
``string.len(12345)`` is 5.
"""

import re
from typing import Any

from exql.errors import FunctionError
from exql.functions import FunctionCategory, FunctionRegistry, optional, param, variadic
from exql.lib.conversion import expect_list, to_int, to_string
from exql.values import parse_decimal, to_number

registry = FunctionRegistry(FunctionCategory.STRING)


# -----------------------------------------------------------------------------
# Length and composition
# -----------------------------------------------------------------------------


@registry.function(
    "len",
    "Returns the number of characters (code points) in a string",
    [param("value", "string")],
    "number",
    examples=["string.len('héllo') == 5"],
)
def _len(value: Any) -> float:
    return float(len(to_string("len", value)))


@registry.function(
    "size",
    "Returns the UTF-8 byte length of a string",
    [param("value", "string")],
    "number",
    examples=["string.size('héllo') == 6"],
)
def _size(value: Any) -> float:
    return float(len(to_string("size", value).encode("utf-8")))


@registry.function(
    "concat",
    "Concatenates all arguments as strings",
    [variadic("values", "any")],
    "string",
    examples=["string.concat(first, ' ', last)"],
)
def _concat(*values: Any) -> str:
    return "".join(to_string("concat", value) for value in values)


@registry.function(
    "repeat", "Repeats a string count times", [param("value", "string"), param("count", "number")], "string"
)
def _repeat(value: Any, count: Any) -> str:
    return to_string("repeat", value) * max(to_int("repeat", count), 0)


@registry.function("reverse", "Reverses a string", [param("value", "string")], "string")
def _reverse(value: Any) -> str:
    return to_string("reverse", value)[::-1]


# -----------------------------------------------------------------------------
# Case
# -----------------------------------------------------------------------------


@registry.function("upper", "Converts to upper case", [param("value", "string")], "string")
def _upper(value: Any) -> str:
    return to_string("upper", value).upper()


@registry.function("lower", "Converts to lower case", [param("value", "string")], "string")
def _lower(value: Any) -> str:
    return to_string("lower", value).lower()


@registry.function(
    "title",
    "Upper-cases the first letter of every word, leaving the rest untouched",
    [param("value", "string")],
    "string",
    examples=["string.title('hello wORLD') == 'Hello WORLD'"],
)
def _title(value: Any) -> str:
    return re.sub(r"(?<!\w)\w", lambda m: m.group().upper(), to_string("title", value))


@registry.function(
    "capitalize",
    "Upper-cases the first character and lower-cases the rest",
    [param("value", "string")],
    "string",
)
def _capitalize(value: Any) -> str:
    s = to_string("capitalize", value)
    return s[:1].upper() + s[1:].lower()


@registry.function("swapCase", "Swaps upper and lower case", [param("value", "string")], "string")
def _swap_case(value: Any) -> str:
    return to_string("swapCase", value).swapcase()


# -----------------------------------------------------------------------------
# Trimming and padding
# -----------------------------------------------------------------------------


@registry.function(
    "trim",
    "Removes leading and trailing whitespace, or the characters in cutset",
    [param("value", "string"), optional("cutset", "string")],
    "string",
    examples=["string.trim('  hi  ') == 'hi'", "string.trim('xxhixx', 'x') == 'hi'"],
)
def _trim(value: Any, *cutset: Any) -> str:
    s = to_string("trim", value)
    if cutset:
        return s.strip(to_string("trim", cutset[0]))
    return s.strip()


@registry.function(
    "trimLeft",
    "Removes leading whitespace, or the characters in cutset",
    [param("value", "string"), optional("cutset", "string")],
    "string",
)
def _trim_left(value: Any, *cutset: Any) -> str:
    s = to_string("trimLeft", value)
    if cutset:
        return s.lstrip(to_string("trimLeft", cutset[0]))
    return s.lstrip()


@registry.function(
    "trimRight",
    "Removes trailing whitespace, or the characters in cutset",
    [param("value", "string"), optional("cutset", "string")],
    "string",
)
def _trim_right(value: Any, *cutset: Any) -> str:
    s = to_string("trimRight", value)
    if cutset:
        return s.rstrip(to_string("trimRight", cutset[0]))
    return s.rstrip()


def _padding(name: str, value: Any, length: Any, pad: tuple[Any, ...]) -> tuple[str, int, str]:
    """Resolve (string, missing character count, pad text) for the pad functions."""
    s = to_string(name, value)
    total = to_int(name, length)
    pad_text = to_string(name, pad[0]) if pad else " "
    return s, max(total - len(s), 0), pad_text or " "


@registry.function(
    "padLeft",
    "Pads the start of a string to the given length",
    [param("value", "string"), param("length", "number"), optional("pad", "string", "Defaults to a space")],
    "string",
    examples=["string.padLeft('7', 3, '0') == '007'"],
)
def _pad_left(value: Any, length: Any, *pad: Any) -> str:
    s, missing, pad_text = _padding("padLeft", value, length, pad)
    return pad_text * missing + s


@registry.function(
    "padRight",
    "Pads the end of a string to the given length",
    [param("value", "string"), param("length", "number"), optional("pad", "string", "Defaults to a space")],
    "string",
)
def _pad_right(value: Any, length: Any, *pad: Any) -> str:
    s, missing, pad_text = _padding("padRight", value, length, pad)
    return s + pad_text * missing


@registry.function(
    "padCenter",
    "Pads both sides of a string to the given length; the extra character goes right",
    [param("value", "string"), param("length", "number"), optional("pad", "string", "Defaults to a space")],
    "string",
)
def _pad_center(value: Any, length: Any, *pad: Any) -> str:
    s, missing, pad_text = _padding("padCenter", value, length, pad)
    left = missing // 2
    return pad_text * left + s + pad_text * (missing - left)


# -----------------------------------------------------------------------------
# Substrings
# -----------------------------------------------------------------------------


@registry.function(
    "substr",
    "Returns the substring from start (negative counts from the end), optionally limited to length",
    [param("value", "string"), param("start", "number"), optional("length", "number")],
    "string",
    examples=["string.substr('hello', 1, 3) == 'ell'", "string.substr('hello', -3) == 'llo'"],
)
def _substr(value: Any, start: Any, *length: Any) -> str:
    s = to_string("substr", value)
    begin = to_int("substr", start)
    if begin < 0:
        begin += len(s)
    if begin < 0 or begin >= len(s):
        return ""
    if not length:
        return s[begin:]
    count = to_int("substr", length[0])
    if count < 0:
        return ""
    return s[begin:begin + count]


@registry.function(
    "left", "Returns the first count characters", [param("value", "string"), param("count", "number")], "string"
)
def _left(value: Any, count: Any) -> str:
    s = to_string("left", value)
    n = to_int("left", count)
    return s[:n] if n > 0 else ""


@registry.function(
    "right", "Returns the last count characters", [param("value", "string"), param("count", "number")], "string"
)
def _right(value: Any, count: Any) -> str:
    s = to_string("right", value)
    n = to_int("right", count)
    return s[-n:] if n > 0 else ""


# -----------------------------------------------------------------------------
# Searching and replacing
# -----------------------------------------------------------------------------


@registry.function(
    "contains", "Reports whether substring occurs in value", [param("value", "string"), param("substring", "string")], "boolean"
)
def _contains(value: Any, substring: Any) -> bool:
    return to_string("contains", substring) in to_string("contains", value)


@registry.function(
    "startswith", "Reports whether value starts with prefix", [param("value", "string"), param("prefix", "string")], "boolean"
)
def _startswith(value: Any, prefix: Any) -> bool:
    return to_string("startswith", value).startswith(to_string("startswith", prefix))


@registry.function(
    "endswith", "Reports whether value ends with suffix", [param("value", "string"), param("suffix", "string")], "boolean"
)
def _endswith(value: Any, suffix: Any) -> bool:
    return to_string("endswith", value).endswith(to_string("endswith", suffix))


@registry.function(
    "indexof",
    "Returns the index of the first occurrence of substring at or after start, or -1",
    [param("value", "string"), param("substring", "string"), optional("start", "number")],
    "number",
)
def _indexof(value: Any, substring: Any, *start: Any) -> float:
    s = to_string("indexof", value)
    sub = to_string("indexof", substring)
    begin = max(to_int("indexof", start[0]), 0) if start else 0
    if begin >= len(s):
        return -1.0
    return float(s.find(sub, begin))


@registry.function(
    "lastIndexOf",
    "Returns the index of the last occurrence of substring, or -1",
    [param("value", "string"), param("substring", "string")],
    "number",
)
def _last_index_of(value: Any, substring: Any) -> float:
    return float(to_string("lastIndexOf", value).rfind(to_string("lastIndexOf", substring)))


@registry.function(
    "replace",
    "Replaces occurrences of old with new; count limits the replacements (negative means all)",
    [param("value", "string"), param("old", "string"), param("new", "string"), optional("count", "number")],
    "string",
)
def _replace(value: Any, old: Any, new: Any, *count: Any) -> str:
    n = to_int("replace", count[0]) if count else -1
    return to_string("replace", value).replace(
        to_string("replace", old), to_string("replace", new), n
    )


@registry.function(
    "replaceAll",
    "Replaces every occurrence of old with new",
    [param("value", "string"), param("old", "string"), param("new", "string")],
    "string",
)
def _replace_all(value: Any, old: Any, new: Any) -> str:
    return to_string("replaceAll", value).replace(
        to_string("replaceAll", old), to_string("replaceAll", new)
    )


# -----------------------------------------------------------------------------
# Splitting and joining
# -----------------------------------------------------------------------------


@registry.function(
    "split",
    "Splits value around separator; a positive count limits the number of parts, zero returns no parts",
    [param("value", "string"), param("separator", "string"), optional("count", "number")],
    "list",
    examples=["string.split('a,b,c', ',') == ['a', 'b', 'c']", "string.split('a,b,c', ',', 2) == ['a', 'b,c']"],
)
def _split(value: Any, separator: Any, *count: Any) -> list[str]:
    s = to_string("split", value)
    sep = to_string("split", separator)
    n = to_int("split", count[0]) if count else -1
    if n == 0:
        return []
    if sep == "":
        chars = list(s)
        if 0 < n < len(chars):
            return chars[: n - 1] + ["".join(chars[n - 1:])]
        return chars
    return s.split(sep, n - 1 if n > 0 else -1)


@registry.function(
    "join",
    "Joins the items of a list with a separator",
    [param("separator", "string"), param("items", "list")],
    "string",
    examples=["string.join('-', ['a', 'b']) == 'a-b'"],
)
def _join(separator: Any, items: Any) -> str:
    sep = to_string("join", separator)
    return sep.join(to_string("join", item) for item in expect_list("join", items))


@registry.function("lines", "Splits a string on newlines", [param("value", "string")], "list")
def _lines(value: Any) -> list[str]:
    return to_string("lines", value).split("\n")


@registry.function("fields", "Splits a string around runs of whitespace", [param("value", "string")], "list")
def _fields(value: Any) -> list[str]:
    return to_string("fields", value).split()


# -----------------------------------------------------------------------------
# Regular expressions
# -----------------------------------------------------------------------------


def _compile(name: str, pattern: Any) -> re.Pattern:
    try:
        return re.compile(to_string(name, pattern))
    except re.error as e:
        raise FunctionError(f"{name}: invalid regex pattern: {e}") from e


_GROUP_REFERENCE = re.compile(r"\$(?:\{(\w+)\}|(\w+))")


def _expand(match: re.Match, template: str) -> str:
    """Expand $1 / ${name} references; unknown groups expand to nothing."""

    def group(ref: re.Match) -> str:
        key = ref.group(1) or ref.group(2)
        try:
            return match.group(int(key) if key.isdigit() else key) or ""
        except IndexError:
            return ""

    return _GROUP_REFERENCE.sub(group, template.replace("$$", "\0")).replace("\0", "$")


@registry.function(
    "match",
    "Reports whether the regular expression matches anywhere in value",
    [param("value", "string"), param("pattern", "string")],
    "boolean",
    examples=["string.match(email, '^[^@]+@[^@]+$')"],
)
def _match(value: Any, pattern: Any) -> bool:
    return _compile("match", pattern).search(to_string("match", value)) is not None


@registry.function(
    "findAll",
    "Returns all matches of the regular expression; a non-negative count limits the result",
    [param("value", "string"), param("pattern", "string"), optional("count", "number")],
    "list",
)
def _find_all(value: Any, pattern: Any, *count: Any) -> list[str]:
    regex = _compile("findAll", pattern)
    n = to_int("findAll", count[0]) if count else -1
    matches = [m.group(0) for m in regex.finditer(to_string("findAll", value))]
    return matches if n < 0 else matches[:n]


@registry.function(
    "replaceRegex",
    "Replaces all matches of the regular expression; $1 and ${name} refer to groups",
    [param("value", "string"), param("pattern", "string"), param("replacement", "string")],
    "string",
    examples=["string.replaceRegex('2024-01-31', '(\\d+)-(\\d+)-(\\d+)', '$3/$2/$1')"],
)
def _replace_regex(value: Any, pattern: Any, replacement: Any) -> str:
    regex = _compile("replaceRegex", pattern)
    template = to_string("replaceRegex", replacement)
    return regex.sub(lambda m: _expand(m, template), to_string("replaceRegex", value))


# -----------------------------------------------------------------------------
# Characters
# -----------------------------------------------------------------------------


@registry.function(
    "charAt",
    "Returns the character at index, or an empty string when out of range",
    [param("value", "string"), param("index", "number")],
    "string",
)
def _char_at(value: Any, index: Any) -> str:
    s = to_string("charAt", value)
    i = to_int("charAt", index)
    return s[i] if 0 <= i < len(s) else ""


@registry.function(
    "charCode",
    "Returns the code point at index, or 0 when out of range",
    [param("value", "string"), param("index", "number")],
    "number",
)
def _char_code(value: Any, index: Any) -> float:
    s = to_string("charCode", value)
    i = to_int("charCode", index)
    return float(ord(s[i])) if 0 <= i < len(s) else 0.0


@registry.function(
    "fromCharCode",
    "Builds a string from code points",
    [variadic("codes", "number")],
    "string",
    examples=["string.fromCharCode(72, 105) == 'Hi'"],
)
def _from_char_code(*codes: Any) -> str:
    chars = []
    for code in codes:
        point = to_int("fromCharCode", code)
        chars.append(chr(point) if 0 <= point <= 0x10FFFF else "\ufffd")
    return "".join(chars)


# -----------------------------------------------------------------------------
# Predicates and conversion
# -----------------------------------------------------------------------------


@registry.function("isEmpty", "True when the string is empty after trimming", [param("value", "string")], "boolean")
def _is_empty(value: Any) -> bool:
    return to_string("isEmpty", value).strip() == ""


@registry.function("isNumeric", "True when the string parses as a number", [param("value", "string")], "boolean")
def _is_numeric(value: Any) -> bool:
    return parse_decimal(to_string("isNumeric", value)) is not None


@registry.function("isAlpha", "True when every character is a letter", [param("value", "string")], "boolean")
def _is_alpha(value: Any) -> bool:
    s = to_string("isAlpha", value)
    return bool(s) and all(ch.isalpha() for ch in s)


@registry.function(
    "isAlphanumeric", "True when every character is a letter or digit", [param("value", "string")], "boolean"
)
def _is_alphanumeric(value: Any) -> bool:
    s = to_string("isAlphanumeric", value)
    return bool(s) and all(ch.isalpha() or ch.isdecimal() for ch in s)


@registry.function("isSpace", "True when every character is whitespace", [param("value", "string")], "boolean")
def _is_space(value: Any) -> bool:
    return to_string("isSpace", value).isspace()


@registry.function("toString", "Converts a scalar to its string form", [param("value", "any")], "string")
def _to_string(value: Any) -> str:
    return to_string("toString", value)


@registry.function(
    "toNumber", "Parses a number, returning 0 when it does not parse", [param("value", "any")], "number"
)
def _to_number(value: Any) -> float:
    return to_number(to_string("toNumber", value))
