"""URL functions (``url`` namespace), built on ``urllib.parse``."""

import re
from typing import Any
from urllib.parse import (
    SplitResult,
    parse_qs,
    quote,
    quote_plus,
    unquote,
    unquote_plus,
    urlencode,
    urlsplit,
    urlunsplit,
)

from exql.errors import FunctionError
from exql.functions import FunctionCategory, FunctionRegistry, param, variadic
from exql.lib.conversion import expect_map, to_string

registry = FunctionRegistry(FunctionCategory.URL)

DEFAULT_PORTS = {"https": 443, "http": 80, "ftp": 21, "ssh": 22}

_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


def _split(name: str, value: Any) -> SplitResult:
    text = to_string(name, value)
    try:
        return urlsplit(text)
    except ValueError as e:
        raise FunctionError(f"{name}: invalid URL string: {e}") from e


def _host_port(netloc: str) -> tuple[str, str]:
    """Split ``user@host:port`` into host and port, keeping IPv6 brackets."""
    host = netloc.rpartition("@")[2]
    if host.startswith("["):
        end = host.find("]")
        if end != -1:
            rest = host[end + 1:]
            return host[: end + 1], rest[1:] if rest.startswith(":") else ""
    if ":" in host:
        host, _, port = host.rpartition(":")
        return host, port
    return host, ""


def _user(parts: SplitResult) -> str:
    return unquote(parts.username) if parts.username else ""


def _unescape(name: str, text: str) -> str:
    if _BAD_ESCAPE.search(text):
        raise FunctionError(f"{name}: invalid URL escape in '{text}'")
    return unquote_plus(text)


def _clean_path(path: str) -> str:
    """Resolve '.' and '..' segments and collapse repeated slashes."""
    if not path:
        return "/"
    rooted = path.startswith("/")
    cleaned: list[str] = []
    for segment in path.split("/"):
        if segment in ("", "."):
            continue
        if segment == "..":
            if cleaned and cleaned[-1] != "..":
                cleaned.pop()
            elif not rooted:
                cleaned.append(segment)
        else:
            cleaned.append(segment)
    result = "/".join(cleaned)
    if rooted and not result.startswith("/"):
        result = "/" + result
    return result or "/"


# -----------------------------------------------------------------------------
# Parsing
# -----------------------------------------------------------------------------


@registry.function(
    "parse",
    "Splits a URL into scheme, host, port, path, query, fragment and user",
    [param("url", "string")],
    "map",
    examples=["url.parse('https://example.com:8080/a?b=1').port == '8080'"],
)
def _parse(value: Any) -> dict:
    parts = _split("parse", value)
    host, port = _host_port(parts.netloc)
    return {
        "scheme": parts.scheme,
        "host": host,
        "port": port,
        "path": parts.path,
        "query": parts.query,
        "fragment": parts.fragment,
        "user": _user(parts),
    }


@registry.function("host", "Returns the host without port", [param("url", "string")], "string")
def _host(value: Any) -> str:
    return _host_port(_split("host", value).netloc)[0]


@registry.function(
    "port",
    "Returns the port, defaulting by scheme (https 443, http 80, ftp 21, ssh 22, else 0)",
    [param("url", "string")],
    "number",
)
def _port(value: Any) -> float:
    parts = _split("port", value)
    port = _host_port(parts.netloc)[1]
    if port:
        if not port.isdigit():
            raise FunctionError(f"port: invalid port number in URL: '{port}'")
        return float(int(port))
    return float(DEFAULT_PORTS.get(parts.scheme.lower(), 0))


@registry.function("path", "Returns the path", [param("url", "string")], "string")
def _path(value: Any) -> str:
    return unquote(_split("path", value).path)


@registry.function(
    "query",
    "Returns the query parameters; repeated parameters become lists",
    [param("url", "string")],
    "map",
)
def _query(value: Any) -> dict:
    params = parse_qs(_split("query", value).query, keep_blank_values=True)
    return {key: items[0] if len(items) == 1 else items for key, items in params.items()}


@registry.function(
    "query_param",
    "Returns one query parameter, or null when absent",
    [param("url", "string"), param("name", "string")],
    "any",
)
def _query_param(value: Any, name: Any) -> Any:
    return _query(value).get(to_string("query_param", name))


@registry.function("fragment", "Returns the fragment", [param("url", "string")], "string")
def _fragment(value: Any) -> str:
    return _split("fragment", value).fragment


@registry.function("scheme", "Returns the scheme", [param("url", "string")], "string")
def _scheme(value: Any) -> str:
    return _split("scheme", value).scheme


@registry.function("user", "Returns the user name of the user info", [param("url", "string")], "string")
def _user_name(value: Any) -> str:
    return _user(_split("user", value))


@registry.function("is_absolute", "True when the URL has a scheme", [param("url", "string")], "boolean")
def _is_absolute(value: Any) -> bool:
    return bool(_split("is_absolute", value).scheme)


@registry.function(
    "path_segments",
    "Returns the decoded, non-empty path segments of a URL or path",
    [param("path", "string")],
    "list",
)
def _path_segments(value: Any) -> list:
    path = to_string("path_segments", value)
    if "://" in path:
        path = _split("path_segments", path).path
    path = path.strip("/")
    if not path:
        return []
    return [_unescape("path_segments", segment) for segment in path.split("/")]


# -----------------------------------------------------------------------------
# Encoding
# -----------------------------------------------------------------------------


@registry.function(
    "encode", "Escapes a string for use in a query component", [param("value", "string")], "string"
)
def _encode(value: Any) -> str:
    return quote_plus(to_string("encode", value), safe="")


@registry.function("decode", "Reverses encode", [param("value", "string")], "string")
def _decode(value: Any) -> str:
    return _unescape("decode", to_string("decode", value))


@registry.function(
    "query_string",
    "Encodes a map as a query string sorted by key; list values repeat the key",
    [param("params", "map")],
    "string",
    examples=["url.query_string(params)"],
)
def _query_string(params: Any) -> str:
    params = expect_map("query_string", params)
    pairs = []
    for key in sorted(params):
        value = params[key]
        items = value if isinstance(value, list) else [value]
        pairs.extend((key, to_string("query_string", item)) for item in items)
    return urlencode(pairs)


# -----------------------------------------------------------------------------
# Building
# -----------------------------------------------------------------------------


@registry.function(
    "build",
    "Builds a URL from a map of scheme, host, port, path, query, fragment, user and password",
    [param("parts", "map")],
    "string",
)
def _build(parts: Any) -> str:
    parts = expect_map("build", parts)

    def part(key: str) -> str:
        return to_string("build", parts[key]) if key in parts else ""

    netloc = part("host")
    port = part("port")
    if netloc and port not in ("", "0"):
        netloc = f"{netloc}:{port}"
    user = part("user")
    if user:
        userinfo = quote(user, safe="")
        if "password" in parts:
            userinfo += ":" + quote(part("password"), safe="")
        netloc = f"{userinfo}@{netloc}"

    path = part("path")
    if netloc and path and not path.startswith("/"):
        path = "/" + path
    return urlunsplit((part("scheme"), netloc, quote(path, safe="/%:@"), part("query"), part("fragment")))


@registry.function(
    "join",
    "Appends path segments to a base URL and cleans the result",
    [param("base", "string"), param("segment", "string"), variadic("segments", "string")],
    "string",
    examples=["url.join('https://api.example.com/v1', 'users', '42')"],
)
def _join(base: Any, *segments: Any) -> str:
    parts = _split("join", base)
    path = parts.path
    last = ""
    for segment in segments:
        segment = to_string("join", segment)
        if not segment:
            continue
        path = path.rstrip("/") + "/" + segment.lstrip("/")
        last = segment
    path = _clean_path(path)
    if last.endswith("/") and not path.endswith("/"):
        path += "/"
    return urlunsplit(parts._replace(path=path))


@registry.function(
    "clean", "Normalizes the path of a URL ('.', '..', duplicate slashes)", [param("url", "string")], "string"
)
def _clean(value: Any) -> str:
    parts = _split("clean", value)
    return urlunsplit(parts._replace(path=_clean_path(parts.path)))
