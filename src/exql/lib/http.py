"""HTTP message functions (``http`` namespace).

Every function takes an HttpMessage as its first argument. Hosts build
one directly or adapt a Starlette request/response with from_request and
from_response, then bind it as a variable:

    ctx = DefaultContext(with_builtin_library(), variables={"req": from_request(request, body)})
    eval_expression("http.method(req) == 'POST' and http.header(req, 'x-api-key') != ''", ctx)
"""

from dataclasses import dataclass, field
from http.cookies import CookieError, SimpleCookie
from typing import TYPE_CHECKING, Any, Iterable, Mapping
from urllib.parse import parse_qs, urlsplit

from exql.errors import FunctionError
from exql.functions import FunctionCategory, FunctionRegistry, param
from exql.lib.conversion import to_string, type_name

if TYPE_CHECKING:
    from starlette.requests import Request
    from starlette.responses import Response

registry = FunctionRegistry(FunctionCategory.HTTP)


def canonical_header(name: str) -> str:
    """Canonical header spelling: ``x-forwarded-for`` -> ``X-Forwarded-For``."""
    return "-".join(part.capitalize() for part in name.split("-"))


@dataclass
class HttpMessage:
    """An HTTP request or response as seen by expressions.

    Headers may be given as a mapping (values are strings or lists of
    strings) or as a sequence of (name, value) pairs; they are stored as
    pairs and looked up case-insensitively.

    Attributes:
        method: Request method ("" for a bare response)
        url: Full request URL
        headers: Header (name, value) pairs in arrival order
        body: Raw body
        status_code: Response status (0 for a request)
        remote_address: Peer address, "host:port"
        host: Host the request was addressed to
        kind: "request" or "response"
    """

    method: str = ""
    url: str = ""
    headers: Any = field(default_factory=list)
    body: bytes | str = b""
    status_code: int = 0
    remote_address: str = ""
    host: str = ""
    kind: str = "request"

    def __post_init__(self) -> None:
        self.headers = list(_header_pairs(self.headers))
        if isinstance(self.body, str):
            self.body = self.body.encode("utf-8")
        if not self.host:
            self.host = self.header("Host") or urlsplit(self.url).netloc

    def header(self, name: str) -> str:
        """First value of a header, or "" when absent."""
        values = self.header_values(name)
        return values[0] if values else ""

    def header_values(self, name: str) -> list[str]:
        wanted = name.lower()
        return [value for key, value in self.headers if key.lower() == wanted]

    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")


def _header_pairs(headers: Mapping[str, Any] | Iterable[tuple[str, str]]) -> Iterable[tuple[str, str]]:
    items = headers.items() if isinstance(headers, Mapping) else headers
    for key, value in items:
        if isinstance(value, (list, tuple)):
            for item in value:
                yield str(key), str(item)
        else:
            yield str(key), str(value)


def from_request(request: "Request", body: bytes | str = b"") -> HttpMessage:
    """Adapt a Starlette request.

    Starlette reads bodies asynchronously, so the caller awaits
    ``request.body()`` and passes the bytes here.
    """
    client = request.client
    return HttpMessage(
        method=request.method,
        url=str(request.url),
        headers=list(request.headers.items()),
        body=body,
        remote_address=f"{client.host}:{client.port}" if client else "",
        host=request.headers.get("host", request.url.netloc),
        kind="request",
    )


def from_response(response: "Response", request: "Request | None" = None) -> HttpMessage:
    """Adapt a Starlette response, taking method and URL from its request when given."""
    message = from_request(request) if request is not None else HttpMessage(kind="response")
    return HttpMessage(
        method=message.method,
        url=message.url,
        headers=list(response.headers.items()),
        body=getattr(response, "body", b"") or b"",
        status_code=response.status_code,
        remote_address=message.remote_address,
        host=message.host,
        kind="response",
    )


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------


def _message(name: str, value: Any) -> HttpMessage:
    if not isinstance(value, HttpMessage):
        raise FunctionError(f"{name}: argument 1 expected HttpMessage, got {type_name(value)}")
    return value


def _cookie_entries(message: HttpMessage) -> list[dict]:
    """Cookies sent by a request (Cookie) or set by a response (Set-Cookie)."""
    header_name = "Set-Cookie" if message.kind == "response" else "Cookie"
    entries = []
    for raw in message.header_values(header_name):
        jar = SimpleCookie()
        try:
            jar.load(raw)
        except CookieError:
            continue
        for morsel in jar.values():
            max_age = morsel["max-age"]
            entries.append(
                {
                    "name": morsel.key,
                    "value": morsel.value,
                    "domain": morsel["domain"],
                    "path": morsel["path"],
                    "expires": morsel["expires"],
                    "maxAge": float(max_age) if str(max_age).lstrip("-").isdigit() else 0.0,
                    "secure": bool(morsel["secure"]),
                    "httpOnly": bool(morsel["httponly"]),
                    "sameSite": morsel["samesite"],
                    "raw": raw,
                }
            )
    return entries


def _header_function(name: str, header_name: str) -> None:
    def read(message: Any) -> str:
        return _message(name, message).header(header_name)

    registry.function(
        name, f"Value of the {header_name} header, or ''", [param("message", "HttpMessage")], "string"
    )(read)


# -----------------------------------------------------------------------------
# Headers
# -----------------------------------------------------------------------------


@registry.function(
    "header",
    "First value of a header (case-insensitive), or ''",
    [param("message", "HttpMessage"), param("name", "string")],
    "string",
    examples=["http.header(req, 'x-api-key') != ''"],
)
def _header(message: Any, name: Any) -> str:
    return _message("header", message).header(to_string("header", name))


@registry.function(
    "headers",
    "Map of canonical header name to the list of its values",
    [param("message", "HttpMessage")],
    "map",
)
def _headers(message: Any) -> dict:
    result: dict[str, list] = {}
    for key, value in _message("headers", message).headers:
        result.setdefault(canonical_header(key), []).append(value)
    return result


_header_function("userAgent", "User-Agent")
_header_function("contentType", "Content-Type")
_header_function("referer", "Referer")
_header_function("authorization", "Authorization")
_header_function("accept", "Accept")


@registry.function(
    "contentLength",
    "Content-Length header as a number, or the body size when absent",
    [param("message", "HttpMessage")],
    "number",
)
def _content_length(message: Any) -> float:
    message = _message("contentLength", message)
    declared = message.header("Content-Length").strip()
    if declared.isdigit():
        return float(int(declared))
    return float(len(message.body))


# -----------------------------------------------------------------------------
# Request line and URL
# -----------------------------------------------------------------------------


@registry.function("method", "Request method", [param("message", "HttpMessage")], "string")
def _method(message: Any) -> str:
    return _message("method", message).method


@registry.function("path", "URL path", [param("message", "HttpMessage")], "string")
def _path(message: Any) -> str:
    return urlsplit(_message("path", message).url).path


@registry.function("scheme", "URL scheme", [param("message", "HttpMessage")], "string")
def _scheme(message: Any) -> str:
    return urlsplit(_message("scheme", message).url).scheme


@registry.function("host", "Host the request was addressed to", [param("message", "HttpMessage")], "string")
def _host(message: Any) -> str:
    return _message("host", message).host


@registry.function("port", "Explicit URL port as a string, or ''", [param("message", "HttpMessage")], "string")
def _port(message: Any) -> str:
    netloc = urlsplit(_message("port", message).url).netloc.rpartition("@")[2]
    if netloc.startswith("["):
        netloc = netloc.partition("]")[2]
    return netloc.rpartition(":")[2] if ":" in netloc else ""


@registry.function(
    "query",
    "Map of query parameter to the list of its values",
    [param("message", "HttpMessage")],
    "map",
)
def _query(message: Any) -> dict:
    return parse_qs(urlsplit(_message("query", message).url).query, keep_blank_values=True)


@registry.function(
    "queryParam",
    "List of values of one query parameter, or null",
    [param("message", "HttpMessage"), param("name", "string")],
    "list",
    examples=["'admin' in http.queryParam(req, 'role')"],
)
def _query_param(message: Any, name: Any) -> Any:
    return _query(message).get(to_string("queryParam", name))


# -----------------------------------------------------------------------------
# Body, status and peer
# -----------------------------------------------------------------------------


@registry.function("body", "Body decoded as UTF-8", [param("message", "HttpMessage")], "string")
def _body(message: Any) -> str:
    return _message("body", message).text()


@registry.function("status", "Response status code (0 for requests)", [param("message", "HttpMessage")], "number")
def _status(message: Any) -> float:
    return float(_message("status", message).status_code)


@registry.function(
    "ip",
    "Client address: first X-Forwarded-For entry, then X-Real-IP, then the peer address",
    [param("message", "HttpMessage")],
    "string",
)
def _ip(message: Any) -> str:
    message = _message("ip", message)
    forwarded = message.header("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = message.header("X-Real-IP")
    if real_ip:
        return real_ip
    return message.remote_address


# -----------------------------------------------------------------------------
# Cookies
# -----------------------------------------------------------------------------


@registry.function(
    "cookies",
    "Cookies of the message as maps (name, value, domain, path, expires, maxAge, secure, httpOnly, sameSite, raw)",
    [param("message", "HttpMessage")],
    "list",
)
def _cookies(message: Any) -> list:
    return _cookie_entries(_message("cookies", message))


@registry.function(
    "cookie",
    "The cookie with the given name, or null",
    [param("message", "HttpMessage"), param("name", "string")],
    "map",
    examples=["http.cookie(req, 'session').value != ''"],
)
def _cookie(message: Any, name: Any) -> Any:
    wanted = to_string("cookie", name)
    entries = _cookie_entries(_message("cookie", message))
    return next((entry for entry in entries if entry["name"] == wanted), None)
