"""Tests for the http library and the Starlette adapters."""

import pytest
from starlette.requests import Request
from starlette.responses import Response

from exql import DefaultContext, FunctionError, eval_expression, with_builtin_library
from exql.lib.http import HttpMessage, canonical_header, from_request, from_response


def run(source, **variables):
    ctx = DefaultContext(with_builtin_library(), variables=variables)
    return eval_expression(source, ctx)


@pytest.fixture
def req():
    return HttpMessage(
        method="POST",
        url="https://api.example.com:8443/v1/users?role=admin&role=dev&page=2&empty=",
        headers=[
            ("Host", "api.example.com:8443"),
            ("User-Agent", "curl/8.0"),
            ("Content-Type", "application/json"),
            ("Accept", "*/*"),
            ("Authorization", "Bearer token"),
            ("Referer", "https://example.com/"),
            ("x-forwarded-for", "203.0.113.7, 10.0.0.1"),
            ("X-Tag", "a"),
            ("x-tag", "b"),
            ("Cookie", "session=abc123; theme=dark"),
        ],
        body='{"name": "ada"}',
        remote_address="10.0.0.1:5555",
    )


def starlette_request(headers, path="/items", query=b"", client=("10.0.0.9", 5555)):
    scope = {
        "type": "http",
        "method": "GET",
        "scheme": "https",
        "path": path,
        "root_path": "",
        "query_string": query,
        "headers": [(k.lower().encode(), v.encode()) for k, v in headers],
        "server": ("example.com", 443),
        "client": client,
    }
    return Request(scope)


# =============================================================================
# HttpMessage Tests
# =============================================================================


class TestHttpMessage:
    def test_headers_from_mapping(self):
        message = HttpMessage(headers={"Accept": ["a", "b"], "X-One": "1"})

        assert message.headers == [("Accept", "a"), ("Accept", "b"), ("X-One", "1")]
        assert message.header("accept") == "a"
        assert message.header_values("ACCEPT") == ["a", "b"]

    def test_missing_header_is_empty(self):
        assert HttpMessage().header("X-None") == ""

    def test_body_is_bytes(self):
        assert HttpMessage(body="héllo").body == "héllo".encode()
        assert HttpMessage(body=b"\xff").text() == "\ufffd"

    def test_host_defaults(self):
        assert HttpMessage(url="http://a.example:81/x").host == "a.example:81"
        assert HttpMessage(url="http://a.example/x", headers={"Host": "b.example"}).host == "b.example"

    def test_canonical_header(self):
        assert canonical_header("x-forwarded-for") == "X-Forwarded-For"
        assert canonical_header("CONTENT-TYPE") == "Content-Type"


# =============================================================================
# Header Function Tests
# =============================================================================


class TestHeaders:
    def test_header(self, req):
        assert run("http.header(r, 'x-tag')", r=req) == "a"
        assert run("http.header(r, 'x-missing')", r=req) == ""

    def test_headers_map(self, req):
        headers = run("http.headers(r)", r=req)

        assert headers["X-Tag"] == ["a", "b"]
        assert headers["X-Forwarded-For"] == ["203.0.113.7, 10.0.0.1"]

    def test_named_headers(self, req):
        assert run("http.userAgent(r)", r=req) == "curl/8.0"
        assert run("http.contentType(r)", r=req) == "application/json"
        assert run("http.referer(r)", r=req) == "https://example.com/"
        assert run("http.authorization(r)", r=req) == "Bearer token"
        assert run("http.accept(r)", r=req) == "*/*"

    def test_content_length(self, req):
        assert run("http.contentLength(r)", r=req) == 15.0
        assert run("http.contentLength(r)", r=HttpMessage(headers={"Content-Length": "99"})) == 99.0

    def test_requires_message(self):
        with pytest.raises(FunctionError, match="header: argument 1 expected HttpMessage, got string"):
            run("http.header('req', 'x')")


# =============================================================================
# Request Line Tests
# =============================================================================


class TestRequestLine:
    def test_method_path_scheme(self, req):
        assert run("http.method(r)", r=req) == "POST"
        assert run("http.path(r)", r=req) == "/v1/users"
        assert run("http.scheme(r)", r=req) == "https"

    def test_host_and_port(self, req):
        assert run("http.host(r)", r=req) == "api.example.com:8443"
        assert run("http.port(r)", r=req) == "8443"
        assert run("http.port(r)", r=HttpMessage(url="http://example.com/")) == ""
        assert run("http.port(r)", r=HttpMessage(url="http://[::1]:9000/")) == "9000"

    def test_query(self, req):
        assert run("http.query(r)", r=req) == {
            "role": ["admin", "dev"],
            "page": ["2"],
            "empty": [""],
        }

    def test_query_param(self, req):
        assert run("http.queryParam(r, 'role')", r=req) == ["admin", "dev"]
        assert run("'admin' in http.queryParam(r, 'role')", r=req) is True
        assert run("http.queryParam(r, 'missing')", r=req) is None


class TestBodyAndPeer:
    def test_body(self, req):
        assert run("http.body(r)", r=req) == '{"name": "ada"}'
        assert run("json.json_get(http.body(r), 'name')", r=req) == "ada"

    def test_status(self, req):
        assert run("http.status(r)", r=req) == 0.0
        assert run("http.status(r)", r=HttpMessage(status_code=404, kind="response")) == 404.0

    def test_ip_prefers_forwarded_for(self, req):
        assert run("http.ip(r)", r=req) == "203.0.113.7"

    def test_ip_falls_back(self):
        real = HttpMessage(headers={"X-Real-IP": "198.51.100.1"}, remote_address="10.0.0.1:1")
        peer = HttpMessage(remote_address="10.0.0.1:1")

        assert run("http.ip(r)", r=real) == "198.51.100.1"
        assert run("http.ip(r)", r=peer) == "10.0.0.1:1"


# =============================================================================
# Cookie Tests
# =============================================================================


class TestCookies:
    def test_request_cookies(self, req):
        cookies = run("http.cookies(r)", r=req)

        assert [c["name"] for c in cookies] == ["session", "theme"]
        assert cookies[0]["value"] == "abc123"
        assert cookies[0]["raw"] == "session=abc123; theme=dark"

    def test_cookie_by_name(self, req):
        assert run("http.cookie(r, 'theme').value", r=req) == "dark"
        assert run("http.cookie(r, 'missing')", r=req) is None

    def test_response_cookies_read_set_cookie(self):
        response = HttpMessage(
            kind="response",
            headers=[
                ("Set-Cookie", "id=42; Path=/; Max-Age=3600; Secure; HttpOnly; SameSite=Lax"),
                ("Set-Cookie", "lang=en"),
            ],
        )

        cookie = run("http.cookie(r, 'id')", r=response)

        assert cookie["value"] == "42"
        assert cookie["path"] == "/"
        assert cookie["maxAge"] == 3600.0
        assert cookie["secure"] is True
        assert cookie["httpOnly"] is True
        assert cookie["sameSite"] == "Lax"
        assert run("http.cookie(r, 'lang').maxAge", r=response) == 0.0

    def test_request_ignores_set_cookie(self):
        message = HttpMessage(headers={"Set-Cookie": "id=42"})
        assert run("http.cookies(r)", r=message) == []


# =============================================================================
# Starlette Adapter Tests
# =============================================================================


class TestStarletteAdapters:
    def test_from_request(self):
        request = starlette_request(
            [("Host", "example.com"), ("X-Api-Key", "secret")],
            query=b"role=admin",
        )

        message = from_request(request, b"payload")

        assert message.method == "GET"
        assert message.url == "https://example.com/items?role=admin"
        assert message.host == "example.com"
        assert message.remote_address == "10.0.0.9:5555"
        assert message.body == b"payload"
        assert run("http.header(r, 'x-api-key')", r=message) == "secret"
        assert run("http.queryParam(r, 'role')", r=message) == ["admin"]

    def test_from_request_without_client(self):
        request = starlette_request([("Host", "example.com")], client=None)
        assert from_request(request).remote_address == ""

    def test_from_response(self):
        request = starlette_request([("Host", "example.com")])
        response = Response("ok", status_code=201, media_type="text/plain")
        response.set_cookie("id", "42", httponly=True)

        message = from_response(response, request)

        assert message.kind == "response"
        assert message.method == "GET"
        assert message.status_code == 201
        assert run("http.body(r)", r=message) == "ok"
        assert run("http.contentLength(r)", r=message) == 2.0
        assert run("http.cookie(r, 'id').httpOnly", r=message) is True

    def test_from_response_alone(self):
        message = from_response(Response(status_code=204))

        assert message.method == ""
        assert run("http.status(r)", r=message) == 204.0
