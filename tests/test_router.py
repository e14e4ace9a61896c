# Copyright 2025 Softwell S.r.l.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     https://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Tests for UrlRouter."""

from typing import Any

import pytest

from genro_web import HTTPMethodNotAllowed, HTTPNotFound, HttpRequest, Redirect, Response, UrlRouter
from genro_web.router import Route, compile_pattern, error_response


class MockSend:
    """Capture ASGI send messages for testing."""

    def __init__(self) -> None:
        self.messages: list[dict[str, Any]] = []

    async def __call__(self, message: dict[str, Any]) -> None:
        self.messages.append(message)

    @property
    def status(self) -> int:
        return self.messages[0]["status"]

    @property
    def headers(self) -> dict[bytes, bytes]:
        return dict(self.messages[0]["headers"])

    @property
    def body(self) -> bytes:
        return b"".join(m.get("body", b"") for m in self.messages if m["type"] == "http.response.body")


def make_scope(method: str = "GET", path: str = "/") -> dict[str, Any]:
    return {"type": "http", "method": method, "path": path, "query_string": b"", "headers": []}


async def receive() -> dict[str, Any]:
    return {"type": "http.request", "body": b"", "more_body": False}


async def hello(request: HttpRequest, response: Response) -> None:
    response.write_body(f"hello {request.params.get('name', 'world')}")


class TestCompilePattern:
    """Tests for pattern compilation."""

    def test_literal(self) -> None:
        """Literal patterns match exactly."""
        regex = compile_pattern("/users")
        assert regex.match("/users")
        assert not regex.match("/users/1")
        assert not regex.match("/users2")

    def test_capture(self) -> None:
        """:name captures one segment."""
        regex = compile_pattern("/users/:id/posts/:post_id")
        found = regex.match("/users/7/posts/9")
        assert found is not None
        assert found.groupdict() == {"id": "7", "post_id": "9"}
        assert not regex.match("/users/7/8/posts/9")

    def test_wildcard(self) -> None:
        """* matches the rest of the path."""
        regex = compile_pattern("/static/*")
        assert regex.match("/static/css/site.css")

    def test_special_characters_escaped(self) -> None:
        """Regex characters in literals are escaped."""
        regex = compile_pattern("/file.txt")
        assert regex.match("/file.txt")
        assert not regex.match("/fileXtxt")


class TestRoute:
    """Tests for Route."""

    def test_match_unquotes(self) -> None:
        """Captures are percent-decoded."""
        route = Route("get", "/users/:name", hello)
        assert route.verb == "GET"
        assert route.match("/users/a%20b") == {"name": "a b"}
        assert route.match("/other") is None


class TestUrlRouter:
    """Tests for UrlRouter matching and dispatch."""

    def test_match(self) -> None:
        """Routes are matched by verb and path."""
        router = UrlRouter()
        router.register("GET", "/hello/:name", hello)
        endpoint, params = router.match("get", "/hello/bob")
        assert endpoint is hello
        assert params == {"name": "bob"}

    def test_not_found(self) -> None:
        """Unknown paths raise 404."""
        with pytest.raises(HTTPNotFound):
            UrlRouter().match("GET", "/missing")

    def test_method_not_allowed(self) -> None:
        """Known paths with other verbs raise 405 listing the allowed verbs."""
        router = UrlRouter()
        router.register("GET", "/items", hello)
        router.register("POST", "/items", hello)
        with pytest.raises(HTTPMethodNotAllowed) as info:
            router.match("DELETE", "/items")
        assert info.value.allowed == ["GET", "POST"]

    def test_first_registration_wins(self) -> None:
        """Earlier routes are matched first."""

        async def other(request: HttpRequest, response: Response) -> None:
            pass

        router = UrlRouter()
        router.register("GET", "/x", hello)
        router.register("GET", "/x", other)
        assert router.match("GET", "/x")[0] is hello

    def test_error_response(self) -> None:
        """HTTP exceptions become plain-text responses."""
        response = error_response(HTTPNotFound("nothing here"))
        assert response.status_code == 404
        assert response.body == b"nothing here"
        redirect = error_response(Redirect("/login"))
        assert redirect.status_code == 302
        assert redirect.get_header("location") == "/login"
        assert redirect.media_type is None

    @pytest.mark.asyncio
    async def test_asgi_call(self) -> None:
        """The router serves matched routes."""
        router = UrlRouter()
        router.register("GET", "/hello/:name", hello)
        send = MockSend()
        await router(make_scope(path="/hello/ann"), receive, send)
        assert send.status == 200
        assert send.body == b"hello ann"

    @pytest.mark.asyncio
    async def test_asgi_not_found(self) -> None:
        """Unmatched requests answer 404."""
        send = MockSend()
        await UrlRouter()(make_scope(path="/nope"), receive, send)
        assert send.status == 404

    @pytest.mark.asyncio
    async def test_asgi_method_not_allowed(self) -> None:
        """Wrong verbs answer 405 with an Allow header."""
        router = UrlRouter()
        router.register("GET", "/hello", hello)
        send = MockSend()
        await router(make_scope("POST", "/hello"), receive, send)
        assert send.status == 405
        assert send.headers[b"allow"] == b"GET"

    @pytest.mark.asyncio
    async def test_http_exception_from_endpoint(self) -> None:
        """HTTP exceptions raised by endpoints become responses."""

        async def forbidden(request: HttpRequest, response: Response) -> None:
            raise Redirect("/login")

        router = UrlRouter()
        router.register("GET", "/private", forbidden)
        send = MockSend()
        await router(make_scope(path="/private"), receive, send)
        assert send.status == 302
        assert send.headers[b"location"] == b"/login"

    @pytest.mark.asyncio
    async def test_other_exceptions_propagate(self) -> None:
        """Non-HTTP exceptions are left to the server or middleware."""

        async def broken(request: HttpRequest, response: Response) -> None:
            raise RuntimeError("boom")

        router = UrlRouter()
        router.register("GET", "/broken", broken)
        with pytest.raises(RuntimeError):
            await router(make_scope(path="/broken"), receive, MockSend())

    @pytest.mark.asyncio
    async def test_lifespan(self) -> None:
        """Lifespan startup and shutdown are acknowledged."""
        messages = [{"type": "lifespan.startup"}, {"type": "lifespan.shutdown"}]

        async def lifespan_receive() -> dict[str, Any]:
            return messages.pop(0)

        send = MockSend()
        await UrlRouter()({"type": "lifespan"}, lifespan_receive, send)
        assert [m["type"] for m in send.messages] == [
            "lifespan.startup.complete",
            "lifespan.shutdown.complete",
        ]

    @pytest.mark.asyncio
    async def test_unsupported_scope(self) -> None:
        """Non-HTTP scopes are ignored."""
        send = MockSend()
        await UrlRouter()({"type": "websocket"}, receive, send)
        assert send.messages == []
