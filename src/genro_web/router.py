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

"""
URL router and ASGI entry point.

``UrlRouter`` maps (verb, pattern) pairs to endpoints and is itself an ASGI
application. Web interfaces register their handlers through ``register``;
any object with the same method can replace it.

Patterns
========
- ``/users``: literal path.
- ``/users/:id``: ``:id`` captures one path segment into ``request.params``.
- ``/static/*``: ``*`` matches the rest of the path.

Routes are tried in registration order. A path that matches only routes of
other verbs answers 405 with an ``Allow`` header, a path matching nothing
answers 404.

Request flow
============
1. ``HttpRequest`` is built from the scope and the full body, its session
   opened from the session cookie when a store is configured.
2. The matching endpoint is awaited with the request and its response.
3. ``HTTPException`` (including redirects and binding failures) becomes the
   response; any other exception propagates to the server (or to
   ``ErrorMiddleware`` when the router is wrapped with ``middleware_chain``).
4. The response is sent.

Example::

    router = UrlRouter(session_store=MemorySessionStore())
    register_web_interface(router, WebService())
    app = middleware_chain({"logging": True}, router)
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Any
from urllib.parse import unquote

from .exceptions import HTTPException, HTTPMethodNotAllowed, HTTPNotFound
from .request import HttpRequest
from .response import Response
from .types import Endpoint, Receive, Scope, Send

if TYPE_CHECKING:
    from .session import SessionStore

__all__ = ["Route", "UrlRouter", "compile_pattern", "error_response"]

_TOKEN = re.compile(r"(:\w+|\*)")


def compile_pattern(pattern: str) -> re.Pattern[str]:
    """Compile a route pattern into an anchored regular expression."""
    parts = []
    for token in _TOKEN.split(pattern):
        if not token:
            continue
        if token == "*":
            parts.append(".*")
        elif token.startswith(":"):
            parts.append(f"(?P<{token[1:]}>[^/]+)")
        else:
            parts.append(re.escape(token))
    return re.compile("^" + "".join(parts) + "$")


class Route:
    """A registered (verb, pattern) with its endpoint."""

    __slots__ = ("verb", "pattern", "endpoint", "regex")

    def __init__(self, verb: str, pattern: str, endpoint: Endpoint) -> None:
        self.verb = verb.upper()
        self.pattern = pattern
        self.endpoint = endpoint
        self.regex = compile_pattern(pattern)

    def match(self, path: str) -> dict[str, str] | None:
        """Captured parameters if ``path`` matches, else None."""
        found = self.regex.match(path)
        if found is None:
            return None
        return {name: unquote(value) for name, value in found.groupdict().items()}

    def __repr__(self) -> str:
        return f"Route({self.verb} {self.pattern})"


def error_response(exc: HTTPException) -> Response:
    """Plain-text response for an HTTP exception."""
    return Response(
        content=exc.detail or "",
        status_code=exc.status_code,
        headers=exc.headers,
        media_type="text/plain" if exc.detail else None,
    )


class UrlRouter:
    """Minimal verb + pattern router usable as an ASGI application.

    Args:
        session_store: Store used to open and create sessions. None disables
            sessions (``response.start_session()`` then raises).
        session_cookie: Name of the session cookie.
    """

    __slots__ = ("routes", "session_store", "session_cookie", "_logger")

    def __init__(
        self,
        session_store: SessionStore | None = None,
        session_cookie: str = "genro_session",
    ) -> None:
        self.routes: list[Route] = []
        self.session_store = session_store
        self.session_cookie = session_cookie
        self._logger = logging.getLogger("genro_web.router")

    def register(self, verb: str, pattern: str, endpoint: Endpoint) -> None:
        """Add a route. Later registrations of the same pair never shadow earlier ones."""
        self.routes.append(Route(verb, pattern, endpoint))

    def match(self, verb: str, path: str) -> tuple[Endpoint, dict[str, str]]:
        """Endpoint and path captures for a request.

        Raises:
            HTTPMethodNotAllowed: Path matches, but not for ``verb``.
            HTTPNotFound: No route matches ``path``.
        """
        verb = verb.upper()
        allowed: list[str] = []
        for route in self.routes:
            params = route.match(path)
            if params is None:
                continue
            if route.verb == verb:
                return route.endpoint, params
            if route.verb not in allowed:
                allowed.append(route.verb)
        if allowed:
            raise HTTPMethodNotAllowed(allowed)
        raise HTTPNotFound(f"No route for {verb} {path}")

    async def handle(self, request: HttpRequest) -> Response:
        """Route ``request`` and return the response to send."""
        try:
            endpoint, params = self.match(request.method, request.path)
            request.params = params
            await endpoint(request, request.response)
        except HTTPException as exc:
            self._logger.debug("%s %s -> %s %s", request.method, request.path, exc.status_code, exc.detail)
            return error_response(exc)
        return request.response

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI application interface."""
        if scope["type"] == "lifespan":
            await self._lifespan(receive, send)
            return
        if scope["type"] != "http":
            self._logger.warning("Unsupported scope type: %s", scope["type"])
            return
        request = await HttpRequest.from_asgi(
            scope,
            receive,
            session_store=self.session_store,
            session_cookie=self.session_cookie,
        )
        response = await self.handle(request)
        await response(scope, receive, send)

    async def _lifespan(self, receive: Receive, send: Send) -> None:
        while True:
            message = await receive()
            if message["type"] == "lifespan.startup":
                await send({"type": "lifespan.startup.complete"})
            elif message["type"] == "lifespan.shutdown":
                await send({"type": "lifespan.shutdown.complete"})
                return

    def run(self, host: str = "127.0.0.1", port: int = 8000, **kwargs: Any) -> None:
        """Serve the router with Uvicorn."""
        import uvicorn

        self._logger.info(f"Starting server on {host}:{port}")
        uvicorn.run(self, host=host, port=port, **kwargs)

    def __repr__(self) -> str:
        return f"UrlRouter(routes={len(self.routes)})"


if __name__ == "__main__":
    pass
