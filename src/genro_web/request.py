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
HTTP request handle.

``HttpRequest`` wraps one ASGI HTTP scope and the fully received body. It is
the request handle handed to the dispatch pipeline and, when asked for, to
handler methods. Everything the parameter binder reads comes from here:

- ``form``: fields of an urlencoded body
- ``query``: fields of the query string
- ``params``: path captures, filled in by the router after matching
- ``body_reader``: the unconsumed body as a binary stream
- ``session``: the active session, if any

Every request owns its ``Response`` (``request.response``), created empty and
sent by the router once dispatch completes.

Example:
    request = await HttpRequest.from_asgi(scope, receive)
    request.params = {"id": "42"}
    request.form.get("username")
"""

from __future__ import annotations

import io
import uuid
from http.cookies import CookieError, SimpleCookie
from typing import TYPE_CHECKING, Any, BinaryIO

from .datastructures import FormData, Headers, QueryParams, State, headers_from_scope
from .types import Receive, Scope

if TYPE_CHECKING:
    from .session import Session, SessionStore

__all__ = ["HttpRequest", "read_body"]

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


async def read_body(receive: Receive) -> bytes:
    """Collect all ``http.request`` body chunks from an ASGI receive callable."""
    chunks: list[bytes] = []
    while True:
        message = await receive()
        if message["type"] == "http.disconnect":
            break
        chunks.append(message.get("body", b""))
        if not message.get("more_body", False):
            break
    return b"".join(chunks)


class HttpRequest:
    """HTTP request adapter wrapping ASGI scope and body."""

    __slots__ = (
        "_scope",
        "_body",
        "_headers",
        "_query",
        "_form",
        "_cookies",
        "_body_reader",
        "_state",
        "_id",
        "params",
        "session",
        "session_store",
        "session_cookie",
        "response",
    )

    def __init__(
        self,
        scope: Scope,
        body: bytes = b"",
        *,
        session_store: SessionStore | None = None,
        session_cookie: str = "genro_session",
    ) -> None:
        from .response import Response

        self._scope = scope
        self._body = body
        self._headers: Headers | None = None
        self._query: QueryParams | None = None
        self._form: FormData | None = None
        self._cookies: dict[str, str] | None = None
        self._body_reader: BinaryIO | None = None
        self._state: State | None = None
        self._id: str = ""
        self.params: dict[str, str] = {}
        self.session_store = session_store
        self.session_cookie = session_cookie
        self.session: Session | None = None
        if session_store is not None:
            session_id = self.cookies.get(session_cookie)
            if session_id:
                self.session = session_store.open(session_id)
        self.response = Response(request=self)

    @classmethod
    async def from_asgi(
        cls,
        scope: Scope,
        receive: Receive,
        **kwargs: Any,
    ) -> HttpRequest:
        """Build a request reading the whole body from ``receive``."""
        body = await read_body(receive)
        return cls(scope, body, **kwargs)

    @property
    def id(self) -> str:
        """Correlation ID (``X-Request-ID`` header or generated)."""
        if not self._id:
            self._id = self.headers.get("x-request-id") or str(uuid.uuid4())
        return self._id

    @property
    def scope(self) -> Scope:
        return self._scope

    @property
    def method(self) -> str:
        return str(self._scope.get("method", "GET")).upper()

    @property
    def path(self) -> str:
        return str(self._scope.get("path", "/"))

    @property
    def scheme(self) -> str:
        return str(self._scope.get("scheme", "http"))

    @property
    def url(self) -> str:
        """Full request URL including query string."""
        scheme = self.scheme
        server = self._scope.get("server")
        if server:
            host, port = server
            if (scheme == "http" and port == 80) or (scheme == "https" and port == 443):
                netloc = host
            else:
                netloc = f"{host}:{port}"
        else:
            netloc = self.headers.get("host", "localhost") or "localhost"
        url = f"{scheme}://{netloc}{self._scope.get('root_path', '')}{self.path}"
        query_string = self._scope.get("query_string", b"")
        if query_string:
            url += f"?{query_string.decode('latin-1')}"
        return url

    @property
    def headers(self) -> Headers:
        if self._headers is None:
            self._headers = headers_from_scope(self._scope)
        return self._headers

    @property
    def content_type(self) -> str | None:
        return self.headers.get("content-type")

    @property
    def query(self) -> QueryParams:
        """Query string fields."""
        if self._query is None:
            self._query = QueryParams(self._scope.get("query_string", b""))
        return self._query

    @property
    def form(self) -> FormData:
        """Urlencoded body fields. Empty for any other content type."""
        if self._form is None:
            content_type = (self.content_type or "").split(";", 1)[0].strip().lower()
            if content_type == FORM_CONTENT_TYPE:
                self._form = FormData(self._body)
            else:
                self._form = FormData()
        return self._form

    @property
    def cookies(self) -> dict[str, str]:
        if self._cookies is None:
            cookies: dict[str, str] = {}
            for header in self.headers.getlist("cookie"):
                jar: SimpleCookie = SimpleCookie()
                try:
                    jar.load(header)
                except CookieError:
                    continue
                cookies.update({key: morsel.value for key, morsel in jar.items()})
            self._cookies = cookies
        return self._cookies

    @property
    def body(self) -> bytes:
        """Raw body bytes."""
        return self._body

    @property
    def body_reader(self) -> BinaryIO:
        """Body as a binary stream, shared by every consumer of this request."""
        if self._body_reader is None:
            self._body_reader = io.BytesIO(self._body)
        return self._body_reader

    @property
    def client(self) -> tuple[str, int] | None:
        client = self._scope.get("client")
        if client:
            return (client[0], client[1])
        return None

    @property
    def state(self) -> State:
        """Request-scoped state container."""
        if self._state is None:
            self._state = State()
        return self._state

    def __repr__(self) -> str:
        return f"<HttpRequest method={self.method} path={self.path!r}>"
