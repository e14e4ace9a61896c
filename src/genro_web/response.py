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
HTTP response handle.

Response is created empty by ``HttpRequest`` and linked to it. Handlers (or
the dispatcher on their behalf) fill it through the write operations; the
router sends it once dispatch has completed::

    request.response.write_json_body({"id": 42})
    await request.response(scope, receive, send)

Write operations
================
write_body(content, content_type=None)
    Raw body (bytes, str or binary stream).

write_json_body(data)
    JSON body. Uses orjson when installed.

set_result(result, content_type=None)
    Body from an arbitrary handler result, content type detected from the
    value type (dict/list JSON, bytes octet-stream, str text/plain).

redirect(url, status_code=302)
    Redirect with Location header and empty body.

Every write marks the response as written (``header_written``). The dispatch
pipeline checks this flag after framework-computed parameters: once a
``@before`` callback has written a response, the handler is not invoked.

Sessions
========
start_session() / terminate_session()
    Create or destroy the request's session in the configured store and set
    or expire the session cookie.

Helper Functions
================
make_cookie(key, value, **options)
    Creates a Set-Cookie header tuple.
"""

from __future__ import annotations

import json as stdlib_json
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from .types import Receive, Scope, Send

if TYPE_CHECKING:
    from .request import HttpRequest
    from .session import Session

__all__ = ["Response", "make_cookie"]

# Optional fast JSON serialization
try:
    import orjson

    HAS_ORJSON = True
except ImportError:
    orjson = None  # type: ignore[assignment]
    HAS_ORJSON = False


HeadersInput = Mapping[str, str] | list[tuple[str, str]] | None


def _normalize_headers(headers: HeadersInput) -> list[tuple[str, str]]:
    if headers is None:
        return []
    if isinstance(headers, list):
        return list(headers)
    return list(headers.items())


def dump_json(data: Any) -> bytes:
    """Serialize ``data`` to JSON bytes."""
    if HAS_ORJSON:
        return orjson.dumps(data)
    return stdlib_json.dumps(data, ensure_ascii=False).encode("utf-8")


class Response:
    """
    HTTP response builder bound to a request.

    Implements ``__call__`` to be usable as an ASGI application.

    Attributes:
        body: Encoded response body as bytes.
        status_code: HTTP status code.
        request: The owning ``HttpRequest`` (None for standalone responses).

    Example:
        >>> response = Response()
        >>> response.set_header("X-Custom", "value")
        >>> response.write_json_body({"data": 123})
        >>> await response(scope, receive, send)
    """

    __slots__ = ("body", "status_code", "_media_type", "_headers", "_written", "request")

    charset: str = "utf-8"

    def __init__(
        self,
        content: bytes | str | None = None,
        status_code: int = 200,
        headers: HeadersInput = None,
        media_type: str | None = None,
        request: HttpRequest | None = None,
    ) -> None:
        self.request = request
        self.status_code = status_code
        self._headers: list[tuple[str, str]] = _normalize_headers(headers)
        self._media_type = media_type
        self._written = content is not None
        self.body = self._encode_content(content)

    def _encode_content(self, content: bytes | str | None) -> bytes:
        if content is None:
            return b""
        if isinstance(content, bytes):
            return content
        return content.encode(self.charset)

    @property
    def header_written(self) -> bool:
        """True once any write operation produced the response."""
        return self._written

    @property
    def media_type(self) -> str | None:
        return self._media_type

    @property
    def headers(self) -> list[tuple[str, str]]:
        return list(self._headers)

    def get_header(self, name: str) -> str | None:
        name = name.lower()
        for key, value in self._headers:
            if key.lower() == name:
                return value
        return None

    def set_header(self, name: str, value: str) -> None:
        """Add a response header."""
        self._headers.append((name, value))

    def _replace_header(self, name: str, value: str | None) -> None:
        self._headers = [(k, v) for k, v in self._headers if k.lower() != name.lower()]
        if value is not None:
            self._headers.append((name, value))

    def _content_type(self) -> str | None:
        if self._media_type is None:
            return None
        if self._media_type.startswith("text/") and "charset" not in self._media_type:
            return f"{self._media_type}; charset={self.charset}"
        return self._media_type

    def write_body(
        self,
        content: bytes | str | Any,
        content_type: str | None = None,
        status_code: int | None = None,
    ) -> None:
        """Write a raw body. Binary streams are read to the end."""
        if hasattr(content, "read"):
            content = content.read()
        if isinstance(content, str):
            self.body = content.encode(self.charset)
            default_type = "text/plain"
        else:
            self.body = bytes(content)
            default_type = "application/octet-stream"
        self._media_type = content_type or self._media_type or default_type
        if status_code is not None:
            self.status_code = status_code
        self._written = True

    def write_json_body(self, data: Any, status_code: int | None = None) -> None:
        """Write ``data`` serialized as JSON."""
        self.body = dump_json(data)
        self._media_type = "application/json"
        if status_code is not None:
            self.status_code = status_code
        self._written = True

    def set_result(self, result: Any, content_type: str | None = None) -> None:
        """Set response body from a handler result with type-based content type."""
        if isinstance(result, (dict, list)):
            self.body = dump_json(result)
            self._media_type = content_type or "application/json"
            self._written = True
        elif result is None:
            self.body = b""
            self._media_type = content_type or "text/plain"
            self._written = True
        elif isinstance(result, (bytes, bytearray, str)) or hasattr(result, "read"):
            self.write_body(result, content_type)
        else:
            self.write_body(str(result), content_type)

    def redirect(self, url: str, status_code: int = 302) -> None:
        """Redirect the client to ``url``."""
        self.status_code = status_code
        self._replace_header("location", url)
        self.body = b""
        self._media_type = None
        self._written = True

    def set_cookie(self, key: str, value: str = "", **options: Any) -> None:
        name, cookie = make_cookie(key, value, **options)
        self._headers.append((name, cookie))

    def start_session(self) -> Session:
        """Create a session in the request's store and set the session cookie."""
        request = self.request
        if request is None or request.session_store is None:
            raise RuntimeError("No session store configured for this request")
        session = request.session_store.create()
        request.session = session
        self.set_cookie(request.session_cookie, session.id, httponly=True)
        return session

    def terminate_session(self) -> None:
        """Destroy the active session (if any) and expire its cookie."""
        request = self.request
        if request is None or request.session is None:
            return
        if request.session_store is not None:
            request.session_store.destroy(request.session.id)
        request.session = None
        self.set_cookie(request.session_cookie, "", max_age=0, httponly=True)

    def _build_headers(self) -> list[tuple[bytes, bytes]]:
        headers = [
            (name.lower(), value)
            for name, value in self._headers
            if name.lower() not in ("content-type", "content-length")
        ]
        content_type = self._content_type()
        if content_type:
            headers.append(("content-type", content_type))
        headers.append(("content-length", str(len(self.body))))
        return [(name.encode("latin-1"), value.encode("latin-1")) for name, value in headers]

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI application interface."""
        await send(
            {
                "type": "http.response.start",
                "status": self.status_code,
                "headers": self._build_headers(),
            }
        )
        await send({"type": "http.response.body", "body": self.body})

    def __repr__(self) -> str:
        return f"Response(status_code={self.status_code}, media_type={self._media_type!r})"


def make_cookie(
    key: str,
    value: str = "",
    *,
    max_age: int | None = None,
    path: str = "/",
    domain: str | None = None,
    secure: bool = False,
    httponly: bool = False,
    samesite: str | None = "lax",
) -> tuple[str, str]:
    """
    Create a Set-Cookie header tuple.

    Args:
        key: Cookie name.
        value: Cookie value (will be URL-encoded).
        max_age: Max age in seconds. None means session cookie.
        path: Cookie path (default "/").
        domain: Cookie domain. None means current domain only.
        secure: If True, cookie only sent over HTTPS.
        httponly: If True, cookie not accessible via JavaScript.
        samesite: SameSite policy ("strict", "lax", "none", or None to omit).

    Returns:
        Tuple of ("set-cookie", cookie_string).
    """
    from urllib.parse import quote

    cookie = f"{key}={quote(value, safe='')}"

    if max_age is not None:
        cookie += f"; Max-Age={max_age}"
    if path:
        cookie += f"; Path={path}"
    if domain:
        cookie += f"; Domain={domain}"
    if secure:
        cookie += "; Secure"
    if httponly:
        cookie += "; HttpOnly"
    if samesite:
        cookie += f"; SameSite={samesite.capitalize()}"

    return ("set-cookie", cookie)
