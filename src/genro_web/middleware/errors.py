# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Error handling middleware.

``UrlRouter`` already answers HTTP exceptions raised while dispatching. What
reaches this middleware are the failures the dispatch pipeline surfaces to
its caller: execution failures of handlers without ``@error_display``, and
anything raised by other middleware.

Exception handling:
    - Redirect: 3xx with Location header
    - HTTPException: status code with detail message
    - Exception: 500 Internal Server Error, logged on ``genro_web.errors``

Config:
    debug (bool): If True, include traceback in 500 responses. Default: False.

Note:
    This middleware is enabled by default (middleware_default=True) and
    runs first in the chain (middleware_order=100).
"""

from __future__ import annotations

import logging
import traceback
from typing import TYPE_CHECKING, Any

from . import BaseMiddleware
from ..exceptions import HTTPException, Redirect

if TYPE_CHECKING:
    from ..types import ASGIApp, Receive, Scope, Send

logger = logging.getLogger("genro_web.errors")


class ErrorMiddleware(BaseMiddleware):
    """Converts exceptions escaping the application into HTTP responses.

    Non-HTTP scopes pass through unchanged. If the response was already
    started when the exception is raised, the exception propagates.

    Class Attributes:
        middleware_name: "errors" - identifier for config.
        middleware_order: 100 - runs early to catch all errors.
        middleware_default: True - enabled by default.
    """

    middleware_name = "errors"
    middleware_order = 100
    middleware_default = True

    __slots__ = ("debug",)

    def __init__(self, app: ASGIApp, debug: bool = False, **kwargs: Any) -> None:
        super().__init__(app, **kwargs)
        self.debug = debug

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        started = False

        async def tracking_send(message: Any) -> None:
            nonlocal started
            if message["type"] == "http.response.start":
                started = True
            await send(message)

        try:
            await self.app(scope, receive, tracking_send)
        except Redirect as e:
            if started:
                raise
            await self._send_redirect(send, e)
        except HTTPException as e:
            if started:
                raise
            await self._send_http_error(send, e)
        except Exception as e:
            logger.exception("Unhandled error on %s %s", scope.get("method"), scope.get("path"))
            if started:
                raise
            await self._send_server_error(send, e)

    async def _send_redirect(self, send: Send, exc: Redirect) -> None:
        await send(
            {
                "type": "http.response.start",
                "status": exc.status_code,
                "headers": [(b"location", exc.url.encode("latin-1"))],
            }
        )
        await send({"type": "http.response.body", "body": b""})

    async def _send_http_error(self, send: Send, exc: HTTPException) -> None:
        """Send ``exc.detail`` as text/plain with ``exc.headers`` appended."""
        body_bytes = (exc.detail or "").encode("utf-8")

        headers: list[tuple[bytes, bytes]] = [
            (b"content-type", b"text/plain; charset=utf-8"),
            (b"content-length", str(len(body_bytes)).encode()),
        ]
        if exc.headers:
            headers.extend((k.lower().encode("latin-1"), v.encode("latin-1")) for k, v in exc.headers)

        await send({"type": "http.response.start", "status": exc.status_code, "headers": headers})
        await send({"type": "http.response.body", "body": body_bytes})

    async def _send_server_error(self, send: Send, error: Exception) -> None:
        """Send 500, with the traceback when ``debug`` is on."""
        if self.debug:
            body = f"Internal Server Error\n\n{traceback.format_exc()}"
        else:
            body = "Internal Server Error"

        body_bytes = body.encode("utf-8")

        await send(
            {
                "type": "http.response.start",
                "status": 500,
                "headers": [
                    (b"content-type", b"text/plain; charset=utf-8"),
                    (b"content-length", str(len(body_bytes)).encode()),
                ],
            }
        )
        await send({"type": "http.response.body", "body": body_bytes})


if __name__ == "__main__":
    pass
