# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Type aliases shared by the dispatch core.

ASGI aliases (``Scope``, ``Message``, ``Receive``, ``Send``, ``ASGIApp``) follow
the ASGI specification with plain ``MutableMapping``/``Callable`` aliases.

``Endpoint`` is the callable a ``Router`` stores for each registered route:
it receives the request and response handles of one request.

``Router`` is the narrow interface the registration entry point needs from
a URL router. ``genro_web.router.UrlRouter`` implements it, and so can any
object exposing the same ``register`` method.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Awaitable, Callable, MutableMapping, Protocol

if TYPE_CHECKING:
    from .request import HttpRequest
    from .response import Response

__all__ = ["Scope", "Message", "Receive", "Send", "ASGIApp", "Endpoint", "Router"]

Scope = MutableMapping[str, Any]

Message = MutableMapping[str, Any]

Receive = Callable[[], Awaitable[Message]]

Send = Callable[[Message], Awaitable[None]]

ASGIApp = Callable[[Scope, Receive, Send], Awaitable[None]]

Endpoint = Callable[["HttpRequest", "Response"], Awaitable[None]]


class Router(Protocol):
    """Anything that can map (verb, pattern) to an endpoint."""

    def register(self, verb: str, pattern: str, endpoint: Endpoint) -> None: ...
