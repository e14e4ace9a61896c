# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""RequestContext - state of the request being dispatched.

One ``RequestContext`` is created at the start of every dispatch and bound to
a ``ContextVar``, so each asyncio task (one per request) sees its own context
and concurrent dispatches never observe each other's. The dispatcher resets
the variable when the dispatch ends, whatever its outcome.

Handlers normally get what they need as parameters. The helpers below are for
code that runs inside a handler and has no parameter to hold the handles::

    def post_logout(self) -> None:
        terminate_session()
        redirect("/")

    def get_page(self) -> None:
        render("page.html", title=trweb("Welcome"))
"""

from __future__ import annotations

from contextvars import ContextVar, Token
from typing import TYPE_CHECKING, Any, Callable
from urllib.parse import urljoin

if TYPE_CHECKING:
    from .request import HttpRequest
    from .response import Response

__all__ = [
    "RequestContext",
    "current_context",
    "bind_context",
    "reset_context",
    "redirect",
    "terminate_session",
    "trweb",
    "render",
]

Translate = Callable[[str], str]
Renderer = Callable[[str, dict[str, Any]], str]


def _identity(text: str) -> str:
    return text


class RequestContext:
    """Request/response handles plus resolved translation of one dispatch.

    Attributes:
        request: Active request handle.
        response: Response handle of ``request``.
        language: Language resolved for this dispatch (None without a
            translation context).
        translate: ``text -> text`` function bound to ``language``.
        renderer: Template renderer configured at registration, if any.
    """

    __slots__ = ("request", "response", "language", "translate", "renderer")

    def __init__(
        self,
        request: HttpRequest,
        response: Response,
        language: str | None = None,
        translate: Translate | None = None,
        renderer: Renderer | None = None,
    ) -> None:
        self.request = request
        self.response = response
        self.language = language
        self.translate = translate or _identity
        self.renderer = renderer

    def __repr__(self) -> str:
        return f"RequestContext(request={self.request!r}, language={self.language!r})"


_current_context: ContextVar[RequestContext | None] = ContextVar(
    "genro_web_request_context", default=None
)


def current_context() -> RequestContext:
    """Return the context of the request being dispatched by this task.

    Raises:
        RuntimeError: If called outside a web interface dispatch.
    """
    ctx = _current_context.get()
    if ctx is None:
        raise RuntimeError("No web interface request is being dispatched")
    return ctx


def bind_context(ctx: RequestContext) -> Token[RequestContext | None]:
    return _current_context.set(ctx)


def reset_context(token: Token[RequestContext | None]) -> None:
    _current_context.reset(token)


def redirect(url: str, status_code: int = 302) -> None:
    """Redirect the current request.

    ``url`` may be absolute, server-local (``/path``) or relative to the URL of
    the current request.
    """
    ctx = current_context()
    ctx.response.redirect(urljoin(ctx.request.url, url), status_code)


def terminate_session() -> None:
    """Terminate the session of the current request, if any."""
    current_context().response.terminate_session()


def trweb(text: str) -> str:
    """Translate ``text`` to the language resolved for the current request."""
    return current_context().translate(text)


def render(template: str, **values: Any) -> None:
    """Render ``template`` with ``values`` into the current response as HTML."""
    ctx = current_context()
    if ctx.renderer is None:
        raise RuntimeError("No renderer configured for this web interface")
    values.setdefault("trweb", ctx.translate)
    values.setdefault("language", ctx.language)
    ctx.response.write_body(ctx.renderer(template, values), "text/html")


if __name__ == "__main__":
    pass
