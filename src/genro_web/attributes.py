# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Handler attributes.

Decorators that shape how a public method of a web interface class is exposed.
They only record metadata on the function; nothing is evaluated until
``register_web_interface`` builds the route table.

Routing:
    - ``@method("GET", "HEAD")``: HTTP verb(s), overriding the name prefix.
    - ``@path("/users/:id")``: URL pattern, overriding the method name.
      Stackable; with ``@method`` every (verb, path) pair is a route.
    - ``@no_route``: public method that is not a handler.

Request/response:
    - ``@content_type("text/csv")``: content type of a raw return value.
    - ``@error_display(get_form)``: fallback handler for binding,
      validation and execution failures.
    - ``@before(callback, "param")``: ``param`` is computed by ``callback``.
    - ``@after(callback)``: transforms the return value before it is written.

Example::

    class WebService:
        @method("GET")
        @path("/")
        @path("/home")
        def home(self) -> str:
            return "welcome"

        @error_display("get_form")
        def post_form(self, name: str) -> None:
            ...

        def get_form(self, _error: str | None = None) -> str:
            return _error or "form"
"""

from __future__ import annotations

from typing import Any, Callable, TypeVar

from .exceptions import RegistrationError

__all__ = [
    "HTTP_VERBS",
    "method",
    "path",
    "content_type",
    "error_display",
    "before",
    "after",
    "no_route",
    "get_attributes",
    "handler_attributes",
]

F = TypeVar("F", bound=Callable[..., Any])

ATTRIBUTES = "_genro_web_attrs"

HTTP_VERBS = frozenset({"GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"})


def handler_attributes(func: Callable[..., Any]) -> dict[str, Any]:
    """Attribute dict of ``func``, created on first use."""
    attrs = func.__dict__.get(ATTRIBUTES)
    if attrs is None:
        attrs = {}
        setattr(func, ATTRIBUTES, attrs)
    return attrs


def get_attributes(func: Callable[..., Any]) -> dict[str, Any]:
    """Attribute dict of ``func`` without creating it."""
    return getattr(func, ATTRIBUTES, None) or {}


def method(*verbs: str) -> Callable[[F], F]:
    """Expose the handler on the given HTTP verb(s)."""
    normalized = [verb.upper() for verb in verbs]
    if not normalized:
        raise RegistrationError("@method needs at least one HTTP verb")
    for verb in normalized:
        if verb not in HTTP_VERBS:
            raise RegistrationError(f"Unsupported HTTP verb: {verb}")

    def decorator(func: F) -> F:
        handler_attributes(func)["methods"] = normalized
        return func

    return decorator


def path(pattern: str) -> Callable[[F], F]:
    """Expose the handler on ``pattern`` (relative to the interface prefix)."""

    def decorator(func: F) -> F:
        # decorators apply bottom-up: prepend to keep source order
        handler_attributes(func).setdefault("paths", []).insert(0, pattern)
        return func

    return decorator


def content_type(value: str) -> Callable[[F], F]:
    """Content type used when writing a raw (bytes/str/stream) return value."""

    def decorator(func: F) -> F:
        handler_attributes(func)["content_type"] = value
        return func

    return decorator


def error_display(target: Callable[..., Any] | str) -> Callable[[F], F]:
    """Redisplay failures through ``target``.

    ``target`` is a handler method of the same class (the function or its
    name). It must declare an ``_error`` parameter, whose annotation selects
    how the error value is built from the failure.
    """

    def decorator(func: F) -> F:
        handler_attributes(func)["error_display"] = target
        return func

    return decorator


def before(callback: Callable[..., Any], param: str) -> Callable[[F], F]:
    """Compute parameter ``param`` with ``callback`` before the handler runs.

    ``callback`` is called as ``callback(request, response)`` or, when it
    takes three arguments, ``callback(instance, request, response)``. If it
    writes a response, the handler is not invoked.
    """

    def decorator(func: F) -> F:
        computed = handler_attributes(func).setdefault("before", {})
        if param in computed:
            raise RegistrationError(f"Parameter {param} of {func.__name__} is computed twice")
        computed[param] = callback
        return func

    return decorator


def after(callback: Callable[..., Any]) -> Callable[[F], F]:
    """Pass the return value through ``callback(result, request, response)``."""

    def decorator(func: F) -> F:
        handler_attributes(func).setdefault("after", []).insert(0, callback)
        return func

    return decorator


def no_route(func: F) -> F:
    """Keep a public method out of the route table."""
    handler_attributes(func)["no_route"] = True
    return func


if __name__ == "__main__":
    pass
