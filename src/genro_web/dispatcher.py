# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Per-request pipeline of a web interface handler.

Each registered route is served by a ``Dispatcher``, the endpoint the router
calls with the request and response handles. Steps, in order:

1. Bind a fresh ``RequestContext`` (task local) with the resolved language.
2. Authenticate, unless the handler is ``@no_auth`` or the class is not
   ``@authorized``.
3. Bind parameters. If a ``@before`` callback has written the response,
   stop here: the handler is not invoked.
4. Run ``@validate_*`` rules.
5. Authorize the role expression against the bound parameters.
6. Call the handler (sync or async) and apply ``@after`` modifiers.
7. Write the result according to the descriptor's return kind.

Error recovery
==============
Failures of steps 3, 4 and 6 are redisplayed through the handler's
``@error_display`` target when it has one: the target is dispatched on the
same request with the constructed error value as ``_error``. The target's own
failures propagate, so redisplay never nests. Without a target, binding and
validation failures answer 400 and execution failures propagate to the
caller. Authentication and authorization failures (steps 2 and 5) are never
redisplayed.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable

from smartasync import smartasync

from .binder import ParameterBinder
from .context import RequestContext, bind_context, reset_context
from .descriptors import MISSING, HandlerDescriptor, ReturnKind, SourceKind
from .exceptions import (
    AuthenticationFailure,
    AuthorizationFailure,
    BindingFailure,
    HTTPBadRequest,
    HTTPException,
    Redirect,
    ValidationFailure,
)

if TYPE_CHECKING:
    from .request import HttpRequest
    from .response import Response

__all__ = ["Dispatcher", "dispatch"]

logger = logging.getLogger("genro_web.dispatch")

# never redisplayed through @error_display
NOT_INTERCEPTED = (AuthenticationFailure, AuthorizationFailure, Redirect)


class Dispatcher:
    """Router endpoint of one handler descriptor."""

    __slots__ = ("instance", "descriptor", "renderer")

    def __init__(
        self,
        instance: Any,
        descriptor: HandlerDescriptor,
        renderer: Callable[[str, dict[str, Any]], str] | None = None,
    ) -> None:
        self.instance = instance
        self.descriptor = descriptor
        self.renderer = renderer

    async def __call__(self, request: HttpRequest, response: Response) -> None:
        await dispatch(self.instance, self.descriptor, request, response, renderer=self.renderer)

    def __repr__(self) -> str:
        return f"Dispatcher({self.descriptor!r})"


async def dispatch(
    instance: Any,
    descriptor: HandlerDescriptor,
    request: HttpRequest,
    response: Response,
    *,
    renderer: Callable[[str, dict[str, Any]], str] | None = None,
    error: Any = MISSING,
    auth_info: Any = None,
) -> None:
    """Serve ``request`` with the handler described by ``descriptor``.

    Args:
        instance: The web interface instance.
        descriptor: Route being served.
        request: Active request handle.
        response: Its response handle.
        renderer: Template renderer for ``render()``.
        error: Error value of a redisplay (MISSING for a normal dispatch).
        auth_info: Auth info already established by the redisplayed handler.
    """
    language = None
    translate = None
    if descriptor.translation is not None:
        language = descriptor.translation.resolve_language(request)
        translate = descriptor.translation.bind(language)

    token = bind_context(RequestContext(request, response, language, translate, renderer))
    try:
        await _run(instance, descriptor, request, response, renderer, error, auth_info)
    finally:
        reset_context(token)


async def _run(
    instance: Any,
    descriptor: HandlerDescriptor,
    request: HttpRequest,
    response: Response,
    renderer: Callable[[str, dict[str, Any]], str] | None,
    error: Any,
    auth_info: Any,
) -> None:
    policy = descriptor.policy
    if policy.requires_authentication and auth_info is None:
        auth_info = await policy.authenticate(instance, request, response)

    values: dict[str, Any] = {}
    binder = ParameterBinder(request, response)
    current: str | None = None
    try:
        for param in descriptor.parameters:
            current = param.name
            kind = param.source_kind
            if kind is SourceKind.COMPUTED:
                assert param.computed is not None
                args = (instance, request, response) if param.computed_takes_instance else (request, response)
                values[param.name] = await smartasync(param.computed)(*args)
                if response.header_written:
                    return
            elif kind is SourceKind.ERROR:
                if error is not MISSING:
                    values[param.name] = error
                else:
                    values[param.name] = param.default if param.has_default else None
            elif kind is SourceKind.AUTH_INFO:
                values[param.name] = auth_info
            else:
                values[param.name] = binder.bind(param)
        for rule in descriptor.validators:
            current = rule.parameter
            rule.check(values)
    except NOT_INTERCEPTED:
        raise
    except Exception as exc:
        if isinstance(exc, (BindingFailure, ValidationFailure)):
            current = exc.field
        if descriptor.error_display is not None:
            await _redisplay(instance, descriptor, request, response, exc, current, renderer, auth_info)
            return
        if isinstance(exc, HTTPException):
            raise
        raise HTTPBadRequest(str(exc)) from exc

    await policy.authorize(auth_info, values)

    handler = getattr(instance, descriptor.method_name)
    try:
        result = await smartasync(handler)(**values)
        for modifier in descriptor.output_modifiers:
            result = await smartasync(modifier)(result, request, response)
    except NOT_INTERCEPTED:
        raise
    except Exception as exc:
        logger.debug("Web handler %s has thrown: %s", descriptor.method_name, exc)
        if descriptor.error_display is None:
            raise
        await _redisplay(instance, descriptor, request, response, exc, None, renderer, auth_info)
        return

    write_result(descriptor, response, result)


async def _redisplay(
    instance: Any,
    descriptor: HandlerDescriptor,
    request: HttpRequest,
    response: Response,
    exc: Exception,
    field_name: str | None,
    renderer: Callable[[str, dict[str, Any]], str] | None,
    auth_info: Any,
) -> None:
    binding = descriptor.error_display
    assert binding is not None
    logger.debug(
        "Redisplaying %s through %s (field=%s): %s",
        descriptor.method_name,
        binding.target.method_name,
        field_name,
        exc,
    )
    await dispatch(
        instance,
        binding.target,
        request,
        response,
        renderer=renderer,
        error=binding.error_value(exc, field_name),
        auth_info=auth_info,
    )


def write_result(descriptor: HandlerDescriptor, response: Response, result: Any) -> None:
    """Write a handler's return value, unless the handler wrote the response itself."""
    if response.header_written or result is None:
        return
    kind = descriptor.return_kind
    if kind is ReturnKind.STRUCTURED:
        response.write_json_body(result)
    elif kind is ReturnKind.RAW:
        response.write_body(result, descriptor.content_type)
    else:
        response.set_result(result, descriptor.content_type)


if __name__ == "__main__":
    pass
