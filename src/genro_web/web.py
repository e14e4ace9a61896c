# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Web interface registration.

A web interface is a plain class whose public methods are HTTP handlers::

    class WebService:
        def index(self) -> str:
            return "welcome"

        @path("/users/:id")
        def get_user_by_id(self, _id: int) -> dict:
            return {"id": _id}

        def post_login(self, username: str, password: str) -> None:
            ...
            redirect("/")

    router = UrlRouter()
    register_web_interface(router, WebService(), WebInterfaceSettings(url_prefix="/app"))

``register_web_interface`` builds the route table of the instance's class
once and registers one ``Dispatcher`` per route. Every registration error
(inconsistent attributes, unresolvable annotations, unsatisfiable role
checks) surfaces here, before any request is served.
"""

from __future__ import annotations

import logging
from typing import Any

from .config import WebInterfaceSettings
from .descriptors import HandlerDescriptor, build_route_table
from .dispatcher import Dispatcher
from .types import Router

__all__ = ["register_web_interface"]

logger = logging.getLogger("genro_web")


def register_web_interface(
    router: Router,
    instance: Any,
    settings: WebInterfaceSettings | None = None,
) -> tuple[HandlerDescriptor, ...]:
    """Register every handler of ``instance`` with ``router``.

    Args:
        router: Any object with ``register(verb, pattern, endpoint)``.
        instance: The web interface instance.
        settings: URL prefix, method style and renderer. Defaults apply
            when omitted.

    Returns:
        The route table: one descriptor per registered route.

    Raises:
        RegistrationError: On any inconsistent handler declaration.
    """
    if settings is None:
        settings = WebInterfaceSettings()
    table = build_route_table(type(instance), settings.url_prefix, settings.method_style)
    for descriptor in table:
        router.register(
            descriptor.http_verb,
            descriptor.url_pattern,
            Dispatcher(instance, descriptor, settings.renderer),
        )
        logger.debug(
            "Registered %s %s -> %s.%s",
            descriptor.http_verb,
            descriptor.url_pattern,
            type(instance).__name__,
            descriptor.method_name,
        )
    return table


if __name__ == "__main__":
    pass
