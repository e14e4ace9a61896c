# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Authentication and authorization based on role expressions.

An interface class enables authorization by naming its auth-info type with
``@authorized``. The auth-info type provides ``authenticate`` and one
``is_<role>`` capability check per role::

    class ChatAuthInfo:
        def __init__(self, user_name: str) -> None:
            self.user_name = user_name

        @classmethod
        def authenticate(cls, service, request, response) -> ChatAuthInfo:
            if request.headers.get("authtoken") == "foobar":
                return cls(request.headers.get("authuser"))
            raise HTTPUnauthorized()

        def is_admin(self) -> bool:
            return self.user_name == "tom"

        def is_room_member(self, chat_room: int) -> bool:
            return chat_room == 0 and self.user_name in ("macy", "peter")


    @authorized(ChatAuthInfo)
    class ChatWebService:
        @no_auth
        def get_login_page(self) -> None: ...

        @any_auth
        def get_overview(self) -> None: ...

        @auth(Role.admin | Role.room_member)
        def get_chatroom_history(self, chat_room: int) -> None: ...

Every public method of an authorized class declares exactly one of
``@no_auth``, ``@any_auth`` or ``@auth(...)``; a class without ``@authorized``
declares none. Capability check arguments are taken by name from the bound
handler parameters. All of these constraints are checked when the route table
is built and raise ``RegistrationError``.

Per request, ``AuthorizationPolicy.authenticate`` runs before parameter
binding and ``AuthorizationPolicy.authorize`` after validation.
"""

from __future__ import annotations

import inspect
import re
from dataclasses import dataclass, field
from enum import Enum
from functools import reduce
from typing import TYPE_CHECKING, Any, Callable, Iterator, Mapping, TypeVar, get_type_hints

from smartasync import smartasync

from .attributes import get_attributes, handler_attributes
from .exceptions import (
    AuthenticationFailure,
    AuthorizationFailure,
    HTTPException,
    RegistrationError,
)

if TYPE_CHECKING:
    from .request import HttpRequest
    from .response import Response

__all__ = [
    "Op",
    "RoleExpression",
    "Role",
    "any_of",
    "all_of",
    "PolicyKind",
    "AuthorizationPolicy",
    "authorized",
    "auth",
    "any_auth",
    "no_auth",
    "get_auth_info_type",
    "build_policy",
]

F = TypeVar("F", bound=Callable[..., Any])
C = TypeVar("C", bound=type)

AUTH_INFO_ATTR = "__genro_web_auth_info__"

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


class Op(str, Enum):
    AND = "and"
    OR = "or"
    LEAF = "leaf"


@dataclass(frozen=True)
class RoleExpression:
    """Boolean tree of named roles.

    Build leaves through ``Role`` and combine them with ``|`` and ``&`` or
    with ``any_of``/``all_of``::

        Role.admin | (Role.room_member & Role.premium_user)
    """

    op: Op
    ident: str | None = None
    left: RoleExpression | None = None
    right: RoleExpression | None = None

    def __or__(self, other: RoleExpression) -> RoleExpression:
        if not isinstance(other, RoleExpression):
            return NotImplemented
        return RoleExpression(Op.OR, left=self, right=other)

    def __and__(self, other: RoleExpression) -> RoleExpression:
        if not isinstance(other, RoleExpression):
            return NotImplemented
        return RoleExpression(Op.AND, left=self, right=other)

    @property
    def check_name(self) -> str:
        """Name of the capability check of a leaf (``roomMember`` -> ``is_room_member``)."""
        if self.op is not Op.LEAF or not self.ident:
            raise ValueError("Only leaf roles have a capability check")
        return "is_" + _CAMEL_BOUNDARY.sub("_", self.ident).lower()

    def leaves(self) -> Iterator[RoleExpression]:
        if self.op is Op.LEAF:
            yield self
            return
        assert self.left is not None and self.right is not None
        yield from self.left.leaves()
        yield from self.right.leaves()

    def __str__(self) -> str:
        if self.op is Op.LEAF:
            return str(self.ident)
        symbol = "|" if self.op is Op.OR else "&"
        return f"({self.left} {symbol} {self.right})"


class _RoleFactory:
    """``Role.<name>`` builds the leaf role ``<name>``."""

    __slots__ = ()

    def __getattr__(self, name: str) -> RoleExpression:
        if name.startswith("__"):
            raise AttributeError(name)
        return RoleExpression(Op.LEAF, ident=name)

    def __call__(self, name: str) -> RoleExpression:
        return RoleExpression(Op.LEAF, ident=name)


Role = _RoleFactory()


def any_of(*expressions: RoleExpression) -> RoleExpression:
    """OR of ``expressions``, evaluated left to right."""
    if not expressions:
        raise ValueError("any_of() needs at least one role")
    return reduce(lambda left, right: left | right, expressions)


def all_of(*expressions: RoleExpression) -> RoleExpression:
    """AND of ``expressions``, evaluated left to right."""
    if not expressions:
        raise ValueError("all_of() needs at least one role")
    return reduce(lambda left, right: left & right, expressions)


class PolicyKind(str, Enum):
    NONE = "none"
    NO_AUTH = "no_auth"
    ANY_AUTH = "any_auth"
    ROLES = "roles"


# -----------------------------------------------------------------------------
# Attributes
# -----------------------------------------------------------------------------


def authorized(auth_info_type: type) -> Callable[[C], C]:
    """Enable authentication and authorization for an interface class."""
    authenticate = getattr(auth_info_type, "authenticate", None)
    if not callable(authenticate):
        raise RegistrationError(
            f"@authorized({auth_info_type.__name__}) specifies a type that is missing "
            "a callable authenticate() method."
        )

    def decorator(cls: C) -> C:
        if AUTH_INFO_ATTR in cls.__dict__:
            raise RegistrationError(f"Class {cls.__name__} defines multiple @authorized attributes.")
        setattr(cls, AUTH_INFO_ATTR, auth_info_type)
        return cls

    return decorator


def _set_auth_marker(func: Callable[..., Any], kind: PolicyKind, expression: RoleExpression | None) -> None:
    attrs = handler_attributes(func)
    if "auth" in attrs:
        raise RegistrationError(f"Method {func.__name__} may only specify one @auth attribute.")
    attrs["auth"] = (kind, expression)


def auth(expression: RoleExpression) -> Callable[[F], F]:
    """Require authentication and ``expression`` to evaluate true."""
    if not isinstance(expression, RoleExpression):
        raise RegistrationError(f"@auth expects a role expression, got {expression!r}")

    def decorator(func: F) -> F:
        _set_auth_marker(func, PolicyKind.ROLES, expression)
        return func

    return decorator


def any_auth(func: F) -> F:
    """Require authentication only."""
    _set_auth_marker(func, PolicyKind.ANY_AUTH, None)
    return func


def no_auth(func: F) -> F:
    """Skip authentication and authorization."""
    handler_attributes(func)["no_auth"] = True
    return func


def get_auth_info_type(cls: type) -> type | None:
    """Auth-info type declared by ``cls`` or inherited from a base class."""
    return getattr(cls, AUTH_INFO_ATTR, None)


# -----------------------------------------------------------------------------
# Policy
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class AuthorizationPolicy:
    """Resolved authorization of one handler.

    Attributes:
        kind: Which phases run for the handler.
        auth_info_type: Auth-info type of the interface class (None for NONE).
        expression: Role expression (ROLES only).
        arguments: Per role leaf, the handler parameter names passed to its
            capability check.
    """

    kind: PolicyKind = PolicyKind.NONE
    auth_info_type: type | None = None
    expression: RoleExpression | None = None
    arguments: tuple[tuple[str, tuple[str, ...]], ...] = field(default=())

    @property
    def requires_authentication(self) -> bool:
        return self.kind in (PolicyKind.ANY_AUTH, PolicyKind.ROLES)

    async def authenticate(self, instance: Any, request: HttpRequest, response: Response) -> Any:
        """Run the auth-info type's ``authenticate``.

        HTTP exceptions raised by ``authenticate`` pass through unchanged,
        anything else becomes ``AuthenticationFailure``.
        """
        assert self.auth_info_type is not None
        try:
            return await smartasync(self.auth_info_type.authenticate)(instance, request, response)  # type: ignore[attr-defined]
        except HTTPException:
            raise
        except Exception as exc:
            raise AuthenticationFailure(str(exc) or "Authentication failed") from exc

    async def authorize(self, auth_info: Any, values: Mapping[str, Any]) -> None:
        """Raise ``AuthorizationFailure`` unless the role expression holds."""
        if self.kind is not PolicyKind.ROLES or self.expression is None:
            return
        if not await self.evaluate(self.expression, auth_info, values):
            raise AuthorizationFailure()

    async def evaluate(self, expression: RoleExpression, auth_info: Any, values: Mapping[str, Any]) -> bool:
        """Evaluate ``expression`` left to right with short-circuit."""
        if expression.op is Op.LEAF:
            names = dict(self.arguments).get(str(expression.ident), ())
            check = getattr(auth_info, expression.check_name)
            result = check(**{name: values[name] for name in names})
            if inspect.isawaitable(result):
                result = await result
            return bool(result)
        assert expression.left is not None and expression.right is not None
        left = await self.evaluate(expression.left, auth_info, values)
        if expression.op is Op.OR:
            return left or await self.evaluate(expression.right, auth_info, values)
        return left and await self.evaluate(expression.right, auth_info, values)


NO_POLICY = AuthorizationPolicy()


def _check_parameters(auth_info_type: type, check_name: str) -> list[inspect.Parameter]:
    check = getattr(auth_info_type, check_name)
    params = list(inspect.signature(check).parameters.values())
    if inspect.isfunction(inspect.getattr_static(auth_info_type, check_name)) and params:
        params = params[1:]  # self
    return [p for p in params if p.kind not in (p.VAR_POSITIONAL, p.VAR_KEYWORD)]


def _check_hints(auth_info_type: type, check_name: str) -> dict[str, Any]:
    check = getattr(auth_info_type, check_name)
    try:
        return get_type_hints(check)
    except (NameError, TypeError):
        # unresolvable annotations: match by name only
        return {}


def build_policy(
    cls: type,
    func: Callable[..., Any],
    param_hints: Mapping[str, Any],
) -> AuthorizationPolicy:
    """Resolve and check the authorization attributes of handler ``func``.

    Args:
        cls: The interface class.
        func: The handler function.
        param_hints: Handler parameter names mapped to their annotations
            (``inspect.Parameter.empty`` when unannotated).

    Raises:
        RegistrationError: On any inconsistent declaration.
    """
    name = func.__name__
    attrs = get_attributes(func)
    marker = attrs.get("auth")
    is_no_auth = bool(attrs.get("no_auth"))
    auth_info_type = get_auth_info_type(cls)

    if auth_info_type is None:
        if is_no_auth:
            raise RegistrationError(
                f"@no_auth attribute on method {name} is not allowed without annotating "
                f"{cls.__name__} with @authorized."
            )
        if marker is not None:
            raise RegistrationError(
                f"@auth(...)/@any_auth attribute on method {name} is not allowed without "
                f"annotating {cls.__name__} with @authorized."
            )
        return NO_POLICY

    if is_no_auth:
        if marker is not None:
            raise RegistrationError(
                f"Method {name} specifies both, @no_auth and @auth(...)/@any_auth attributes."
            )
        if any(hint is auth_info_type for hint in param_hints.values()):
            raise RegistrationError(
                f"Method {name} is attributed @no_auth, but also has an "
                f"{auth_info_type.__name__} parameter."
            )
        return AuthorizationPolicy(PolicyKind.NO_AUTH, auth_info_type)

    if marker is None:
        raise RegistrationError(f"Missing @auth(...)/@any_auth attribute for method {name}.")

    kind, expression = marker
    if kind is PolicyKind.ANY_AUTH:
        return AuthorizationPolicy(PolicyKind.ANY_AUTH, auth_info_type)

    arguments: dict[str, tuple[str, ...]] = {}
    for leaf in expression.leaves():
        check_name = leaf.check_name
        if not callable(getattr(auth_info_type, check_name, None)):
            raise RegistrationError(
                f"{auth_info_type.__name__} has no {check_name}() check for role "
                f"{leaf.ident} used by method {name}."
            )
        check_hints = _check_hints(auth_info_type, check_name)
        names: list[str] = []
        for param in _check_parameters(auth_info_type, check_name):
            if param.name not in param_hints:
                raise RegistrationError(
                    f"Missing parameter {param.name} to evaluate @auth attribute for method {name}."
                )
            expected = check_hints.get(param.name, inspect.Parameter.empty)
            actual = param_hints[param.name]
            if (
                expected is not inspect.Parameter.empty
                and actual is not inspect.Parameter.empty
                and expected != actual
            ):
                raise RegistrationError(
                    f"Parameter {param.name} of {name} is expected to have type "
                    f"{getattr(expected, '__name__', expected)} to match @auth attribute."
                )
            names.append(param.name)
        arguments[str(leaf.ident)] = tuple(names)

    return AuthorizationPolicy(
        PolicyKind.ROLES,
        auth_info_type,
        expression,
        tuple(arguments.items()),
    )


if __name__ == "__main__":
    pass
