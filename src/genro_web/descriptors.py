# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Route descriptors: what a web interface class exposes and how.

``build_route_table`` walks the public methods of an interface class once and
produces an immutable ``HandlerDescriptor`` per (verb, URL pattern) pair. All
reflection happens here; at request time the binder and the dispatcher only
read descriptors.

Routes from method names
========================
Without ``@method``/``@path`` the verb and URL come from the method name::

    index                  GET    /
    get_user_profile       GET    /user_profile
    queryItems             GET    /items
    put_settings, set_x    PUT
    update_x, patch_x      PATCH
    add_x, create_x, post_x
                           POST
    remove_x, erase_x, delete_x
                           DELETE
    anything_else          POST   /anything_else

The remainder of the name is rendered by ``MethodStyle`` (default
``LOWER_UNDERSCORED``).

Parameter sources
=================
Each handler parameter gets a ``SourceKind`` from its name, annotation and
attributes:

    ==============  ==========================================================
    PATH            name starts with ``_``: route capture ``:name``
    FIELD           scalar form field, then query field
    FLAG            ``bool``: true when the field is present at all
    BODY            ``BinaryIO``/``IO[bytes]``: the request body stream
    REQUEST         ``HttpRequest``
    RESPONSE        ``Response``
    COMPUTED        named by ``@before``
    ARRAY           ``list[T]``: fields ``name_0``, ``name_1``, ...
    OPTIONAL        ``T | None``: value or None
    RECORD          dataclass: fields ``name_<field>``
    ERROR           ``_error``: error value of a redisplay
    AUTH_INFO       the auth-info type of an ``@authorized`` class
    ==============  ==========================================================
"""

from __future__ import annotations

import dataclasses
import inspect
import re
import types
import typing
from dataclasses import dataclass
from enum import Enum
from typing import IO, Any, BinaryIO, Callable, Iterator, Union, get_args, get_origin

from .attributes import get_attributes
from .auth import NO_POLICY, AuthorizationPolicy, build_policy, get_auth_info_type
from .exceptions import HTTPException, RegistrationError
from .i18n import TranslationContext, get_translation_context
from .request import HttpRequest
from .response import Response
from .validation import ValidationRule

__all__ = [
    "MISSING",
    "FIELD_DEFAULT",
    "MethodStyle",
    "SourceKind",
    "ReturnKind",
    "ParameterDescriptor",
    "ErrorDisplayBinding",
    "HandlerDescriptor",
    "iter_public_methods",
    "derive_route",
    "concat_url",
    "error_factory",
    "build_handler_descriptors",
    "build_route_table",
]


class _Sentinel:
    __slots__ = ("_name",)

    def __init__(self, name: str) -> None:
        self._name = name

    def __repr__(self) -> str:
        return self._name


# absent value, distinct from None
MISSING: Any = _Sentinel("MISSING")
# record field left to its dataclass default
FIELD_DEFAULT: Any = _Sentinel("FIELD_DEFAULT")


class MethodStyle(str, Enum):
    """How the remainder of a method name becomes a URL segment."""

    UNALTERED = "unaltered"
    LOWER_UNDERSCORED = "lower_underscored"
    LOWER_DASHED = "lower_dashed"
    LOWER_CASE = "lower_case"
    CAMEL_CASE = "camel_case"

    def apply(self, name: str) -> str:
        if self is MethodStyle.UNALTERED or not name:
            return name
        words = [w.lower() for w in _WORD_BOUNDARY.sub("_", name).split("_") if w]
        if self is MethodStyle.LOWER_UNDERSCORED:
            return "_".join(words)
        if self is MethodStyle.LOWER_DASHED:
            return "-".join(words)
        if self is MethodStyle.LOWER_CASE:
            return "".join(words)
        return words[0] + "".join(w.capitalize() for w in words[1:])


class SourceKind(str, Enum):
    PATH = "path"
    FIELD = "field"
    FLAG = "flag"
    BODY = "body"
    REQUEST = "request"
    RESPONSE = "response"
    COMPUTED = "computed"
    ARRAY = "array"
    OPTIONAL = "optional"
    RECORD = "record"
    ERROR = "error"
    AUTH_INFO = "auth_info"


class ReturnKind(str, Enum):
    NONE = "none"
    STRUCTURED = "structured"
    RAW = "raw"


_WORD_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")

_VERB_PREFIX = re.compile(
    r"^(get|query|set|put|update|patch|add|create|post|remove|erase|delete)(?:_|(?=[A-Z])|$)(.*)$"
)

_PREFIX_VERBS = {
    "get": "GET",
    "query": "GET",
    "set": "PUT",
    "put": "PUT",
    "update": "PATCH",
    "patch": "PATCH",
    "add": "POST",
    "create": "POST",
    "post": "POST",
    "remove": "DELETE",
    "erase": "DELETE",
    "delete": "DELETE",
}

_PLACEHOLDER = re.compile(r":(\w+)")

_RAW_TYPES = (bytes, bytearray, str)


@dataclass(frozen=True)
class ParameterDescriptor:
    """How one handler parameter is obtained per request.

    ``children`` holds the element descriptor of an ARRAY, the wrapped
    descriptor of an OPTIONAL and one descriptor per field of a RECORD.
    ``computed`` is the ``@before`` callback of a COMPUTED parameter.
    """

    name: str
    semantic_type: Any
    source_kind: SourceKind
    required: bool = True
    default: Any = MISSING
    children: tuple[ParameterDescriptor, ...] = ()
    computed: Callable[..., Any] | None = None
    computed_takes_instance: bool = False

    @property
    def has_default(self) -> bool:
        return self.default is not MISSING

    @property
    def capture_name(self) -> str:
        """Route capture read by a PATH parameter (``_id`` -> ``id``)."""
        return self.name[1:]


@dataclass(frozen=True)
class ErrorDisplayBinding:
    """Fallback handler of a primary handler and its error value factory."""

    target: HandlerDescriptor
    make_error: Callable[[BaseException, "str | None"], Any]

    def error_value(self, exc: BaseException, field_name: str | None) -> Any:
        return self.make_error(exc, field_name)


@dataclass(frozen=True)
class HandlerDescriptor:
    """One route of a web interface.

    Attributes:
        method_name: Name of the handler method on the interface instance.
        http_verb: Verb the route is registered for.
        url_pattern: Full URL pattern including the interface prefix.
        parameters: Parameter descriptors in declaration order.
        return_kind: How the return value is written.
        content_type: ``@content_type`` value for RAW returns.
        error_display: Fallback binding, None for no redisplay and always
            None on a fallback target itself.
        policy: Resolved authorization of the handler.
        validators: ``@validate_*`` rules in declaration order.
        output_modifiers: ``@after`` callbacks in application order.
        translation: Translation context of the method or its class.
    """

    method_name: str
    http_verb: str
    url_pattern: str
    parameters: tuple[ParameterDescriptor, ...]
    return_kind: ReturnKind = ReturnKind.NONE
    content_type: str | None = None
    error_display: ErrorDisplayBinding | None = None
    policy: AuthorizationPolicy = NO_POLICY
    validators: tuple[ValidationRule, ...] = ()
    output_modifiers: tuple[Callable[..., Any], ...] = ()
    translation: TranslationContext | None = None

    def __repr__(self) -> str:
        return f"HandlerDescriptor({self.http_verb} {self.url_pattern} -> {self.method_name})"


# -----------------------------------------------------------------------------
# Method walking and naming
# -----------------------------------------------------------------------------


def iter_public_methods(cls: type) -> Iterator[tuple[str, Callable[..., Any]]]:
    """Yield (name, function) for every handler method of ``cls``.

    Walks the MRO child first so overrides win. Underscored names, static and
    class methods, non-function attributes and ``@no_route`` methods are
    skipped.
    """
    seen: set[str] = set()
    for klass in cls.__mro__:
        if klass is object:
            continue
        for name, member in vars(klass).items():
            if name in seen:
                continue
            seen.add(name)
            if name.startswith("_") or not inspect.isfunction(member):
                continue
            if get_attributes(member).get("no_route"):
                continue
            yield name, member


def derive_route(name: str, style: MethodStyle = MethodStyle.LOWER_UNDERSCORED) -> tuple[str, str]:
    """Verb and URL pattern of a method name without routing attributes."""
    if name == "index":
        return "GET", "/"
    match = _VERB_PREFIX.match(name)
    if match:
        verb, rest = _PREFIX_VERBS[match.group(1)], match.group(2)
    else:
        verb, rest = "POST", name
    return verb, "/" + style.apply(rest)


def concat_url(prefix: str, pattern: str) -> str:
    """Join an interface prefix and a route pattern with a single slash."""
    if not prefix:
        return pattern or "/"
    if prefix.endswith("/") and pattern.startswith("/"):
        return prefix + pattern[1:]
    if not prefix.endswith("/") and pattern and not pattern.startswith("/"):
        return prefix + "/" + pattern
    return prefix + pattern


# -----------------------------------------------------------------------------
# Type helpers
# -----------------------------------------------------------------------------


def _resolve_hints(cls: type, func: Callable[..., Any]) -> dict[str, Any]:
    localns = {cls.__name__: cls, **vars(cls)}
    try:
        return typing.get_type_hints(func, localns=localns)
    except NameError as exc:
        raise RegistrationError(f"Cannot resolve annotations of {func.__qualname__}: {exc}") from exc


def _unwrap_optional(hint: Any) -> tuple[Any, bool]:
    """(inner type, True) for ``T | None`` / ``Optional[T]``, else (hint, False)."""
    if get_origin(hint) in (Union, types.UnionType):
        args = [arg for arg in get_args(hint) if arg is not type(None)]
        if len(args) == 1 and len(args) < len(get_args(hint)):
            return args[0], True
    return hint, False


def _is_body_stream(hint: Any) -> bool:
    return hint is BinaryIO or hint is IO or get_origin(hint) is IO or hint == IO[bytes]


def _is_string_serializable(hint: Any) -> bool:
    return isinstance(hint, type) and callable(getattr(hint, "from_string", None))


def _is_list(hint: Any) -> bool:
    return hint is list or get_origin(hint) is list


def _list_element(hint: Any) -> Any:
    args = get_args(hint)
    return args[0] if args else str


def _value_descriptor(name: str, hint: Any, required: bool, default: Any = MISSING) -> ParameterDescriptor:
    """Descriptor of a request-data parameter (field, flag, array, optional, record)."""
    if hint is inspect.Parameter.empty or hint is Any:
        return ParameterDescriptor(name, str, SourceKind.FIELD, required, default)
    inner, optional = _unwrap_optional(hint)
    if optional:
        child = _value_descriptor(name, inner, False)
        return ParameterDescriptor(name, hint, SourceKind.OPTIONAL, False, default, (child,))
    if hint is bool:
        return ParameterDescriptor(name, bool, SourceKind.FLAG, False, default)
    if _is_string_serializable(hint):
        return ParameterDescriptor(name, hint, SourceKind.FIELD, required, default)
    if _is_list(hint):
        element = _value_descriptor(name, _list_element(hint), False)
        return ParameterDescriptor(name, hint, SourceKind.ARRAY, required, default, (element,))
    if dataclasses.is_dataclass(hint) and isinstance(hint, type):
        return ParameterDescriptor(name, hint, SourceKind.RECORD, required, default, _record_fields(hint))
    return ParameterDescriptor(name, hint, SourceKind.FIELD, required, default)


def _record_fields(record_type: type) -> tuple[ParameterDescriptor, ...]:
    try:
        hints = typing.get_type_hints(record_type)
    except NameError as exc:
        raise RegistrationError(f"Cannot resolve fields of {record_type.__name__}: {exc}") from exc
    children = []
    for record_field in dataclasses.fields(record_type):
        if not record_field.init:
            continue
        has_default = (
            record_field.default is not dataclasses.MISSING
            or record_field.default_factory is not dataclasses.MISSING
        )
        hint = hints.get(record_field.name, inspect.Parameter.empty)
        default = FIELD_DEFAULT if has_default else MISSING
        children.append(_value_descriptor(record_field.name, hint, not has_default, default))
    return tuple(children)


def _return_kind(hints: dict[str, Any]) -> ReturnKind:
    if "return" not in hints:
        return ReturnKind.NONE
    hint, _ = _unwrap_optional(hints["return"])
    if hint is None or hint is type(None):
        return ReturnKind.NONE
    origin = get_origin(hint) or hint
    if origin in (dict, list):
        return ReturnKind.STRUCTURED
    if origin in _RAW_TYPES or _is_body_stream(hint):
        return ReturnKind.RAW
    return ReturnKind.NONE


def _before_takes_instance(callback: Callable[..., Any], func_name: str, param: str) -> bool:
    positional = [
        p
        for p in inspect.signature(callback).parameters.values()
        if p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD)
    ]
    if len(positional) == 2:
        return False
    if len(positional) == 3:
        return True
    raise RegistrationError(
        f"@before callback for {param} of {func_name} must take (request, response) "
        "or (instance, request, response)."
    )


# -----------------------------------------------------------------------------
# Error value construction
# -----------------------------------------------------------------------------


def error_message(exc: BaseException) -> str:
    if isinstance(exc, HTTPException):
        return exc.detail
    return str(exc)


def _first_argument_hint(error_type: type) -> Any:
    try:
        if dataclasses.is_dataclass(error_type):
            hints = typing.get_type_hints(error_type)
            names = [f.name for f in dataclasses.fields(error_type) if f.init]
        else:
            hints = typing.get_type_hints(error_type.__init__)
            names = list(inspect.signature(error_type).parameters)
    except (NameError, TypeError, ValueError):
        return inspect.Parameter.empty
    if not names:
        return inspect.Parameter.empty
    return hints.get(names[0], inspect.Parameter.empty)


def _accepts(hint: Any, value_type: type) -> bool:
    if hint is inspect.Parameter.empty or hint is Any or hint is object:
        return True
    hint, _ = _unwrap_optional(hint)
    return isinstance(hint, type) and issubclass(value_type, hint)


def _can_bind(signature: inspect.Signature | None, count: int) -> bool:
    if signature is None:
        return False
    try:
        signature.bind(*([None] * count))
    except TypeError:
        return False
    return True


def error_factory(hint: Any, target_name: str) -> Callable[[BaseException, "str | None"], Any]:
    """Build the function turning (failure, field name) into an ``_error`` value.

    By annotation of ``_error``: ``bool`` gives True, ``str`` (or none) the
    failure message, an exception type the failure itself. Any other class is
    constructed with the first signature that fits among ``(exc, field)``,
    ``(message, field)`` and ``(message)``.
    """
    hint, _ = _unwrap_optional(hint)
    if hint is bool:
        return lambda exc, field_name: True
    if hint is inspect.Parameter.empty or hint is Any or hint is str:
        return lambda exc, field_name: error_message(exc)
    if isinstance(hint, type) and issubclass(hint, BaseException):
        return lambda exc, field_name: exc
    if isinstance(hint, type):
        try:
            signature: inspect.Signature | None = inspect.signature(hint)
        except (TypeError, ValueError):
            signature = None
        first = _first_argument_hint(hint)
        error_type = hint
        if _can_bind(signature, 2) and _accepts(first, Exception):
            return lambda exc, field_name: error_type(exc, field_name)
        if _can_bind(signature, 2) and _accepts(first, str):
            return lambda exc, field_name: error_type(error_message(exc), field_name)
        if _can_bind(signature, 1) and _accepts(first, str):
            return lambda exc, field_name: error_type(error_message(exc))
    raise RegistrationError(
        f"Error parameter type {getattr(hint, '__name__', hint)} of {target_name} "
        "does not have the required constructor."
    )


# -----------------------------------------------------------------------------
# Builder
# -----------------------------------------------------------------------------


class _HandlerSignature:
    """Parameters and return kind of one handler function (shared by its routes)."""

    __slots__ = ("parameters", "return_kind", "hints")

    def __init__(self, cls: type, func: Callable[..., Any], for_fallback: bool) -> None:
        hints = _resolve_hints(cls, func)
        attrs = get_attributes(func)
        computed = attrs.get("before", {})
        auth_info_type = get_auth_info_type(cls)
        name = func.__name__

        params = list(inspect.signature(func).parameters.values())[1:]  # self
        descriptors: list[ParameterDescriptor] = []
        param_hints: dict[str, Any] = {}
        for param in params:
            if param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
                raise RegistrationError(f"Handler {name} cannot declare *{param.name}/**{param.name}")
            hint = hints.get(param.name, inspect.Parameter.empty)
            param_hints[param.name] = hint
            default = MISSING if param.default is inspect.Parameter.empty else param.default
            required = default is MISSING
            descriptors.append(
                self._parameter(param.name, hint, required, default, computed, auth_info_type, name)
            )

        for param_name in computed:
            if param_name not in param_hints:
                raise RegistrationError(f"@before targets unknown parameter {param_name} of {name}")
        if for_fallback and "_error" not in param_hints:
            raise RegistrationError(f"Error display method {name} is missing the _error parameter.")

        self.parameters = tuple(descriptors)
        self.return_kind = _return_kind(hints)
        self.hints = param_hints

    @staticmethod
    def _parameter(
        name: str,
        hint: Any,
        required: bool,
        default: Any,
        computed: dict[str, Callable[..., Any]],
        auth_info_type: type | None,
        func_name: str,
    ) -> ParameterDescriptor:
        if name in computed:
            callback = computed[name]
            return ParameterDescriptor(
                name,
                hint,
                SourceKind.COMPUTED,
                required,
                default,
                computed=callback,
                computed_takes_instance=_before_takes_instance(callback, func_name, name),
            )
        if name == "_error":
            return ParameterDescriptor(name, hint, SourceKind.ERROR, False, default)
        if isinstance(hint, type) and issubclass(hint, HttpRequest):
            return ParameterDescriptor(name, hint, SourceKind.REQUEST)
        if isinstance(hint, type) and issubclass(hint, Response):
            return ParameterDescriptor(name, hint, SourceKind.RESPONSE)
        if _is_body_stream(hint):
            return ParameterDescriptor(name, hint, SourceKind.BODY)
        if auth_info_type is not None and hint is auth_info_type:
            return ParameterDescriptor(name, hint, SourceKind.AUTH_INFO)
        if name.startswith("_"):
            semantic, _ = _unwrap_optional(str if hint is inspect.Parameter.empty else hint)
            return ParameterDescriptor(name, semantic, SourceKind.PATH, required, default)
        return _value_descriptor(name, hint, required, default)


def _resolve_error_target(cls: type, func: Callable[..., Any]) -> Callable[..., Any] | None:
    target = get_attributes(func).get("error_display")
    if target is None:
        return None
    target_name = target if isinstance(target, str) else target.__name__
    resolved = getattr(cls, target_name, None)
    if not inspect.isfunction(resolved):
        raise RegistrationError(
            f"Error display method {target_name} of {func.__name__} is not a method of {cls.__name__}."
        )
    return resolved


def _check_validators(func: Callable[..., Any], rules: tuple[ValidationRule, ...], names: set[str]) -> None:
    for rule in rules:
        for param in rule.parameters:
            if param not in names:
                raise RegistrationError(
                    f"Undefined parameter for validation of {func.__name__}: {param}"
                )


def _build_for_function(
    cls: type,
    func: Callable[..., Any],
    url_prefix: str,
    style: MethodStyle,
    for_fallback: bool,
) -> list[HandlerDescriptor]:
    name = func.__name__
    attrs = get_attributes(func)
    signature = _HandlerSignature(cls, func, for_fallback)
    policy = build_policy(cls, func, signature.hints)

    validators = tuple(attrs.get("validators", ()))
    _check_validators(func, validators, set(signature.hints))

    error_display = None
    if not for_fallback:
        target = _resolve_error_target(cls, func)
        if target is not None:
            fallback = _build_for_function(cls, target, url_prefix, style, for_fallback=True)[0]
            error_hint = next(
                p.semantic_type for p in fallback.parameters if p.name == "_error"
            )
            error_display = ErrorDisplayBinding(fallback, error_factory(error_hint, target.__name__))

    derived_verb, derived_path = derive_route(name, style)
    verbs = attrs.get("methods") or [derived_verb]
    paths = attrs.get("paths") or [derived_path]

    descriptors = []
    for pattern in paths:
        placeholders = set(_PLACEHOLDER.findall(pattern))
        for param in signature.parameters:
            if param.source_kind is SourceKind.PATH and not param.has_default:
                if param.capture_name not in placeholders:
                    raise RegistrationError(
                        f"Parameter {param.name} of {name} has no :{param.capture_name} "
                        f"placeholder in route {pattern}"
                    )
        for verb in verbs:
            descriptors.append(
                HandlerDescriptor(
                    method_name=name,
                    http_verb=verb,
                    url_pattern=concat_url(url_prefix, pattern),
                    parameters=signature.parameters,
                    return_kind=signature.return_kind,
                    content_type=attrs.get("content_type"),
                    error_display=error_display,
                    policy=policy,
                    validators=validators,
                    output_modifiers=tuple(attrs.get("after", ())),
                    translation=get_translation_context(cls, func),
                )
            )
    return descriptors


def build_handler_descriptors(
    cls: type,
    func: Callable[..., Any],
    url_prefix: str = "/",
    style: MethodStyle = MethodStyle.LOWER_UNDERSCORED,
) -> list[HandlerDescriptor]:
    """All routes of one handler function (one per verb and path)."""
    return _build_for_function(cls, func, url_prefix, style, for_fallback=False)


def build_route_table(
    cls: type,
    url_prefix: str = "/",
    style: MethodStyle = MethodStyle.LOWER_UNDERSCORED,
) -> tuple[HandlerDescriptor, ...]:
    """Build the descriptors of every handler method of ``cls``.

    Raises:
        RegistrationError: On any inconsistent handler declaration.
    """
    table: list[HandlerDescriptor] = []
    for _, func in iter_public_methods(cls):
        table.extend(build_handler_descriptors(cls, func, url_prefix, style))
    return tuple(table)


if __name__ == "__main__":
    pass
