# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Parameter binding: untyped request data to typed handler arguments.

``ParameterBinder`` reads one request following the ``ParameterDescriptor``
tree built at registration. Field lookup is by exact name, form data first
and query data second. Structured parameters decompose into several fields:

    ``items: list[int]``          items_0, items_1, ... up to the first gap
    ``address: Address``          address_street, address_city, ...
    ``orders: list[Order]``       orders_0_id, orders_0_qty, orders_1_id, ...
    ``nick: str | None``          nick, or None when absent
    ``remember: bool``            True when ``remember`` is present at all

String values are converted with the target type's ``from_string`` when it
has one, otherwise with a conversion by type (see ``convert``). Missing or
unconvertible values raise ``BindingFailure`` naming the handler parameter.

Framework-side parameters (computed, error, auth info) are bound by the
dispatcher; the binder covers everything that comes from the request.
"""

from __future__ import annotations

import datetime
import inspect
from enum import Enum
from typing import TYPE_CHECKING, Any

from .descriptors import FIELD_DEFAULT, MISSING, ParameterDescriptor, SourceKind
from .exceptions import BindingFailure, ConversionError

if TYPE_CHECKING:
    from .request import HttpRequest
    from .response import Response

__all__ = ["ParameterBinder", "convert"]

_TRUE = frozenset({"true", "1", "yes", "on"})
_FALSE = frozenset({"false", "0", "no", "off", ""})
_ISO_TYPES = (datetime.datetime, datetime.date, datetime.time)


def _type_name(target: Any) -> str:
    return getattr(target, "__name__", str(target))


def convert(value: str, target: Any) -> Any:
    """Convert a request string to ``target``.

    Raises:
        ConversionError: If ``value`` is not a valid ``target``.
    """
    if target is str or target is Any or target is inspect.Parameter.empty:
        return value
    try:
        from_string = getattr(target, "from_string", None)
        if isinstance(target, type) and callable(from_string):
            return from_string(value)
        if target is bool:
            lowered = value.strip().lower()
            if lowered in _TRUE:
                return True
            if lowered in _FALSE:
                return False
            raise ConversionError(f"Cannot convert {value!r} to bool")
        if target is bytes:
            return value.encode("utf-8")
        if isinstance(target, type) and issubclass(target, Enum):
            try:
                return target(value)
            except ValueError:
                return target[value]
        if target in _ISO_TYPES:
            return target.fromisoformat(value)
        return target(value)
    except ConversionError:
        raise
    except (ValueError, TypeError, KeyError, ArithmeticError) as exc:
        raise ConversionError(f"Cannot convert {value!r} to {_type_name(target)}") from exc


class _FieldError(Exception):
    """A field failed below the top-level parameter."""

    def __init__(self, field_name: str, detail: str) -> None:
        super().__init__(detail)
        self.field_name = field_name
        self.detail = detail


class ParameterBinder:
    """Binds the request-sourced parameters of one dispatch.

    Args:
        request: Active request handle.
        response: Its response handle.
    """

    __slots__ = ("request", "response")

    def __init__(self, request: HttpRequest, response: Response) -> None:
        self.request = request
        self.response = response

    def bind(self, param: ParameterDescriptor) -> Any:
        """Value of ``param`` for the current request.

        Raises:
            BindingFailure: Missing required value or conversion error.
        """
        kind = param.source_kind
        if kind is SourceKind.REQUEST:
            return self.request
        if kind is SourceKind.RESPONSE:
            return self.response
        if kind is SourceKind.BODY:
            return self.request.body_reader
        if kind is SourceKind.PATH:
            return self._bind_path(param)
        if kind is SourceKind.FLAG:
            return self._present(param.name)
        try:
            value = self._read(param, param.name, param.required)
        except _FieldError as exc:
            raise BindingFailure(param.name, exc.detail) from exc
        if value is MISSING:
            return param.default if param.has_default else None
        return value

    def _bind_path(self, param: ParameterDescriptor) -> Any:
        raw = self.request.params.get(param.capture_name)
        if raw is None:
            if param.has_default:
                return param.default
            raise BindingFailure(param.name, f"Missing request parameter for {param.name}")
        try:
            return convert(raw, param.semantic_type)
        except ConversionError as exc:
            raise BindingFailure(param.name, str(exc)) from exc

    def _present(self, field_name: str) -> bool:
        return field_name in self.request.form or field_name in self.request.query

    def _lookup(self, field_name: str) -> str | None:
        form = self.request.form
        if field_name in form:
            return form.get(field_name)
        query = self.request.query
        if field_name in query:
            return query.get(field_name)
        return None

    def _read(self, param: ParameterDescriptor, field_name: str, required: bool) -> Any:
        """Read ``param`` from field ``field_name``.

        Returns MISSING when nothing was found and ``required`` is false.
        """
        kind = param.source_kind
        if kind is SourceKind.ARRAY:
            return self._read_array(param, field_name, required)
        if kind is SourceKind.OPTIONAL:
            value = self._read(param.children[0], field_name, False)
            if value is MISSING:
                return None if required else MISSING
            return value
        if kind is SourceKind.RECORD:
            return self._read_record(param, field_name, required)
        if kind is SourceKind.FLAG:
            if self._present(field_name):
                return True
            return False if required else MISSING

        raw = self._lookup(field_name)
        if raw is None:
            if required:
                raise _FieldError(field_name, f"Missing parameter {field_name}")
            return MISSING
        try:
            return convert(raw, param.semantic_type)
        except ConversionError as exc:
            raise _FieldError(field_name, f"Invalid value for {field_name}: {exc}") from exc

    def _read_array(self, param: ParameterDescriptor, field_name: str, required: bool) -> Any:
        element = param.children[0]
        values: list[Any] = []
        index = 0
        while True:
            value = self._read(element, f"{field_name}_{index}", False)
            if value is MISSING:
                break
            values.append(value)
            index += 1
        if not values and not required:
            return MISSING
        return values

    def _read_record(self, param: ParameterDescriptor, field_name: str, required: bool) -> Any:
        kwargs: dict[str, Any] = {}
        found = False
        for child in param.children:
            child_field = f"{field_name}_{child.name}"
            value = self._read(child, child_field, required and child.required)
            if value is MISSING:
                if child.default is FIELD_DEFAULT:
                    continue
                if child.source_kind is SourceKind.OPTIONAL:
                    value = None
                elif child.source_kind is SourceKind.FLAG:
                    value = False
                elif required:
                    raise _FieldError(child_field, f"Missing parameter {child_field}")
                else:
                    return MISSING
            else:
                found = True
            kwargs[child.name] = value
        if not found and not required:
            return MISSING
        try:
            return param.semantic_type(**kwargs)
        except (TypeError, ValueError) as exc:
            raise _FieldError(field_name, f"Invalid value for {field_name}: {exc}") from exc


if __name__ == "__main__":
    pass
