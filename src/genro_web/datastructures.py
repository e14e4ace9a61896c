# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""
Read-only request data containers.

- ``Headers``: case-insensitive, multi-value HTTP headers decoded from ASGI.
- ``QueryParams``: case-sensitive, multi-value fields parsed from a query string.
- ``FormData``: same structure as ``QueryParams``, parsed from an
  ``application/x-www-form-urlencoded`` body.
- ``State``: attribute-style bag for per-request data.

The parameter binder only needs ``__contains__`` and ``get`` on field
containers, so both ``QueryParams`` and ``FormData`` are looked up through
the same two calls.

Example::

    query = QueryParams(b"tags_0=a&tags_1=b&flag")
    query.get("tags_0")      # "a"
    "flag" in query          # True
    query.get("flag")        # ""
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import Any
from urllib.parse import parse_qs

__all__ = ["Headers", "QueryParams", "FormData", "State", "headers_from_scope"]


class Headers:
    """Immutable, case-insensitive HTTP headers with multi-value support.

    Example:
        >>> headers = Headers([(b"Accept-Language", b"de-DE,en;q=0.5")])
        >>> headers.get("accept-language")
        'de-DE,en;q=0.5'
    """

    __slots__ = ("_headers",)

    def __init__(self, raw_headers: list[tuple[bytes, bytes]]) -> None:
        self._headers: list[tuple[str, str]] = [
            (name.decode("latin-1").lower(), value.decode("latin-1"))
            for name, value in raw_headers
        ]

    def get(self, key: str, default: str | None = None) -> str | None:
        """First value for ``key`` (case-insensitive) or ``default``."""
        key_lower = key.lower()
        for name, value in self._headers:
            if name == key_lower:
                return value
        return default

    def getlist(self, key: str) -> list[str]:
        key_lower = key.lower()
        return [value for name, value in self._headers if name == key_lower]

    def items(self) -> list[tuple[str, str]]:
        return list(self._headers)

    def __getitem__(self, key: str) -> str:
        value = self.get(key)
        if value is None:
            raise KeyError(key)
        return value

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, str):
            return False
        return self.get(key) is not None

    def __iter__(self) -> Iterator[str]:
        seen: dict[str, None] = {}
        for name, _ in self._headers:
            seen.setdefault(name, None)
        return iter(seen)

    def __len__(self) -> int:
        return len(self._headers)

    def __repr__(self) -> str:
        return f"Headers({self._headers!r})"


def headers_from_scope(scope: Mapping[str, Any]) -> Headers:
    """Create Headers from the ``headers`` entry of an ASGI scope."""
    return Headers(scope.get("headers", []))


class QueryParams:
    """Parsed ``key=value`` fields with multi-value support.

    Blank values are kept: ``?flag`` and ``?flag=`` both make ``"flag" in
    params`` true, which is what presence-based boolean fields rely on.
    """

    __slots__ = ("_params",)

    encoding = "latin-1"

    def __init__(self, data: bytes | str = b"") -> None:
        if isinstance(data, bytes):
            data = data.decode(self.encoding)
        self._params: dict[str, list[str]] = parse_qs(data, keep_blank_values=True)

    def get(self, key: str, default: str | None = None) -> str | None:
        values = self._params.get(key)
        if values:
            return values[0]
        return default

    def getlist(self, key: str) -> list[str]:
        return list(self._params.get(key, []))

    def keys(self) -> list[str]:
        return list(self._params)

    def items(self) -> list[tuple[str, str]]:
        return [(k, v[0]) for k, v in self._params.items() if v]

    def multi_items(self) -> list[tuple[str, str]]:
        return [(key, value) for key, values in self._params.items() for value in values]

    def __getitem__(self, key: str) -> str:
        value = self.get(key)
        if value is None:
            raise KeyError(key)
        return value

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, str):
            return False
        return key in self._params

    def __iter__(self) -> Iterator[str]:
        return iter(self._params)

    def __len__(self) -> int:
        return len(self._params)

    def __bool__(self) -> bool:
        return bool(self._params)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.multi_items()!r})"


class FormData(QueryParams):
    """Fields of an urlencoded request body (decoded as UTF-8)."""

    __slots__ = ()

    encoding = "utf-8"


class State:
    """Request-scoped state container with attribute access.

    Missing attributes raise ``AttributeError``.
    """

    __slots__ = ("_state",)

    def __init__(self) -> None:
        object.__setattr__(self, "_state", {})

    def __setattr__(self, name: str, value: Any) -> None:
        self._state[name] = value

    def __getattr__(self, name: str) -> Any:
        try:
            return self._state[name]
        except KeyError:
            raise AttributeError(f"State has no attribute '{name}'") from None

    def __delattr__(self, name: str) -> None:
        try:
            del self._state[name]
        except KeyError:
            raise AttributeError(f"State has no attribute '{name}'") from None

    def __contains__(self, name: object) -> bool:
        if not isinstance(name, str):
            return False
        return name in self._state

    def __repr__(self) -> str:
        return f"State({self._state!r})"
