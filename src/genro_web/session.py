# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Sessions: key/value storage shared by the requests of one client.

The session store is an external collaborator; this module defines the narrow
interface the dispatch core uses and an in-memory implementation suitable for
tests and single-process servers.

Handlers never touch the store directly. They go through the request/response
handles (``request.session``, ``response.start_session()``,
``response.terminate_session()``) or through ``SessionVar``::

    class WebService:
        login_user = SessionVar("login_user", default="")

        def post_login(self, username: str) -> None:
            self.login_user = username
            redirect("/profile")
"""

from __future__ import annotations

import copy
import secrets
import threading
from abc import ABC, abstractmethod
from typing import Any, Generic, TypeVar

__all__ = ["Session", "SessionStore", "MemorySessionStore", "SessionVar"]

T = TypeVar("T")


class Session:
    """Key/value data of one client session."""

    __slots__ = ("id", "_data", "_lock")

    def __init__(self, session_id: str, data: dict[str, Any] | None = None) -> None:
        self.id = session_id
        self._data: dict[str, Any] = dict(data or {})
        self._lock = threading.Lock()

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._data[key] = value

    def is_set(self, key: str) -> bool:
        with self._lock:
            return key in self._data

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.is_set(key)

    def __repr__(self) -> str:
        return f"Session(id={self.id!r}, keys={sorted(self._data)!r})"


class SessionStore(ABC):
    """Backend that creates, looks up and destroys sessions."""

    @abstractmethod
    def create(self) -> Session:
        """Create and remember a new empty session."""

    @abstractmethod
    def open(self, session_id: str) -> Session | None:
        """Return the session for ``session_id`` or None if unknown."""

    @abstractmethod
    def destroy(self, session_id: str) -> None:
        """Forget a session. Unknown ids are ignored."""


class MemorySessionStore(SessionStore):
    """Process-local session store backed by a dict."""

    __slots__ = ("_sessions", "_lock")

    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}
        self._lock = threading.Lock()

    def create(self) -> Session:
        session = Session(secrets.token_urlsafe(32))
        with self._lock:
            self._sessions[session.id] = session
        return session

    def open(self, session_id: str) -> Session | None:
        with self._lock:
            return self._sessions.get(session_id)

    def destroy(self, session_id: str) -> None:
        with self._lock:
            self._sessions.pop(session_id, None)

    def __len__(self) -> int:
        return len(self._sessions)


class SessionVar(Generic[T]):
    """Class attribute mapped to a field of the current request's session.

    Reading or writing the attribute starts a session if none is active. On
    first read a deep copy of ``default`` is stored in the session and returned,
    so sessions never share a mutable default.
    Only usable while a web interface request is being dispatched.
    """

    __slots__ = ("name", "default")

    def __init__(self, name: str | None = None, default: T | None = None) -> None:
        self.name = name
        self.default = default

    def __set_name__(self, owner: type, attr_name: str) -> None:
        if self.name is None:
            self.name = attr_name

    def _session(self) -> Session:
        from .context import current_context

        ctx = current_context()
        session = ctx.request.session
        if session is None:
            session = ctx.response.start_session()
        return session

    def __get__(self, instance: Any, owner: type | None = None) -> Any:
        if instance is None:
            return self
        session = self._session()
        assert self.name is not None
        if session.is_set(self.name):
            return session.get(self.name)
        value = copy.deepcopy(self.default)
        session.set(self.name, value)
        return value

    def __set__(self, instance: Any, value: T) -> None:
        assert self.name is not None
        self._session().set(self.name, value)

    def __repr__(self) -> str:
        return f"SessionVar(name={self.name!r}, default={self.default!r})"
