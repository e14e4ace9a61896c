# Copyright 2025 Softwell S.r.l.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     https://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Tests for sessions and SessionVar."""

from typing import Any

import pytest

from genro_web import HttpRequest, MemorySessionStore, Session, SessionStore, SessionVar
from genro_web.context import RequestContext, bind_context, reset_context


class Profile:
    user_name = SessionVar("user_name", default="guest")
    visits = SessionVar(default=0)
    tags = SessionVar("tags", default=[])


def make_request(store: MemorySessionStore | None, cookie: str | None = None) -> HttpRequest:
    headers: list[tuple[bytes, bytes]] = []
    if cookie:
        headers.append((b"cookie", cookie.encode()))
    return HttpRequest({"type": "http", "path": "/", "headers": headers}, session_store=store)


class dispatching:
    """Bind a request context for the duration of a with block."""

    def __init__(self, request: HttpRequest) -> None:
        self.request = request
        self.token: Any = None

    def __enter__(self) -> HttpRequest:
        self.token = bind_context(RequestContext(self.request, self.request.response))
        return self.request

    def __exit__(self, *exc: Any) -> None:
        reset_context(self.token)


class TestSession:
    """Tests for Session."""

    def test_get_set(self) -> None:
        """Values are stored by key."""
        session = Session("abc")
        assert session.get("x") is None
        assert session.get("x", 1) == 1
        session.set("x", 2)
        assert session.get("x") == 2
        assert session.is_set("x")
        assert "x" in session
        assert "y" not in session

    def test_initial_data_is_copied(self) -> None:
        """Initial data is copied into the session."""
        data = {"a": 1}
        session = Session("abc", data)
        session.set("a", 2)
        assert data == {"a": 1}


class TestMemorySessionStore:
    """Tests for MemorySessionStore."""

    def test_is_session_store(self) -> None:
        """The memory store implements the store interface."""
        assert isinstance(MemorySessionStore(), SessionStore)

    def test_create_open_destroy(self) -> None:
        """Sessions can be created, opened and destroyed."""
        store = MemorySessionStore()
        session = store.create()
        assert len(store) == 1
        assert store.open(session.id) is session
        store.destroy(session.id)
        assert store.open(session.id) is None
        store.destroy(session.id)
        assert len(store) == 0

    def test_ids_are_unique(self) -> None:
        """Every session gets its own id."""
        store = MemorySessionStore()
        assert store.create().id != store.create().id


class TestSessionVar:
    """Tests for SessionVar."""

    def test_class_access_returns_descriptor(self) -> None:
        """Accessing on the class returns the descriptor itself."""
        assert isinstance(Profile.user_name, SessionVar)
        assert Profile.visits.name == "visits"

    def test_outside_dispatch(self) -> None:
        """Using a SessionVar outside a dispatch raises RuntimeError."""
        with pytest.raises(RuntimeError):
            Profile().user_name

    def test_read_starts_session_and_stores_default(self) -> None:
        """First read starts a session and stores the default."""
        store = MemorySessionStore()
        with dispatching(make_request(store)) as request:
            assert Profile().user_name == "guest"
            assert request.session is not None
            assert request.session.get("user_name") == "guest"
            assert request.response.get_header("set-cookie") is not None

    def test_write_then_read(self) -> None:
        """Written values are read back from the session."""
        store = MemorySessionStore()
        with dispatching(make_request(store)) as request:
            profile = Profile()
            profile.visits = 3
            assert profile.visits == 3
            assert request.session is not None
            session_id = request.session.id
        with dispatching(make_request(store, f"genro_session={session_id}")) as request:
            assert Profile().visits == 3
            assert request.response.get_header("set-cookie") is None

    def test_without_store(self) -> None:
        """Without a session store, starting a session fails."""
        with dispatching(make_request(None)):
            with pytest.raises(RuntimeError):
                Profile().user_name

    def test_mutable_default_is_copied(self) -> None:
        """Each session stores its own copy of a mutable default."""
        store = MemorySessionStore()
        with dispatching(make_request(store)) as first:
            Profile().tags.append("private")
            assert first.session is not None
            assert first.session.get("tags") == ["private"]
        with dispatching(make_request(store)) as second:
            assert Profile().tags == []
            assert second.session is not None
            assert second.session is not first.session
        assert Profile.tags.default == []
