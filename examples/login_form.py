#!/usr/bin/env python
# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""
Login form with sessions, validation and error redisplay.

Run with:
    python examples/login_form.py

Then visit:
    http://127.0.0.1:8000/
"""

from __future__ import annotations

from genro_web import (
    MemorySessionStore,
    SessionVar,
    UrlRouter,
    error_display,
    redirect,
    register_web_interface,
    terminate_session,
    validate_email,
)

FORM = """<form method="post" action="/login">
<p>{error}</p>
<input name="email" placeholder="email">
<input name="password" type="password">
<button>Login</button>
</form>"""


class LoginService:
    user = SessionVar("user", default="")

    def index(self) -> str:
        if not self.user:
            redirect("/login")
            return ""
        return f"Welcome {self.user}. POST /logout to leave."

    def get_login(self, _error: str | None = None) -> str:
        return FORM.format(error=_error or "")

    @validate_email("email")
    @error_display(get_login)
    def post_login(self, email: str, password: str) -> None:
        if password != "secret":
            raise ValueError("Wrong password.")
        self.user = email
        redirect("/")

    def post_logout(self) -> None:
        terminate_session()
        redirect("/login")


if __name__ == "__main__":
    router = UrlRouter(session_store=MemorySessionStore())
    register_web_interface(router, LoginService())
    router.run()
