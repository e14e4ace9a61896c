#!/usr/bin/env python
# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""
Chat service with token authentication and role-based access.

Run with:
    python examples/chat_service.py

Then try:
    curl http://127.0.0.1:8000/
    curl -H "AuthToken: foobar" -H "AuthUser: macy" http://127.0.0.1:8000/overview
    curl -H "AuthToken: foobar" -H "AuthUser: macy" "http://127.0.0.1:8000/chatroom_history?chat_room=0"
    curl -H "AuthToken: foobar" -H "AuthUser: macy" "http://127.0.0.1:8000/chatroom_history?chat_room=1"
"""

from __future__ import annotations

import logging

from genro_web import (
    HTTPUnauthorized,
    HttpRequest,
    Response,
    Role,
    UrlRouter,
    any_auth,
    auth,
    authorized,
    middleware_chain,
    no_auth,
    register_web_interface,
)

HISTORY = {0: ["macy: hi", "peter: hello"], 1: ["tom: admins only"]}


class ChatAuthInfo:
    def __init__(self, user_name: str) -> None:
        self.user_name = user_name

    @classmethod
    def authenticate(cls, service: ChatWebService, request: HttpRequest, response: Response) -> ChatAuthInfo:
        if request.headers.get("authtoken") == "foobar":
            return cls(request.headers.get("authuser") or "anonymous")
        raise HTTPUnauthorized("Missing or invalid AuthToken header")

    def is_admin(self) -> bool:
        return self.user_name == "tom"

    def is_room_member(self, chat_room: int) -> bool:
        return chat_room == 0 and self.user_name in ("macy", "peter")


@authorized(ChatAuthInfo)
class ChatWebService:
    @no_auth
    def index(self) -> str:
        return "Send AuthToken and AuthUser headers to log in."

    @any_auth
    def get_overview(self, info: ChatAuthInfo) -> dict:
        return {"user": info.user_name, "rooms": sorted(HISTORY)}

    @auth(Role.admin | Role.room_member)
    def get_chatroom_history(self, chat_room: int) -> list:
        return HISTORY.get(chat_room, [])


if __name__ == "__main__":
    logging.basicConfig(level=logging.DEBUG)
    router = UrlRouter()
    register_web_interface(router, ChatWebService())
    app = middleware_chain({"logging": True}, router)
    import uvicorn

    uvicorn.run(app, host="127.0.0.1", port=8000)
