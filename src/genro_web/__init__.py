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

"""genro-web - Web interfaces: HTTP routes from annotated handler classes.

Main components:
    register_web_interface: Builds the route table of a handler instance and
        registers it with a router
    UrlRouter: Verb + pattern router, usable as an ASGI application
    HttpRequest / Response: Request and response handles
    WebInterfaceSettings: URL prefix, method style, renderer

Handler attributes:
    method, path, content_type, error_display, before, after, no_route
    validate_email, validate_password
    authorized, auth, any_auth, no_auth, Role
    translation_context

Inside handlers:
    redirect, terminate_session, trweb, render, current_context, SessionVar

Usage:
    from genro_web import UrlRouter, register_web_interface

    class WebService:
        def index(self) -> str:
            return "Hello"

    router = UrlRouter()
    register_web_interface(router, WebService())
    router.run()  # Starts uvicorn
"""

__version__ = "0.1.0"

from .attributes import after, before, content_type, error_display, method, no_route, path
from .auth import (
    AuthorizationPolicy,
    PolicyKind,
    Role,
    RoleExpression,
    all_of,
    any_auth,
    any_of,
    auth,
    authorized,
    no_auth,
)
from .config import ConfigError, WebInterfaceSettings, load_settings
from .context import RequestContext, current_context, redirect, render, terminate_session, trweb
from .datastructures import FormData, Headers, QueryParams, State, headers_from_scope
from .descriptors import (
    ErrorDisplayBinding,
    HandlerDescriptor,
    MethodStyle,
    ParameterDescriptor,
    ReturnKind,
    SourceKind,
)
from .dispatcher import Dispatcher
from .exceptions import (
    AuthenticationFailure,
    AuthorizationFailure,
    BindingFailure,
    ConversionError,
    HTTPBadRequest,
    HTTPException,
    HTTPForbidden,
    HTTPMethodNotAllowed,
    HTTPNotFound,
    HTTPUnauthorized,
    Redirect,
    RegistrationError,
    ValidationFailure,
)
from .i18n import determine_language, translation_context
from .middleware import BaseMiddleware, middleware_chain
from .request import HttpRequest
from .response import Response, make_cookie
from .router import UrlRouter
from .session import MemorySessionStore, Session, SessionStore, SessionVar
from .types import ASGIApp, Endpoint, Message, Receive, Router, Scope, Send
from .validation import validate_email, validate_password
from .web import register_web_interface

__all__ = [
    # Registration
    "register_web_interface",
    "WebInterfaceSettings",
    "load_settings",
    "ConfigError",
    "MethodStyle",
    # Handler attributes
    "method",
    "path",
    "content_type",
    "error_display",
    "before",
    "after",
    "no_route",
    "validate_email",
    "validate_password",
    "translation_context",
    # Authorization
    "authorized",
    "auth",
    "any_auth",
    "no_auth",
    "Role",
    "RoleExpression",
    "any_of",
    "all_of",
    "AuthorizationPolicy",
    "PolicyKind",
    # Descriptors
    "HandlerDescriptor",
    "ParameterDescriptor",
    "ErrorDisplayBinding",
    "SourceKind",
    "ReturnKind",
    "Dispatcher",
    # Handler helpers
    "RequestContext",
    "current_context",
    "redirect",
    "terminate_session",
    "trweb",
    "render",
    "determine_language",
    # Request / response
    "HttpRequest",
    "Response",
    "make_cookie",
    "Headers",
    "QueryParams",
    "FormData",
    "State",
    "headers_from_scope",
    # Sessions
    "Session",
    "SessionStore",
    "MemorySessionStore",
    "SessionVar",
    # Routing
    "UrlRouter",
    "Router",
    "Endpoint",
    "BaseMiddleware",
    "middleware_chain",
    # Exceptions
    "HTTPException",
    "HTTPBadRequest",
    "HTTPUnauthorized",
    "HTTPForbidden",
    "HTTPNotFound",
    "HTTPMethodNotAllowed",
    "Redirect",
    "BindingFailure",
    "ValidationFailure",
    "AuthenticationFailure",
    "AuthorizationFailure",
    "RegistrationError",
    "ConversionError",
    # ASGI types
    "ASGIApp",
    "Message",
    "Receive",
    "Scope",
    "Send",
]
