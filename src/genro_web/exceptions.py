# Copyright 2025 Softwell S.r.l.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Exception classes for genro-web request dispatch.

Two families live here:

1. HTTP exceptions (``HTTPException`` and its status-specific subclasses).
   Raised by handlers or by the dispatch pipeline, converted to responses by
   ``ErrorMiddleware``.
2. The dispatch failure taxonomy. Each failure is also an HTTP exception with
   the status the pipeline answers with when nothing intercepts it:

   ==========================  ======  =====================================
   Failure                     Status  Intercepted by ``@error_display``
   ==========================  ======  =====================================
   ``BindingFailure``          400     yes
   ``ValidationFailure``       400     yes
   ``AuthenticationFailure``   401     no
   ``AuthorizationFailure``    403     no
   ==========================  ======  =====================================

``RegistrationError`` is not an HTTP exception: it is raised while building
the route table and never occurs while serving a request.

Example:
    >>> raise HTTPException(404, detail="User not found")
    >>> raise BindingFailure("username", "Missing parameter username")
"""

from __future__ import annotations

__all__ = [
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
]


class HTTPException(Exception):
    """
    HTTP exception with status code and detail.

    Attributes:
        status_code: HTTP status code (expected 4xx or 5xx, not validated)
        detail: Error detail message
        headers: Response headers as list of tuples (supports duplicate names)
    """

    def __init__(
        self,
        status_code: int,
        detail: str = "",
        headers: dict[str, str] | list[tuple[str, str]] | None = None,
    ) -> None:
        self.status_code = status_code
        self.detail = detail
        if headers is None:
            self.headers: list[tuple[str, str]] | None = None
        elif isinstance(headers, dict):
            self.headers = list(headers.items())
        else:
            self.headers = list(headers)
        super().__init__(detail)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(status_code={self.status_code}, detail={self.detail!r})"


class HTTPBadRequest(HTTPException):
    """HTTP 400 Bad Request exception."""

    def __init__(self, detail: str = "Bad request") -> None:
        super().__init__(400, detail=detail)


class HTTPUnauthorized(HTTPException):
    """HTTP 401 Unauthorized exception."""

    def __init__(self, detail: str = "Unauthorized") -> None:
        super().__init__(401, detail=detail)


class HTTPForbidden(HTTPException):
    """HTTP 403 Forbidden exception."""

    def __init__(self, detail: str = "Forbidden") -> None:
        super().__init__(403, detail=detail)


class HTTPNotFound(HTTPException):
    """HTTP 404 Not Found exception."""

    def __init__(self, detail: str = "Not found") -> None:
        super().__init__(404, detail=detail)


class HTTPMethodNotAllowed(HTTPException):
    """HTTP 405 Method Not Allowed exception."""

    def __init__(self, allowed: list[str], detail: str = "Method not allowed") -> None:
        super().__init__(405, detail=detail, headers={"Allow": ", ".join(allowed)})
        self.allowed = allowed


class Redirect(HTTPException):
    """HTTP redirect exception. Raises 302 redirect by default."""

    def __init__(self, url: str, status_code: int = 302) -> None:
        super().__init__(status_code, headers={"Location": url})
        self.url = url

    def __repr__(self) -> str:
        return f"Redirect(url={self.url!r}, status_code={self.status_code})"


class BindingFailure(HTTPBadRequest):
    """A request parameter is missing or could not be converted.

    Attributes:
        field: Name of the handler parameter that failed (``"items"`` for
            a failure on field ``items_2``).
    """

    def __init__(self, field: str | None, detail: str) -> None:
        super().__init__(detail)
        self.field = field

    def __repr__(self) -> str:
        return f"BindingFailure(field={self.field!r}, detail={self.detail!r})"


class ValidationFailure(HTTPBadRequest):
    """A bound parameter violates a declared validation rule."""

    def __init__(self, field: str | None, detail: str) -> None:
        super().__init__(detail)
        self.field = field

    def __repr__(self) -> str:
        return f"ValidationFailure(field={self.field!r}, detail={self.detail!r})"


class AuthenticationFailure(HTTPUnauthorized):
    """The authenticate step of an authorized interface failed."""


class AuthorizationFailure(HTTPForbidden):
    """A role expression evaluated to false for the authenticated caller."""

    def __init__(self, detail: str = "Not allowed to access this resource.") -> None:
        super().__init__(detail)


class RegistrationError(Exception):
    """Inconsistent handler declaration detected while building the route table."""


class ConversionError(ValueError):
    """A string value cannot be converted to the requested type."""
