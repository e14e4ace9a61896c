# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Field validation attributes.

Validation runs after all parameters are bound and before authorization::

    class WebService:
        @validate_email("email")
        @validate_password("password", "password_confirm")
        def post_register(self, email: str, password: str, password_confirm: str) -> None:
            ...

A failed rule raises ``ValidationFailure`` carrying the validated parameter
name, which goes through ``@error_display`` like a binding failure.
Referencing a parameter the handler does not declare is a registration error.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Mapping, TypeVar

from .attributes import handler_attributes
from .exceptions import ValidationFailure

__all__ = [
    "ValidationKind",
    "ValidationRule",
    "validate_email",
    "validate_password",
    "check_email",
    "check_password",
]

F = TypeVar("F", bound=Callable[..., Any])

PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 64
EMAIL_MAX_LENGTH = 64

_LOCAL_PART = re.compile(r"^[A-Za-z0-9!#$%&'*+/=?^_`{|}~.-]+$")
_DOMAIN_LABEL = re.compile(r"^[A-Za-z0-9](?:[A-Za-z0-9-]*[A-Za-z0-9])?$")


class ValidationKind(str, Enum):
    EMAIL = "email"
    PASSWORD = "password"


@dataclass(frozen=True)
class ValidationRule:
    """One validation attribute of a handler."""

    kind: ValidationKind
    parameter: str
    confirmation: str | None = None

    @property
    def parameters(self) -> tuple[str, ...]:
        if self.confirmation is None:
            return (self.parameter,)
        return (self.parameter, self.confirmation)

    def check(self, values: Mapping[str, Any]) -> None:
        """Apply the rule to bound values, raising ``ValidationFailure``."""
        try:
            if self.kind is ValidationKind.EMAIL:
                check_email(values[self.parameter])
            else:
                check_password(values[self.parameter], values[self.confirmation])  # type: ignore[index]
        except ValueError as exc:
            raise ValidationFailure(self.parameter, str(exc)) from exc


def check_email(address: str | None) -> str:
    """Validate an email address, returning it unchanged.

    Raises:
        ValueError: With a user readable message.
    """
    if not address:
        raise ValueError("The email address is missing.")
    if len(address) > EMAIL_MAX_LENGTH:
        raise ValueError(f"The email address is longer than {EMAIL_MAX_LENGTH} characters.")
    local, at, domain = address.rpartition("@")
    if not at or not local or not domain:
        raise ValueError("The email address is missing the '@' separator.")
    if not _LOCAL_PART.match(local) or local.startswith(".") or ".." in local:
        raise ValueError("The email address contains invalid characters before the '@'.")
    labels = domain.split(".")
    if len(labels) < 2 or not all(_DOMAIN_LABEL.match(label) for label in labels):
        raise ValueError("The email address has an invalid domain.")
    return address


def check_password(password: str | None, confirmation: str | None) -> str:
    """Validate a password and its confirmation, returning the password.

    Raises:
        ValueError: With a user readable message.
    """
    password = password or ""
    if len(password) < PASSWORD_MIN_LENGTH:
        raise ValueError(f"The password must be at least {PASSWORD_MIN_LENGTH} characters long.")
    if len(password) > PASSWORD_MAX_LENGTH:
        raise ValueError(f"The password must not be longer than {PASSWORD_MAX_LENGTH} characters.")
    if password != confirmation:
        raise ValueError("The password and its confirmation do not match.")
    return password


def _add_rule(func: Callable[..., Any], rule: ValidationRule) -> None:
    handler_attributes(func).setdefault("validators", []).insert(0, rule)


def validate_email(parameter: str) -> Callable[[F], F]:
    """Require ``parameter`` to be a valid email address."""

    def decorator(func: F) -> F:
        _add_rule(func, ValidationRule(ValidationKind.EMAIL, parameter))
        return func

    return decorator


def validate_password(parameter: str, confirmation: str) -> Callable[[F], F]:
    """Require ``parameter`` to be a valid password equal to ``confirmation``."""

    def decorator(func: F) -> F:
        _add_rule(func, ValidationRule(ValidationKind.PASSWORD, parameter, confirmation))
        return func

    return decorator


if __name__ == "__main__":
    pass
