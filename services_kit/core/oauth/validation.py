"""
Argument checks for the oauth package.

Each check raises ValidationError naming the field, the broken
constraint and the value that was passed in.

Example:
    >>> validate_range(0, "timeout", min_value=1)
    ValidationError: Invalid 'timeout': must be at least 1 (got 0)
"""

from __future__ import annotations

import re
import urllib.parse

from .exceptions import ValidationError

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _type_name(kind: type | tuple[type, ...]) -> str:
    if isinstance(kind, tuple):
        return " or ".join(k.__name__ for k in kind)
    return kind.__name__


def validate_string(value: object, field_name: str) -> str:
    """Return ``value`` if it is a non-empty string.

    Credentials (signatures, one-time passwords, legacy tokens) and
    client registration fields all go through this check.
    """
    if not isinstance(value, str):
        raise ValidationError(field_name, value, f"must be str, got {type(value).__name__}")
    if not value:
        raise ValidationError(field_name, value, "must be a non-empty string")
    return value


def validate_instance(value: object, base: type, field_name: str) -> None:
    """Check that a collaborator implements the expected interface.

    Example:
        >>> validate_instance("not-a-store", TokenStorage, "token_storage")
        ValidationError: Invalid 'token_storage': must be an instance of TokenStorage, got str
    """
    if not isinstance(value, base):
        raise ValidationError(
            field_name, value, f"must be an instance of {base.__name__}, got {type(value).__name__}"
        )


def validate_range(
    value: float,
    field_name: str,
    min_value: float | None = None,
    max_value: float | None = None,
) -> None:
    """Check that a number (bools excluded) lies within ``[min_value, max_value]``."""
    number_types = (int, float)
    if isinstance(value, bool) or not isinstance(value, number_types):
        raise ValidationError(
            field_name, value, f"must be {_type_name(number_types)}, got {type(value).__name__}"
        )
    if min_value is not None and value < min_value:
        raise ValidationError(field_name, value, f"must be at least {min_value}")
    if max_value is not None and value > max_value:
        raise ValidationError(field_name, value, f"must be at most {max_value}")


def validate_url(value: object, field_name: str) -> str:
    """Check for an absolute URL, e.g. the Auth API base URL."""
    url = validate_string(value, field_name)
    parts = urllib.parse.urlsplit(url)
    if not (parts.scheme and parts.netloc):
        raise ValidationError(field_name, value, "URL must have scheme and host")
    return url


def validate_email(value: object, field_name: str = "email") -> str:
    """Basic shape check for an email address (``local@domain.tld``)."""
    email = validate_string(value, field_name)
    if _EMAIL_PATTERN.match(email) is None:
        raise ValidationError(field_name, value, "must be an email address")
    return email


__all__ = [
    "validate_string",
    "validate_instance",
    "validate_range",
    "validate_url",
    "validate_email",
]
