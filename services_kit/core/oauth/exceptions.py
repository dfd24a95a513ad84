"""
Errors raised by the oauth package.

Everything derives from OAuthError. Below it sit three families:

- OAuthClientError: token lifecycle failures raised by the client
  (missing tokens, dead refresh token, account creation failure)
- OAuthServiceError: Auth API transport failures (unexpected status
  code, API error bodies, missing response values)
- TokenPayloadError: a token failed signature or claim verification

Every error exposes ``requires_reauthentication``. When True the stored
credentials cannot be recovered without user interaction; when False the
failure is temporary and the same call may succeed later.

Example:
    >>> try:
    ...     tokens = await client.get_tokens(TokensCachePolicy.LOCAL_VALID)
    ... except OAuthError as e:
    ...     if e.requires_reauthentication:
    ...         show_sign_in()
"""

from __future__ import annotations


class OAuthError(Exception):
    """Base exception for all oauth errors."""

    requires_reauthentication: bool = False


class ValidationError(OAuthError):
    """An argument or config field was rejected before any network call.

    ``field``, ``value`` and ``message`` are kept as attributes so callers
    can point at the offending setting.

    Example:
        >>> OAuthClientConfig(client_id="")
        ValidationError: Invalid 'client_id': must be a non-empty string (got '')
    """

    def __init__(self, field: str, value: object, message: str) -> None:
        self.field = field
        self.value = value
        self.message = message
        super().__init__(f"Invalid {field!r}: {message} (got {value!r})")

    def __repr__(self) -> str:
        return (
            f"ValidationError(field={self.field!r}, value={self.value!r}, message={self.message!r})"
        )


# =============================================================================
# Client errors
# =============================================================================


class OAuthClientError(OAuthError):
    """Raised by the token manager for token lifecycle failures."""


class InternalOAuthError(OAuthClientError):
    """Unexpected internal state, e.g. a transport returned unusable data."""

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(f"Internal error: {detail}")


class MissingTokensError(OAuthClientError):
    """No token container is stored locally."""

    requires_reauthentication = True

    def __init__(self, message: str = "No token available") -> None:
        super().__init__(message)


class MissingRefreshTokenError(MissingTokensError):
    """A refresh was requested but no refresh token is stored."""

    def __init__(self) -> None:
        super().__init__("No refresh token available, please re-authenticate")


class UnauthenticatedError(OAuthClientError):
    """An operation on the signed-in account was requested with no account stored."""

    requires_reauthentication = True

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(f"Cannot {operation}: not authenticated")


class RefreshTokenExpiredError(OAuthClientError):
    """Both access and refresh token are expired and cannot be recovered.

    The stored container is left untouched, so every subsequent refresh
    attempt raises this error again until the caller re-authenticates
    (``activate``, ``create_account``) or logs out.
    """

    requires_reauthentication = True

    def __init__(self) -> None:
        super().__init__(
            "The refresh token is expired, the token is unrecoverable please re-authenticate"
        )


class AccountCreationError(OAuthClientError):
    """Creating a new account failed. The cause is chained via ``__cause__``."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Account creation failed: {reason}")


# =============================================================================
# Service errors
# =============================================================================


class OAuthServiceError(OAuthError):
    """Raised by an OAuthService implementation for transport failures."""


class InvalidResponseCodeError(OAuthServiceError):
    """The API answered with a status code the endpoint does not document.

    Attributes:
        status_code: HTTP status code received (0 for network errors)
    """

    def __init__(self, status_code: int, url: str = "") -> None:
        self.status_code = status_code
        self.url = url
        suffix = f" for {url}" if url else ""
        super().__init__(f"Invalid response code {status_code}{suffix}")


class MissingResponseValueError(OAuthServiceError):
    """A required cookie, header, query item or body field was absent."""

    def __init__(self, value_name: str) -> None:
        self.value_name = value_name
        super().__init__(f"Missing response value: {value_name}")


class AuthAPIError(OAuthServiceError):
    """The API answered with an error body: ``{"error": "<code>"}``.

    Attributes:
        code: The error code string, see AuthAPIErrorCode
        description: Human-readable description of the code
    """

    def __init__(self, code: str, description: str) -> None:
        self.code = code
        self.description = description
        super().__init__(f"{code}: {description}")


class NetworkError(OAuthServiceError):
    """The request never produced an HTTP response (DNS, timeout, reset)."""

    def __init__(self, url: str, reason: str) -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"Network error for {url}: {reason}")


# =============================================================================
# Verification errors
# =============================================================================


class TokenPayloadError(OAuthError):
    """A token failed signature or claim verification.

    Attributes:
        reason: One of ``invalid_token_scope``, ``invalid_signature``,
            ``malformed``, ``missing_signing_key``
    """

    requires_reauthentication = True

    INVALID_TOKEN_SCOPE = "invalid_token_scope"
    INVALID_SIGNATURE = "invalid_signature"
    MALFORMED = "malformed"
    MISSING_SIGNING_KEY = "missing_signing_key"

    def __init__(self, reason: str, detail: str = "") -> None:
        self.reason = reason
        self.detail = detail
        message = f"Token verification failed: {reason}"
        if detail:
            message += f" ({detail})"
        super().__init__(message)


__all__ = [
    "OAuthError",
    "ValidationError",
    "OAuthClientError",
    "InternalOAuthError",
    "MissingTokensError",
    "MissingRefreshTokenError",
    "UnauthenticatedError",
    "RefreshTokenExpiredError",
    "AccountCreationError",
    "OAuthServiceError",
    "InvalidResponseCodeError",
    "MissingResponseValueError",
    "AuthAPIError",
    "NetworkError",
    "TokenPayloadError",
]
