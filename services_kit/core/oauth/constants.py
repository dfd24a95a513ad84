"""
Centralized constants for the oauth package.

Constants are grouped by:
- Configurable defaults: Values users may want to override
- Protocol constants: Fixed by the Auth API v2 / JWT / PKCE contracts
- Validation limits: Valid ranges for parameters
"""

from __future__ import annotations

# =============================================================================
# CONFIGURABLE DEFAULTS
# =============================================================================
# These values can be overridden via OAuthClientConfig or environment variables.


class OAuthClientDefaults:
    """Client registration used against the Auth API v2.

    These values identify the application to the auth server and must
    match the registered client configuration.
    """

    CLIENT_ID = "f4311287-0121-40e6-8bbd-85c36daf1837"
    REDIRECT_URI = "com.duckduckgo:/authcb"
    SCOPE = "privacypro"
    BASE_URL = "https://quack.duckduckgo.com"


class HttpDefaults:
    """Default values for the HTTP transport."""

    REQUEST_TIMEOUT = 30  # seconds
    MAX_RETRIES = 3
    RETRY_BASE_DELAY = 1.0  # seconds, doubled per attempt


class TokenExpiryDefaults:
    """Token expiry handling.

    A token is expired once ``exp <= now + leeway``. The default leeway
    is zero, so expiry is checked exactly.
    """

    LEEWAY_SECONDS = 0


# =============================================================================
# PROTOCOL CONSTANTS
# =============================================================================


class AuthEndpoints:
    """Auth API v2 paths, relative to the base URL."""

    AUTHORIZE = "/api/auth/v2/authorize"
    CREATE_ACCOUNT = "/api/auth/v2/account/create"
    EDIT_ACCOUNT = "/api/auth/v2/account/edit"
    CONFIRM_EDIT_ACCOUNT = "/api/auth/v2/account/edit/confirm"
    SEND_OTP = "/api/auth/v2/otp"
    LOGIN = "/api/auth/v2/login"
    TOKEN = "/api/auth/v2/token"
    LOGOUT = "/api/auth/v2/logout"
    EXCHANGE = "/api/auth/v2/exchange"
    JWKS = "/api/auth/v2/.well-known/jwks.json"


class AuthProtocol:
    """Wire-level names used by the Auth API v2."""

    SESSION_COOKIE = "ddg_auth_session_id"
    CODE_QUERY_PARAM = "code"

    RESPONSE_TYPE_CODE = "code"
    GRANT_TYPE_AUTHORIZATION_CODE = "authorization_code"
    GRANT_TYPE_REFRESH_TOKEN = "refresh_token"

    LOGIN_METHOD_OTP = "otp"
    LOGIN_METHOD_SIGNATURE = "signature"
    SIGNATURE_SOURCE = "apple_store"

    # HTTP status codes the API answers with
    STATUS_OK = 200
    STATUS_FOUND = 302
    STATUS_BAD_REQUEST = 400
    STATUS_UNAUTHORIZED = 401
    STATUS_INTERNAL_SERVER_ERROR = 500


class JwtProtocol:
    """JWT claim values expected on tokens issued by the Auth API."""

    ACCESS_TOKEN_SCOPE = "privacypro"
    REFRESH_TOKEN_SCOPE = "refresh"
    JWT_PART_COUNT = 2  # Number of dots in a JWT (header.payload.signature)


class PkceProtocol:
    """PKCE constants (RFC 7636)."""

    CODE_VERIFIER_BYTES = 64  # hex encoded -> 128 chars
    CHALLENGE_METHOD = "S256"


# =============================================================================
# VALIDATION LIMITS
# =============================================================================


class ValidationLimits:
    """Valid ranges for configurable parameters."""

    MIN_TIMEOUT = 1
    MAX_TIMEOUT = 300
    MIN_RETRIES = 0
    MAX_RETRIES = 10
    MIN_LEEWAY = 0
    MAX_LEEWAY = 3600


__all__ = [
    "OAuthClientDefaults",
    "HttpDefaults",
    "TokenExpiryDefaults",
    "AuthEndpoints",
    "AuthProtocol",
    "JwtProtocol",
    "PkceProtocol",
    "ValidationLimits",
]
