"""
OAuth token lifecycle for the Auth API v2.

Provides PKCE-based account creation and activation, cache-policy driven
token retrieval with refresh, legacy v1 token migration and logout.

Example (anonymous account):
    >>> from services_kit.core.oauth import (
    ...     DefaultOAuthClient, HttpxOAuthService, InMemoryTokenStorage,
    ...     OAuthClientConfig, TokensCachePolicy, build_async_client,
    ... )
    >>> config = OAuthClientConfig()
    >>> async with build_async_client(config.base_url) as http:
    ...     client = DefaultOAuthClient(
    ...         token_storage=InMemoryTokenStorage(),
    ...         auth_service=HttpxOAuthService(http, config),
    ...         config=config,
    ...     )
    ...     tokens = await client.get_tokens(TokensCachePolicy.CREATE_IF_NEEDED)

Example (entitlements):
    >>> tokens.decoded_access_token.has_entitlement(SubscriptionEntitlement.NETWORK_PROTECTION)
    True
"""

from .client import DefaultOAuthClient, OTPSession
from .config import OAuthClientConfig
from .exceptions import (
    AccountCreationError,
    AuthAPIError,
    InternalOAuthError,
    InvalidResponseCodeError,
    MissingRefreshTokenError,
    MissingResponseValueError,
    MissingTokensError,
    NetworkError,
    OAuthClientError,
    OAuthError,
    OAuthServiceError,
    RefreshTokenExpiredError,
    TokenPayloadError,
    UnauthenticatedError,
    ValidationError,
)
from .http_client import HttpClientConfig, build_async_client
from .jwt import (
    Entitlement,
    JWTAccessToken,
    JWTRefreshToken,
    SubscriptionEntitlement,
    TokenVerifier,
    parse_jwt_claims,
)
from .pkce import PkceCodes, generate_pkce
from .service import (
    AuthAPIErrorCode,
    ConfirmEditAccountResponse,
    EditAccountResponse,
    HttpxOAuthService,
    OAuthService,
    OAuthTokenResponse,
)
from .storage import (
    InMemoryLegacyTokenStorage,
    InMemoryTokenStorage,
    LegacyTokenStorage,
    TokenStorage,
)
from .tokens import TokenContainer, TokensCachePolicy

__all__ = [
    # Manager
    "DefaultOAuthClient",
    "OTPSession",
    "OAuthClientConfig",
    "TokensCachePolicy",
    "TokenContainer",
    # Transport
    "OAuthService",
    "HttpxOAuthService",
    "OAuthTokenResponse",
    "EditAccountResponse",
    "ConfirmEditAccountResponse",
    "AuthAPIErrorCode",
    "HttpClientConfig",
    "build_async_client",
    # Tokens
    "JWTAccessToken",
    "JWTRefreshToken",
    "Entitlement",
    "SubscriptionEntitlement",
    "TokenVerifier",
    "parse_jwt_claims",
    "PkceCodes",
    "generate_pkce",
    # Storage
    "TokenStorage",
    "LegacyTokenStorage",
    "InMemoryTokenStorage",
    "InMemoryLegacyTokenStorage",
    # Exceptions
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
