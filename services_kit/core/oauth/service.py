"""
Auth API v2 transport.

OAuthService is the interface the token manager talks to; it knows
nothing about caching or storage. HttpxOAuthService implements it over an
``httpx.AsyncClient`` (see http_client.build_async_client()).

Every endpoint declares the status code it answers with on success and
the status codes that carry an error body. Anything else raises
InvalidResponseCodeError. Error bodies have the shape
``{"error": "<code>"}`` and become AuthAPIError.
"""

from __future__ import annotations

import abc
import logging
import urllib.parse
from dataclasses import dataclass
from enum import Enum
from typing import Any

import httpx

from .config import OAuthClientConfig
from .constants import AuthEndpoints, AuthProtocol, PkceProtocol
from .exceptions import (
    AuthAPIError,
    InvalidResponseCodeError,
    MissingResponseValueError,
    NetworkError,
)
from .http_client import REPLAYABLE_EXTENSION

_logger = logging.getLogger(__name__)


# =============================================================================
# API error codes
# =============================================================================


class AuthAPIErrorCode(str, Enum):
    """Error codes the Auth API returns in ``{"error": ...}`` bodies."""

    # Authorization / account creation
    INVALID_AUTHORIZATION_REQUEST = "invalid_authorization_request"
    AUTHORIZE_FAILED = "authorize_failed"
    INVALID_REQUEST = "invalid_request"
    ACCOUNT_CREATE_FAILED = "account_create_failed"

    # OTP / login
    INVALID_EMAIL_ADDRESS = "invalid_email_address"
    INVALID_SESSION_ID = "invalid_session_id"
    SUSPENDED_ACCOUNT = "suspended_account"
    EMAIL_SENDING_ERROR = "email_sending_error"
    INVALID_LOGIN_CREDENTIALS = "invalid_login_credentials"
    UNKNOWN_ACCOUNT = "unknown_account"

    # Token endpoint; invalid_token_request on refresh means the refresh token is dead
    INVALID_TOKEN_REQUEST = "invalid_token_request"
    UNVERIFIED_ACCOUNT = "unverified_account"

    # Account edit
    EMAIL_ADDRESS_NOT_CHANGED = "email_address_not_changed"
    FAILED_MX_CHECK = "failed_mx_check"
    ACCOUNT_EDIT_FAILED = "account_edit_failed"
    INVALID_LINK_SIGNATURE = "invalid_link_signature"
    ACCOUNT_CHANGE_EMAIL_ADDRESS_FAILED = "account_change_email_address_failed"

    # Bearer-authenticated endpoints
    INVALID_TOKEN = "invalid_token"
    EXPIRED_TOKEN = "expired_token"

    @property
    def description(self) -> str:
        return AUTH_API_ERROR_DESCRIPTIONS[self]


AUTH_API_ERROR_DESCRIPTIONS = {
    AuthAPIErrorCode.INVALID_AUTHORIZATION_REQUEST: (
        "One or more of the required parameters are missing or any provided parameters "
        "have invalid values"
    ),
    AuthAPIErrorCode.AUTHORIZE_FAILED: (
        "Failed to create the authorization session, either because of a reused code "
        "challenge or internal server error"
    ),
    AuthAPIErrorCode.INVALID_REQUEST: (
        "The ddg_auth_session_id is missing or has already been used to log in to a "
        "different account"
    ),
    AuthAPIErrorCode.ACCOUNT_CREATE_FAILED: (
        "Failed to create the account because of an internal server error"
    ),
    AuthAPIErrorCode.INVALID_EMAIL_ADDRESS: (
        "Provided email address is missing or of an invalid format"
    ),
    AuthAPIErrorCode.INVALID_SESSION_ID: (
        "The session id is missing, invalid or has already been used for logging in"
    ),
    AuthAPIErrorCode.SUSPENDED_ACCOUNT: "The account you are logging in to is suspended",
    AuthAPIErrorCode.EMAIL_SENDING_ERROR: "Failed to send the OTP to the email address provided",
    AuthAPIErrorCode.INVALID_LOGIN_CREDENTIALS: "One or more of the provided parameters is invalid",
    AuthAPIErrorCode.UNKNOWN_ACCOUNT: (
        "The login credentials appear valid but do not link to a known account"
    ),
    AuthAPIErrorCode.INVALID_TOKEN_REQUEST: (
        "One or more of the required parameters are missing or any provided parameters "
        "have invalid values"
    ),
    AuthAPIErrorCode.UNVERIFIED_ACCOUNT: "The token is valid but is for an unverified account",
    AuthAPIErrorCode.EMAIL_ADDRESS_NOT_CHANGED: (
        "New email address is the same as the old email address"
    ),
    AuthAPIErrorCode.FAILED_MX_CHECK: "DNS check to see if email address domain is valid failed",
    AuthAPIErrorCode.ACCOUNT_EDIT_FAILED: "Something went wrong and the edit was aborted",
    AuthAPIErrorCode.INVALID_LINK_SIGNATURE: (
        "The hash is invalid or does not match the provided email address and account"
    ),
    AuthAPIErrorCode.ACCOUNT_CHANGE_EMAIL_ADDRESS_FAILED: (
        "Something went wrong and the edit was aborted"
    ),
    AuthAPIErrorCode.INVALID_TOKEN: "Provided access token is missing or invalid",
    AuthAPIErrorCode.EXPIRED_TOKEN: "Provided access token is expired",
}


def describe_error_code(code: str) -> str:
    try:
        return AuthAPIErrorCode(code).description
    except ValueError:
        return "Missing description"


# =============================================================================
# Response models
# =============================================================================


@dataclass(frozen=True)
class OAuthTokenResponse:
    """Body of a successful ``/token`` call."""

    access_token: str
    refresh_token: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> OAuthTokenResponse:
        for name in ("access_token", "refresh_token"):
            if not isinstance(data.get(name), str) or not data[name]:
                raise MissingResponseValueError(name)
        return cls(access_token=data["access_token"], refresh_token=data["refresh_token"])


@dataclass(frozen=True)
class EditAccountResponse:
    """Body of ``/account/edit``: ``hash`` must be echoed back on confirmation."""

    status: str
    hash: str


@dataclass(frozen=True)
class ConfirmEditAccountResponse:
    """Body of ``/account/edit/confirm``."""

    status: str
    email: str


def _required_fields(response: httpx.Response, *names: str) -> dict[str, str]:
    try:
        body = response.json()
    except ValueError as e:
        raise MissingResponseValueError(f"{names[0]} in response body") from e
    if not isinstance(body, dict):
        raise MissingResponseValueError(f"{names[0]} in response body")
    for name in names:
        if not isinstance(body.get(name), str) or not body[name]:
            raise MissingResponseValueError(name)
    return {name: body[name] for name in names}


# =============================================================================
# Interface
# =============================================================================


class OAuthService(abc.ABC):
    """Auth API v2 operations used by the token manager.

    All methods raise OAuthServiceError subclasses on failure.
    """

    @abc.abstractmethod
    async def authorize(self, code_challenge: str) -> str:
        """Start an authorization session; returns the auth session id."""

    @abc.abstractmethod
    async def create_account(self, auth_session_id: str) -> str:
        """Create an anonymous account; returns an authorization code."""

    @abc.abstractmethod
    async def request_otp(self, auth_session_id: str, email: str) -> None:
        """Email a one-time password for the session."""

    @abc.abstractmethod
    async def login_with_otp(self, auth_session_id: str, email: str, otp: str) -> str:
        """Log in with an emailed OTP; returns an authorization code."""

    @abc.abstractmethod
    async def login_with_signature(self, auth_session_id: str, signature: str) -> str:
        """Log in with a platform purchase signature; returns an authorization code."""

    @abc.abstractmethod
    async def get_access_token(
        self, client_id: str, code_verifier: str, code: str, redirect_uri: str
    ) -> OAuthTokenResponse:
        """Exchange an authorization code for a token pair."""

    @abc.abstractmethod
    async def refresh_access_token(self, client_id: str, refresh_token: str) -> OAuthTokenResponse:
        """Exchange a refresh token for a new token pair."""

    @abc.abstractmethod
    async def exchange_token(self, legacy_access_token: str, auth_session_id: str) -> str:
        """Exchange a v1 access token; returns an authorization code."""

    @abc.abstractmethod
    async def edit_account(
        self, client_id: str, access_token: str, email: str | None
    ) -> EditAccountResponse:
        """Start changing the account email (None removes it); an OTP is emailed."""

    @abc.abstractmethod
    async def confirm_edit_account(
        self, access_token: str, email: str, edit_hash: str, otp: str
    ) -> ConfirmEditAccountResponse:
        """Confirm an email change with the hash from edit_account() and the OTP."""

    @abc.abstractmethod
    async def logout(self, access_token: str) -> None:
        """Revoke the session of ``access_token`` on the server."""

    @abc.abstractmethod
    async def get_signing_keys(self) -> dict[str, Any]:
        """Return the JWKS document used to verify issued tokens."""


# =============================================================================
# httpx implementation
# =============================================================================

_DEFAULT_ERROR_STATUSES = (
    AuthProtocol.STATUS_BAD_REQUEST,
    AuthProtocol.STATUS_INTERNAL_SERVER_ERROR,
)
_BEARER_ERROR_STATUSES = (
    AuthProtocol.STATUS_BAD_REQUEST,
    AuthProtocol.STATUS_UNAUTHORIZED,
    AuthProtocol.STATUS_INTERNAL_SERVER_ERROR,
)
_EDIT_ERROR_STATUSES = (
    AuthProtocol.STATUS_UNAUTHORIZED,
    AuthProtocol.STATUS_INTERNAL_SERVER_ERROR,
)


class HttpxOAuthService(OAuthService):
    """OAuthService over ``httpx.AsyncClient``.

    The client must be created with the Auth API base URL and must not
    follow redirects.

    Example:
        >>> config = OAuthClientConfig()
        >>> async with build_async_client(config.base_url) as http:
        ...     service = HttpxOAuthService(http, config)
        ...     session_id = await service.authorize(generate_pkce().code_challenge)
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        config: OAuthClientConfig | None = None,
        enable_logging: bool = True,
    ) -> None:
        self._client = client
        self.config = config or OAuthClientConfig()
        self.enable_logging = enable_logging

    async def _send(
        self,
        name: str,
        method: str,
        path: str,
        *,
        success_status: int = AuthProtocol.STATUS_OK,
        error_statuses: tuple[int, ...] = _DEFAULT_ERROR_STATUSES,
        params: dict[str, str] | None = None,
        headers: dict[str, str] | None = None,
        replayable: bool = True,
    ) -> httpx.Response:
        if self.enable_logging:
            _logger.debug("Auth API %s: %s %s", name, method, path)

        try:
            response = await self._client.request(
                method,
                path,
                params=params,
                headers=headers,
                extensions={REPLAYABLE_EXTENSION: replayable},
            )
        except httpx.TransportError as e:
            raise NetworkError(url=path, reason=str(e) or type(e).__name__) from e

        status = response.status_code
        if status == success_status:
            if self.enable_logging:
                _logger.debug("Auth API %s completed (HTTP %s)", name, status)
            return response

        if status in error_statuses:
            raise self._api_error(response)

        _logger.warning("Auth API %s: unexpected HTTP %s", name, status)
        raise InvalidResponseCodeError(status, url=str(response.request.url))

    @staticmethod
    def _api_error(response: httpx.Response) -> AuthAPIError | MissingResponseValueError:
        try:
            body = response.json()
        except ValueError:
            return MissingResponseValueError("Body error")
        code = body.get("error") if isinstance(body, dict) else None
        if not isinstance(code, str):
            return MissingResponseValueError("Body error")
        return AuthAPIError(code=code, description=describe_error_code(code))

    @staticmethod
    def _session_cookie(auth_session_id: str) -> dict[str, str]:
        return {"Cookie": f"{AuthProtocol.SESSION_COOKIE}={auth_session_id}"}

    @staticmethod
    def _extract_session_id(response: httpx.Response) -> str:
        session_id = response.cookies.get(AuthProtocol.SESSION_COOKIE)
        if not session_id:
            raise MissingResponseValueError(f"{AuthProtocol.SESSION_COOKIE} cookie")
        return session_id

    @staticmethod
    def _extract_code(response: httpx.Response) -> str:
        location = response.headers.get("location")
        if not location:
            raise MissingResponseValueError("Location header")
        query = urllib.parse.parse_qs(urllib.parse.urlparse(location).query)
        codes = query.get(AuthProtocol.CODE_QUERY_PARAM)
        if not codes or not codes[0]:
            raise MissingResponseValueError("Authorization Code in redirect URI")
        return codes[0]

    @staticmethod
    def _token_response(response: httpx.Response) -> OAuthTokenResponse:
        try:
            body = response.json()
        except ValueError as e:
            raise MissingResponseValueError("token response body") from e
        if not isinstance(body, dict):
            raise MissingResponseValueError("token response body")
        return OAuthTokenResponse.from_dict(body)

    # -- Authorization --------------------------------------------------------

    async def authorize(self, code_challenge: str) -> str:
        response = await self._send(
            "authorize",
            "GET",
            AuthEndpoints.AUTHORIZE,
            success_status=AuthProtocol.STATUS_FOUND,
            params={
                "response_type": AuthProtocol.RESPONSE_TYPE_CODE,
                "code_challenge": code_challenge,
                "code_challenge_method": PkceProtocol.CHALLENGE_METHOD,
                "client_id": self.config.client_id,
                "redirect_uri": self.config.redirect_uri,
                "scope": self.config.scope,
            },
        )
        return self._extract_session_id(response)

    async def create_account(self, auth_session_id: str) -> str:
        response = await self._send(
            "create_account",
            "POST",
            AuthEndpoints.CREATE_ACCOUNT,
            success_status=AuthProtocol.STATUS_FOUND,
            headers=self._session_cookie(auth_session_id),
        )
        return self._extract_code(response)

    async def request_otp(self, auth_session_id: str, email: str) -> None:
        await self._send(
            "request_otp",
            "POST",
            AuthEndpoints.SEND_OTP,
            params={"email": email},
            headers=self._session_cookie(auth_session_id),
        )

    async def login_with_otp(self, auth_session_id: str, email: str, otp: str) -> str:
        response = await self._send(
            "login_with_otp",
            "POST",
            AuthEndpoints.LOGIN,
            success_status=AuthProtocol.STATUS_FOUND,
            params={"method": AuthProtocol.LOGIN_METHOD_OTP, "email": email, "otp": otp},
            headers=self._session_cookie(auth_session_id),
        )
        return self._extract_code(response)

    async def login_with_signature(self, auth_session_id: str, signature: str) -> str:
        response = await self._send(
            "login_with_signature",
            "POST",
            AuthEndpoints.LOGIN,
            success_status=AuthProtocol.STATUS_FOUND,
            params={
                "method": AuthProtocol.LOGIN_METHOD_SIGNATURE,
                "signature": signature,
                "source": AuthProtocol.SIGNATURE_SOURCE,
            },
            headers=self._session_cookie(auth_session_id),
        )
        return self._extract_code(response)

    # -- Tokens ---------------------------------------------------------------

    async def get_access_token(
        self, client_id: str, code_verifier: str, code: str, redirect_uri: str
    ) -> OAuthTokenResponse:
        response = await self._send(
            "get_access_token",
            "GET",
            AuthEndpoints.TOKEN,
            replayable=False,
            params={
                "grant_type": AuthProtocol.GRANT_TYPE_AUTHORIZATION_CODE,
                "client_id": client_id,
                "code_verifier": code_verifier,
                "code": code,
                "redirect_uri": redirect_uri,
            },
        )
        return self._token_response(response)

    async def refresh_access_token(self, client_id: str, refresh_token: str) -> OAuthTokenResponse:
        response = await self._send(
            "refresh_access_token",
            "GET",
            AuthEndpoints.TOKEN,
            replayable=False,
            params={
                "grant_type": AuthProtocol.GRANT_TYPE_REFRESH_TOKEN,
                "client_id": client_id,
                "refresh_token": refresh_token,
            },
        )
        return self._token_response(response)

    async def exchange_token(self, legacy_access_token: str, auth_session_id: str) -> str:
        headers = self._session_cookie(auth_session_id)
        headers["Authorization"] = f"Bearer {legacy_access_token}"
        response = await self._send(
            "exchange_token",
            "POST",
            AuthEndpoints.EXCHANGE,
            success_status=AuthProtocol.STATUS_FOUND,
            error_statuses=_BEARER_ERROR_STATUSES,
            headers=headers,
        )
        return self._extract_code(response)

    # -- Account edit ---------------------------------------------------------

    async def edit_account(
        self, client_id: str, access_token: str, email: str | None
    ) -> EditAccountResponse:
        response = await self._send(
            "edit_account",
            "POST",
            AuthEndpoints.EDIT_ACCOUNT,
            error_statuses=_EDIT_ERROR_STATUSES,
            params={"email": email} if email is not None else None,
            headers={"Authorization": f"Bearer {access_token}"},
        )
        fields = _required_fields(response, "hash", "status")
        return EditAccountResponse(status=fields["status"], hash=fields["hash"])

    async def confirm_edit_account(
        self, access_token: str, email: str, edit_hash: str, otp: str
    ) -> ConfirmEditAccountResponse:
        response = await self._send(
            "confirm_edit_account",
            "GET",
            AuthEndpoints.CONFIRM_EDIT_ACCOUNT,
            error_statuses=_EDIT_ERROR_STATUSES,
            params={"email": email, "hash": edit_hash, "otp": otp},
            headers={"Authorization": f"Bearer {access_token}"},
            replayable=False,
        )
        fields = _required_fields(response, "email", "status")
        return ConfirmEditAccountResponse(status=fields["status"], email=fields["email"])

    async def logout(self, access_token: str) -> None:
        await self._send(
            "logout",
            "POST",
            AuthEndpoints.LOGOUT,
            error_statuses=_BEARER_ERROR_STATUSES,
            headers={"Authorization": f"Bearer {access_token}"},
        )

    async def get_signing_keys(self) -> dict[str, Any]:
        response = await self._send("get_signing_keys", "GET", AuthEndpoints.JWKS)
        try:
            body = response.json()
        except ValueError as e:
            raise MissingResponseValueError("JWKS body") from e
        if not isinstance(body, dict) or "keys" not in body:
            raise MissingResponseValueError("JWKS keys")
        return body


__all__ = [
    "AuthAPIErrorCode",
    "AUTH_API_ERROR_DESCRIPTIONS",
    "describe_error_code",
    "OAuthTokenResponse",
    "EditAccountResponse",
    "ConfirmEditAccountResponse",
    "OAuthService",
    "HttpxOAuthService",
]
