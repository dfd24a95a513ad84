"""
OAuth token lifecycle manager.

DefaultOAuthClient hands out token containers under a TokensCachePolicy,
refreshing, creating accounts and migrating legacy v1 tokens as needed.
Every container it produces has been verified against the server's
published signing keys and is written to the TokenStorage before it is
returned.

Each transport call is bracketed by cancellation checkpoints: a task
cancelled while waiting for a response raises ``asyncio.CancelledError``
before the response is acted upon, and never issues the next call.

Concurrent get_tokens() calls are not serialized. Two callers forcing a
refresh at the same time each send their own refresh request; the token
store keeps whichever container is written last.

Example:
    >>> client = DefaultOAuthClient(
    ...     token_storage=InMemoryTokenStorage(),
    ...     legacy_token_storage=InMemoryLegacyTokenStorage(),
    ...     auth_service=HttpxOAuthService(http, config),
    ...     config=config,
    ... )
    >>> tokens = await client.get_tokens(TokensCachePolicy.CREATE_IF_NEEDED)
    >>> headers = {"Authorization": f"Bearer {tokens.access_token}"}
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from .config import OAuthClientConfig
from .exceptions import (
    AccountCreationError,
    AuthAPIError,
    InternalOAuthError,
    MissingRefreshTokenError,
    MissingTokensError,
    OAuthError,
    RefreshTokenExpiredError,
    UnauthenticatedError,
)
from .jwt import TokenVerifier
from .pkce import PkceCodes, generate_pkce
from .service import AuthAPIErrorCode, OAuthService, OAuthTokenResponse
from .storage import LegacyTokenStorage, TokenStorage
from .tokens import TokenContainer, TokensCachePolicy
from .validation import validate_email, validate_instance, validate_string

_logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class OTPSession:
    """State carried from request_otp() to activate_with_otp().

    Attributes:
        email: Address the one-time password was sent to
        auth_session_id: Session opened by ``/authorize``
        code_verifier: PKCE verifier matching the session's challenge
    """

    email: str
    auth_session_id: str
    code_verifier: str

    def __repr__(self) -> str:
        return f"OTPSession(email={self.email!r})"


async def _checkpoint() -> None:
    # Yields to the loop so a pending cancel() is delivered here.
    await asyncio.sleep(0)


class DefaultOAuthClient:
    """Cache-policy driven token manager.

    Args:
        token_storage: Store for the current TokenContainer
        auth_service: Auth API transport
        legacy_token_storage: Store holding a v1 access token, if the host
            app ever issued one
        config: Client registration (client id, redirect URI, leeway)

    Raises:
        ValidationError: If a collaborator has the wrong type
    """

    def __init__(
        self,
        token_storage: TokenStorage,
        auth_service: OAuthService,
        legacy_token_storage: LegacyTokenStorage | None = None,
        config: OAuthClientConfig | None = None,
    ) -> None:
        validate_instance(token_storage, TokenStorage, "token_storage")
        validate_instance(auth_service, OAuthService, "auth_service")
        if legacy_token_storage is not None:
            validate_instance(legacy_token_storage, LegacyTokenStorage, "legacy_token_storage")

        self.token_storage = token_storage
        self.legacy_token_storage = legacy_token_storage
        self.auth_service = auth_service
        self.config = config or OAuthClientConfig()

    # =========================================================================
    # Internal helpers
    # =========================================================================

    async def _call(self, operation: Callable[..., Awaitable[T]], *args: str | None) -> T:
        await _checkpoint()
        result = await operation(*args)
        await _checkpoint()
        return result

    async def _decode(self, response: OAuthTokenResponse) -> TokenContainer:
        """Verify both tokens against the current signing keys."""
        _logger.debug("Decoding tokens")
        jwks = await self._call(self.auth_service.get_signing_keys)
        verifier = TokenVerifier(jwks)
        return TokenContainer(
            access_token=response.access_token,
            refresh_token=response.refresh_token,
            decoded_access_token=verifier.decode_access_token(response.access_token),
            decoded_refresh_token=verifier.decode_refresh_token(response.refresh_token),
        )

    async def _start_session(self) -> tuple[PkceCodes, str]:
        codes = generate_pkce()
        auth_session_id = await self._call(self.auth_service.authorize, codes.code_challenge)
        return codes, auth_session_id

    async def _redeem(self, code: str, codes: PkceCodes) -> TokenContainer:
        response = await self._call(
            self.auth_service.get_access_token,
            self.config.client_id,
            codes.code_verifier,
            code,
            self.config.redirect_uri,
        )
        return await self._decode(response)

    def _store(self, container: TokenContainer) -> TokenContainer:
        self.token_storage.set(container)
        return container

    # =========================================================================
    # State
    # =========================================================================

    @property
    def is_user_authenticated(self) -> bool:
        return self.token_storage.get() is not None

    @property
    def current_token_container(self) -> TokenContainer | None:
        return self.token_storage.get()

    def adopt(self, container: TokenContainer) -> None:
        """Store a container obtained elsewhere (e.g. from another process)."""
        _logger.info("Adopting token container %r", container)
        self.token_storage.set(container)

    # =========================================================================
    # Token retrieval
    # =========================================================================

    async def get_tokens(self, policy: TokensCachePolicy) -> TokenContainer:
        """Return a token container according to ``policy``.

        A stored legacy v1 token is always migrated first; a failed
        migration is logged and ignored.

        Raises:
            MissingTokensError: LOCAL / LOCAL_VALID with nothing stored
            MissingRefreshTokenError: LOCAL_FORCE_REFRESH with nothing stored
            RefreshTokenExpiredError: The server rejected the refresh token
            AccountCreationError: CREATE_IF_NEEDED could not create an account
            OAuthServiceError: Any other transport failure, unchanged
            TokenPayloadError: Issued tokens failed verification
        """
        migrated = None
        try:
            migrated = await self.migrate_legacy_token()
        except Exception as e:
            _logger.warning("Legacy token migration failed, continuing without it: %s", e)

        local = migrated if migrated is not None else self.token_storage.get()
        return await self._get_tokens(policy, local)

    async def _get_tokens(
        self, policy: TokensCachePolicy, local: TokenContainer | None
    ) -> TokenContainer:
        if policy is TokensCachePolicy.LOCAL:
            if local is None:
                _logger.debug("Tokens not found")
                raise MissingTokensError()
            _logger.debug("Local tokens found, expiry: %s", local.decoded_access_token.exp)
            return local

        if policy is TokensCachePolicy.LOCAL_VALID:
            if local is None:
                _logger.debug("Tokens not found")
                raise MissingTokensError()
            if local.is_expired(leeway=self.config.expiry_leeway):
                _logger.info("Local access token is expired, refreshing it")
                return await self._get_tokens(TokensCachePolicy.LOCAL_FORCE_REFRESH, local)
            return local

        if policy is TokensCachePolicy.LOCAL_FORCE_REFRESH:
            if local is None or not local.refresh_token:
                _logger.debug("Refresh token not found")
                raise MissingRefreshTokenError()
            return await self._refresh(local.refresh_token)

        if policy is not TokensCachePolicy.CREATE_IF_NEEDED:
            raise InternalOAuthError(f"Unsupported cache policy {policy!r}")
        try:
            return await self._get_tokens(TokensCachePolicy.LOCAL_VALID, local)
        except OAuthError as e:
            _logger.info("No usable local tokens (%s), creating a new account", type(e).__name__)
        return await self.create_account()

    async def _refresh(self, refresh_token: str) -> TokenContainer:
        try:
            response = await self._call(
                self.auth_service.refresh_access_token, self.config.client_id, refresh_token
            )
        except AuthAPIError as e:
            if e.code == AuthAPIErrorCode.INVALID_TOKEN_REQUEST.value:
                _logger.error("Failed to refresh token: refresh token is dead")
                raise RefreshTokenExpiredError() from e
            _logger.error("Failed to refresh token: %s, %s", e.code, e.description)
            raise

        refreshed = await self._decode(response)
        _logger.info("Tokens refreshed: %r", refreshed)
        return self._store(refreshed)

    # =========================================================================
    # Account creation and activation
    # =========================================================================

    async def create_account(self) -> TokenContainer:
        """Create an anonymous account, store and return its tokens.

        Raises:
            AccountCreationError: Chained from the underlying failure
        """
        _logger.info("Creating new account")
        try:
            codes, auth_session_id = await self._start_session()
            code = await self._call(self.auth_service.create_account, auth_session_id)
            container = await self._redeem(code, codes)
        except OAuthError as e:
            _logger.error("Failed to create account: %s", e)
            raise AccountCreationError(str(e)) from e
        _logger.info("New account created successfully")
        return self._store(container)

    async def activate(self, signature: str) -> TokenContainer:
        """Log in with a platform purchase signature."""
        validate_string(signature, "signature")
        _logger.info("Activating with platform signature")
        codes, auth_session_id = await self._start_session()
        code = await self._call(self.auth_service.login_with_signature, auth_session_id, signature)
        container = await self._redeem(code, codes)
        _logger.info("Activation completed")
        return self._store(container)

    async def request_otp(self, email: str) -> OTPSession:
        """Open a session and email a one-time password to ``email``."""
        validate_email(email)
        codes, auth_session_id = await self._start_session()
        await self._call(self.auth_service.request_otp, auth_session_id, email)
        _logger.info("One-time password requested")
        return OTPSession(
            email=email, auth_session_id=auth_session_id, code_verifier=codes.code_verifier
        )

    async def activate_with_otp(self, session: OTPSession, otp: str) -> TokenContainer:
        """Complete a login started by request_otp()."""
        validate_string(otp, "otp")
        code = await self._call(
            self.auth_service.login_with_otp, session.auth_session_id, session.email, otp
        )
        response = await self._call(
            self.auth_service.get_access_token,
            self.config.client_id,
            session.code_verifier,
            code,
            self.config.redirect_uri,
        )
        container = await self._decode(response)
        _logger.info("OTP activation completed")
        return self._store(container)

    # =========================================================================
    # Legacy tokens
    # =========================================================================

    async def exchange(self, legacy_access_token: str) -> TokenContainer:
        """Exchange a v1 access token for a stored v2 container."""
        validate_string(legacy_access_token, "legacy_access_token")
        _logger.info("Exchanging access token v1 for v2 tokens")
        codes, auth_session_id = await self._start_session()
        code = await self._call(
            self.auth_service.exchange_token, legacy_access_token, auth_session_id
        )
        container = await self._redeem(code, codes)
        return self._store(container)

    async def migrate_legacy_token(self) -> TokenContainer | None:
        """Exchange the stored v1 token, if any, and remove it.

        Returns:
            The new container, or None when no legacy token is stored

        Raises:
            OAuthError: When the exchange fails; the legacy token is kept
        """
        if self.legacy_token_storage is None:
            return None
        legacy_token = self.legacy_token_storage.get()
        if not legacy_token:
            return None

        _logger.info("Migrating legacy token")
        container = await self.exchange(legacy_token)
        self.legacy_token_storage.set(None)
        _logger.info("Tokens migrated successfully, legacy token removed")
        return container

    # =========================================================================
    # Account email change
    # =========================================================================

    def _signed_in_container(self, operation: str) -> TokenContainer:
        current = self.token_storage.get()
        if current is None:
            _logger.debug("Cannot %s: no tokens stored", operation)
            raise UnauthenticatedError(operation)
        return current

    async def change_account(self, email: str | None) -> str:
        """Ask the server to move the account to ``email``; None removes it.

        A one-time password is sent to the new address. The returned hash
        is passed back to confirm_change_account() together with it.

        Raises:
            UnauthenticatedError: No account is stored
        """
        if email is not None:
            validate_email(email)
        current = self._signed_in_container("change account")
        response = await self._call(
            self.auth_service.edit_account,
            self.config.client_id,
            current.access_token,
            email,
        )
        _logger.info("Account change requested, confirmation pending")
        return response.hash

    async def confirm_change_account(self, email: str, otp: str, edit_hash: str) -> TokenContainer:
        """Confirm the email change, then refresh so the tokens carry the new address.

        Raises:
            UnauthenticatedError: No account is stored
            RefreshTokenExpiredError: Confirmed, but the follow-up refresh was rejected
        """
        validate_email(email)
        validate_string(otp, "otp")
        validate_string(edit_hash, "edit_hash")
        current = self._signed_in_container("confirm account change")
        await self._call(
            self.auth_service.confirm_edit_account, current.access_token, email, edit_hash, otp
        )
        _logger.info("Account change confirmed, refreshing tokens")
        return await self._refresh(current.refresh_token)

    # =========================================================================
    # Logout
    # =========================================================================

    async def logout(self) -> None:
        """Clear local tokens, then revoke the session on the server.

        Local state is cleared even when the revoke call fails; the
        failure is then re-raised.
        """
        current = self.token_storage.get()
        self.remove_local_account()

        if current is None:
            return
        _logger.info("Logging out")
        try:
            await self._call(self.auth_service.logout, current.access_token)
        except OAuthError as e:
            _logger.warning("Server logout failed, local account already removed: %s", e)
            raise

    def remove_local_account(self) -> None:
        _logger.info("Removing local account")
        self.token_storage.set(None)
        if self.legacy_token_storage is not None:
            self.legacy_token_storage.set(None)


__all__ = ["DefaultOAuthClient", "OTPSession"]
