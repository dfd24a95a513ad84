"""
JWT claim models and verification for Auth API v2 tokens.

Tokens are signed by the auth server; the public keys are published as a
JWKS document at ``/api/auth/v2/.well-known/jwks.json``. TokenVerifier
selects the key by the token's ``kid`` header and delegates signature
checks to PyJWT. After the signature is accepted the claim set is
decoded into JWTAccessToken / JWTRefreshToken and the ``scope`` claim is
validated.

Expiry is intentionally not enforced here: the token manager decides
what an expired access token means under each cache policy.

parse_jwt_claims() decodes without verification and is only suitable for
inspection (logging, the developer CLI).
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import jwt

from .constants import JwtProtocol
from .exceptions import TokenPayloadError

# =============================================================================
# Entitlements
# =============================================================================


class SubscriptionEntitlement(str, Enum):
    """Products a subscription can unlock.

    Any product string the server sends that is not listed here decodes
    as UNKNOWN rather than failing the whole token.
    """

    NETWORK_PROTECTION = "Network Protection"
    DATA_BROKER_PROTECTION = "Data Broker Protection"
    IDENTITY_THEFT_RESTORATION = "Identity Theft Restoration"
    IDENTITY_THEFT_RESTORATION_GLOBAL = "Identity Theft Restoration Global"
    UNKNOWN = "unknown"

    @classmethod
    def _missing_(cls, value: object) -> SubscriptionEntitlement:
        return cls.UNKNOWN


@dataclass(frozen=True)
class Entitlement:
    """One ``entitlements`` entry of the access token."""

    product: SubscriptionEntitlement
    name: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Entitlement:
        return cls(
            product=SubscriptionEntitlement(data.get("product", "")),
            name=str(data.get("name", "")),
        )

    def to_dict(self) -> dict[str, str]:
        return {"product": self.product.value, "name": self.name}


# =============================================================================
# Claim models
# =============================================================================


def _audience(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    return tuple(str(item) for item in value)


def _required(claims: dict[str, Any], name: str) -> Any:
    if name not in claims or claims[name] is None:
        raise TokenPayloadError(TokenPayloadError.MALFORMED, f"missing claim {name!r}")
    return claims[name]


@dataclass(frozen=True)
class _RegisteredClaims:
    """Registered JWT claims shared by access and refresh tokens."""

    exp: int
    iat: int
    sub: str
    aud: tuple[str, ...]
    iss: str
    jti: str
    scope: str
    api: str

    def is_expired(self, now: float | None = None, leeway: float = 0) -> bool:
        """True once ``exp <= now + leeway``."""
        current = time.time() if now is None else now
        return self.exp <= current + leeway

    @staticmethod
    def _registered(claims: dict[str, Any]) -> dict[str, Any]:
        try:
            return {
                "exp": int(_required(claims, "exp")),
                "iat": int(claims.get("iat") or 0),
                "sub": str(_required(claims, "sub")),
                "aud": _audience(claims.get("aud")),
                "iss": str(claims.get("iss", "")),
                "jti": str(claims.get("jti", "")),
                "scope": str(_required(claims, "scope")),
                "api": str(claims.get("api", "")),
            }
        except (TypeError, ValueError) as e:
            raise TokenPayloadError(TokenPayloadError.MALFORMED, str(e)) from e

    def _registered_dict(self) -> dict[str, Any]:
        return {
            "exp": self.exp,
            "iat": self.iat,
            "sub": self.sub,
            "aud": list(self.aud),
            "iss": self.iss,
            "jti": self.jti,
            "scope": self.scope,
            "api": self.api,
        }


@dataclass(frozen=True)
class JWTAccessToken(_RegisteredClaims):
    """Decoded access token claims.

    Attributes:
        email: Account email, None for anonymous accounts
        entitlements: Products the subscription unlocks
    """

    email: str | None = None
    entitlements: tuple[Entitlement, ...] = field(default_factory=tuple)

    @classmethod
    def from_claims(cls, claims: dict[str, Any]) -> JWTAccessToken:
        """Build from a claim set and validate ``scope == "privacypro"``."""
        registered = cls._registered(claims)
        if registered["scope"] != JwtProtocol.ACCESS_TOKEN_SCOPE:
            raise TokenPayloadError(
                TokenPayloadError.INVALID_TOKEN_SCOPE,
                f"access token scope {registered['scope']!r}",
            )
        raw_entitlements = claims.get("entitlements") or []
        return cls(
            **registered,
            email=claims.get("email"),
            entitlements=tuple(Entitlement.from_dict(item) for item in raw_entitlements),
        )

    @property
    def subscription_entitlements(self) -> list[SubscriptionEntitlement]:
        return [entitlement.product for entitlement in self.entitlements]

    def has_entitlement(self, product: SubscriptionEntitlement) -> bool:
        return product in self.subscription_entitlements

    def to_claims(self) -> dict[str, Any]:
        claims = self._registered_dict()
        claims["email"] = self.email
        claims["entitlements"] = [entitlement.to_dict() for entitlement in self.entitlements]
        return claims


@dataclass(frozen=True)
class JWTRefreshToken(_RegisteredClaims):
    """Decoded refresh token claims."""

    @classmethod
    def from_claims(cls, claims: dict[str, Any]) -> JWTRefreshToken:
        """Build from a claim set and validate ``scope == "refresh"``."""
        registered = cls._registered(claims)
        if registered["scope"] != JwtProtocol.REFRESH_TOKEN_SCOPE:
            raise TokenPayloadError(
                TokenPayloadError.INVALID_TOKEN_SCOPE,
                f"refresh token scope {registered['scope']!r}",
            )
        return cls(**registered)

    def to_claims(self) -> dict[str, Any]:
        return self._registered_dict()


# =============================================================================
# Decoding
# =============================================================================


def parse_jwt_claims(token: str) -> dict[str, Any]:
    """Decode a JWT payload without verifying its signature.

    Raises:
        TokenPayloadError: If the token is not a decodable JWT

    Example:
        >>> parse_jwt_claims(access_token)["scope"]
        'privacypro'
    """
    if not token or token.count(".") != JwtProtocol.JWT_PART_COUNT:
        raise TokenPayloadError(TokenPayloadError.MALFORMED, "not a JWT")
    try:
        claims: dict[str, Any] = jwt.decode(token, options={"verify_signature": False})
    except jwt.DecodeError as e:
        raise TokenPayloadError(TokenPayloadError.MALFORMED, str(e)) from e
    return claims


class TokenVerifier:
    """Verifies token signatures against a JWKS document.

    Example:
        >>> verifier = TokenVerifier(await service.get_signing_keys())
        >>> access = verifier.decode_access_token(response.access_token)
    """

    def __init__(self, jwks: dict[str, Any]) -> None:
        try:
            self._key_set = jwt.PyJWKSet.from_dict(jwks)
        except (jwt.PyJWKSetError, jwt.InvalidKeyError) as e:
            raise TokenPayloadError(TokenPayloadError.MISSING_SIGNING_KEY, str(e)) from e

    def verify(self, token: str) -> dict[str, Any]:
        """Check the signature of ``token`` and return its claims."""
        try:
            header = jwt.get_unverified_header(token)
        except jwt.DecodeError as e:
            raise TokenPayloadError(TokenPayloadError.MALFORMED, str(e)) from e

        kid = header.get("kid")
        try:
            signing_key = self._key_set[kid] if kid else self._key_set.keys[0]
        except (KeyError, IndexError) as e:
            raise TokenPayloadError(
                TokenPayloadError.MISSING_SIGNING_KEY, f"no key for kid {kid!r}"
            ) from e

        try:
            claims: dict[str, Any] = jwt.decode(
                token,
                key=signing_key.key,
                algorithms=[signing_key.algorithm_name],
                options={"verify_exp": False, "verify_aud": False, "verify_iat": False},
            )
        except jwt.InvalidSignatureError as e:
            raise TokenPayloadError(TokenPayloadError.INVALID_SIGNATURE, str(e)) from e
        except jwt.InvalidTokenError as e:
            raise TokenPayloadError(TokenPayloadError.MALFORMED, str(e)) from e
        return claims

    def decode_access_token(self, token: str) -> JWTAccessToken:
        return JWTAccessToken.from_claims(self.verify(token))

    def decode_refresh_token(self, token: str) -> JWTRefreshToken:
        return JWTRefreshToken.from_claims(self.verify(token))


__all__ = [
    "SubscriptionEntitlement",
    "Entitlement",
    "JWTAccessToken",
    "JWTRefreshToken",
    "TokenVerifier",
    "parse_jwt_claims",
]
