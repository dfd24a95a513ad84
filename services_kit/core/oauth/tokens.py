"""
Token container and cache policies.

A TokenContainer is the unit the token manager stores and hands out: the
raw access/refresh token strings plus their verified, decoded claims. It
is immutable; a refresh produces a new container.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .jwt import JWTAccessToken, JWTRefreshToken


class TokensCachePolicy(str, Enum):
    """How get_tokens() may satisfy a request."""

    LOCAL = "local"  # Stored container as-is, even if expired
    LOCAL_VALID = "local_valid"  # Stored container, refreshed when expired
    LOCAL_FORCE_REFRESH = "local_force_refresh"  # Always refresh
    CREATE_IF_NEEDED = "create_if_needed"  # Valid local tokens or a new account

    @property
    def description(self) -> str:
        return _POLICY_DESCRIPTIONS[self]


_POLICY_DESCRIPTIONS = {
    TokensCachePolicy.LOCAL: "Local tokens",
    TokensCachePolicy.LOCAL_VALID: "Local valid tokens, refreshed if expired",
    TokensCachePolicy.LOCAL_FORCE_REFRESH: "Local tokens, refreshed",
    TokensCachePolicy.CREATE_IF_NEEDED: "Local valid tokens or a newly created account",
}


@dataclass(frozen=True)
class TokenContainer:
    """Access/refresh token pair with decoded claims.

    Two containers are equal when both raw token strings are equal; the
    decoded claims are derived data and are not compared.

    Attributes:
        access_token: Raw access JWT, sent as ``Authorization: Bearer``
        refresh_token: Raw refresh JWT
        decoded_access_token: Verified access claims (scope ``privacypro``)
        decoded_refresh_token: Verified refresh claims (scope ``refresh``)
    """

    access_token: str
    refresh_token: str
    decoded_access_token: JWTAccessToken = field(compare=False)
    decoded_refresh_token: JWTRefreshToken = field(compare=False)

    def is_expired(self, now: float | None = None, leeway: float = 0) -> bool:
        """True when the access token is expired."""
        return self.decoded_access_token.is_expired(now=now, leeway=leeway)

    @property
    def email(self) -> str | None:
        return self.decoded_access_token.email

    def to_dict(self) -> dict[str, Any]:
        """JSON-compatible representation for storage backends."""
        return {
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "decoded_access_token": self.decoded_access_token.to_claims(),
            "decoded_refresh_token": self.decoded_refresh_token.to_claims(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TokenContainer:
        """Rebuild a container written by to_dict().

        Raises:
            TokenPayloadError: If stored claims fail scope validation
            KeyError: If a required key is missing
        """
        return cls(
            access_token=data["access_token"],
            refresh_token=data["refresh_token"],
            decoded_access_token=JWTAccessToken.from_claims(data["decoded_access_token"]),
            decoded_refresh_token=JWTRefreshToken.from_claims(data["decoded_refresh_token"]),
        )

    def __repr__(self) -> str:
        return (
            f"TokenContainer(sub={self.decoded_access_token.sub!r}, "
            f"exp={self.decoded_access_token.exp}, "
            f"access_token={self.access_token[:8]!r}...)"
        )


__all__ = ["TokensCachePolicy", "TokenContainer"]
