"""
In-memory token stores.

Data is lost when the process exits. Used by tests, the developer CLI and
hosts that manage persistence themselves.
"""

from ..tokens import TokenContainer
from . import LegacyTokenStorage, TokenStorage


class InMemoryTokenStorage(TokenStorage):
    """Keeps the token container in an attribute."""

    def __init__(self, container: TokenContainer | None = None) -> None:
        self._container = container

    def get(self) -> TokenContainer | None:
        return self._container

    def set(self, container: TokenContainer | None) -> None:
        self._container = container

    def __repr__(self) -> str:
        if self._container:
            return (
                "InMemoryTokenStorage(authenticated=True, "
                f"sub={self._container.decoded_access_token.sub})"
            )
        return "InMemoryTokenStorage(authenticated=False)"


class InMemoryLegacyTokenStorage(LegacyTokenStorage):
    """Keeps a v1 access token in an attribute."""

    def __init__(self, token: str | None = None) -> None:
        self._token = token

    def get(self) -> str | None:
        return self._token

    def set(self, token: str | None) -> None:
        self._token = token

    def __repr__(self) -> str:
        return f"InMemoryLegacyTokenStorage(has_token={self._token is not None})"
