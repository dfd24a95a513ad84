"""
Storage abstraction for tokens.

The token manager reads and writes through two small interfaces so the
host application can back them with a keychain, a database or plain
memory:

- TokenStorage: the current v2 TokenContainer
- LegacyTokenStorage: the v1 access token string kept by older app
  versions; it is exchanged for v2 tokens and then cleared

Only in-memory implementations ship with this package.
"""

from abc import ABC, abstractmethod

from ..tokens import TokenContainer


class TokenStorage(ABC):
    """Abstract store for the current token container.

    Implementations must be safe to call from the event loop thread; the
    token manager never holds a reference across awaits.
    """

    @abstractmethod
    def get(self) -> TokenContainer | None:
        """Return the stored container, or None."""

    @abstractmethod
    def set(self, container: TokenContainer | None) -> None:
        """Replace the stored container. None removes it."""

    def clear(self) -> None:
        self.set(None)


class LegacyTokenStorage(ABC):
    """Abstract store for a v1 access token."""

    @abstractmethod
    def get(self) -> str | None:
        """Return the legacy token, or None."""

    @abstractmethod
    def set(self, token: str | None) -> None:
        """Replace the legacy token. None removes it."""

    def clear(self) -> None:
        self.set(None)


# Import implementations after base classes are defined
from .memory_storage import InMemoryLegacyTokenStorage, InMemoryTokenStorage  # noqa: E402

__all__ = [
    "TokenStorage",
    "LegacyTokenStorage",
    "InMemoryTokenStorage",
    "InMemoryLegacyTokenStorage",
]
