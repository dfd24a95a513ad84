"""
PKCE (Proof Key for Code Exchange) code generation.

Every authorization session (account creation, signature or OTP login,
legacy token exchange) starts with a fresh verifier/challenge pair. The
challenge is sent to ``/authorize``; the verifier is sent later with the
authorization code to ``/token``.
"""

import base64
import hashlib
import secrets
from dataclasses import dataclass

from .constants import PkceProtocol


@dataclass(frozen=True)
class PkceCodes:
    """PKCE code verifier and challenge pair.

    Attributes:
        code_verifier: Random hex string, 128 characters
        code_challenge: Base64url-encoded SHA-256 of the verifier, unpadded
    """

    code_verifier: str
    code_challenge: str


def code_challenge_for(code_verifier: str) -> str:
    """Derive the S256 challenge for a verifier."""
    digest = hashlib.sha256(code_verifier.encode()).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode()


def generate_pkce() -> PkceCodes:
    """Generate a fresh PKCE verifier and its S256 challenge.

    Example:
        >>> codes = generate_pkce()
        >>> len(codes.code_verifier)
        128
        >>> codes.code_challenge == code_challenge_for(codes.code_verifier)
        True
    """
    code_verifier = secrets.token_hex(PkceProtocol.CODE_VERIFIER_BYTES)
    return PkceCodes(code_verifier=code_verifier, code_challenge=code_challenge_for(code_verifier))
