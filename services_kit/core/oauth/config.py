"""Client registration and behavior settings for the OAuth token manager."""

from dataclasses import dataclass

from .constants import OAuthClientDefaults, TokenExpiryDefaults, ValidationLimits
from .validation import validate_range, validate_string, validate_url


@dataclass(frozen=True)
class OAuthClientConfig:
    """Configuration passed to HttpxOAuthService and DefaultOAuthClient.

    Attributes:
        base_url: Auth API protocol + host, e.g. ``https://quack.duckduckgo.com``
        client_id: Registered OAuth client id
        redirect_uri: Registered redirect URI; codes arrive appended to it
        scope: Scope requested at ``/authorize``
        expiry_leeway: Seconds subtracted from ``exp`` when checking expiry

    Raises:
        ValidationError: If any parameter fails validation
    """

    base_url: str = OAuthClientDefaults.BASE_URL
    client_id: str = OAuthClientDefaults.CLIENT_ID
    redirect_uri: str = OAuthClientDefaults.REDIRECT_URI
    scope: str = OAuthClientDefaults.SCOPE
    expiry_leeway: float = TokenExpiryDefaults.LEEWAY_SECONDS

    def __post_init__(self) -> None:
        validate_url(self.base_url, "base_url")
        validate_string(self.client_id, "client_id")
        validate_string(self.redirect_uri, "redirect_uri")
        validate_string(self.scope, "scope")
        validate_range(
            self.expiry_leeway,
            "expiry_leeway",
            min_value=ValidationLimits.MIN_LEEWAY,
            max_value=ValidationLimits.MAX_LEEWAY,
        )
