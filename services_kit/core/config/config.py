"""Toolkit configuration.

Config gives direct property access to the settings groups and builds the
value objects the OAuth layer takes (OAuthClientConfig, HttpClientConfig),
so environment handling stays out of the library code.
"""

from pathlib import Path

from dotenv import load_dotenv

from services_kit.core.config.schema import ConfigSchema
from services_kit.core.config.settings import AuthSettings, HttpSettings
from services_kit.core.config.validation import load_env_var
from services_kit.core.oauth.config import OAuthClientConfig
from services_kit.core.oauth.http_client import HttpClientConfig


class Config:
    """Configuration loaded from environment variables at construction."""

    def __init__(self) -> None:
        self._log_level: str = load_env_var(ConfigSchema.LOG_LEVEL)
        self._auth = AuthSettings.load()
        self._http = HttpSettings.load()

    # Logging
    @property
    def log_level(self) -> str:
        return self._log_level

    # Auth settings
    @property
    def auth_base_url(self) -> str:
        return self._auth.base_url

    @property
    def client_id(self) -> str:
        return self._auth.client_id

    @property
    def redirect_uri(self) -> str:
        return self._auth.redirect_uri

    @property
    def scope(self) -> str:
        return self._auth.scope

    @property
    def expiry_leeway(self) -> float:
        return self._auth.expiry_leeway

    # HTTP settings
    @property
    def request_timeout(self) -> float:
        return self._http.request_timeout

    @property
    def max_retries(self) -> int:
        return self._http.max_retries

    @property
    def log_requests(self) -> bool:
        return self._http.log_requests

    # Value objects for the oauth package
    def oauth_client_config(self) -> OAuthClientConfig:
        return OAuthClientConfig(
            base_url=self.auth_base_url,
            client_id=self.client_id,
            redirect_uri=self.redirect_uri,
            scope=self.scope,
            expiry_leeway=self.expiry_leeway,
        )

    def http_client_config(self) -> HttpClientConfig:
        return HttpClientConfig(
            timeout=self.request_timeout,
            max_retries=self.max_retries,
            enable_logging=self.log_requests,
        )

    def as_dict(self) -> dict[str, object]:
        """Effective values keyed by environment variable name."""
        return {
            ConfigSchema.LOG_LEVEL.name: self.log_level,
            ConfigSchema.AUTH_BASE_URL.name: self.auth_base_url,
            ConfigSchema.OAUTH_CLIENT_ID.name: self.client_id,
            ConfigSchema.OAUTH_REDIRECT_URI.name: self.redirect_uri,
            ConfigSchema.OAUTH_SCOPE.name: self.scope,
            ConfigSchema.TOKEN_EXPIRY_LEEWAY_SECONDS.name: self.expiry_leeway,
            ConfigSchema.HTTP_REQUEST_TIMEOUT.name: self.request_timeout,
            ConfigSchema.HTTP_MAX_RETRIES.name: self.max_retries,
            ConfigSchema.HTTP_LOG_REQUESTS.name: self.log_requests,
        }


def load_config(env_file: str | Path | None = None) -> Config:
    """Load ``.env`` (or ``env_file``) into the environment, then read Config.

    Variables already set in the environment take precedence over the file.

    Raises:
        ConfigError: If any environment variable fails validation
    """
    if env_file is not None:
        load_dotenv(dotenv_path=env_file)
    else:
        load_dotenv()
    return Config()
