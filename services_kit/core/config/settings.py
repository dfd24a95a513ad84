"""Settings groups loaded from the environment.

Each group is a frozen dataclass plus a ``Settings.load()`` that reads its
variables through the schema, so defaults and validation rules live in
one place.
"""

from dataclasses import dataclass

from services_kit.core.config.schema import ConfigSchema
from services_kit.core.config.validation import load_env_var


@dataclass(frozen=True)
class AuthConfig:
    """Auth API endpoint and OAuth client registration.

    Attributes:
        base_url: Auth API protocol and host
        client_id: Registered OAuth client id
        redirect_uri: Registered OAuth redirect URI
        scope: Scope requested when opening a session
        expiry_leeway: Seconds before ``exp`` at which tokens count as expired
    """

    base_url: str
    client_id: str
    redirect_uri: str
    scope: str
    expiry_leeway: float


class AuthSettings:
    @staticmethod
    def load() -> AuthConfig:
        """Load auth settings.

        Raises:
            ConfigError: If any environment variable fails validation
        """
        return AuthConfig(
            base_url=load_env_var(ConfigSchema.AUTH_BASE_URL),
            client_id=load_env_var(ConfigSchema.OAUTH_CLIENT_ID),
            redirect_uri=load_env_var(ConfigSchema.OAUTH_REDIRECT_URI),
            scope=load_env_var(ConfigSchema.OAUTH_SCOPE),
            expiry_leeway=load_env_var(ConfigSchema.TOKEN_EXPIRY_LEEWAY_SECONDS),
        )


@dataclass(frozen=True)
class HttpConfig:
    request_timeout: float
    max_retries: int
    log_requests: bool


class HttpSettings:
    @staticmethod
    def load() -> HttpConfig:
        return HttpConfig(
            request_timeout=load_env_var(ConfigSchema.HTTP_REQUEST_TIMEOUT),
            max_retries=load_env_var(ConfigSchema.HTTP_MAX_RETRIES),
            log_requests=load_env_var(ConfigSchema.HTTP_LOG_REQUESTS),
        )
