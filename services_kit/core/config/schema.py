"""Environment variables understood by services-kit.

Every setting the toolkit reads from the environment is declared here
once, with its default, type and validation rule. Loading and coercion
live in ``validation``; ``ConfigSchema.generate_markdown_docs`` renders
the reference shown by ``services-kit config docs``.
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from services_kit.core.logging import VALID_LOG_LEVELS
from services_kit.core.oauth.constants import (
    HttpDefaults,
    OAuthClientDefaults,
    TokenExpiryDefaults,
    ValidationLimits,
)


@dataclass(frozen=True)
class EnvVarSpec:
    """One environment variable: its name, default and accepted values.

    ``type_hint`` selects the string converter unless ``coerce`` is given;
    ``validator`` receives the converted value and returns whether it is
    acceptable. Defaults are never passed through the validator.
    """

    name: str
    default: Any
    type_hint: type
    description: str
    validator: Callable[[Any], bool] | None = None
    coerce: Callable[[str], Any] | None = None


class ConfigSchema:
    """Registry of all configuration environment variables."""

    # === Logging ===

    LOG_LEVEL = EnvVarSpec(
        name="LOG_LEVEL",
        default="INFO",
        type_hint=str,
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
        validator=lambda x: x.split()[0].upper() in VALID_LOG_LEVELS,
    )

    # === Auth API ===

    AUTH_BASE_URL = EnvVarSpec(
        name="AUTH_BASE_URL",
        default=OAuthClientDefaults.BASE_URL,
        type_hint=str,
        description="Auth API protocol and host",
        validator=lambda x: x.startswith(("http://", "https://")),
    )

    OAUTH_CLIENT_ID = EnvVarSpec(
        name="OAUTH_CLIENT_ID",
        default=OAuthClientDefaults.CLIENT_ID,
        type_hint=str,
        description="Registered OAuth client id",
        validator=lambda x: bool(x.strip()),
    )

    OAUTH_REDIRECT_URI = EnvVarSpec(
        name="OAUTH_REDIRECT_URI",
        default=OAuthClientDefaults.REDIRECT_URI,
        type_hint=str,
        description="Registered OAuth redirect URI",
        validator=lambda x: bool(x.strip()),
    )

    OAUTH_SCOPE = EnvVarSpec(
        name="OAUTH_SCOPE",
        default=OAuthClientDefaults.SCOPE,
        type_hint=str,
        description="Scope requested when opening an authorization session",
        validator=lambda x: bool(x.strip()),
    )

    TOKEN_EXPIRY_LEEWAY_SECONDS = EnvVarSpec(
        name="TOKEN_EXPIRY_LEEWAY_SECONDS",
        default=TokenExpiryDefaults.LEEWAY_SECONDS,
        type_hint=float,
        description="Treat access tokens as expired this many seconds early",
        validator=lambda x: ValidationLimits.MIN_LEEWAY <= x <= ValidationLimits.MAX_LEEWAY,
    )

    # === HTTP ===

    HTTP_REQUEST_TIMEOUT = EnvVarSpec(
        name="HTTP_REQUEST_TIMEOUT",
        default=HttpDefaults.REQUEST_TIMEOUT,
        type_hint=float,
        description="Auth API request timeout in seconds",
        validator=lambda x: ValidationLimits.MIN_TIMEOUT <= x <= ValidationLimits.MAX_TIMEOUT,
    )

    HTTP_MAX_RETRIES = EnvVarSpec(
        name="HTTP_MAX_RETRIES",
        default=HttpDefaults.MAX_RETRIES,
        type_hint=int,
        description="Retry attempts for rate-limited or failed Auth API requests",
        validator=lambda x: ValidationLimits.MIN_RETRIES <= x <= ValidationLimits.MAX_RETRIES,
    )

    HTTP_LOG_REQUESTS = EnvVarSpec(
        name="HTTP_LOG_REQUESTS",
        default=True,
        type_hint=bool,
        description="Log Auth API requests and responses at DEBUG level",
    )

    @classmethod
    def all_specs(cls) -> dict[str, EnvVarSpec]:
        """Map attribute name to spec for every declared variable."""
        return {
            attr: value
            for attr, value in vars(cls).items()
            if isinstance(value, EnvVarSpec)
        }

    @classmethod
    def get_spec(cls, name: str) -> EnvVarSpec | None:
        """Look a variable up by its environment name."""
        return next((s for s in cls.all_specs().values() if s.name == name), None)

    @classmethod
    def generate_markdown_docs(cls) -> str:
        """Render every variable, alphabetically, as a Markdown reference."""
        sections = ["# services-kit configuration\n"]
        for spec in sorted(cls.all_specs().values(), key=lambda s: s.name):
            default = "unset" if spec.default is None else f"`{spec.default!r}`"
            sections.append(
                f"### `{spec.name}`\n\n"
                f"{spec.description}.\n\n"
                f"Type `{spec.type_hint.__name__}`, default {default}.\n"
            )
        return "\n".join(sections)
