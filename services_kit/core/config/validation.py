"""Reading schema variables from the environment.

``load_env_var`` turns the raw string into the declared type and runs the
variable's validator. Problems surface as ConfigError, which names the
variable and the raw value so the CLI can print them as-is.
"""

import os
from collections.abc import Callable
from typing import Any

from services_kit.core.config.schema import ConfigSchema, EnvVarSpec

_TRUTHY = frozenset({"true", "1", "yes", "on"})


class ConfigError(Exception):
    """An environment variable holds a value the schema does not accept.

    Attributes:
        env_var: Variable name, e.g. ``HTTP_MAX_RETRIES``
        value: Raw string found in the environment
        message: What is wrong with it
    """

    def __init__(self, env_var: str, value: str, message: str) -> None:
        self.env_var = env_var
        self.value = value
        self.message = message
        super().__init__(f"{env_var}={value}: {message}")


def _to_bool(raw: str) -> bool:
    return raw.strip().lower() in _TRUTHY


_CONVERTERS: dict[type, Callable[[str], Any]] = {
    bool: _to_bool,
    int: int,
    float: float,
    str: str,
}


def load_env_var(spec: EnvVarSpec) -> Any:
    """Return the typed value of ``spec``, or its default when unset.

    Defaults are trusted and skip validation.

    Raises:
        ConfigError: The value cannot be converted or is rejected by the validator
    """
    raw = os.environ.get(spec.name)
    if raw is None:
        return spec.default

    convert = spec.coerce or _CONVERTERS.get(spec.type_hint, str)
    try:
        value = convert(raw)
    except (ValueError, TypeError) as e:
        message = f"Cannot convert to {spec.type_hint.__name__}: {e}"
        raise ConfigError(spec.name, raw, message) from e

    if spec.validator is None:
        return value
    try:
        accepted = spec.validator(value)
    except (TypeError, IndexError) as e:
        raise ConfigError(spec.name, raw, f"Validation error: {e}") from e
    if not accepted:
        raise ConfigError(spec.name, raw, f"Not an accepted {spec.type_hint.__name__} value")
    return value


def validate_all() -> list[ConfigError]:
    """Check every schema variable and collect the failures.

    Used by ``services-kit config validate`` to report all problems at
    once instead of stopping at the first one.
    """
    errors: list[ConfigError] = []
    for spec in ConfigSchema.all_specs().values():
        try:
            load_env_var(spec)
        except ConfigError as e:
            errors.append(e)
    return errors
