from services_kit.core.config.config import Config, load_config
from services_kit.core.config.schema import ConfigSchema, EnvVarSpec
from services_kit.core.config.validation import ConfigError, load_env_var, validate_all

__all__ = [
    "Config",
    "ConfigError",
    "ConfigSchema",
    "EnvVarSpec",
    "load_config",
    "load_env_var",
    "validate_all",
]
