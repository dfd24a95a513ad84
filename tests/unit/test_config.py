"""Tests for environment-driven configuration."""

import pytest

from services_kit.core.config import (
    Config,
    ConfigError,
    ConfigSchema,
    load_config,
    load_env_var,
    validate_all,
)
from services_kit.core.oauth import OAuthClientConfig


@pytest.mark.unit
class TestLoadEnvVar:
    def test_unset_returns_default(self):
        assert load_env_var(ConfigSchema.HTTP_MAX_RETRIES) == ConfigSchema.HTTP_MAX_RETRIES.default

    def test_coerces_numbers(self, monkeypatch):
        monkeypatch.setenv("HTTP_MAX_RETRIES", "5")
        monkeypatch.setenv("HTTP_REQUEST_TIMEOUT", "12.5")

        assert load_env_var(ConfigSchema.HTTP_MAX_RETRIES) == 5
        assert load_env_var(ConfigSchema.HTTP_REQUEST_TIMEOUT) == 12.5

    @pytest.mark.parametrize(
        "raw, expected",
        [("true", True), ("1", True), ("YES", True), ("on", True), ("false", False), ("0", False)],
    )
    def test_coerces_booleans(self, monkeypatch, raw, expected):
        monkeypatch.setenv("HTTP_LOG_REQUESTS", raw)
        assert load_env_var(ConfigSchema.HTTP_LOG_REQUESTS) is expected

    def test_conversion_failure(self, monkeypatch):
        monkeypatch.setenv("HTTP_MAX_RETRIES", "three")

        with pytest.raises(ConfigError) as exc_info:
            load_env_var(ConfigSchema.HTTP_MAX_RETRIES)

        assert exc_info.value.env_var == "HTTP_MAX_RETRIES"
        assert exc_info.value.value == "three"
        assert "int" in exc_info.value.message

    @pytest.mark.parametrize(
        "name, raw",
        [
            ("HTTP_MAX_RETRIES", "11"),
            ("HTTP_REQUEST_TIMEOUT", "0"),
            ("TOKEN_EXPIRY_LEEWAY_SECONDS", "-1"),
            ("AUTH_BASE_URL", "quack.duckduckgo.com"),
            ("OAUTH_CLIENT_ID", "   "),
            ("LOG_LEVEL", "LOUD"),
        ],
    )
    def test_validation_failure(self, monkeypatch, name, raw):
        monkeypatch.setenv(name, raw)

        with pytest.raises(ConfigError):
            load_env_var(ConfigSchema.get_spec(name))

    def test_empty_log_level_is_a_config_error(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "")

        with pytest.raises(ConfigError) as exc_info:
            load_env_var(ConfigSchema.LOG_LEVEL)

        assert "Validation error" in exc_info.value.message


@pytest.mark.unit
class TestValidateAll:
    def test_clean_environment_is_valid(self):
        assert validate_all() == []

    def test_collects_every_error(self, monkeypatch):
        monkeypatch.setenv("HTTP_MAX_RETRIES", "many")
        monkeypatch.setenv("AUTH_BASE_URL", "ftp://example.com")

        errors = validate_all()

        assert sorted(error.env_var for error in errors) == ["AUTH_BASE_URL", "HTTP_MAX_RETRIES"]


@pytest.mark.unit
class TestConfig:
    def test_defaults_match_oauth_defaults(self):
        assert Config().oauth_client_config() == OAuthClientConfig()

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("AUTH_BASE_URL", "https://auth.test")
        monkeypatch.setenv("OAUTH_CLIENT_ID", "client-1")
        monkeypatch.setenv("TOKEN_EXPIRY_LEEWAY_SECONDS", "30")
        monkeypatch.setenv("HTTP_MAX_RETRIES", "0")
        monkeypatch.setenv("HTTP_LOG_REQUESTS", "false")

        config = Config()
        oauth = config.oauth_client_config()
        http = config.http_client_config()

        assert oauth.base_url == "https://auth.test"
        assert oauth.client_id == "client-1"
        assert oauth.expiry_leeway == 30.0
        assert http.max_retries == 0
        assert http.enable_logging is False

    def test_as_dict_is_keyed_by_variable_name(self):
        values = Config().as_dict()
        names = {spec.name for spec in ConfigSchema.all_specs().values()}
        assert set(values) == names

    def test_invalid_value_raises(self, monkeypatch):
        monkeypatch.setenv("HTTP_REQUEST_TIMEOUT", "soon")
        with pytest.raises(ConfigError):
            Config()


@pytest.mark.unit
class TestLoadConfig:
    def test_reads_env_file(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("OAUTH_SCOPE=privacypro-test\nLOG_LEVEL=debug\n")

        config = load_config(env_file)

        assert config.scope == "privacypro-test"
        assert config.log_level == "debug"

    def test_environment_wins_over_env_file(self, tmp_path, monkeypatch):
        env_file = tmp_path / ".env"
        env_file.write_text("OAUTH_SCOPE=from-file\n")
        monkeypatch.setenv("OAUTH_SCOPE", "from-env")

        assert load_config(env_file).scope == "from-env"


@pytest.mark.unit
class TestSchemaDocs:
    def test_every_variable_is_documented(self):
        docs = ConfigSchema.generate_markdown_docs()
        for spec in ConfigSchema.all_specs().values():
            assert f"### `{spec.name}`" in docs
