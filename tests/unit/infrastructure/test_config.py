"""Tests for configuration loading and context overrides."""

from pathlib import Path

import pytest

from src.login_broker.runtime.config.config_data import (
    BrokerConfig,
    ConfigData,
    ExternalProviderConfig,
)
from src.login_broker.runtime.config.config_template import (
    filter_providers,
    load_templated_yaml,
    substitute_env_vars,
)
from src.login_broker.runtime.context import get_config, with_context

SHIPPED_CONFIG = Path(__file__).resolve().parents[3] / "config.yaml"

_YAML = """
config:
  app:
    environment: test
    port: ${BROKER_TEST_PORT:-9000}
  providers:
    github:
      authorization_endpoint: https://github.test/authorize
      token_endpoint: https://github.test/token
      client_id: ${BROKER_TEST_CLIENT_ID:?client id required}
      redirect_uri: http://localhost:9000/external/callback
    legacy:
      authorization_endpoint: https://legacy.test/authorize
      token_endpoint: https://legacy.test/token
      client_id: legacy
      redirect_uri: http://localhost:9000/external/callback
      enabled: false
  broker:
    identity_store: memory
"""


def _provider(**overrides) -> ExternalProviderConfig:
    values = {
        "authorization_endpoint": "https://p.test/authorize",
        "token_endpoint": "https://p.test/token",
        "client_id": "client",
        "redirect_uri": "http://localhost/cb",
    }
    values.update(overrides)
    return ExternalProviderConfig(**values)


class TestSubstitution:
    def test_default_is_used_when_unset(self, monkeypatch):
        monkeypatch.delenv("BROKER_UNSET", raising=False)
        assert substitute_env_vars("x=${BROKER_UNSET:-fallback}") == "x=fallback"

    def test_environment_value_wins(self, monkeypatch):
        monkeypatch.setenv("BROKER_SET", "value")
        assert substitute_env_vars("${BROKER_SET:-fallback}") == "value"

    def test_required_variable_missing_raises(self, monkeypatch):
        monkeypatch.delenv("BROKER_REQUIRED", raising=False)
        with pytest.raises(ValueError, match="needed"):
            substitute_env_vars("${BROKER_REQUIRED:?needed}")

    def test_comment_lines_are_not_substituted(self, monkeypatch):
        monkeypatch.delenv("BROKER_REQUIRED", raising=False)
        monkeypatch.delenv("BROKER_UNSET", raising=False)
        text = "# uses ${BROKER_REQUIRED}\nkey: ${BROKER_UNSET:-x}\n"

        assert substitute_env_vars(text) == "# uses ${BROKER_REQUIRED}\nkey: x\n"


class TestLoadTemplatedYaml:
    def test_loads_and_filters_providers(self, tmp_path, monkeypatch):
        monkeypatch.setenv("APP_ENVIRONMENT", "test")
        monkeypatch.setenv("BROKER_TEST_CLIENT_ID", "gh-client")
        monkeypatch.delenv("BROKER_TEST_PORT", raising=False)
        config_file = tmp_path / "config.yaml"
        config_file.write_text(_YAML)

        config = load_templated_yaml(config_file)

        assert config.app.port == 9000
        assert config.providers["github"].client_id == "gh-client"
        assert "legacy" not in config.providers
        assert config.broker.identity_store == "memory"
        assert config.broker.challenge_ttl_seconds == 600

    def test_environment_prefixed_overrides(self, tmp_path, monkeypatch):
        monkeypatch.setenv("APP_ENVIRONMENT", "test")
        monkeypatch.setenv("BROKER_TEST_CLIENT_ID", "gh-client")
        monkeypatch.setenv("TEST_BROKER_TEST_PORT", "9100")
        # Overrides are promoted into os.environ; let monkeypatch restore it
        monkeypatch.setenv("BROKER_TEST_PORT", "1")
        config_file = tmp_path / "config.yaml"
        config_file.write_text(_YAML)

        assert load_templated_yaml(config_file).app.port == 9100


    def test_shipped_config_loads_with_defaults(self, monkeypatch):
        monkeypatch.setenv("APP_ENVIRONMENT", "development")
        for var in ("GITHUB_ENABLED", "IDENTITY_STORE", "APP_PORT", "DATABASE_URL"):
            monkeypatch.delenv(var, raising=False)

        config = load_templated_yaml(SHIPPED_CONFIG)

        assert config.app.environment == "development"
        assert config.app.port == 8000
        assert list(config.providers) == ["keycloak"]
        assert config.broker.identity_store == "sql"
        assert config.database.url == "sqlite:///./database.db"


class TestFilterProviders:
    def test_dev_only_providers_are_dropped_in_production(self):
        config = ConfigData(providers={"dev": _provider(dev_only=True), "prod": _provider()})

        filtered = filter_providers(config, "production")

        assert list(filtered.providers) == ["prod"]

    def test_dev_only_providers_are_kept_in_development(self):
        config = ConfigData(providers={"dev": _provider(dev_only=True)})

        assert "dev" in filter_providers(config, "development").providers


class TestContextOverride:
    def test_with_context_merges_and_restores(self):
        original_ttl = get_config().broker.challenge_ttl_seconds
        original_host = get_config().app.host

        with with_context(ConfigData(broker=BrokerConfig(challenge_ttl_seconds=30))):
            assert get_config().broker.challenge_ttl_seconds == 30
            assert get_config().app.host == original_host

        assert get_config().broker.challenge_ttl_seconds == original_ttl

    def test_with_context_rejects_other_types(self):
        with pytest.raises(ValueError):
            with with_context({"broker": {}}):
                pass
