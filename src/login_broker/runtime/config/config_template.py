"""Configuration template substitution utilities."""

import os
import re
from pathlib import Path

import yaml
from loguru import logger
from pydantic_core import ValidationError

from src.login_broker.runtime.config.config_data import ConfigData
from src.login_broker.runtime.config.settings import EnvironmentVariables


def substitute_env_vars(text: str) -> str:
    """
    Substitute environment variable placeholders in text.

    Supports formats:
    - ${VAR_NAME} - required variable (raises error if missing)
    - ${VAR_NAME:-default} - optional with default value
    - ${VAR_NAME:?error_message} - required with custom error message
    """
    def replacer(match):
        var_expr = match.group(1)

        # Handle default values: ${VAR:-default}
        if ":-" in var_expr:
            var_name, default = var_expr.split(":-", 1)
            return os.getenv(var_name, default)

        # Handle error messages: ${VAR:?message}
        elif ":?" in var_expr:
            var_name, error_msg = var_expr.split(":?", 1)
            value = os.getenv(var_name)
            if value is None:
                raise ValueError(f"Required environment variable {var_name}: {error_msg}")
            return value

        # Handle required variables: ${VAR}
        else:
            var_name = var_expr
            value = os.getenv(var_name)
            if value is None:
                raise ValueError(f"Required environment variable {var_name} not set")
            return value

    pattern = re.compile(r'\$\{([^}]+)\}')
    # Comment lines are copied through untouched
    return "".join(
        line if line.lstrip().startswith("#") else pattern.sub(replacer, line)
        for line in text.splitlines(keepends=True)
    )


def _apply_environment_overrides(env_mode: str) -> None:
    """Promote ``<ENV>_FOO`` variables to ``FOO`` for the active environment."""
    prefix = f"{env_mode.upper()}_"
    env_variables = [var for var in os.environ if var.startswith(prefix)]
    if env_variables:
        # Names only, values may be secrets
        logger.info("Applying environment-specific overrides: {}", env_variables)

    for var_name in env_variables:
        new_var_name = var_name[len(prefix):]
        os.environ[new_var_name] = os.environ[var_name]
        logger.debug(f"Set environment variable {new_var_name} from {var_name}")


def filter_providers(config: ConfigData, env_mode: str) -> ConfigData:
    """Drop disabled providers, and dev-only providers outside development/test."""
    enabled_providers = {}
    for name, provider in config.providers.items():
        if not provider.enabled:
            logger.info(f"Skipping disabled provider '{name}'")
            continue
        if provider.dev_only and env_mode not in ("development", "test"):
            logger.info(f"Skipping provider '{name}' in non-development environment")
            continue
        enabled_providers[name] = provider

    if config.providers and not enabled_providers:
        logger.warning("No external providers are enabled after applying configuration filters")

    config.providers = enabled_providers
    return config


def load_templated_yaml(file_path: Path) -> ConfigData:
    """
    Load a YAML file with environment variable substitution.

    Args:
        file_path: Path to the YAML file

    Returns:
        Parsed configuration with environment variables substituted

    Raises:
        ValueError: If required environment variables are missing or the file is invalid
        FileNotFoundError: If the YAML file doesn't exist
    """
    with open(file_path) as f:
        content = f.read()

    env_mode = EnvironmentVariables().environment
    logger.info(f"Loading configuration for environment: {env_mode}")
    _apply_environment_overrides(env_mode)

    substituted_content = substitute_env_vars(content)

    try:
        loaded = yaml.safe_load(substituted_content)
        if not loaded:
            raise ValueError("Failed to parse YAML")
    except yaml.YAMLError as e:
        raise ValueError(f"Error parsing YAML: {e}") from e

    try:
        # Extract the 'config' section from the YAML structure
        config_data = loaded.get('config', {})
        config = ConfigData(**config_data)
    except ValidationError as e:
        raise ValueError(f"Invalid configuration: {e}") from e

    return filter_providers(config, env_mode)


def load_config() -> ConfigData:
    """Load the configuration file named by ``CONFIG_PATH``, or defaults if absent."""
    config_path = Path(EnvironmentVariables().config_path)
    if not config_path.exists():
        logger.warning(f"Configuration file {config_path} not found, using defaults")
        return ConfigData()
    return load_templated_yaml(config_path)
