"""
Configuration loader for strongbox.

Loads and merges configuration from multiple sources:
1. Default values
2. Config file (~/.strongbox/config.yaml)
3. Environment variables (STRONGBOX_*)
"""

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from strongbox.config.schema import StoreConfig
from strongbox.storage.paths import expand_path, get_config_path, get_strongbox_home

logger = logging.getLogger(__name__)

# Environment variable -> config field
ENV_OVERRIDES: dict[str, str] = {
    "STRONGBOX_DIR": "store_dir",
    "STRONGBOX_IDENTITIES_FILE": "identities_file",
    "STRONGBOX_RECIPIENTS_FILE": "recipients_file",
    "STRONGBOX_BACKEND": "backend",
    "STRONGBOX_EXTENSION": "extension",
    "STRONGBOX_GENERATED_LENGTH": "generated_length",
    "STRONGBOX_CHARACTER_SET": "character_set",
    "STRONGBOX_CHARACTER_SET_NO_SYMBOLS": "no_symbols_set",
}

PATH_FIELDS = {"home", "store_dir", "identities_file", "recipients_file"}


class ConfigurationError(Exception):
    """Raised when configuration loading or validation fails."""

    pass


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a YAML configuration file.

    Args:
        path: Path to the YAML file.

    Returns:
        Parsed configuration dictionary.

    Raises:
        ConfigurationError: If the file cannot be read or parsed.
    """
    try:
        with open(path, encoding="utf-8") as f:
            content = yaml.safe_load(f)
    except FileNotFoundError:
        return {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"invalid YAML in {path}: {e}") from e
    except OSError as e:
        raise ConfigurationError(f"cannot read {path}: {e}") from e

    if content is None:
        return {}
    if not isinstance(content, dict):
        raise ConfigurationError(f"{path} must contain a mapping")
    return content


def apply_env_overrides(config: dict[str, Any], environ: dict[str, str] | None = None) -> dict[str, Any]:
    """
    Apply environment variable overrides to configuration.

    Args:
        config: Configuration dictionary to modify.
        environ: Environment to read. Defaults to os.environ.

    Returns:
        Configuration with environment overrides applied.
    """
    env = os.environ if environ is None else environ

    for var, field in ENV_OVERRIDES.items():
        value = env.get(var)
        if value:
            config[field] = value

    # Presence of a non-empty STRONGBOX_NOGIT disables the audit trail
    if env.get("STRONGBOX_NOGIT"):
        audit = dict(config.get("audit") or {})
        audit["enable"] = False
        config["audit"] = audit

    return config


def _expand_paths(config: dict[str, Any]) -> dict[str, Any]:
    for field in PATH_FIELDS:
        value = config.get(field)
        if isinstance(value, (str, Path)):
            config[field] = expand_path(value)
    return config


def load_config(
    home: Path | None = None,
    skip_file: bool = False,
    skip_env: bool = False,
) -> StoreConfig:
    """
    Load and merge configuration from all sources.

    Args:
        home: strongbox home directory. Defaults to STRONGBOX_HOME or ~/.strongbox.
        skip_file: Skip loading the config file.
        skip_env: Skip environment variable overrides.

    Returns:
        Validated StoreConfig.

    Raises:
        ConfigurationError: If configuration is invalid.
    """
    home = Path(home) if home is not None else get_strongbox_home()
    config_dict: dict[str, Any] = {"home": home}

    if not skip_file:
        config_path = get_config_path(home)
        file_config = load_yaml_file(config_path)
        if file_config:
            logger.debug(f"Loaded config file: {config_path}")
        file_config.pop("home", None)
        config_dict.update(file_config)

    if not skip_env:
        config_dict = apply_env_overrides(config_dict)

    config_dict = _expand_paths(config_dict)

    try:
        return StoreConfig.model_validate(config_dict)
    except ValidationError as e:
        raise ConfigurationError(f"configuration validation failed: {e}") from e
