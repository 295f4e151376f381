"""Configuration loader with merge logic and precedence handling."""

import copy
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Optional

import yaml

from infra_bootstrap.config.defaults import DEFAULT_CONFIG, ENV_OVERRIDES, TOKEN_ENV_VARS
from infra_bootstrap.config.schema import BootstrapConfig
from infra_bootstrap.errors import ConfigError
from infra_bootstrap.utils.paths import expand_path

CONFIG_FILE_NAME = "bootstrap.yaml"
USER_CONFIG_PATH = "~/.config/infra-bootstrap/bootstrap.yaml"


def find_config_files() -> list[Path]:
    """Find configuration files in standard locations.

    Searches for configuration files in order of precedence (lowest to highest):
    1. Project config (./bootstrap.yaml in current directory)
    2. User config (~/.config/infra-bootstrap/bootstrap.yaml)

    Returns:
        List of existing config files, ordered from lowest to highest
        precedence (so later configs override earlier ones)
    """
    config_files = []

    project_config = Path.cwd() / CONFIG_FILE_NAME
    if project_config.exists():
        config_files.append(project_config)

    user_config = expand_path(USER_CONFIG_PATH)
    if user_config.exists():
        config_files.append(user_config)

    return config_files


def load_yaml_file(file_path: Path) -> dict[str, Any]:
    """Load and parse a YAML configuration file.

    Args:
        file_path: Path to the YAML file

    Returns:
        Dictionary containing the parsed YAML content

    Raises:
        yaml.YAMLError: If the file contains invalid YAML
        FileNotFoundError: If the file doesn't exist
        ConfigError: If the top level of the document is not a mapping
    """
    with open(file_path, "r") as f:
        content = yaml.safe_load(f)
    if content is None:
        return {}
    if not isinstance(content, dict):
        raise ConfigError(
            "Configuration file must contain a mapping",
            context={"file": str(file_path)},
        )
    return content


def merge_configs(configs: list[Mapping[str, Any]]) -> dict[str, Any]:
    """Deep merge multiple configuration dictionaries.

    Later configs override earlier ones. Nested dictionaries are merged
    recursively; lists and scalars are replaced outright.
    """
    result: dict[str, Any] = {}
    for config in configs:
        result = _deep_merge(result, config)
    return result


def _deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    result = copy.deepcopy(dict(base))

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, Mapping):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = copy.deepcopy(value)

    return result


def apply_env_overrides(
    config: Mapping[str, Any], environ: Optional[Mapping[str, str]] = None
) -> dict[str, Any]:
    """Apply environment variable overrides to configuration.

    Recognized variables are listed in ``ENV_OVERRIDES`` (MODE, ENVIRONMENT,
    REPO, REF, WORKDIR, LOG_DIR, TF_DIR, ANSIBLE_PLAYBOOK, ANSIBLE_INVENTORY).
    Empty values are ignored. The auth token comes from AUTH_TOKEN, falling
    back to GITHUB_TOKEN.

    Args:
        config: Configuration dictionary to apply overrides to
        environ: Environment mapping (defaults to ``os.environ``)

    Returns:
        New configuration dictionary with overrides applied
    """
    env = os.environ if environ is None else environ
    result = copy.deepcopy(dict(config))

    for var, key_path in ENV_OVERRIDES.items():
        value = env.get(var)
        if not value:
            continue
        section = result
        for key in key_path[:-1]:
            section = section.setdefault(key, {})
        section[key_path[-1]] = value

    for var in TOKEN_ENV_VARS:
        if token := env.get(var):
            result["auth_token"] = token
            break

    return result


def load_config(
    config_path: Optional[Path] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> BootstrapConfig:
    """Load and merge configuration from all sources.

    Configuration precedence (lowest to highest):
    1. Built-in defaults
    2. Project config (./bootstrap.yaml)
    3. User config (~/.config/infra-bootstrap/bootstrap.yaml)
    4. Explicitly provided config_path
    5. Environment variables
    6. ``overrides`` (CLI flags)

    Args:
        config_path: Optional explicit path to a config file
        overrides: Nested dictionary of values set on the command line

    Returns:
        Validated, immutable BootstrapConfig

    Raises:
        pydantic.ValidationError: If the merged configuration is invalid
        yaml.YAMLError: If a config file contains invalid YAML
        ConfigError: If config_path is provided but doesn't exist
    """
    configs_to_merge: list[Mapping[str, Any]] = [DEFAULT_CONFIG]

    for config_file in find_config_files():
        configs_to_merge.append(load_yaml_file(config_file))

    if config_path is not None:
        if not config_path.exists():
            raise ConfigError(
                "Config file not found", context={"file": str(config_path)}
            )
        configs_to_merge.append(load_yaml_file(config_path))

    merged_config = apply_env_overrides(merge_configs(configs_to_merge))

    if overrides:
        merged_config = merge_configs([merged_config, _drop_none(overrides)])

    return BootstrapConfig(**merged_config)


def _drop_none(values: Mapping[str, Any]) -> dict[str, Any]:
    """Remove unset CLI values so they do not mask lower layers."""
    result = {}
    for key, value in values.items():
        if isinstance(value, Mapping):
            nested = _drop_none(value)
            if nested:
                result[key] = nested
        elif value is not None:
            result[key] = value
    return result
