"""Configuration loading and management."""

from infra_bootstrap.config.loader import (
    find_config_files,
    load_config,
    merge_configs,
)
from infra_bootstrap.config.schema import (
    AnsibleConfig,
    BootstrapConfig,
    Mode,
    PrerequisitesConfig,
    SourceConfig,
    TerraformConfig,
)

__all__ = [
    # Loader functions
    "find_config_files",
    "load_config",
    "merge_configs",
    # Schema classes
    "AnsibleConfig",
    "BootstrapConfig",
    "Mode",
    "PrerequisitesConfig",
    "SourceConfig",
    "TerraformConfig",
]
