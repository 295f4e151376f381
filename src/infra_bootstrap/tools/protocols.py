"""Interfaces of the external tools driven by the bootstrap."""

from pathlib import Path
from typing import Protocol, runtime_checkable

from infra_bootstrap.config.schema import Mode


@runtime_checkable
class ProvisioningTool(Protocol):
    """Infrastructure-as-code engine (Terraform-equivalent)."""

    def init(self) -> None: ...

    def validate(self) -> None: ...

    def select_workspace(self, name: str) -> None: ...

    def plan(self, out: str) -> None: ...

    def apply(self, plan_file: str) -> None: ...

    def destroy(self) -> None: ...

    def fmt_check(self) -> None: ...

    def run_mode(self, mode: Mode) -> None:
        """Run the subcommands that implement ``mode``."""
        ...


@runtime_checkable
class ConfigManager(Protocol):
    """Configuration management tool (Ansible-equivalent)."""

    def install_requirements(self, requirements: Path) -> bool:
        """Install role/collection dependencies; True on success."""
        ...

    def run(self, inventory: Path, playbook: Path) -> None:
        """Apply ``playbook`` to the hosts in ``inventory``."""
        ...
