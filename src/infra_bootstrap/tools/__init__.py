"""External tools driven by the bootstrap."""

from infra_bootstrap.tools.ansible import Ansible
from infra_bootstrap.tools.command import CommandResult, CommandRunner
from infra_bootstrap.tools.prereqs import HostPrerequisites
from infra_bootstrap.tools.protocols import ConfigManager, ProvisioningTool
from infra_bootstrap.tools.terraform import Terraform

__all__ = [
    "Ansible",
    "CommandResult",
    "CommandRunner",
    "ConfigManager",
    "HostPrerequisites",
    "ProvisioningTool",
    "Terraform",
]
