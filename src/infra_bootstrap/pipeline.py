"""Bootstrap pipeline orchestrator.

A run goes through these phases, strictly in order:
1. Host detection (OS, privileges)
2. Fetch, verify and extract the repository archive into the workdir
3. Install prerequisites (Terraform, Python virtualenv with Ansible)
4. Terraform in the environment's root module, subcommands chosen by mode
5. Ansible over the environment's inventory (apply mode only)

Any error aborts the run; nothing is rolled back and the downloaded archive
and extracted tree stay in the workdir.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

from infra_bootstrap.config.schema import BootstrapConfig, Mode
from infra_bootstrap.core.artifact import FetchRequest, FetchResult
from infra_bootstrap.errors import ConfigError
from infra_bootstrap.fetch.protocols import ArtifactFetcher
from infra_bootstrap.tools.ansible import Ansible
from infra_bootstrap.tools.command import CommandRunner
from infra_bootstrap.tools.prereqs import HostPrerequisites
from infra_bootstrap.tools.protocols import ConfigManager, ProvisioningTool
from infra_bootstrap.tools.terraform import Terraform
from infra_bootstrap.utils.output import print_info, print_success
from infra_bootstrap.utils.paths import expand_path, with_bin_dir

logger = logging.getLogger(__name__)


@dataclass
class BootstrapContext:
    """Everything a bootstrap run needs.

    Attributes:
        config: Immutable run configuration
        fetcher: Archive fetcher
        runner: Runs terraform, ansible, apt and pip
        prerequisites: Host installer (built from ``runner`` when omitted)
        skip_prereqs: Expect tools to be installed already
    """

    config: BootstrapConfig
    fetcher: ArtifactFetcher
    runner: CommandRunner
    prerequisites: Optional[HostPrerequisites] = None
    skip_prereqs: bool = False
    tool_env: Optional[dict[str, str]] = field(default=None, init=False)

    def __post_init__(self):
        if self.prerequisites is None:
            self.prerequisites = HostPrerequisites(self.runner)


def build_fetch_request(config: BootstrapConfig) -> FetchRequest:
    """Fetch request for the configured source and workdir.

    Raises:
        ConfigError: If the workdir exists and is not a directory
    """
    try:
        return FetchRequest(
            repo=config.source.repo,
            ref=config.source.ref,
            destination_dir=expand_path(config.workdir),
            auth_token=config.auth_token,
            checksum_url=config.source.checksum_url,
        )
    except ValueError as e:
        raise ConfigError(str(e), context={"workdir": config.workdir}) from e


async def fetch_repository(context: BootstrapContext) -> FetchResult:
    """Phase 2: fetch the configured repository archive."""
    request = build_fetch_request(context.config)
    result = await context.fetcher.fetch(request)
    print_success(f"Repository extracted to: {result.extracted_root_dir}")
    return result


def install_prerequisites(context: BootstrapContext, root: Path) -> None:
    """Phase 3: make terraform (and ansible) available.

    Sets ``context.tool_env`` so later phases see the virtualenv's bin/
    directory first on PATH.
    """
    config = context.config
    install = config.prerequisites.install and not context.skip_prereqs
    venv_path = root / config.prerequisites.venv_dir

    if install:
        print_info("Installing prerequisites (Terraform, Python venv, Ansible)")
        assert context.prerequisites is not None
        context.prerequisites.ensure_terraform()
        venv_path = context.prerequisites.ensure_ansible(root, config.prerequisites.venv_dir)
        print_success("Prerequisites ready")
    else:
        logger.info("Skipping prerequisite installation")

    if (venv_path / "bin").is_dir():
        context.tool_env = with_bin_dir(venv_path / "bin", context.runner.env)

    required = ["terraform"]
    if config.mode is Mode.APPLY:
        required.append("ansible-playbook")
    context.runner.require(*required, env=context.tool_env)


def run_terraform(context: BootstrapContext, root: Path) -> None:
    """Phase 4: init, validate and run the mode's terraform subcommands."""
    config = context.config
    tf_dir = root / config.terraform_dir
    if not tf_dir.is_dir():
        raise ConfigError("TF_DIR not found", context={"tf_dir": str(tf_dir)})

    print_info(f"Terraform @ {config.terraform_dir}")
    terraform: ProvisioningTool = Terraform(
        context.runner, tf_dir, plan_file=config.terraform.plan_file, env=context.tool_env
    )
    if config.terraform.workspace:
        terraform.select_workspace(config.environment)
    terraform.init()
    terraform.validate()
    terraform.run_mode(config.mode)
    print_success(f"Terraform {config.mode.value} complete")


def run_ansible(context: BootstrapContext, root: Path) -> bool:
    """Phase 5: configure hosts. Only runs in apply mode.

    Returns:
        True if the playbook ran
    """
    config = context.config
    if config.mode is not Mode.APPLY:
        return False

    print_info("Ansible: configure hosts")
    ansible: ConfigManager = Ansible(
        context.runner,
        root,
        forks=config.ansible.forks,
        diff=config.ansible.diff,
        env=context.tool_env,
    )
    ansible.install_requirements(Path(config.ansible.requirements))
    ansible.run(Path(config.ansible_inventory), Path(config.ansible.playbook))
    print_success("Ansible run complete")
    return True


async def run_bootstrap(context: BootstrapContext) -> FetchResult:
    """Run every phase for the configured mode and environment.

    Args:
        context: Configuration and collaborators for the run

    Returns:
        The fetch result the later phases worked from

    Raises:
        BootstrapError: From whichever phase failed
    """
    assert context.prerequisites is not None
    context.prerequisites.detect()

    result = await fetch_repository(context)
    root = result.extracted_root_dir

    install_prerequisites(context, root)
    run_terraform(context, root)
    run_ansible(context, root)

    print_success(
        f"Done ({context.config.mode.value}) for environment: {context.config.environment}"
    )
    return result


def describe_plan(config: BootstrapConfig, fetch_url: str) -> list[tuple[str, str]]:
    """Steps a run would perform, as (phase, detail) rows for display."""
    steps = [("fetch", f"{fetch_url} -> {expand_path(config.workdir)}")]
    if config.prerequisites.install:
        steps.append(("prerequisites", "terraform (apt), ansible (virtualenv)"))
    steps.append(("terraform", f"{config.terraform_dir}: {_TERRAFORM_STEPS[config.mode]}"))
    if config.mode is Mode.APPLY:
        steps.append(
            ("ansible", f"{config.ansible.playbook} on {config.ansible_inventory}")
        )
    return steps


_TERRAFORM_STEPS: Mapping[Mode, str] = {
    Mode.PLAN: "init, validate, plan",
    Mode.APPLY: "init, validate, plan, apply",
    Mode.DESTROY: "init, validate, destroy",
    Mode.CHECK: "init, validate, fmt -check, validate",
}
