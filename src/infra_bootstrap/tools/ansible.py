"""Ansible driven through ansible-galaxy and ansible-playbook."""

import logging
from pathlib import Path
from typing import Mapping, Optional

from infra_bootstrap.errors import ConfigError
from infra_bootstrap.tools.command import CommandRunner

logger = logging.getLogger(__name__)


class Ansible:
    """Runs a playbook against an inventory from the repository root."""

    def __init__(
        self,
        runner: CommandRunner,
        working_dir: Path,
        forks: int = 20,
        diff: bool = True,
        env: Optional[Mapping[str, str]] = None,
    ):
        """Initialize the Ansible wrapper.

        Args:
            runner: Command runner
            working_dir: Repository root; relative paths resolve against it
            forks: Parallel host processes for ansible-playbook
            diff: Show file diffs for changed tasks
            env: Child environment, e.g. with a virtualenv's bin/ on PATH
        """
        self.runner = runner
        self.working_dir = working_dir
        self.forks = forks
        self.diff = diff
        self.env = env

    def install_requirements(self, requirements: Path) -> bool:
        """Install Galaxy roles and collections listed in ``requirements``.

        A missing file or a failing install only logs a warning.
        """
        if not (self.working_dir / requirements).is_file():
            logger.warning("%s not found; continuing", requirements)
            return False
        if self.runner.which("ansible-galaxy", env=self.env) is None:
            logger.warning("ansible-galaxy not installed; skipping %s", requirements)
            return False
        result = self.runner.run(
            ["ansible-galaxy", "install", "-r", str(requirements)],
            cwd=self.working_dir,
            env=self.env,
            check=False,
        )
        if not result.ok:
            logger.warning(
                "ansible-galaxy install exited with %s; continuing", result.returncode
            )
        return result.ok

    def run(self, inventory: Path, playbook: Path) -> None:
        """Run ``playbook`` against ``inventory``.

        Raises:
            ConfigError: If the inventory or playbook does not exist
            ExternalToolError: If ansible-playbook fails
        """
        if not (self.working_dir / inventory).exists():
            raise ConfigError("Inventory not found", context={"inventory": str(inventory)})
        if not (self.working_dir / playbook).is_file():
            raise ConfigError("Playbook not found", context={"playbook": str(playbook)})

        argv = ["ansible-playbook", "-i", str(inventory), str(playbook)]
        if self.diff:
            argv.append("--diff")
        argv.extend(["--forks", str(self.forks)])
        self.runner.run(argv, cwd=self.working_dir, env=self.env)
