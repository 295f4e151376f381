"""Terraform driven through its CLI."""

import logging
from pathlib import Path
from typing import Mapping, Optional

from infra_bootstrap.config.schema import Mode
from infra_bootstrap.tools.command import CommandResult, CommandRunner

logger = logging.getLogger(__name__)


class Terraform:
    """Runs terraform subcommands inside one root module directory."""

    def __init__(
        self,
        runner: CommandRunner,
        working_dir: Path,
        plan_file: str = "tfplan",
        binary: str = "terraform",
        env: Optional[Mapping[str, str]] = None,
    ):
        self.runner = runner
        self.working_dir = working_dir
        self.plan_file = plan_file
        self.binary = binary
        self.env = env

    def _run(self, *args: str, check: bool = True) -> CommandResult:
        return self.runner.run(
            [self.binary, *args], cwd=self.working_dir, env=self.env, check=check
        )

    def init(self) -> None:
        self._run("init", "-input=false")

    def validate(self) -> None:
        self._run("validate")

    def select_workspace(self, name: str) -> None:
        """Select workspace ``name``, creating it if it does not exist.

        Skipped when the backend does not support workspaces.
        """
        if not self._run("workspace", "list", check=False).ok:
            logger.debug("Workspaces not supported here; skipping selection")
            return
        if not self._run("workspace", "select", name, check=False).ok:
            self._run("workspace", "new", name)

    def plan(self, out: str) -> None:
        self._run("plan", "-input=false", f"-out={out}")

    def apply(self, plan_file: str) -> None:
        self._run("apply", "-input=false", "-auto-approve", plan_file)

    def destroy(self) -> None:
        self._run("destroy", "-input=false", "-auto-approve")

    def fmt_check(self) -> None:
        self._run("fmt", "-check")

    def run_mode(self, mode: Mode) -> None:
        """Run the subcommands for ``mode`` after init and validate have run.

        plan    -> plan to the saved plan file
        apply   -> plan, then apply exactly that plan
        destroy -> destroy without prompting
        check   -> fmt -check, then validate
        """
        if mode is Mode.PLAN:
            self.plan(self.plan_file)
        elif mode is Mode.APPLY:
            self.plan(self.plan_file)
            self.apply(self.plan_file)
        elif mode is Mode.DESTROY:
            self.destroy()
        elif mode is Mode.CHECK:
            self.fmt_check()
            self.validate()
        else:
            raise ValueError(f"Unknown mode: {mode}")
