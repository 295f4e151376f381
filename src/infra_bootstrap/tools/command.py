"""Subprocess execution with logging and exit-status capture."""

import logging
import os
import shlex
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Sequence, Union

from infra_bootstrap.errors import ConfigError, ExternalToolError

StrPath = Union[str, Path]


@dataclass(frozen=True)
class CommandResult:
    argv: list[str]
    returncode: int
    output: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def format_argv(argv: Sequence[str]) -> str:
    return " ".join(shlex.quote(a) for a in argv)


class CommandRunner:
    """Runs external tools and records their output in the log.

    stdout and stderr are merged and streamed line by line to the logger, so
    long-running tools (terraform plan, ansible-playbook) report progress as
    they go and their output lands in the log file.
    """

    def __init__(
        self,
        env: Optional[Mapping[str, str]] = None,
        logger: Optional[logging.Logger] = None,
        dry_run: bool = False,
    ):
        """Initialize the runner.

        Args:
            env: Base environment for child processes (defaults to os.environ)
            logger: Logger receiving commands and their output
            dry_run: Log commands without executing them
        """
        self.env = dict(os.environ if env is None else env)
        self.log = logger or logging.getLogger(__name__)
        self.dry_run = dry_run

    def which(self, name: str, env: Optional[Mapping[str, str]] = None) -> Optional[str]:
        """Locate an executable on the PATH of ``env`` (or the runner's env)."""
        search_env = self.env if env is None else env
        return shutil.which(name, path=search_env.get("PATH"))

    def require(self, *names: str, env: Optional[Mapping[str, str]] = None) -> None:
        """Fail with ConfigError unless every executable is available."""
        missing = [name for name in names if self.which(name, env=env) is None]
        if missing:
            raise ConfigError(
                f"Missing: {', '.join(missing)}",
                hint="Install the missing tools or enable prerequisite installation.",
            )

    def run(
        self,
        argv: Sequence[StrPath],
        *,
        cwd: Optional[StrPath] = None,
        env: Optional[Mapping[str, str]] = None,
        check: bool = True,
        input_bytes: Optional[bytes] = None,
    ) -> CommandResult:
        """Run a command to completion.

        Args:
            argv: Program and arguments
            cwd: Working directory
            env: Full environment for the child (defaults to the runner's env)
            check: Raise ExternalToolError on a non-zero exit status
            input_bytes: Data written to the child's stdin

        Returns:
            CommandResult with the merged output

        Raises:
            ConfigError: If the program does not exist
            ExternalToolError: If ``check`` and the program exits non-zero
        """
        argv_list = [str(a) for a in argv]
        if self.dry_run:
            self.log.info("[dry-run] $ %s", format_argv(argv_list))
            return CommandResult(argv=argv_list, returncode=0, output="")
        self.log.info("$ %s", format_argv(argv_list))

        try:
            proc = subprocess.Popen(
                argv_list,
                cwd=str(cwd) if cwd is not None else None,
                env=dict(self.env if env is None else env),
                stdin=subprocess.PIPE if input_bytes is not None else subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
            )
        except FileNotFoundError as e:
            raise ConfigError(f"Missing: {argv_list[0]}", context={"command": format_argv(argv_list)}) from e

        if input_bytes is not None and proc.stdin is not None:
            # A child that exits without reading reports its status below
            try:
                proc.stdin.write(input_bytes)
            except BrokenPipeError:
                pass
            try:
                proc.stdin.close()
            except BrokenPipeError:
                pass

        lines = []
        assert proc.stdout is not None
        with proc.stdout:
            for raw in proc.stdout:
                line = raw.decode("utf-8", errors="replace").rstrip("\r\n")
                lines.append(line)
                self.log.info("  %s", line)
        returncode = proc.wait()

        result = CommandResult(argv=argv_list, returncode=returncode, output="\n".join(lines))
        if check and returncode != 0:
            raise ExternalToolError(
                argv_list, returncode, cwd=str(cwd) if cwd is not None else None
            )
        return result
