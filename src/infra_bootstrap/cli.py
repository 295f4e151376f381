"""CLI application entry point."""

import asyncio
import logging
from pathlib import Path
from typing import Any, NoReturn, Optional

import typer
import yaml
from pydantic import ValidationError
from rich.table import Table

from infra_bootstrap.config.loader import CONFIG_FILE_NAME, find_config_files, load_config
from infra_bootstrap.config.schema import BootstrapConfig, Mode
from infra_bootstrap.errors import BootstrapError, ConfigError
from infra_bootstrap.fetch.codeload import CodeloadFetcher
from infra_bootstrap.pipeline import (
    BootstrapContext,
    build_fetch_request,
    describe_plan,
    run_bootstrap,
)
from infra_bootstrap.tools.command import CommandRunner
from infra_bootstrap.utils.log import configure_logging
from infra_bootstrap.utils.output import (
    console,
    print_banner,
    print_error,
    print_info,
    print_success,
    print_warning,
)
from infra_bootstrap.utils.paths import expand_path

logger = logging.getLogger("infra_bootstrap.cli")

app = typer.Typer(
    name="infra-bootstrap",
    help="Fetch a tagged infrastructure repository and run Terraform and Ansible from it",
    no_args_is_help=True,
)


# Template for init command
TEMPLATE_CONFIG = """version: "1.0"

# plan | apply | destroy | check (overridden by MODE or the run argument)
mode: plan
environment: dev
workdir: "~/gg_homelab"
log_dir: "~/log/gg_homelab"

source:
  repo: "GertGerber/GG_Homelab"
  ref: "v0.1.0"
  # checksum_url: "https://example.com/releases/v0.1.0/repo.tar.gz.sha256"

terraform:
  # dir: terraform/envs/dev
  workspace: true
  plan_file: tfplan

ansible:
  playbook: ansible/site.yml
  # inventory: ansible/inventories/dev
  requirements: ansible/requirements.yml
  forks: 20
  diff: true

prerequisites:
  install: true
  venv_dir: .venv
"""


def _cli_overrides(
    mode: Optional[Mode] = None,
    environment: Optional[str] = None,
    repo: Optional[str] = None,
    ref: Optional[str] = None,
    workdir: Optional[str] = None,
    token: Optional[str] = None,
) -> dict[str, Any]:
    return {
        "mode": mode.value if mode else None,
        "environment": environment,
        "workdir": workdir,
        "auth_token": token,
        "source": {"repo": repo, "ref": ref},
    }


def _load(config: Optional[Path], overrides: Optional[dict[str, Any]] = None) -> BootstrapConfig:
    """Load configuration, exiting with status 2 when it is unusable."""
    try:
        return load_config(config, overrides)
    except ValidationError as e:
        print_error("Configuration validation failed:")
        console.print(e)
        raise typer.Exit(ConfigError.exit_code)
    except (ConfigError, yaml.YAMLError, OSError) as e:
        print_error(f"Failed to load config: {e}")
        raise typer.Exit(ConfigError.exit_code)


def _fail(error: BootstrapError) -> NoReturn:
    logger.debug("Run failed", exc_info=error)
    print_error(f"ERROR: {error}")
    raise typer.Exit(error.exit_code)


def _start_logging(cfg: BootstrapConfig, verbose: bool) -> Path:
    try:
        return configure_logging(cfg.log_dir, verbose=verbose)
    except OSError as e:
        _fail(
            ConfigError(
                f"Cannot write log file: {e.strerror or e}",
                context={"log_dir": cfg.log_dir},
            )
        )


def _fetcher_for(cfg: BootstrapConfig) -> CodeloadFetcher:
    return CodeloadFetcher(
        host=cfg.source.host,
        timeout=cfg.source.timeout,
        logger=logging.getLogger("infra_bootstrap.fetch"),
    )


@app.command()
def run(
    mode: Optional[Mode] = typer.Argument(
        None, help="plan | apply | destroy | check (default: from config or MODE)"
    ),
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to config file (overrides default search)",
    ),
    environment: Optional[str] = typer.Option(
        None, "--environment", "-e", help="Configuration variant, e.g. dev or prod"
    ),
    repo: Optional[str] = typer.Option(None, "--repo", help="Repository as owner/name"),
    ref: Optional[str] = typer.Option(None, "--ref", help="Tag or commit SHA"),
    workdir: Optional[str] = typer.Option(None, "--workdir", help="Download directory"),
    token: Optional[str] = typer.Option(
        None, "--token", help="Bearer token for private repositories", show_default=False
    ),
    skip_prereqs: bool = typer.Option(
        False, "--skip-prereqs", help="Do not install terraform/ansible"
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Show what would be done without making changes",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug output"),
):
    """Fetch the repository and run Terraform, then Ansible for apply.

    Exits with the failing tool's status when an external command fails.
    """
    cfg = _load(config, _cli_overrides(mode, environment, repo, ref, workdir, token))
    fetcher = _fetcher_for(cfg)

    if dry_run:
        print_warning("DRY RUN MODE - No changes will be made")
        table = Table(show_header=True, header_style="bold cyan")
        table.add_column("Phase", style="green")
        table.add_column("Action")
        url = fetcher.build_url(cfg.source.repo, cfg.source.ref)
        for phase, detail in describe_plan(cfg, url):
            table.add_row(phase, detail)
        console.print(table)
        return

    log_path = _start_logging(cfg, verbose)
    print_banner(cfg.mode.value, cfg.environment)
    print_info(f"Logging to {log_path}")

    context = BootstrapContext(
        config=cfg,
        fetcher=fetcher,
        runner=CommandRunner(logger=logging.getLogger("infra_bootstrap.tools")),
        skip_prereqs=skip_prereqs,
    )
    try:
        asyncio.run(run_bootstrap(context))
    except BootstrapError as e:
        _fail(e)
    except KeyboardInterrupt:
        print_warning("Interrupted")
        raise typer.Exit(130)


@app.command()
def fetch(
    config: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Path to config file (overrides default search)"
    ),
    repo: Optional[str] = typer.Option(None, "--repo", help="Repository as owner/name"),
    ref: Optional[str] = typer.Option(None, "--ref", help="Tag or commit SHA"),
    workdir: Optional[str] = typer.Option(None, "--workdir", help="Download directory"),
    token: Optional[str] = typer.Option(
        None, "--token", help="Bearer token for private repositories", show_default=False
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug output"),
):
    """Download, verify and extract the repository archive only."""
    cfg = _load(config, _cli_overrides(repo=repo, ref=ref, workdir=workdir, token=token))
    _start_logging(cfg, verbose)

    try:
        result = asyncio.run(_fetcher_for(cfg).fetch(build_fetch_request(cfg)))
    except BootstrapError as e:
        _fail(e)
    except KeyboardInterrupt:
        print_warning("Interrupted")
        raise typer.Exit(130)

    print_success(f"Repository extracted to: {result.extracted_root_dir}")
    if not result.checksum_verified:
        print_warning("Archive checksum was not verified")


@app.command()
def init(
    path: Optional[Path] = typer.Argument(
        None,
        help=f"Path where config should be created (default: ./{CONFIG_FILE_NAME})",
    ),
    force: bool = typer.Option(
        False,
        "--force",
        help="Overwrite existing config file",
    ),
):
    """Create a bootstrap.yaml template."""
    if path is None:
        path = Path.cwd() / CONFIG_FILE_NAME

    if path.exists() and not force:
        print_error(f"Config file already exists: {path}")
        print_info("Use --force to overwrite")
        raise typer.Exit(1)

    try:
        path.write_text(TEMPLATE_CONFIG)
    except OSError as e:
        print_error(f"Failed to create config: {e}")
        raise typer.Exit(1)

    print_success(f"Created config file: {path}")
    print_info("Edit the file to point at your infrastructure repository")


@app.command()
def validate(
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to config file",
    ),
):
    """Validate configuration and show the resolved settings."""
    sources = [str(p) for p in find_config_files()]
    if config is not None:
        sources.append(str(config))
    print_info(f"Config files: {', '.join(sources) if sources else 'none (defaults only)'}")

    cfg = _load(config)
    print_success("Configuration is valid")
    console.print()

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Setting", style="green")
    table.add_column("Value")
    table.add_row("mode", cfg.mode.value)
    table.add_row("environment", cfg.environment)
    table.add_row("repo", cfg.source.repo)
    table.add_row("ref", cfg.source.ref)
    table.add_row("workdir", str(expand_path(cfg.workdir)))
    table.add_row("log_dir", str(expand_path(cfg.log_dir)))
    table.add_row("terraform dir", cfg.terraform_dir)
    table.add_row("ansible inventory", cfg.ansible_inventory)
    table.add_row("ansible playbook", cfg.ansible.playbook)
    table.add_row("checksum", cfg.source.checksum_url or "sibling file if present")
    table.add_row("auth token", "set" if cfg.auth_token else "not set")
    console.print(table)


if __name__ == "__main__":
    app()
