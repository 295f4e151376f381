"""Host prerequisites: Terraform from the HashiCorp apt repository and
Ansible in a project virtualenv.

Only apt-based hosts (Debian/Ubuntu) are supported for installation.
"""

import logging
import os
import shlex
from pathlib import Path
from typing import Callable, Optional

import httpx

from infra_bootstrap.errors import ConfigError, FetchError
from infra_bootstrap.tools.command import CommandRunner

logger = logging.getLogger(__name__)

OS_RELEASE_PATH = Path("/etc/os-release")
HASHICORP_KEY_URL = "https://apt.releases.hashicorp.com/gpg"
HASHICORP_APT_URL = "https://apt.releases.hashicorp.com"
HASHICORP_KEYRING = "/usr/share/keyrings/hashicorp-archive-keyring.gpg"
HASHICORP_SOURCES = "/etc/apt/sources.list.d/hashicorp.list"


def read_os_release(path: Path = OS_RELEASE_PATH) -> dict[str, str]:
    """Parse an os-release file into a dict; empty if it does not exist."""
    if not path.exists():
        return {}
    values = {}
    for line in path.read_text().splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, raw = line.partition("=")
        try:
            parsed = shlex.split(raw)
        except ValueError:
            parsed = [raw]
        values[key.strip()] = parsed[0] if parsed else ""
    return values


def download_signing_key(url: str = HASHICORP_KEY_URL, timeout: float = 60.0) -> bytes:
    try:
        response = httpx.get(url, timeout=timeout, follow_redirects=True)
        response.raise_for_status()
    except httpx.HTTPError as e:
        raise FetchError(f"Failed to download signing key: {e}", context={"url": url}) from e
    return response.content


class HostPrerequisites:
    """Detects the host and installs missing tools with apt."""

    def __init__(
        self,
        runner: CommandRunner,
        os_release_path: Path = OS_RELEASE_PATH,
        euid: Optional[int] = None,
        key_downloader: Callable[[], bytes] = download_signing_key,
    ):
        """Initialize the installer.

        Args:
            runner: Command runner used for apt, gpg and pip
            os_release_path: os-release file describing the host
            euid: Effective user id (defaults to the current process)
            key_downloader: Returns the HashiCorp apt signing key
        """
        self.runner = runner
        self.os_release = read_os_release(os_release_path)
        self.euid = os.geteuid() if euid is None else euid
        self.key_downloader = key_downloader

    @property
    def sudo(self) -> list[str]:
        return [] if self.euid == 0 else ["sudo"]

    def detect(self) -> None:
        """Log the host OS and privilege level."""
        if pretty_name := self.os_release.get("PRETTY_NAME"):
            logger.info("Detected: %s", pretty_name)
        if self.euid != 0:
            logger.warning("Not running as root. Using sudo where required.")

    def require_apt(self) -> None:
        if self.runner.which("apt-get") is None:
            raise ConfigError(
                "This bootstrap currently supports apt-based systems only (Debian/Ubuntu).",
                hint="Install terraform and ansible yourself and run with --skip-prereqs.",
            )

    def apt_install(self, *packages: str, update: bool = False) -> None:
        if update:
            self.runner.run([*self.sudo, "apt-get", "update", "-y"])
        self.runner.run([*self.sudo, "apt-get", "install", "-y", *packages])

    def ensure_terraform(self) -> None:
        """Install Terraform from the HashiCorp apt repository if missing."""
        if self.runner.which("terraform"):
            return

        logger.info("Installing Terraform via apt")
        self.require_apt()
        codename = self.os_release.get("VERSION_CODENAME")
        if not codename:
            raise ConfigError(
                "Cannot determine the distribution codename",
                context={"field": "VERSION_CODENAME"},
            )

        self.apt_install("gnupg", "software-properties-common", update=True)
        self.runner.run(
            [*self.sudo, "gpg", "--batch", "--yes", "--dearmor", "-o", HASHICORP_KEYRING],
            input_bytes=self.key_downloader(),
        )
        source_line = f"deb [signed-by={HASHICORP_KEYRING}] {HASHICORP_APT_URL} {codename} main\n"
        self.runner.run([*self.sudo, "tee", HASHICORP_SOURCES], input_bytes=source_line.encode())
        self.apt_install("terraform", update=True)

    def ensure_ansible(self, root: Path, venv_dir: str = ".venv") -> Path:
        """Create a virtualenv under ``root`` and install Ansible into it.

        Python, the venv module and pip are installed with apt when missing.

        Returns:
            Path of the virtualenv
        """
        if self.runner.which("python3") is None:
            self.require_apt()
            self.apt_install("python3")
        if not self.runner.run(["python3", "-m", "venv", "-h"], check=False).ok:
            self.require_apt()
            self.apt_install("python3-venv")
        if self.runner.which("pip3") is None:
            self.require_apt()
            self.apt_install("python3-pip")

        venv_path = root / venv_dir
        self.runner.run(["python3", "-m", "venv", str(venv_path)], cwd=root)
        pip = str(venv_path / "bin" / "pip")
        self.runner.run([pip, "install", "--upgrade", "pip"], cwd=root)
        self.runner.run([pip, "install", "ansible"], cwd=root)
        return venv_path
