"""Shared pytest fixtures for infra-bootstrap tests."""

import io
import tarfile
from pathlib import Path
from typing import Optional

import pytest

from infra_bootstrap.errors import ExternalToolError
from infra_bootstrap.tools.command import CommandResult, CommandRunner

CONFIG_ENV_VARS = (
    "MODE",
    "ENVIRONMENT",
    "REPO",
    "REF",
    "WORKDIR",
    "LOG_DIR",
    "TF_DIR",
    "ANSIBLE_PLAYBOOK",
    "ANSIBLE_INVENTORY",
    "AUTH_TOKEN",
    "GITHUB_TOKEN",
)


@pytest.fixture
def anyio_backend():
    """The async core is built on asyncio."""
    return "asyncio"


@pytest.fixture(autouse=True)
def isolated_env(tmp_path_factory, monkeypatch):
    """Run every test from an empty directory with a private HOME."""
    for var in CONFIG_ENV_VARS:
        monkeypatch.delenv(var, raising=False)

    work_dir = tmp_path_factory.mktemp("work")
    home_dir = tmp_path_factory.mktemp("home")
    monkeypatch.chdir(work_dir)
    monkeypatch.setenv("HOME", str(home_dir))

    return {"work_dir": work_dir, "home_dir": home_dir}


def build_tarball(entries: dict[str, Optional[bytes]]) -> bytes:
    """Build a gzipped tarball in memory.

    A value of None adds a directory entry, bytes add a regular file.
    """
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w:gz") as tar:
        for name, data in entries.items():
            info = tarfile.TarInfo(name)
            if data is None:
                info.type = tarfile.DIRTYPE
                info.mode = 0o755
                tar.addfile(info)
            else:
                info.size = len(data)
                info.mode = 0o644
                tar.addfile(info, io.BytesIO(data))
    return buf.getvalue()


@pytest.fixture
def make_tarball():
    """Provide the in-memory tarball builder."""
    return build_tarball


@pytest.fixture
def project_tarball():
    """A tarball shaped like an archive host's output for proj @ v1.2.3."""
    return build_tarball(
        {
            "proj-1.2.3/": None,
            "proj-1.2.3/README.md": b"# proj\n",
            "proj-1.2.3/terraform/envs/dev/main.tf": b'terraform {}\n',
            "proj-1.2.3/ansible/site.yml": b"- hosts: all\n",
        }
    )


class FakeRunner(CommandRunner):
    """CommandRunner that records argv instead of executing anything.

    Attributes:
        available: Executable names ``which`` reports as installed
        failures: Map of space-joined argv to the exit status it should return
        calls: Every argv passed to ``run``, in order
        inputs: stdin payloads keyed by the index of the call
    """

    def __init__(self, available=(), failures=None):
        super().__init__(env={"PATH": "/usr/bin"})
        self.available = set(available)
        self.failures = dict(failures or {})
        self.calls: list[list[str]] = []
        self.cwds: list[Optional[str]] = []
        self.inputs: dict[int, bytes] = {}

    def which(self, name, env=None):
        return f"/usr/bin/{name}" if name in self.available else None

    def run(self, argv, *, cwd=None, env=None, check=True, input_bytes=None):
        argv_list = [str(a) for a in argv]
        if input_bytes is not None:
            self.inputs[len(self.calls)] = input_bytes
        self.calls.append(argv_list)
        self.cwds.append(str(cwd) if cwd is not None else None)
        returncode = self.failures.get(" ".join(argv_list), 0)
        if check and returncode != 0:
            raise ExternalToolError(argv_list, returncode, cwd=str(cwd) if cwd else None)
        return CommandResult(argv=argv_list, returncode=returncode, output="")


@pytest.fixture
def fake_runner():
    """Runner where terraform, ansible and python are already installed."""
    return FakeRunner(
        available={"terraform", "ansible-playbook", "ansible-galaxy", "python3", "pip3", "apt-get"}
    )


@pytest.fixture
def make_runner():
    """Factory for FakeRunner with custom tools and failures."""
    return FakeRunner


@pytest.fixture
def repo_root(tmp_path) -> Path:
    """An extracted repository tree with terraform and ansible layouts."""
    root = tmp_path / "workdir" / "proj-1.2.3"
    (root / "terraform" / "envs" / "dev").mkdir(parents=True)
    (root / "terraform" / "envs" / "dev" / "main.tf").write_text("terraform {}\n")
    (root / "ansible" / "inventories" / "dev").mkdir(parents=True)
    (root / "ansible" / "inventories" / "dev" / "hosts.yml").write_text("all: {}\n")
    (root / "ansible" / "site.yml").write_text("- hosts: all\n")
    (root / "ansible" / "requirements.yml").write_text("roles: []\n")
    return root
