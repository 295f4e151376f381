"""Tests for host prerequisite installation."""

import pytest

from infra_bootstrap.errors import ConfigError
from infra_bootstrap.tools.prereqs import (
    HASHICORP_KEYRING,
    HASHICORP_SOURCES,
    HostPrerequisites,
    read_os_release,
)

OS_RELEASE = """PRETTY_NAME="Ubuntu 24.04 LTS"
NAME="Ubuntu"
VERSION_ID="24.04"
VERSION_CODENAME=noble
# comment
ID=ubuntu
"""


@pytest.fixture
def os_release(tmp_path):
    path = tmp_path / "os-release"
    path.write_text(OS_RELEASE)
    return path


def make_host(runner, os_release, euid=0):
    return HostPrerequisites(
        runner, os_release_path=os_release, euid=euid, key_downloader=lambda: b"KEY"
    )


class TestReadOsRelease:
    """Test os-release parsing."""

    def test_parses_quoted_values(self, os_release):
        values = read_os_release(os_release)
        assert values["PRETTY_NAME"] == "Ubuntu 24.04 LTS"
        assert values["VERSION_CODENAME"] == "noble"
        assert values["ID"] == "ubuntu"

    def test_missing_file(self, tmp_path):
        assert read_os_release(tmp_path / "nope") == {}


class TestDetect:
    """Test host detection messages."""

    def test_logs_os_and_sudo(self, fake_runner, os_release, caplog):
        caplog.set_level("INFO")
        make_host(fake_runner, os_release, euid=1000).detect()
        assert "Detected: Ubuntu 24.04 LTS" in caplog.text
        assert "Not running as root" in caplog.text

    def test_root_has_no_sudo_prefix(self, fake_runner, os_release):
        assert make_host(fake_runner, os_release, euid=0).sudo == []
        assert make_host(fake_runner, os_release, euid=1000).sudo == ["sudo"]


class TestEnsureTerraform:
    """Test Terraform installation through apt."""

    def test_noop_when_installed(self, fake_runner, os_release):
        make_host(fake_runner, os_release).ensure_terraform()
        assert fake_runner.calls == []

    def test_installs_from_hashicorp_repo(self, make_runner, os_release):
        runner = make_runner(available={"apt-get"})
        make_host(runner, os_release, euid=1000).ensure_terraform()

        assert runner.calls == [
            ["sudo", "apt-get", "update", "-y"],
            ["sudo", "apt-get", "install", "-y", "gnupg", "software-properties-common"],
            ["sudo", "gpg", "--batch", "--yes", "--dearmor", "-o", HASHICORP_KEYRING],
            ["sudo", "tee", HASHICORP_SOURCES],
            ["sudo", "apt-get", "update", "-y"],
            ["sudo", "apt-get", "install", "-y", "terraform"],
        ]
        assert runner.inputs[2] == b"KEY"
        assert runner.inputs[3] == (
            f"deb [signed-by={HASHICORP_KEYRING}] "
            "https://apt.releases.hashicorp.com noble main\n"
        ).encode()

    def test_requires_apt(self, make_runner, os_release):
        runner = make_runner(available=set())
        with pytest.raises(ConfigError, match="apt-based systems only"):
            make_host(runner, os_release).ensure_terraform()
        assert runner.calls == []

    def test_requires_codename(self, make_runner, tmp_path):
        release = tmp_path / "os-release"
        release.write_text('PRETTY_NAME="Something"\n')
        runner = make_runner(available={"apt-get"})
        with pytest.raises(ConfigError, match="codename"):
            make_host(runner, release).ensure_terraform()


class TestEnsureAnsible:
    """Test the Ansible virtualenv."""

    def test_creates_venv_and_installs(self, fake_runner, os_release, repo_root):
        venv = make_host(fake_runner, os_release).ensure_ansible(repo_root)

        pip = str(repo_root / ".venv" / "bin" / "pip")
        assert venv == repo_root / ".venv"
        assert fake_runner.calls == [
            ["python3", "-m", "venv", "-h"],
            ["python3", "-m", "venv", str(repo_root / ".venv")],
            [pip, "install", "--upgrade", "pip"],
            [pip, "install", "ansible"],
        ]

    def test_installs_missing_python_packages(self, make_runner, os_release, repo_root):
        runner = make_runner(
            available={"apt-get"},
            failures={"python3 -m venv -h": 1},
        )
        make_host(runner, os_release).ensure_ansible(repo_root, venv_dir="env")

        assert ["apt-get", "install", "-y", "python3"] in runner.calls
        assert ["apt-get", "install", "-y", "python3-venv"] in runner.calls
        assert ["apt-get", "install", "-y", "python3-pip"] in runner.calls
        assert ["python3", "-m", "venv", str(repo_root / "env")] in runner.calls
