"""Pydantic models for bootstrap configuration.

All models are frozen: once loaded, a configuration is passed around as an
immutable value and never mutated by the components that read it.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Mode(str, Enum):
    """What the provisioning tool should do."""

    PLAN = "plan"
    APPLY = "apply"
    DESTROY = "destroy"
    CHECK = "check"


class SourceConfig(BaseModel):
    """Where the infrastructure repository is downloaded from."""

    model_config = ConfigDict(frozen=True)

    repo: str = Field(
        default="GertGerber/GG_Homelab",
        description="Repository in format 'owner/name'",
    )
    ref: str = Field(default="v0.1.0", description="Tag or commit SHA to fetch")
    host: str = Field(
        default="codeload.github.com",
        description="Host serving /<owner>/<name>/tar.gz/<ref> archives",
    )
    checksum_url: Optional[str] = Field(
        default=None,
        description="URL of a sha256 checksum file published for the archive",
    )
    timeout: float = Field(
        default=60.0, gt=0, description="Per-request download timeout in seconds"
    )

    @field_validator("repo")
    @classmethod
    def validate_repo_format(cls, v: str) -> str:
        """Validate repository format is owner/name."""
        owner, _, name = v.partition("/")
        if not owner or not name or "/" in name:
            raise ValueError("Repository must be in format 'owner/name'")
        return v

    @field_validator("ref")
    @classmethod
    def validate_ref(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("ref must not be empty")
        return v.strip()


class TerraformConfig(BaseModel):
    """Terraform settings, relative to the extracted repository root."""

    model_config = ConfigDict(frozen=True)

    dir: Optional[str] = Field(
        default=None,
        description="Terraform root module (default: terraform/envs/<environment>)",
    )
    workspace: bool = Field(
        default=True, description="Select or create a workspace named after the environment"
    )
    plan_file: str = Field(default="tfplan", description="Saved plan file name")


class AnsibleConfig(BaseModel):
    """Ansible settings, relative to the extracted repository root."""

    model_config = ConfigDict(frozen=True)

    playbook: str = Field(default="ansible/site.yml")
    inventory: Optional[str] = Field(
        default=None,
        description="Inventory path (default: ansible/inventories/<environment>)",
    )
    requirements: str = Field(default="ansible/requirements.yml")
    forks: int = Field(default=20, ge=1)
    diff: bool = Field(default=True)


class PrerequisitesConfig(BaseModel):
    """Host prerequisite installation."""

    model_config = ConfigDict(frozen=True)

    install: bool = Field(
        default=True,
        description="Install Terraform and Ansible when they are missing",
    )
    venv_dir: str = Field(
        default=".venv", description="Virtualenv created inside the repository root"
    )


class BootstrapConfig(BaseModel):
    """Root configuration for a bootstrap run."""

    model_config = ConfigDict(frozen=True)

    version: str = Field(description="Config schema version")
    mode: Mode = Field(default=Mode.PLAN)
    environment: str = Field(default="dev", min_length=1)
    workdir: str = Field(default="~/gg_homelab")
    log_dir: str = Field(default="~/log/gg_homelab")
    auth_token: Optional[str] = Field(default=None, repr=False, exclude=True)
    source: SourceConfig = Field(default_factory=SourceConfig)
    terraform: TerraformConfig = Field(default_factory=TerraformConfig)
    ansible: AnsibleConfig = Field(default_factory=AnsibleConfig)
    prerequisites: PrerequisitesConfig = Field(default_factory=PrerequisitesConfig)

    @field_validator("version")
    @classmethod
    def validate_version(cls, v: str) -> str:
        """Validate version format."""
        if not v.startswith("1."):
            raise ValueError(
                f"Unsupported config version: {v}. Only version 1.x is supported."
            )
        return v

    @property
    def terraform_dir(self) -> str:
        return self.terraform.dir or f"terraform/envs/{self.environment}"

    @property
    def ansible_inventory(self) -> str:
        return self.ansible.inventory or f"ansible/inventories/{self.environment}"
