"""Tests for configuration loading and merging logic."""

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from infra_bootstrap.config.defaults import DEFAULT_CONFIG
from infra_bootstrap.config.loader import (
    apply_env_overrides,
    find_config_files,
    load_config,
    load_yaml_file,
    merge_configs,
)
from infra_bootstrap.config.schema import Mode
from infra_bootstrap.errors import ConfigError


class TestLoadYamlFile:
    """Test YAML file loading."""

    def test_load_valid_yaml(self, tmp_path):
        config_file = tmp_path / "bootstrap.yaml"
        config_file.write_text(yaml.dump({"version": "1.0", "environment": "prod"}))

        result = load_yaml_file(config_file)
        assert result == {"version": "1.0", "environment": "prod"}

    def test_load_empty_yaml(self, tmp_path):
        config_file = tmp_path / "empty.yaml"
        config_file.write_text("")
        assert load_yaml_file(config_file) == {}

    def test_load_nonexistent_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_yaml_file(tmp_path / "nonexistent.yaml")

    def test_load_invalid_yaml(self, tmp_path):
        config_file = tmp_path / "invalid.yaml"
        config_file.write_text("invalid: yaml: content: [")
        with pytest.raises(yaml.YAMLError):
            load_yaml_file(config_file)

    def test_load_non_mapping(self, tmp_path):
        config_file = tmp_path / "list.yaml"
        config_file.write_text("- a\n- b\n")
        with pytest.raises(ConfigError, match="mapping"):
            load_yaml_file(config_file)


class TestMergeConfigs:
    """Test configuration merging logic."""

    def test_merge_empty_list(self):
        assert merge_configs([]) == {}

    def test_later_config_wins(self):
        result = merge_configs([{"mode": "plan", "a": 1}, {"mode": "apply"}])
        assert result == {"mode": "apply", "a": 1}

    def test_nested_merge(self):
        result = merge_configs(
            [
                {"source": {"repo": "a/b", "ref": "v1"}},
                {"source": {"ref": "v2"}},
            ]
        )
        assert result["source"] == {"repo": "a/b", "ref": "v2"}

    def test_inputs_not_mutated(self):
        base = {"source": {"repo": "a/b"}}
        merge_configs([base, {"source": {"repo": "c/d"}}])
        assert base == {"source": {"repo": "a/b"}}
        assert DEFAULT_CONFIG["source"]["repo"] == "GertGerber/GG_Homelab"


class TestApplyEnvOverrides:
    """Test environment variable overrides."""

    def test_top_level_and_nested(self):
        env = {
            "MODE": "apply",
            "ENVIRONMENT": "prod",
            "REPO": "org/infra",
            "REF": "v2.0.0",
            "WORKDIR": "/srv/infra",
            "TF_DIR": "tf/prod",
            "ANSIBLE_INVENTORY": "inv/prod",
        }
        result = apply_env_overrides({"source": {"repo": "a/b"}}, environ=env)

        assert result["mode"] == "apply"
        assert result["environment"] == "prod"
        assert result["workdir"] == "/srv/infra"
        assert result["source"] == {"repo": "org/infra", "ref": "v2.0.0"}
        assert result["terraform"] == {"dir": "tf/prod"}
        assert result["ansible"] == {"inventory": "inv/prod"}

    def test_empty_values_ignored(self):
        result = apply_env_overrides({"mode": "plan"}, environ={"MODE": ""})
        assert result["mode"] == "plan"

    def test_auth_token_precedence(self):
        result = apply_env_overrides({}, environ={"AUTH_TOKEN": "a", "GITHUB_TOKEN": "g"})
        assert result["auth_token"] == "a"

    def test_github_token_fallback(self):
        result = apply_env_overrides({}, environ={"GITHUB_TOKEN": "g"})
        assert result["auth_token"] == "g"

    def test_reads_process_environment(self, monkeypatch):
        monkeypatch.setenv("ENVIRONMENT", "staging")
        assert apply_env_overrides({})["environment"] == "staging"


class TestFindConfigFiles:
    """Test config discovery."""

    def test_none_found(self):
        assert find_config_files() == []

    def test_project_then_user(self, isolated_env):
        project = isolated_env["work_dir"] / "bootstrap.yaml"
        project.write_text("version: '1.0'\n")
        user_dir = isolated_env["home_dir"] / ".config" / "infra-bootstrap"
        user_dir.mkdir(parents=True)
        user = user_dir / "bootstrap.yaml"
        user.write_text("version: '1.0'\n")

        assert find_config_files() == [project, user.resolve()]


class TestLoadConfig:
    """Test the full loading pipeline."""

    def test_defaults(self):
        config = load_config()
        assert config.mode is Mode.PLAN
        assert config.environment == "dev"
        assert config.source.repo == "GertGerber/GG_Homelab"
        assert config.source.ref == "v0.1.0"
        assert config.terraform_dir == "terraform/envs/dev"
        assert config.ansible_inventory == "ansible/inventories/dev"
        assert config.auth_token is None

    def test_explicit_file(self, tmp_path):
        config_file = tmp_path / "custom.yaml"
        config_file.write_text(
            yaml.dump(
                {
                    "version": "1.0",
                    "environment": "prod",
                    "source": {"repo": "org/infra", "ref": "v3"},
                    "terraform": {"dir": "stacks/prod"},
                }
            )
        )

        config = load_config(config_file)

        assert config.environment == "prod"
        assert config.source.repo == "org/infra"
        assert config.source.host == "codeload.github.com"
        assert config.terraform_dir == "stacks/prod"
        assert config.ansible_inventory == "ansible/inventories/prod"

    def test_missing_explicit_file(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            load_config(tmp_path / "missing.yaml")

    def test_precedence(self, isolated_env, tmp_path, monkeypatch):
        (isolated_env["work_dir"] / "bootstrap.yaml").write_text(
            "version: '1.0'\nenvironment: project\nmode: check\n"
        )
        explicit = tmp_path / "explicit.yaml"
        explicit.write_text("version: '1.0'\nenvironment: explicit\n")
        monkeypatch.setenv("REF", "from-env")

        config = load_config(explicit, overrides={"source": {"repo": "cli/repo", "ref": None}})

        assert config.mode is Mode.CHECK
        assert config.environment == "explicit"
        assert config.source.ref == "from-env"
        assert config.source.repo == "cli/repo"

    def test_cli_override_beats_env(self, monkeypatch):
        monkeypatch.setenv("MODE", "destroy")
        config = load_config(overrides={"mode": "apply"})
        assert config.mode is Mode.APPLY

    def test_token_from_env(self, monkeypatch):
        monkeypatch.setenv("GITHUB_TOKEN", "ghp_x")
        config = load_config()
        assert config.auth_token == "ghp_x"
        assert "ghp_x" not in repr(config)

    def test_invalid_mode(self, monkeypatch):
        monkeypatch.setenv("MODE", "launch")
        with pytest.raises(ValidationError):
            load_config()

    def test_invalid_repo(self):
        with pytest.raises(ValidationError, match="owner/name"):
            load_config(overrides={"source": {"repo": "not-a-repo"}})

    def test_config_is_immutable(self):
        config = load_config()
        with pytest.raises(ValidationError):
            config.environment = "prod"
