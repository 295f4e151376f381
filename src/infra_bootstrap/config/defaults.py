"""Built-in default configuration for infra-bootstrap."""

# Base layer for every merged configuration
DEFAULT_CONFIG = {
    "version": "1.0",
    "mode": "plan",
    "environment": "dev",
    "workdir": "~/gg_homelab",
    "log_dir": "~/log/gg_homelab",
    "source": {
        "repo": "GertGerber/GG_Homelab",
        "ref": "v0.1.0",
        "host": "codeload.github.com",
    },
    "terraform": {},
    "ansible": {},
    "prerequisites": {},
}

# Environment variables that override single configuration keys
ENV_OVERRIDES = {
    "MODE": ("mode",),
    "ENVIRONMENT": ("environment",),
    "WORKDIR": ("workdir",),
    "LOG_DIR": ("log_dir",),
    "REPO": ("source", "repo"),
    "REF": ("source", "ref"),
    "TF_DIR": ("terraform", "dir"),
    "ANSIBLE_PLAYBOOK": ("ansible", "playbook"),
    "ANSIBLE_INVENTORY": ("ansible", "inventory"),
}

# Checked in order; the first one set provides the auth token
TOKEN_ENV_VARS = ("AUTH_TOKEN", "GITHUB_TOKEN")
