"""Fetch a tagged infrastructure repository and provision it with Terraform and Ansible."""

__version__ = "0.1.0"
