"""Filesystem path helpers."""

import os
from pathlib import Path, PurePosixPath
from typing import Mapping, Optional, Union


def expand_path(path: Union[str, Path]) -> Path:
    """Expand ~ and environment variables, returning an absolute path.

    Args:
        path: Path that may contain ~, $VARS or be relative

    Returns:
        Absolute Path object
    """
    return Path(os.path.expandvars(str(path))).expanduser().resolve()


def ensure_dir(path: Path) -> Path:
    """Create a directory (and parents) if it does not exist yet."""
    path.mkdir(parents=True, exist_ok=True)
    return path


def top_level_segment(member_name: str) -> Optional[str]:
    """Return the first path segment of an archive member name.

    Leading "./" components are ignored. Returns None for names that are
    absolute or that climb out of the extraction directory.

    Examples:
        >>> top_level_segment("proj-1.2.3/terraform/main.tf")
        'proj-1.2.3'
        >>> top_level_segment("../etc/passwd") is None
        True
    """
    if not member_name or member_name.startswith("/"):
        return None
    parts = [p for p in PurePosixPath(member_name).parts if p != "."]
    if not parts or ".." in parts:
        return None
    return parts[0]


def with_bin_dir(bin_dir: Path, env: Optional[Mapping[str, str]] = None) -> dict[str, str]:
    """Return a copy of ``env`` with ``bin_dir`` first on PATH.

    This is what activating a virtualenv does for child processes.
    """
    result = dict(os.environ if env is None else env)
    current = result.get("PATH", "")
    result["PATH"] = f"{bin_dir}{os.pathsep}{current}" if current else str(bin_dir)
    result["VIRTUAL_ENV"] = str(bin_dir.parent)
    return result
