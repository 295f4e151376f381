"""Fetch request and result models."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional


@dataclass(frozen=True)
class FetchRequest:
    """A versioned repository archive to download into a directory."""

    repo: str
    ref: str
    destination_dir: Path
    auth_token: Optional[str] = field(default=None, repr=False)
    checksum_url: Optional[str] = None

    def __post_init__(self):
        """Validate repository identifier and ref."""
        owner, _, name = self.repo.partition("/")
        if not owner or not name or "/" in name:
            raise ValueError(f"Repository must be in format 'owner/name': {self.repo!r}")
        if not self.ref:
            raise ValueError("ref must not be empty")
        if self.destination_dir.exists() and not self.destination_dir.is_dir():
            raise ValueError(f"Destination is not a directory: {self.destination_dir}")

    @property
    def owner(self) -> str:
        return self.repo.split("/", 1)[0]

    @property
    def name(self) -> str:
        return self.repo.split("/", 1)[1]


@dataclass(frozen=True)
class FetchResult:
    """Outcome of a successful fetch.

    Attributes:
        archive_path: The downloaded archive inside the destination directory
        extracted_root_dir: Absolute path of the archive's top-level directory
        checksum_verified: True only if a checksum file was found and matched
    """

    archive_path: Path
    extracted_root_dir: Path
    checksum_verified: bool
