"""Abstract interface for fetching repository archives."""

from typing import Protocol

from infra_bootstrap.core.artifact import FetchRequest, FetchResult


class ArtifactFetcher(Protocol):
    """Abstract interface for fetching a versioned repository archive."""

    async def fetch(self, request: FetchRequest) -> FetchResult:
        """Download, verify and extract an archive.

        Args:
            request: Repository, ref, destination and optional credentials

        Returns:
            FetchResult pointing at the extracted root directory

        Raises:
            FetchError: If the download fails
            IntegrityError: If a checksum file exists and does not match
            ExtractionError: If the archive layout is unexpected
        """
        ...
