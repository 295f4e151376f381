"""Repository archive fetching."""

from infra_bootstrap.fetch.codeload import CodeloadFetcher
from infra_bootstrap.fetch.lock import DirectoryLock
from infra_bootstrap.fetch.protocols import ArtifactFetcher

__all__ = ["ArtifactFetcher", "CodeloadFetcher", "DirectoryLock"]
