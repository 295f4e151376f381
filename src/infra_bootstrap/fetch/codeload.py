"""Archive fetcher for hosts serving ``/<owner>/<name>/tar.gz/<ref>`` tarballs."""

import asyncio
import logging
import os
from pathlib import Path
from urllib.parse import urlsplit

import httpx

from infra_bootstrap.core.artifact import FetchRequest, FetchResult
from infra_bootstrap.errors import ExtractionError, FetchError
from infra_bootstrap.fetch.archive import extract_archive, resolve_root_dir, verify_checksum
from infra_bootstrap.fetch.lock import DirectoryLock
from infra_bootstrap.utils.paths import ensure_dir


class CodeloadFetcher:
    """Fetch, verify and extract a repository tarball.

    The archive is always stored as ``repo.tar.gz`` in the destination
    directory. A checksum file next to it (``repo.tar.gz.sha256``) is used for
    verification when present, and downloaded first when the request names a
    ``checksum_url``.
    """

    DEFAULT_HOST = "codeload.github.com"
    ARCHIVE_NAME = "repo.tar.gz"
    CHECKSUM_SUFFIX = ".sha256"
    LOCK_NAME = ".fetch.lock"
    MAX_RETRIES = 3
    RETRY_DELAY = 1.0  # seconds

    def __init__(
        self,
        host: str = DEFAULT_HOST,
        timeout: float = 60.0,
        logger: logging.Logger | None = None,
    ):
        """Initialize the fetcher.

        Args:
            host: Archive host (no scheme)
            timeout: Timeout in seconds applied to each HTTP request
            logger: Logger to report progress to (defaults to the module logger)
        """
        self.host = host
        self.timeout = timeout
        self.log = logger or logging.getLogger(__name__)

    def build_url(self, repo: str, ref: str) -> str:
        """Archive URL for a repository identifier and ref."""
        owner, name = repo.split("/", 1)
        return f"https://{self.host}/{owner}/{name}/tar.gz/{ref}"

    def build_headers(self, auth_token: str | None) -> dict[str, str]:
        headers = {"Accept": "application/gzip"}
        if auth_token:
            headers["Authorization"] = f"Bearer {auth_token}"
        return headers

    async def fetch(self, request: FetchRequest) -> FetchResult:
        """Download, verify and extract the archive for ``request``.

        Args:
            request: What to fetch and where to put it

        Returns:
            FetchResult with the absolute path of the extracted root directory

        Raises:
            FetchError: If the download fails, the destination cannot be
                written or the directory is locked
            IntegrityError: If the checksum file does not match
            ExtractionError: If the archive is not a single-rooted tarball
        """
        try:
            destination = ensure_dir(request.destination_dir).resolve()
        except OSError as e:
            raise FetchError(
                f"Cannot create destination directory: {e.strerror or e}",
                context={"destination": str(request.destination_dir)},
            ) from e
        archive_path = destination / self.ARCHIVE_NAME
        checksum_path = destination / (self.ARCHIVE_NAME + self.CHECKSUM_SUFFIX)
        url = self.build_url(request.repo, request.ref)

        with DirectoryLock(destination / self.LOCK_NAME):
            self.log.info("Fetching bundle @ %s from %s", request.ref, request.repo)

            async with httpx.AsyncClient(timeout=self.timeout) as client:
                await self._download(
                    client, url, archive_path, self.build_headers(request.auth_token)
                )
                if request.checksum_url:
                    await self._download(
                        client,
                        request.checksum_url,
                        checksum_path,
                        self._checksum_headers(request),
                    )

            checksum_verified = False
            if checksum_path.exists():
                self.log.info("Verifying tarball checksum")
                verify_checksum(archive_path, checksum_path)
                checksum_verified = True
            else:
                self.log.warning("No checksum file found; continuing without verification")

            root_name = resolve_root_dir(archive_path)
            extract_archive(archive_path, destination)

            root_dir = destination / root_name
            if not root_dir.is_dir():
                raise ExtractionError(
                    "Extracted root directory not found",
                    context={"archive": str(archive_path), "expected": str(root_dir)},
                )

        self.log.info("Repository extracted to: %s", root_dir)
        return FetchResult(
            archive_path=archive_path,
            extracted_root_dir=root_dir,
            checksum_verified=checksum_verified,
        )

    def _checksum_headers(self, request: FetchRequest) -> dict[str, str]:
        # The token is only sent back to the archive host
        same_host = urlsplit(request.checksum_url or "").hostname == self.host
        return self.build_headers(request.auth_token if same_host else None)

    async def _download(
        self,
        client: httpx.AsyncClient,
        url: str,
        target_path: Path,
        headers: dict[str, str],
    ) -> None:
        """Stream ``url`` into ``target_path``.

        The body is written to a ``.part`` file and renamed on success, so a
        failed download never leaves a file that looks complete. Transport
        errors and 5xx responses are retried up to MAX_RETRIES times.

        Raises:
            FetchError: On a non-success status or once retries are exhausted
        """
        part_path = target_path.with_name(target_path.name + ".part")

        for attempt in range(1, self.MAX_RETRIES + 1):
            try:
                async with client.stream(
                    "GET", url, headers=headers, follow_redirects=True
                ) as response:
                    if response.status_code >= 500 and attempt < self.MAX_RETRIES:
                        self.log.warning(
                            "GET %s returned %s (attempt %d/%d)",
                            url, response.status_code, attempt, self.MAX_RETRIES,
                        )
                        await asyncio.sleep(self.RETRY_DELAY * attempt)
                        continue
                    response.raise_for_status()

                    with open(part_path, "wb") as f:
                        async for chunk in response.aiter_bytes():
                            f.write(chunk)

                os.replace(part_path, target_path)
                return

            except httpx.HTTPStatusError as e:
                self._discard(part_path, target_path)
                raise FetchError(
                    f"Download failed with HTTP {e.response.status_code}",
                    hint=_status_hint(e.response.status_code),
                    context={"url": url},
                ) from e
            except httpx.TransportError as e:
                part_path.unlink(missing_ok=True)
                if attempt < self.MAX_RETRIES:
                    self.log.warning(
                        "GET %s failed: %s (attempt %d/%d)", url, e, attempt, self.MAX_RETRIES
                    )
                    await asyncio.sleep(self.RETRY_DELAY * attempt)
                    continue
                self._discard(part_path, target_path)
                raise FetchError(
                    f"Download failed after {self.MAX_RETRIES} attempts: {e}",
                    context={"url": url},
                ) from e
            except OSError as e:
                self._discard(part_path)
                raise FetchError(
                    f"Cannot write download: {e.strerror or e}",
                    context={"url": url, "path": str(target_path)},
                ) from e

    @staticmethod
    def _discard(*paths: Path) -> None:
        for path in paths:
            path.unlink(missing_ok=True)


def _status_hint(status_code: int) -> str | None:
    if status_code == 404:
        return "Check that the repository and ref exist; private repositories need AUTH_TOKEN."
    if status_code in (401, 403):
        return "The token was rejected or the anonymous rate limit was hit; set AUTH_TOKEN."
    return None
