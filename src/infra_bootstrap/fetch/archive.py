"""Checksum verification and tarball extraction."""

import hashlib
import re
import tarfile
from pathlib import Path

from infra_bootstrap.errors import ExtractionError, IntegrityError
from infra_bootstrap.utils.paths import top_level_segment

SHA256_PATTERN = re.compile(r"^[0-9a-fA-F]{64}$")
CHUNK_SIZE = 1024 * 1024


def sha256_of_file(path: Path) -> str:
    """Hex SHA-256 digest of a file, read in chunks."""
    digest = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def parse_checksum_file(text: str, archive_name: str) -> str:
    """Extract the expected digest for ``archive_name`` from a checksum file.

    Accepts ``sha256sum`` output ("<hex>  <name>" or "<hex> *<name>", one
    per line) as well as a file holding only the bare hex digest.

    Raises:
        IntegrityError: If no usable digest is found
    """
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    candidates: list[str] = []

    for line in lines:
        fields = line.split()
        if not SHA256_PATTERN.match(fields[0]):
            continue
        if len(fields) == 1:
            candidates.append(fields[0])
            continue
        name = fields[1].lstrip("*")
        if Path(name).name == archive_name:
            return fields[0].lower()

    if len(candidates) == 1 and len(lines) == 1:
        return candidates[0].lower()

    raise IntegrityError(
        "Checksum file has no SHA-256 entry for the archive",
        context={"archive": archive_name},
    )


def verify_checksum(archive_path: Path, checksum_path: Path) -> None:
    """Compare the archive's SHA-256 digest with the checksum file.

    Raises:
        IntegrityError: On mismatch or a malformed checksum file
    """
    expected = parse_checksum_file(checksum_path.read_text(), archive_path.name)
    actual = sha256_of_file(archive_path)
    if actual != expected:
        raise IntegrityError(
            "Archive checksum mismatch",
            hint="The download may be corrupt or the checksum file stale; remove both and retry.",
            context={"archive": str(archive_path), "expected": expected, "actual": actual},
        )


def resolve_root_dir(archive_path: Path) -> str:
    """Name of the single top-level directory in a tarball.

    The first entry decides the root. Every other entry must live under the
    same root; archives with several top-level entries, absolute paths or
    ``..`` components are rejected.

    Raises:
        ExtractionError: If the archive is unreadable, empty or not single-rooted
    """
    root: str | None = None
    try:
        with tarfile.open(archive_path, "r:*") as tar:
            for member in tar:
                segment = top_level_segment(member.name)
                if segment is None:
                    raise ExtractionError(
                        "Archive contains an unsafe path",
                        context={"archive": str(archive_path), "entry": member.name},
                    )
                if root is None:
                    root = segment
                elif segment != root:
                    raise ExtractionError(
                        "Archive has more than one top-level entry",
                        hint="Expected a single root directory as produced by the archive host.",
                        context={
                            "archive": str(archive_path),
                            "root": root,
                            "entry": member.name,
                        },
                    )
    except (tarfile.TarError, OSError) as e:
        raise ExtractionError(
            f"Cannot read archive: {e}", context={"archive": str(archive_path)}
        ) from e

    if root is None:
        raise ExtractionError("Archive is empty", context={"archive": str(archive_path)})
    return root


def extract_archive(archive_path: Path, destination_dir: Path) -> None:
    """Extract a tarball into ``destination_dir``.

    Raises:
        ExtractionError: If extraction fails
    """
    try:
        with tarfile.open(archive_path, "r:*") as tar:
            if hasattr(tarfile, "data_filter"):
                tar.extractall(destination_dir, filter="data")
            else:
                tar.extractall(destination_dir)
    except (tarfile.TarError, OSError) as e:
        raise ExtractionError(
            f"Failed to extract archive: {e}",
            context={"archive": str(archive_path), "destination": str(destination_dir)},
        ) from e
