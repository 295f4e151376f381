"""Lock file guarding a destination directory against concurrent fetches."""

import logging
import os
from pathlib import Path
from types import TracebackType

from infra_bootstrap.errors import FetchError

logger = logging.getLogger(__name__)


class DirectoryLock:
    """Exclusive lock backed by a PID file created with O_EXCL.

    A lock whose owning process no longer exists is treated as stale and
    reclaimed.

    Usage:
        with DirectoryLock(workdir / ".fetch.lock"):
            ...
    """

    MAX_ATTEMPTS = 3

    def __init__(self, path: Path):
        self.path = path
        self._held = False

    def acquire(self) -> None:
        """Take the lock.

        Raises:
            FetchError: If another live process holds it or the lock file
                cannot be created
        """
        for _ in range(self.MAX_ATTEMPTS):
            try:
                fd = os.open(self.path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
            except FileExistsError:
                owner = _read_pid(self.path)
                if owner is not None and _pid_alive(owner):
                    raise FetchError(
                        "Another fetch is already running in this directory",
                        hint="Wait for it to finish or remove the lock file if it is stale.",
                        context={"lock": str(self.path), "pid": str(owner)},
                    )
                self._reclaim(owner)
                continue
            except OSError as e:
                raise FetchError(
                    f"Cannot create lock file: {e.strerror or e}",
                    context={"lock": str(self.path)},
                ) from e
            with os.fdopen(fd, "w") as f:
                f.write(str(os.getpid()))
            self._held = True
            return

        raise FetchError("Could not acquire lock", context={"lock": str(self.path)})

    def _reclaim(self, stale_owner: int | None) -> None:
        """Remove a lock file last seen holding ``stale_owner``.

        The file is first moved to a name private to this process. If what
        was moved is not the stale lock (another process reclaimed it and
        took the lock in the meantime), it is linked back into place.
        """
        claimed = self.path.with_name(f"{self.path.name}.{os.getpid()}.stale")
        try:
            os.rename(self.path, claimed)
        except FileNotFoundError:
            return

        try:
            if _read_pid(claimed) != stale_owner:
                try:
                    os.link(claimed, self.path)
                except FileExistsError:
                    pass
            else:
                logger.warning("Removing stale lock %s (pid %s)", self.path, stale_owner)
        finally:
            claimed.unlink(missing_ok=True)

    def release(self) -> None:
        if self._held:
            self.path.unlink(missing_ok=True)
            self._held = False

    def __enter__(self) -> "DirectoryLock":
        self.acquire()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.release()


def _read_pid(path: Path) -> int | None:
    try:
        return int(path.read_text().strip())
    except (OSError, ValueError):
        return None


def _pid_alive(pid: int) -> bool:
    if pid <= 0:
        return False
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        # Exists but owned by another user
        return True
    return True
