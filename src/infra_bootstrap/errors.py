"""Error hierarchy for the bootstrap pipeline.

Every error carries the process exit code the CLI should terminate with, an
optional hint for the operator and a context mapping that is rendered below
the message.
"""

from collections.abc import Mapping, Sequence
from typing import Optional


class BootstrapError(Exception):
    """Base class for all bootstrap failures."""

    exit_code: int = 1

    def __init__(
        self,
        message: str,
        *,
        hint: Optional[str] = None,
        context: Optional[Mapping[str, str]] = None,
        exit_code: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.hint = hint
        self.context = dict(context or {})
        if exit_code is not None:
            self.exit_code = exit_code

    def __str__(self) -> str:
        parts = [self.message]
        for key, value in self.context.items():
            if value:
                parts.append(f"  {key}: {value}")
        if self.hint:
            parts.append(f"Hint: {self.hint}")
        return "\n".join(parts)


class ConfigError(BootstrapError):
    """A required tool, file or configuration value is missing or invalid."""

    exit_code = 2


class FetchError(BootstrapError):
    """The archive could not be downloaded."""

    exit_code = 3


class IntegrityError(BootstrapError):
    """The downloaded archive does not match its checksum."""

    exit_code = 4


class ExtractionError(BootstrapError):
    """The archive layout is unexpected or its root directory is missing."""

    exit_code = 5


class ExternalToolError(BootstrapError):
    """An external command exited with a non-zero status.

    The exit code of the failing command becomes the exit code of the run.
    """

    def __init__(
        self,
        argv: Sequence[str],
        returncode: int,
        *,
        cwd: Optional[str] = None,
        hint: Optional[str] = None,
    ) -> None:
        self.argv = list(argv)
        self.returncode = returncode
        super().__init__(
            f"Command failed with status {returncode}",
            hint=hint,
            context={"command": " ".join(self.argv), "location": cwd or ""},
            exit_code=returncode if returncode > 0 else 1,
        )
