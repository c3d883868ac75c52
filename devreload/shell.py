"""Command runners used to drive git and pip."""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, Sequence, runtime_checkable

LOG = logging.getLogger(__name__)


class CommandError(RuntimeError):
    """Raised when an external command cannot be started."""


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Exit status and captured output of one command."""

    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def lines(self) -> list[str]:
        return [line for line in self.stdout.splitlines() if line.strip()]


@runtime_checkable
class CommandRunner(Protocol):
    """Protocol implemented by command runners."""

    def __call__(self, args: Sequence[str], *, capture: bool = False) -> CommandResult:
        """Run ``args`` and return its result; raise ``CommandError`` if it cannot start."""


class SubprocessRunner:
    """Runs commands through ``subprocess.run`` in a fixed working directory."""

    def __init__(self, cwd: Path | None = None, *, quiet: bool = False) -> None:
        self._cwd = cwd
        self._quiet = quiet

    def __call__(self, args: Sequence[str], *, capture: bool = False) -> CommandResult:
        LOG.debug("Running command", extra={"command": " ".join(args), "cwd": str(self._cwd or ".")})
        kwargs: dict[str, object] = {"cwd": self._cwd, "text": True, "check": False}
        if capture:
            kwargs["capture_output"] = True
        elif self._quiet:
            kwargs["stdout"] = subprocess.DEVNULL
            kwargs["stderr"] = subprocess.DEVNULL
        try:
            completed = subprocess.run(list(args), **kwargs)  # type: ignore[call-overload]
        except (FileNotFoundError, PermissionError) as exc:
            raise CommandError(f"Failed to run '{args[0]}': {exc}") from exc
        return CommandResult(
            returncode=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )


__all__ = ["CommandError", "CommandResult", "CommandRunner", "SubprocessRunner"]
