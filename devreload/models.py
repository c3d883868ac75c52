"""Shared dataclasses used across the scanner, git and packaging modules."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class Classification(str, Enum):
    """Outcome of classifying a single namespace binding."""

    NOT_A_CONNECTION = "not-a-connection"
    VALID = "connection-valid"
    INVALID = "connection-invalid-or-unknown"


class MatchSource(str, Enum):
    """Which classification test recognised a handle."""

    TYPE_TAG = "type-tag"
    CAPABILITY = "capability"
    NAME = "name"


@dataclass(slots=True)
class ConnectionRecord:
    """A binding recognised as a database connection during one scan."""

    name: str
    declared_type: str
    is_valid: bool
    matched_by: MatchSource
    disconnect_attempted: bool = False
    disconnect_succeeded: bool = False
    error: str | None = None

    @property
    def classification(self) -> Classification:
        return Classification.VALID if self.is_valid else Classification.INVALID

    @property
    def status(self) -> str:
        return "active" if self.is_valid else "inactive"


@dataclass(frozen=True, slots=True)
class GitStatus:
    """Snapshot of the working copy reported by ``get_git_status``."""

    branch: str | None = None
    has_changes: bool = False
    has_staged: bool = False
    remote_url: str | None = None
    ahead_behind: tuple[int, int] | None = None


@dataclass(frozen=True, slots=True)
class PackageInfo:
    """Package name and GitHub repository detected from the project."""

    package: str | None = None
    repo: str | None = None


@dataclass(slots=True)
class ReloadResult:
    """Outcome of each step of ``reload_package``."""

    package: str
    repo: str | None
    branch: str
    documented: bool | None = None
    connections: list[ConnectionRecord] = field(default_factory=list)
    committed: bool | None = None
    uninstalled: bool | None = None
    installed: bool | None = None
    unloaded_modules: tuple[str, ...] = ()


__all__ = [
    "Classification",
    "ConnectionRecord",
    "GitStatus",
    "MatchSource",
    "PackageInfo",
    "ReloadResult",
]
