"""Developer workflow helpers: connection reaping, git and package reloads."""

from __future__ import annotations

__version__ = "0.1.0"

from .connections import ConnectionScanner, ConnectionTypeRegistry, scan_and_release, session_namespace
from .git import dev_commit, get_git_status
from .models import Classification, ConnectionRecord, MatchSource
from .workflow import reload_package

__all__ = [
    "Classification",
    "ConnectionRecord",
    "ConnectionScanner",
    "ConnectionTypeRegistry",
    "MatchSource",
    "__version__",
    "dev_commit",
    "get_git_status",
    "reload_package",
    "scan_and_release",
    "session_namespace",
]
