"""Git helpers: commit-and-push and repository status."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Sequence, TextIO

from .console import Reporter
from .models import GitStatus
from .shell import CommandError, CommandResult, CommandRunner, SubprocessRunner

LOG = logging.getLogger(__name__)

_GITHUB_PATTERNS = (
    re.compile(r"^git@github\.com:(?P<repo>[^/\s]+/[^/\s]+?)(?:\.git)?/?$"),
    re.compile(r"^https://github\.com/(?P<repo>[^/\s]+/[^/\s]+?)(?:\.git)?/?$"),
)


def is_git_repository(cwd: Path | None = None) -> bool:
    return ((cwd or Path.cwd()) / ".git").exists()


def run_git(runner: CommandRunner, *args: str, capture: bool = False) -> CommandResult:
    """Run a git subcommand, turning launch failures into a failed result."""

    command: Sequence[str] = ("git", *args)
    try:
        return runner(command, capture=capture)
    except CommandError as exc:
        LOG.warning("git could not be started", extra={"command": " ".join(command), "error": str(exc)})
        return CommandResult(returncode=127, stderr=str(exc))


def dev_commit(
    message: str,
    *,
    push: bool = False,
    add_all: bool = True,
    verbose: bool = True,
    cwd: Path | None = None,
    runner: CommandRunner | None = None,
    stream: TextIO | None = None,
) -> bool:
    """Stage, commit and optionally push; return whether a commit was made.

    A failed push after a successful commit still returns ``True``.
    """

    if message is None or not message.strip():
        raise ValueError("Commit message is required")

    reporter = Reporter(verbose, stream)
    runner = runner or SubprocessRunner(cwd, quiet=not verbose)
    reporter.line("Git operations:")

    if not is_git_repository(cwd):
        reporter.warning("Not in a git repository")
        return False

    if add_all:
        reporter.line("Staging all changes...", indent=1)
        if not run_git(runner, "add", ".").ok:
            reporter.warning("Failed to stage changes")
            return False
        reporter.success("Changes staged", indent=2)

    if run_git(runner, "diff", "--cached", "--quiet").returncode == 0:
        reporter.warning("No staged changes to commit")
        return False

    reporter.line("Committing changes...", indent=1)
    if not run_git(runner, "commit", "-m", message).ok:
        reporter.warning("Commit failed")
        return False
    reporter.success(f"Committed: {message}", indent=2)

    if push:
        reporter.line("Pushing to remote...", indent=1)
        if not run_git(runner, "remote", capture=True).lines:
            reporter.warning("No remote repository configured")
            return True
        if not run_git(runner, "push").ok:
            reporter.warning("Push failed")
            LOG.warning("git push failed after commit", extra={"commit_message": message})
            return True
        reporter.success("Pushed to remote", indent=2)

    return True


def get_git_status(
    *,
    verbose: bool = True,
    cwd: Path | None = None,
    runner: CommandRunner | None = None,
    stream: TextIO | None = None,
) -> GitStatus:
    """Collect branch, change flags, origin URL and upstream divergence."""

    reporter = Reporter(verbose, stream)
    if not is_git_repository(cwd):
        reporter.line("Not in a git repository")
        return GitStatus()

    runner = runner or SubprocessRunner(cwd, quiet=True)

    branch_result = run_git(runner, "branch", "--show-current", capture=True)
    branch = branch_result.lines[0].strip() if branch_result.ok and branch_result.lines else None

    has_changes = run_git(runner, "diff", "--quiet").returncode == 1
    has_staged = run_git(runner, "diff", "--cached", "--quiet").returncode == 1

    remote_url = get_remote_url(runner)

    status = GitStatus(
        branch=branch,
        has_changes=has_changes,
        has_staged=has_staged,
        remote_url=remote_url,
        ahead_behind=_ahead_behind(runner),
    )
    _report_status(reporter, status)
    return status


def get_remote_url(runner: CommandRunner, remote: str = "origin") -> str | None:
    result = run_git(runner, "remote", "get-url", remote, capture=True)
    if result.ok and result.lines:
        return result.lines[0].strip()
    return None


def parse_github_repo(url: str | None) -> str | None:
    """Extract ``owner/repo`` from an SSH or HTTPS GitHub remote URL."""

    if not url:
        return None
    url = url.strip()
    for pattern in _GITHUB_PATTERNS:
        match = pattern.match(url)
        if match:
            return match.group("repo")
    return None


def _ahead_behind(runner: CommandRunner) -> tuple[int, int] | None:
    result = run_git(runner, "rev-list", "--left-right", "--count", "HEAD...@{upstream}", capture=True)
    if not result.ok or not result.lines:
        return None
    parts = result.lines[0].split()
    if len(parts) != 2:
        return None
    try:
        return int(parts[0]), int(parts[1])
    except ValueError:
        return None


def _report_status(reporter: Reporter, status: GitStatus) -> None:
    reporter.line("Git Repository Status:")
    if status.branch:
        reporter.line(f"Branch: {status.branch}", indent=1)
    if status.has_changes:
        reporter.warning("Uncommitted changes detected")
    if status.has_staged:
        reporter.success("Staged changes ready for commit")
    if status.remote_url:
        reporter.line(f"Remote: {status.remote_url}", indent=1)
    if status.ahead_behind:
        ahead, behind = status.ahead_behind
        reporter.line(f"Ahead {ahead}, behind {behind} of upstream", indent=1)
    if not status.has_changes and not status.has_staged:
        reporter.success("Working directory clean")


__all__ = [
    "dev_commit",
    "get_git_status",
    "get_remote_url",
    "is_git_repository",
    "parse_github_repo",
    "run_git",
]
