"""Tests for the git helpers."""

from __future__ import annotations

import io
from pathlib import Path

import pytest

from devreload.git import dev_commit, get_git_status, parse_github_repo
from devreload.models import GitStatus
from devreload.shell import CommandResult

from tests.fakes import FakeRunner

STAGED = {("git", "diff", "--cached", "--quiet"): CommandResult(returncode=1)}


@pytest.fixture
def repo(tmp_path: Path) -> Path:
    (tmp_path / ".git").mkdir()
    return tmp_path


def test_dev_commit_requires_message(repo: Path) -> None:
    with pytest.raises(ValueError, match="Commit message is required"):
        dev_commit("   ", cwd=repo, runner=FakeRunner())


def test_dev_commit_outside_repository_returns_false(tmp_path: Path) -> None:
    runner = FakeRunner()
    stream = io.StringIO()

    assert dev_commit("Fix bug", cwd=tmp_path, runner=runner, stream=stream) is False
    assert runner.calls == []
    assert "Not in a git repository" in stream.getvalue()


def test_dev_commit_stages_and_commits(repo: Path) -> None:
    runner = FakeRunner(STAGED)
    stream = io.StringIO()

    assert dev_commit("Fix bug", cwd=repo, runner=runner, stream=stream) is True
    assert runner.calls == [
        ("git", "add", "."),
        ("git", "diff", "--cached", "--quiet"),
        ("git", "commit", "-m", "Fix bug"),
    ]
    assert "✓ Committed: Fix bug" in stream.getvalue()


def test_dev_commit_staged_only_skips_add(repo: Path) -> None:
    runner = FakeRunner(STAGED)

    assert dev_commit("Fix bug", add_all=False, verbose=False, cwd=repo, runner=runner) is True
    assert not runner.ran("git", "add")


def test_dev_commit_without_staged_changes_returns_false(repo: Path) -> None:
    runner = FakeRunner()
    stream = io.StringIO()

    assert dev_commit("Fix bug", cwd=repo, runner=runner, stream=stream) is False
    assert not runner.ran("git", "commit")
    assert "No staged changes to commit" in stream.getvalue()


def test_dev_commit_reports_failed_staging(repo: Path) -> None:
    runner = FakeRunner({("git", "add", "."): CommandResult(returncode=128)})

    assert dev_commit("Fix bug", verbose=False, cwd=repo, runner=runner) is False
    assert runner.calls == [("git", "add", ".")]


def test_dev_commit_reports_failed_commit(repo: Path) -> None:
    runner = FakeRunner({**STAGED, ("git", "commit", "-m", "Fix bug"): CommandResult(returncode=1)})

    assert dev_commit("Fix bug", push=True, verbose=False, cwd=repo, runner=runner) is False
    assert not runner.ran("git", "push")


def test_dev_commit_handles_missing_git(repo: Path) -> None:
    runner = FakeRunner(missing=["git"])

    assert dev_commit("Fix bug", verbose=False, cwd=repo, runner=runner) is False


def test_dev_commit_push_without_remote_still_succeeds(repo: Path) -> None:
    runner = FakeRunner({**STAGED, ("git", "remote"): CommandResult(returncode=0, stdout="")})
    stream = io.StringIO()

    assert dev_commit("Fix bug", push=True, cwd=repo, runner=runner, stream=stream) is True
    assert not runner.ran("git", "push")
    assert "No remote repository configured" in stream.getvalue()


def test_dev_commit_failed_push_still_succeeds(repo: Path) -> None:
    runner = FakeRunner(
        {
            **STAGED,
            ("git", "remote"): CommandResult(returncode=0, stdout="origin\n"),
            ("git", "push"): CommandResult(returncode=1),
        }
    )
    stream = io.StringIO()

    assert dev_commit("Fix bug", push=True, cwd=repo, runner=runner, stream=stream) is True
    assert "Push failed" in stream.getvalue()


def test_dev_commit_pushes_to_remote(repo: Path) -> None:
    runner = FakeRunner({**STAGED, ("git", "remote"): CommandResult(returncode=0, stdout="origin\n")})
    stream = io.StringIO()

    assert dev_commit("Fix bug", push=True, cwd=repo, runner=runner, stream=stream) is True
    assert runner.calls[-1] == ("git", "push")
    assert "✓ Pushed to remote" in stream.getvalue()


def test_get_git_status_outside_repository(tmp_path: Path) -> None:
    assert get_git_status(verbose=False, cwd=tmp_path, runner=FakeRunner()) == GitStatus()


def test_get_git_status_collects_fields(repo: Path) -> None:
    runner = FakeRunner(
        {
            ("git", "branch", "--show-current"): CommandResult(returncode=0, stdout="feature/scan\n"),
            ("git", "diff", "--quiet"): CommandResult(returncode=1),
            ("git", "remote", "get-url", "origin"): CommandResult(returncode=0, stdout="git@github.com:me/tool.git\n"),
            ("git", "rev-list", "--left-right", "--count", "HEAD...@{upstream}"): CommandResult(
                returncode=0, stdout="2\t1\n"
            ),
        }
    )
    stream = io.StringIO()

    status = get_git_status(cwd=repo, runner=runner, stream=stream)

    assert status == GitStatus(
        branch="feature/scan",
        has_changes=True,
        has_staged=False,
        remote_url="git@github.com:me/tool.git",
        ahead_behind=(2, 1),
    )
    output = stream.getvalue()
    assert "Branch: feature/scan" in output
    assert "Uncommitted changes detected" in output
    assert "Remote: git@github.com:me/tool.git" in output
    assert "Working directory clean" not in output


def test_get_git_status_tolerates_command_failures(repo: Path) -> None:
    failure = CommandResult(returncode=128, stderr="fatal: no upstream")
    runner = FakeRunner(
        {
            ("git", "branch", "--show-current"): failure,
            ("git", "diff", "--quiet"): failure,
            ("git", "diff", "--cached", "--quiet"): failure,
            ("git", "remote", "get-url", "origin"): failure,
            ("git", "rev-list", "--left-right", "--count", "HEAD...@{upstream}"): failure,
        }
    )

    assert get_git_status(verbose=False, cwd=repo, runner=runner) == GitStatus()


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("git@github.com:me/tool.git", "me/tool"),
        ("git@github.com:me/tool", "me/tool"),
        ("https://github.com/me/tool.git", "me/tool"),
        ("https://github.com/me/my.tool\n", "me/my.tool"),
        ("https://gitlab.com/me/tool.git", None),
        ("", None),
        (None, None),
    ],
)
def test_parse_github_repo(url: str | None, expected: str | None) -> None:
    assert parse_github_repo(url) == expected
