"""Tests for the command line entry point."""

from __future__ import annotations

from pathlib import Path

import pytest

from devreload import cli
from devreload.models import GitStatus, ReloadResult
from devreload.packaging import PackageDetectionError


def test_parser_requires_a_command() -> None:
    with pytest.raises(SystemExit):
        cli.build_parser().parse_args([])


def test_commit_command_forwards_options(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    seen: dict[str, object] = {}

    def _fake_commit(message: str, **kwargs: object) -> bool:
        seen["message"] = message
        seen.update(kwargs)
        return True

    monkeypatch.setattr(cli, "dev_commit", _fake_commit)

    code = cli.main(["--cwd", str(tmp_path), "-q", "commit", "Fix bug", "--push", "--staged-only"])

    assert code == 0
    assert seen == {"message": "Fix bug", "push": True, "add_all": False, "verbose": False, "cwd": tmp_path}


def test_commit_command_exit_codes(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(cli, "dev_commit", lambda message, **_: False)
    assert cli.main(["commit", "Fix bug"]) == 1

    def _reject(message: str, **_: object) -> bool:
        raise ValueError("Commit message is required")

    monkeypatch.setattr(cli, "dev_commit", _reject)
    assert cli.main(["commit", " "]) == 2


def test_status_command(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(cli, "get_git_status", lambda **_: GitStatus())

    assert cli.main(["status"]) == 0


def test_reload_command_maps_flags(monkeypatch: pytest.MonkeyPatch) -> None:
    seen: dict[str, object] = {}

    def _fake_reload(**kwargs: object) -> ReloadResult:
        seen.update(kwargs)
        return ReloadResult(package="my-tool", repo=None, branch="main")

    monkeypatch.setattr(cli, "reload_package", _fake_reload)

    code = cli.main(["reload", "--branch", "dev", "-m", "Ship it", "--no-commit", "--package", "my-tool"])

    assert code == 0
    assert seen["branch"] == "dev"
    assert seen["commit_message"] == "Ship it"
    assert seen["commit"] is False
    assert seen["package"] == "my-tool"
    assert seen["verbose"] is True


def test_reload_command_reports_detection_error(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    def _fail(**_: object) -> ReloadResult:
        raise PackageDetectionError("Could not detect package name.")

    monkeypatch.setattr(cli, "reload_package", _fail)

    assert cli.main(["reload"]) == 2
    assert "Could not detect package name." in capsys.readouterr().err
