"""Package detection, uninstall and reinstall helpers."""

from __future__ import annotations

import importlib
import importlib.metadata as metadata
import logging
import re
import sys
from pathlib import Path
from typing import TextIO

import tomllib

from .console import Reporter
from .git import get_remote_url, parse_github_repo
from .models import PackageInfo
from .shell import CommandError, CommandResult, CommandRunner, SubprocessRunner

LOG = logging.getLogger(__name__)

MANIFEST_FILE = "pyproject.toml"


class PackageDetectionError(RuntimeError):
    """Raised when no package name is given and none can be detected."""


def read_package_name(manifest: Path) -> str | None:
    """Return ``[project].name`` (or Poetry's ``[tool.poetry].name``) from a manifest."""

    with manifest.open("rb") as handle:
        data = tomllib.load(handle)
    project = data.get("project")
    if isinstance(project, dict) and isinstance(project.get("name"), str):
        return project["name"].strip() or None
    tool = data.get("tool")
    poetry = tool.get("poetry") if isinstance(tool, dict) else None
    if isinstance(poetry, dict) and isinstance(poetry.get("name"), str):
        return poetry["name"].strip() or None
    return None


def detect_package_info(
    *,
    cwd: Path | None = None,
    runner: CommandRunner | None = None,
    verbose: bool = False,
    stream: TextIO | None = None,
) -> PackageInfo:
    """Detect the package name from the manifest and the repo from git."""

    reporter = Reporter(verbose, stream)
    root = cwd or Path.cwd()
    package: str | None = None
    manifest = root / MANIFEST_FILE
    if manifest.exists():
        try:
            package = read_package_name(manifest)
        except (tomllib.TOMLDecodeError, OSError) as exc:
            reporter.warning(f"Could not read {MANIFEST_FILE}")
            LOG.warning("Failed to parse manifest", extra={"manifest": str(manifest), "error": str(exc)})

    runner = runner or SubprocessRunner(root, quiet=True)
    remote_url = get_remote_url(runner)
    repo = parse_github_repo(remote_url)
    if remote_url and repo is None:
        LOG.debug("Remote is not a GitHub URL", extra={"remote_url": remote_url})
    return PackageInfo(package=package, repo=repo)


def import_name(package: str) -> str:
    """Best-effort import name for a distribution name (``my-pkg`` -> ``my_pkg``)."""

    return re.sub(r"[-.]+", "_", package)


def is_installed(package: str) -> bool:
    try:
        metadata.distribution(package)
    except metadata.PackageNotFoundError:
        return False
    return True


def unload_package_modules(package: str) -> list[str]:
    """Drop the package and its submodules from ``sys.modules``."""

    root = import_name(package)
    unloaded = sorted(name for name in sys.modules if name == root or name.startswith(f"{root}."))
    for name in unloaded:
        del sys.modules[name]
    importlib.invalidate_caches()
    return unloaded


def run_pip(runner: CommandRunner, *args: str, capture: bool = False) -> CommandResult:
    command = (sys.executable, "-m", "pip", *args)
    try:
        return runner(command, capture=capture)
    except CommandError as exc:
        LOG.warning("pip could not be started", extra={"command": " ".join(command), "error": str(exc)})
        return CommandResult(returncode=127, stderr=str(exc))


def safe_uninstall_package(
    package: str,
    *,
    verbose: bool = False,
    runner: CommandRunner | None = None,
    stream: TextIO | None = None,
) -> bool:
    """Unload and uninstall ``package``; failures are reported, never raised."""

    reporter = Reporter(verbose, stream)
    if unload_package_modules(package):
        reporter.success("Package modules unloaded")

    if not is_installed(package):
        reporter.warning("Package not currently installed")
        return False

    runner = runner or SubprocessRunner(quiet=not verbose)
    result = run_pip(runner, "uninstall", "-y", package, capture=True)
    if not result.ok:
        reporter.warning(f"Could not remove package: {_diagnostic(result)}")
        LOG.warning("pip uninstall failed", extra={"package": package, "returncode": result.returncode})
        return False
    reporter.success("Package removed")
    return True


def github_requirement(repo: str, branch: str, *, default_branch: str = "main") -> tuple[str, str]:
    """Return ``(label, pip requirement)`` for installing ``repo`` at ``branch``."""

    label = repo if branch == default_branch else f"{repo}@{branch}"
    requirement = f"git+https://github.com/{repo}.git"
    if branch != default_branch:
        requirement = f"{requirement}@{branch}"
    return label, requirement


def reinstall_from_github(
    repo: str,
    branch: str,
    *,
    default_branch: str = "main",
    verbose: bool = False,
    runner: CommandRunner | None = None,
    stream: TextIO | None = None,
) -> bool:
    reporter = Reporter(verbose, stream)
    label, requirement = github_requirement(repo, branch, default_branch=default_branch)
    runner = runner or SubprocessRunner(quiet=not verbose)
    result = run_pip(runner, "install", requirement, capture=True)
    if not result.ok:
        reporter.warning(f"Installation failed: {_diagnostic(result)}")
        LOG.warning("pip install failed", extra={"requirement": requirement, "returncode": result.returncode})
        return False
    reporter.success(f"Package reinstalled from {label}")
    return True


def _diagnostic(result: CommandResult) -> str:
    lines = [line for line in result.stderr.splitlines() if line.strip()]
    if lines:
        return lines[-1].strip()
    return f"exit status {result.returncode}"


__all__ = [
    "MANIFEST_FILE",
    "PackageDetectionError",
    "detect_package_info",
    "github_requirement",
    "import_name",
    "is_installed",
    "read_package_name",
    "reinstall_from_github",
    "run_pip",
    "safe_uninstall_package",
    "unload_package_modules",
]
