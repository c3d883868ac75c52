"""The package reload workflow: docs, connections, commit, reinstall, unload."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Mapping, TextIO

from .config import AppConfig, load_config
from .connections import ConnectionScanner, session_namespace
from .console import Reporter
from .git import dev_commit
from .models import ReloadResult
from .packaging import (
    PackageDetectionError,
    detect_package_info,
    import_name,
    reinstall_from_github,
    safe_uninstall_package,
    unload_package_modules,
)
from .shell import CommandError, CommandRunner, SubprocessRunner

LOG = logging.getLogger(__name__)


def reload_package(
    branch: str | None = None,
    commit_message: str | None = None,
    commit: bool | None = None,
    repo: str | None = None,
    package: str | None = None,
    verbose: bool | None = None,
    *,
    namespace: Mapping[str, Any] | None = None,
    config: AppConfig | None = None,
    cwd: Path | None = None,
    runner: CommandRunner | None = None,
    stream: TextIO | None = None,
) -> ReloadResult:
    """Document, disconnect, commit, reinstall and unload the current package.

    ``namespace`` defaults to the interactive session's globals. ``commit``
    defaults to whether a ``commit_message`` was given. Explicit ``package``
    and ``repo`` win over values detected from ``pyproject.toml`` and the
    origin remote.
    """

    config = config or load_config()
    verbose = config.verbose if verbose is None else verbose
    branch = branch or config.default_branch
    commit = commit_message is not None if commit is None else commit
    reporter = Reporter(verbose, stream)
    runner = runner or SubprocessRunner(cwd, quiet=not verbose)

    reporter.line("=== devreload: Reloading Python Package ===")

    info = detect_package_info(cwd=cwd, runner=runner, verbose=verbose, stream=stream)
    package = package or info.package
    repo = repo or info.repo
    if not package:
        raise PackageDetectionError(
            "Could not detect package name. Please specify 'package' or run from the project directory."
        )

    reporter.line(f"Package: {package}")
    if repo:
        reporter.line(f"Repository: {repo}")
    reporter.line(f"Branch: {branch}")
    reporter.line()

    result = ReloadResult(package=package, repo=repo, branch=branch)

    reporter.line("Step 1: Documenting package...")
    result.documented = _build_docs(config.docs_command, runner, reporter)

    reporter.line()
    reporter.line("Step 2: Checking database connections...")
    scanner = ConnectionScanner.from_config(config, verbose=verbose, stream=stream)
    result.connections = scanner.scan(session_namespace() if namespace is None else namespace, attempt_release=True)

    reporter.line()
    if commit and commit_message is not None:
        reporter.line("Step 3: Committing changes...")
        result.committed = dev_commit(commit_message, verbose=verbose, cwd=cwd, runner=runner, stream=stream)
    else:
        reporter.line("Step 3: Skipping git commit")

    reporter.line()
    reporter.line("Step 4: Uninstalling current package...")
    result.uninstalled = safe_uninstall_package(package, verbose=verbose, runner=runner, stream=stream)

    reporter.line()
    if repo:
        reporter.line("Step 5: Reinstalling from GitHub...")
        result.installed = reinstall_from_github(
            repo,
            branch,
            default_branch=config.default_branch,
            verbose=verbose,
            runner=runner,
            stream=stream,
        )
    else:
        reporter.line("Step 5: Skipping GitHub install (no repo detected)")

    reporter.line()
    reporter.line("=== Workflow Complete ===")
    reporter.line("Unloading package modules...")
    result.unloaded_modules = tuple(unload_package_modules(package))
    reporter.line(f"Re-import the package with: import {import_name(package)}")
    return result


def _build_docs(command: list[str], runner: CommandRunner, reporter: Reporter) -> bool | None:
    if not command:
        reporter.line("Skipping documentation (no docs_command configured)", indent=1)
        return None
    try:
        outcome = runner(command, capture=True)
    except CommandError as exc:
        reporter.warning(f"Documentation failed: {exc}")
        LOG.warning("Documentation command could not start", extra={"command": " ".join(command)})
        return False
    if not outcome.ok:
        detail = outcome.stderr.strip().splitlines()[-1] if outcome.stderr.strip() else f"exit status {outcome.returncode}"
        reporter.warning(f"Documentation failed: {detail}")
        LOG.warning("Documentation command failed", extra={"command": " ".join(command), "returncode": outcome.returncode})
        return False
    reporter.success("Documentation updated")
    return True


__all__ = ["reload_package"]
