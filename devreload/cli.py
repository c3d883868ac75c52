"""Command line interface for the reload workflow and git helpers."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from .config import load_config
from .git import dev_commit, get_git_status
from .packaging import PackageDetectionError
from .workflow import reload_package

LOG = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="devreload", description=__doc__)
    parser.add_argument("--cwd", type=Path, default=None, help="Project directory (default: current directory)")
    parser.add_argument("-q", "--quiet", action="store_true", help="Suppress progress output")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default="WARNING",
        help="Logging level (default: WARNING)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    reload_parser = subparsers.add_parser("reload", help="Document, commit, reinstall and unload the package")
    reload_parser.add_argument("--branch", help="Branch to install from (default: config default_branch)")
    reload_parser.add_argument("-m", "--message", dest="commit_message", help="Commit message; commits when given")
    reload_parser.add_argument("--no-commit", action="store_true", help="Skip the commit even with a message")
    reload_parser.add_argument("--repo", help="GitHub repository as owner/name (default: detected)")
    reload_parser.add_argument("--package", help="Distribution name (default: from pyproject.toml)")

    commit_parser = subparsers.add_parser("commit", help="Stage and commit changes")
    commit_parser.add_argument("message", help="Commit message")
    commit_parser.add_argument("--push", action="store_true", help="Push to the remote after committing")
    commit_parser.add_argument("--staged-only", action="store_true", help="Commit only already-staged changes")

    subparsers.add_parser("status", help="Show repository status")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(sys.argv[1:] if argv is None else argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(levelname)s %(name)s: %(message)s")
    verbose = not args.quiet

    if args.command == "reload":
        try:
            reload_package(
                branch=args.branch,
                commit_message=args.commit_message,
                commit=False if args.no_commit else None,
                repo=args.repo,
                package=args.package,
                verbose=verbose,
                config=load_config(),
                cwd=args.cwd,
            )
        except PackageDetectionError as exc:
            print(f"error: {exc}", file=sys.stderr)
            return 2
        return 0
    if args.command == "commit":
        try:
            committed = dev_commit(
                args.message,
                push=args.push,
                add_all=not args.staged_only,
                verbose=verbose,
                cwd=args.cwd,
            )
        except ValueError as exc:
            print(f"error: {exc}", file=sys.stderr)
            return 2
        return 0 if committed else 1
    if args.command == "status":
        get_git_status(verbose=verbose, cwd=args.cwd)
        return 0
    LOG.error("Unknown command", extra={"command": args.command})
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
