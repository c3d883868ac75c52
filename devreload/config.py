"""App configuration loading helpers."""

from __future__ import annotations

import os
from pathlib import Path

import tomllib

from pydantic import BaseModel, Field

CONFIG_FILE = Path(os.environ.get("DEVRELOAD_CONFIG", Path.home() / ".config" / "devreload" / "config.toml"))

DEFAULT_CONNECTION_NAMES: tuple[str, ...] = ("con", "conn", "db", "database", "connection")


class ScannerConfig(BaseModel):
    """Connection scanner tuning stored under ``[scanner]``."""

    connection_types: list[str] = Field(default_factory=list)
    connection_names: list[str] = Field(default_factory=lambda: list(DEFAULT_CONNECTION_NAMES))


class AppConfig(BaseModel):
    """Shape of the configuration file."""

    verbose: bool = True
    default_branch: str = "main"
    docs_command: list[str] = Field(default_factory=list)
    scanner: ScannerConfig = Field(default_factory=ScannerConfig)

    def with_connection_types(self, *tags: str) -> AppConfig:
        """Return a copy that also recognises the given type tags."""

        known = list(self.scanner.connection_types)
        known.extend(tag for tag in tags if tag not in known)
        scanner = self.scanner.model_copy(update={"connection_types": known})
        return self.model_copy(update={"scanner": scanner})


def load_config() -> AppConfig:
    """Load configuration from disk; fall back to defaults if missing."""

    try:
        data = _read_config_file()
    except FileNotFoundError:
        return AppConfig()
    except (tomllib.TOMLDecodeError, OSError):
        return AppConfig()
    return AppConfig(**data)


def _read_config_file() -> dict[str, object]:
    with CONFIG_FILE.open("rb") as handle:
        raw = tomllib.load(handle)
    data: dict[str, object] = {}
    verbose = raw.get("verbose")
    if isinstance(verbose, bool):
        data["verbose"] = verbose
    branch = raw.get("default_branch")
    if isinstance(branch, str) and branch.strip():
        data["default_branch"] = branch.strip()
    docs_command = raw.get("docs_command")
    if isinstance(docs_command, str):
        data["docs_command"] = docs_command.split()
    elif isinstance(docs_command, list):
        data["docs_command"] = [str(part) for part in docs_command]
    scanner = raw.get("scanner")
    if isinstance(scanner, dict):
        state: dict[str, object] = {}
        for key in ("connection_types", "connection_names"):
            values = scanner.get(key)
            if isinstance(values, list):
                state[key] = [value for value in values if isinstance(value, str) and value]
        data["scanner"] = ScannerConfig(**state)
    return data


__all__ = ["AppConfig", "CONFIG_FILE", "DEFAULT_CONNECTION_NAMES", "ScannerConfig", "load_config"]
