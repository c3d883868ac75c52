"""Scanner that finds database handles in a namespace and closes them."""

from __future__ import annotations

import inspect
import logging
import sqlite3
import sys
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable, Iterable, Mapping, Protocol, TextIO, runtime_checkable

from .config import DEFAULT_CONNECTION_NAMES, AppConfig
from .console import Reporter
from .models import Classification, ConnectionRecord, MatchSource

LOG = logging.getLogger(__name__)

Check = Callable[[Any], bool]
Release = Callable[[Any], None]


@runtime_checkable
class ConnectionLike(Protocol):
    """Handle exposing the capabilities the scanner relies on."""

    def is_valid(self) -> bool:
        """Return whether the handle is still open."""

    def close(self) -> None:
        """Release the underlying resource."""


@dataclass(frozen=True, slots=True)
class HandleAdapter:
    """Validity check and release call for one family of handles."""

    check: Check
    release: Release


def type_tag(cls: type) -> str:
    """Qualified ``module.QualName`` used to match registry entries."""

    return f"{cls.__module__}.{cls.__qualname__}"


def check_is_valid(handle: ConnectionLike) -> bool:
    """The duck-typed validity capability: ``handle.is_valid()``."""

    return bool(handle.is_valid())


def _check_not_closed(handle: Any) -> bool:
    return not handle.closed


def _check_not_is_closed(handle: Any) -> bool:
    return not handle.is_closed()


def _check_is_connected(handle: Any) -> bool:
    return bool(handle.is_connected())


def _check_open(handle: Any) -> bool:
    return bool(handle.open)


def _check_sqlite(handle: sqlite3.Connection) -> bool:
    # total_changes raises ProgrammingError once the connection is closed.
    try:
        return handle.total_changes >= 0
    except sqlite3.ProgrammingError:
        return False


_GENERIC_CHECKS: tuple[tuple[str, Check], ...] = (
    ("is_valid", check_is_valid),
    ("is_closed", _check_not_is_closed),
    ("is_connected", _check_is_connected),
    ("closed", _check_not_closed),
    ("open", _check_open),
)


def _check_generic(handle: Any) -> bool:
    for attribute, check in _GENERIC_CHECKS:
        if hasattr(handle, attribute):
            return check(handle)
    raise TypeError(f"{type_tag(type(handle))} exposes no validity check")


def _release_close(handle: Any) -> None:
    handle.close()


def _release_terminate(handle: Any) -> None:
    handle.terminate()


def _release_generic(handle: Any) -> None:
    for attribute in ("close", "disconnect"):
        method = getattr(handle, attribute, None)
        if not callable(method):
            continue
        result = method()
        if inspect.isawaitable(result):
            if inspect.iscoroutine(result):
                result.close()
            raise TypeError(f"{type_tag(type(handle))}.{attribute}() is asynchronous; register an adapter for it")
        return
    raise TypeError(f"{type_tag(type(handle))} has no close() or disconnect()")


GENERIC_ADAPTER = HandleAdapter(check=_check_generic, release=_release_generic)

_CLOSED_FLAG = HandleAdapter(check=_check_not_closed, release=_release_close)
_OPEN_FLAG = HandleAdapter(check=_check_open, release=_release_close)
_IS_CONNECTED = HandleAdapter(check=_check_is_connected, release=_release_close)

BUILTIN_ADAPTERS: Mapping[str, HandleAdapter] = MappingProxyType(
    {
        "sqlite3.Connection": HandleAdapter(check=_check_sqlite, release=_release_close),
        "psycopg2.extensions.connection": _CLOSED_FLAG,
        "psycopg.Connection": _CLOSED_FLAG,
        "psycopg.connection.Connection": _CLOSED_FLAG,
        # asyncpg.close() is a coroutine; terminate() closes synchronously.
        "asyncpg.connection.Connection": HandleAdapter(check=_check_not_is_closed, release=_release_terminate),
        "pymysql.connections.Connection": _OPEN_FLAG,
        "MySQLdb.connections.Connection": _OPEN_FLAG,
        "mysql.connector.connection.MySQLConnection": _IS_CONNECTED,
        "mysql.connector.connection_cext.CMySQLConnection": _IS_CONNECTED,
        "mariadb.connections.Connection": GENERIC_ADAPTER,
        "pyodbc.Connection": _CLOSED_FLAG,
        "sqlalchemy.engine.base.Connection": _CLOSED_FLAG,
    }
)


class ConnectionTypeRegistry:
    """Known connection type tags and the adapters used for them."""

    def __init__(self, adapters: Mapping[str, HandleAdapter] | None = None) -> None:
        self._adapters: dict[str, HandleAdapter] = dict(adapters or {})

    @classmethod
    def with_defaults(cls, extra_tags: Iterable[str] = ()) -> ConnectionTypeRegistry:
        """Registry seeded with the built-in drivers plus ``extra_tags``."""

        registry = cls(BUILTIN_ADAPTERS)
        for tag in extra_tags:
            if tag not in registry:
                registry.register(tag)
        return registry

    def register(self, tag: str, adapter: HandleAdapter | None = None) -> None:
        """Register a type tag; unknown drivers use the generic adapter."""

        if not tag:
            raise ValueError("Connection type tag must not be empty")
        self._adapters[tag] = adapter or GENERIC_ADAPTER

    def __contains__(self, tag: object) -> bool:
        return tag in self._adapters

    def lookup(self, value: object) -> tuple[str, HandleAdapter] | None:
        """Return the first registered tag along the value's MRO."""

        for cls in type(value).__mro__:
            tag = type_tag(cls)
            adapter = self._adapters.get(tag)
            if adapter is not None:
                return tag, adapter
        return None


@dataclass(frozen=True, slots=True)
class _Match:
    source: MatchSource
    adapter: HandleAdapter
    validity: bool | None = None


class ConnectionScanner:
    """Classifies namespace bindings as database handles and releases them."""

    def __init__(
        self,
        registry: ConnectionTypeRegistry | None = None,
        *,
        names: Iterable[str] = DEFAULT_CONNECTION_NAMES,
        reporter: Reporter | None = None,
    ) -> None:
        self._registry = registry or ConnectionTypeRegistry.with_defaults()
        self._names = frozenset(names)
        self._reporter = reporter or Reporter()

    @classmethod
    def from_config(
        cls,
        config: AppConfig,
        *,
        verbose: bool | None = None,
        stream: TextIO | None = None,
    ) -> ConnectionScanner:
        registry = ConnectionTypeRegistry.with_defaults(config.scanner.connection_types)
        reporter = Reporter(config.verbose if verbose is None else verbose, stream)
        return cls(registry, names=config.scanner.connection_names, reporter=reporter)

    def classify(self, name: str, value: object) -> Classification:
        """Classify one binding without releasing anything."""

        if value is None:
            return Classification.NOT_A_CONNECTION
        match = self._classify(name, value)
        if match is None:
            return Classification.NOT_A_CONNECTION
        if self._validity(record_name=name, value=value, match=match):
            return Classification.VALID
        return Classification.INVALID

    def scan(self, namespace: Mapping[str, Any], attempt_release: bool = True) -> list[ConnectionRecord]:
        """Scan a snapshot of ``namespace``; close valid handles when asked."""

        reporter = self._reporter
        reporter.line("Scanning for database connections...")
        snapshot = dict(namespace)
        records: list[ConnectionRecord] = []
        released: set[int] = set()
        for name, value in snapshot.items():
            if value is None:
                continue
            match = self._classify(str(name), value)
            if match is None:
                continue
            record = ConnectionRecord(
                name=str(name),
                declared_type=type_tag(type(value)),
                is_valid=self._validity(record_name=str(name), value=value, match=match),
                matched_by=match.source,
            )
            records.append(record)
            reporter.line(f"Found: {record.name} ({record.declared_type}) - {record.status}", indent=1)
            if attempt_release and record.is_valid and id(value) not in released:
                released.add(id(value))
                self._release(record, value, match.adapter)
        self._report_summary(records, attempt_release)
        return records

    def _classify(self, name: str, value: object) -> _Match | None:
        found = self._registry.lookup(value)
        if found is not None:
            return _Match(MatchSource.TYPE_TAG, found[1])
        try:
            valid = check_is_valid(value)  # type: ignore[arg-type]
        except Exception as exc:
            LOG.debug("Validity check rejected binding", extra={"binding": name, "error": repr(exc)})
            return None
        if valid:
            return _Match(MatchSource.CAPABILITY, GENERIC_ADAPTER, True)
        if name in self._names:
            return _Match(MatchSource.NAME, GENERIC_ADAPTER, False)
        return None

    def _validity(self, *, record_name: str, value: object, match: _Match) -> bool:
        if match.validity is not None:
            return match.validity
        try:
            return bool(match.adapter.check(value))
        except Exception as exc:
            LOG.debug("Validity check failed", extra={"binding": record_name, "error": repr(exc)})
            return False

    def _release(self, record: ConnectionRecord, handle: object, adapter: HandleAdapter) -> None:
        record.disconnect_attempted = True
        try:
            adapter.release(handle)
        except Exception as exc:
            record.disconnect_succeeded = False
            record.error = str(exc) or type(exc).__name__
            self._reporter.warning(f"Failed to disconnect: {record.name} - {record.error}", indent=2)
            LOG.warning(
                "Failed to disconnect handle",
                extra={"binding": record.name, "handle_type": record.declared_type, "error": record.error},
            )
            return
        record.disconnect_succeeded = True
        self._reporter.success(f"Disconnected: {record.name}", indent=2)

    def _report_summary(self, records: list[ConnectionRecord], attempt_release: bool) -> None:
        if not records:
            self._reporter.line("No database connections detected", indent=1)
        self._reporter.line(f"Summary: {summarize(records, attempt_release)}", indent=1)


def summarize(records: Iterable[ConnectionRecord], attempt_release: bool) -> str:
    """Counts reconciling found handles against released or active ones."""

    records = list(records)
    total = len(records)
    if attempt_release:
        released = sum(1 for record in records if record.disconnect_succeeded)
        return f"{total} connections found, {released} successfully disconnected"
    active = sum(1 for record in records if record.is_valid)
    return f"{total} connections found, {active} currently active"


def scan_and_release(
    namespace: Mapping[str, Any],
    attempt_release: bool = True,
    *,
    verbose: bool = True,
    registry: ConnectionTypeRegistry | None = None,
    names: Iterable[str] | None = None,
    stream: TextIO | None = None,
) -> list[ConnectionRecord]:
    """Scan ``namespace`` for database handles, closing the open ones."""

    scanner = ConnectionScanner(
        registry,
        names=DEFAULT_CONNECTION_NAMES if names is None else names,
        reporter=Reporter(verbose, stream),
    )
    return scanner.scan(namespace, attempt_release)


def session_namespace() -> Mapping[str, Any]:
    """Read-only view of the running ``__main__`` globals."""

    main = sys.modules.get("__main__")
    if main is None:
        return MappingProxyType({})
    return MappingProxyType(vars(main))


__all__ = [
    "BUILTIN_ADAPTERS",
    "ConnectionLike",
    "ConnectionScanner",
    "ConnectionTypeRegistry",
    "GENERIC_ADAPTER",
    "HandleAdapter",
    "check_is_valid",
    "scan_and_release",
    "session_namespace",
    "summarize",
    "type_tag",
]
