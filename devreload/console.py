"""Line-oriented console reporting gated by a verbosity flag."""

from __future__ import annotations

import sys
from typing import TextIO

SUCCESS_MARK = "✓"
WARNING_MARK = "⚠"


class Reporter:
    """Writes indented progress lines when verbose, otherwise stays silent."""

    def __init__(self, verbose: bool = True, stream: TextIO | None = None) -> None:
        self._verbose = verbose
        self._stream = stream

    @property
    def verbose(self) -> bool:
        return self._verbose

    def line(self, text: str = "", *, indent: int = 0) -> None:
        if not self._verbose:
            return
        stream = self._stream or sys.stdout
        stream.write(f"{'  ' * indent}{text}\n")

    def success(self, text: str, *, indent: int = 1) -> None:
        self.line(f"{SUCCESS_MARK} {text}", indent=indent)

    def warning(self, text: str, *, indent: int = 1) -> None:
        self.line(f"{WARNING_MARK} {text}", indent=indent)


__all__ = ["Reporter", "SUCCESS_MARK", "WARNING_MARK"]
