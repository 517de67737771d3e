"""Error log that mirrors messages to a file and to standard output."""

from __future__ import annotations

import functools
import os
import sys
from pathlib import Path
from typing import TextIO


class ErrorLog:
    """Writes error lines to a log file and echoes them to stdout.

    When no path is given the log lives next to the running program as
    ``<program>Errlog.txt``. If the file cannot be opened, messages are dropped.
    """

    def __init__(self, path: str | os.PathLike[str] | None = None) -> None:
        self.path: Path | None = Path(path) if path is not None else self._default_path()
        self._fp: TextIO | None = None
        if self.path is not None:
            try:
                self._fp = open(self.path, "w", encoding="utf-8")
            except OSError:
                self._fp = None

    @staticmethod
    def _default_path() -> Path | None:
        program = sys.argv[0] if sys.argv else ""
        if not program:
            return None
        exe = Path(os.path.abspath(program))
        return exe.parent / f"{exe.name}Errlog.txt"

    def put_err_info(self, err: str, detail: str = "") -> None:
        """Record one error line, if the log file is open."""
        if self._fp is None:
            return
        line = f"{err}  文件:{detail}\n"
        self._fp.write(line)
        self._fp.flush()
        print(line, end="")

    def close(self) -> None:
        """Close the log file."""
        if self._fp is not None:
            self._fp.close()
            self._fp = None

    def __enter__(self) -> ErrorLog:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


@functools.lru_cache(maxsize=None)
def get_error_log() -> ErrorLog:
    """Return the process-wide error log."""
    return ErrorLog()