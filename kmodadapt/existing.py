"""Symbol CRCs and version magic gathered from the installed kernel modules."""

from __future__ import annotations

import os
import sys
from collections.abc import Iterable
from os import PathLike

from kmodadapt.common import split_string
from kmodadapt.elfptrs import ElfError
from kmodadapt.elfsyminfos import ElfSymInfos
from kmodadapt.errorlog import ErrorLog


def parse_modules_dep(lines: Iterable[str]) -> list[str]:
    """Return the sorted, distinct module paths named in ``modules.dep`` lines."""
    paths: set[str] = set()
    for line in lines:
        parts = split_string(line.rstrip("\r\n"), ":")
        if not parts:
            continue
        paths.add(parts[0])
        for rest in parts[1:]:
            paths.update(split_string(rest, " "))
    return sorted(paths)


class ExistingModInfo:
    """The modules installed for a kernel release and the CRCs they expect."""

    def __init__(
        self,
        release: str | None = None,
        modules_root: str | PathLike[str] = "/usr/lib/modules",
        log: ErrorLog | None = None,
    ) -> None:
        uts = os.uname()
        print(f"System Name: {uts.sysname}")
        print(f"Node Name: {uts.nodename}")
        print(f"Release: {uts.release}")
        print(f"Version: {uts.version}")
        print(f"Machine: {uts.machine}")
        self.release = uts.release if release is None else release
        self.modules_dir = f"{os.fspath(modules_root).rstrip('/')}/{self.release}/"
        self._log = log
        self.kmods: list[tuple[str, str]] = self._query_kmods()
        self._crcs: dict[str, int] = {}
        self._vermagic = ""
        self._init_all_symbol_ver_info()

    def _query_kmods(self) -> list[tuple[str, str]]:
        try:
            with open(self.modules_dir + "modules.dep", encoding="utf-8", errors="replace") as fh:
                relative = parse_modules_dep(fh)
        except OSError:
            print("Unable to open file.", file=sys.stderr)
            relative = []
        found = []
        for rel in relative:
            path = self.modules_dir + rel
            if not os.path.exists(path):
                continue
            found.append((split_string(path, "/")[-1], path))
        return sorted(found, key=lambda item: item[0])

    def _init_all_symbol_ver_info(self) -> None:
        for _, path in self.kmods:
            try:
                infos = ElfSymInfos(path, writable=False, show=False, log=self._log)
            except ElfError:
                continue
            with infos:
                new_vermagic = infos.vermagic()
                if not self._vermagic:
                    self._vermagic = new_vermagic
                elif self._vermagic != new_vermagic:
                    print(f"Warning : old magic = {self._vermagic} new magic = {new_vermagic}")
                for name, crc in infos.sym_ver_info().items():
                    known = self._crcs.get(name)
                    if known is None:
                        self._crcs[name] = crc
                    elif known != crc:
                        print(f"Has repetitive crc name is {name:<32} {crc} and {known}")
        status = "success" if self._crcs else "fail"
        print(f"init {status} symbol size = {len(self._crcs)}")

    def print_kmods(self) -> None:
        """Print each module name with its path."""
        for name, path in self.kmods:
            print(f"{name:<32} : {path}")

    def vermagic(self) -> str:
        """Return the version magic of the installed modules."""
        return self._vermagic

    def find_sym(self, name: str) -> int | None:
        """Return the CRC the installed modules expect for *name*, or None."""
        return self._crcs.get(name)