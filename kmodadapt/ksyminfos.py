"""Reader for Module.symvers symbol CRC tables."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from os import PathLike

from kmodadapt.common import split_string


@dataclass
class KSymInfo:
    """One exported kernel symbol."""

    name: str
    crc: int
    origin: str
    export_type: str


class KSymInfos:
    """Symbols read from one or more Module.symvers files, keyed by name."""

    def __init__(self, path: str | PathLike[str] | None = None) -> None:
        self._infos: dict[str, KSymInfo] = {}
        if path is not None:
            self.load(path)

    def load(self, path: str | PathLike[str]) -> None:
        """Add the symbols of *path*; lines without exactly four fields are skipped.

        A symbol already known keeps its first entry.
        """
        with open(path, encoding="utf-8", errors="replace") as fh:
            for line in fh:
                fields = split_string(line.rstrip("\n"), "\t")
                if len(fields) != 4:
                    continue
                crc_text, name, origin, export_type = fields
                info = KSymInfo(name, int(crc_text.strip(), 16), origin, export_type)
                self._infos.setdefault(name, info)

    def find_sym(self, name: str) -> int | None:
        """Return the CRC of *name*, or None when it is unknown."""
        info = self._infos.get(name)
        return info.crc if info is not None else None

    def print_infos(self) -> None:
        """Print every symbol in name order."""
        for name in sorted(self._infos):
            info = self._infos[name]
            print(f"{info.crc:<16d}\t{info.name:<64}{info.origin:<64}{info.export_type:<16}")

    def __len__(self) -> int:
        return len(self._infos)

    def __contains__(self, name: object) -> bool:
        return name in self._infos

    def __iter__(self) -> Iterator[KSymInfo]:
        return iter(self._infos[name] for name in sorted(self._infos))