"""Module information and symbol versions stored in a kernel module."""

from __future__ import annotations

import re
import struct
from dataclasses import dataclass
from os import PathLike

from kmodadapt.elfptrs import ElfFile
from kmodadapt.errorlog import ErrorLog

_VERSION_ENTRY_SIZE = 64
_VERSION_NAME_LEN = 56
_VERMAGIC_KEY = "vermagic="
_NON_ZERO = re.compile(rb"[^\0]")


@dataclass
class ModVersionInfo:
    """One entry of the ``__versions`` section."""

    name: str
    crc: int
    offset: int


@dataclass(frozen=True)
class ModInfoEntry:
    """One ``tag=value`` string of the ``.modinfo`` section.

    ``offset`` is relative to the start of the section and ``size`` is the
    number of bytes the string may occupy before its terminating NUL.
    """

    offset: int
    text: str
    size: int


def parse_modinfo(data: bytes | bytearray | memoryview) -> list[ModInfoEntry]:
    """Split the raw contents of a ``.modinfo`` section into its strings.

    Zero padding between strings is skipped. A string that runs to the end of
    the section, or trailing padding, ends the scan.
    """
    raw = bytes(data)
    if not raw:
        return []
    entries: list[ModInfoEntry] = []
    pos = 0
    while True:
        end = raw.find(b"\0", pos)
        if end < 0:
            end = len(raw)
        text = raw[pos:end].decode("utf-8", errors="replace")
        entries.append(ModInfoEntry(pos, text, end - pos))
        if end >= len(raw):
            break
        following = _NON_ZERO.search(raw, end)
        if following is None:
            break
        pos = following.start()
    return entries


class ElfSymInfos:
    """The ``.modinfo`` strings and ``__versions`` CRCs of one kernel module."""

    def __init__(
        self,
        path: str | PathLike[str],
        writable: bool = False,
        show: bool = True,
        log: ErrorLog | None = None,
    ) -> None:
        self._elf = ElfFile(path, writable, show, log)
        self.path = self._elf.path
        self.show = show
        self._endian = self._read_endian()
        self.mod_info: list[ModInfoEntry] = self._init_mod_info()
        self.versions: dict[str, ModVersionInfo] = self._init_sym_info()
        if show:
            self.print_mod_info()
            self.print_sym_info()

    @property
    def writable(self) -> bool:
        return self._elf.writable

    def _read_endian(self) -> str:
        with open(self.path, "rb") as fh:
            ident = fh.read(6)
        return ">" if len(ident) > 5 and ident[5] == 2 else "<"

    def _section(self, name: str) -> memoryview | None:
        try:
            return self._elf.section_bytes(name)
        except KeyError:
            print(f"Table {name} is not found!!!")
            return None

    def _init_mod_info(self) -> list[ModInfoEntry]:
        view = self._section(".modinfo")
        if view is None:
            return []
        with view:
            return parse_modinfo(view)

    def _init_sym_info(self) -> dict[str, ModVersionInfo]:
        versions: dict[str, ModVersionInfo] = {}
        view = self._section("__versions")
        if view is None:
            return versions
        layout = struct.Struct(f"{self._endian}Q{_VERSION_NAME_LEN}s")
        with view:
            for offset in range(0, len(view) - _VERSION_ENTRY_SIZE + 1, _VERSION_ENTRY_SIZE):
                crc, raw_name = layout.unpack_from(view, offset)
                name = raw_name.split(b"\0", 1)[0].decode("utf-8", errors="replace")
                versions.setdefault(name, ModVersionInfo(name, crc, offset))
        return versions

    def _require_writable(self) -> None:
        if not self.writable:
            raise ValueError(f"{self.path} was opened read-only")

    def print_mod_info(self) -> None:
        """Print every ``.modinfo`` string."""
        print("ModInfo:")
        for entry in self.mod_info:
            print(f"\t{entry.text:<64}")

    def print_sym_info(self) -> None:
        """Print every versioned symbol with its CRC, in name order."""
        print("SymInfo:")
        print(f"\tnum_versions = {len(self.versions)}")
        for name in sorted(self.versions):
            info = self.versions[name]
            print(f"\tsym name = {info.name:<56} crc = {info.crc:#x}")

    def vermagic(self) -> str:
        """Return the value of the first ``vermagic=`` string, or ``""``."""
        for entry in self.mod_info:
            index = entry.text.find(_VERMAGIC_KEY)
            if index >= 0:
                return entry.text[index + len(_VERMAGIC_KEY) :]
        return ""

    def sym_ver_info(self) -> dict[str, int]:
        """Return a mapping of symbol name to CRC."""
        return {name: info.crc for name, info in sorted(self.versions.items())}

    def set_crc(self, name: str, crc: int) -> None:
        """Overwrite the CRC recorded for symbol *name*."""
        info = self.versions[name]
        self._require_writable()
        with self._elf.section_bytes("__versions") as view:
            struct.pack_into(f"{self._endian}Q", view, info.offset, crc)
        info.crc = crc

    def write_modinfo(self, entry: ModInfoEntry, text: str) -> ModInfoEntry:
        """Replace the string of *entry* with *text*, padding with NUL bytes.

        Raises ValueError if *text* does not fit in the entry's space.
        """
        self._require_writable()
        try:
            position = self.mod_info.index(entry)
        except ValueError:
            raise ValueError("entry does not belong to this module") from None
        encoded = text.encode("utf-8")
        if len(encoded) > entry.size:
            raise ValueError(
                f"{text!r} needs {len(encoded)} bytes, only {entry.size} available"
            )
        with self._elf.section_bytes(".modinfo") as view:
            view[entry.offset : entry.offset + entry.size] = encoded.ljust(entry.size, b"\0")
        updated = ModInfoEntry(entry.offset, text, entry.size)
        self.mod_info[position] = updated
        return updated

    def close(self) -> None:
        """Release the file, writing back changes if it is writable."""
        self._elf.close()

    def __enter__(self) -> ElfSymInfos:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()