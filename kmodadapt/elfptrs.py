"""Access to the section headers of a 64-bit ELF file."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from os import PathLike

from kmodadapt.errorlog import ErrorLog, get_error_log

_EHDR_SIZE = 64
_SHDR_SIZE = 64
_SHT_NOBITS = 8


class ElfError(Exception):
    """Raised when an ELF file cannot be opened or parsed."""


@dataclass
class TableInfo:
    """One section of an ELF file."""

    name: str
    type: int
    index: int
    header_offset: int
    offset: int
    size: int
    link: int
    strtab_offset: int | None


def fill_with_spaces(text: str, length: int) -> str:
    """Pad *text* with spaces on the right up to *length*."""
    return text.ljust(length)


def _cstring(data: bytes | bytearray, offset: int) -> str:
    if offset >= len(data):
        return ""
    end = data.find(b"\0", offset)
    if end < 0:
        end = len(data)
    return bytes(data[offset:end]).decode("utf-8", errors="replace")


class ElfFile:
    """An ELF64 file loaded in memory, with its sections indexed by name.

    When opened writable, changes made through :meth:`section_bytes` are
    written back to the file on :meth:`close`.
    """

    def __init__(
        self,
        path: str | PathLike[str],
        writable: bool = False,
        show: bool = True,
        log: ErrorLog | None = None,
    ) -> None:
        self.path = str(path)
        self.writable = writable
        self.show = show
        self.tables: dict[str, TableInfo] = {}
        self._log = log
        self._closed = False
        self._data: bytes | bytearray = self._read()
        self._parse()

    def _error(self, message: str) -> ElfError:
        (self._log or get_error_log()).put_err_info(message, self.path)
        return ElfError(f"{message}: {self.path}")

    def _read(self) -> bytes | bytearray:
        try:
            with open(self.path, "rb") as fh:
                raw = fh.read()
        except OSError as exc:
            raise self._error("failed to open file") from exc
        return bytearray(raw) if self.writable else raw

    def _parse(self) -> None:
        data = self._data
        if len(data) < _EHDR_SIZE or data[:4] != b"\x7fELF":
            raise self._error("not an ELF file")
        if data[4] != 2:
            raise self._error("not a 64-bit ELF file")
        endian = "<" if data[5] == 1 else ">"
        fields = struct.unpack_from(f"{endian}HHIQQQIHHHHHH", data, 16)
        shoff, shnum, shstrndx = fields[5], fields[11], fields[12]
        if shoff + shnum * _SHDR_SIZE > len(data) or (shnum and shstrndx >= shnum):
            raise self._error("section header table out of range")

        shdr = struct.Struct(f"{endian}IIQQQQIIQQ")
        headers = [shdr.unpack_from(data, shoff + i * _SHDR_SIZE) for i in range(shnum)]
        strtab_offset = headers[shstrndx][4] if headers else 0

        if self.show:
            print("TableInfo:")
            print(f"\tstrtab offset = {strtab_offset:#x}  {_cstring(data, strtab_offset)}")

        for index, header in enumerate(headers[1:], start=1):
            sh_name, sh_type, _, _, sh_offset, sh_size, sh_link = header[:7]
            linked = headers[sh_link][4] if sh_link < len(headers) else 0
            info = TableInfo(
                name=_cstring(data, strtab_offset + sh_name),
                type=sh_type,
                index=index,
                header_offset=shoff + index * _SHDR_SIZE,
                offset=sh_offset,
                size=sh_size,
                link=sh_link,
                strtab_offset=linked or None,
            )
            if self.show:
                linked_text = _cstring(data, linked) if linked else ""
                print(
                    f"\tname: {info.name:<56} type: {info.type} "
                    f"addr: {info.header_offset:#x} str: {info.link:02d} "
                    f"strtab: {linked_text:<16}{linked:#x}"
                )
            self.tables[info.name] = info

    def table(self, name: str) -> TableInfo:
        """Return the section called *name*; raise KeyError if absent."""
        try:
            return self.tables[name]
        except KeyError:
            raise KeyError(f"Table {name} is not found") from None

    def section_bytes(self, name: str) -> memoryview:
        """Return a view of the contents of section *name*.

        The view is writable when the file was opened writable.
        """
        info = self.table(name)
        if info.type == _SHT_NOBITS:
            return memoryview(self._data)[0:0]
        return memoryview(self._data)[info.offset : info.offset + info.size]

    def close(self) -> None:
        """Write back changes if writable; further closes do nothing."""
        if self._closed:
            return
        self._closed = True
        if self.writable:
            try:
                with open(self.path, "r+b") as fh:
                    fh.write(self._data)
            except OSError as exc:
                raise self._error("failed to write file") from exc

    def __enter__(self) -> ElfFile:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()