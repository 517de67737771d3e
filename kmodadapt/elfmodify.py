"""Adapt a kernel module's symbol CRCs and version magic to a target kernel."""

from __future__ import annotations

import sys
from os import PathLike

from kmodadapt.elfsyminfos import ElfSymInfos
from kmodadapt.errorlog import ErrorLog
from kmodadapt.existing import ExistingModInfo
from kmodadapt.ksyminfos import KSymInfos

_VERMAGIC_KEY = "vermagic="


class ElfModify:
    """Rewrites a module in place using CRCs from a Module.symvers file.

    When no version magic is given to :meth:`modify`, it is taken from the
    modules installed on the running system.
    """

    def __init__(
        self,
        symvers: str | PathLike[str] | None,
        module: str | PathLike[str],
        existing: ExistingModInfo | None = None,
        show: bool = True,
        log: ErrorLog | None = None,
    ) -> None:
        self.ksyms = KSymInfos()
        if symvers is not None:
            try:
                self.ksyms.load(symvers)
            except OSError:
                print("Unable to open file.", file=sys.stderr)
        self._log = log
        self._existing = existing
        self.module = ElfSymInfos(module, writable=True, show=show, log=log)

    @property
    def existing(self) -> ExistingModInfo:
        """Information about the installed modules, gathered on first use."""
        if self._existing is None:
            self._existing = ExistingModInfo(log=self._log)
        return self._existing

    def modify(self, vermagic: str | None = None) -> bool:
        """Update the module's CRCs and version magic.

        Returns False if a symbol has no known CRC or the new version magic
        does not fit; everything that can be changed is still changed.
        """
        ok = True
        for name in sorted(self.module.versions):
            current = self.module.versions[name].crc
            crc = self.ksyms.find_sym(name)
            if not crc:
                print(f"Symbol: {name:<32} is not found")
                ok = False
            elif crc != current:
                print(f"modify symbol {name:<32} crc {current} to {crc}")
                self.module.set_crc(name, crc)

        for entry in self.module.mod_info:
            index = entry.text.find(_VERMAGIC_KEY)
            if index < 0:
                continue
            start = index + len(_VERMAGIC_KEY)
            old_value = entry.text[start:]
            new_value = vermagic if vermagic else self.existing.vermagic()
            if len(old_value.encode("utf-8")) >= len(new_value.encode("utf-8")):
                self.module.write_modinfo(entry, entry.text[:start] + new_value)
                print(f"modify ver str magic to {new_value}")
            else:
                print(
                    f"Error: vIndex = {old_value} curSysVer = {new_value}, "
                    "len(vIndex) < len(curSysVer)!"
                )
                ok = False
            break
        return ok

    def close(self) -> None:
        """Write the module back to disk."""
        self.module.close()

    def __enter__(self) -> ElfModify:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()