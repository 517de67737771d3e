# kmodadapt

kmodadapt makes a loadable Linux kernel module (`.ko`) acceptable to a kernel
it was not built for. It changes the module file in place:

- It rewrites the CRC of each symbol in the module's `__versions` section. The
  new value comes from a `Module.symvers` file.
- It rewrites the value of the `vermagic=` string in the module's `.modinfo`
  section. The new value comes from the command line. Without one, it comes
  from the modules already installed for the running kernel, which are listed
  in `/usr/lib/modules/<release>/modules.dep`.

This only makes sense when the module uses no symbols that the target kernel
lacks. The tool reports each symbol it cannot find in `Module.symvers`. A CRC
of zero counts as not found.

## Installation

```
pip install .
```

## Usage

```
kmodadapt MODULE_SYMVERS MODULE_KO [VERMAGIC]
```

The same command is available as `python -m kmodadapt.cli`.

- `MODULE_SYMVERS` is the `Module.symvers` file of the target kernel. Each line
  holds four tab-separated fields: a hexadecimal CRC, the symbol name, where
  the symbol comes from, and the export type. Lines without exactly four fields
  are skipped. If the file cannot be opened, the tool prints
  `Unable to open file.` and carries on, so every symbol is then reported as
  not found.
- `MODULE_KO` is the module to change. The file is rewritten in place, so keep
  a copy.
- `VERMAGIC` is optional. It is the vermagic string to write. If it is left out
  or empty, the tool takes the version magic of the installed modules.

The tool prints each CRC it changes, each symbol it cannot find, and the
vermagic it writes. The new vermagic is written over the old value and padded
with NUL bytes. It cannot be longer than the old value; if it is, the tool
prints an error and leaves that string unchanged.

Exit status:

- `255` (from a return value of `-1`) when fewer than two arguments are given.
- `1` when the module cannot be read or written, or is not a 64-bit ELF file.
- `0` otherwise, including when symbols were missing or the vermagic did not
  fit.

ELF errors are also written to an error log, `<program>Errlog.txt`, next to
the running program. The log is created fresh each run, and the same lines
are echoed to standard output. If the log file cannot be created, these
messages are not shown at all.

## Library use

```python
from kmodadapt.elfmodify import ElfModify

with ElfModify("Module.symvers", "driver.ko") as mod:
    ok = mod.modify("6.1.0 SMP mod_unload modversions ")
```

`ElfModify.modify` returns `False` if any symbol was missing or the vermagic
did not fit. Everything else is still changed. The file is written back when
the `with` block ends, or on `close()`.

You can pass `existing=` an `ExistingModInfo` to choose where the installed
modules' vermagic comes from. Pass `show=False` to stop the module's sections
from being printed when it is opened.

The other modules can be used on their own:

- `kmodadapt.ksyminfos.KSymInfos` reads `Module.symvers` files.
  - `load(path)` adds a file. The first entry for a symbol is kept.
  - `find_sym(name)` returns a CRC or `None`.
  - `print_infos()` lists the symbols.
- `kmodadapt.elfsyminfos.ElfSymInfos` opens a module and holds its
  `.modinfo` strings (`mod_info`) and `__versions` entries (`versions`).
  - `vermagic()` and `sym_ver_info()` read values.
  - When the module is opened writable, `set_crc()` and `write_modinfo()`
    change them.
  - `parse_modinfo(data)` splits raw `.modinfo` contents into its strings.
- `kmodadapt.existing.ExistingModInfo(release=None, modules_root="/usr/lib/modules")`
  reads `modules.dep` for a kernel release, then collects the installed
  modules' vermagic (`vermagic()`) and symbol CRCs (`find_sym()`).
  - When modules disagree, it prints a warning and keeps the first value it
    saw.
  - `parse_modules_dep(lines)` returns the distinct module paths named in
    `modules.dep` lines.
- `kmodadapt.elfptrs.ElfFile` loads a 64-bit ELF file and indexes its sections
  by name (`table()`, `section_bytes()`). It raises `ElfError` when the file
  cannot be read or parsed.
- `kmodadapt.errorlog.get_error_log()` returns the shared `ErrorLog`.
- `kmodadapt.common.split_string(text, delimiter)` splits text and drops
  empty fields.

## Limitations

- Only 64-bit ELF files are handled. 32-bit modules are rejected.
- Compressed modules (such as `.ko.xz` or `.ko.zst`) are not decompressed.
  Installed modules that cannot be parsed are skipped when the installed
  version magic and CRCs are gathered.
- Module signatures are left as they are.