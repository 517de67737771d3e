import struct
import sys

import pytest

from kmodadapt.cli import main
from kmodadapt.elfsyminfos import ElfSymInfos
from kmodadapt.errorlog import ErrorLog


def build_elf(sections):
    names = b"\0"
    name_offsets = []
    for name, _ in list(sections) + [(".shstrtab", b"")]:
        name_offsets.append(len(names))
        names += name.encode() + b"\0"
    body = b""
    offsets = []
    for _, payload in sections:
        offsets.append(64 + len(body))
        body += payload
    shstr_off = 64 + len(body)
    body += names
    while (64 + len(body)) % 8:
        body += b"\0"
    shoff = 64 + len(body)
    shnum = len(sections) + 2
    ident = b"\x7fELF" + bytes([2, 1, 1]) + bytes(9)
    header = ident + struct.pack(
        "<HHIQQQIHHHHHH", 1, 62, 1, 0, 0, shoff, 0, 64, 0, 0, 64, shnum, shnum - 1
    )
    shdrs = bytes(64)
    for (_, payload), name_off, off in zip(sections, name_offsets, offsets):
        shdrs += struct.pack("<IIQQQQIIQQ", name_off, 1, 0, 0, off, len(payload), 0, 0, 1, 0)
    shdrs += struct.pack("<IIQQQQIIQQ", name_offsets[-1], 3, 0, 0, shstr_off, len(names), 0, 0, 1, 0)
    return header + body + shdrs


@pytest.fixture
def files(tmp_path):
    module = tmp_path / "m.ko"
    modinfo = b"license=GPL\0vermagic=5.10.0 SMP mod_unload \0"
    versions = struct.pack("<Q56s", 1, b"printk")
    module.write_bytes(build_elf([(".modinfo", modinfo), ("__versions", versions)]))
    symvers = tmp_path / "Module.symvers"
    symvers.write_text("0x0000abcd\tprintk\tvmlinux\tEXPORT_SYMBOL\n")
    return symvers, module


@pytest.mark.parametrize("argv", [[], ["only-one"]])
def test_too_few_arguments(argv, capsys):
    assert main(argv) == -1
    assert "usage" in capsys.readouterr().err


def test_modifies_module(files, tmp_path):
    symvers, module = files
    assert main([str(symvers), str(module), "5.15.0"]) == 0
    with ErrorLog(tmp_path / "err.txt") as log:
        with ElfSymInfos(module, show=False, log=log) as infos:
            assert infos.sym_ver_info() == {"printk": 0xABCD}
            assert infos.vermagic() == "5.15.0"


def test_failed_modify_still_exits_zero(files, tmp_path):
    symvers, module = files
    assert main([str(symvers), str(module), "x" * 80]) == 0
    with ErrorLog(tmp_path / "err.txt") as log:
        with ElfSymInfos(module, show=False, log=log) as infos:
            assert infos.vermagic() == "5.10.0 SMP mod_unload "


def test_missing_module(files, tmp_path, monkeypatch, capsys):
    monkeypatch.setattr(sys, "argv", [str(tmp_path / "prog")])
    symvers, _ = files
    assert main([str(symvers), str(tmp_path / "absent.ko"), "5.15.0"]) == 1
    assert "error:" in capsys.readouterr().err