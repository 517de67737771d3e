import struct

import pytest

from kmodadapt.errorlog import ErrorLog
from kmodadapt.existing import ExistingModInfo, parse_modules_dep


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


def make_module(path, vermagic, symbols):
    path.parent.mkdir(parents=True, exist_ok=True)
    modinfo = b"license=GPL\0" + f"vermagic={vermagic}".encode() + b"\0"
    versions = b"".join(struct.pack("<Q56s", crc, n.encode()) for n, crc in symbols)
    path.write_bytes(build_elf([(".modinfo", modinfo), ("__versions", versions)]))


@pytest.fixture
def log(tmp_path):
    with ErrorLog(tmp_path / "err.txt") as error_log:
        yield error_log


def test_parse_modules_dep():
    lines = [
        "kernel/a.ko:\n",
        "kernel/b.ko: kernel/a.ko kernel/c.ko\n",
        "kernel/c.ko:\n",
        "\n",
    ]
    assert parse_modules_dep(lines) == ["kernel/a.ko", "kernel/b.ko", "kernel/c.ko"]


def test_parse_modules_dep_empty():
    assert parse_modules_dep([]) == []


def test_collects_symbols_and_vermagic(tmp_path, log):
    release_dir = tmp_path / "6.1.0"
    make_module(release_dir / "kernel/a.ko", "6.1.0 SMP", [("printk", 10), ("kmalloc", 20)])
    make_module(release_dir / "kernel/b.ko", "6.1.0 SMP", [("kfree", 30)])
    (release_dir / "modules.dep").write_text(
        "kernel/a.ko:\nkernel/b.ko: kernel/a.ko kernel/missing.ko\n"
    )
    info = ExistingModInfo(release="6.1.0", modules_root=tmp_path, log=log)
    assert info.vermagic() == "6.1.0 SMP"
    assert info.find_sym("printk") == 10
    assert info.find_sym("kfree") == 30
    assert info.find_sym("unknown") is None
    assert [name for name, _ in info.kmods] == ["a.ko", "b.ko"]


def test_conflicting_crc_keeps_first(tmp_path, log, capsys):
    release_dir = tmp_path / "r"
    make_module(release_dir / "x/a.ko", "r", [("foo", 1)])
    make_module(release_dir / "x/b.ko", "r", [("foo", 2)])
    (release_dir / "modules.dep").write_text("x/b.ko:\nx/a.ko:\n")
    info = ExistingModInfo(release="r", modules_root=tmp_path, log=log)
    assert info.find_sym("foo") == 1
    assert "Has repetitive crc name is foo" in capsys.readouterr().out


def test_vermagic_mismatch_warns(tmp_path, log, capsys):
    release_dir = tmp_path / "r"
    make_module(release_dir / "a.ko", "first", [])
    make_module(release_dir / "b.ko", "second", [])
    (release_dir / "modules.dep").write_text("a.ko:\nb.ko:\n")
    info = ExistingModInfo(release="r", modules_root=tmp_path, log=log)
    assert info.vermagic() == "first"
    out = capsys.readouterr().out
    assert "Warning : old magic = first new magic = second" in out
    assert "init fail symbol size = 0" in out


def test_missing_modules_dep(tmp_path, log, capsys):
    info = ExistingModInfo(release="none", modules_root=tmp_path, log=log)
    assert info.kmods == []
    assert info.vermagic() == ""
    assert info.find_sym("printk") is None
    assert "Unable to open file." in capsys.readouterr().err


def test_print_kmods(tmp_path, log, capsys):
    release_dir = tmp_path / "r"
    make_module(release_dir / "k/a.ko", "r", [("foo", 1)])
    (release_dir / "modules.dep").write_text("k/a.ko:\n")
    info = ExistingModInfo(release="r", modules_root=tmp_path, log=log)
    capsys.readouterr()
    info.print_kmods()
    out = capsys.readouterr().out.strip()
    assert out.startswith("a.ko")
    assert out.endswith("r/k/a.ko")