"""Command line entry point."""

from __future__ import annotations

import sys
from collections.abc import Sequence

from kmodadapt.elfmodify import ElfModify
from kmodadapt.elfptrs import ElfError


def main(argv: Sequence[str] | None = None) -> int:
    """Run ``kmodadapt SYMVERS MODULE [VERMAGIC]``."""
    args = list(sys.argv[1:] if argv is None else argv)
    if len(args) < 2:
        print("usage: kmodadapt SYMVERS MODULE [VERMAGIC]", file=sys.stderr)
        return -1
    vermagic = args[2] if len(args) == 3 else None
    try:
        with ElfModify(args[0], args[1]) as modifier:
            modifier.modify(vermagic)
    except (ElfError, OSError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())