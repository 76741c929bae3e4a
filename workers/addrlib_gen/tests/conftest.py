"""
Shared pytest fixtures for addrlib_gen tests.

All fixtures are pure-Python — no disassembler, no diff tool.  Input trees
are written into ``tmp_path`` with the same layout the real tools produce.
"""
from pathlib import Path
from typing import Iterable, Sequence, Tuple

import pytest

from addrlib_gen.core.identifier import Identifier
from addrlib_gen.io.address_bin import encode_address_bin

BASE_ADDRESS = 0x140000000


# ── Input-tree builders ──────────────────────────────────────────────────────

def _records(kind: str, offsets: Iterable[int], suffix: str = "") -> str:
    lines = ["version\t1"]
    for offset in offsets:
        lines.append(f"{kind}\t{BASE_ADDRESS + offset:X}{suffix}")
    return "\n".join(lines) + "\n"


def write_export_dir(
    root: Path,
    name: str,
    funcs: Sequence[int] = (),
    globals_: Sequence[int] = (),
    names: Sequence[int] = (),
) -> Path:
    """Write an idaexport directory whose records sit at the given offsets."""
    d = root / name
    d.mkdir(parents=True)
    (d / "idaexport_base.txt").write_text(
        f"version\t1\nbaseaddress\t{BASE_ADDRESS:X}\n", encoding="utf-8"
    )
    (d / "idaexport_func.txt").write_text(
        "version\t1\n" + "".join(
            f"func\t{BASE_ADDRESS + o:X}\t{BASE_ADDRESS + o + 8:X}\n" for o in funcs
        ),
        encoding="utf-8",
    )
    (d / "idaexport_global.txt").write_text(_records("global", globals_), encoding="utf-8")
    (d / "idaexport_name.txt").write_text(_records("name", names, "\tsym"), encoding="utf-8")
    return d


def write_diff_report(
    root: Path,
    left: str,
    right: str,
    pairs: Sequence[Tuple[int, int]],
) -> Path:
    """Write ``<left>_<right>.txt`` correlating the given offsets."""
    body = "".join(f"0x14{l:07X}\t0x14{r:07X}\n" for l, r in pairs)
    path = root / f"{left}_{right}.txt"
    path.write_text(
        "Matched offsets.\nOverall success: 100%\n\n" + body, encoding="utf-8"
    )
    return path


def write_bin(root: Path, version: str, entries: Sequence[Tuple[int, int]]) -> Path:
    """Write ``version-<a>-<b>-<c>-<d>.bin`` holding (identifier, offset) pairs."""
    path = root / f"version-{version.replace('.', '-')}.bin"
    path.write_bytes(encode_address_bin((Identifier(i), o) for i, o in entries))
    return path


@pytest.fixture
def input_tree(tmp_path):
    """
    Two versions linked by one diff, no bins yet.

    1.0.0: 0x1000 (func), 0x2000 (global)
    1.1.0: 0x1004 (func), 0x3000 (name)
    diff : 0x1000 ↔ 0x1004
    """
    write_export_dir(tmp_path, "1.0.0", funcs=[0x1000], globals_=[0x2000])
    write_export_dir(tmp_path, "1.1.0", funcs=[0x1004], names=[0x3000])
    write_diff_report(tmp_path, "1.0.0", "1.1.0", [(0x1000, 0x1004)])
    return tmp_path


@pytest.fixture
def make_export_dir():
    return write_export_dir


@pytest.fixture
def make_diff_report():
    return write_diff_report


@pytest.fixture
def make_bin():
    return write_bin
