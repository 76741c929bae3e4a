"""
Discovery — deterministic recursive listing of the input directory.
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import Iterator


def _raise(exc: OSError) -> None:
    raise exc


def iter_tree(root_dir: Path) -> Iterator[Path]:
    """
    Yield *root_dir* and every entry below it, sorted within each directory.

    Listing failures raise ``OSError`` instead of being skipped.
    """
    yield root_dir
    for dirpath, dirnames, filenames in os.walk(root_dir, onerror=_raise):
        dirnames.sort()
        base = Path(dirpath)
        for name in sorted(dirnames + filenames):
            yield base / name
