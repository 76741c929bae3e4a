"""
Diffs — parse binary-diff reports into offset-correlation lists.

A report file is named ``<maj>.<min>.<patch>_<maj>.<min>.<patch>.txt``
(left version, right version) and looks like::

    <free-text summary ...>
    Overall success: 18.454%
    <blank line>
    0x1436C69FE<TAB>0x142C6201E
    ...

The body ends at end of file or the first blank line.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, List, Optional, TextIO, Tuple

from addrlib_gen.core.errors import ParseError, Phase, error_context
from addrlib_gen.core.version import Offset, Version, to_offset
from addrlib_gen.io.discovery import iter_tree
from addrlib_gen.policy.profile import GenProfile

logger = logging.getLogger(__name__)


@dataclass
class DiffList:
    """Correlated (left offset, right offset) pairs between two versions."""

    left: Version
    right: Version
    diffs: List[Tuple[Offset, Offset]] = field(default_factory=list)
    source: Optional[Path] = None

    def pairs(self) -> Iterator[Tuple[Offset, Offset]]:
        return iter(self.diffs)

    def __len__(self) -> int:
        return len(self.diffs)


def parse_diffs(stream: TextIO, profile: Optional[GenProfile] = None) -> List[Tuple[Offset, Offset]]:
    """Parse one diff report (header + body) from *stream*."""
    if profile is None:
        profile = GenProfile.v0()

    # ── Header ───────────────────────────────────────────────────────
    while True:
        line = stream.readline()
        if not line:
            raise ParseError("reached end of file before finding end of diff report")
        if line.startswith(profile.diff_header_terminator):
            following = stream.readline()
            if following.strip():
                raise ParseError(
                    f"expected empty line to follow diff report: {following.rstrip()!r}"
                )
            break

    # ── Body ─────────────────────────────────────────────────────────
    diff_re = re.compile(profile.diff_line_pattern)
    diffs: List[Tuple[Offset, Offset]] = []
    for line in stream:
        if not line.strip():
            break
        match = diff_re.search(line)
        if match is None:
            raise ParseError(f"failed to match diff pattern: {line.rstrip()!r}")
        with error_context(f"failed to construct diff from line: {line.rstrip()!r}"):
            left = to_offset(int(match.group(1), 16))
            right = to_offset(int(match.group(2), 16))
        diffs.append((left, right))
    return diffs


def parse_all_diffs(root_dir: Path, profile: Optional[GenProfile] = None) -> List[DiffList]:
    """
    Find and parse every diff report under *root_dir*.

    Returns lists ordered by (left version, right version, path).
    """
    if profile is None:
        profile = GenProfile.v0()
    logger.info("parsing diffs...")

    name_re = re.compile(profile.diff_file_pattern)
    lists: List[DiffList] = []
    with error_context(
        f"error while locating diff files in directory: {root_dir}",
        phase=Phase.PARSE_DIFFS,
    ):
        for path in iter_tree(root_dir):
            if not path.is_file():
                continue
            match = name_re.search(path.name)
            if match is None:
                continue
            groups = match.groups()
            with error_context(f"failed to parse version from file name: {path}"):
                left = Version.parse(groups[:3])
                right = Version.parse(groups[3:])
            if left == right:
                raise ParseError(
                    f"found a diff file that maps from one version to itself: {path}"
                )
            with error_context(f"error while parsing file: {path}"):
                with open(path, encoding="utf-8") as f:
                    diffs = parse_diffs(f, profile)
            lists.append(DiffList(left=left, right=right, diffs=diffs, source=path))
            logger.debug("%s -> %s: %d diffs from %s", left, right, len(diffs), path)

    lists.sort(key=lambda d: (d.left, d.right, str(d.source)))
    logger.info("parsed %d diff reports", len(lists))
    return lists
