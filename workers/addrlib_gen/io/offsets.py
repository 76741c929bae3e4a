"""
Offsets — parse disassembler export directories into per-version location sets.

Each version directory (named ``<major>.<minor>.<patch>``) holds:
  - idaexport_base.txt    — format version + image base address
  - idaexport_func.txt    — ``func`` records
  - idaexport_global.txt  — ``global`` records
  - idaexport_name.txt    — ``name`` records

Every record contributes one offset (address − base).  The union of the
three record files is the version's location set; each distinct offset
gets exactly one graph node.
"""
from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Dict, Iterator, List, Optional, TextIO, Tuple

from addrlib_gen.core.contracts import NodeHandle
from addrlib_gen.core.errors import ParseError, Phase, error_context
from addrlib_gen.core.graph import LocationGraph
from addrlib_gen.core.version import Offset, Version, to_offset
from addrlib_gen.io.discovery import iter_tree
from addrlib_gen.policy.profile import GenProfile

logger = logging.getLogger(__name__)


class OffsetList:
    """One version's location set, offset → node handle."""

    def __init__(self, version: Version, offsets: Dict[Offset, NodeHandle]):
        self.version = version
        self._offsets = offsets

    def get(self, offset: Offset) -> Optional[NodeHandle]:
        return self._offsets.get(offset)

    def items(self) -> Iterator[Tuple[Offset, NodeHandle]]:
        return iter(self._offsets.items())

    def __len__(self) -> int:
        return len(self._offsets)

    def __contains__(self, offset: object) -> bool:
        return offset in self._offsets

    @classmethod
    def build(
        cls,
        version: Version,
        offsets: List[Offset],
        graph: LocationGraph,
    ) -> OffsetList:
        """Create one node per distinct offset, in ascending offset order."""
        return cls(version, {offset: graph.add_node() for offset in sorted(set(offsets))})


class OffsetLists(Mapping):
    """All location sets, keyed and iterated by ascending version."""

    def __init__(self, lists: Dict[Version, OffsetList]):
        self._lists = dict(sorted(lists.items()))

    def __getitem__(self, version: Version) -> OffsetList:
        return self._lists[version]

    def __iter__(self) -> Iterator[Version]:
        return iter(self._lists)

    def __len__(self) -> int:
        return len(self._lists)

    @classmethod
    def parse_all(
        cls,
        root_dir: Path,
        profile: Optional[GenProfile] = None,
        graph: Optional[LocationGraph] = None,
    ) -> Tuple[OffsetLists, LocationGraph]:
        """
        Discover every version directory under *root_dir* and parse it.

        Directories are parsed in ascending version order so node handles,
        and therefore freshly minted identifiers, do not depend on
        filesystem listing order.
        """
        if profile is None:
            profile = GenProfile.v0()
        if graph is None:
            graph = LocationGraph()
        logger.info("parsing offsets...")

        dir_pattern = re.compile(profile.version_dir_pattern)
        found: Dict[Version, Path] = {}
        with error_context(
            f"error while locating idaexport directories in directory: {root_dir}",
            phase=Phase.DISCOVER_OFFSETS,
        ):
            for path in iter_tree(root_dir):
                if not path.is_dir():
                    continue
                match = dir_pattern.search(path.name)
                if match is None:
                    continue
                with error_context(
                    f"failed to construct version from directory name: {path}"
                ):
                    version = Version.parse(match.groups())
                if version in found:
                    raise ParseError(
                        f"directories {found[version]} and {path} both "
                        f"describe version '{version}'"
                    )
                found[version] = path

        lists: Dict[Version, OffsetList] = {}
        for version, path in sorted(found.items()):
            with error_context(
                f"failed to parse offset list from directory: {path}",
                phase=Phase.DISCOVER_OFFSETS,
            ):
                offsets = parse_export_dir(path, profile)
            lists[version] = OffsetList.build(version, offsets, graph)
            logger.debug("%s: %d offsets from %s", version, len(lists[version]), path)

        logger.info(
            "parsed %d versions, %d locations", len(lists), graph.node_count
        )
        return cls(lists), graph


# ── Export directory parsing ─────────────────────────────────────────────────

def parse_export_dir(export_dir: Path, profile: GenProfile) -> List[Offset]:
    """Read the base address and every record file of one export directory."""
    base_path = export_dir / profile.base_file
    with error_context(f"failed to parse {profile.base_file}"):
        with open(base_path, encoding="utf-8") as f:
            base_address = parse_base_address(f, profile)

    offsets: List[Offset] = []
    for file_name, pattern in profile.record_files:
        with error_context(f"failed to parse {file_name}"):
            with open(export_dir / file_name, encoding="utf-8") as f:
                offsets.extend(parse_record_offsets(f, base_address, pattern, profile))
    return offsets


def _check_export_version(stream: TextIO, profile: GenProfile) -> None:
    line = stream.readline()
    match = re.search(profile.export_version_pattern, line)
    if match is None:
        raise ParseError(f"failed to match version pattern: {line.rstrip()!r}")
    if match.group(1) != profile.export_format_version:
        raise ParseError(f"unsupported version: {match.group(1)}")


def parse_base_address(stream: TextIO, profile: GenProfile) -> int:
    """Parse the ``version`` header and ``baseaddress`` line of a base file."""
    _check_export_version(stream, profile)
    line = stream.readline()
    match = re.search(profile.base_address_pattern, line)
    if match is None:
        raise ParseError(f"failed to match base address pattern: {line.rstrip()!r}")
    return int(match.group(1), 16)


def parse_record_offsets(
    stream: TextIO,
    base_address: int,
    pattern: str,
    profile: GenProfile,
) -> List[Offset]:
    """
    Parse the records of one export file into offsets.

    Records end at end of file or the first blank line.  Any other line
    that does not match *pattern* is an error.
    """
    _check_export_version(stream, profile)
    record_re = re.compile(pattern)
    offsets: List[Offset] = []
    for lineno, line in enumerate(stream, start=2):
        if not line.strip():
            break
        match = record_re.search(line)
        if match is None:
            raise ParseError(
                f"failed to match offset pattern on line {lineno}: {line.rstrip()!r}"
            )
        offsets.append(parse_offset(base_address, match.group(1)))
    return offsets


def parse_offset(base_address: int, text: str) -> Offset:
    """Convert a hex address into an offset from *base_address*."""
    address = int(text, 16)
    if address < base_address:
        raise ParseError(
            f"base address ({base_address:#x}) is larger than given address ({address:#x})"
        )
    try:
        return to_offset(address - base_address)
    except ParseError as exc:
        raise ParseError(
            f"given address ({address:#x}) is too large to convert into an offset "
            f"from the base address ({base_address:#x})"
        ) from exc
