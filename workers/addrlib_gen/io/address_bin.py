"""
Address bins — read and write the per-version identifier → offset files.

Binary layout (little-endian)::

    u64 count
    count × { u64 identifier, u64 offset }

File name: ``version-<major>-<minor>-<patch>-<build>.bin``.

Published bins are an immutable historical record: input bins only seed
the graph, and output bins are created exclusively, never overwritten.
"""
from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO, Dict, Iterable, Iterator, List, Optional, Tuple

from construct import Int64ul, PrefixedArray, Struct
from construct.core import ConstructError

from addrlib_gen.core.errors import (
    BinFormatError,
    IdentifierRangeError,
    OutputExistsError,
    ParseError,
    Phase,
    error_context,
)
from addrlib_gen.core.graph import LocationGraph
from addrlib_gen.core.identifier import Identifier
from addrlib_gen.core.version import MAX_OFFSET, Offset, Version
from addrlib_gen.io.discovery import iter_tree
from addrlib_gen.io.offsets import OffsetLists
from addrlib_gen.policy.profile import GenProfile

logger = logging.getLogger(__name__)

ADDRESS_BIN = PrefixedArray(
    Int64ul,
    Struct(
        "identifier" / Int64ul,
        "offset" / Int64ul,
    ),
)


@dataclass
class AddressBin:
    """Previously published (identifier, offset) pairs for one version."""

    version: Version
    entries: List[Tuple[Identifier, Offset]] = field(default_factory=list)
    source: Optional[Path] = None

    def mappings(self) -> Iterator[Tuple[Identifier, Offset]]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)


# ── Codec ────────────────────────────────────────────────────────────────────

def read_address_bin(stream: BinaryIO) -> List[Tuple[Identifier, Offset]]:
    """Decode one address bin from *stream*."""
    try:
        records = ADDRESS_BIN.parse_stream(stream)
    except ConstructError as exc:
        raise BinFormatError(f"error while reading address bin: {exc}") from exc

    entries: List[Tuple[Identifier, Offset]] = []
    for index, record in enumerate(records):
        try:
            identifier = Identifier(record.identifier)
        except IdentifierRangeError as exc:
            raise BinFormatError(
                f"record {index}: read an id with an invalid representation"
            ) from exc
        if record.offset > MAX_OFFSET:
            raise BinFormatError(
                f"record {index}: read an offset too large to fit into a u32 "
                f"({record.offset:#x})"
            )
        entries.append((identifier, record.offset))
    return entries


def encode_address_bin(entries: Iterable[Tuple[Identifier, Offset]]) -> bytes:
    """Encode (identifier, offset) pairs in the order given."""
    return ADDRESS_BIN.build(
        [{"identifier": int(identifier), "offset": offset} for identifier, offset in entries]
    )


def bin_file_name(version: Version, profile: GenProfile) -> str:
    return profile.bin_file_template.format(**version._asdict())


# ── Discovery ────────────────────────────────────────────────────────────────

class AddressBins(Mapping):
    """All input address bins, keyed and iterated by ascending version."""

    def __init__(self, bins: Dict[Version, AddressBin]):
        self._bins = dict(sorted(bins.items()))

    def __getitem__(self, version: Version) -> AddressBin:
        return self._bins[version]

    def __iter__(self) -> Iterator[Version]:
        return iter(self._bins)

    def __len__(self) -> int:
        return len(self._bins)

    @classmethod
    def parse_all(cls, root_dir: Path, profile: Optional[GenProfile] = None) -> AddressBins:
        """Find and decode every address bin under *root_dir*."""
        if profile is None:
            profile = GenProfile.v0()
        logger.info("parsing address bins...")

        name_re = re.compile(profile.bin_file_pattern)
        bins: Dict[Version, AddressBin] = {}
        with error_context(
            f"error while locating address bins in directory: {root_dir}",
            phase=Phase.PARSE_BINS,
        ):
            for path in iter_tree(root_dir):
                if not path.is_file():
                    continue
                match = name_re.search(path.name)
                if match is None:
                    continue
                with error_context(f"failed to parse version from file name: {path}"):
                    version = Version.parse(match.groups())
                if version in bins:
                    raise ParseError(
                        f"address bins {bins[version].source} and {path} both "
                        f"describe version '{version}'"
                    )
                with error_context(f"failed to parse address bin: {path}"):
                    with open(path, "rb") as f:
                        entries = read_address_bin(f)
                bins[version] = AddressBin(version=version, entries=entries, source=path)
                logger.debug("%s: %d entries from %s", version, len(entries), path)

        logger.info("parsed %d address bins", len(bins))
        return cls(bins)


# ── Writer ───────────────────────────────────────────────────────────────────

def write_bins(
    root_dir: Path,
    graph: LocationGraph,
    offset_lists: OffsetLists,
    address_bins: Mapping,
    profile: Optional[GenProfile] = None,
) -> List[Path]:
    """
    Write a bin for every version in *offset_lists* that has none yet.

    Entries are sorted by identifier (then offset).  An existing file at the
    target path raises ``OutputExistsError``; a write that fails midway
    removes its own partial file before the error propagates.

    Returns the paths written, in version order.
    """
    if profile is None:
        profile = GenProfile.v0()
    logger.info("writing bins...")

    written: List[Path] = []
    for version, offset_list in offset_lists.items():
        if version in address_bins:
            continue
        path = root_dir / bin_file_name(version, profile)
        with error_context(
            f"failed to write address bin for version '{version}'",
            phase=Phase.WRITE_BINS,
        ):
            entries = sorted(
                (graph.resolve(node), offset) for offset, node in offset_list.items()
            )
            payload = encode_address_bin(entries)
            _write_exclusive(path, payload)
        written.append(path)
        logger.info("wrote %s (%d entries)", path, len(entries))
    return written


def _write_exclusive(path: Path, payload: bytes) -> None:
    try:
        f = open(path, "xb")
    except FileExistsError:
        raise OutputExistsError(path) from None
    try:
        with f:
            f.write(payload)
    except BaseException:
        path.unlink(missing_ok=True)
        raise
