"""
Profile — frozen configuration for addrlib_gen.

Every file-name convention and record pattern the collaborators rely on is
captured here, so the parsers contain no hard-coded layout knowledge.  The
``v0()`` classmethod returns the default profile matching the disassembler
export scripts and the binary-diff tool in use.

Contract: the profile_id identifies the configuration.  Changing any
pattern or file name means a new profile_id.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class GenProfile:
    """Immutable generator configuration."""

    # ── Disassembler exports ─────────────────────────────────────────
    export_format_version: str = "1"
    base_file: str = "idaexport_base.txt"
    # (file name, record pattern); group 1 is the hex address.
    record_files: Tuple[Tuple[str, str], ...] = (
        ("idaexport_func.txt", r"func\t([0-9A-Fa-f]+)\t[0-9A-Fa-f]+"),
        ("idaexport_global.txt", r"global\t([0-9A-Fa-f]+)"),
        ("idaexport_name.txt", r"name\t([0-9A-Fa-f]+)"),
    )
    export_version_pattern: str = r"version\t([0-9]+)"
    base_address_pattern: str = r"baseaddress\t([0-9A-Fa-f]+)"
    version_dir_pattern: str = r"([0-9]+)\.([0-9]+)\.([0-9]+)"

    # ── Diff reports ─────────────────────────────────────────────────
    diff_file_pattern: str = (
        r"([0-9]+)\.([0-9]+)\.([0-9]+)_"
        r"([0-9]+)\.([0-9]+)\.([0-9]+)\.txt"
    )
    diff_header_terminator: str = "Overall success:"
    # Addresses are printed with the image base prefix 0x14; the remaining
    # hex digits are the offset.
    diff_line_pattern: str = r"0x14([0-9A-Fa-f]+)\t0x14([0-9A-Fa-f]+)"

    # ── Address bins ─────────────────────────────────────────────────
    bin_file_pattern: str = r"version-([0-9]+)-([0-9]+)-([0-9]+)-([0-9]+)\.bin"
    bin_file_template: str = "version-{major}-{minor}-{patch}-{build}.bin"

    # ── Identity ─────────────────────────────────────────────────────
    profile_id: str = "addrlib-gen-v0"

    @classmethod
    def v0(cls) -> GenProfile:
        """Return the canonical v0 profile (all defaults)."""
        return cls()
