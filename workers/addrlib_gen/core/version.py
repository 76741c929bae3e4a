"""
Version and offset value types.

A ``Version`` is the (major, minor, patch, build) release tuple that keys
every per-version collection.  Offsets stay plain ints; ``to_offset``
enforces the 32-bit range they are stored in.
"""
from __future__ import annotations

from typing import NamedTuple, Sequence

from addrlib_gen.core.errors import ParseError

MAX_VERSION_COMPONENT = 0xFFFF
MAX_OFFSET = 0xFFFFFFFF

Offset = int


class Version(NamedTuple):
    """Release identifier, ordered component-wise."""

    major: int
    minor: int
    patch: int
    build: int = 0

    @classmethod
    def parse(cls, parts: Sequence[str]) -> Version:
        """
        Build a version from 3 or 4 decimal strings.

        A missing build component defaults to 0.  Raises ``ParseError`` on
        non-numeric or out-of-range components.
        """
        if len(parts) not in (3, 4):
            raise ParseError(f"expected 3 or 4 version components, got {len(parts)}")
        values = []
        for part in parts:
            if not (part.isascii() and part.isdigit()):
                raise ParseError(f"invalid version component: {part!r}")
            value = int(part)
            if value > MAX_VERSION_COMPONENT:
                raise ParseError(
                    f"version component {value} exceeds {MAX_VERSION_COMPONENT}"
                )
            values.append(value)
        return cls(*values)

    def __str__(self) -> str:
        return f"v{self.major}.{self.minor}.{self.patch}.{self.build}"


def to_offset(value: int) -> Offset:
    """Check that *value* fits a 32-bit offset and return it."""
    if not 0 <= value <= MAX_OFFSET:
        raise ParseError(f"value {value:#x} does not fit into a 32-bit offset")
    return value


def format_offset(offset: Offset) -> str:
    return f"0x{offset:X}"
