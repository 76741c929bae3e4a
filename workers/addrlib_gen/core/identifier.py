"""
Identifier allocator — checked identifier type and fresh-id bounds.

Identifiers are 64-bit unsigned integers with the all-ones pattern reserved,
so an identifier always fits the on-disk u64 while one value stays free as
a "no value" marker.  Construction and increment are both checked; running
out of space raises instead of wrapping.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Iterable

from addrlib_gen.core.contracts import AddressBinProvider
from addrlib_gen.core.errors import IdentifierRangeError

# Reserved sentinel: never a valid identifier.
RESERVED_IDENTIFIER = 2**64 - 1


@dataclass(frozen=True, order=True)
class Identifier:
    """Stable, version-independent identifier of one logical location."""

    value: int

    MIN: ClassVar[Identifier]

    def __post_init__(self) -> None:
        if not isinstance(self.value, int) or isinstance(self.value, bool):
            raise IdentifierRangeError(f"identifier must be an int, got {self.value!r}")
        if not 0 <= self.value < RESERVED_IDENTIFIER:
            raise IdentifierRangeError(
                f"identifier {self.value} is outside the valid range "
                f"0..{RESERVED_IDENTIFIER - 1}"
            )

    def next(self) -> Identifier:
        """Return the following identifier; raises when the space is exhausted."""
        if self.value + 1 >= RESERVED_IDENTIFIER:
            raise IdentifierRangeError("id is too large to fit within range")
        return Identifier(self.value + 1)

    def __int__(self) -> int:
        return self.value

    def __str__(self) -> str:
        return str(self.value)


Identifier.MIN = Identifier(0)


def largest_unused_identifier(address_bins: Iterable[AddressBinProvider]) -> Identifier:
    """
    First identifier above everything ever published in *address_bins*.

    Returns ``Identifier.MIN`` when the bins hold no entries at all.
    """
    largest = None
    for address_bin in address_bins:
        for identifier, _offset in address_bin.mappings():
            if largest is None or identifier > largest:
                largest = identifier
    if largest is None:
        return Identifier.MIN
    return largest.next()
