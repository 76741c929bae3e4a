"""
Contracts — the data shapes the graph engine consumes.

The engine never touches files.  It works against these protocols, which
the providers in ``addrlib_gen.io`` implement and tests can fake with
plain objects.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, Optional, Protocol, Tuple

from addrlib_gen.core.version import Offset, Version

if TYPE_CHECKING:
    from addrlib_gen.core.identifier import Identifier

NodeHandle = int


class OffsetProvider(Protocol):
    """One version's location set: offset → node handle."""

    version: Version

    def get(self, offset: Offset) -> Optional[NodeHandle]: ...

    def items(self) -> Iterable[Tuple[Offset, NodeHandle]]: ...

    def __len__(self) -> int: ...


class DiffProvider(Protocol):
    """Correlated offset pairs between two versions."""

    left: Version
    right: Version

    def pairs(self) -> Iterable[Tuple[Offset, Offset]]: ...


class AddressBinProvider(Protocol):
    """Previously published (identifier, offset) pairs for one version."""

    version: Version

    def mappings(self) -> Iterable[Tuple["Identifier", Offset]]: ...
