"""
Location graph — correlation graph over (version, offset) locations.

Nodes live in an arena addressed by dense integer handles; edges are
adjacency lists keyed by handle.  Each connected component stands for one
logical location across versions and ends up carrying exactly one
identifier.

Phases, in order:
  1. ``add_node``                      — one node per discovered location.
  2. ``add_edges``                     — correlation edges from diff lists.
  3. ``seed_identifiers``              — propagate published identifiers.
  4. ``assign_remaining_identifiers``  — mint identifiers for the rest.
  5. ``resolve``                       — read back the final labels.
"""
from __future__ import annotations

import logging
from collections import deque
from typing import Iterable, List, Mapping, Optional

from addrlib_gen.core.contracts import (
    AddressBinProvider,
    DiffProvider,
    NodeHandle,
    OffsetProvider,
)
from addrlib_gen.core.errors import (
    IdentifierConflictError,
    InconsistentInputError,
    InternalConsistencyError,
    UnresolvedNodeError,
)
from addrlib_gen.core.identifier import Identifier
from addrlib_gen.core.version import Version, format_offset

logger = logging.getLogger(__name__)


class LocationGraph:
    """Undirected correlation graph that owns identifier assignment state."""

    def __init__(self) -> None:
        self._labels: List[Optional[Identifier]] = []
        self._adjacency: List[List[NodeHandle]] = []
        self._edge_count = 0

    # ── Structure ────────────────────────────────────────────────────────

    @property
    def node_count(self) -> int:
        return len(self._labels)

    @property
    def edge_count(self) -> int:
        return self._edge_count

    def add_node(self) -> NodeHandle:
        """Allocate a new unlabeled node and return its handle."""
        self._labels.append(None)
        self._adjacency.append([])
        return len(self._labels) - 1

    def add_edge(self, a: NodeHandle, b: NodeHandle) -> None:
        """Tie two existing nodes together."""
        self._check_handle(a)
        self._check_handle(b)
        self._adjacency[a].append(b)
        if a != b:
            self._adjacency[b].append(a)
        self._edge_count += 1

    def add_edges(
        self,
        offsets_by_version: Mapping[Version, OffsetProvider],
        diff_lists: Iterable[DiffProvider],
    ) -> int:
        """
        Add one edge per diff entry whose offsets both resolve to nodes.

        Entries referencing offsets absent from their version's location set
        are skipped.  A diff list for a version with no location set at all
        raises ``InconsistentInputError``.  Returns the number of edges added.
        """
        logger.info("adding graph edges...")
        added = 0
        skipped = 0
        for diff_list in diff_lists:
            left_offsets = _offsets_for(offsets_by_version, diff_list.left, "diff")
            right_offsets = _offsets_for(offsets_by_version, diff_list.right, "diff")
            for left, right in diff_list.pairs():
                left_node = left_offsets.get(left)
                right_node = right_offsets.get(right)
                if left_node is None or right_node is None:
                    skipped += 1
                    continue
                self.add_edge(left_node, right_node)
                added += 1
        logger.debug("added %d edges, skipped %d unresolved diff entries", added, skipped)
        return added

    def component(self, root: NodeHandle) -> List[NodeHandle]:
        """Handles of every node connected to *root*, in breadth-first order."""
        self._check_handle(root)
        seen = {root}
        order = [root]
        queue = deque([root])
        while queue:
            node = queue.popleft()
            for neighbour in self._adjacency[node]:
                if neighbour not in seen:
                    seen.add(neighbour)
                    order.append(neighbour)
                    queue.append(neighbour)
        return order

    # ── Identifier assignment ────────────────────────────────────────────

    def is_labeled(self, node: NodeHandle) -> bool:
        self._check_handle(node)
        return self._labels[node] is not None

    def seed_identifiers(
        self,
        offsets_by_version: Mapping[Version, OffsetProvider],
        address_bins: Iterable[AddressBinProvider],
    ) -> int:
        """
        Propagate published identifiers over their whole components.

        For every (identifier, offset) in every bin, the component containing
        that offset is checked first: a node already labeled with a different
        identifier raises ``IdentifierConflictError`` and leaves the component
        untouched.  Otherwise unlabeled members take the seed identifier.
        Offsets missing from the location set are skipped.

        Returns the number of nodes newly labeled.
        """
        logger.info("seeding ids...")
        labeled = 0
        skipped = 0
        for address_bin in address_bins:
            version = address_bin.version
            offsets = _offsets_for(offsets_by_version, version, "address bin")
            for seed, offset in address_bin.mappings():
                root = offsets.get(offset)
                if root is None:
                    skipped += 1
                    continue
                members = self.component(root)
                for node in members:
                    existing = self._labels[node]
                    if existing is not None and existing != seed:
                        raise IdentifierConflictError(
                            f"attempted to assign id '{seed}' from bin '{version}' "
                            f"to offset '{format_offset(offset)}', but an id is "
                            f"already assigned ({existing})",
                            version=version,
                            offset=offset,
                            seed=seed,
                            existing=existing,
                        )
                for node in members:
                    if self._labels[node] is None:
                        self._labels[node] = seed
                        labeled += 1
        logger.debug("seeded %d nodes, skipped %d bin entries", labeled, skipped)
        return labeled

    def assign_remaining_identifiers(self, starting_identifier: Identifier) -> int:
        """
        Mint identifiers for every component that is still unlabeled.

        Nodes are visited in creation order, so minted identifiers increase
        with the creation order of each component's first node, starting at
        *starting_identifier*.  Returns the number of identifiers minted.
        """
        logger.info("assigning ids to all offsets...")
        identifier = starting_identifier
        minted = 0
        for node in range(len(self._labels)):
            if self._labels[node] is not None:
                continue
            if minted:
                identifier = identifier.next()
            for member in self.component(node):
                if self._labels[member] is not None:
                    raise InternalConsistencyError(
                        "attempted to assign an id to an offset, but an id is "
                        f"already assigned ({self._labels[member]})"
                    )
                self._labels[member] = identifier
            minted += 1
        logger.info("minted %d new ids", minted)
        return minted

    def resolve(self, node: NodeHandle) -> Identifier:
        """Identifier of *node*; only valid once assignment has completed."""
        self._check_handle(node)
        identifier = self._labels[node]
        if identifier is None:
            raise UnresolvedNodeError(
                f"expected id to already be initialized upon access (node {node})"
            )
        return identifier

    # ── Helpers ──────────────────────────────────────────────────────────

    def _check_handle(self, node: NodeHandle) -> None:
        if not 0 <= node < len(self._labels):
            raise IndexError(f"unknown node handle: {node}")


def _offsets_for(
    offsets_by_version: Mapping[Version, OffsetProvider],
    version: Version,
    source: str,
) -> OffsetProvider:
    offsets = offsets_by_version.get(version)
    if offsets is None:
        raise InconsistentInputError(
            f"found {source} for version '{version}', but no corresponding offset info"
        )
    return offsets
