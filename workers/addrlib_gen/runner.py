"""
Runner — top-level orchestration: input directory → new address bins.

Phases run strictly in order and the first failure aborts the run:

  1. discover locations   (export directories → graph nodes)
  2. parse diffs          (diff reports → correlation pairs)
  3. add edges
  4. parse address bins   (previously published identifiers)
  5. seed identifiers
  6. mint identifiers for everything still unlabeled
  7. write bins for versions that have none
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from addrlib_gen.core.errors import AddrlibError, Phase, error_context, format_error_chain
from addrlib_gen.core.identifier import largest_unused_identifier
from addrlib_gen.io.address_bin import AddressBins, bin_file_name, write_bins
from addrlib_gen.io.diffs import parse_all_diffs
from addrlib_gen.io.offsets import OffsetLists
from addrlib_gen.io.schema import ResolutionReport, RunCounts, VersionSummary
from addrlib_gen.policy.profile import GenProfile

logger = logging.getLogger(__name__)


def run_addrlib_gen(
    input_dir: Path,
    profile: Optional[GenProfile] = None,
) -> ResolutionReport:
    """
    Run one resolution pass over *input_dir*.

    Parameters
    ----------
    input_dir : Path
        Directory holding version export directories, diff reports and
        previously published address bins.  New bins are written here.
    profile : GenProfile, optional
        File-layout configuration.  Defaults to GenProfile.v0().

    Returns
    -------
    ResolutionReport
    """
    if profile is None:
        profile = GenProfile.v0()

    # ── 1. Discover locations ────────────────────────────────────────
    with error_context("failed to parse all offsets", phase=Phase.DISCOVER_OFFSETS):
        offset_lists, graph = OffsetLists.parse_all(input_dir, profile)

    # ── 2–3. Correlation edges ───────────────────────────────────────
    with error_context("failed to parse all diffs", phase=Phase.PARSE_DIFFS):
        diff_lists = parse_all_diffs(input_dir, profile)
    with error_context("failed to add edges from diff lists", phase=Phase.ADD_EDGES):
        edges_added = graph.add_edges(offset_lists, diff_lists)

    # ── 4–5. Seed from published bins ────────────────────────────────
    with error_context("failed to parse all address bins", phase=Phase.PARSE_BINS):
        address_bins = AddressBins.parse_all(input_dir, profile)
    with error_context("failed to seed ids from address bins", phase=Phase.SEED):
        nodes_seeded = graph.seed_identifiers(offset_lists, address_bins.values())

    # ── 6. Mint the rest ─────────────────────────────────────────────
    with error_context("failed to assign ids to all offsets", phase=Phase.ASSIGN):
        first_new_id = largest_unused_identifier(address_bins.values())
        ids_minted = graph.assign_remaining_identifiers(first_new_id)

    # ── 7. Write outputs ─────────────────────────────────────────────
    with error_context("failed to write address bins", phase=Phase.WRITE_BINS):
        written = write_bins(input_dir, graph, offset_lists, address_bins, profile)

    written_by_name = {path.name: path for path in written}
    versions: List[VersionSummary] = []
    for version, offset_list in offset_lists.items():
        existing = address_bins.get(version)
        out_path = written_by_name.get(bin_file_name(version, profile))
        versions.append(
            VersionSummary(
                version=str(version),
                offset_count=len(offset_list),
                had_bin=existing is not None,
                bin_entries=len(existing) if existing is not None else 0,
                bin_written=str(out_path) if out_path is not None else None,
            )
        )

    report = ResolutionReport(
        profile_id=profile.profile_id,
        input_dir=str(input_dir),
        first_new_id=int(first_new_id),
        counts=RunCounts(
            nodes=graph.node_count,
            diff_reports=len(diff_lists),
            edges_added=edges_added,
            diff_entries_skipped=sum(len(d) for d in diff_lists) - edges_added,
            address_bins=len(address_bins),
            nodes_seeded=nodes_seeded,
            ids_minted=ids_minted,
        ),
        versions=versions,
        bins_written=[str(p) for p in written],
    )
    logger.info(
        "resolved %d locations: %d seeded, %d minted, %d bins written",
        report.counts.nodes,
        report.counts.nodes_seeded,
        report.counts.ids_minted,
        len(written),
    )
    return report


# ── CLI ──────────────────────────────────────────────────────────────────────

def _input_directory(value: str) -> Path:
    path = Path(value)
    if not path.exists():
        raise argparse.ArgumentTypeError("input directory does not exist")
    if not path.is_dir():
        raise argparse.ArgumentTypeError("input directory is not a directory")
    return path


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point for addrlib_gen."""
    parser = argparse.ArgumentParser(
        prog="addrlib-gen",
        description=(
            "addrlib_gen — assign stable identifiers to binary locations "
            "across versions and write address bins"
        ),
    )
    parser.add_argument(
        "input_directory",
        type=_input_directory,
        help="Directory with export directories, diff reports and address bins",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        report = run_addrlib_gen(args.input_directory)
    except AddrlibError as exc:
        logger.debug("run aborted", exc_info=True)
        print(format_error_chain(exc), file=sys.stderr)
        return 1

    counts = report.counts
    print(f"Versions: {len(report.versions)}")
    print(f"Locations: {counts.nodes} (edges={counts.edges_added})")
    print(f"Seeded: {counts.nodes_seeded} from {counts.address_bins} bins")
    print(f"Minted: {counts.ids_minted} (first new id {report.first_new_id})")
    print(f"Bins written: {len(report.bins_written)}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
