"""
Schema — Pydantic model summarising one generator run.

Runtime contract fields (present in every report):
  package_name, generator_version, profile_id, schema_version.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, Field

from addrlib_gen import GENERATOR_VERSION, PACKAGE_NAME, SCHEMA_VERSION


# ── Per-version summary ──────────────────────────────────────────────────────

class VersionSummary(BaseModel):
    """Location count and bin status for one version."""

    version: str
    offset_count: int = 0
    had_bin: bool = False
    bin_entries: int = 0
    bin_written: Optional[str] = None


# ── Totals ───────────────────────────────────────────────────────────────────

class RunCounts(BaseModel):
    nodes: int = 0
    diff_reports: int = 0
    edges_added: int = 0
    diff_entries_skipped: int = 0
    address_bins: int = 0
    nodes_seeded: int = 0
    ids_minted: int = 0


# ── Top-level report ─────────────────────────────────────────────────────────

class ResolutionReport(BaseModel):
    """Outcome of one batch resolution pass."""

    package_name: str = PACKAGE_NAME
    generator_version: str = GENERATOR_VERSION
    schema_version: str = SCHEMA_VERSION
    profile_id: str

    input_dir: str = ""
    first_new_id: int = 0

    counts: RunCounts = Field(default_factory=RunCounts)
    versions: List[VersionSummary] = Field(default_factory=list)
    bins_written: List[str] = Field(default_factory=list)

    timestamp: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
