#!/usr/bin/env python3
"""
Quality control filtering for DArT genotype data.

This module applies the locus filters of the analysis, in a fixed order:

Features:
    - Filter loci by repeatability (RepAvg, default: >= 0.95), skipped
      when the report has no RepAvg column
    - Filter loci by call rate (default: >= 0.80), recomputed from the calls
    - Remove monomorphic loci
    - Record locus/individual counts after every step
    - Write a plain-text QC report

Individuals are never removed by these filters.

Example:
    >>> from dartseq_popgen.preprocessing.qc_filtering import run_filter_chain
    >>> filtered, report = run_filter_chain(gd, callrate_threshold=0.9)
    >>> report.to_dataframe()
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Tuple

import numpy as np
import pandas as pd

from ..genotypes import GenotypeData
from ..utils.config import QC_DEFAULTS


logger = logging.getLogger(__name__)

REPAVG_STAGE = "RepAvg"
CALLRATE_STAGE = "CallRate"
MONOMORPHS_STAGE = "Monomorphs"


# ==============================================================================
# Filter Report
# ==============================================================================

@dataclass(frozen=True)
class FilterStage:
    """Counts recorded after one filter step."""

    name: str
    n_loci: int
    n_individuals: int
    removed: int
    threshold: Optional[float] = None
    skipped: bool = False


@dataclass
class FilterReport:
    """Append-only record of the filter steps of one run."""

    initial_loci: int
    initial_individuals: int
    stages: List[FilterStage] = field(default_factory=list)

    def add(self, stage: FilterStage) -> None:
        self.stages.append(stage)

    @property
    def final_loci(self) -> int:
        return self.stages[-1].n_loci if self.stages else self.initial_loci

    @property
    def final_individuals(self) -> int:
        return self.stages[-1].n_individuals if self.stages else self.initial_individuals

    def after(self, name: str) -> Optional[FilterStage]:
        """The recorded stage called ``name``, or None if it did not run."""
        for stage in self.stages:
            if stage.name == name:
                return stage
        return None

    def to_dataframe(self) -> pd.DataFrame:
        """
        Filtering statistics table.

        Columns: Step, N_Loci, N_Individuals. Rows: Initial, After_<stage>
        for every stage, Final.
        """
        rows = [("Initial", self.initial_loci, self.initial_individuals)]
        rows.extend(
            (f"After_{stage.name}", stage.n_loci, stage.n_individuals)
            for stage in self.stages
        )
        rows.append(("Final", self.final_loci, self.final_individuals))
        return pd.DataFrame(rows, columns=["Step", "N_Loci", "N_Individuals"])


# ==============================================================================
# Filters
# ==============================================================================

def has_repavg(gd: GenotypeData) -> bool:
    """True if the data carries a RepAvg value for at least one locus."""
    if not gd.has_metric("RepAvg"):
        return False
    repavg = gd.loc_metrics["RepAvg"]
    return repavg.empty or bool(repavg.notna().any())


def filter_repavg(
    gd: GenotypeData,
    threshold: float = QC_DEFAULTS["repavg"],
) -> Tuple[GenotypeData, int]:
    """
    Filter loci by repeatability.

    Loci whose RepAvg is below ``threshold`` (or not recorded) are removed.
    Without a RepAvg column, or when the column holds no value at all, the
    data is returned unchanged.

    Args:
        gd: Genotype data
        threshold: Minimum RepAvg

    Returns:
        Tuple of (filtered data, number of loci removed)
    """
    if not has_repavg(gd):
        logger.warning("RepAvg metric not present in locus metrics - skipping RepAvg filter")
        return gd, 0

    logger.info(f"Filtering loci with RepAvg < {threshold}...")
    repavg = gd.loc_metrics["RepAvg"].to_numpy(dtype=float)
    keep = np.nan_to_num(repavg, nan=-np.inf) >= threshold
    filtered = gd.keep_loci(keep)
    removed = gd.n_loc - filtered.n_loc
    logger.info(f"Removed {removed} loci due to low repeatability")
    return filtered, removed


def filter_callrate(
    gd: GenotypeData,
    threshold: float = QC_DEFAULTS["callrate"],
) -> Tuple[GenotypeData, int]:
    """
    Filter loci by call rate.

    The call rate is recomputed over the individuals currently present.

    Args:
        gd: Genotype data
        threshold: Minimum fraction of non-missing calls

    Returns:
        Tuple of (filtered data, number of loci removed)
    """
    logger.info(f"Filtering loci with call rate < {threshold}...")
    current = gd.refresh_metrics()
    keep = current.loc_metrics["CallRate"].to_numpy(dtype=float) >= threshold
    filtered = current.keep_loci(keep)
    removed = gd.n_loc - filtered.n_loc
    logger.info(f"Removed {removed} loci due to low call rate")
    return filtered, removed


def filter_monomorphs(gd: GenotypeData) -> Tuple[GenotypeData, int]:
    """
    Remove monomorphic loci.

    A locus is monomorphic when all of its non-missing calls are identical,
    including loci without any call.

    Returns:
        Tuple of (filtered data, number of loci removed)
    """
    logger.info("Removing monomorphic loci...")
    current = gd.refresh_metrics()
    keep = current.loc_metrics["polymorphic"].to_numpy(dtype=bool)
    filtered = current.keep_loci(keep)
    removed = gd.n_loc - filtered.n_loc
    logger.info(f"Removed {removed} monomorphic loci")
    return filtered, removed


# ==============================================================================
# Filter Chain
# ==============================================================================

def run_filter_chain(
    gd: GenotypeData,
    repavg_threshold: float = QC_DEFAULTS["repavg"],
    callrate_threshold: float = QC_DEFAULTS["callrate"],
    use_repavg: bool = True,
    use_callrate: bool = True,
    use_monomorphs: bool = True,
) -> Tuple[GenotypeData, FilterReport]:
    """
    Run the locus filters in order: RepAvg, call rate, monomorphs.

    Each enabled step adds one entry to the report. A RepAvg step without a
    RepAvg metric is recorded as skipped. An empty result is not an error.

    Args:
        gd: Genotype data after name correction
        repavg_threshold: Minimum RepAvg
        callrate_threshold: Minimum call rate
        use_repavg: Run the RepAvg filter
        use_callrate: Run the call rate filter
        use_monomorphs: Run the monomorphic locus filter

    Returns:
        Tuple of (filtered data, filter report)
    """
    report = FilterReport(initial_loci=gd.n_loc, initial_individuals=gd.n_ind)

    logger.info("=" * 60)
    logger.info("Quality filtering")
    logger.info("=" * 60)
    logger.info(f"Before filtering - Loci: {gd.n_loc} Individuals: {gd.n_ind}")

    current = gd

    if use_repavg:
        skipped = not has_repavg(current)
        current, removed = filter_repavg(current, repavg_threshold)
        report.add(FilterStage(
            REPAVG_STAGE, current.n_loc, current.n_ind, removed,
            threshold=repavg_threshold, skipped=skipped,
        ))
        logger.info(f"After RepAvg filter - Loci: {current.n_loc}")

    if use_callrate:
        current, removed = filter_callrate(current, callrate_threshold)
        report.add(FilterStage(
            CALLRATE_STAGE, current.n_loc, current.n_ind, removed,
            threshold=callrate_threshold,
        ))
        logger.info(f"After CallRate filter - Loci: {current.n_loc}")

    if use_monomorphs:
        current, removed = filter_monomorphs(current)
        report.add(FilterStage(MONOMORPHS_STAGE, current.n_loc, current.n_ind, removed))
        logger.info(f"After removing monomorphs - Loci: {current.n_loc}")

    if current.n_loc == 0:
        logger.warning("No loci left after filtering")

    return current.refresh_metrics(), report


def write_qc_report(report: FilterReport, output_path: Path) -> None:
    """
    Write QC statistics report.

    Args:
        report: Filter report of the run
        output_path: Output file path
    """
    with open(output_path, "w") as f:
        f.write("=" * 60 + "\n")
        f.write("Quality Control Report\n")
        f.write("=" * 60 + "\n")
        f.write(f"Date: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}\n")
        f.write("\n")

        f.write("Input Data:\n")
        f.write(f"  Initial loci: {report.initial_loci}\n")
        f.write(f"  Initial individuals: {report.initial_individuals}\n")
        f.write("\n")

        f.write("QC Steps:\n")
        for stage in report.stages:
            threshold = "" if stage.threshold is None else f" (threshold {stage.threshold})"
            if stage.skipped:
                f.write(f"  {stage.name}: skipped, metric not available\n")
            else:
                f.write(f"  {stage.name}{threshold}: removed {stage.removed} loci, {stage.n_loci} remain\n")
        f.write("\n")

        total_removed = report.initial_loci - report.final_loci
        f.write("Summary:\n")
        f.write(f"  Final loci: {report.final_loci}\n")
        f.write(f"  Final individuals: {report.final_individuals}\n")
        f.write(f"  Total loci removed: {total_removed}\n")
        f.write(f"  Locus retention rate: {report.final_loci / max(report.initial_loci, 1) * 100:.1f}%\n")
        f.write("=" * 60 + "\n")

    logger.info(f"QC report written to: {output_path}")
