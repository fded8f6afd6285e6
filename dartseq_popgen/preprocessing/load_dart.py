#!/usr/bin/env python3
"""
Import DArTseq SNP reports.

This module reads a DArT SNP report (CSV) into a GenotypeData object.

Features:
    - Skips the DArT header block (leading rows whose first cell is "*")
    - Splits locus metric columns from individual call columns at the last
      metric column (default: RepAvg)
    - Decodes one-row (0/1/2/-) and two-row (presence/absence) reports
    - Optional individual metadata file assigning populations

Usage:
    python -m dartseq_popgen.preprocessing.load_dart \\
        --input Report_DSph25-10737_SNP_2.csv

Example:
    >>> from dartseq_popgen.preprocessing.load_dart import read_dart
    >>> gd = read_dart("Report_SNP_2.csv")
    >>> gd.n_ind, gd.n_loc
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional, Union

import numpy as np
import pandas as pd

from ..genotypes import GenotypeData
from ..utils.config import DART_DEFAULTS, DEFAULT_POPULATION, setup_logging
from ..utils.exceptions import DartseqError, MalformedInputError
from ..utils.file_utils import read_population_file, require_file
from ..utils.genetics_utils import decode_one_row, decode_two_row


logger = logging.getLogger(__name__)

# Metric columns coerced to numbers when present
NUMERIC_LOCUS_METRICS: List[str] = [
    "SnpPosition",
    "CallRate",
    "OneRatioRef",
    "OneRatioSnp",
    "FreqHomRef",
    "FreqHomSnp",
    "FreqHets",
    "PICRef",
    "PICSnp",
    "AvgPIC",
    "AvgCountRef",
    "AvgCountSnp",
    "RepAvg",
]

FORMATS = ("auto", "1row", "2row")


def _read_raw_table(path: Path) -> pd.DataFrame:
    """Read every cell of the report as a string."""
    try:
        return pd.read_csv(path, header=None, dtype=str, keep_default_na=False)
    except pd.errors.EmptyDataError:
        raise MalformedInputError(f"DArT report is empty: {path}") from None
    except pd.errors.ParserError as e:
        raise MalformedInputError(f"Could not parse DArT report {path}: {e}") from None


def _count_topskip(raw: pd.DataFrame) -> int:
    """Number of leading header block rows (first cell is '*')."""
    first = raw.iloc[:, 0].str.strip()
    topskip = 0
    for value in first:
        if value != "*":
            break
        topskip += 1
    return topskip


def detect_format(codes: pd.DataFrame, metrics: pd.DataFrame) -> str:
    """
    Guess whether a report uses the one-row or two-row encoding.

    A heterozygote code ("2") only exists in one-row reports. Otherwise the
    report is two-row when loci come in consecutive pairs sharing a CloneID.
    That guess is logged as a warning since a one-row report without
    heterozygotes can look the same.
    """
    values = codes.to_numpy().ravel()
    cleaned = pd.Series(values).str.strip().replace(r"^(\d+)\.0+$", r"\1", regex=True)
    if (cleaned == "2").any():
        return "1row"

    n_rows = len(codes)
    if n_rows % 2 == 0 and "CloneID" in metrics.columns:
        clone_ids = metrics["CloneID"].str.strip().to_numpy()
        if np.array_equal(clone_ids[0::2], clone_ids[1::2]):
            logger.warning(
                "No heterozygote codes found and CloneIDs come in consecutive pairs: "
                "reading the report as two-row (use --format 1row to override)"
            )
            return "2row"

    return "1row"


def _coerce_metrics(metrics: pd.DataFrame) -> pd.DataFrame:
    """Convert known numeric metric columns to floats."""
    metrics = metrics.copy()
    for column in NUMERIC_LOCUS_METRICS:
        if column not in metrics.columns:
            continue
        values = metrics[column].str.strip().replace({"": np.nan, "-": np.nan})
        try:
            metrics[column] = pd.to_numeric(values)
        except (ValueError, TypeError):
            raise MalformedInputError(
                f"Locus metric column {column!r} contains non-numeric values"
            ) from None
    return metrics


def _locus_ids(metrics: pd.DataFrame, preferred: List[str]) -> List[str]:
    for column in preferred:
        if column in metrics.columns:
            return metrics[column].str.strip().tolist()
    return [f"L{i + 1}" for i in range(len(metrics))]


def assign_populations(
    ind_names: List[str],
    ind_metafile: Optional[Union[str, Path]] = None,
) -> List[str]:
    """
    Population label for each individual.

    Without a metadata file every individual gets DEFAULT_POPULATION.
    Individuals missing from the metadata file also keep the default label.
    """
    if ind_metafile is None:
        return [DEFAULT_POPULATION] * len(ind_names)

    pop_map = read_population_file(ind_metafile)
    unlisted = [name for name in ind_names if name not in pop_map]
    if unlisted:
        logger.warning(
            f"{len(unlisted)} individuals not in metadata file, "
            f"assigned to {DEFAULT_POPULATION}: {', '.join(unlisted[:5])}"
        )
    unknown = sorted(set(pop_map) - set(ind_names))
    if unknown:
        logger.warning(
            f"{len(unknown)} metadata entries do not match any individual: "
            f"{', '.join(unknown[:5])}"
        )
    return [pop_map.get(name, DEFAULT_POPULATION) for name in ind_names]


def read_dart(
    filename: Union[str, Path],
    last_metric: str = DART_DEFAULTS["last_metric"],
    fmt: str = DART_DEFAULTS["format"],
    missing: str = DART_DEFAULTS["missing"],
    ind_metafile: Optional[Union[str, Path]] = None,
) -> GenotypeData:
    """
    Read a DArT SNP report.

    Args:
        filename: Path to the report CSV
        last_metric: Name of the last locus metric column; every column
            after it holds calls for one individual
        fmt: "1row", "2row" or "auto"
        missing: Missing call symbol
        ind_metafile: Optional CSV with ``id`` and ``pop`` columns

    Returns:
        GenotypeData with one row per individual and one column per locus

    Raises:
        MissingFileError: If the report or the metadata file does not exist
        MalformedInputError: If the report does not have the expected layout
    """
    if fmt not in FORMATS:
        raise ValueError(f"Unknown DArT format {fmt!r}, expected one of {', '.join(FORMATS)}")

    path = require_file(filename, "DArT report")
    logger.info(f"Reading DArT report: {path}")

    raw = _read_raw_table(path)
    topskip = _count_topskip(raw)
    if topskip >= len(raw):
        raise MalformedInputError(f"No column header found in DArT report {path}")
    logger.debug(f"Skipping {topskip} header block rows")

    # pandas pads rows shorter than the widest line with NaN
    short_rows = raw.iloc[topskip:].isna().any(axis=1)
    if short_rows.any():
        raise MalformedInputError(
            f"Line {short_rows.idxmax() + 1} of {path} has fewer fields than the column header"
        )

    header = [str(h).strip() for h in raw.iloc[topskip].tolist()]
    body = raw.iloc[topskip + 1:].reset_index(drop=True)
    body.columns = range(body.shape[1])

    if last_metric not in header:
        raise MalformedInputError(
            f"Last metric column {last_metric!r} not found in DArT report header"
        )
    split = header.index(last_metric) + 1
    ind_names = header[split:]
    if not ind_names:
        raise MalformedInputError(f"No individual columns after {last_metric!r}")
    if any(name == "" for name in ind_names):
        raise MalformedInputError("DArT report has individual columns without a name")
    if len(body) == 0:
        raise MalformedInputError(f"DArT report {path} contains no loci")

    metrics = body.iloc[:, :split].copy()
    metrics.columns = header[:split]
    codes = body.iloc[:, split:].copy()
    codes.columns = ind_names

    if fmt == "auto":
        fmt = detect_format(codes, metrics)
        logger.info(f"Detected {fmt} DArT encoding")

    try:
        if fmt == "1row":
            genotypes = decode_one_row(codes, missing).to_numpy().T
            loci = _locus_ids(metrics, ["AlleleID", "CloneID"])
        else:
            if len(body) % 2 != 0:
                raise MalformedInputError("Two-row DArT report has an odd number of rows")
            genotypes = decode_two_row(
                codes.iloc[0::2].reset_index(drop=True),
                codes.iloc[1::2].reset_index(drop=True),
                missing,
            ).T
            metrics = metrics.iloc[0::2].reset_index(drop=True)
            loci = _locus_ids(metrics, ["CloneID", "AlleleID"])
    except ValueError as e:
        if isinstance(e, DartseqError):
            raise
        raise MalformedInputError(f"Invalid genotype calls in {path}: {e}") from None

    metrics = _coerce_metrics(metrics)
    populations = assign_populations(ind_names, ind_metafile)

    gd = GenotypeData.from_arrays(genotypes, ind_names, loci, populations, metrics)

    logger.info(f"  Individuals: {gd.n_ind}")
    logger.info(f"  Loci: {gd.n_loc}")
    logger.info(f"  Populations: {gd.n_pop}")
    return gd


def main() -> int:
    """Main entry point: summarise a DArT report."""
    parser = argparse.ArgumentParser(
        description="Read a DArT SNP report and print its dimensions.",
    )
    parser.add_argument("--input", "-i", required=True, help="DArT report CSV (required)")
    parser.add_argument(
        "--last-metric",
        default=DART_DEFAULTS["last_metric"],
        help=f"Last locus metric column (default: {DART_DEFAULTS['last_metric']})",
    )
    parser.add_argument(
        "--format",
        choices=FORMATS,
        default=DART_DEFAULTS["format"],
        help=f"Report encoding (default: {DART_DEFAULTS['format']})",
    )
    parser.add_argument("--ind-metafile", help="CSV with id and pop columns (optional)")
    args = parser.parse_args()

    setup_logging()

    try:
        gd = read_dart(
            args.input,
            last_metric=args.last_metric,
            fmt=args.format,
            ind_metafile=args.ind_metafile,
        )
    except DartseqError as e:
        logger.error(str(e))
        return 1

    print(f"Individuals: {gd.n_ind}")
    print(f"Loci: {gd.n_loc}")
    print(f"Populations: {gd.n_pop}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
