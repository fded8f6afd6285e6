#!/usr/bin/env python3
"""
Genetics-specific utilities for the DArTseq pipeline.

This module provides utilities for:
- Decoding DArT one-row and two-row SNP calls into allele counts
- Call rate and polymorphism per locus
- Allele frequency and heterozygosity per locus

Genotypes are stored as the number of SNP (alternate) alleles: 0 for the
homozygous reference, 1 for the heterozygote, 2 for the homozygous SNP and
NaN for a missing call.

Example:
    >>> import numpy as np
    >>> from dartseq_popgen.utils.genetics_utils import call_rate
    >>> call_rate(np.array([[0, np.nan], [1, 2]]))
    array([1. , 0.5])
"""

from typing import Dict

import numpy as np
import pandas as pd


# ==============================================================================
# Constants
# ==============================================================================

HOM_REF = 0
HET = 1
HOM_ALT = 2

# DArT one-row coding: 0 = reference homozygote, 1 = SNP homozygote, 2 = heterozygote
ONE_ROW_CODES: Dict[str, int] = {
    "0": HOM_REF,
    "1": HOM_ALT,
    "2": HET,
}

# DArT two-row coding: (reference row, SNP row) presence/absence
TWO_ROW_CODES: Dict[tuple, int] = {
    (1, 0): HOM_REF,
    (1, 1): HET,
    (0, 1): HOM_ALT,
}


# ==============================================================================
# Genotype Decoding
# ==============================================================================

def _clean_codes(values: pd.DataFrame, missing: str) -> pd.DataFrame:
    """Strip whitespace and turn float-looking codes ("1.0") into plain codes."""
    codes = values.astype(str).apply(lambda col: col.str.strip())
    codes = codes.replace(r"^(\d+)\.0+$", r"\1", regex=True)
    return codes.mask(codes.isin([missing, "", "nan", "NA"]))


def decode_one_row(values: pd.DataFrame, missing: str = "-") -> pd.DataFrame:
    """
    Decode DArT one-row calls (loci x individuals) into allele counts.

    Args:
        values: Raw call values, one row per locus
        missing: Missing call symbol

    Returns:
        Float DataFrame of the same shape with 0/1/2/NaN

    Raises:
        ValueError: If a call is neither a known code nor the missing symbol
    """
    codes = _clean_codes(values, missing)
    unknown = codes.notna() & ~codes.isin(list(ONE_ROW_CODES))
    if unknown.to_numpy().any():
        bad = sorted(set(codes.to_numpy()[unknown.to_numpy()].tolist()))
        raise ValueError(f"Unexpected one-row genotype code(s): {', '.join(bad[:5])}")
    return codes.apply(lambda col: col.map(ONE_ROW_CODES)).astype(float)


def decode_two_row(
    ref_rows: pd.DataFrame,
    snp_rows: pd.DataFrame,
    missing: str = "-",
) -> np.ndarray:
    """
    Decode DArT two-row presence/absence calls into allele counts.

    Args:
        ref_rows: Reference allele rows (loci x individuals)
        snp_rows: SNP allele rows, aligned with ``ref_rows``
        missing: Missing call symbol

    Returns:
        Float array (loci x individuals) with 0/1/2/NaN. A locus where
        neither allele is present is treated as missing.

    Raises:
        ValueError: If a value is not 0, 1 or the missing symbol
    """
    decoded = []
    for rows in (ref_rows, snp_rows):
        codes = _clean_codes(rows, missing)
        unknown = codes.notna() & ~codes.isin(["0", "1"])
        if unknown.to_numpy().any():
            bad = sorted(set(codes.to_numpy()[unknown.to_numpy()].tolist()))
            raise ValueError(f"Unexpected two-row presence value(s): {', '.join(bad[:5])}")
        decoded.append(codes.apply(pd.to_numeric).to_numpy(dtype=float))

    ref, snp = decoded
    genotypes = np.full(ref.shape, np.nan)
    for (ref_code, snp_code), genotype in TWO_ROW_CODES.items():
        genotypes[(ref == ref_code) & (snp == snp_code)] = genotype
    return genotypes


# ==============================================================================
# Per-locus Summaries
# ==============================================================================

def call_rate(genotypes: np.ndarray) -> np.ndarray:
    """
    Fraction of non-missing calls per locus.

    Args:
        genotypes: Array of shape (individuals, loci)

    Returns:
        Array of length n_loci; all zeros when there are no individuals
    """
    genotypes = np.asarray(genotypes, dtype=float)
    if genotypes.shape[0] == 0:
        return np.zeros(genotypes.shape[1])
    return np.mean(~np.isnan(genotypes), axis=0)


def is_polymorphic(genotypes: np.ndarray) -> np.ndarray:
    """
    Whether each locus shows more than one distinct non-missing call.

    A locus with no calls at all counts as monomorphic.
    """
    genotypes = np.asarray(genotypes, dtype=float)
    if genotypes.shape[0] == 0:
        return np.zeros(genotypes.shape[1], dtype=bool)
    missing = np.isnan(genotypes)
    highest = np.max(np.where(missing, -np.inf, genotypes), axis=0)
    lowest = np.min(np.where(missing, np.inf, genotypes), axis=0)
    return np.isfinite(highest) & (highest != lowest)


def alt_allele_frequency(genotypes: np.ndarray) -> np.ndarray:
    """
    SNP allele frequency per locus, ignoring missing calls.

    Loci without any call get NaN.
    """
    genotypes = np.asarray(genotypes, dtype=float)
    n_called = np.sum(~np.isnan(genotypes), axis=0)
    alt_count = np.nansum(genotypes, axis=0)
    with np.errstate(invalid="ignore", divide="ignore"):
        return np.where(n_called > 0, alt_count / (2.0 * n_called), np.nan)


def observed_heterozygosity(genotypes: np.ndarray) -> np.ndarray:
    """
    Fraction of heterozygous calls per locus among non-missing calls.

    Loci without any call get NaN.
    """
    genotypes = np.asarray(genotypes, dtype=float)
    called = ~np.isnan(genotypes)
    n_called = called.sum(axis=0)
    n_het = np.sum(called & (genotypes == HET), axis=0)
    with np.errstate(invalid="ignore", divide="ignore"):
        return np.where(n_called > 0, n_het / n_called, np.nan)


def expected_heterozygosity(genotypes: np.ndarray) -> np.ndarray:
    """Expected heterozygosity 2pq per locus (NaN where there are no calls)."""
    p = alt_allele_frequency(genotypes)
    return 2.0 * p * (1.0 - p)
