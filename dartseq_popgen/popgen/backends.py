"""
Numeric routines behind the population genetics statistics.

The statistics modules only call the three functions below, so the
numeric implementation can change without touching the pipeline:

- compute_distance_matrix: individual x individual genetic distances
- ordinate: classical principal coordinate analysis of a distance matrix
- estimate_differentiation: Weir & Cockerham (1984) Fst between two samples
"""

import logging
from typing import Tuple

import numpy as np
from scipy.spatial.distance import pdist, squareform

from ..utils.exceptions import InsufficientDataError


logger = logging.getLogger(__name__)

# Eigenvalues below this (relative to the largest) are treated as zero
EIGENVALUE_TOLERANCE = 1e-10


def impute_mean(genotypes: np.ndarray) -> np.ndarray:
    """Replace missing calls by the locus mean (0 for loci without calls)."""
    genotypes = np.array(genotypes, dtype=float)
    if genotypes.size == 0:
        return genotypes
    called = ~np.isnan(genotypes)
    n_called = called.sum(axis=0)
    sums = np.where(called, genotypes, 0.0).sum(axis=0)
    means = np.divide(sums, n_called, out=np.zeros_like(sums), where=n_called > 0)
    return np.where(called, genotypes, means)


def compute_distance_matrix(genotypes: np.ndarray, metric: str = "euclidean") -> np.ndarray:
    """
    Pairwise genetic distances between individuals.

    Args:
        genotypes: Allele counts, shape (individuals, loci), NaN = missing
        metric: Any metric accepted by scipy.spatial.distance.pdist

    Returns:
        Symmetric (individuals x individuals) distance matrix
    """
    filled = impute_mean(genotypes)
    if filled.shape[0] < 2:
        return np.zeros((filled.shape[0], filled.shape[0]))
    return squareform(pdist(filled, metric=metric))


def orient_axes(vectors: np.ndarray) -> np.ndarray:
    """
    Fix the sign of each axis.

    The individual with the largest absolute score on an axis gets a
    positive score (the first one on ties).
    """
    vectors = np.array(vectors, dtype=float)
    for k in range(vectors.shape[1]):
        column = vectors[:, k]
        if column.size == 0:
            continue
        anchor = int(np.argmax(np.abs(column)))
        if column[anchor] < 0:
            vectors[:, k] = -column
    return vectors


def ordinate(distances: np.ndarray, n_axes: int = 3) -> Tuple[np.ndarray, np.ndarray]:
    """
    Principal coordinate analysis (classical scaling) of a distance matrix.

    The squared distances are double-centred and eigen-decomposed. Scores
    are eigenvectors scaled by the square root of their eigenvalue.

    Args:
        distances: Symmetric (n x n) distance matrix
        n_axes: Number of axes to return

    Returns:
        Tuple of (scores with shape (n, n_axes), positive eigenvalues in
        decreasing order). Axes beyond the number of positive eigenvalues
        are filled with zeros.
    """
    distances = np.asarray(distances, dtype=float)
    n = distances.shape[0]
    if n < 2:
        raise InsufficientDataError(f"PCoA needs at least 2 individuals, got {n}")

    centering = np.eye(n) - np.full((n, n), 1.0 / n)
    gower = -0.5 * centering @ (distances ** 2) @ centering
    gower = (gower + gower.T) / 2.0

    eigenvalues, eigenvectors = np.linalg.eigh(gower)
    order = np.argsort(eigenvalues)[::-1]
    eigenvalues = eigenvalues[order]
    eigenvectors = eigenvectors[:, order]

    largest = eigenvalues[0] if eigenvalues.size else 0.0
    positive = eigenvalues > max(largest, 0.0) * EIGENVALUE_TOLERANCE
    eigenvalues = eigenvalues[positive]
    eigenvectors = eigenvectors[:, positive]

    scores = np.zeros((n, n_axes))
    kept = min(n_axes, eigenvalues.size)
    if kept < n_axes:
        logger.warning(
            f"Only {eigenvalues.size} positive eigenvalues; axes {kept + 1}-{n_axes} are zero"
        )
    if kept:
        scores[:, :kept] = orient_axes(eigenvectors[:, :kept] * np.sqrt(eigenvalues[:kept]))
    return scores, eigenvalues


def _wc84_components(
    sample_1: np.ndarray,
    sample_2: np.ndarray,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Per-locus variance components a, b, c of Weir & Cockerham (1984), two samples."""
    r = 2.0
    sizes, freqs, hets = [], [], []
    for sample in (sample_1, sample_2):
        called = ~np.isnan(sample)
        n = called.sum(axis=0).astype(float)
        alt = np.where(called, sample, 0.0).sum(axis=0)
        het = np.sum(called & (sample == 1), axis=0)
        with np.errstate(invalid="ignore", divide="ignore"):
            freqs.append(alt / (2.0 * n))
            hets.append(het / n)
        sizes.append(n)

    n1, n2 = sizes
    p1, p2 = freqs
    h1, h2 = hets

    n_bar = (n1 + n2) / r
    with np.errstate(invalid="ignore", divide="ignore"):
        n_c = (r * n_bar - (n1 ** 2 + n2 ** 2) / (r * n_bar)) / (r - 1.0)
        p_bar = (n1 * p1 + n2 * p2) / (r * n_bar)
        s2 = (n1 * (p1 - p_bar) ** 2 + n2 * (p2 - p_bar) ** 2) / ((r - 1.0) * n_bar)
        h_bar = (n1 * h1 + n2 * h2) / (r * n_bar)
        pq = p_bar * (1.0 - p_bar)

        a = n_bar / n_c * (
            s2 - (pq - (r - 1.0) / r * s2 - h_bar / 4.0) / (n_bar - 1.0)
        )
        b = n_bar / (n_bar - 1.0) * (
            pq - (r - 1.0) / r * s2 - (2.0 * n_bar - 1.0) / (4.0 * n_bar) * h_bar
        )
        c = h_bar / 2.0

    usable = (n1 > 0) & (n2 > 0) & (n_bar > 1.0)
    return a[usable], b[usable], c[usable]


def estimate_differentiation(sample_1: np.ndarray, sample_2: np.ndarray) -> float:
    """
    Weir & Cockerham (1984) Fst between two samples.

    Multi-locus estimate: sum of a over the sum of a + b + c, using loci
    called in both samples.

    Args:
        sample_1: Allele counts of the first sample, shape (individuals, loci)
        sample_2: Allele counts of the second sample, same loci

    Returns:
        Fst estimate (may be slightly negative); NaN when there is no
        variance to partition

    Raises:
        InsufficientDataError: If a sample has fewer than 2 individuals or
            no locus is called in both samples
    """
    sample_1 = np.asarray(sample_1, dtype=float)
    sample_2 = np.asarray(sample_2, dtype=float)
    for sample in (sample_1, sample_2):
        if sample.shape[0] < 2:
            raise InsufficientDataError(
                f"Fst needs at least 2 individuals per population, got {sample.shape[0]}"
            )
    if sample_1.shape[1] != sample_2.shape[1]:
        raise ValueError("Samples do not have the same number of loci")

    a, b, c = _wc84_components(sample_1, sample_2)
    if a.size == 0:
        raise InsufficientDataError("No locus is called in both populations")

    total = np.sum(a + b + c)
    if not np.isfinite(total) or np.isclose(total, 0.0):
        return float("nan")
    return float(np.sum(a) / total)
