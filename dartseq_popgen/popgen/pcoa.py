"""
Principal coordinate analysis of individuals.

Distances between individuals are Euclidean distances between their allele
count vectors (missing calls replaced by the locus mean). The ordination
keeps a fixed number of axes; on every axis the individual with the largest
absolute score is positive.
"""

import logging
from dataclasses import dataclass
from typing import List

import numpy as np
import pandas as pd

from ..genotypes import GenotypeData
from ..utils.config import PCOA_DEFAULTS
from ..utils.exceptions import EmptyInputError, InsufficientDataError
from .backends import compute_distance_matrix, ordinate


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PCoAResult:
    """
    Principal coordinate embedding.

    Attributes:
        scores: DataFrame indexed by individual with columns Axis1..AxisN
        eigenvalues: Positive eigenvalues in decreasing order
        populations: Population label of each individual, indexed like scores
    """

    scores: pd.DataFrame
    eigenvalues: np.ndarray
    populations: pd.Series

    @property
    def n_axes(self) -> int:
        return self.scores.shape[1]

    @property
    def axis_names(self) -> List[str]:
        return list(self.scores.columns)

    def variance_explained(self) -> np.ndarray:
        """Percentage of variance per retained axis, rounded to 1 decimal."""
        total = float(np.sum(self.eigenvalues))
        values = np.zeros(self.n_axes)
        kept = min(self.n_axes, self.eigenvalues.size)
        if total > 0 and kept:
            values[:kept] = self.eigenvalues[:kept] / total * 100.0
        return np.round(values, 1)

    def coordinates(self, individual: str) -> np.ndarray:
        return self.scores.loc[individual].to_numpy()

    def scores_table(self) -> pd.DataFrame:
        """Scores with Individual and Population columns."""
        table = self.scores.copy()
        table["Individual"] = table.index
        table["Population"] = self.populations.to_numpy()
        return table.reset_index(drop=True)

    def eigenvalue_table(self) -> pd.DataFrame:
        """Eigenvalues of the retained axes with their explained variance."""
        kept = min(self.n_axes, self.eigenvalues.size)
        eigenvalues = np.zeros(self.n_axes)
        eigenvalues[:kept] = self.eigenvalues[:kept]
        return pd.DataFrame({
            "Axis": self.axis_names,
            "Eigenvalue": eigenvalues,
            "Variance_Explained_%": self.variance_explained(),
        })


def run_pcoa(gd: GenotypeData, n_axes: int = PCOA_DEFAULTS["n_axes"]) -> PCoAResult:
    """
    Principal coordinate analysis of the filtered genotypes.

    Args:
        gd: Filtered genotype data
        n_axes: Number of axes kept for every individual

    Returns:
        PCoAResult

    Raises:
        EmptyInputError: If no loci or no individuals remain
        InsufficientDataError: If fewer than 2 individuals remain
    """
    if gd.n_loc == 0 or gd.n_ind == 0:
        raise EmptyInputError(f"Cannot run PCoA on {gd.n_ind} individuals x {gd.n_loc} loci")
    if gd.n_ind < 2:
        raise InsufficientDataError(f"PCoA needs at least 2 individuals, got {gd.n_ind}")

    logger.info(f"Principal coordinate analysis ({n_axes} axes)...")
    distances = compute_distance_matrix(gd.genotype_array())
    scores, eigenvalues = ordinate(distances, n_axes)

    axis_names = [f"Axis{k + 1}" for k in range(n_axes)]
    result = PCoAResult(
        scores=pd.DataFrame(scores, index=gd.calls.index.copy(), columns=axis_names),
        eigenvalues=eigenvalues,
        populations=gd.populations.copy(),
    )

    for name, pct in zip(axis_names, result.variance_explained()):
        logger.info(f"  {name}: {pct:.1f}% variance explained")
    return result
