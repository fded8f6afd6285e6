"""
Heterozygosity by population.

Observed heterozygosity (Ho) of a population is the mean, over loci with at
least one call in that population, of the fraction of heterozygous calls.
Expected heterozygosity (He) is the mean of 2pq over the same loci.
"""

import logging

import numpy as np
import pandas as pd

from ..genotypes import GenotypeData
from ..utils.exceptions import EmptyInputError, InsufficientDataError
from ..utils.genetics_utils import expected_heterozygosity, observed_heterozygosity


logger = logging.getLogger(__name__)

HETEROZYGOSITY_COLUMNS = ["pop", "n_ind", "n_loc", "Ho", "He"]


def population_heterozygosity(genotypes: np.ndarray, population: str = "") -> pd.Series:
    """
    Heterozygosity summary of one population.

    Args:
        genotypes: Allele counts of the population, shape (individuals, loci)
        population: Label used in error messages and in the result

    Returns:
        Series with pop, n_ind, n_loc, Ho and He

    Raises:
        InsufficientDataError: If the population has no individuals or no
            locus with a call
    """
    genotypes = np.asarray(genotypes, dtype=float)
    if genotypes.shape[0] == 0:
        raise InsufficientDataError(f"Population {population!r} has no individuals")

    ho = observed_heterozygosity(genotypes)
    valid = ~np.isnan(ho)
    if not valid.any():
        raise InsufficientDataError(f"Population {population!r} has no called loci")

    he = expected_heterozygosity(genotypes)
    return pd.Series({
        "pop": population,
        "n_ind": genotypes.shape[0],
        "n_loc": int(valid.sum()),
        "Ho": float(np.mean(ho[valid])),
        "He": float(np.mean(he[valid])),
    })


def heterozygosity_by_population(gd: GenotypeData) -> pd.DataFrame:
    """
    Heterozygosity table with one row per population (order of first appearance).

    Raises:
        EmptyInputError: If no loci or no individuals remain
        InsufficientDataError: If a population has no called locus
    """
    if gd.n_loc == 0 or gd.n_ind == 0:
        raise EmptyInputError(
            f"Cannot compute heterozygosity on {gd.n_ind} individuals x {gd.n_loc} loci"
        )

    logger.info("Computing heterozygosity by population...")
    rows = [
        population_heterozygosity(gd.population_subset(pop), pop)
        for pop in gd.pop_names
    ]
    table = pd.DataFrame(rows, columns=HETEROZYGOSITY_COLUMNS)
    table["n_ind"] = table["n_ind"].astype(int)
    table["n_loc"] = table["n_loc"].astype(int)

    for _, row in table.iterrows():
        logger.info(f"  {row['pop']}: Ho={row['Ho']:.4f} He={row['He']:.4f} (n={row['n_ind']})")
    return table
