"""
Pairwise Fst between populations.

Each unordered pair of populations is estimated once with the
Weir & Cockerham (1984) estimator and mirrored, so the matrix is symmetric.
The diagonal is 0.
"""

import logging
from itertools import combinations
from typing import Optional

import numpy as np
import pandas as pd
from tqdm import tqdm

from ..genotypes import GenotypeData
from ..utils.exceptions import EmptyInputError, InsufficientDataError
from .backends import estimate_differentiation


logger = logging.getLogger(__name__)


def pairwise_fst(gd: GenotypeData, show_progress: bool = False) -> Optional[pd.DataFrame]:
    """
    Pairwise Fst matrix between populations.

    Args:
        gd: Filtered genotype data
        show_progress: Show a progress bar over population pairs

    Returns:
        Symmetric DataFrame (populations x populations), or None when there
        are fewer than 2 populations

    Raises:
        EmptyInputError: If no loci remain
        InsufficientDataError: If a population has fewer than 2 individuals
    """
    populations = gd.pop_names
    if len(populations) < 2:
        logger.info(f"{len(populations)} population(s) - skipping pairwise Fst")
        return None
    if gd.n_loc == 0:
        raise EmptyInputError("Cannot compute Fst without loci")

    counts = gd.populations.value_counts()
    too_small = [pop for pop in populations if counts[pop] < 2]
    if too_small:
        raise InsufficientDataError(
            f"Fst needs at least 2 individuals per population; too few in: {', '.join(too_small)}"
        )

    logger.info(f"Computing pairwise Fst between {len(populations)} populations...")
    samples = {pop: gd.population_subset(pop) for pop in populations}
    matrix = pd.DataFrame(
        np.zeros((len(populations), len(populations))),
        index=pd.Index(populations, name="Population"),
        columns=populations,
    )

    pairs = list(combinations(populations, 2))
    for pop_1, pop_2 in tqdm(pairs, desc="Pairwise Fst", disable=not show_progress):
        value = estimate_differentiation(samples[pop_1], samples[pop_2])
        if np.isnan(value):
            logger.warning(f"Fst undefined for {pop_1} vs {pop_2}: no variance between them")
        matrix.loc[pop_1, pop_2] = value
        matrix.loc[pop_2, pop_1] = value

    return matrix
