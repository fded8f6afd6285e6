"""
In-memory genotype container shared by every pipeline stage.

A GenotypeData holds the individuals x loci call matrix (allele counts
0/1/2, NaN for missing), the population label of each individual and the
per-locus metrics read from the DArT report. Stages never edit it in place:
filtering and renaming return a new object.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np
import pandas as pd

from .utils.exceptions import MalformedInputError
from .utils.genetics_utils import call_rate, is_polymorphic


@dataclass(frozen=True)
class GenotypeData:
    """
    Genotype matrix plus individual and locus metadata.

    Attributes:
        calls: DataFrame (individuals x loci) of floats, index = individual
            IDs, columns = locus IDs
        populations: Series of population labels indexed like ``calls``
        loc_metrics: DataFrame of locus metrics indexed like ``calls.columns``
    """

    calls: pd.DataFrame
    populations: pd.Series
    loc_metrics: pd.DataFrame

    def __post_init__(self) -> None:
        if not self.calls.index.is_unique:
            raise MalformedInputError("Individual identifiers are not unique")
        if not self.calls.columns.is_unique:
            raise MalformedInputError("Locus identifiers are not unique")
        if not self.populations.index.equals(self.calls.index):
            raise MalformedInputError("Population labels do not match the individuals")
        if not self.loc_metrics.index.equals(self.calls.columns):
            raise MalformedInputError("Locus metrics do not match the loci")

    @classmethod
    def from_arrays(
        cls,
        genotypes: np.ndarray,
        individuals: Sequence[str],
        loci: Sequence[str],
        populations: Sequence[str],
        loc_metrics: Optional[pd.DataFrame] = None,
    ) -> "GenotypeData":
        """
        Build a GenotypeData from an (individuals x loci) array.

        Missing ``loc_metrics`` gives an empty metrics table. ``CallRate``
        and ``polymorphic`` are always (re)computed from the calls.
        """
        calls = pd.DataFrame(
            np.asarray(genotypes, dtype=float),
            index=pd.Index([str(i) for i in individuals], name="Individual"),
            columns=pd.Index([str(l) for l in loci], name="Locus"),
        )
        pops = pd.Series([str(p) for p in populations], index=calls.index, name="Population")
        if loc_metrics is None:
            metrics = pd.DataFrame(index=calls.columns)
        else:
            metrics = loc_metrics.copy()
            metrics.index = calls.columns
        return cls(calls, pops, metrics).refresh_metrics()

    # --------------------------------------------------------------------------
    # Dimensions
    # --------------------------------------------------------------------------

    @property
    def n_ind(self) -> int:
        return self.calls.shape[0]

    @property
    def n_loc(self) -> int:
        return self.calls.shape[1]

    @property
    def n_pop(self) -> int:
        return self.populations.nunique()

    @property
    def ind_names(self) -> List[str]:
        return list(self.calls.index)

    @property
    def loc_names(self) -> List[str]:
        return list(self.calls.columns)

    @property
    def pop_names(self) -> List[str]:
        """Population labels in order of first appearance."""
        return list(pd.unique(self.populations))

    def genotype_array(self) -> np.ndarray:
        """Copy of the call matrix as a float array."""
        return self.calls.to_numpy(dtype=float, copy=True)

    def has_metric(self, name: str) -> bool:
        return name in self.loc_metrics.columns

    # --------------------------------------------------------------------------
    # Derived copies
    # --------------------------------------------------------------------------

    def refresh_metrics(self) -> "GenotypeData":
        """Return a copy with ``CallRate`` and ``polymorphic`` recomputed."""
        metrics = self.loc_metrics.copy()
        genotypes = self.calls.to_numpy(dtype=float)
        metrics["CallRate"] = call_rate(genotypes)
        metrics["polymorphic"] = is_polymorphic(genotypes)
        return GenotypeData(self.calls.copy(), self.populations.copy(), metrics)

    def keep_loci(self, mask: Sequence[bool]) -> "GenotypeData":
        """Return a copy restricted to the loci where ``mask`` is True."""
        mask = np.asarray(mask, dtype=bool)
        if mask.shape != (self.n_loc,):
            raise ValueError(f"Locus mask has shape {mask.shape}, expected ({self.n_loc},)")
        subset = GenotypeData(
            self.calls.loc[:, mask].copy(),
            self.populations.copy(),
            self.loc_metrics.loc[mask].copy(),
        )
        return subset.refresh_metrics()

    def with_labels(self, ind_names: Sequence[str], populations: Sequence[str]) -> "GenotypeData":
        """Return a copy with new individual identifiers and population labels."""
        if len(ind_names) != self.n_ind or len(populations) != self.n_ind:
            raise ValueError("Label count does not match the number of individuals")
        index = pd.Index([str(n) for n in ind_names], name=self.calls.index.name)
        if not index.is_unique:
            duplicated = sorted(set(index[index.duplicated()]))
            raise MalformedInputError(
                f"Renaming produced duplicate individual identifiers: {', '.join(duplicated[:5])}"
            )
        calls = self.calls.copy()
        calls.index = index
        pops = pd.Series([str(p) for p in populations], index=index, name="Population")
        return GenotypeData(calls, pops, self.loc_metrics.copy())

    def population_subset(self, population: str) -> np.ndarray:
        """Calls of the individuals belonging to ``population``."""
        mask = (self.populations == population).to_numpy()
        return self.calls.to_numpy(dtype=float)[mask]

    def __repr__(self) -> str:
        return (
            f"GenotypeData(n_ind={self.n_ind}, n_loc={self.n_loc}, n_pop={self.n_pop})"
        )
