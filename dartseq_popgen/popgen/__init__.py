"""Population genetics statistics: heterozygosity, PCoA and pairwise Fst."""

from .fst import pairwise_fst
from .heterozygosity import heterozygosity_by_population
from .pcoa import PCoAResult, run_pcoa

__all__ = [
    "PCoAResult",
    "heterozygosity_by_population",
    "pairwise_fst",
    "run_pcoa",
]
