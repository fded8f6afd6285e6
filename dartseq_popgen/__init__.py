"""
Population genetics analysis of DArTseq SNP reports.

Pipeline stages:
- Genotype import (preprocessing.load_dart)
- Individual name correction (preprocessing.normalize_ids)
- Locus quality filters (preprocessing.qc_filtering)
- Heterozygosity, PCoA and pairwise Fst (popgen)
- Tables, plots and reports (reporting)
"""

from .genotypes import GenotypeData
from .preprocessing.load_dart import read_dart
from .preprocessing.normalize_ids import normalize_individuals
from .preprocessing.qc_filtering import FilterReport, run_filter_chain
from .run_analysis import AnalysisResults, run_analysis
from .utils.config import AnalysisConfig

__version__ = "0.1.0"

__all__ = [
    "AnalysisConfig",
    "AnalysisResults",
    "FilterReport",
    "GenotypeData",
    "normalize_individuals",
    "read_dart",
    "run_analysis",
    "run_filter_chain",
]
