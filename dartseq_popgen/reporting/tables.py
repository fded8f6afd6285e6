"""
CSV tables written by the analysis.

Every writer takes an explicit output directory and returns the path of the
file it wrote.
"""

import logging
from pathlib import Path

import pandas as pd

from ..genotypes import GenotypeData
from ..popgen.pcoa import PCoAResult
from ..preprocessing.qc_filtering import FilterReport


logger = logging.getLogger(__name__)

TABLE_FILES = {
    "basic_info": "basic_info.csv",
    "filtering": "filtering_statistics.csv",
    "heterozygosity": "heterozygosity_by_pop.csv",
    "pcoa_scores": "pcoa_scores.csv",
    "pcoa_eigenvalues": "pcoa_eigenvalues.csv",
    "fst": "fst_matrix.csv",
}


def basic_info_table(gd: GenotypeData) -> pd.DataFrame:
    """Individual, locus and population counts of a data set."""
    return pd.DataFrame({
        "Metric": ["Number_individuals", "Number_loci", "Number_populations"],
        "Value": [gd.n_ind, gd.n_loc, gd.n_pop],
    })


def write_basic_info(gd: GenotypeData, tables_dir: Path) -> Path:
    path = tables_dir / TABLE_FILES["basic_info"]
    basic_info_table(gd).to_csv(path, index=False)
    logger.info(f"Wrote {path}")
    return path


def write_filtering_statistics(report: FilterReport, tables_dir: Path) -> Path:
    path = tables_dir / TABLE_FILES["filtering"]
    report.to_dataframe().to_csv(path, index=False)
    logger.info(f"Wrote {path}")
    return path


def write_heterozygosity(table: pd.DataFrame, tables_dir: Path) -> Path:
    path = tables_dir / TABLE_FILES["heterozygosity"]
    table.to_csv(path, index=False)
    logger.info(f"Wrote {path}")
    return path


def write_pcoa(result: PCoAResult, tables_dir: Path) -> Path:
    """Write PCoA scores and eigenvalues; returns the scores path."""
    path = tables_dir / TABLE_FILES["pcoa_scores"]
    result.scores_table().to_csv(path, index=False)
    result.eigenvalue_table().to_csv(tables_dir / TABLE_FILES["pcoa_eigenvalues"], index=False)
    logger.info(f"Wrote {path}")
    return path


def write_fst_matrix(matrix: pd.DataFrame, tables_dir: Path) -> Path:
    path = tables_dir / TABLE_FILES["fst"]
    matrix.to_csv(path, index=True)
    logger.info(f"Wrote {path}")
    return path
