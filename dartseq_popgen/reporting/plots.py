"""
Figures of the analysis: PCoA scatter plot, heterozygosity bar plot and
Fst heatmap.
"""

import logging
from pathlib import Path
from typing import Dict, List, Tuple

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
from matplotlib import colors as mcolors
import numpy as np
import pandas as pd

from ..popgen.pcoa import PCoAResult


logger = logging.getLogger(__name__)

PLOT_FILES = {
    "pcoa": "pcoa_analysis.png",
    "heterozygosity": "heterozygosity_barplot.png",
    "fst": "fst_heatmap.png",
}


def get_population_colors(populations: List[str]) -> Dict[str, str]:
    """Assign a distinct color to each population, in sorted order."""
    cmap = plt.get_cmap("tab20")
    return {
        pop: mcolors.to_hex(cmap(i % cmap.N))
        for i, pop in enumerate(sorted(populations))
    }


def create_pcoa_plot(
    result: PCoAResult,
    output_file: Path,
    axis_x: int = 1,
    axis_y: int = 2,
    title: str = "Principal Coordinate Analysis (PCoA)",
    figsize: Tuple[int, int] = (10, 8),
) -> Path:
    """
    Create a PCoA scatter plot colored by population.

    Args:
        result: PCoA result
        output_file: Output file path
        axis_x: Axis number for x (1-based)
        axis_y: Axis number for y (1-based)
        title: Plot title
        figsize: Figure size
    """
    fig, ax = plt.subplots(figsize=figsize)

    variance = result.variance_explained()
    scores = result.scores_table()
    colors = get_population_colors(list(scores["Population"].unique()))

    # A single retained axis is plotted against zero
    x_col = f"Axis{axis_x}"
    y_col = f"Axis{axis_y}" if axis_y <= result.n_axes else None

    for pop in sorted(colors):
        subset = scores[scores["Population"] == pop]
        ax.scatter(
            subset[x_col],
            subset[y_col] if y_col else np.zeros(len(subset)),
            c=colors[pop],
            label=pop,
            alpha=0.7,
            s=40,
            edgecolors="none",
        )

    ax.set_xlabel(f"PC{axis_x} ({variance[axis_x - 1]:.1f}%)", fontsize=12)
    if y_col:
        ax.set_ylabel(f"PC{axis_y} ({variance[axis_y - 1]:.1f}%)", fontsize=12)
    ax.set_title(title, fontsize=14, fontweight="bold")
    ax.legend(
        bbox_to_anchor=(1.02, 1),
        loc="upper left",
        fontsize=8,
        ncol=1 if len(colors) <= 20 else 2,
        title="Population",
    )
    ax.grid(True, alpha=0.3)

    plt.tight_layout()
    plt.savefig(output_file, dpi=300, bbox_inches="tight")
    plt.close(fig)

    logger.info(f"Created plot: {output_file}")
    return output_file


def create_heterozygosity_plot(
    table: pd.DataFrame,
    output_file: Path,
    figsize: Tuple[int, int] = (8, 6),
) -> Path:
    """
    Bar plot of observed heterozygosity per population.

    Args:
        table: Heterozygosity table with ``pop`` and ``Ho`` columns
        output_file: Output file path
        figsize: Figure size
    """
    fig, ax = plt.subplots(figsize=figsize)

    ax.bar(table["pop"].astype(str), table["Ho"], color="steelblue", alpha=0.7)
    ax.set_xlabel("Population", fontsize=12)
    ax.set_ylabel("Observed Heterozygosity (Ho)", fontsize=12)
    ax.set_title("Observed Heterozygosity by Population", fontsize=14, fontweight="bold")
    plt.setp(ax.get_xticklabels(), rotation=45, ha="right")

    plt.tight_layout()
    plt.savefig(output_file, dpi=300, bbox_inches="tight")
    plt.close(fig)

    logger.info(f"Created plot: {output_file}")
    return output_file


def create_fst_heatmap(
    matrix: pd.DataFrame,
    output_file: Path,
    figsize: Tuple[int, int] = (8, 6),
) -> Path:
    """
    Heatmap of a pairwise Fst matrix, diverging around its median.

    Args:
        matrix: Symmetric Fst DataFrame
        output_file: Output file path
        figsize: Figure size
    """
    fig, ax = plt.subplots(figsize=figsize)

    values = matrix.to_numpy(dtype=float)
    finite = values[np.isfinite(values)]
    center = float(np.median(finite)) if finite.size else 0.0
    # TwoSlopeNorm needs vmin < vcenter < vmax
    low = min(float(finite.min()) if finite.size else center, center - 1e-6)
    high = max(float(finite.max()) if finite.size else center, center + 1e-6)
    norm = mcolors.TwoSlopeNorm(vcenter=center, vmin=low, vmax=high)

    image = ax.imshow(np.ma.masked_invalid(values), cmap="bwr", norm=norm)
    ax.set_xticks(range(matrix.shape[1]))
    ax.set_xticklabels(matrix.columns, rotation=45, ha="right")
    ax.set_yticks(range(matrix.shape[0]))
    ax.set_yticklabels(matrix.index)
    fig.colorbar(image, ax=ax, label="Fst")
    ax.set_title("Pairwise Fst between Populations", fontsize=14, fontweight="bold")

    plt.tight_layout()
    plt.savefig(output_file, dpi=300, bbox_inches="tight")
    plt.close(fig)

    logger.info(f"Created plot: {output_file}")
    return output_file
