#!/usr/bin/env python3
"""
Markdown/HTML report and run summary.

The Markdown report lists the data summary, the filter steps, the
statistics that were computed or failed, and every table and plot written.
When pandoc is available it is converted to a self-contained HTML file.
"""

import logging
import subprocess
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import Dict, List, Optional

import pandas as pd

from ..utils.config import get_tool_path
from ..utils.file_utils import format_size, list_files


logger = logging.getLogger(__name__)

REPORT_NAME = "dartseq_report"
PANDOC_EMBED_FLAGS = [
    ["--embed-resources", "--standalone"],
    ["--self-contained"],
]


@dataclass
class RunSummary:
    """What a run produced, for the report."""

    n_ind: int
    n_loc_initial: int
    n_loc: int
    n_pop: int
    filtering: pd.DataFrame
    heterozygosity: Optional[pd.DataFrame] = None
    variance_explained: Optional[List[float]] = None
    fst: Optional[pd.DataFrame] = None
    failed: Dict[str, str] = field(default_factory=dict)
    species: Optional[str] = None
    author: Optional[str] = None


def _markdown_table(df: pd.DataFrame, float_format: str = "{:.4f}") -> List[str]:
    """Render a small DataFrame as a Markdown pipe table."""
    header = [str(c) for c in df.columns]
    lines = [
        "| " + " | ".join(header) + " |",
        "| " + " | ".join("---" for _ in header) + " |",
    ]
    for row in df.itertuples(index=False):
        cells = []
        for value in row:
            if isinstance(value, float):
                cells.append(float_format.format(value))
            else:
                cells.append(str(value))
        lines.append("| " + " | ".join(cells) + " |")
    return lines


def write_markdown_report(
    summary: RunSummary,
    tables_dir: Path,
    plots_dir: Path,
    report_dir: Path,
) -> Path:
    """
    Write the Markdown report.

    Args:
        summary: Results of the run
        tables_dir: Directory holding the CSV tables
        plots_dir: Directory holding the PNG plots
        report_dir: Output directory

    Returns:
        Path of the Markdown file
    """
    report_file = report_dir / f"{REPORT_NAME}.md"
    title = "# DArTseq Analysis Report"
    if summary.species:
        title += f" - {summary.species}"

    lines = [title, ""]
    lines.append(f"**Analysis date:** {date.today().isoformat()}  ")
    if summary.author:
        lines.append(f"**Author:** {summary.author}  ")
    lines.append("")

    lines += ["## Data summary", ""]
    lines.append(f"- **Individuals:** {summary.n_ind}")
    lines.append(f"- **Loci before filtering:** {summary.n_loc_initial}")
    lines.append(f"- **Loci after filtering:** {summary.n_loc}")
    lines.append(f"- **Populations:** {summary.n_pop}")
    lines.append("")

    lines += ["## Filtering", ""]
    lines += _markdown_table(summary.filtering)
    lines.append("")

    lines += ["## Statistics", ""]
    if summary.heterozygosity is not None:
        lines += ["### Heterozygosity by population", ""]
        lines += _markdown_table(summary.heterozygosity)
        lines.append("")
    if summary.variance_explained is not None:
        lines += ["### Principal coordinate analysis", ""]
        for k, pct in enumerate(summary.variance_explained, start=1):
            lines.append(f"- PC{k}: {pct:.1f}% of variance")
        lines.append("")
    if summary.fst is not None:
        lines += ["### Pairwise Fst", ""]
        fst = summary.fst.rename_axis("Population").reset_index()
        lines += _markdown_table(fst)
        lines.append("")
    if summary.failed:
        lines += ["### Failed statistics", ""]
        for name, message in summary.failed.items():
            lines.append(f"- **{name}:** {message}")
        lines.append("")

    lines += ["## Generated files", "", "### Tables (.csv)"]
    lines += [f"- {p.name}" for p in list_files(tables_dir, ".csv")]
    lines += ["", "### Plots (.png)"]
    lines += [f"- {p.name}" for p in list_files(plots_dir, ".png")]
    lines.append("")

    with open(report_file, "w") as f:
        f.write("\n".join(lines))

    logger.info(f"Report written to: {report_file}")
    return report_file


def convert_to_html(markdown_file: Path) -> Optional[Path]:
    """
    Convert a Markdown report to self-contained HTML with pandoc.

    Returns:
        Path of the HTML file, or None if pandoc is unavailable or failed
    """
    pandoc = get_tool_path("pandoc")
    if pandoc is None:
        logger.info("pandoc not found - skipping HTML report")
        return None

    html_file = markdown_file.with_suffix(".html")
    base_cmd = [
        str(pandoc),
        str(markdown_file),
        "-o", str(html_file),
        "--metadata", f"title={REPORT_NAME}",
    ]
    logger.info("Generating HTML report...")

    # --embed-resources needs pandoc >= 2.19, older builds only know --self-contained
    for flags in PANDOC_EMBED_FLAGS:
        cmd = base_cmd + flags
        logger.debug(f"Command: {' '.join(cmd)}")
        result = subprocess.run(cmd, capture_output=True, text=True, check=False)
        if result.returncode == 0:
            break
        logger.debug(f"pandoc {' '.join(flags)} failed: {result.stderr.strip()}")
    else:
        logger.warning(f"pandoc failed: {result.stderr.strip()}")
        return None

    logger.info(f"HTML report generated: {html_file}")
    return html_file


def write_summary(
    results_dir: Path,
    plots_dir: Path,
    tables_dir: Path,
    report_dir: Path,
    species: Optional[str] = None,
) -> Path:
    """
    Write a plain-text listing of the generated plots and tables.

    Returns:
        Path of summary.txt
    """
    summary_file = report_dir / "summary.txt"
    heading = "DArTseq analysis summary"
    if species:
        heading += f" - {species}"

    with open(summary_file, "w") as f:
        f.write(f"{heading}\n")
        f.write(f"Date: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}\n")
        f.write("=" * 38 + "\n\n")
        f.write(f"Results directory: {results_dir}\n\n")
        for label, directory in (("PLOTS", plots_dir), ("TABLES", tables_dir)):
            f.write(f"{label}:\n")
            for path in list_files(directory):
                f.write(f"  {path.name}\t{format_size(path.stat().st_size)}\n")
            f.write("\n")

    logger.info(f"Summary written to: {summary_file}")
    return summary_file
