#!/usr/bin/env python3
"""
DArTseq population genetics analysis.

This script imports a DArT SNP report, corrects individual names, applies
the quality filters, computes population genetics statistics and writes
tables, plots and a report.

Features:
    - Import one-row or two-row DArT SNP reports
    - Rename individuals and derive populations from name prefixes
    - Filter loci by RepAvg, call rate and polymorphism
    - Heterozygosity by population
    - Principal coordinate analysis (PCoA)
    - Pairwise Fst between populations
    - CSV tables, PNG plots, Markdown/HTML report, optional e-mail summary

Usage:
    dartseq-analysis --input Report_DSph25-10737_SNP_2.csv \\
                     --results-dir 03_results

Example:
    # Stricter call rate, custom population prefix
    dartseq-analysis --input report.csv --callrate 0.9 --prefix-length 4

    # Fix individual names before deriving populations
    dartseq-analysis --input report.csv --rename "Smok_=SMK" --rename " ="
"""

import argparse
import logging
import pickle
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Optional, TypeVar, Union

import pandas as pd

from .genotypes import GenotypeData
from .popgen.fst import pairwise_fst
from .popgen.heterozygosity import heterozygosity_by_population
from .popgen.pcoa import PCoAResult, run_pcoa
from .preprocessing.load_dart import FORMATS, read_dart
from .preprocessing.normalize_ids import normalize_individuals
from .preprocessing.qc_filtering import FilterReport, run_filter_chain, write_qc_report
from .reporting import plots, tables
from .reporting.notify import send_summary_email
from .reporting.report import RunSummary, convert_to_html, write_markdown_report, write_summary
from .utils.config import (
    DART_DEFAULTS,
    LOGS_DIR,
    PCOA_DEFAULTS,
    POPULATION_DEFAULTS,
    QC_DEFAULTS,
    RESULTS_DIR,
    AnalysisConfig,
    setup_logging,
)
from .utils.exceptions import DartseqError, InsufficientDataError
from .utils.file_utils import (
    create_results_structure,
    parse_substitution_args,
    read_substitution_file,
)


logger = logging.getLogger(__name__)

T = TypeVar("T")

HETEROZYGOSITY = "heterozygosity"
PCOA = "pcoa"
FST = "fst"

FILTERED_OBJECT = "genotypes_filtered.pkl"


@dataclass
class AnalysisResults:
    """Everything a run computed, plus the files it wrote."""

    loaded: GenotypeData
    normalized: GenotypeData
    filtered: GenotypeData
    filter_report: FilterReport
    heterozygosity: Optional[pd.DataFrame] = None
    pcoa: Optional[PCoAResult] = None
    fst: Optional[pd.DataFrame] = None
    failed: Dict[str, str] = field(default_factory=dict)
    outputs: Dict[str, Path] = field(default_factory=dict)


def _run_statistic(
    name: str,
    func: Callable[[], T],
    failed: Dict[str, str],
) -> Optional[T]:
    """Run one statistic; a data shortage is logged and recorded, not raised."""
    try:
        return func()
    except InsufficientDataError as e:
        logger.error(f"{name} failed: {e}")
        failed[name] = str(e)
        return None


def compute_statistics(
    gd: GenotypeData,
    n_axes: int = PCOA_DEFAULTS["n_axes"],
):
    """
    Compute heterozygosity, PCoA and pairwise Fst independently.

    Args:
        gd: Filtered genotype data
        n_axes: Number of PCoA axes

    Returns:
        Tuple of (heterozygosity table, PCoA result, Fst matrix, failures).
        A failed statistic is None and its message is in failures; Fst is
        also None when there are fewer than 2 populations.
    """
    logger.info("=" * 60)
    logger.info("Population genetics analyses")
    logger.info("=" * 60)

    failed: Dict[str, str] = {}
    het = _run_statistic(HETEROZYGOSITY, lambda: heterozygosity_by_population(gd), failed)
    pcoa = _run_statistic(PCOA, lambda: run_pcoa(gd, n_axes), failed)
    fst = _run_statistic(FST, lambda: pairwise_fst(gd), failed)
    return het, pcoa, fst, failed


def write_outputs(
    results: AnalysisResults,
    results_dir: Path,
    config: AnalysisConfig,
) -> Dict[str, Path]:
    """
    Write tables, plots, reports and the filtered genotype object.

    Args:
        results: Results of the run
        results_dir: Base results directory
        config: Analysis options (report title and author)

    Returns:
        Dictionary mapping output names to paths
    """
    dirs = create_results_structure(results_dir)
    tables_dir, plots_dir, report_dir = dirs["tables"], dirs["plots"], dirs["reports"]
    outputs: Dict[str, Path] = {}

    logger.info("=" * 60)
    logger.info("Writing tables")
    logger.info("=" * 60)
    outputs["basic_info"] = tables.write_basic_info(results.loaded, tables_dir)
    outputs["filtering"] = tables.write_filtering_statistics(results.filter_report, tables_dir)
    if results.heterozygosity is not None:
        outputs["heterozygosity"] = tables.write_heterozygosity(results.heterozygosity, tables_dir)
    if results.pcoa is not None:
        outputs["pcoa_scores"] = tables.write_pcoa(results.pcoa, tables_dir)
    if results.fst is not None:
        outputs["fst"] = tables.write_fst_matrix(results.fst, tables_dir)

    logger.info("=" * 60)
    logger.info("Creating plots")
    logger.info("=" * 60)
    if results.pcoa is not None:
        outputs["pcoa_plot"] = plots.create_pcoa_plot(
            results.pcoa, plots_dir / plots.PLOT_FILES["pcoa"]
        )
    if results.heterozygosity is not None and len(results.heterozygosity) > 1:
        outputs["heterozygosity_plot"] = plots.create_heterozygosity_plot(
            results.heterozygosity, plots_dir / plots.PLOT_FILES["heterozygosity"]
        )
    if results.fst is not None:
        outputs["fst_plot"] = plots.create_fst_heatmap(
            results.fst, plots_dir / plots.PLOT_FILES["fst"]
        )

    logger.info("=" * 60)
    logger.info("Generating report")
    logger.info("=" * 60)
    qc_report = report_dir / "qc_report.txt"
    write_qc_report(results.filter_report, qc_report)
    outputs["qc_report"] = qc_report

    summary = RunSummary(
        n_ind=results.filtered.n_ind,
        n_loc_initial=results.filter_report.initial_loci,
        n_loc=results.filtered.n_loc,
        n_pop=results.filtered.n_pop,
        filtering=results.filter_report.to_dataframe(),
        heterozygosity=results.heterozygosity,
        variance_explained=(
            None if results.pcoa is None else results.pcoa.variance_explained().tolist()
        ),
        fst=results.fst,
        failed=results.failed,
        species=config.species,
        author=config.author,
    )
    outputs["report"] = write_markdown_report(summary, tables_dir, plots_dir, report_dir)
    html = convert_to_html(outputs["report"])
    if html is not None:
        outputs["report_html"] = html

    filtered_path = dirs["results"] / FILTERED_OBJECT
    with open(filtered_path, "wb") as f:
        pickle.dump(results.filtered, f)
    outputs["filtered"] = filtered_path
    logger.info(f"Filtered genotype object saved: {filtered_path}")

    outputs["summary"] = write_summary(
        dirs["results"], plots_dir, tables_dir, report_dir, config.species
    )
    return outputs


def run_analysis(
    input_file: Union[str, Path],
    results_dir: Union[str, Path],
    config: Optional[AnalysisConfig] = None,
    last_metric: str = DART_DEFAULTS["last_metric"],
    fmt: str = DART_DEFAULTS["format"],
    ind_metafile: Optional[Union[str, Path]] = None,
    notify_email: Optional[str] = None,
) -> AnalysisResults:
    """
    Run the complete analysis.

    Loader and name correction errors propagate before anything is written.
    Statistic failures are recorded in the results and the report.

    Args:
        input_file: DArT SNP report
        results_dir: Output directory (created if needed)
        config: Analysis options (defaults if None)
        last_metric: Last locus metric column of the report
        fmt: DArT encoding ("auto", "1row", "2row")
        ind_metafile: Optional CSV assigning populations
        notify_email: Address to mail the run summary to

    Returns:
        AnalysisResults
    """
    config = config or AnalysisConfig()
    results_dir = Path(results_dir)

    logger.info("=" * 60)
    logger.info("Import of DArTseq data")
    logger.info("=" * 60)
    loaded = read_dart(input_file, last_metric=last_metric, fmt=fmt, ind_metafile=ind_metafile)
    normalized = normalize_individuals(
        loaded,
        substitutions=config.substitutions,
        prefix_length=config.prefix_length,
        sanitize=config.sanitize_ids,
    )

    filtered, filter_report = run_filter_chain(
        normalized,
        repavg_threshold=config.repavg_threshold,
        callrate_threshold=config.callrate_threshold,
        use_repavg=config.filter_repavg,
        use_callrate=config.filter_callrate,
        use_monomorphs=config.filter_monomorphs,
    )

    het, pcoa, fst, failed = compute_statistics(filtered, config.n_axes)
    results = AnalysisResults(
        loaded=loaded,
        normalized=normalized,
        filtered=filtered,
        filter_report=filter_report,
        heterozygosity=het,
        pcoa=pcoa,
        fst=fst,
        failed=failed,
    )
    results.outputs = write_outputs(results, results_dir, config)

    if notify_email:
        subject = "DArTseq analysis finished"
        if config.species:
            subject += f" - {config.species}"
        send_summary_email(notify_email, results.outputs["summary"], subject)

    return results


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Population genetics analysis of a DArTseq SNP report.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Default thresholds
    %(prog)s --input report.csv --results-dir 03_results/

    # Populations from a metadata file, no RepAvg filter
    %(prog)s --input report.csv --ind-metafile individuals.csv --no-repavg

Output:
    - tables/*.csv - basic info, filtering, heterozygosity, PCoA, Fst
    - plots/*.png - PCoA, heterozygosity, Fst heatmap
    - reports/dartseq_report.md (.html with pandoc), qc_report.txt, summary.txt
    - genotypes_filtered.pkl - filtered GenotypeData
        """,
    )

    parser.add_argument("--input", "-i", required=True, help="DArT SNP report CSV (required)")
    parser.add_argument(
        "--results-dir", "-o",
        default=str(RESULTS_DIR),
        help=f"Output directory (default: {RESULTS_DIR})",
    )
    parser.add_argument(
        "--last-metric",
        default=DART_DEFAULTS["last_metric"],
        help=f"Last locus metric column (default: {DART_DEFAULTS['last_metric']})",
    )
    parser.add_argument(
        "--format",
        choices=FORMATS,
        default=DART_DEFAULTS["format"],
        help=f"Report encoding (default: {DART_DEFAULTS['format']})",
    )
    parser.add_argument("--ind-metafile", help="CSV with id and pop columns (optional)")

    parser.add_argument(
        "--repavg",
        type=float,
        default=QC_DEFAULTS["repavg"],
        help=f"Minimum locus RepAvg (default: {QC_DEFAULTS['repavg']})",
    )
    parser.add_argument(
        "--callrate",
        type=float,
        default=QC_DEFAULTS["callrate"],
        help=f"Minimum locus call rate (default: {QC_DEFAULTS['callrate']})",
    )
    parser.add_argument("--no-repavg", action="store_true", help="Skip the RepAvg filter")
    parser.add_argument("--no-callrate", action="store_true", help="Skip the call rate filter")
    parser.add_argument(
        "--keep-monomorphs", action="store_true", help="Do not remove monomorphic loci"
    )

    parser.add_argument(
        "--prefix-length",
        type=int,
        default=POPULATION_DEFAULTS["prefix_length"],
        help=(
            "Name prefix length used as population when the report has none "
            f"(default: {POPULATION_DEFAULTS['prefix_length']})"
        ),
    )
    parser.add_argument(
        "--rename",
        action="append",
        default=[],
        metavar="OLD=NEW",
        help="Replace OLD by NEW in individual names (repeatable, applied in order)",
    )
    parser.add_argument("--rename-file", help="TAB separated OLD/NEW substitutions file")
    parser.add_argument(
        "--keep-raw-names",
        action="store_true",
        help="Do not replace characters outside [A-Za-z0-9_-] in names",
    )

    parser.add_argument(
        "--n-axes",
        type=int,
        default=PCOA_DEFAULTS["n_axes"],
        help=f"Number of PCoA axes (default: {PCOA_DEFAULTS['n_axes']})",
    )

    parser.add_argument("--species", help="Species name for the report title")
    parser.add_argument("--author", help="Author shown in the report")
    parser.add_argument("--notify-email", help="Mail the run summary to this address")
    parser.add_argument("--log-file", help="Path to log file")
    return parser


def main(argv=None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    log_file = Path(args.log_file) if args.log_file else LOGS_DIR / "dartseq_analysis.log"
    setup_logging(log_file)

    logger.info("=" * 60)
    logger.info("DArTseq population genetics analysis")
    logger.info("=" * 60)

    try:
        substitutions = {}
        if args.rename_file:
            substitutions.update(read_substitution_file(args.rename_file))
        substitutions.update(parse_substitution_args(args.rename))

        config = AnalysisConfig(
            repavg_threshold=args.repavg,
            callrate_threshold=args.callrate,
            prefix_length=args.prefix_length,
            substitutions=substitutions,
            sanitize_ids=not args.keep_raw_names,
            n_axes=args.n_axes,
            filter_repavg=not args.no_repavg,
            filter_callrate=not args.no_callrate,
            filter_monomorphs=not args.keep_monomorphs,
            species=args.species,
            author=args.author,
        )
    except (DartseqError, ValueError) as e:
        logger.error(str(e))
        return 1

    results_dir = Path(args.results_dir).resolve()
    logger.info(f"Input: {args.input}")
    logger.info(f"Results directory: {results_dir}")

    try:
        results = run_analysis(
            args.input,
            results_dir,
            config=config,
            last_metric=args.last_metric,
            fmt=args.format,
            ind_metafile=args.ind_metafile,
            notify_email=args.notify_email,
        )
    except DartseqError as e:
        logger.error(str(e))
        logger.error("Analysis failed")
        return 1

    logger.info("=" * 60)
    if results.failed:
        logger.warning(f"Analysis finished with failed statistics: {', '.join(results.failed)}")
    else:
        logger.info("Analysis completed successfully!")
    logger.info(f"Results saved to: {results_dir}")
    logger.info("=" * 60)
    return 0


if __name__ == "__main__":
    sys.exit(main())
