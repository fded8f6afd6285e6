import numpy as np
import pandas as pd
import pytest

from dartseq_popgen.genotypes import GenotypeData


ONE_ROW_METRICS = ["AlleleID", "CloneID", "AlleleSequence", "SNP", "SnpPosition", "CallRate", "RepAvg"]


def _write_lines(path, lines):
    with open(path, "w") as f:
        f.write("\n".join(lines) + "\n")
    return path


@pytest.fixture
def write_one_row(tmp_path):
    """Factory writing a one-row DArT SNP report; returns its path."""

    def _write(individuals, calls, repavg=None, topskip=0, with_repavg=True, allele_ids=None,
               name="report_1row.csv"):
        metrics = ONE_ROW_METRICS if with_repavg else ONE_ROW_METRICS[:-1]
        if repavg is None:
            repavg = [0.99] * len(calls)
        if allele_ids is None:
            allele_ids = [f"{100000 + i}|F|0-10:A>G-10:A>G" for i in range(len(calls))]

        width = len(metrics) + len(individuals)
        lines = []
        for row in range(topskip):
            cells = ["*"] * len(metrics) + [f"plate{row}"] * len(individuals)
            lines.append(",".join(cells[:width]))
        lines.append(",".join(metrics + list(individuals)))
        for i, locus_calls in enumerate(calls):
            values = [allele_ids[i], str(100000 + i), "TGCAG", "10:A>G", "10", "1.0"]
            if with_repavg:
                values.append(str(repavg[i]))
            lines.append(",".join(values + list(locus_calls)))
        return _write_lines(tmp_path / name, lines)

    return _write


@pytest.fixture
def write_two_row(tmp_path):
    """Factory writing a two-row DArT SNP report from (ref, snp) row pairs."""

    def _write(individuals, pairs, name="report_2row.csv"):
        metrics = ["AlleleID", "CloneID", "AlleleSequence", "SNP", "SnpPosition", "CallRate", "RepAvg"]
        lines = [",".join(metrics + list(individuals))]
        for i, (ref, snp) in enumerate(pairs):
            clone = str(200000 + i)
            lines.append(",".join([f"{clone}|F|0", clone, "TGCAG", "", "10", "1.0", "0.98"] + list(ref)))
            lines.append(",".join([f"{clone}|F|0-10:A>G", clone, "TGCAA", "10:A>G", "10", "1.0", "0.98"] + list(snp)))
        return _write_lines(tmp_path / name, lines)

    return _write


def make_genotypes(genotypes, populations=None, individuals=None, repavg=None):
    """GenotypeData from an (individuals x loci) list of allele counts."""
    genotypes = np.asarray(genotypes, dtype=float)
    n_ind, n_loc = genotypes.shape
    if individuals is None:
        individuals = [f"ind{i + 1}" for i in range(n_ind)]
    if populations is None:
        populations = ["pop1"] * n_ind
    metrics = None
    if repavg is not None:
        metrics = pd.DataFrame({"RepAvg": repavg})
    loci = [f"L{j + 1}" for j in range(n_loc)]
    return GenotypeData.from_arrays(genotypes, individuals, loci, populations, metrics)


@pytest.fixture
def genotypes_factory():
    return make_genotypes


@pytest.fixture
def two_population_data():
    """Three individuals in each of AAA and BBB, seven loci, one-row codes."""
    individuals = ["AAA1", "AAA2", "AAA3", "BBB1", "BBB2", "BBB3"]
    calls = [
        ["0", "0", "0", "1", "1", "1"],  # fixed difference
        ["0", "2", "0", "1", "2", "1"],
        ["2", "2", "0", "0", "1", "2"],
        ["0", "0", "-", "1", "1", "0"],  # call rate 5/6
        ["-", "-", "0", "-", "1", "1"],  # call rate 0.5
        ["0", "0", "0", "0", "0", "0"],  # monomorphic
        ["0", "1", "2", "0", "1", "2"],  # low repeatability
    ]
    repavg = [0.99, 0.98, 1.0, 0.97, 0.99, 0.99, 0.5]
    return individuals, calls, repavg
