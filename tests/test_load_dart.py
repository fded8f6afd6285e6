import numpy as np
import pandas as pd
import pytest

from dartseq_popgen.preprocessing.load_dart import detect_format, read_dart
from dartseq_popgen.utils.exceptions import MalformedInputError, MissingFileError


INDIVIDUALS = ["AAA1", "AAA2", "BBB1"]
CALLS = [
    ["0", "1", "2"],
    ["-", "0", "0"],
]


def test_read_one_row_report(write_one_row):
    path = write_one_row(INDIVIDUALS, CALLS)
    gd = read_dart(path)

    assert gd.n_ind == 3
    assert gd.n_loc == 2
    assert gd.ind_names == INDIVIDUALS
    # 0 = reference homozygote, 1 = SNP homozygote, 2 = heterozygote
    np.testing.assert_array_equal(gd.genotype_array()[:, 0], [0.0, 2.0, 1.0])
    assert np.isnan(gd.genotype_array()[0, 1])
    assert gd.loc_names[0].startswith("100000|F")


def test_read_sets_default_population(write_one_row):
    gd = read_dart(write_one_row(INDIVIDUALS, CALLS))
    assert gd.n_pop == 1
    assert set(gd.populations) == {"pop1"}


def test_locus_metrics_are_numeric(write_one_row):
    gd = read_dart(write_one_row(INDIVIDUALS, CALLS, repavg=[0.97, 0.5]))
    assert gd.loc_metrics["RepAvg"].tolist() == [0.97, 0.5]
    # Recomputed from the calls
    assert gd.loc_metrics["CallRate"].tolist() == pytest.approx([1.0, 2 / 3])


def test_header_block_is_skipped(write_one_row):
    plain = read_dart(write_one_row(INDIVIDUALS, CALLS, name="plain.csv"))
    skipped = read_dart(write_one_row(INDIVIDUALS, CALLS, topskip=4, name="topskip.csv"))

    assert skipped.ind_names == plain.ind_names
    pd.testing.assert_frame_equal(skipped.calls, plain.calls)


def test_read_two_row_report(write_two_row):
    pairs = [
        (["1", "1", "0"], ["0", "1", "1"]),
        (["-", "0", "1"], ["-", "0", "0"]),
    ]
    gd = read_dart(write_two_row(INDIVIDUALS, pairs))

    assert gd.n_loc == 2
    assert gd.loc_names == ["200000", "200001"]
    genotypes = gd.genotype_array()
    np.testing.assert_array_equal(genotypes[:, 0], [0.0, 1.0, 2.0])
    assert np.isnan(genotypes[0, 1])
    # Neither allele present is a missing call
    assert np.isnan(genotypes[1, 1])
    assert genotypes[2, 1] == 0.0


def test_two_row_forced_on_odd_rows(write_one_row):
    path = write_one_row(INDIVIDUALS, [["0", "1", "1"]])
    with pytest.raises(MalformedInputError, match="odd number"):
        read_dart(path, fmt="2row")


def test_missing_file(tmp_path):
    with pytest.raises(MissingFileError) as excinfo:
        read_dart(tmp_path / "nope.csv")
    assert isinstance(excinfo.value, FileNotFoundError)


def test_missing_last_metric(write_one_row):
    path = write_one_row(INDIVIDUALS, CALLS, with_repavg=False)
    with pytest.raises(MalformedInputError, match="RepAvg"):
        read_dart(path)


def test_other_last_metric(write_one_row):
    path = write_one_row(INDIVIDUALS, CALLS, with_repavg=False)
    gd = read_dart(path, last_metric="CallRate")
    assert gd.n_ind == 3
    assert not gd.has_metric("RepAvg")


def test_unknown_genotype_code(write_one_row):
    path = write_one_row(INDIVIDUALS, [["0", "7", "2"]])
    with pytest.raises(MalformedInputError, match="7"):
        read_dart(path)


def test_non_numeric_metric(write_one_row):
    path = write_one_row(INDIVIDUALS, CALLS, repavg=["high", "0.9"])
    with pytest.raises(MalformedInputError, match="RepAvg"):
        read_dart(path)


def test_duplicate_locus_ids(write_one_row):
    path = write_one_row(INDIVIDUALS, CALLS, allele_ids=["same", "same"])
    with pytest.raises(MalformedInputError, match="Locus identifiers"):
        read_dart(path)


def test_empty_file(tmp_path):
    path = tmp_path / "empty.csv"
    path.write_text("")
    with pytest.raises(MalformedInputError):
        read_dart(path)


def test_ind_metafile_assigns_populations(write_one_row, tmp_path):
    meta = tmp_path / "individuals.csv"
    meta.write_text("id,pop\nAAA1,north\nAAA2,north\nZZZ9,south\n")
    gd = read_dart(write_one_row(INDIVIDUALS, CALLS), ind_metafile=meta)

    assert gd.populations.tolist() == ["north", "north", "pop1"]
    assert gd.n_pop == 2


def test_ind_metafile_without_columns(write_one_row, tmp_path):
    meta = tmp_path / "individuals.csv"
    meta.write_text("sample,group\nAAA1,north\n")
    with pytest.raises(MalformedInputError, match="pop"):
        read_dart(write_one_row(INDIVIDUALS, CALLS), ind_metafile=meta)


def test_detect_format():
    metrics = pd.DataFrame({"CloneID": ["1", "1", "2", "2"]})
    two_row = pd.DataFrame([["1", "0"], ["0", "1"], ["1", "1"], ["-", "1"]])
    assert detect_format(two_row, metrics) == "2row"

    with_het = two_row.copy()
    with_het.iloc[0, 0] = "2"
    assert detect_format(with_het, metrics) == "1row"

    distinct = pd.DataFrame({"CloneID": ["1", "2", "3", "4"]})
    assert detect_format(two_row, distinct) == "1row"


def test_short_locus_row(tmp_path):
    path = tmp_path / "short.csv"
    path.write_text("AlleleID,CloneID,RepAvg,A1,A2,B1\nL1,1,0.99,0,1,2\nL2,2,0.99,0\n")
    with pytest.raises(MalformedInputError, match="Line 3"):
        read_dart(path)


def test_empty_ind_metafile(write_one_row, tmp_path):
    meta = tmp_path / "individuals.csv"
    meta.write_text("")
    with pytest.raises(MalformedInputError, match="empty"):
        read_dart(write_one_row(INDIVIDUALS, CALLS), ind_metafile=meta)


def test_detect_format_warns_on_clone_pairs(caplog):
    metrics = pd.DataFrame({"CloneID": ["1", "1"]})
    codes = pd.DataFrame([["1", "0"], ["0", "1"]])
    with caplog.at_level("WARNING"):
        assert detect_format(codes, metrics) == "2row"
    assert "--format 1row" in caplog.text
