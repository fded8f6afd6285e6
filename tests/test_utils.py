import numpy as np
import pandas as pd
import pytest

from dartseq_popgen.utils.config import AnalysisConfig, get_tool_path
from dartseq_popgen.utils.exceptions import (
    DartseqError,
    EmptyInputError,
    InsufficientDataError,
    MalformedInputError,
    MissingFileError,
)
from dartseq_popgen.utils.file_utils import (
    create_results_structure,
    format_size,
    parse_substitution_args,
    read_substitution_file,
)
from dartseq_popgen.utils.genetics_utils import (
    alt_allele_frequency,
    call_rate,
    decode_one_row,
    is_polymorphic,
)


nan = np.nan


def test_error_hierarchy():
    assert issubclass(EmptyInputError, InsufficientDataError)
    for error in (MissingFileError, MalformedInputError, InsufficientDataError):
        assert issubclass(error, DartseqError)
    assert str(MissingFileError("x.csv", "DArT report")) == "DArT report not found: x.csv"


def test_analysis_config_validation():
    assert AnalysisConfig().callrate_threshold == 0.8
    with pytest.raises(ValueError):
        AnalysisConfig(callrate_threshold=1.5)
    with pytest.raises(ValueError):
        AnalysisConfig(prefix_length=0)
    with pytest.raises(ValueError):
        AnalysisConfig(n_axes=0)


def test_unknown_tool():
    with pytest.raises(ValueError, match="Unknown tool"):
        get_tool_path("samtools")


def test_create_results_structure(tmp_path):
    dirs = create_results_structure(tmp_path / "out")
    assert set(dirs) == {"results", "tables", "plots", "reports"}
    assert all(path.is_dir() for path in dirs.values())


def test_read_substitution_file(tmp_path):
    sub_file = tmp_path / "rename.tsv"
    sub_file.write_text("# old\tnew\nSm \tSMK\n.\t\nSMK0\tSMK\n")
    subs = read_substitution_file(sub_file)
    assert list(subs.items()) == [("Sm ", "SMK"), (".", ""), ("SMK0", "SMK")]


def test_read_substitution_file_malformed(tmp_path):
    sub_file = tmp_path / "rename.tsv"
    sub_file.write_text("a\tb\tc\n")
    with pytest.raises(MalformedInputError):
        read_substitution_file(sub_file)


def test_parse_substitution_args():
    assert parse_substitution_args(["a=b", " =", "x=y=z"]) == {"a": "b", " ": "", "x": "y=z"}
    with pytest.raises(ValueError):
        parse_substitution_args(["novalue"])


def test_format_size():
    assert format_size(512) == "512.00 B"
    assert format_size(2048) == "2.00 KB"


def test_decode_one_row_accepts_float_codes():
    decoded = decode_one_row(pd.DataFrame([["0.0", "1.0", "2", "-"]]))
    np.testing.assert_array_equal(decoded.to_numpy()[0, :3], [0, 2, 1])
    assert np.isnan(decoded.to_numpy()[0, 3])


def test_per_locus_summaries():
    genotypes = np.array([[0, 2, nan], [2, 2, nan], [1, 2, nan]])
    np.testing.assert_allclose(call_rate(genotypes), [1, 1, 0])
    assert is_polymorphic(genotypes).tolist() == [True, False, False]
    freq = alt_allele_frequency(genotypes)
    assert freq[0] == pytest.approx(0.5)
    assert np.isnan(freq[2])
