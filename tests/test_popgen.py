import numpy as np
import pytest
from scipy.spatial.distance import pdist

from dartseq_popgen.popgen import heterozygosity_by_population, pairwise_fst, run_pcoa
from dartseq_popgen.popgen.backends import (
    compute_distance_matrix,
    estimate_differentiation,
    impute_mean,
    ordinate,
    orient_axes,
)
from dartseq_popgen.utils.exceptions import EmptyInputError, InsufficientDataError


nan = np.nan


@pytest.fixture
def structured(genotypes_factory):
    """Two populations of three individuals with some missing calls."""
    genotypes = [
        [0, 0, 2, 1, 0, nan],
        [0, 1, 2, 1, 0, 0],
        [0, 0, 1, nan, 1, 0],
        [2, 2, 0, 1, 2, 1],
        [2, 1, 0, 0, 2, 2],
        [2, 2, nan, 0, 1, 2],
    ]
    pops = ["AAA"] * 3 + ["BBB"] * 3
    return genotypes_factory(genotypes, populations=pops)


# ------------------------------------------------------------------------------
# Heterozygosity
# ------------------------------------------------------------------------------

def test_heterozygosity_table(structured):
    table = heterozygosity_by_population(structured)

    assert list(table.columns) == ["pop", "n_ind", "n_loc", "Ho", "He"]
    assert table["pop"].tolist() == ["AAA", "BBB"]
    assert table["n_ind"].tolist() == [3, 3]
    assert table["Ho"].between(0, 1).all()
    assert table["He"].between(0, 1).all()


def test_heterozygosity_all_heterozygous(genotypes_factory):
    gd = genotypes_factory([[1, 1], [1, 1]])
    row = heterozygosity_by_population(gd).iloc[0]

    assert row["Ho"] == pytest.approx(1.0)
    assert row["He"] == pytest.approx(0.5)
    assert row["n_loc"] == 2


def test_heterozygosity_ignores_uncalled_loci(genotypes_factory):
    gd = genotypes_factory(
        [[0, 1, nan], [2, 1, nan], [0, 0, 1], [0, 0, 1]],
        populations=["A", "A", "B", "B"],
    )
    table = heterozygosity_by_population(gd).set_index("pop")
    assert table.loc["A", "n_loc"] == 2
    assert table.loc["A", "Ho"] == pytest.approx(0.5)
    assert table.loc["B", "n_loc"] == 3


def test_heterozygosity_population_without_calls(genotypes_factory):
    gd = genotypes_factory(
        [[nan, nan], [nan, nan], [0, 1], [1, 2]],
        populations=["A", "A", "B", "B"],
    )
    with pytest.raises(InsufficientDataError, match="A"):
        heterozygosity_by_population(gd)


def test_heterozygosity_no_loci(genotypes_factory):
    gd = genotypes_factory(np.empty((3, 0)))
    with pytest.raises(EmptyInputError):
        heterozygosity_by_population(gd)


# ------------------------------------------------------------------------------
# PCoA
# ------------------------------------------------------------------------------

def test_pcoa_shape_and_variance(structured):
    result = run_pcoa(structured, n_axes=3)

    assert result.scores.shape == (6, 3)
    assert result.axis_names == ["Axis1", "Axis2", "Axis3"]
    variance = result.variance_explained()
    assert (variance >= 0).all()
    assert (variance <= 100).all()
    # rounded to 1 decimal per axis
    assert variance.sum() <= 100 + 0.15
    assert list(variance) == sorted(variance, reverse=True)


def test_pcoa_separates_populations(structured):
    result = run_pcoa(structured)
    axis1 = result.scores["Axis1"]
    group_a = axis1.iloc[:3]
    group_b = axis1.iloc[3:]
    assert (group_a.max() < group_b.min()) or (group_b.max() < group_a.min())


def test_pcoa_sign_convention(structured):
    scores = run_pcoa(structured).scores.to_numpy()
    for k in range(scores.shape[1]):
        column = scores[:, k]
        assert column[np.argmax(np.abs(column))] >= 0


def test_pcoa_pads_missing_axes(genotypes_factory):
    gd = genotypes_factory([[0, 0], [2, 0], [0, 2]])
    result = run_pcoa(gd, n_axes=4)

    assert result.scores.shape == (3, 4)
    assert len(result.eigenvalues) == 2
    assert (result.scores[["Axis3", "Axis4"]].to_numpy() == 0).all()
    assert list(result.variance_explained()[2:]) == [0.0, 0.0]


def test_pcoa_reproduces_euclidean_distances(genotypes_factory):
    genotypes = np.array([[0, 1, 2], [2, 2, 0], [1, 0, 0], [0, 2, 1]], dtype=float)
    result = run_pcoa(genotypes_factory(genotypes), n_axes=4)
    np.testing.assert_allclose(pdist(result.scores.to_numpy()), pdist(genotypes), atol=1e-8)


def test_pcoa_needs_two_individuals(genotypes_factory):
    with pytest.raises(InsufficientDataError):
        run_pcoa(genotypes_factory([[0, 1, 2]]))


def test_pcoa_no_loci(genotypes_factory):
    with pytest.raises(EmptyInputError):
        run_pcoa(genotypes_factory(np.empty((4, 0))))


def test_pcoa_tables(structured):
    result = run_pcoa(structured, n_axes=2)
    scores = result.scores_table()
    assert list(scores.columns) == ["Axis1", "Axis2", "Individual", "Population"]
    assert scores["Population"].tolist() == ["AAA"] * 3 + ["BBB"] * 3

    eigen = result.eigenvalue_table()
    assert list(eigen.columns) == ["Axis", "Eigenvalue", "Variance_Explained_%"]
    assert len(eigen) == 2
    np.testing.assert_array_equal(result.coordinates("ind1"), scores.iloc[0, :2].to_numpy(dtype=float))


def test_orient_axes_ties_use_first_individual():
    oriented = orient_axes(np.array([[-2.0, 1.0], [2.0, -3.0]]))
    np.testing.assert_array_equal(oriented, [[2.0, -1.0], [-2.0, 3.0]])


def test_impute_mean():
    filled = impute_mean(np.array([[0, nan], [2, nan], [nan, nan]]))
    np.testing.assert_array_equal(filled, [[0, 0], [2, 0], [1, 0]])


def test_distance_matrix_is_symmetric():
    distances = compute_distance_matrix(np.array([[0, 1], [2, nan], [1, 1]]))
    np.testing.assert_allclose(distances, distances.T)
    np.testing.assert_allclose(np.diag(distances), 0)


def test_ordinate_identical_individuals():
    scores, eigenvalues = ordinate(np.zeros((3, 3)), n_axes=2)
    assert eigenvalues.size == 0
    assert (scores == 0).all()


# ------------------------------------------------------------------------------
# Fst
# ------------------------------------------------------------------------------

def test_fst_matrix_is_symmetric(genotypes_factory):
    genotypes = [
        [0, 0, 1, 2], [0, 1, 1, 2], [1, 0, 0, 2],
        [2, 2, 1, 0], [2, 1, 0, 0], [1, 2, 1, 1],
        [0, 2, 2, 1], [1, 2, 2, 0], [0, 1, 2, 1],
    ]
    pops = ["A"] * 3 + ["B"] * 3 + ["C"] * 3
    matrix = pairwise_fst(genotypes_factory(genotypes, populations=pops))

    assert list(matrix.index) == ["A", "B", "C"]
    assert list(matrix.columns) == ["A", "B", "C"]
    np.testing.assert_allclose(matrix.to_numpy(), matrix.to_numpy().T)
    np.testing.assert_array_equal(np.diag(matrix.to_numpy()), 0)
    assert matrix.loc["A", "B"] > 0


def test_fst_fixed_difference(genotypes_factory):
    gd = genotypes_factory(
        [[0, 2], [0, 2], [2, 0], [2, 0]],
        populations=["A", "A", "B", "B"],
    )
    matrix = pairwise_fst(gd)
    assert matrix.loc["A", "B"] == pytest.approx(1.0)


def test_fst_skipped_for_one_population(genotypes_factory):
    gd = genotypes_factory([[0, 1], [1, 2], [2, 0]])
    assert pairwise_fst(gd) is None


def test_fst_single_individual_population(genotypes_factory):
    gd = genotypes_factory(
        [[0, 1], [1, 2], [2, 0]],
        populations=["A", "A", "B"],
    )
    with pytest.raises(InsufficientDataError, match="B"):
        pairwise_fst(gd)


def test_fst_undefined_without_variance(genotypes_factory, caplog):
    gd = genotypes_factory(np.zeros((4, 3)), populations=["A", "A", "B", "B"])
    with caplog.at_level("WARNING"):
        matrix = pairwise_fst(gd)

    assert np.isnan(matrix.loc["A", "B"])
    assert np.isnan(matrix.loc["B", "A"])
    assert "Fst undefined" in caplog.text


def test_fst_no_shared_calls():
    sample_1 = np.array([[0, nan], [1, nan]])
    sample_2 = np.array([[nan, 0], [nan, 2]])
    with pytest.raises(InsufficientDataError):
        estimate_differentiation(sample_1, sample_2)
